"""HTTP tests for the booking endpoints."""

from datetime import timedelta
from uuid import uuid4

from conftest import auth_headers, load_schedule, make_schedule
from services.booking_service.models import ScheduleStatus

API = "/api/v1/bookings"


async def book(client, schedule, owner, purpose="Study group"):
    return await client.post(
        API,
        json={"room_schedule_id": str(schedule.id), "purpose": purpose},
        headers=auth_headers(owner),
    )


class TestCreateBookingEndpoint:
    async def test_create_returns_201_with_details(self, booking_client, schedule, user):
        response = await book(booking_client, schedule, user)

        assert response.status_code == 201
        body = response.json()
        assert body["status"] == "COMPLETED"
        assert body["version"] == 1
        assert body["user"]["email"] == user.email
        assert "password_hash" not in body["user"]
        assert body["room_schedule"]["status"] == "RESERVED"
        assert body["room_schedule"]["room"]["building"]["name"] == "H6"

    async def test_requires_authentication(self, booking_client, schedule):
        response = await booking_client.post(
            API, json={"room_schedule_id": str(schedule.id), "purpose": "Lab session"}
        )

        assert response.status_code == 401
        assert response.json()["status"] == "error"

    async def test_conflict_envelope(self, booking_client, schedule, user, other_user):
        await book(booking_client, schedule, user)

        response = await book(booking_client, schedule, other_user)

        assert response.status_code == 409
        body = response.json()
        assert body["error"] == "SLOT_ALREADY_BOOKED"
        assert body["message"] == "This time slot is already booked"
        assert "traceback" not in body

    async def test_past_slot_is_400(self, booking_client, database, room, user, clock):
        past = await make_schedule(database, room, clock.now - timedelta(days=1))

        response = await book(booking_client, past, user)

        assert response.status_code == 400
        assert response.json()["message"] == "Cannot book a time slot in the past"

    async def test_unknown_schedule_is_404(self, booking_client, user):
        response = await booking_client.post(
            API,
            json={"room_schedule_id": str(uuid4()), "purpose": "Lab session"},
            headers=auth_headers(user),
        )

        assert response.status_code == 404

    async def test_malformed_body_is_422(self, booking_client, user):
        response = await booking_client.post(
            API, json={"room_schedule_id": "nope"}, headers=auth_headers(user)
        )

        assert response.status_code == 422
        assert response.json()["error"] == "DOMAIN_VALIDATION_ERROR"

    async def test_purpose_required_and_bounded(self, booking_client, database, schedule, user):
        """Purpose must be present and 3 to 200 characters long."""
        for payload in (
            {"room_schedule_id": str(schedule.id)},
            {"room_schedule_id": str(schedule.id), "purpose": "ab"},
            {"room_schedule_id": str(schedule.id), "purpose": "x" * 201},
        ):
            response = await booking_client.post(API, json=payload, headers=auth_headers(user))
            assert response.status_code == 422, payload

        assert (await load_schedule(database, schedule.id)).status == ScheduleStatus.AVAILABLE


class TestCancelBookingEndpoint:
    async def test_cancel(self, booking_client, schedule, user):
        booking_id = (await book(booking_client, schedule, user)).json()["id"]

        response = await booking_client.post(
            f"{API}/cancel/{booking_id}", headers=auth_headers(user)
        )

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Booking cancelled successfully"
        assert body["deleted"] is False
        assert body["booking"]["status"] == "CANCELLED"
        assert body["booking"]["version"] == 2

    async def test_cancel_by_stranger_is_403(self, booking_client, schedule, user, other_user):
        booking_id = (await book(booking_client, schedule, user)).json()["id"]

        response = await booking_client.post(
            f"{API}/cancel/{booking_id}", headers=auth_headers(other_user)
        )

        assert response.status_code == 403
        assert response.json()["message"] == "Not authorized to cancel this booking"

    async def test_second_cancel_is_400(self, booking_client, schedule, user):
        booking_id = (await book(booking_client, schedule, user)).json()["id"]
        await booking_client.post(f"{API}/cancel/{booking_id}", headers=auth_headers(user))

        response = await booking_client.post(
            f"{API}/cancel/{booking_id}", headers=auth_headers(user)
        )

        assert response.status_code == 400
        assert response.json()["message"] == "This booking is already cancelled"

    async def test_stale_version_is_409(self, booking_client, schedule, user):
        booking_id = (await book(booking_client, schedule, user)).json()["id"]

        response = await booking_client.post(
            f"{API}/cancel/{booking_id}",
            params={"version": 3},
            headers=auth_headers(user),
        )

        assert response.status_code == 409
        body = response.json()
        assert body["error"] == "CONCURRENT_MODIFICATION"
        assert body["context"]["retryable"] is True


class TestBookingQueriesEndpoint:
    async def test_my_bookings_with_status_filter(self, booking_client, database, room, user, clock):
        kept = await make_schedule(database, room, clock.now + timedelta(days=1))
        dropped = await make_schedule(database, room, clock.now + timedelta(days=2))
        kept_id = (await book(booking_client, kept, user)).json()["id"]
        dropped_id = (await book(booking_client, dropped, user)).json()["id"]
        await booking_client.post(f"{API}/cancel/{dropped_id}", headers=auth_headers(user))

        everything = await booking_client.get(f"{API}/my-bookings", headers=auth_headers(user))
        active = await booking_client.get(
            f"{API}/my-bookings", params={"status": "COMPLETED"}, headers=auth_headers(user)
        )

        assert [b["id"] for b in everything.json()] == [dropped_id, kept_id]
        assert [b["id"] for b in active.json()] == [kept_id]

    async def test_admin_listings_forbidden_for_users(self, booking_client, user):
        for path in ("", "/date/2030-05-20", f"/user/{user.id}"):
            response = await booking_client.get(f"{API}{path}", headers=auth_headers(user))
            assert response.status_code == 403, path

    async def test_admin_listings(self, booking_client, schedule, user, admin):
        booking_id = (await book(booking_client, schedule, user)).json()["id"]

        every = await booking_client.get(API, headers=auth_headers(admin))
        by_date = await booking_client.get(f"{API}/date/2030-05-20", headers=auth_headers(admin))
        other_day = await booking_client.get(f"{API}/date/2030-05-21", headers=auth_headers(admin))
        by_user = await booking_client.get(f"{API}/user/{user.id}", headers=auth_headers(admin))

        assert [b["id"] for b in every.json()] == [booking_id]
        assert [b["id"] for b in by_date.json()] == [booking_id]
        assert other_day.json() == []
        assert [b["id"] for b in by_user.json()] == [booking_id]

    async def test_detail_visible_to_owner_and_admin_only(self, booking_client, schedule, user, other_user, admin):
        booking_id = (await book(booking_client, schedule, user)).json()["id"]
        url = f"{API}/detail/{booking_id}"

        assert (await booking_client.get(url, headers=auth_headers(user))).status_code == 200
        assert (await booking_client.get(url, headers=auth_headers(admin))).status_code == 200
        assert (await booking_client.get(url, headers=auth_headers(other_user))).status_code == 403

    async def test_by_room_name_with_range(self, booking_client, schedule, user):
        booking_id = (await book(booking_client, schedule, user)).json()["id"]

        response = await booking_client.get(
            f"{API}/H6-101",
            params={"start_date": "2030-05-20", "end_date": "2030-05-20"},
            headers=auth_headers(user),
        )
        empty = await booking_client.get(
            f"{API}/H6-101",
            params={"start_date": "2030-05-21", "end_date": "2030-05-25"},
            headers=auth_headers(user),
        )

        assert [b["id"] for b in response.json()] == [booking_id]
        assert empty.json() == []

    async def test_correlation_id_echoed(self, booking_client, user):
        response = await booking_client.get(
            f"{API}/my-bookings",
            headers={**auth_headers(user), "X-Correlation-ID": "req-42"},
        )

        assert response.headers["X-Correlation-ID"] == "req-42"
