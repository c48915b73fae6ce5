"""Tests for the version compare-and-swap helper."""

import pytest

from services.booking_service.models import BookingModel, BookingStatus
from shared.concurrency.locking import OptimisticConcurrencyControl
from shared.domain.exceptions import ConcurrencyError, ErrorCode


class TestVersionCheck:
    def test_matching_versions_pass(self):
        OptimisticConcurrencyControl.check_version(3, 3, "booking-1")

    def test_mismatch_raises_retryable_conflict(self):
        with pytest.raises(ConcurrencyError) as exc_info:
            OptimisticConcurrencyControl.check_version(2, 3, "booking-1")

        error = exc_info.value
        assert error.status_code == 409
        assert error.error_code == ErrorCode.CONCURRENT_MODIFICATION
        assert error.context["retryable"] is True
        assert error.context["current_version"] == 3


class TestCompareAndSwap:
    async def test_swap_bumps_version(self, coordinator, database, schedule, user):
        booking = await coordinator.create_booking(schedule.id, user.id, "x")

        async with database.transaction() as session:
            new_version = await OptimisticConcurrencyControl.compare_and_swap(
                session, BookingModel, booking.id, 1, purpose="changed"
            )

        assert new_version == 2
        stored = await coordinator.get_booking_by_id(booking.id)
        assert stored.version == 2
        assert stored.purpose == "changed"

    async def test_stale_read_rejected(self, coordinator, database, schedule, user):
        """Two writers that read the same version cannot both win."""
        booking = await coordinator.create_booking(schedule.id, user.id, "x")

        async with database.transaction() as session:
            await OptimisticConcurrencyControl.compare_and_swap(
                session, BookingModel, booking.id, 1, status=BookingStatus.CANCELLED
            )

        with pytest.raises(ConcurrencyError):
            async with database.transaction() as session:
                await OptimisticConcurrencyControl.compare_and_swap(
                    session, BookingModel, booking.id, 1, purpose="lost update"
                )

        stored = await coordinator.get_booking_by_id(booking.id)
        assert stored.purpose == "x"
        assert stored.status == BookingStatus.CANCELLED
