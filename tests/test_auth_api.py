"""HTTP tests for the user service authentication endpoints."""

from conftest import PASSWORD, auth_headers

API = "/api/v1/auth"


def registration(email="carol@hcmut.edu.vn", password="Str0ng!pass"):
    return {
        "email": email,
        "password": password,
        "first_name": "Carol",
        "last_name": "Nguyen",
    }


class TestRegister:
    async def test_register_issues_token(self, user_client):
        response = await user_client.post(f"{API}/register", json=registration())

        assert response.status_code == 201
        body = response.json()
        assert body["user"]["email"] == "carol@hcmut.edu.vn"
        assert body["user"]["role"] == "USER"
        assert body["access_token"]
        assert body["token_type"] == "bearer"

    async def test_foreign_domain_is_400(self, user_client):
        response = await user_client.post(
            f"{API}/register", json=registration(email="carol@gmail.com")
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Email must end with @hcmut.edu.vn"

    async def test_duplicate_is_409(self, user_client, user):
        response = await user_client.post(f"{API}/register", json=registration(email=user.email))

        assert response.status_code == 409

    async def test_weak_password_is_422(self, user_client):
        response = await user_client.post(
            f"{API}/register", json=registration(password="alllowercase1")
        )

        assert response.status_code == 422


class TestLogin:
    async def test_login(self, user_client, user):
        response = await user_client.post(
            f"{API}/login", json={"email": user.email, "password": PASSWORD}
        )

        assert response.status_code == 200
        token = response.json()["access_token"]
        me = await user_client.get(f"{API}/me", headers={"Authorization": f"Bearer {token}"})
        assert me.json()["id"] == str(user.id)

    async def test_wrong_password_is_401(self, user_client, user):
        response = await user_client.post(
            f"{API}/login", json={"email": user.email, "password": "Wrong@123"}
        )

        assert response.status_code == 401
        assert response.json()["message"] == "Invalid credentials"

    async def test_invalid_token_is_401(self, user_client):
        response = await user_client.get(
            f"{API}/me", headers={"Authorization": "Bearer not-a-token"}
        )

        assert response.status_code == 401
        assert response.json()["error"] == "INVALID_TOKEN"

    async def test_logout(self, user_client, user):
        response = await user_client.post(f"{API}/logout", headers=auth_headers(user))

        assert response.status_code == 200
        assert response.json()["message"] == "Logged out successfully"


class TestChangePassword:
    async def test_change_password(self, user_client, user):
        response = await user_client.post(
            f"{API}/changepass",
            json={"old_password": PASSWORD, "new_password": "N3w!Password"},
            headers=auth_headers(user),
        )

        assert response.status_code == 200
        relogin = await user_client.post(
            f"{API}/login", json={"email": user.email, "password": "N3w!Password"}
        )
        assert relogin.status_code == 200

    async def test_wrong_old_password_is_401(self, user_client, user):
        response = await user_client.post(
            f"{API}/changepass",
            json={"old_password": "Nope@1234", "new_password": "N3w!Password"},
            headers=auth_headers(user),
        )

        assert response.status_code == 401
