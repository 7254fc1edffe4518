from httpx import AsyncClient

from app.core.permissions import Role

from factories import PASSWORD, auth_headers, create_user


class TestAuth:

    async def test_register_login_me(self, client: AsyncClient):
        payload = {
            "name": "New Buyer",
            "email": "New.Buyer@Example.com",
            "password": "another-pass-1",
            "password_confirmation": "another-pass-1",
        }
        registered = await client.post("/api/v1/auth/register", json=payload)

        assert registered.status_code == 201
        body = registered.json()
        assert body["message"] == "Registration successful"
        assert body["data"]["user"]["role"] == "buyer"
        assert body["data"]["user"]["email"] == "new.buyer@example.com"

        login = await client.post("/api/v1/auth/login", data={"email": "new.buyer@example.com", "password": "another-pass-1"})
        assert login.status_code == 200
        token = login.json()["access_token"]

        me = await client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert me.status_code == 200
        assert me.json()["data"]["name"] == "New Buyer"

    async def test_password_confirmation(self, client: AsyncClient):
        response = await client.post("/api/v1/auth/register", json={
            "name": "Mismatch",
            "email": "mismatch@example.com",
            "password": "another-pass-1",
            "password_confirmation": "different-pass-1",
        })

        assert response.status_code == 422
        assert response.json()["message"] == "The password confirmation does not match."

    async def test_duplicate_email(self, client: AsyncClient, buyer):
        response = await client.post("/api/v1/auth/register", json={
            "name": "Again",
            "email": "BUYER@example.com",
            "password": "another-pass-1",
            "password_confirmation": "another-pass-1",
        })

        assert response.status_code == 422
        assert response.json()["errors"] == {"email": ["The email has already been taken."]}

    async def test_wrong_password(self, client: AsyncClient, buyer):
        response = await client.post("/api/v1/auth/login", data={"email": buyer.email, "password": "nope-nope-nope"})

        assert response.status_code == 401
        assert response.json()["message"] == "Invalid email or password."

    async def test_bad_token(self, client: AsyncClient):
        response = await client.get("/api/v1/auth/me", headers={"Authorization": "Bearer not-a-jwt"})

        assert response.status_code == 401
        assert response.json()["message"] == "Unauthenticated."

    async def test_deactivated_account(self, client: AsyncClient, admin, session_factory):
        user = await create_user(session_factory, "gone@example.com", Role.BUYER)
        deactivated = await client.put(f"/api/v1/admin/users/{user.id}", json={"is_active": False}, headers=auth_headers(admin))
        assert deactivated.status_code == 200

        login = await client.post("/api/v1/auth/login", data={"email": user.email, "password": PASSWORD})
        assert login.status_code == 403

        me = await client.get("/api/v1/auth/me", headers=auth_headers(user))
        assert me.status_code == 403


class TestProfile:

    async def test_change_password(self, client: AsyncClient, buyer):
        headers = auth_headers(buyer)
        wrong = await client.post("/api/v1/change-password", json={
            "current_password": "not-it-at-all",
            "new_password": "fresh-pass-999",
            "new_password_confirmation": "fresh-pass-999",
        }, headers=headers)
        assert wrong.status_code == 422

        changed = await client.post("/api/v1/change-password", json={
            "current_password": PASSWORD,
            "new_password": "fresh-pass-999",
            "new_password_confirmation": "fresh-pass-999",
        }, headers=headers)
        assert changed.status_code == 200

        login = await client.post("/api/v1/auth/login", data={"email": buyer.email, "password": "fresh-pass-999"})
        assert login.status_code == 200


class TestAuditTrail:

    async def test_logins_are_audited(self, client: AsyncClient, admin, buyer):
        await client.post("/api/v1/auth/login", data={"email": buyer.email, "password": "wrong-password"})
        await client.post("/api/v1/auth/login", data={"email": buyer.email, "password": PASSWORD})

        response = await client.get("/api/v1/admin/audit-logs", params={"category": "security"}, headers=auth_headers(admin))

        assert response.status_code == 200
        actions = [row["action"] for row in response.json()["data"]]
        assert actions == ["login", "login_failed"]

    async def test_audit_logs_are_admin_only(self, client: AsyncClient, buyer):
        response = await client.get("/api/v1/admin/audit-logs", headers=auth_headers(buyer))

        assert response.status_code == 403
