import re
from pathlib import Path

from httpx import AsyncClient

from app.core.config import settings
from app.models.subscription import SubscriptionStatus

from factories import PASSWORD, PDF_BYTES, PNG_BYTES, auth_headers, create_subscription

NEW_PASSWORD = "fresh-pass-456"

SIGN_UP = {
    "name": "Pending Buyer",
    "email": "pending@example.com",
    "password": "another-pass-1",
    "password_confirmation": "another-pass-1",
}


def _reset_token(mail: dict) -> str:
    return re.search(r"token=([A-Za-z0-9_\-]+)", mail["body"]).group(1)


def _verify_path(mail: dict) -> str:
    pending_id, signature = re.search(r"/verify-email/(\d+)/([0-9a-f]+)", mail["body"]).groups()
    return f"/api/v1/auth/verify-email/{pending_id}/{signature}"


async def _login(client: AsyncClient, email: str, password: str):
    return await client.post("/api/v1/auth/login", data={"email": email, "password": password})


class TestCheckEmail:

    async def test_known_and_unknown_addresses(self, client: AsyncClient, buyer):
        taken = await client.post("/api/v1/auth/check-email", json={"email": "BUYER@example.com"})
        free = await client.post("/api/v1/auth/check-email", json={"email": "nobody@example.com"})

        assert taken.json() == {"exists": True, "message": "Email already registered"}
        assert free.json() == {"exists": False, "message": "Email is available"}

    async def test_invalid_address(self, client: AsyncClient):
        response = await client.post("/api/v1/auth/check-email", json={"email": "not-an-email"})

        assert response.status_code == 422
        assert "email" in response.json()["errors"]


class TestPasswordReset:

    async def test_reset_flow(self, client: AsyncClient, buyer, outbox):
        sent = await client.post("/api/v1/auth/forgot-password", json={"email": buyer.email})

        assert sent.status_code == 200
        assert sent.json() == {"status": "We have emailed your password reset link."}
        assert [(m["to"], m["subject"]) for m in outbox] == [(buyer.email, "Reset Your Password")]
        token = _reset_token(outbox[0])

        check = await client.post("/api/v1/auth/verify-reset-token", json={"email": buyer.email, "token": token})
        assert check.json() == {"valid": True, "message": "Token is valid"}

        body = {"email": buyer.email, "token": token, "password": NEW_PASSWORD, "password_confirmation": NEW_PASSWORD}
        reset = await client.post("/api/v1/auth/reset-password", json=body)
        assert reset.status_code == 200
        assert reset.json() == {"status": "Your password has been reset."}

        assert (await _login(client, buyer.email, PASSWORD)).status_code == 401
        assert (await _login(client, buyer.email, NEW_PASSWORD)).status_code == 200

        reused = await client.post("/api/v1/auth/reset-password", json=body)
        assert reused.status_code == 422
        assert reused.json()["errors"] == {"token": ["This password reset link is invalid or has expired."]}

    async def test_unknown_email(self, client: AsyncClient, outbox):
        response = await client.post("/api/v1/auth/forgot-password", json={"email": "ghost@example.com"})

        assert response.status_code == 422
        assert response.json()["errors"] == {"email": ["We can't find a user with that email address."]}
        assert outbox == []

    async def test_requests_are_throttled(self, client: AsyncClient, buyer, outbox, frozen_clock):
        await client.post("/api/v1/auth/forgot-password", json={"email": buyer.email})
        first_token = _reset_token(outbox[0])

        again = await client.post("/api/v1/auth/forgot-password", json={"email": buyer.email})
        assert again.status_code == 422
        assert again.json()["message"] == "Please wait before retrying."

        frozen_clock.advance(seconds=61)
        later = await client.post("/api/v1/auth/forgot-password", json={"email": buyer.email})
        assert later.status_code == 200
        assert len(outbox) == 2

        stale = await client.post("/api/v1/auth/verify-reset-token", json={"email": buyer.email, "token": first_token})
        assert stale.status_code == 422

    async def test_token_expires(self, client: AsyncClient, buyer, outbox, frozen_clock):
        await client.post("/api/v1/auth/forgot-password", json={"email": buyer.email})
        token = _reset_token(outbox[0])

        frozen_clock.advance(minutes=settings.PASSWORD_RESET_EXPIRE_MINUTES)
        response = await client.post("/api/v1/auth/verify-reset-token", json={"email": buyer.email, "token": token})

        assert response.status_code == 422
        assert response.json()["errors"] == {"token": ["This password reset link has expired."]}

    async def test_wrong_token(self, client: AsyncClient, buyer):
        await client.post("/api/v1/auth/forgot-password", json={"email": buyer.email})

        response = await client.post("/api/v1/auth/verify-reset-token", json={"email": buyer.email, "token": "guess"})

        assert response.status_code == 422
        assert "token" in response.json()["errors"]


class TestLogout:

    async def test_logout_revokes_only_that_token(self, client: AsyncClient, buyer):
        token = (await _login(client, buyer.email, PASSWORD)).json()["access_token"]
        headers = {"Authorization": f"Bearer {token}"}

        logout = await client.post("/api/v1/auth/logout", headers=headers)
        assert logout.status_code == 204

        me = await client.get("/api/v1/auth/me", headers=headers)
        assert me.status_code == 401
        assert me.json()["message"] == "Unauthenticated."
        assert (await client.get("/api/v1/auth/me", headers=auth_headers(buyer))).status_code == 200

    async def test_logout_requires_a_token(self, client: AsyncClient):
        assert (await client.post("/api/v1/auth/logout")).status_code == 401


class TestProfileImage:

    async def test_upload_replaces_previous_image(self, client: AsyncClient, buyer):
        headers = auth_headers(buyer)
        files = {"profile_image": ("me.png", PNG_BYTES, "image/png")}

        first = await client.post("/api/v1/profile/upload-image", files=files, headers=headers)
        assert first.status_code == 200
        assert first.json()["message"] == "Profile image uploaded successfully"
        first_url = first.json()["profile_image"]
        assert first_url.startswith("/storage/profile-images/")
        first_file = Path(settings.STORAGE_ROOT) / first_url.removeprefix("/storage/")
        assert first_file.exists()

        second = await client.post("/api/v1/profile/upload-image", files=files, headers=headers)
        assert second.status_code == 200
        assert second.json()["data"]["profile_image"] != first_url
        assert not first_file.exists()

        me = await client.get("/api/v1/auth/me", headers=headers)
        assert me.json()["data"]["profile_image"] == second.json()["profile_image"]

    async def test_rejects_non_images(self, client: AsyncClient, buyer):
        response = await client.post(
            "/api/v1/profile/upload-image",
            files={"profile_image": ("me.pdf", PDF_BYTES, "application/pdf")},
            headers=auth_headers(buyer),
        )

        assert response.status_code == 422
        assert "profile_image" in response.json()["errors"]


class TestEmailVerification:

    async def test_sign_up_waits_for_verification(self, client: AsyncClient, monkeypatch, outbox):
        monkeypatch.setattr(settings, "EMAIL_VERIFICATION_ENABLED", True)

        registered = await client.post("/api/v1/auth/register", json=SIGN_UP)

        assert registered.status_code == 201
        assert registered.json()["data"]["email"] == "pending@example.com"
        assert "access_token" not in registered.json()["data"]
        assert outbox[0]["subject"] == "Verify Your Email Address - Heritage Oil & Gas"
        assert (await client.post("/api/v1/auth/check-email", json={"email": SIGN_UP["email"]})).json()["exists"] is True
        assert (await _login(client, SIGN_UP["email"], SIGN_UP["password"])).status_code == 401

        duplicate = await client.post("/api/v1/auth/register", json=SIGN_UP)
        assert duplicate.status_code == 422
        assert duplicate.json()["errors"] == {"email": ["Email already pending verification"]}

        verified = await client.get(_verify_path(outbox[0]))
        assert verified.status_code == 200
        assert verified.json()["message"] == "Email verified successfully"

        login = await _login(client, SIGN_UP["email"], SIGN_UP["password"])
        assert login.status_code == 200
        assert login.json()["user"]["role"] == "buyer"

        replay = await client.get(_verify_path(outbox[0]))
        assert replay.status_code == 400
        assert replay.json()["message"] == "Invalid verification link"

    async def test_tampered_link(self, client: AsyncClient, monkeypatch, outbox):
        monkeypatch.setattr(settings, "EMAIL_VERIFICATION_ENABLED", True)
        await client.post("/api/v1/auth/register", json=SIGN_UP)
        path = _verify_path(outbox[0])

        response = await client.get(path[:-4] + "0000")

        assert response.status_code == 400
        assert response.json()["message"] == "Invalid verification link"

    async def test_expired_link(self, client: AsyncClient, monkeypatch, outbox, frozen_clock):
        monkeypatch.setattr(settings, "EMAIL_VERIFICATION_ENABLED", True)
        await client.post("/api/v1/auth/register", json=SIGN_UP)

        frozen_clock.advance(minutes=settings.EMAIL_VERIFICATION_EXPIRE_MINUTES, seconds=1)
        response = await client.get(_verify_path(outbox[0]))

        assert response.status_code == 400
        assert response.json()["message"] == "Verification link has expired. Please register again."
        # the hold is gone, so the address can sign up again
        assert (await client.post("/api/v1/auth/register", json=SIGN_UP)).status_code == 201


class TestReviewNotifications:

    async def test_store_rejection_mail(self, client: AsyncClient, admin, seller, store, outbox):
        response = await client.patch(
            f"/api/v1/admin/stores/{store.id}/reject",
            json={"rejection_reason": "CAC certificate is unreadable"},
            headers=auth_headers(admin),
        )

        assert response.status_code == 200
        assert [(m["to"], m["subject"]) for m in outbox] == [
            (seller.email, "Store Verification Update - Heritage Oil & Gas"),
        ]
        assert "CAC certificate is unreadable" in outbox[0]["body"]

    async def test_subscription_approval_mail(self, client: AsyncClient, session_factory, admin, seller, store, outbox):
        sub = await create_subscription(session_factory, store, "gold", status=SubscriptionStatus.PENDING)

        response = await client.patch(f"/api/v1/admin/subscriptions/{sub.id}/approve", headers=auth_headers(admin))

        assert response.status_code == 200
        assert [(m["to"], m["subject"]) for m in outbox] == [
            (seller.email, "Subscription Approved! - Heritage Oil & Gas"),
        ]
        assert sub.subscription_code in outbox[0]["body"]
        assert "Plan: Gold" in outbox[0]["body"]
