from httpx import AsyncClient

from app.core.permissions import Role
from app.models.store import StoreStatus

from factories import PDF_BYTES, PNG_BYTES, auth_headers, create_store, create_user


REGISTRATION_FORM = {
    "company_name": "Bonny Offshore Supplies",
    "rc_number": "RC555001",
    "phone": "08031112222",
    "email": "sales@bonny-offshore.example.com",
    "address": "4 Trans-Amadi Road, Port Harcourt",
    "contact_person": "Ada Buyer",
    "business_lines": ["equipment", "services"],
    "states": ["Rivers", "Lagos"],
}


def _documents(skip: str = None):
    files = {
        "cac_certificate": ("cac.pdf", PDF_BYTES, "application/pdf"),
        "company_logo": ("logo.png", PNG_BYTES, "image/png"),
        "live_photos": ("yard.png", PNG_BYTES, "image/png"),
        "tin_certificate": ("tin.pdf", PDF_BYTES, "application/pdf"),
    }
    files.pop(skip, None)
    return files


class TestSellerRegistration:

    async def test_buyer_registers_a_store(self, client: AsyncClient, buyer):
        headers = auth_headers(buyer)
        response = await client.post("/api/v1/seller/register", data=REGISTRATION_FORM, files=_documents(), headers=headers)

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["status"] == "pending"
        assert data["subscription"] == "basic"
        assert data["states"] == ["Rivers", "Lagos"]
        assert sorted(d["type"] for d in data["documents"]) == [
            "cac_certificate", "company_logo", "live_photos", "tin_certificate",
        ]
        assert all(d["file_path"].startswith("/storage/store-documents/") for d in data["documents"])

        me = await client.get("/api/v1/auth/me", headers=headers)
        assert me.json()["data"]["role"] == "store_owner"

        status = await client.get(f"/api/v1/seller/registration/{data['id']}/status", headers=headers)
        assert status.status_code == 200
        assert status.json()["data"]["status"] == "pending"

    async def test_mandatory_documents(self, client: AsyncClient, buyer):
        response = await client.post(
            "/api/v1/seller/register",
            data=REGISTRATION_FORM,
            files=_documents(skip="live_photos"),
            headers=auth_headers(buyer),
        )

        assert response.status_code == 422
        assert response.json()["errors"] == {"live_photos": ["The live photos is required."]}

    async def test_rc_number_is_unique(self, client: AsyncClient, buyer, store):
        response = await client.post(
            "/api/v1/seller/register",
            data={**REGISTRATION_FORM, "rc_number": store.rc_number},
            files=_documents(),
            headers=auth_headers(buyer),
        )

        assert response.status_code == 422
        assert "rc_number" in response.json()["errors"]

    async def test_invalid_email(self, client: AsyncClient, buyer):
        response = await client.post(
            "/api/v1/seller/register",
            data={**REGISTRATION_FORM, "email": "not-an-email"},
            files=_documents(),
            headers=auth_headers(buyer),
        )

        assert response.status_code == 422
        assert "email" in response.json()["errors"]

    async def test_other_users_cannot_see_registration(self, client: AsyncClient, session_factory, buyer, store):
        response = await client.get(f"/api/v1/seller/registration/{store.id}/status", headers=auth_headers(buyer))

        assert response.status_code == 403


class TestStoreReview:

    async def test_documents_gate_approval(self, client: AsyncClient, session_factory, admin, buyer):
        registered = await client.post(
            "/api/v1/seller/register", data=REGISTRATION_FORM, files=_documents(), headers=auth_headers(buyer),
        )
        store = registered.json()["data"]
        headers = auth_headers(admin)

        blocked = await client.patch(f"/api/v1/admin/stores/{store['id']}/approve", headers=headers)
        assert blocked.status_code == 422
        assert sorted(blocked.json()["pending_documents"]) == [
            "cac_certificate", "company_logo", "live_photos", "tin_certificate",
        ]

        for doc in store["documents"]:
            reviewed = await client.patch(f"/api/v1/admin/documents/{doc['id']}/approve", headers=headers)
            assert reviewed.status_code == 200

        approved = await client.patch(f"/api/v1/admin/stores/{store['id']}/approve", headers=headers)
        assert approved.status_code == 200
        assert approved.json()["data"]["status"] == "approved"
        assert approved.json()["data"]["approved_at"] is not None

        again = await client.patch(f"/api/v1/admin/stores/{store['id']}/approve", headers=headers)
        assert again.status_code == 422

    async def test_reject_and_suspend(self, client: AsyncClient, session_factory, admin, store):
        headers = auth_headers(admin)

        suspended = await client.patch(f"/api/v1/admin/stores/{store.id}/suspend", json={"reason": "Expired licence"}, headers=headers)
        assert suspended.status_code == 200
        assert suspended.json()["data"]["status"] == "suspended"

        again = await client.patch(f"/api/v1/admin/stores/{store.id}/suspend", json={"reason": "Twice"}, headers=headers)
        assert again.status_code == 422

        rejected = await client.patch(f"/api/v1/admin/stores/{store.id}/reject", json={"rejection_reason": "Fake documents"}, headers=headers)
        assert rejected.status_code == 200
        assert rejected.json()["data"]["rejection_reason"] == "Fake documents"

    async def test_admin_routes_require_auth_and_capability(self, client: AsyncClient, buyer, store):
        anonymous = await client.get("/api/v1/admin/stores")
        assert anonymous.status_code == 401
        assert anonymous.json()["message"] == "Unauthenticated."

        forbidden = await client.get("/api/v1/admin/stores", headers=auth_headers(buyer))
        assert forbidden.status_code == 403
        assert forbidden.json()["message"] == "You are not authorized to perform this action."

    async def test_admin_store_listing_filters(self, client: AsyncClient, session_factory, admin, store):
        owner = await create_user(session_factory, "pending@example.com", Role.STORE_OWNER)
        await create_store(session_factory, owner, status=StoreStatus.PENDING, name="Pending Pipes", rc_number="RC400004")
        headers = auth_headers(admin)

        pending = await client.get("/api/v1/admin/stores", params={"status": "pending"}, headers=headers)
        assert [s["name"] for s in pending.json()["data"]] == ["Pending Pipes"]

        search = await client.get("/api/v1/admin/stores", params={"search": "Delta"}, headers=headers)
        assert [s["id"] for s in search.json()["data"]] == [store.id]
        assert search.json()["pagination"]["total"] == 1


class TestPublicStores:

    async def test_only_approved_stores_are_listed(self, client: AsyncClient, session_factory, store):
        owner = await create_user(session_factory, "pending@example.com", Role.STORE_OWNER)
        hidden = await create_store(session_factory, owner, status=StoreStatus.PENDING, name="Hidden Ltd", rc_number="RC400005")

        listed = await client.get("/api/v1/stores")
        assert [s["id"] for s in listed.json()["data"]] == [store.id]

        missing = await client.get(f"/api/v1/stores/{hidden.id}/products")
        assert missing.status_code == 404

    async def test_store_products(self, client: AsyncClient, store, product):
        response = await client.get(f"/api/v1/stores/{store.id}/products")

        assert response.status_code == 200
        body = response.json()
        assert body["store"]["id"] == store.id
        assert [p["id"] for p in body["data"]] == [product.id]


class TestReports:

    async def test_report_lifecycle(self, client: AsyncClient, admin, buyer, store):
        url = f"/api/v1/stores/{store.id}/report"
        payload = {"reason": "fake_products", "description": "Counterfeit gaskets"}

        created = await client.post(url, json=payload, headers=auth_headers(buyer))
        assert created.status_code == 201
        report_id = created.json()["data"]["id"]
        assert created.json()["data"]["status"] == "pending"

        duplicate = await client.post(url, json=payload, headers=auth_headers(buyer))
        assert duplicate.status_code == 422
        assert duplicate.json()["message"] == "You have already reported this store."

        reviewed = await client.patch(
            f"/api/v1/admin/reports/{report_id}/status",
            json={"status": "resolved", "admin_notes": "Listing removed"},
            headers=auth_headers(admin),
        )
        assert reviewed.status_code == 200
        assert reviewed.json()["data"]["status"] == "resolved"
        assert reviewed.json()["data"]["reviewed_by"] == admin.id

    async def test_cannot_report_own_store(self, client: AsyncClient, seller, store):
        response = await client.post(f"/api/v1/stores/{store.id}/report", json={"reason": "scam"}, headers=auth_headers(seller))

        assert response.status_code == 422
        assert response.json()["message"] == "You cannot report your own store."

    async def test_unknown_store(self, client: AsyncClient, buyer):
        response = await client.post("/api/v1/stores/777/report", json={"reason": "scam"}, headers=auth_headers(buyer))

        assert response.status_code == 404

    async def test_invalid_reason(self, client: AsyncClient, buyer, store):
        response = await client.post(f"/api/v1/stores/{store.id}/report", json={"reason": "ugly"}, headers=auth_headers(buyer))

        assert response.status_code == 422
        assert "reason" in response.json()["errors"]
