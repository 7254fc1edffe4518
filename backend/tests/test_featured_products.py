import asyncio
from datetime import datetime, timedelta

from httpx import AsyncClient
from sqlalchemy import func, select

from app.core import clock
from app.core.permissions import Role
from app.models.promotion import FeaturedProduct
from app.services.promotion_service import PromotionService

from factories import auth_headers, create_product, create_store, create_subscription, create_user, set_plan


def _parse(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


class TestFeatureProduct:
    """Featuring products against the per-subscription quota."""

    async def test_feature_product_on_basic_plan(self, client: AsyncClient, seller, product, frozen_clock, scheduled):
        response = await client.post(f"/api/v1/products/{product.id}/feature", headers=auth_headers(seller))

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["is_active"] is True
        assert data["plan_type"] == "basic"
        assert data["subscription_code"] is None
        assert _parse(data["finish_time"]) == frozen_clock.now + timedelta(days=3)
        assert scheduled["featured"] == [(data["id"], frozen_clock.now + timedelta(days=3))]

    async def test_feature_twice_is_rejected(self, client: AsyncClient, seller, product):
        headers = auth_headers(seller)
        first = await client.post(f"/api/v1/products/{product.id}/feature", headers=headers)
        second = await client.post(f"/api/v1/products/{product.id}/feature", headers=headers)

        assert first.status_code == 201
        assert second.status_code == 422
        assert second.json()["message"] == "Product is already featured."

    async def test_slot_limit_counts_every_row_under_the_code(self, client: AsyncClient, session_factory, seller, store):
        headers = auth_headers(seller)
        products = [await create_product(session_factory, store, name=f"Valve {i}") for i in range(3)]

        for p in products[:2]:
            assert (await client.post(f"/api/v1/products/{p.id}/feature", headers=headers)).status_code == 201

        response = await client.post(f"/api/v1/products/{products[2].id}/feature", headers=headers)
        assert response.status_code == 422
        body = response.json()
        assert body["current"] == 2
        assert body["max_allowed"] == 2
        assert "featured products per subscription" in body["message"]

        # freeing a placement does not give the slot back
        unfeature = await client.delete(f"/api/v1/products/{products[0].id}/unfeature", headers=headers)
        assert unfeature.status_code == 200
        again = await client.post(f"/api/v1/products/{products[2].id}/feature", headers=headers)
        assert again.status_code == 422

        async with session_factory() as session:
            rows = await session.scalar(
                select(func.count()).select_from(FeaturedProduct).where(FeaturedProduct.store_id == store.id)
            )
        assert rows == 2

    async def test_concurrent_requests_cannot_exceed_slots(self, client: AsyncClient, session_factory, seller, store):
        headers = auth_headers(seller)
        products = [await create_product(session_factory, store, name=f"Gasket {i}") for i in range(4)]

        responses = await asyncio.gather(*[
            client.post(f"/api/v1/products/{p.id}/feature", headers=headers) for p in products
        ])

        assert sorted(r.status_code for r in responses) == [201, 201, 422, 422]
        async with session_factory() as session:
            rows = await session.scalar(
                select(func.count()).select_from(FeaturedProduct).where(FeaturedProduct.store_id == store.id)
            )
        assert rows == 2

    async def test_unfeature_requires_an_active_placement(self, client: AsyncClient, seller, product):
        response = await client.delete(f"/api/v1/products/{product.id}/unfeature", headers=auth_headers(seller))

        assert response.status_code == 422
        assert response.json()["message"] == "Product is not featured"

    async def test_cannot_feature_another_stores_product(self, client: AsyncClient, session_factory, product):
        other = await create_user(session_factory, "other@example.com", Role.STORE_OWNER)
        await create_store(session_factory, other, name="Other Store", rc_number="RC200002")

        response = await client.post(f"/api/v1/products/{product.id}/feature", headers=auth_headers(other))

        assert response.status_code == 403

    async def test_buyer_cannot_feature(self, client: AsyncClient, buyer, product):
        response = await client.post(f"/api/v1/products/{product.id}/feature", headers=auth_headers(buyer))

        assert response.status_code == 403


class TestFeaturedExpiry:
    """Placements end at finish_time whether or not the delayed task ran."""

    async def test_silver_three_day_placement_expires_on_read(
        self, client: AsyncClient, session_factory, seller, store, product, frozen_clock
    ):
        await set_plan(session_factory, "silver", featured_duration_days=3)
        sub = await create_subscription(session_factory, store, "silver")
        headers = auth_headers(seller)
        t0 = frozen_clock.now

        created = await client.post(f"/api/v1/products/{product.id}/feature", headers=headers)
        assert created.status_code == 201
        data = created.json()["data"]
        assert data["subscription_code"] == sub.subscription_code
        assert data["plan_type"] == "silver"
        assert _parse(data["finish_time"]) == t0 + timedelta(days=3)
        assert data["is_active"] is True

        frozen_clock.advance(days=3, seconds=1)
        status = await client.get("/api/v1/promotions", headers=headers)

        assert status.status_code == 200
        rows = status.json()["data"]["featured_products"]
        assert len(rows) == 1
        assert rows[0]["is_active"] is False
        assert rows[0]["expired"] is True
        assert rows[0]["days_left"] == 0

    async def test_public_listing_hides_expired_placements(self, client: AsyncClient, seller, product, frozen_clock):
        await client.post(f"/api/v1/products/{product.id}/feature", headers=auth_headers(seller))

        listed = await client.get("/api/v1/featured-products")
        assert [row["product_id"] for row in listed.json()["data"]] == [product.id]

        frozen_clock.advance(days=3, seconds=1)
        listed = await client.get("/api/v1/featured-products")
        assert listed.json()["data"] == []

    async def test_delayed_handler_is_idempotent(self, client: AsyncClient, session_factory, seller, product, frozen_clock):
        created = await client.post(f"/api/v1/products/{product.id}/feature", headers=auth_headers(seller))
        featured_id = created.json()["data"]["id"]

        async with session_factory() as session:
            assert await PromotionService(session).expire_featured_if_due(featured_id) is False

        frozen_clock.advance(days=3, seconds=1)
        async with session_factory() as session:
            assert await PromotionService(session).expire_featured_if_due(featured_id) is True
        async with session_factory() as session:
            assert await PromotionService(session).expire_featured_if_due(featured_id) is False
            row = await session.get(FeaturedProduct, featured_id)
            assert row.is_active is False
            assert clock.as_utc(row.rotated_out_at) == frozen_clock.now

    async def test_placement_ends_exactly_at_finish_time(
        self, client: AsyncClient, session_factory, seller, product, frozen_clock
    ):
        created = await client.post(f"/api/v1/products/{product.id}/feature", headers=auth_headers(seller))
        featured_id = created.json()["data"]["id"]

        frozen_clock.advance(days=3)
        async with session_factory() as session:
            assert await PromotionService(session).sweep_expired() == (1, 0)
        async with session_factory() as session:
            assert (await session.get(FeaturedProduct, featured_id)).is_active is False
            assert await PromotionService(session).expire_featured_if_due(featured_id) is False

        listed = await client.get("/api/v1/featured-products")
        assert listed.json()["data"] == []

    async def test_handler_ignores_missing_rows(self, session_factory):
        async with session_factory() as session:
            assert await PromotionService(session).expire_featured_if_due(9999) is False
            assert await PromotionService(session).expire_hot_deal_if_due(9999) is False

    async def test_manual_expire(self, client: AsyncClient, seller, product):
        headers = auth_headers(seller)
        created = await client.post(f"/api/v1/products/{product.id}/feature", headers=headers)
        featured_id = created.json()["data"]["id"]

        response = await client.post(f"/api/v1/promotions/featured/{featured_id}/expire", headers=headers)
        assert response.status_code == 200
        assert response.json()["data"]["is_active"] is False

        bad_type = await client.post(f"/api/v1/promotions/banner/{featured_id}/expire", headers=headers)
        assert bad_type.status_code == 400

    async def test_featured_and_deals_reports_quota(self, client: AsyncClient, seller, product):
        headers = auth_headers(seller)
        await client.post(f"/api/v1/products/{product.id}/feature", headers=headers)

        response = await client.get("/api/v1/featured-and-deals", headers=headers)

        assert response.status_code == 200
        quota = response.json()["data"]["quota"]
        assert quota["plan"] == "basic"
        assert quota["featured"] == {"used": 1, "max": 2, "remaining": 1}
        assert quota["hot_deals"] == {"used": 0, "max": 1, "remaining": 1}
