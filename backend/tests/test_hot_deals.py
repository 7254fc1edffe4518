import asyncio
from datetime import timedelta
from decimal import Decimal

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select

from app.models.promotion import HotDeal
from app.services.promotion_service import PromotionService, days_left, discount_percentage

from factories import auth_headers, create_product, create_subscription


def _deal_body(product_id: int, start, end, price: str = "755.00") -> dict:
    return {
        "product_id": product_id,
        "deal_price": price,
        "deal_start_at": start.isoformat(),
        "deal_end_at": end.isoformat(),
        "deal_description": "Quarter-end clearance",
    }


class TestDiscount:

    @pytest.mark.parametrize(
        "original, deal, expected",
        [
            ("1000", "800", 20),
            ("1000", "755", 25),   # 24.5 rounds half up
            ("1000", "754.99", 25),
            ("3", "2", 33),
            ("0", "0", 0),
        ],
    )
    def test_discount_percentage(self, original, deal, expected):
        assert discount_percentage(Decimal(original), Decimal(deal)) == expected

    def test_days_left(self, frozen_clock):
        now = frozen_clock.now
        assert days_left(now + timedelta(days=2, hours=3), now) == 2
        assert days_left(now - timedelta(seconds=1), now) == 0


class TestHotDeals:

    async def test_create_hot_deal(self, client: AsyncClient, seller, product, frozen_clock, scheduled):
        now = frozen_clock.now
        response = await client.post(
            "/api/v1/hot-deals",
            json=_deal_body(product.id, now, now + timedelta(hours=6)),
            headers=auth_headers(seller),
        )

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["original_price"] == 1000.0
        assert data["deal_price"] == 755.0
        assert data["discount_percentage"] == 25
        assert data["is_active"] is True
        assert scheduled["hot_deal"] == [(data["id"], now + timedelta(hours=6))]

    async def test_deal_price_must_be_below_product_price(self, client: AsyncClient, seller, product, frozen_clock):
        now = frozen_clock.now
        response = await client.post(
            "/api/v1/hot-deals",
            json=_deal_body(product.id, now, now + timedelta(hours=1), price="1000.00"),
            headers=auth_headers(seller),
        )

        assert response.status_code == 422
        assert response.json()["message"] == "The deal price must be lower than the product price."

    async def test_end_must_follow_start(self, client: AsyncClient, seller, product, frozen_clock):
        now = frozen_clock.now
        response = await client.post(
            "/api/v1/hot-deals",
            json=_deal_body(product.id, now, now - timedelta(hours=1)),
            headers=auth_headers(seller),
        )

        assert response.status_code == 422
        assert "errors" in response.json()

    async def test_hot_deal_quota(self, client: AsyncClient, session_factory, seller, store, product, frozen_clock):
        now = frozen_clock.now
        headers = auth_headers(seller)
        second = await create_product(session_factory, store, name="Ball Valve")

        first = await client.post("/api/v1/hot-deals", json=_deal_body(product.id, now, now + timedelta(hours=1)), headers=headers)
        over = await client.post("/api/v1/hot-deals", json=_deal_body(second.id, now, now + timedelta(hours=1)), headers=headers)

        assert first.status_code == 201
        assert over.status_code == 422
        assert over.json()["current"] == 1
        assert over.json()["max_allowed"] == 1

    async def test_concurrent_deals_respect_quota(self, client: AsyncClient, session_factory, seller, store, product, frozen_clock):
        now = frozen_clock.now
        headers = auth_headers(seller)
        second = await create_product(session_factory, store, name="Gate Valve")

        responses = await asyncio.gather(*[
            client.post("/api/v1/hot-deals", json=_deal_body(p.id, now, now + timedelta(hours=1)), headers=headers)
            for p in (product, second)
        ])

        assert sorted(r.status_code for r in responses) == [201, 422]
        async with session_factory() as session:
            assert await session.scalar(select(func.count()).select_from(HotDeal).where(HotDeal.store_id == store.id)) == 1

    async def test_past_end_deal_is_inactive_after_next_read(self, client: AsyncClient, seller, product, frozen_clock):
        now = frozen_clock.now
        headers = auth_headers(seller)
        created = await client.post("/api/v1/hot-deals", json=_deal_body(product.id, now, now + timedelta(hours=1)), headers=headers)
        deal_id = created.json()["data"]["id"]

        public = await client.get("/api/v1/hot-deals")
        assert [d["id"] for d in public.json()["data"]] == [deal_id]

        frozen_clock.advance(hours=1, seconds=1)

        public = await client.get("/api/v1/hot-deals")
        assert public.json()["data"] == []
        status = await client.get("/api/v1/promotions", headers=headers)
        deals = status.json()["data"]["hot_deals"]
        assert deals[0]["id"] == deal_id
        assert deals[0]["is_active"] is False
        assert deals[0]["expired"] is True

    async def test_update_and_end_hot_deal(self, client: AsyncClient, seller, product, frozen_clock, scheduled):
        now = frozen_clock.now
        headers = auth_headers(seller)
        created = await client.post("/api/v1/hot-deals", json=_deal_body(product.id, now, now + timedelta(hours=1)), headers=headers)
        deal_id = created.json()["data"]["id"]

        updated = await client.patch(
            f"/api/v1/hot-deals/{deal_id}",
            json={"deal_price": "500.00", "deal_end_at": (now + timedelta(days=1)).isoformat()},
            headers=headers,
        )
        assert updated.status_code == 200
        assert updated.json()["data"]["discount_percentage"] == 50
        assert scheduled["hot_deal"][-1] == (deal_id, now + timedelta(days=1))

        ended = await client.delete(f"/api/v1/hot-deals/{deal_id}", headers=headers)
        assert ended.status_code == 200
        assert ended.json()["data"]["is_active"] is False

        after_end = await client.patch(f"/api/v1/hot-deals/{deal_id}", json={"deal_price": "400.00"}, headers=headers)
        assert after_end.status_code == 422

    async def test_one_running_deal_per_product(self, client: AsyncClient, session_factory, seller, store, product, frozen_clock):
        await create_subscription(session_factory, store, "gold")
        now = frozen_clock.now
        headers = auth_headers(seller)

        first = await client.post("/api/v1/hot-deals", json=_deal_body(product.id, now, now + timedelta(hours=1)), headers=headers)
        # an upcoming deal still blocks a second one
        second = await client.post(
            "/api/v1/hot-deals",
            json=_deal_body(product.id, now + timedelta(days=2), now + timedelta(days=3)),
            headers=headers,
        )

        assert first.status_code == 201
        assert second.status_code == 422
        assert second.json()["message"] == "This product already has an active hot deal."

    async def test_expire_hot_deal_handler(self, client: AsyncClient, session_factory, seller, product, frozen_clock):
        now = frozen_clock.now
        created = await client.post(
            "/api/v1/hot-deals", json=_deal_body(product.id, now, now + timedelta(hours=1)), headers=auth_headers(seller),
        )
        deal_id = created.json()["data"]["id"]

        async with session_factory() as session:
            assert await PromotionService(session).expire_hot_deal_if_due(deal_id) is False
        frozen_clock.advance(hours=2)
        async with session_factory() as session:
            assert await PromotionService(session).expire_hot_deal_if_due(deal_id) is True
        async with session_factory() as session:
            assert await PromotionService(session).expire_hot_deal_if_due(deal_id) is False
