from pathlib import Path

from httpx import AsyncClient
from sqlalchemy import func, select

from app.core.config import settings
from app.core.permissions import Role
from app.models.category import Category
from app.models.product import Product
from app.models.promotion import FeaturedProduct

from factories import PNG_BYTES, auth_headers, create_product, create_store, create_subscription, create_user


PRODUCT_FORM = {
    "name": "Choke Manifold 3-1/16in",
    "category": "Valves",
    "description": "API 6A choke manifold, 5000 psi",
    "new_price": "250000.00",
    "old_price": "275000.00",
    "specifications": '{"pressure": "5000 psi", "size": "3-1/16in"}',
}


class TestProductLimit:

    async def test_basic_plan_cannot_add_products(self, client: AsyncClient, session_factory, seller, store):
        response = await client.post("/api/v1/my-products", data=PRODUCT_FORM, headers=auth_headers(seller))

        assert response.status_code == 422
        body = response.json()
        assert body["message"].startswith("Product limit reached")
        assert body["current"] == 0
        assert body["max_allowed"] == 0
        async with session_factory() as session:
            assert await session.scalar(select(func.count()).select_from(Product)) == 0

    async def test_limit_counts_every_product_of_the_store(self, client: AsyncClient, session_factory, seller, store):
        await create_subscription(session_factory, store, "silver")
        for i in range(5):
            await create_product(session_factory, store, name=f"Flange {i}")

        response = await client.post("/api/v1/my-products", data=PRODUCT_FORM, headers=auth_headers(seller))

        assert response.status_code == 422
        assert response.json()["current"] == 5
        assert response.json()["max_allowed"] == 5

    async def test_usage_is_reported_with_the_listing(self, client: AsyncClient, session_factory, seller, store, product):
        await create_subscription(session_factory, store, "gold")

        response = await client.get("/api/v1/my-products", headers=auth_headers(seller))

        assert response.status_code == 200
        body = response.json()
        assert [p["id"] for p in body["data"]] == [product.id]
        assert body["pagination"]["total"] == 1
        assert body["usage"] == {"plan": "gold", "used": 1, "max": 10, "remaining": 9}


class TestProductWrites:

    async def test_create_product_with_image(self, client: AsyncClient, session_factory, seller, store):
        await create_subscription(session_factory, store, "silver")

        response = await client.post(
            "/api/v1/my-products",
            data=PRODUCT_FORM,
            files=[("images", ("front.png", PNG_BYTES, "image/png")), ("images", ("side.png", PNG_BYTES, "image/png"))],
            headers=auth_headers(seller),
        )

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["category"]["name"] == "Valves"
        assert data["specifications"] == {"pressure": "5000 psi", "size": "3-1/16in"}
        assert data["new_price"] == 250000.0
        assert len(data["images"]) == 2
        assert [img["is_primary"] for img in data["images"]].count(True) == 1
        assert data["primary_image"].startswith("/storage/products/")

    async def test_image_content_must_match_extension(self, client: AsyncClient, session_factory, seller, store):
        await create_subscription(session_factory, store, "silver")

        response = await client.post(
            "/api/v1/my-products",
            data=PRODUCT_FORM,
            files=[("images", ("front.png", b"MZ\x90\x00 not an image", "image/png"))],
            headers=auth_headers(seller),
        )

        assert response.status_code == 422
        assert "images.0" in response.json()["errors"]
        async with session_factory() as session:
            assert await session.scalar(select(func.count()).select_from(Product)) == 0

    async def test_rejected_batch_leaves_no_files(self, client: AsyncClient, session_factory, seller, store):
        await create_subscription(session_factory, store, "silver")
        products_dir = Path(settings.STORAGE_ROOT) / "products"
        before = set(products_dir.glob("*")) if products_dir.exists() else set()

        response = await client.post(
            "/api/v1/my-products",
            data=PRODUCT_FORM,
            files=[
                ("images", ("front.png", PNG_BYTES, "image/png")),
                ("images", ("side.png", b"MZ\x90\x00 not an image", "image/png")),
            ],
            headers=auth_headers(seller),
        )

        assert response.status_code == 422
        assert "images.1" in response.json()["errors"]
        after = set(products_dir.glob("*")) if products_dir.exists() else set()
        assert after == before

    async def test_unknown_category(self, client: AsyncClient, session_factory, seller, store):
        await create_subscription(session_factory, store, "silver")

        response = await client.post(
            "/api/v1/my-products", data={**PRODUCT_FORM, "category": "Spaceships"}, headers=auth_headers(seller),
        )

        assert response.status_code == 422
        assert response.json()["errors"] == {"category": ["The selected category is invalid."]}

    async def test_specifications_must_be_an_object(self, client: AsyncClient, session_factory, seller, store):
        await create_subscription(session_factory, store, "silver")

        response = await client.post(
            "/api/v1/my-products", data={**PRODUCT_FORM, "specifications": "[1, 2]"}, headers=auth_headers(seller),
        )

        assert response.status_code == 422
        assert "specifications" in response.json()["errors"]

    async def test_update_product(self, client: AsyncClient, seller, product):
        response = await client.patch(
            f"/api/v1/my-products/{product.id}",
            data={"new_price": "900.00", "status": "draft"},
            headers=auth_headers(seller),
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["new_price"] == 900.0
        assert data["status"] == "draft"
        assert data["name"] == product.name

    async def test_other_store_cannot_touch_product(self, client: AsyncClient, session_factory, product):
        other = await create_user(session_factory, "rival@example.com", Role.STORE_OWNER)
        await create_store(session_factory, other, name="Rival Supplies", rc_number="RC300003")

        response = await client.delete(f"/api/v1/my-products/{product.id}", headers=auth_headers(other))

        assert response.status_code == 403


class TestProductDelete:

    async def test_delete_keeps_promotion_ledger(self, client: AsyncClient, session_factory, seller, store, product):
        headers = auth_headers(seller)
        featured = await client.post(f"/api/v1/products/{product.id}/feature", headers=headers)
        featured_id = featured.json()["data"]["id"]

        response = await client.delete(f"/api/v1/my-products/{product.id}", headers=headers)

        assert response.status_code == 200
        async with session_factory() as session:
            assert await session.get(Product, product.id) is None
            row = await session.get(FeaturedProduct, featured_id)
            assert row is not None
            assert row.product_id is None
            assert row.is_active is False

        quota = (await client.get("/api/v1/featured-and-deals", headers=headers)).json()["data"]["quota"]
        assert quota["featured"]["used"] == 1

    async def test_missing_product(self, client: AsyncClient, seller, store):
        response = await client.get("/api/v1/my-products/4242", headers=auth_headers(seller))

        assert response.status_code == 404


class TestCategoryAdmin:

    async def test_admin_patches_category(self, client: AsyncClient, session_factory, admin):
        async with session_factory() as session:
            valves = (await session.execute(select(Category).where(Category.name == "Valves"))).scalar_one()

        response = await client.patch(
            f"/api/v1/admin/categories/{valves.id}", json={"name": "Valves & Chokes"}, headers=auth_headers(admin),
        )

        assert response.status_code == 200
        assert response.json()["data"]["name"] == "Valves & Chokes"
        assert response.json()["data"]["slug"] != valves.slug
