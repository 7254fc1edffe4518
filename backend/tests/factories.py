# Test data builders; each writes through its own session and commits
import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import select

from app.core import clock
from app.core.permissions import Role
from app.models.category import Category
from app.models.plan import SubscriptionPlan
from app.models.product import Product, ProductStatus
from app.models.store import DocumentStatus, MANDATORY_DOCUMENTS, Store, StoreDocument, StoreStatus
from app.models.subscription import Subscription, SubscriptionStatus
from app.models.user import User
from app.services.auth_service import AuthService, get_password_hash
from app.services.plan_service import PlanService

PASSWORD = "secret-pass-123"

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64
PDF_BYTES = b"%PDF-1.4\n%test document\n"

async def create_user(session_factory, email: str, role: Role = Role.BUYER, name: str = "Test User") -> User:
    async with session_factory() as session:
        user = User(
            name=name,
            email=email,
            password_hash=get_password_hash(PASSWORD),
            role=role.value,
            is_active=True,
        )
        session.add(user)
        await session.commit()
        await session.refresh(user)
        return user


async def create_store(
    session_factory,
    owner: User,
    status: StoreStatus = StoreStatus.APPROVED,
    name: str = "Delta Valves Ltd",
    rc_number: str = "RC100001",
) -> Store:
    async with session_factory() as session:
        store = Store(
            user_id=owner.id,
            name=name,
            rc_number=rc_number,
            email=owner.email,
            phone="08030000000",
            address="12 Marina Road, Lagos",
            contact_person=owner.name,
            business_lines=["equipment"],
            states=["Lagos"],
            status=status,
            subscription="basic",
        )
        session.add(store)
        await session.flush()
        for doc_type in MANDATORY_DOCUMENTS:
            session.add(StoreDocument(
                store_id=store.id,
                type=doc_type.value,
                file_path=f"store-documents/{store.id}/{doc_type.value}.png",
                original_name=f"{doc_type.value}.png",
                mime_type="image/png",
                file_size=len(PNG_BYTES),
                is_mandatory=True,
                status=DocumentStatus.APPROVED if status == StoreStatus.APPROVED else DocumentStatus.PENDING,
            ))
        await session.commit()
        await session.refresh(store)
        return store


async def create_product(
    session_factory,
    store: Store,
    name: str = "Gate Valve 4in",
    price: Decimal = Decimal("1000.00"),
    status: ProductStatus = ProductStatus.ACTIVE,
) -> Product:
    async with session_factory() as session:
        category = (await session.execute(select(Category).order_by(Category.id).limit(1))).scalar_one()
        product = Product(
            store_id=store.id,
            category_id=category.id,
            name=name,
            slug=f"{name.lower().replace(' ', '-')}-{uuid.uuid4().hex[:8]}",
            description="Forged steel gate valve",
            new_price=price,
            status=status,
        )
        session.add(product)
        await session.commit()
        await session.refresh(product)
        return product


async def create_subscription(
    session_factory,
    store: Store,
    plan_slug: str,
    status: SubscriptionStatus = SubscriptionStatus.ACTIVE,
    code: str = None,
    ends_at: datetime = None,
) -> Subscription:
    async with session_factory() as session:
        plan = await PlanService(session).get_by_slug(plan_slug)
        now = clock.utcnow()
        sub = Subscription(
            store_id=store.id,
            plan_id=plan.id,
            subscription_code=code or f"SUB-TEST-{store.id:03d}-{plan_slug.upper()}",
            status=status,
            starts_at=now if status == SubscriptionStatus.ACTIVE else None,
            ends_at=ends_at or (clock.add_months(now, 1) if status == SubscriptionStatus.ACTIVE else None),
            payment_receipt_path="subscriptions/receipt.pdf",
        )
        session.add(sub)
        if status == SubscriptionStatus.ACTIVE:
            db_store = await session.get(Store, store.id)
            db_store.subscription = plan_slug
        await session.commit()
        await session.refresh(sub)
        return sub


async def set_plan(session_factory, slug: str, **values) -> SubscriptionPlan:
    async with session_factory() as session:
        plan = await PlanService(session).get_by_slug(slug)
        for field, value in values.items():
            setattr(plan, field, value)
        await session.commit()
        return plan


def auth_headers(user: User) -> dict:
    token = AuthService(None).create_access_token({"sub": str(user.id)})
    return {"Authorization": f"Bearer {token}"}


