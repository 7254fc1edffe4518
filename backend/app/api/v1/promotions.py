"""
Store-owner promotions API: featured placements, hot deals, quota views
"""
from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_client_ip, request_id, require_capability
from app.core.database import get_db
from app.core.permissions import Capability
from app.models.promotion import FeaturedProduct
from app.models.user import User
from app.schemas.promotion import FeaturedProductResponse, HotDealCreate, HotDealResponse, HotDealUpdate
from app.services.audit_service import log_audit
from app.services.promotion_service import PromotionService

router = APIRouter()

promoter = require_capability(Capability.MANAGE_PROMOTIONS)


def _status_rows(rows, schema):
    return [
        {**schema.model_validate(row["record"]).model_dump(), "expired": row["expired"], "days_left": row["days_left"]}
        for row in rows
    ]


@router.post("/products/{product_id}/feature", status_code=status.HTTP_201_CREATED)
async def feature_product(
    product_id: int,
    request: Request,
    current_user: User = Depends(promoter),
    db: AsyncSession = Depends(get_db),
):
    """Feature one of your products for the plan's featured duration"""
    featured = await PromotionService(db).feature_product(current_user.id, product_id)
    data = FeaturedProductResponse.model_validate(featured)
    await log_audit(
        db, current_user, "product_featured", "product", product_id,
        {"featured_id": featured.id, "subscription_code": featured.subscription_code},
        get_client_ip(request), request_id(request),
    )
    return {"message": "Product featured successfully", "data": data}


@router.delete("/products/{product_id}/unfeature")
async def unfeature_product(
    product_id: int,
    request: Request,
    current_user: User = Depends(promoter),
    db: AsyncSession = Depends(get_db),
):
    featured = await PromotionService(db).unfeature_product(current_user.id, product_id)
    data = FeaturedProductResponse.model_validate(featured)
    await log_audit(db, current_user, "product_unfeatured", "product", product_id, None, get_client_ip(request), request_id(request))
    return {"message": "Product removed from featured", "data": data}


@router.post("/hot-deals", status_code=status.HTTP_201_CREATED)
async def create_hot_deal(
    body: HotDealCreate,
    request: Request,
    current_user: User = Depends(promoter),
    db: AsyncSession = Depends(get_db),
):
    deal = await PromotionService(db).create_hot_deal(current_user.id, body)
    data = HotDealResponse.model_validate(deal)
    await log_audit(
        db, current_user, "hot_deal_created", "product", deal.product_id,
        {"hot_deal_id": deal.id, "deal_price": str(deal.deal_price), "subscription_code": deal.subscription_code},
        get_client_ip(request), request_id(request),
    )
    return {"message": "Hot deal created successfully", "data": data}


@router.patch("/hot-deals/{hot_deal_id}")
async def update_hot_deal(
    hot_deal_id: int,
    body: HotDealUpdate,
    request: Request,
    current_user: User = Depends(promoter),
    db: AsyncSession = Depends(get_db),
):
    deal = await PromotionService(db).update_hot_deal(current_user.id, hot_deal_id, body)
    data = HotDealResponse.model_validate(deal)
    await log_audit(
        db, current_user, "hot_deal_updated", "product", deal.product_id,
        {"hot_deal_id": deal.id, **body.model_dump(exclude_unset=True, mode="json")},
        get_client_ip(request), request_id(request),
    )
    return {"message": "Hot deal updated successfully", "data": data}


@router.delete("/hot-deals/{hot_deal_id}")
async def end_hot_deal(
    hot_deal_id: int,
    request: Request,
    current_user: User = Depends(promoter),
    db: AsyncSession = Depends(get_db),
):
    """End a hot deal now; the row stays in the ledger"""
    deal = await PromotionService(db).end_hot_deal(current_user.id, hot_deal_id)
    data = HotDealResponse.model_validate(deal)
    await log_audit(db, current_user, "hot_deal_ended", "product", deal.product_id, {"hot_deal_id": deal.id}, get_client_ip(request), request_id(request))
    return {"message": "Hot deal ended", "data": data}


@router.get("/featured-and-deals")
async def featured_and_deals(
    current_user: User = Depends(promoter),
    db: AsyncSession = Depends(get_db),
):
    view = await PromotionService(db).featured_and_deals(current_user.id)
    return {
        "data": {
            "featured_products": [FeaturedProductResponse.model_validate(r) for r in view["featured_products"]],
            "hot_deals": [HotDealResponse.model_validate(r) for r in view["hot_deals"]],
            "quota": view["quota"],
        }
    }


@router.get("/promotions")
async def promotion_status(
    current_user: User = Depends(promoter),
    db: AsyncSession = Depends(get_db),
):
    """All placements under the current subscription code with expiry flags"""
    view = await PromotionService(db).promotion_status(current_user.id)
    return {
        "data": {
            "featured_products": _status_rows(view["featured_products"], FeaturedProductResponse),
            "hot_deals": _status_rows(view["hot_deals"], HotDealResponse),
            "quota": view["quota"],
        }
    }


@router.post("/promotions/{promotion_type}/{promotion_id}/expire")
async def expire_promotion(
    promotion_type: str,
    promotion_id: int,
    request: Request,
    current_user: User = Depends(promoter),
    db: AsyncSession = Depends(get_db),
):
    row = await PromotionService(db).expire_manually(current_user.id, promotion_type, promotion_id)
    schema = FeaturedProductResponse if isinstance(row, FeaturedProduct) else HotDealResponse
    data = schema.model_validate(row)
    await log_audit(
        db, current_user, "promotion_expired", "product", row.product_id,
        {"type": promotion_type, "id": promotion_id}, get_client_ip(request), request_id(request),
    )
    return {"message": "Promotion expired", "data": data}
