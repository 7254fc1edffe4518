# Database models
from app.models.user import User
from app.models.store import Store, StoreDocument, StoreStatus, DocumentStatus, DocumentType
from app.models.category import Category
from app.models.product import Product, ProductImage, ProductStatus
from app.models.plan import SubscriptionPlan
from app.models.subscription import Subscription, SubscriptionStatus
from app.models.promotion import FeaturedProduct, HotDeal
from app.models.store_report import StoreReport, ReportReason, ReportStatus
from app.models.audit_log import AuditLog
from app.models.site_setting import SiteSetting
from app.models.account_token import PendingUser, PasswordResetToken, RevokedToken

__all__ = [
    "User",
    "Store",
    "StoreDocument",
    "StoreStatus",
    "DocumentStatus",
    "DocumentType",
    "Category",
    "Product",
    "ProductImage",
    "ProductStatus",
    "SubscriptionPlan",
    "Subscription",
    "SubscriptionStatus",
    "FeaturedProduct",
    "HotDeal",
    "StoreReport",
    "ReportReason",
    "ReportStatus",
    "AuditLog",
    "SiteSetting",
    "PendingUser",
    "PasswordResetToken",
    "RevokedToken",
]
