"""
API v1 routes
"""
from fastapi import APIRouter
from app.api.v1 import (
    admin_catalog,
    admin_stores,
    admin_subscriptions,
    admin_users,
    audit,
    auth,
    dashboard,
    display,
    products,
    profile,
    promotions,
    reports,
    seller,
    subscriptions,
)

api_router = APIRouter()

# public and account
api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(profile.router, tags=["profile"])
api_router.include_router(display.router, tags=["display"])

# seller
api_router.include_router(seller.router, tags=["seller"])
api_router.include_router(products.router, tags=["seller products"])
api_router.include_router(promotions.router, tags=["promotions"])
api_router.include_router(subscriptions.router, prefix="/subscription", tags=["subscription"])
api_router.include_router(reports.router, tags=["reports"])

# admin
api_router.include_router(admin_stores.router, prefix="/admin", tags=["admin stores"])
api_router.include_router(admin_catalog.router, prefix="/admin", tags=["admin catalog"])
api_router.include_router(admin_subscriptions.router, prefix="/admin", tags=["admin subscriptions"])
api_router.include_router(admin_users.router, prefix="/admin", tags=["admin users"])
api_router.include_router(audit.router, prefix="/admin", tags=["audit"])
api_router.include_router(dashboard.router, prefix="/admin", tags=["admin dashboard"])
