"""
Role to capability table. Routes declare the capability they need and
app.api.deps.require_capability checks it; no role comparisons elsewhere.
"""
import enum
from typing import Dict, FrozenSet


class Role(str, enum.Enum):
    BUYER = "buyer"
    STORE_OWNER = "store_owner"
    SUPER_ADMIN = "super_admin"


class Capability(str, enum.Enum):
    # seller side
    REGISTER_STORE = "register_store"
    MANAGE_OWN_STORE = "manage_own_store"
    MANAGE_OWN_PRODUCTS = "manage_own_products"
    MANAGE_PROMOTIONS = "manage_promotions"
    PURCHASE_SUBSCRIPTION = "purchase_subscription"
    REPORT_STORE = "report_store"
    VIEW_REGISTRATION_STATUS = "view_registration_status"

    # administration
    REVIEW_STORES = "review_stores"
    REVIEW_DOCUMENTS = "review_documents"
    MANAGE_CATEGORIES = "manage_categories"
    VIEW_ALL_PRODUCTS = "view_all_products"
    REVIEW_SUBSCRIPTIONS = "review_subscriptions"
    VIEW_SUBSCRIPTION_ANALYTICS = "view_subscription_analytics"
    MANAGE_PLANS = "manage_plans"
    MODERATE_REPORTS = "moderate_reports"
    MANAGE_USERS = "manage_users"
    VIEW_AUDIT_LOGS = "view_audit_logs"
    MANAGE_SETTINGS = "manage_settings"
    VIEW_DASHBOARD = "view_dashboard"


ROLE_CAPABILITIES: Dict[Role, FrozenSet[Capability]] = {
    Role.BUYER: frozenset({
        Capability.REGISTER_STORE,
        Capability.REPORT_STORE,
        Capability.VIEW_REGISTRATION_STATUS,
    }),
    Role.STORE_OWNER: frozenset({
        Capability.MANAGE_OWN_STORE,
        Capability.MANAGE_OWN_PRODUCTS,
        Capability.MANAGE_PROMOTIONS,
        Capability.PURCHASE_SUBSCRIPTION,
        Capability.REPORT_STORE,
        Capability.VIEW_REGISTRATION_STATUS,
    }),
    Role.SUPER_ADMIN: frozenset(Capability),
}


def capabilities_for(role: str) -> FrozenSet[Capability]:
    """Capabilities of a role name; unknown roles get none."""
    try:
        return ROLE_CAPABILITIES[Role(role)]
    except ValueError:
        return frozenset()


def has_capability(role: str, capability: Capability) -> bool:
    return capability in capabilities_for(role)
