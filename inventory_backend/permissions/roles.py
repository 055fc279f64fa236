# permissions/roles.py

from __future__ import annotations

from typing import Optional

from rest_framework.permissions import BasePermission


# =========================================================
# ROLE CONSTANTS (STAFF JOB ROLES)
# =========================================================
# Mirrors users.models.User.ROLE_CHOICES.
ROLE_ADMIN = "admin"
ROLE_MANAGER = "manager"
ROLE_WAREHOUSE = "warehouse"
ROLE_PURCHASER = "purchaser"
ROLE_CASHIER = "cashier"
ROLE_VIEWER = "viewer"

STAFF_ROLES = {
    ROLE_ADMIN,
    ROLE_MANAGER,
    ROLE_WAREHOUSE,
    ROLE_PURCHASER,
    ROLE_CASHIER,
    ROLE_VIEWER,
}


# =========================================================
# CAPABILITIES (THE REAL PERMISSION LANGUAGE)
# =========================================================
# Views should protect capabilities, not raw roles.
CAP_INVENTORY_VIEW = "inventory.view"
CAP_INVENTORY_EDIT = "inventory.edit"           # master data: items, warehouses, UOMs
CAP_STOCK_POST = "stock.post"                   # stock transactions (in/out/transfer)

CAP_ADJUST_CREATE = "adjustments.create"
CAP_ADJUST_APPROVE = "adjustments.approve"
CAP_ADJUST_POST = "adjustments.post"

CAP_PURCHASE_VIEW = "purchases.view"
CAP_PURCHASE_EDIT = "purchases.edit"
CAP_PURCHASE_RECEIVE = "purchases.receive"

CAP_POS_SELL = "pos.sell"
CAP_POS_VOID = "pos.void"

CAP_PICK_MANAGE = "picking.manage"

CAP_TRANSFORM_MANAGE = "transformations.manage"   # templates + orders (repack, kitting)

CAP_ACCOUNTING_VIEW = "accounting.view"

ALL_CAPABILITIES = {
    CAP_INVENTORY_VIEW,
    CAP_INVENTORY_EDIT,
    CAP_STOCK_POST,
    CAP_ADJUST_CREATE,
    CAP_ADJUST_APPROVE,
    CAP_ADJUST_POST,
    CAP_PURCHASE_VIEW,
    CAP_PURCHASE_EDIT,
    CAP_PURCHASE_RECEIVE,
    CAP_POS_SELL,
    CAP_POS_VOID,
    CAP_PICK_MANAGE,
    CAP_TRANSFORM_MANAGE,
    CAP_ACCOUNTING_VIEW,
}


# =========================================================
# ROLE → CAPABILITY MAP (DEFAULT)
# =========================================================
ROLE_CAPABILITIES: dict[str, set[str]] = {
    ROLE_ADMIN: {
        *ALL_CAPABILITIES,
    },
    ROLE_MANAGER: {
        CAP_INVENTORY_VIEW,
        CAP_INVENTORY_EDIT,
        CAP_STOCK_POST,
        CAP_ADJUST_CREATE,
        CAP_ADJUST_APPROVE,
        CAP_ADJUST_POST,
        CAP_PURCHASE_VIEW,
        CAP_PURCHASE_EDIT,
        CAP_PURCHASE_RECEIVE,
        CAP_POS_SELL,
        CAP_POS_VOID,
        CAP_PICK_MANAGE,
        CAP_TRANSFORM_MANAGE,
        CAP_ACCOUNTING_VIEW,
    },
    ROLE_WAREHOUSE: {
        CAP_INVENTORY_VIEW,
        CAP_STOCK_POST,
        CAP_ADJUST_CREATE,
        CAP_PURCHASE_VIEW,
        CAP_PURCHASE_RECEIVE,
        CAP_PICK_MANAGE,
        CAP_TRANSFORM_MANAGE,
    },
    ROLE_PURCHASER: {
        CAP_INVENTORY_VIEW,
        CAP_PURCHASE_VIEW,
        CAP_PURCHASE_EDIT,
    },
    ROLE_CASHIER: {
        CAP_INVENTORY_VIEW,
        CAP_POS_SELL,
        # void stays with managers
    },
    ROLE_VIEWER: {
        CAP_INVENTORY_VIEW,
        CAP_PURCHASE_VIEW,
    },
}


# =========================================================
# Helpers
# =========================================================
def get_user_role(user) -> Optional[str]:
    return getattr(user, "role", None)


def effective_capabilities_for(user) -> set[str]:
    """
    Capabilities granted to a user.

    Superusers get everything regardless of role.
    """
    if user is None or not getattr(user, "is_authenticated", False):
        return set()

    if getattr(user, "is_superuser", False):
        return set(ALL_CAPABILITIES)

    return set(ROLE_CAPABILITIES.get(get_user_role(user), set()))


# =========================================================
# Capability Permissions
# =========================================================
class HasCapability(BasePermission):
    """
    Require a specific capability.

    Usage:
        permission_classes = [IsAuthenticated, HasCapability]
        view.required_capability = CAP_STOCK_POST

    Per-method / per-action requirements:
        view.required_capabilities = {"GET": CAP_INVENTORY_VIEW, "POST": CAP_STOCK_POST}
        view.required_capabilities = {"approve": CAP_ADJUST_APPROVE, ...}

    Action names (viewsets) win over HTTP methods; required_capability is
    the fallback.
    """

    def _required_for(self, request, view) -> Optional[str]:
        mapping = getattr(view, "required_capabilities", None) or {}
        action = getattr(view, "action", None)
        if action and action in mapping:
            return mapping[action]
        if request.method in mapping:
            return mapping[request.method]
        if request.method == "HEAD" and "GET" in mapping:
            return mapping["GET"]
        return getattr(view, "required_capability", None)

    def has_permission(self, request, view):
        user = request.user
        if not user or not user.is_authenticated:
            return False

        required = self._required_for(request, view)
        if not required:
            # deny-by-default
            return False

        return required in effective_capabilities_for(user)
