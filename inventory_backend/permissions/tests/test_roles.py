from types import SimpleNamespace

from django.contrib.auth.models import AnonymousUser
from django.test import TestCase
from rest_framework.exceptions import PermissionDenied
from rest_framework.test import APIClient, APIRequestFactory

from inventory.tests.factories import make_company, make_user
from permissions.context import RequestContext, build_request_context
from permissions.roles import (
    ALL_CAPABILITIES,
    CAP_ADJUST_APPROVE,
    CAP_INVENTORY_VIEW,
    CAP_POS_SELL,
    CAP_POS_VOID,
    CAP_STOCK_POST,
    HasCapability,
    effective_capabilities_for,
)


class EffectiveCapabilitiesTests(TestCase):
    def setUp(self):
        self.company = make_company()

    def test_admin_and_superuser_get_everything(self):
        admin = make_user(self.company, email="a@example.com", role="admin")
        self.assertEqual(effective_capabilities_for(admin), ALL_CAPABILITIES)

        viewer_su = make_user(
            self.company, email="su@example.com", role="viewer", is_superuser=True
        )
        self.assertEqual(effective_capabilities_for(viewer_su), ALL_CAPABILITIES)

    def test_cashier_sells_but_cannot_void(self):
        cashier = make_user(self.company, email="c@example.com", role="cashier")
        caps = effective_capabilities_for(cashier)
        self.assertIn(CAP_POS_SELL, caps)
        self.assertNotIn(CAP_POS_VOID, caps)

    def test_warehouse_posts_stock_but_cannot_approve(self):
        clerk = make_user(self.company, email="w@example.com", role="warehouse")
        caps = effective_capabilities_for(clerk)
        self.assertIn(CAP_STOCK_POST, caps)
        self.assertNotIn(CAP_ADJUST_APPROVE, caps)

    def test_anonymous_has_nothing(self):
        self.assertEqual(effective_capabilities_for(AnonymousUser()), set())


class HasCapabilityTests(TestCase):
    def setUp(self):
        self.factory = APIRequestFactory()
        self.viewer = make_user(make_company(), email="v@example.com", role="viewer")

    def _check(self, method, view):
        request = getattr(self.factory, method)("/")
        request.user = self.viewer
        return HasCapability().has_permission(request, view)

    def test_action_mapping_wins_over_method(self):
        view = SimpleNamespace(
            action="approve",
            required_capabilities={"approve": CAP_ADJUST_APPROVE, "POST": CAP_INVENTORY_VIEW},
        )
        self.assertFalse(self._check("post", view))

    def test_method_mapping_then_fallback(self):
        view = SimpleNamespace(
            action=None,
            required_capabilities={"GET": CAP_INVENTORY_VIEW},
            required_capability=CAP_STOCK_POST,
        )
        self.assertTrue(self._check("get", view))
        self.assertTrue(self._check("head", view))
        self.assertFalse(self._check("post", view))

    def test_deny_by_default(self):
        self.assertFalse(self._check("get", SimpleNamespace(action="list")))


class RequestContextTests(TestCase):
    def test_for_user_carries_scope_and_grants(self):
        company = make_company()
        user = make_user(company, role="cashier")

        ctx = RequestContext.for_user(user)

        self.assertEqual(ctx.company_id, company.id)
        self.assertEqual(ctx.user_id, user.pk)
        self.assertTrue(ctx.can(CAP_POS_SELL))
        with self.assertRaises(PermissionDenied):
            ctx.require(CAP_POS_VOID)

    def test_user_without_company_is_rejected(self):
        user = make_user(None, email="floating@example.com")
        with self.assertRaises(PermissionDenied):
            RequestContext.for_user(user)

    def test_context_is_built_once_per_request(self):
        request = APIRequestFactory().get("/")
        request.user = make_user(make_company())

        self.assertIs(build_request_context(request), build_request_context(request))

    def test_api_rejects_user_without_company(self):
        client = APIClient()
        client.force_authenticate(make_user(None, email="floating@example.com"))

        res = client.get("/api/inventory/items/")

        self.assertEqual(res.status_code, 403)
        self.assertEqual(res.data["error"], "User is not assigned to a company.")
