from django.test import TestCase
from rest_framework.test import APIClient

from inventory.tests.factories import make_company, make_user, make_warehouse
from users.models import User


class MeEndpointTests(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.company = make_company()

    def test_requires_authentication(self):
        res = self.client.get("/api/auth/me/")
        self.assertEqual(res.status_code, 401)

    def test_returns_scope_and_capabilities(self):
        van = make_warehouse(self.company, "VAN-1")
        user = make_user(
            self.company,
            email="cara@example.com",
            role="cashier",
            first_name="Cara",
            last_name="Cashier",
            van_warehouse=van,
        )
        self.client.force_authenticate(user)

        res = self.client.get("/api/auth/me/")

        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["email"], "cara@example.com")
        self.assertEqual(res.data["username"], "cara")
        self.assertEqual(res.data["full_name"], "Cara Cashier")
        self.assertEqual(res.data["role"], "cashier")
        self.assertEqual(str(res.data["company_id"]), str(self.company.id))
        self.assertEqual(str(res.data["van_warehouse_id"]), str(van.id))
        self.assertIsNone(res.data["business_unit_id"])
        self.assertEqual(res.data["capabilities"], ["inventory.view", "pos.sell"])


class UserManagerTests(TestCase):
    def test_username_derived_from_email_and_deduplicated(self):
        company = make_company()
        first = make_user(company, email="sam@one.example.com")
        second = make_user(company, email="sam@two.example.com")

        self.assertEqual(first.username, "sam")
        self.assertEqual(second.username, "sam2")

    def test_superuser_defaults_to_admin_role(self):
        user = User.objects.create_superuser(email="root@example.com", password="pass")
        self.assertEqual(user.role, User.ROLE_ADMIN)
        self.assertTrue(user.is_staff)

    def test_full_name_falls_back_to_email(self):
        user = make_user(make_company(), email="nobody@example.com")
        self.assertEqual(user.full_name, "nobody@example.com")
