from io import StringIO

from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import TestCase

from organizations.models import Company
from users.models import User


class SeedUsersCommandTests(TestCase):
    def test_creates_company_and_one_user_per_role(self):
        call_command("seed_users", "--company", "demo", stdout=StringIO())

        company = Company.objects.get(code="DEMO")
        roles = set(User.objects.filter(company=company).values_list("role", flat=True))
        self.assertEqual(roles, {"admin", "manager", "warehouse", "purchaser", "cashier", "viewer"})

        cashier = User.objects.get(email="cashier@demo.example.com")
        self.assertTrue(cashier.check_password("Pass1234!"))

    def test_rerun_is_idempotent(self):
        call_command("seed_users", stdout=StringIO())
        call_command("seed_users", "--password", "Other999!", stdout=StringIO())

        self.assertEqual(User.objects.count(), 6)
        admin = User.objects.get(email="admin@demo.example.com")
        self.assertTrue(admin.check_password("Pass1234!"))

    def test_force_password_resets_existing(self):
        call_command("seed_users", stdout=StringIO())
        call_command("seed_users", "--password", "Other999!", "--force-password", stdout=StringIO())

        admin = User.objects.get(email="admin@demo.example.com")
        self.assertTrue(admin.check_password("Other999!"))

    def test_short_password_rejected(self):
        with self.assertRaises(CommandError):
            call_command("seed_users", "--password", "x", stdout=StringIO())
