from io import StringIO

from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import TestCase

from accounting.models import Account
from accounting.services.account_resolver import DEFAULT_CHART
from inventory.tests.factories import make_company


class SeedChartOfAccountsTests(TestCase):
    def test_seeds_default_chart_once(self):
        company = make_company()

        call_command("seed_chart_of_accounts", "--company", "acme", stdout=StringIO())
        call_command("seed_chart_of_accounts", stdout=StringIO())

        self.assertEqual(Account.objects.filter(company=company).count(), len(DEFAULT_CHART))
        self.assertTrue(Account.objects.filter(company=company, code="A-1200").exists())

    def test_unknown_company(self):
        with self.assertRaises(CommandError):
            call_command("seed_chart_of_accounts", "--company", "NOPE", stdout=StringIO())
