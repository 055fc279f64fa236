# accounting/management/commands/seed_chart_of_accounts.py

from django.core.management.base import BaseCommand, CommandError

from accounting.services.account_resolver import DEFAULT_CHART, ensure_default_chart
from organizations.models import Company


class Command(BaseCommand):
    help = "Seed the accounts GL posting rules need (A-1000, A-1200, L-2000, ...) for a company"

    def add_arguments(self, parser):
        parser.add_argument("--company", help="Company code (default: all active companies)")

    def handle(self, *args, **options):
        company_code = (options.get("company") or "").strip().upper()

        companies = Company.objects.filter(is_active=True)
        if company_code:
            companies = Company.objects.filter(code=company_code)
            if not companies.exists():
                raise CommandError(f"Company not found: {company_code}")

        for company in companies.order_by("code"):
            created = ensure_default_chart(company)
            self.stdout.write(
                f"{company.code}: {len(created)} created, "
                f"{len(DEFAULT_CHART) - len(created)} already present"
            )

        self.stdout.write(self.style.SUCCESS("Chart of accounts seeding complete"))
