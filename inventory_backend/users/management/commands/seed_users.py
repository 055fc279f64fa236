# users/management/commands/seed_users.py

from __future__ import annotations

from dataclasses import dataclass

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand, CommandError
from django.db import transaction

from organizations.models import Company
from permissions.roles import (
    ROLE_ADMIN,
    ROLE_CASHIER,
    ROLE_MANAGER,
    ROLE_PURCHASER,
    ROLE_VIEWER,
    ROLE_WAREHOUSE,
)


@dataclass(frozen=True)
class SeedUserSpec:
    label: str
    role: str
    first_name: str = ""
    last_name: str = ""


SEED_USERS = [
    SeedUserSpec("Admin", ROLE_ADMIN, "System", "Admin"),
    SeedUserSpec("Manager", ROLE_MANAGER, "Operations", "Manager"),
    SeedUserSpec("Warehouse", ROLE_WAREHOUSE, "Warehouse", "Clerk"),
    SeedUserSpec("Purchaser", ROLE_PURCHASER, "Purchasing", "Officer"),
    SeedUserSpec("Cashier", ROLE_CASHIER, "Front", "Desk"),
    SeedUserSpec("Viewer", ROLE_VIEWER, "Read", "Only"),
]


def seed_email(spec: SeedUserSpec, company: Company) -> str:
    return f"{spec.role}@{company.code.lower()}.example.com"


class Command(BaseCommand):
    help = "Seed one staff user per role for a company (creates the company if missing)."

    def add_arguments(self, parser):
        parser.add_argument("--company", type=str, default="DEMO", help="Company code (default: DEMO)")
        parser.add_argument("--company-name", type=str, default="", help="Name used when the company is created")
        parser.add_argument(
            "--password",
            type=str,
            default="Pass1234!",
            help="Password for seeded users (default: Pass1234!)",
        )
        parser.add_argument(
            "--force-password",
            action="store_true",
            help="Reset password for existing seeded users too.",
        )

    @transaction.atomic
    def handle(self, *args, **options):
        code = (options.get("company") or "").strip().upper()
        password = options.get("password") or ""
        force_password = bool(options.get("force_password"))

        if not code:
            raise CommandError("--company is required.")
        if len(password) < 6:
            raise CommandError("--password must be at least 6 characters.")

        company, company_created = Company.objects.get_or_create(
            code=code,
            defaults={"name": (options.get("company_name") or "").strip() or code.title()},
        )
        if company_created:
            self.stdout.write(f"created company {company}")

        User = get_user_model()
        created_count = 0
        updated_count = 0

        for spec in SEED_USERS:
            email = seed_email(spec, company)
            user = User.objects.filter(email__iexact=email).first()

            if user is None:
                User.objects.create_user(
                    email=email,
                    password=password,
                    role=spec.role,
                    company=company,
                    first_name=spec.first_name,
                    last_name=spec.last_name,
                    is_staff=spec.role == ROLE_ADMIN,
                )
                created_count += 1
                self.stdout.write(f"created: {spec.label} ({spec.role}) -> {email}")
                continue

            if user.company_id not in (None, company.pk):
                raise CommandError(f"{email} already belongs to another company")

            user.role = spec.role
            user.company = company
            user.is_active = True
            if force_password:
                user.set_password(password)
            user.save()
            updated_count += 1
            self.stdout.write(f"exists:  {spec.label} ({spec.role}) -> {email}")

        self.stdout.write("\n--- Summary ---")
        self.stdout.write(f"Created: {created_count}")
        self.stdout.write(f"Updated: {updated_count}")
