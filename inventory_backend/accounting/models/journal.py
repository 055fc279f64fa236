# accounting/models/journal.py

"""
======================================================
PATH: accounting/models/journal.py
======================================================
JOURNAL ENTRY MODEL

Represents a single accounting transaction (journal header).

Guarantees:
- Immutable once created (no updates, no deletes)
- Idempotency via reference uniqueness per company (when reference is provided)
- posted_at is the accounting effective date
"""

from __future__ import annotations

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Q
from django.utils import timezone


class JournalEntry(models.Model):
    company = models.ForeignKey(
        "organizations.Company",
        on_delete=models.CASCADE,
        related_name="journal_entries",
    )

    reference = models.CharField(
        max_length=100,
        blank=True,
        null=True,
        help_text="Source document reference (purchase_receipt:<id>, pos_sale:<id>, ...)",
    )

    description = models.TextField(help_text="Narrative description of the journal entry")

    posted_at = models.DateTimeField(
        default=timezone.now,
        help_text="Accounting effective date",
    )

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="journal_entries_created",
    )

    created_at = models.DateTimeField(
        auto_now_add=True,
        help_text="Timestamp when the journal entry was created",
    )

    is_posted = models.BooleanField(
        default=True,
        help_text="Once posted, journal entries are immutable",
    )

    class Meta:
        ordering = ["-posted_at", "-created_at"]
        indexes = [
            models.Index(fields=["company", "posted_at"], name="journal_company_posted_idx"),
            models.Index(fields=["reference"], name="journal_reference_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["company", "reference"],
                condition=Q(reference__isnull=False) & ~Q(reference=""),
                name="uniq_journal_company_reference",
            )
        ]
        verbose_name = "Journal Entry"
        verbose_name_plural = "Journal Entries"

    def __str__(self):
        return f"JournalEntry #{self.id} – {self.posted_at.date()}"

    def clean(self):
        if self.reference is not None:
            ref = str(self.reference).strip()
            self.reference = ref or None

        self.description = (self.description or "").strip()
        if not self.description:
            raise ValidationError("Journal entry description is required")

        if self.posted_at and timezone.is_naive(self.posted_at):
            self.posted_at = timezone.make_aware(self.posted_at, timezone.get_current_timezone())

    def save(self, *args, **kwargs):
        if self.pk:
            raise ValidationError("JournalEntry records are immutable once created")

        self.full_clean()
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError("JournalEntry records are immutable and cannot be deleted")
