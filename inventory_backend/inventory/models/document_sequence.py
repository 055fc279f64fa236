# inventory/models/document_sequence.py

from django.db import models


class DocumentSequence(models.Model):
    """
    Gap-free counter per (company, prefix, year).

    Only inventory.services.document_codes touches this table, always
    under select_for_update inside the caller's transaction.
    """

    company = models.ForeignKey(
        "organizations.Company",
        on_delete=models.CASCADE,
        related_name="document_sequences",
    )
    prefix = models.CharField(max_length=10)
    year = models.PositiveIntegerField()
    last_value = models.PositiveIntegerField(default=0)

    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["company", "prefix", "year"]
        constraints = [
            models.UniqueConstraint(
                fields=["company", "prefix", "year"],
                name="uniq_document_sequence",
            ),
        ]

    def __str__(self):
        return f"{self.prefix}-{self.year}: {self.last_value}"
