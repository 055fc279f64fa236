# accounting/services/exceptions.py

"""
ACCOUNTING SERVICE ERRORS

Centralized domain errors for accounting services.

http_status is read by the API exception handler when one of these
escapes to a view (GL posting from documents is best-effort and
normally only logs them).
"""


class AccountingServiceError(Exception):
    """Base exception for all accounting service failures."""

    http_status = 400


class PostingRuleError(AccountingServiceError):
    """Raised when a posting rule cannot be applied."""


class AccountResolutionError(AccountingServiceError):
    """Raised when an expected account cannot be resolved."""


class JournalEntryCreationError(AccountingServiceError):
    """Raised when a journal entry cannot be created."""


class IdempotencyError(AccountingServiceError):
    """Raised on duplicate or retried accounting events."""

    http_status = 409
