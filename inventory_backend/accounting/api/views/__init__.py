# accounting/api/views/__init__.py

"""
accounting.api.views package

ViewSets are defined in accounting.api.view (singular); plain API views
(accounts, trial balance) live here.
"""

from accounting.api.views.accounts import AccountListView
from accounting.api.views.trial_balance import TrialBalanceView

__all__ = [
    "AccountListView",
    "TrialBalanceView",
]
