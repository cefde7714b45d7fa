# accounting/services/exceptions.py

"""
ACCOUNTING SERVICE ERRORS

Centralized domain errors for the ledger core.
Reconciliation discrepancies are reported findings, not exceptions.
"""


class AccountingServiceError(Exception):
    """Base exception for all accounting service failures."""


class InvalidEntryError(AccountingServiceError):
    """Raised when an entry or field patch violates the entry-shape rules."""


class UnbalancedGroupError(AccountingServiceError):
    """Raised when a posting group's debits and credits differ by more than 0.01."""


class InvalidAccountError(AccountingServiceError):
    """Raised when an account is missing, inactive or not open for direct posting."""


class AccountResolutionError(AccountingServiceError):
    """Raised when an account role cannot be mapped to a chart code."""


class MissingReferenceError(AccountingServiceError):
    """Raised when a posting is attempted without reference_type/reference_id."""


class DuplicatePostingError(AccountingServiceError):
    """Raised when a reference already has a live original posting group."""


class ConcurrencyConflictError(AccountingServiceError):
    """Raised when the store reports a write conflict; retry the whole post."""


class PostingRuleError(AccountingServiceError):
    """Raised when a business event cannot be mapped to ledger entries."""


class BalanceServiceError(AccountingServiceError):
    """Raised when a balance query cannot be answered."""


class ReconciliationScopeError(AccountingServiceError):
    """Raised when a reconciliation run is requested with an invalid scope."""
