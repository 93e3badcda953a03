"""Exceptions raised by the ledger engines and the store."""


class LedgerError(Exception):
    """Base exception for ledger operations."""
    pass


class NotFoundError(LedgerError):
    """Referenced record does not exist."""
    pass


class PersonNotFoundError(NotFoundError):
    pass


class DebtNotFoundError(NotFoundError):
    pass


class GoalNotFoundError(NotFoundError):
    pass


class NotificationNotFoundError(NotFoundError):
    pass


class InvalidPaymentError(LedgerError):
    """Payment amount is not a positive number."""
    pass
