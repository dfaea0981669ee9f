# app/errors.py
# Role: Error taxonomy shared by the services, the legacy store and the routes.


class LedgerError(Exception):
    """Base class for every error the ledger core raises on purpose."""


class ValidationError(LedgerError):
    """Invalid input (non-positive amount, blank account name, unknown type)."""


class DuplicateNameError(LedgerError):
    """Another live account already uses this name."""

    def __init__(self, name: str):
        super().__init__(f"Account with this name already exists: {name!r}")
        self.name = name


class InsufficientBalanceError(LedgerError):
    """
    Cash-out larger than the balance of the scope it is drawn from.

    Raised by the legacy store (app/services/store.py) only. The record services
    will persist a transaction that drives a balance negative if called directly.
    """

    def __init__(self, requested: float, available: float):
        super().__init__(
            f"Insufficient balance: requested {requested:.2f}, available {available:.2f}"
        )
        self.requested = requested
        self.available = available


class NotFoundError(LedgerError):
    """An account or transaction id did not resolve."""

    def __init__(self, kind: str, record_id: str):
        super().__init__(f"{kind} not found: {record_id}")
        self.kind = kind
        self.record_id = record_id


class StorageFailure(LedgerError):
    """The underlying storage failed (I/O, corruption). Never retried here."""
