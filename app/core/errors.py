"""Domain errors raised by services and translated to HTTP responses by the API layer."""


class LedgerError(Exception):
    """Base class for Routine Ledger errors."""


class NotFoundError(LedgerError):
    """The requested row does not exist or belongs to another owner."""

    def __init__(self, kind: str, row_id: str) -> None:
        """Record which kind of row was missing."""
        super().__init__(f"{kind} {row_id} not found")
        self.kind = kind
        self.row_id = row_id


class ImmutableRecordError(LedgerError):
    """A financial record produced by a routine payout cannot be changed or removed."""


class ReconcileFetchError(LedgerError):
    """The reconciler could not list active routine jobs; the run is aborted."""
