from __future__ import annotations


class LedgerError(Exception):
    """Base class for ledger errors surfaced to the user."""


class NotFound(LedgerError):
    def __init__(self, record_id: str):
        super().__init__(f"No entry with id {record_id!r}.")
        self.record_id = record_id


class PermissionDenied(LedgerError):
    """Ownership stamp mismatch. Advisory only: the stamp is not a credential."""

    def __init__(self, record_id: str, action: str = "modify"):
        super().__init__(f"Permission denied: you can only {action} your own entries ({record_id}).")
        self.record_id = record_id
        self.action = action


class InvalidEntry(LedgerError):
    pass


class PersistenceCorrupt(LedgerError):
    """Stored collection could not be parsed. Recovered by the store, never raised to callers."""


class ExternalServiceFailure(LedgerError):
    """AI call failed or returned unusable content. Absorbed by the insight service."""


class InsightBusy(LedgerError):
    def __init__(self) -> None:
        super().__init__("An AI request is already running.")


class EmptyReport(LedgerError):
    def __init__(self) -> None:
        super().__init__("Nothing to export: the current view has no entries.")


class StorageError(LedgerError):
    """The ledger file could not be written; in-memory state is left as it was."""
