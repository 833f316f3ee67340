"""Exception types for financepro."""

from pathlib import Path


class FinanceProError(Exception):
    """Base class for all financepro errors."""


class PersistenceReadError(FinanceProError):
    """Local ledger file could not be read or decoded."""


class FormatError(FinanceProError):
    """Data does not match the expected ledger shape."""

    def __init__(self, message: str, source: Path | str | None = None) -> None:
        self.source = source
        if source is not None:
            message = f"{source}: {message}"
        super().__init__(message)


class SyncError(FinanceProError):
    """A push or pull against the sync endpoint failed."""


class PreconditionError(SyncError):
    """Sync was requested without a configured endpoint."""


class TransportError(SyncError):
    """Network failure or non-success response from the sync endpoint."""


class SyncTimeoutError(TransportError):
    """The sync endpoint did not answer within the configured timeout."""
