from __future__ import annotations


class LedgerError(Exception):
    """Base error for ledger (Hedera) access failures."""


class LedgerUnavailableError(LedgerError):
    """Raised when signing credentials are missing or incomplete."""


class LedgerSubmitError(LedgerError):
    """Raised when a transaction could not be executed or its receipt fetched."""


class MirrorNodeError(LedgerError):
    """Raised when the mirror node REST API fails or returns an unexpected payload."""
