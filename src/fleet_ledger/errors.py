"""Exception hierarchy raised by the collaborator layers.

The reducer itself never raises; these exceptions belong to the code that
builds actions, looks records up on behalf of a caller, or loads seed data.
"""

from __future__ import annotations


class LedgerError(Exception):
    """Base class for ledger-domain failures surfaced to callers."""


class ValidationError(LedgerError):
    """Raised when an action or entry fails a pre-dispatch check."""


class MissingReferenceError(LedgerError):
    """Raised when a referenced invoice, vendor, booking, or customer is unknown."""


__all__ = ["LedgerError", "ValidationError", "MissingReferenceError"]
