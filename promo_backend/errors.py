"""Error kinds raised by the claim ledger and the prize allocation engine.

Business-rule errors (duplicate identity, exhausted stock, lost stock) are
kept apart from storage failures so callers can pick a status code and a
retry policy without inspecting messages.
"""

from __future__ import annotations

from typing import Any, Optional


class AllocationError(Exception):
    """Base class for every error surfaced by a claim attempt."""

    code = "ALLOCATION_ERROR"
    status = 500
    retryable = False
    default_message = "The claim could not be processed."

    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(message or self.default_message)

    def to_payload(self) -> dict[str, Any]:
        return {
            "success": False,
            "error": str(self),
            "code": self.code,
            "retryable": self.retryable,
        }


class InvalidIdentity(AllocationError):
    code = "INVALID_IDENTITY"
    status = 400
    default_message = "At least one of national ID, phone number, voucher number or name is required."


class StoreUnavailable(AllocationError):
    code = "STORE_UNAVAILABLE"
    status = 404
    default_message = "The store does not exist, is inactive, or belongs to another campaign."


class DuplicateIdentity(AllocationError):
    code = "DUPLICATE_IDENTITY"
    status = 409
    default_message = "This participant has already claimed a prize in this campaign."

    def __init__(self, message: Optional[str] = None, *, existing=None) -> None:
        super().__init__(message)
        self.existing = existing

    def to_payload(self) -> dict[str, Any]:
        payload = super().to_payload()
        if self.existing is not None:
            payload["existing"] = self.existing.to_payload()
        return payload


class NoStockAvailable(AllocationError):
    code = "NO_STOCK"
    status = 409
    default_message = "Prizes for this store are exhausted."


class StockLost(AllocationError):
    """The drawn prize was taken by a concurrent claim before commit."""

    code = "STOCK_LOST"
    status = 409
    retryable = True
    default_message = "The selected prize was just taken. Please try again."


class PersistenceFailure(AllocationError):
    code = "PERSISTENCE_FAILURE"
    status = 500
    default_message = "Internal error while recording the claim."
