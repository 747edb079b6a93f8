"""
Error taxonomy for Midnight Lace.

Every error raised by the core carries the HTTP status it maps to, so the
app factory can translate them with a single handler.
"""

from typing import Any, Dict, Optional


class MidnightLaceError(Exception):
    """Base class for all request-scoped errors."""

    status_code = 500

    def __init__(self, message: str, **details: Any):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.message, **self.details}


class ValidationError(MidnightLaceError):
    """Missing or malformed request fields."""

    status_code = 400


class NotFoundError(MidnightLaceError):
    status_code = 404


class ItemNotFound(NotFoundError):
    def __init__(self, item_id: str):
        super().__init__("Song not found", songId=item_id)
        self.item_id = item_id


class ArtistNotFound(NotFoundError):
    def __init__(self, address: str):
        super().__init__("Artist not found", artistAddress=address)
        self.address = address


class TransferNotFound(NotFoundError):
    def __init__(self, fan_address: str, artist_address: str):
        super().__init__("No transfer found from this fan to the artist", verified=False)
        self.fan_address = fan_address
        self.artist_address = artist_address


class BusinessRuleError(MidnightLaceError):
    """A request that is well-formed but violates a ledger rule."""

    status_code = 400


class InsufficientBalance(BusinessRuleError):
    def __init__(self, required: int, available: int):
        super().__init__("Insufficient balance", required=required, available=available)
        self.required = required
        self.available = available


class AlreadyPurchased(BusinessRuleError):
    def __init__(self, item_id: str, purchase: Optional[Dict[str, Any]] = None):
        super().__init__("Song already purchased", songId=item_id, purchase=purchase)
        self.item_id = item_id
        self.purchase = purchase


class ProofRejected(MidnightLaceError):
    status_code = 403

    def __init__(self, message: str, **details: Any):
        super().__init__(message, success=False, verified=False, **details)


class CollaboratorUnavailableError(MidnightLaceError):
    """The transfer collaborator is not ready; the caller may retry."""

    status_code = 503


class CollaboratorFailureError(MidnightLaceError):
    """The transfer collaborator raised or timed out. Nothing was committed."""

    status_code = 500
