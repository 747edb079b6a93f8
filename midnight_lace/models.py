"""
Domain models for Midnight Lace.

Plain dataclasses; the JSON shapes produced by ``to_dict`` are the ones the
ledger file and the HTTP API use.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional


def utc_now_iso() -> str:
    """Generate a timezone-aware UTC ISO-8601 timestamp."""
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class PurchaseRecord:
    """One purchased song. Immutable once committed."""

    song_id: str
    title: str
    cost: int
    tx_hash: str
    timestamp: str = field(default_factory=utc_now_iso)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "songId": self.song_id,
            "title": self.title,
            "cost": self.cost,
            "txHash": self.tx_hash,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PurchaseRecord":
        return cls(
            song_id=data["songId"],
            title=data.get("title", ""),
            cost=int(data["cost"]),
            tx_hash=data.get("txHash", ""),
            timestamp=data.get("timestamp", ""),
        )


@dataclass
class FanAccount:
    """Balance, cumulative spend and purchase history for one fan address."""

    address: str
    balance: int
    spent: int = 0
    purchases: List[PurchaseRecord] = field(default_factory=list)

    def find_purchase(self, song_id: str) -> Optional[PurchaseRecord]:
        for record in self.purchases:
            if record.song_id == song_id:
                return record
        return None

    def to_dict(self) -> Dict[str, Any]:
        # Persisted layout; the address is the key of the enclosing document.
        return {
            "balance": self.balance,
            "spent": self.spent,
            "purchases": [p.to_dict() for p in self.purchases],
        }

    @classmethod
    def from_dict(cls, address: str, data: Dict[str, Any]) -> "FanAccount":
        return cls(
            address=address,
            balance=int(data.get("balance", 0)),
            spent=int(data.get("spent", 0)),
            purchases=[PurchaseRecord.from_dict(p) for p in data.get("purchases", [])],
        )


@dataclass(frozen=True)
class Song:
    """Catalog item. ``required_tokens`` is the price in whole tokens."""

    id: str
    title: str
    required_tokens: int
    artist: str = ""
    artist_address: str = ""
    description: str = ""
    content_url: str = ""
    tier: int = 1
    genre: str = ""
    duration: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "artist": self.artist,
            "artistAddress": self.artist_address,
            "description": self.description,
            "contentUrl": self.content_url,
            "requiredTokens": self.required_tokens,
            "tier": self.tier,
            "genre": self.genre,
            "duration": self.duration,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], default_artist_address: str = "") -> "Song":
        price = int(data["requiredTokens"])
        if price <= 0:
            raise ValueError(f"Song {data.get('id')!r} must have a positive price (got {price})")
        return cls(
            id=str(data["id"]),
            title=data["title"],
            required_tokens=price,
            artist=data.get("artist", ""),
            artist_address=data.get("artistAddress") or default_artist_address,
            description=data.get("description", ""),
            content_url=data.get("contentUrl", ""),
            tier=int(data.get("tier", 1)),
            genre=data.get("genre", ""),
            duration=data.get("duration", ""),
        )


@dataclass(frozen=True)
class Artist:
    address: str
    name: str
    secret_content: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {"address": self.address, "name": self.name}


@dataclass(frozen=True)
class Transfer:
    """A fixture transfer used by the mock proof flow."""

    fan_address: str
    artist_address: str
    amount: int
    timestamp: str
    tx_hash: str

    def to_dict(self) -> Dict[str, Any]:
        return {"amount": self.amount, "timestamp": self.timestamp, "txHash": self.tx_hash}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Transfer":
        return cls(
            fan_address=data["fanAddress"],
            artist_address=data["artistAddress"],
            amount=int(data["amount"]),
            timestamp=data.get("timestamp", ""),
            tx_hash=data.get("txHash", ""),
        )
