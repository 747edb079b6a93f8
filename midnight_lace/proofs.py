"""
Mock transfer-verification flow.

Looks up fan -> artist transfers in a static fixture and, when the amount
clears the threshold, hands out a fabricated proof blob that can be traded
for the artist's secret content. No proof is actually constructed or checked.
"""

import base64
import json
import logging
import secrets
import time
from typing import Any, Dict, List, Mapping, Optional

from midnight_lace.audit_logger import get_audit_logger
from midnight_lace.catalog import CatalogProvider
from midnight_lace.errors import ProofRejected, TransferNotFound
from midnight_lace.models import Transfer, utc_now_iso

logger = logging.getLogger(__name__)


class MockProofService:
    def __init__(self, transfers: List[Transfer], catalog: CatalogProvider, threshold: int = 50):
        self.transfers = list(transfers)
        self.catalog = catalog
        self.threshold = threshold

    @classmethod
    def from_file(cls, path: str, catalog: CatalogProvider, threshold: int = 50) -> "MockProofService":
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        transfers = [Transfer.from_dict(t) for t in data.get("transfers", [])]
        logger.info(f"Mock data loaded from {path}: {len(transfers)} transfers")
        return cls(transfers, catalog, threshold)

    def find_transfer(self, fan_address: str, artist_address: str) -> Optional[Transfer]:
        fan, artist = fan_address.lower(), artist_address.lower()
        for transfer in self.transfers:
            if transfer.fan_address.lower() == fan and transfer.artist_address.lower() == artist:
                return transfer
        return None

    def check_transfer(self, fan_address: str, artist_address: str) -> Dict[str, Any]:
        transfer = self.find_transfer(fan_address, artist_address)
        if transfer is None:
            raise TransferNotFound(fan_address, artist_address)

        meets_threshold = transfer.amount > self.threshold
        if meets_threshold:
            message = f"Transfer of {transfer.amount} tDust exceeds threshold of {self.threshold}"
        else:
            message = f"Transfer of {transfer.amount} tDust does not meet minimum threshold of {self.threshold}"

        return {
            "verified": meets_threshold,
            "transfer": transfer.to_dict(),
            "threshold": self.threshold,
            "message": message,
        }

    def request_proof(self, fan_address: str, artist_address: str, amount: int) -> Dict[str, Any]:
        if amount <= self.threshold:
            raise ProofRejected(
                f"Transfer amount ({amount} tDust) does not meet threshold ({self.threshold} tDust)"
            )

        blob = {
            "witness": "hidden",
            "publicInputs": [artist_address],
            "proof": f"mock_proof_data_{secrets.token_hex(8)}",
        }
        proof = {
            "proofId": f"proof_{int(time.time() * 1000)}",
            "statement": f"Fan {fan_address} sent > {self.threshold} tDust to Artist {artist_address}",
            "verified": True,
            "timestamp": utc_now_iso(),
            "zkProof": base64.b64encode(json.dumps(blob).encode()).decode(),
        }
        get_audit_logger().log_proof_issued(fan_address, artist_address, proof["proofId"])
        return proof

    def unlock_content(self, proof: Mapping[str, Any], artist_address: str) -> Dict[str, Any]:
        if not proof.get("verified"):
            raise ProofRejected("Invalid or unverified proof")

        artist = self.catalog.find_artist(artist_address)
        return {
            "success": True,
            "content": artist.secret_content,
            "artist": artist.to_dict(),
            "message": "Content unlocked successfully!",
        }
