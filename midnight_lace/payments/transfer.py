"""Token transfer submission for Midnight Lace purchases.

The wallet SDK that derives keys, builds, signs and submits transfers runs
outside this service. Here it is a capability with one method,
``submit_transfer(destination, amount_base_units)``, and two backends:

- ``stub``: fabricates a transaction hash (local development and tests)
- ``wallet_rest``: calls a wallet bridge service over HTTP
"""

import logging
import secrets
from dataclasses import dataclass
from typing import Any, Dict, Mapping

import requests

from midnight_lace.errors import CollaboratorUnavailableError

logger = logging.getLogger(__name__)

# 1 tNIGHT = 1e12 base units
BASE_UNITS_PER_TOKEN = 1_000_000_000_000


class TransferError(Exception):
    """Base exception for transfer submission errors."""

    pass


@dataclass(frozen=True)
class TransferReceipt:
    tx_hash: str
    amount: int


def tokens_to_base_units(tokens: int) -> int:
    """Convert whole tokens to base units."""
    return int(tokens) * BASE_UNITS_PER_TOKEN


def base_units_to_tokens(base_units: int) -> int:
    """Convert base units to whole tokens, truncating any remainder."""
    return int(base_units) // BASE_UNITS_PER_TOKEN


class TransferSubmitter:
    """Capability interface for the external transfer collaborator.

    ``submit_transfer`` may be slow and may raise; it gives no retry
    guarantee. ``ensure_ready`` raises ``CollaboratorUnavailableError`` when
    the collaborator cannot accept work yet.
    """

    name = "abstract"

    def ensure_ready(self) -> None:
        return None

    def submit_transfer(self, destination: str, amount_base_units: int) -> TransferReceipt:
        raise NotImplementedError

    def source_balance(self) -> Dict[str, int]:
        raise NotImplementedError

    def status(self) -> Dict[str, Any]:
        try:
            self.ensure_ready()
            ready = True
        except CollaboratorUnavailableError:
            ready = False
        return {"backend": self.name, "ready": ready}


class StubTransferSubmitter(TransferSubmitter):
    name = "stub"

    def __init__(self, balance_tokens: int = 1_000_000):
        self._balance_tokens = balance_tokens

    def submit_transfer(self, destination: str, amount_base_units: int) -> TransferReceipt:
        if amount_base_units <= 0:
            raise TransferError("Transfer amount must be positive")
        tx_hash = secrets.token_hex(32)
        logger.info(f"Stub transfer: {amount_base_units} base units to {destination} (tx={tx_hash})")
        return TransferReceipt(tx_hash=tx_hash, amount=amount_base_units)

    def source_balance(self) -> Dict[str, int]:
        return {"unshieldedBalance": self._balance_tokens, "shieldedBalance": 0}


class WalletRestTransferSubmitter(TransferSubmitter):
    """Talks to a wallet bridge exposing ``/status``, ``/transfers`` and ``/balance``."""

    name = "wallet_rest"

    def __init__(self, base_url: str, timeout: float = 30, status_timeout: float = 5):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.status_timeout = status_timeout

    def ensure_ready(self) -> None:
        try:
            resp = requests.get(f"{self.base_url}/status", timeout=self.status_timeout)
        except requests.RequestException as e:
            raise CollaboratorUnavailableError(f"Wallet service unreachable: {e}") from e

        if resp.status_code >= 300:
            raise CollaboratorUnavailableError(f"Wallet service status check failed: {resp.status_code}")
        try:
            data = resp.json()
        except ValueError:
            data = None
        if not isinstance(data, dict):
            raise CollaboratorUnavailableError("Wallet service returned an invalid status response")
        if not data.get("synced"):
            raise CollaboratorUnavailableError("Wallet service is still syncing")

    def submit_transfer(self, destination: str, amount_base_units: int) -> TransferReceipt:
        # Base-unit amounts can exceed 2**53, so they travel as strings.
        payload = {"receiverAddress": destination, "amount": str(int(amount_base_units))}
        resp = requests.post(f"{self.base_url}/transfers", json=payload, timeout=self.timeout)
        if resp.status_code >= 300:
            raise TransferError(f"Wallet transfer failed: {resp.status_code} {resp.text}")

        data = resp.json()
        tx_hash = data.get("txHash")
        if not tx_hash:
            raise TransferError("Wallet transfer response missing txHash")
        return TransferReceipt(tx_hash=tx_hash, amount=int(data.get("amount", amount_base_units)))

    def source_balance(self) -> Dict[str, int]:
        resp = requests.get(f"{self.base_url}/balance", timeout=self.status_timeout)
        if resp.status_code >= 300:
            raise TransferError(f"Wallet balance lookup failed: {resp.status_code} {resp.text}")
        try:
            data = resp.json()
        except ValueError as e:
            raise TransferError("Wallet balance response is not JSON") from e
        if not isinstance(data, dict):
            raise TransferError("Wallet balance response is not a JSON object")
        return {
            "unshieldedBalance": base_units_to_tokens(int(data.get("unshielded", 0))),
            "shieldedBalance": base_units_to_tokens(int(data.get("shielded", 0))),
        }

    def status(self) -> Dict[str, Any]:
        info = super().status()
        info["url"] = self.base_url
        return info


def create_submitter(cfg: Mapping[str, Any]) -> TransferSubmitter:
    """Build the submitter selected by ``TRANSFER_BACKEND``."""
    backend = str(cfg.get("TRANSFER_BACKEND", "stub")).lower()
    if backend == "wallet_rest":
        submitter: TransferSubmitter = WalletRestTransferSubmitter(
            cfg.get("WALLET_SERVICE_URL", "http://localhost:3001"),
            timeout=cfg.get("TRANSFER_TIMEOUT_SECONDS", 30),
        )
    elif backend == "stub":
        submitter = StubTransferSubmitter()
    else:
        raise ValueError(f"Unknown TRANSFER_BACKEND {backend!r}")

    logger.info(f"Transfer submitter: {submitter.name}")
    return submitter
