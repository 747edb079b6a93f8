"""
Purchase workflow: validate, submit the transfer, commit.

    REQUESTED -> VALIDATED -> SUBMITTED -> COMMITTED
              \\-> REJECTED  \\-> FAILED

The ledger is only written in the COMMITTED step, after the transfer
collaborator has returned a transaction reference. A workflow for one fan
holds that fan's lock from validation through commit, so two requests for the
same fan never validate against the same stale balance.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from midnight_lace.audit_logger import get_audit_logger
from midnight_lace.catalog import CatalogProvider
from midnight_lace.errors import (
    AlreadyPurchased,
    CollaboratorFailureError,
    CollaboratorUnavailableError,
    InsufficientBalance,
    MidnightLaceError,
    NotFoundError,
)
from midnight_lace.ledger import LedgerStore
from midnight_lace.locks import KeyedLock
from midnight_lace.metrics import ledger_accounts, purchase_counter, transfer_counter
from midnight_lace.models import FanAccount, PurchaseRecord, Song, utc_now_iso
from midnight_lace.payments.transfer import TransferReceipt, TransferSubmitter, tokens_to_base_units

logger = logging.getLogger(__name__)


class PurchaseState(str, Enum):
    REQUESTED = "requested"
    VALIDATED = "validated"
    SUBMITTED = "submitted"
    COMMITTED = "committed"
    REJECTED = "rejected"
    FAILED = "failed"


@dataclass(frozen=True)
class PurchaseResult:
    song: Song
    receipt: TransferReceipt
    record: PurchaseRecord
    account: FanAccount
    state: PurchaseState = PurchaseState.COMMITTED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": True,
            "transaction": {
                "txHash": self.receipt.tx_hash,
                # Base units can exceed JSON number precision.
                "amount": str(self.receipt.amount),
            },
            "song": self.song.to_dict(),
            "fan": {
                "address": self.account.address,
                "balance": self.account.balance,
                "spent": self.account.spent,
                "purchaseCount": len(self.account.purchases),
            },
            "message": f"Purchased {self.song.title} for {self.song.required_tokens} tNIGHT",
        }


class PurchaseWorkflow:
    def __init__(
        self,
        ledger: LedgerStore,
        catalog: CatalogProvider,
        submitter: TransferSubmitter,
        timeout: float = 30,
        max_workers: int = 4,
    ):
        self.ledger = ledger
        self.catalog = catalog
        self.submitter = submitter
        self.timeout = timeout
        self._locks = KeyedLock()
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="transfer")
        # One slot per worker, so an accepted transfer starts running at once.
        self._slots = threading.BoundedSemaphore(max_workers)
        self.audit = get_audit_logger()

    def validate(self, account: FanAccount, song: Song) -> None:
        """Raise the business-rule error for the first failing check."""
        if account.balance < song.required_tokens:
            raise InsufficientBalance(required=song.required_tokens, available=account.balance)

        existing = account.find_purchase(song.id)
        if existing is not None:
            raise AlreadyPurchased(song.id, existing.to_dict())

    def purchase(self, fan_id: str, song_id: str) -> PurchaseResult:
        state = PurchaseState.REQUESTED
        song: Optional[Song] = None
        try:
            song = self.catalog.find_by_id(song_id)

            with self._locks.hold(fan_id):
                account = self.ledger.get_or_create(fan_id)
                self.validate(account, song)
                state = PurchaseState.VALIDATED

                receipt = self._submit(song)
                state = PurchaseState.SUBMITTED

                record = PurchaseRecord(
                    song_id=song.id,
                    title=song.title,
                    cost=song.required_tokens,
                    tx_hash=receipt.tx_hash,
                    timestamp=utc_now_iso(),
                )
                account = self.ledger.commit_purchase(fan_id, record, song.required_tokens)
                state = PurchaseState.COMMITTED

        except MidnightLaceError as e:
            if isinstance(e, NotFoundError):
                outcome = "not_found"
            elif isinstance(e, (CollaboratorUnavailableError, CollaboratorFailureError)):
                outcome = PurchaseState.FAILED.value
            else:
                outcome = PurchaseState.REJECTED.value
            purchase_counter.labels(outcome=outcome).inc()
            logger.info(f"Purchase {outcome}: fan={fan_id} song={song_id} after {state.value}: {e.message}")
            self.audit.log_purchase(
                fan_id,
                song_id,
                song.required_tokens if song else 0,
                success=False,
                error=e.message,
            )
            raise

        purchase_counter.labels(outcome=state.value).inc()
        ledger_accounts.set(len(self.ledger))
        self.audit.log_purchase(fan_id, song.id, song.required_tokens, success=True, tx_hash=receipt.tx_hash)
        logger.info(f"Purchase committed: fan={fan_id} song={song.id} balance={account.balance}")

        return PurchaseResult(song=song, receipt=receipt, record=record, account=account)

    def _submit(self, song: Song) -> TransferReceipt:
        """Run the transfer on a free worker, bounded by ``self.timeout``.

        Refused with ``CollaboratorUnavailableError`` when every worker is
        still busy, so a hung transfer never eats into another fan's timeout.
        """
        self.submitter.ensure_ready()

        destination = song.artist_address or self.catalog.artist_address
        amount = tokens_to_base_units(song.required_tokens)

        if not self._slots.acquire(blocking=False):
            transfer_counter.labels(outcome="busy").inc()
            raise CollaboratorUnavailableError("All transfer workers are busy, retry shortly")
        try:
            future = self._executor.submit(self._run_transfer, destination, amount)
        except Exception:
            self._slots.release()
            raise

        try:
            receipt = future.result(timeout=self.timeout)
        except FutureTimeoutError:
            if future.cancel():
                self._slots.release()
            transfer_counter.labels(outcome="timeout").inc()
            self.audit.log_transfer(destination, amount, success=False, error="timeout")
            raise CollaboratorFailureError(
                "Transaction failed",
                details=f"Transfer did not complete within {self.timeout}s",
            )
        except Exception as e:
            logger.error(f"Transfer to {destination} failed: {e}", exc_info=True)
            transfer_counter.labels(outcome="error").inc()
            self.audit.log_transfer(destination, amount, success=False, error=str(e))
            raise CollaboratorFailureError("Transaction failed", details=str(e)) from e

        transfer_counter.labels(outcome="success").inc()
        self.audit.log_transfer(destination, amount, success=True)
        return receipt

    def _run_transfer(self, destination: str, amount: int) -> TransferReceipt:
        try:
            return self.submitter.submit_transfer(destination, amount)
        finally:
            self._slots.release()

    def close(self) -> None:
        self._executor.shutdown(wait=False)
