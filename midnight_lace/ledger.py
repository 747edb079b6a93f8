"""
Fan ledger store.

Owns every ``FanAccount``. All mutations go through ``get_or_create`` (lazy
account creation) and ``commit_purchase``; each one rewrites the complete
snapshot through the injected backend before returning. Readers get copies.
"""

import copy
import logging
import threading
from typing import Dict, List, Optional

from midnight_lace.audit_logger import get_audit_logger
from midnight_lace.errors import AlreadyPurchased, InsufficientBalance
from midnight_lace.models import FanAccount, PurchaseRecord
from midnight_lace.storage import StorageBackend

logger = logging.getLogger(__name__)


class LedgerStore:
    def __init__(self, backend: StorageBackend, initial_balance: int = 10000):
        if initial_balance < 0:
            raise ValueError("initial_balance must not be negative")

        self.backend = backend
        self.initial_balance = initial_balance
        self._lock = threading.RLock()
        self._accounts: Dict[str, FanAccount] = {}
        self._closed = False

        self.reload()

    def reload(self) -> None:
        """Replace in-memory state with the backend's snapshot."""
        snapshot = self.backend.load()
        with self._lock:
            self._accounts = {
                address: FanAccount.from_dict(address, data) for address, data in snapshot.items()
            }
        logger.info(f"Ledger loaded from {self.backend.describe()}: {len(self._accounts)} accounts")

    def snapshot(self) -> Dict[str, Dict]:
        with self._lock:
            return {address: account.to_dict() for address, account in self._accounts.items()}

    def _persist(self) -> None:
        self.backend.save(self.snapshot())

    def get(self, fan_id: str) -> Optional[FanAccount]:
        """Return a copy of the account, or None without creating it."""
        with self._lock:
            account = self._accounts.get(fan_id)
            return copy.deepcopy(account) if account else None

    def get_or_create(self, fan_id: str) -> FanAccount:
        """Return the fan's account, creating and persisting it on first sight."""
        if not fan_id:
            raise ValueError("fan_id must be a non-empty string")

        with self._lock:
            account = self._accounts.get(fan_id)
            if account is None:
                account = FanAccount(address=fan_id, balance=self.initial_balance)
                self._accounts[fan_id] = account
                try:
                    self._persist()
                except Exception:
                    del self._accounts[fan_id]
                    raise
                get_audit_logger().log_account_created(fan_id, self.initial_balance)
            return copy.deepcopy(account)

    def purchases(self, fan_id: str) -> List[PurchaseRecord]:
        """Purchase history; empty for unknown fans, which are not created."""
        account = self.get(fan_id)
        return list(account.purchases) if account else []

    def commit_purchase(self, fan_id: str, record: PurchaseRecord, cost: int) -> FanAccount:
        """Debit ``cost``, append ``record`` and persist, all or nothing.

        The account must already exist. Overdrafts and duplicate song ids are
        refused here as well as in the purchase workflow.
        """
        if cost < 0:
            raise ValueError("cost must not be negative")

        with self._lock:
            account = self._accounts.get(fan_id)
            if account is None:
                raise KeyError(fan_id)

            existing = account.find_purchase(record.song_id)
            if existing is not None:
                raise AlreadyPurchased(record.song_id, existing.to_dict())
            if account.balance < cost:
                raise InsufficientBalance(required=cost, available=account.balance)

            updated = FanAccount(
                address=fan_id,
                balance=account.balance - cost,
                spent=account.spent + cost,
                purchases=account.purchases + [record],
            )
            self._accounts[fan_id] = updated
            try:
                self._persist()
            except Exception:
                self._accounts[fan_id] = account
                raise

            return copy.deepcopy(updated)

    def flush(self) -> None:
        with self._lock:
            self._persist()

    def close(self) -> None:
        """Final flush on shutdown. Safe to call more than once."""
        with self._lock:
            if self._closed:
                return
            self._persist()
            self._closed = True
        logger.info("Ledger flushed and closed")

    def __len__(self) -> int:
        with self._lock:
            return len(self._accounts)
