"""
Unit tests for the fan ledger store.
"""

import threading

import pytest

from midnight_lace.errors import AlreadyPurchased, InsufficientBalance
from midnight_lace.ledger import LedgerStore
from midnight_lace.models import PurchaseRecord
from midnight_lace.storage import JsonFileBackend, MemoryBackend


def _record(song_id="song-001", cost=250, tx_hash="ab" * 32):
    return PurchaseRecord(song_id=song_id, title=f"Title {song_id}", cost=cost, tx_hash=tx_hash)


class TestGetOrCreate:
    def test_new_fan_gets_initial_balance(self, ledger):
        account = ledger.get_or_create("fan_1")

        assert account.address == "fan_1"
        assert account.balance == 10000
        assert account.spent == 0
        assert account.purchases == []

    def test_creation_is_persisted_before_returning(self, memory_backend, ledger):
        ledger.get_or_create("fan_1")

        assert memory_backend.load() == {"fan_1": {"balance": 10000, "spent": 0, "purchases": []}}

    def test_creation_happens_once(self, memory_backend, ledger):
        ledger.get_or_create("fan_1")
        saves = memory_backend.save_count

        ledger.get_or_create("fan_1")

        assert memory_backend.save_count == saves
        assert len(ledger) == 1

    def test_addresses_are_case_sensitive(self, ledger):
        ledger.get_or_create("Fan_1")
        ledger.get_or_create("fan_1")
        assert len(ledger) == 2

    def test_empty_fan_id_rejected(self, ledger):
        with pytest.raises(ValueError):
            ledger.get_or_create("")

    def test_returned_account_is_a_copy(self, ledger):
        account = ledger.get_or_create("fan_1")
        account.balance = 0
        account.purchases.append(_record())

        fresh = ledger.get("fan_1")
        assert fresh.balance == 10000
        assert fresh.purchases == []

    def test_get_does_not_create(self, memory_backend, ledger):
        assert ledger.get("ghost") is None
        assert memory_backend.save_count == 0

    def test_purchases_of_unknown_fan_is_empty(self, memory_backend, ledger):
        assert ledger.purchases("ghost") == []
        assert len(ledger) == 0
        assert memory_backend.save_count == 0

    def test_concurrent_first_lookups_create_one_account(self, memory_backend, ledger):
        barrier = threading.Barrier(8)

        def lookup():
            barrier.wait()
            ledger.get_or_create("fan_1")

        threads = [threading.Thread(target=lookup) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert memory_backend.save_count == 1

    def test_failed_persist_does_not_keep_account(self):
        class BrokenBackend(MemoryBackend):
            def save(self, snapshot):
                raise OSError("read-only filesystem")

        store = LedgerStore(BrokenBackend())
        with pytest.raises(OSError):
            store.get_or_create("fan_1")
        assert store.get("fan_1") is None


class TestCommitPurchase:
    def test_commit_debits_and_appends(self, memory_backend, ledger):
        ledger.get_or_create("fan_1")

        account = ledger.commit_purchase("fan_1", _record(), 250)

        assert account.balance == 9750
        assert account.spent == 250
        assert [p.song_id for p in account.purchases] == ["song-001"]
        persisted = memory_backend.load()["fan_1"]
        assert persisted["balance"] == 9750
        assert persisted["purchases"][0]["txHash"] == "ab" * 32

    def test_commit_requires_existing_account(self, ledger):
        with pytest.raises(KeyError):
            ledger.commit_purchase("ghost", _record(), 250)

    def test_commit_refuses_overdraft(self, memory_backend):
        store = LedgerStore(memory_backend, initial_balance=100)
        store.get_or_create("fan_1")
        saves = memory_backend.save_count

        with pytest.raises(InsufficientBalance) as exc_info:
            store.commit_purchase("fan_1", _record(), 250)

        assert exc_info.value.required == 250
        assert exc_info.value.available == 100
        assert memory_backend.save_count == saves
        assert store.get("fan_1").balance == 100

    def test_commit_refuses_duplicate_song(self, ledger):
        ledger.get_or_create("fan_1")
        ledger.commit_purchase("fan_1", _record(), 250)

        with pytest.raises(AlreadyPurchased):
            ledger.commit_purchase("fan_1", _record(tx_hash="cd" * 32), 250)

        account = ledger.get("fan_1")
        assert account.balance == 9750
        assert len(account.purchases) == 1

    def test_failed_persist_rolls_back(self):
        class FlakyBackend(MemoryBackend):
            fail = False

            def save(self, snapshot):
                if self.fail:
                    raise OSError("disk full")
                super().save(snapshot)

        backend = FlakyBackend()
        store = LedgerStore(backend)
        store.get_or_create("fan_1")
        backend.fail = True

        with pytest.raises(OSError):
            store.commit_purchase("fan_1", _record(), 250)

        account = store.get("fan_1")
        assert account.balance == 10000
        assert account.purchases == []


class TestPersistenceLifecycle:
    def test_reload_from_file(self, ledger_path, file_ledger):
        file_ledger.get_or_create("fan_1")
        file_ledger.commit_purchase("fan_1", _record(), 250)

        reopened = LedgerStore(JsonFileBackend(ledger_path), initial_balance=10000)
        account = reopened.get("fan_1")

        assert account.balance == 9750
        assert account.spent == 250
        assert account.purchases[0].title == "Title song-001"

    def test_existing_accounts_keep_their_balance_when_initial_changes(self, ledger_path, file_ledger):
        file_ledger.get_or_create("fan_1")

        reopened = LedgerStore(JsonFileBackend(ledger_path), initial_balance=5)
        assert reopened.get_or_create("fan_1").balance == 10000
        assert reopened.get_or_create("fan_2").balance == 5

    def test_close_flushes_once(self, memory_backend, ledger):
        ledger.get_or_create("fan_1")
        saves = memory_backend.save_count

        ledger.close()
        ledger.close()

        assert memory_backend.save_count == saves + 1

    def test_negative_initial_balance_rejected(self):
        with pytest.raises(ValueError):
            LedgerStore(MemoryBackend(), initial_balance=-1)
