"""
Pytest configuration and shared fixtures for Midnight Lace tests.
"""

import os
import threading
import time

import pytest

# Set test environment before importing the app
os.environ["FLASK_ENV"] = "testing"
os.environ["FLASK_SECRET_KEY"] = "test-secret-key-for-testing-only"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["TRANSFER_BACKEND"] = "stub"

from midnight_lace.catalog import CatalogProvider
from midnight_lace.config import DEFAULT_CATALOG_PATH, DEFAULT_MOCK_DATA_PATH
from midnight_lace.factory import create_app
from midnight_lace.ledger import LedgerStore
from midnight_lace.payments.transfer import StubTransferSubmitter, TransferError, TransferReceipt
from midnight_lace.purchase import PurchaseWorkflow
from midnight_lace.storage import JsonFileBackend, MemoryBackend

ARTIST_ADDRESS = "mn_addr_undeployed1n2vdcmqfrlyzj7gk54cre3s2euqdnewzeqmekksjqstawc2yu0lsyd58sn"
FAN_ADDRESS = "mn_addr_undeployed1fan0alice7q2k9x3v5n8m4c6z0w2e4r6t8y0u2i4o6p8a0s2d4f6g8h"
LOW_FAN_ADDRESS = "mn_addr_undeployed1fan0bob5w7e9r1t3y5u7i9o1p3a5s7d9f1g3h5j7k9l1z3x5c7v9b"


class RecordingSubmitter(StubTransferSubmitter):
    """Stub that remembers every transfer and can be slowed down."""

    def __init__(self, delay: float = 0.0):
        super().__init__()
        self.delay = delay
        self.calls = []
        self._calls_lock = threading.Lock()

    def submit_transfer(self, destination, amount_base_units):
        if self.delay:
            time.sleep(self.delay)
        with self._calls_lock:
            self.calls.append((destination, amount_base_units))
            n = len(self.calls)
        return TransferReceipt(tx_hash=f"{n:064x}", amount=amount_base_units)


class FailingSubmitter(StubTransferSubmitter):
    def __init__(self, message="node rejected transaction"):
        super().__init__()
        self.message = message
        self.calls = 0

    def submit_transfer(self, destination, amount_base_units):
        self.calls += 1
        raise TransferError(self.message)


@pytest.fixture
def catalog():
    return CatalogProvider.from_file(DEFAULT_CATALOG_PATH)


@pytest.fixture
def memory_backend():
    return MemoryBackend()


@pytest.fixture
def ledger(memory_backend):
    return LedgerStore(memory_backend, initial_balance=10000)


@pytest.fixture
def ledger_path(tmp_path):
    return str(tmp_path / "fan-ledger.json")


@pytest.fixture
def file_ledger(ledger_path):
    return LedgerStore(JsonFileBackend(ledger_path), initial_balance=10000)


@pytest.fixture
def submitter():
    return RecordingSubmitter()


@pytest.fixture
def workflow(ledger, catalog, submitter):
    wf = PurchaseWorkflow(ledger, catalog, submitter, timeout=5)
    yield wf
    wf.close()


@pytest.fixture
def test_config(ledger_path):
    return {
        "TESTING": True,
        "FLASK_ENV": "testing",
        "LEDGER_PATH": ledger_path,
        "CATALOG_PATH": DEFAULT_CATALOG_PATH,
        "MOCK_DATA_PATH": DEFAULT_MOCK_DATA_PATH,
        "INITIAL_BALANCE": 10000,
        "RATE_LIMIT_ENABLED": False,
        "FORCE_HTTPS": False,
        "TRANSFER_BACKEND": "stub",
        "TRANSFER_TIMEOUT_SECONDS": 5,
    }


@pytest.fixture
def app(test_config, submitter):
    """Create and configure a test Flask application instance."""
    flask_app = create_app(test_config, submitter=submitter)
    yield flask_app
    flask_app.extensions["midnight_lace"].close()


@pytest.fixture
def client(app):
    """Create a test client for the Flask application."""
    return app.test_client()


@pytest.fixture
def services(app):
    return app.extensions["midnight_lace"]


def pytest_collection_modifyitems(config, items):
    """Mark tests by directory."""
    for item in items:
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)

        if "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
