"""
Unit tests for audit logging.
"""

import json
from unittest.mock import patch

import pytest

from midnight_lace.audit_logger import AuditLogger, get_audit_logger, init_audit_logger


class TestAuditLogger:
    """Test audit logger functionality."""

    @pytest.fixture
    def audit_logger(self):
        """Create an AuditLogger instance for testing."""
        return AuditLogger()

    def test_log_event_emits_json(self, audit_logger):
        with patch.object(audit_logger.logger, "info") as mock_info:
            audit_logger.log_event("ledger.flush", accounts=3)

            payload = json.loads(mock_info.call_args[0][0])
            assert payload["event"] == "ledger.flush"
            assert payload["accounts"] == 3
            assert "timestamp" in payload

    def test_log_account_created(self, audit_logger):
        with patch.object(audit_logger.logger, "info") as mock_info:
            audit_logger.log_account_created("fan_1", 10000)

            call_args = mock_info.call_args[0][0]
            assert "ACCOUNT_CREATED" in call_args
            assert "fan=fan_1" in call_args
            assert "balance=10000" in call_args

    def test_log_purchase_success(self, audit_logger):
        with patch.object(audit_logger.logger, "info") as mock_info:
            audit_logger.log_purchase("fan_1", "song-001", 250, success=True, tx_hash="abc123")

            call_args = mock_info.call_args[0][0]
            assert "PURCHASE" in call_args
            assert "song=song-001" in call_args
            assert "cost=250" in call_args
            assert "status=SUCCESS" in call_args
            assert "tx=abc123" in call_args

    def test_log_purchase_failure(self, audit_logger):
        with patch.object(audit_logger.logger, "info") as mock_info:
            audit_logger.log_purchase("fan_1", "song-001", 250, success=False, error="Insufficient balance")

            call_args = mock_info.call_args[0][0]
            assert "status=FAILURE" in call_args
            assert "error=Insufficient balance" in call_args
            assert "tx=" not in call_args

    def test_log_transfer_truncates_destination(self, audit_logger):
        destination = "mn_addr_undeployed1n2vdcmqfrlyzj7gk54cre3s2euqdnewzeqmekksjqstawc2yu0lsyd58sn"
        with patch.object(audit_logger.logger, "info") as mock_info:
            audit_logger.log_transfer(destination, 250_000_000_000_000, success=True)

            call_args = mock_info.call_args[0][0]
            assert "TRANSFER" in call_args
            assert destination[:24] in call_args
            assert destination not in call_args

    def test_log_proof_issued(self, audit_logger):
        with patch.object(audit_logger.logger, "info") as mock_info:
            audit_logger.log_proof_issued("fan_1", "artist_1", "proof_1")

            assert "PROOF_ISSUED" in mock_info.call_args[0][0]

    def test_log_rate_limit_exceeded(self, audit_logger):
        with patch.object(audit_logger.logger, "warning") as mock_warning:
            audit_logger.log_rate_limit_exceeded(ip_address="192.168.1.1", endpoint="/api/purchase-song")

            call_args = mock_warning.call_args[0][0]
            assert "RATE_LIMIT_EXCEEDED" in call_args
            assert "endpoint=/api/purchase-song" in call_args

    def test_log_error(self, audit_logger):
        with patch.object(audit_logger.logger, "error") as mock_error:
            audit_logger.log_error(error_type="ValueError", error_msg="bad", context={"field": "songId"})

            call_args = mock_error.call_args[0][0]
            assert "type=ValueError" in call_args
            assert "context=" in call_args


class TestInitAuditLogger:
    def test_init_audit_logger(self):
        init_audit_logger()
        assert isinstance(get_audit_logger(), AuditLogger)
