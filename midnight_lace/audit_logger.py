"""
Audit logging for Midnight Lace.

Ledger-affecting events (account creation, purchases, transfers, issued
proofs) go to the ``audit`` logger so they can be routed separately from
application logs.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

_logger = logging.getLogger("audit")
_audit_logger = None  # Will be initialized by init_audit_logger


def init_audit_logger():
    """Initialize the audit logger."""
    global _audit_logger

    _logger.setLevel(logging.INFO)

    # Add console handler if not already present
    if not _logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(asctime)s - AUDIT - %(levelname)s - %(message)s"))
        _logger.addHandler(handler)

    _audit_logger = AuditLogger()

    _logger.info("Audit logger initialized")


def get_audit_logger():
    """Get the audit logger instance."""
    global _audit_logger

    if _audit_logger is None:
        init_audit_logger()
    return _audit_logger


class AuditLogger:
    """
    Audit logging interface for ledger events.

    Messages are pipe-delimited ``KEY=value`` lines, except ``log_event`` which
    emits a JSON payload.
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or _logger

    def log_event(self, event: str, **details: Any) -> None:
        """Generic structured audit event."""

        payload = {"event": event, **details, "timestamp": datetime.now(timezone.utc).isoformat()}
        self.logger.info(json.dumps(payload, default=str))

    def log_account_created(self, fan_address: str, initial_balance: int):
        """Log lazy creation of a fan account."""
        self.logger.info(f"ACCOUNT_CREATED | fan={fan_address} | balance={initial_balance}")

    def log_purchase(
        self,
        fan_address: str,
        song_id: str,
        cost: int,
        success: bool,
        tx_hash: Optional[str] = None,
        error: Optional[str] = None,
    ):
        """Log the outcome of a purchase workflow."""
        status = "SUCCESS" if success else "FAILURE"
        msg = f"PURCHASE | fan={fan_address} | song={song_id} | cost={cost} | status={status}"
        if tx_hash:
            msg += f" | tx={tx_hash}"
        if error:
            msg += f" | error={error}"
        self.logger.info(msg)

    def log_transfer(self, destination: str, amount: int, success: bool, error: Optional[str] = None):
        """Log a transfer submitted to the wallet collaborator."""
        status = "SUCCESS" if success else "FAILURE"
        msg = f"TRANSFER | to={destination[:24]}... | amount={amount} | status={status}"
        if error:
            msg += f" | error={error}"
        self.logger.info(msg)

    def log_proof_issued(self, fan_address: str, artist_address: str, proof_id: str):
        """Log issuance of a mock transfer proof."""
        self.logger.info(f"PROOF_ISSUED | fan={fan_address} | artist={artist_address} | proof={proof_id}")

    def log_rate_limit_exceeded(self, ip_address: str, endpoint: str):
        """Log rate limit violation."""
        self.logger.warning(f"RATE_LIMIT_EXCEEDED | ip={ip_address} | endpoint={endpoint}")

    def log_error(self, error_type: str, error_msg: str, context: Optional[Dict[str, Any]] = None):
        """Log application error."""
        msg = f"ERROR | type={error_type} | msg={error_msg}"
        if context:
            msg += f" | context={context}"
        self.logger.error(msg)
