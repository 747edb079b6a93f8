"""
Admin Blueprint - Health, Metrics and Wallet Status

Provides monitoring endpoints for the service and its collaborators.
"""

import logging
import time

import requests
from flask import Blueprint, Response, current_app, jsonify
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from midnight_lace.errors import CollaboratorFailureError
from midnight_lace.factory import get_services
from midnight_lace.metrics import ledger_accounts, registry
from midnight_lace.payments.transfer import TransferError

logger = logging.getLogger(__name__)

admin_bp = Blueprint("admin", __name__)


@admin_bp.route("/health", methods=["GET"])
def health():
    """
    Liveness plus service wiring.

    Always 200 while the process is up; collaborator readiness is reported
    under ``services.transfer``.
    """
    cfg = current_app.config.get("APP_CONFIG", {})
    services = get_services()

    return jsonify({
        "status": "ok",
        "message": f"{cfg.get('APP_NAME', 'Midnight Lace')} API Server is running",
        "version": cfg.get("APP_VERSION"),
        "timestamp": time.time(),
        "services": {
            "proofServer": cfg.get("PROOF_SERVER_URL"),
            "indexer": cfg.get("INDEXER_URL"),
            "node": cfg.get("NODE_URL"),
            "transfer": services.submitter.status(),
            "ledger": {"backend": services.ledger.backend.describe(), "accounts": len(services.ledger)},
        },
    }), 200


@admin_bp.route("/wallet/balance", methods=["GET"])
def wallet_balance():
    """Balance of the wallet that funds purchase transfers, in whole tokens."""
    submitter = get_services().submitter
    submitter.ensure_ready()
    try:
        balance = submitter.source_balance()
    except (TransferError, requests.RequestException) as e:
        logger.error(f"Wallet balance lookup failed: {e}")
        raise CollaboratorFailureError("Wallet balance lookup failed", details=str(e)) from e
    return jsonify({"backend": submitter.name, **balance})


@admin_bp.route("/metrics", methods=["GET"])
def metrics():
    """Prometheus exposition format."""
    ledger_accounts.set(len(get_services().ledger))
    return Response(generate_latest(registry), content_type=CONTENT_TYPE_LATEST)
