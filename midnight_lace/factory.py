"""
Application Factory for Midnight Lace

Implements the Flask application factory pattern with:
- Service wiring (ledger, catalog, transfer submitter, purchase workflow)
- Blueprint registration
- Security configuration (headers, CORS, rate limiting)
- JSON error handling for the core error taxonomy
"""

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from flask import Flask, current_app, jsonify

from midnight_lace.audit_logger import init_audit_logger
from midnight_lace.catalog import CatalogProvider
from midnight_lace.config import AppConfig, DEV_SECRET_KEY, get_config, validate_config
from midnight_lace.errors import MidnightLaceError
from midnight_lace.ledger import LedgerStore
from midnight_lace.payments.transfer import TransferSubmitter, create_submitter
from midnight_lace.proofs import MockProofService
from midnight_lace.purchase import PurchaseWorkflow
from midnight_lace.security import init_security
from midnight_lace.storage import JsonFileBackend, StorageBackend

logger = logging.getLogger(__name__)

EXTENSION_KEY = "midnight_lace"


@dataclass
class Services:
    """Long-lived collaborators shared by all requests."""

    ledger: LedgerStore
    catalog: CatalogProvider
    submitter: TransferSubmitter
    workflow: PurchaseWorkflow
    proofs: MockProofService

    def close(self) -> None:
        self.workflow.close()
        self.ledger.close()


def get_services() -> Services:
    return current_app.extensions[EXTENSION_KEY]


def build_services(
    cfg: Mapping[str, Any],
    backend: Optional[StorageBackend] = None,
    submitter: Optional[TransferSubmitter] = None,
) -> Services:
    """Wire the core objects from configuration.

    ``backend`` and ``submitter`` replace the configured ones when given.
    """
    catalog = CatalogProvider.from_file(cfg["CATALOG_PATH"])
    ledger = LedgerStore(
        backend or JsonFileBackend(cfg["LEDGER_PATH"]),
        initial_balance=cfg.get("INITIAL_BALANCE", 10000),
    )
    submitter = submitter or create_submitter(cfg)
    workflow = PurchaseWorkflow(
        ledger,
        catalog,
        submitter,
        timeout=cfg.get("TRANSFER_TIMEOUT_SECONDS", 30),
        max_workers=cfg.get("TRANSFER_WORKERS", 4),
    )
    proofs = MockProofService.from_file(cfg["MOCK_DATA_PATH"], catalog, threshold=cfg.get("PROOF_THRESHOLD", 50))
    return Services(ledger=ledger, catalog=catalog, submitter=submitter, workflow=workflow, proofs=proofs)


def create_app(
    config_override: Optional[Mapping[str, Any]] = None,
    backend: Optional[StorageBackend] = None,
    submitter: Optional[TransferSubmitter] = None,
) -> Flask:
    """
    Create and configure the Flask application using the factory pattern.

    Args:
        config_override: Values layered over the environment configuration
        backend: Optional ledger persistence backend (defaults to the JSON file)
        submitter: Optional transfer collaborator (defaults to TRANSFER_BACKEND)

    Returns:
        Configured Flask application instance
    """
    app = Flask(__name__)

    # Load configuration
    cfg: AppConfig = get_config()
    if config_override:
        cfg.update(config_override)  # type: ignore[typeddict-item]
    validate_config(cfg)
    app.config["APP_CONFIG"] = cfg
    app.config["TESTING"] = bool(cfg.get("TESTING"))

    # Set Flask secret key (required for sessions)
    app.secret_key = cfg.get("FLASK_SECRET_KEY") or DEV_SECRET_KEY

    init_security(app, cfg)
    init_audit_logger()

    try:
        app.extensions[EXTENSION_KEY] = build_services(cfg, backend=backend, submitter=submitter)
        logger.info("✅ Ledger, catalog and transfer submitter initialized")
    except Exception as e:
        logger.error(f"❌ Service initialization failed: {e}")
        raise

    register_blueprints(app)
    register_error_handlers(app)

    logger.info("🚀 Application factory completed successfully")
    return app


def register_blueprints(app: Flask) -> None:
    """Register all application blueprints."""

    # Catalog, fan ledger and purchases
    from midnight_lace.blueprints.api import api_bp
    app.register_blueprint(api_bp, url_prefix="/api")

    # Mock transfer verification (check-transfer, request-proof, unlock-content)
    from midnight_lace.blueprints.proof import proof_bp
    app.register_blueprint(proof_bp, url_prefix="/api")

    # Health, metrics and wallet status
    from midnight_lace.blueprints.admin import admin_bp
    app.register_blueprint(admin_bp, url_prefix="/api")

    logger.info("✅ All blueprints registered")


def register_error_handlers(app: Flask) -> None:
    """Register global error handlers."""

    @app.errorhandler(MidnightLaceError)
    def domain_error(e: MidnightLaceError):
        if e.status_code >= 500:
            logger.error(f"{type(e).__name__}: {e.message} {e.details}")
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(400)
    def bad_request(e):
        return jsonify({"error": "bad_request", "message": str(e)}), 400

    @app.errorhandler(404)
    def not_found(e):
        return jsonify({"error": "not_found", "message": "Resource not found"}), 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return jsonify({"error": "method_not_allowed", "message": str(e)}), 405

    @app.errorhandler(429)
    def rate_limit_exceeded(e):
        return jsonify({"error": "rate_limit_exceeded", "message": str(e)}), 429

    @app.errorhandler(500)
    def internal_error(e):
        logger.error(f"Internal server error: {e}", exc_info=True)
        return jsonify({"error": "internal_error", "message": "An unexpected error occurred"}), 500
