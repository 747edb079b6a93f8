"""Security helpers for configuring Flask in production."""
from __future__ import annotations

import logging
import os
from typing import Any, Mapping

from flask import Flask, request
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_talisman import Talisman
from werkzeug.middleware.proxy_fix import ProxyFix

from midnight_lace.audit_logger import get_audit_logger

logger = logging.getLogger(__name__)


def _on_breach(request_limit):
    get_audit_logger().log_rate_limit_exceeded(get_remote_address(), request.path)


# Created at import time so blueprints can decorate routes; bound in init_security.
limiter = Limiter(key_func=get_remote_address, on_breach=_on_breach)


def _as_bool(value: Any, default: bool = False) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    return str(value).lower() in {"1", "true", "yes", "on"}


def init_logging(cfg: Mapping[str, Any]) -> None:
    log_level = str(cfg.get("LOG_LEVEL", "INFO")).upper()
    level = getattr(logging, log_level, logging.INFO)
    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    if not any(isinstance(handler, logging.StreamHandler) for handler in root_logger.handlers):
        handler = logging.StreamHandler()
        fmt = (
            "{\"level\":\"%(levelname)s\",\"msg\":\"%(message)s\",\"name\":\"%(name)s\",\"path\":\"%(pathname)s\","
            "\"lineno\":%(lineno)d}"
        )
        handler.setFormatter(logging.Formatter(fmt))
        root_logger.addHandler(handler)


def init_security(app: Flask, cfg: Mapping[str, Any]) -> Limiter:
    """Initialise logging, security headers, CORS and rate limiting."""

    init_logging(cfg)

    # Respect reverse proxy headers for TLS detection and client IP extraction.
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1)  # type: ignore[assignment]

    default_force_https = (
        str(cfg.get("FLASK_ENV") or os.getenv("FLASK_ENV", "development")).strip().lower() == "production"
    )
    force_https = _as_bool(cfg.get("FORCE_HTTPS"), default_force_https)

    if not force_https and default_force_https:
        logger.warning(
            "FORCE_HTTPS disabled while FLASK_ENV=production – ensure this is intentional before deploying."
        )
    elif force_https:
        logger.debug("HTTPS enforcement enabled")

    csp = {
        "default-src": "'self'",
        "img-src": "* data:",
        "style-src": "'self' 'unsafe-inline'",
        "script-src": "'self'",
        "connect-src": "'self' http: https: ws: wss:",
    }
    Talisman(
        app,
        force_https=force_https,
        content_security_policy=csp,
        session_cookie_secure=force_https,
        frame_options="DENY",
        referrer_policy="no-referrer",
    )

    cors_origins = str(cfg.get("CORS_ORIGINS", "*"))

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        if cors_origins == "*":
            response.headers["Access-Control-Allow-Origin"] = "*"
        elif origin and origin in [o.strip() for o in cors_origins.split(",")]:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
        response.headers["Access-Control-Allow-Headers"] = "Content-Type"
        response.headers["Access-Control-Allow-Methods"] = "GET, POST, OPTIONS"
        return response

    app.config["RATELIMIT_ENABLED"] = _as_bool(cfg.get("RATE_LIMIT_ENABLED"), True)
    app.config["RATELIMIT_DEFAULT"] = cfg.get("RATE_LIMIT_DEFAULT") or "200/hour"
    app.config["RATELIMIT_STORAGE_URI"] = cfg.get("RATE_LIMIT_STORAGE_URI") or "memory://"
    limiter.init_app(app)

    if not app.config["RATELIMIT_ENABLED"]:
        logger.info("Rate limiting disabled")

    return limiter
