"""
Mock deployment of the transfer verifier contract.

Nothing is compiled or sent to a node: the source is checked for the
expected keywords and a random address is fabricated.
"""

import json
import logging
import os
import secrets
import time
from typing import Any, Dict

from midnight_lace.models import utc_now_iso

logger = logging.getLogger(__name__)

REQUIRED_KEYWORDS = ("circuit", "contract", "witness", "public", "private")
REQUIRED_NAMES = ("TransferVerifier", "SecretContentAccess")


class ContractError(Exception):
    pass


def load_contract(path: str) -> str:
    if not os.path.exists(path):
        raise ContractError(f"Contract file not found: {path}")

    with open(path, "r", encoding="utf-8") as f:
        source = f.read()
    logger.info(f"Contract loaded from {path} ({len(source)} bytes)")
    return source


def validate_contract(source: str) -> bool:
    missing = [kw for kw in REQUIRED_KEYWORDS if kw not in source]
    if missing:
        raise ContractError(f"Contract missing required keywords: {', '.join(missing)}")

    for name in REQUIRED_NAMES:
        if name not in source:
            raise ContractError(f"Contract must include {name}")
    return True


def deploy_contract(source: str, network_url: str, delay: float = 0.0) -> Dict[str, Any]:
    logger.info(f"Deploying contract ({len(source)} bytes) to {network_url}")
    if delay:
        time.sleep(delay)

    return {
        "address": "0x" + secrets.token_hex(20),
        "network": network_url,
        "deployedAt": utc_now_iso(),
    }


def initialize_contract(deployment: Dict[str, Any], artist_address: str, threshold: int) -> Dict[str, Any]:
    logger.info(f"Setting threshold for artist {artist_address}: {threshold} tDust")
    return {
        **deployment,
        "initialized": True,
        "artistThreshold": {"address": artist_address, "threshold": threshold},
    }


def save_deployment_info(info: Dict[str, Any], path: str) -> None:
    with open(path, "w", encoding="utf-8") as f:
        json.dump(info, f, indent=2)
    logger.info(f"Deployment info saved to {path}")
