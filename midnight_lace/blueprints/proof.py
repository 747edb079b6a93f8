"""
Transfer Verification Blueprint - mock proof flow

Fixture-backed stand-in for proof-server verification of fan -> artist
transfers.
"""

import logging

from flask import Blueprint, jsonify, request

from midnight_lace.errors import ValidationError
from midnight_lace.factory import get_services

logger = logging.getLogger(__name__)

proof_bp = Blueprint("proof", __name__)


@proof_bp.route("/check-transfer", methods=["GET"])
def check_transfer():
    """
    Check whether a fixture transfer exists and clears the threshold.

    Query params:
        - fanAddress
        - artistAddress
    """
    fan_address = request.args.get("fanAddress")
    artist_address = request.args.get("artistAddress")

    if not fan_address or not artist_address:
        raise ValidationError("Missing required parameters: fanAddress and artistAddress")

    return jsonify(get_services().proofs.check_transfer(fan_address, artist_address))


@proof_bp.route("/request-proof", methods=["POST"])
def request_proof():
    """
    Issue a mock proof.

    Expected JSON body:
        - fanAddress
        - artistAddress
        - amount
    """
    data = request.get_json(silent=True) or {}
    fan_address = data.get("fanAddress")
    artist_address = data.get("artistAddress")
    amount = data.get("amount")

    if not fan_address or not artist_address or amount is None:
        raise ValidationError("Missing required fields: fanAddress, artistAddress, amount")

    try:
        amount = int(amount)
    except (TypeError, ValueError):
        raise ValidationError("amount must be an integer")

    proof = get_services().proofs.request_proof(fan_address, artist_address, amount)
    return jsonify({"success": True, "proof": proof, "message": "ZK proof generated successfully"})


@proof_bp.route("/unlock-content", methods=["POST"])
def unlock_content():
    """
    Trade a proof for the artist's secret content.

    Expected JSON body:
        - proof: object returned by /request-proof
        - artistAddress
    """
    data = request.get_json(silent=True) or {}
    proof = data.get("proof")
    artist_address = data.get("artistAddress")

    if not proof or not artist_address:
        raise ValidationError("Missing required fields: proof, artistAddress")
    if not isinstance(proof, dict):
        raise ValidationError("proof must be an object")

    return jsonify(get_services().proofs.unlock_content(proof, artist_address))
