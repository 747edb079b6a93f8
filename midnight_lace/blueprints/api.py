"""
Catalog and Purchase Blueprint - Songs, Fan Ledger, Purchases

Request/response mapping only; validation beyond field presence lives in the
purchase workflow.
"""

import logging

from flask import Blueprint, jsonify, request

from midnight_lace.errors import ValidationError
from midnight_lace.factory import get_services
from midnight_lace.security import limiter

logger = logging.getLogger(__name__)

api_bp = Blueprint("api", __name__)

PURCHASE_RATE_LIMIT = "10 per minute"


@api_bp.route("/songs", methods=["GET"])
def list_songs():
    """
    List the song catalog.

    Returns:
        JSON with songs and the catalog owner's address
    """
    catalog = get_services().catalog
    return jsonify({
        "songs": [song.to_dict() for song in catalog.list()],
        "artistAddress": catalog.artist_address,
    })


@api_bp.route("/artists", methods=["GET"])
def list_artists():
    catalog = get_services().catalog
    return jsonify({"artists": [artist.to_dict() for artist in catalog.artists()]})


@api_bp.route("/fan/balance/<path:address>", methods=["GET"])
def fan_balance(address: str):
    """
    Fetch a fan's ledger account, creating it with the initial balance on
    first lookup.
    """
    account = get_services().ledger.get_or_create(address)
    return jsonify({
        "address": account.address,
        "balance": account.balance,
        "spent": account.spent,
        "purchases": [p.to_dict() for p in account.purchases],
    })


@api_bp.route("/fan/purchases/<path:address>", methods=["GET"])
def fan_purchases(address: str):
    purchases = get_services().ledger.purchases(address)
    return jsonify({
        "address": address,
        "purchases": [p.to_dict() for p in purchases],
    })


@api_bp.route("/purchase-song", methods=["POST"])
@limiter.limit(PURCHASE_RATE_LIMIT)
def purchase_song():
    """
    Purchase a song.

    Expected JSON body:
        - fanAddress: fan wallet address
        - songId: catalog song id

    Returns:
        JSON with transaction reference, song and updated fan totals
    """
    data = request.get_json(silent=True) or {}
    fan_address = data.get("fanAddress")
    song_id = data.get("songId")

    if not isinstance(fan_address, str) or not isinstance(song_id, str) or not fan_address or not song_id:
        raise ValidationError("Missing required fields: fanAddress, songId")

    result = get_services().workflow.purchase(fan_address, song_id)
    return jsonify(result.to_dict())
