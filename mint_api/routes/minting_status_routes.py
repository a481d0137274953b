# mint_api/routes/minting_status_routes.py
from flask import Blueprint, jsonify, request

from mint_api.extensions import minting_stats
from mint_api.services.addresses import normalize
from mint_api.services.errors import ValidationError

bp = Blueprint("minting_status", __name__)


def _stats_payload(stats):
    return {"ok": True, "state": minting_stats.state, "data": stats.to_dict()}


@bp.get("/")
def get_status():
    """Minting: current stats snapshot (zeros until the chain read finishes)."""
    return jsonify(_stats_payload(minting_stats.get_stats())), 200


@bp.get("/user/<address>")
def user_mint_count(address):
    """Minting: how many tokens an address has minted."""
    try:
        key = normalize(address)
    except ValidationError as e:
        return jsonify({"ok": False, "error": str(e)}), 400
    return jsonify({
        "ok": True,
        "data": {"address": key, "mintCount": minting_stats.get_user_mint_count(key)},
    }), 200


@bp.put("/max-supply")
def update_max_supply():
    """Minting: set the off-chain max supply (admin)."""
    data = request.get_json(silent=True) or {}
    raw = data.get("maxSupply")
    # admite 500 o "500" (form del front)
    if isinstance(raw, str) and raw.strip().lstrip("-").isdigit():
        raw = int(raw.strip())
    try:
        stats = minting_stats.set_max_supply(raw)
    except ValidationError as e:
        return jsonify({"ok": False, "error": str(e)}), 400
    return jsonify(_stats_payload(stats)), 200


@bp.post("/reset")
def reset():
    """Minting: zero the counters, keep max supply (admin)."""
    return jsonify(_stats_payload(minting_stats.reset_stats())), 200
