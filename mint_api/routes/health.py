from flask import Blueprint, jsonify

from mint_api.extensions import minting_stats, write_behind

bp = Blueprint("health", __name__)


@bp.get("/healthz")
def healthz():
    """Healthcheck (+ estado de estadísticas y escrituras pendientes)."""
    return jsonify({
        "ok": True,
        "minting_stats": minting_stats.state,
        "pending_writes": write_behind.pending(),
    }), 200
