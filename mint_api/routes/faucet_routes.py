# mint_api/routes/faucet_routes.py
from flask import Blueprint, current_app, jsonify, request

from mint_api.extensions import limiter
from mint_api.models import db, FaucetRequest
from mint_api.services.addresses import normalize
from mint_api.services.blockchain_service import eth_to_wei
from mint_api.services.errors import ValidationError

bp = Blueprint("faucet", __name__)


def _iso(dt):
    return dt.replace(microsecond=0).isoformat() + "Z" if dt else None


@bp.post("/")
@limiter.limit(
    lambda: current_app.config["FAUCET_RATE_LIMIT"],
    error_message="You can only request ETH from the faucet once every 24 hours.",
)
def request_funds():
    """Faucet: enqueue a test-ETH transfer to `address`."""
    data = request.get_json(silent=True) or {}
    try:
        address = normalize(data.get("address"))
        amount_wei = eth_to_wei(current_app.config.get("FAUCET_AMOUNT_ETH", "0.5"))
    except ValidationError as e:
        return jsonify({"ok": False, "error": str(e)}), 400

    # Import diferido de la task
    try:
        from mint_api.tasks.faucet_tasks import dispense
    except Exception:
        return jsonify({"ok": False, "error": "Task 'faucet.dispense' no disponible"}), 501

    job = FaucetRequest(address=address, amount_wei=str(amount_wei), status="queued")
    db.session.add(job)
    db.session.commit()

    try:
        async_res = dispense.delay(job.id)
    except Exception as e:
        current_app.logger.error(f"No se pudo encolar faucet job {job.id}: {e}")
        job.status = "error"
        job.result = {"error": "queue unavailable"}
        db.session.commit()
        return jsonify({"ok": False, "error": "No se pudo encolar la tarea"}), 503

    job.task_id = async_res.id
    db.session.commit()

    return jsonify({"ok": True, "job_id": job.id, "task_id": job.task_id, "status": job.status}), 202


@bp.get("/<int:job_id>")
def job_status(job_id: int):
    """Faucet: job status."""
    job = db.session.get(FaucetRequest, job_id)
    if not job:
        return jsonify({"ok": False, "error": "job no encontrado"}), 404
    return jsonify({
        "ok": True,
        "job_id": job.id,
        "task_id": job.task_id,
        "address": job.address,
        "amount_wei": job.amount_wei,
        "status": job.status,
        "result": job.result,
        "created_at": _iso(job.created_at),
        "updated_at": _iso(job.updated_at),
    }), 200
