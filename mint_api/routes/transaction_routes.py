# mint_api/routes/transaction_routes.py
import logging

from flask import Blueprint, jsonify, request

from mint_api.extensions import ledger
from mint_api.services.errors import DuplicateHash, ValidationError
from mint_api.services.ledger_service import pagination, parse_paging

logger = logging.getLogger(__name__)

bp = Blueprint("transactions", __name__)


@bp.post("/")
def create_transaction():
    """Transactions: append a ledger entry."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({"ok": False, "error": "JSON body required"}), 400
    try:
        entry = ledger.append(data)
    except DuplicateHash as e:
        return jsonify({"ok": False, "error": str(e)}), 409
    except ValidationError as e:
        return jsonify({"ok": False, "error": str(e)}), 400
    except Exception:
        logger.exception("Error creando transacción")
        return jsonify({"ok": False, "error": "Failed to create transaction"}), 500
    return jsonify({"ok": True, "data": entry}), 201


@bp.get("/")
def list_transactions():
    """
    Transactions: filtered, newest first.
    Query: type, status, contractAddress, tokenId, address (from OR to), page, limit.
    """
    args = request.args
    try:
        page, limit = parse_paging(args.get("page"), args.get("limit"))
        items, total = ledger.query(
            type=args.get("type"),
            status=args.get("status"),
            contract_address=args.get("contractAddress"),
            token_id=args.get("tokenId"),
            address=args.get("address"),
            page=page,
            page_size=limit,
        )
    except ValidationError as e:
        return jsonify({"ok": False, "error": str(e)}), 400
    except Exception:
        logger.exception("Error listando transacciones")
        return jsonify({"ok": False, "error": "Failed to fetch transactions"}), 500

    return jsonify({
        "ok": True,
        "items": items,
        "pagination": pagination(total, page, limit),
    }), 200


@bp.get("/<tx_hash>")
def get_transaction(tx_hash):
    """Transactions: one entry by hash."""
    entry = ledger.get(tx_hash)
    if entry is None:
        return jsonify({"ok": False, "error": "Transaction not found"}), 404
    return jsonify({"ok": True, "data": entry}), 200
