# mint_api/tasks/faucet_tasks.py
import logging
from datetime import datetime
from decimal import Decimal
from typing import Optional

from celery import shared_task
from flask import current_app
from hexbytes import HexBytes

from mint_api.extensions import ledger
from mint_api.models import db, FaucetRequest
from mint_api.services.blockchain_service import _build_w3, faucet_address, send_ether
from mint_api.services.errors import MintApiError

logger = logging.getLogger(__name__)

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


def _to_hex(x):
    return x.hex() if isinstance(x, (bytes, HexBytes)) else x


def _clean_receipt(receipt: Optional[dict]) -> Optional[dict]:
    if not receipt:
        return None
    cleaned = {
        "transactionHash": _to_hex(receipt.get("transactionHash")),
        "blockHash": _to_hex(receipt.get("blockHash")),
        "blockNumber": receipt.get("blockNumber"),
        "gasUsed": receipt.get("gasUsed"),
        "effectiveGasPrice": receipt.get("effectiveGasPrice"),
        "status": receipt.get("status"),
    }
    return {k: v for k, v in cleaned.items() if v is not None}


def _record_transfer(tx_hash: str, sender: str, to: str, amount_wei: int, receipt: dict):
    status = "confirmed" if receipt.get("status") == 1 else "failed"
    try:
        ledger.append({
            "hash": tx_hash,
            "type": "transfer",
            "from": sender,
            "to": to,
            "price": float(Decimal(amount_wei) / Decimal(10**18)),
            "status": status,
            "blockNumber": receipt.get("blockNumber"),
            "gasUsed": receipt.get("gasUsed"),
            "contractAddress": current_app.config.get("CONTRACT_ADDRESS") or ZERO_ADDRESS,
        })
    except MintApiError:
        # la transferencia ya se hizo; sólo se pierde el registro en el ledger
        logger.exception(f"No se pudo registrar la transferencia del faucet {tx_hash}")


@shared_task(name="faucet.dispense")
def dispense(job_id: int):
    """
    Envía ETH de prueba a la dirección del FaucetRequest, espera el receipt,
    lo registra en el ledger y actualiza el job.
    """
    job = db.session.get(FaucetRequest, job_id)
    if not job:
        return {"error": f"FaucetRequest id {job_id} not found"}

    try:
        w3 = _build_w3()
        amount_wei = int(job.amount_wei)
        sender = faucet_address(w3)
        tx_hash = send_ether(w3, job.address, amount_wei)

        job.status = "pending"
        job.result = {"tx_hash": tx_hash}
        job.updated_at = datetime.utcnow()
        db.session.commit()

        receipt = dict(w3.eth.wait_for_transaction_receipt(tx_hash, timeout=600))
        _record_transfer(tx_hash, sender, job.address, amount_wei, receipt)

        job.status = "done" if receipt.get("status") == 1 else "error"
        job.result = {"tx_hash": tx_hash, "receipt": _clean_receipt(receipt)}
        job.updated_at = datetime.utcnow()
        db.session.commit()

        return {"tx_hash": tx_hash, "status": job.status}

    except Exception as e:
        db.session.rollback()
        job.status = "error"
        job.result = {"error": str(e)}
        job.updated_at = datetime.utcnow()
        db.session.commit()
        raise
