# mint_api/services/ledger_service.py
import logging
import math
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from mint_api.models import db
from mint_api.models.transaction import Transaction, TransactionStatus, TransactionType
from mint_api.services.addresses import normalize
from mint_api.services.errors import DuplicateHash, UpstreamUnavailable, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100

_TYPES = {t.value for t in TransactionType}
_STATUSES = {s.value for s in TransactionStatus}


def _iso(dt):
    return dt.replace(microsecond=0).isoformat() + "Z" if dt else None


# ---------------------------
# Parsing helpers
# ---------------------------

def _opt_int(data: Dict[str, Any], key: str, minimum: int = 0) -> Optional[int]:
    v = data.get(key)
    if v is None or v == "":
        return None
    if isinstance(v, bool):
        raise ValidationError(f"'{key}' must be an integer")
    try:
        n = int(v.strip()) if isinstance(v, str) else int(v)
    except (TypeError, ValueError):
        raise ValidationError(f"'{key}' must be an integer")
    if isinstance(v, float) and v != n:
        raise ValidationError(f"'{key}' must be an integer")
    if n < minimum:
        raise ValidationError(f"'{key}' must be >= {minimum}")
    return n


def _opt_price(v) -> Optional[float]:
    if v is None or v == "":
        return None
    if isinstance(v, bool):
        raise ValidationError("'price' must be a number")
    try:
        price = float(v)
    except (TypeError, ValueError):
        raise ValidationError("'price' must be a number")
    if math.isnan(price) or price < 0:
        raise ValidationError("'price' must be >= 0")
    return price


def _parse_timestamp(v) -> datetime:
    """ISO-8601 (with or without 'Z') or epoch millis; stored as naive UTC."""
    if v is None or v == "":
        return datetime.utcnow()
    try:
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return datetime.fromtimestamp(v / 1000.0, tz=timezone.utc).replace(tzinfo=None)
        if isinstance(v, str):
            dt = datetime.fromisoformat(v.strip().replace("Z", "+00:00"))
            if dt.tzinfo is not None:
                dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
            return dt
    except (ValueError, OverflowError, OSError):
        pass
    raise ValidationError("'timestamp' must be an ISO-8601 date")


def _choice(value, allowed, key) -> str:
    v = str(value).strip().lower()
    if v not in allowed:
        raise ValidationError(f"'{key}' must be one of: {', '.join(sorted(allowed))}")
    return v


def parse_paging(page, page_size) -> Tuple[int, int]:
    page = _opt_int({"page": page}, "page", minimum=1) or 1
    page_size = _opt_int({"limit": page_size}, "limit", minimum=1) or DEFAULT_PAGE_SIZE
    if page_size > MAX_PAGE_SIZE:
        raise ValidationError(f"'limit' cannot exceed {MAX_PAGE_SIZE}")
    return page, page_size


def serialize(tx: Transaction) -> Dict[str, Any]:
    return {
        "hash": tx.hash,
        "type": tx.type,
        "tokenId": tx.token_id,
        "from": tx.from_address,
        "to": tx.to_address,
        "price": tx.price,
        "status": tx.status,
        "blockNumber": tx.block_number,
        "gasUsed": tx.gas_used,
        "timestamp": _iso(tx.timestamp),
        "contractAddress": tx.contract_address,
        "createdAt": _iso(tx.created_at),
    }


class TransactionLedger:
    """Append-only record of chain events, keyed by transaction hash."""

    REQUIRED = ("hash", "type", "from", "to", "contractAddress")

    def append(self, data: Dict[str, Any]) -> Dict[str, Any]:
        missing = [k for k in self.REQUIRED if data.get(k) in (None, "")]
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

        tx_hash = data["hash"]
        if not isinstance(tx_hash, str) or not tx_hash.strip():
            raise ValidationError("'hash' must be a non-empty string")
        tx_hash = tx_hash.strip()
        if len(tx_hash) > 100:
            raise ValidationError("'hash' is too long")

        tx = Transaction(
            hash=tx_hash,
            type=_choice(data["type"], _TYPES, "type"),
            token_id=_opt_int(data, "tokenId"),
            from_address=normalize(data["from"]),
            to_address=normalize(data["to"]),
            price=_opt_price(data.get("price")),
            status=_choice(data.get("status") or TransactionStatus.PENDING.value, _STATUSES, "status"),
            block_number=_opt_int(data, "blockNumber"),
            gas_used=_opt_int(data, "gasUsed"),
            timestamp=_parse_timestamp(data.get("timestamp")),
            contract_address=normalize(data["contractAddress"]),
        )

        if self._exists(tx_hash):
            raise DuplicateHash(tx_hash)

        db.session.add(tx)
        try:
            db.session.commit()
        except IntegrityError as e:
            db.session.rollback()
            raise DuplicateHash(tx_hash) from e
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.exception(f"Error guardando transacción {tx_hash}")
            raise UpstreamUnavailable("transaction not stored") from e

        logger.info(f"Transacción {tx.type} {tx_hash} registrada (status={tx.status})")
        return serialize(tx)

    @staticmethod
    def _exists(tx_hash: str) -> bool:
        q = db.session.query(Transaction.id).filter(Transaction.hash == tx_hash)
        return db.session.query(q.exists()).scalar()

    def get(self, tx_hash: str) -> Optional[Dict[str, Any]]:
        tx = Transaction.query.filter_by(hash=(tx_hash or "").strip()).first()
        return serialize(tx) if tx else None

    def query(
        self,
        *,
        type: Optional[str] = None,
        status: Optional[str] = None,
        contract_address: Optional[str] = None,
        token_id=None,
        address: Optional[str] = None,
        page=1,
        page_size=DEFAULT_PAGE_SIZE,
    ) -> Tuple[List[Dict[str, Any]], int]:
        page, page_size = parse_paging(page, page_size)

        q = Transaction.query
        if type:
            q = q.filter(Transaction.type == _choice(type, _TYPES, "type"))
        if status:
            q = q.filter(Transaction.status == _choice(status, _STATUSES, "status"))
        if contract_address:
            q = q.filter(Transaction.contract_address == normalize(contract_address))
        tid = _opt_int({"tokenId": token_id}, "tokenId")
        if tid is not None:
            q = q.filter(Transaction.token_id == tid)
        if address:
            addr = normalize(address)
            q = q.filter(or_(Transaction.from_address == addr, Transaction.to_address == addr))

        total = q.order_by(None).count()
        rows = (
            q.order_by(Transaction.timestamp.desc(), Transaction.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
            .all()
        )
        return [serialize(t) for t in rows], total


def pagination(total: int, page: int, limit: int) -> Dict[str, int]:
    return {
        "total": total,
        "page": page,
        "pages": math.ceil(total / limit) if limit else 0,
        "limit": limit,
    }
