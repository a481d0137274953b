# mint_api/services/metadata_service.py
import logging
import threading
from datetime import datetime
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

from flask import current_app
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from mint_api.metrics import WRITE_FAILURES
from mint_api.models import db
from mint_api.models.nft import NFT
from mint_api.services.addresses import normalize
from mint_api.services.errors import DuplicateToken, UpstreamUnavailable, ValidationError

logger = logging.getLogger(__name__)

NAME_LEN = (3, 100)
DESCRIPTION_LEN = (3, 1000)
MUTABLE_FIELDS = ("name", "description", "image", "attributes")


def _iso(dt):
    return dt.replace(microsecond=0).isoformat() + "Z" if dt else None


# ---------------------------
# Validation helpers
# ---------------------------

def parse_token_id(value) -> int:
    if isinstance(value, bool):
        raise ValidationError("Invalid token ID")
    try:
        token_id = int(str(value).strip()) if isinstance(value, str) else int(value)
    except (TypeError, ValueError):
        raise ValidationError("Invalid token ID")
    if isinstance(value, float) and value != token_id:
        raise ValidationError("Invalid token ID")
    if token_id <= 0:
        raise ValidationError("Invalid token ID")
    return token_id


def _check_text(field_name: str, value, bounds) -> str:
    lo, hi = bounds
    label = field_name.capitalize()
    if value is None:
        raise ValidationError(f"{label} is required")
    if not isinstance(value, str):
        raise ValidationError(f"{label} must be a string")
    value = value.strip()
    if len(value) < lo:
        raise ValidationError(f"{label} must be at least {lo} characters long")
    if len(value) > hi:
        raise ValidationError(f"{label} cannot exceed {hi} characters")
    return value


def _check_image(value) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError("Image URL is required")
    value = value.strip()
    parsed = urlparse(value)
    if parsed.scheme not in ("http", "https", "ipfs") or not parsed.netloc:
        raise ValidationError("Image must be a valid URI")
    return value


def _check_attributes(value) -> Optional[List[Dict[str, Any]]]:
    if value is None:
        return None
    if not isinstance(value, list):
        raise ValidationError("Attributes must be an array")
    out = []
    for item in value:
        if not isinstance(item, dict):
            raise ValidationError("Each attribute must be an object")
        trait = item.get("trait_type")
        val = item.get("value")
        if not isinstance(trait, str) or not trait.strip():
            raise ValidationError("Each attribute needs a trait_type")
        if isinstance(val, bool) or not isinstance(val, (str, int, float)):
            raise ValidationError("Each attribute needs a string or number value")
        if isinstance(val, str) and not val.strip():
            raise ValidationError("Each attribute needs a string or number value")
        out.append({"trait_type": trait.strip(), "value": val})
    return out


def validate_fields(fields: Dict[str, Any], partial: bool = False) -> Dict[str, Any]:
    checkers = {
        "name": lambda v: _check_text("name", v, NAME_LEN),
        "description": lambda v: _check_text("description", v, DESCRIPTION_LEN),
        "image": _check_image,
        "attributes": _check_attributes,
    }
    clean = {}
    for key, check in checkers.items():
        if partial and fields.get(key) is None:
            continue
        clean[key] = check(fields.get(key))
    return clean


def serialize(nft: NFT) -> Dict[str, Any]:
    return {
        "tokenId": nft.token_id,
        "owner": nft.owner,
        "name": nft.name,
        "description": nft.description,
        "image": nft.image,
        "attributes": nft.attributes or [],
        "contractAddress": nft.contract_address,
        "createdAt": _iso(nft.created_at),
        "updatedAt": _iso(nft.updated_at),
    }


class PendingWrite:
    """Accepted record plus the future of its durable write."""

    def __init__(self, record: Dict[str, Any], future):
        self.record = record
        self.future = future

    def result(self, timeout: Optional[float] = None) -> Dict[str, Any]:
        return self.future.result(timeout)


class MetadataStore:
    """
    Per-token metadata keyed by token id.

    create() validates, reserves the token id, queues the insert and records
    the mint in the aggregator before returning, once per accepted create.
    A deferred insert that fails afterwards is logged and counted in
    write_behind_failures_total. The unique constraint on token_id is the
    final arbiter across processes; the reservation set and the existence
    check give the fast 409.
    """

    def __init__(self, writer, aggregator):
        self._writer = writer
        self._aggregator = aggregator
        self._reserved = set()
        self._lock = threading.Lock()

    # --- create ---

    def create(self, token_id, owner, name, description, image, attributes=None) -> PendingWrite:
        token_id = parse_token_id(token_id)
        owner = normalize(owner)
        clean = validate_fields({
            "name": name,
            "description": description,
            "image": image,
            "attributes": attributes,
        })

        with self._lock:
            if token_id in self._reserved:
                raise DuplicateToken(token_id)
            self._reserved.add(token_id)

        try:
            if self._exists(token_id):
                raise DuplicateToken(token_id)
            now = datetime.utcnow()
            row = {
                "token_id": token_id,
                "owner": owner,
                "contract_address": (current_app.config.get("CONTRACT_ADDRESS") or "").lower() or None,
                "created_at": now,
                "updated_at": now,
                **clean,
            }
            future = self._writer.submit(self._persist, row)
        except BaseException:
            self._release(token_id)
            raise

        self._aggregator.record_mint(token_id, owner)
        record = serialize(NFT(**row))
        return PendingWrite(record, future)

    def _persist(self, row: Dict[str, Any]) -> Dict[str, Any]:
        token_id = row["token_id"]
        nft = NFT(**row)
        db.session.add(nft)
        try:
            db.session.commit()
        except IntegrityError as e:
            db.session.rollback()
            WRITE_FAILURES.labels(kind="metadata", reason="duplicate").inc()
            logger.error(f"Token {token_id} ya tenía metadata al persistir; registro aceptado no guardado")
            raise DuplicateToken(token_id) from e
        except SQLAlchemyError as e:
            db.session.rollback()
            WRITE_FAILURES.labels(kind="metadata", reason="database").inc()
            logger.exception(f"Error guardando metadata del token {token_id}")
            raise UpstreamUnavailable(f"metadata for token {token_id} not stored") from e
        finally:
            self._release(token_id)

        logger.info(f"Metadata del token {token_id} guardada")
        return serialize(nft)

    def _release(self, token_id: int):
        with self._lock:
            self._reserved.discard(token_id)

    @staticmethod
    def _exists(token_id: int) -> bool:
        q = db.session.query(NFT.id).filter(NFT.token_id == token_id)
        return db.session.query(q.exists()).scalar()

    # --- reads ---

    def get(self, token_id) -> Optional[Dict[str, Any]]:
        token_id = parse_token_id(token_id)
        nft = NFT.query.filter_by(token_id=token_id).first()
        return serialize(nft) if nft else None

    def list(self) -> List[Dict[str, Any]]:
        return [serialize(n) for n in NFT.query.order_by(NFT.token_id.desc()).all()]

    def list_by_owner(self, owner: str) -> List[Dict[str, Any]]:
        key = normalize(owner)
        return [rec for rec in self.list() if rec["owner"] == key]

    def scan_mint_owners(self) -> Dict[int, str]:
        """{token_id: owner at mint} for every stored record."""
        rows = db.session.query(NFT.token_id, NFT.owner).all()
        return {token_id: owner.lower() for token_id, owner in rows}

    # --- update ---

    def update(self, token_id, fields: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        token_id = parse_token_id(token_id)
        unknown = set(k for k, v in fields.items() if v is not None) - set(MUTABLE_FIELDS)
        if unknown:
            raise ValidationError(f"Fields cannot be updated: {', '.join(sorted(unknown))}")
        clean = validate_fields(fields, partial=True)

        nft = NFT.query.filter_by(token_id=token_id).first()
        if nft is None:
            return None
        for key, value in clean.items():
            setattr(nft, key, value)
        try:
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.exception(f"Error actualizando metadata del token {token_id}")
            raise UpstreamUnavailable("metadata update failed") from e
        return serialize(nft)
