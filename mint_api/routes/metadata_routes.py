# mint_api/routes/metadata_routes.py
import io
import json
import logging

from flask import Blueprint, current_app, jsonify, request, send_file

from mint_api.extensions import blob_store, limiter, metadata_store
from mint_api.services.blob_store import new_ref
from mint_api.services.errors import DuplicateToken, NotFound, ValidationError
from mint_api.services.metadata_service import parse_token_id

logger = logging.getLogger(__name__)

bp = Blueprint("metadata", __name__)  # prefijo /api/metadata en mint_api/__init__.py


def _error(message: str, status: int):
    return jsonify({"ok": False, "error": message}), status


def _parse_attributes(raw):
    """multipart manda attributes como string JSON; JSON body como lista."""
    if raw is None or raw == "":
        return None
    if isinstance(raw, str):
        try:
            return json.loads(raw)
        except ValueError:
            raise ValidationError("Attributes must be valid JSON")
    return raw


@bp.get("/<token_id>")
def get_metadata(token_id):
    """Metadata: get one token."""
    try:
        tid = parse_token_id(token_id)
        rec = metadata_store.get(tid)
    except ValidationError as e:
        return _error(str(e), 400)
    except Exception:
        logger.exception("Error leyendo metadata")
        return _error("Failed to retrieve metadata", 500)

    if rec is None:
        return _error("Metadata not found", 404)
    return jsonify({"ok": True, "data": rec}), 200


@bp.get("/")
def list_metadata():
    """Metadata: list all (token id desc), ?owner=0x... filters by owner."""
    owner = request.args.get("owner")
    try:
        items = metadata_store.list_by_owner(owner) if owner else metadata_store.list()
    except ValidationError as e:
        return _error(str(e), 400)
    except Exception:
        logger.exception("Error listando metadata")
        return _error("Failed to list metadata", 500)

    return jsonify({"ok": True, "count": len(items), "items": items}), 200


@bp.post("/")
@limiter.limit(
    lambda: current_app.config["METADATA_CREATE_RATE_LIMIT"],
    error_message="Too many metadata creations, please try again later.",
)
def create_metadata():
    """
    Metadata: create for a freshly minted token.
    multipart/form-data: tokenId, owner, name, description, attributes (JSON), image (file).
    """
    form = request.form
    upload = request.files.get("image")

    if upload is None or not upload.filename:
        return _error("No file uploaded", 400)
    if upload.mimetype and not upload.mimetype.startswith("image/"):
        return _error("Uploaded file must be an image", 400)

    data = upload.read()
    if not data:
        return _error("Uploaded file is empty", 400)

    ref = new_ref()
    try:
        pending = metadata_store.create(
            form.get("tokenId"),
            form.get("owner"),
            form.get("name"),
            form.get("description"),
            blob_store.url_for(ref),
            _parse_attributes(form.get("attributes")),
        )
    except DuplicateToken as e:
        return _error(str(e), 409)
    except ValidationError as e:
        return _error(str(e), 400)
    except Exception:
        logger.exception("Error creando metadata")
        return _error("Failed to create metadata", 500)

    # la imagen se guarda en segundo plano detrás de la metadata
    blob_store.put_stream(data, upload.mimetype, upload.filename, ref=ref, after=pending.future)

    return jsonify({"ok": True, "data": pending.record}), 201


@bp.patch("/<token_id>")
def update_metadata(token_id):
    """Metadata: partial update of name/description/image/attributes."""
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        return _error("JSON object required", 400)
    try:
        tid = parse_token_id(token_id)
        fields = dict(payload)
        if "attributes" in fields:
            fields["attributes"] = _parse_attributes(fields["attributes"])
        rec = metadata_store.update(tid, fields)
    except ValidationError as e:
        return _error(str(e), 400)
    except Exception:
        logger.exception("Error actualizando metadata")
        return _error("Failed to update metadata", 500)

    if rec is None:
        return _error("Metadata not found", 404)
    return jsonify({"ok": True, "data": rec}), 200


@bp.get("/file/<ref>")
def get_file(ref):
    """Metadata: stream a stored image."""
    try:
        f = blob_store.get_stream(ref)
    except NotFound:
        return _error("File not found", 404)

    resp = send_file(
        io.BytesIO(f.data),
        mimetype=f.content_type,
        download_name=f.original_name or f.filename,
    )
    resp.headers["Cross-Origin-Resource-Policy"] = "cross-origin"
    return resp
