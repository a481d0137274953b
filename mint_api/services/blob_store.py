# mint_api/services/blob_store.py
import logging
import re
import secrets
import time
from concurrent.futures import Future
from typing import Optional

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from mint_api.metrics import WRITE_FAILURES
from mint_api.models import db
from mint_api.models.stored_file import StoredFile
from mint_api.services.errors import NotFound, UpstreamUnavailable

logger = logging.getLogger(__name__)

_REF_RE = re.compile(r"^[a-f0-9]{24}$")


def new_ref() -> str:
    """24 hex chars, same shape as a Mongo ObjectId."""
    return secrets.token_hex(12)


class BlobStore:
    """
    Stores uploaded image bytes in the `stored_files` table.

    put_stream() hands out the reference right away and queues the write;
    metadata may point at a blob whose bytes are not stored yet.
    """

    def __init__(self, writer):
        self._writer = writer

    def url_for(self, ref: str) -> str:
        base = current_app.config.get("PUBLIC_BASE_URL", "").rstrip("/")
        return f"{base}/api/metadata/file/{ref}"

    def put_stream(self, data: bytes, content_type: str, original_name: Optional[str] = None,
                   ref: Optional[str] = None, after: Optional[Future] = None):
        """
        Queue `data` for storage. Returns (ref, future).

        `after` is the future of the metadata insert that points at this
        blob; if that insert failed the bytes are not stored.
        """
        ref = ref or new_ref()
        filename = f"{int(time.time() * 1000)}-{original_name or ref}"
        future = self._writer.submit(
            self._write, ref, bytes(data), content_type or "application/octet-stream",
            filename, original_name, after,
        )
        return ref, future

    @staticmethod
    def _write(ref, data, content_type, filename, original_name, after=None):
        if after is not None and after.exception() is not None:
            WRITE_FAILURES.labels(kind="blob", reason="orphaned").inc()
            logger.warning(f"Blob {ref} descartado: su metadata no se guardó")
            return None
        rec = StoredFile(
            id=ref,
            filename=filename,
            original_name=original_name,
            content_type=content_type,
            length=len(data),
            data=data,
        )
        db.session.add(rec)
        try:
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            WRITE_FAILURES.labels(kind="blob", reason="database").inc()
            logger.exception(f"No se pudo guardar el blob {ref}")
            raise UpstreamUnavailable(f"blob {ref} not stored") from e
        logger.info(f"Blob {ref} guardado ({len(data)} bytes, {content_type})")
        return ref

    def get_stream(self, ref: str) -> StoredFile:
        if not ref or not _REF_RE.match(ref):
            raise NotFound("File not found")
        rec = db.session.get(StoredFile, ref)
        if rec is None:
            raise NotFound("File not found")
        return rec
