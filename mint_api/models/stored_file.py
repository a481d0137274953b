# mint_api/models/stored_file.py
from datetime import datetime
from mint_api.models import db


class StoredFile(db.Model):
    """Uploaded image bytes, referenced from NFT.image by id."""

    __tablename__ = "stored_files"

    id = db.Column(db.String(24), primary_key=True)     # 24 hex chars, estilo ObjectId
    filename = db.Column(db.String(255), nullable=False)
    original_name = db.Column(db.String(255), nullable=True)
    content_type = db.Column(db.String(100), nullable=False, default="application/octet-stream")
    length = db.Column(db.Integer, nullable=False, default=0)
    data = db.Column(db.LargeBinary, nullable=False)
    uploaded_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
