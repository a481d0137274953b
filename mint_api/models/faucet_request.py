from datetime import datetime
from mint_api.models import db


class FaucetRequest(db.Model):
    __tablename__ = "faucet_requests"

    id = db.Column(db.Integer, primary_key=True)
    task_id = db.Column(db.String(50), index=True, unique=True, nullable=True)
    address = db.Column(db.String(42), nullable=False, index=True)
    amount_wei = db.Column(db.String(80), nullable=False)       # entero en wei, como string
    status = db.Column(db.String(20), default="queued", index=True)  # queued|pending|done|error
    result = db.Column(db.JSON, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
