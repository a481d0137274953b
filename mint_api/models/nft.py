# mint_api/models/nft.py
from datetime import datetime
from mint_api.models import db


class NFT(db.Model):
    __tablename__ = "nfts"

    id = db.Column(db.Integer, primary_key=True)
    token_id = db.Column(db.Integer, nullable=False)
    owner = db.Column(db.String(42), nullable=False, index=True)    # owner-at-mint, lowercase
    name = db.Column(db.String(100), nullable=False)
    description = db.Column(db.String(1000), nullable=False)
    image = db.Column(db.String(500), nullable=False)
    attributes = db.Column(db.JSON, nullable=True)                  # [{"trait_type": ..., "value": ...}]
    contract_address = db.Column(db.String(42), nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        db.UniqueConstraint("token_id", name="uq_nfts_token_id"),
    )
