# mint_api/models/transaction.py
import enum
from datetime import datetime
from mint_api.models import db


class TransactionType(str, enum.Enum):
    MINT = "mint"
    TRANSFER = "transfer"
    SALE = "sale"
    APPROVAL = "approval"


class TransactionStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    FAILED = "failed"


class Transaction(db.Model):
    __tablename__ = "transactions"

    id = db.Column(db.Integer, primary_key=True)
    hash = db.Column(db.String(100), nullable=False)
    type = db.Column(db.String(20), nullable=False)
    token_id = db.Column(db.Integer, nullable=True, index=True)
    from_address = db.Column(db.String(42), nullable=False, index=True)
    to_address = db.Column(db.String(42), nullable=False, index=True)
    price = db.Column(db.Float, nullable=True)
    status = db.Column(db.String(20), nullable=False, default=TransactionStatus.PENDING.value)
    block_number = db.Column(db.BigInteger, nullable=True)
    gas_used = db.Column(db.BigInteger, nullable=True)
    timestamp = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, index=True)
    contract_address = db.Column(db.String(42), nullable=False, index=True)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        db.UniqueConstraint("hash", name="uq_transactions_hash"),
    )
