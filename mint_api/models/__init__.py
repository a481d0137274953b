# mint_api/models/__init__.py
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate

db = SQLAlchemy()
migrate = Migrate()


def init_app(app):
    app.config.setdefault("SQLALCHEMY_TRACK_MODIFICATIONS", False)
    db.init_app(app)
    migrate.init_app(app, db)


# Importaciones para registrar los modelos
from .nft import NFT  # noqa
from .transaction import Transaction, TransactionStatus, TransactionType  # noqa
from .stored_file import StoredFile  # noqa
from .faucet_request import FaucetRequest  # noqa

__all__ = [
    "db",
    "migrate",
    "NFT",
    "Transaction",
    "TransactionStatus",
    "TransactionType",
    "StoredFile",
    "FaucetRequest",
]
