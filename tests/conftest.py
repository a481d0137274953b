import os
import pytest

from mint_api import create_app
from mint_api.extensions import limiter, minting_stats, write_behind
from mint_api.models import db as _db, FaucetRequest, NFT, StoredFile, Transaction

OWNER = "0xABCDef0123456789abcdef0123456789ABCD1234"
OTHER = "0x1234567890123456789012345678901234567890"
CONTRACT = "0x5FbDB2315678afecb367f032d93F642f64180aa3"


@pytest.fixture(scope="session")
def app():
    os.environ["FLASK_ENV"] = "testing"
    app = create_app("testing")
    with app.app_context():
        _db.create_all()
        yield app
        write_behind.flush(timeout=10)
        _db.drop_all()


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def settle():
    """Wait for queued metadata/blob writes."""
    def _settle():
        assert write_behind.flush(timeout=10)
    return _settle


@pytest.fixture(autouse=True)
def clean_state(app):
    yield
    write_behind.flush(timeout=10)
    _db.session.rollback()
    for model in (NFT, Transaction, StoredFile, FaucetRequest):
        _db.session.query(model).delete()
    _db.session.commit()
    _db.session.remove()
    minting_stats.install_baseline(0, 0, {})
    limiter.reset()
