# mint_api/extensions.py
"""Process-wide service instances, wired to the Flask app by init_app()."""
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

from mint_api.services.blob_store import BlobStore
from mint_api.services.ledger_service import TransactionLedger
from mint_api.services.metadata_service import MetadataStore
from mint_api.services.minting_stats import MintingStatsAggregator
from mint_api.services.write_behind import WriteBehind

write_behind = WriteBehind(max_workers=1)
minting_stats = MintingStatsAggregator()
metadata_store = MetadataStore(write_behind, minting_stats)
blob_store = BlobStore(write_behind)
ledger = TransactionLedger()

# límites por IP; los valores salen de la config (RATELIMIT_* y *_RATE_LIMIT)
limiter = Limiter(key_func=get_remote_address)


def init_app(app):
    write_behind.init_app(app)
    limiter.init_app(app)
    app.extensions["minting_stats"] = minting_stats
    app.extensions["metadata_store"] = metadata_store


def start_stats_init(app, chain_reader=None):
    """Seed the minting stats in the background (chain + metadata scan)."""
    from mint_api.services.blockchain_service import ChainReader

    reader = chain_reader or ChainReader(app.config.get("CONTRACT_ADDRESS"))

    def _mint_owners():
        with app.app_context():
            return metadata_store.scan_mint_owners()

    return minting_stats.start_background_init(reader, _mint_owners)
