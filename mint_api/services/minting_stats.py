# mint_api/services/minting_stats.py
"""
In-memory minting statistics.

Two paths update the counters and they are kept apart:

  * reconciliation: once per process, `initialize()` reads totalSupply and
    maxSupply from the contract and rebuilds per-owner counts from the
    stored NFT records (owner at mint time). The result replaces the
    baseline.
  * incremental: `record_mint()` is called by the metadata store for each
    accepted create. It never touches the chain.

Mints recorded while initialization is in flight are logged; once the
baseline is installed, the ones the store scan did not see are applied on
top of it.

All reads and writes of the counters go through one lock. Reads never wait
for initialization: until it completes (or if it fails) callers see zeros.
"""
import copy
import logging
import threading
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from mint_api.metrics import MINTS_RECORDED
from mint_api.services.addresses import normalize
from mint_api.services.errors import ValidationError

logger = logging.getLogger(__name__)

UNINITIALIZED = "uninitialized"
INITIALIZING = "initializing"
READY = "ready"
FAILED = "failed"


@dataclass
class MintingStats:
    total_supply: int = 0
    max_supply: int = 0
    total_owners: int = 0
    user_mint_counts: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "totalSupply": self.total_supply,
            "maxSupply": self.max_supply,
            "totalOwners": self.total_owners,
            "userMintCounts": dict(self.user_mint_counts),
        }


def _merge_counts(pairs: Iterable[Tuple[str, int]]) -> Dict[str, int]:
    counts: Dict[str, int] = {}
    for owner, n in pairs:
        key = normalize(owner)
        counts[key] = counts.get(key, 0) + int(n)
    return counts


class MintingStatsAggregator:
    def __init__(self):
        self._lock = threading.Lock()
        self._stats = MintingStats()
        self._state = UNINITIALIZED
        self._init_thread: Optional[threading.Thread] = None
        self._mints_during_init: Optional[List[Tuple[int, str]]] = None

    # --- reads ---

    @property
    def state(self) -> str:
        return self._state

    def get_stats(self) -> MintingStats:
        with self._lock:
            return copy.deepcopy(self._stats)

    def get_user_mint_count(self, owner: str) -> int:
        key = normalize(owner)
        with self._lock:
            return self._stats.user_mint_counts.get(key, 0)

    # --- writes ---

    def _apply_mint(self, key: str):
        # lock tomado por el llamador
        s = self._stats
        s.total_supply += 1
        if key not in s.user_mint_counts:
            s.user_mint_counts[key] = 0
            s.total_owners += 1
        s.user_mint_counts[key] += 1

    def record_mint(self, token_id: int, owner: str) -> MintingStats:
        key = normalize(owner)
        with self._lock:
            self._apply_mint(key)
            if self._mints_during_init is not None:
                self._mints_during_init.append((token_id, key))
            snapshot = copy.deepcopy(self._stats)
        MINTS_RECORDED.inc()
        logger.info(f"Mint registrado: token {token_id} -> {key} (supply={snapshot.total_supply})")
        return snapshot

    def set_max_supply(self, value) -> MintingStats:
        if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
            raise ValidationError("Invalid max supply value")
        with self._lock:
            if value < self._stats.total_supply:
                # el contrato rechaza esto on-chain; aquí sólo se avisa
                logger.warning(
                    f"maxSupply={value} por debajo del totalSupply actual ({self._stats.total_supply})"
                )
            self._stats.max_supply = value
            return copy.deepcopy(self._stats)

    def reset_stats(self) -> MintingStats:
        with self._lock:
            self._stats = MintingStats(max_supply=self._stats.max_supply)
            return copy.deepcopy(self._stats)

    def install_baseline(self, total_supply: int, max_supply: int,
                         owner_counts: Dict[str, int]) -> MintingStats:
        counts = _merge_counts(owner_counts.items())
        with self._lock:
            self._stats = MintingStats(
                total_supply=int(total_supply),
                max_supply=int(max_supply),
                total_owners=len(counts),
                user_mint_counts=counts,
            )
            return copy.deepcopy(self._stats)

    # --- reconciliation ---

    def initialize(self, chain_reader, mint_owners_loader: Callable[[], Dict[int, str]]) -> bool:
        """
        Build the baseline from the chain and the metadata store.

        `mint_owners_loader` returns {token_id: owner_at_mint} for every stored
        record. Never raises: on failure the current counters stay in place.
        """
        with self._lock:
            if self._state in (INITIALIZING, READY):
                return self._state == READY
            self._state = INITIALIZING
            self._mints_during_init = []

        try:
            total_supply = int(chain_reader.total_supply())
            max_supply = int(chain_reader.max_supply())
            minted = dict(mint_owners_loader())
        except Exception:
            logger.exception("No se pudieron inicializar las estadísticas de minteo")
            with self._lock:
                self._state = FAILED
                self._mints_during_init = None
            return False

        counts = _merge_counts((owner, 1) for owner in minted.values())
        with self._lock:
            self._stats = MintingStats(
                total_supply=total_supply,
                max_supply=max_supply,
                total_owners=len(counts),
                user_mint_counts=counts,
            )
            missed = [key for token_id, key in self._mints_during_init if token_id not in minted]
            for key in missed:
                self._apply_mint(key)
            self._mints_during_init = None
            self._state = READY
            snapshot = copy.deepcopy(self._stats)

        logger.info(
            f"Estadísticas inicializadas: supply={snapshot.total_supply} "
            f"max={snapshot.max_supply} owners={snapshot.total_owners} "
            f"(mints reaplicados={len(missed)})"
        )
        return True

    def start_background_init(self, chain_reader, mint_owners_loader) -> Optional[threading.Thread]:
        """Fire-and-forget initialize(); later calls are no-ops."""
        with self._lock:
            if self._init_thread is not None:
                return None
            self._init_thread = threading.Thread(
                target=self.initialize,
                args=(chain_reader, mint_owners_loader),
                name="minting-stats-init",
                daemon=True,
            )
        self._init_thread.start()
        return self._init_thread
