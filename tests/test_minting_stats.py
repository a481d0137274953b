import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from mint_api.services.errors import UpstreamUnavailable, ValidationError
from mint_api.services.minting_stats import (
    FAILED,
    READY,
    UNINITIALIZED,
    MintingStatsAggregator,
)

OWNER = "0xABCDef0123456789abcdef0123456789ABCD1234"
OTHER = "0x1234567890123456789012345678901234567890"


def _addr(i: int) -> str:
    return "0x" + format(i, "040x")


class FakeChain:
    def __init__(self, total=7, maximum=100):
        self.total = total
        self.maximum = maximum

    def total_supply(self):
        return self.total

    def max_supply(self):
        return self.maximum


class BrokenChain:
    def total_supply(self):
        raise UpstreamUnavailable("rpc down")

    def max_supply(self):
        raise UpstreamUnavailable("rpc down")


def test_defaults_before_init():
    agg = MintingStatsAggregator()
    stats = agg.get_stats()
    assert agg.state == UNINITIALIZED
    assert stats.to_dict() == {"totalSupply": 0, "maxSupply": 0, "totalOwners": 0, "userMintCounts": {}}


def test_record_mint_new_and_repeat_owner():
    agg = MintingStatsAggregator()
    agg.record_mint(1, OWNER)
    stats = agg.record_mint(2, OWNER.lower())
    assert stats.total_supply == 2
    assert stats.total_owners == 1
    assert stats.user_mint_counts == {OWNER.lower(): 2}


def test_user_mint_count_ignores_case_and_defaults_to_zero():
    agg = MintingStatsAggregator()
    agg.record_mint(1, OWNER)
    assert agg.get_user_mint_count(OWNER.upper().replace("0X", "0x")) == 1
    assert agg.get_user_mint_count(OWNER.lower()) == 1
    assert agg.get_user_mint_count(_addr(99)) == 0


def test_user_mint_count_rejects_bad_address():
    agg = MintingStatsAggregator()
    with pytest.raises(ValidationError):
        agg.get_user_mint_count("0x1234")


def test_concurrent_mints_distinct_owners():
    agg = MintingStatsAggregator()
    n = 200
    with ThreadPoolExecutor(max_workers=16) as pool:
        list(pool.map(lambda i: agg.record_mint(i + 1, _addr(i + 1)), range(n)))
    stats = agg.get_stats()
    assert stats.total_supply == n
    assert stats.total_owners == n
    assert all(c == 1 for c in stats.user_mint_counts.values())


def test_concurrent_mints_same_owner():
    agg = MintingStatsAggregator()
    n = 200
    barrier = threading.Barrier(8)

    def worker(k):
        barrier.wait()
        for j in range(n // 8):
            agg.record_mint(k * 1000 + j, OWNER)

    threads = [threading.Thread(target=worker, args=(k,)) for k in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    stats = agg.get_stats()
    assert stats.total_supply == n
    assert stats.total_owners == 1
    assert stats.user_mint_counts[OWNER.lower()] == n


def test_snapshot_is_a_copy():
    agg = MintingStatsAggregator()
    snap = agg.record_mint(1, OWNER)
    snap.user_mint_counts[OWNER.lower()] = 999
    snap.total_supply = 999
    assert agg.get_user_mint_count(OWNER) == 1
    assert agg.get_stats().total_supply == 1


@pytest.mark.parametrize("bad", [-1, 0, True, 2.5, "500", None])
def test_set_max_supply_rejects_non_positive_ints(bad):
    agg = MintingStatsAggregator()
    with pytest.raises(ValidationError):
        agg.set_max_supply(bad)


def test_set_max_supply():
    agg = MintingStatsAggregator()
    agg.set_max_supply(500)
    assert agg.get_stats().max_supply == 500


def test_set_max_supply_below_total_is_accepted():
    agg = MintingStatsAggregator()
    for i in range(3):
        agg.record_mint(i + 1, _addr(i + 1))
    stats = agg.set_max_supply(2)
    assert stats.max_supply == 2
    assert stats.total_supply == 3


def test_reset_keeps_max_supply():
    agg = MintingStatsAggregator()
    agg.set_max_supply(1000)
    agg.record_mint(1, OWNER)
    agg.record_mint(2, _addr(2))
    agg.reset_stats()
    stats = agg.get_stats()
    assert stats.total_supply == 0
    assert stats.total_owners == 0
    assert stats.user_mint_counts == {}
    assert stats.max_supply == 1000


def test_initialize_builds_baseline():
    agg = MintingStatsAggregator()
    other = _addr(2).upper().replace("0X", "0x")
    ok = agg.initialize(FakeChain(total=5, maximum=100), lambda: {1: OWNER, 2: OWNER, 3: OWNER, 4: other, 5: other})
    assert ok is True
    assert agg.state == READY
    stats = agg.get_stats()
    assert stats.total_supply == 5
    assert stats.max_supply == 100
    assert stats.total_owners == 2
    assert stats.user_mint_counts[OWNER.lower()] == 3


def test_initialize_merges_case_variants_from_scan():
    agg = MintingStatsAggregator()
    agg.initialize(FakeChain(), lambda: {1: OWNER, 2: OWNER.lower(), 3: OWNER.lower()})
    stats = agg.get_stats()
    assert stats.total_owners == 1
    assert stats.user_mint_counts == {OWNER.lower(): 3}


def test_increments_after_initialize_build_on_baseline():
    agg = MintingStatsAggregator()
    agg.initialize(FakeChain(total=5, maximum=100), lambda: {i: OWNER for i in range(1, 6)})
    stats = agg.record_mint(6, OWNER)
    assert stats.total_supply == 6
    assert stats.total_owners == 1
    assert stats.user_mint_counts[OWNER.lower()] == 6


def test_initialize_failure_keeps_zero_defaults():
    agg = MintingStatsAggregator()
    assert agg.initialize(BrokenChain(), lambda: {}) is False
    assert agg.state == FAILED
    assert agg.get_stats().total_supply == 0
    # sigue aceptando mints incrementales
    assert agg.record_mint(1, OWNER).total_supply == 1


def test_initialize_runs_once():
    agg = MintingStatsAggregator()
    agg.initialize(FakeChain(total=5), lambda: {})
    agg.record_mint(6, OWNER)
    agg.initialize(FakeChain(total=50), lambda: {})
    assert agg.get_stats().total_supply == 6


def test_reads_do_not_wait_for_slow_init():
    agg = MintingStatsAggregator()
    release = threading.Event()

    class SlowChain(FakeChain):
        def total_supply(self):
            release.wait(5)
            return 42

    thread = agg.start_background_init(SlowChain(maximum=10), lambda: {})
    try:
        assert agg.get_stats().total_supply == 0
        assert agg.start_background_init(FakeChain(), lambda: {}) is None
    finally:
        release.set()
        thread.join(5)

    assert agg.state == READY
    assert agg.get_stats().total_supply == 42


def test_mint_during_init_missed_by_scan_is_kept():
    agg = MintingStatsAggregator()

    def scan():
        minted = {1: OWNER}
        # llega un mint después del scan y antes de instalar el baseline
        agg.record_mint(2, OTHER)
        return minted

    assert agg.initialize(FakeChain(total=1, maximum=10), scan) is True
    stats = agg.get_stats()
    assert stats.total_supply == 2
    assert stats.total_owners == 2
    assert agg.get_user_mint_count(OWNER) == 1
    assert agg.get_user_mint_count(OTHER) == 1


def test_mint_during_init_seen_by_scan_is_not_double_counted():
    agg = MintingStatsAggregator()

    def scan():
        agg.record_mint(2, OTHER)
        return {1: OWNER, 2: OTHER.lower()}

    agg.initialize(FakeChain(total=2, maximum=10), scan)
    stats = agg.get_stats()
    assert stats.total_supply == 2
    assert stats.user_mint_counts == {OWNER.lower(): 1, OTHER.lower(): 1}


def test_mints_after_ready_are_not_replayed():
    agg = MintingStatsAggregator()
    agg.initialize(FakeChain(total=1), lambda: {1: OWNER})
    agg.record_mint(2, OTHER)
    assert agg.initialize(FakeChain(total=1), lambda: {1: OWNER}) is True
    assert agg.get_stats().total_supply == 2


def test_failed_init_keeps_mints_recorded_meanwhile():
    agg = MintingStatsAggregator()

    def scan():
        agg.record_mint(1, OWNER)
        raise UpstreamUnavailable("db down")

    assert agg.initialize(FakeChain(), scan) is False
    assert agg.state == FAILED
    assert agg.get_stats().total_supply == 1
