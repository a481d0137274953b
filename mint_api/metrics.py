# mint_api/metrics.py
from prometheus_client import Counter

WRITE_FAILURES = Counter(
    "write_behind_failures_total",
    "Deferred writes that could not be persisted",
    ["kind", "reason"],
)

MINTS_RECORDED = Counter(
    "mints_recorded_total",
    "Mints applied to the in-memory minting statistics",
)
