from datetime import datetime, timedelta

import pytest

from mint_api.extensions import ledger
from mint_api.services.errors import DuplicateHash, ValidationError

ALICE = "0xABCDef0123456789abcdef0123456789ABCD1234"
BOB = "0x1234567890123456789012345678901234567890"
CAROL = "0x" + "c" * 40
CONTRACT = "0x5FbDB2315678afecb367f032d93F642f64180aa3"
BASE = datetime(2024, 5, 1, 12, 0, 0)


def _entry(i, **kw):
    data = {
        "hash": f"0x{i:064x}",
        "type": "mint",
        "tokenId": i,
        "from": "0x" + "0" * 40,
        "to": ALICE,
        "status": "confirmed",
        "timestamp": (BASE + timedelta(minutes=i)).isoformat() + "Z",
        "contractAddress": CONTRACT,
    }
    data.update(kw)
    return data


def test_append_and_get():
    entry = ledger.append(_entry(1, price=0.05, blockNumber=123, gasUsed=21000))
    assert entry["to"] == ALICE.lower()
    assert entry["contractAddress"] == CONTRACT.lower()
    assert entry["price"] == 0.05
    assert entry["timestamp"] == "2024-05-01T12:01:00Z"
    assert ledger.get(entry["hash"]) == entry


def test_get_missing():
    assert ledger.get("0xdeadbeef") is None


def test_status_defaults_to_pending():
    data = _entry(1)
    del data["status"]
    assert ledger.append(data)["status"] == "pending"


def test_duplicate_hash():
    ledger.append(_entry(1))
    with pytest.raises(DuplicateHash):
        ledger.append(_entry(1, type="transfer"))
    items, total = ledger.query()
    assert total == 1
    assert items[0]["type"] == "mint"


@pytest.mark.parametrize("missing", ["hash", "type", "from", "to", "contractAddress"])
def test_required_fields(missing):
    data = _entry(1)
    del data[missing]
    with pytest.raises(ValidationError):
        ledger.append(data)


@pytest.mark.parametrize("override", [
    {"type": "burn"},
    {"status": "done"},
    {"from": "0x123"},
    {"price": -1},
    {"price": "cheap"},
    {"tokenId": "abc"},
    {"blockNumber": -5},
    {"timestamp": "yesterday"},
])
def test_invalid_fields(override):
    with pytest.raises(ValidationError):
        ledger.append(_entry(1, **override))


def test_pagination_newest_first():
    for i in range(25):
        ledger.append(_entry(i))

    items, total = ledger.query(page=1, page_size=10)
    assert total == 25
    assert len(items) == 10
    assert [e["tokenId"] for e in items] == list(range(24, 14, -1))

    items, total = ledger.query(page=3, page_size=10)
    assert total == 25
    assert [e["tokenId"] for e in items] == [4, 3, 2, 1, 0]

    items, _ = ledger.query(page=4, page_size=10)
    assert items == []


def test_query_filters():
    ledger.append(_entry(1, type="mint", **{"from": "0x" + "0" * 40, "to": ALICE}))
    ledger.append(_entry(2, type="transfer", **{"from": ALICE, "to": BOB}))
    ledger.append(_entry(3, type="transfer", status="failed", **{"from": BOB, "to": CAROL}))
    ledger.append(_entry(4, type="sale", price=1.5, contractAddress=CAROL, **{"from": CAROL, "to": BOB}))

    items, total = ledger.query(address=ALICE.upper().replace("0X", "0x"))
    assert total == 2
    assert [e["tokenId"] for e in items] == [2, 1]

    items, total = ledger.query(type="transfer")
    assert [e["tokenId"] for e in items] == [3, 2]

    items, total = ledger.query(type="transfer", status="failed")
    assert total == 1 and items[0]["tokenId"] == 3

    items, total = ledger.query(token_id="4")
    assert total == 1 and items[0]["type"] == "sale"

    items, total = ledger.query(contract_address=CONTRACT)
    assert total == 3

    items, total = ledger.query(address=BOB, type="sale")
    assert total == 1


def test_query_rejects_bad_filters():
    with pytest.raises(ValidationError):
        ledger.query(type="burn")
    with pytest.raises(ValidationError):
        ledger.query(address="bob")
    with pytest.raises(ValidationError):
        ledger.query(page=0)
    with pytest.raises(ValidationError):
        ledger.query(page_size=1000)
