# mint_api/services/addresses.py
import re

from mint_api.services.errors import InvalidAddress

_ADDRESS_RE = re.compile(r"^0x[a-fA-F0-9]{40}$")


def is_address(value) -> bool:
    return isinstance(value, str) and bool(_ADDRESS_RE.match(value.strip()))


def normalize(address) -> str:
    """
    Canonical form of a wallet address: trimmed and lower-cased.
    Every table and the stats aggregator key owners by this value, so
    '0xAbC...' and '0xabc...' are the same identity.
    """
    if not is_address(address):
        raise InvalidAddress(address)
    return address.strip().lower()
