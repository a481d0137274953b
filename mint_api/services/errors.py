# mint_api/services/errors.py
"""
Error taxonomy shared by the stores, the aggregator and the routes.

Validation and lookup errors carry a message that is safe to show to the
caller. UpstreamUnavailable wraps chain/database failures; routes log the
cause and answer with a generic message.
"""


class MintApiError(Exception):
    """Base class for every error raised on purpose by this service."""


class ValidationError(MintApiError, ValueError):
    """Malformed input: address format, length bounds, missing fields."""


class InvalidAddress(ValidationError):
    def __init__(self, address=None):
        self.address = address
        super().__init__("Invalid Ethereum address")


class NotFound(MintApiError, LookupError):
    """No record for the given key."""


class Conflict(MintApiError):
    """Uniqueness violation on a natural key."""


class DuplicateToken(Conflict):
    def __init__(self, token_id):
        self.token_id = token_id
        super().__init__("Metadata already exists for this token ID")


class DuplicateHash(Conflict):
    def __init__(self, tx_hash):
        self.tx_hash = tx_hash
        super().__init__("Transaction with this hash already exists")


class UpstreamUnavailable(MintApiError, RuntimeError):
    """Chain read or persistence failure."""
