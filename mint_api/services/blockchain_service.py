# mint_api/services/blockchain_service.py
import logging
import os
from decimal import Decimal, InvalidOperation
from typing import Optional

from web3 import Web3

from mint_api.services.errors import UpstreamUnavailable, ValidationError

logger = logging.getLogger(__name__)

# Sólo las funciones de lectura que usa el servicio
SIMPLE_NFT_ABI = [
    {
        "inputs": [],
        "name": "totalSupply",
        "outputs": [{"internalType": "uint256", "name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [],
        "name": "maxSupply",
        "outputs": [{"internalType": "uint256", "name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    },
]


def _build_w3() -> Web3:
    provider = os.getenv("WEB3_PROVIDER_URI")
    if not provider:
        raise UpstreamUnavailable("WEB3_PROVIDER_URI no configurado")

    w3 = Web3(Web3.HTTPProvider(provider, request_kwargs={"timeout": 10}))

    # PoA (Sepolia, etc.)
    use_poa = os.getenv("WEB3_USE_POA", "false").lower() in ("1", "true", "yes", "on")
    if use_poa:
        try:
            from web3.middleware import ExtraDataToPOAMiddleware as poa_mw
        except ImportError:
            from web3.middleware import geth_poa_middleware as poa_mw
        w3.middleware_onion.inject(poa_mw, layer=0)

    if not w3.is_connected():
        raise UpstreamUnavailable("No se pudo conectar a la RPC")
    return w3


class ChainReader:
    """Read-only view of the NFT contract used to seed the minting stats."""

    def __init__(self, contract_address: Optional[str] = None, w3: Optional[Web3] = None):
        self._address = (contract_address or os.getenv("CONTRACT_ADDRESS") or "").strip()
        self._w3 = w3
        self._contract = None

    def _load(self):
        if self._contract is not None:
            return self._contract
        if not self._address:
            raise UpstreamUnavailable("CONTRACT_ADDRESS no configurado")
        w3 = self._w3 or _build_w3()
        self._contract = w3.eth.contract(
            address=Web3.to_checksum_address(self._address), abi=SIMPLE_NFT_ABI
        )
        return self._contract

    def _call(self, fn_name: str) -> int:
        try:
            return int(getattr(self._load().functions, fn_name)().call())
        except UpstreamUnavailable:
            raise
        except Exception as e:
            raise UpstreamUnavailable(f"Error llamando {fn_name}() en {self._address}: {e}") from e

    def total_supply(self) -> int:
        return self._call("totalSupply")

    def max_supply(self) -> int:
        return self._call("maxSupply")


# ---------------------------
# Faucet (ETH transfers)
# ---------------------------

def eth_to_wei(amount) -> int:
    try:
        value = Decimal(str(amount))
    except InvalidOperation:
        raise ValidationError(f"Cantidad de ETH inválida: {amount}")
    if value <= 0:
        raise ValidationError(f"Cantidad de ETH inválida: {amount}")
    return int(value * Decimal(10**18))


def faucet_address(w3: Web3) -> str:
    private_key = os.getenv("FAUCET_PRIVATE_KEY")
    if not private_key:
        raise UpstreamUnavailable("FAUCET_PRIVATE_KEY no configurada")
    return w3.eth.account.from_key(private_key).address


def send_ether(w3: Web3, to: str, value_wei: int) -> str:
    """
    Firma y envía una transferencia simple desde la cuenta del faucet.
    Devuelve tx_hash (hex). Falla si el faucet no tiene saldo suficiente.
    """
    private_key = os.getenv("FAUCET_PRIVATE_KEY")
    if not private_key:
        raise UpstreamUnavailable("FAUCET_PRIVATE_KEY no configurada")

    account = w3.eth.account.from_key(private_key)
    balance = w3.eth.get_balance(account.address)
    if balance < value_wei:
        raise UpstreamUnavailable("Faucet is empty. Please contact the administrator.")

    chain_id = int(os.getenv("WEB3_CHAIN_ID") or w3.eth.chain_id)
    tx = {
        "from": account.address,
        "to": Web3.to_checksum_address(to),
        "value": int(value_wei),
        "nonce": w3.eth.get_transaction_count(account.address, "pending"),
        "chainId": chain_id,
        "gas": 21000,
    }

    # EIP-1559 (fallback legacy si la chain no expone baseFeePerGas)
    latest = w3.eth.get_block("latest")
    base_fee = latest.get("baseFeePerGas")
    if base_fee is not None:
        max_priority = w3.to_wei(2, "gwei")
        tx["maxFeePerGas"] = int(base_fee * 2) + max_priority
        tx["maxPriorityFeePerGas"] = max_priority
    else:
        tx["gasPrice"] = w3.eth.gas_price

    signed = w3.eth.account.sign_transaction(tx, private_key=private_key)
    raw = getattr(signed, "raw_transaction", None) or signed.rawTransaction
    tx_hash = w3.eth.send_raw_transaction(raw)
    return Web3.to_hex(tx_hash)
