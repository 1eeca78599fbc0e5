import logging
from typing import Any, Dict, List, Optional

from eth_abi.exceptions import DecodingError
from eth_utils.abi import collapse_if_tuple
from web3 import Web3
from web3.contract import Contract
from web3.exceptions import Web3Exception

from adapters.lend.evm.errors import DecodeError, RpcError

logger = logging.getLogger(__name__)

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


def is_address(value: Any) -> Optional[str]:
    """Return the checksummed address if ``value`` is a valid address, otherwise None."""
    if not isinstance(value, str) or not Web3.is_address(value):
        return None
    digits = value[2:]
    # mixed case means the caller supplied a checksum; it has to be right
    if digits not in (digits.lower(), digits.upper()) and not Web3.is_checksum_address(value):
        return None
    return Web3.to_checksum_address(value)


def get_contract(address: str, abi: List[Dict[str, Any]], w3: Web3) -> Contract:
    checksummed = is_address(address)
    if not checksummed or checksummed == ZERO_ADDRESS:
        raise ValueError(f"Invalid 'address' parameter '{address}'.")
    return w3.eth.contract(address=checksummed, abi=abi)


def use_contract(
    address: Optional[str],
    abi: Optional[List[Dict[str, Any]]],
    w3: Web3,
) -> Optional[Contract]:
    """Construct a contract handle, or report it absent with None. Callers must check."""
    if not address or not abi:
        return None
    try:
        return get_contract(address, abi, w3)
    except ValueError as exc:
        logger.error("Failed to get contract: %s", exc)
        return None


def encode_call(contract: Contract, fn_name: str, *args: Any) -> bytes:
    fn = getattr(contract.functions, fn_name)(*args)
    return Web3.to_bytes(hexstr=fn._encode_transaction_data())


def decode_result(contract: Contract, fn_name: str, data: bytes) -> Dict[str, Any]:
    """
    Decode return data against the contract ABI into a dict keyed by output
    name (positional index for unnamed outputs). Address outputs are checksummed.
    """
    fn_abi = next(e for e in contract.abi if e.get("type") == "function" and e.get("name") == fn_name)
    outputs = fn_abi["outputs"]
    try:
        values = contract.w3.codec.decode([collapse_if_tuple(o) for o in outputs], data)
    except DecodingError as exc:
        raise DecodeError(f"Cannot decode {fn_name} result: {exc}") from exc

    decoded: Dict[str, Any] = {}
    for idx, (param, value) in enumerate(zip(outputs, values)):
        if param["type"] == "address":
            value = Web3.to_checksum_address(value)
        decoded[param.get("name") or str(idx)] = value
    return decoded


def call_raw(contract: Contract, fn_name: str, *args: Any) -> bytes:
    """eth_call without decoding, so an empty answer can be told apart from a zero."""
    tx = {"to": contract.address, "data": encode_call(contract, fn_name, *args)}
    try:
        return bytes(contract.w3.eth.call(tx))
    except Web3Exception as exc:
        raise RpcError(f"{fn_name} failed: {exc}") from exc
