import itertools
import threading
import time
from typing import Any, Dict, Iterable, List, Optional

import pytest
from eth_abi import decode as abi_decode
from eth_abi import encode as abi_encode
from eth_utils import function_signature_to_4byte_selector, to_checksum_address
from web3 import Web3
from web3.providers.base import BaseProvider

from position_snapshot import BankConfig

BANK = "0x827cCeA3D460D458393EEAfE831698d83FE47BA7"
MULTICALL = "0x9aac9048fC8139667D6a2597B902865bfdc225d3"
COLL_TOKEN = to_checksum_address("0x" + "c0" * 20)
CELO_CHAIN_ID = 42220

NEXT_POSITION_ID = function_signature_to_4byte_selector("nextPositionId()")
GET_POSITION_INFO = function_signature_to_4byte_selector("getPositionInfo(uint256)")
AGGREGATE = function_signature_to_4byte_selector("aggregate((address,bytes)[])")


def owner_for(position_id: int) -> str:
    return to_checksum_address("0x" + f"{position_id:040x}")


class FakeNode(BaseProvider):
    """
    In-process JSON-RPC provider: answers eth_call for the bank and
    Multicall2 the way the chain would. Reverts are JSON-RPC errors.
    """

    def __init__(
        self,
        owners: List[str],
        count: Optional[int] = None,
        empty_count: bool = False,
        revert_count: bool = False,
        failing_ids: Iterable[int] = (),
        delay: float = 0.0,
    ) -> None:
        super().__init__()
        self.owners = owners
        self.count = len(owners) if count is None else count
        self.empty_count = empty_count
        self.revert_count = revert_count
        self.failing_ids = set(failing_ids)
        self.delay = delay
        self.aggregate_sizes: List[int] = []
        self.in_flight = 0
        self.peak_in_flight = 0
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def make_request(self, method: str, params: Any) -> Dict[str, Any]:
        request_id = next(self._ids)
        if method == "eth_chainId":
            return {"jsonrpc": "2.0", "id": request_id, "result": hex(CELO_CHAIN_ID)}
        if method != "eth_call":
            return self._error(request_id, f"method {method} not supported")

        tx = params[0]
        data = tx["data"]
        data = Web3.to_bytes(hexstr=data) if isinstance(data, str) else bytes(data)
        try:
            result = self._eth_call(tx["to"], data)
        except RuntimeError as exc:
            return self._error(request_id, str(exc))
        return {"jsonrpc": "2.0", "id": request_id, "result": Web3.to_hex(result)}

    def is_connected(self, show_traceback: bool = False) -> bool:
        return True

    def _error(self, request_id: int, message: str) -> Dict[str, Any]:
        return {"jsonrpc": "2.0", "id": request_id, "error": {"code": -32000, "message": message}}

    def _eth_call(self, to: str, data: bytes) -> bytes:
        selector, body = data[:4], data[4:]
        if to.lower() == BANK.lower() and selector == NEXT_POSITION_ID:
            if self.revert_count:
                raise RuntimeError("execution reverted")
            if self.empty_count:
                return b""
            return abi_encode(["uint256"], [self.count])
        if to.lower() == MULTICALL.lower() and selector == AGGREGATE:
            (calls,) = abi_decode(["(address,bytes)[]"], body)
            with self._lock:
                self.aggregate_sizes.append(len(calls))
                self.in_flight += 1
                self.peak_in_flight = max(self.peak_in_flight, self.in_flight)
            try:
                time.sleep(self.delay)
                results = [self._position_info(target, call_data) for target, call_data in calls]
            finally:
                with self._lock:
                    self.in_flight -= 1
            return abi_encode(["uint256", "bytes[]"], [1_000_000, results])
        raise RuntimeError("execution reverted")

    def _position_info(self, target: str, call_data: bytes) -> bytes:
        assert target.lower() == BANK.lower()
        assert call_data[:4] == GET_POSITION_INFO
        (position_id,) = abi_decode(["uint256"], call_data[4:])
        if position_id in self.failing_ids:
            raise RuntimeError("execution reverted: Multicall aggregate: call failed")
        return abi_encode(
            ["address", "address", "uint256", "uint256"],
            [self.owners[position_id - 1], COLL_TOKEN, position_id, position_id * 10**18],
        )


@pytest.fixture
def make_node():
    def _make(count: int = 0, **kwargs) -> Web3:
        owners = kwargs.pop("owners", None) or [owner_for(i) for i in range(1, count + 1)]
        return Web3(FakeNode(owners, **kwargs))

    return _make


@pytest.fixture
def bank_cfg(tmp_path):
    return BankConfig(output_path=str(tmp_path / "data" / "positions.json"))
