import asyncio
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from web3 import Web3

from adapters.lend.abstract import LendingAdapter
from adapters.lend.evm.abis import HOMORA_BANK_ABI, MULTICALL2_ABI
from adapters.lend.evm.contract import use_contract
from adapters.lend.evm.errors import ContractUnavailableError
from adapters.lend.evm.homora_bank import HomoraBankAdapter, PositionRecord
from adapters.lend.evm.multicall import MAX_CHUNK, Multicall
from adapters.lend.evm.rpc import connect

logger = logging.getLogger(__name__)

# Used for both request building and the persisted nextPositionID when the
# node returns no count.
DEFAULT_POSITION_COUNT = 0


@dataclass
class BankConfig:
    """Static configuration for one lending ledger snapshot."""

    rpc_url: str = "https://forno.celo.org"
    bank_address: str = "0x827cCeA3D460D458393EEAfE831698d83FE47BA7"
    multicall_address: str = "0x9aac9048fC8139667D6a2597B902865bfdc225d3"
    output_path: str = "data/positions.json"
    chunk_size: int = MAX_CHUNK
    rpc_timeout: Optional[float] = None


@dataclass
class Positions:
    next_position_id: int
    owner_map: List[PositionRecord] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "nextPositionID": self.next_position_id,
            "ownerMap": [record.to_dict() for record in self.owner_map],
        }


def write_snapshot(positions: Positions, path: Union[str, Path]) -> Path:
    """Overwrite ``path`` with the pretty-printed snapshot."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(positions.to_dict(), indent=2))
    return path


async def fetch_all_positions(cfg: BankConfig, w3: Optional[Web3] = None) -> Positions:
    """
    Read every position owner from the bank.

    Any RPC, revert or decode failure propagates; nothing is partially returned.
    """
    if w3 is None:
        w3 = connect(cfg.rpc_url, timeout=cfg.rpc_timeout)

    bank_contract = use_contract(cfg.bank_address, HOMORA_BANK_ABI, w3)
    if bank_contract is None:
        raise ContractUnavailableError(f"Bank contract unavailable at '{cfg.bank_address}'")
    multicall_contract = use_contract(cfg.multicall_address, MULTICALL2_ABI, w3)
    if multicall_contract is None:
        raise ContractUnavailableError(f"Multicall contract unavailable at '{cfg.multicall_address}'")

    bank: LendingAdapter = HomoraBankAdapter(bank_contract)
    multicall = Multicall(multicall_contract)

    count = await asyncio.to_thread(bank.next_position_id)
    if count is None:
        logger.warning("nextPositionId returned no value, using %d", DEFAULT_POSITION_COUNT)
        count = DEFAULT_POSITION_COUNT

    calls = bank.position_info_calls(count)
    return_data = await multicall.aggregate_chunked(calls, cfg.chunk_size)
    owner_map = bank.decode_owner_map(return_data)

    return Positions(next_position_id=count, owner_map=owner_map)


async def run(cfg: BankConfig, w3: Optional[Web3] = None) -> Positions:
    positions = await fetch_all_positions(cfg, w3=w3)
    write_snapshot(positions, cfg.output_path)
    return positions
