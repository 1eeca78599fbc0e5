import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from web3.contract import Contract

from adapters.lend.abstract import Call
from adapters.lend.evm.contract import call_raw, decode_result, encode_call
from adapters.lend.evm.errors import DecodeError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PositionRecord:
    position_id: int
    owner: str

    def to_dict(self) -> Dict[str, Any]:
        return {"positionID": self.position_id, "owner": self.owner}


@dataclass(frozen=True)
class PositionInfo:
    """Full getPositionInfo() tuple; only the owner ends up in the snapshot."""

    owner: str
    coll_token: str
    coll_id: int
    collateral_size: int


class HomoraBankAdapter:
    """
    Homora v2 bank on Celo. Positions are ids 1..N where N is nextPositionId().
    """

    name = "homora_v2"
    chain = "celo"

    def __init__(self, bank: Contract) -> None:
        self.bank = bank

    def next_position_id(self) -> Optional[int]:
        raw = call_raw(self.bank, "nextPositionId")
        if not raw:
            return None
        count = int(decode_result(self.bank, "nextPositionId", raw)["0"])
        logger.info("nextPositionId=%d", count)
        return count

    def position_info_calls(self, count: int) -> List[Call]:
        if count < 0:
            raise ValueError(f"position count must be >= 0, got {count}")
        return [
            Call(target=self.bank.address, call_data=encode_call(self.bank, "getPositionInfo", n))
            for n in range(1, count + 1)
        ]

    def decode_position_info(self, data: bytes) -> PositionInfo:
        decoded = decode_result(self.bank, "getPositionInfo", data)
        return PositionInfo(
            owner=decoded["owner"],
            coll_token=decoded["collToken"],
            coll_id=decoded["collId"],
            collateral_size=decoded["collateralSize"],
        )

    def decode_owner_map(self, return_data: Sequence[bytes]) -> List[PositionRecord]:
        records: List[PositionRecord] = []
        for i, data in enumerate(return_data, start=1):
            try:
                info = self.decode_position_info(data)
            except DecodeError as exc:
                raise DecodeError(f"position {i}: {exc}") from exc
            records.append(PositionRecord(position_id=i, owner=info.owner))
        return records
