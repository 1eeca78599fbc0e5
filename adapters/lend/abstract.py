from dataclasses import dataclass
from typing import Any, List, Optional, Protocol, Sequence, runtime_checkable


@dataclass(frozen=True)
class Call:
    """One batched read: target contract + encoded calldata."""

    target: str
    call_data: bytes


@runtime_checkable
class LendingAdapter(Protocol):
    """
    Abstract lending-ledger adapter.
    Concrete implementations know how to count positions and read their owners.
    """

    name: str
    chain: str

    def next_position_id(self) -> Optional[int]:
        ...

    def position_info_calls(self, count: int) -> List[Call]:
        ...

    def decode_position_info(self, data: bytes) -> Any:
        ...

    def decode_owner_map(self, return_data: Sequence[bytes]) -> List[Any]:
        """Pair the i-th payload (1-indexed) with position id i."""
        ...
