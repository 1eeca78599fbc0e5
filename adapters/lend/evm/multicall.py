import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import List, Sequence, TypeVar

from web3.contract import Contract
from web3.exceptions import BadFunctionCallOutput, Web3Exception

from adapters.lend.abstract import Call
from adapters.lend.evm.errors import DecodeError, RpcError

logger = logging.getLogger(__name__)

MAX_CHUNK = 100

T = TypeVar("T")


def chunk(items: Sequence[T], size: int) -> List[List[T]]:
    """Split into contiguous, order-preserving slices of at most ``size``."""
    if size < 1:
        raise ValueError(f"chunk size must be >= 1, got {size}")
    return [list(items[i:i + size]) for i in range(0, len(items), size)]


class Multicall:
    """
    Multicall2 wrapper. aggregate() reverts as a whole if any sub-call fails,
    so a chunk either yields every result or raises.
    """

    def __init__(self, contract: Contract) -> None:
        self.contract = contract

    @property
    def address(self) -> str:
        return self.contract.address

    def aggregate(self, calls: Sequence[Call]) -> List[bytes]:
        call_structs = [{"target": c.target, "callData": c.call_data} for c in calls]
        try:
            _, return_data = self.contract.functions.aggregate(call_structs).call()
        except BadFunctionCallOutput as exc:
            raise DecodeError(f"Cannot decode aggregate result: {exc}") from exc
        except Web3Exception as exc:
            raise RpcError(f"aggregate failed: {exc}") from exc

        return_data = [bytes(data) for data in return_data]
        if len(return_data) != len(calls):
            raise DecodeError(
                f"aggregate returned {len(return_data)} results for {len(calls)} calls"
            )
        return return_data

    async def aggregate_chunked(self, calls: Sequence[Call], chunk_size: int = MAX_CHUNK) -> List[bytes]:
        """
        Fire one aggregate() per chunk, every chunk on its own worker, and
        flatten in request order. The first failing chunk fails the whole gather.
        """
        call_chunks = chunk(calls, chunk_size)
        if not call_chunks:
            return []
        logger.debug("Dispatching %d calls in %d chunks", len(calls), len(call_chunks))

        loop = asyncio.get_running_loop()
        with ThreadPoolExecutor(max_workers=len(call_chunks)) as executor:
            results = await asyncio.gather(
                *(loop.run_in_executor(executor, self.aggregate, c) for c in call_chunks)
            )
        return [data for chunk_result in results for data in chunk_result]
