from typing import Optional

from web3 import HTTPProvider, Web3


def connect(rpc_url: str, timeout: Optional[float] = None) -> Web3:
    """
    Web3 client over HTTP JSON-RPC. HTTPProvider keeps one requests session
    per thread, so the client can be shared by the chunk workers.
    """
    return Web3(HTTPProvider(rpc_url, request_kwargs={"timeout": timeout}))
