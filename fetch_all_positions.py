import asyncio
import logging
import sys
from typing import Optional

from web3 import Web3

from position_snapshot import BankConfig, run

bank_cfg = BankConfig()


def main(cfg: Optional[BankConfig] = None, w3: Optional[Web3] = None) -> int:
    logging.basicConfig(level=logging.WARNING)
    cfg = cfg or bank_cfg
    try:
        positions = asyncio.run(run(cfg, w3=w3))
    except Exception as exc:  # noqa: BLE001 - top level: report and fail
        print(f"{type(exc).__name__}: {exc}", file=sys.stderr)
        return 1

    print(f"Discovered and wrote {len(positions.owner_map)} positions")
    return 0


if __name__ == "__main__":
    sys.exit(main())
