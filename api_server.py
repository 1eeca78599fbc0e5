"""
Minimal API server exposing the position snapshot over HTTP.

Usage:
  pip install -e .
  uvicorn api_server:app --reload --port 8000
"""

import json
import os
from pathlib import Path
from typing import Dict, List

import requests
from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field

from adapters.lend.evm.errors import PositionSnapshotError
from adapters.lend.evm.rpc import connect
from position_snapshot import BankConfig, run


class PositionModel(BaseModel):
    position_id: int = Field(..., alias="positionID", ge=1)
    owner: str


class SnapshotModel(BaseModel):
    next_position_id: int = Field(..., alias="nextPositionID", ge=0)
    owner_map: List[PositionModel] = Field(default_factory=list, alias="ownerMap")


class RefreshResponse(BaseModel):
    next_position_id: int = Field(..., alias="nextPositionID")
    count: int
    path: str


def load_config() -> BankConfig:
    """
    Server-side config. Defaults match the script; each field can be
    overridden from the environment.
    """
    defaults = BankConfig()
    return BankConfig(
        rpc_url=os.getenv("RPC_URL", defaults.rpc_url),
        bank_address=os.getenv("HOMORA_BANK_ADDRESS", defaults.bank_address),
        multicall_address=os.getenv("MULTICALL_ADDRESS", defaults.multicall_address),
        output_path=os.getenv("POSITIONS_PATH", defaults.output_path),
    )


BANK_CONFIG: BankConfig = load_config()
# Shared web3 client; HTTPProvider pools one requests session per thread.
w3 = connect(BANK_CONFIG.rpc_url, timeout=BANK_CONFIG.rpc_timeout)

app = FastAPI(title="Homora Position Snapshot API", version="0.1.0")


@app.get("/health")
def health() -> Dict[str, object]:
    return {
        "ok": True,
        "rpc_url": BANK_CONFIG.rpc_url,
        "bank_address": BANK_CONFIG.bank_address,
        "multicall_address": BANK_CONFIG.multicall_address,
        "snapshot_path": BANK_CONFIG.output_path,
    }


@app.get("/positions", response_model=SnapshotModel, response_model_by_alias=True)
def positions() -> SnapshotModel:
    path = Path(BANK_CONFIG.output_path)
    if not path.exists():
        raise HTTPException(status_code=404, detail=f"No snapshot at '{path}'. POST /positions/refresh first.")
    return SnapshotModel.model_validate(json.loads(path.read_text()))


@app.post("/positions/refresh", response_model=RefreshResponse, response_model_by_alias=True)
async def refresh_positions() -> RefreshResponse:
    try:
        snap = await run(BANK_CONFIG, w3=w3)
    except (PositionSnapshotError, requests.RequestException) as exc:
        raise HTTPException(status_code=502, detail=f"Snapshot failed: {exc}") from exc

    return RefreshResponse(
        nextPositionID=snap.next_position_id,
        count=len(snap.owner_map),
        path=BANK_CONFIG.output_path,
    )
