"""
Run configuration.

Positional CLI arguments name the files and node; everything else falls back to
the environment (a .env in the working directory is loaded first, never
overriding variables already set). The signing key is never part of this
object: it comes from AIRDROP_PRIVATE_KEY via airdropper.wallet.
"""

import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

from airdropper.executor import DEFAULT_POLL_INTERVAL

DEFAULT_ARTIFACTS_DIR = Path("build")


def _env_int(name: str) -> Optional[int]:
    value = os.getenv(name, "").strip()
    return int(value) if value.isdigit() else None


class RunConfig(BaseModel):
    """Everything a run needs except the key."""

    source_file: Path = Field(..., description="Distribution list, one '<address> <amount>[ <extra>]' per line")
    ledger_file: Path = Field(..., description="JSON job ledger; created on first write")
    node_url: str = Field(..., description="http(s):// or ws(s):// JSON-RPC endpoint")
    chunk_size: int = Field(..., gt=0, description="Targets per batch transaction; fixed for the life of a job")
    test_mode: bool = Field(False, description="Deploy contracts, automate admin actions, mine blocks")
    gas_price: Optional[int] = Field(None, ge=0, description="Fixed gas price in wei; asked once when unset")
    artifacts_dir: Path = Field(DEFAULT_ARTIFACTS_DIR, description="Directory of <Name>.abi / <Name>.bin")
    poll_interval: float = Field(DEFAULT_POLL_INTERVAL, ge=0, description="Seconds between idle confirmation passes")

    @classmethod
    def from_env(cls, **overrides) -> "RunConfig":
        load_dotenv(Path.cwd() / ".env", override=False)
        values = {
            "node_url": os.getenv("AIRDROP_NODE_URL"),
            "chunk_size": _env_int("AIRDROP_CHUNK_SIZE"),
            "gas_price": _env_int("AIRDROP_GAS_PRICE"),
            "artifacts_dir": os.getenv("AIRDROP_ARTIFACTS_DIR"),
            "poll_interval": os.getenv("AIRDROP_POLL_INTERVAL"),
            "test_mode": os.getenv("AIRDROP_TEST_MODE", "false").lower() == "true",
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**{k: v for k, v in values.items() if v is not None})
