"""Read-only progress reports: token balance left to distribute, and job ledger progress."""

from collections import Counter
from typing import Any, Dict, Mapping, Tuple

from airdropper.retry import ResilientRpc
from airdropper.schema import chunk_from_record

JOB_KEYS = ("saveAll", "sendEos", "sendEth")


def report(rpc: ResilientRpc, token: Any, holder: str) -> Tuple[int, int]:
    """Print and return (balance still held by `holder`, total supply)."""
    balance = rpc.call(token.functions.balanceOf(holder))
    supply = rpc.call(token.functions.totalSupply())
    print(f"{balance} out of {supply} tokens remaining")
    return balance, supply


def job_progress(ledger: Mapping[str, Any]) -> Dict[str, Counter]:
    """Per-job count of chunk states; legacy untagged chunks are counted by field presence."""
    progress = {}
    for key in JOB_KEYS:
        chunks = ledger.get(key)
        if chunks is None:
            continue
        progress[key] = Counter(chunk_from_record(c).status for c in chunks)
    return progress


def print_progress(ledger: Mapping[str, Any]) -> None:
    progress = job_progress(ledger)
    if not progress:
        print("No batch jobs recorded yet.")
        return
    for key, counts in progress.items():
        total = sum(counts.values())
        print(
            f"{key}: {counts['done']}/{total} done, {counts['submitted']} awaiting finality, "
            f"{counts['unsubmitted']} unsubmitted"
        )
