"""
Contract artifacts, binding, and idempotent test-mode setup.

Compiled artifacts live in one directory as <Name>.abi (JSON) and <Name>.bin
(hex bytecode). Deployed addresses are kept in the job ledger under a contract
id, so a restarted run reuses them instead of deploying again. One-time setup
transactions are guarded the same way by a persisted `phase` counter.
"""

import json
import logging
from pathlib import Path
from typing import Any, List, Sequence, Tuple, Union

from web3 import Web3

from airdropper.errors import AirdropError
from airdropper.retry import TransactionSender
from airdropper.store import JobStore

log = logging.getLogger("airdropper.contracts")

PHASE_KEY = "phase"


def load_abi(artifacts_dir: Union[str, Path], name: str) -> List[dict]:
    return json.loads((Path(artifacts_dir) / f"{name}.abi").read_text(encoding="utf-8"))


def load_artifact(artifacts_dir: Union[str, Path], name: str) -> Tuple[List[dict], str]:
    abi = load_abi(artifacts_dir, name)
    bytecode = (Path(artifacts_dir) / f"{name}.bin").read_text(encoding="utf-8").strip()
    if not bytecode.startswith("0x"):
        bytecode = "0x" + bytecode
    return abi, bytecode


def bind(w3: Web3, artifacts_dir: Union[str, Path], name: str, address: str) -> Any:
    return w3.eth.contract(address=Web3.to_checksum_address(address), abi=load_abi(artifacts_dir, name))


def deployed_address(store: JobStore, contract_id: str) -> str:
    entry = store.load().get(contract_id)
    if not entry:
        raise AirdropError(f"{contract_id} is not recorded in the job ledger; deploy it or run with --test-mode")
    return entry["addr"]


class Deployer:
    """Deploy-if-absent and phased setup, both recorded in the job ledger."""

    def __init__(self, store: JobStore, sender: TransactionSender, w3: Web3, artifacts_dir: Union[str, Path]):
        self.store = store
        self.sender = sender
        self.w3 = w3
        self.artifacts_dir = Path(artifacts_dir)

    def deploy(self, contract_id: str, name: str, args: Sequence[Any]) -> Any:
        if self.store.load().get(contract_id) is None:
            abi, bytecode = load_artifact(self.artifacts_dir, name)
            factory = self.w3.eth.contract(abi=abi, bytecode=bytecode)
            constructor = factory.constructor(*args)
            receipt = self.sender.send(constructor)
            address = receipt["contractAddress"]
            log.info("%s deployed at %s", contract_id, address)
            # constructor arguments ABI-encoded, bytecode prefix stripped
            encoded_args = constructor.data_in_transaction[len(bytecode):]
            self.store.merge({contract_id: {"name": name, "addr": address, "args": encoded_args}})
        return bind(self.w3, self.artifacts_dir, name, deployed_address(self.store, contract_id))

    def run_phases(self, transactions: Sequence[Any]) -> int:
        """Send each setup transaction once, in order. Returns the phase reached."""
        if self.store.load().get(PHASE_KEY) is None:
            self.store.merge({PHASE_KEY: 0})
        for index, tx in enumerate(transactions):
            if self.store.load()[PHASE_KEY] == index:
                self.sender.send(tx)
                log.info("phase %d executed", index + 1)
                self.store.merge({PHASE_KEY: index + 1})
        return self.store.load()[PHASE_KEY]
