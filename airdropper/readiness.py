"""
Readiness state machine for the AirDropper contract.

The contract holds a two-valued flag: 0 while it accepts saveAll batches, 1 once
further saves are disabled and before sends are enabled. Administrative calls
move it forward; this module repeats each call until the flag leaves the value it
was issued for, so a call that silently failed is simply issued again.

The stored content hash must match the hash of the input list before each
stage. A mismatch means the wrong deployment or the wrong input file, and stops
the run before any administrative action.
"""

import logging
from typing import Any, Callable

from hexbytes import HexBytes

from airdropper.errors import VerificationFailure
from airdropper.retry import ResilientRpc

log = logging.getLogger("airdropper.readiness")

ACCEPTING_SAVES = 0
SAVES_DISABLED = 1

STAGES = (
    (ACCEPTING_SAVES, "disableSave"),
    (SAVES_DISABLED, "enableSend"),
)


class ReadinessGate:
    """
    Drives AirDropper.state() through disableSave then enableSend.

    perform(action) carries out one administrative action: sends it (automated
    mode) or waits for the operator to confirm it was done out of band.
    """

    def __init__(self, rpc: ResilientRpc, airdropper: Any, perform: Callable[[str], Any]):
        self.rpc = rpc
        self.airdropper = airdropper
        self.perform = perform

    def state(self) -> int:
        return int(self.rpc.call(self.airdropper.functions.state()))

    def verify(self, expected_hash: bytes) -> None:
        stored = HexBytes(self.rpc.call(self.airdropper.functions.hash()))
        if stored != HexBytes(expected_hash):
            raise VerificationFailure(
                f"verification failure: contract hash {stored.hex()} != input hash {HexBytes(expected_hash).hex()}"
            )

    def drive(self, expected_hash: bytes) -> None:
        for value, action in STAGES:
            self.verify(expected_hash)
            while self.state() == value:
                log.info("state %d: performing %s", value, action)
                self.perform(action)
        log.info("readiness gate passed: sends enabled")
