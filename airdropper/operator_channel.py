"""
Operator channel: the blocking request/response seam to a human.

Three questions are ever asked: which gas price to use, which transaction hash a
failed broadcast actually produced (seen on a block explorer), and whether an
out-of-band administrative action has been performed. The orchestration core
only sees the OperatorChannel protocol; ConsoleOperator answers it from stdin.
"""

import re
from typing import Callable, Optional, Protocol

TX_HASH_PATTERN = re.compile(r"^0x[0-9A-Fa-f]{64}$")
GAS_PRICE_PATTERN = re.compile(r"^[0-9]+$")


class OperatorChannel(Protocol):
    def ask_gas_price(self, suggested: int) -> int: ...
    def ask_transaction_hash(self) -> Optional[str]: ...
    def confirm(self, action: str) -> None: ...


class ConsoleOperator:
    """Operator on the terminal. Every call blocks on one line of input, with no timeout."""

    def __init__(self, read: Callable[[str], str] = input):
        self._read = read

    def _scan(self, message: str) -> str:
        return self._read(message).strip()

    def ask_gas_price(self, suggested: int) -> int:
        while True:
            answer = self._scan(f"Enter gas-price or leave empty to use {suggested}: ")
            if GAS_PRICE_PATTERN.match(answer):
                return int(answer)
            if answer == "":
                return suggested
            print("Illegal gas-price")

    def ask_transaction_hash(self) -> Optional[str]:
        """A well-formed hash, or None when the operator wants the transaction rebuilt and resent."""
        while True:
            answer = self._scan("Enter transaction-hash or leave empty to retry: ")
            if TX_HASH_PATTERN.match(answer):
                return answer
            if answer == "":
                return None
            print("Illegal transaction-hash")

    def confirm(self, action: str) -> None:
        self._scan(f"Press enter after executing {action}...")
