"""
RPC resilience layer.

Two disciplines wrap every remote interaction:

  ResilientRpc.call / retry -- read-only queries. Transient transport faults
      (node briefly unreachable, malformed JSON-RPC response) are retried;
      anything else propagates at once.
  TransactionSender.send -- fee-bearing transactions. Failures are logged; a
      retryable send asks the operator for a hash seen out of band and accepts
      its receipt, otherwise rebuilds and resends. A non-retryable send returns
      None so the caller can treat the outcome as undetermined.

Both loop forever under the default RetryPolicy. Tests pass bounded policies.
"""

import itertools
import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Iterator, Optional

import requests
from web3.exceptions import BadResponseFormat

from airdropper.errors import RetryExhausted
from airdropper.operator_channel import OperatorChannel
from airdropper.transport import LedgerTransport

log = logging.getLogger("airdropper.retry")

TRANSIENT_ERRORS = (
    BadResponseFormat,
    requests.exceptions.ConnectionError,
    requests.exceptions.Timeout,
    json.JSONDecodeError,
)


@dataclass(frozen=True)
class RetryPolicy:
    """max_attempts=None retries without bound; backoff is seconds slept between attempts."""

    max_attempts: Optional[int] = None
    backoff: float = 0.0

    def attempts(self) -> Iterator[int]:
        if self.max_attempts is None:
            return itertools.count(1)
        return iter(range(1, self.max_attempts + 1))

    def pause(self) -> None:
        if self.backoff > 0:
            time.sleep(self.backoff)


def is_transient(error: BaseException) -> bool:
    return isinstance(error, TRANSIENT_ERRORS) or str(error).startswith("Invalid JSON RPC response")


class ResilientRpc:
    def __init__(self, policy: Optional[RetryPolicy] = None):
        self.policy = policy or RetryPolicy()

    def retry(self, func: Callable[..., Any], *args: Any) -> Any:
        last: Optional[Exception] = None
        for attempt in self.policy.attempts():
            try:
                return func(*args)
            except Exception as error:
                if not is_transient(error):
                    raise
                last = error
                log.debug("transient RPC fault on attempt %d: %s", attempt, error)
                self.policy.pause()
        raise RetryExhausted(f"RPC still failing after {self.policy.max_attempts} attempts: {last}") from last

    def call(self, fn: Any) -> Any:
        """Run a contract view call (anything with .call())."""
        return self.retry(fn.call)


class TransactionSender:
    """
    Builds, signs and broadcasts fee-bearing transactions with operator recovery.

    gas_price fixed here applies to every send that does not pass its own; when
    neither is set the node's suggestion is offered to the operator per send.
    """

    def __init__(
        self,
        transport: LedgerTransport,
        operator: OperatorChannel,
        rpc: Optional[ResilientRpc] = None,
        gas_price: Optional[int] = None,
        policy: Optional[RetryPolicy] = None,
    ):
        self.transport = transport
        self.operator = operator
        self.rpc = rpc or ResilientRpc()
        self.gas_price = gas_price
        self.policy = policy or RetryPolicy()

    def resolve_gas_price(self) -> int:
        suggested = self.rpc.retry(self.transport.gas_price)
        return self.operator.ask_gas_price(suggested)

    def fix_gas_price(self) -> int:
        """Resolve the run-wide gas price once, unless one was configured."""
        if self.gas_price is None:
            self.gas_price = self.resolve_gas_price()
        return self.gas_price

    def send(self, tx: Any, value: int = 0, retryable: bool = True, gas_price: Optional[int] = None) -> Optional[Any]:
        for _ in self.policy.attempts():
            price = gas_price if gas_price is not None else self.gas_price
            if price is None:
                price = self.resolve_gas_price()
            try:
                return self.transport.transact(tx, price, value)
            except Exception as error:
                log.error("%s", error)
                if not retryable:
                    return None
            receipt = self.recover_receipt()
            if receipt:
                return receipt
            self.policy.pause()
        raise RetryExhausted(f"transaction not confirmed after {self.policy.max_attempts} attempts")

    def recover_receipt(self) -> Optional[Any]:
        """Ask the operator for the hash of the transaction that may have gone through; None means resend."""
        while True:
            tx_hash = self.operator.ask_transaction_hash()
            if tx_hash is None:
                return None
            receipt = self.rpc.retry(self.transport.get_receipt, tx_hash)
            if receipt:
                return receipt
            print("Invalid transaction-hash")
