from typing import Callable, Dict, List, Optional

import pytest

from airdropper.distribution import content_hash
from airdropper.retry import ResilientRpc, TransactionSender
from airdropper.schema import Target
from airdropper.store import InMemoryJobStore


class ProcessKilled(BaseException):
    """Stands in for SIGKILL: not an Exception, so no recovery path catches it."""


def address(i: int) -> str:
    return "0x" + f"{i + 1:040x}"


def make_targets(n: int, amount: int = 100) -> List[Target]:
    return [Target(address=address(i), amount=amount + i) for i in range(n)]


class FakeCall:
    def __init__(self, func: Callable[[], object]):
        self._func = func

    def call(self):
        return self._func()


class FakeTx:
    def __init__(self, name: str, apply: Callable[[], None], meta: Optional[dict] = None):
        self.name = name
        self.apply = apply
        self.meta = meta or {}


class FakeChain:
    """In-memory ledger implementing the LedgerTransport surface."""

    def __init__(self, head: int = 100, gas_price: int = 7):
        self.head = head
        self._gas_price = gas_price
        self.receipts: Dict[str, dict] = {}
        self.sent: List[FakeTx] = []
        self.gas_prices: List[int] = []
        self.failures: List[BaseException] = []
        self.kill_when: Callable[[FakeTx], bool] = lambda tx: False
        self.kill_after_apply = False
        self.mined = 0

    def gas_price(self) -> int:
        return self._gas_price

    def block_number(self) -> int:
        return self.head

    def get_receipt(self, tx_hash: str):
        return self.receipts.get(tx_hash)

    def transact(self, tx: FakeTx, gas_price: int, value: int = 0) -> dict:
        if self.failures:
            raise self.failures.pop(0)
        if self.kill_when(tx):
            if self.kill_after_apply:
                tx.apply()
                self.head += 1
            raise ProcessKilled(tx.name)
        tx.apply()
        self.head += 1
        self.sent.append(tx)
        self.gas_prices.append(gas_price)
        receipt = {
            "blockNumber": self.head,
            "gasUsed": 21000 + len(self.sent),
            "status": 1,
            "transactionHash": "0x" + f"{len(self.sent):064x}",
        }
        self.receipts[receipt["transactionHash"]] = receipt
        return receipt

    def mine(self) -> None:
        self.head += 1
        self.mined += 1


class ScriptedOperator:
    """OperatorChannel answering from queues and recording what it was asked."""

    def __init__(self, gas_price: Optional[int] = None, hashes: Optional[List[Optional[str]]] = None):
        self.gas_price = gas_price
        self.hashes = list(hashes or [])
        self.suggestions: List[int] = []
        self.hash_requests = 0
        self.confirmed: List[str] = []
        self.on_confirm: Callable[[str], None] = lambda action: None

    def ask_gas_price(self, suggested: int) -> int:
        self.suggestions.append(suggested)
        return suggested if self.gas_price is None else self.gas_price

    def ask_transaction_hash(self) -> Optional[str]:
        self.hash_requests += 1
        return self.hashes.pop(0) if self.hashes else None

    def confirm(self, action: str) -> None:
        self.confirmed.append(action)
        self.on_confirm(action)


class _Functions:
    def __init__(self, owner):
        self._owner = owner


class FakeAirDropper:
    """AirDropper contract over a FakeChain: balances, readiness flag and content hash."""

    def __init__(self, chain: FakeChain, targets: List[Target], address_: str = "0x" + "a1" * 20):
        self.chain = chain
        self.address = address_
        self.saved: Dict[str, int] = {}
        self.paid: Dict[str, int] = {}
        self.state = 0
        self.stored_hash = content_hash(targets)
        self.eos_legs: List[tuple] = []
        self.functions = _AirDropperFunctions(self)


class _AirDropperFunctions(_Functions):
    def saveBalances(self, addr):
        return FakeCall(lambda: self._owner.saved.get(addr.lower(), 0))

    def sendBalances(self, addr):
        return FakeCall(lambda: self._owner.paid.get(addr.lower(), 0))

    def saveAll(self, addrs, amounts):
        def apply():
            for a, v in zip(addrs, amounts):
                self._owner.saved[a.lower()] = v

        return FakeTx("saveAll", apply, {"addrs": list(addrs)})

    def sendEth(self, token, addrs, amounts):
        def apply():
            for a, v in zip(addrs, amounts):
                self._owner.paid[a.lower()] = v

        return FakeTx("sendEth", apply, {"addrs": list(addrs)})

    def sendEos(self, bancor_x, target, amount):
        def apply():
            self._owner.paid[target.lower()] = amount
            self._owner.eos_legs.append((bancor_x, target, amount))

        return FakeTx("sendEos", apply, {"addrs": [target]})

    def state(self):
        return FakeCall(lambda: self._owner.state)

    def hash(self):
        return FakeCall(lambda: self._owner.stored_hash)

    def disableSave(self):
        return FakeTx("disableSave", lambda: setattr(self._owner, "state", 1))

    def enableSend(self):
        return FakeTx("enableSend", lambda: setattr(self._owner, "state", 2))


class FakeToken:
    def __init__(self, balances: Dict[str, int], supply: int, address_: str = "0x" + "b2" * 20):
        self.address = address_
        self.balances = balances
        self.supply = supply
        self.functions = _TokenFunctions(self)


class _TokenFunctions(_Functions):
    def balanceOf(self, holder):
        return FakeCall(lambda: self._owner.balances.get(holder, 0))

    def totalSupply(self):
        return FakeCall(lambda: self._owner.supply)


@pytest.fixture
def chain() -> FakeChain:
    return FakeChain()


@pytest.fixture
def operator() -> ScriptedOperator:
    return ScriptedOperator()


@pytest.fixture
def store() -> InMemoryJobStore:
    return InMemoryJobStore()


@pytest.fixture
def rpc() -> ResilientRpc:
    return ResilientRpc()


@pytest.fixture
def sender(chain, operator, rpc) -> TransactionSender:
    return TransactionSender(chain, operator, rpc, gas_price=chain.gas_price())
