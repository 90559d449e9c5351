import json
from types import SimpleNamespace

import pytest
from web3 import Web3

from airdropper.contracts import PHASE_KEY, Deployer, deployed_address, load_artifact
from airdropper.errors import AirdropError
from airdropper.store import InMemoryJobStore

from conftest import ProcessKilled, address


class FakeEth:
    def contract(self, address=None, abi=None, bytecode=None):
        def constructor(*args):
            encoded = "".join(f"{a:064x}" for a in args)
            return SimpleNamespace(data_in_transaction=bytecode + encoded, args=args)

        return SimpleNamespace(address=address, abi=abi, bytecode=bytecode, constructor=constructor)


class RecordingSender:
    """Stands in for TransactionSender: records txs and mints contract addresses."""

    def __init__(self, kill_at=None):
        self.sent = []
        self.kill_at = kill_at

    def send(self, tx, value=0, retryable=True, gas_price=None):
        if self.kill_at is not None and len(self.sent) == self.kill_at:
            raise ProcessKilled(str(tx))
        self.sent.append(tx)
        return {"contractAddress": Web3.to_checksum_address(address(len(self.sent))), "status": 1}


@pytest.fixture
def artifacts(tmp_path):
    (tmp_path / "Registry.abi").write_text(json.dumps([{"type": "constructor", "inputs": []}]))
    (tmp_path / "Registry.bin").write_text("6080604052\n")
    return tmp_path


@pytest.fixture
def w3():
    return SimpleNamespace(eth=FakeEth())


def test_load_artifact_prefixes_bytecode(artifacts) -> None:
    abi, bytecode = load_artifact(artifacts, "Registry")
    assert bytecode == "0x6080604052"
    assert abi[0]["type"] == "constructor"

    (artifacts / "Registry.bin").write_text("0xabcd")
    assert load_artifact(artifacts, "Registry")[1] == "0xabcd"


def test_deploy_records_address_once(artifacts, w3) -> None:
    store = InMemoryJobStore()
    sender = RecordingSender()

    contract = Deployer(store, sender, w3, artifacts).deploy("registry", "Registry", [1, 2])

    assert [tx.args for tx in sender.sent] == [(1, 2)]
    entry = store.load()["registry"]
    assert entry == {"name": "Registry", "addr": contract.address, "args": f"{1:064x}{2:064x}"}

    again = Deployer(store, sender, w3, artifacts).deploy("registry", "Registry", [1, 2])
    assert len(sender.sent) == 1
    assert again.address == contract.address


def test_deploy_records_abi_encoded_constructor_arguments(tmp_path) -> None:
    abi = [{"type": "constructor", "stateMutability": "nonpayable", "inputs": [
        {"name": "supply", "type": "uint256"},
        {"name": "owner", "type": "address"},
    ]}]
    (tmp_path / "Token.abi").write_text(json.dumps(abi))
    (tmp_path / "Token.bin").write_text("6080604052")
    store = InMemoryJobStore()
    owner = Web3.to_checksum_address(address(41))

    Deployer(store, RecordingSender(), Web3(), tmp_path).deploy("token", "Token", [500, owner])

    assert store.load()["token"]["args"] == f"{500:064x}" + owner[2:].lower().rjust(64, "0")


def test_deployed_address_must_be_recorded() -> None:
    with pytest.raises(AirdropError, match="bancorX"):
        deployed_address(InMemoryJobStore(), "bancorX")


def test_phases_run_in_order_once(artifacts, w3) -> None:
    store = InMemoryJobStore()
    sender = RecordingSender()
    deployer = Deployer(store, sender, w3, artifacts)

    assert deployer.run_phases(["set", "issue", "transferOwnership"]) == 3
    assert sender.sent == ["set", "issue", "transferOwnership"]

    assert deployer.run_phases(["set", "issue", "transferOwnership"]) == 3
    assert len(sender.sent) == 3


def test_phases_resume_from_recorded_counter(artifacts, w3) -> None:
    store = InMemoryJobStore({PHASE_KEY: 0})
    killed = RecordingSender(kill_at=1)

    with pytest.raises(ProcessKilled):
        Deployer(store, killed, w3, artifacts).run_phases(["set", "issue", "transferOwnership"])
    assert store.load()[PHASE_KEY] == 1

    sender = RecordingSender()
    Deployer(store, sender, w3, artifacts).run_phases(["set", "issue", "transferOwnership"])
    assert sender.sent == ["issue", "transferOwnership"]
    assert store.load()[PHASE_KEY] == 3
