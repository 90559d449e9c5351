"""
The airdrop run: setup, the three batch phases, and the readiness gate between them.

  saveAll  -- record every balance in AirDropper (all lines)
  status
  readiness gate -- disableSave, then enableSend, hash-checked
  sendEos  -- the cross-chain leg through BancorX (line 0 only)
  status
  sendEth  -- pay every holder on this chain (lines 1..)
  status

Each phase is a ChunkedBatchExecutor job keyed by its name, so rerunning the
command after a crash picks every phase up where the ledger says it stopped.
"""

import logging
from typing import Any, List, NamedTuple, Optional, Sequence

from web3 import Web3

from airdropper.config import RunConfig
from airdropper.contracts import Deployer, bind, deployed_address
from airdropper.distribution import check_routing, content_hash, load_targets, route_through, total_amount
from airdropper.executor import ChunkedBatchExecutor
from airdropper.operator_channel import OperatorChannel
from airdropper.readiness import ReadinessGate
from airdropper.retry import ResilientRpc, TransactionSender
from airdropper.schema import Target
from airdropper.status import report
from airdropper.store import JobStore
from airdropper.transport import LedgerTransport

log = logging.getLogger("airdropper.runner")


class Contracts(NamedTuple):
    airdropper: Any
    relay_token: Any
    bancor_x: Any


def _addresses(part: Sequence[Target]) -> List[str]:
    return [Web3.to_checksum_address(t.address) for t in part]


def _probe(balances):
    return lambda address: balances(Web3.to_checksum_address(address))


def _amounts(part: Sequence[Target]) -> List[int]:
    return [t.amount for t in part]


class Airdrop:
    def __init__(
        self,
        config: RunConfig,
        store: JobStore,
        transport: LedgerTransport,
        operator: OperatorChannel,
        w3: Optional[Web3] = None,
        account: Optional[str] = None,
        rpc: Optional[ResilientRpc] = None,
        sender: Optional[TransactionSender] = None,
    ):
        self.config = config
        self.store = store
        self.transport = transport
        self.operator = operator
        self.w3 = w3
        self.account = account
        self.rpc = rpc or ResilientRpc()
        self.sender = sender or TransactionSender(transport, operator, self.rpc, gas_price=config.gas_price)
        self.executor = ChunkedBatchExecutor(
            store,
            self.rpc,
            self.sender,
            transport,
            config.chunk_size,
            test_mode=config.test_mode,
            poll_interval=config.poll_interval,
        )

    def run(self) -> None:
        self.sender.fix_gas_price()
        targets = load_targets(self.config.source_file)
        if self.config.test_mode:
            contracts = self.deploy_test_contracts(total_amount(targets))
            targets = route_through(targets, contracts.bancor_x.address)
        else:
            contracts = self.bind_contracts()
        check_routing(targets, contracts.bancor_x.address)
        self.distribute(contracts, targets)

    def bind_contracts(self) -> Contracts:
        def bound(contract_id: str, name: str):
            return bind(self.w3, self.config.artifacts_dir, name, deployed_address(self.store, contract_id))

        return Contracts(
            airdropper=bound("airDropper", "AirDropper"),
            relay_token=bound("relayToken", "SmartToken"),
            bancor_x=bound("bancorX", "BancorX"),
        )

    def deploy_test_contracts(self, total: int) -> Contracts:
        """Deploy the full contract set once and wire it up (test nodes only)."""
        deployer = Deployer(self.store, self.sender, self.w3, self.config.artifacts_dir)
        registry = deployer.deploy("registry", "ContractRegistry", [])
        airdropper = deployer.deploy("airDropper", "AirDropper", [])
        relay_token = deployer.deploy("relayToken", "SmartToken", ["name", "symbol", 0])
        dummy_token = deployer.deploy("dummyToken", "ERC20Token", ["name", "symbol", 0, 0])
        converter = deployer.deploy(
            "converter",
            "BancorConverter",
            [relay_token.address, registry.address, 0, dummy_token.address, 1000000],
        )
        bancor_x = deployer.deploy(
            "bancorX",
            "BancorX",
            [total, total, 0, total, 0, registry.address, relay_token.address, True],
        )
        deployer.run_phases(
            [
                airdropper.functions.set(self.account),
                relay_token.functions.issue(airdropper.address, total),
                relay_token.functions.transferOwnership(converter.address),
                converter.functions.acceptTokenOwnership(),
                converter.functions.setBancorX(bancor_x.address),
            ]
        )
        return Contracts(airdropper=airdropper, relay_token=relay_token, bancor_x=bancor_x)

    def perform_admin(self, airdropper: Any):
        """Readiness action: sent by us in test mode, done by the operator otherwise."""

        def perform(action: str) -> Any:
            if self.config.test_mode:
                return self.sender.send(getattr(airdropper.functions, action)())
            return self.operator.confirm(action)

        return perform

    def distribute(self, contracts: Contracts, targets: Sequence[Target]) -> None:
        airdropper, relay_token, bancor_x = contracts
        routing, holders = list(targets[:1]), list(targets[1:])

        self.executor.run(
            "saveAll",
            targets,
            _probe(airdropper.functions.saveBalances),
            lambda part: airdropper.functions.saveAll(_addresses(part), _amounts(part)),
        )
        self.report(contracts)

        ReadinessGate(self.rpc, airdropper, self.perform_admin(airdropper)).drive(content_hash(targets))

        self.executor.run(
            "sendEos",
            routing,
            _probe(airdropper.functions.sendBalances),
            lambda part: airdropper.functions.sendEos(bancor_x.address, part[0].address, part[0].amount),
        )
        self.report(contracts)

        self.executor.run(
            "sendEth",
            holders,
            _probe(airdropper.functions.sendBalances),
            lambda part: airdropper.functions.sendEth(relay_token.address, _addresses(part), _amounts(part)),
        )
        self.report(contracts)
        log.info("airdrop complete")

    def report(self, contracts: Contracts):
        return report(self.rpc, contracts.relay_token, contracts.airdropper.address)
