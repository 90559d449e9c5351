"""
Ledger transport: the thin web3 client the orchestrator drives.

Everything here is a single request/response with the node. Retrying and
operator recovery live in airdropper.retry; this module only builds, signs,
broadcasts and reads.
"""

import logging
from typing import Any, Optional, Protocol

from web3 import Web3
from web3.exceptions import TransactionNotFound

from airdropper.errors import TransactionFailed
from airdropper.wallet import SignerWallet

log = logging.getLogger("airdropper.transport")

MIN_GAS_LIMIT = 0
RECEIPT_TIMEOUT = 600


class LedgerTransport(Protocol):
    def gas_price(self) -> int: ...
    def block_number(self) -> int: ...
    def get_receipt(self, tx_hash: str) -> Optional[Any]: ...
    def transact(self, tx: Any, gas_price: int, value: int = 0) -> Any: ...
    def mine(self) -> None: ...


def connect(node_url: str, timeout: int = 30) -> Web3:
    """Web3 client for an http(s):// or ws(s):// node URL."""
    if node_url.startswith(("ws://", "wss://")):
        w3 = Web3(Web3.LegacyWebSocketProvider(node_url))
    else:
        w3 = Web3(Web3.HTTPProvider(node_url, request_kwargs={"timeout": timeout}))
    if not w3.is_connected():
        raise ConnectionError(f"Cannot connect to RPC: {node_url}")
    return w3


class Web3Transport:
    """
    LedgerTransport over web3.py.

    `tx` passed to transact is anything web3 can build: a bound contract function
    (contract.functions.saveAll(...)) or a constructor (contract.constructor(...)).
    """

    def __init__(self, w3: Web3, wallet: SignerWallet, receipt_timeout: int = RECEIPT_TIMEOUT):
        self.w3 = w3
        self.wallet = wallet
        self.receipt_timeout = receipt_timeout

    def gas_price(self) -> int:
        return self.w3.eth.gas_price

    def block_number(self) -> int:
        return self.w3.eth.block_number

    def get_receipt(self, tx_hash: str) -> Optional[Any]:
        try:
            return self.w3.eth.get_transaction_receipt(tx_hash)
        except TransactionNotFound:
            return None

    def transact(self, tx: Any, gas_price: int, value: int = 0) -> Any:
        sender = self.wallet.address
        gas = max(tx.estimate_gas({"from": sender, "value": value}), MIN_GAS_LIMIT)
        built = tx.build_transaction(
            {
                "from": sender,
                "gas": gas,
                "gasPrice": gas_price,
                "value": value,
                "nonce": self.w3.eth.get_transaction_count(sender),
                "chainId": self.w3.eth.chain_id,
            }
        )
        raw_tx = self.wallet.sign_transaction(built)
        tx_hash = self.w3.eth.send_raw_transaction(raw_tx)
        log.debug("broadcast %s (gas %d at %d)", tx_hash.hex(), gas, gas_price)
        receipt = self.w3.eth.wait_for_transaction_receipt(tx_hash, timeout=self.receipt_timeout)
        if receipt["status"] != 1:
            raise TransactionFailed(f"Transaction {tx_hash.hex()} reverted in block {receipt['blockNumber']}", receipt)
        return receipt

    def mine(self) -> None:
        """Advance a test node by one block. Never call against a live network."""
        self.w3.provider.make_request("evm_mine", [])
