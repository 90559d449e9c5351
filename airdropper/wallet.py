"""
Signing wallet: local keypair, key from the environment only.

Key is loaded from AIRDROP_PRIVATE_KEY (env) or a .env file in the working
directory. Never read from argv and never written to disk.
"""

import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from eth_account import Account
from eth_account.signers.local import LocalAccount

ENV_PRIVATE_KEY = "AIRDROP_PRIVATE_KEY"


def load_key() -> LocalAccount:
    """
    Load key from AIRDROP_PRIVATE_KEY env or .env file.
    Raises RuntimeError if it is not set.
    """
    load_dotenv(Path.cwd() / ".env", override=False)
    pk = (os.getenv(ENV_PRIVATE_KEY) or "").strip()
    if not pk:
        raise RuntimeError(
            f"Set {ENV_PRIVATE_KEY} in the environment or .env (never commit it). "
            "It signs every airdrop transaction and pays their gas."
        )
    return Account.from_key(pk if pk.startswith("0x") else "0x" + pk)


class SignerWallet:
    """Account that signs and pays for airdrop transactions."""

    def __init__(self, account: Optional[LocalAccount] = None):
        self._account = account if account is not None else load_key()

    @property
    def address(self) -> str:
        return self._account.address

    @property
    def account(self) -> LocalAccount:
        return self._account

    def sign_transaction(self, tx: dict) -> bytes:
        """Sign a built transaction. Returns the raw transaction bytes for broadcast."""
        signed = self._account.sign_transaction(tx)
        return signed.raw_transaction

    @classmethod
    def from_key(cls, private_key: str) -> "SignerWallet":
        """Create wallet from raw private key (hex string)."""
        if not private_key.startswith("0x"):
            private_key = "0x" + private_key
        return cls(account=Account.from_key(private_key))
