"""
Airdropper CLI.

Commands:
  airdropper run <source> <ledger> <node-url> <chunk-size> [--test-mode] [--gas-price N] [--artifacts DIR]
      Run (or resume) the airdrop. Safe to kill and rerun at any point.
  airdropper status <ledger> <node-url> [--artifacts DIR]
      Show job ledger progress and the token balance left to distribute.

The signing key is read from AIRDROP_PRIVATE_KEY (environment or .env).
"""
import logging
import sys
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import ValidationError

from airdropper.errors import AirdropError
from airdropper.logging_config import setup_logging

log = logging.getLogger("airdropper.cli")


def _load_dotenv():
    """Load .env from cwd so the key and node settings need no manual exports."""
    load_dotenv(Path.cwd() / ".env", override=False)


def _flag_value(args: List[str], flag: str) -> Optional[str]:
    """Value following `flag` in args (removed from args), or None."""
    if flag not in args:
        return None
    idx = args.index(flag)
    if idx + 1 >= len(args) or args[idx + 1].startswith("--"):
        print(f"{flag} needs a value")
        sys.exit(1)
    value = args[idx + 1]
    del args[idx:idx + 2]
    return value


def run_command(args: List[str]):
    """Run or resume the airdrop."""
    from airdropper.config import RunConfig
    from airdropper.operator_channel import ConsoleOperator
    from airdropper.runner import Airdrop
    from airdropper.store import JsonFileJobStore
    from airdropper.transport import Web3Transport, connect
    from airdropper.wallet import SignerWallet

    args = list(args)
    test_mode = "--test-mode" in args
    if test_mode:
        args.remove("--test-mode")
    gas_price = _flag_value(args, "--gas-price")
    artifacts = _flag_value(args, "--artifacts")
    if len(args) != 4:
        print("Usage: airdropper run <source> <ledger> <node-url> <chunk-size> [--test-mode] [--gas-price N] [--artifacts DIR]")
        sys.exit(1)
    source, ledger, node_url, chunk_size = args

    try:
        config = RunConfig.from_env(
            source_file=source,
            ledger_file=ledger,
            node_url=node_url,
            chunk_size=chunk_size,
            gas_price=gas_price,
            artifacts_dir=artifacts,
            test_mode=test_mode or None,
        )
    except ValidationError as e:
        print(f"❌ Invalid arguments:\n{e}")
        sys.exit(1)

    wallet = SignerWallet()
    w3 = connect(config.node_url)
    operator = ConsoleOperator()
    transport = Web3Transport(w3, wallet)
    airdrop = Airdrop(
        config,
        JsonFileJobStore(config.ledger_file),
        transport,
        operator,
        w3=w3,
        account=wallet.address,
    )
    log.info("signer %s, node %s, chunk size %d%s", wallet.address, config.node_url, config.chunk_size,
             " (test mode)" if config.test_mode else "")
    airdrop.run()


def status_command(args: List[str]):
    """Print ledger progress and, when the contracts are recorded, the remaining balance."""
    from airdropper.config import DEFAULT_ARTIFACTS_DIR
    from airdropper.contracts import bind, deployed_address
    from airdropper.retry import ResilientRpc
    from airdropper.status import print_progress, report
    from airdropper.store import JsonFileJobStore
    from airdropper.transport import connect

    args = list(args)
    artifacts = Path(_flag_value(args, "--artifacts") or DEFAULT_ARTIFACTS_DIR)
    if len(args) != 2:
        print("Usage: airdropper status <ledger> <node-url> [--artifacts DIR]")
        sys.exit(1)
    ledger, node_url = args
    store = JsonFileJobStore(ledger)
    print_progress(store.load())

    w3 = connect(node_url)
    airdropper = bind(w3, artifacts, "AirDropper", deployed_address(store, "airDropper"))
    relay_token = bind(w3, artifacts, "SmartToken", deployed_address(store, "relayToken"))
    report(ResilientRpc(), relay_token, airdropper.address)


def main():
    """CLI entry point."""
    _load_dotenv()
    if len(sys.argv) < 2:
        print(__doc__.strip())
        sys.exit(1)

    setup_logging()
    command, args = sys.argv[1], sys.argv[2:]
    try:
        if command == "run":
            run_command(args)
        elif command == "status":
            status_command(args)
        else:
            print(f"Unknown command: {command}")
            print("Use 'airdropper run ...' or 'airdropper status ...'")
            sys.exit(1)
    except (AirdropError, ConnectionError, RuntimeError, ValidationError, ValueError, EOFError) as e:
        message = str(e) or type(e).__name__
        log.error("fatal: %s", message)
        print(f"❌ {message}")
        sys.exit(1)


if __name__ == "__main__":
    main()
