"""
Distribution list: the immutable input of an airdrop.

One target per line, `<address> <amount>[ <extra>]`. Line 0 is the routing
header for the cross-chain leg: BancorX address, leg amount, routing tag.
Order is significant (it fixes chunk boundaries and the content hash), so the
file must not change for the life of a job.
"""

from pathlib import Path
from typing import List, Sequence, Union

from eth_utils import to_checksum_address
from hexbytes import HexBytes
from web3 import Web3

from airdropper.errors import VerificationFailure
from airdropper.schema import Target

ZERO_HASH = HexBytes(b"\x00" * 32)


def parse_line(line: str) -> Target:
    parts = line.split()
    if len(parts) < 2:
        raise ValueError(f"Expected '<address> <amount>[ <extra>]', got {line!r}")
    amount = int(parts[1])
    if amount <= 0:
        # balance probes treat zero as "not applied yet"
        raise ValueError(f"Amount must be positive, got {line!r}")
    return Target(address=parts[0], amount=amount, extra=parts[2] if len(parts) > 2 else None)


def parse_targets(text: str) -> List[Target]:
    lines = text.splitlines()
    while lines and not lines[-1].strip():
        lines.pop()
    return [parse_line(line) for line in lines]


def load_targets(path: Union[str, Path]) -> List[Target]:
    return parse_targets(Path(path).read_text(encoding="utf-8"))


def total_amount(targets: Sequence[Target]) -> int:
    return sum(t.amount for t in targets)


def content_hash(targets: Sequence[Target]) -> HexBytes:
    """
    Running keccak over the list, as the AirDropper contract accumulates it:
    h = keccak256(abi.encodePacked(h, address, amount)), starting from zero.
    """
    acc = ZERO_HASH
    for t in targets:
        acc = Web3.solidity_keccak(
            ["bytes32", "address", "uint256"],
            [acc, to_checksum_address(t.address), t.amount],
        )
    return HexBytes(acc)


def route_through(targets: Sequence[Target], bancor_x: str) -> List[Target]:
    """Test-mode routing header: point line 0 at our BancorX and hex-encode its tag."""
    if not targets:
        raise ValueError("distribution list is empty; line 0 must hold the routing header")
    head = targets[0]
    tag = Web3.to_hex(text=head.extra or "")
    return [Target(address=bancor_x, amount=head.amount, extra=tag), *targets[1:]]


def check_routing(targets: Sequence[Target], bancor_x: str) -> None:
    if not targets or targets[0].address.lower() != bancor_x.lower():
        found = targets[0].address if targets else None
        raise VerificationFailure(f"BancorX address mismatch: line 0 routes to {found}, deployment is {bancor_x}")
