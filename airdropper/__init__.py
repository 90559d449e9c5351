"""
Airdropper: crash-safe, resumable token airdrops through an AirDropper contract.

Every batch phase (saveAll, sendEos, sendEth) is split into fixed-size chunks,
one transaction each, with progress written to a JSON job ledger after every
state change. Killing the process at any point and running the same command
again neither re-broadcasts an applied chunk nor loses a pending confirmation.
"""

__version__ = "0.1.0"

from airdropper.errors import AirdropError, JobMismatch, RetryExhausted, TransactionFailed, VerificationFailure
from airdropper.schema import Done, JobRecord, Submitted, Target, Unsubmitted, chunk_from_record
from airdropper.store import InMemoryJobStore, JobStore, JsonFileJobStore
from airdropper.retry import ResilientRpc, RetryPolicy, TransactionSender, is_transient
from airdropper.operator_channel import ConsoleOperator, OperatorChannel
from airdropper.readiness import ReadinessGate
from airdropper.executor import ChunkedBatchExecutor
from airdropper.distribution import content_hash, load_targets, total_amount
from airdropper.status import report

__all__ = [
    "__version__",
    "AirdropError",
    "JobMismatch",
    "RetryExhausted",
    "TransactionFailed",
    "VerificationFailure",
    "Done",
    "JobRecord",
    "Submitted",
    "Target",
    "Unsubmitted",
    "chunk_from_record",
    "InMemoryJobStore",
    "JobStore",
    "JsonFileJobStore",
    "ResilientRpc",
    "RetryPolicy",
    "TransactionSender",
    "is_transient",
    "ConsoleOperator",
    "OperatorChannel",
    "ReadinessGate",
    "ChunkedBatchExecutor",
    "content_hash",
    "load_targets",
    "total_amount",
    "report",
]
