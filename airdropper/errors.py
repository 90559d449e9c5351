"""
Error types for the airdrop orchestrator.

Fatal errors (VerificationFailure, JobMismatch) stop the run before any further
ledger writes. TransactionFailed is raised by the transport and handled by the
sender's recovery loop; RetryExhausted only appears under a bounded RetryPolicy.
"""


class AirdropError(Exception):
    """Base class for orchestrator errors."""


class VerificationFailure(AirdropError):
    """On-chain content hash or contract address does not match the input data."""


class JobMismatch(AirdropError):
    """A persisted job record does not fit the current input list or chunk size."""


class TransactionFailed(AirdropError):
    """A broadcast transaction was mined but reverted."""

    def __init__(self, message: str, receipt=None):
        super().__init__(message)
        self.receipt = receipt


class RetryExhausted(AirdropError):
    """A bounded retry policy ran out of attempts."""
