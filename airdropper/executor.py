"""
Chunked batch executor: the resumable core of every airdrop phase.

The target list is cut into fixed-size chunks; chunk i always covers targets
[i*size, (i+1)*size). Each chunk goes through its own lifecycle and the whole
job record is written to the job ledger after every transition, so a killed
process resumes where it stopped.

Whether a chunk's batch has reached the chain is decided by a probe: the
contract balance recorded for the chunk's first target. Zero means not applied
(submit or resubmit); non-zero means applied, possibly by a run that crashed
before recording it. Resubmitting only ever happens on a zero probe, which is
what keeps a restart from applying a chunk twice.
"""

import logging
import time
from typing import Any, Callable, List, Sequence

from airdropper.retry import ResilientRpc, TransactionSender
from airdropper.schema import Done, JobRecord, Submitted, Target, Unsubmitted, chunk_bounds
from airdropper.store import JobStore
from airdropper.transport import LedgerTransport

log = logging.getLogger("airdropper.executor")

DEFAULT_POLL_INTERVAL = 5.0


class ChunkedBatchExecutor:
    def __init__(
        self,
        store: JobStore,
        rpc: ResilientRpc,
        sender: TransactionSender,
        transport: LedgerTransport,
        chunk_size: int,
        test_mode: bool = False,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
    ):
        self.store = store
        self.rpc = rpc
        self.sender = sender
        self.transport = transport
        self.chunk_size = chunk_size
        self.test_mode = test_mode
        self.poll_interval = poll_interval

    def load(self, key: str, total: int) -> JobRecord:
        """Existing record for `key`, or a fresh one persisted on first use."""
        raw = self.store.load().get(key)
        if raw is None:
            record = JobRecord.fresh(key, total, self.chunk_size)
            self._save(record)
            log.info("%s: new job, %d targets in %d chunks", key, total, len(record.chunks))
            return record
        return JobRecord.from_record(key, raw, total, self.chunk_size)

    def run(
        self,
        key: str,
        targets: Sequence[Target],
        read_balance_of: Callable[[str], Any],
        build_batch_tx: Callable[[List[Target]], Any],
    ) -> JobRecord:
        """
        Drive every chunk of job `key` to Done.

        read_balance_of(address) returns a contract call whose .call() gives the
        probe balance; build_batch_tx(slice) returns the transaction for one chunk.
        """
        targets = list(targets)
        record = self.load(key, len(targets))
        while not record.finished:
            progressed = False
            for i, chunk in enumerate(record.chunks):
                if isinstance(chunk, Done):
                    continue
                part = [targets[j] for j in chunk_bounds(i, self.chunk_size, len(targets))]
                balance = self.rpc.call(read_balance_of(part[0].address))
                step = self._step(chunk, balance, part, build_batch_tx)
                if step is None:
                    continue
                event, record.chunks[i] = step
                self._save(record)
                log.info("%s %d %s: %s", key, i, event, record.chunks[i].to_record())
                progressed = True
            if not progressed and not self.test_mode and self.poll_interval > 0:
                time.sleep(self.poll_interval)
        log.info("%s: all %d chunks concluded", key, len(record.chunks))
        return record

    def _step(self, chunk, balance: int, part: List[Target], build_batch_tx):
        """Next (event, state) for one chunk, or None when it must keep waiting."""
        if isinstance(chunk, Unsubmitted):
            if balance == 0:
                return _outcome("submitted", chunk.submit(self._broadcast(part, build_batch_tx)))
            return "confirmed", chunk.adopt(self._head())
        if balance == 0:
            return _outcome("resubmitted", chunk.resubmit(self._broadcast(part, build_batch_tx)))
        if chunk.is_final(self._head()):
            return "concluded", chunk.conclude()
        if self.test_mode:
            self.rpc.retry(self.transport.mine)
        return None

    def _broadcast(self, part: List[Target], build_batch_tx):
        return self.sender.send(build_batch_tx(part), retryable=False)

    def _head(self) -> int:
        return self.rpc.retry(self.transport.block_number)

    def _save(self, record: JobRecord) -> None:
        self.store.merge({record.key: record.to_record()})


def _outcome(event: str, state):
    # an empty receipt leaves the chunk unsubmitted for the next pass
    return (event if isinstance(state, Submitted) else "undetermined"), state

