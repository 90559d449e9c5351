"""
Job record schema for chunked batch jobs.

A job is one named batch phase (saveAll, sendEos, sendEth). Its record is an
ordered list of chunk states, one per fixed-size slice of the target list:

  Unsubmitted --submit(receipt)--> Submitted --conclude()--> Done
  Unsubmitted --adopt(head)------> Submitted
  Submitted ---resubmit(receipt)-> Submitted

An empty receipt (undetermined send outcome) always lands back in Unsubmitted.
"""

import math
from typing import Annotated, Any, List, Literal, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from airdropper.errors import JobMismatch

FINALITY_DEPTH = 12


class Target(BaseModel):
    """One line of the distribution list: address, amount, optional extra column."""

    address: str = Field(..., description="Recipient (0x address, or routing target on line 0)")
    amount: int = Field(..., gt=0, description="Token amount in base units; zero would read as an unapplied batch")
    extra: Optional[str] = Field(None, description="Third column; on line 0 the routing tag")

    def to_line(self) -> str:
        parts = [self.address, str(self.amount)]
        if self.extra is not None:
            parts.append(self.extra)
        return " ".join(parts)


class _Chunk(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    def to_record(self) -> dict:
        return self.model_dump(by_alias=True)


def _from_receipt(receipt: Optional[Mapping[str, Any]]) -> "ChunkState":
    if not receipt:
        return Unsubmitted()
    return Submitted(block_number=receipt["blockNumber"], gas_used=receipt.get("gasUsed"))


class Unsubmitted(_Chunk):
    status: Literal["unsubmitted"] = "unsubmitted"

    def submit(self, receipt: Optional[Mapping[str, Any]]) -> "ChunkState":
        return _from_receipt(receipt)

    def adopt(self, head: int) -> "Submitted":
        """Batch already applied by an earlier run: wait for finality from the current head."""
        return Submitted(block_number=head)


class Submitted(_Chunk):
    status: Literal["submitted"] = "submitted"
    block_number: int = Field(..., alias="blockNumber")
    gas_used: Optional[int] = Field(None, alias="gasUsed")

    def resubmit(self, receipt: Optional[Mapping[str, Any]]) -> "ChunkState":
        return _from_receipt(receipt)

    def is_final(self, head: int) -> bool:
        return head - self.block_number >= FINALITY_DEPTH

    def conclude(self) -> "Done":
        return Done(block_number=self.block_number, gas_used=self.gas_used)


class Done(_Chunk):
    status: Literal["done"] = "done"
    block_number: int = Field(..., alias="blockNumber")
    gas_used: Optional[int] = Field(None, alias="gasUsed")


ChunkState = Annotated[Union[Unsubmitted, Submitted, Done], Field(discriminator="status")]

_chunk_adapter = TypeAdapter(ChunkState)


def chunk_from_record(raw: Mapping[str, Any]) -> ChunkState:
    """
    Parse a persisted chunk.

    Records without a status tag come from the legacy script, which encoded state
    by field presence: no blockNumber means unsubmitted, done: true means done, and
    anything else (done absent or false) is still waiting for finality.
    """
    if "status" in raw:
        return _chunk_adapter.validate_python(raw)
    if raw.get("blockNumber") is None:
        return Unsubmitted()
    if raw.get("done") is True:
        return Done(block_number=raw["blockNumber"], gas_used=raw.get("gasUsed"))
    return Submitted(block_number=raw["blockNumber"], gas_used=raw.get("gasUsed"))


def chunk_count(total: int, chunk_size: int) -> int:
    if chunk_size <= 0:
        raise ValueError(f"chunk size must be positive, got {chunk_size}")
    return math.ceil(total / chunk_size)


def chunk_bounds(index: int, chunk_size: int, total: int) -> range:
    """Target indices covered by chunk `index`: [index*size, min((index+1)*size, total))."""
    begin = index * chunk_size
    return range(begin, min(begin + chunk_size, total))


class JobRecord(BaseModel):
    """Progress of one named batch job, persisted under its key in the job ledger."""

    key: str
    chunks: List[ChunkState]

    @classmethod
    def fresh(cls, key: str, total: int, chunk_size: int) -> "JobRecord":
        return cls(key=key, chunks=[Unsubmitted() for _ in range(chunk_count(total, chunk_size))])

    @classmethod
    def from_record(cls, key: str, raw: List[Mapping[str, Any]], total: int, chunk_size: int) -> "JobRecord":
        expected = chunk_count(total, chunk_size)
        if len(raw) != expected:
            raise JobMismatch(
                f"{key}: ledger holds {len(raw)} chunks but {total} targets in chunks of "
                f"{chunk_size} need {expected}; input list and chunk size are fixed for the life of a job"
            )
        return cls(key=key, chunks=[chunk_from_record(r) for r in raw])

    @property
    def finished(self) -> bool:
        return all(isinstance(c, Done) for c in self.chunks)

    def to_record(self) -> List[dict]:
        return [c.to_record() for c in self.chunks]
