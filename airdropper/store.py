"""
Job ledger: the persisted record of airdrop progress.

A single JSON object whose top-level keys are operation names (job keys,
deployed contract ids, the setup phase counter). Values are opaque to the store.
Every merge is read-modify-write of the whole object: load, overwrite the
partial's top-level keys, write everything back. Nothing is cached between calls.

One orchestrator process per ledger file. There is no locking.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Protocol, Union

log = logging.getLogger("airdropper.store")


class JobStore(Protocol):
    def load(self) -> Dict[str, Any]: ...
    def merge(self, partial: Mapping[str, Any]) -> None: ...


class JsonFileJobStore:
    """Job ledger backed by a human-readable JSON file."""

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path)

    def load(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        text = self.path.read_text(encoding="utf-8")
        if not text.strip():
            return {}
        return json.loads(text)

    def merge(self, partial: Mapping[str, Any]) -> None:
        """Shallow union with the current contents; replaces the file atomically."""
        record = {**self.load(), **partial}
        tmp = self.path.with_name(self.path.name + ".tmp")
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(record, f, indent=4)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp, self.path)
        log.debug("merged %s into %s", sorted(partial), self.path)

    def __repr__(self) -> str:
        return f"JsonFileJobStore({str(self.path)!r})"


class InMemoryJobStore:
    """Same contract as JsonFileJobStore, held in memory. Values round-trip through JSON."""

    def __init__(self, initial: Optional[Mapping[str, Any]] = None) -> None:
        self._data = json.dumps(dict(initial or {}))

    def load(self) -> Dict[str, Any]:
        return json.loads(self._data)

    def merge(self, partial: Mapping[str, Any]) -> None:
        self._data = json.dumps({**self.load(), **partial})
