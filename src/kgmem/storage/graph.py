"""
Graph Store - JSONL memory file holding the whole knowledge graph.

Every line is one self-describing JSON record:

    {"type": "entity", "name": ..., "entityType": ..., "observations": [...], "createdAt": ..., "version": 1}
    {"type": "relation", "from": ..., "to": ..., "relationType": ..., "createdAt": ..., "version": 1}

There is no in-memory cache: callers load the full graph, transform it,
and save it back. Saves write a sibling temp file and rename it over the
target, so a crash never leaves a truncated memory file.
"""

import json
import os
import tempfile
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from pydantic import ValidationError

from kgmem.core.config import settings, get_logger
from kgmem.core.types import Entity, GraphParseError, KnowledgeGraph, Relation

logger = get_logger("storage.graph")

ENTITY_RECORD = "entity"
RELATION_RECORD = "relation"

# One lock per resolved memory file, shared by every GraphStore on that path.
_path_locks: dict[Path, threading.RLock] = {}
_path_locks_guard = threading.Lock()


def _lock_for(path: Path) -> threading.RLock:
    with _path_locks_guard:
        lock = _path_locks.get(path)
        if lock is None:
            lock = _path_locks[path] = threading.RLock()
        return lock


class GraphStore:
    """
    JSONL-backed graph store.

    Owns the on-disk representation only: ``load`` and ``save`` each read or
    write the whole file. Use ``locked()`` around a load-modify-save sequence
    to keep concurrent callers in this process from losing updates.
    """

    def __init__(self, path: str | Path | None = None):
        """Initialize the store; relative paths resolve against the working directory."""
        self.path = settings.resolve_memory_path(path)
        self._lock = _lock_for(self.path)

    def __repr__(self) -> str:
        return f"GraphStore({str(self.path)!r})"

    @contextmanager
    def locked(self) -> Iterator["GraphStore"]:
        """Hold exclusive access to the memory file for this process."""
        with self._lock:
            yield self

    def exists(self) -> bool:
        return self.path.exists()

    def load(self) -> KnowledgeGraph:
        """
        Read the memory file into a KnowledgeGraph.

        A missing file is an empty graph. Blank lines and records with an
        unknown ``type`` are skipped. Any line that is not valid JSON, or
        does not validate as its record type, aborts the load.

        Raises:
            GraphParseError: on a malformed line, or line 0 if the file is not UTF-8
            OSError: on any other I/O failure
        """
        try:
            data = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            logger.debug(f"Memory file {self.path} not found, starting empty")
            return KnowledgeGraph()
        except UnicodeDecodeError as e:
            raise GraphParseError(self.path, 0, f"not valid UTF-8 ({e.reason})") from e

        graph = KnowledgeGraph()
        for line_number, line in enumerate(data.split("\n"), start=1):
            if not line.strip():
                continue

            try:
                record = json.loads(line)
            except json.JSONDecodeError as e:
                raise GraphParseError(self.path, line_number, f"invalid JSON ({e.msg})") from e

            if not isinstance(record, dict):
                raise GraphParseError(self.path, line_number, "record is not a JSON object")

            record_type = record.pop("type", None)
            try:
                if record_type == ENTITY_RECORD:
                    graph.entities.append(Entity.model_validate(record))
                elif record_type == RELATION_RECORD:
                    graph.relations.append(Relation.model_validate(record))
                else:
                    logger.debug(f"Skipping line {line_number} with unknown type {record_type!r}")
            except ValidationError as e:
                raise GraphParseError(
                    self.path, line_number, f"invalid {record_type} record: {e.error_count()} errors"
                ) from e

        logger.debug(
            f"Loaded {len(graph.entities)} entities and {len(graph.relations)} relations from {self.path}"
        )
        return graph

    def save(self, graph: KnowledgeGraph) -> None:
        """Overwrite the memory file with every entity followed by every relation."""
        lines = [
            json.dumps({"type": ENTITY_RECORD, **entity.to_dict()}, ensure_ascii=False)
            for entity in graph.entities
        ]
        lines.extend(
            json.dumps({"type": RELATION_RECORD, **relation.to_dict()}, ensure_ascii=False)
            for relation in graph.relations
        )

        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write("\n".join(lines))
                f.flush()
                os.fsync(f.fileno())
            if self.path.exists():
                os.chmod(tmp_name, self.path.stat().st_mode)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

        logger.debug(
            f"Saved {len(graph.entities)} entities and {len(graph.relations)} relations to {self.path}"
        )
