"""
Digest stores for incremental reconciliation.

A store maps a row key to the digest recorded for it by an earlier run.
The reconciler only reads from a store; writing the outcome of a merge
plan back is the caller's job (see apply_merge_plan).
"""

import json
import logging
import os
import re
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Protocol

from opentelemetry import trace
from prometheus_client import Counter

from tablediff.utils.metrics import get_or_create_metric
from tablediff.utils.tracing import trace_operation

logger = logging.getLogger(__name__)

DIGEST_STATE_OPERATIONS = get_or_create_metric(
    lambda: Counter(
        "tablediff_digest_state_operations_total",
        "Digest state file operations",
        ["operation"],  # load, save
    ),
    "tablediff_digest_state_operations",
)


@dataclass(frozen=True)
class StoredRowDigest:
    """A row digest as persisted by a previous run."""

    key: tuple
    digest: bytes
    last_seen_at: datetime

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "key": list(self.key),
            "digest": self.digest.hex(),
            "last_seen_at": self.last_seen_at.isoformat(),
        }


class DigestStore(Protocol):
    """Port for keyed row digest storage."""

    def get(self, key: tuple) -> StoredRowDigest | None:
        ...

    def put(self, key: tuple, digest: bytes, timestamp: datetime) -> None:
        ...


def key_id(key: Iterable[Any]) -> str:
    """Stable string identity of a key; values without a JSON form use str()."""
    return json.dumps(list(key), default=str, separators=(",", ":"))


class InMemoryDigestStore:
    """Dictionary-backed store, for tests and single-process runs."""

    def __init__(self) -> None:
        self._rows: dict[str, StoredRowDigest] = {}

    def get(self, key: tuple) -> StoredRowDigest | None:
        return self._rows.get(key_id(key))

    def put(self, key: tuple, digest: bytes, timestamp: datetime) -> None:
        self._rows[key_id(key)] = StoredRowDigest(tuple(key), digest, timestamp)

    def __len__(self) -> int:
        return len(self._rows)

    def __contains__(self, key: tuple) -> bool:
        return key_id(key) in self._rows

    def values(self) -> list[StoredRowDigest]:
        return list(self._rows.values())


class JsonFileDigestStore(InMemoryDigestStore):
    """
    One JSON state file per table.

    The file holds the table's row digests and its watermark, the point in
    time up to which changes have been reconciled. Changes stay in memory
    until save() writes the file; the write goes through a temporary file
    and a rename so a crash never leaves a half-written state.
    """

    def __init__(self, state_dir: str, table: str):
        """
        Initialize file store and load any existing state for the table.

        Args:
            state_dir: Directory holding state files
            table: Table name
        """
        super().__init__()
        self.state_dir = Path(state_dir)
        self.state_dir.mkdir(parents=True, exist_ok=True)
        self.table = table
        self._watermark: datetime | None = None
        self._load()

    @property
    def path(self) -> Path:
        return self._get_state_file(self.table)

    def _get_state_file(self, table: str) -> Path:
        safe_table_name = re.sub(r'[/\\:*?"<>|]', '_', table)
        return self.state_dir / f"{safe_table_name}_digest_state.json"

    def _load(self) -> None:
        with trace_operation("load_digest_state", kind=trace.SpanKind.INTERNAL, table=self.table):
            if not self.path.exists():
                logger.debug(f"No previous digest state for table {self.table}")
                return

            with open(self.path) as f:
                state = json.load(f)

            watermark = state.get("watermark")
            self._watermark = datetime.fromisoformat(watermark) if watermark else None

            for entry in state.get("rows", []):
                key = tuple(entry["key"])
                self._rows[key_id(key)] = StoredRowDigest(
                    key=key,
                    digest=bytes.fromhex(entry["digest"]),
                    last_seen_at=datetime.fromisoformat(entry["last_seen_at"]),
                )

            DIGEST_STATE_OPERATIONS.labels(operation="load").inc()
            logger.info(
                f"Loaded digest state for {self.table}: {len(self._rows)} rows, "
                f"watermark={self._watermark.isoformat() if self._watermark else None}"
            )

    def get_watermark(self) -> datetime | None:
        """Return the watermark saved by the last completed run."""
        return self._watermark

    def set_watermark(self, watermark: datetime) -> None:
        self._watermark = watermark

    def save(self) -> None:
        """Write the state file atomically."""
        with trace_operation("save_digest_state", kind=trace.SpanKind.INTERNAL, table=self.table):
            state = {
                "table": self.table,
                "watermark": self._watermark.isoformat() if self._watermark else None,
                "saved_at": datetime.now(UTC).isoformat(),
                "rows": [r.to_dict() for r in self._rows.values()],
            }

            tmp_path = self.path.with_suffix(".json.tmp")
            try:
                with open(tmp_path, "w") as f:
                    json.dump(state, f, indent=2, default=str)
                os.replace(tmp_path, self.path)
            except Exception as e:
                logger.error(f"Failed to save digest state for {self.table}: {e}")
                raise

            DIGEST_STATE_OPERATIONS.labels(operation="save").inc()
            logger.info(f"Saved digest state for {self.table}: {len(self._rows)} rows")

    def clear(self) -> None:
        """Forget all digests and the watermark, and delete the state file."""
        self._rows.clear()
        self._watermark = None
        if self.path.exists():
            self.path.unlink()
            logger.info(f"Cleared digest state for table {self.table}")
