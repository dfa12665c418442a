"""In-memory store of analysis results.

Avoids paying twice (in credits and provider latency) when the same document
is submitted again, e.g. when an operator re-runs a batch after a partial
failure. Results are grouped by batch so a finished batch can be dropped in one
call.
"""

import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from leitordocs.shared.logging import get_logger

logger = get_logger(__name__)

DEFAULT_TTL_SECONDS = 60 * 60
DEFAULT_MAX_ENTRIES = 5000
MAINTENANCE_INTERVAL_SECONDS = 5 * 60


@dataclass
class StoredAnalysis:
    """A cached result with its bookkeeping."""

    result: Any
    file_name: str
    file_hash: str
    analysis_type: str
    batch_id: str | None
    stored_at: float


@dataclass
class BatchMetadata:
    values: dict[str, Any] = field(default_factory=dict)
    updated_at: float = 0.0


class AnalysisStore:
    """Thread-safe TTL cache keyed by file name, content hash, type and company."""

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._lock = threading.Lock()
        # dict preserves insertion order: the first key is the oldest entry
        self._entries: dict[str, StoredAnalysis] = {}
        self._batches: dict[str, set[str]] = {}
        self._batch_metadata: dict[str, BatchMetadata] = {}
        self._last_maintenance = clock()
        self.hits = 0
        self.misses = 0

    @staticmethod
    def make_key(file_name: str, file_hash: str, analysis_type: str, company: str = "") -> str:
        return f"{file_name}_{file_hash}_{analysis_type}_{company}"

    def _expired(self, entry: StoredAnalysis, now: float) -> bool:
        return now - entry.stored_at > self.ttl_seconds

    def store(
        self,
        file_name: str,
        file_hash: str,
        analysis_type: str,
        result: Any,
        batch_id: str | None = None,
        company: str = "",
    ) -> None:
        """Store a result, evicting the oldest entry when the store is full."""
        with self._lock:
            now = self._clock()
            self._maybe_run_maintenance(now)

            key = self.make_key(file_name, file_hash, analysis_type, company)
            if len(self._entries) >= self.max_entries and key not in self._entries:
                oldest = next(iter(self._entries))
                del self._entries[oldest]
                logger.info("analysis_store_full_evicted", max_entries=self.max_entries)

            self._entries.pop(key, None)
            self._entries[key] = StoredAnalysis(
                result=result,
                file_name=file_name,
                file_hash=file_hash,
                analysis_type=analysis_type,
                batch_id=batch_id,
                stored_at=now,
            )
            if batch_id:
                self._batches.setdefault(batch_id, set()).add(key)

        logger.debug(
            "analysis_stored",
            file_name=file_name,
            analysis_type=analysis_type,
            batch_id=batch_id,
        )

    def get(
        self,
        file_name: str,
        file_hash: str,
        analysis_type: str,
        company: str = "",
    ) -> Any | None:
        """Return a stored result, or None on a miss or expired entry."""
        key = self.make_key(file_name, file_hash, analysis_type, company)
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self.misses += 1
                return None

            if self._expired(entry, self._clock()):
                del self._entries[key]
                self.misses += 1
                logger.debug("analysis_store_entry_expired", file_name=file_name)
                return None

            self.hits += 1
            return entry.result

    def clear_all(self) -> int:
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
            self._batches.clear()
        logger.info("analysis_store_cleared", removed=count)
        return count

    def clear_batch(self, batch_id: str) -> int:
        """Drop every entry of a batch. Returns the number of removed entries."""
        with self._lock:
            keys = self._batches.pop(batch_id, None)
            if keys is None:
                return 0
            removed = sum(1 for key in keys if self._entries.pop(key, None) is not None)
        logger.info("analysis_batch_cleared", batch_id=batch_id, removed=removed)
        return removed

    def get_batch_analyses(self, batch_id: str) -> dict[str, Any] | None:
        """Results of a batch keyed by ``file_name|file_hash|analysis_type``."""
        with self._lock:
            keys = self._batches.get(batch_id)
            if keys is None:
                return None
            analyses: dict[str, Any] = {}
            for key in keys:
                entry = self._entries.get(key)
                if entry is not None:
                    label = f"{entry.file_name}|{entry.file_hash}|{entry.analysis_type}"
                    analyses[label] = entry.result
            return analyses

    def store_batch_metadata(self, batch_id: str, metadata: dict[str, Any]) -> None:
        with self._lock:
            self._batch_metadata[batch_id] = BatchMetadata(dict(metadata), self._clock())

    def update_batch_metadata(self, batch_id: str, metadata: dict[str, Any]) -> bool:
        with self._lock:
            current = self._batch_metadata.get(batch_id)
            if current is None:
                logger.warning("batch_metadata_missing", batch_id=batch_id)
                return False
            current.values.update(metadata)
            current.updated_at = self._clock()
            return True

    def get_batch_metadata(self, batch_id: str) -> dict[str, Any] | None:
        with self._lock:
            current = self._batch_metadata.get(batch_id)
            return dict(current.values) if current is not None else None

    def _maybe_run_maintenance(self, now: float) -> None:
        # Caller holds the lock
        if now - self._last_maintenance < MAINTENANCE_INTERVAL_SECONDS:
            return
        self._last_maintenance = now

        expired = [key for key, entry in self._entries.items() if self._expired(entry, now)]
        for key in expired:
            del self._entries[key]

        for batch_id in list(self._batches):
            keys = self._batches[batch_id]
            keys.intersection_update(self._entries.keys())
            if keys:
                continue
            metadata = self._batch_metadata.get(batch_id)
            if metadata is None or now - metadata.updated_at > self.ttl_seconds:
                del self._batches[batch_id]
                self._batch_metadata.pop(batch_id, None)

        if expired:
            logger.info("analysis_store_maintenance", expired=len(expired))

    def run_maintenance(self) -> None:
        """Force an expiry sweep now."""
        with self._lock:
            self._last_maintenance = float("-inf")
            self._maybe_run_maintenance(self._clock())

    def get_stats(self) -> dict[str, Any]:
        with self._lock:
            lookups = self.hits + self.misses
            return {
                "size": len(self._entries),
                "batch_count": len(self._batches),
                "batch_metadata_count": len(self._batch_metadata),
                "hits": self.hits,
                "misses": self.misses,
                "hit_rate": round(self.hits / lookups, 2) if lookups else 0.0,
            }
