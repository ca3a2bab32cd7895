"""Snapshot store — append-only, per-route sample history.

Samples are keyed by (METHOD, path template). The store is a convenience
accumulator: the pattern detector and merger accept any sample sequence,
and ``merge``/``patterns`` here simply apply them to one route's history.
"""

import logging
import threading
from collections import deque

from api_schema_infer.config import InferConfig
from api_schema_infer.schema.base import PatternReport, Sample
from api_schema_infer.schema.classifier import classify
from api_schema_infer.schema.merger import merge_snapshots
from api_schema_infer.schema.patterns import detect_patterns

logger = logging.getLogger(__name__)


class SnapshotStore:
    """Thread-safe in-memory sample history for every observed route."""

    def __init__(self, config: InferConfig | None = None):
        self.config = config or InferConfig()
        self._lock = threading.Lock()
        self._samples: dict[tuple[str, str], deque[Sample]] = {}
        self._hashes: dict[tuple[str, str], set[str]] = {}

    def record(
        self,
        method: str,
        path: str,
        request_schema: dict | None = None,
        response_schema: dict | None = None,
    ) -> Sample | None:
        """Append one sample; returns it, or None if capture is off or it is a duplicate."""
        if not self.config.capture_enabled:
            return None

        # Non-mapping fragments can't be described; keep the rest of the sample.
        if not isinstance(request_schema, dict):
            request_schema = None
        if not isinstance(response_schema, dict):
            response_schema = None

        try:
            sample = Sample.create(method, path, request_schema, response_schema)
        except (ValueError, TypeError, RecursionError) as e:
            # e.g. a self-referencing fragment that cannot be hashed
            logger.warning("sample for %s %s not recorded: %s", method, path, e)
            return None
        key = (sample.method, sample.path)

        with self._lock:
            history = self._samples.setdefault(key, deque())
            hashes = self._hashes.setdefault(key, set())
            if self.config.dedupe and sample.hash in hashes:
                logger.debug("duplicate sample %s for %s %s skipped", sample.hash, *key)
                return None
            history.append(sample)
            hashes.add(sample.hash)
            limit = self.config.max_samples_per_route
            if limit is not None and len(history) > limit:
                evicted = history.popleft()
                hashes.discard(evicted.hash)
                logger.debug("evicted sample %s for %s %s", evicted.hash, *key)

        logger.debug("recorded sample %s for %s %s", sample.hash, *key)
        return sample

    def record_payload(self, method: str, path: str, request=None, response=None) -> Sample | None:
        """Classify raw decoded bodies and record them. ``None`` means no body."""
        depth = self.config.max_depth
        return self.record(
            method,
            path,
            request_schema=classify(request, depth) if request is not None else None,
            response_schema=classify(response, depth) if response is not None else None,
        )

    def record_declared(self, method: str, path: str, adapters, request=None, response=None) -> Sample | None:
        """Convert validator declarations through ``adapters`` and record them.

        Declarations no adapter recognizes are left out of the sample.
        """
        return self.record(
            method,
            path,
            request_schema=adapters.detect_and_convert(request) if request is not None else None,
            response_schema=adapters.detect_and_convert(response) if response is not None else None,
        )

    def history(self, method: str, path: str) -> tuple[Sample, ...]:
        """Ordered samples for a route, oldest first; empty for unknown routes."""
        with self._lock:
            return tuple(self._samples.get((method.upper(), path), ()))

    def routes(self) -> list[tuple[str, str]]:
        with self._lock:
            return [key for key, history in self._samples.items() if history]

    def all_samples(self) -> dict[tuple[str, str], tuple[Sample, ...]]:
        with self._lock:
            return {key: tuple(history) for key, history in self._samples.items() if history}

    def clear(self) -> None:
        with self._lock:
            self._samples.clear()
            self._hashes.clear()

    def __len__(self) -> int:
        with self._lock:
            return sum(len(history) for history in self._samples.values())

    def merge(self, method: str, path: str) -> dict:
        """Merged request/response schema for one route."""
        return merge_snapshots(self.history(method, path), self.config)

    def patterns(self, method: str, path: str, side: str = "response") -> PatternReport:
        """Pattern report for one side of one route."""
        return detect_patterns(self.history(method, path), side, self.config.max_depth)
