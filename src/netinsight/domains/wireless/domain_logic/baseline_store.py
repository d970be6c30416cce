"""Bounded FIFO of baseline samples with debounced, validated persistence.

The in-memory envelope is authoritative. Persistence is best-effort: the
envelope is written as one JSON blob under a single key, at most once per
debounce window, and always once more on ``close()``.
"""

from __future__ import annotations

import json
import logging
import threading
from typing import Any, Mapping

from netinsight.core.scheduling.debounce import (
    Clock,
    DebouncedWriter,
    Scheduler,
    system_now_ms,
)
from netinsight.core.storage.blob_store import BlobStore, StorageError
from netinsight.domains.wireless.domain_logic.baseline_models import (
    BaselineSample,
    BaselineThresholds,
    StoredBaselineData,
    append_sample,
)
from netinsight.domains.wireless.domain_logic.snapshot_models import MetricsSnapshot

logger = logging.getLogger(__name__)

DEFAULT_STORAGE_KEY = "edge_ai_baseline_v1"
DEFAULT_CAPACITY = 500  # ~3.5 days at 15-minute intervals


class BaselineSampleStore:
    """Single-writer store for the adaptive baseline envelope.

    Every mutation and the persisted write itself run under one lock, so
    trim-then-append is atomic with respect to concurrent request handlers
    and the debounce timer thread.
    """

    def __init__(
        self,
        blob_store: BlobStore,
        *,
        key: str = DEFAULT_STORAGE_KEY,
        capacity: int = DEFAULT_CAPACITY,
        delay_s: float = 1.0,
        scheduler: Scheduler | None = None,
        clock: Clock = system_now_ms,
    ) -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self._blob_store = blob_store
        self._key = key
        self._capacity = capacity
        self._clock = clock
        self._lock = threading.RLock()
        self._writer = DebouncedWriter(self._persist, delay_s=delay_s, scheduler=scheduler)
        self._data = self._load()

    @property
    def capacity(self) -> int:
        return self._capacity

    # ------------------------------------------------------------------
    # Load / persist
    # ------------------------------------------------------------------

    def _load(self) -> StoredBaselineData:
        try:
            raw = self._blob_store.read(self._key)
        except StorageError:
            logger.warning("Failed to read baseline envelope %s; starting empty", self._key, exc_info=True)
            return StoredBaselineData()
        if raw is None:
            return StoredBaselineData()
        try:
            data = StoredBaselineData.from_dict(json.loads(raw))
        except ValueError:  # includes json.JSONDecodeError
            logger.warning("Corrupt baseline envelope %s; starting empty", self._key, exc_info=True)
            return StoredBaselineData()

        if len(data.samples) > self._capacity:
            data = StoredBaselineData(
                samples=data.samples[-self._capacity:],
                last_calculated=data.last_calculated,
                calculated_thresholds=data.calculated_thresholds,
            )
        logger.info("Loaded %d baseline samples from storage", len(data.samples))
        return data

    def _persist(self) -> None:
        with self._lock:
            payload = json.dumps(self._data.to_dict())
            try:
                self._blob_store.write(self._key, payload)
            except (StorageError, OSError):
                logger.exception("Failed to save baseline envelope %s", self._key)
                return
            logger.debug("Saved %d baseline samples to storage", len(self._data.samples))

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def add_sample(self, sample: BaselineSample | Mapping[str, Any]) -> bool:
        """Append a sample, evicting the oldest past capacity.

        Returns False (and stores nothing) when ``rfqi`` or ``client_count``
        is missing or non-numeric.
        """
        raw = sample.to_dict() if isinstance(sample, BaselineSample) else dict(sample)
        validated = BaselineSample.from_dict(raw, self._clock())
        if validated is None:
            logger.warning("Invalid baseline sample, skipping: %r", sample)
            return False

        with self._lock:
            self._data = append_sample(self._data, validated, self._capacity)
            self._writer.schedule()
        return True

    def record_snapshot(self, metrics: MetricsSnapshot | Mapping[str, Any]) -> bool:
        """Record the current telemetry reading, stamped with the clock."""
        if isinstance(metrics, MetricsSnapshot):
            fields = {
                "rfqi": metrics.rfqi,
                "channel_utilization": metrics.channel_utilization,
                "client_count": metrics.client_count,
                "ap_online_count": metrics.ap_online_count,
                "retry_rate": metrics.retry_rate,
                "latency_ms": metrics.latency_ms,
            }
        else:
            fields = {
                name: metrics.get(name)
                for name in (
                    "rfqi", "channel_utilization", "client_count",
                    "ap_online_count", "retry_rate", "latency_ms", "site_id",
                )
            }
        fields["timestamp"] = self._clock()
        return self.add_sample(fields)

    def cache_thresholds(self, thresholds: BaselineThresholds) -> None:
        with self._lock:
            self._data = StoredBaselineData(
                samples=self._data.samples,
                last_calculated=self._clock(),
                calculated_thresholds=thresholds,
            )
            self._writer.schedule()

    def clear(self) -> None:
        """Drop every sample and the cached bundle, and delete the stored blob."""
        with self._lock:
            self._writer.cancel()
            self._data = StoredBaselineData()
            try:
                self._blob_store.delete(self._key)
            except StorageError:
                logger.exception("Failed to delete baseline envelope %s", self._key)
        logger.info("Cleared all baseline data")

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_samples(self, start: int | None = None, end: int | None = None) -> list[BaselineSample]:
        """Samples with ``start <= timestamp <= end`` (defaults: 0 and now)."""
        lo = start if start is not None else 0
        hi = end if end is not None else self._clock()
        with self._lock:
            samples = self._data.samples
        return [s for s in samples if lo <= s.timestamp <= hi]

    def all_samples(self) -> tuple[BaselineSample, ...]:
        with self._lock:
            return self._data.samples

    def get_sample_count(self) -> int:
        with self._lock:
            return len(self._data.samples)

    def get_time_range(self) -> dict[str, int | None]:
        with self._lock:
            samples = self._data.samples
        if not samples:
            return {"earliest": None, "latest": None}
        timestamps = [s.timestamp for s in samples]
        return {"earliest": min(timestamps), "latest": max(timestamps)}

    def cached_thresholds(self) -> tuple[BaselineThresholds | None, int]:
        """The cached bundle and when it was calculated (epoch ms)."""
        with self._lock:
            return self._data.calculated_thresholds, self._data.last_calculated

    def export_data(self) -> dict[str, Any]:
        """JSON-ready copy of the envelope."""
        with self._lock:
            return self._data.to_dict()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def write_pending(self) -> bool:
        return self._writer.pending

    def flush(self) -> None:
        """Write a pending envelope now instead of waiting for the timer."""
        self._writer.flush()

    def close(self) -> None:
        """Cancel the timer and perform the final synchronous write."""
        self._writer.close()
