"""Adaptive baseline service: cached thresholds learned from the sample store."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import replace
from typing import Any

from netinsight.core.profiles.models import (
    ADAPTIVE_PROFILE_ID,
    EnvironmentProfile,
    ProfileError,
)
from netinsight.core.profiles.registry import ProfileRegistry
from netinsight.core.scheduling.debounce import Clock, system_now_ms
from netinsight.domains.wireless.domain_logic.baseline_calculator import (
    calculate_baseline,
    mean,
    round_half_up,
)
from netinsight.domains.wireless.domain_logic.baseline_models import BaselineThresholds
from netinsight.domains.wireless.domain_logic.baseline_store import BaselineSampleStore
from netinsight.domains.wireless.domain_logic.confidence import (
    confidence_description,
    confidence_level,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_AGE_MS = 15 * 60 * 1000
HOUR_MS = 60 * 60 * 1000


class AdaptiveBaseline:
    """Learns thresholds from a :class:`BaselineSampleStore`.

    ``get_thresholds`` is lazy: a cached bundle is served while younger than
    ``max_age_ms``, otherwise it is recomputed, cached and persisted. In
    background mode a stale bundle is served immediately while one worker
    thread recomputes, and the next call picks up the fresh result.
    """

    def __init__(self, store: BaselineSampleStore, *, clock: Clock = system_now_ms) -> None:
        self._store = store
        self._clock = clock
        self._lock = threading.Lock()
        self._executor: ThreadPoolExecutor | None = None
        self._pending: Future | None = None

    @property
    def store(self) -> BaselineSampleStore:
        return self._store

    def calculate_baseline(self) -> BaselineThresholds:
        """Recompute from every stored sample, cache the result and persist it."""
        samples = self._store.all_samples()
        thresholds = calculate_baseline(samples, now_ms=self._clock())
        if samples:
            self._store.cache_thresholds(thresholds)
            logger.info(
                "Calculated baseline thresholds from %d samples (confidence %.2f)",
                len(samples), thresholds.confidence,
            )
        else:
            logger.info("No baseline samples available, returning defaults")
        return thresholds

    def get_thresholds(
        self, max_age_ms: int = DEFAULT_MAX_AGE_MS, *, background: bool = False
    ) -> BaselineThresholds:
        cached, last_calculated = self._store.cached_thresholds()
        if cached is not None and self._clock() - last_calculated < max_age_ms:
            return cached
        if background and cached is not None:
            self._recompute_in_background()
            return cached
        return self.calculate_baseline()

    def _recompute_in_background(self) -> None:
        with self._lock:
            if self._pending is not None and not self._pending.done():
                return
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=1, thread_name_prefix="netinsight-baseline"
                )
            self._pending = self._executor.submit(self.calculate_baseline)

    def wait_for_recompute(self, timeout: float | None = None) -> None:
        """Block until an in-flight background recompute finishes."""
        with self._lock:
            pending = self._pending
        if pending is not None:
            pending.result(timeout=timeout)

    def get_summary(self) -> dict[str, Any]:
        samples = self._store.all_samples()
        time_range = self._store.get_time_range()
        hours = 0.0
        if time_range["earliest"] is not None and time_range["latest"] is not None:
            hours = (time_range["latest"] - time_range["earliest"]) / HOUR_MS
        cached, _ = self._store.cached_thresholds()
        count = len(samples)
        return {
            "sample_count": count,
            "confidence_level": confidence_level(count),
            "confidence_description": confidence_description(count),
            "time_range_hours": round(hours, 1),
            "avg_rfqi": round(mean([s.rfqi for s in samples]), 1),
            "avg_client_count": round_half_up(mean([s.client_count for s in samples])),
            "thresholds": cached.to_dict() if cached else None,
        }

    def adaptive_profile(
        self, registry: ProfileRegistry | None = None, *, max_age_ms: int = DEFAULT_MAX_AGE_MS
    ) -> EnvironmentProfile:
        """The ``adaptive`` environment profile carrying the learned thresholds.

        Name and description come from the registered ``adaptive`` profile
        when a registry is given.
        """
        thresholds = self.get_thresholds(max_age_ms)
        template = registry.get(ADAPTIVE_PROFILE_ID) if registry is not None else None
        try:
            learned = thresholds.as_profile_thresholds()
        except ProfileError:
            logger.warning("Learned thresholds are inconsistent; using defaults", exc_info=True)
            learned = BaselineThresholds.default(thresholds.last_updated).as_profile_thresholds()

        if template is not None:
            return replace(template, thresholds=learned, adaptive=True)
        return EnvironmentProfile(
            id=ADAPTIVE_PROFILE_ID,
            name="Adaptive Baseline",
            description="Thresholds learned from this network's telemetry history.",
            thresholds=learned,
            adaptive=True,
        )

    def close(self) -> None:
        """Stop the background worker and flush the sample store."""
        with self._lock:
            executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=True)
        self._store.close()
