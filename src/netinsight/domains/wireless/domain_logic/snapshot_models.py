"""Telemetry snapshot schema consumed by the insight detectors.

Every metric is optional. A ``None`` field means "not reported this cycle"
and simply disables the detectors that need it.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from typing import Any

SNAPSHOT_SCHEMA_VERSION = 1

# RFQI reported on a 1-5 scale is converted to 0-100 by this factor
RFQI_FIVE_POINT_FACTOR = 20


def _safe_float(val: Any) -> float | None:
    """Coerce to a finite float, or None for missing/non-numeric input."""
    if val is None or isinstance(val, bool):
        return None
    try:
        result = float(val)
    except (TypeError, ValueError):
        return None
    return result if math.isfinite(result) else None


def _safe_int(val: Any) -> int | None:
    result = _safe_float(val)
    return int(result) if result is not None else None


@dataclass(frozen=True)
class SnapshotHistory:
    """The same quantities measured 1 hour and 24 hours earlier."""

    rfqi_1h_ago: float | None = None
    rfqi_24h_ago: float | None = None
    client_count_1h_ago: float | None = None
    client_count_24h_ago: float | None = None
    throughput_1h_ago: float | None = None
    throughput_24h_ago: float | None = None
    ap_online_1h_ago: float | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SnapshotHistory:
        return cls(**{name: _safe_float(data.get(name)) for name in cls.__dataclass_fields__})


@dataclass(frozen=True)
class APMetrics:
    """Operational metrics for a single access point."""

    serial_number: str = ""
    name: str = ""
    uptime: float | None = None            # seconds
    restart_count: int | None = None
    memory_usage: float | None = None      # percent
    cpu_usage: float | None = None         # percent
    temperature: float | None = None       # celsius
    client_count: int | None = None
    rfqi: float | None = None
    last_restart: int | None = None        # epoch ms

    @property
    def label(self) -> str:
        return self.name or self.serial_number or "unnamed AP"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> APMetrics:
        return cls(
            serial_number=str(data.get("serial_number") or ""),
            name=str(data.get("name") or ""),
            uptime=_safe_float(data.get("uptime")),
            restart_count=_safe_int(data.get("restart_count")),
            memory_usage=_safe_float(data.get("memory_usage")),
            cpu_usage=_safe_float(data.get("cpu_usage")),
            temperature=_safe_float(data.get("temperature")),
            client_count=_safe_int(data.get("client_count")),
            rfqi=_safe_float(data.get("rfqi")),
            last_restart=_safe_int(data.get("last_restart")),
        )


@dataclass(frozen=True)
class MetricsSnapshot:
    """A point-in-time read of network health."""

    rfqi: float | None = None                  # 0-100
    channel_utilization: float | None = None   # percent
    interference: float | None = None          # 0-1
    noise_floor_dbm: float | None = None
    retry_rate: float | None = None            # percent
    client_count: int | None = None
    ap_count: int | None = None
    ap_online_count: int | None = None
    throughput_bps: float | None = None
    avg_rssi: float | None = None              # dBm
    avg_snr: float | None = None               # dB
    latency_ms: float | None = None
    timestamp: int | None = None               # epoch ms
    history: SnapshotHistory | None = None
    ap_metrics: tuple[APMetrics, ...] = field(default_factory=tuple)
    schema_version: int = SNAPSHOT_SCHEMA_VERSION

    def has(self, path: str) -> bool:
        """Whether a (dotted) field is present, e.g. ``"history.rfqi_1h_ago"``.

        ``ap_metrics`` counts as present only when non-empty.
        """
        value: Any = self
        for part in path.split("."):
            value = getattr(value, part, None)
            if value is None:
                return False
        if isinstance(value, tuple):
            return len(value) > 0
        return True

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MetricsSnapshot:
        """Build a snapshot from loosely-typed telemetry.

        Non-numeric or non-finite values are treated as absent. Pass
        ``rfqi_scale: 5`` when RFQI (current and historical) is reported on
        a 1-5 scale.
        """
        history_data = data.get("history")
        history = (
            SnapshotHistory.from_dict(history_data) if isinstance(history_data, dict) else None
        )
        ap_data = data.get("ap_metrics")
        if not isinstance(ap_data, (list, tuple)):
            ap_data = ()
        ap_metrics = tuple(
            APMetrics.from_dict(ap) for ap in ap_data if isinstance(ap, dict)
        )

        rfqi = _safe_float(data.get("rfqi"))
        if _safe_float(data.get("rfqi_scale")) == 5:
            rfqi = rfqi * RFQI_FIVE_POINT_FACTOR if rfqi is not None else None
            if history is not None:
                history = replace(
                    history,
                    rfqi_1h_ago=_scaled(history.rfqi_1h_ago),
                    rfqi_24h_ago=_scaled(history.rfqi_24h_ago),
                )

        return cls(
            rfqi=rfqi,
            channel_utilization=_safe_float(data.get("channel_utilization")),
            interference=_safe_float(data.get("interference")),
            noise_floor_dbm=_safe_float(data.get("noise_floor_dbm")),
            retry_rate=_safe_float(data.get("retry_rate")),
            client_count=_safe_int(data.get("client_count")),
            ap_count=_safe_int(data.get("ap_count")),
            ap_online_count=_safe_int(data.get("ap_online_count")),
            throughput_bps=_safe_float(data.get("throughput_bps")),
            avg_rssi=_safe_float(data.get("avg_rssi")),
            avg_snr=_safe_float(data.get("avg_snr")),
            latency_ms=_safe_float(data.get("latency_ms")),
            timestamp=_safe_int(data.get("timestamp")),
            history=history,
            ap_metrics=ap_metrics,
        )


def _scaled(value: float | None) -> float | None:
    return value * RFQI_FIVE_POINT_FACTOR if value is not None else None


@dataclass(frozen=True)
class NetworkEvent:
    """An already-recorded network event (alarm, disconnect, reboot...)."""

    type: str
    timestamp: int  # epoch ms
    message: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> NetworkEvent | None:
        ts = _safe_int(data.get("timestamp"))
        if not data.get("type") or ts is None:
            return None
        return cls(type=str(data["type"]), timestamp=ts, message=str(data.get("message", "")))
