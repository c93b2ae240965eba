"""Session lifecycle state and snapshots shared with observers."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple

from burstcam.config import Roi


class SessionState(Enum):
    IDLE = "idle"
    PREVIEWING = "previewing"
    ACQUIRING = "acquiring"
    DRAINED = "drained"
    ABORTED = "aborted"
    CLOSED = "closed"

    @property
    def status_code(self) -> int:
        """0 stopped, 1 previewing, 2 acquiring (matches the on-screen status flag)."""
        if self is SessionState.PREVIEWING:
            return 1
        if self is SessionState.ACQUIRING:
            return 2
        return 0


@dataclass(frozen=True, slots=True)
class PreviewStatus:
    """What the preview loop reports per displayed frame. Frames are not kept."""

    timestamp: float
    status: str
    resolution: Tuple[int, int]
    frame_rate: float


@dataclass(frozen=True, slots=True)
class SessionFacts:
    """Device-reported facts captured once, at drain time."""

    color_space: str
    frame_rate: float
    isp_enable: bool
    roi: Roi
    frame_count: int
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_driver(
        cls,
        raw: Mapping[str, Any],
        *,
        frame_count: int,
        fallback_roi: Roi,
        fallback_isp: bool = False,
    ) -> "SessionFacts":
        """Build from ``CameraDriver.session_facts()`` output.

        The ROI is whatever the device says it applied; ``fallback_roi`` is
        only used when the driver does not report one.
        """

        roi = _parse_roi(raw.get("roi")) or fallback_roi
        known = {"color_space", "frame_rate", "isp_enable", "roi"}
        return cls(
            color_space=str(raw.get("color_space") or "unknown"),
            frame_rate=_to_float(raw.get("frame_rate")),
            isp_enable=bool(raw.get("isp_enable", fallback_isp)),
            roi=roi,
            frame_count=int(frame_count),
            extra={k: v for k, v in raw.items() if k not in known},
        )


def _parse_roi(value: Any) -> Optional[Roi]:
    if isinstance(value, Roi):
        return value
    if isinstance(value, (list, tuple)) and len(value) == 4:
        x, y, width, height = (int(v) for v in value)
        return Roi(x, y, width, height)
    return None


def _to_float(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return float("nan")


__all__ = ["PreviewStatus", "SessionFacts", "SessionState"]
