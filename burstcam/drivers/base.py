"""Camera driver interface.

Drivers wrap a vendor SDK. Every method is blocking; the session calls
the slow ones through ``asyncio.to_thread``. Transport faults surface as
:class:`DeviceError` or :class:`DeviceDisconnected`.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence

import numpy as np

from burstcam.config import AcquisitionConfig, DeviceLimits


@dataclass(slots=True)
class StreamFrame:
    """One preview frame. Not retained by the session."""

    data: np.ndarray
    timestamp: float


@dataclass(slots=True)
class DrainResult:
    """Everything one ``drain()`` call removed from the device."""

    frames: List[np.ndarray]
    timestamps: Sequence[float]
    metadata: Sequence[Mapping[str, Any]] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.frames)


class FrameStream(ABC):
    """Live preview source returned by :meth:`CameraDriver.start_preview`."""

    @abstractmethod
    def read(self) -> Optional[StreamFrame]:
        """Block until the next frame; ``None`` once the stream has ended."""

    @abstractmethod
    def close(self) -> None:
        ...

    @property
    def frame_rate(self) -> float:
        return 0.0


class CameraDriver(ABC):

    name: str = "camera"

    @abstractmethod
    def limits(self) -> DeviceLimits:
        """Feature ranges reported by the device."""

    @abstractmethod
    def configure(self, config: AcquisitionConfig) -> None:
        ...

    @abstractmethod
    def start_preview(self) -> FrameStream:
        ...

    @abstractmethod
    def start_capture(self, count: int) -> None:
        """Start a bounded acquisition of ``count`` frames."""

    @abstractmethod
    def frames_available(self) -> int:
        ...

    @abstractmethod
    def drain(self) -> DrainResult:
        """Remove every buffered frame from the device."""

    @abstractmethod
    def session_facts(self) -> Dict[str, Any]:
        """``color_space``, ``frame_rate``, ``isp_enable``, ``roi`` as applied."""

    @abstractmethod
    def stop(self) -> None:
        ...

    @abstractmethod
    def close(self) -> None:
        ...


__all__ = [
    "CameraDriver",
    "DeviceLimits",
    "DrainResult",
    "FrameStream",
    "StreamFrame",
]
