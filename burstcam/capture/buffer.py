"""Fixed-capacity frame buffer filled by one acquisition."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, List, Optional, Tuple

import numpy as np

from burstcam.capture.frame import Frame, MetadataChunk
from burstcam.errors import AlreadyConsumed, CapacityExceeded


@dataclass(frozen=True, slots=True)
class FrameBatch:
    """Frames handed out by :meth:`FrameBuffer.consume`; owned by one exporter."""

    frames: Tuple[Frame, ...]
    target_count: int

    def __len__(self) -> int:
        return len(self.frames)

    def __iter__(self) -> Iterator[Frame]:
        return iter(self.frames)

    @property
    def complete(self) -> bool:
        return len(self.frames) == self.target_count

    @property
    def dtype(self) -> Optional[np.dtype]:
        return self.frames[0].data.dtype if self.frames else None

    @property
    def frame_shape(self) -> Optional[tuple[int, ...]]:
        return tuple(self.frames[0].data.shape) if self.frames else None

    @property
    def timestamps(self) -> np.ndarray:
        return np.array([f.timestamp for f in self.frames], dtype=np.float64)

    @property
    def chunks(self) -> List[MetadataChunk]:
        return [f.chunk for f in self.frames]

    def stack(self) -> np.ndarray:
        """Frames as one (N, H, W, C) array."""
        return np.stack([f.data for f in self.frames])


class FrameBuffer:
    """Append-only store of ``target_count`` frames.

    Ownership leaves the buffer exactly once through :meth:`consume`; after
    that the buffer refuses appends and further consumes.
    """

    def __init__(self, target_count: int):
        if target_count <= 0:
            raise ValueError(f"target_count must be positive, got {target_count}")
        self._target_count = int(target_count)
        self._frames: List[Frame] = []
        self._consumed = False

    def append(self, frame: Frame) -> None:
        if self._consumed:
            raise AlreadyConsumed("Frame buffer was already consumed")
        if len(self._frames) >= self._target_count:
            raise CapacityExceeded(
                f"Frame buffer already holds {self._target_count} frames"
            )
        self._frames.append(frame)

    def is_complete(self) -> bool:
        return len(self._frames) == self._target_count

    def consume(self) -> FrameBatch:
        """Hand the frames to one caller and mark the buffer exhausted."""
        if self._consumed:
            raise AlreadyConsumed("Frame buffer was already consumed")
        self._consumed = True
        frames, self._frames = tuple(self._frames), []
        return FrameBatch(frames=frames, target_count=self._target_count)

    def __len__(self) -> int:
        return len(self._frames)

    @property
    def target_count(self) -> int:
        return self._target_count

    @property
    def consumed(self) -> bool:
        return self._consumed

    @property
    def dtype(self) -> Optional[np.dtype]:
        """Pixel dtype of the buffered frames, readable without consuming."""
        return self._frames[0].data.dtype if self._frames else None

    @property
    def frame_shape(self) -> Optional[tuple[int, ...]]:
        return tuple(self._frames[0].data.shape) if self._frames else None


__all__ = ["FrameBatch", "FrameBuffer"]
