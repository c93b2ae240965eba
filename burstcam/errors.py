"""Error taxonomy for burst acquisition and export."""

from __future__ import annotations

from typing import Optional, Sequence, TYPE_CHECKING

if TYPE_CHECKING:
    from burstcam.capture.frame import MetadataChunk


class BurstCamError(Exception):
    """Base class for every error raised by burstcam."""


class ConfigError(BurstCamError):
    """Configuration rejected before any device command was issued."""

    def __init__(self, problems: Sequence[str] | str):
        if isinstance(problems, str):
            problems = [problems]
        self.problems = list(problems)
        super().__init__("; ".join(self.problems))


class MalformedMetadata(BurstCamError):
    """A per-frame chunk record is missing required fields."""

    def __init__(
        self,
        index: int,
        missing: Sequence[str],
        partial: Optional["MetadataChunk"] = None,
    ):
        self.index = index
        self.missing = tuple(missing)
        self.partial = partial
        super().__init__(f"Frame {index}: malformed chunk metadata, missing {', '.join(self.missing)}")


class CapacityExceeded(BurstCamError):
    """Append on a frame buffer that already holds its target count."""


class AlreadyConsumed(BurstCamError):
    """A frame buffer was consumed twice or used after consumption."""


class InvalidStateTransition(BurstCamError):
    """Session command issued from a state that does not allow it."""

    def __init__(self, command: str, state: object):
        self.command = command
        self.state = state
        name = getattr(state, "name", state)
        super().__init__(f"Cannot {command} while session is {name}")


class DeviceError(BurstCamError):
    """Fatal transport fault reported by the camera driver."""


class DeviceDisconnected(DeviceError):
    """The camera went away mid-session."""


class AcquisitionAborted(BurstCamError):
    """Capture failed mid-wait; the partial buffer was discarded."""


class AcquisitionTimeout(AcquisitionAborted):
    """Target frame count did not arrive within the configured timeout."""


class ExportError(BurstCamError):
    """An exporter could not write its artifact."""


class UnsupportedBitDepth(ExportError):
    """The selected exporter cannot encode the buffer's pixel depth."""


__all__ = [
    "AcquisitionAborted",
    "AcquisitionTimeout",
    "AlreadyConsumed",
    "BurstCamError",
    "CapacityExceeded",
    "ConfigError",
    "DeviceDisconnected",
    "DeviceError",
    "ExportError",
    "InvalidStateTransition",
    "MalformedMetadata",
    "UnsupportedBitDepth",
]
