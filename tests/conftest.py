"""Shared pytest configuration and fixtures for the burstcam test suite."""

import logging
import math
from pathlib import Path

import numpy as np
import pytest

from burstcam.capture.buffer import FrameBatch
from burstcam.capture.frame import Frame, MetadataChunk, PixelFormat
from burstcam.capture.observer import SessionObserver
from burstcam.capture.session import AcquisitionSession
from burstcam.capture.state import SessionFacts
from burstcam.config import AcquisitionConfig, Roi
from burstcam.core import logging_config
from burstcam.drivers.simulated import SimulatedDriver
from burstcam.storage.session_paths import resolve_session_paths


# =============================================================================
# Pytest Configuration
# =============================================================================

def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "hardware: mark test as requiring a physical camera"
    )
    config.addinivalue_line(
        "markers", "slow: mark test as slow running"
    )


def pytest_addoption(parser):
    """Add custom command-line options."""
    parser.addoption(
        "--run-hardware",
        action="store_true",
        default=False,
        help="Run tests that require a physical camera",
    )


def pytest_collection_modifyitems(config, items):
    """Skip hardware tests unless --run-hardware is specified."""
    if config.getoption("--run-hardware"):
        return

    skip_hardware = pytest.mark.skip(reason="Need --run-hardware option to run")
    for item in items:
        if "hardware" in item.keywords:
            item.add_marker(skip_hardware)


# =============================================================================
# Helpers
# =============================================================================

class RecordingObserver(SessionObserver):
    """Keeps every event it sees, in order."""

    def __init__(self):
        self.states = []
        self.previews = []
        self.progress = []
        self.completed = []

    def on_state_change(self, old, new):
        self.states.append((old, new))

    def on_preview(self, status):
        self.previews.append(status)

    def on_progress(self, available, target):
        self.progress.append((available, target))

    def on_complete(self, result):
        self.completed.append(result)


def make_chunk(index, *, exposure=1000.0, gain=28.0, pixel_format="BayerRG8"):
    return MetadataChunk(
        frame_id=index,
        exposure_time=exposure,
        gain=gain,
        black_level=0.0,
        pixel_format=pixel_format,
    )


def make_batch(count=4, width=32, height=24, dtype=np.uint8, *, target=None):
    """Random RGB frames at 100 fps with complete chunks."""
    rng = np.random.default_rng(1234)
    top = np.iinfo(dtype).max
    frames = tuple(
        Frame(
            index=i,
            data=rng.integers(0, top, size=(height, width, 3), endpoint=True, dtype=dtype),
            timestamp=10.0 + i * 0.01,
            chunk=make_chunk(i),
        )
        for i in range(count)
    )
    return FrameBatch(frames=frames, target_count=count if target is None else target)


def make_facts(width=32, height=24, count=4, *, color_space="RGB"):
    return SessionFacts(
        color_space=color_space,
        frame_rate=100.0,
        isp_enable=False,
        roi=Roi(0, 0, width, height),
        frame_count=count,
    )


# =============================================================================
# Shared Fixtures
# =============================================================================

@pytest.fixture
def small_config() -> AcquisitionConfig:
    """12 frames of a 32x24 centred ROI."""
    return AcquisitionConfig(
        roi=Roi.centered((1440, 1080), (32, 24)),
        target_frames=12,
        output_fps=10.0,
        pixel_format=PixelFormat.BAYER_RG8,
    )


@pytest.fixture
def make_driver():
    def _factory(**kwargs):
        kwargs.setdefault("frames_per_poll", 5)
        kwargs.setdefault("preview_rate", 200.0)
        return SimulatedDriver(**kwargs)

    return _factory


@pytest.fixture
def observer() -> RecordingObserver:
    return RecordingObserver()


@pytest.fixture
def make_session(tmp_path, small_config, observer):
    def _factory(driver, config=None, **kwargs):
        kwargs.setdefault("output_dir", tmp_path)
        kwargs.setdefault("poll_interval", 0.001)
        kwargs.setdefault("observers", [observer])
        return AcquisitionSession(driver, config or small_config, **kwargs)

    return _factory


@pytest.fixture
def session_paths(tmp_path):
    return resolve_session_paths(tmp_path, label="test")


@pytest.fixture
def restore_logging():
    """Undo root logger changes made by configure_logging."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    for handler in list(root.handlers):
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    for handler in handlers:
        if handler not in root.handlers:
            root.addHandler(handler)
    root.setLevel(level)
    logging_config._configured = False


def is_nan(value) -> bool:
    return isinstance(value, float) and math.isnan(value)


@pytest.fixture
def project_root() -> Path:
    return Path(__file__).parent.parent
