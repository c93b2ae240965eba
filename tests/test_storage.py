import json
import math
from datetime import datetime

import numpy as np
import pytest

from burstcam.capture.frame import MetadataChunk
from burstcam.storage.session_paths import resolve_session_paths, sanitize_label, session_prefix
from burstcam.storage.sidecar import SCHEMA_VERSION, build_sidecar, read_sidecar, write_sidecar

from conftest import make_chunk, make_facts


STAMP = datetime(2024, 5, 6, 7, 8, 9)


# =============================================================================
# Session paths
# =============================================================================

def test_prefix_is_timestamp_plus_sanitized_label():
    assert session_prefix(now=STAMP) == "2024-05-06_07.08.09"
    assert session_prefix("trial 1/a", now=STAMP) == "2024-05-06_07.08.09_trial_1_a"


def test_paths_share_prefix(tmp_path):
    paths = resolve_session_paths(tmp_path / "out", label="run", now=STAMP)
    assert paths.output_dir.is_dir()
    assert paths.sidecar_path.name == "2024-05-06_07.08.09_run_videoMetadata.json"
    assert paths.artifact_path("mp4").name == "2024-05-06_07.08.09_run_video.mp4"
    assert paths.artifact_path("tif").name == "2024-05-06_07.08.09_run_video.tif"
    assert paths.timing_path.name == "2024-05-06_07.08.09_run_timing.csv"
    with pytest.raises(ValueError):
        paths.artifact_path("avi")


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("", ""),
        ("  mouse-3 : left  ", "mouse_3_left"),
        ("../etc/passwd", "etc_passwd"),
        ("ok.name", "ok.name"),
    ],
)
def test_sanitize_label(raw, expected):
    assert sanitize_label(raw) == expected


# =============================================================================
# Sidecar
# =============================================================================

def _chunks(count):
    chunks = [make_chunk(i) for i in range(count)]
    chunks[1] = MetadataChunk(
        frame_id=None,
        exposure_time=1000.0,
        gain=math.nan,
        black_level=0.0,
        pixel_format=None,
    )
    return chunks


def test_sidecar_writes_null_for_missing_values(tmp_path):
    path = tmp_path / "meta.json"
    write_sidecar(path, _chunks(3), [0.0, 0.01, 0.02], make_facts(count=3), created=STAMP)

    raw = json.loads(path.read_text(encoding="utf-8"))
    assert raw["schema_version"] == SCHEMA_VERSION
    assert raw["created"] == "2024-05-06T07:08:09"
    assert raw["num_frames"] == 3
    assert raw["color_space"] == "RGB"
    assert raw["roi_position"] == [0, 0, 32, 24]
    assert raw["frame_id"] == [0, None, 2]
    assert raw["gain"] == [28.0, None, 28.0]
    assert raw["pixel_format"] == ["BayerRG8", None, "BayerRG8"]
    assert not (tmp_path / "meta.json.tmp").exists()


def test_read_sidecar_returns_arrays(tmp_path):
    path = tmp_path / "meta.json"
    write_sidecar(path, _chunks(3), [0.0, 0.01, 0.02], make_facts(count=3))

    record = read_sidecar(path)
    assert record["frame_id"].dtype == np.float64
    assert math.isnan(record["frame_id"][1])
    np.testing.assert_allclose(record["timestamp"], [0.0, 0.01, 0.02])
    assert math.isnan(record["gain"][1])
    assert len(record["black_level"]) == 3


def test_complete_frame_ids_stay_integer(tmp_path):
    path = tmp_path / "meta.json"
    chunks = [make_chunk(i) for i in range(4)]
    write_sidecar(path, chunks, [0.0, 0.1, 0.2, 0.3], make_facts(count=4))
    assert read_sidecar(path)["frame_id"].dtype == np.int64


def test_sidecar_requires_aligned_inputs():
    with pytest.raises(ValueError):
        build_sidecar([make_chunk(0)], [0.0, 1.0], make_facts(count=1))
