import csv

import pytest

import burstcam.__main__ as cli
from burstcam.drivers.simulated import SimulatedDriver
from burstcam.storage.sidecar import read_sidecar


pytestmark = pytest.mark.usefixtures("restore_logging")


def _run(tmp_path, *extra):
    argv = [
        "--frames", "8",
        "--output-dir", str(tmp_path),
        "--preview-seconds", "0",
        "--log-level", "warning",
        *extra,
    ]
    return cli.main(argv)


def test_tif_burst_writes_all_artifacts(tmp_path):
    assert _run(tmp_path, "--format", "tif", "--label", "cli") == 0

    tiffs = list(tmp_path.glob("*_cli_video.tif"))
    sidecars = list(tmp_path.glob("*_cli_videoMetadata.json"))
    timings = list(tmp_path.glob("*_cli_timing.csv"))
    assert len(tiffs) == 1 and len(sidecars) == 1 and len(timings) == 1

    assert read_sidecar(sidecars[0])["num_frames"] == 8
    with timings[0].open(newline="", encoding="utf-8") as f:
        assert len(list(csv.reader(f))) == 8  # header + 7 intervals


@pytest.mark.slow
def test_mp4_burst(tmp_path):
    assert _run(tmp_path, "--format", "mp4") == 0
    assert len(list(tmp_path.glob("*_video.mp4"))) == 1


def test_config_file_is_layered_under_flags(tmp_path):
    config_path = tmp_path / "burst.txt"
    config_path.write_text(
        "acquisition.target_frames = 3\nexport.format = tif\nstorage.label = fromfile\n",
        encoding="utf-8",
    )
    args = cli.parse_args(["--config", str(config_path), "--frames", "5"])
    config = cli.build_config(args)
    assert config.acquisition.target_frames == 5
    assert config.export.format == "tif"
    assert config.storage.label == "fromfile"


def test_bad_driver_spec_exits_with_error(tmp_path):
    assert _run(tmp_path, "--driver", "no_such_package_xyz:Driver") == 1


def test_timeout_exits_with_error(tmp_path, monkeypatch):
    monkeypatch.setattr(
        cli,
        "create_driver",
        lambda spec, config: SimulatedDriver(frames_per_poll=1, stall_at=2),
    )
    assert _run(tmp_path, "--format", "tif", "--timeout", "0.2") == 1
    assert not list(tmp_path.glob("*_video.tif"))
