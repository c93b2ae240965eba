import pytest

from burstcam.capture.frame import PixelFormat
from burstcam.config import (
    AcquisitionConfig,
    BurstCamConfig,
    DeviceLimits,
    Roi,
    as_dict,
    flatten_config,
    load_config,
    load_config_file,
    load_config_file_async,
)
from burstcam.core.config_manager import ConfigManager
from burstcam.errors import ConfigError


# =============================================================================
# AcquisitionConfig validation
# =============================================================================

def test_defaults_are_valid_and_centred():
    config = AcquisitionConfig()
    assert config.roi == Roi(560, 420, 320, 240)
    assert config.validate(DeviceLimits()) is config


def test_centered_roi_rounds_down():
    assert Roi.centered((1441, 1081), (320, 240)) == Roi(560, 420, 320, 240)


def test_roi_overflow_reports_every_problem():
    config = AcquisitionConfig(
        roi=Roi(1200, 900, 320, 240),
        binning=0,
        exposure_us=-1.0,
        target_frames=0,
    )
    with pytest.raises(ConfigError) as excinfo:
        config.validate(DeviceLimits())

    problems = excinfo.value.problems
    assert any("exceeds sensor width" in p for p in problems)
    assert any("exceeds sensor height" in p for p in problems)
    assert any("binning" in p for p in problems)
    assert any("exposure" in p for p in problems)
    assert any("target frame count" in p for p in problems)


def test_roi_touching_sensor_edge_is_valid():
    config = AcquisitionConfig(roi=Roi(1440 - 320, 1080 - 240, 320, 240))
    assert config.problems(DeviceLimits()) == []


def test_negative_offset_rejected():
    config = AcquisitionConfig(roi=Roi(-1, 0, 320, 240))
    assert any("non-negative" in p for p in config.problems())


def test_device_ranges_apply_only_with_limits():
    config = AcquisitionConfig(exposure_us=5.0, gain_db=60.0, binning=8)
    assert config.problems() == []

    problems = config.problems(DeviceLimits())
    assert len(problems) == 3
    assert any("exposure" in p for p in problems)
    assert any("gain" in p for p in problems)
    assert any("binning 8" in p for p in problems)


def test_unsupported_pixel_format_rejected():
    limits = DeviceLimits(pixel_formats=(PixelFormat.MONO8,))
    with pytest.raises(ConfigError, match="BayerRG8"):
        AcquisitionConfig().validate(limits)


def test_sensor_size_must_match_device():
    config = AcquisitionConfig(sensor_size=(2048, 1536))
    with pytest.raises(ConfigError, match="does not match device"):
        config.validate(DeviceLimits())


def test_non_integer_binning_rejected():
    config = AcquisitionConfig(binning=1.5)
    assert any("binning" in p for p in config.problems())


# =============================================================================
# load_config
# =============================================================================

def test_load_config_parses_sections():
    config = load_config(
        {
            "acquisition.roi": "64x48",
            "acquisition.roi_offset": "10,20",
            "acquisition.pixel_format": "mono16",
            "acquisition.isp_enable": "yes",
            "session.timeout_s": "2.5",
            "session.strict_metadata": "true",
            "export.format": "TIF",
            "export.video_backend": "OpenCV",
            "storage.label": "run A",
            "logging.level": "debug",
        }
    )
    assert config.acquisition.roi == Roi(10, 20, 64, 48)
    assert config.acquisition.pixel_format is PixelFormat.MONO16
    assert config.acquisition.isp_enable is True
    assert config.session.timeout_s == 2.5
    assert config.session.strict_metadata is True
    assert config.export.format == "tif"
    assert config.export.video_backend == "opencv"
    assert config.storage.label == "run A"
    assert config.logging.level == "DEBUG"


def test_unparseable_values_fall_back_to_defaults():
    config = load_config(
        {
            "acquisition.exposure_us": "fast",
            "acquisition.roi": "wide",
            "acquisition.pixel_format": "YUV422",
            "export.video_backend": "gstreamer",
            "export.format": "gif",
        }
    )
    defaults = BurstCamConfig()
    assert config.acquisition.exposure_us == defaults.acquisition.exposure_us
    assert config.acquisition.roi == defaults.acquisition.roi
    assert config.acquisition.pixel_format is PixelFormat.BAYER_RG8
    assert config.export.video_backend == "pyav"
    assert config.export.format == "mp4"


def test_overrides_skip_none_values():
    base = {"acquisition.target_frames": "50"}
    assert load_config(base, {"acquisition.target_frames": None}).acquisition.target_frames == 50
    assert load_config(base, {"acquisition.target_frames": 7}).acquisition.target_frames == 7


def test_empty_timeout_means_wait_forever():
    assert load_config({"session.timeout_s": ""}).session.timeout_s is None


def test_flattened_config_reloads_identically(tmp_path):
    original = load_config(
        {
            "acquisition.roi": "64x48",
            "acquisition.roi_offset": "8,4",
            "acquisition.gain_db": "12.5",
            "session.timeout_s": "3",
            "storage.output_dir": str(tmp_path / "out"),
            "logging.file": str(tmp_path / "burst.log"),
        }
    )
    path = tmp_path / "config.txt"
    ConfigManager().write_config(path, flatten_config(original))

    reloaded = load_config_file(path)
    assert as_dict(reloaded) == as_dict(original)


def test_bundled_config_matches_defaults(project_root):
    bundled = load_config_file(project_root / "burstcam" / "config.txt")
    assert as_dict(bundled) == as_dict(BurstCamConfig())


@pytest.mark.asyncio
async def test_load_config_file_async(tmp_path):
    path = tmp_path / "config.txt"
    path.write_text("acquisition.target_frames = 25\nexport.format = tif\n", encoding="utf-8")

    config = await load_config_file_async(path)
    assert config.acquisition.target_frames == 25
    assert config.export.format == "tif"


def test_missing_config_file_uses_defaults(tmp_path):
    config = load_config_file(tmp_path / "absent.txt")
    assert as_dict(config) == as_dict(BurstCamConfig())
