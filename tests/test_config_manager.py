import logging

import pytest

from burstcam.core.config_manager import ConfigManager


@pytest.fixture()
def manager():
    return ConfigManager()


def test_parse_skips_comments_and_strips_quotes(manager):
    lines = [
        "# header comment",
        "",
        "acquisition.roi = 320x240   # centred",
        'storage.label = "run 1"',
        "storage.output_dir = '/data/bursts'",
        "not a setting",
        "export.format=tif",
    ]
    parsed = manager.parse_config_lines(lines)
    assert parsed == {
        "acquisition.roi": "320x240",
        "storage.label": "run 1",
        "storage.output_dir": "/data/bursts",
        "export.format": "tif",
    }


def test_missing_file_returns_empty(tmp_path, manager, caplog):
    with caplog.at_level(logging.WARNING, logger="burstcam"):
        assert manager.read_config(tmp_path / "missing.txt") == {}
    assert "Config file not found" in caplog.text


def test_write_then_read(tmp_path, manager):
    path = tmp_path / "nested" / "config.txt"
    manager.write_config(path, {"session.strict_metadata": True, "acquisition.binning": 2})

    assert path.read_text(encoding="utf-8").splitlines() == [
        "acquisition.binning = 2",
        "session.strict_metadata = true",
    ]
    assert manager.read_config(path) == {
        "acquisition.binning": "2",
        "session.strict_metadata": "true",
    }


@pytest.mark.asyncio
async def test_async_read_matches_sync(tmp_path, manager):
    path = tmp_path / "config.txt"
    path.write_text("a = 1\nb = 'two'\n# c = 3\n", encoding="utf-8")

    assert await manager.read_config_async(path) == manager.read_config(path)
    assert await manager.read_config_async(tmp_path / "missing.txt") == {}
