"""Reader for the plain ``key = value`` configuration files."""

import asyncio
from pathlib import Path
from typing import Any, Dict, Iterable

import aiofiles

from burstcam.core.logging_utils import get_module_logger


logger = get_module_logger("ConfigManager")


class ConfigManager:

    def __init__(self):
        self.logger = get_module_logger("ConfigManager")

    @staticmethod
    def stringify_value(value: Any) -> str:
        if isinstance(value, bool):
            return str(value).lower()
        return str(value)

    def parse_config_lines(self, lines: Iterable[str]) -> Dict[str, str]:
        config: Dict[str, str] = {}

        for raw_line in lines:
            line = raw_line.strip()
            if not line or line.startswith('#'):
                continue
            if '=' not in line:
                continue

            key, value = line.split('=', 1)
            key = key.strip()
            value = value.strip()

            if '#' in value:
                value = value.split('#')[0].strip()

            if (value.startswith('"') and value.endswith('"')) or (value.startswith("'") and value.endswith("'")):
                value = value[1:-1]

            config[key] = value

        return config

    def read_config(self, config_path: Path) -> Dict[str, str]:
        """Read ``config_path``; a missing or unreadable file yields an empty dict."""
        config_path = Path(config_path)
        if not config_path.exists():
            self.logger.warning("Config file not found: %s", config_path)
            return {}

        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                return self.parse_config_lines(f)
        except OSError as e:
            self.logger.error("Failed to read config %s: %s", config_path, e)
            return {}

    async def read_config_async(self, config_path: Path) -> Dict[str, str]:
        """Async version for use inside the event loop."""
        config_path = Path(config_path)
        if not await asyncio.to_thread(config_path.exists):
            self.logger.warning("Config file not found: %s", config_path)
            return {}

        try:
            lines: list[str] = []
            async with aiofiles.open(config_path, 'r', encoding='utf-8') as f:
                async for line in f:
                    lines.append(line)
            return self.parse_config_lines(lines)
        except OSError as e:
            self.logger.error("Failed to read config %s: %s", config_path, e)
            return {}

    def write_config(self, config_path: Path, values: Dict[str, Any]) -> None:
        """Write ``values`` as a fresh config file, one sorted key per line."""
        config_path = Path(config_path)
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, 'w', encoding='utf-8') as f:
            for key in sorted(values):
                f.write(f"{key} = {self.stringify_value(values[key])}\n")
        self.logger.debug("Wrote %d config keys to %s", len(values), config_path)


__all__ = ["ConfigManager"]
