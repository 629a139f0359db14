"""
Settings, read from the environment first and then from
``~/.config/reelsnare/config.json``.

Example config file:

    {
        "profile_path": "/home/me/.mozilla/firefox/abcd1234.default-release",
        "output_dir": "videos",
        "max_retries": 5
    }
"""

import json
import os
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Optional

from .errors import ConfigError


CONFIG_PATH = Path.home() / ".config" / "reelsnare" / "config.json"
BASE_URL = "https://www.instagram.com"


@dataclass
class Settings:
    """Runtime options shared by every command."""
    profile_path: Optional[str] = None
    output_dir: str = "output"
    max_retries: int = 3
    retry_delay: float = 1.0
    ffmpeg_path: str = "ffmpeg"
    headless: bool = False
    cookie_domain: str = "instagram.com"

    def to_dict(self) -> dict:
        return asdict(self)

    def override(self, **values) -> "Settings":
        """Set every value that is not None, validated like a config file value."""
        for name, value in values.items():
            if value is not None:
                setattr(self, name, _coerce(name, value))
        return self


# environment variable -> setting name
ENV_VARS = {
    "REELSNARE_PROFILE_PATH": "profile_path",
    "FIREFOX_PROFILE_PATH": "profile_path",
    "REELSNARE_OUTPUT_DIR": "output_dir",
    "REELSNARE_MAX_RETRIES": "max_retries",
    "REELSNARE_RETRY_DELAY": "retry_delay",
    "REELSNARE_FFMPEG": "ffmpeg_path",
    "REELSNARE_HEADLESS": "headless",
    "REELSNARE_COOKIE_DOMAIN": "cookie_domain",
}


def _coerce(name: str, value):
    try:
        if name == "max_retries":
            value = int(value)
            if value < 1:
                raise ValueError("must be at least 1")
        elif name == "retry_delay":
            value = float(value)
            if value < 0:
                raise ValueError("must not be negative")
        elif name == "headless":
            if isinstance(value, str):
                value = value.strip().lower() in ("1", "true", "yes", "on")
            else:
                value = bool(value)
        elif value is not None:
            value = str(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid value for {name}: {value!r} ({e})") from None
    return value


def _read_config_file(path: Path) -> dict:
    if not path.exists():
        return {}
    try:
        with open(path) as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        raise ConfigError(f"Could not read config file {path}: {e}") from None
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a JSON object")
    return data


def load_settings(config_path: Optional[Path] = None, environ: Optional[dict] = None) -> Settings:
    """
    Build Settings from the config file, overridden by environment variables.

    Raises:
        ConfigError: If the config file is unreadable or a value is invalid
    """
    environ = os.environ if environ is None else environ
    values = {}

    file_data = _read_config_file(config_path or CONFIG_PATH)
    for name in Settings.__dataclass_fields__:
        if name in file_data:
            values[name] = _coerce(name, file_data[name])

    # first matching variable wins, so REELSNARE_PROFILE_PATH beats FIREFOX_PROFILE_PATH
    from_env = set()
    for var, name in ENV_VARS.items():
        if name in from_env or not environ.get(var):
            continue
        values[name] = _coerce(name, environ[var])
        from_env.add(name)

    return Settings(**values)
