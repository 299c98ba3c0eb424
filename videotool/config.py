"""
videotool.config
~~~~~~~~~~~~~~~~
Persists user Settings to a JSON file in the platform's standard config
directory.

Config location
---------------
  Windows  : %APPDATA%\\VideoTool\\settings.json
  macOS    : ~/Library/Application Support/VideoTool/settings.json
  Linux    : ~/.config/VideoTool/settings.json
"""

from __future__ import annotations

import json
import logging
import sys
from dataclasses import dataclass, fields
from pathlib import Path

logger = logging.getLogger(__name__)

APP_DIR_NAME = "VideoTool"


# ── Config directory ──────────────────────────────────────────────────────────

def _config_dir() -> Path:
    if sys.platform == "win32":
        base = Path.home() / "AppData" / "Roaming"
    elif sys.platform == "darwin":
        base = Path.home() / "Library" / "Application Support"
    else:
        base = Path.home() / ".config"
    return base / APP_DIR_NAME


CONFIG_DIR    = _config_dir()
SETTINGS_FILE = CONFIG_DIR / "settings.json"


@dataclass
class Settings:
    bin_dir: Path | None = None        # searched first for ffmpeg / ffprobe
    default_codec: str = "h264"
    default_crf: int = 23
    log_level: str = "info"
    log_file: Path | None = None


# ── Public API ────────────────────────────────────────────────────────────────

def save_settings(settings: Settings, path: Path | None = None) -> None:
    """
    Serialise *settings*, overwriting any previous data.
    I/O errors are logged and ignored.
    """
    target = path or SETTINGS_FILE
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(json.dumps(_settings_to_dict(settings), indent=2), encoding="utf-8")
    except OSError as exc:
        logger.warning("Could not save settings to %s: %s", target, exc)


def load_settings(path: Path | None = None) -> Settings:
    """
    Read the settings file.
    Returns defaults if the file is missing, empty, or malformed.
    """
    source = path or SETTINGS_FILE
    if not source.exists():
        return Settings()
    try:
        payload = json.loads(source.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        logger.warning("Ignoring unreadable settings file %s: %s", source, exc)
        return Settings()
    if not isinstance(payload, dict):
        return Settings()
    return _dict_to_settings(payload)


def update_setting(settings: Settings, key: str, value: str) -> Settings:
    """
    Set one field from its string form (as typed on the command line).

    Raises:
        KeyError   – unknown setting
        ValueError – value cannot be converted
    """
    if key not in setting_names():
        raise KeyError(key)
    data = _settings_to_dict(settings)
    data[key] = value
    updated = _dict_to_settings(data, strict=True)
    return updated


def setting_names() -> list[str]:
    return [f.name for f in fields(Settings)]


# ── Serialisation helpers ─────────────────────────────────────────────────────

def _settings_to_dict(settings: Settings) -> dict:
    return {
        "bin_dir":       str(settings.bin_dir) if settings.bin_dir else None,
        "default_codec": settings.default_codec,
        "default_crf":   settings.default_crf,
        "log_level":     settings.log_level,
        "log_file":      str(settings.log_file) if settings.log_file else None,
    }


def _dict_to_settings(d: dict, strict: bool = False) -> Settings:
    defaults = Settings()
    try:
        crf = int(d.get("default_crf", defaults.default_crf))
    except (TypeError, ValueError):
        if strict:
            raise ValueError(f"default_crf must be an integer, got {d.get('default_crf')!r}")
        crf = defaults.default_crf
    if not 0 <= crf <= 51:
        if strict:
            raise ValueError(f"default_crf must be between 0 and 51, got {crf}")
        crf = defaults.default_crf

    return Settings(
        bin_dir       = _optional_path(d, "bin_dir", strict),
        default_codec = str(d.get("default_codec") or defaults.default_codec),
        default_crf   = crf,
        log_level     = str(d.get("log_level") or defaults.log_level),
        log_file      = _optional_path(d, "log_file", strict),
    )


def _optional_path(d: dict, key: str, strict: bool) -> Path | None:
    value = d.get(key)
    if not value:
        return None
    if not isinstance(value, str):
        if strict:
            raise ValueError(f"{key} must be a path, got {value!r}")
        logger.warning("Ignoring %s: expected a path, got %r", key, value)
        return None
    return Path(value)
