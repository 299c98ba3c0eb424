"""
videotool.paths
~~~~~~~~~~~~~~~
Single source of truth for locating the ffmpeg / ffprobe executables.
Import resolve_binary() instead of hard-coding paths anywhere else.
"""

from __future__ import annotations

import logging
import os
import shutil
import sys
from pathlib import Path

from videotool.errors import ResolutionError

logger = logging.getLogger(__name__)

# Project root = the directory that contains main.py
PROJECT_ROOT = Path(__file__).resolve().parent.parent

BIN_DIR = PROJECT_ROOT / "bin"
DEV_BIN_DIR = Path("binaries")

BIN_DIR_ENV = "VIDEOTOOL_BIN_DIR"

FFMPEG = "ffmpeg"
FFPROBE = "ffprobe"


def executable_name(name: str) -> str:
    if sys.platform == "win32" and not name.lower().endswith(".exe"):
        return name + ".exe"
    return name


def validate_binary(binary: Path) -> str | None:
    """
    Return an error string if *binary* is missing or not executable,
    None if it is usable.
    """
    if not binary.exists():
        return f"Binary not found: {binary}"
    if not binary.is_file():
        return f"Not a file: {binary}"
    if sys.platform != "win32" and not binary.stat().st_mode & 0o111:
        return f"Not executable: {binary}"
    return None


def search_dirs(bin_dir: Path | None = None) -> list[Path]:
    """Directories searched before falling back to PATH, in order."""
    dirs: list[Path] = []
    if bin_dir is not None:
        dirs.append(Path(bin_dir).expanduser())
    env_dir = os.environ.get(BIN_DIR_ENV)
    if env_dir:
        dirs.append(Path(env_dir).expanduser())
    dirs.append(BIN_DIR)
    dirs.append(DEV_BIN_DIR)
    return dirs


def resolve_binary(name: str, bin_dir: Path | None = None) -> Path:
    """
    Find *name* (e.g. "ffmpeg") and return an absolute path to it.

    Raises:
        ResolutionError – naming every location that was tried
    """
    filename = executable_name(name)
    tried: list[str] = []

    for directory in search_dirs(bin_dir):
        candidate = directory / filename
        tried.append(str(candidate))
        problem = validate_binary(candidate)
        if problem is None:
            logger.debug("Resolved %s -> %s", name, candidate)
            return candidate.resolve()
        if candidate.exists():
            logger.warning("Skipping %s", problem)

    found = shutil.which(filename)
    tried.append("PATH")
    if found:
        logger.debug("Resolved %s -> %s (PATH)", name, found)
        return Path(found).resolve()

    raise ResolutionError(name, tried)


def validate_binaries(bin_dir: Path | None = None) -> list[str]:
    """
    Return a list of error strings for any binary that cannot be resolved.
    Empty list means all good.
    """
    errors: list[str] = []
    for name in (FFMPEG, FFPROBE):
        try:
            resolve_binary(name, bin_dir)
        except ResolutionError as exc:
            errors.append(str(exc))
    return errors
