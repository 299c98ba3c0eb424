"""
videotool.probe
~~~~~~~~~~~~~~~
Thin wrapper around the ffprobe CLI.
Returns structured MediaInfo dataclasses — no Qt, no side effects.
"""

from __future__ import annotations

import json
import logging
import math
import os
import subprocess
from pathlib import Path

from videotool.command_builder import build_probe_command
from videotool.errors import ProbeFailed, ResolutionError
from videotool.models import AudioStreamInfo, ContainerInfo, MediaInfo, VideoStreamInfo
from videotool.paths import FFPROBE, resolve_binary

logger = logging.getLogger(__name__)


# ── Public API ────────────────────────────────────────────────────────────────

def probe(path: str | Path, ffprobe: Path | None = None) -> MediaInfo:
    """
    Run ffprobe on *path* and return a MediaInfo.

    Raises:
        ResolutionError – if ffprobe is not given and cannot be found
        ProbeFailed     – if ffprobe exits non-zero or prints invalid JSON
    """
    if ffprobe is None:
        ffprobe = resolve_binary(FFPROBE)

    raw = _run_ffprobe(ffprobe, str(path))
    return parse_probe_output(str(path), raw)


def get_duration(path: str | Path) -> float | None:
    """
    Convenience shortcut — returns duration in seconds only.
    Returns None if the duration cannot be determined.
    """
    try:
        return probe(path).container.duration_sec
    except (ProbeFailed, ResolutionError) as exc:
        logger.debug("get_duration(%s) failed: %s", path, exc)
        return None


def parse_probe_output(path: str, data: dict) -> MediaInfo:
    """Extract the fields we care about from raw ffprobe JSON."""
    fmt = data.get("format")
    if not isinstance(fmt, dict):
        fmt = {}
    streams = data.get("streams")
    if not isinstance(streams, list):
        streams = []

    # Pull the first video stream and first audio stream
    video_stream = _first_stream(streams, "video")
    audio_stream = _first_stream(streams, "audio")

    duration = parse_float(fmt.get("duration"))

    container = ContainerInfo(
        format_name=_text(fmt.get("format_name")),
        duration_sec=duration,
        bitrate=parse_int(fmt.get("bit_rate")),
    )

    size_bytes = parse_int(fmt.get("size"))
    if size_bytes is None:
        size_bytes = _file_size(path)

    video = None
    if video_stream is not None:
        avg_rate = _text(video_stream.get("avg_frame_rate"))
        base_rate = _text(video_stream.get("r_frame_rate"))
        fps = _derive_fps(avg_rate, base_rate)

        frame_count = parse_int(video_stream.get("nb_frames"))
        if frame_count is None and duration is not None and fps is not None:
            frame_count = round(duration * fps)

        video = VideoStreamInfo(
            codec_name=_text(video_stream.get("codec_name")),
            profile=_text(video_stream.get("profile")),
            width=parse_int(video_stream.get("width")),
            height=parse_int(video_stream.get("height")),
            pix_fmt=_text(video_stream.get("pix_fmt")),
            color_space=_text(video_stream.get("color_space")),
            color_range=_text(video_stream.get("color_range")),
            color_transfer=_text(video_stream.get("color_transfer")),
            color_primaries=_text(video_stream.get("color_primaries")),
            bit_rate=parse_int(video_stream.get("bit_rate")),
            avg_frame_rate=avg_rate,
            r_frame_rate=base_rate,
            fps=fps,
            frame_count=frame_count,
        )

    audio = None
    if audio_stream is not None:
        audio = AudioStreamInfo(
            codec_name=_text(audio_stream.get("codec_name")),
            channels=parse_int(audio_stream.get("channels")),
            sample_rate=parse_int(audio_stream.get("sample_rate")),
            bit_rate=parse_int(audio_stream.get("bit_rate")),
        )

    return MediaInfo(
        file=path,
        size_bytes=size_bytes,
        container=container,
        video=video,
        audio=audio,
    )


def parse_fraction(frac: str | None) -> float | None:
    """
    Convert a fraction string like '24000/1001' to a float.
    Returns None for '0/0', a zero denominator, non-finite values, or anything
    unparsable.
    """
    if not frac or frac == "0/0":
        return None
    num, sep, den = frac.partition("/")
    if not sep:
        return None
    try:
        numerator = float(num)
        denominator = float(den)
    except ValueError:
        return None
    if denominator == 0:
        return None
    return _finite(numerator / denominator)


def parse_int(value) -> int | None:
    """Accept an int or an integral string; anything else is None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None


def parse_float(value) -> float | None:
    """Accept a finite number or a numeric string; anything else is None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return _finite(float(value))
    if isinstance(value, str):
        try:
            return _finite(float(value.strip()))
        except ValueError:
            return None
    return None


def _finite(value: float) -> float | None:
    return value if math.isfinite(value) else None


# ── Internal helpers ──────────────────────────────────────────────────────────

def _run_ffprobe(ffprobe: Path, path: str) -> dict:
    """Execute ffprobe and return parsed JSON output."""
    cmd = build_probe_command(ffprobe, path)
    logger.debug("Probing %s", path)

    try:
        result = subprocess.run(
            cmd,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            encoding="utf-8",
            errors="replace",
        )
    except OSError as exc:
        raise ProbeFailed(f"Failed to run ffprobe: {exc}") from exc

    if result.returncode != 0:
        raise ProbeFailed(f"ffprobe error:\n{result.stderr.strip()}")

    try:
        data = json.loads(result.stdout)
    except json.JSONDecodeError as exc:
        raise ProbeFailed(f"Failed to parse ffprobe output: {exc}") from exc

    if not isinstance(data, dict):
        raise ProbeFailed("Failed to parse ffprobe output: expected a JSON object")
    return data


def _first_stream(streams: list, codec_type: str) -> dict | None:
    return next(
        (s for s in streams if isinstance(s, dict) and s.get("codec_type") == codec_type),
        None,
    )


def _derive_fps(avg_rate: str | None, base_rate: str | None) -> float | None:
    # avg_frame_rate is "0/0" for some streams; r_frame_rate is the fallback
    fps = parse_fraction(avg_rate)
    if fps is None:
        fps = parse_fraction(base_rate)
    return fps


def _text(value) -> str | None:
    return value if isinstance(value, str) else None


def _file_size(path: str) -> int | None:
    try:
        return os.stat(path).st_size
    except OSError:
        return None
