"""
videotool.command_builder
~~~~~~~~~~~~~~~~~~~~~~~~~
Builds ffmpeg / ffprobe CLI commands as plain list[str].

Keeping command construction separate means you can:
  - log / print the exact command before running it
  - paste it straight into a terminal for debugging
  - unit-test flag generation without running any process
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from videotool.filter_graph import FilterPlan
from videotool.models import ExportRequest

UNIQUE_PATH_LIMIT = 1000

VIDEO_ENCODERS = {
    "h265": "libx265",
}
DEFAULT_VIDEO_ENCODER = "libx264"
DEFAULT_AUDIO_ENCODER = "aac"


@dataclass(frozen=True)
class ExportCommand:
    executable: str
    args: list[str]
    command_string: str
    output_path: str

    @property
    def argv(self) -> list[str]:
        return [self.executable, *self.args]


def build_export_command(
    executable: Path | str,
    request: ExportRequest,
    plan: FilterPlan,
) -> ExportCommand:
    """
    Build the full ffmpeg command for one export.

    The command structure is:
        ffmpeg
          [-ss <start>]          ← time-offset trim, input seeking
          -i <primary>
          [-ss <start>]
          [-i <secondary>]       ← side-by-side only
          [-t <duration>]        ← output option, after the last input
          <-vf … | -filter_complex … -map [vout] [-map 0:a?]>
          [-vsync vfr]           ← only when frames were selected by index
          [-frames:v <n>]
          -c:v libx264|libx265
          -crf <q>
          -c:a copy|aac
          -y                     ← overwrite output without prompting
          -progress pipe:1       ← machine-readable key=value progress on stdout
          -nostats               ← suppress human-readable stats on stderr
          <output>

    Example output (args):
        ['-i', 'a.mp4', '-vf', 'fps=fps=24,scale=1280:-1:flags=lanczos',
         '-c:v', 'libx264', '-crf', '23', '-c:a', 'aac',
         '-y', '-progress', 'pipe:1', '-nostats', 'a_export.mp4']
    """
    output_path = unique_output_path(request.output_path)

    args: list[str] = [*plan.seek_args, "-i", plan.primary_input]
    if plan.secondary_input is not None:
        args += [*plan.seek_args, "-i", plan.secondary_input]

    args += plan.duration_args

    args += plan.filter_args()

    if plan.uses_frame_select:
        args += ["-vsync", "vfr"]

    args += plan.frame_limit_args

    args += ["-c:v", video_encoder(request.codec)]
    args += ["-crf", str(request.crf)]
    args += ["-c:a", "copy" if request.audio_copy else DEFAULT_AUDIO_ENCODER]

    args += [
        "-y",
        "-progress", "pipe:1",
        "-nostats",
        output_path,
    ]

    executable = str(executable)
    return ExportCommand(
        executable=executable,
        args=args,
        command_string=command_as_string([executable, *args]),
        output_path=output_path,
    )


def build_probe_command(ffprobe: Path | str, input_file: Path | str) -> list[str]:
    return [
        str(ffprobe),
        "-hide_banner",
        "-print_format", "json",  # machine-readable output
        "-show_format",           # duration, bitrate, size
        "-show_streams",          # per-stream codec info
        str(input_file),
    ]


def video_encoder(codec: str) -> str:
    return VIDEO_ENCODERS.get(codec, DEFAULT_VIDEO_ENCODER)


def unique_output_path(path: str, limit: int = UNIQUE_PATH_LIMIT) -> str:
    """
    Return *path* if nothing exists there, otherwise the first free
    "name (n).ext" sibling. Falls back to *path* when all candidates
    up to *limit* are taken. Never creates anything on disk.

    Example:
        "/out/video.mp4" exists  → "/out/video (1).mp4"
    """
    candidate = Path(path)
    if not candidate.exists():
        return path

    stem = candidate.stem or "output"
    suffix = candidate.suffix
    for index in range(1, limit):
        sibling = candidate.with_name(f"{stem} ({index}){suffix}")
        if not sibling.exists():
            return str(sibling)
    return path


def command_as_string(cmd: list[str]) -> str:
    """Human-readable version of the command for logging. Never execute it."""
    return " ".join(format_arg(arg) for arg in cmd)


def format_arg(value: str) -> str:
    if " " in value:
        escaped = value.replace('"', '\\"')
        return f'"{escaped}"'
    return value
