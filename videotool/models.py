"""
videotool.models
~~~~~~~~~~~~~~~~
Pure dataclasses — no Qt, no I/O.
These travel freely between the builder, the supervisor and the CLI.
"""

from __future__ import annotations

import subprocess
from dataclasses import asdict, dataclass, field
from enum import Enum, auto
from pathlib import Path


# ── Enums ─────────────────────────────────────────────────────────────────────

class ExportMode(str, Enum):
    INPUT_A      = "input-a"       # export clip A alone
    INPUT_B      = "input-b"       # export clip B alone
    SIDE_BY_SIDE = "side-by-side"  # A on the left, B on the right


class JobState(Enum):
    SPAWNED   = auto()  # process handle exists, readers not started yet
    RUNNING   = auto()  # readers are consuming stdout/stderr
    COMPLETED = auto()  # exited with code 0
    FAILED    = auto()  # exited non-zero on its own
    CANCELLED = auto()  # killed through ExportSupervisor.cancel()

    @property
    def is_terminal(self) -> bool:
        return self in (JobState.COMPLETED, JobState.FAILED, JobState.CANCELLED)


# ── Probe result (returned by videotool.probe) ────────────────────────────────

@dataclass(frozen=True)
class ContainerInfo:
    format_name: str | None = None
    duration_sec: float | None = None
    bitrate: int | None = None


@dataclass(frozen=True)
class VideoStreamInfo:
    codec_name: str | None = None
    profile: str | None = None
    width: int | None = None
    height: int | None = None
    pix_fmt: str | None = None
    color_space: str | None = None
    color_range: str | None = None
    color_transfer: str | None = None
    color_primaries: str | None = None
    bit_rate: int | None = None
    avg_frame_rate: str | None = None   # raw fraction, e.g. "30000/1001"
    r_frame_rate: str | None = None
    fps: float | None = None            # derived from the two fractions above
    frame_count: int | None = None


@dataclass(frozen=True)
class AudioStreamInfo:
    codec_name: str | None = None
    channels: int | None = None
    sample_rate: int | None = None
    bit_rate: int | None = None


@dataclass(frozen=True)
class MediaInfo:
    """Metadata extracted from a media file via ffprobe.

    Every field is optional because ffprobe omits whatever it cannot read.
    """
    file: str
    size_bytes: int | None = None
    container: ContainerInfo = field(default_factory=ContainerInfo)
    video: VideoStreamInfo | None = None
    audio: AudioStreamInfo | None = None

    def to_dict(self) -> dict:
        return asdict(self)


# ── Export request ────────────────────────────────────────────────────────────

@dataclass
class ExportRequest:
    """
    Everything needed to describe one export.

    Frame-indexed trimming (trim_start_frame with trim_end_frame or
    trim_frame_count) selects frames by index after decoding. Time-offset
    trimming (trim_start_sec / trim_duration_sec) seeks every input and limits
    the output duration instead. The two can be combined but are independent
    of each other.
    """
    output_path: str
    mode: ExportMode | str = ExportMode.INPUT_A
    input_a: str | None = None
    input_b: str | None = None
    codec: str = "h264"                 # "h265" selects HEVC, anything else AVC
    crf: int = 23                       # 0 – 51
    resize_width: int | None = None
    resize_height: int | None = None
    keep_aspect: bool = False
    fps: float | None = None
    trim_start_frame: int | None = None
    trim_end_frame: int | None = None   # inclusive
    label_a: str | None = None
    label_b: str | None = None
    audio_copy: bool = False
    stack_height: int | None = None     # side-by-side only

    trim_start_sec: float | None = None
    trim_duration_sec: float | None = None
    trim_frame_count: int | None = None # alternative to trim_end_frame
    max_frames: int | None = None


# ── Running jobs ──────────────────────────────────────────────────────────────

@dataclass
class ExportJob:
    """
    One in-flight ffmpeg invocation.
    Owned by the supervisor's JobRegistry; the UI never holds one.
    """
    id: str
    process: subprocess.Popen
    command_string: str
    output_path: str
    state: JobState = JobState.SPAWNED
    cancel_requested: bool = False


@dataclass(frozen=True)
class ProgressEvent:
    """
    One progress report for a job.

    phase is ffmpeg's own status token ("continue", "end") or "error" for the
    terminal failure report. out_time_ms mirrors ffmpeg's key of the same name,
    which ffmpeg fills with microseconds.
    """
    job_id: str
    phase: str
    out_time_ms: int | None = None
    message: str | None = None


@dataclass(frozen=True)
class ExportStarted:
    """Returned to the caller as soon as the transcoder is running."""
    job_id: str
    command_string: str
    output_path: str

    @property
    def output_file(self) -> Path:
        return Path(self.output_path)
