from .errors import (
    VideoToolError, ResolutionError, ProbeFailed, ValidationError,
    MissingInput, UnknownMode, InvalidParameter, SpawnError, KillError,
)
from .models import (
    MediaInfo, ContainerInfo, VideoStreamInfo, AudioStreamInfo,
    ExportMode, ExportRequest, ExportJob, ExportStarted, JobState, ProgressEvent,
)
from .probe import probe, parse_probe_output, parse_fraction
from .filter_graph import build_filter_plan, FilterPlan, escape_filter_text
from .command_builder import build_export_command, unique_output_path, command_as_string
from .supervisor import ExportSupervisor, JobRegistry
from .service import ExportService

__all__ = [
    "VideoToolError", "ResolutionError", "ProbeFailed", "ValidationError",
    "MissingInput", "UnknownMode", "InvalidParameter", "SpawnError", "KillError",
    "MediaInfo", "ContainerInfo", "VideoStreamInfo", "AudioStreamInfo",
    "ExportMode", "ExportRequest", "ExportJob", "ExportStarted", "JobState", "ProgressEvent",
    "probe", "parse_probe_output", "parse_fraction",
    "build_filter_plan", "FilterPlan", "escape_filter_text",
    "build_export_command", "unique_output_path", "command_as_string",
    "ExportSupervisor", "JobRegistry",
    "ExportService",
]
