"""
videotool.errors
~~~~~~~~~~~~~~~~
Exception hierarchy shared by every module.

Anything raised here happens *before* a transcoder process exists, except
KillError. Once a job is running, failures travel through the progress
signal instead (see videotool.supervisor).
"""

from __future__ import annotations


class VideoToolError(Exception):
    """Base class for all videotool errors."""


class ResolutionError(VideoToolError):
    """An ffmpeg/ffprobe executable could not be located."""

    def __init__(self, name: str, tried: list[str]):
        self.name = name
        self.tried = tried
        locations = ", ".join(tried) if tried else "(no locations)"
        super().__init__(f"Binary not found: {name} (looked in {locations})")


class ProbeFailed(VideoToolError):
    """ffprobe exited non-zero or produced output we could not parse."""


class ValidationError(VideoToolError):
    """An ExportRequest was rejected before anything was spawned."""


class MissingInput(ValidationError):
    pass


class UnknownMode(ValidationError):
    pass


class InvalidParameter(ValidationError):
    pass


class SpawnError(VideoToolError):
    """The transcoder process could not be launched."""


class KillError(VideoToolError):
    """Terminating a running transcoder failed."""
