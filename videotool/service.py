"""
videotool.service
~~~~~~~~~~~~~~~~~
The operations the surrounding application calls: probe, start an export,
cancel an export, and listen to `progress`.

start_export() validates and builds the whole command before resolving
ffmpeg or spawning anything, so a rejected request leaves no trace.
"""

from __future__ import annotations

import logging
from pathlib import Path

from videotool.command_builder import ExportCommand, build_export_command
from videotool.config import Settings
from videotool.filter_graph import build_filter_plan
from videotool.models import ExportRequest, ExportStarted, MediaInfo
from videotool.paths import FFMPEG, FFPROBE, resolve_binary
from videotool.probe import probe
from videotool.supervisor import ExportSupervisor

logger = logging.getLogger(__name__)


class ExportService:

    def __init__(self, settings: Settings | None = None, supervisor: ExportSupervisor | None = None):
        self._settings = settings or Settings()
        self._supervisor = supervisor or ExportSupervisor()

    @property
    def supervisor(self) -> ExportSupervisor:
        return self._supervisor

    @property
    def progress(self):
        """Qt signal carrying every ProgressEvent, keyed by event.job_id."""
        return self._supervisor.export_progress

    @property
    def job_state_changed(self):
        return self._supervisor.job_state_changed

    def probe(self, path: str | Path) -> MediaInfo:
        ffprobe = resolve_binary(FFPROBE, self._settings.bin_dir)
        return probe(path, ffprobe)

    def prepare_export(self, request: ExportRequest) -> ExportCommand:
        """Validate *request* and build its command without running it."""
        plan = build_filter_plan(request)
        ffmpeg = resolve_binary(FFMPEG, self._settings.bin_dir)
        return build_export_command(ffmpeg, request, plan)

    def start_export(self, request: ExportRequest) -> ExportStarted:
        """
        Raises:
            ValidationError – request rejected, nothing spawned
            ResolutionError – ffmpeg not found
            SpawnError      – ffmpeg could not be launched
        """
        command = self.prepare_export(request)
        logger.info("Command: %s", command.command_string)

        job_id = self._supervisor.start(
            command.argv,
            command_string=command.command_string,
            output_path=command.output_path,
        )
        return ExportStarted(
            job_id=job_id,
            command_string=command.command_string,
            output_path=command.output_path,
        )

    def cancel_export(self, job_id: str) -> bool:
        """False means there was nothing to cancel; that is not an error."""
        return self._supervisor.cancel(job_id)
