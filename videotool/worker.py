"""
videotool.worker
~~~~~~~~~~~~~~~~
QThread that follows one already-spawned ffmpeg process and emits signals
the supervisor connects to.

The worker never touches the job registry. It reports the exit through
`exited` and lets the supervisor clean up on its own thread.

Signals
-------
progress(ProgressEvent)   one per `progress=` line on stdout, in order
exited(str, int, str)     (job_id, returncode, full stderr text) once
"""

from __future__ import annotations

import logging
import subprocess
import threading

from PySide6.QtCore import QThread, Signal

from videotool.models import ProgressEvent

logger = logging.getLogger(__name__)

# Keys written by `ffmpeg -progress`. out_time_ms is in microseconds despite
# the name; newer builds also write the same value as out_time_us.
TIME_KEYS = ("out_time_ms", "out_time_us")
PHASE_KEY = "progress"

ERROR_TAIL_LINES = 8


class ExportWorker(QThread):

    progress = Signal(object)
    exited   = Signal(str, object, str)

    def __init__(self, job_id: str, process: subprocess.Popen, parent=None):
        super().__init__(parent)
        self._job_id = job_id
        self._process = process
        self.setObjectName(f"export-{job_id[:8]}")

    @property
    def job_id(self) -> str:
        return self._job_id

    # ── QThread entry point ───────────────────────────────────────────────────

    def run(self):
        process = self._process
        logger.debug("Worker started for job %s (pid %s)", self._job_id, process.pid)

        # ── Drain stderr in a background thread to prevent pipe deadlock ──────
        # ffmpeg writes encoding info to stderr. If we only read stdout, the
        # stderr pipe buffer fills up (~64 KB), ffmpeg blocks waiting for it to
        # be consumed, stdout stalls, and this loop hangs indefinitely.
        stderr_chunks: list[str] = []

        def _drain_stderr():
            for line in process.stderr:
                stderr_chunks.append(line)

        stderr_thread = threading.Thread(
            target=_drain_stderr,
            name=f"stderr-{self._job_id[:8]}",
            daemon=True,
        )
        stderr_thread.start()

        # ── Read progress from stdout ─────────────────────────────────────────
        reader = ProgressReader(self._job_id)
        event_count = 0
        for line in process.stdout:
            event = reader.feed(line)
            if event is not None:
                event_count += 1
                self.progress.emit(event)

        stderr_thread.join()
        returncode = process.wait()
        process.stdout.close()
        process.stderr.close()

        logger.debug(
            "ffmpeg for job %s exited with code %s (%d progress events)",
            self._job_id, returncode, event_count,
        )
        self.exited.emit(self._job_id, returncode, "".join(stderr_chunks))


# ── Progress parsing ──────────────────────────────────────────────────────────

class ProgressReader:
    """
    Stateful parser for `-progress pipe:1` output.

    ffmpeg writes blocks of key=value lines, each block ending with
    progress=continue or progress=end. The reader remembers the latest
    elapsed time and turns every progress= line into a ProgressEvent.
    """

    def __init__(self, job_id: str):
        self.job_id = job_id
        self.out_time_ms: int | None = None

    def feed(self, line: str) -> ProgressEvent | None:
        parsed = parse_progress_line(line)
        if parsed is None:
            return None

        key, value = parsed
        if key in TIME_KEYS:
            self.out_time_ms = _parse_int(value)
            return None
        if key == PHASE_KEY:
            return ProgressEvent(
                job_id=self.job_id,
                phase=value,
                out_time_ms=self.out_time_ms,
            )
        return None


def parse_progress_line(line: str) -> tuple[str, str] | None:
    """'out_time_ms=1500000\\n' → ('out_time_ms', '1500000'); junk → None"""
    key, sep, value = line.strip().partition("=")
    if not sep or not key:
        return None
    return key.strip(), value.strip()


def error_tail(stderr_text: str, lines: int = ERROR_TAIL_LINES) -> str | None:
    """Last *lines* lines of ffmpeg's stderr, trimmed; None if there was none."""
    trimmed = stderr_text.strip()
    if not trimmed:
        return None
    return "\n".join(trimmed.splitlines()[-lines:])


def _parse_int(value: str) -> int | None:
    try:
        return int(value)
    except ValueError:
        # ffmpeg prints N/A before the first frame is encoded
        return None
