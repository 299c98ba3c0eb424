"""
videotool.supervisor
~~~~~~~~~~~~~~~~~~~~
ExportSupervisor spawns ffmpeg, keeps every running export in a JobRegistry
and republishes progress from the per-job workers.

Threading
---------
The registry belongs to the thread that created the supervisor. start() and
cancel() refuse to run anywhere else; workers report back through queued
signal connections, so inserts, removals and lookups are serialised by the
thread's event queue and never run concurrently.
"""

from __future__ import annotations

import logging
import subprocess
import sys
import threading
import uuid

from PySide6.QtCore import QObject, Qt, Signal, Slot

from videotool.errors import KillError, SpawnError
from videotool.models import ExportJob, JobState, ProgressEvent
from videotool.worker import ExportWorker, error_tail

logger = logging.getLogger(__name__)

ERROR_PHASE = "error"

# Keeps ffmpeg from opening a console window on Windows
CREATE_NO_WINDOW = 0x08000000


class JobRegistry:
    """job id → ExportJob. One job per id; removal is idempotent."""

    def __init__(self):
        self._jobs: dict[str, ExportJob] = {}

    def insert(self, job: ExportJob) -> None:
        if job.id in self._jobs:
            raise ValueError(f"A job with id '{job.id}' is already registered.")
        self._jobs[job.id] = job

    def get(self, job_id: str) -> ExportJob | None:
        return self._jobs.get(job_id)

    def remove(self, job_id: str) -> ExportJob | None:
        return self._jobs.pop(job_id, None)

    def jobs(self) -> list[ExportJob]:
        return list(self._jobs.values())

    def __contains__(self, job_id: str) -> bool:
        return job_id in self._jobs

    def __len__(self) -> int:
        return len(self._jobs)


class ExportSupervisor(QObject):

    export_progress   = Signal(object)       # ProgressEvent
    job_state_changed = Signal(str, object)  # (job_id, JobState)

    def __init__(self, parent=None):
        super().__init__(parent)
        self._registry = JobRegistry()
        self._workers: dict[str, ExportWorker] = {}
        self._owner_thread = threading.get_ident()

    # ── Job management ────────────────────────────────────────────────────────

    def start(
        self,
        argv: list[str],
        command_string: str = "",
        output_path: str = "",
    ) -> str:
        """
        Launch *argv* and return its job id without waiting for it.

        Must be called from the thread that created the supervisor.

        Raises:
            SpawnError   – if the executable could not be started
            RuntimeError – if called from any other thread
        """
        self._check_thread("start")
        try:
            process = subprocess.Popen(
                argv,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                stdin=subprocess.DEVNULL,
                text=True,
                encoding="utf-8",
                errors="replace",
                **_platform_popen_kwargs(),
            )
        except (OSError, ValueError) as exc:
            raise SpawnError(f"Failed to start ffmpeg: {exc}") from exc

        job_id = str(uuid.uuid4())
        job = ExportJob(
            id=job_id,
            process=process,
            command_string=command_string or " ".join(argv),
            output_path=output_path,
        )
        self._registry.insert(job)
        logger.info("Started export %s (pid %s) -> %s", job_id, process.pid, output_path)
        self.job_state_changed.emit(job_id, JobState.SPAWNED)

        worker = ExportWorker(job_id, process, parent=self)
        worker.progress.connect(self._on_worker_progress, Qt.ConnectionType.QueuedConnection)
        worker.exited.connect(self._on_worker_exited, Qt.ConnectionType.QueuedConnection)
        self._workers[job_id] = worker

        worker.start()
        self._set_state(job, JobState.RUNNING)
        return job_id

    def cancel(self, job_id: str) -> bool:
        """
        Kill the process behind *job_id*.

        Returns False when there is nothing to cancel (unknown or finished
        job). Cleanup still happens through the worker's normal exit path.
        Must be called from the thread that created the supervisor.

        Raises:
            KillError    – if the OS refused to terminate the process
            RuntimeError – if called from any other thread
        """
        self._check_thread("cancel")
        job = self._registry.get(job_id)
        if job is None:
            logger.debug("cancel(%s): no running job", job_id)
            return False

        job.cancel_requested = True
        try:
            job.process.kill()
        except ProcessLookupError:
            logger.debug("cancel(%s): process already gone", job_id)
        except OSError as exc:
            raise KillError(f"Failed to cancel export: {exc}") from exc

        logger.info("Cancelled export %s", job_id)
        return True

    def cancel_all(self) -> None:
        for job in self._registry.jobs():
            self.cancel(job.id)

    def job(self, job_id: str) -> ExportJob | None:
        return self._registry.get(job_id)

    def active_jobs(self) -> list[ExportJob]:
        return self._registry.jobs()

    def wait_for_all(self, msecs: int = 30_000) -> bool:
        """Block until every worker thread has finished. True if all did."""
        return all(worker.wait(msecs) for worker in list(self._workers.values()))

    def _check_thread(self, operation: str) -> None:
        if threading.get_ident() != self._owner_thread:
            raise RuntimeError(
                f"ExportSupervisor.{operation}() called outside the supervisor's thread"
            )

    # ── Worker callbacks (supervisor thread) ──────────────────────────────────

    @Slot(object)
    def _on_worker_progress(self, event: ProgressEvent) -> None:
        self.export_progress.emit(event)

    @Slot(str, object, str)
    def _on_worker_exited(self, job_id: str, returncode: int, stderr_text: str) -> None:
        job = self._registry.remove(job_id)

        worker = self._workers.pop(job_id, None)
        if worker is not None:
            worker.wait()
            worker.deleteLater()

        if job is None:
            logger.warning("Job %s exited but was no longer registered", job_id)
            return

        if returncode != 0:
            message = error_tail(stderr_text)
            logger.warning("Export %s failed with code %s", job_id, returncode)
            if message:
                logger.debug("ffmpeg stderr tail for %s:\n%s", job_id, message)
            self.export_progress.emit(
                ProgressEvent(job_id=job_id, phase=ERROR_PHASE, message=message)
            )

        if returncode == 0:
            state = JobState.COMPLETED
        elif job.cancel_requested:
            state = JobState.CANCELLED
        else:
            state = JobState.FAILED
        self._set_state(job, state)

    # ── Helpers ───────────────────────────────────────────────────────────────

    def _set_state(self, job: ExportJob, state: JobState) -> None:
        logger.debug("Job %s: %s → %s", job.id, job.state.name, state.name)
        job.state = state
        self.job_state_changed.emit(job.id, state)


def _platform_popen_kwargs() -> dict:
    if sys.platform == "win32":
        return {"creationflags": CREATE_NO_WINDOW}
    return {}
