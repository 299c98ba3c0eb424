"""Shared test fixtures for videotool.

External tools are stood in for by tiny Python scripts, so the suite runs
without ffmpeg installed.
"""

import os
import stat
import sys
import textwrap
from pathlib import Path

import pytest

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from videotool.supervisor import ExportSupervisor  # noqa: E402

posix_only = pytest.mark.skipif(
    sys.platform == "win32", reason="fake tools rely on shebang scripts"
)


def write_tool(directory: Path, name: str, body: str) -> Path:
    """Write an executable Python script called *name* into *directory*."""
    directory.mkdir(parents=True, exist_ok=True)
    script = directory / name
    script.write_text(
        f"#!{sys.executable}\n" + textwrap.dedent(body),
        encoding="utf-8",
    )
    script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return script


def python_argv(tmp_path: Path, body: str, name: str = "fake_ffmpeg.py") -> list[str]:
    """argv that runs *body* with the current interpreter."""
    script = tmp_path / name
    script.write_text(textwrap.dedent(body), encoding="utf-8")
    return [sys.executable, str(script)]


PROGRESS_SCRIPT = """
import sys
blocks = [
    ("N/A", "continue"),
    ("500000", "continue"),
    ("1000000", "end"),
]
for out_time, phase in blocks:
    sys.stdout.write("frame=12\\n")
    sys.stdout.write(f"out_time_ms={out_time}\\n")
    sys.stdout.write("speed=1.0x\\n")
    sys.stdout.write(f"progress={phase}\\n")
    sys.stdout.flush()
sys.stderr.write("encoder banner\\n")
"""

FAILING_SCRIPT = """
import sys
sys.stdout.write("out_time_ms=40000\\nprogress=continue\\n")
sys.stdout.flush()
sys.stderr.write("\\n\\n")
for i in range(1, 21):
    sys.stderr.write(f"line {i}\\n")
sys.stderr.write("   \\n")
sys.exit(1)
"""

SILENT_FAILURE_SCRIPT = """
import sys
sys.exit(3)
"""

SLOW_SCRIPT = """
import sys, time
sys.stdout.write("out_time_ms=0\\nprogress=continue\\n")
sys.stdout.flush()
time.sleep(60)
sys.stdout.write("progress=end\\n")
"""


@pytest.fixture
def supervisor(qtbot):
    sup = ExportSupervisor()
    yield sup
    sup.cancel_all()
    sup.wait_for_all(10_000)


class Recorder:
    """Collects everything a supervisor emits."""

    def __init__(self, sup: ExportSupervisor):
        self.events = []
        self.states = []
        sup.export_progress.connect(lambda event: self.events.append(event))
        sup.job_state_changed.connect(lambda job_id, state: self.states.append((job_id, state)))

    def events_for(self, job_id):
        return [e for e in self.events if e.job_id == job_id]

    def terminal_state(self, job_id):
        for jid, state in self.states:
            if jid == job_id and state.is_terminal:
                return state
        return None


@pytest.fixture
def recorder(supervisor):
    return Recorder(supervisor)


SAMPLE_PROBE_JSON = (
    '{"format": {"format_name": "matroska,webm", "duration": "3.0", "size": 1000},'
    ' "streams": ['
    '{"codec_type": "video", "codec_name": "hevc", "width": 1280, "height": 720,'
    ' "avg_frame_rate": "25/1", "r_frame_rate": "25/1"},'
    '{"codec_type": "audio", "codec_name": "opus", "channels": 2, "sample_rate": "44100"}'
    ']}'
)
