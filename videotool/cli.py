"""Command line shell for videotool.

    videotool probe clip.mp4 --json
    videotool export -a left.mp4 -b right.mp4 --mode side-by-side \\
        --stack-height 720 --label-a Before --label-b After -o compare.mp4
"""

from __future__ import annotations

import json
import logging
import signal
from enum import IntEnum
from pathlib import Path

import click
from PySide6.QtCore import QCoreApplication, QTimer

from videotool.config import (
    SETTINGS_FILE,
    load_settings,
    save_settings,
    setting_names,
    update_setting,
)
from videotool.errors import ProbeFailed, ResolutionError, SpawnError, ValidationError
from videotool.log import configure_logging
from videotool.models import ExportMode, ExportRequest, JobState, MediaInfo, ProgressEvent
from videotool.service import ExportService
from videotool.supervisor import ERROR_PHASE

logger = logging.getLogger(__name__)

# Lets Python run its SIGINT handler while Qt's event loop is in C++
SIGNAL_POLL_MS = 200


class ExitCode(IntEnum):
    SUCCESS = 0
    FAILED = 1
    VALIDATION_ERROR = 10
    TOOL_NOT_FOUND = 30
    CANCELLED = 130


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
@click.option(
    "--bin-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Directory containing ffmpeg and ffprobe (overrides settings).",
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help=f"Settings file (default: {SETTINGS_FILE}).",
)
@click.pass_context
def cli(ctx: click.Context, verbose: bool, bin_dir: Path | None, config_path: Path | None) -> None:
    """Probe media files and run ffmpeg exports."""
    settings = load_settings(config_path)
    if bin_dir is not None:
        settings.bin_dir = bin_dir
    configure_logging("debug" if verbose else settings.log_level, settings.log_file)

    ctx.ensure_object(dict)
    ctx.obj["settings"] = settings
    ctx.obj["config_path"] = config_path


# ── probe ─────────────────────────────────────────────────────────────────────

@cli.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
@click.option("--json", "as_json", is_flag=True, help="Print the raw MediaInfo as JSON.")
@click.pass_context
def probe(ctx: click.Context, path: str, as_json: bool) -> None:
    """Show container and stream metadata for PATH."""
    service = ExportService(ctx.obj["settings"])
    try:
        info = service.probe(path)
    except ResolutionError as exc:
        click.echo(f"Error: {exc}", err=True)
        ctx.exit(ExitCode.TOOL_NOT_FOUND)
    except ProbeFailed as exc:
        click.echo(f"Error: {exc}", err=True)
        ctx.exit(ExitCode.FAILED)

    if as_json:
        click.echo(json.dumps(info.to_dict(), indent=2))
    else:
        click.echo(format_media_info(info))


def format_media_info(info: MediaInfo) -> str:
    lines = [f"File:      {info.file}"]
    if info.size_bytes is not None:
        lines.append(f"Size:      {info.size_bytes} bytes")
    c = info.container
    lines.append(f"Container: {c.format_name or '?'}"
                 f"  duration={_fmt(c.duration_sec, '.3f')}s"
                 f"  bitrate={_fmt(c.bitrate)}")
    if info.video:
        v = info.video
        lines.append(f"Video:     {v.codec_name or '?'} {v.profile or ''}".rstrip())
        lines.append(f"           {_fmt(v.width)}x{_fmt(v.height)}"
                     f"  fps={_fmt(v.fps, '.3f')}  frames={_fmt(v.frame_count)}"
                     f"  pix_fmt={v.pix_fmt or '?'}")
    if info.audio:
        a = info.audio
        lines.append(f"Audio:     {a.codec_name or '?'}"
                     f"  channels={_fmt(a.channels)}  rate={_fmt(a.sample_rate)}")
    return "\n".join(lines)


def _fmt(value, spec: str = "") -> str:
    return "?" if value is None else format(value, spec)


# ── export ────────────────────────────────────────────────────────────────────

@cli.command()
@click.option("--input-a", "-a", default=None, help="First (left) input.")
@click.option("--input-b", "-b", default=None, help="Second (right) input.")
@click.option(
    "--mode",
    type=click.Choice([m.value for m in ExportMode]),
    default=ExportMode.INPUT_A.value,
    show_default=True,
)
@click.option("--output", "-o", "output_path", required=True, help="Output file.")
@click.option("--codec", type=click.Choice(["h264", "h265"]), default=None)
@click.option("--crf", type=click.IntRange(0, 51), default=None)
@click.option("--width", "resize_width", type=click.IntRange(min=1), default=None)
@click.option("--height", "resize_height", type=click.IntRange(min=1), default=None)
@click.option("--keep-aspect", is_flag=True, help="Only shrink, never distort.")
@click.option("--fps", type=float, default=None)
@click.option("--trim-start-frame", type=click.IntRange(min=0), default=None)
@click.option("--trim-end-frame", type=click.IntRange(min=0), default=None)
@click.option("--trim-frame-count", type=click.IntRange(min=1), default=None)
@click.option("--trim-start-sec", type=float, default=None, help="Seek every input.")
@click.option("--trim-duration-sec", type=float, default=None)
@click.option("--max-frames", type=click.IntRange(min=1), default=None)
@click.option("--label-a", default=None)
@click.option("--label-b", default=None)
@click.option("--audio-copy", is_flag=True, help="Copy audio from the primary input.")
@click.option("--stack-height", type=click.IntRange(min=1), default=None)
@click.option("--dry-run", is_flag=True, help="Print the ffmpeg command and exit.")
@click.pass_context
def export(ctx: click.Context, dry_run: bool, codec: str | None, crf: int | None, **options) -> None:
    """Run one ffmpeg export and follow its progress."""
    settings = ctx.obj["settings"]
    request = ExportRequest(
        codec=codec or settings.default_codec,
        crf=crf if crf is not None else settings.default_crf,
        **options,
    )

    app = QCoreApplication.instance() or QCoreApplication([])
    service = ExportService(settings)

    try:
        if dry_run:
            click.echo(service.prepare_export(request).command_string)
            return
        outcome = _run_export(app, service, request)
    except ValidationError as exc:
        click.echo(f"Error: {exc}", err=True)
        ctx.exit(ExitCode.VALIDATION_ERROR)
    except ResolutionError as exc:
        click.echo(f"Error: {exc}", err=True)
        ctx.exit(ExitCode.TOOL_NOT_FOUND)
    except SpawnError as exc:
        click.echo(f"Error: {exc}", err=True)
        ctx.exit(ExitCode.FAILED)

    if outcome is JobState.COMPLETED:
        ctx.exit(ExitCode.SUCCESS)
    if outcome is JobState.CANCELLED:
        ctx.exit(ExitCode.CANCELLED)
    ctx.exit(ExitCode.FAILED)


def _run_export(app: QCoreApplication, service: ExportService, request: ExportRequest) -> JobState | None:
    current: dict = {"job_id": None, "state": None}

    def on_progress(event: ProgressEvent) -> None:
        if event.job_id != current["job_id"]:
            return
        if event.phase == ERROR_PHASE:
            click.echo("ffmpeg failed:", err=True)
            if event.message:
                click.echo(event.message, err=True)
            return
        click.echo(f"  {format_out_time(event.out_time_ms):>12}  {event.phase}")

    def on_state(job_id: str, state: JobState) -> None:
        if job_id == current["job_id"] and state.is_terminal:
            current["state"] = state
            app.quit()

    service.progress.connect(on_progress)
    service.job_state_changed.connect(on_state)

    started = service.start_export(request)
    current["job_id"] = started.job_id
    click.echo(started.command_string)
    click.echo(f"Writing {started.output_path}")

    def on_interrupt(*_):
        logger.info("Interrupted, cancelling export %s", started.job_id)
        service.cancel_export(started.job_id)

    previous_handler = signal.signal(signal.SIGINT, on_interrupt)
    ticker = QTimer()
    ticker.timeout.connect(lambda: None)
    ticker.start(SIGNAL_POLL_MS)
    try:
        app.exec()
    finally:
        ticker.stop()
        signal.signal(signal.SIGINT, previous_handler)

    state = current["state"]
    if state is JobState.COMPLETED:
        click.echo("Done.")
    elif state is JobState.CANCELLED:
        click.echo("Cancelled.", err=True)
    return state


def format_out_time(out_time_ms: int | None) -> str:
    """ffmpeg's out_time_ms is in microseconds."""
    if out_time_ms is None:
        return "--"
    return f"{out_time_ms / 1_000_000:.2f}s"


# ── config ────────────────────────────────────────────────────────────────────

@cli.group()
def config() -> None:
    """Show or change saved settings."""


@config.command("show")
@click.pass_context
def config_show(ctx: click.Context) -> None:
    settings = ctx.obj["settings"]
    for name in setting_names():
        click.echo(f"{name} = {getattr(settings, name)}")


@config.command("set")
@click.argument("key", type=click.Choice(setting_names()))
@click.argument("value")
@click.pass_context
def config_set(ctx: click.Context, key: str, value: str) -> None:
    config_path = ctx.obj["config_path"]
    try:
        settings = update_setting(load_settings(config_path), key, value)
    except ValueError as exc:
        raise click.BadParameter(str(exc), param_hint="VALUE") from exc
    save_settings(settings, config_path)
    click.echo(f"{key} = {getattr(settings, key)}")


def main() -> None:
    cli(obj={})
