"""Tests for ffmpeg argument assembly, output naming and command rendering."""

from videotool.command_builder import (
    build_export_command,
    build_probe_command,
    command_as_string,
    format_arg,
    unique_output_path,
    video_encoder,
)
from videotool.filter_graph import build_filter_plan
from videotool.models import ExportRequest

FFMPEG = "/opt/ffmpeg/bin/ffmpeg"


def assemble(tmp_path, **overrides):
    fields = {"output_path": str(tmp_path / "out.mp4"), "mode": "input-a", "input_a": "a.mp4"}
    fields.update(overrides)
    request = ExportRequest(**fields)
    return build_export_command(FFMPEG, request, build_filter_plan(request))


class TestUniqueOutputPath:

    def test_free_path_is_unchanged(self, tmp_path):
        path = str(tmp_path / "video.mp4")
        assert unique_output_path(path) == path

    def test_counts_up_past_existing_files(self, tmp_path):
        (tmp_path / "video.mp4").touch()
        assert unique_output_path(str(tmp_path / "video.mp4")) == str(tmp_path / "video (1).mp4")

        (tmp_path / "video (1).mp4").touch()
        assert unique_output_path(str(tmp_path / "video.mp4")) == str(tmp_path / "video (2).mp4")

    def test_no_extension(self, tmp_path):
        (tmp_path / "render").touch()
        assert unique_output_path(str(tmp_path / "render")) == str(tmp_path / "render (1)")

    def test_exhausted_limit_returns_original(self, tmp_path):
        (tmp_path / "v.mp4").touch()
        (tmp_path / "v (1).mp4").touch()
        (tmp_path / "v (2).mp4").touch()
        assert unique_output_path(str(tmp_path / "v.mp4"), limit=3) == str(tmp_path / "v.mp4")

    def test_creates_nothing(self, tmp_path):
        (tmp_path / "video.mp4").touch()
        unique_output_path(str(tmp_path / "video.mp4"))
        assert sorted(p.name for p in tmp_path.iterdir()) == ["video.mp4"]


class TestBuildExportCommand:

    def test_single_input_scenario(self, tmp_path):
        cmd = assemble(tmp_path, codec="h264", crf=23, fps=24, resize_width=1280, audio_copy=False)
        out = str(tmp_path / "out.mp4")
        assert cmd.args == [
            "-i", "a.mp4",
            "-vf", "fps=fps=24,scale=1280:-1:flags=lanczos",
            "-c:v", "libx264",
            "-crf", "23",
            "-c:a", "aac",
            "-y", "-progress", "pipe:1", "-nostats",
            out,
        ]
        assert cmd.argv[0] == FFMPEG
        assert cmd.output_path == out

    def test_side_by_side_order(self, tmp_path):
        cmd = assemble(
            tmp_path, mode="side-by-side", input_b="b.mp4", codec="h265",
            trim_end_frame=30, audio_copy=True,
        )
        args = cmd.args
        assert args[:4] == ["-i", "a.mp4", "-i", "b.mp4"]
        assert args[4] == "-filter_complex"
        assert args[6:10] == ["-map", "[vout]", "-map", "0:a?"]
        assert args[10:12] == ["-vsync", "vfr"]
        assert args[12:18] == ["-c:v", "libx265", "-crf", "23", "-c:a", "copy"]

    def test_vsync_only_with_frame_selection(self, tmp_path):
        assert "-vsync" not in assemble(tmp_path, fps=30).args
        assert "-vsync" in assemble(tmp_path, trim_end_frame=5).args

    def test_time_trim_wraps_primary_input(self, tmp_path):
        args = assemble(tmp_path, trim_start_sec=2.5, trim_duration_sec=3, max_frames=48).args
        assert args[:6] == ["-ss", "2.5", "-i", "a.mp4", "-t", "3"]
        index = args.index("-frames:v")
        assert args[index + 1] == "48"
        assert index < args.index("-c:v")

    def test_time_trim_side_by_side_seeks_both_inputs(self, tmp_path):
        args = assemble(
            tmp_path, mode="side-by-side", input_b="b.mp4",
            trim_start_sec=2.0, trim_duration_sec=3.0,
        ).args
        assert args[:8] == ["-ss", "2", "-i", "a.mp4", "-ss", "2", "-i", "b.mp4"]
        assert args[8:10] == ["-t", "3"]
        assert args[10] == "-filter_complex"

    def test_existing_output_gets_counter(self, tmp_path):
        (tmp_path / "out.mp4").touch()
        cmd = assemble(tmp_path)
        assert cmd.output_path == str(tmp_path / "out (1).mp4")
        assert cmd.args[-1] == cmd.output_path

    def test_command_string_quotes_spaced_paths(self, tmp_path):
        cmd = assemble(tmp_path, input_a="my clip.mp4")
        assert '-i "my clip.mp4"' in cmd.command_string
        assert cmd.command_string.startswith(FFMPEG + " ")

    def test_unknown_codec_defaults_to_avc(self):
        assert video_encoder("vp9") == "libx264"
        assert video_encoder("h265") == "libx265"


class TestCommandString:

    def test_bare_arguments(self):
        assert command_as_string(["ffmpeg", "-i", "a.mp4"]) == "ffmpeg -i a.mp4"

    def test_spaced_argument_is_quoted(self):
        assert format_arg("my video.mp4") == '"my video.mp4"'

    def test_embedded_quote_is_escaped(self):
        assert format_arg('say "hi" now') == '"say \\"hi\\" now"'

    def test_quote_without_space_is_left_alone(self):
        assert format_arg('a"b') == 'a"b'


def test_probe_command():
    assert build_probe_command("ffprobe", "in.mkv") == [
        "ffprobe", "-hide_banner", "-print_format", "json",
        "-show_format", "-show_streams", "in.mkv",
    ]
