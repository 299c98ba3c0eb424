"""Tests for filter plan construction and validation."""

import pytest

from videotool.errors import InvalidParameter, MissingInput, UnknownMode, ValidationError
from videotool.filter_graph import (
    FilterStep,
    GraphNode,
    build_filter_plan,
    escape_filter_text,
    format_number,
    label_steps,
    render_chain,
)
from videotool.models import ExportMode, ExportRequest


def make_request(**overrides) -> ExportRequest:
    fields = {"output_path": "out.mp4", "mode": "input-a", "input_a": "a.mp4"}
    fields.update(overrides)
    return ExportRequest(**fields)


class TestValidation:

    @pytest.mark.parametrize("overrides", [
        {"mode": "input-a", "input_a": None},
        {"mode": "input-a", "input_a": ""},
        {"mode": "input-b", "input_b": None},
        {"mode": "input-b", "input_a": "a.mp4", "input_b": ""},
        {"mode": "side-by-side", "input_a": None, "input_b": "b.mp4"},
        {"mode": "side-by-side", "input_b": None},
    ])
    def test_missing_input(self, overrides):
        with pytest.raises(MissingInput):
            build_filter_plan(make_request(**overrides))

    def test_unknown_mode(self):
        with pytest.raises(UnknownMode):
            build_filter_plan(make_request(mode="picture-in-picture"))

    @pytest.mark.parametrize("overrides", [
        {"crf": 52},
        {"crf": -1},
        {"resize_width": 0},
        {"fps": 0},
        {"stack_height": -4},
        {"trim_duration_sec": 0},
        {"trim_frame_count": 0},
        {"trim_end_frame": 20, "trim_frame_count": 5},
    ])
    def test_invalid_parameters(self, overrides):
        with pytest.raises(InvalidParameter):
            build_filter_plan(make_request(**overrides))

    def test_all_validation_errors_share_a_base(self):
        assert issubclass(MissingInput, ValidationError)
        assert issubclass(UnknownMode, ValidationError)
        assert issubclass(InvalidParameter, ValidationError)

    def test_enum_and_string_modes_are_equivalent(self):
        plan = build_filter_plan(make_request(mode=ExportMode.INPUT_A))
        assert plan.mode is build_filter_plan(make_request(mode="input-a")).mode


class TestSingleInput:

    def test_fps_and_resize_scenario(self):
        plan = build_filter_plan(make_request(fps=24, resize_width=1280, codec="h264", crf=23))
        assert plan.filter_args() == ["-vf", "fps=fps=24,scale=1280:-1:flags=lanczos"]
        assert plan.uses_frame_select is False

    def test_no_filters_means_no_vf(self):
        assert build_filter_plan(make_request()).filter_args() == []

    def test_order_is_trim_rate_resize_label(self):
        plan = build_filter_plan(make_request(
            trim_start_frame=10, trim_end_frame=20, fps=30,
            resize_height=720, keep_aspect=True, label_a="A",
        ))
        names = [step.name for step in plan.chain]
        assert names == ["select", "setpts", "fps", "scale", "drawbox", "drawtext"]
        assert plan.chain[0].render() == "select=between(n\\,10\\,20)"
        assert plan.chain[1].render() == "setpts=N/FRAME_RATE/TB"
        assert plan.chain[3].render() == (
            "scale=-1:720:flags=lanczos:force_original_aspect_ratio=decrease"
        )
        assert plan.uses_frame_select is True

    def test_trim_start_defaults_to_zero(self):
        plan = build_filter_plan(make_request(trim_end_frame=99))
        assert plan.chain[0].render() == "select=between(n\\,0\\,99)"

    def test_end_before_start_clamps_to_single_frame(self):
        plan = build_filter_plan(make_request(trim_start_frame=50, trim_end_frame=10))
        assert plan.chain[0].render() == "select=between(n\\,50\\,50)"

    def test_start_without_end_does_not_trim(self):
        plan = build_filter_plan(make_request(trim_start_frame=50))
        assert plan.chain == ()
        assert plan.uses_frame_select is False

    def test_frame_count_sets_inclusive_end(self):
        plan = build_filter_plan(make_request(trim_start_frame=10, trim_frame_count=5))
        assert plan.chain[0].render() == "select=between(n\\,10\\,14)"
        assert plan.uses_frame_select is True

    def test_single_frame_count(self):
        plan = build_filter_plan(make_request(trim_frame_count=1))
        assert plan.chain[0].render() == "select=between(n\\,0\\,0)"

    def test_input_b_uses_label_b(self):
        plan = build_filter_plan(make_request(
            mode="input-b", input_b="b.mp4", label_a="Left", label_b="Right",
        ))
        assert plan.primary_input == "b.mp4"
        assert plan.secondary_input is None
        assert "text='Right'" in plan.chain[-1].render()

    def test_time_trim_arguments(self):
        plan = build_filter_plan(make_request(trim_start_sec=1.5, trim_duration_sec=4, max_frames=100))
        assert plan.seek_args == ["-ss", "1.5"]
        assert plan.duration_args == ["-t", "4"]
        assert plan.frame_limit_args == ["-frames:v", "100"]


class TestSideBySide:

    def sbs(self, **overrides):
        fields = {"mode": "side-by-side", "input_b": "b.mp4"}
        fields.update(overrides)
        return build_filter_plan(make_request(**fields))

    def test_passthrough_nodes_when_no_filters(self):
        plan = self.sbs()
        assert plan.graph.render() == (
            "[0:v]null[left];[1:v]null[right];[left][right]hstack=inputs=2[vout]"
        )
        assert plan.filter_args() == [
            "-filter_complex", plan.graph.render(), "-map", "[vout]",
        ]

    def test_one_side_labelled_still_has_two_stack_inputs(self):
        plan = self.sbs(label_a="Before")
        rendered = plan.graph.render()
        assert "[1:v]null[right]" in rendered
        assert plan.graph.nodes[-1].inputs == ("left", "right")

    def test_shared_steps_and_stack_height(self):
        plan = self.sbs(fps=25, stack_height=720)
        left, right, stack = plan.graph.nodes
        assert [s.render() for s in left.steps] == [
            "fps=fps=25", "scale=-2:720:flags=lanczos",
        ]
        assert left.steps == right.steps
        assert stack.render() == "[left][right]hstack=inputs=2[vout]"

    def test_labels_follow_stack_scale(self):
        plan = self.sbs(stack_height=480, label_a="A", label_b="B")
        left, right, _ = plan.graph.nodes
        assert [s.name for s in left.steps] == ["scale", "drawbox", "drawtext"]
        assert "text='B'" in right.steps[-1].render()

    def test_audio_mapped_only_when_copying(self):
        assert "0:a?" not in self.sbs().filter_args()
        assert self.sbs(audio_copy=True).filter_args()[-2:] == ["-map", "0:a?"]

    def test_inputs(self):
        plan = self.sbs()
        assert (plan.primary_input, plan.secondary_input) == ("a.mp4", "b.mp4")
        assert plan.chain == ()


class TestLabels:

    def test_escape_order(self):
        assert escape_filter_text("a:b\\c%d'e") == "a\\:b\\\\c\\%d\\'e"

    def test_escape_does_not_double_escape(self):
        assert escape_filter_text("\\:") == "\\\\\\:"

    def test_blank_label_adds_nothing(self):
        assert label_steps("   ") == ()
        assert label_steps(None) == ()

    def test_band_and_text(self):
        band, text = label_steps("  Take 2  ")
        assert band.render() == "drawbox=x=0:y=ih*0.86:w=iw:h=ih*0.14:color=black@0.45:t=fill"
        rendered = text.render()
        assert "text='Take 2'" in rendered
        assert "x=(w-text_w)/2" in rendered


class TestRendering:

    def test_step_without_args(self):
        assert FilterStep("null").render() == "null"

    def test_chain(self):
        assert render_chain([FilterStep("a", ("1",)), FilterStep("b")]) == "a=1,b"

    def test_empty_node_is_null(self):
        assert GraphNode(("0:v",), (), "x").render() == "[0:v]null[x]"

    @pytest.mark.parametrize("value,expected", [(24, "24"), (24.0, "24"), (29.97, "29.97")])
    def test_format_number(self, value, expected):
        assert format_number(value) == expected
