"""
videotool.filter_graph
~~~~~~~~~~~~~~~~~~~~~~
Turns an ExportRequest into a FilterPlan.

Filters are kept as structured steps until the very end, so you can:
  - assert on individual steps in tests instead of parsing strings
  - render the same steps as a flat -vf chain or as a -filter_complex node
  - validate a request without touching ffmpeg

Per-clip order is fixed: trim select → fps → scale → label.
Trimming runs first so frame indices refer to the original timeline.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from videotool.errors import InvalidParameter, MissingInput, UnknownMode
from videotool.models import ExportMode, ExportRequest

STACK_OUTPUT = "vout"
LEFT = "left"
RIGHT = "right"

LABEL_FONT = "Sans"


# ── Intermediate representation ───────────────────────────────────────────────

@dataclass(frozen=True)
class FilterStep:
    """One ffmpeg filter, e.g. FilterStep("scale", ("1280", "-1")) → scale=1280:-1"""
    name: str
    args: tuple[str, ...] = ()

    def render(self) -> str:
        if not self.args:
            return self.name
        return f"{self.name}={':'.join(self.args)}"


PASSTHROUGH = FilterStep("null")


def render_chain(steps: tuple[FilterStep, ...] | list[FilterStep]) -> str:
    return ",".join(step.render() for step in steps)


@dataclass(frozen=True)
class GraphNode:
    """[in0][in1]step,step[out]; an empty step list renders as a null filter."""
    inputs: tuple[str, ...]
    steps: tuple[FilterStep, ...]
    output: str

    def render(self) -> str:
        pads = "".join(f"[{label}]" for label in self.inputs)
        chain = render_chain(self.steps or (PASSTHROUGH,))
        return f"{pads}{chain}[{self.output}]"


@dataclass(frozen=True)
class FilterGraph:
    nodes: tuple[GraphNode, ...]
    output: str = STACK_OUTPUT

    def render(self) -> str:
        return ";".join(node.render() for node in self.nodes)


@dataclass
class FilterPlan:
    """
    Builder output consumed by videotool.command_builder.

    Exactly one of `chain` (single input, -vf) and `graph` (side-by-side,
    -filter_complex) is used. `uses_frame_select` tells the assembler to
    request variable frame rate muxing.
    """
    mode: ExportMode
    primary_input: str
    secondary_input: str | None = None
    chain: tuple[FilterStep, ...] = ()
    graph: FilterGraph | None = None
    uses_frame_select: bool = False
    map_audio: bool = False
    seek_args: list[str] = field(default_factory=list)         # before every -i
    duration_args: list[str] = field(default_factory=list)     # after the last -i
    frame_limit_args: list[str] = field(default_factory=list)

    def filter_args(self) -> list[str]:
        if self.graph is not None:
            args = ["-filter_complex", self.graph.render(), "-map", f"[{self.graph.output}]"]
            if self.map_audio:
                args += ["-map", "0:a?"]
            return args
        if self.chain:
            return ["-vf", render_chain(self.chain)]
        return []


# ── Public API ────────────────────────────────────────────────────────────────

def build_filter_plan(request: ExportRequest) -> FilterPlan:
    """
    Validate *request* and build its filter plan.

    Raises:
        MissingInput     – an input required by the mode is empty
        UnknownMode      – mode is not one of ExportMode
        InvalidParameter – crf / size / fps values out of range
    """
    mode = _coerce_mode(request.mode)
    input_a = request.input_a or None
    input_b = request.input_b or None

    if mode is ExportMode.INPUT_B:
        if input_b is None:
            raise MissingInput("Input B is required.")
        primary, secondary = input_b, None
    else:
        if input_a is None:
            raise MissingInput("Input A is required.")
        primary, secondary = input_a, None
        if mode is ExportMode.SIDE_BY_SIDE:
            if input_b is None:
                raise MissingInput("Input B is required for side-by-side export.")
            secondary = input_b

    _validate_parameters(request)

    base = clip_steps(request)
    uses_select = frame_range(request) is not None

    plan = FilterPlan(
        mode=mode,
        primary_input=primary,
        secondary_input=secondary,
        uses_frame_select=uses_select,
        seek_args=_seek_args(request),
        duration_args=_duration_args(request),
        frame_limit_args=_frame_limit_args(request),
    )

    if mode is ExportMode.SIDE_BY_SIDE:
        plan.graph = _side_by_side_graph(request, base)
        plan.map_audio = request.audio_copy
    else:
        label = request.label_b if mode is ExportMode.INPUT_B else request.label_a
        plan.chain = base + label_steps(label)

    return plan


def clip_steps(request: ExportRequest) -> tuple[FilterStep, ...]:
    """Trim → rate → resize, shared by every clip of the export."""
    steps: list[FilterStep] = []

    trim = frame_range(request)
    if trim is not None:
        start, end = trim
        steps.append(FilterStep("select", (f"between(n\\,{start}\\,{end})",)))
        steps.append(FilterStep("setpts", ("N/FRAME_RATE/TB",)))

    if request.fps is not None:
        steps.append(FilterStep("fps", (f"fps={format_number(request.fps)}",)))

    if request.resize_width is not None or request.resize_height is not None:
        width = str(request.resize_width) if request.resize_width is not None else "-1"
        height = str(request.resize_height) if request.resize_height is not None else "-1"
        args = [width, height, "flags=lanczos"]
        if request.keep_aspect:
            args.append("force_original_aspect_ratio=decrease")
        steps.append(FilterStep("scale", tuple(args)))

    return tuple(steps)


def frame_range(request: ExportRequest) -> tuple[int, int] | None:
    """
    Inclusive (start, end) frame indices to keep, or None for no frame trim.

    The end comes from trim_end_frame, or from trim_frame_count as
    start + count - 1. An end before the start keeps just the start frame.
    """
    start = request.trim_start_frame or 0
    if request.trim_end_frame is not None:
        return start, max(start, request.trim_end_frame)
    if request.trim_frame_count is not None:
        return start, start + request.trim_frame_count - 1
    return None


def label_steps(label: str | None) -> tuple[FilterStep, ...]:
    """A translucent band over the bottom 14% of the frame plus centred text."""
    if label is None:
        return ()
    text = label.strip()
    if not text:
        return ()

    band = FilterStep("drawbox", (
        "x=0", "y=ih*0.86", "w=iw", "h=ih*0.14", "color=black@0.45", "t=fill",
    ))
    caption = FilterStep("drawtext", (
        f"font='{LABEL_FONT}'",
        f"text='{escape_filter_text(text)}'",
        "fontcolor=white",
        "fontsize=h*0.055",
        "x=(w-text_w)/2",
        "y=h-(text_h*1.6)",
    ))
    return (band, caption)


def escape_filter_text(value: str) -> str:
    # Backslash first, otherwise the escapes added below get doubled.
    return (
        value.replace("\\", "\\\\")
        .replace(":", "\\:")
        .replace("%", "\\%")
        .replace("'", "\\'")
    )


def format_number(value: float) -> str:
    """24.0 → '24', 29.97 → '29.97'"""
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))


# ── Internal helpers ──────────────────────────────────────────────────────────

def _coerce_mode(mode) -> ExportMode:
    if isinstance(mode, ExportMode):
        return mode
    try:
        return ExportMode(mode)
    except ValueError:
        raise UnknownMode(f"Unknown export mode: {mode!r}") from None


def _validate_parameters(request: ExportRequest) -> None:
    if not 0 <= request.crf <= 51:
        raise InvalidParameter(f"crf must be between 0 and 51, got {request.crf}")

    for name in ("resize_width", "resize_height", "stack_height", "max_frames", "trim_frame_count"):
        value = getattr(request, name)
        if value is not None and value <= 0:
            raise InvalidParameter(f"{name} must be positive, got {value}")

    if request.fps is not None and request.fps <= 0:
        raise InvalidParameter(f"fps must be positive, got {request.fps}")

    for name in ("trim_start_frame", "trim_end_frame", "trim_start_sec"):
        value = getattr(request, name)
        if value is not None and value < 0:
            raise InvalidParameter(f"{name} must not be negative, got {value}")

    if request.trim_duration_sec is not None and request.trim_duration_sec <= 0:
        raise InvalidParameter(
            f"trim_duration_sec must be positive, got {request.trim_duration_sec}"
        )

    if request.trim_end_frame is not None and request.trim_frame_count is not None:
        raise InvalidParameter("trim_end_frame and trim_frame_count are mutually exclusive")


def _side_by_side_graph(request: ExportRequest, base: tuple[FilterStep, ...]) -> FilterGraph:
    left = list(base)
    right = list(base)

    if request.stack_height is not None:
        # -2 keeps the computed width even; libx264 rejects odd widths
        stack = FilterStep("scale", ("-2", str(request.stack_height), "flags=lanczos"))
        left.append(stack)
        right.append(stack)

    left.extend(label_steps(request.label_a))
    right.extend(label_steps(request.label_b))

    return FilterGraph(nodes=(
        GraphNode(("0:v",), tuple(left), LEFT),
        GraphNode(("1:v",), tuple(right), RIGHT),
        GraphNode((LEFT, RIGHT), (FilterStep("hstack", ("inputs=2",)),), STACK_OUTPUT),
    ))


def _seek_args(request: ExportRequest) -> list[str]:
    # Input option, repeated before every -i by the assembler
    if request.trim_start_sec is None:
        return []
    return ["-ss", format_number(request.trim_start_sec)]


def _duration_args(request: ExportRequest) -> list[str]:
    if request.trim_duration_sec is None:
        return []
    return ["-t", format_number(request.trim_duration_sec)]


def _frame_limit_args(request: ExportRequest) -> list[str]:
    if request.max_frames is None:
        return []
    return ["-frames:v", str(request.max_frames)]
