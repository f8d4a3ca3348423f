"""
Tests for the pipeline runner and its error policies.
"""

import logging

import pytest

from gcodexform.gcode.coordinates import PartialPosition, Position
from gcodexform.gcode.state import default_state
from gcodexform.pipeline import ErrorPolicy, GcodePipeline, PipelineConfig, run_pipeline
from gcodexform.processors.arc_expander import ArcExpander
from gcodexform.processors.cleanup import CommentRemover
from gcodexform.processors.line_splitter import LineSplitter
from gcodexform.processors.mirror import MirrorProcessor
from gcodexform.utils.errors import GeometryError, ParseError, PipelineError

pytestmark = pytest.mark.unit


def mirror_x(x=5.0):
    return MirrorProcessor(PartialPosition(x=x))


def test_no_stages_passes_lines_through(run_lines):
    assert run_lines(["G1 X1", "(comment)", "M3"]) == ["G1 X1", "(comment)", "M3"]


def test_string_input_is_split_on_lines(run_lines):
    assert run_lines("G1 X1\r\nG1 X2\r\n") == ["G1 X1", "G1 X2"]


def test_mirror_example(run_lines):
    assert run_lines(["G1 X10 Y0"], mirror_x()) == ["G1 X0 Y0"]


def test_arc_example(run_lines):
    lines = run_lines(["G2 X10 Y0 I5 J0"], ArcExpander(tolerance=0.1))
    assert len(lines) == 8
    assert lines[-1] == "G1 X10 Y0"


def test_parse_failure_aborts_stream():
    pipeline = GcodePipeline(PipelineConfig(stages=[mirror_x()]))
    output = pipeline.iter_run(["G1 X1", "G1 X1Y", "G1 X2"])
    assert next(output) == "G1 X9"
    with pytest.raises(PipelineError) as excinfo:
        next(output)
    error = excinfo.value
    assert error.line_number == 2
    assert error.line == "G1 X1Y"
    assert error.stage == "parse"
    assert isinstance(error.cause, ParseError)
    assert str(error).startswith("Line 2 [parse] 'G1 X1Y': ")


def test_abort_is_the_default():
    with pytest.raises(PipelineError):
        run_pipeline(["G1 X1Y"], PipelineConfig(on_error=ErrorPolicy.ABORT_STREAM))
    assert PipelineConfig().on_error is ErrorPolicy.ABORT_STREAM


def test_stage_failure_names_stage():
    with pytest.raises(PipelineError) as excinfo:
        run_pipeline(["G0 X1", "G2 X10 Y0"], PipelineConfig(stages=[mirror_x()]))
    assert excinfo.value.stage == "mirror"
    assert excinfo.value.line_number == 2
    assert isinstance(excinfo.value.cause, GeometryError)


def test_emit_original(run_lines, caplog):
    with caplog.at_level(logging.WARNING, logger="gcodexform.pipeline"):
        out = run_lines(["G1 X1", "G1 X1Y", "G1 X2"], mirror_x(), on_error=ErrorPolicy.EMIT_ORIGINAL)
    assert out == ["G1 X9", "G1 X1Y", "G1 X8"]
    assert "Line 2 [parse]" in caplog.text


def test_emit_original_advances_tracker():
    pipeline = GcodePipeline(PipelineConfig(stages=[mirror_x()], on_error=ErrorPolicy.EMIT_ORIGINAL))
    assert pipeline.run(["G2 X10 Y0"]) == ["G2 X10 Y0"]
    assert pipeline.state.position == Position(10, 0, 0)
    assert pipeline.state.motion_mode == "G2"


def test_drop(run_lines):
    out = run_lines(["G1 X1", "G1 X1Y", "G1 X2"], mirror_x(), on_error=ErrorPolicy.DROP)
    assert out == ["G1 X9", "G1 X8"]


def test_drop_leaves_state_untouched():
    pipeline = GcodePipeline(PipelineConfig(stages=[mirror_x()], on_error="drop"))
    assert pipeline.run(["G2 X10 Y0"]) == []
    assert pipeline.state == default_state()
    assert pipeline.errors == 1


def test_later_stages_read_their_own_frame(run_lines):
    assert run_lines(["G1 X20"], LineSplitter(10), mirror_x()) == ["G1 X0", "G1 X-10"]


def test_stage_views_restored_after_failure():
    pipeline = GcodePipeline(
        PipelineConfig(stages=[LineSplitter(10), mirror_x(), ArcExpander()], on_error=ErrorPolicy.DROP)
    )
    assert pipeline.run(["G1 X20", "G2 X30 Y0", "G1 X30"]) == ["G1 X0", "G1 X-10", "G1 X-20"]


def test_stage_may_drop_commands(run_lines):
    assert run_lines(["(header)", "G1 X1 (move)"], CommentRemover()) == ["G1 X1"]


def test_tracker_follows_original_program():
    pipeline = GcodePipeline(PipelineConfig(stages=[mirror_x()]))
    pipeline.run(["G20", "G91", "G1 X1", "G1 Y1 F10"])
    state = pipeline.state
    assert state.position.is_close(Position(25.4, 25.4, 0), tol=1e-9)
    assert state.feed_rate == pytest.approx(254)
    assert pipeline.lines_in == 4
    assert pipeline.lines_out == 4


def test_initial_state_is_copied():
    initial = default_state(position=Position(5, 5, 0))
    pipeline = GcodePipeline(PipelineConfig(initial_state=initial))
    pipeline.run(["G1 X1"])
    assert initial.position == Position(5, 5, 0)
    assert pipeline.state.position == Position(1, 5, 0)


@pytest.mark.parametrize(
    "name, expected",
    [
        ("abort", ErrorPolicy.ABORT_STREAM),
        ("ABORT_STREAM", ErrorPolicy.ABORT_STREAM),
        ("emit-original", ErrorPolicy.EMIT_ORIGINAL),
        ("emit_original", ErrorPolicy.EMIT_ORIGINAL),
        ("drop", ErrorPolicy.DROP),
    ],
)
def test_policy_names(name, expected):
    assert ErrorPolicy.from_name(name) is expected


def test_unknown_policy():
    with pytest.raises(ValueError):
        ErrorPolicy.from_name("retry")
