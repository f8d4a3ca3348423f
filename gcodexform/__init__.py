"""
gcodexform Python Package

A streaming GCODE command processing pipeline: processors rewrite each
command (mirror, rotate, scale, translate, arc expansion, line splitting,
feed override and clean-up) while the modal machine state is tracked across
the stream.

Key components:
- GcodePipeline: Runs an ordered chain of processors over command lines
- run_pipeline: Convenience function to process a whole program
- GcodeParser: Parses and renders single GCODE lines
- GcodeState: Modal state tracker
- create_processor: Builds a registered processor from options
"""

from ._version import __version__
from .gcode import GcodeParser, GcodeState, PartialPosition, Position, Units, default_state
from .pipeline import ErrorPolicy, GcodePipeline, PipelineConfig, run_pipeline
from .processors.registry import create_processor, list_registered_processors

__all__ = [
    "__version__",
    "GcodePipeline",
    "PipelineConfig",
    "ErrorPolicy",
    "run_pipeline",
    "GcodeParser",
    "GcodeState",
    "default_state",
    "Position",
    "PartialPosition",
    "Units",
    "create_processor",
    "list_registered_processors",
]
