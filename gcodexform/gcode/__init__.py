"""
GCODE model for gcodexform

Main components:
- parser.py: GCODE tokenization, parsing and canonical rendering
- state.py: Modal state tracking across a command stream
- coordinates.py: Positions and unit conversion
- utils.py: Arc geometry, line splitting and number formatting
"""

from .coordinates import Position, PartialPosition, Units
from .parser import GcodeParser, ParsedCommand
from .state import GcodeState, default_state

__all__ = [
    "GcodeParser",
    "ParsedCommand",
    "GcodeState",
    "default_state",
    "Position",
    "PartialPosition",
    "Units",
]
