"""
GCODE State Management

Tracks modal states while a command stream is processed, including:
- Current position (held in millimeters)
- Units (G20/G21)
- Positioning modes (G90/G91) and arc centre mode (G90.1/G91.1)
- Active plane (G17/G18/G19)
- Motion mode, feed mode, feed rates, spindle speeds and tool
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from gcodexform import config as cfg
from gcodexform.config import TRACE

from .coordinates import Position, Units, convert

if TYPE_CHECKING:
    from .parser import ParsedCommand

logger = logging.getLogger(__name__)


@dataclass
class GcodeState:
    """Tracks modal GCODE state during processing"""

    # Motion mode: G0, G1, G2, G3 or None after G80
    motion_mode: str | None = cfg.DEFAULT_MOTION_MODE
    positioning_mode: str = cfg.DEFAULT_POSITIONING_MODE  # G90 (absolute) or G91 (incremental)
    arc_distance_mode: str = cfg.DEFAULT_ARC_DISTANCE_MODE  # G90.1 or G91.1

    # Current position, always stored in millimeters
    position: Position = field(default_factory=Position)

    units: Units = Units.MM

    # Plane selection for arcs
    plane: str = cfg.DEFAULT_PLANE  # G17 (XY), G18 (XZ), G19 (YZ)

    # Feed and speed
    feed_mode: str = cfg.DEFAULT_FEED_MODE  # G93, G94, G95
    feed_rate: float | None = None  # mm/min in G94
    spindle_speed: float = 0.0
    tool_number: int = 0

    @property
    def is_absolute(self) -> bool:
        return self.positioning_mode == "G90"

    @property
    def is_arc_absolute(self) -> bool:
        return self.arc_distance_mode == "G90.1"

    def position_in(self, units: Units | None = None) -> Position:
        """Current position expressed in the given units (active units by default)"""
        return self.position.to(units or self.units)

    def update(self, command: ParsedCommand) -> None:
        """
        Advance the state with one fully interpreted command

        Args:
            command: ParsedCommand produced by GcodeParser.parse against this state
        """
        self.motion_mode = command.motion_mode
        self.positioning_mode = command.positioning_mode
        self.arc_distance_mode = command.arc_distance_mode
        self.plane = command.plane
        self.units = command.units
        self.feed_mode = command.feed_mode

        if "F" in command.params:
            # Feed rate is tracked in mm/min regardless of the programmed units
            self.feed_rate = convert(command.params["F"], command.units, Units.MM)
        if "S" in command.params:
            self.spindle_speed = command.params["S"]
        if "T" in command.params:
            self.tool_number = int(command.params["T"])

        if command.moves:
            self.position = command.end.to(Units.MM)
        elif command.loses_position:
            logger.warning(
                f"{command.raw.strip()!r} ends at a machine-decided position; "
                "tracked position left unchanged"
            )

        logger.log(TRACE, "state_update motion=%s pos=%s", self.motion_mode, self.position)

    def copy(self) -> GcodeState:
        """Independent copy (positions are immutable so a shallow copy suffices)"""
        return copy.copy(self)

    def reset(self) -> None:
        """Reset state to machine defaults"""
        fresh = default_state()
        self.__dict__.update(fresh.__dict__)

    def summary(self) -> dict[str, Any]:
        """Get current state as dictionary for status reporting"""
        return {
            "motion_mode": self.motion_mode,
            "positioning_mode": self.positioning_mode,
            "arc_distance_mode": self.arc_distance_mode,
            "units": self.units.value,
            "plane": self.plane,
            "feed_mode": self.feed_mode,
            "feed_rate": self.feed_rate,
            "spindle_speed": self.spindle_speed,
            "tool_number": self.tool_number,
            "position": self.position.as_dict(),
        }


def default_state(**overrides: Any) -> GcodeState:
    """
    Machine-default modal state used at stream start

    Args:
        **overrides: Field values replacing the configured defaults
            (e.g. units=Units.INCH, position=Position(10, 0, 5))

    Returns:
        A fresh GcodeState
    """
    state = GcodeState(units=Units.from_name(cfg.DEFAULT_UNITS))
    for name, value in overrides.items():
        if not hasattr(state, name):
            raise TypeError(f"Unknown state field: {name}")
        if name == "units":
            value = Units.from_name(value)
        if name == "position":
            value = value.to(Units.MM)
        setattr(state, name, value)
    return state
