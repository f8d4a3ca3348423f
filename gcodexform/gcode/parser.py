"""
GCODE Parser

Tokenizes single GCODE lines into structured commands, resolving omitted
fields against the modal state, and serializes commands back to canonical
text. Supports standard GCODE syntax including G-codes, M-codes, axis words,
arc words, parameters and comments.
"""

from __future__ import annotations

import logging
import math
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

from gcodexform import config as cfg
from gcodexform.config import TRACE
from gcodexform.utils.errors import ParseError, RenderError

from .coordinates import AXES, Position, Units
from .state import GcodeState
from .utils import format_gcode_number

logger = logging.getLogger(__name__)

MOTION_CODES: dict[float, str] = {0: "G0", 1: "G1", 2: "G2", 3: "G3"}
ARC_CODES = frozenset({"G2", "G3"})
ARC_WORDS: tuple[str, ...] = ("I", "J", "K", "R", "P")
CENTER_WORDS = frozenset({"I", "J", "K", "R"})


@dataclass
class ParsedCommand:
    """Decoded form of one GCODE line"""

    raw: str
    # Every word in source order, including G, M and N
    words: list[tuple[str, float]] = field(default_factory=list)
    g_codes: list[float] = field(default_factory=list)  # non-motion G codes
    m_codes: list[float] = field(default_factory=list)
    motion_word: str | None = None  # motion code written on this line, if any
    motion_mode: str | None = None  # effective motion mode after this line
    axes: dict[str, float] = field(default_factory=dict)  # only axes present in the text
    params: dict[str, float] = field(default_factory=dict)  # I, J, K, R, F, S, T, P, ...
    line_number: int | None = None
    comment: str | None = None
    comment_style: str = "("

    # Effective modes for this line (state modes with this line's G codes applied)
    units: Units = Units.MM
    positioning_mode: str = "G90"
    arc_distance_mode: str = "G91.1"
    plane: str = "G17"
    feed_mode: str = "G94"

    moves: bool = False
    loses_position: bool = False
    system: bool = False  # '%' program markers and '$' controller commands

    # Resolved absolute positions in this line's units
    start: Position = field(default_factory=Position)
    end: Position = field(default_factory=Position)

    @property
    def code(self) -> str | None:
        """Motion code for moving lines, None for non-motion lines"""
        return self.motion_mode if self.moves else None

    @property
    def is_motion(self) -> bool:
        return self.code is not None

    @property
    def is_arc(self) -> bool:
        return self.code in ARC_CODES

    @property
    def clockwise(self) -> bool:
        return self.code == "G2"

    @property
    def is_absolute(self) -> bool:
        return self.positioning_mode == "G90"

    @property
    def is_arc_absolute(self) -> bool:
        return self.arc_distance_mode == "G90.1"

    def arc_words(self) -> dict[str, float]:
        """Arc centre, radius and turn words (I, J, K, R, P) present on an arc line"""
        if not self.is_arc:
            return {}
        return {letter: self.params[letter] for letter in ARC_WORDS if letter in self.params}

    def tail_words(self) -> list[tuple[str, float]]:
        """Non-geometric words (F, S, T, ...) in source order"""
        skip = set(ARC_WORDS) if self.is_arc else set()
        return [(letter, value) for letter, value in self.params.items() if letter not in skip]


class GcodeParser:
    """GCODE parser that tokenizes lines and renders canonical text"""

    # Regex patterns for parsing
    COMMENT_PATTERN = re.compile(r"\((.*?)\)|;(.*)$")
    WORD_PATTERN = re.compile(r"([A-Z])\s*([+-]?(?:\d+\.?\d*|\.\d+))?", re.IGNORECASE)
    # 1e3 written straight after a number; "X1 E3" with a space is two words
    EXPONENT_PATTERN = re.compile(r"[eE][+-]?[\d.]")

    # Valid GCODE commands we support
    SUPPORTED_G_CODES = {
        0: "Rapid positioning",
        1: "Linear interpolation",
        2: "Clockwise arc",
        3: "Counter-clockwise arc",
        4: "Dwell",
        10: "Set offsets",
        17: "XY plane selection",
        18: "XZ plane selection",
        19: "YZ plane selection",
        20: "Inch units",
        21: "Millimeter units",
        28: "Return to home",
        28.1: "Store home position",
        30: "Return to secondary home",
        30.1: "Store secondary home position",
        38.2: "Probe toward workpiece, error on fail",
        38.3: "Probe toward workpiece",
        38.4: "Probe away from workpiece, error on fail",
        38.5: "Probe away from workpiece",
        40: "Cutter compensation off",
        41: "Cutter compensation left",
        42: "Cutter compensation right",
        43: "Tool length offset",
        43.1: "Dynamic tool length offset",
        49: "Cancel tool length offset",
        53: "Move in machine coordinates",
        54: "Work coordinate 1",
        55: "Work coordinate 2",
        56: "Work coordinate 3",
        57: "Work coordinate 4",
        58: "Work coordinate 5",
        59: "Work coordinate 6",
        59.1: "Work coordinate 7",
        59.2: "Work coordinate 8",
        59.3: "Work coordinate 9",
        61: "Exact path mode",
        61.1: "Exact stop mode",
        64: "Path blending",
        80: "Cancel motion mode",
        90: "Absolute positioning",
        90.1: "Absolute arc centres",
        91: "Incremental positioning",
        91.1: "Incremental arc centres",
        92: "Coordinate system offset",
        92.1: "Reset coordinate offsets",
        92.2: "Suspend coordinate offsets",
        92.3: "Restore coordinate offsets",
        93: "Inverse time feed",
        94: "Units per minute feed",
        95: "Units per revolution feed",
        98: "Canned cycle initial level return",
        99: "Canned cycle R level return",
    }

    # Modal group definitions (at most one code per group on a line)
    MODAL_GROUPS = {
        "plane": {17, 18, 19},
        "distance": {90, 91},
        "arc_distance": {90.1, 91.1},
        "feed_rate_mode": {93, 94, 95},
        "units": {20, 21},
        "cutter_comp": {40, 41, 42},
        "tool_length": {43, 43.1, 49},
        "coordinate_system": {54, 55, 56, 57, 58, 59, 59.1, 59.2, 59.3},
        "path_control": {61, 61.1, 64},
        "return_mode": {98, 99},
        "non_modal": {4, 10, 28, 28.1, 30, 30.1, 38.2, 38.3, 38.4, 38.5, 53, 92, 92.1, 92.2, 92.3},
    }

    # Codes whose axis words are parameters, not a motion target
    AXIS_WORD_CODES = {10, 28, 30, 38.2, 38.3, 38.4, 38.5, 92}
    # Codes after which the end position is decided by the machine
    POSITION_LOSING_CODES = {28, 30, 38.2, 38.3, 38.4, 38.5}

    def __init__(self, precision: int = cfg.DECIMAL_PRECISION):
        """
        Args:
            precision: Decimal places used when rendering numbers
        """
        self.precision = precision

    # ------------------------------------------------------------------
    # Parsing
    # ------------------------------------------------------------------

    def parse(self, text: str, state: GcodeState) -> ParsedCommand:
        """
        Parse a single line of GCODE against the current modal state

        Args:
            text: Raw GCODE line
            state: Modal state before this line (read only)

        Returns:
            ParsedCommand with omitted fields resolved from state

        Raises:
            ParseError: Malformed numbers, unknown characters or codes,
                duplicate words, modal group conflicts
        """
        raw = text.rstrip("\r\n")
        command = ParsedCommand(
            raw=raw,
            motion_mode=state.motion_mode,
            units=state.units,
            positioning_mode=state.positioning_mode,
            arc_distance_mode=state.arc_distance_mode,
            plane=state.plane,
            feed_mode=state.feed_mode,
        )

        stripped = raw.strip()
        if stripped == "%" or stripped.startswith("$"):
            command.system = True
            command.start = command.end = state.position_in(state.units)
            return command

        # Extract and remove comments
        comments: list[str] = []
        styles: list[str] = []

        def _take_comment(match: re.Match) -> str:
            if match.group(1) is not None:
                comments.append(match.group(1).strip())
                styles.append("(")
            else:
                comments.append(match.group(2).strip())
                styles.append(";")
            return " "

        body = self.COMMENT_PATTERN.sub(_take_comment, raw)
        if comments:
            command.comment = " ".join(c for c in comments if c)
            command.comment_style = styles[0]

        self._tokenize(body, command)
        self._apply_modes(command)
        self._resolve_motion(command, state)

        logger.log(TRACE, "parsed line=%r code=%s end=%s", raw, command.code, command.end)
        return command

    def _tokenize(self, body: str, command: ParsedCommand) -> None:
        seen: set[str] = set()
        groups: set[str] = set()
        pos = 0

        while pos < len(body):
            if body[pos].isspace():
                pos += 1
                continue

            match = self.WORD_PATTERN.match(body, pos)
            if match is None:
                if body[pos] == "(":
                    raise ParseError("Unclosed parenthesis in comment", line=command.raw)
                raise ParseError(f"Unrecognized character {body[pos]!r}", line=command.raw)

            letter = match.group(1).upper()
            number = match.group(2)
            if number is None:
                raise ParseError(f"Malformed numeric value for word '{letter}'", line=command.raw)
            if self.EXPONENT_PATTERN.match(body, match.end()):
                raise ParseError(
                    f"Exponent notation is not allowed in numbers ({letter}{number}{body[match.end()]}...)",
                    line=command.raw,
                )

            try:
                value = float(number)
            except ValueError as e:
                raise ParseError(
                    f"Invalid numeric value for {letter}: {number}", line=command.raw
                ) from e

            self._add_word(command, letter, value, seen, groups)
            pos = match.end()

    def _add_word(
        self,
        command: ParsedCommand,
        letter: str,
        value: float,
        seen: set[str],
        groups: set[str],
    ) -> None:
        if letter == "G":
            if value in MOTION_CODES or value == 80:
                if command.motion_word is not None:
                    raise ParseError(
                        f"Multiple codes from motion modal group: {command.motion_word}, G{value:g}",
                        line=command.raw,
                    )
                command.motion_word = MOTION_CODES.get(value, "G80")
            elif value not in self.SUPPORTED_G_CODES:
                raise ParseError(f"Unsupported G-code: G{value:g}", line=command.raw)
            else:
                for group, codes in self.MODAL_GROUPS.items():
                    if value in codes:
                        if group in groups:
                            raise ParseError(
                                f"Multiple codes from {group} modal group on one line",
                                line=command.raw,
                            )
                        groups.add(group)
                command.g_codes.append(value)

        elif letter == "M":
            command.m_codes.append(value)

        elif letter == "N":
            if command.line_number is not None:
                raise ParseError("Duplicate line number word", line=command.raw)
            command.line_number = int(value)

        else:
            if letter in seen:
                raise ParseError(f"Duplicate word '{letter}'", line=command.raw)
            seen.add(letter)
            if letter in AXES:
                command.axes[letter] = value
            else:
                command.params[letter] = value

        command.words.append((letter, value))

    @staticmethod
    def _apply_modes(command: ParsedCommand) -> None:
        for code in command.g_codes:
            if code == 20:
                command.units = Units.INCH
            elif code == 21:
                command.units = Units.MM
            elif code in (90, 91):
                command.positioning_mode = f"G{code:g}"
            elif code in (90.1, 91.1):
                command.arc_distance_mode = f"G{code:g}"
            elif code in (17, 18, 19):
                command.plane = f"G{code:g}"
            elif code in (93, 94, 95):
                command.feed_mode = f"G{code:g}"

        if command.motion_word == "G80":
            command.motion_mode = None
        elif command.motion_word is not None:
            command.motion_mode = command.motion_word

    def _resolve_motion(self, command: ParsedCommand, state: GcodeState) -> None:
        start = state.position_in(command.units)
        command.start = start
        command.end = start

        if any(code in self.POSITION_LOSING_CODES for code in command.g_codes):
            command.loses_position = True
        if any(code in self.AXIS_WORD_CODES for code in command.g_codes):
            return

        has_center = any(letter in command.params for letter in CENTER_WORDS)
        if command.axes:
            if command.motion_mode is None:
                raise ParseError("Axis words given with no active motion mode (G80)", line=command.raw)
            command.moves = True
        elif command.motion_mode in ARC_CODES and has_center:
            # Arc back to the start point: a full circle
            command.moves = True

        if not command.moves:
            return

        target = {}
        for axis, value in command.axes.items():
            target[axis] = value if command.is_absolute else start.get(axis) + value
        command.end = start.with_axes(target)

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def format_word(self, letter: str, value: float, precision: int | None = None) -> str:
        """Canonical text of one word"""
        if letter in ("G", "M"):
            return f"{letter}{format_gcode_number(value, 1)}"
        if letter in ("N", "T"):
            return f"{letter}{int(value)}"
        return f"{letter}{format_gcode_number(value, self.precision if precision is None else precision)}"

    def render(
        self,
        code: str,
        start: Position,
        end: Position,
        absolute: bool,
        extra: Mapping[str, float] | Iterable[tuple[str, float] | str] | None = None,
        *,
        required_axes: Iterable[str] = (),
        prefix: Iterable[str] = (),
    ) -> str:
        """
        Canonical text for a motion from start to end

        Args:
            code: Motion code ('G0', 'G1', 'G2', 'G3')
            start: Position before the move
            end: Position after the move; output uses its units
            absolute: True to write end coordinates, False to write deltas
            extra: Words appended after the axes (arc words, F, S, ...)
            required_axes: Axes written even when unchanged
            prefix: Preformatted words written before the motion code

        Returns:
            Command text, e.g. 'G1 X10 Y-2.5 F300'

        Raises:
            RenderError: A coordinate is not a finite number
        """
        start = start.to(end.units)
        required = set(required_axes)
        words = list(prefix)
        words.append(code)

        for axis in AXES:
            begin = start.get(axis)
            finish = end.get(axis)
            value = finish if absolute else finish - begin
            if not math.isfinite(value):
                raise RenderError(f"Cannot render non-finite {axis} coordinate")
            if absolute:
                changed = self.format_word(axis, finish) != self.format_word(axis, begin)
            else:
                changed = format_gcode_number(value, self.precision) != "0"
            if changed or axis in required:
                words.append(self.format_word(axis, value))

        words.extend(self._format_extra(extra))
        return " ".join(words)

    def _format_extra(self, extra) -> list[str]:
        if not extra:
            return []
        items = extra.items() if isinstance(extra, Mapping) else extra
        out = []
        for item in items:
            if isinstance(item, str):
                out.append(item)
            else:
                letter, value = item
                if not math.isfinite(value):
                    raise RenderError(f"Cannot render non-finite {letter} word")
                out.append(self.format_word(letter, value))
        return out

    def _comment_text(self, command: ParsedCommand) -> str | None:
        if command.comment is None:
            return None
        if command.comment_style == ";":
            return f"; {command.comment}".rstrip()
        return f"({command.comment})"

    def render_motion(
        self,
        command: ParsedCommand,
        start: Position,
        end: Position,
        *,
        code: str | None = None,
        arc_words: Mapping[str, float] | None = None,
        extras: bool = True,
    ) -> str:
        """
        Render a moving command with new geometry, keeping its other words

        The line's modal G codes (and N word) lead, then the motion code,
        axes, arc words, and when extras is set the F/S/T/... words, M codes
        and comment.
        """
        prefix = []
        if command.line_number is not None and extras:
            prefix.append(self.format_word("N", command.line_number))
        prefix.extend(self.format_word("G", g) for g in command.g_codes)

        extra: list[tuple[str, float] | str] = list((arc_words or {}).items())
        if extras:
            extra.extend(command.tail_words())
            extra.extend(self.format_word("M", m) for m in command.m_codes)
            comment = self._comment_text(command)
            if comment:
                extra.append(comment)

        return self.render(
            code or command.code or "G1",
            start,
            end,
            command.is_absolute,
            extra,
            required_axes=command.axes.keys(),
            prefix=prefix,
        )

    def render_words(self, command: ParsedCommand, precision: int | None = None) -> str:
        """
        Canonical text of any parsed line, words kept in source order

        Args:
            command: Parsed command
            precision: Decimal places for numeric words (parser default if None)
        """
        if command.system:
            return command.raw.strip()

        words = []
        if command.line_number is not None:
            words.append(self.format_word("N", command.line_number))
        for letter, value in command.words:
            if letter == "N":
                continue
            words.append(self.format_word(letter, value, precision))
        comment = self._comment_text(command)
        if comment:
            words.append(comment)
        return " ".join(words)

    def render_canonical(self, command: ParsedCommand) -> str:
        """Canonical text of a parsed line"""
        if command.is_motion:
            return self.render_motion(
                command, command.start, command.end, arc_words=command.arc_words()
            )
        return self.render_words(command)

    # ------------------------------------------------------------------
    # Normalization
    # ------------------------------------------------------------------

    def normalize_strict(self, text: str, state: GcodeState) -> str:
        """
        Round-trip text through parse and render

        Raises:
            RenderError: If the text cannot be parsed or rendered
        """
        try:
            command = self.parse(text, state)
        except ParseError as e:
            raise RenderError(f"Cannot normalize: {e.original_message}", line=text) from e
        return self.render_canonical(command)

    def normalize(self, text: str, state: GcodeState) -> str:
        """
        Canonical form of text; on failure the original text is returned unchanged
        """
        try:
            return self.normalize_strict(text, state)
        except RenderError as e:
            logger.debug(f"Normalization skipped for {text.strip()!r}: {e.original_message}")
            return text
