"""
Clean-up processors: comment removal, decimal rounding and normalization.
"""

from __future__ import annotations

import re
from collections.abc import Mapping

from gcodexform import config as cfg
from gcodexform.gcode.parser import GcodeParser
from gcodexform.gcode.state import GcodeState

from .base import CommandProcessor, check_options, typed
from .registry import register_processor

_WHITESPACE = re.compile(r"\s+")


@register_processor("strip-comments")
class CommentRemover(CommandProcessor):
    """Remove ( ) and ; comments; comment-only lines are dropped"""

    def process(self, command: str, state: GcodeState) -> list[str]:
        if "(" not in command and ";" not in command:
            return [command]
        stripped = _WHITESPACE.sub(" ", GcodeParser.COMMENT_PATTERN.sub(" ", command)).strip()
        return [stripped] if stripped else []


@register_processor("round")
class DecimalRounder(CommandProcessor):
    """Round numeric words to a fixed number of decimal places"""

    def __init__(self, decimals: int = cfg.DECIMAL_PRECISION, parser: GcodeParser | None = None):
        if decimals < 0:
            raise ValueError(f"Decimal places cannot be negative, got {decimals}")
        self.decimals = decimals
        self.parser = parser or GcodeParser()

    @classmethod
    def from_options(cls, options: Mapping[str, str]) -> DecimalRounder:
        check_options(options, ("decimals",), "round")
        decimals = typed(options.get("decimals"), int)
        return cls() if decimals is None else cls(decimals)

    def process(self, command: str, state: GcodeState) -> list[str]:
        parsed = self.parser.parse(command, state)
        return [self.parser.render_words(parsed, precision=self.decimals)]


@register_processor("normalize")
class Normalizer(CommandProcessor):
    """Rewrite commands in canonical form (unparseable lines pass through)"""

    def __init__(self, parser: GcodeParser | None = None):
        self.parser = parser or GcodeParser()

    def process(self, command: str, state: GcodeState) -> list[str]:
        return [self.parser.normalize(command, state)]
