"""
Feed override

Scales every programmed feed rate (F word) by a percentage.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Mapping

from gcodexform.gcode.parser import GcodeParser
from gcodexform.gcode.state import GcodeState

from .base import CommandProcessor, check_options, typed
from .registry import register_processor

MAX_OVERRIDE_PERCENT = 200.0


@register_processor("feed")
class FeedOverrideProcessor(CommandProcessor):
    """Scale F words by a percentage (0-200%)"""

    def __init__(self, percent: float, parser: GcodeParser | None = None):
        if not 0 <= percent <= MAX_OVERRIDE_PERCENT:
            raise ValueError(f"Feed override must be between 0 and {MAX_OVERRIDE_PERCENT:g}%, got {percent}")
        self.percent = percent
        self.parser = parser or GcodeParser()

    @classmethod
    def from_options(cls, options: Mapping[str, str]) -> FeedOverrideProcessor:
        check_options(options, ("percent",), "feed")
        percent = typed(options.get("percent"))
        if percent is None:
            raise ValueError("feed requires a percent option")
        return cls(percent)

    def process(self, command: str, state: GcodeState) -> list[str]:
        parsed = self.parser.parse(command, state)
        if "F" not in parsed.params:
            return [command]

        factor = self.percent / 100.0
        words = [(letter, value * factor if letter == "F" else value) for letter, value in parsed.words]
        params = {**parsed.params, "F": parsed.params["F"] * factor}
        return [self.parser.render_words(dataclasses.replace(parsed, words=words, params=params))]
