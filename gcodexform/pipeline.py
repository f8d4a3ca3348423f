"""
Pipeline runner

Feeds command lines through an ordered chain of processors while tracking
the modal machine state of the original program.

- The original line is parsed first against the tracked state.
- The first stage reads the tracked state; every later stage reads its own
  view of the state in its input frame, advanced by each command it consumes.
- The tracked state advances with the original command once every stage has
  succeeded.
- Failures are handled per the configured ErrorPolicy.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from enum import Enum

from gcodexform import config as cfg
from gcodexform.config import TRACE
from gcodexform.gcode.parser import GcodeParser, ParsedCommand
from gcodexform.gcode.state import GcodeState, default_state
from gcodexform.processors.base import CommandProcessor
from gcodexform.utils.errors import GcodeError, PipelineError

logger = logging.getLogger(__name__)


class ErrorPolicy(str, Enum):
    """What the runner does with a command that fails"""

    ABORT_STREAM = "abort"  # raise PipelineError, stop the stream
    EMIT_ORIGINAL = "emit-original"  # log, emit the untouched line
    DROP = "drop"  # log, emit nothing

    @classmethod
    def from_name(cls, name: ErrorPolicy | str) -> ErrorPolicy:
        if isinstance(name, ErrorPolicy):
            return name
        key = str(name).strip().lower().replace("_", "-")
        aliases = {"abort-stream": "abort", "emit": "emit-original", "original": "emit-original"}
        try:
            return cls(aliases.get(key, key))
        except ValueError as e:
            choices = ", ".join(policy.value for policy in cls)
            raise ValueError(f"Unknown error policy {name!r}; expected one of {choices}") from e


def _default_policy() -> ErrorPolicy:
    try:
        return ErrorPolicy.from_name(cfg.ON_ERROR_DEFAULT)
    except ValueError as e:
        logger.warning(f"{e}; using abort")
        return ErrorPolicy.ABORT_STREAM


@dataclass
class PipelineConfig:
    """Stages and policies for one pipeline run"""

    stages: list[CommandProcessor] = field(default_factory=list)
    on_error: ErrorPolicy = field(default_factory=_default_policy)
    initial_state: GcodeState | None = None


class GcodePipeline:
    """Runs command lines through a chain of processors"""

    def __init__(self, config: PipelineConfig, parser: GcodeParser | None = None):
        """
        Args:
            config: Stages, error policy and optional initial state
            parser: Parser for the original lines and stage views
        """
        self.config = config
        self.on_error = ErrorPolicy.from_name(config.on_error)
        self.parser = parser or GcodeParser()
        self.state = config.initial_state.copy() if config.initial_state is not None else default_state()
        # View for stage i (i >= 1) lives at index i - 1
        self._views = [self.state.copy() for _ in config.stages[1:]]

        self.lines_in = 0
        self.lines_out = 0
        self.errors = 0

    @property
    def stages(self) -> list[CommandProcessor]:
        return self.config.stages

    def process_line(self, line: str, line_number: int | None = None) -> list[str]:
        """
        Run one original line through every stage

        Args:
            line: Command text
            line_number: 1-based position in the input, used in errors

        Returns:
            Commands to emit for this line

        Raises:
            PipelineError: On failure when the policy is ABORT_STREAM
        """
        line = line.rstrip("\r\n")
        self.lines_in += 1

        try:
            original = self.parser.parse(line, self.state)
        except GcodeError as e:
            return self._handle_failure(line, line_number, "parse", e, None)

        snapshot = [view.copy() for view in self._views]
        stage_name = "parse"
        batch = [line]
        try:
            for index, stage in enumerate(self.stages):
                stage_name = stage.name
                state = self.state if index == 0 else self._views[index - 1]
                output: list[str] = []
                for command in batch:
                    output.extend(stage.process(command, state))
                    if index > 0:
                        state.update(self.parser.parse(command, state))
                logger.log(TRACE, "stage=%s in=%d out=%d", stage_name, len(batch), len(output))
                batch = output
        except GcodeError as e:
            self._views = snapshot
            return self._handle_failure(line, line_number, stage_name, e, original)

        self.state.update(original)
        self.lines_out += len(batch)
        return batch

    def _handle_failure(
        self,
        line: str,
        line_number: int | None,
        stage: str,
        error: GcodeError,
        original: ParsedCommand | None,
    ) -> list[str]:
        self.errors += 1
        if self.on_error is ErrorPolicy.ABORT_STREAM:
            raise PipelineError(
                error.original_message, line_number=line_number, line=line, stage=stage, cause=error
            ) from error

        where = f"Line {line_number}" if line_number is not None else "Command"
        if self.on_error is ErrorPolicy.DROP:
            logger.warning(f"{where} [{stage}] {line.strip()!r}: {error.original_message}; dropped")
            return []

        logger.warning(f"{where} [{stage}] {line.strip()!r}: {error.original_message}; emitting original")
        if original is not None:
            self.state.update(original)
            self._advance_views(line)
        self.lines_out += 1
        return [line]

    def _advance_views(self, line: str) -> None:
        for index, view in enumerate(self._views, start=1):
            try:
                view.update(self.parser.parse(line, view))
            except GcodeError as e:
                logger.warning(f"Stage {index} state not advanced past {line.strip()!r}: {e}")

    def iter_run(self, lines: str | Iterable[str]) -> Iterator[str]:
        """
        Lazily process lines, yielding output commands as they are produced

        Args:
            lines: A whole program as one string, or an iterable of lines
        """
        if isinstance(lines, str):
            lines = lines.splitlines()
        for line_number, line in enumerate(lines, start=1):
            yield from self.process_line(line, line_number)
        logger.info(f"Processed {self.lines_in} lines -> {self.lines_out} commands ({self.errors} errors)")

    def run(self, lines: str | Iterable[str]) -> list[str]:
        """Process all lines and return every output command"""
        return list(self.iter_run(lines))


def run_pipeline(lines: str | Iterable[str], config: PipelineConfig | None = None) -> list[str]:
    """
    Convenience function to run a whole program through a fresh pipeline

    Raises:
        PipelineError: On failure when the policy is ABORT_STREAM
    """
    return GcodePipeline(config or PipelineConfig()).run(lines)
