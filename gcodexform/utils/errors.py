"""
Custom exception types for the gcodexform command pipeline.
Keep this focused and non-redundant; prefer built-ins where appropriate.
"""


class GcodeError(Exception):
    """Base class for failures tied to one G-code command."""

    label = "G-code Error"

    def __init__(self, message: str, line_number: int | None = None, line: str | None = None):
        self.original_message = message
        self.line_number = line_number
        self.line = line
        super().__init__(f"{self.label}: {message}")

    def __str__(self):
        if self.line_number is not None:
            return f"{self.label} on line {self.line_number}: {self.original_message}"
        return f"{self.label}: {self.original_message}"


class ParseError(GcodeError):
    """Malformed or unrecognized command text."""

    label = "Parse Error"


class GeometryError(GcodeError):
    """Degenerate or inconsistent geometry (zero radius arc, bad centre, ...)."""

    label = "Geometry Error"


class UnitError(GcodeError):
    """Position requested in a unit system with no defined conversion."""

    label = "Unit Error"


class RenderError(GcodeError):
    """A transformed command could not be re-serialized canonically."""

    label = "Render Error"


class PipelineError(GcodeError):
    """A command failed inside a pipeline stage."""

    label = "Pipeline Error"

    def __init__(
        self,
        message: str,
        line_number: int | None = None,
        line: str | None = None,
        stage: str | None = None,
        cause: Exception | None = None,
    ):
        self.stage = stage
        self.cause = cause
        super().__init__(message, line_number, line)

    def __str__(self):
        where = f"Line {self.line_number}" if self.line_number is not None else "Command"
        stage = f" [{self.stage}]" if self.stage else ""
        text = f" {self.line.strip()!r}" if self.line is not None else ""
        return f"{where}{stage}{text}: {self.original_message}"
