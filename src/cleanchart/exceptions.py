class CleanChartError(Exception):
    """Base exception for cleanchart."""


class ChartSyntaxError(CleanChartError):
    """Raised when a chart document cannot be turned into a Chart.

    Carries the 1-based line number and, where known, the 0-based column.
    """

    kind = "error"

    def __init__(self, message: str, line: int, column: int | None = None):
        self.message = message
        self.line = line
        self.column = column
        where = f"line {line}"
        if column is not None:
            where += f", column {column}"
        super().__init__(f"{where}: {message}")


class LexError(ChartSyntaxError):
    """Raised on a malformed weight, alignment marker, escape or emphasis run."""

    kind = "lex error"


class ParseError(ChartSyntaxError):
    """Raised on unbalanced groups, mismatched emphasis or unknown chord-line tokens."""

    kind = "parse error"


class ResolutionError(ChartSyntaxError):
    """Raised when a repeat has no referent or expansion exceeds the ceiling."""

    kind = "resolution error"


class ValidationError(ChartSyntaxError):
    """Raised when chart metadata is missing or invalid."""

    kind = "validation error"


class UnsupportedFormatError(CleanChartError):
    """Raised when no backend matches the requested output format."""

    def __init__(self, fmt: str):
        self.fmt = fmt
        super().__init__(f"No backend found for format: {fmt}")
