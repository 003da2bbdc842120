from dataclasses import dataclass, field
from enum import Enum


class Weight(Enum):
    """Size class of a text line, from the number of leading ``=``."""

    H1 = 3  # ===
    H2 = 2  # ==
    H3 = 1  # =

    @classmethod
    def from_marker_count(cls, count: int) -> "Weight":
        return cls(count)


class Alignment(Enum):
    LEFT = "left"
    CENTER = "center"
    RIGHT = "right"


class Decoration(Enum):
    PUSH = "push"  # anticipated before the beat
    ACCENT = "accent"
    GHOST = "ghost"  # optional/weak chord, still counts as a beat


# ---------------------------------------------------------------------------
# Text lines
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class StyledRun:
    """A span of text with uniform emphasis."""

    text: str
    bold: bool = False
    italic: bool = False


@dataclass(frozen=True)
class AlignmentZone:
    """A horizontally anchored region of a text line.

    ``explicit`` is False only for the implicit Left zone that a line gets
    when it does not start with an alignment marker.
    """

    alignment: Alignment
    runs: tuple[StyledRun, ...] = ()
    explicit: bool = True

    @property
    def text(self) -> str:
        return "".join(run.text for run in self.runs)


@dataclass(frozen=True)
class TextLine:
    """A ``=``-prefixed line: one weight, one or more alignment zones."""

    weight: Weight
    zones: tuple[AlignmentZone, ...]
    line: int = 0

    @property
    def text(self) -> str:
        return " ".join(zone.text for zone in self.zones if zone.text)


# ---------------------------------------------------------------------------
# Chord lines
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Chord:
    """A chord symbol occupying one beat.

    ``quality`` is the normalised quality name ("minor", "dominant7", ...)
    or, for a tail that is not in the known-quality table, the tail itself.
    ``symbol`` is the tail exactly as written and is what gets rendered.
    """

    root: str
    quality: str = "major"
    symbol: str = ""
    bass: str | None = None
    decorations: frozenset[Decoration] = frozenset()
    recognized: bool = True

    @property
    def label(self) -> str:
        name = f"{self.root}{self.symbol}"
        if self.bass:
            name += f"/{self.bass}"
        return name


@dataclass(frozen=True)
class Rest:
    """An explicitly empty beat (``,``)."""


@dataclass(frozen=True)
class RepeatChord:
    """``*``: the previous sounding chord again. Gone after resolution."""

    column: int | None = field(default=None, compare=False)


@dataclass(frozen=True)
class NoChord:
    """``N.C.``: a beat with no harmony."""


@dataclass(frozen=True)
class Fermata:
    """A held beat."""


Beat = Chord | Rest | RepeatChord | NoChord | Fermata


@dataclass(frozen=True)
class Measure:
    """One bar of beats.

    ``repeats_previous_bar`` comes from ``%`` and is always False once the
    chart has been resolved. ``column`` is where the measure starts in its
    source line and takes no part in equality.
    """

    beats: tuple[Beat, ...] = ()
    repeats_previous_bar: bool = False
    annotation: str | None = None
    column: int | None = field(default=None, compare=False)


@dataclass(frozen=True)
class RepeatGroup:
    """A parenthesised run of measures played ``count`` times.

    ``endings`` holds ``(number, nodes)`` pairs in source order.
    """

    nodes: tuple["Measure | RepeatGroup", ...]
    count: int = 2
    endings: tuple[tuple[int, tuple["Measure | RepeatGroup", ...]], ...] = ()
    column: int | None = field(default=None, compare=False)

    def ending(self, number: int) -> tuple["Measure | RepeatGroup", ...] | None:
        for ending_number, nodes in self.endings:
            if ending_number == number:
                return nodes
        return None


Node = Measure | RepeatGroup


@dataclass(frozen=True)
class MeasureRow:
    """The repeat-free measures of one chord line."""

    measures: tuple[Measure, ...]
    line: int = 0


# ---------------------------------------------------------------------------
# Document
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Section:
    """A named part of the chart (Verse, Chorus, ...). None for the preface."""

    name: str | None = None
    lines: tuple[TextLine | MeasureRow, ...] = ()


@dataclass(frozen=True)
class Diagnostic:
    """A non-fatal finding, e.g. an unrecognised chord quality."""

    line: int
    column: int | None
    message: str

    def __str__(self) -> str:
        where = f"line {self.line}"
        if self.column is not None:
            where += f", column {self.column}"
        return f"{where}: {self.message}"


@dataclass(frozen=True)
class Chart:
    """Canonical, fully resolved representation of a chart document."""

    title: str
    composer: str | None = None
    key: str | None = None
    time_signature: tuple[int, int] = (4, 4)
    sections: tuple[Section, ...] = ()
    diagnostics: tuple[Diagnostic, ...] = field(default=(), compare=False)

    @property
    def measure_count(self) -> int:
        return sum(
            len(line.measures)
            for section in self.sections
            for line in section.lines
            if isinstance(line, MeasureRow)
        )
