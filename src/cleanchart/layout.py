"""Deterministic page layout for a resolved :class:`~cleanchart.models.Chart`.

``layout_chart`` is a pure function: the same chart, metrics and config
always give an equal :class:`ChartLayout`. Text widths come from an
injected :class:`TextMetrics`; no font metrics live here.

Coordinates are in points with the origin at the top-left corner of the
page and y growing downwards; the y of a text item is its baseline.

Zone allocation
---------------
Left zones are packed from the left margin, Right zones against the right
margin, Center zones are centred on the page midpoint and clamped so they
never overlap the other two groups. When the zones of a line ask for more
than the line width, every zone is shrunk according to
``LayoutConfig.overflow_policy`` (``DEFAULT_OVERFLOW_POLICY``):

``PROPORTIONAL``
    all zones scale by the same factor, so each keeps its requested share.
``EQUAL_SHARE``
    zones narrower than an equal share of the width keep their size; the
    rest split what remains equally.

Text is never clipped: a shrunk run keeps all of its characters and is
emitted with the narrower width it must fit in.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol

from .models import (
    Alignment,
    AlignmentZone,
    Chart,
    Chord,
    Decoration,
    Fermata,
    Measure,
    MeasureRow,
    NoChord,
    Rest,
    StyledRun,
    TextLine,
    Weight,
)


class OverflowPolicy(Enum):
    PROPORTIONAL = "proportional"
    EQUAL_SHARE = "equal-share"


DEFAULT_OVERFLOW_POLICY = OverflowPolicy.PROPORTIONAL


@dataclass(frozen=True)
class FontStyle:
    size: float
    line_height: float


DEFAULT_WEIGHT_STYLES = {
    Weight.H1: FontStyle(size=18.0, line_height=24.0),
    Weight.H2: FontStyle(size=14.0, line_height=20.0),
    Weight.H3: FontStyle(size=11.0, line_height=16.0),
}


@dataclass(frozen=True)
class Extent:
    width: float
    height: float


class TextMetrics(Protocol):
    """Measures styled text; supplied by the caller."""

    def measure(self, text: str, weight: Weight, bold: bool, italic: bool) -> Extent: ...


@dataclass
class LayoutConfig:
    """Page geometry and spacing. Defaults: A4 portrait in points."""

    page_width: float = 595.0
    page_height: float = 842.0
    margin_horizontal: float = 28.0  # ~10mm
    margin_vertical: float = 28.0
    weight_styles: dict[Weight, FontStyle] = field(default_factory=lambda: dict(DEFAULT_WEIGHT_STYLES))
    measures_per_row: int = 4
    row_height: float = 40.0
    section_gap: float = 12.0
    zone_gap: float = 8.0
    beat_padding: float = 6.0
    chord_weight: Weight = Weight.H2
    overflow_policy: OverflowPolicy = DEFAULT_OVERFLOW_POLICY

    @property
    def content_width(self) -> float:
        return self.page_width - 2 * self.margin_horizontal

    @property
    def content_bottom(self) -> float:
        return self.page_height - self.margin_vertical


# ---------------------------------------------------------------------------
# Geometry
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TextItem:
    x: float
    y: float
    text: str
    weight: Weight
    bold: bool
    italic: bool
    alignment: Alignment
    width: float


@dataclass(frozen=True)
class BarItem:
    x1: float
    y1: float
    x2: float
    y2: float


@dataclass(frozen=True)
class RectItem:
    x: float
    y: float
    width: float
    height: float
    fill: str | None = None
    stroke: str | None = None


LayoutItem = TextItem | BarItem | RectItem


@dataclass(frozen=True)
class PageLayout:
    number: int
    items: tuple[LayoutItem, ...]


@dataclass(frozen=True)
class ChartLayout:
    width: float
    height: float
    pages: tuple[PageLayout, ...]


# ---------------------------------------------------------------------------
# Zone allocation
# ---------------------------------------------------------------------------


def shrink_widths(requested: list[float], available: float, policy: OverflowPolicy) -> list[float]:
    """Fit *requested* zone widths into *available* according to *policy*."""
    total = sum(requested)
    if total <= available:
        return list(requested)
    available = max(available, 0.0)

    if policy == OverflowPolicy.PROPORTIONAL:
        factor = available / total
        return [width * factor for width in requested]

    allotted = [0.0] * len(requested)
    remaining = available
    pending = sum(1 for width in requested if width > 0)
    for index in sorted(range(len(requested)), key=lambda i: (requested[i], i)):
        if requested[index] <= 0:
            continue
        share = remaining / pending
        allotted[index] = min(requested[index], share)
        remaining -= allotted[index]
        pending -= 1
    return allotted


def _span(widths: list[float], gap: float) -> float:
    used = [w for w in widths if w > 0]
    if not used:
        return 0.0
    return sum(used) + gap * (len(used) - 1)


def place_zones(
    zones: tuple[AlignmentZone, ...],
    requested: list[float],
    config: LayoutConfig,
) -> list[tuple[float, float]]:
    """Return ``(x, allotted_width)`` for every zone, in zone order."""
    gap = config.zone_gap
    used = sum(1 for width in requested if width > 0)
    available = config.content_width - gap * max(used - 1, 0)
    allotted = shrink_widths(requested, available, config.overflow_policy)

    def indices(alignment: Alignment) -> list[int]:
        return [i for i, zone in enumerate(zones) if zone.alignment == alignment]

    left, center, right = indices(Alignment.LEFT), indices(Alignment.CENTER), indices(Alignment.RIGHT)
    positions: dict[int, float] = {}

    left_edge = config.margin_horizontal
    right_edge = config.page_width - config.margin_horizontal

    cursor = left_edge
    for i in left:
        positions[i] = cursor
        if allotted[i] > 0:
            cursor += allotted[i] + gap
    left_end = cursor

    right_span = _span([allotted[i] for i in right], gap)
    right_start = right_edge - right_span
    cursor = right_start
    for i in right:
        positions[i] = cursor
        if allotted[i] > 0:
            cursor += allotted[i] + gap
    right_limit = right_start - gap if right_span > 0 else right_edge

    center_span = _span([allotted[i] for i in center], gap)
    start = config.page_width / 2 - center_span / 2
    start = max(left_end, min(start, right_limit - center_span))
    cursor = start
    for i in center:
        positions[i] = cursor
        if allotted[i] > 0:
            cursor += allotted[i] + gap

    return [(positions[i], allotted[i]) for i in range(len(zones))]


# ---------------------------------------------------------------------------
# Chord labels
# ---------------------------------------------------------------------------


def beat_label(beat) -> tuple[str, bool, bool]:
    """Return ``(text, bold, italic)`` for a resolved beat."""
    if isinstance(beat, Chord):
        text = beat.label
        if Decoration.GHOST in beat.decorations:
            text = f"({text})"
        if Decoration.ACCENT in beat.decorations:
            text = f">{text}"
        if Decoration.PUSH in beat.decorations:
            text = f"^{text}"
        return text, True, Decoration.GHOST in beat.decorations
    if isinstance(beat, Rest):
        return "/", False, False
    if isinstance(beat, NoChord):
        return "N.C.", True, False
    if isinstance(beat, Fermata):
        return "fermata", False, True
    raise TypeError(f"unresolved beat {beat!r}")


# ---------------------------------------------------------------------------
# Page builder
# ---------------------------------------------------------------------------


class _Pages:
    def __init__(self, config: LayoutConfig):
        self.config = config
        self.pages: list[PageLayout] = []
        self.items: list[LayoutItem] = []
        self.y = 0.0
        self._new_page()

    def _new_page(self) -> None:
        if self.items:
            self.pages.append(PageLayout(number=len(self.pages) + 1, items=tuple(self.items)))
        self.items = [RectItem(0.0, 0.0, self.config.page_width, self.config.page_height, fill="white")]
        self.y = self.config.margin_vertical

    @property
    def at_top(self) -> bool:
        return len(self.items) == 1

    def reserve(self, height: float) -> float:
        """Return the top y of a block of *height*, breaking the page if needed."""
        if self.y + height > self.config.content_bottom and not self.at_top:
            self._new_page()
        top = self.y
        self.y += height
        return top

    def gap(self, height: float) -> None:
        if not self.at_top:
            self.y += height

    def add(self, item: LayoutItem) -> None:
        self.items.append(item)

    def finish(self) -> tuple[PageLayout, ...]:
        self.pages.append(PageLayout(number=len(self.pages) + 1, items=tuple(self.items)))
        return tuple(self.pages)


class LayoutEngine:
    """Lays out one chart. Use :func:`layout_chart`."""

    def __init__(self, metrics: TextMetrics, config: LayoutConfig):
        self.metrics = metrics
        self.config = config

    def layout(self, chart: Chart) -> ChartLayout:
        pages = _Pages(self.config)
        for line in _header_lines(chart):
            self._text_line(pages, line)
        pages.gap(self.config.section_gap)

        for section in chart.sections:
            if section.name:
                pages.gap(self.config.section_gap)
                heading = TextLine(
                    Weight.H3,
                    (AlignmentZone(Alignment.LEFT, (StyledRun(section.name, bold=True),), explicit=False),),
                )
                self._text_line(pages, heading)
            for line in section.lines:
                if isinstance(line, TextLine):
                    self._text_line(pages, line)
                else:
                    self._measure_row(pages, line)

        return ChartLayout(
            width=self.config.page_width,
            height=self.config.page_height,
            pages=pages.finish(),
        )

    def _text_line(self, pages: _Pages, line: TextLine) -> None:
        style = self.config.weight_styles[line.weight]
        top = pages.reserve(style.line_height)
        baseline = top + style.size

        run_widths = [
            [self.metrics.measure(run.text, line.weight, run.bold, run.italic).width for run in zone.runs]
            for zone in line.zones
        ]
        requested = [sum(widths) for widths in run_widths]
        placements = place_zones(line.zones, requested, self.config)

        for zone, widths, wanted, (x, allotted) in zip(line.zones, run_widths, requested, placements):
            scale = allotted / wanted if wanted > 0 else 1.0
            for run, width in zip(zone.runs, widths):
                if run.text:
                    pages.add(
                        TextItem(
                            x=x,
                            y=baseline,
                            text=run.text,
                            weight=line.weight,
                            bold=run.bold,
                            italic=run.italic,
                            alignment=zone.alignment,
                            width=width * scale,
                        )
                    )
                x += width * scale

    def _measure_row(self, pages: _Pages, row: MeasureRow) -> None:
        per_row = self.config.measures_per_row
        for start in range(0, len(row.measures), per_row):
            self._measure_line(pages, row.measures[start : start + per_row])

    def _measure_line(self, pages: _Pages, measures: tuple[Measure, ...]) -> None:
        config = self.config
        height = config.row_height
        top = pages.reserve(height)
        column_width = config.content_width / config.measures_per_row
        chord_style = config.weight_styles[config.chord_weight]
        note_style = config.weight_styles[Weight.H3]
        bar_top, bar_bottom = top + 4.0, top + height - 4.0
        baseline = top + height / 2 + chord_style.size / 2

        for column, measure in enumerate(measures):
            x0 = config.margin_horizontal + column * column_width
            pages.add(BarItem(x0, bar_top, x0, bar_bottom))

            if measure.annotation:
                width = self.metrics.measure(measure.annotation, Weight.H3, False, True).width
                pages.add(
                    TextItem(
                        x=x0 + config.beat_padding,
                        y=top + note_style.size,
                        text=measure.annotation,
                        weight=Weight.H3,
                        bold=False,
                        italic=True,
                        alignment=Alignment.LEFT,
                        width=min(width, column_width - 2 * config.beat_padding),
                    )
                )

            if not measure.beats:
                continue
            slot = column_width / len(measure.beats)
            for index, beat in enumerate(measure.beats):
                text, bold, italic = beat_label(beat)
                width = self.metrics.measure(text, config.chord_weight, bold, italic).width
                pages.add(
                    TextItem(
                        x=x0 + index * slot + config.beat_padding,
                        y=baseline,
                        text=text,
                        weight=config.chord_weight,
                        bold=bold,
                        italic=italic,
                        alignment=Alignment.LEFT,
                        width=min(width, max(slot - config.beat_padding, 0.0)),
                    )
                )

        x_end = config.margin_horizontal + len(measures) * column_width
        pages.add(BarItem(x_end, bar_top, x_end, bar_bottom))


def _header_lines(chart: Chart) -> list[TextLine]:
    lines = [
        TextLine(Weight.H1, (AlignmentZone(Alignment.CENTER, (StyledRun(chart.title, bold=True),)),)),
    ]
    if chart.composer:
        lines.append(
            TextLine(Weight.H3, (AlignmentZone(Alignment.CENTER, (StyledRun(chart.composer, italic=True),)),))
        )
    numerator, denominator = chart.time_signature
    details = f"Time: {numerator}/{denominator}"
    if chart.key:
        details = f"Key: {chart.key} | {details}"
    lines.append(TextLine(Weight.H3, (AlignmentZone(Alignment.RIGHT, (StyledRun(details),)),)))
    return lines


def layout_chart(chart: Chart, metrics: TextMetrics, config: LayoutConfig | None = None) -> ChartLayout:
    """Compute the page geometry for *chart*."""
    return LayoutEngine(metrics, config or LayoutConfig()).layout(chart)
