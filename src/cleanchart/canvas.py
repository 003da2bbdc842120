"""The vector-canvas capability and the emitter that drives it.

The layout engine's output reaches a rendering backend only through
:class:`Canvas`. ``emit`` walks the pages of a :class:`ChartLayout` in
order and issues one draw call per layout item, so a backend never sees
the chart itself and the emitted sequence can be asserted on directly::

    canvas = RecordingCanvas()
    emit(layout_chart(chart, ApproximateMetrics()), canvas)
    assert canvas.ops[0] == DrawOp("begin_page", (595.0, 842.0))
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass

from .layout import BarItem, ChartLayout, RectItem, TextItem
from .models import Alignment, Weight


class Canvas(ABC):
    """Abstract drawing surface. Coordinates: points, origin top-left."""

    @abstractmethod
    def begin_page(self, width: float, height: float) -> None:
        """Start a new page; later draw calls land on it."""

    @abstractmethod
    def draw_text_run(
        self,
        x: float,
        y: float,
        text: str,
        weight: Weight,
        bold: bool,
        italic: bool,
        alignment: Alignment,
        width: float,
    ) -> None:
        """Draw *text* with its left edge at *x* and baseline at *y*.

        *width* is the horizontal room the layout allotted; backends squeeze
        the run to fit when it is narrower than the natural width.
        """

    @abstractmethod
    def draw_bar_line(self, x1: float, y1: float, x2: float, y2: float) -> None:
        """Draw a straight bar line."""

    @abstractmethod
    def draw_rect(
        self,
        x: float,
        y: float,
        width: float,
        height: float,
        fill: str | None = None,
        stroke: str | None = None,
    ) -> None:
        """Draw a rectangle, e.g. a page background."""


@dataclass(frozen=True)
class DrawOp:
    name: str
    args: tuple


class RecordingCanvas(Canvas):
    """Canvas that only records the calls made on it."""

    def __init__(self) -> None:
        self.ops: list[DrawOp] = []

    def begin_page(self, width, height):
        self.ops.append(DrawOp("begin_page", (width, height)))

    def draw_text_run(self, x, y, text, weight, bold, italic, alignment, width):
        self.ops.append(DrawOp("draw_text_run", (x, y, text, weight, bold, italic, alignment, width)))

    def draw_bar_line(self, x1, y1, x2, y2):
        self.ops.append(DrawOp("draw_bar_line", (x1, y1, x2, y2)))

    def draw_rect(self, x, y, width, height, fill=None, stroke=None):
        self.ops.append(DrawOp("draw_rect", (x, y, width, height, fill, stroke)))

    def texts(self) -> list[str]:
        """Text of every ``draw_text_run`` call, in order."""
        return [op.args[2] for op in self.ops if op.name == "draw_text_run"]


def emit(layout: ChartLayout, canvas: Canvas) -> None:
    """Issue the draw calls for every page of *layout* on *canvas*."""
    for page in layout.pages:
        canvas.begin_page(layout.width, layout.height)
        for item in page.items:
            if isinstance(item, TextItem):
                canvas.draw_text_run(
                    item.x,
                    item.y,
                    item.text,
                    item.weight,
                    item.bold,
                    item.italic,
                    item.alignment,
                    item.width,
                )
            elif isinstance(item, BarItem):
                canvas.draw_bar_line(item.x1, item.y1, item.x2, item.y2)
            elif isinstance(item, RectItem):
                canvas.draw_rect(item.x, item.y, item.width, item.height, item.fill, item.stroke)
            else:
                raise TypeError(f"unknown layout item {item!r}")
