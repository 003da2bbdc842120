"""PDF output via reportlab.

Layout coordinates have their origin at the top-left; reportlab's is at
the bottom-left, so every y is flipped against the page height. Runs the
layout shrank are drawn with a horizontal text scale instead of being
clipped.
"""

import io
from pathlib import Path

from reportlab.lib import colors
from reportlab.pdfgen import canvas as pdfcanvas

from ..canvas import Canvas
from ..layout import LayoutConfig, TextMetrics
from ..metrics import ReportlabMetrics, font_name
from ..models import Chart
from .base import OutputBackend

BAR_LINE_WIDTH = 1.5


class PdfCanvas(Canvas):
    """Canvas drawing onto an in-memory reportlab document."""

    def __init__(self, config: LayoutConfig | None = None, title: str = ""):
        self.config = config or LayoutConfig()
        self.title = title
        self._buffer = io.BytesIO()
        self._canvas: pdfcanvas.Canvas | None = None
        self._page_height = 0.0
        self._saved = False

    def _c(self) -> pdfcanvas.Canvas:
        if self._canvas is None:
            raise RuntimeError("begin_page() must be called before drawing")
        return self._canvas

    def begin_page(self, width, height):
        if self._canvas is None:
            self._canvas = pdfcanvas.Canvas(self._buffer, pagesize=(width, height))
        else:
            self._canvas.showPage()
            self._canvas.setPageSize((width, height))
        self._page_height = height

    def draw_text_run(self, x, y, text, weight, bold, italic, alignment, width):
        c = self._c()
        font = font_name(bold, italic)
        size = self.config.weight_styles[weight].size
        natural = c.stringWidth(text, font, size)

        text_object = c.beginText(x, self._page_height - y)
        text_object.setFont(font, size)
        if 0 < width < natural - 0.01:
            text_object.setHorizScale(100.0 * width / natural)
        text_object.textOut(text)
        c.drawText(text_object)

    def draw_bar_line(self, x1, y1, x2, y2):
        c = self._c()
        c.setLineWidth(BAR_LINE_WIDTH)
        c.line(x1, self._page_height - y1, x2, self._page_height - y2)

    def draw_rect(self, x, y, width, height, fill=None, stroke=None):
        c = self._c()
        c.saveState()
        if fill:
            c.setFillColor(colors.toColor(fill))
        if stroke:
            c.setStrokeColor(colors.toColor(stroke))
        c.rect(
            x,
            self._page_height - y - height,
            width,
            height,
            stroke=1 if stroke else 0,
            fill=1 if fill else 0,
        )
        c.restoreState()

    def getvalue(self) -> bytes:
        """Finish the document and return the PDF bytes."""
        if not self._saved:
            if self.title:
                self._c().setTitle(self.title)
            self._c().save()
            self._saved = True
        return self._buffer.getvalue()


class PdfBackend(OutputBackend):
    """One PDF document, one PDF page per layout page."""

    extension = ".pdf"

    @classmethod
    def can_handle(cls, fmt: str) -> bool:
        return fmt.lower() == "pdf"

    def metrics(self, config: LayoutConfig) -> TextMetrics:
        return ReportlabMetrics(config.weight_styles)

    def create_canvas(self, config: LayoutConfig) -> PdfCanvas:
        return PdfCanvas(config)

    def finish(self, canvas: PdfCanvas, chart: Chart) -> bytes:
        canvas.title = chart.title
        return canvas.getvalue()

    def write(self, output: bytes, dest: Path) -> list[Path]:
        dest.write_bytes(output)
        return [dest]
