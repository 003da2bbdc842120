"""Text-metrics implementations for the layout engine.

``ApproximateMetrics`` needs no fonts and is fully deterministic, which
makes it the metric of choice for tests and for SVG output where the
viewer does the final text shaping. ``ReportlabMetrics`` measures with the
standard Helvetica family that the PDF backend draws with.
"""

from reportlab.pdfbase import pdfmetrics

from .layout import DEFAULT_WEIGHT_STYLES, Extent, FontStyle
from .models import Weight

# Helvetica family, indexed by (bold, italic).
HELVETICA = {
    (False, False): "Helvetica",
    (True, False): "Helvetica-Bold",
    (False, True): "Helvetica-Oblique",
    (True, True): "Helvetica-BoldOblique",
}


def font_name(bold: bool, italic: bool) -> str:
    return HELVETICA[(bold, italic)]


class ApproximateMetrics:
    """Width = characters x font size x average advance."""

    AVERAGE_ADVANCE = 0.55  # em
    BOLD_FACTOR = 1.08

    def __init__(self, weight_styles: dict[Weight, FontStyle] | None = None):
        self.weight_styles = weight_styles or DEFAULT_WEIGHT_STYLES

    def measure(self, text: str, weight: Weight, bold: bool, italic: bool) -> Extent:
        style = self.weight_styles[weight]
        width = len(text) * style.size * self.AVERAGE_ADVANCE
        if bold:
            width *= self.BOLD_FACTOR
        return Extent(width=width, height=style.line_height)


class ReportlabMetrics:
    """Font-metric widths from reportlab's built-in Helvetica AFM data."""

    def __init__(self, weight_styles: dict[Weight, FontStyle] | None = None):
        self.weight_styles = weight_styles or DEFAULT_WEIGHT_STYLES

    def measure(self, text: str, weight: Weight, bold: bool, italic: bool) -> Extent:
        style = self.weight_styles[weight]
        width = pdfmetrics.stringWidth(text, font_name(bold, italic), style.size)
        return Extent(width=width, height=style.line_height)
