"""SVG and HTML output.

One standalone SVG document per page. Text runs that the layout had to
shrink carry ``textLength`` + ``lengthAdjust="spacingAndGlyphs"`` so the
viewer squeezes them into the allotted width instead of clipping.

The HTML format wraps the page SVGs in a single printable document: white
page cards on screen, one page per sheet when printed.
"""

from pathlib import Path

from ..canvas import Canvas
from ..layout import LayoutConfig, TextMetrics
from ..metrics import ApproximateMetrics
from ..models import Chart
from .base import OutputBackend

FONT_FAMILY = "Helvetica, Arial, sans-serif"


def _escape_html(text: str) -> str:
    """Escape the characters that are unsafe in XML/HTML text and attributes."""
    return (
        text.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
    )


def _num(value: float) -> str:
    """Compact, deterministic number formatting (at most 2 decimals)."""
    text = f"{value:.2f}".rstrip("0").rstrip(".")
    return "0" if text == "-0" else text


class SvgCanvas(Canvas):
    """Canvas that builds one SVG document per page."""

    def __init__(self, config: LayoutConfig | None = None, metrics: TextMetrics | None = None):
        self.config = config or LayoutConfig()
        self.metrics = metrics or ApproximateMetrics(self.config.weight_styles)
        self._pages: list[tuple[float, float, list[str]]] = []

    def _elements(self) -> list[str]:
        if not self._pages:
            raise RuntimeError("begin_page() must be called before drawing")
        return self._pages[-1][2]

    def begin_page(self, width, height):
        self._pages.append((width, height, []))

    def draw_text_run(self, x, y, text, weight, bold, italic, alignment, width):
        style = self.config.weight_styles[weight]
        attrs = [
            f'x="{_num(x)}"',
            f'y="{_num(y)}"',
            f'font-size="{_num(style.size)}"',
        ]
        if bold:
            attrs.append('font-weight="bold"')
        if italic:
            attrs.append('font-style="italic"')
        natural = self.metrics.measure(text, weight, bold, italic).width
        if 0 < width < natural - 0.01:
            attrs.append(f'textLength="{_num(width)}" lengthAdjust="spacingAndGlyphs"')
        self._elements().append(f"<text {' '.join(attrs)}>{_escape_html(text)}</text>")

    def draw_bar_line(self, x1, y1, x2, y2):
        self._elements().append(
            f'<line x1="{_num(x1)}" y1="{_num(y1)}" x2="{_num(x2)}" y2="{_num(y2)}" '
            f'stroke="black" stroke-width="1.5"/>'
        )

    def draw_rect(self, x, y, width, height, fill=None, stroke=None):
        attrs = f'x="{_num(x)}" y="{_num(y)}" width="{_num(width)}" height="{_num(height)}"'
        attrs += f' fill="{_escape_html(fill or "none")}"'
        if stroke:
            attrs += f' stroke="{_escape_html(stroke)}"'
        self._elements().append(f"<rect {attrs}/>")

    def pages(self) -> list[str]:
        """Return one complete SVG document per page."""
        documents = []
        for width, height, elements in self._pages:
            body = "\n".join(f"  {element}" for element in elements)
            documents.append(
                f'<svg xmlns="http://www.w3.org/2000/svg" '
                f'viewBox="0 0 {_num(width)} {_num(height)}" '
                f'width="{_num(width)}pt" height="{_num(height)}pt" '
                f'font-family="{FONT_FAMILY}">\n{body}\n</svg>\n'
            )
        return documents


def build_html(title: str, svgs: list[str]) -> str:
    """
    Wrap a list of SVG strings in a self-contained HTML document.

    Each SVG is placed in its own ``.page`` div. The stylesheet includes
    both screen styles (white cards on a grey background) and print styles
    (``page-break-after: always`` per page, no drop shadows).
    """
    title_safe = _escape_html(title)
    pages = "\n".join(f'  <div class="page">{svg}</div>' for svg in svgs)

    return f"""<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8" />
  <meta name="viewport" content="width=device-width, initial-scale=1.0" />
  <title>{title_safe}</title>
  <style>
    body {{
      background: #f0f0f0;
      margin: 0;
      padding: 2rem;
    }}
    .page {{
      background: #fff;
      box-shadow: 0 2px 8px rgba(0, 0, 0, 0.15);
      margin: 0 auto 3rem;
      max-width: 860px;
    }}
    .page svg {{
      display: block;
      width: 100%;
      height: auto;
    }}
    @media print {{
      body {{
        background: #fff;
        padding: 0;
      }}
      .page {{
        box-shadow: none;
        page-break-after: always;
        max-width: 100%;
        margin: 0;
      }}
      .page:last-child {{
        page-break-after: avoid;
      }}
    }}
  </style>
</head>
<body>
{pages}
</body>
</html>
"""


class SvgBackend(OutputBackend):
    """One SVG file per page: ``chart.svg``, ``chart-2.svg``, ..."""

    extension = ".svg"

    @classmethod
    def can_handle(cls, fmt: str) -> bool:
        return fmt.lower() == "svg"

    def metrics(self, config: LayoutConfig) -> TextMetrics:
        return ApproximateMetrics(config.weight_styles)

    def create_canvas(self, config: LayoutConfig) -> SvgCanvas:
        return SvgCanvas(config, self.metrics(config))

    def finish(self, canvas: SvgCanvas, chart: Chart) -> list[str]:
        return canvas.pages()

    def write(self, output: list[str], dest: Path) -> list[Path]:
        written = []
        for number, svg in enumerate(output, start=1):
            path = dest if number == 1 else dest.with_name(f"{dest.stem}-{number}{dest.suffix}")
            path.write_text(svg, encoding="utf-8")
            written.append(path)
        return written


class HtmlBackend(SvgBackend):
    """All pages in one printable HTML file."""

    extension = ".html"

    @classmethod
    def can_handle(cls, fmt: str) -> bool:
        return fmt.lower() == "html"

    def finish(self, canvas: SvgCanvas, chart: Chart) -> str:
        return build_html(chart.title, canvas.pages())

    def write(self, output: str, dest: Path) -> list[Path]:
        dest.write_text(output, encoding="utf-8")
        return [dest]
