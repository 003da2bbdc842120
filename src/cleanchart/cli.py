import logging
import sys
from pathlib import Path

import click

from .assembler import parse_chart
from .exceptions import ChartSyntaxError, UnsupportedFormatError
from .layout import LayoutConfig, OverflowPolicy
from .registry import get_backend, supported_formats

logger = logging.getLogger(__name__)

CHART_SUFFIX = ".cchart"

# Portrait page sizes in points.
PAGE_SIZES = {
    "a4": (595.0, 842.0),
    "letter": (612.0, 792.0),
}


def _default_output(source: Path, extension: str) -> Path:
    return source.with_suffix(extension)


def _echo_source_excerpt(source: str, exc: ChartSyntaxError) -> None:
    """Echo the offending source line, with a caret under the column if known."""
    lines = source.splitlines()
    if not 1 <= exc.line <= len(lines):
        return
    gutter = f"{exc.line:>4} | "
    click.echo(f"{gutter}{lines[exc.line - 1]}", err=True)
    if exc.column is not None:
        click.echo(" " * (len(gutter) - 2) + "| " + " " * exc.column + "^", err=True)


def _configure_logging(quiet: bool) -> None:
    logging.basicConfig(
        level=logging.ERROR if quiet else logging.WARNING,
        format="%(levelname)s: %(message)s",
    )


@click.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("-f", "--format", "fmt", type=click.Choice(supported_formats()), default="svg",
              show_default=True, help="Output format.")
@click.option("-o", "--output", "output_path", default=None, metavar="PATH",
              help="Output file path (default: FILE with the format's extension).")
@click.option("--stdout", is_flag=True, default=False,
              help="Print to stdout instead of writing a file (svg and html only).")
@click.option("--measures-per-row", type=click.IntRange(min=1), default=4, show_default=True,
              help="Measures laid out on each chord row.")
@click.option("--page-size", type=click.Choice(sorted(PAGE_SIZES)), default="a4", show_default=True,
              help="Page size.")
@click.option("--overflow", type=click.Choice([p.value for p in OverflowPolicy]),
              default=OverflowPolicy.PROPORTIONAL.value, show_default=True,
              help="How crowded text lines are shrunk to fit.")
@click.option("-q", "--quiet", is_flag=True, default=False, help="Suppress warnings.")
def main(
    file: Path,
    fmt: str,
    output_path: str | None,
    stdout: bool,
    measures_per_row: int,
    page_size: str,
    overflow: str,
    quiet: bool,
) -> None:
    """Render a .cchart chord chart to SVG, HTML or PDF.

    \b
    Example:
      cleanchart blue-bossa.cchart -f pdf
    """
    _configure_logging(quiet)

    if file.suffix != CHART_SUFFIX:
        click.echo(f"Error: expected a {CHART_SUFFIX} file, got {file.name}", err=True)
        sys.exit(1)

    if stdout and fmt == "pdf":
        click.echo("Error: --stdout is not supported for pdf output", err=True)
        sys.exit(1)

    # --- Parse ---
    try:
        source = file.read_text(encoding="utf-8")
        chart = parse_chart(source)
    except ChartSyntaxError as exc:
        click.echo(f"Error: {file.name}: {exc.kind}: {exc}", err=True)
        _echo_source_excerpt(source, exc)
        sys.exit(1)

    # --- Render ---
    try:
        backend = get_backend(fmt)
    except UnsupportedFormatError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)

    width, height = PAGE_SIZES[page_size]
    config = LayoutConfig(
        page_width=width,
        page_height=height,
        measures_per_row=measures_per_row,
        overflow_policy=OverflowPolicy(overflow),
    )
    output = backend.render(chart, config)
    logger.info("rendered %r: %d measure(s)", chart.title, chart.measure_count)

    # --- Output ---
    if stdout:
        if isinstance(output, list):
            if len(output) > 1:
                click.echo(
                    f"Error: chart spans {len(output)} pages; --stdout prints a single svg page, "
                    "use -f html or write to a file",
                    err=True,
                )
                sys.exit(1)
            output = output[0]
        click.echo(output, nl=False)
        return

    dest = Path(output_path) if output_path else _default_output(file, backend.extension)
    for path in backend.write(output, dest):
        click.echo(f"Written to {path}")
