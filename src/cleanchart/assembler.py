"""Assemble a whole ``.cchart`` document into a resolved :class:`Chart`.

Document layout::

    Title: Blue Bossa          <- metadata block (leading Key: Value lines)
    Composer: Kenny Dorham
    Key: Cm
    Time: 4/4

    === <<>>Blue Bossa         <- preface (everything before the first header)

    = A                        <- H3, single Left zone, followed by chords:
    Cm7 % Fm7 %                   starts section "A"
    (Dm7b5 G7 Cm7 %) 2x

Lines whose first non-space character is ``#`` are comments. Warnings
(unrecognised chord qualities, endings without a repetition, repeated
metadata keys) are collected on ``Chart.diagnostics`` and logged.
"""

import logging
import re

from .chord_parser import parse_chord_line
from .exceptions import ValidationError
from .lexer import LineType, classify_line, tokenize_chord_line, tokenize_text_line
from .models import Alignment, Chart, Diagnostic, MeasureRow, Section, TextLine, Weight
from .resolver import MAX_EXPANDED_MEASURES, ResolutionContext, flatten
from .text_parser import parse_text_line

logger = logging.getLogger(__name__)

METADATA_RE = re.compile(r"^\s*(title|composer|key|time)\s*:\s*(.*?)\s*$", re.IGNORECASE)
TIME_SIGNATURE_RE = re.compile(r"^(\d+)\s*/\s*(\d+)$")
COMMENT_PREFIX = "#"


def _is_skippable(line: str) -> bool:
    stripped = line.strip()
    return not stripped or stripped.startswith(COMMENT_PREFIX)


# ---------------------------------------------------------------------------
# Metadata
# ---------------------------------------------------------------------------


def extract_metadata(lines: list[str]) -> tuple[dict[str, tuple[str, int]], int, list[Diagnostic]]:
    """Read the leading ``Key: Value`` block.

    Returns:
        ``(fields, body_start, diagnostics)``: *fields* maps the lower-cased
        key to ``(value, line_no)``; *body_start* is the index of the first
        line after the block.
    """
    fields: dict[str, tuple[str, int]] = {}
    diagnostics: list[Diagnostic] = []
    for index, line in enumerate(lines):
        if _is_skippable(line):
            continue
        m = METADATA_RE.match(line)
        if not m:
            return fields, index, diagnostics
        key = m.group(1).lower()
        if key in fields:
            diagnostics.append(
                Diagnostic(index + 1, None, f"'{m.group(1)}' given more than once, last value wins")
            )
        fields[key] = (m.group(2), index + 1)
    return fields, len(lines), diagnostics


def parse_time_signature(value: str, line_no: int) -> tuple[int, int]:
    m = TIME_SIGNATURE_RE.match(value.strip())
    if not m or int(m.group(1)) < 1 or int(m.group(2)) < 1:
        raise ValidationError(f"invalid time signature '{value}'", line_no)
    return int(m.group(1)), int(m.group(2))


# ---------------------------------------------------------------------------
# Sections
# ---------------------------------------------------------------------------


def _is_section_header(item: TextLine | MeasureRow, following: TextLine | MeasureRow | None) -> bool:
    if not isinstance(item, TextLine) or not isinstance(following, MeasureRow):
        return False
    if item.weight != Weight.H3 or len(item.zones) != 1:
        return False
    zone = item.zones[0]
    return zone.alignment == Alignment.LEFT and not zone.explicit and bool(zone.text.strip())


def group_sections(items: list[TextLine | MeasureRow]) -> tuple[Section, ...]:
    """Split the line stream into sections at H3 headers followed by chords.

    Lines before the first header form an unnamed preface section, which is
    dropped when empty.
    """
    sections: list[Section] = []
    name: str | None = None
    current: list[TextLine | MeasureRow] = []

    for index, item in enumerate(items):
        following = items[index + 1] if index + 1 < len(items) else None
        if _is_section_header(item, following):
            if current or name is not None:
                sections.append(Section(name=name, lines=tuple(current)))
            name = item.zones[0].text.strip()
            current = []
            continue
        current.append(item)

    if current or name is not None:
        sections.append(Section(name=name, lines=tuple(current)))
    return tuple(sections)


# ---------------------------------------------------------------------------
# Full pipeline
# ---------------------------------------------------------------------------


def resolve_chord_line(line: str, line_no: int = 1) -> MeasureRow:
    """Parse and resolve a single chord line on its own.

    ``%`` and ``*`` can only refer back within *line*. Diagnostics are
    logged and otherwise dropped.
    """
    nodes, found = parse_chord_line(tokenize_chord_line(line, line_no), line_no)
    measures, _, expanded = flatten(nodes, ResolutionContext(), line_no)
    for diagnostic in found + expanded:
        logger.warning("%s", diagnostic)
    return MeasureRow(measures=tuple(measures), line=line_no)


def parse_chart(text: str, max_measures: int = MAX_EXPANDED_MEASURES) -> Chart:
    """Parse, resolve and validate a chart document.

    Args:
        text:         Full document text.
        max_measures: Ceiling on the number of measures after repeat
                      expansion.

    Returns:
        The resolved :class:`~cleanchart.models.Chart`.

    Raises:
        LexError, ParseError, ResolutionError, ValidationError: on the first
            hard error; no partial chart is returned.
    """
    lines = text.splitlines()
    fields, body_start, diagnostics = extract_metadata(lines)

    title, title_line = fields.get("title", ("", 1))
    if not title:
        raise ValidationError("missing required 'Title' metadata", title_line)
    time_signature = (4, 4)
    if "time" in fields:
        time_signature = parse_time_signature(*fields["time"])

    items: list[TextLine | MeasureRow] = []
    context = ResolutionContext(ceiling=max_measures)
    for index in range(body_start, len(lines)):
        line = lines[index]
        line_no = index + 1
        if _is_skippable(line):
            continue
        line_type = classify_line(line)
        if line_type == LineType.TEXT:
            items.append(parse_text_line(tokenize_text_line(line, line_no), line_no))
        elif line_type == LineType.CHORD:
            nodes, found = parse_chord_line(tokenize_chord_line(line, line_no), line_no)
            measures, context, expanded = flatten(nodes, context, line_no)
            diagnostics.extend(found)
            diagnostics.extend(expanded)
            items.append(MeasureRow(measures=tuple(measures), line=line_no))

    for diagnostic in diagnostics:
        logger.warning("%s", diagnostic)

    composer = fields.get("composer", (None, 0))[0] or None
    key = fields.get("key", (None, 0))[0] or None
    return Chart(
        title=title,
        composer=composer,
        key=key,
        time_signature=time_signature,
        sections=group_sections(items),
        diagnostics=tuple(diagnostics),
    )
