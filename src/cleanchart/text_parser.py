"""Turn text-line tokens into a :class:`~cleanchart.models.TextLine`.

Zones open at alignment markers and run until the next marker::

    = <<Left <<>>Mid >>Right   ->  [LEFT "Left"] [CENTER "Mid"] [RIGHT "Right"]
    == Plain heading            ->  [LEFT "Plain heading"]  (implicit zone)

Emphasis is tracked with a stack of open delimiters so that ``*a **b** c*``
nests while ``*a **b* c**`` is rejected.
"""

from .exceptions import ParseError
from .lexer import Token, TokenKind
from .models import Alignment, AlignmentZone, StyledRun, TextLine, Weight

_ALIGNMENTS = {
    TokenKind.ALIGN_LEFT: Alignment.LEFT,
    TokenKind.ALIGN_CENTER: Alignment.CENTER,
    TokenKind.ALIGN_RIGHT: Alignment.RIGHT,
}

_BOLD = "bold"
_ITALIC = "italic"


class _ZoneBuilder:
    def __init__(self, alignment: Alignment, explicit: bool):
        self.alignment = alignment
        self.explicit = explicit
        self.pieces: list[StyledRun] = []

    def add(self, text: str, bold: bool, italic: bool) -> None:
        if self.pieces and (self.pieces[-1].bold, self.pieces[-1].italic) == (bold, italic):
            last = self.pieces.pop()
            text = last.text + text
        self.pieces.append(StyledRun(text, bold=bold, italic=italic))

    def has_content(self) -> bool:
        return any(piece.text.strip() for piece in self.pieces)

    def build(self) -> AlignmentZone:
        runs = list(self.pieces)
        # Trim whitespace at the zone edges only; inner spacing is content.
        while runs and not runs[0].text.strip():
            runs.pop(0)
        while runs and not runs[-1].text.strip():
            runs.pop()
        if runs:
            first = runs[0]
            runs[0] = StyledRun(first.text.lstrip(), first.bold, first.italic)
            last = runs[-1]
            runs[-1] = StyledRun(last.text.rstrip(), last.bold, last.italic)
        return AlignmentZone(self.alignment, tuple(runs), explicit=self.explicit)


def parse_text_line(tokens: list[Token], line_no: int) -> TextLine:
    """Build a TextLine from the output of ``tokenize_text_line``.

    Raises:
        ParseError: on mismatched or unterminated emphasis.
    """
    weight = Weight.from_marker_count(tokens[0].value)
    zones: list[AlignmentZone] = []
    current = _ZoneBuilder(Alignment.LEFT, explicit=False)
    stack: list[tuple[str, int]] = []  # (style, column of opening delimiter)

    def styled() -> tuple[bool, bool]:
        open_styles = {style for style, _ in stack}
        return _BOLD in open_styles, _ITALIC in open_styles

    body = tokens[1:]
    i = 0
    while i < len(body):
        token = body[i]

        if token.kind in _ALIGNMENTS:
            if stack:
                raise ParseError("unterminated emphasis", line_no, stack[-1][1])
            if current.explicit or current.has_content():
                zones.append(current.build())
            current = _ZoneBuilder(_ALIGNMENTS[token.kind], explicit=True)

        elif token.kind in (TokenKind.BOLD_DELIM, TokenKind.ITALIC_DELIM):
            nxt = body[i + 1] if i + 1 < len(body) else None
            if (
                token.kind == TokenKind.BOLD_DELIM
                and nxt is not None
                and nxt.kind == TokenKind.ITALIC_DELIM
                and nxt.column == token.end
            ):
                _toggle_both(stack, token, line_no)
                i += 1
            else:
                style = _BOLD if token.kind == TokenKind.BOLD_DELIM else _ITALIC
                _toggle(stack, style, token, line_no)

        elif token.kind == TokenKind.ESCAPE:
            current.add(token.value, *styled())

        elif token.kind == TokenKind.PLAIN_TEXT:
            current.add(token.text, *styled())

        else:
            raise ParseError(f"unexpected token '{token.text}' in text line", line_no, token.column)

        i += 1

    if stack:
        raise ParseError("unterminated emphasis", line_no, stack[-1][1])

    if current.explicit or current.has_content() or not zones:
        zones.append(current.build())

    return TextLine(weight=weight, zones=tuple(zones), line=line_no)


# ---------------------------------------------------------------------------
# Emphasis stack
# ---------------------------------------------------------------------------


def _toggle(stack: list[tuple[str, int]], style: str, token: Token, line_no: int) -> None:
    open_styles = [s for s, _ in stack]
    if style not in open_styles:
        stack.append((style, token.column))
        return
    if open_styles[-1] != style:
        raise ParseError("mismatched emphasis", line_no, token.column)
    stack.pop()


def _toggle_both(stack: list[tuple[str, int]], token: Token, line_no: int) -> None:
    """Handle a ``***`` run: close both styles or open both."""
    open_styles = [s for s, _ in stack]
    if len(open_styles) >= 2 and set(open_styles[-2:]) == {_BOLD, _ITALIC}:
        del stack[-2:]
        return
    if _BOLD in open_styles or _ITALIC in open_styles:
        raise ParseError("mismatched emphasis", line_no, token.column)
    stack.append((_BOLD, token.column))
    stack.append((_ITALIC, token.column))
