"""Line classification and tokenisation for ``.cchart`` documents.

Every non-blank line is either a text line or a chord line:

  1. classify_line()        : BLANK / TEXT / CHORD
  2. tokenize_text_line()   : weight, alignment markers, emphasis, escapes
  3. tokenize_chord_line()  : chords, beat/bar markers, groups, endings

Text line grammar::

    === <<Left **bold** <<>>Centre >>Right \\*literal\\*

Chord line grammar::

    "Intro" (Am G_^F ?C_, 1. E7 2. E7_*) 3x % N.C. fermata

Tokens carry their 0-based column so the parsers can tell glued tokens
(``F_G``) from whitespace-separated ones (``F G``).
"""

import re
from dataclasses import dataclass
from enum import Enum, auto

from .exceptions import LexError

# ---------------------------------------------------------------------------
# Regexes
# ---------------------------------------------------------------------------

# Root letter, optional accidental, verbatim quality tail, optional slash bass.
# The tail stops at anything that has a meaning of its own on a chord line.
CHORD_ATOM_RE = re.compile(
    r"(?P<root>[A-G][#b]?)"
    r"(?P<tail>[^\s()_,\"*/^?]*)"
    r"(?:/(?P<bass>[A-G][#b]?))?"
)

NO_CHORD_RE = re.compile(r"N\.C\.|NC(?![\w.])")
FERMATA_RE = re.compile(r"fermata(?![\w])", re.IGNORECASE)
REPEAT_COUNT_RE = re.compile(r"(\d+)x(?![\w])")
ENDING_RE = re.compile(r"(\d+)\.(?![\d.])")

# Single-character chord-line tokens.
_PUNCTUATION = {
    "(": "GROUP_OPEN",
    ")": "GROUP_CLOSE",
    "_": "BEAT_SEP",
    ",": "REST",
    "%": "REPEAT_BAR",
    "*": "REPEAT_CHORD",
    "^": "PUSH",
    ">": "ACCENT",
    "?": "GHOST",
}

_ESCAPABLE = {"*", "\\", "<", ">"}
_ALIGNMENT_RUNS = {"<<": "ALIGN_LEFT", ">>": "ALIGN_RIGHT", "<<>>": "ALIGN_CENTER"}
MAX_WEIGHT = 3


# ---------------------------------------------------------------------------
# LineType / Token
# ---------------------------------------------------------------------------


class LineType(Enum):
    BLANK = auto()  # empty or whitespace only
    TEXT = auto()  # first non-space character is "="
    CHORD = auto()  # everything else


class TokenKind(Enum):
    WEIGHT = auto()
    ALIGN_LEFT = auto()
    ALIGN_RIGHT = auto()
    ALIGN_CENTER = auto()
    BOLD_DELIM = auto()
    ITALIC_DELIM = auto()
    ESCAPE = auto()
    CHORD_ATOM = auto()
    BEAT_SEP = auto()
    REST = auto()
    REPEAT_CHORD = auto()
    REPEAT_BAR = auto()
    GROUP_OPEN = auto()
    GROUP_CLOSE = auto()
    REPEAT_COUNT = auto()
    ENDING = auto()
    PUSH = auto()
    ACCENT = auto()
    GHOST = auto()
    NO_CHORD = auto()
    FERMATA = auto()
    ANNOTATION = auto()
    PLAIN_TEXT = auto()


@dataclass(frozen=True)
class Token:
    """One lexical unit.

    ``text`` is the raw source slice; ``value`` carries the decoded payload
    (weight count, repeat count, ending number, escaped character or
    annotation text) where the kind has one.
    """

    kind: TokenKind
    text: str
    column: int
    value: object = None

    @property
    def end(self) -> int:
        return self.column + len(self.text)


# ---------------------------------------------------------------------------
# Line classification
# ---------------------------------------------------------------------------


def classify_line(line: str) -> LineType:
    """Classify a single raw line of a chart document."""
    stripped = line.strip()
    if not stripped:
        return LineType.BLANK
    if stripped.startswith("="):
        return LineType.TEXT
    return LineType.CHORD


# ---------------------------------------------------------------------------
# Text lines
# ---------------------------------------------------------------------------


def tokenize_text_line(line: str, line_no: int) -> list[Token]:
    """Tokenise a TEXT-classified line.

    Args:
        line:    The raw line, including the leading ``=`` run.
        line_no: 1-based line number, used for error reporting.

    Returns:
        Tokens in line order, starting with a ``WEIGHT`` token.

    Raises:
        LexError: on a weight run longer than three, an invalid escape, a
            malformed alignment marker or an emphasis run longer than three.
    """
    start = len(line) - len(line.lstrip())
    i = start
    while i < len(line) and line[i] == "=":
        i += 1
    count = i - start
    if count == 0 or count > MAX_WEIGHT:
        raise LexError(f"weight out of range ({count} '=' markers)", line_no, start)

    tokens = [Token(TokenKind.WEIGHT, line[start:i], start, count)]
    plain: list[str] = []
    plain_start = i

    def flush() -> None:
        if plain:
            tokens.append(Token(TokenKind.PLAIN_TEXT, "".join(plain), plain_start))
            plain.clear()

    while i < len(line):
        ch = line[i]

        if ch == "\\":
            nxt = line[i + 1] if i + 1 < len(line) else ""
            if nxt not in _ESCAPABLE:
                raise LexError("invalid escape", line_no, i)
            flush()
            tokens.append(Token(TokenKind.ESCAPE, line[i : i + 2], i, nxt))
            i += 2
            plain_start = i
            continue

        if ch in "<>":
            j = i
            while j < len(line) and line[j] in "<>":
                j += 1
            run = line[i:j]
            if len(run) == 1:
                if not plain:
                    plain_start = i
                plain.append(run)
            elif run in _ALIGNMENT_RUNS:
                flush()
                tokens.append(Token(TokenKind[_ALIGNMENT_RUNS[run]], run, i))
                plain_start = j
            else:
                raise LexError(f"malformed alignment marker '{run}'", line_no, i)
            i = j
            continue

        if ch == "*":
            j = i
            while j < len(line) and line[j] == "*":
                j += 1
            run_length = j - i
            if run_length > 3:
                raise LexError(f"emphasis run too long ({run_length} '*')", line_no, i)
            flush()
            if run_length == 1:
                tokens.append(Token(TokenKind.ITALIC_DELIM, "*", i))
            elif run_length == 2:
                tokens.append(Token(TokenKind.BOLD_DELIM, "**", i))
            else:
                tokens.append(Token(TokenKind.BOLD_DELIM, "**", i))
                tokens.append(Token(TokenKind.ITALIC_DELIM, "*", i + 2))
            i = j
            plain_start = i
            continue

        if not plain:
            plain_start = i
        plain.append(ch)
        i += 1

    flush()
    return tokens


# ---------------------------------------------------------------------------
# Chord lines
# ---------------------------------------------------------------------------


def tokenize_chord_line(line: str, line_no: int) -> list[Token]:
    """Tokenise a CHORD-classified line.

    Unknown material is not rejected here: it comes back as ``PLAIN_TEXT``
    so the chord parser can report it with its structural context.

    Raises:
        LexError: on an unterminated ``"annotation``.
    """
    tokens: list[Token] = []
    i = 0
    n = len(line)

    while i < n:
        ch = line[i]

        if ch.isspace():
            i += 1
            continue

        if ch == '"':
            close = line.find('"', i + 1)
            if close == -1:
                raise LexError("unterminated annotation", line_no, i)
            raw = line[i : close + 1]
            tokens.append(Token(TokenKind.ANNOTATION, raw, i, raw[1:-1].strip()))
            i = close + 1
            continue

        m = NO_CHORD_RE.match(line, i)
        if m:
            tokens.append(Token(TokenKind.NO_CHORD, m.group(), i))
            i = m.end()
            continue

        m = FERMATA_RE.match(line, i)
        if m:
            tokens.append(Token(TokenKind.FERMATA, m.group(), i))
            i = m.end()
            continue

        m = REPEAT_COUNT_RE.match(line, i)
        if m:
            tokens.append(Token(TokenKind.REPEAT_COUNT, m.group(), i, int(m.group(1))))
            i = m.end()
            continue

        m = ENDING_RE.match(line, i)
        if m:
            tokens.append(Token(TokenKind.ENDING, m.group(), i, int(m.group(1))))
            i = m.end()
            continue

        if ch in _PUNCTUATION:
            tokens.append(Token(TokenKind[_PUNCTUATION[ch]], ch, i))
            i += 1
            continue

        m = CHORD_ATOM_RE.match(line, i)
        if m:
            tokens.append(Token(TokenKind.CHORD_ATOM, m.group(), i, m.groupdict()))
            i = m.end()
            continue

        # Anything else: swallow up to the next whitespace or punctuation.
        j = i + 1
        while j < n and not line[j].isspace() and line[j] not in _PUNCTUATION and line[j] != '"':
            j += 1
        tokens.append(Token(TokenKind.PLAIN_TEXT, line[i:j], i))
        i = j

    return tokens
