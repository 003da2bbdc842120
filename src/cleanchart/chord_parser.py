"""Structural parse of chord-line tokens into Measure / RepeatGroup nodes.

Chord line layout rules
-----------------------

+------------------------+----------------------------------------------+
| Source                 | Meaning                                      |
+========================+==============================================+
| ``Am G``               | two measures (whitespace separates measures) |
+------------------------+----------------------------------------------+
| ``F_G``                | one measure, two beats                       |
+------------------------+----------------------------------------------+
| ``C,,`` / ``C_,``      | ``,`` is a rest beat and needs no separator  |
+------------------------+----------------------------------------------+
| ``_`` between spaces   | visual spacer, no rhythmic effect            |
+------------------------+----------------------------------------------+
| ``%``                  | repeat the previous measure                  |
+------------------------+----------------------------------------------+
| ``*``                  | repeat the previous chord (one beat)         |
+------------------------+----------------------------------------------+
| ``Am fermata``         | one measure: Am, then a held fermata beat    |
+------------------------+----------------------------------------------+
| ``(A B) 3x``           | repeat group, count defaults to 2            |
+------------------------+----------------------------------------------+
| ``(A 1. B 2. C)``      | numbered endings inside a group              |
+------------------------+----------------------------------------------+
| ``^C >C ?C``           | push / accent / ghost on the next chord      |
+------------------------+----------------------------------------------+
| ``"Intro"``            | annotation on the next measure               |
+------------------------+----------------------------------------------+

Nothing is expanded here; see :mod:`cleanchart.resolver`.
"""

from dataclasses import replace

from .exceptions import ParseError
from .lexer import Token, TokenKind
from .models import (
    Chord,
    Decoration,
    Diagnostic,
    Fermata,
    Measure,
    NoChord,
    Node,
    RepeatChord,
    RepeatGroup,
    Rest,
)

MAX_GROUP_DEPTH = 32

# Quality tail as written -> normalised quality name.
KNOWN_QUALITIES = {
    "": "major",
    "M": "major",
    "maj": "major",
    "m": "minor",
    "min": "minor",
    "-": "minor",
    "5": "power",
    "6": "major6",
    "m6": "minor6",
    "69": "major69",
    "7": "dominant7",
    "9": "dominant9",
    "11": "dominant11",
    "13": "dominant13",
    "maj7": "major7",
    "M7": "major7",
    "Δ": "major7",
    "Δ7": "major7",
    "maj9": "major9",
    "m7": "minor7",
    "min7": "minor7",
    "-7": "minor7",
    "m9": "minor9",
    "m11": "minor11",
    "mmaj7": "minor-major7",
    "mM7": "minor-major7",
    "dim": "diminished",
    "o": "diminished",
    "dim7": "diminished7",
    "o7": "diminished7",
    "m7b5": "half-diminished",
    "ø": "half-diminished",
    "ø7": "half-diminished",
    "aug": "augmented",
    "+": "augmented",
    "aug7": "augmented7",
    "+7": "augmented7",
    "sus": "suspended4",
    "sus4": "suspended4",
    "sus2": "suspended2",
    "7sus4": "dominant7sus4",
    "7sus": "dominant7sus4",
    "add9": "add9",
    "madd9": "minor-add9",
    "7b9": "dominant7b9",
    "7#9": "dominant7#9",
    "7b5": "dominant7b5",
    "7#5": "dominant7#5",
    "7#11": "dominant7#11",
}

_BEAT_KINDS = {
    TokenKind.CHORD_ATOM,
    TokenKind.REST,
    TokenKind.REPEAT_CHORD,
    TokenKind.NO_CHORD,
    TokenKind.FERMATA,
}

_DECORATIONS = {
    TokenKind.PUSH: Decoration.PUSH,
    TokenKind.ACCENT: Decoration.ACCENT,
    TokenKind.GHOST: Decoration.GHOST,
}


def parse_chord(token: Token, decorations: frozenset[Decoration] = frozenset()) -> Chord:
    """Split a ``CHORD_ATOM`` token into root, quality and bass."""
    parts = token.value
    tail = parts["tail"]
    quality = KNOWN_QUALITIES.get(tail)
    return Chord(
        root=parts["root"],
        quality=quality if quality is not None else tail,
        symbol=tail,
        bass=parts["bass"],
        decorations=decorations,
        recognized=quality is not None,
    )


class _Frame:
    """An open ``(`` ... ``)`` group, or the line itself at depth 0."""

    def __init__(self, column: int):
        self.column = column
        self.nodes: list[Node] = []
        self.endings: list[tuple[int, list[Node]]] = []

    @property
    def target(self) -> list[Node]:
        return self.endings[-1][1] if self.endings else self.nodes

    def to_group(self) -> RepeatGroup:
        return RepeatGroup(
            nodes=tuple(self.nodes),
            endings=tuple((number, tuple(nodes)) for number, nodes in self.endings),
            column=self.column,
        )


class ChordLineParser:
    """Single-use parser for the tokens of one chord line."""

    def __init__(self, tokens: list[Token], line_no: int):
        self.tokens = tokens
        self.line_no = line_no
        self.diagnostics: list[Diagnostic] = []
        self.frames = [_Frame(0)]
        self.beats: list | None = None  # beats of the open measure
        self.measure_column = 0
        self.measure_annotation: str | None = None
        self.pending_annotation: str | None = None
        self.pending_sep: Token | None = None
        self.decorations: set[Decoration] = set()
        self.last_group: tuple[list[Node], int] | None = None

    def _error(self, message: str, column: int) -> ParseError:
        return ParseError(message, self.line_no, column)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def parse(self) -> tuple[Node, ...]:
        prev: Token | None = None
        for index, token in enumerate(self.tokens):
            nxt = self.tokens[index + 1] if index + 1 < len(self.tokens) else None
            glued = prev is not None and token.column == prev.end

            if self.decorations and not (
                glued and (token.kind == TokenKind.CHORD_ATOM or token.kind in _DECORATIONS)
            ):
                raise self._error("decoration must be followed by a chord", token.column)

            kind = token.kind
            if kind == TokenKind.GROUP_OPEN:
                self._close_measure()
                if len(self.frames) > MAX_GROUP_DEPTH:
                    raise self._error("repeat groups nested too deeply", token.column)
                self.frames.append(_Frame(token.column))

            elif kind == TokenKind.GROUP_CLOSE:
                self._close_group(token)

            elif kind == TokenKind.REPEAT_COUNT:
                self._apply_count(token, prev)

            elif kind == TokenKind.ENDING:
                self._start_ending(token)

            elif kind == TokenKind.ANNOTATION:
                self._close_measure()
                if self.pending_annotation:
                    self.pending_annotation += f" {token.value}"
                else:
                    self.pending_annotation = token.value

            elif kind == TokenKind.REPEAT_BAR:
                if glued and self.beats is not None:
                    raise self._error("'%' must stand alone", token.column)
                self._close_measure()
                self._append_measure(
                    Measure(repeats_previous_bar=True, annotation=self._take_annotation(), column=token.column)
                )

            elif kind == TokenKind.BEAT_SEP:
                self._beat_separator(token, prev, nxt, glued)

            elif kind in _DECORATIONS:
                if not self.decorations:
                    self._start_beat(token, prev, glued)
                self.decorations.add(_DECORATIONS[kind])

            elif kind == TokenKind.FERMATA and not glued and self.beats is not None and self.pending_sep is None:
                # "Am fermata": the hold closes the open measure as its last beat.
                self.beats.append(Fermata())

            elif kind in _BEAT_KINDS:
                if not self.decorations:
                    self._start_beat(token, prev, glued)
                self.beats.append(self._beat(token))
                self.decorations = set()

            else:
                raise self._error(f"unknown beat separator '{token.text}'", token.column)

            prev = token

        if self.decorations:
            raise self._error("decoration must be followed by a chord", prev.end)
        if self.pending_sep is not None:
            raise self._error("dangling beat separator", self.pending_sep.column)
        self._close_measure()
        if len(self.frames) > 1:
            raise self._error("unclosed repeat group", self.frames[-1].column)
        if self.pending_annotation is not None:
            self._annotate_last(self.pending_annotation, prev)

        return tuple(self.frames[0].nodes)

    # ------------------------------------------------------------------
    # Measures and beats
    # ------------------------------------------------------------------

    def _start_beat(self, token: Token, prev: Token | None, glued: bool) -> None:
        if glued and prev.kind == TokenKind.REPEAT_BAR:
            raise self._error("'%' must stand alone", prev.column)
        joined = False
        if self.beats is not None and glued:
            if self.pending_sep is not None or prev.kind == TokenKind.REST or token.kind == TokenKind.REST:
                joined = True
            else:
                raise self._error("missing beat separator", token.column)
        elif self.pending_sep is not None:
            raise self._error("dangling beat separator", self.pending_sep.column)
        self.pending_sep = None
        if not joined:
            self._close_measure()
            self.beats = []
            self.measure_column = token.column
            self.measure_annotation = self._take_annotation()

    def _beat(self, token: Token):
        if token.kind == TokenKind.CHORD_ATOM:
            chord = parse_chord(token, frozenset(self.decorations))
            if not chord.recognized:
                self.diagnostics.append(
                    Diagnostic(
                        self.line_no,
                        token.column,
                        f"unrecognised chord quality '{chord.symbol}' in '{token.text}', rendered as written",
                    )
                )
            return chord
        if token.kind == TokenKind.REST:
            return Rest()
        if token.kind == TokenKind.REPEAT_CHORD:
            return RepeatChord(column=token.column)
        if token.kind == TokenKind.NO_CHORD:
            return NoChord()
        return Fermata()

    def _beat_separator(self, token: Token, prev: Token | None, nxt: Token | None, glued: bool) -> None:
        if self.pending_sep is not None:
            raise self._error("empty beat between separators", token.column)
        if glued and self.beats is not None and prev.kind in _BEAT_KINDS:
            self.pending_sep = token
            return
        if nxt is not None and nxt.column == token.end:
            raise self._error("dangling beat separator", token.column)
        # Free-standing "_": a spacer, ignored.

    def _take_annotation(self) -> str | None:
        annotation, self.pending_annotation = self.pending_annotation, None
        return annotation

    def _close_measure(self) -> None:
        if self.beats is None:
            return
        if self.pending_sep is not None:
            raise self._error("dangling beat separator", self.pending_sep.column)
        measure = Measure(beats=tuple(self.beats), annotation=self.measure_annotation, column=self.measure_column)
        self.beats = None
        self.measure_annotation = None
        self._append_measure(measure)

    def _append_measure(self, measure: Measure) -> None:
        self.frames[-1].target.append(measure)

    def _annotate_last(self, annotation: str, prev: Token | None) -> None:
        """Attach a trailing annotation to the last measure of the line."""
        nodes = self.frames[0].nodes
        if not nodes:
            raise self._error("annotation without a measure", prev.column if prev else 0)
        nodes[-1] = _annotate_node(nodes[-1], annotation)

    # ------------------------------------------------------------------
    # Groups and endings
    # ------------------------------------------------------------------

    def _close_group(self, token: Token) -> None:
        self._close_measure()
        if len(self.frames) == 1:
            raise self._error("unbalanced ')'", token.column)
        frame = self.frames.pop()
        if not frame.nodes and not frame.endings:
            raise self._error("empty repeat group", frame.column)
        target = self.frames[-1].target
        target.append(frame.to_group())
        self.last_group = (target, len(target) - 1)

    def _apply_count(self, token: Token, prev: Token | None) -> None:
        if prev is None or prev.kind != TokenKind.GROUP_CLOSE or self.last_group is None:
            raise self._error(f"repeat count '{token.text}' without a repeat group", token.column)
        if token.value < 1:
            raise self._error("repeat count must be positive", token.column)
        target, index = self.last_group
        target[index] = replace(target[index], count=token.value)

    def _start_ending(self, token: Token) -> None:
        self._close_measure()
        if len(self.frames) == 1:
            raise self._error(f"ending '{token.text}' outside a repeat group", token.column)
        frame = self.frames[-1]
        if token.value < 1:
            raise self._error("ending number must be positive", token.column)
        if any(number == token.value for number, _ in frame.endings):
            raise self._error(f"duplicate ending {token.value}", token.column)
        frame.endings.append((token.value, []))


def _annotate_node(node: Node, annotation: str) -> Node:
    if isinstance(node, Measure):
        text = f"{node.annotation} {annotation}" if node.annotation else annotation
        return replace(node, annotation=text)
    if node.endings and node.endings[-1][1]:
        number, nodes = node.endings[-1]
        last = _annotate_node(nodes[-1], annotation)
        return replace(node, endings=node.endings[:-1] + ((number, nodes[:-1] + (last,)),))
    if not node.nodes:
        return node
    return replace(node, nodes=node.nodes[:-1] + (_annotate_node(node.nodes[-1], annotation),))


def parse_chord_line(tokens: list[Token], line_no: int) -> tuple[tuple[Node, ...], list[Diagnostic]]:
    """Build the Measure / RepeatGroup tree for one chord line.

    Returns:
        The top-level nodes and any warning-level diagnostics
        (unrecognised chord qualities).

    Raises:
        ParseError: on unbalanced groups, misplaced repeat counts or endings,
            dangling separators or decorations, or unknown tokens.
    """
    parser = ChordLineParser(tokens, line_no)
    nodes = parser.parse()
    return nodes, parser.diagnostics
