import pytest

from cleanchart.exceptions import LexError
from cleanchart.lexer import (
    LineType,
    TokenKind,
    classify_line,
    tokenize_chord_line,
    tokenize_text_line,
)


def _kinds(tokens):
    return [t.kind for t in tokens]


# ---------------------------------------------------------------------------
# classify_line
# ---------------------------------------------------------------------------


def test_classify_blank():
    assert classify_line("") == LineType.BLANK
    assert classify_line("   \t") == LineType.BLANK


def test_classify_text_line():
    assert classify_line("=== Title") == LineType.TEXT
    assert classify_line("   = indented") == LineType.TEXT


def test_classify_chord_line():
    assert classify_line("Am G F") == LineType.CHORD
    assert classify_line("(A B) 3x") == LineType.CHORD


# ---------------------------------------------------------------------------
# tokenize_text_line: weight
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("prefix, count", [("=", 1), ("==", 2), ("===", 3)])
def test_weight_counted_from_leading_run(prefix, count):
    tokens = tokenize_text_line(f"{prefix} Heading", 1)
    assert tokens[0].kind == TokenKind.WEIGHT
    assert tokens[0].value == count


def test_weight_out_of_range():
    with pytest.raises(LexError) as exc:
        tokenize_text_line("==== Too heavy", 7)
    assert "weight out of range" in str(exc.value)
    assert exc.value.line == 7
    assert exc.value.column == 0


# ---------------------------------------------------------------------------
# tokenize_text_line: alignment markers
# ---------------------------------------------------------------------------


def test_alignment_markers():
    tokens = tokenize_text_line("= <<Left <<>>Mid >>Right", 1)
    assert _kinds(tokens) == [
        TokenKind.WEIGHT,
        TokenKind.PLAIN_TEXT,
        TokenKind.ALIGN_LEFT,
        TokenKind.PLAIN_TEXT,
        TokenKind.ALIGN_CENTER,
        TokenKind.PLAIN_TEXT,
        TokenKind.ALIGN_RIGHT,
        TokenKind.PLAIN_TEXT,
    ]
    assert tokens[-1].text == "Right"


def test_single_angle_bracket_is_plain_text():
    tokens = tokenize_text_line("= a < b > c", 1)
    assert _kinds(tokens) == [TokenKind.WEIGHT, TokenKind.PLAIN_TEXT]
    assert tokens[1].text == " a < b > c"


def test_malformed_alignment_marker():
    with pytest.raises(LexError, match="malformed alignment marker"):
        tokenize_text_line("= <<<x", 1)


# ---------------------------------------------------------------------------
# tokenize_text_line: emphasis and escapes
# ---------------------------------------------------------------------------


def test_emphasis_delimiters():
    tokens = tokenize_text_line("= *a* **b**", 1)
    kinds = _kinds(tokens)
    assert kinds.count(TokenKind.ITALIC_DELIM) == 2
    assert kinds.count(TokenKind.BOLD_DELIM) == 2


def test_triple_star_is_bold_then_italic():
    tokens = tokenize_text_line("=***x***", 1)
    assert tokens[1].kind == TokenKind.BOLD_DELIM
    assert tokens[2].kind == TokenKind.ITALIC_DELIM
    assert tokens[2].column == tokens[1].end


def test_emphasis_run_too_long():
    with pytest.raises(LexError, match="emphasis run too long"):
        tokenize_text_line("= ****x****", 1)


def test_escape_suppresses_delimiter():
    tokens = tokenize_text_line(r"= \*not italic\*", 1)
    escapes = [t for t in tokens if t.kind == TokenKind.ESCAPE]
    assert [t.value for t in escapes] == ["*", "*"]
    assert TokenKind.ITALIC_DELIM not in _kinds(tokens)


def test_escape_suppresses_alignment_marker():
    tokens = tokenize_text_line(r"= \<\<literal", 1)
    assert TokenKind.ALIGN_LEFT not in _kinds(tokens)


def test_invalid_escape():
    with pytest.raises(LexError, match="invalid escape"):
        tokenize_text_line(r"= \q", 1)


def test_trailing_backslash_is_invalid():
    with pytest.raises(LexError, match="invalid escape"):
        tokenize_text_line("= end\\", 1)


# ---------------------------------------------------------------------------
# tokenize_chord_line
# ---------------------------------------------------------------------------


def test_chord_line_tokens():
    tokens = tokenize_chord_line("(Am G_F) 3x % N.C. fermata", 1)
    assert _kinds(tokens) == [
        TokenKind.GROUP_OPEN,
        TokenKind.CHORD_ATOM,
        TokenKind.CHORD_ATOM,
        TokenKind.BEAT_SEP,
        TokenKind.CHORD_ATOM,
        TokenKind.GROUP_CLOSE,
        TokenKind.REPEAT_COUNT,
        TokenKind.REPEAT_BAR,
        TokenKind.NO_CHORD,
        TokenKind.FERMATA,
    ]
    assert tokens[6].value == 3


def test_chord_atom_parts():
    (token,) = tokenize_chord_line("F#m7b5/C", 1)
    assert token.value == {"root": "F#", "tail": "m7b5", "bass": "C"}


def test_endings_and_decorations():
    tokens = tokenize_chord_line("(A 1. ^B 2. ?C_>D)", 1)
    kinds = _kinds(tokens)
    assert [t.value for t in tokens if t.kind == TokenKind.ENDING] == [1, 2]
    assert TokenKind.PUSH in kinds
    assert TokenKind.GHOST in kinds
    assert TokenKind.ACCENT in kinds


def test_rest_and_repeat_chord():
    tokens = tokenize_chord_line("C,, *", 1)
    assert _kinds(tokens) == [
        TokenKind.CHORD_ATOM,
        TokenKind.REST,
        TokenKind.REST,
        TokenKind.REPEAT_CHORD,
    ]


def test_annotation():
    tokens = tokenize_chord_line('"To Coda" A', 1)
    assert tokens[0].kind == TokenKind.ANNOTATION
    assert tokens[0].value == "To Coda"


def test_unterminated_annotation():
    with pytest.raises(LexError, match="unterminated annotation"):
        tokenize_chord_line('A "oops', 4)


def test_unknown_material_is_plain_text():
    tokens = tokenize_chord_line("A xyz", 1)
    assert tokens[1].kind == TokenKind.PLAIN_TEXT
    assert tokens[1].text == "xyz"


def test_token_columns_track_adjacency():
    tokens = tokenize_chord_line("F_G F G", 1)
    assert tokens[1].column == tokens[0].end
    assert tokens[3].column > tokens[2].end
