import logging

import pytest

from cleanchart.assembler import (
    extract_metadata,
    parse_chart,
    parse_time_signature,
    resolve_chord_line,
)
from cleanchart.exceptions import LexError, ParseError, ResolutionError, ValidationError
from cleanchart.models import Chord, Fermata, MeasureRow, TextLine, Weight

BLUE_BOSSA = """\
Title: Blue Bossa
Composer: Kenny Dorham
Key: Cm
Time: 4/4

=== <<>>Blue Bossa

= A
Cm7 % Fm7 %
Dm7b5 G7 Cm7 %

# bridge modulates
= B
Ebm7 Ab7 Dbmaj7 %
"""


def _chart(body: str, title: str = "Test"):
    return parse_chart(f"Title: {title}\n\n{body}")


# ---------------------------------------------------------------------------
# resolve_chord_line
# ---------------------------------------------------------------------------


def test_am_repeat_bar_end_to_end():
    row = resolve_chord_line("Am %")
    assert isinstance(row, MeasureRow)
    assert len(row.measures) == 2
    for measure in row.measures:
        (chord,) = measure.beats
        assert isinstance(chord, Chord)
        assert chord.root == "A"
        assert chord.quality == "minor"


def test_group_then_fermata_resolves_to_21_measures():
    row = resolve_chord_line("(Am G F F _ G) 4x Am fermata")
    assert len(row.measures) == 21
    held = row.measures[-1]
    assert held.beats == (Chord(root="A", quality="minor", symbol="m"), Fermata())


# ---------------------------------------------------------------------------
# Metadata
# ---------------------------------------------------------------------------


def test_metadata_fields():
    chart = parse_chart(BLUE_BOSSA)
    assert chart.title == "Blue Bossa"
    assert chart.composer == "Kenny Dorham"
    assert chart.key == "Cm"
    assert chart.time_signature == (4, 4)


def test_time_defaults_to_four_four():
    chart = _chart("A B")
    assert chart.time_signature == (4, 4)
    assert chart.composer is None
    assert chart.key is None


def test_metadata_keys_are_case_insensitive():
    chart = parse_chart("title: Lower\nTIME: 3/4\nA")
    assert chart.title == "Lower"
    assert chart.time_signature == (3, 4)


def test_missing_title():
    with pytest.raises(ValidationError, match="missing required 'Title'"):
        parse_chart("Composer: Nobody\n\nA B C")


def test_empty_title():
    with pytest.raises(ValidationError):
        parse_chart("Title:\nA B")


def test_invalid_time_signature():
    with pytest.raises(ValidationError) as exc:
        parse_chart("Title: X\nTime: four\nA")
    assert exc.value.line == 2


def test_parse_time_signature():
    assert parse_time_signature("6/8", 1) == (6, 8)
    assert parse_time_signature(" 7 / 4 ", 1) == (7, 4)
    with pytest.raises(ValidationError):
        parse_time_signature("0/4", 1)


def test_duplicate_metadata_last_wins():
    fields, body_start, diagnostics = extract_metadata(["Title: One", "Title: Two", "A"])
    assert fields["title"] == ("Two", 2)
    assert body_start == 2
    assert len(diagnostics) == 1


def test_metadata_block_skips_comments_and_blanks():
    fields, body_start, _ = extract_metadata(["# header", "", "Title: X", "", "= body"])
    assert fields["title"] == ("X", 3)
    assert body_start == 4


# ---------------------------------------------------------------------------
# Sections
# ---------------------------------------------------------------------------


def test_sections_are_split_at_h3_headers():
    chart = parse_chart(BLUE_BOSSA)
    assert [section.name for section in chart.sections] == [None, "A", "B"]
    preface, a, b = chart.sections
    assert len(preface.lines) == 1
    assert isinstance(preface.lines[0], TextLine)
    assert preface.lines[0].weight == Weight.H1
    assert all(isinstance(line, MeasureRow) for line in a.lines)
    assert len(a.lines) == 2
    assert len(b.lines[0].measures) == 4


def test_h3_line_not_followed_by_chords_is_plain_text():
    chart = _chart("= just a note\n== Heading\nA B")
    assert chart.sections[0].name is None
    assert len(chart.sections[0].lines) == 3


def test_h3_with_alignment_marker_is_not_a_header():
    chart = _chart("= >>Right\nA B")
    assert [section.name for section in chart.sections] == [None]


def test_h3_with_explicit_left_marker_is_not_a_header():
    chart = _chart("= <<Verse\nA B")
    assert [section.name for section in chart.sections] == [None]
    assert chart.sections[0].lines[0].zones[0].explicit is True


def test_empty_preface_is_dropped():
    chart = _chart("= Verse\nA B")
    assert [section.name for section in chart.sections] == ["Verse"]


def test_repeats_resolve_across_sections():
    chart = _chart("= A\nC G\n= B\n%")
    assert chart.sections[1].lines[0].measures[0].beats[0].label == "G"


def test_measure_count():
    assert parse_chart(BLUE_BOSSA).measure_count == 12


# ---------------------------------------------------------------------------
# Errors and diagnostics
# ---------------------------------------------------------------------------


def test_errors_carry_line_numbers():
    with pytest.raises(ParseError) as exc:
        _chart("A B\n(C D")
    assert exc.value.line == 4


def test_lex_error_propagates():
    with pytest.raises(LexError):
        _chart("==== too heavy")


def test_ceiling_is_configurable():
    with pytest.raises(ResolutionError):
        parse_chart("Title: X\n(A B) 6x", max_measures=10)


def test_unrecognised_quality_is_a_logged_diagnostic(caplog):
    with caplog.at_level(logging.WARNING, logger="cleanchart.assembler"):
        chart = _chart("C7alt G")
    assert len(chart.diagnostics) == 1
    assert "7alt" in caplog.text


def test_diagnostics_do_not_affect_equality():
    assert _chart("A B") == _chart("A B")
