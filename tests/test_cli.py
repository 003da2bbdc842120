from unittest.mock import patch

from click.testing import CliRunner

from cleanchart.cli import main

CHART = """\
Title: Blue Bossa
Composer: Kenny Dorham
Key: Cm

= A
Cm7 % Fm7 %
(Dm7b5 G7 Cm7 %) 2x
"""

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _write_chart(tmp_path, text: str = CHART, name: str = "blue-bossa.cchart"):
    path = tmp_path / name
    path.write_text(text, encoding="utf-8")
    return path


# ---------------------------------------------------------------------------
# --help
# ---------------------------------------------------------------------------


def test_help_output():
    result = CliRunner().invoke(main, ["--help"])
    assert result.exit_code == 0
    assert "Render a .cchart chord chart" in result.output
    assert "--measures-per-row" in result.output


# ---------------------------------------------------------------------------
# File output
# ---------------------------------------------------------------------------


def test_default_output_is_svg_next_to_input(tmp_path):
    source = _write_chart(tmp_path)
    result = CliRunner().invoke(main, [str(source)])
    assert result.exit_code == 0
    out_file = tmp_path / "blue-bossa.svg"
    assert out_file.exists()
    assert "Blue Bossa" in out_file.read_text(encoding="utf-8")
    assert f"Written to {out_file}" in result.output


def test_output_file_written_with_flag(tmp_path):
    source = _write_chart(tmp_path)
    out_file = tmp_path / "out" / "chart.pdf"
    out_file.parent.mkdir()
    result = CliRunner().invoke(main, ["-f", "pdf", "-o", str(out_file), str(source)])
    assert result.exit_code == 0
    assert out_file.read_bytes().startswith(b"%PDF")


def test_html_output(tmp_path):
    source = _write_chart(tmp_path)
    result = CliRunner().invoke(main, ["--format", "html", str(source)])
    assert result.exit_code == 0
    assert (tmp_path / "blue-bossa.html").read_text(encoding="utf-8").startswith("<!DOCTYPE html>")


def test_multi_page_svg_lists_every_file(tmp_path):
    source = _write_chart(tmp_path, "Title: Long\n(C) 200x\n", name="long.cchart")
    result = CliRunner().invoke(main, [str(source)])
    assert result.exit_code == 0
    assert "long-2.svg" in result.output
    assert (tmp_path / "long-2.svg").exists()


def test_layout_options_reach_the_backend(tmp_path):
    source = _write_chart(tmp_path)
    with patch("cleanchart.cli.get_backend") as get_backend:
        get_backend.return_value.render.return_value = "<svg/>"
        result = CliRunner().invoke(
            main,
            ["--stdout", "--measures-per-row", "2", "--page-size", "letter", "--overflow", "equal-share", str(source)],
        )
    assert result.exit_code == 0
    chart, config = get_backend.return_value.render.call_args.args
    assert chart.title == "Blue Bossa"
    assert config.measures_per_row == 2
    assert (config.page_width, config.page_height) == (612.0, 792.0)
    assert config.overflow_policy.value == "equal-share"


# ---------------------------------------------------------------------------
# --stdout
# ---------------------------------------------------------------------------


def test_stdout_flag_prints_svg(tmp_path):
    source = _write_chart(tmp_path)
    result = CliRunner().invoke(main, ["--stdout", str(source)])
    assert result.exit_code == 0
    assert result.output.startswith("<svg")
    assert not (tmp_path / "blue-bossa.svg").exists()


def test_stdout_refused_for_multi_page_svg(tmp_path):
    source = _write_chart(tmp_path, "Title: Long\n(C) 200x\n", name="long.cchart")
    result = CliRunner().invoke(main, ["--stdout", str(source)])
    assert result.exit_code == 1
    assert "<svg" not in result.output
    assert "use -f html" in result.output


def test_stdout_multi_page_html_is_one_document(tmp_path):
    source = _write_chart(tmp_path, "Title: Long\n(C) 200x\n", name="long.cchart")
    result = CliRunner().invoke(main, ["--stdout", "-f", "html", str(source)])
    assert result.exit_code == 0
    assert result.output.count("<!DOCTYPE html>") == 1


def test_stdout_refused_for_pdf(tmp_path):
    source = _write_chart(tmp_path)
    result = CliRunner().invoke(main, ["--stdout", "-f", "pdf", str(source)])
    assert result.exit_code == 1
    assert "not supported for pdf" in result.output


# ---------------------------------------------------------------------------
# Error handling
# ---------------------------------------------------------------------------


def test_wrong_extension_exits_nonzero(tmp_path):
    source = _write_chart(tmp_path, name="chart.txt")
    result = CliRunner().invoke(main, [str(source)])
    assert result.exit_code == 1
    assert "expected a .cchart file" in result.output


def test_missing_file_is_a_usage_error(tmp_path):
    result = CliRunner().invoke(main, [str(tmp_path / "absent.cchart")])
    assert result.exit_code == 2


def test_syntax_error_reports_kind_and_line(tmp_path):
    source = _write_chart(tmp_path, "Title: Broken\n\n(A B\n")
    result = CliRunner().invoke(main, [str(source)])
    assert result.exit_code == 1
    assert "Error: blue-bossa.cchart: parse error: line 3" in result.output


def test_syntax_error_shows_source_line_and_caret(tmp_path):
    source = _write_chart(tmp_path, "Title: Broken\n\nN.C. * C\n")
    result = CliRunner().invoke(main, [str(source)])
    assert result.exit_code == 1
    assert "resolution error: line 3, column 5" in result.output
    lines = result.output.splitlines()
    assert lines[-2] == "   3 | N.C. * C"
    assert lines[-1] == "     |      ^"


def test_missing_title_reports_validation_error(tmp_path):
    source = _write_chart(tmp_path, "A B C\n")
    result = CliRunner().invoke(main, [str(source)])
    assert result.exit_code == 1
    assert "validation error" in result.output


def test_unknown_format_is_rejected(tmp_path):
    source = _write_chart(tmp_path)
    result = CliRunner().invoke(main, ["-f", "png", str(source)])
    assert result.exit_code == 2


def test_measures_per_row_must_be_positive(tmp_path):
    source = _write_chart(tmp_path)
    result = CliRunner().invoke(main, ["--measures-per-row", "0", str(source)])
    assert result.exit_code == 2
