import pytest
from reportlab.pdfbase import pdfmetrics

from cleanchart.metrics import ApproximateMetrics, ReportlabMetrics, font_name
from cleanchart.models import Weight


def test_font_name():
    assert font_name(False, False) == "Helvetica"
    assert font_name(True, True) == "Helvetica-BoldOblique"


def test_approximate_width():
    extent = ApproximateMetrics().measure("abcd", Weight.H3, False, False)
    assert extent.width == pytest.approx(4 * 11 * 0.55)
    assert extent.height == 16.0


def test_approximate_bold_is_wider():
    metrics = ApproximateMetrics()
    plain = metrics.measure("Am7", Weight.H2, False, False).width
    bold = metrics.measure("Am7", Weight.H2, True, False).width
    assert bold > plain


def test_reportlab_width_matches_font_metrics():
    extent = ReportlabMetrics().measure("Cmaj7", Weight.H1, True, False)
    assert extent.width == pytest.approx(pdfmetrics.stringWidth("Cmaj7", "Helvetica-Bold", 18.0))
    assert extent.height == 24.0
