from __future__ import annotations

from io import BytesIO

import pytest
from pypdf import PdfReader
from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas

from poringmd.pdf import stamp_pdf_page_numbers


def _two_page_pdf() -> bytes:
    buffer = BytesIO()
    pdf = canvas.Canvas(buffer, pagesize=A4)
    for label in ("first page", "second page"):
        pdf.drawString(72, 720, label)
        pdf.showPage()
    pdf.save()
    return buffer.getvalue()


def test_every_page_gets_a_footer() -> None:
    stamped = PdfReader(BytesIO(stamp_pdf_page_numbers(_two_page_pdf())))

    assert len(stamped.pages) == 2
    assert "1 of 2" in stamped.pages[0].extract_text()
    assert "2 of 2" in stamped.pages[1].extract_text()
    assert "second page" in stamped.pages[1].extract_text()


def test_empty_payload_is_rejected() -> None:
    with pytest.raises(ValueError):
        stamp_pdf_page_numbers(b"")
