"""PDF output helpers: print geometry and `N of M` footer stamping."""

from __future__ import annotations

from io import BytesIO

PRINT_PAGE_SIZE = "A4"
PRINT_MARGIN_MM = 20.0
FOOTER_FONT = "Helvetica"
FOOTER_FONT_SIZE = 9.0


def stamp_pdf_page_numbers(pdf_bytes: bytes) -> bytes:
    """Overlay centered `N of M` footers on every page of a PDF payload."""
    if not pdf_bytes:
        raise ValueError("Empty PDF payload")

    try:
        from pypdf import PdfReader, PdfWriter
    except Exception as exc:
        raise RuntimeError("Missing dependency 'pypdf' for PDF page numbering") from exc

    try:
        from reportlab.lib.units import mm
        from reportlab.pdfgen import canvas
    except Exception as exc:
        raise RuntimeError("Missing dependency 'reportlab' for PDF page numbering") from exc

    reader = PdfReader(BytesIO(pdf_bytes))
    page_total = len(reader.pages)
    if page_total <= 0:
        raise RuntimeError("Generated PDF has no pages")

    writer = PdfWriter()
    for page_number, page in enumerate(reader.pages, start=1):
        width = float(page.mediabox.width)
        height = float(page.mediabox.height)
        if width <= 0 or height <= 0:
            writer.add_page(page)
            continue

        # The footer sits in the middle of the bottom print margin.
        baseline_y = max(12.0, (PRINT_MARGIN_MM * mm - FOOTER_FONT_SIZE) / 2.0)

        overlay_buffer = BytesIO()
        footer_canvas = canvas.Canvas(overlay_buffer, pagesize=(width, height))
        footer_canvas.setFont(FOOTER_FONT, FOOTER_FONT_SIZE)
        footer_text = f"{page_number} of {page_total}"
        footer_width = footer_canvas.stringWidth(footer_text, FOOTER_FONT, FOOTER_FONT_SIZE)
        footer_canvas.drawString(max(0.0, (width - footer_width) / 2.0), baseline_y, footer_text)
        footer_canvas.save()

        overlay_buffer.seek(0)
        overlay_pdf = PdfReader(overlay_buffer)
        if overlay_pdf.pages:
            page.merge_page(overlay_pdf.pages[0])
        writer.add_page(page)

    output = BytesIO()
    writer.write(output)
    return output.getvalue()
