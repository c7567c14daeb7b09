"""
PDF inspection helpers.

Rendering only needs to know whether a file is a readable PDF and how many
pages it has; full text extraction is left to the renderer's own tooling.
"""

from pathlib import Path
from typing import Optional

from PyPDF2 import PdfReader

PDF_MAGIC = b"%PDF-"


def page_count(pdf_path: Path) -> Optional[int]:
    """Get page count from PDF, or None if unreadable."""
    try:
        reader = PdfReader(str(pdf_path))
        return len(reader.pages)
    except Exception:
        return None


def is_readable_pdf(pdf_path: Path) -> bool:
    """True if the file starts with the PDF magic bytes and has at least one page."""
    pdf_path = Path(pdf_path)
    if not pdf_path.is_file():
        return False
    with open(pdf_path, "rb") as f:
        if f.read(len(PDF_MAGIC)) != PDF_MAGIC:
            return False
    pages = page_count(pdf_path)
    return pages is not None and pages > 0
