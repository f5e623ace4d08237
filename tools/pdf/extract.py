"""
Tool: PDF Text Extraction
Purpose: Pull the text layer out of PDF files, page by page

Each page is rendered as "\n--- Page N ---\n<text>\n" so callers can split
or strip pages consistently with the OCR output in ocr.py.

Usage:
    from tools.pdf.extract import extract_text_from_file
    text = extract_text_from_file("document.pdf")

Dependencies:
    - PyPDF2 (pip install PyPDF2)
"""

from __future__ import annotations

import io
from collections.abc import Iterable
from pathlib import Path

from PyPDF2 import PdfReader


def format_page(number: int, text: str) -> str:
    return f"\n--- Page {number} ---\n{text}\n"


def join_pages(page_texts: Iterable[str]) -> str:
    return "".join(format_page(i, text) for i, text in enumerate(page_texts, start=1))


def _extract(reader: PdfReader) -> str:
    return join_pages(page.extract_text() or "" for page in reader.pages)


def extract_text_from_file(pdf_path: str | Path) -> str:
    return _extract(PdfReader(str(pdf_path)))


def extract_text_from_bytes(data: bytes) -> str:
    return _extract(PdfReader(io.BytesIO(data)))
