"""
Tool: PDF OCR
Purpose: Recognize text in scanned PDFs that have no usable text layer

Pages are rasterized with pdf2image (poppler) at 2x the default DPI and read
with Tesseract in English.

Usage:
    from tools.pdf.ocr import needs_ocr, extract_text_with_ocr

    if needs_ocr("scan.pdf"):
        text = extract_text_with_ocr("scan.pdf")

Dependencies:
    - pdf2image (pip install pdf2image) + poppler
    - pytesseract (pip install pytesseract) + tesseract binary
"""

from __future__ import annotations

import logging
import re
from pathlib import Path

import pytesseract
from pdf2image import convert_from_bytes, convert_from_path

from tools.exceptions import NoPagesError
from tools.pdf.extract import extract_text_from_file, join_pages

logger = logging.getLogger(__name__)


OCR_LANGUAGE = "eng"
OCR_DPI = 144
MIN_TEXT_LENGTH = 100

_PAGE_MARKER = re.compile(r"--- Page \d+ ---")


def _recognize(images: list) -> str:
    if not images:
        raise NoPagesError()
    logger.debug(f"Running OCR on {len(images)} page(s)")
    return join_pages(pytesseract.image_to_string(image, lang=OCR_LANGUAGE) for image in images)


def extract_text_with_ocr(pdf_path: str | Path) -> str:
    return _recognize(convert_from_path(str(pdf_path), dpi=OCR_DPI))


def extract_text_from_bytes_with_ocr(data: bytes) -> str:
    return _recognize(convert_from_bytes(data, dpi=OCR_DPI))


def strip_page_markers(text: str) -> str:
    return _PAGE_MARKER.sub("", text).strip()


def needs_ocr(pdf_path: str | Path) -> bool:
    """True when the text layer holds fewer than MIN_TEXT_LENGTH characters."""
    return len(strip_page_markers(extract_text_from_file(pdf_path))) < MIN_TEXT_LENGTH
