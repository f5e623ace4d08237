"""PDF text extraction with an OCR fallback for scanned documents.

Components:
    extract.py: Text layer extraction (PyPDF2)
    ocr.py: Rasterize and recognize scanned pages (pdf2image + pytesseract)
"""

import argparse
import sys

from tools.exceptions import NoPagesError
from tools.pdf.extract import extract_text_from_bytes, extract_text_from_file
from tools.pdf.ocr import (
    extract_text_from_bytes_with_ocr,
    extract_text_with_ocr,
    needs_ocr,
)

__all__ = [
    "extract_text_from_file",
    "extract_text_from_bytes",
    "extract_text_with_ocr",
    "extract_text_from_bytes_with_ocr",
    "needs_ocr",
    "NoPagesError",
    "main",
]


def main(argv: list[str] | None = None) -> int:
    from tools.logging_config import setup_logging

    setup_logging()
    parser = argparse.ArgumentParser(description="Extract text from a PDF")
    parser.add_argument("path", help="Path to PDF file")
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument("--ocr", action="store_true", help="Always use OCR")
    mode.add_argument("--auto", action="store_true", help="Use OCR only when the text layer is empty")
    args = parser.parse_args(argv)

    try:
        if args.ocr or (args.auto and needs_ocr(args.path)):
            text = extract_text_with_ocr(args.path)
        else:
            text = extract_text_from_file(args.path)
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(text)
    return 0
