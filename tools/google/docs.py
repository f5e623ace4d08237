"""
Tool: Google Docs
Purpose: Read document text and apply batch edits (replace, style, insert, delete)

Document indexes in the Docs API count UTF-16 code units, so text ranges
found here are converted from Python string offsets before use.

Dependencies:
    - google-api-python-client (pip install google-api-python-client)
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any

from googleapiclient.discovery import build


def _utf16_len(text: str) -> int:
    return len(text.encode("utf-16-le")) // 2


def _paragraph_runs(paragraph: dict[str, Any]) -> Iterator[dict[str, Any]]:
    for element in paragraph.get("elements", []):
        run = element.get("textRun")
        if run and run.get("content"):
            yield {"content": run["content"], "start_index": element.get("startIndex", 0)}


def extract_text_from_document(document: dict[str, Any]) -> str:
    """
    Flatten a document body into plain text.

    Table cells are separated by tabs and rows end with a newline.
    """
    content = (document.get("body") or {}).get("content") or []
    parts: list[str] = []

    for element in content:
        if "paragraph" in element:
            parts.extend(run["content"] for run in _paragraph_runs(element["paragraph"]))
        elif "table" in element:
            for row in element["table"].get("tableRows", []):
                for cell in row.get("tableCells", []):
                    for cell_content in cell.get("content", []):
                        if "paragraph" in cell_content:
                            parts.extend(
                                run["content"] for run in _paragraph_runs(cell_content["paragraph"])
                            )
                    parts.append("\t")
                parts.append("\n")

    return "".join(parts)


def find_text_ranges(document: dict[str, Any], search_text: str) -> list[dict[str, int]]:
    """
    Locate every occurrence of search_text within single text runs of body paragraphs.

    Returns:
        List of {"startIndex", "endIndex"} dicts in document coordinates
        (overlapping matches included)
    """
    if not search_text:
        return []

    content = (document.get("body") or {}).get("content") or []
    search_length = _utf16_len(search_text)
    ranges: list[dict[str, int]] = []

    for element in content:
        if "paragraph" not in element:
            continue
        for run in _paragraph_runs(element["paragraph"]):
            text = run["content"]
            found = text.find(search_text)
            while found != -1:
                start = run["start_index"] + _utf16_len(text[:found])
                ranges.append({"startIndex": start, "endIndex": start + search_length})
                found = text.find(search_text, found + 1)

    return ranges


class DocsClient:
    def __init__(self, service: Any):
        self.service = service

    def get_document(self, document_id: str) -> dict[str, Any]:
        return self.service.documents().get(documentId=document_id).execute()

    def get_document_text(self, document_id: str) -> str:
        return extract_text_from_document(self.get_document(document_id))

    def batch_update(self, document_id: str, requests: list[dict[str, Any]]) -> dict[str, Any]:
        return (
            self.service.documents()
            .batchUpdate(documentId=document_id, body={"requests": requests})
            .execute()
        )

    def replace_all_text(self, document_id: str, replacements: dict[str, str]) -> dict[str, Any]:
        """Case-sensitive replacement of each key with its value."""
        requests = [
            {
                "replaceAllText": {
                    "containsText": {"text": search, "matchCase": True},
                    "replaceText": replace,
                }
            }
            for search, replace in replacements.items()
        ]
        return self.batch_update(document_id, requests)

    def apply_text_style(
        self, document_id: str, text: str, style: dict[str, Any]
    ) -> dict[str, Any]:
        """Apply a TextStyle to every occurrence of text; no request is sent when none match."""
        ranges = find_text_ranges(self.get_document(document_id), text)
        if not ranges:
            return {"replies": []}

        requests = [
            {
                "updateTextStyle": {
                    "range": text_range,
                    "textStyle": style,
                    "fields": ",".join(style),
                }
            }
            for text_range in ranges
        ]
        return self.batch_update(document_id, requests)

    def insert_text(self, document_id: str, index: int, text: str) -> dict[str, Any]:
        return self.batch_update(
            document_id, [{"insertText": {"location": {"index": index}, "text": text}}]
        )

    def delete_text(self, document_id: str, start_index: int, end_index: int) -> dict[str, Any]:
        return self.batch_update(
            document_id,
            [{"deleteContentRange": {"range": {"startIndex": start_index, "endIndex": end_index}}}],
        )


def create_docs_client(credentials: Any = None, service: Any = None) -> DocsClient:
    if service is None:
        service = build("docs", "v1", credentials=credentials, cache_discovery=False)
    return DocsClient(service)
