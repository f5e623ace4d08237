"""
Tool: Gmail
Purpose: Send, search and read mail for the authenticated user

Dependencies:
    - google-api-python-client (pip install google-api-python-client)
"""

from __future__ import annotations

import base64
import logging
from dataclasses import asdict, dataclass
from email.message import EmailMessage
from typing import Any

from googleapiclient.discovery import build

logger = logging.getLogger(__name__)


@dataclass
class Attachment:
    id: str
    filename: str
    mime_type: str | None = None
    size: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _b64url_decode(data: str) -> bytes:
    return base64.urlsafe_b64decode(data + "=" * (-len(data) % 4))


def create_mime_message(
    to: str,
    subject: str,
    body: str,
    html: bool = False,
    sender: str | None = None,
    cc: str | None = None,
    bcc: str | None = None,
    reply_to: str | None = None,
) -> str:
    """Build an RFC 2822 message encoded as unpadded base64url, as messages.send expects."""
    message = EmailMessage()
    if sender:
        message["From"] = sender
    message["To"] = to
    if cc:
        message["Cc"] = cc
    if bcc:
        message["Bcc"] = bcc
    if reply_to:
        message["Reply-To"] = reply_to
    message["Subject"] = subject
    message.set_content(body, subtype="html" if html else "plain", charset="utf-8")

    return base64.urlsafe_b64encode(message.as_bytes()).decode("ascii").rstrip("=")


def extract_message_body(message: dict[str, Any]) -> dict[str, str]:
    """Collect the text/plain and text/html bodies of a full-format message."""
    result = {"text": "", "html": ""}

    def visit(part: dict[str, Any]) -> None:
        data = (part.get("body") or {}).get("data")
        if data:
            content = _b64url_decode(data).decode("utf-8", errors="replace")
            if part.get("mimeType") == "text/plain":
                result["text"] = content
            elif part.get("mimeType") == "text/html":
                result["html"] = content
        for sub_part in part.get("parts", []):
            visit(sub_part)

    if message.get("payload"):
        visit(message["payload"])
    return result


def find_attachments(payload: dict[str, Any]) -> list[Attachment]:
    attachments: list[Attachment] = []

    def visit(part: dict[str, Any]) -> None:
        body = part.get("body") or {}
        if part.get("filename") and body.get("attachmentId"):
            attachments.append(
                Attachment(
                    id=body["attachmentId"],
                    filename=part["filename"],
                    mime_type=part.get("mimeType"),
                    size=body.get("size"),
                )
            )
        for sub_part in part.get("parts", []):
            visit(sub_part)

    visit(payload)
    return attachments


class GmailClient:
    def __init__(self, service: Any, user_id: str = "me"):
        self.service = service
        self.user_id = user_id

    def _messages(self):
        return self.service.users().messages()

    def send_email(
        self,
        to: str,
        subject: str,
        body: str,
        html: bool = False,
        sender: str | None = None,
        cc: str | None = None,
        bcc: str | None = None,
        reply_to: str | None = None,
    ) -> dict[str, Any]:
        raw = create_mime_message(to, subject, body, html, sender, cc, bcc, reply_to)
        logger.info(f"Sending email to {to}: {subject}")
        return self._messages().send(userId=self.user_id, body={"raw": raw}).execute()

    def search_messages(self, query: str, max_results: int = 100) -> list[dict[str, Any]]:
        """Message stubs (id, threadId) matching a Gmail search query."""
        response = (
            self._messages().list(userId=self.user_id, q=query, maxResults=max_results).execute()
        )
        return response.get("messages", [])

    def get_message(self, message_id: str, format: str = "full") -> dict[str, Any]:
        return self._messages().get(userId=self.user_id, id=message_id, format=format).execute()

    def get_message_headers(self, message_id: str) -> dict[str, str]:
        """Headers keyed by lowercased name."""
        message = self.get_message(message_id, "metadata")
        headers = (message.get("payload") or {}).get("headers", [])
        return {h["name"].lower(): h["value"] for h in headers}

    def get_message_body(self, message_id: str) -> dict[str, str]:
        return extract_message_body(self.get_message(message_id, "full"))

    def list_labels(self) -> list[dict[str, Any]]:
        response = self.service.users().labels().list(userId=self.user_id).execute()
        return response.get("labels", [])

    def get_profile(self) -> dict[str, Any]:
        return self.service.users().getProfile(userId=self.user_id).execute()

    def get_attachments(self, message_id: str) -> list[Attachment]:
        message = self.get_message(message_id, "full")
        payload = message.get("payload")
        return find_attachments(payload) if payload else []

    def download_attachment(self, message_id: str, attachment_id: str) -> bytes:
        response = (
            self._messages()
            .attachments()
            .get(userId=self.user_id, messageId=message_id, id=attachment_id)
            .execute()
        )
        return _b64url_decode(response["data"])


def create_gmail_client(credentials: Any = None, service: Any = None) -> GmailClient:
    if service is None:
        service = build("gmail", "v1", credentials=credentials, cache_discovery=False)
    return GmailClient(service)
