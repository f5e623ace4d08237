"""
Tool: Google Drive
Purpose: List, transfer and organize Drive files, including shared drives

All calls pass supportsAllDrives so shared-drive items behave like My Drive
items. Downloads and exports return raw bytes.

Dependencies:
    - google-api-python-client (pip install google-api-python-client)
"""

from __future__ import annotations

import io
import logging
from pathlib import Path
from typing import Any

from googleapiclient.discovery import build
from googleapiclient.http import MediaFileUpload, MediaIoBaseUpload

logger = logging.getLogger(__name__)


FOLDER_MIME_TYPE = "application/vnd.google-apps.folder"
GOOGLE_DOC_MIME_TYPE = "application/vnd.google-apps.document"
FILE_LIST_FIELDS = "files(id, name, mimeType, size, modifiedTime, webViewLink)"

MIME_TYPES = {
    ".pdf": "application/pdf",
    ".doc": "application/msword",
    ".docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    ".xls": "application/vnd.ms-excel",
    ".xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    ".ppt": "application/vnd.ms-powerpoint",
    ".pptx": "application/vnd.openxmlformats-officedocument.presentationml.presentation",
    ".txt": "text/plain",
    ".md": "text/markdown",
    ".html": "text/html",
    ".json": "application/json",
    ".csv": "text/csv",
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".svg": "image/svg+xml",
}


def get_mime_type(filename: str | Path) -> str:
    return MIME_TYPES.get(Path(filename).suffix.lower(), "application/octet-stream")


def _quote(value: str) -> str:
    """Escape a value for use inside a single-quoted Drive query string."""
    return value.replace("\\", "\\\\").replace("'", "\\'")


class DriveClient:
    def __init__(self, service: Any):
        self.service = service

    def list_files(
        self,
        folder_id: str,
        query: str | None = None,
        fields: str = FILE_LIST_FIELDS,
        page_size: int = 100,
    ) -> list[dict[str, Any]]:
        """List non-trashed files in a folder, or files matching a custom query."""
        response = (
            self.service.files()
            .list(
                q=query or f"'{_quote(folder_id)}' in parents and trashed = false",
                fields=fields,
                pageSize=page_size,
                supportsAllDrives=True,
                includeItemsFromAllDrives=True,
            )
            .execute()
        )
        return response.get("files", [])

    def list_shared_drive_files(self, drive_id: str, folder_id: str) -> list[dict[str, Any]]:
        response = (
            self.service.files()
            .list(
                q=f"'{_quote(folder_id)}' in parents and trashed = false",
                driveId=drive_id,
                corpora="drive",
                includeItemsFromAllDrives=True,
                supportsAllDrives=True,
                fields=FILE_LIST_FIELDS,
            )
            .execute()
        )
        return response.get("files", [])

    def get_file_metadata(self, file_id: str) -> dict[str, Any]:
        return (
            self.service.files()
            .get(
                fileId=file_id,
                fields="id, name, mimeType, size, modifiedTime, webViewLink, parents",
                supportsAllDrives=True,
            )
            .execute()
        )

    def download_file(self, file_id: str) -> bytes:
        return self.service.files().get_media(fileId=file_id, supportsAllDrives=True).execute()

    def export_file(self, file_id: str, mime_type: str) -> bytes:
        """Export a Google Docs/Sheets/Slides file to another format."""
        return self.service.files().export(fileId=file_id, mimeType=mime_type).execute()

    def _create(self, metadata: dict[str, Any], media: Any, fields: str) -> dict[str, Any]:
        return (
            self.service.files()
            .create(body=metadata, media_body=media, fields=fields, supportsAllDrives=True)
            .execute()
        )

    def upload_file(
        self,
        local_path: str | Path,
        folder_id: str,
        name: str | None = None,
        mime_type: str | None = None,
        description: str | None = None,
    ) -> dict[str, Any]:
        local_path = Path(local_path)
        metadata: dict[str, Any] = {"name": name or local_path.name, "parents": [folder_id]}
        if description:
            metadata["description"] = description

        media = MediaFileUpload(str(local_path), mimetype=mime_type or get_mime_type(local_path))
        logger.info(f"Uploading {local_path} to Drive folder {folder_id}")
        return self._create(metadata, media, "id, name, mimeType, size, webViewLink")

    def upload_content(
        self,
        content: str | bytes,
        file_name: str,
        folder_id: str,
        mime_type: str | None = None,
        description: str | None = None,
        convert_to_google_doc: bool = False,
    ) -> dict[str, Any]:
        """Upload in-memory content; optionally convert it to a Google Doc."""
        metadata: dict[str, Any] = {"name": file_name, "parents": [folder_id]}
        if description:
            metadata["description"] = description
        if convert_to_google_doc:
            metadata["mimeType"] = GOOGLE_DOC_MIME_TYPE

        data = content.encode("utf-8") if isinstance(content, str) else content
        media = MediaIoBaseUpload(io.BytesIO(data), mimetype=mime_type or get_mime_type(file_name))
        return self._create(metadata, media, "id, name, mimeType, size, webViewLink")

    def copy_file(self, file_id: str, name: str, folder_id: str | None = None) -> dict[str, Any]:
        metadata: dict[str, Any] = {"name": name}
        if folder_id:
            metadata["parents"] = [folder_id]
        return (
            self.service.files()
            .copy(
                fileId=file_id,
                body=metadata,
                fields="id, name, mimeType, webViewLink, parents",
                supportsAllDrives=True,
            )
            .execute()
        )

    def move_file(self, file_id: str, new_folder_id: str) -> dict[str, Any]:
        current = (
            self.service.files()
            .get(fileId=file_id, fields="parents", supportsAllDrives=True)
            .execute()
        )
        previous_parents = ",".join(current.get("parents", []))
        return (
            self.service.files()
            .update(
                fileId=file_id,
                addParents=new_folder_id,
                removeParents=previous_parents,
                fields="id, name, mimeType, webViewLink, parents",
                supportsAllDrives=True,
            )
            .execute()
        )

    def delete_file(self, file_id: str) -> None:
        logger.info(f"Deleting Drive file {file_id}")
        self.service.files().delete(fileId=file_id, supportsAllDrives=True).execute()

    def create_folder(self, name: str, parent_id: str) -> dict[str, Any]:
        metadata = {"name": name, "mimeType": FOLDER_MIME_TYPE, "parents": [parent_id]}
        return (
            self.service.files()
            .create(body=metadata, fields="id, name, webViewLink", supportsAllDrives=True)
            .execute()
        )

    def find_folder(self, name: str, parent_id: str) -> dict[str, Any] | None:
        query = (
            f"name = '{_quote(name)}' and '{_quote(parent_id)}' in parents "
            f"and mimeType = '{FOLDER_MIME_TYPE}' and trashed = false"
        )
        files = self.list_files(parent_id, query=query, fields="files(id, name, webViewLink)")
        return files[0] if files else None

    def ensure_folder(self, name: str, parent_id: str) -> dict[str, Any]:
        """Return the named folder under parent_id, creating it when absent."""
        return self.find_folder(name, parent_id) or self.create_folder(name, parent_id)


def create_drive_client(credentials: Any = None, service: Any = None) -> DriveClient:
    if service is None:
        service = build("drive", "v3", credentials=credentials, cache_discovery=False)
    return DriveClient(service)
