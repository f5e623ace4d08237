"""Error types raised by the toolkit.

Vendor SDK errors (botocore, googleapiclient, httpx) propagate unchanged;
these cover the conditions the tools themselves detect.
"""

from __future__ import annotations


class ToolkitError(Exception):
    """Base class for toolkit errors."""


class CredentialsError(ToolkitError, ValueError):
    """Credentials for a provider are missing or incomplete."""


class TokenFileError(CredentialsError):
    """An OAuth token file is absent or unreadable."""


class HostedZoneNotFoundError(ToolkitError, LookupError):
    def __init__(self, domain: str):
        self.domain = domain
        super().__init__(f"Hosted zone not found for domain: {domain}")


class RecordNotFoundError(ToolkitError, LookupError):
    def __init__(self, name: str, record_type: str):
        self.name = name
        self.record_type = record_type
        super().__init__(f"Record not found: {name} ({record_type})")


class NetlifyAPIError(ToolkitError):
    """Non-2xx response from the Netlify API."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)

    @property
    def is_unprocessable(self) -> bool:
        if self.status_code is not None:
            return self.status_code == 422
        text = str(self)
        return "422" in text or "Unprocessable" in text


class CustomDomainError(NetlifyAPIError):
    """Both the custom-domain update and the alias fallback failed."""

    def __init__(self, domain: str, primary: Exception, fallback: Exception):
        self.domain = domain
        self.primary = primary
        self.fallback = fallback
        super().__init__(
            f"Failed to add domain {domain}: {primary}. "
            f"Alias fallback also failed: {fallback}",
            getattr(fallback, "status_code", None),
        )


class GitCommandError(ToolkitError):
    def __init__(self, command: str, stderr: str = ""):
        self.command = command
        self.stderr = stderr
        detail = f"\n{stderr.strip()}" if stderr.strip() else ""
        super().__init__(f"Git command failed: {command}{detail}")


class NoPagesError(ToolkitError, ValueError):
    """Raised when a PDF renders to zero page images."""

    def __init__(self, message: str = "No pages extracted from PDF"):
        super().__init__(message)


class SheetNotFoundError(ToolkitError, KeyError):
    def __init__(self, sheet_name: str, available: list[str]):
        self.sheet_name = sheet_name
        self.available = available
        super().__init__(f'Sheet "{sheet_name}" not found. Available: {", ".join(available)}')

    def __str__(self) -> str:
        return self.args[0]


__all__ = [
    "ToolkitError",
    "CredentialsError",
    "TokenFileError",
    "HostedZoneNotFoundError",
    "RecordNotFoundError",
    "NetlifyAPIError",
    "CustomDomainError",
    "GitCommandError",
    "SheetNotFoundError",
    "NoPagesError",
]
