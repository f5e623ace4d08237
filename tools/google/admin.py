"""
Tool: Google Admin
Purpose: Workspace directory (users, groups, group members) and Gmail send-as aliases

Both clients wrap googleapiclient discovery services and return the API's
resource dicts unchanged. Directory calls need an admin identity, normally a
service account impersonating a workspace administrator.

Usage:
    from tools.google.auth import create_service_account_credentials, resolve_scopes
    from tools.google.admin import create_admin_client

    creds = create_service_account_credentials(key, resolve_scopes(["admin.directory.user"]), admin)
    admin = create_admin_client(creds)
    users = admin.list_users("example.com")

Dependencies:
    - google-api-python-client (pip install google-api-python-client)
"""

from __future__ import annotations

import logging
from typing import Any

from googleapiclient.discovery import build

logger = logging.getLogger(__name__)


GROUP_ROLES = ("OWNER", "MANAGER", "MEMBER")


class AdminClient:
    """Admin SDK Directory API operations."""

    def __init__(self, service: Any):
        self.service = service

    # ==================== Users ====================

    def list_users(
        self, domain: str, max_results: int = 100, order_by: str = "email"
    ) -> list[dict[str, Any]]:
        response = (
            self.service.users()
            .list(domain=domain, maxResults=max_results, orderBy=order_by)
            .execute()
        )
        return response.get("users", [])

    def get_user(self, user_key: str) -> dict[str, Any]:
        return self.service.users().get(userKey=user_key).execute()

    # ==================== Groups ====================

    def list_groups(self, domain: str, max_results: int = 100) -> list[dict[str, Any]]:
        response = self.service.groups().list(domain=domain, maxResults=max_results).execute()
        return response.get("groups", [])

    def get_group(self, group_key: str) -> dict[str, Any]:
        return self.service.groups().get(groupKey=group_key).execute()

    def create_group(self, email: str, name: str, description: str = "") -> dict[str, Any]:
        logger.info(f"Creating group {email}")
        body = {"email": email, "name": name, "description": description}
        return self.service.groups().insert(body=body).execute()

    def delete_group(self, group_key: str) -> None:
        logger.info(f"Deleting group {group_key}")
        self.service.groups().delete(groupKey=group_key).execute()

    # ==================== Members ====================

    def list_group_members(self, group_key: str) -> list[dict[str, Any]]:
        response = self.service.members().list(groupKey=group_key).execute()
        return response.get("members", [])

    def add_group_member(self, group_key: str, email: str, role: str = "MEMBER") -> dict[str, Any]:
        role = role.upper()
        if role not in GROUP_ROLES:
            raise ValueError(f"Invalid role: {role}. Expected one of {', '.join(GROUP_ROLES)}")
        logger.info(f"Adding {email} to {group_key} as {role}")
        return (
            self.service.members()
            .insert(groupKey=group_key, body={"email": email, "role": role})
            .execute()
        )

    def remove_group_member(self, group_key: str, member_key: str) -> None:
        logger.info(f"Removing {member_key} from {group_key}")
        self.service.members().delete(groupKey=group_key, memberKey=member_key).execute()


class GmailSettingsClient:
    """Gmail send-as alias settings (users.settings.sendAs)."""

    def __init__(self, service: Any):
        self.service = service

    def _send_as(self):
        return self.service.users().settings().sendAs()

    def list_send_as_aliases(self, user_id: str = "me") -> list[dict[str, Any]]:
        response = self._send_as().list(userId=user_id).execute()
        return response.get("sendAs", [])

    def get_send_as_alias(self, user_id: str, send_as_email: str) -> dict[str, Any]:
        return self._send_as().get(userId=user_id, sendAsEmail=send_as_email).execute()

    def add_send_as_alias(
        self,
        user_id: str,
        send_as_email: str,
        display_name: str | None = None,
        treat_as_alias: bool = True,
    ) -> dict[str, Any]:
        """Same-domain aliases with treat_as_alias are verified automatically."""
        body: dict[str, Any] = {"sendAsEmail": send_as_email, "treatAsAlias": treat_as_alias}
        if display_name:
            body["displayName"] = display_name
        logger.info(f"Adding send-as alias {send_as_email} for {user_id}")
        return self._send_as().create(userId=user_id, body=body).execute()

    def update_send_as_alias(
        self, user_id: str, send_as_email: str, updates: dict[str, Any]
    ) -> dict[str, Any]:
        return (
            self._send_as()
            .update(userId=user_id, sendAsEmail=send_as_email, body=updates)
            .execute()
        )

    def delete_send_as_alias(self, user_id: str, send_as_email: str) -> None:
        self._send_as().delete(userId=user_id, sendAsEmail=send_as_email).execute()

    def verify_send_as_alias(self, user_id: str, send_as_email: str) -> None:
        """Sends a verification email to the alias address."""
        self._send_as().verify(userId=user_id, sendAsEmail=send_as_email).execute()


def create_admin_client(credentials: Any = None, service: Any = None) -> AdminClient:
    if service is None:
        service = build("admin", "directory_v1", credentials=credentials, cache_discovery=False)
    return AdminClient(service)


def create_gmail_settings_client(credentials: Any = None, service: Any = None) -> GmailSettingsClient:
    if service is None:
        service = build("gmail", "v1", credentials=credentials, cache_discovery=False)
    return GmailSettingsClient(service)
