"""Google Workspace tooling.

Components:
    auth.py: OAuth2 and service-account credentials, scope shortcuts
    oauth_server.py: Loopback authorization server for user tokens
    admin.py: Admin SDK Directory (users, groups, members) and Gmail send-as aliases
    drive.py: Drive files and folders
    docs.py: Docs reading and batch updates
    gmail.py: Sending, searching and reading mail
"""

from tools.google.auth import (
    SCOPE_MAP,
    create_oauth2_credentials,
    create_service_account_credentials,
    exchange_code_for_tokens,
    generate_auth_url,
    resolve_credentials,
    resolve_scopes,
)

__all__ = [
    "SCOPE_MAP",
    "create_oauth2_credentials",
    "create_service_account_credentials",
    "exchange_code_for_tokens",
    "generate_auth_url",
    "resolve_credentials",
    "resolve_scopes",
]
