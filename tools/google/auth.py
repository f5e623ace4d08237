"""
Tool: Google Auth
Purpose: Build google-auth credentials from OAuth2 user tokens or a service account key

Two authentication paths are supported:
    - OAuth2 user tokens stored in a JSON token file. The file holds either a
      single token or a mapping of user name -> token (written by
      oauth_server.py). Expired tokens are refreshed and written back.
    - Service account keys with optional domain-wide delegation
      (impersonating a workspace user).

Token files use the access_token / refresh_token / scope / token_type /
expiry_date (epoch milliseconds) layout.

Usage:
    from tools.google.auth import create_service_account_credentials, resolve_scopes

    creds = create_service_account_credentials(
        "config/keys/admin.json",
        resolve_scopes(["admin.directory.user"]),
        impersonate_user="admin@example.com",
    )

Dependencies:
    - google-auth (pip install google-auth)
    - google-auth-oauthlib (pip install google-auth-oauthlib)
"""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Iterable
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from google.auth.transport.requests import Request
from google.oauth2 import service_account
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import Flow

from tools.credentials import CredentialStore, GoogleCredentials, Provider, get_default_store
from tools.exceptions import CredentialsError, TokenFileError

logger = logging.getLogger(__name__)


GOOGLE_AUTH_URI = "https://accounts.google.com/o/oauth2/auth"
GOOGLE_TOKEN_URI = "https://oauth2.googleapis.com/token"
DEFAULT_REDIRECT_URI = "http://localhost:3000"
DEFAULT_TOKEN_PATH = Path("credentials") / "oauth-tokens" / "google-tokens.json"
SCOPE_PREFIX = "https://www.googleapis.com/auth/"

# Short names accepted wherever scopes are given
SCOPE_MAP = {
    "gmail.readonly": SCOPE_PREFIX + "gmail.readonly",
    "gmail.send": SCOPE_PREFIX + "gmail.send",
    "gmail.modify": SCOPE_PREFIX + "gmail.modify",
    "gmail.settings.basic": SCOPE_PREFIX + "gmail.settings.basic",
    "gmail.settings.sharing": SCOPE_PREFIX + "gmail.settings.sharing",
    "drive": SCOPE_PREFIX + "drive",
    "drive.file": SCOPE_PREFIX + "drive.file",
    "drive.readonly": SCOPE_PREFIX + "drive.readonly",
    "docs": SCOPE_PREFIX + "documents",
    "docs.readonly": SCOPE_PREFIX + "documents.readonly",
    "sheets": SCOPE_PREFIX + "spreadsheets",
    "sheets.readonly": SCOPE_PREFIX + "spreadsheets.readonly",
    "calendar": SCOPE_PREFIX + "calendar",
    "calendar.readonly": SCOPE_PREFIX + "calendar.readonly",
    "admin.directory.user": SCOPE_PREFIX + "admin.directory.user",
    "admin.directory.group": SCOPE_PREFIX + "admin.directory.group",
    "admin.directory.group.member": SCOPE_PREFIX + "admin.directory.group.member",
}


def resolve_scopes(scopes: Iterable[str]) -> list[str]:
    """Expand short scope names; full URLs pass through unchanged."""
    resolved = []
    for scope in scopes:
        scope = scope.strip()
        if not scope:
            continue
        if scope.startswith("https://"):
            resolved.append(scope)
        else:
            resolved.append(SCOPE_MAP.get(scope, SCOPE_PREFIX + scope))
    return resolved


# ─────────────────────────────────────────────────────────────────────────────
# Token file handling
# ─────────────────────────────────────────────────────────────────────────────


def _is_token(data: Any) -> bool:
    return isinstance(data, dict) and ("access_token" in data or "refresh_token" in data)


def read_token_file(token_path: str | Path) -> dict[str, Any]:
    path = Path(token_path).expanduser().resolve()
    if not path.is_file():
        raise TokenFileError(f"No tokens found at {path}. Run the OAuth flow first.")
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise TokenFileError(f"Failed to load tokens from {path}: {e}") from e
    if not isinstance(data, dict):
        raise TokenFileError(f"Failed to load tokens from {path}: expected a JSON object")
    return data


def select_user_token(data: dict[str, Any], user: str | None = None) -> tuple[dict, str | None]:
    """
    Pick the token for a user out of a token file's contents.

    Returns:
        Tuple of (token dict, user key or None for single-token files)
    """
    if _is_token(data):
        return data, None

    if user:
        token = data.get(user.lower()) or data.get(user)
        if not _is_token(token):
            raise TokenFileError(
                f"No token stored for user '{user}'. Available: {', '.join(sorted(data)) or 'none'}"
            )
        return token, user.lower() if user.lower() in data else user

    users = [key for key, value in data.items() if _is_token(value)]
    if len(users) == 1:
        return data[users[0]], users[0]
    raise TokenFileError(
        f"Token file holds tokens for several users ({', '.join(sorted(users))}); pass a user"
    )


def write_token(token_path: str | Path, token: dict[str, Any], user: str | None = None) -> Path:
    """Write a token, merging into the per-user mapping when user is given."""
    path = Path(token_path).expanduser().resolve()
    path.parent.mkdir(parents=True, exist_ok=True)

    if user:
        existing: dict[str, Any] = {}
        if path.is_file():
            try:
                existing = json.loads(path.read_text(encoding="utf-8"))
            except (OSError, json.JSONDecodeError):
                logger.warning(f"Replacing unreadable token file {path}")
                existing = {}
            if not isinstance(existing, dict) or _is_token(existing):
                existing = {}
        existing[user] = token
        payload: dict[str, Any] = existing
    else:
        payload = token

    path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
    return path


def credentials_to_token(creds: Credentials) -> dict[str, Any]:
    token: dict[str, Any] = {
        "access_token": creds.token,
        "token_type": "Bearer",
    }
    if creds.refresh_token:
        token["refresh_token"] = creds.refresh_token
    scopes = getattr(creds, "granted_scopes", None) or creds.scopes
    if scopes:
        token["scope"] = " ".join(scopes)
    if creds.expiry:
        token["expiry_date"] = round(creds.expiry.replace(tzinfo=timezone.utc).timestamp() * 1000)
    id_token = getattr(creds, "id_token", None)
    if id_token:
        token["id_token"] = id_token
    return token


def token_to_credentials(token: dict[str, Any], client_id: str, client_secret: str) -> Credentials:
    scope = token.get("scope")
    creds = Credentials(
        token=token.get("access_token"),
        refresh_token=token.get("refresh_token"),
        token_uri=GOOGLE_TOKEN_URI,
        client_id=client_id,
        client_secret=client_secret,
        scopes=scope.split() if scope else None,
    )
    if token.get("expiry_date"):
        # google-auth compares against naive UTC datetimes
        creds.expiry = datetime.fromtimestamp(
            token["expiry_date"] / 1000, tz=timezone.utc
        ).replace(tzinfo=None)
    return creds


def _is_expired(token: dict[str, Any]) -> bool:
    expiry_date = token.get("expiry_date")
    if not expiry_date:
        return False
    return expiry_date < datetime.now(timezone.utc).timestamp() * 1000


def _client_secrets(
    client_id: str | None, client_secret: str | None, store: CredentialStore | None
) -> tuple[str, str]:
    if not client_id or not client_secret:
        record = (store or get_default_store()).get(Provider.GOOGLE)
        if isinstance(record, GoogleCredentials):
            client_id = client_id or record.client_id
            client_secret = client_secret or record.client_secret
    if not client_id or not client_secret:
        raise CredentialsError(
            "OAuth2 requires a client ID and secret "
            "(GOOGLE_CLIENT_ID/GOOGLE_CLIENT_SECRET or google.clientId/clientSecret)"
        )
    return client_id, client_secret


# ─────────────────────────────────────────────────────────────────────────────
# Credential factories
# ─────────────────────────────────────────────────────────────────────────────


def create_oauth2_credentials(
    token_path: str | Path = DEFAULT_TOKEN_PATH,
    client_id: str | None = None,
    client_secret: str | None = None,
    user: str | None = None,
    store: CredentialStore | None = None,
) -> Credentials:
    """
    Load user credentials from a token file, refreshing them when expired.

    A refreshed token is written back to the same file (and user slot)
    before the credentials are returned.

    Raises:
        CredentialsError: If the client ID/secret cannot be resolved
        TokenFileError: If the token file is missing, unreadable or has no
            token for the user
    """
    client_id, client_secret = _client_secrets(client_id, client_secret, store)
    data = read_token_file(token_path)
    token, user_key = select_user_token(data, user)
    creds = token_to_credentials(token, client_id, client_secret)

    if _is_expired(token):
        logger.info("Google token expired, refreshing")
        creds.refresh(Request())
        refreshed = credentials_to_token(creds)
        if "refresh_token" not in refreshed and token.get("refresh_token"):
            refreshed["refresh_token"] = token["refresh_token"]
        write_token(token_path, refreshed, user_key)

    return creds


def create_service_account_credentials(
    key_file_path: str | Path,
    scopes: list[str],
    impersonate_user: str | None = None,
) -> service_account.Credentials:
    """
    Service account credentials, delegated to impersonate_user when given.

    Raises:
        CredentialsError: If the key path or scopes are missing
    """
    if not key_file_path:
        raise CredentialsError("Service account requires a key file path")
    if not scopes:
        raise CredentialsError("Service account requires at least one scope")

    path = Path(key_file_path).expanduser().resolve()
    if not path.is_file():
        raise CredentialsError(f"Service account key not found at {path}")

    creds = service_account.Credentials.from_service_account_file(str(path), scopes=scopes)
    if impersonate_user:
        creds = creds.with_subject(impersonate_user)
    return creds


def resolve_credentials(
    scopes: list[str],
    store: CredentialStore | None = None,
    token_path: str | Path | None = None,
    user: str | None = None,
    impersonate_user: str | None = None,
):
    """
    Pick an authentication path from the stored Google credentials.

    Service accounts are preferred; OAuth tokens are used when a token path
    is given and client credentials exist.
    """
    store = store or get_default_store()
    record: GoogleCredentials = store.get(Provider.GOOGLE)

    if record.has_service_account:
        return create_service_account_credentials(
            record.service_account_key_path,
            scopes,
            impersonate_user or record.impersonate_user,
        )
    if record.has_oauth and token_path:
        return create_oauth2_credentials(token_path, user=user, store=store)

    raise CredentialsError(
        "No usable Google credentials. Configure google.serviceAccountKeyFile or "
        "run the OAuth flow (python -m tools.google.oauth_server)"
    )


# ─────────────────────────────────────────────────────────────────────────────
# Authorization code flow
# ─────────────────────────────────────────────────────────────────────────────


def build_flow(
    scopes: list[str],
    client_id: str | None = None,
    client_secret: str | None = None,
    redirect_uri: str = DEFAULT_REDIRECT_URI,
    store: CredentialStore | None = None,
    autogenerate_code_verifier: bool = False,
) -> Flow:
    client_id, client_secret = _client_secrets(client_id, client_secret, store)
    client_config = {
        "web": {
            "client_id": client_id,
            "client_secret": client_secret,
            "auth_uri": GOOGLE_AUTH_URI,
            "token_uri": GOOGLE_TOKEN_URI,
            "redirect_uris": [redirect_uri],
        }
    }
    return Flow.from_client_config(
        client_config,
        scopes=scopes,
        redirect_uri=redirect_uri,
        autogenerate_code_verifier=autogenerate_code_verifier,
    )


def authorization_url(flow: Flow, login_hint: str | None = None) -> str:
    """Offline access with forced consent so a refresh token is always issued."""
    kwargs: dict[str, Any] = {"access_type": "offline", "prompt": "consent"}
    if login_hint:
        kwargs["login_hint"] = login_hint
    url, _state = flow.authorization_url(**kwargs)
    return url


def fetch_token(flow: Flow, code: str) -> dict[str, Any]:
    # Google may grant a superset of the requested scopes
    os.environ.setdefault("OAUTHLIB_RELAX_TOKEN_SCOPE", "1")
    flow.fetch_token(code=code)
    return credentials_to_token(flow.credentials)


def generate_auth_url(
    scopes: list[str],
    client_id: str | None = None,
    client_secret: str | None = None,
    redirect_uri: str = DEFAULT_REDIRECT_URI,
    login_hint: str | None = None,
    store: CredentialStore | None = None,
) -> str:
    flow = build_flow(resolve_scopes(scopes), client_id, client_secret, redirect_uri, store)
    return authorization_url(flow, login_hint)


def exchange_code_for_tokens(
    code: str,
    scopes: list[str] | None = None,
    client_id: str | None = None,
    client_secret: str | None = None,
    redirect_uri: str = DEFAULT_REDIRECT_URI,
    token_path: str | Path | None = None,
    user: str | None = None,
    store: CredentialStore | None = None,
) -> dict[str, Any]:
    """Exchange an authorization code; the token is saved when token_path is given."""
    if not code:
        raise CredentialsError("Authorization code required")

    flow = build_flow(resolve_scopes(scopes or []), client_id, client_secret, redirect_uri, store)
    token = fetch_token(flow, code)

    if token_path:
        path = write_token(token_path, token, user)
        logger.info(f"Tokens saved to {path}")
    return token


__all__ = [
    "SCOPE_MAP",
    "DEFAULT_TOKEN_PATH",
    "resolve_scopes",
    "read_token_file",
    "select_user_token",
    "write_token",
    "credentials_to_token",
    "token_to_credentials",
    "create_oauth2_credentials",
    "create_service_account_credentials",
    "resolve_credentials",
    "build_flow",
    "authorization_url",
    "fetch_token",
    "generate_auth_url",
    "exchange_code_for_tokens",
]
