"""Tests for tools/google/auth.py: token files, refresh and scope handling"""

import json
import time
from unittest.mock import MagicMock, patch

import pytest
from google.oauth2.credentials import Credentials

from tools.exceptions import CredentialsError, TokenFileError
from tools.google.auth import (
    SCOPE_MAP,
    create_oauth2_credentials,
    create_service_account_credentials,
    credentials_to_token,
    exchange_code_for_tokens,
    resolve_credentials,
    resolve_scopes,
    select_user_token,
    token_to_credentials,
    write_token,
)


def _token(expiry_offset_s: float, access: str = "old-access") -> dict:
    return {
        "access_token": access,
        "refresh_token": "refresh-1",
        "scope": "https://www.googleapis.com/auth/gmail.readonly",
        "token_type": "Bearer",
        "expiry_date": int((time.time() + expiry_offset_s) * 1000),
    }


def _fake_refresh(self, request):
    self.token = "new-access"


# ─────────────────────────────────────────────────────────────────────────────
# Scopes
# ─────────────────────────────────────────────────────────────────────────────


class TestResolveScopes:
    def test_short_names(self):
        assert resolve_scopes(["docs", "gmail.send"]) == [
            "https://www.googleapis.com/auth/documents",
            SCOPE_MAP["gmail.send"],
        ]

    def test_full_urls_and_unknown_names(self):
        assert resolve_scopes(["https://example.com/scope", " tasks ", ""]) == [
            "https://example.com/scope",
            "https://www.googleapis.com/auth/tasks",
        ]


# ─────────────────────────────────────────────────────────────────────────────
# Token files
# ─────────────────────────────────────────────────────────────────────────────


class TestTokenFiles:
    def test_single_token_file(self):
        token = _token(3600)
        assert select_user_token(token) == (token, None)

    def test_multi_user_selects_user(self):
        data = {"alice": _token(3600, "a"), "bob": _token(3600, "b")}
        token, key = select_user_token(data, "Bob")
        assert token["access_token"] == "b"
        assert key == "bob"

    def test_multi_user_requires_user_when_ambiguous(self):
        with pytest.raises(TokenFileError, match="several users"):
            select_user_token({"alice": _token(1), "bob": _token(1)})

    def test_multi_user_single_entry(self):
        token, key = select_user_token({"alice": _token(1, "a")})
        assert key == "alice"

    def test_unknown_user(self):
        with pytest.raises(TokenFileError, match="Available: alice"):
            select_user_token({"alice": _token(1)}, "carol")

    def test_write_token_merges_users(self, tmp_path):
        path = tmp_path / "tokens" / "google.json"
        write_token(path, _token(1, "a"), "alice")
        write_token(path, _token(1, "b"), "bob")

        data = json.loads(path.read_text())
        assert set(data) == {"alice", "bob"}

    def test_write_token_replaces_single_token_file_for_user(self, tmp_path):
        path = tmp_path / "google.json"
        write_token(path, _token(1, "single"))
        write_token(path, _token(1, "a"), "alice")
        assert list(json.loads(path.read_text())) == ["alice"]

    def test_credentials_round_trip(self):
        token = _token(3600)
        creds = token_to_credentials(token, "cid", "secret")
        assert creds.token == "old-access"
        assert creds.refresh_token == "refresh-1"
        back = credentials_to_token(creds)
        assert back["expiry_date"] == token["expiry_date"]
        assert back["scope"] == token["scope"]


# ─────────────────────────────────────────────────────────────────────────────
# OAuth credentials
# ─────────────────────────────────────────────────────────────────────────────


class TestCreateOAuth2Credentials:
    def test_requires_client_secrets(self, tmp_path, empty_store):
        with pytest.raises(CredentialsError):
            create_oauth2_credentials(tmp_path / "t.json", store=empty_store)

    def test_missing_token_file(self, tmp_path):
        with pytest.raises(TokenFileError, match="No tokens found"):
            create_oauth2_credentials(tmp_path / "missing.json", "cid", "secret")

    def test_valid_token_not_refreshed(self, tmp_path):
        path = tmp_path / "t.json"
        path.write_text(json.dumps(_token(3600)))

        with patch.object(Credentials, "refresh") as refresh:
            creds = create_oauth2_credentials(path, "cid", "secret")

        refresh.assert_not_called()
        assert creds.token == "old-access"

    def test_expired_token_refreshed_and_written_back(self, tmp_path):
        path = tmp_path / "t.json"
        path.write_text(json.dumps({"alice": _token(-60), "bob": _token(3600, "b")}))

        with patch.object(Credentials, "refresh", autospec=True, side_effect=_fake_refresh):
            creds = create_oauth2_credentials(path, "cid", "secret", user="alice")

        assert creds.token == "new-access"
        data = json.loads(path.read_text())
        assert data["alice"]["access_token"] == "new-access"
        assert data["alice"]["refresh_token"] == "refresh-1"
        assert data["bob"]["access_token"] == "b"

    def test_client_secrets_from_store(self, tmp_path, write_credentials):
        store = write_credentials({"google": {"clientId": "cid", "clientSecret": "s"}})
        path = tmp_path / "t.json"
        path.write_text(json.dumps(_token(3600)))

        creds = create_oauth2_credentials(path, store=store)
        assert creds.client_id == "cid"


# ─────────────────────────────────────────────────────────────────────────────
# Service accounts
# ─────────────────────────────────────────────────────────────────────────────


class TestServiceAccount:
    def test_requires_scopes(self, tmp_path):
        with pytest.raises(CredentialsError, match="at least one scope"):
            create_service_account_credentials(tmp_path / "k.json", [])

    def test_requires_existing_key(self, tmp_path):
        with pytest.raises(CredentialsError, match="not found"):
            create_service_account_credentials(tmp_path / "k.json", ["scope"])

    def test_impersonation(self, tmp_path):
        key = tmp_path / "k.json"
        key.write_text("{}")
        base = MagicMock()
        with patch(
            "tools.google.auth.service_account.Credentials.from_service_account_file",
            return_value=base,
        ) as from_file:
            creds = create_service_account_credentials(key, ["scope"], "admin@example.com")

        from_file.assert_called_once_with(str(key.resolve()), scopes=["scope"])
        base.with_subject.assert_called_once_with("admin@example.com")
        assert creds is base.with_subject.return_value

    def test_resolve_prefers_service_account(self, write_credentials, config_dirs):
        (config_dirs[0] / "sa.json").write_text("{}")
        store = write_credentials(
            {
                "google": {
                    "clientId": "cid",
                    "clientSecret": "s",
                    "serviceAccountKeyFile": "sa.json",
                    "impersonateUser": "admin@example.com",
                }
            }
        )
        with patch("tools.google.auth.create_service_account_credentials") as create_sa:
            resolve_credentials(["scope"], store=store, token_path="unused.json")

        create_sa.assert_called_once_with(config_dirs[0] / "sa.json", ["scope"], "admin@example.com")

    def test_resolve_without_credentials(self, empty_store):
        with pytest.raises(CredentialsError, match="No usable Google credentials"):
            resolve_credentials(["scope"], store=empty_store)


class TestExchangeCode:
    def test_requires_code(self):
        with pytest.raises(CredentialsError, match="Authorization code required"):
            exchange_code_for_tokens("")

    def test_saves_token(self, tmp_path):
        path = tmp_path / "t.json"
        with patch("tools.google.auth.build_flow") as build_flow, patch(
            "tools.google.auth.fetch_token", return_value=_token(3600, "fresh")
        ):
            token = exchange_code_for_tokens(
                "code-1", ["gmail.readonly"], "cid", "s", token_path=path, user="alice"
            )

        assert token["access_token"] == "fresh"
        assert json.loads(path.read_text())["alice"]["access_token"] == "fresh"
        assert build_flow.call_args.args[0] == [SCOPE_MAP["gmail.readonly"]]
