"""
Tool: Credentials
Purpose: Resolve provider credentials from environment variables and a JSON config file

Every provider wrapper asks this module for its credential record. Values are
resolved per field: the first non-empty environment variable wins, then the
config file value, then a default.

Config file locations (first readable file wins):
    <cwd>/.windsurf/config/credentials.json
    <project root>/config/credentials.json

Usage:
    from tools.credentials import get, has, Provider

    aws = get(Provider.AWS)
    if has("netlify"):
        ...

Dependencies:
    - None (standard library only)
"""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Mapping, Sequence
from dataclasses import asdict, dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Union

from tools import CONFIG_DIR
from tools.exceptions import CredentialsError

logger = logging.getLogger(__name__)


CONFIG_FILENAME = "credentials.json"
LOCAL_CONFIG_SUBDIR = Path(".windsurf") / "config"
DEFAULT_AWS_REGION = "us-east-1"


class Provider(str, Enum):
    NETLIFY = "netlify"
    AWS = "aws"
    GOOGLE = "google"


# Environment variables checked per field, in priority order
ENV_MAPPINGS: dict[Provider, dict[str, tuple[str, ...]]] = {
    Provider.NETLIFY: {
        "token": ("NETLIFY_TOKEN",),
        "teamSlug": ("NETLIFY_TEAM_SLUG",),
    },
    Provider.AWS: {
        "region": ("AWS_REGION",),
        "accessKeyId": ("AWS_ACCESS_KEY_ID",),
        "secretAccessKey": ("AWS_SECRET_ACCESS_KEY",),
    },
    Provider.GOOGLE: {
        "clientId": ("GOOGLE_CLIENT_ID", "GMAIL_CLIENT_ID"),
        "clientSecret": ("GOOGLE_CLIENT_SECRET", "GMAIL_CLIENT_SECRET"),
    },
}

_GUIDANCE = {
    Provider.NETLIFY: "Set NETLIFY_TOKEN or add netlify.token to credentials.json",
    Provider.AWS: (
        "Set AWS_ACCESS_KEY_ID and AWS_SECRET_ACCESS_KEY or add "
        "aws.accessKeyId and aws.secretAccessKey to credentials.json"
    ),
    Provider.GOOGLE: (
        "Set GOOGLE_CLIENT_ID/GOOGLE_CLIENT_SECRET or add google.serviceAccountKeyFile "
        "to credentials.json"
    ),
}


# ─────────────────────────────────────────────────────────────────────────────
# Credential records
# ─────────────────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class NetlifyCredentials:
    token: str
    team_slug: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class AwsCredentials:
    access_key_id: str
    secret_access_key: str
    region: str = DEFAULT_AWS_REGION

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class GoogleCredentials:
    client_id: str | None = None
    client_secret: str | None = None
    service_account_key_path: Path | None = None
    service_account_key_file: str | None = None
    impersonate_user: str | None = None
    domain: str | None = None

    @property
    def has_oauth(self) -> bool:
        return bool(self.client_id and self.client_secret)

    @property
    def has_service_account(self) -> bool:
        return self.service_account_key_path is not None

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        if self.service_account_key_path is not None:
            data["service_account_key_path"] = str(self.service_account_key_path)
        data["has_oauth"] = self.has_oauth
        data["has_service_account"] = self.has_service_account
        return data


CredentialRecord = Union[NetlifyCredentials, AwsCredentials, GoogleCredentials]


def _first(*values: Any) -> Any:
    for value in values:
        if value:
            return value
    return None


# ─────────────────────────────────────────────────────────────────────────────
# Store
# ─────────────────────────────────────────────────────────────────────────────


class CredentialStore:
    """
    Parsed credentials config plus the environment it resolves against.

    The config file is read at most once per store; clear_cache() forces a
    re-read on the next access.

    Args:
        config_dirs: Directories searched for credentials.json and key files.
            Defaults to <cwd>/.windsurf/config then <project root>/config,
            evaluated at load time.
        environ: Environment mapping. Defaults to os.environ.
    """

    def __init__(
        self,
        config_dirs: Sequence[str | Path] | None = None,
        environ: Mapping[str, str] | None = None,
    ):
        self._config_dirs = [Path(d) for d in config_dirs] if config_dirs is not None else None
        self._environ = environ
        self._config: dict[str, Any] | None = None

    @property
    def environ(self) -> Mapping[str, str]:
        return os.environ if self._environ is None else self._environ

    def config_dirs(self) -> list[Path]:
        if self._config_dirs is not None:
            return list(self._config_dirs)
        return [Path.cwd() / LOCAL_CONFIG_SUBDIR, CONFIG_DIR]

    def candidate_paths(self) -> list[Path]:
        return [d / CONFIG_FILENAME for d in self.config_dirs()]

    # ---------------------------------------------------------------------
    # Config file
    # ---------------------------------------------------------------------

    def load_config_file(self) -> dict[str, Any]:
        """Return the parsed config, reading it on first use."""
        if self._config is not None:
            return self._config

        config: dict[str, Any] = {}
        for path in self.candidate_paths():
            if not path.is_file():
                continue
            try:
                with open(path, encoding="utf-8") as f:
                    data = json.load(f)
            except (OSError, json.JSONDecodeError) as e:
                logger.debug(f"Skipping unreadable credentials file {path}: {e}")
                continue
            if isinstance(data, dict):
                logger.debug(f"Loaded credentials config from {path}")
                config = data
                break

        self._config = config
        return config

    def clear_cache(self) -> None:
        self._config = None

    def get_config_path(self) -> Path | None:
        for path in self.candidate_paths():
            if path.is_file():
                return path
        return None

    def resolve_key_file_path(self, relative_path: str | None) -> Path | None:
        if not relative_path:
            return None
        for directory in self.config_dirs():
            candidate = directory / relative_path
            if candidate.is_file():
                return candidate
        return None

    def get_env_value(self, names: Sequence[str]) -> str | None:
        env = self.environ
        for name in names:
            value = env.get(name)
            if value:
                return value
        return None

    # ---------------------------------------------------------------------
    # Records
    # ---------------------------------------------------------------------

    def _section(self, name: str) -> dict[str, Any]:
        section = self.load_config_file().get(name)
        return section if isinstance(section, dict) else {}

    def _field(self, provider: Provider, key: str, section: Mapping[str, Any]) -> Any:
        names = ENV_MAPPINGS[provider].get(key, ())
        return _first(self.get_env_value(names), section.get(key))

    def _netlify(self) -> NetlifyCredentials | None:
        section = self._section(Provider.NETLIFY.value)
        token = self._field(Provider.NETLIFY, "token", section)
        if not token:
            return None
        return NetlifyCredentials(
            token=token,
            team_slug=self._field(Provider.NETLIFY, "teamSlug", section),
        )

    def _aws(self) -> AwsCredentials | None:
        section = self._section(Provider.AWS.value)
        access_key_id = self._field(Provider.AWS, "accessKeyId", section)
        secret_access_key = self._field(Provider.AWS, "secretAccessKey", section)
        if not access_key_id or not secret_access_key:
            return None
        return AwsCredentials(
            access_key_id=access_key_id,
            secret_access_key=secret_access_key,
            region=self._field(Provider.AWS, "region", section) or DEFAULT_AWS_REGION,
        )

    def _google(self) -> GoogleCredentials:
        section = self._section(Provider.GOOGLE.value)
        key_file = section.get("serviceAccountKeyFile") or None
        return GoogleCredentials(
            client_id=self._field(Provider.GOOGLE, "clientId", section),
            client_secret=self._field(Provider.GOOGLE, "clientSecret", section),
            service_account_key_path=self.resolve_key_file_path(key_file),
            service_account_key_file=key_file,
            impersonate_user=section.get("impersonateUser") or None,
            domain=section.get("domain") or None,
        )

    def get(self, provider: Provider | str) -> CredentialRecord | dict[str, Any] | None:
        """
        Resolve the credential record for a provider.

        Returns None when a provider's mandatory fields are missing. Unknown
        providers get their raw config section, or None.
        """
        try:
            known = Provider(provider)
        except ValueError:
            section = self.load_config_file().get(str(provider))
            return section if section else None

        if known is Provider.NETLIFY:
            return self._netlify()
        if known is Provider.AWS:
            return self._aws()
        return self._google()

    def has(self, provider: Provider | str) -> bool:
        record = self.get(provider)
        if isinstance(record, GoogleCredentials):
            return record.has_oauth or record.has_service_account
        return record is not None

    def get_all(self) -> dict[str, CredentialRecord | None]:
        return {p.value: self.get(p) for p in Provider}

    def require(self, provider: Provider | str) -> CredentialRecord | dict[str, Any]:
        """Like get(), but raise CredentialsError when the provider is not usable."""
        if not self.has(provider):
            try:
                guidance = _GUIDANCE[Provider(provider)]
            except ValueError:
                guidance = f"Add a '{provider}' section to credentials.json"
            name = provider.value if isinstance(provider, Provider) else provider
            raise CredentialsError(f"{name} credentials not configured. {guidance}")
        return self.get(provider)


# ─────────────────────────────────────────────────────────────────────────────
# Module-level convenience API (default store)
# ─────────────────────────────────────────────────────────────────────────────

_default_store = CredentialStore()


def get_default_store() -> CredentialStore:
    return _default_store


def load_config_file() -> dict[str, Any]:
    return _default_store.load_config_file()


def clear_cache() -> None:
    _default_store.clear_cache()


def get_config_path() -> Path | None:
    return _default_store.get_config_path()


def resolve_key_file_path(relative_path: str | None) -> Path | None:
    return _default_store.resolve_key_file_path(relative_path)


def get_env_value(names: Sequence[str]) -> str | None:
    return _default_store.get_env_value(names)


def get(provider: Provider | str) -> CredentialRecord | dict[str, Any] | None:
    return _default_store.get(provider)


def has(provider: Provider | str) -> bool:
    return _default_store.has(provider)


def get_all() -> dict[str, CredentialRecord | None]:
    return _default_store.get_all()


def require(provider: Provider | str) -> CredentialRecord | dict[str, Any]:
    return _default_store.require(provider)


__all__ = [
    "Provider",
    "ENV_MAPPINGS",
    "NetlifyCredentials",
    "AwsCredentials",
    "GoogleCredentials",
    "CredentialStore",
    "get_default_store",
    "load_config_file",
    "clear_cache",
    "get_config_path",
    "resolve_key_file_path",
    "get_env_value",
    "get",
    "has",
    "get_all",
    "require",
]
