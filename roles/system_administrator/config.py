"""
System administrator configuration (args/system_administrator.yaml)

Workspace identities, scope sets and the places a service account key may
live. Missing or invalid YAML falls back to the model defaults.
"""

from __future__ import annotations

import logging
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from tools import ARGS_DIR

logger = logging.getLogger(__name__)

CONFIG_NAME = "system_administrator"


class ServiceAccountConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    email: str = Field(default="")
    client_id: str = Field(default="")
    project_id: str = Field(default="")


class ScopeSetsConfig(BaseModel):
    """Short scope names, expanded with tools.google.auth.resolve_scopes."""

    model_config = ConfigDict(extra="allow")
    admin: list[str] = Field(
        default_factory=lambda: [
            "admin.directory.user",
            "admin.directory.group",
            "admin.directory.group.member",
        ]
    )
    gmail: list[str] = Field(default_factory=lambda: ["gmail.send"])
    gmail_settings: list[str] = Field(
        default_factory=lambda: ["gmail.settings.basic", "gmail.settings.sharing"]
    )


class KeyFileConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    name: str = Field(default="ai-advisor-admin-key.json")
    # Relative entries resolve against the working directory
    search_dirs: list[str] = Field(
        default_factory=lambda: [
            "credentials/service-accounts",
            "../credentials/service-accounts",
        ]
    )


class SystemAdministratorConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    domain: str = Field(default="example.com")
    impersonate_user: str = Field(default="admin@example.com")
    assistant_email: str = Field(default="assistant@example.com")
    service_account: ServiceAccountConfig = Field(default_factory=ServiceAccountConfig)
    scopes: ScopeSetsConfig = Field(default_factory=ScopeSetsConfig)
    key_file: KeyFileConfig = Field(default_factory=KeyFileConfig)


def load_config(path: str | Path | None = None) -> SystemAdministratorConfig:
    yaml_path = Path(path) if path else ARGS_DIR / f"{CONFIG_NAME}.yaml"

    try:
        if yaml_path.exists():
            with open(yaml_path) as f:
                raw = yaml.safe_load(f) or {}
        else:
            raw = {}

        return SystemAdministratorConfig.model_validate(raw)
    except (OSError, yaml.YAMLError, ValidationError) as e:
        logger.warning(f"Config validation failed for {CONFIG_NAME}: {e}, using defaults")
        return SystemAdministratorConfig()
