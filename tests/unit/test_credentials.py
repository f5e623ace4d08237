"""Tests for tools/credentials.py: credential resolution

Covers:
- Config file discovery order and malformed-file skipping
- Environment-over-config precedence per field
- Per-provider availability rules
- Key file resolution for Google service accounts
- Read-once caching and cache reset
"""

import pytest

from tools.credentials import (
    AwsCredentials,
    CredentialStore,
    GoogleCredentials,
    NetlifyCredentials,
    Provider,
)
from tools.exceptions import CredentialsError


# ─────────────────────────────────────────────────────────────────────────────
# Config file loading
# ─────────────────────────────────────────────────────────────────────────────


class TestLoadConfigFile:
    def test_returns_empty_dict_when_no_file(self, empty_store):
        assert empty_store.load_config_file() == {}
        assert empty_store.get_config_path() is None

    def test_local_file_wins_over_project_file(self, write_credentials, config_dirs):
        write_credentials({"netlify": {"token": "project"}}, location=1)
        store = write_credentials({"netlify": {"token": "local"}}, location=0)

        assert store.load_config_file()["netlify"]["token"] == "local"
        assert store.get_config_path() == config_dirs[0] / "credentials.json"

    def test_malformed_file_is_skipped(self, write_credentials):
        write_credentials({"netlify": {"token": "project"}}, location=1)
        store = write_credentials("{not json", location=0)

        assert store.load_config_file()["netlify"]["token"] == "project"

    def test_result_is_cached_until_cleared(self, write_credentials, config_dirs):
        store = write_credentials({"aws": {"region": "eu-west-1"}})
        first = store.load_config_file()

        (config_dirs[0] / "credentials.json").write_text('{"aws": {"region": "ap-south-1"}}')
        assert store.load_config_file() is first

        store.clear_cache()
        assert store.load_config_file()["aws"]["region"] == "ap-south-1"


# ─────────────────────────────────────────────────────────────────────────────
# Environment merging
# ─────────────────────────────────────────────────────────────────────────────


class TestEnvironmentPrecedence:
    def test_env_overrides_config(self, write_credentials):
        store = write_credentials(
            {"netlify": {"token": "from-file", "teamSlug": "file-team"}},
            environ={"NETLIFY_TOKEN": "from-env"},
        )
        record = store.get(Provider.NETLIFY)

        assert record == NetlifyCredentials(token="from-env", team_slug="file-team")

    def test_aws_env_overrides_config(self, write_credentials):
        store = write_credentials(
            {
                "aws": {
                    "region": "eu-west-1",
                    "accessKeyId": "FILEKEY",
                    "secretAccessKey": "file-secret",
                }
            },
            environ={"AWS_REGION": "ap-southeast-2", "AWS_ACCESS_KEY_ID": "ENVKEY"},
        )
        record = store.get(Provider.AWS)

        assert record.region == "ap-southeast-2"
        assert record.access_key_id == "ENVKEY"
        assert record.secret_access_key == "file-secret"

    def test_google_env_overrides_config(self, write_credentials):
        config = {"google": {"clientId": "file-id", "clientSecret": "file-secret"}}

        store = write_credentials(config, environ={"GMAIL_CLIENT_ID": "gmail-id"})
        record = store.get(Provider.GOOGLE)
        assert record.client_id == "gmail-id"
        assert record.client_secret == "file-secret"

        store = write_credentials(
            config, environ={"GOOGLE_CLIENT_ID": "google-id", "GMAIL_CLIENT_ID": "gmail-id"}
        )
        assert store.get(Provider.GOOGLE).client_id == "google-id"

    def test_empty_env_value_falls_through(self, write_credentials):
        store = write_credentials(
            {"netlify": {"token": "from-file"}}, environ={"NETLIFY_TOKEN": ""}
        )
        assert store.get("netlify").token == "from-file"

    def test_alternate_env_names_in_order(self, empty_store):
        store = CredentialStore(
            config_dirs=empty_store.config_dirs(),
            environ={"GMAIL_CLIENT_ID": "gmail-id", "GMAIL_CLIENT_SECRET": "gmail-secret"},
        )
        record = store.get("google")
        assert record.client_id == "gmail-id"
        assert record.has_oauth is True

        store = CredentialStore(
            config_dirs=empty_store.config_dirs(),
            environ={"GOOGLE_CLIENT_ID": "google-id", "GMAIL_CLIENT_ID": "gmail-id"},
        )
        assert store.get("google").client_id == "google-id"

    def test_get_env_value(self, empty_store):
        store = CredentialStore(config_dirs=empty_store.config_dirs(), environ={"B": "2"})
        assert store.get_env_value(["A", "B"]) == "2"
        assert store.get_env_value(["A"]) is None


# ─────────────────────────────────────────────────────────────────────────────
# Provider records
# ─────────────────────────────────────────────────────────────────────────────


class TestProviderRecords:
    def test_netlify_requires_token(self, empty_store):
        assert empty_store.get(Provider.NETLIFY) is None
        assert empty_store.has(Provider.NETLIFY) is False

    def test_aws_defaults_region(self, write_credentials):
        store = write_credentials({"aws": {"accessKeyId": "AK", "secretAccessKey": "SK"}})
        assert store.get(Provider.AWS) == AwsCredentials("AK", "SK", "us-east-1")
        assert store.has("aws") is True

    def test_aws_requires_both_keys(self, write_credentials):
        store = write_credentials({"aws": {"accessKeyId": "AK"}})
        assert store.get(Provider.AWS) is None
        assert store.has(Provider.AWS) is False

    def test_google_record_always_returned(self, empty_store):
        record = empty_store.get(Provider.GOOGLE)
        assert isinstance(record, GoogleCredentials)
        assert record.has_oauth is False
        assert record.has_service_account is False
        assert empty_store.has(Provider.GOOGLE) is False

    def test_google_service_account_resolved(self, write_credentials, config_dirs):
        key_dir = config_dirs[1] / "keys"
        key_dir.mkdir()
        (key_dir / "sa.json").write_text("{}")
        store = write_credentials(
            {
                "google": {
                    "serviceAccountKeyFile": "keys/sa.json",
                    "impersonateUser": "admin@example.com",
                    "domain": "example.com",
                }
            }
        )
        record = store.get(Provider.GOOGLE)

        assert record.service_account_key_path == key_dir / "sa.json"
        assert record.has_service_account is True
        assert record.impersonate_user == "admin@example.com"
        assert store.has(Provider.GOOGLE) is True
        assert record.to_dict()["has_service_account"] is True

    def test_google_missing_key_file(self, write_credentials):
        store = write_credentials({"google": {"serviceAccountKeyFile": "missing.json"}})
        record = store.get(Provider.GOOGLE)
        assert record.service_account_key_file == "missing.json"
        assert record.service_account_key_path is None
        assert record.has_service_account is False

    def test_unknown_provider_returns_raw_section(self, write_credentials):
        store = write_credentials({"stripe": {"key": "sk_test"}})
        assert store.get("stripe") == {"key": "sk_test"}
        assert store.has("stripe") is True
        assert store.get("other") is None
        assert store.has("other") is False

    def test_get_all(self, write_credentials):
        store = write_credentials({"netlify": {"token": "t"}})
        records = store.get_all()

        assert set(records) == {"netlify", "aws", "google"}
        assert records["netlify"].token == "t"
        assert records["aws"] is None


class TestRequire:
    def test_raises_with_guidance(self, empty_store):
        with pytest.raises(CredentialsError, match="NETLIFY_TOKEN"):
            empty_store.require(Provider.NETLIFY)

    def test_returns_record(self, write_credentials):
        store = write_credentials({"netlify": {"token": "t"}})
        assert store.require("netlify").token == "t"


class TestResolveKeyFilePath:
    def test_none_for_empty(self, empty_store):
        assert empty_store.resolve_key_file_path(None) is None
        assert empty_store.resolve_key_file_path("") is None

    def test_local_directory_first(self, empty_store, config_dirs):
        for d in config_dirs:
            (d / "key.json").write_text("{}")
        assert empty_store.resolve_key_file_path("key.json") == config_dirs[0] / "key.json"
