"""
Tool: System Administrator Orchestrator
Purpose: Workspace directory, Gmail aliases, Route53 DNS and Netlify hosting from one CLI

Google calls go through a service account impersonating the configured
workspace admin. DNS and hosting use the shared AWS and Netlify
credentials.

Usage:
    sysadmin                                  # configuration summary + commands
    sysadmin status
    sysadmin list-users
    sysadmin add-member team@example.com new.hire@example.com --role MANAGER
    sysadmin create-cname example.com www example.netlify.app
    sysadmin ensure-site marketing owner/marketing-site --branch main
    sysadmin set-env <site_id> API_URL=https://api.example.com

Dependencies:
    - python-dotenv (pip install python-dotenv)
    - google-api-python-client, google-auth (via tools.google)
    - boto3 (via tools.aws)
    - httpx (via tools.netlify)
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from tools import CREDENTIALS_DIR
from tools.aws.route53 import create_route53_client
from tools.credentials import CredentialStore, GoogleCredentials, Provider, get_default_store
from tools.exceptions import CredentialsError, HostedZoneNotFoundError
from tools.google.admin import create_admin_client, create_gmail_settings_client
from tools.google.auth import create_service_account_credentials, resolve_scopes
from tools.logging_config import get_logger
from tools.netlify.client import create_netlify_client, parse_assignments, to_jsonable

from roles.system_administrator.config import SystemAdministratorConfig, load_config

logger = get_logger(__name__)

COMMANDS = (
    "status",
    "list-users",
    "get-user",
    "list-groups",
    "get-group",
    "list-members",
    "add-member",
    "remove-member",
    "list-aliases",
    "add-alias",
    "list-zones",
    "list-records",
    "create-cname",
    "list-sites",
    "ensure-site",
    "add-domain",
    "provision-ssl",
    "set-env",
    "clear-env",
)


class SystemAdministrator:
    """
    Administrative operations bound to one configuration and credential store.

    Args:
        config: Role configuration (defaults to args/system_administrator.yaml)
        store: Credential store (defaults to the shared store)
        cwd: Directory that relative key file locations resolve against
    """

    def __init__(
        self,
        config: SystemAdministratorConfig | None = None,
        store: CredentialStore | None = None,
        cwd: str | Path | None = None,
    ):
        self.config = config or load_config()
        self.store = store or get_default_store()
        self.cwd = Path(cwd) if cwd else Path.cwd()

    # ==================== Key file ====================

    def key_file_candidates(self) -> list[Path]:
        key = self.config.key_file
        candidates = [(self.cwd / d / key.name) for d in key.search_dirs]
        candidates.append(CREDENTIALS_DIR / "service-accounts" / key.name)
        return candidates

    def find_key_file(self) -> Path | None:
        """Key from credentials.json first, then the configured fallback locations."""
        google = self.store.get(Provider.GOOGLE)
        if isinstance(google, GoogleCredentials) and google.service_account_key_path:
            return google.service_account_key_path

        for candidate in self.key_file_candidates():
            if candidate.is_file():
                return candidate.resolve()
        return None

    def _require_key_file(self) -> Path:
        key_file = self.find_key_file()
        if key_file is None:
            raise CredentialsError(
                "Service account key not found. Set google.serviceAccountKeyFile in "
                f"credentials.json or place {self.config.key_file.name} in "
                "credentials/service-accounts/"
            )
        return key_file

    # ==================== Clients ====================

    def admin_client(self):
        creds = create_service_account_credentials(
            self._require_key_file(),
            resolve_scopes(self.config.scopes.admin),
            self.config.impersonate_user,
        )
        return create_admin_client(creds)

    def gmail_settings_client(self, impersonate_user: str | None = None):
        creds = create_service_account_credentials(
            self._require_key_file(),
            resolve_scopes(self.config.scopes.gmail_settings),
            impersonate_user or self.config.impersonate_user,
        )
        return create_gmail_settings_client(creds)

    def route53(self):
        return create_route53_client(store=self.store)

    def netlify(self):
        return create_netlify_client(store=self.store)

    # ==================== Status ====================

    def show_config(self) -> dict[str, Any]:
        key_file = self.find_key_file()
        return {
            "domain": self.config.domain,
            "service_account": self.config.service_account.email,
            "impersonate_user": self.config.impersonate_user,
            "assistant_email": self.config.assistant_email,
            "key_file_found": key_file is not None,
            "key_file_path": str(key_file) if key_file else None,
            "credentials": {p.value: self.store.has(p) for p in Provider},
        }

    # ==================== Users and groups ====================

    def list_users(self) -> list[dict[str, Any]]:
        return self.admin_client().list_users(self.config.domain)

    def get_user(self, email: str) -> dict[str, Any]:
        return self.admin_client().get_user(email)

    def list_groups(self) -> list[dict[str, Any]]:
        return self.admin_client().list_groups(self.config.domain)

    def get_group(self, email: str) -> dict[str, Any]:
        return self.admin_client().get_group(email)

    def list_members(self, group_email: str) -> list[dict[str, Any]]:
        return self.admin_client().list_group_members(group_email)

    def add_member(self, group_email: str, member_email: str, role: str = "MEMBER") -> dict[str, Any]:
        return self.admin_client().add_group_member(group_email, member_email, role)

    def remove_member(self, group_email: str, member_email: str) -> dict[str, Any]:
        self.admin_client().remove_group_member(group_email, member_email)
        return {"removed": member_email, "group": group_email}

    # ==================== Gmail aliases ====================

    def list_aliases(self, user_email: str) -> list[dict[str, Any]]:
        return self.gmail_settings_client(user_email).list_send_as_aliases(user_email)

    def add_alias(
        self, user_email: str, alias_email: str, display_name: str | None = None
    ) -> dict[str, Any]:
        client = self.gmail_settings_client(user_email)
        return client.add_send_as_alias(user_email, alias_email, display_name, treat_as_alias=True)

    # ==================== DNS ====================

    def list_zones(self) -> list[Any]:
        return self.route53().list_hosted_zones()

    def list_records(self, domain: str) -> list[Any]:
        route53 = self.route53()
        zone_id = route53.get_hosted_zone_id(domain)
        if not zone_id:
            raise HostedZoneNotFoundError(domain)
        return route53.list_records(zone_id)

    def create_cname(self, domain: str, subdomain: str, target: str, ttl: int = 300) -> Any:
        return self.route53().create_cname_record(domain, subdomain, target, ttl)

    # ==================== Hosting ====================

    async def list_sites(self) -> list[Any]:
        async with self.netlify() as netlify:
            return await netlify.list_sites()

    async def ensure_site(
        self,
        name: str,
        repo: str,
        branch: str = "main",
        build_command: str | None = None,
        publish_dir: str | None = None,
    ) -> dict[str, Any]:
        async with self.netlify() as netlify:
            return await netlify.ensure_site(name, repo, branch, build_command, publish_dir)

    async def add_domain(self, site_id: str, domain: str) -> dict[str, Any]:
        async with self.netlify() as netlify:
            return await netlify.add_custom_domain(site_id, domain)

    async def provision_ssl(self, site_id: str) -> dict[str, Any]:
        async with self.netlify() as netlify:
            return await netlify.provision_ssl(site_id)

    async def set_env(self, site_id: str, variables: dict[str, str]) -> list[Any]:
        async with self.netlify() as netlify:
            return await netlify.set_env_vars(site_id, variables)

    async def clear_env(self, site_id: str, keys: list[str]) -> list[Any]:
        async with self.netlify() as netlify:
            return await netlify.clear_env_vars(site_id, keys)


# ─────────────────────────────────────────────────────────────────────────────
# CLI
# ─────────────────────────────────────────────────────────────────────────────


def _run_command(admin: SystemAdministrator, args: argparse.Namespace) -> Any:
    command = args.command
    if command == "status":
        return admin.show_config()
    if command == "list-users":
        return admin.list_users()
    if command == "get-user":
        return admin.get_user(args.email)
    if command == "list-groups":
        return admin.list_groups()
    if command == "get-group":
        return admin.get_group(args.email)
    if command == "list-members":
        return admin.list_members(args.group)
    if command == "add-member":
        return admin.add_member(args.group, args.member, args.role)
    if command == "remove-member":
        return admin.remove_member(args.group, args.member)
    if command == "list-aliases":
        return admin.list_aliases(args.user)
    if command == "add-alias":
        return admin.add_alias(args.user, args.alias, args.display_name)
    if command == "list-zones":
        return admin.list_zones()
    if command == "list-records":
        return admin.list_records(args.domain)
    if command == "create-cname":
        return admin.create_cname(args.domain, args.subdomain, args.target, args.ttl)
    if command == "list-sites":
        return asyncio.run(admin.list_sites())
    if command == "ensure-site":
        return asyncio.run(
            admin.ensure_site(args.name, args.repo, args.branch, args.build_command, args.publish_dir)
        )
    if command == "add-domain":
        return asyncio.run(admin.add_domain(args.site_id, args.domain))
    if command == "provision-ssl":
        return asyncio.run(admin.provision_ssl(args.site_id))
    if command == "set-env":
        return asyncio.run(admin.set_env(args.site_id, parse_assignments(args.pairs)))
    if command == "clear-env":
        return asyncio.run(admin.clear_env(args.site_id, args.keys))
    raise ValueError(f"Unknown command: {command}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sysadmin", description="System administrator orchestrator"
    )
    subparsers = parser.add_subparsers(dest="command", title="commands", metavar="<command>")

    subparsers.add_parser("status", help="Show configuration status")

    # Users and groups
    subparsers.add_parser("list-users", help="List all users in the domain")
    get_user = subparsers.add_parser("get-user", help="Get user details")
    get_user.add_argument("email")
    subparsers.add_parser("list-groups", help="List all groups in the domain")
    get_group = subparsers.add_parser("get-group", help="Get group details")
    get_group.add_argument("email")
    members = subparsers.add_parser("list-members", help="List group members")
    members.add_argument("group")
    add_member = subparsers.add_parser("add-member", help="Add a member to a group")
    add_member.add_argument("group")
    add_member.add_argument("member")
    add_member.add_argument("--role", default="MEMBER", help="OWNER, MANAGER or MEMBER")
    remove_member = subparsers.add_parser("remove-member", help="Remove a member from a group")
    remove_member.add_argument("group")
    remove_member.add_argument("member")

    # Gmail
    aliases = subparsers.add_parser("list-aliases", help="List send-as aliases")
    aliases.add_argument("user")
    add_alias = subparsers.add_parser("add-alias", help="Add a send-as alias")
    add_alias.add_argument("user")
    add_alias.add_argument("alias")
    add_alias.add_argument("display_name", nargs="?")

    # DNS
    subparsers.add_parser("list-zones", help="List Route53 hosted zones")
    records = subparsers.add_parser("list-records", help="List DNS records for a domain")
    records.add_argument("domain")
    cname = subparsers.add_parser("create-cname", help="Create or update a CNAME record")
    cname.add_argument("domain")
    cname.add_argument("subdomain")
    cname.add_argument("target")
    cname.add_argument("--ttl", type=int, default=300)

    # Hosting
    subparsers.add_parser("list-sites", help="List Netlify sites")
    ensure = subparsers.add_parser("ensure-site", help="Create a GitHub-linked site unless it exists")
    ensure.add_argument("name")
    ensure.add_argument("repo", help="GitHub repository (owner/name)")
    ensure.add_argument("--branch", default="main")
    ensure.add_argument("--build-command")
    ensure.add_argument("--publish-dir")
    domain = subparsers.add_parser("add-domain", help="Attach a custom domain to a site")
    domain.add_argument("site_id")
    domain.add_argument("domain")
    ssl = subparsers.add_parser("provision-ssl", help="Provision an SSL certificate")
    ssl.add_argument("site_id")
    set_env = subparsers.add_parser("set-env", help="Create or update site environment variables")
    set_env.add_argument("site_id")
    set_env.add_argument("pairs", nargs="+", metavar="KEY=VALUE")
    clear_env = subparsers.add_parser("clear-env", help="Delete site environment variables")
    clear_env.add_argument("site_id")
    clear_env.add_argument("keys", nargs="+")

    return parser


def print_summary(admin: SystemAdministrator, parser: argparse.ArgumentParser) -> None:
    config = admin.show_config()
    print("System Administrator Orchestrator\n")
    print(f"Domain: {config['domain']}")
    print(f"Service Account: {config['service_account'] or 'not configured'}")
    print(f"Impersonate User: {config['impersonate_user']}")
    print(f"Assistant Email: {config['assistant_email']}")
    print(f"Key File: {config['key_file_path'] or 'NOT FOUND'}")
    for provider, available in config["credentials"].items():
        print(f"{provider.capitalize()} Credentials: {'available' if available else 'not configured'}")
    print()
    parser.print_help()


def main(argv: list[str] | None = None) -> int:
    from tools.logging_config import setup_logging

    load_dotenv()
    setup_logging()
    argv = sys.argv[1:] if argv is None else argv
    parser = build_parser()

    if argv and not argv[0].startswith("-") and argv[0] not in COMMANDS:
        print(f"Unknown command: {argv[0]}", file=sys.stderr)
        return 1

    args = parser.parse_args(argv)

    try:
        admin = SystemAdministrator()
        if not args.command:
            print_summary(admin, parser)
            return 0
        result = _run_command(admin, args)
    except Exception as e:
        logger.debug("command_failed", command=args.command, error=str(e))
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(json.dumps(to_jsonable(result), indent=2, default=str))
    return 0


if __name__ == "__main__":
    sys.exit(main())
