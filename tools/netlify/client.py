"""
Tool: Netlify Client
Purpose: Site, custom domain, SSL and environment variable management via the Netlify API

Mutating operations that have a natural "already done" state check it first
and return {"skipped": True, ...} instead of repeating the change:
    - ensure_site: a site with the same name exists
    - add_custom_domain / add_domain_alias: domain already attached
    - provision_ssl: certificate state is already "provisioned"

Usage:
    python -m tools.netlify.client sites
    python -m tools.netlify.client ensure-site my-app org/my-app --branch main
    python -m tools.netlify.client add-domain <site-id> app.example.com
    python -m tools.netlify.client provision-ssl <site-id>
    python -m tools.netlify.client set-env <site-id> API_URL=https://api.example.com
    python -m tools.netlify.client clear-env <site-id> OLD_KEY OTHER_KEY

Dependencies:
    - httpx (pip install httpx)
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from dataclasses import asdict, dataclass, field
from typing import Any

import httpx

from tools.credentials import CredentialStore, NetlifyCredentials, Provider, get_default_store
from tools.exceptions import CredentialsError, CustomDomainError, NetlifyAPIError, ToolkitError
from tools.logging_config import get_logger

logger = get_logger(__name__)


NETLIFY_API_URL = "https://api.netlify.com/api/v1"
SSL_PROVISIONED = "provisioned"
ENV_CONTEXT_ALL = "all"


# ─────────────────────────────────────────────────────────────────────────────
# Data types
# ─────────────────────────────────────────────────────────────────────────────


@dataclass
class Site:
    id: str
    name: str
    url: str | None = None
    ssl_url: str | None = None
    admin_url: str | None = None
    custom_domain: str | None = None
    domain_aliases: list[str] = field(default_factory=list)
    account_id: str | None = None
    repo_url: str | None = None
    branch: str | None = None
    build_command: str | None = None
    publish_dir: str | None = None
    ssl: bool | None = None
    force_ssl: bool | None = None
    created_at: str | None = None
    updated_at: str | None = None

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> Site:
        build = data.get("build_settings") or {}
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            url=data.get("url"),
            ssl_url=data.get("ssl_url"),
            admin_url=data.get("admin_url"),
            custom_domain=data.get("custom_domain"),
            domain_aliases=list(data.get("domain_aliases") or []),
            account_id=data.get("account_id"),
            repo_url=build.get("repo_url"),
            branch=build.get("repo_branch") or build.get("branch"),
            build_command=build.get("cmd"),
            publish_dir=build.get("dir"),
            ssl=data.get("ssl"),
            force_ssl=data.get("force_ssl"),
            created_at=data.get("created_at"),
            updated_at=data.get("updated_at"),
        )

    @property
    def default_url(self) -> str:
        return f"{self.name}.netlify.app"

    def has_domain(self, domain: str) -> bool:
        return self.custom_domain == domain or domain in self.domain_aliases

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["default_url"] = self.default_url
        return data


@dataclass
class SslCertificate:
    state: str | None = None
    domains: list[str] = field(default_factory=list)
    expires_at: str | None = None

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> SslCertificate:
        return cls(
            state=data.get("state"),
            domains=list(data.get("domains") or []),
            expires_at=data.get("expires_at"),
        )

    @property
    def provisioned(self) -> bool:
        return self.state == SSL_PROVISIONED

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class EnvVarResult:
    key: str
    status: str
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {k: v for k, v in asdict(self).items() if v is not None}


# ─────────────────────────────────────────────────────────────────────────────
# Client
# ─────────────────────────────────────────────────────────────────────────────


class NetlifyClient:
    """
    Async client for the Netlify REST API.

    Args:
        token: Personal access token
        team_slug: Team (account) slug; new sites are created in this team when set
        base_url: API root
        transport: Optional httpx transport (used by tests)
    """

    def __init__(
        self,
        token: str,
        team_slug: str | None = None,
        base_url: str = NETLIFY_API_URL,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.token = token
        self.team_slug = team_slug
        self.base_url = base_url
        self._transport = transport
        self._http: httpx.AsyncClient | None = None

    async def __aenter__(self) -> NetlifyClient:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    def _get_http(self) -> httpx.AsyncClient:
        if self._http is None:
            self._http = httpx.AsyncClient(
                base_url=self.base_url,
                headers={
                    "Authorization": f"Bearer {self.token}",
                    "Content-Type": "application/json",
                },
                timeout=30.0,
                transport=self._transport,
            )
        return self._http

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._http is not None:
            await self._http.aclose()
            self._http = None

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        response = await self._get_http().request(method, path, **kwargs)
        if response.is_error:
            try:
                detail = response.json().get("message") or response.text
            except ValueError:
                detail = response.text
            raise NetlifyAPIError(
                f"Netlify API {method} {path} failed ({response.status_code}): {detail}",
                status_code=response.status_code,
            )
        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    # ---------------------------------------------------------------------
    # Sites
    # ---------------------------------------------------------------------

    async def list_sites(self) -> list[Site]:
        data = await self._request("GET", "/sites")
        return [Site.from_api(s) for s in data or []]

    async def get_site(self, site_id: str) -> Site:
        """Get a site by ID or by its netlify.app hostname."""
        return Site.from_api(await self._request("GET", f"/sites/{site_id}"))

    async def find_site_by_name(self, name: str) -> Site | None:
        for site in await self.list_sites():
            if site.name == name:
                return site
        return None

    async def create_site(
        self,
        name: str,
        repo: str,
        branch: str = "main",
        build_command: str | None = None,
        publish_dir: str | None = None,
    ) -> Site:
        """Create a site linked to a private GitHub repository (owner/name)."""
        repo_settings: dict[str, Any] = {
            "provider": "github",
            "repo": repo,
            "private": True,
            "branch": branch,
        }
        if build_command:
            repo_settings["cmd"] = build_command
        if publish_dir:
            repo_settings["dir"] = publish_dir

        path = f"/{self.team_slug}/sites" if self.team_slug else "/sites"
        logger.info(f"Creating Netlify site {name} from {repo}@{branch}")
        data = await self._request("POST", path, json={"name": name, "repo": repo_settings})
        return Site.from_api(data)

    async def ensure_site(
        self,
        name: str,
        repo: str,
        branch: str = "main",
        build_command: str | None = None,
        publish_dir: str | None = None,
    ) -> dict[str, Any]:
        existing = await self.find_site_by_name(name)
        if existing is not None:
            logger.info(f"Netlify site {name} already exists, skipping create")
            return {"skipped": True, "site": existing}

        site = await self.create_site(name, repo, branch, build_command, publish_dir)
        return {"skipped": False, "site": site}

    async def update_site(self, site_id: str, settings: dict[str, Any]) -> Site:
        return Site.from_api(await self._request("PATCH", f"/sites/{site_id}", json=settings))

    async def delete_site(self, site_id: str) -> None:
        logger.info(f"Deleting Netlify site {site_id}")
        await self._request("DELETE", f"/sites/{site_id}")

    # ---------------------------------------------------------------------
    # Domains
    # ---------------------------------------------------------------------

    async def add_domain_alias(self, site_id: str, domain: str) -> dict[str, Any]:
        site = await self.get_site(site_id)
        if site.has_domain(domain):
            return {"skipped": True, "site": site}

        aliases = [*site.domain_aliases, domain]
        updated = await self.update_site(site_id, {"domain_aliases": aliases})
        return {"skipped": False, "alias": True, "site": updated}

    async def add_custom_domain(self, site_id: str, domain: str) -> dict[str, Any]:
        """
        Attach a custom domain to a site.

        Sets custom_domain (with force_ssl) unless the domain is already the
        custom domain or an alias. When Netlify rejects the update as
        unprocessable (typically the site already has a different primary
        domain), the domain is appended to domain_aliases instead.

        Raises:
            CustomDomainError: If both the update and the alias fallback fail
        """
        site = await self.get_site(site_id)
        if site.has_domain(domain):
            logger.info(f"Domain {domain} already attached to {site.name}, skipping")
            return {"skipped": True, "site": site}

        try:
            updated = await self.update_site(
                site_id, {"custom_domain": domain, "force_ssl": True}
            )
            return {"skipped": False, "alias": False, "site": updated}
        except NetlifyAPIError as e:
            if not e.is_unprocessable:
                raise
            logger.warning(f"custom_domain update rejected for {domain}, adding as alias: {e}")
            try:
                updated = await self.update_site(
                    site_id, {"domain_aliases": [*site.domain_aliases, domain]}
                )
            except NetlifyAPIError as fallback_error:
                raise CustomDomainError(domain, e, fallback_error) from fallback_error
            return {"skipped": False, "alias": True, "site": updated}

    # ---------------------------------------------------------------------
    # SSL
    # ---------------------------------------------------------------------

    async def get_ssl_status(self, site_id: str) -> SslCertificate:
        """Current certificate for a site; state is None when none has been issued."""
        try:
            data = await self._request("GET", f"/sites/{site_id}/ssl")
        except NetlifyAPIError as e:
            if e.status_code == 404:
                return SslCertificate()
            raise
        return SslCertificate.from_api(data or {})

    async def provision_ssl(self, site_id: str) -> dict[str, Any]:
        """Provision a certificate. Requires the custom domain's DNS to point at Netlify."""
        current = await self.get_ssl_status(site_id)
        if current.provisioned:
            logger.info(f"SSL already provisioned for {site_id}, skipping")
            return {"skipped": True, "certificate": current}

        data = await self._request("POST", f"/sites/{site_id}/ssl")
        return {"skipped": False, "certificate": SslCertificate.from_api(data or {})}

    # ---------------------------------------------------------------------
    # Environment variables
    # ---------------------------------------------------------------------

    async def _account_id(self, site_id: str) -> str:
        site = await self.get_site(site_id)
        if not site.account_id:
            raise NetlifyAPIError(f"Site {site_id} has no account_id")
        return site.account_id

    async def get_env_vars(self, site_id: str) -> list[dict[str, Any]]:
        account_id = await self._account_id(site_id)
        data = await self._request(
            "GET", f"/accounts/{account_id}/env", params={"site_id": site_id}
        )
        return [{"key": env["key"], "values": env.get("values", [])} for env in data or []]

    async def set_env_vars(self, site_id: str, variables: dict[str, str]) -> list[EnvVarResult]:
        """Create each variable, updating its value instead when it already exists."""
        account_id = await self._account_id(site_id)
        params = {"site_id": site_id}
        results: list[EnvVarResult] = []

        for key, value in variables.items():
            try:
                await self._request(
                    "POST",
                    f"/accounts/{account_id}/env",
                    params=params,
                    json=[{"key": key, "values": [{"value": value, "context": ENV_CONTEXT_ALL}]}],
                )
                results.append(EnvVarResult(key, "created"))
                continue
            except NetlifyAPIError as e:
                logger.debug(f"Create of {key} failed, trying update: {e}")

            try:
                await self._request(
                    "PATCH",
                    f"/accounts/{account_id}/env/{key}",
                    params=params,
                    json={"value": value, "context": ENV_CONTEXT_ALL},
                )
                results.append(EnvVarResult(key, "updated"))
            except NetlifyAPIError as e:
                results.append(EnvVarResult(key, "error", str(e)))

        return results

    async def clear_env_vars(self, site_id: str, keys: list[str]) -> list[EnvVarResult]:
        """Delete variables one at a time; failures are reported per key."""
        account_id = await self._account_id(site_id)
        results: list[EnvVarResult] = []
        for key in keys:
            try:
                await self._request(
                    "DELETE", f"/accounts/{account_id}/env/{key}", params={"site_id": site_id}
                )
                results.append(EnvVarResult(key, "deleted"))
            except NetlifyAPIError as e:
                results.append(EnvVarResult(key, "error", str(e)))
        return results


def create_netlify_client(
    config: dict[str, Any] | None = None,
    store: CredentialStore | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> NetlifyClient:
    """
    Build a NetlifyClient from config overrides (token, team_slug) and stored credentials.

    Raises:
        CredentialsError: If no token can be resolved
    """
    config = config or {}
    store = store or get_default_store()
    creds = store.get(Provider.NETLIFY)
    if not isinstance(creds, NetlifyCredentials):
        creds = None

    token = config.get("token") or (creds.token if creds else None)
    team_slug = config.get("team_slug") or (creds.team_slug if creds else None)

    if not token:
        raise CredentialsError(
            "Netlify token required. Set NETLIFY_TOKEN, pass token in config, "
            "or add it to .windsurf/config/credentials.json"
        )
    return NetlifyClient(token, team_slug=team_slug, transport=transport)


# ─────────────────────────────────────────────────────────────────────────────
# CLI
# ─────────────────────────────────────────────────────────────────────────────


def to_jsonable(value: Any) -> Any:
    if hasattr(value, "to_dict"):
        return value.to_dict()
    if isinstance(value, dict):
        return {k: to_jsonable(v) for k, v in value.items()}
    if isinstance(value, list):
        return [to_jsonable(v) for v in value]
    return value


def parse_assignments(pairs: list[str]) -> dict[str, str]:
    """Parse KEY=VALUE arguments."""
    variables = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise ValueError(f"Expected KEY=VALUE, got: {pair}")
        variables[key] = value
    return variables


async def _run(args) -> Any:
    async with create_netlify_client() as netlify:
        if args.command == "sites":
            return await netlify.list_sites()
        if args.command == "site":
            return await netlify.get_site(args.site_id)
        if args.command == "ensure-site":
            return await netlify.ensure_site(
                args.name, args.repo, args.branch, args.build_command, args.publish_dir
            )
        if args.command == "add-domain":
            return await netlify.add_custom_domain(args.site_id, args.domain)
        if args.command == "provision-ssl":
            return await netlify.provision_ssl(args.site_id)
        if args.command == "env":
            return await netlify.get_env_vars(args.site_id)
        if args.command == "set-env":
            return await netlify.set_env_vars(args.site_id, parse_assignments(args.pairs))
        if args.command == "clear-env":
            return await netlify.clear_env_vars(args.site_id, args.keys)
        if args.command == "delete-site":
            await netlify.delete_site(args.site_id)
            return {"deleted": args.site_id}
    raise ValueError(f"Unknown command: {args.command}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Netlify site management")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    subparsers.add_parser("sites", help="List sites")

    site = subparsers.add_parser("site", help="Show a site")
    site.add_argument("site_id")

    ensure = subparsers.add_parser("ensure-site", help="Create a GitHub-linked site unless it exists")
    ensure.add_argument("name")
    ensure.add_argument("repo", help="GitHub repository (owner/name)")
    ensure.add_argument("--branch", default="main")
    ensure.add_argument("--build-command")
    ensure.add_argument("--publish-dir")

    domain = subparsers.add_parser("add-domain", help="Attach a custom domain")
    domain.add_argument("site_id")
    domain.add_argument("domain")

    ssl = subparsers.add_parser("provision-ssl", help="Provision an SSL certificate")
    ssl.add_argument("site_id")

    env = subparsers.add_parser("env", help="List environment variables")
    env.add_argument("site_id")

    set_env = subparsers.add_parser("set-env", help="Create or update environment variables")
    set_env.add_argument("site_id")
    set_env.add_argument("pairs", nargs="+", metavar="KEY=VALUE")

    clear_env = subparsers.add_parser("clear-env", help="Delete environment variables")
    clear_env.add_argument("site_id")
    clear_env.add_argument("keys", nargs="+")

    delete = subparsers.add_parser("delete-site", help="Delete a site")
    delete.add_argument("site_id")

    return parser


COMMANDS = (
    "sites",
    "site",
    "ensure-site",
    "add-domain",
    "provision-ssl",
    "env",
    "set-env",
    "clear-env",
    "delete-site",
)


def main(argv: list[str] | None = None) -> int:
    from tools.logging_config import setup_logging

    setup_logging()
    argv = sys.argv[1:] if argv is None else argv
    parser = build_parser()

    if argv and not argv[0].startswith("-") and argv[0] not in COMMANDS:
        print(f"Unknown command: {argv[0]}", file=sys.stderr)
        return 1

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 0

    try:
        result = asyncio.run(_run(args))
    except (ToolkitError, ValueError, httpx.HTTPError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except Exception as e:
        logger.debug(f"Unexpected failure in {args.command}", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(json.dumps(to_jsonable(result), indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
