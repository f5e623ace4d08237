"""
Tool: Route53
Purpose: Hosted zone lookup and DNS record management on AWS Route53

Record writes are UPSERTs, so repeating a create with the same values is a
no-op on the AWS side. Deletes read the current record first because
Route53 requires the exact record set to remove it.

Usage:
    python -m tools.aws.route53 zones
    python -m tools.aws.route53 records example.com
    python -m tools.aws.route53 cname example.com app app-prod.up.railway.app --ttl 600
    python -m tools.aws.route53 a example.com @ 203.0.113.10 203.0.113.11
    python -m tools.aws.route53 delete example.com app CNAME

Dependencies:
    - boto3 (pip install boto3)
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from tools.credentials import AwsCredentials, CredentialStore, Provider, get_default_store
from tools.exceptions import (
    CredentialsError,
    HostedZoneNotFoundError,
    RecordNotFoundError,
    ToolkitError,
)

logger = logging.getLogger(__name__)


CHANGE_COMMENT = "Managed by workspace toolkit"
DEFAULT_TTL = 300


# ─────────────────────────────────────────────────────────────────────────────
# Data types
# ─────────────────────────────────────────────────────────────────────────────


@dataclass
class HostedZone:
    id: str
    name: str
    record_count: int | None = None
    comment: str | None = None

    @classmethod
    def from_api(cls, zone: dict[str, Any]) -> HostedZone:
        return cls(
            id=zone["Id"].replace("/hostedzone/", ""),
            name=zone["Name"],
            record_count=zone.get("ResourceRecordSetCount"),
            comment=(zone.get("Config") or {}).get("Comment"),
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class DnsRecord:
    name: str
    type: str
    ttl: int | None = None
    values: list[str] = field(default_factory=list)
    alias_target: dict[str, Any] | None = None

    @classmethod
    def from_api(cls, record: dict[str, Any]) -> DnsRecord:
        alias = record.get("AliasTarget")
        return cls(
            name=record["Name"],
            type=record["Type"],
            ttl=record.get("TTL"),
            values=[r["Value"] for r in record.get("ResourceRecords", [])],
            alias_target={
                "dns_name": alias["DNSName"],
                "hosted_zone_id": alias["HostedZoneId"],
                "evaluate_target_health": alias.get("EvaluateTargetHealth", False),
            }
            if alias
            else None,
        )

    def to_record_set(self) -> dict[str, Any]:
        """Render back into the Route53 ResourceRecordSet shape."""
        record_set: dict[str, Any] = {"Name": self.name, "Type": self.type}
        if self.alias_target:
            record_set["AliasTarget"] = {
                "DNSName": self.alias_target["dns_name"],
                "HostedZoneId": self.alias_target["hosted_zone_id"],
                "EvaluateTargetHealth": self.alias_target["evaluate_target_health"],
            }
        else:
            record_set["TTL"] = self.ttl
            record_set["ResourceRecords"] = [{"Value": v} for v in self.values]
        return record_set

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class ChangeResult:
    change_id: str
    status: str
    record: dict[str, Any]
    submitted_at: datetime | None = None

    @classmethod
    def from_api(cls, response: dict[str, Any], record: dict[str, Any]) -> ChangeResult:
        info = response["ChangeInfo"]
        return cls(
            change_id=info["Id"],
            status=info["Status"],
            submitted_at=info.get("SubmittedAt"),
            record=record,
        )

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        if self.submitted_at is not None:
            data["submitted_at"] = self.submitted_at.isoformat()
        return data


def _with_trailing_dot(name: str) -> str:
    return name if name.endswith(".") else f"{name}."


# ─────────────────────────────────────────────────────────────────────────────
# Client
# ─────────────────────────────────────────────────────────────────────────────


class Route53Client:
    """Thin wrapper over a boto3 Route53 client returning typed records."""

    def __init__(self, client: Any):
        self.client = client

    def list_hosted_zones(self) -> list[HostedZone]:
        paginator = self.client.get_paginator("list_hosted_zones")
        zones: list[HostedZone] = []
        for page in paginator.paginate():
            zones.extend(HostedZone.from_api(z) for z in page.get("HostedZones", []))
        return zones

    def get_hosted_zone_id(self, domain: str) -> str | None:
        """Exact match on zone name; a trailing dot is added to the domain if absent."""
        wanted = _with_trailing_dot(domain)
        for zone in self.list_hosted_zones():
            if zone.name == wanted:
                return zone.id
        return None

    def _require_zone(self, domain: str) -> str:
        zone_id = self.get_hosted_zone_id(domain)
        if not zone_id:
            raise HostedZoneNotFoundError(domain)
        return zone_id

    def list_records(self, hosted_zone_id: str, filter_name: str | None = None) -> list[DnsRecord]:
        """
        List record sets in a zone.

        With filter_name, returns the page of records starting at that name
        (Route53 orders record sets by name), which is enough to find one
        specific record.
        """
        if filter_name:
            response = self.client.list_resource_record_sets(
                HostedZoneId=hosted_zone_id, StartRecordName=filter_name
            )
            pages = [response]
        else:
            paginator = self.client.get_paginator("list_resource_record_sets")
            pages = paginator.paginate(HostedZoneId=hosted_zone_id)

        records: list[DnsRecord] = []
        for page in pages:
            records.extend(DnsRecord.from_api(r) for r in page.get("ResourceRecordSets", []))
        return records

    def _change(self, zone_id: str, action: str, record_set: dict[str, Any], comment: str) -> dict:
        logger.info(
            f"Route53 {action} {record_set['Type']} {record_set['Name']} in zone {zone_id}"
        )
        return self.client.change_resource_record_sets(
            HostedZoneId=zone_id,
            ChangeBatch={
                "Comment": comment,
                "Changes": [{"Action": action, "ResourceRecordSet": record_set}],
            },
        )

    def create_cname_record(
        self, domain: str, subdomain: str, target: str, ttl: int = DEFAULT_TTL
    ) -> ChangeResult:
        zone_id = self._require_zone(domain)
        record_name = f"{subdomain}.{domain}"

        response = self._change(
            zone_id,
            "UPSERT",
            {
                "Name": record_name,
                "Type": "CNAME",
                "TTL": ttl,
                "ResourceRecords": [{"Value": _with_trailing_dot(target)}],
            },
            CHANGE_COMMENT,
        )
        return ChangeResult.from_api(
            response, {"name": record_name, "type": "CNAME", "target": target, "ttl": ttl}
        )

    def create_a_record(
        self,
        domain: str,
        subdomain: str | None,
        ip_addresses: str | list[str],
        ttl: int = DEFAULT_TTL,
    ) -> ChangeResult:
        """Create or update an A record. Use '@' or an empty subdomain for the apex."""
        zone_id = self._require_zone(domain)
        ips = [ip_addresses] if isinstance(ip_addresses, str) else list(ip_addresses)
        record_name = f"{subdomain}.{domain}" if subdomain and subdomain != "@" else domain

        response = self._change(
            zone_id,
            "UPSERT",
            {
                "Name": record_name,
                "Type": "A",
                "TTL": ttl,
                "ResourceRecords": [{"Value": ip} for ip in ips],
            },
            CHANGE_COMMENT,
        )
        return ChangeResult.from_api(
            response, {"name": record_name, "type": "A", "values": ips, "ttl": ttl}
        )

    def delete_record(self, domain: str, subdomain: str, record_type: str) -> ChangeResult:
        zone_id = self._require_zone(domain)
        record_name = f"{subdomain}.{domain}"
        normalized = _with_trailing_dot(record_name)

        existing = next(
            (
                r
                for r in self.list_records(zone_id, record_name)
                if r.name == normalized and r.type == record_type
            ),
            None,
        )
        if existing is None:
            raise RecordNotFoundError(record_name, record_type)

        response = self._change(zone_id, "DELETE", existing.to_record_set(), CHANGE_COMMENT)
        return ChangeResult.from_api(response, {"name": record_name, "type": record_type})


def create_route53_client(
    config: dict[str, Any] | None = None,
    store: CredentialStore | None = None,
    client: Any = None,
) -> Route53Client:
    """
    Build a Route53Client.

    Args:
        config: Optional overrides: region, access_key_id, secret_access_key
        store: Credential store (defaults to the shared store)
        client: Pre-built boto3 client, skipping credential resolution

    Raises:
        CredentialsError: If no access key pair can be resolved
    """
    if client is not None:
        return Route53Client(client)

    config = config or {}
    store = store or get_default_store()
    creds = store.get(Provider.AWS)
    if not isinstance(creds, AwsCredentials):
        creds = None

    access_key_id = config.get("access_key_id") or (creds.access_key_id if creds else None)
    secret_access_key = config.get("secret_access_key") or (
        creds.secret_access_key if creds else None
    )
    region = config.get("region") or (creds.region if creds else None) or "us-east-1"

    if not access_key_id or not secret_access_key:
        raise CredentialsError(
            "AWS credentials required. Set AWS_ACCESS_KEY_ID/AWS_SECRET_ACCESS_KEY, "
            "pass them in config, or add them to .windsurf/config/credentials.json"
        )

    boto_client = boto3.client(
        "route53",
        region_name=region,
        aws_access_key_id=access_key_id,
        aws_secret_access_key=secret_access_key,
    )
    return Route53Client(boto_client)


# ─────────────────────────────────────────────────────────────────────────────
# CLI
# ─────────────────────────────────────────────────────────────────────────────


def _print(data: Any) -> None:
    print(json.dumps(data, indent=2, default=str))


def cmd_zones(route53: Route53Client, args) -> int:
    _print([z.to_dict() for z in route53.list_hosted_zones()])
    return 0


def cmd_records(route53: Route53Client, args) -> int:
    zone_id = route53.get_hosted_zone_id(args.domain)
    if not zone_id:
        raise HostedZoneNotFoundError(args.domain)
    _print([r.to_dict() for r in route53.list_records(zone_id, args.name)])
    return 0


def cmd_cname(route53: Route53Client, args) -> int:
    result = route53.create_cname_record(args.domain, args.subdomain, args.target, args.ttl)
    _print(result.to_dict())
    return 0


def cmd_a(route53: Route53Client, args) -> int:
    result = route53.create_a_record(args.domain, args.subdomain, args.ips, args.ttl)
    _print(result.to_dict())
    return 0


def cmd_delete(route53: Route53Client, args) -> int:
    result = route53.delete_record(args.domain, args.subdomain, args.type.upper())
    _print(result.to_dict())
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Route53 DNS management")
    parser.add_argument("--region", help="AWS region override")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    zones = subparsers.add_parser("zones", help="List hosted zones")
    zones.set_defaults(func=cmd_zones)

    records = subparsers.add_parser("records", help="List records in a domain's zone")
    records.add_argument("domain")
    records.add_argument("--name", help="Start listing at this record name")
    records.set_defaults(func=cmd_records)

    cname = subparsers.add_parser("cname", help="Create or update a CNAME record")
    cname.add_argument("domain")
    cname.add_argument("subdomain")
    cname.add_argument("target")
    cname.add_argument("--ttl", type=int, default=DEFAULT_TTL)
    cname.set_defaults(func=cmd_cname)

    a_record = subparsers.add_parser("a", help="Create or update an A record")
    a_record.add_argument("domain")
    a_record.add_argument("subdomain", help="Subdomain, or @ for the apex")
    a_record.add_argument("ips", nargs="+")
    a_record.add_argument("--ttl", type=int, default=DEFAULT_TTL)
    a_record.set_defaults(func=cmd_a)

    delete = subparsers.add_parser("delete", help="Delete a record")
    delete.add_argument("domain")
    delete.add_argument("subdomain")
    delete.add_argument("type", help="Record type (CNAME, A, ...)")
    delete.set_defaults(func=cmd_delete)

    return parser


COMMANDS = ("zones", "records", "cname", "a", "delete")


def _command_name(argv: list[str]) -> str | None:
    """First positional argument, skipping the value of --region."""
    args = iter(argv)
    for arg in args:
        if arg == "--region":
            next(args, None)
        elif not arg.startswith("-"):
            return arg
    return None


def main(argv: list[str] | None = None) -> int:
    from tools.logging_config import setup_logging

    setup_logging()
    argv = sys.argv[1:] if argv is None else argv
    parser = build_parser()

    command = _command_name(argv)
    if command and command not in COMMANDS:
        print(f"Unknown command: {command}", file=sys.stderr)
        return 1

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 0

    try:
        route53 = create_route53_client({"region": args.region} if args.region else None)
        return args.func(route53, args)
    except (ToolkitError, ClientError, BotoCoreError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except Exception as e:
        logger.debug(f"Unexpected failure in {args.command}", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
