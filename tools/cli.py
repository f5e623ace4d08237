#!/usr/bin/env python3
"""
Workspace Toolkit Command Line Interface

Main entry point for the `toolkit` command.

Usage:
    toolkit credentials          # Which providers are configured, and from where
    toolkit credentials --json   # Same, as JSON
    toolkit --version            # Show version
"""

import argparse
import json
import sys

from tools import __version__
from tools.credentials import GoogleCredentials, Provider, get_default_store


def cmd_version(args):
    """Show version information."""
    try:
        from importlib.metadata import PackageNotFoundError, version

        v = version("workspace-toolkit")
    except PackageNotFoundError:
        v = f"{__version__} (development)"

    print(f"Workspace Toolkit version {v}")


def credentials_report(store=None) -> dict:
    """Availability of each provider plus the config file in use."""
    store = store or get_default_store()
    config_path = store.get_config_path()

    providers = {}
    for provider in Provider:
        entry = {"available": store.has(provider)}
        record = store.get(provider)
        if isinstance(record, GoogleCredentials):
            entry["oauth"] = record.has_oauth
            entry["service_account"] = record.has_service_account
        providers[provider.value] = entry

    return {
        "config_path": str(config_path) if config_path else None,
        "searched": [str(p) for p in store.candidate_paths()],
        "providers": providers,
    }


def cmd_credentials(args, store=None):
    """Show credential availability per provider.

    Secrets are never printed; only whether each provider can be used.
    """
    report = credentials_report(store)

    if args.json:
        print(json.dumps(report, indent=2))
        return 0

    print("Credentials config:")
    if report["config_path"]:
        print(f"  {report['config_path']}")
    else:
        print("  not found (searched:)")
        for path in report["searched"]:
            print(f"    {path}")

    print("\nProviders:")
    for name, entry in report["providers"].items():
        mark = "✓" if entry["available"] else "✗"
        detail = ""
        if name == Provider.GOOGLE.value and entry["available"]:
            modes = [m for m in ("oauth", "service_account") if entry.get(m)]
            detail = f" ({', '.join(modes)})"
        print(f"  {mark} {name}{detail}")
    return 0


COMMANDS = ("credentials",)


def main(argv=None):
    """Main CLI entry point."""
    from tools.logging_config import setup_logging

    setup_logging()
    argv = sys.argv[1:] if argv is None else argv

    if argv and not argv[0].startswith("-") and argv[0] not in COMMANDS:
        print(f"Unknown command: {argv[0]}", file=sys.stderr)
        return 1

    parser = argparse.ArgumentParser(
        prog="toolkit",
        description="Workspace Toolkit - provider credentials and tooling",
    )
    parser.add_argument(
        "--version", "-V", action="store_true", help="Show version and exit"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Credentials subcommand
    credentials_parser = subparsers.add_parser(
        "credentials", help="Show which providers have usable credentials"
    )
    credentials_parser.add_argument(
        "--json", action="store_true", help="Output as JSON"
    )
    credentials_parser.set_defaults(func=cmd_credentials)

    args = parser.parse_args(argv)

    # Handle --version at top level
    if args.version:
        cmd_version(args)
        return 0

    # If no command given, show help
    if not args.command:
        parser.print_help()
        return 0

    try:
        return args.func(args)
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
