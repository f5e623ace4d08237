"""
Tool: Senior Developer Orchestrator
Purpose: Detect the project toolchain and run lint, type checks and tests through it

Node projects are recognized by package.json (scripts run through the
detected package manager), Python projects by pyproject.toml (ruff, mypy
and pytest when configured).

Usage:
    senior-dev                    # project summary + commands
    senior-dev detect
    senior-dev lint --fix
    senior-dev check              # lint + typecheck + test
    senior-dev excel report.xlsx "Q1 Sales"
    senior-dev pdf scan.pdf --ocr
"""

from __future__ import annotations

import argparse
import json
import subprocess
import sys
import tomllib
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

from tools.logging_config import get_logger

logger = get_logger(__name__)

COMMANDS = ("detect", "lint", "typecheck", "test", "check", "git", "excel", "pdf")

_NODE_FRAMEWORKS = ("next", "react", "vue", "express")
_LOCKFILES = (
    ("pnpm-lock.yaml", "pnpm"),
    ("yarn.lock", "yarn"),
    ("package-lock.json", "npm"),
)
_PYTHON_LOCKFILES = (
    ("uv.lock", "uv"),
    ("poetry.lock", "poetry"),
)


@dataclass
class ProjectInfo:
    type: str = "unknown"
    package_manager: str | None = None
    has_typescript: bool = False
    has_lint: bool = False
    has_typecheck: bool = False
    has_test: bool = False
    has_prettier: bool = False
    framework: str | None = None
    scripts: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


# ─────────────────────────────────────────────────────────────────────────────
# Detection
# ─────────────────────────────────────────────────────────────────────────────


def _detect_node(cwd: Path, package_json: Path) -> ProjectInfo:
    with open(package_json, encoding="utf-8") as f:
        pkg = json.load(f)

    info = ProjectInfo(type="node")
    for lockfile, manager in _LOCKFILES:
        if (cwd / lockfile).exists():
            info.package_manager = manager
            break

    scripts = pkg.get("scripts") or {}
    info.scripts = sorted(scripts)
    info.has_lint = "lint" in scripts
    info.has_test = "test" in scripts
    info.has_prettier = "format" in scripts or "prettier" in scripts

    deps = {**(pkg.get("dependencies") or {}), **(pkg.get("devDependencies") or {})}
    info.has_typescript = "typescript" in deps or (cwd / "tsconfig.json").exists()
    info.has_typecheck = info.has_typescript
    info.framework = next((name for name in _NODE_FRAMEWORKS if name in deps), None)
    return info


def _mentions(pyproject: dict[str, Any], tool: str) -> bool:
    if tool in (pyproject.get("tool") or {}):
        return True
    project = pyproject.get("project") or {}
    requirements = list(project.get("dependencies") or [])
    for extra in (project.get("optional-dependencies") or {}).values():
        requirements.extend(extra)
    for group in (pyproject.get("dependency-groups") or {}).values():
        requirements.extend(r for r in group if isinstance(r, str))
    return any(r.lower().startswith(tool) for r in requirements)


def _detect_python(cwd: Path, pyproject_path: Path) -> ProjectInfo:
    with open(pyproject_path, "rb") as f:
        pyproject = tomllib.load(f)

    info = ProjectInfo(type="python", package_manager="pip")
    for lockfile, manager in _PYTHON_LOCKFILES:
        if (cwd / lockfile).exists():
            info.package_manager = manager
            break

    info.has_lint = _mentions(pyproject, "ruff")
    info.has_typecheck = _mentions(pyproject, "mypy")
    info.has_test = _mentions(pyproject, "pytest") or (cwd / "tests").is_dir()
    return info


def detect_project(cwd: str | Path | None = None) -> ProjectInfo:
    cwd = Path(cwd) if cwd else Path.cwd()
    if (cwd / "package.json").is_file():
        return _detect_node(cwd, cwd / "package.json")
    if (cwd / "pyproject.toml").is_file():
        return _detect_python(cwd, cwd / "pyproject.toml")
    return ProjectInfo()


# ─────────────────────────────────────────────────────────────────────────────
# Commands
# ─────────────────────────────────────────────────────────────────────────────


def run(command: list[str], silent: bool = False, cwd: str | Path | None = None) -> dict[str, Any]:
    """Run a command, streaming output unless silent."""
    try:
        result = subprocess.run(
            command,
            cwd=str(cwd) if cwd else None,
            capture_output=silent,
            text=True,
        )
    except OSError as e:
        return {"success": False, "error": str(e), "output": None}

    if result.returncode != 0:
        return {
            "success": False,
            "error": f"{' '.join(command)} exited with {result.returncode}",
            "output": result.stdout,
        }
    return {"success": True, "output": result.stdout}


def _script(project: ProjectInfo, name: str, extra: list[str]) -> list[str]:
    command = [project.package_manager or "npm", "run", name]
    return command + (["--", *extra] if extra else [])


def _python_tool(project: ProjectInfo, tool: list[str]) -> list[str]:
    if project.package_manager in ("uv", "poetry"):
        return [project.package_manager, "run", *tool]
    return tool


def lint_command(project: ProjectInfo, fix: bool = False) -> list[str] | None:
    if not project.has_lint:
        return None
    if project.type == "node":
        return _script(project, "lint", ["--fix"] if fix else [])
    return _python_tool(project, ["ruff", "check", ".", *(["--fix"] if fix else [])])


def typecheck_command(project: ProjectInfo) -> list[str] | None:
    if not project.has_typecheck:
        return None
    if project.type == "node":
        return ["npx", "tsc", "--noEmit"]
    return _python_tool(project, ["mypy", "."])


def tests_command(project: ProjectInfo, watch: bool = False) -> list[str] | None:
    if not project.has_test:
        return None
    if project.type == "node":
        return _script(project, "test", ["--watch"] if watch else [])
    if watch:
        return None
    return _python_tool(project, ["pytest"])


def _run_step(command: list[str] | None, missing: str, cwd: Path | None) -> dict[str, Any]:
    if command is None:
        print(missing)
        return {"success": False, "error": missing}
    print(f"Running: {' '.join(command)}")
    return run(command, cwd=cwd)


def lint(fix: bool = False, cwd: str | Path | None = None) -> dict[str, Any]:
    cwd = Path(cwd) if cwd else None
    return _run_step(lint_command(detect_project(cwd), fix), "No lint configuration found", cwd)


def typecheck(cwd: str | Path | None = None) -> dict[str, Any]:
    cwd = Path(cwd) if cwd else None
    return _run_step(typecheck_command(detect_project(cwd)), "Type checking not configured", cwd)


def run_tests(watch: bool = False, cwd: str | Path | None = None) -> dict[str, Any]:
    cwd = Path(cwd) if cwd else None
    project = detect_project(cwd)
    missing = (
        "Watch mode is not available for this project"
        if watch and project.type == "python"
        else "No test configuration found"
    )
    return _run_step(tests_command(project, watch), missing, cwd)


def check(cwd: str | Path | None = None) -> dict[str, dict[str, Any]]:
    """Lint, type check and test in sequence; every step runs even after a failure."""
    print("=== Running all quality checks ===\n")
    results: dict[str, dict[str, Any]] = {}

    print("--- Lint ---")
    results["lint"] = lint(cwd=cwd)
    print("\n--- Type Check ---")
    results["typecheck"] = typecheck(cwd=cwd)
    print("\n--- Tests ---")
    results["test"] = run_tests(cwd=cwd)

    print("\n=== Summary ===")
    for label, key in (("Lint", "lint"), ("Type Check", "typecheck"), ("Tests", "test")):
        print(f"{label}: {'✓' if results[key]['success'] else '✗'}")
    return results


def git_status(cwd: str | Path | None = None) -> dict[str, Any]:
    print("=== Git Status ===\n")
    status = run(["git", "status"], cwd=cwd)
    print("\n=== Recent Commits ===\n")
    log = run(["git", "log", "-n", "5", "--oneline"], cwd=cwd)
    return {"success": status["success"] and log["success"]}


def read_excel(file_path: str, sheet_name: str | None = None) -> dict[str, Any]:
    from tools.excel import get_sheet_data, get_workbook_summary, read_workbook

    workbook = read_workbook(file_path)
    summary = get_workbook_summary(workbook)

    print("=== Workbook Summary ===")
    print(f"File: {file_path}")
    print(f"Sheets: {summary['sheet_count']}")
    for sheet in summary["sheets"]:
        print(f"  - {sheet['name']}: {sheet['rows']} rows x {sheet['cols']} cols")
    if "warning" in summary:
        print(f"\n{summary['warning']}")

    if not sheet_name:
        return {"success": True, "summary": summary}

    data = get_sheet_data(workbook, sheet_name)
    print(f"\n=== Sheet: {sheet_name} ===")
    print(f"Rows: {len(data)}")
    if data:
        print(f"Columns: {', '.join(data[0])}")
        print("\nFirst 5 rows:")
        print(json.dumps(data[:5], indent=2, default=str))
    return {"success": True, "summary": summary, "data": data}


def read_pdf(file_path: str, ocr: bool = False) -> dict[str, Any]:
    from tools.pdf import extract_text_from_file, extract_text_with_ocr
    from tools.pdf.ocr import MIN_TEXT_LENGTH, strip_page_markers

    text = extract_text_with_ocr(file_path) if ocr else extract_text_from_file(file_path)
    print(text)
    if not ocr and len(strip_page_markers(text)) < MIN_TEXT_LENGTH:
        print("Little or no text layer found. This may be a scanned PDF; retry with --ocr")
    return {"success": True, "ocr": ocr, "characters": len(text)}


# ─────────────────────────────────────────────────────────────────────────────
# CLI
# ─────────────────────────────────────────────────────────────────────────────


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="senior-dev", description="Senior developer orchestrator"
    )
    subparsers = parser.add_subparsers(dest="command", title="commands", metavar="<command>")

    subparsers.add_parser("detect", help="Show project detection results")
    lint_parser = subparsers.add_parser("lint", help="Run linting")
    lint_parser.add_argument("--fix", action="store_true", help="Apply automatic fixes")
    subparsers.add_parser("typecheck", help="Run type checking")
    test_parser = subparsers.add_parser("test", help="Run tests")
    test_parser.add_argument("--watch", action="store_true", help="Re-run tests on change")
    subparsers.add_parser("check", help="Run lint, typecheck and tests")
    subparsers.add_parser("git", help="Show git status and recent commits")

    excel = subparsers.add_parser("excel", help="Summarize a workbook or print a sheet")
    excel.add_argument("file")
    excel.add_argument("sheet", nargs="?")

    pdf = subparsers.add_parser("pdf", help="Extract text from a PDF")
    pdf.add_argument("file")
    pdf.add_argument("--ocr", action="store_true", help="Use OCR for scanned documents")

    return parser


def print_summary(project: ProjectInfo, parser: argparse.ArgumentParser) -> None:
    print("Senior Developer Orchestrator\n")
    print(f"Project: {project.type}")
    print(f"Package Manager: {project.package_manager or 'not detected'}")
    print(f"Framework: {project.framework or 'none'}")
    print(f"TypeScript: {'yes' if project.has_typescript else 'no'}")
    print(f"Lint: {'yes' if project.has_lint else 'no'}")
    print(f"Type Check: {'yes' if project.has_typecheck else 'no'}")
    print(f"Tests: {'yes' if project.has_test else 'no'}")
    print()
    parser.print_help()


def _dispatch(args: argparse.Namespace) -> dict[str, Any]:
    if args.command == "detect":
        print(json.dumps(detect_project().to_dict(), indent=2))
        return {"success": True}
    if args.command == "lint":
        return lint(args.fix)
    if args.command == "typecheck":
        return typecheck()
    if args.command == "test":
        return run_tests(args.watch)
    if args.command == "check":
        results = check()
        return {"success": all(r["success"] for r in results.values())}
    if args.command == "git":
        return git_status()
    if args.command == "excel":
        return read_excel(args.file, args.sheet)
    if args.command == "pdf":
        return read_pdf(args.file, args.ocr)
    raise ValueError(f"Unknown command: {args.command}")


def main(argv: list[str] | None = None) -> int:
    from tools.logging_config import setup_logging

    setup_logging()
    argv = sys.argv[1:] if argv is None else argv
    parser = build_parser()

    if argv and not argv[0].startswith("-") and argv[0] not in COMMANDS:
        print(f"Unknown command: {argv[0]}", file=sys.stderr)
        return 1

    args = parser.parse_args(argv)

    try:
        if not args.command:
            print_summary(detect_project(), parser)
            return 0
        result = _dispatch(args)
    except Exception as e:
        logger.debug("command_failed", command=args.command, error=str(e))
        print(f"Error: {e}", file=sys.stderr)
        return 1

    return 0 if result.get("success") else 1


if __name__ == "__main__":
    sys.exit(main())
