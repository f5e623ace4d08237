"""Tests for roles/senior_developer: project detection, command selection and CLI

subprocess.run is patched wherever a tool would actually be executed.
"""

import json
import subprocess
from unittest.mock import patch

import openpyxl
import pytest

from roles.senior_developer import orchestrator as dev
from roles.senior_developer.orchestrator import ProjectInfo, detect_project, main


def _write_package(path, scripts=None, deps=None, dev_deps=None):
    (path / "package.json").write_text(
        json.dumps(
            {
                "name": "app",
                "scripts": scripts or {},
                "dependencies": deps or {},
                "devDependencies": dev_deps or {},
            }
        )
    )


@pytest.fixture
def node_project(tmp_path):
    _write_package(
        tmp_path,
        scripts={"lint": "eslint .", "test": "vitest", "format": "prettier -w ."},
        deps={"react": "^18.0.0", "next": "^14.0.0"},
        dev_deps={"typescript": "^5.0.0"},
    )
    (tmp_path / "pnpm-lock.yaml").write_text("")
    return tmp_path


@pytest.fixture
def python_project(tmp_path):
    (tmp_path / "pyproject.toml").write_text(
        '[project]\nname = "svc"\ndependencies = ["httpx"]\n\n'
        '[project.optional-dependencies]\ntest = ["pytest>=8"]\n\n'
        "[tool.ruff]\nline-length = 100\n"
    )
    (tmp_path / "uv.lock").write_text("")
    return tmp_path


# ─────────────────────────────────────────────────────────────────────────────
# Detection
# ─────────────────────────────────────────────────────────────────────────────


class TestDetectProject:
    def test_node_project(self, node_project):
        info = detect_project(node_project)
        assert info.type == "node"
        assert info.package_manager == "pnpm"
        assert info.has_lint and info.has_test and info.has_prettier
        assert info.has_typescript is True
        assert info.framework == "next"
        assert info.scripts == ["format", "lint", "test"]

    def test_lockfile_precedence(self, tmp_path):
        _write_package(tmp_path)
        (tmp_path / "yarn.lock").write_text("")
        (tmp_path / "package-lock.json").write_text("")
        assert detect_project(tmp_path).package_manager == "yarn"

    def test_tsconfig_implies_typescript(self, tmp_path):
        _write_package(tmp_path, deps={"express": "^4"})
        (tmp_path / "tsconfig.json").write_text("{}")
        info = detect_project(tmp_path)
        assert info.has_typescript is True
        assert info.framework == "express"
        assert info.package_manager is None

    def test_python_project(self, python_project):
        info = detect_project(python_project)
        assert info.type == "python"
        assert info.package_manager == "uv"
        assert info.has_lint is True
        assert info.has_typecheck is False
        assert info.has_test is True

    def test_unknown_project(self, tmp_path):
        assert detect_project(tmp_path) == ProjectInfo()


class TestCommandSelection:
    def test_node_lint_fix(self, node_project):
        info = detect_project(node_project)
        assert dev.lint_command(info, fix=True) == ["pnpm", "run", "lint", "--", "--fix"]

    def test_node_defaults_to_npm(self):
        info = ProjectInfo(type="node", has_test=True)
        assert dev.tests_command(info, watch=True) == ["npm", "run", "test", "--", "--watch"]

    def test_node_typecheck(self):
        info = ProjectInfo(type="node", has_typescript=True, has_typecheck=True)
        assert dev.typecheck_command(info) == ["npx", "tsc", "--noEmit"]

    def test_python_tools_run_through_uv(self, python_project):
        info = detect_project(python_project)
        assert dev.lint_command(info) == ["uv", "run", "ruff", "check", "."]
        assert dev.tests_command(info) == ["uv", "run", "pytest"]
        assert dev.typecheck_command(info) is None

    def test_python_watch_unavailable(self):
        info = ProjectInfo(type="python", package_manager="pip", has_test=True)
        assert dev.tests_command(info, watch=True) is None

    def test_missing_capabilities(self):
        assert dev.lint_command(ProjectInfo()) is None


# ─────────────────────────────────────────────────────────────────────────────
# Running
# ─────────────────────────────────────────────────────────────────────────────


class TestRun:
    def test_success(self):
        with patch("roles.senior_developer.orchestrator.subprocess.run") as run:
            run.return_value = subprocess.CompletedProcess([], 0, stdout="ok")
            assert dev.run(["echo"], silent=True) == {"success": True, "output": "ok"}
        assert run.call_args.kwargs["capture_output"] is True

    def test_failure(self):
        with patch("roles.senior_developer.orchestrator.subprocess.run") as run:
            run.return_value = subprocess.CompletedProcess([], 2, stdout=None)
            result = dev.run(["eslint", "."])
        assert result["success"] is False
        assert result["error"] == "eslint . exited with 2"

    def test_missing_executable(self):
        with patch("roles.senior_developer.orchestrator.subprocess.run", side_effect=FileNotFoundError("x")):
            assert dev.run(["nope"])["success"] is False

    def test_lint_without_configuration(self, tmp_path, capsys):
        result = dev.lint(cwd=tmp_path)
        assert result == {"success": False, "error": "No lint configuration found"}
        assert "No lint configuration found" in capsys.readouterr().out

    def test_check_runs_every_step(self, node_project, capsys):
        with patch("roles.senior_developer.orchestrator.subprocess.run") as run:
            run.side_effect = [
                subprocess.CompletedProcess([], 1),
                subprocess.CompletedProcess([], 0),
                subprocess.CompletedProcess([], 0),
            ]
            results = dev.check(cwd=node_project)

        assert [c.args[0] for c in run.call_args_list] == [
            ["pnpm", "run", "lint"],
            ["npx", "tsc", "--noEmit"],
            ["pnpm", "run", "test"],
        ]
        assert results["lint"]["success"] is False
        assert results["test"]["success"] is True
        out = capsys.readouterr().out
        assert "Lint: ✗" in out
        assert "Tests: ✓" in out


class TestFileReaders:
    def test_read_excel_sheet(self, tmp_path, capsys):
        wb = openpyxl.Workbook()
        wb.active.title = "Data"
        wb.active.append(["Name", "Score"])
        wb.active.append(["ada", 10])
        path = tmp_path / "scores.xlsx"
        wb.save(path)

        result = dev.read_excel(str(path), "Data")
        assert result["data"] == [{"Name": "ada", "Score": 10}]
        out = capsys.readouterr().out
        assert "Data: 2 rows x 2 cols" in out
        assert "Columns: Name, Score" in out

    def test_read_pdf_suggests_ocr(self, capsys):
        with patch("tools.pdf.extract_text_from_file", return_value="\n--- Page 1 ---\n\n"):
            result = dev.read_pdf("scan.pdf")
        assert result["ocr"] is False
        assert "retry with --ocr" in capsys.readouterr().out

    def test_read_pdf_with_ocr(self, capsys):
        with patch("tools.pdf.extract_text_with_ocr", return_value="recognized") as ocr:
            dev.read_pdf("scan.pdf", ocr=True)
        ocr.assert_called_once_with("scan.pdf")
        assert "recognized" in capsys.readouterr().out


# ─────────────────────────────────────────────────────────────────────────────
# CLI
# ─────────────────────────────────────────────────────────────────────────────


class TestCli:
    def test_no_command_prints_summary(self, node_project, monkeypatch, capsys):
        monkeypatch.chdir(node_project)
        assert main([]) == 0
        out = capsys.readouterr().out
        assert "Project: node" in out
        assert "Framework: next" in out
        assert "typecheck" in out

    def test_detect_outputs_json(self, python_project, monkeypatch, capsys):
        monkeypatch.chdir(python_project)
        assert main(["detect"]) == 0
        assert json.loads(capsys.readouterr().out)["type"] == "python"

    def test_unknown_command(self, capsys):
        assert main(["deploy"]) == 1
        assert capsys.readouterr().err.strip() == "Unknown command: deploy"

    def test_lint_fix_flag(self, node_project, monkeypatch):
        monkeypatch.chdir(node_project)
        with patch("roles.senior_developer.orchestrator.subprocess.run") as run:
            run.return_value = subprocess.CompletedProcess([], 0)
            assert main(["lint", "--fix"]) == 0
        assert run.call_args.args[0] == ["pnpm", "run", "lint", "--", "--fix"]

    def test_failed_step_exits_one(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        assert main(["typecheck"]) == 1

    def test_errors_reported(self, tmp_path, capsys):
        assert main(["excel", str(tmp_path / "absent.xlsx")]) == 1
        assert capsys.readouterr().err.startswith("Error:")

    def test_malformed_manifest_on_summary(self, tmp_path, monkeypatch, capsys):
        (tmp_path / "package.json").write_text("{not json")
        monkeypatch.chdir(tmp_path)
        assert main([]) == 1
        assert capsys.readouterr().err.startswith("Error:")
