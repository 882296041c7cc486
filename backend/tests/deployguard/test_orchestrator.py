"""Tests for the error handling orchestrator."""
import json
from pathlib import Path

import pytest

from backend.src.deployguard.checkers import FunctionChecker
from backend.src.deployguard.classification import RawError
from backend.src.deployguard.exceptions import OrchestrationError
from backend.src.deployguard.orchestrator import (
    FAILURE_REPORT_FILE,
    MASTER_REPORT_FILE,
    REPORT_DIR,
    SUMMARY_REPORT_FILE,
    CheckerResult,
    ErrorHandlingOrchestrator,
    format_duration,
)


def _errors(*raws):
    return FunctionChecker("fake", lambda: list(raws))


def _crash(name, exc):
    def run():
        raise exc
    return FunctionChecker(name, run)


YAML_ERROR = RawError(
    title="Configuration Error",
    message="amplify.yml syntax error: bad indentation",
    category="CONFIGURATION",
    severity="CRITICAL",
    details={"file": "amplify.yml"},
)
NODE_ERROR = {"title": "Dependency Error", "message": "Node.js not found in PATH", "severity": "CRITICAL"}


class TestRun:
    """Test a full orchestrated run."""

    @pytest.mark.asyncio
    async def test_clean_run_is_ready(self, tmp_path):
        orchestrator = ErrorHandlingOrchestrator(
            config_checker=_errors(),
            dependency_checker=_errors(),
            build_checker=_errors(),
            output_dir=tmp_path,
        )

        result = await orchestrator.run()

        assert result.success is True
        assert result.summary.total_errors == 0
        assert result.summary.phases == {"configuration": True, "dependency": True, "build": True}
        assert [r.title for r in result.summary.recommendations] == ["System Ready"]

    @pytest.mark.asyncio
    async def test_critical_errors_block(self, tmp_path):
        orchestrator = ErrorHandlingOrchestrator(
            config_checker=FunctionChecker("config-validator", lambda: [YAML_ERROR]),
            dependency_checker=FunctionChecker("dependency-checker", lambda: [NODE_ERROR, NODE_ERROR]),
            output_dir=tmp_path,
        )

        result = await orchestrator.run()

        assert result.success is False
        assert result.summary.total_errors == 3
        assert result.summary.critical_issues == 3
        assert result.summary.errors_by_source == {"config-validator": 1, "dependency-checker": 2}
        assert result.summary.phases["build"] is False
        assert len(result.classified.consolidated) == 2
        assert all(e.source and e.timestamp for e in result.all_errors)

        titles = [r.title for r in result.summary.recommendations]
        assert titles[0] == "Resolve Critical Issues"
        assert "Fix Configuration Issues" in titles
        assert "Resolve Dependencies" in titles
        assert "System Ready" not in titles

    @pytest.mark.asyncio
    async def test_warnings_only_is_ready(self, tmp_path):
        warning = RawError(title="System Warning", message="High memory usage: 93.0%", severity="WARNING")
        orchestrator = ErrorHandlingOrchestrator(dependency_checker=_errors(warning), output_dir=tmp_path)

        result = await orchestrator.run()

        assert result.success is True
        assert result.summary.total_errors == 1

    @pytest.mark.asyncio
    async def test_skip_flags(self, tmp_path):
        orchestrator = ErrorHandlingOrchestrator(
            config_checker=_crash("config", RuntimeError("should not run")),
            dependency_checker=_errors(NODE_ERROR),
            build_checker=_errors(),
            output_dir=tmp_path,
            skip_config_check=True,
            skip_dependency_check=True,
        )

        result = await orchestrator.run()

        assert result.summary.phases == {"configuration": False, "dependency": False, "build": True}
        assert result.component_results["configuration"] is None
        assert result.success is True

    @pytest.mark.asyncio
    async def test_checker_result_passthrough(self, tmp_path):
        checker = FunctionChecker("build", lambda: CheckerResult(passed=True, details={"returncode": 0}))
        orchestrator = ErrorHandlingOrchestrator(build_checker=checker, output_dir=tmp_path)

        result = await orchestrator.run()

        assert result.component_results["build"].details == {"returncode": 0}


class TestCheckerCrashes:
    """Test handling of checkers that raise."""

    @pytest.mark.asyncio
    async def test_config_checker_crash_is_fatal(self, tmp_path):
        orchestrator = ErrorHandlingOrchestrator(
            config_checker=_crash("config-validator", RuntimeError("parser exploded")),
            dependency_checker=_errors(),
            output_dir=tmp_path,
        )

        with pytest.raises(OrchestrationError) as exc_info:
            await orchestrator.run()

        assert exc_info.value.source == "config-validator"
        report = json.loads((tmp_path / FAILURE_REPORT_FILE).read_text())
        assert "parser exploded" in report["failure_reason"]
        assert report["source"] == "config-validator"
        assert report["stack_trace"]
        assert not (tmp_path / REPORT_DIR / MASTER_REPORT_FILE).exists()

    @pytest.mark.asyncio
    async def test_build_checker_crash_is_recorded(self, tmp_path):
        orchestrator = ErrorHandlingOrchestrator(
            build_checker=_crash("build-monitor", RuntimeError("npm exploded")),
            output_dir=tmp_path,
        )

        result = await orchestrator.run()

        assert result.component_results["build"].passed is False
        crash = result.all_errors[0]
        assert crash.category == "BUILD"
        assert crash.severity == "ERROR"
        assert crash.title == "build-monitor failed"
        assert crash.message == "npm exploded"
        assert crash.source == "build-monitor"
        assert result.success is True

    @pytest.mark.asyncio
    async def test_dependency_checker_crash_continues_to_build(self, tmp_path):
        build = _errors()
        orchestrator = ErrorHandlingOrchestrator(
            dependency_checker=_crash("dependency-checker", OSError("PATH unreadable")),
            build_checker=build,
            output_dir=tmp_path,
        )

        result = await orchestrator.run()

        assert result.summary.phases["build"] is True
        assert result.all_errors[0].category == "DEPENDENCY"


class TestReports:
    """Test files written after a run."""

    @pytest.mark.asyncio
    async def test_reports_written(self, tmp_path):
        orchestrator = ErrorHandlingOrchestrator(
            config_checker=FunctionChecker("config-validator", lambda: [YAML_ERROR]),
            output_dir=tmp_path,
        )

        result = await orchestrator.run()

        master = json.loads((tmp_path / REPORT_DIR / MASTER_REPORT_FILE).read_text())
        assert master["summary"]["total_errors"] == 1
        assert master["all_errors"][0]["source"] == "config-validator"
        assert master["classified_errors"]["summary"]["critical_count"] == 1
        assert master["component_results"]["configuration"]["passed"] is False

        summary = (tmp_path / REPORT_DIR / SUMMARY_REPORT_FILE).read_text()
        assert summary.startswith("# Error Handling Summary Report")
        assert "**IMMEDIATE:** Resolve 1 critical issues" in summary

        assert (tmp_path / "error-classification-report.json").exists()
        assert set(result.report_paths) == {"master", "summary", "classification"}

    @pytest.mark.asyncio
    async def test_reports_can_be_disabled(self, tmp_path):
        orchestrator = ErrorHandlingOrchestrator(output_dir=tmp_path, write_reports=False)

        result = await orchestrator.run()

        assert result.report_paths == {}
        assert list(tmp_path.iterdir()) == []

    @pytest.mark.asyncio
    async def test_dict_errors_in_checker_result(self, tmp_path):
        checker = FunctionChecker(
            "dependency-checker",
            lambda: CheckerResult(passed=False, errors=[{"title": "X", "message": "Node.js not found"}]),
        )
        orchestrator = ErrorHandlingOrchestrator(dependency_checker=checker, output_dir=tmp_path)

        result = await orchestrator.run()

        assert isinstance(result.component_results["dependency"].errors[0], RawError)
        master = json.loads((tmp_path / REPORT_DIR / MASTER_REPORT_FILE).read_text())
        assert master["component_results"]["dependency"]["errors"][0]["message"] == "Node.js not found"

    @pytest.mark.asyncio
    async def test_non_json_details_are_stringified(self, tmp_path):
        error = RawError(
            title="Configuration Error",
            message="amplify.yml is missing (required configuration file)",
            category="CONFIGURATION",
            severity="CRITICAL",
            details={"file": Path("amplify.yml")},
        )
        orchestrator = ErrorHandlingOrchestrator(
            config_checker=FunctionChecker("config-validator", lambda: [error]),
            output_dir=tmp_path,
        )

        await orchestrator.run()

        master = json.loads((tmp_path / REPORT_DIR / MASTER_REPORT_FILE).read_text())
        assert master["all_errors"][0]["details"] == {"file": "amplify.yml"}
        classification = json.loads((tmp_path / "error-classification-report.json").read_text())
        assert classification["summary"]["total"] == 1

    def test_failure_report_with_non_json_details(self, tmp_path):
        orchestrator = ErrorHandlingOrchestrator(output_dir=tmp_path)
        orchestrator.all_errors = [RawError(title="X", message="broken", details={"file": Path("amplify.yml")})]

        path = orchestrator.save_failure_report(RuntimeError("boom"))

        report = json.loads(path.read_text())
        assert report["partial_results"]["all_errors"][0]["details"] == {"file": "amplify.yml"}


@pytest.mark.parametrize("seconds,expected", [
    (0.25, "250ms"),
    (12.34, "12.3s"),
    (125, "2m 5s"),
])
def test_format_duration(seconds, expected):
    assert format_duration(seconds) == expected
