"""
Error handling orchestrator.

Runs the configuration, dependency and build checkers in order, classifies
everything they report and reduces it to a single ready/not-ready verdict.
"""
import json
import logging
import time
import traceback
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional, Protocol

from .classification import CLASSIFICATION_REPORT_FILE, ErrorClassifier, ProcessedErrors, RawError
from .classification.categories import ErrorSummary
from .exceptions import OrchestrationError
from .types import ErrorCategory, Severity

logger = logging.getLogger(__name__)

REPORT_DIR = "error-reports"
MASTER_REPORT_FILE = "master-error-report.json"
SUMMARY_REPORT_FILE = "error-summary.md"
FAILURE_REPORT_FILE = "error-handling-failure.json"

CONFIGURATION_STAGE = "configuration"
DEPENDENCY_STAGE = "dependency"
BUILD_STAGE = "build"


@dataclass
class CheckerResult:
    """What a checker found."""
    passed: bool
    errors: list[RawError] = field(default_factory=list)
    details: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        self.errors = [
            error if isinstance(error, RawError) else RawError.from_dict(error)
            for error in self.errors
        ]

    def to_dict(self) -> dict[str, Any]:
        return {
            "passed": self.passed,
            "errors": [error.to_dict() for error in self.errors],
            "details": self.details,
        }


class Checker(Protocol):
    """A diagnostic check run by the orchestrator."""

    name: str

    async def run(self) -> CheckerResult:
        """Collect raw errors. Problems found are reported, not raised."""
        ...


@dataclass
class Recommendation:
    priority: str
    title: str
    description: str
    action: str

    def to_dict(self) -> dict[str, str]:
        return {
            "priority": self.priority,
            "title": self.title,
            "description": self.description,
            "action": self.action,
        }


@dataclass
class OrchestrationSummary:
    """Aggregate view of one orchestrated run."""
    timestamp: datetime
    duration: float
    phases: dict[str, bool]
    total_errors: int
    errors_by_source: dict[str, int]
    errors_by_severity: dict[str, int]
    errors_by_category: dict[str, int]
    critical_issues: int
    actionable_items: int
    classified_summary: ErrorSummary
    recommendations: list[Recommendation]

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "duration": self.duration,
            "phases": dict(self.phases),
            "total_errors": self.total_errors,
            "errors_by_source": dict(self.errors_by_source),
            "errors_by_severity": dict(self.errors_by_severity),
            "errors_by_category": dict(self.errors_by_category),
            "critical_issues": self.critical_issues,
            "actionable_items": self.actionable_items,
            "classified_summary": self.classified_summary.to_dict(),
            "recommendations": [rec.to_dict() for rec in self.recommendations],
        }


@dataclass
class OrchestrationResult:
    success: bool
    summary: OrchestrationSummary
    all_errors: list[RawError]
    classified: ProcessedErrors
    component_results: dict[str, Optional[CheckerResult]]
    report_paths: dict[str, Path] = field(default_factory=dict)

    def to_report(self) -> dict[str, Any]:
        """Master report payload."""
        return {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "success": self.success,
            "summary": self.summary.to_dict(),
            "all_errors": [error.to_dict() for error in self.all_errors],
            "classified_errors": self.classified.to_dict(),
            "component_results": {
                name: result.to_dict() if result else None
                for name, result in self.component_results.items()
            },
        }


def generate_recommendations(summary: ErrorSummary) -> list[Recommendation]:
    """High-level recommendations from classified error counts."""
    recommendations = []
    by_category = summary.by_category

    if summary.critical_count > 0:
        recommendations.append(Recommendation(
            priority="CRITICAL",
            title="Resolve Critical Issues",
            description=f"{summary.critical_count} critical issues must be resolved before deployment",
            action="Review and fix all critical errors listed in the detailed report",
        ))

    configuration = by_category.get(ErrorCategory.CONFIGURATION.value, 0)
    if configuration > 0:
        recommendations.append(Recommendation(
            priority="HIGH",
            title="Fix Configuration Issues",
            description=f"{configuration} configuration issues found",
            action="Validate and correct all configuration files",
        ))

    dependency = by_category.get(ErrorCategory.DEPENDENCY.value, 0)
    if dependency > 0:
        recommendations.append(Recommendation(
            priority="HIGH",
            title="Resolve Dependencies",
            description=f"{dependency} dependency issues found",
            action="Install missing dependencies and resolve version conflicts",
        ))

    build = by_category.get(ErrorCategory.BUILD.value, 0)
    if build > 0:
        recommendations.append(Recommendation(
            priority="MEDIUM",
            title="Fix Build Issues",
            description=f"{build} build issues found",
            action="Review build configuration and resolve compilation errors",
        ))

    if summary.total == 0:
        recommendations.append(Recommendation(
            priority="INFO",
            title="System Ready",
            description="No critical issues found",
            action="Proceed with deployment",
        ))

    return recommendations


def format_duration(seconds: float) -> str:
    if seconds < 1:
        return f"{seconds * 1000:.0f}ms"
    if seconds < 60:
        return f"{seconds:.1f}s"
    minutes, rest = divmod(int(seconds), 60)
    return f"{minutes}m {rest}s"


def render_markdown_summary(summary: OrchestrationSummary) -> str:
    lines = [
        "# Error Handling Summary Report",
        "",
        f"**Generated:** {summary.timestamp.isoformat()}",
        f"**Duration:** {format_duration(summary.duration)}",
        f"**Total Errors:** {summary.total_errors}",
        f"**Critical Issues:** {summary.critical_issues}",
        "",
        "## Phases Executed",
        "",
    ]
    for phase, executed in summary.phases.items():
        lines.append(f"- [{'x' if executed else ' '}] {phase}")

    if summary.total_errors > 0:
        lines.extend(["", "## Error Breakdown", "", "### By Severity"])
        lines.extend(f"- **{name}:** {count}" for name, count in summary.errors_by_severity.items())
        lines.extend(["", "### By Category"])
        lines.extend(f"- **{name}:** {count}" for name, count in summary.errors_by_category.items())
        lines.extend(["", "### By Source"])
        lines.extend(f"- **{name}:** {count}" for name, count in summary.errors_by_source.items())

    if summary.recommendations:
        lines.extend(["", "## Recommendations", ""])
        for rec in summary.recommendations:
            lines.extend([
                f"### {rec.title} ({rec.priority})",
                rec.description,
                "",
                f"**Action:** {rec.action}",
                "",
            ])

    lines.extend(["", "## Next Steps", ""])
    if summary.critical_issues > 0:
        lines.extend([
            f"1. **IMMEDIATE:** Resolve {summary.critical_issues} critical issues",
            f"2. Review detailed error reports in the {REPORT_DIR} directory",
            "3. Follow resolution suggestions for each error",
            "4. Re-run error handling after fixes",
        ])
    else:
        lines.extend([
            "1. Review any warnings or informational messages",
            "2. Consider implementing preventive measures",
            "3. Proceed with deployment",
        ])

    return "\n".join(lines) + "\n"


class ErrorHandlingOrchestrator:
    """Runs checkers in a fixed order and aggregates their findings.

    A crash of the configuration checker is fatal because later checkers
    rely on a minimally valid project layout. A crash of the dependency or
    build checker is recorded as a raw error of that category and the run
    continues.
    """

    def __init__(
        self,
        config_checker: Optional[Checker] = None,
        dependency_checker: Optional[Checker] = None,
        build_checker: Optional[Checker] = None,
        classifier: Optional[ErrorClassifier] = None,
        output_dir: str | Path = ".",
        skip_config_check: bool = False,
        skip_dependency_check: bool = False,
        skip_build_monitoring: bool = False,
        write_reports: bool = True
    ):
        self.config_checker = config_checker
        self.dependency_checker = dependency_checker
        self.build_checker = build_checker
        self.classifier = classifier or ErrorClassifier()
        self.output_dir = Path(output_dir)
        self.skip_config_check = skip_config_check
        self.skip_dependency_check = skip_dependency_check
        self.skip_build_monitoring = skip_build_monitoring
        self.write_reports = write_reports

        self.all_errors: list[RawError] = []
        self.component_results: dict[str, Optional[CheckerResult]] = {}
        self._started = time.monotonic()

    def _stages(self) -> list[tuple[str, Optional[Checker], bool, ErrorCategory]]:
        return [
            (CONFIGURATION_STAGE, self.config_checker, self.skip_config_check, ErrorCategory.CONFIGURATION),
            (DEPENDENCY_STAGE, self.dependency_checker, self.skip_dependency_check, ErrorCategory.DEPENDENCY),
            (BUILD_STAGE, self.build_checker, self.skip_build_monitoring, ErrorCategory.BUILD),
        ]

    async def run(self) -> OrchestrationResult:
        """Run every stage, classify the findings and write the reports.

        Raises:
            OrchestrationError: the configuration checker crashed

        """
        self._started = time.monotonic()
        self.all_errors = []
        self.component_results = {}
        logger.info(f"Starting error handling run (output: {self.output_dir})")

        try:
            return await self._run()
        except Exception as e:
            logger.error(f"Error handling orchestration failed: {e}")
            if self.write_reports:
                self.save_failure_report(e)
            raise

    async def _run(self) -> OrchestrationResult:
        phases: dict[str, bool] = {}
        for stage, checker, skip, category in self._stages():
            if checker is None or skip:
                logger.info(f"Skipping {stage} stage")
                phases[stage] = False
                self.component_results[stage] = None
                continue

            phases[stage] = True
            result = await self._run_checker(stage, checker, category)
            self.component_results[stage] = result
            self.collect_errors(checker.name, result.errors)

        classified = self.classifier.process_errors(self.all_errors)
        summary = self._summarize(phases, classified)
        success = classified.summary.critical_count == 0

        result = OrchestrationResult(
            success=success,
            summary=summary,
            all_errors=list(self.all_errors),
            classified=classified,
            component_results=dict(self.component_results),
        )
        if self.write_reports:
            result.report_paths = self.save_reports(result)

        if success:
            logger.info(f"Error handling completed in {format_duration(summary.duration)}: ready for deployment")
        else:
            logger.warning(f"{summary.critical_issues} critical issues require attention")
        return result

    async def _run_checker(self, stage: str, checker: Checker, category: ErrorCategory) -> CheckerResult:
        logger.info(f"Running {stage} stage ({checker.name})")
        try:
            return await checker.run()
        except Exception as e:
            if stage == CONFIGURATION_STAGE:
                raise OrchestrationError(
                    f"Configuration validation failed: {e}", source=checker.name
                ) from e
            logger.error(f"{stage} stage ({checker.name}) failed: {e}", exc_info=True)
            return CheckerResult(
                passed=False,
                errors=[RawError(
                    category=category.value,
                    severity=Severity.ERROR.value,
                    title=f"{checker.name} failed",
                    message=str(e),
                )],
                details={"exception": type(e).__name__},
            )

    def collect_errors(self, source: str, errors: list[RawError]) -> None:
        """Attribute errors to ``source`` and add them to the run."""
        now = datetime.now(timezone.utc)
        for error in errors:
            if not isinstance(error, RawError):
                error = RawError.from_dict(error)
            self.all_errors.append(error.tagged(source, now))
        logger.debug(f"Collected {len(errors)} errors from {source}")

    def _summarize(self, phases: dict[str, bool], classified: ProcessedErrors) -> OrchestrationSummary:
        by_source: dict[str, int] = {}
        for error in self.all_errors:
            source = error.source or "unknown"
            by_source[source] = by_source.get(source, 0) + 1

        counts = classified.summary
        return OrchestrationSummary(
            timestamp=datetime.now(timezone.utc),
            duration=time.monotonic() - self._started,
            phases=phases,
            total_errors=len(self.all_errors),
            errors_by_source=by_source,
            errors_by_severity=dict(counts.by_severity),
            errors_by_category=dict(counts.by_category),
            critical_issues=counts.critical_count,
            actionable_items=counts.action_required,
            classified_summary=counts,
            recommendations=generate_recommendations(counts),
        )

    def save_reports(self, result: OrchestrationResult) -> dict[str, Path]:
        report_dir = self.output_dir / REPORT_DIR
        report_dir.mkdir(parents=True, exist_ok=True)

        master_path = report_dir / MASTER_REPORT_FILE
        master_path.write_text(json.dumps(result.to_report(), indent=2, default=str), encoding="utf-8")
        logger.info(f"Master report saved: {master_path}")

        summary_path = report_dir / SUMMARY_REPORT_FILE
        summary_path.write_text(render_markdown_summary(result.summary), encoding="utf-8")
        logger.info(f"Summary report saved: {summary_path}")

        paths = {"master": master_path, "summary": summary_path}
        classification_path = self.classifier.save_classification_report(
            result.classified, self.output_dir / CLASSIFICATION_REPORT_FILE
        )
        if classification_path:
            paths["classification"] = classification_path
        return paths

    def save_failure_report(self, error: BaseException) -> Optional[Path]:
        report = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "duration": time.monotonic() - self._started,
            "failure_reason": str(error),
            "source": getattr(error, "source", None),
            "stack_trace": "".join(traceback.format_exception(type(error), error, error.__traceback__)),
            "partial_results": {
                "all_errors": [e.to_dict() for e in self.all_errors],
                "component_results": {
                    name: result.to_dict() if result else None
                    for name, result in self.component_results.items()
                },
            },
            "recommendations": [
                "Check system requirements and dependencies",
                "Verify file permissions and access rights",
                "Review error logs for specific issues",
            ],
        }

        path = self.output_dir / FAILURE_REPORT_FILE
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(json.dumps(report, indent=2, default=str), encoding="utf-8")
        except OSError as e:
            logger.error(f"Failed to save failure report: {e}")
            return None
        logger.info(f"Failure report saved: {path}")
        return path
