"""Plain-text rendering of classification results."""
from ..types import Urgency
from .categories import FormattedError, ProcessedErrors


def _render_error(error: FormattedError, index: int, verbose: bool) -> list[str]:
    lines = [
        "",
        f"{index}. {error.title}",
        f"   Severity: {error.severity.value}",
        f"   Urgency: {error.urgency.value}",
        f"   Message: {error.formatted_message}",
    ]
    if error.context:
        lines.append(f"   Context: {error.context}")
    if error.impact:
        lines.append(f"   Impact: {error.impact}")
    if error.consolidated:
        lines.append(f"   Occurrences: {error.occurrences}")

    if error.resolutions and error.resolutions.immediate:
        lines.append("   Immediate actions:")
        lines.extend(f"      - {action}" for action in error.resolutions.immediate)
    if verbose and error.resolutions and error.resolutions.detailed:
        lines.append("   Detailed steps:")
        lines.extend(
            f"      {number}. {step}"
            for number, step in enumerate(error.resolutions.detailed, 1)
        )
    return lines


def render_report(result: ProcessedErrors, verbose: bool = False) -> str:
    """Human-readable report: summary, classified errors, then priorities."""
    summary = result.summary
    lines = [
        "Error Classification Report",
        "===========================",
        "",
        f"Summary: {summary.total} errors found",
        f"   Critical: {summary.critical_count}",
        f"   Action required: {summary.action_required}",
    ]

    if summary.by_severity:
        lines.extend(["", "By severity:"])
        lines.extend(f"   {name}: {count}" for name, count in summary.by_severity.items())
    if summary.by_category:
        lines.extend(["", "By category:"])
        lines.extend(f"   {name}: {count}" for name, count in summary.by_category.items())

    if result.consolidated:
        lines.extend(["", "Classified errors:"])
        for index, error in enumerate(result.consolidated, 1):
            lines.extend(_render_error(error, index, verbose))

    immediate = [e for e in result.consolidated if e.urgency == Urgency.IMMEDIATE]
    high = [e for e in result.consolidated if e.urgency == Urgency.HIGH]

    if immediate:
        lines.extend(["", "IMMEDIATE ACTION REQUIRED:"])
        for index, error in enumerate(immediate, 1):
            lines.append(f"{index}. {error.title}")
            if error.resolutions:
                lines.extend(f"   - {action}" for action in error.resolutions.immediate)
    if high:
        lines.extend(["", "HIGH PRIORITY:"])
        lines.extend(f"{index}. {error.title}" for index, error in enumerate(high, 1))

    return "\n".join(lines)
