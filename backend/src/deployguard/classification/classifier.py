"""Main error classifier implementation."""
import json
import logging
import re
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, Mapping, Optional

from ..types import ErrorCategory, Severity, Urgency
from .categories import (
    GENERIC_SUBTYPE,
    Classification,
    ClassificationRule,
    ErrorSummary,
    FormattedError,
    MessageTemplate,
    ProcessedErrors,
    RawError,
    ResolutionStrategy,
    template_key,
)
from .report import render_report
from .rules import default_rules
from .strategies import DEFAULT_STRATEGY, default_strategies
from .templates import DEFAULT_TEMPLATE, default_templates

logger = logging.getLogger(__name__)

CLASSIFICATION_REPORT_FILE = "error-classification-report.json"
UNMATCHED_CONFIDENCE = 0.1
MAX_CONFIDENCE = 0.9
ACTION_URGENCIES = (Urgency.IMMEDIATE, Urgency.HIGH)

_PLACEHOLDER = re.compile(r"\{(\w+)\}")


def interpolate(template: str, variables: Mapping[str, Any]) -> str:
    """Substitute ``{name}`` placeholders; unknown or empty ones stay as written."""
    def substitute(match: re.Match) -> str:
        value = variables.get(match.group(1))
        return str(value) if value else match.group(0)

    return _PLACEHOLDER.sub(substitute, template)


def _as_category(category: ErrorCategory | str) -> ErrorCategory:
    if isinstance(category, ErrorCategory):
        return category
    return ErrorCategory(str(category).upper())


class ErrorClassifier:
    """Classifies raw errors, formats them and suggests fixes.

    Classification is a lookup in an ordered rule table; templates and
    resolution strategies are looked up by ``CATEGORY:SUBTYPE`` with a
    fallback to ``CATEGORY:GENERIC`` and then ``UNKNOWN:GENERIC``.
    """

    def __init__(
        self,
        rules: Optional[Mapping[ErrorCategory, list[ClassificationRule]]] = None,
        templates: Optional[Mapping[str, MessageTemplate]] = None,
        strategies: Optional[Mapping[str, ResolutionStrategy]] = None,
        max_similar_errors: int = 5,
        verbose: bool = False
    ):
        """Initialize classifier with rule, template and strategy tables.

        Args:
            rules: Ordered rule table; defaults to the built-in rules
            templates: Message templates; defaults to the built-in templates
            strategies: Resolution strategies; defaults to the built-in strategies
            max_similar_errors: Examples kept per consolidated entry
            verbose: Include detailed steps in rendered reports

        """
        if rules is None:
            self.rules = default_rules()
        else:
            self.rules = {_as_category(c): list(r) for c, r in rules.items()}
        self.templates = dict(templates) if templates is not None else default_templates()
        self.strategies = dict(strategies) if strategies is not None else default_strategies()
        self.max_similar_errors = max_similar_errors
        self.verbose = verbose

    def add_classification_rule(
        self,
        category: ErrorCategory | str,
        rules: ClassificationRule | Iterable[ClassificationRule]
    ) -> None:
        """Append rules to a category. New categories are tried last."""
        if isinstance(rules, ClassificationRule):
            rules = [rules]
        self.rules.setdefault(_as_category(category), []).extend(rules)

    def add_message_template(
        self,
        category: ErrorCategory | str,
        subtype: str,
        template: MessageTemplate
    ) -> None:
        self.templates[template_key(category, subtype)] = template

    def add_resolution_strategy(
        self,
        category: ErrorCategory | str,
        subtype: str,
        strategy: ResolutionStrategy
    ) -> None:
        self.strategies[template_key(category, subtype)] = strategy

    def classify_error(self, raw: RawError) -> Classification:
        """Classify a raw error by the first matching rule."""
        text = f"{raw.title} {raw.message}".lower()

        for category, rules in self.rules.items():
            for rule in rules:
                match = rule.search(text)
                if match:
                    return Classification(
                        category=category,
                        subtype=rule.subtype,
                        severity=rule.severity,
                        confidence=self.calculate_confidence(text, match, rule),
                    )

        logger.debug(f"No classification rule matched '{raw.title}'")
        return Classification(
            category=ErrorCategory.UNKNOWN,
            subtype=GENERIC_SUBTYPE,
            severity=Severity.parse(raw.severity, default=Severity.ERROR),
            confidence=UNMATCHED_CONFIDENCE,
        )

    @staticmethod
    def calculate_confidence(text: str, match: re.Match, rule: ClassificationRule) -> float:
        """Informational score from match coverage and pattern specificity."""
        if not text:
            return 0.0
        coverage = len(match.group(0)) / len(text)
        return min(MAX_CONFIDENCE, coverage * (len(rule.pattern) / 100))

    def _lookup(self, table: Mapping[str, Any], classification: Classification) -> Optional[Any]:
        for key in (
            classification.key,
            template_key(classification.category, GENERIC_SUBTYPE),
            template_key(ErrorCategory.UNKNOWN, GENERIC_SUBTYPE),
        ):
            if key in table:
                return table[key]
        return None

    def format_error_message(self, raw: RawError, classification: Classification) -> FormattedError:
        template = self._lookup(self.templates, classification) or DEFAULT_TEMPLATE
        details = raw.details or {}
        formatted_message = interpolate(template.format, {
            "message": raw.message,
            "title": raw.title,
            "file": details.get("file") or "unknown",
            "component": details.get("component") or "unknown",
            "error": raw.message,
        })

        return FormattedError(
            title=template.title,
            formatted_message=formatted_message,
            classification=classification,
            original_error=raw,
            context=template.context,
            impact=template.impact,
            urgency=template.urgency,
        )

    def get_resolution_suggestions(self, classification: Classification) -> ResolutionStrategy:
        return self._lookup(self.strategies, classification) or DEFAULT_STRATEGY

    def process_errors(self, raw_errors: Iterable[RawError | Mapping[str, Any]]) -> ProcessedErrors:
        """Classify, format, group and prioritize a batch of raw errors."""
        processed: list[FormattedError] = []
        groups: dict[str, list[FormattedError]] = {}

        for raw in raw_errors:
            if not isinstance(raw, RawError):
                raw = RawError.from_dict(raw)
            classification = self.classify_error(raw)
            formatted = self.format_error_message(raw, classification)
            formatted.resolutions = self.get_resolution_suggestions(classification)

            groups.setdefault(classification.key, []).append(formatted)
            processed.append(formatted)

        consolidated = self.consolidate_similar_errors(groups)
        summary = self.generate_error_summary(processed)
        logger.debug(
            f"Processed {summary.total} errors into {len(consolidated)} entries "
            f"({summary.critical_count} critical)"
        )
        return ProcessedErrors(processed=processed, consolidated=consolidated, summary=summary)

    def consolidate_similar_errors(self, groups: Mapping[str, list[FormattedError]]) -> list[FormattedError]:
        """One entry per group, ordered by severity then urgency.

        The sort is stable, so entries of equal rank keep their group order.
        """
        consolidated = []
        for errors in groups.values():
            if len(errors) == 1:
                consolidated.append(errors[0])
                continue

            first = errors[0]
            count = len(errors)
            consolidated.append(replace(
                first,
                title=f"{first.title} ({count} occurrences)",
                formatted_message=f"{first.formatted_message} (and {count - 1} similar)",
                occurrences=count,
                examples=errors[:self.max_similar_errors],
                consolidated=True,
            ))

        return sorted(
            consolidated,
            key=lambda error: (error.severity.rank, error.urgency.rank),
            reverse=True,
        )

    def generate_error_summary(self, errors: Iterable[FormattedError]) -> ErrorSummary:
        summary = ErrorSummary()
        for error in errors:
            severity = error.severity.value
            category = error.classification.category.value
            urgency = error.urgency.value

            summary.total += 1
            summary.by_severity[severity] = summary.by_severity.get(severity, 0) + 1
            summary.by_category[category] = summary.by_category.get(category, 0) + 1
            summary.by_urgency[urgency] = summary.by_urgency.get(urgency, 0) + 1

            if error.severity == Severity.CRITICAL:
                summary.critical_count += 1
            if error.urgency in ACTION_URGENCIES:
                summary.action_required += 1

        return summary

    def get_statistics(self) -> dict[str, int]:
        return {
            "total_rules": sum(len(rules) for rules in self.rules.values()),
            "total_templates": len(self.templates),
            "total_strategies": len(self.strategies),
        }

    def render_report(self, result: ProcessedErrors) -> str:
        return render_report(result, verbose=self.verbose)

    def save_classification_report(
        self,
        result: ProcessedErrors,
        path: str | Path = CLASSIFICATION_REPORT_FILE
    ) -> Optional[Path]:
        """Write the consolidated errors and summary as JSON.

        Returns the path written, or None when the file could not be written.
        """
        report_path = Path(path)
        report = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "summary": result.summary.to_dict(),
            "errors": [error.to_dict() for error in result.consolidated],
            "metadata": self.get_statistics(),
        }

        try:
            report_path.parent.mkdir(parents=True, exist_ok=True)
            report_path.write_text(json.dumps(report, indent=2, default=str), encoding="utf-8")
        except OSError as e:
            logger.warning(f"Failed to write classification report: {e}")
            return None

        logger.info(f"Classification report saved to {report_path}")
        return report_path
