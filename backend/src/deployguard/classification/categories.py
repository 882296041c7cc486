"""Error classification data types."""
import re
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Mapping, Optional

from ..types import ErrorCategory, Severity, Urgency

GENERIC_SUBTYPE = "GENERIC"


def template_key(category: ErrorCategory | str, subtype: str) -> str:
    """Lookup key shared by the template and strategy tables."""
    name = category.value if isinstance(category, ErrorCategory) else str(category).upper()
    return f"{name}:{subtype}"


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


@dataclass(frozen=True)
class RawError:
    """Unclassified diagnostic emitted by a checker."""

    title: str
    message: str
    category: Optional[str] = None
    severity: Optional[str] = None
    source: Optional[str] = None
    timestamp: Optional[datetime] = None
    details: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "RawError":
        timestamp = data.get("timestamp")
        if isinstance(timestamp, str):
            timestamp = datetime.fromisoformat(timestamp)
        category = data.get("category")
        severity = data.get("severity")
        return cls(
            title=str(data.get("title") or ""),
            message=str(data.get("message") or ""),
            category=category.value if isinstance(category, ErrorCategory) else category,
            severity=severity.value if isinstance(severity, Severity) else severity,
            source=data.get("source"),
            timestamp=timestamp,
            details=dict(data.get("details") or {}),
        )

    def tagged(self, source: str, timestamp: Optional[datetime] = None) -> "RawError":
        """Copy of this error attributed to ``source``."""
        return replace(
            self,
            source=source,
            timestamp=self.timestamp or timestamp or datetime.now(timezone.utc),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "category": self.category,
            "severity": self.severity,
            "title": self.title,
            "message": self.message,
            "source": self.source,
            "timestamp": _iso(self.timestamp),
            "details": dict(self.details),
        }


@dataclass(frozen=True)
class Classification:
    """Category, subtype and severity assigned to a raw error."""

    category: ErrorCategory
    subtype: str
    severity: Severity
    confidence: float

    @property
    def key(self) -> str:
        return template_key(self.category, self.subtype)

    def to_dict(self) -> dict[str, Any]:
        return {
            "category": self.category.value,
            "subtype": self.subtype,
            "severity": self.severity.value,
            "confidence": self.confidence,
        }


@dataclass
class ClassificationRule:
    """Case-insensitive regex rule mapping matching text to a subtype."""

    pattern: str
    subtype: str
    severity: Severity
    regex: re.Pattern = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        self.regex = re.compile(self.pattern, re.IGNORECASE)

    def search(self, text: str) -> Optional[re.Match]:
        return self.regex.search(text)


@dataclass
class MessageTemplate:
    """How a classified error is presented."""

    title: str
    format: str
    context: str = ""
    impact: str = ""
    urgency: Urgency = Urgency.MEDIUM


@dataclass
class ResolutionStrategy:
    """Ordered fix suggestions for a classified error."""

    immediate: list[str] = field(default_factory=list)
    detailed: list[str] = field(default_factory=list)
    preventive: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, list[str]]:
        return {
            "immediate": list(self.immediate),
            "detailed": list(self.detailed),
            "preventive": list(self.preventive),
        }


@dataclass
class FormattedError:
    """A classified raw error with its message and fix suggestions.

    When ``consolidated`` is set the entry stands for ``occurrences`` raw
    errors of the same classification, with up to ``max_similar_errors``
    of them kept in ``examples``.
    """

    title: str
    formatted_message: str
    classification: Classification
    original_error: RawError
    context: str = ""
    impact: str = ""
    urgency: Urgency = Urgency.MEDIUM
    resolutions: Optional[ResolutionStrategy] = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    occurrences: int = 1
    examples: list["FormattedError"] = field(default_factory=list)
    consolidated: bool = False

    @property
    def severity(self) -> Severity:
        return self.classification.severity

    def to_dict(self) -> dict[str, Any]:
        data = {
            "title": self.title,
            "formatted_message": self.formatted_message,
            "context": self.context,
            "impact": self.impact,
            "urgency": self.urgency.value,
            "classification": self.classification.to_dict(),
            "original_error": self.original_error.to_dict(),
            "resolutions": self.resolutions.to_dict() if self.resolutions else None,
            "timestamp": _iso(self.timestamp),
            "consolidated": self.consolidated,
            "occurrences": self.occurrences,
        }
        if self.consolidated:
            data["examples"] = [example.to_dict() for example in self.examples]
        return data


@dataclass
class ErrorSummary:
    """Counts over every processed error."""

    total: int = 0
    by_severity: dict[str, int] = field(default_factory=dict)
    by_category: dict[str, int] = field(default_factory=dict)
    by_urgency: dict[str, int] = field(default_factory=dict)
    critical_count: int = 0
    action_required: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "by_severity": dict(self.by_severity),
            "by_category": dict(self.by_category),
            "by_urgency": dict(self.by_urgency),
            "critical_count": self.critical_count,
            "action_required": self.action_required,
        }


@dataclass
class ProcessedErrors:
    """Result of classifying a batch of raw errors."""

    processed: list[FormattedError]
    consolidated: list[FormattedError]
    summary: ErrorSummary

    def to_dict(self) -> dict[str, Any]:
        return {
            "processed": [error.to_dict() for error in self.processed],
            "consolidated": [error.to_dict() for error in self.consolidated],
            "summary": self.summary.to_dict(),
        }
