"""Error classification and aggregation."""
from .categories import (
    Classification,
    ClassificationRule,
    ErrorSummary,
    FormattedError,
    MessageTemplate,
    ProcessedErrors,
    RawError,
    ResolutionStrategy,
)
from .classifier import CLASSIFICATION_REPORT_FILE, ErrorClassifier
from .report import render_report

__all__ = [
    "ErrorClassifier",
    "RawError",
    "Classification",
    "ClassificationRule",
    "MessageTemplate",
    "ResolutionStrategy",
    "FormattedError",
    "ErrorSummary",
    "ProcessedErrors",
    "render_report",
    "CLASSIFICATION_REPORT_FILE",
]
