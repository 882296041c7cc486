"""Predefined classification rules.

Rules are matched against ``(title + " " + message).lower()``. Categories
are tried in table order and, inside a category, rules in list order; the
first match wins.
"""
from ..types import ErrorCategory, Severity
from .categories import ClassificationRule

# Configuration rules
CONFIGURATION_RULES: list[ClassificationRule] = [
    ClassificationRule(r"amplify\.yml.*syntax", "YAML_SYNTAX", Severity.CRITICAL),
    ClassificationRule(r"amplify\.yml.*missing", "MISSING_CONFIG", Severity.CRITICAL),
    ClassificationRule(r"package\.json.*invalid", "JSON_SYNTAX", Severity.ERROR),
    ClassificationRule(r"pom\.xml.*invalid", "XML_SYNTAX", Severity.ERROR),
    ClassificationRule(r"environment variable", "ENV_VAR", Severity.ERROR),
    ClassificationRule(r"configuration.*missing", "MISSING_CONFIG", Severity.ERROR),
]

# Dependency rules
DEPENDENCY_RULES: list[ClassificationRule] = [
    ClassificationRule(r"node.*not found", "MISSING_NODEJS", Severity.CRITICAL),
    ClassificationRule(r"java.*not found", "MISSING_JAVA", Severity.CRITICAL),
    ClassificationRule(r"maven.*not found", "MISSING_MAVEN", Severity.ERROR),
    ClassificationRule(r"aws.*not found", "MISSING_AWS_CLI", Severity.CRITICAL),
    ClassificationRule(r"npm.*install", "NPM_INSTALL", Severity.ERROR),
    ClassificationRule(r"dependency.*missing", "MISSING_DEPENDENCY", Severity.ERROR),
    ClassificationRule(r"version.*conflict", "VERSION_CONFLICT", Severity.WARNING),
    ClassificationRule(r"credentials.*not configured", "AWS_CREDENTIALS", Severity.CRITICAL),
]

# Build rules
BUILD_RULES: list[ClassificationRule] = [
    ClassificationRule(r"compilation.*failed", "COMPILE_ERROR", Severity.ERROR),
    ClassificationRule(r"build.*failed", "BUILD_FAILURE", Severity.ERROR),
    ClassificationRule(r"file.*not found", "MISSING_FILE", Severity.ERROR),
    ClassificationRule(r"permission.*denied", "PERMISSION", Severity.ERROR),
    ClassificationRule(r"out of memory", "MEMORY", Severity.ERROR),
    ClassificationRule(r"timeout", "TIMEOUT", Severity.ERROR),
    ClassificationRule(r"syntax.*error", "SYNTAX_ERROR", Severity.ERROR),
]

# Deployment rules
DEPLOYMENT_RULES: list[ClassificationRule] = [
    ClassificationRule(r"amplify.*deploy.*failed", "AMPLIFY_DEPLOY", Severity.CRITICAL),
    ClassificationRule(r"lambda.*deploy.*failed", "LAMBDA_DEPLOY", Severity.CRITICAL),
    ClassificationRule(r"api.*gateway.*failed", "API_GATEWAY", Severity.ERROR),
    ClassificationRule(r"cloudfront.*failed", "CLOUDFRONT", Severity.ERROR),
    ClassificationRule(r"s3.*upload.*failed", "S3_UPLOAD", Severity.ERROR),
    ClassificationRule(r"iam.*permission", "IAM_PERMISSION", Severity.ERROR),
]

# System rules
SYSTEM_RULES: list[ClassificationRule] = [
    ClassificationRule(r"disk.*space", "DISK_SPACE", Severity.CRITICAL),
    ClassificationRule(r"memory.*usage", "MEMORY_USAGE", Severity.WARNING),
    ClassificationRule(r"network.*connectivity", "NETWORK", Severity.WARNING),
    ClassificationRule(r"process.*terminated", "PROCESS_TERMINATED", Severity.ERROR),
    ClassificationRule(r"system.*resource", "RESOURCE_LIMIT", Severity.ERROR),
]

# Validation rules
VALIDATION_RULES: list[ClassificationRule] = [
    ClassificationRule(r"validation.*failed", "VALIDATION_FAILURE", Severity.ERROR),
    ClassificationRule(r"schema.*validation", "SCHEMA_VALIDATION", Severity.ERROR),
    ClassificationRule(r"format.*invalid", "FORMAT_INVALID", Severity.ERROR),
    ClassificationRule(r"checksum.*mismatch", "CHECKSUM_MISMATCH", Severity.ERROR),
]

# All rules, in matching order
CLASSIFICATION_RULES: dict[ErrorCategory, list[ClassificationRule]] = {
    ErrorCategory.CONFIGURATION: CONFIGURATION_RULES,
    ErrorCategory.DEPENDENCY: DEPENDENCY_RULES,
    ErrorCategory.BUILD: BUILD_RULES,
    ErrorCategory.DEPLOYMENT: DEPLOYMENT_RULES,
    ErrorCategory.SYSTEM: SYSTEM_RULES,
    ErrorCategory.VALIDATION: VALIDATION_RULES,
}


def get_rules_for_category(category: ErrorCategory) -> list[ClassificationRule]:
    """Get all rules for a specific category."""
    return list(CLASSIFICATION_RULES.get(category, []))


def default_rules() -> dict[ErrorCategory, list[ClassificationRule]]:
    """Fresh copy of the rule table, safe to extend."""
    return {category: list(rules) for category, rules in CLASSIFICATION_RULES.items()}
