"""Message templates for classified errors, keyed ``CATEGORY:SUBTYPE``."""
from ..types import ErrorCategory, Urgency
from .categories import GENERIC_SUBTYPE, MessageTemplate, template_key

DEFAULT_TEMPLATE = MessageTemplate(title="Error", format="{message}", urgency=Urgency.MEDIUM)

MESSAGE_TEMPLATES: dict[str, MessageTemplate] = {
    # Configuration
    "CONFIGURATION:YAML_SYNTAX": MessageTemplate(
        title="Configuration Syntax Error",
        format="YAML syntax error in {file}: {error}",
        context="This error occurs when the YAML configuration file has invalid syntax.",
        impact="Deployment will fail until the syntax is corrected.",
        urgency=Urgency.IMMEDIATE,
    ),
    "CONFIGURATION:MISSING_CONFIG": MessageTemplate(
        title="Missing Configuration",
        format="Required configuration file missing: {file}",
        context="A required configuration file is not present in the project.",
        impact="The build or deployment process cannot proceed without this file.",
        urgency=Urgency.IMMEDIATE,
    ),

    # Dependency
    "DEPENDENCY:MISSING_NODEJS": MessageTemplate(
        title="Node.js Not Found",
        format="Node.js is not installed or not in PATH",
        context="Node.js is required for frontend build and package management.",
        impact="Frontend build will fail and npm commands will not work.",
        urgency=Urgency.IMMEDIATE,
    ),
    "DEPENDENCY:MISSING_JAVA": MessageTemplate(
        title="Java Not Found",
        format="Java is not installed or not in PATH",
        context="Java is required for backend compilation.",
        impact="Backend build will fail and the application archive cannot be created.",
        urgency=Urgency.IMMEDIATE,
    ),
    "DEPENDENCY:AWS_CREDENTIALS": MessageTemplate(
        title="Cloud Credentials Not Configured",
        format="Cloud credentials are not configured for deployment",
        context="Credentials are required to deploy resources.",
        impact="Deployment will fail without proper authentication.",
        urgency=Urgency.IMMEDIATE,
    ),

    # Build
    "BUILD:COMPILE_ERROR": MessageTemplate(
        title="Compilation Failed",
        format="Compilation failed in {component}: {error}",
        context="Source code compilation encountered errors.",
        impact="Build artifacts cannot be created until compilation issues are resolved.",
        urgency=Urgency.HIGH,
    ),
    "BUILD:MISSING_FILE": MessageTemplate(
        title="Required File Missing",
        format="Required file not found: {file}",
        context="A file required for the build process is missing.",
        impact="Build process will fail until the missing file is provided.",
        urgency=Urgency.HIGH,
    ),
}


def _add_category_defaults() -> None:
    for category in (ErrorCategory.DEPLOYMENT, ErrorCategory.SYSTEM, ErrorCategory.VALIDATION):
        for subtype in (GENERIC_SUBTYPE, "UNKNOWN"):
            MESSAGE_TEMPLATES[template_key(category, subtype)] = MessageTemplate(
                title=f"{category.value} Error",
                format="{message}",
                context="An error occurred during the process.",
                impact="The operation may not complete successfully.",
                urgency=Urgency.MEDIUM,
            )


_add_category_defaults()


def default_templates() -> dict[str, MessageTemplate]:
    return dict(MESSAGE_TEMPLATES)
