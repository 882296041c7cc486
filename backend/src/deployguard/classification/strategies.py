"""Resolution strategies for classified errors, keyed ``CATEGORY:SUBTYPE``."""
from ..types import ErrorCategory
from .categories import GENERIC_SUBTYPE, ResolutionStrategy, template_key

DEFAULT_STRATEGY = ResolutionStrategy(
    immediate=["Review error details and context"],
    detailed=["Consult documentation for the affected component"],
    preventive=["Implement proper error handling and validation"],
)

RESOLUTION_STRATEGIES: dict[str, ResolutionStrategy] = {
    "CONFIGURATION:YAML_SYNTAX": ResolutionStrategy(
        immediate=[
            "Check YAML indentation (use 2 spaces, no tabs)",
            "Validate YAML syntax with a linter",
            "Look for missing colons or quotes in values",
        ],
        detailed=[
            "Open the configuration file in a text editor",
            "Check for consistent indentation (2 spaces per level)",
            "Ensure all string values with special characters are quoted",
            "Validate the file structure matches the expected schema",
            "Use a YAML linter or validator to identify specific issues",
        ],
        preventive=[
            "Use a code editor with YAML syntax highlighting",
            "Set up pre-commit hooks to validate YAML files",
            "Use configuration templates to avoid syntax errors",
        ],
    ),
    "DEPENDENCY:MISSING_NODEJS": ResolutionStrategy(
        immediate=[
            "Install Node.js from https://nodejs.org/",
            "Verify installation: node --version",
            "Restart terminal after installation",
        ],
        detailed=[
            "Download the Node.js LTS version from the official website",
            "Run the installer with administrator privileges",
            "Add Node.js to the system PATH if not done automatically",
            "Verify npm is also installed: npm --version",
            "Consider using Node Version Manager (nvm) for version management",
        ],
        preventive=[
            "Use Node Version Manager (nvm) for consistent environments",
            "Document the required Node.js version in the README",
            "Include a Node.js version check in build scripts",
        ],
    ),
    "DEPENDENCY:AWS_CREDENTIALS": ResolutionStrategy(
        immediate=[
            "Run: aws configure",
            "Enter the access key ID and secret access key",
            "Set the default region (e.g., us-east-1)",
        ],
        detailed=[
            "Obtain credentials from the IAM console",
            "Run the 'aws configure' command",
            "Enter the access key ID when prompted",
            "Enter the secret access key when prompted",
            "Enter the default region name (e.g., us-east-1)",
            "Enter the default output format (json recommended)",
            "Verify configuration: aws sts get-caller-identity",
        ],
        preventive=[
            "Use IAM roles instead of access keys when possible",
            "Rotate access keys regularly",
            "Use separate profiles for multiple environments",
            "Never commit credentials to version control",
        ],
    ),
}


def _add_category_defaults() -> None:
    for category in (
        ErrorCategory.BUILD,
        ErrorCategory.DEPLOYMENT,
        ErrorCategory.SYSTEM,
        ErrorCategory.VALIDATION,
    ):
        RESOLUTION_STRATEGIES[template_key(category, GENERIC_SUBTYPE)] = ResolutionStrategy(
            immediate=[
                "Review error message for specific details",
                "Check recent changes to configuration",
            ],
            detailed=[
                "Analyze error context and related components",
                "Consult documentation for the affected component",
            ],
            preventive=[
                "Implement proper testing procedures",
                "Use version control for configuration changes",
            ],
        )


_add_category_defaults()


def default_strategies() -> dict[str, ResolutionStrategy]:
    return dict(RESOLUTION_STRATEGIES)
