"""
Configuration for deployment monitoring.

Settings live in a JSON file (``deployguard.json`` by default) layered over
built-in defaults. Environment variables supply defaults for the values that
usually differ between machines.
"""
import json
import logging
import os
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml

from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

CONFIG_FILE = "deployguard.json"

ENV_APP_ID = "DEPLOY_APP_ID"
ENV_NOTIFICATION_EMAIL = "NOTIFICATION_EMAIL"
ENV_WEBHOOK_URL = "WEBHOOK_URL"
ENV_HEALTH_CHECK_URL = "HEALTH_CHECK_URL"

EXPORT_FORMATS = ("json", "yaml", "env")


@dataclass
class NotificationSettings:
    email_on_failure: bool = True
    webhook_on_failure: bool = True
    email_on_success: bool = False
    webhook_on_success: bool = False


@dataclass
class RollbackSettings:
    auto_rollback_enabled: bool = True
    rollback_timeout_minutes: int = 30
    max_rollback_attempts: int = 2


@dataclass
class DeploymentSettings:
    timeout_minutes: int = 45
    retry_delay_minutes: int = 5
    health_check_enabled: bool = True
    health_check_url: str = ""


@dataclass
class SmtpSettings:
    """SMTP relay used for e-mail notifications. Disabled while ``host`` is empty."""
    host: str = ""
    port: int = 587
    username: str = ""
    password: str = ""
    use_tls: bool = True
    sender: str = "deployguard@localhost"


_NESTED = {
    "notification_settings": NotificationSettings,
    "rollback_settings": RollbackSettings,
    "deployment_settings": DeploymentSettings,
    "smtp": SmtpSettings,
}


def _build(cls, data: Mapping[str, Any], name: str):
    if not isinstance(data, Mapping):
        raise ConfigurationError(f"{name} must be an object, got {type(data).__name__}")
    known = {f.name for f in fields(cls)}
    unknown = set(data) - known
    if unknown:
        logger.debug(f"Ignoring unknown {name} keys: {sorted(unknown)}")
    return cls(**{key: value for key, value in data.items() if key in known})


def deep_merge(base: dict[str, Any], updates: Mapping[str, Any]) -> dict[str, Any]:
    """Return ``base`` updated with ``updates``, merging nested objects."""
    merged = dict(base)
    for key, value in updates.items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


@dataclass
class MonitorConfig:
    """Settings for the continuous deployment monitor."""

    app_id: str = ""
    branch_name: str = "main"
    notification_email: str = ""
    webhook_url: str = ""
    max_retries: int = 3
    rollback_enabled: bool = True
    monitoring_enabled: bool = True
    notification_settings: NotificationSettings = field(default_factory=NotificationSettings)
    rollback_settings: RollbackSettings = field(default_factory=RollbackSettings)
    deployment_settings: DeploymentSettings = field(default_factory=DeploymentSettings)
    smtp: SmtpSettings = field(default_factory=SmtpSettings)
    phase_commands: dict[str, str] = field(default_factory=dict)
    rollback_command: str = ""
    records_dir: str = "."
    history_database_url: str = ""

    @classmethod
    def defaults(cls, environ: Optional[Mapping[str, str]] = None) -> "MonitorConfig":
        """Built-in defaults, with machine-specific values taken from the environment."""
        env = os.environ if environ is None else environ
        return cls(
            app_id=env.get(ENV_APP_ID, ""),
            notification_email=env.get(ENV_NOTIFICATION_EMAIL, ""),
            webhook_url=env.get(ENV_WEBHOOK_URL, ""),
            deployment_settings=DeploymentSettings(
                health_check_url=env.get(ENV_HEALTH_CHECK_URL, "")
            ),
        )

    @property
    def auto_rollback(self) -> bool:
        return self.rollback_enabled and self.rollback_settings.auto_rollback_enabled

    @property
    def health_check_url(self) -> Optional[str]:
        settings = self.deployment_settings
        if settings.health_check_enabled and settings.health_check_url:
            return settings.health_check_url
        return None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "MonitorConfig":
        if not isinstance(data, Mapping):
            raise ConfigurationError(f"Configuration must be an object, got {type(data).__name__}")
        values = dict(data)
        for key, settings_cls in _NESTED.items():
            if key in values:
                values[key] = _build(settings_cls, values[key], key)
        phase_commands = values.get("phase_commands")
        if phase_commands is not None and not isinstance(phase_commands, Mapping):
            raise ConfigurationError("phase_commands must be an object mapping phase to command")
        return _build(cls, values, "configuration")


@dataclass
class ConfigValidation:
    """Result of validating a configuration."""
    valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


ENVIRONMENT_OVERRIDES: dict[str, dict[str, Any]] = {
    "development": {
        "rollback_enabled": False,
        "notification_settings": {"email_on_failure": False, "webhook_on_failure": False},
    },
    "staging": {
        "rollback_enabled": True,
        "notification_settings": {"email_on_failure": True, "webhook_on_failure": False},
    },
    "production": {
        "rollback_enabled": True,
        "notification_settings": {"email_on_failure": True, "webhook_on_failure": True},
    },
}

TEMPLATE_COMMENTS = {
    "app_id": "Application identifier of the hosted deployment (required)",
    "branch_name": "Git branch to monitor for deployments (default: main)",
    "notification_email": "Email address for deployment notifications",
    "webhook_url": "Webhook URL for deployment notifications",
    "max_retries": "Maximum number of retry attempts for failed deployments",
    "rollback_enabled": "Enable automatic rollback on deployment failure",
    "monitoring_enabled": "Enable deployment monitoring and tracking",
    "phase_commands": "Shell command per phase (provision, build, deploy, verify)",
    "rollback_command": "Shell command restoring a deployment; {target} is the deployment ID",
    "records_dir": "Directory for notification, rollback and history records",
    "history_database_url": "SQLAlchemy URL of the history database (default: SQLite in records_dir)",
}


class ConfigStore:
    """Loads and saves the configuration file."""

    def __init__(self, path: str | Path = CONFIG_FILE, environ: Optional[Mapping[str, str]] = None):
        self.path = Path(path)
        self.environ = environ

    def default_config(self) -> MonitorConfig:
        return MonitorConfig.defaults(self.environ)

    def _read(self) -> Optional[dict[str, Any]]:
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as e:
            logger.warning(f"Could not load config from {self.path}, using defaults: {e}")
            return None
        if not isinstance(data, dict):
            raise ConfigurationError(f"{self.path} must contain a JSON object")
        return data

    def load_config(self) -> MonitorConfig:
        """Load the configuration, creating the file with defaults when missing."""
        defaults = self.default_config()
        if not self.path.exists():
            logger.info(f"No configuration at {self.path}, writing defaults")
            self.save_config(defaults)
            return defaults

        data = self._read()
        if data is None:
            return defaults
        return MonitorConfig.from_dict(deep_merge(defaults.to_dict(), data))

    def save_config(self, config: MonitorConfig) -> bool:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(config.to_dict(), indent=2), encoding="utf-8")
        except OSError as e:
            logger.error(f"Failed to save configuration to {self.path}: {e}")
            return False
        logger.debug(f"Configuration saved to {self.path}")
        return True

    def update_config(self, updates: Mapping[str, Any]) -> bool:
        """Merge ``updates`` into the stored configuration and save it."""
        current = self.load_config().to_dict()
        return self.save_config(MonitorConfig.from_dict(deep_merge(current, updates)))

    def validate_config(self, config: Optional[MonitorConfig] = None) -> ConfigValidation:
        config = config or self.load_config()
        errors = []
        warnings = []

        if not config.app_id:
            errors.append("app_id is required")
        if not config.branch_name:
            errors.append("branch_name is required")

        if not config.notification_email:
            warnings.append("notification_email is not configured - email notifications will be disabled")
        if not config.webhook_url:
            warnings.append("webhook_url is not configured - webhook notifications will be disabled")

        if not isinstance(config.max_retries, int) or not 0 <= config.max_retries <= 10:
            errors.append("max_retries must be between 0 and 10")

        timeout = config.deployment_settings.timeout_minutes
        if not isinstance(timeout, (int, float)) or not 5 <= timeout <= 120:
            errors.append("deployment_settings.timeout_minutes must be between 5 and 120")

        return ConfigValidation(valid=not errors, errors=errors, warnings=warnings)

    def get_environment_config(self, environment: str = "production") -> MonitorConfig:
        """Stored configuration with the overrides for ``environment`` applied."""
        base = self.load_config()
        overrides = ENVIRONMENT_OVERRIDES.get(environment)
        if overrides is None:
            logger.warning(f"Unknown environment '{environment}', using stored configuration")
            return base
        return MonitorConfig.from_dict(deep_merge(base.to_dict(), overrides))

    def generate_config_template(self) -> dict[str, Any]:
        template = self.default_config().to_dict()
        template["_comments"] = dict(TEMPLATE_COMMENTS)
        return template

    def export_config(self, format: str = "json") -> str:
        config = self.load_config()
        fmt = format.lower()

        if fmt == "json":
            return json.dumps(config.to_dict(), indent=2)
        if fmt == "yaml":
            return yaml.safe_dump(config.to_dict(), sort_keys=False, default_flow_style=False)
        if fmt == "env":
            return "\n".join([
                f"{ENV_APP_ID}={config.app_id}",
                f"{ENV_NOTIFICATION_EMAIL}={config.notification_email}",
                f"{ENV_WEBHOOK_URL}={config.webhook_url}",
                f"{ENV_HEALTH_CHECK_URL}={config.deployment_settings.health_check_url}",
                f"ROLLBACK_ENABLED={str(config.rollback_enabled).lower()}",
            ])

        raise ConfigurationError(
            f"Unsupported export format: {format} (expected one of {', '.join(EXPORT_FORMATS)})"
        )

    def reset_to_defaults(self) -> bool:
        return self.save_config(self.default_config())
