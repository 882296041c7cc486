"""
Checkers feeding the error handling orchestrator.

Every problem a checker finds is returned as a :class:`RawError`; only
programming errors escape ``run``.
"""
import asyncio
import inspect
import json
import logging
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Iterable, Optional, Sequence

import psutil
import yaml

from .classification import RawError
from .deployment.executors import OUTPUT_TAIL_CHARS, run_shell_command
from .orchestrator import Checker, CheckerResult
from .types import ErrorCategory, Severity

logger = logging.getLogger(__name__)


def _raw(category: ErrorCategory, severity: Severity, title: str, message: str, **details) -> RawError:
    return RawError(
        category=category.value,
        severity=severity.value,
        title=title,
        message=message,
        details=details,
    )


class RequiredFilesChecker:
    """Checks that configuration files exist and parse.

    JSON files are parsed with the json module and YAML files with PyYAML;
    other files are only checked for existence.
    """

    def __init__(self, files: Iterable[str | Path], root: str | Path = ".", name: str = "configuration"):
        self.files = [Path(f) for f in files]
        self.root = Path(root)
        self.name = name

    async def run(self) -> CheckerResult:
        errors = []
        checked = {}
        for relative in self.files:
            path = self.root / relative
            if not path.is_file():
                errors.append(_raw(
                    ErrorCategory.CONFIGURATION, Severity.CRITICAL,
                    "Configuration Error",
                    f"{relative} is missing (required configuration file)",
                    file=str(relative),
                ))
                checked[str(relative)] = "missing"
                continue

            error = self._check_syntax(path, relative)
            if error:
                errors.append(error)
                checked[str(relative)] = "invalid"
            else:
                checked[str(relative)] = "ok"

        return CheckerResult(passed=not errors, errors=errors, details={"files": checked})

    def _check_syntax(self, path: Path, relative: Path) -> Optional[RawError]:
        suffix = path.suffix.lower()
        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            return _raw(
                ErrorCategory.CONFIGURATION, Severity.ERROR,
                "Configuration Error", f"{relative} could not be read: {e}", file=str(relative),
            )

        if suffix == ".json":
            try:
                json.loads(text)
            except json.JSONDecodeError as e:
                return _raw(
                    ErrorCategory.CONFIGURATION, Severity.ERROR,
                    "Configuration Error", f"{relative} is invalid JSON: {e}", file=str(relative),
                )
        elif suffix in (".yml", ".yaml"):
            try:
                yaml.safe_load(text)
            except yaml.YAMLError as e:
                return _raw(
                    ErrorCategory.CONFIGURATION, Severity.CRITICAL,
                    "Configuration Error", f"{relative} syntax error: {e}", file=str(relative),
                )
        return None


@dataclass
class RequiredCommand:
    name: str
    executable: str
    required: bool = True


class CommandAvailabilityChecker:
    """Checks that command line tools are on PATH."""

    def __init__(self, commands: Sequence[RequiredCommand], name: str = "dependency"):
        self.commands = list(commands)
        self.name = name

    async def run(self) -> CheckerResult:
        errors = []
        found = {}
        for command in self.commands:
            location = shutil.which(command.executable)
            found[command.name] = location
            if location:
                continue
            severity = Severity.CRITICAL if command.required else Severity.WARNING
            errors.append(_raw(
                ErrorCategory.DEPENDENCY, severity,
                "Dependency Error",
                f"{command.name} not found in PATH",
                component=command.executable,
            ))

        passed = not any(e.severity == Severity.CRITICAL.value for e in errors)
        return CheckerResult(passed=passed, errors=errors, details={"commands": found})


class SystemResourceChecker:
    """Checks free disk space and memory pressure with psutil."""

    def __init__(
        self,
        path: str | Path = ".",
        min_free_disk_gb: float = 1.0,
        max_memory_percent: float = 90.0,
        name: str = "system"
    ):
        self.path = Path(path)
        self.min_free_disk_gb = min_free_disk_gb
        self.max_memory_percent = max_memory_percent
        self.name = name

    async def run(self) -> CheckerResult:
        errors = []

        disk = psutil.disk_usage(str(self.path))
        free_gb = disk.free / (1024 ** 3)
        if free_gb < self.min_free_disk_gb:
            errors.append(_raw(
                ErrorCategory.SYSTEM, Severity.CRITICAL,
                "System Error",
                f"Insufficient disk space: {free_gb:.2f} GB free, {self.min_free_disk_gb:.2f} GB required",
            ))

        memory = psutil.virtual_memory()
        if memory.percent > self.max_memory_percent:
            errors.append(_raw(
                ErrorCategory.SYSTEM, Severity.WARNING,
                "System Warning",
                f"High memory usage: {memory.percent:.1f}%",
            ))

        details = {
            "disk_free_gb": round(free_gb, 2),
            "disk_percent": disk.percent,
            "memory_percent": memory.percent,
        }
        return CheckerResult(passed=not errors, errors=errors, details=details)


class BuildCommandChecker:
    """Runs the build command; a non-zero exit is a build error."""

    def __init__(
        self,
        command: Optional[str],
        cwd: str | Path = ".",
        timeout: float = 600.0,
        name: str = "build"
    ):
        self.command = command
        self.cwd = Path(cwd)
        self.timeout = timeout
        self.name = name

    async def run(self) -> CheckerResult:
        if not self.command:
            logger.info("No build command configured")
            return CheckerResult(passed=True, details={"skipped": True})

        logger.info(f"Running build command: {self.command}")
        try:
            returncode, output = await run_shell_command(self.command, self.timeout, str(self.cwd))
        except asyncio.TimeoutError:
            return CheckerResult(passed=False, errors=[_raw(
                ErrorCategory.BUILD, Severity.ERROR,
                "Build Error", f"Build timeout after {self.timeout:.0f}s",
                component=self.command,
            )])
        except OSError as e:
            return CheckerResult(passed=False, errors=[_raw(
                ErrorCategory.BUILD, Severity.ERROR,
                "Build Error", f"Build command could not start: {e}",
                component=self.command,
            )])

        tail = output.strip()[-OUTPUT_TAIL_CHARS:]
        if returncode != 0:
            return CheckerResult(
                passed=False,
                errors=[_raw(
                    ErrorCategory.BUILD, Severity.ERROR,
                    "Build Error", f"Build failed with exit code {returncode}: {tail}",
                    component=self.command,
                )],
                details={"returncode": returncode},
            )
        return CheckerResult(passed=True, details={"returncode": returncode})


class CompositeChecker:
    """Runs several checkers one after another as a single stage."""

    def __init__(self, name: str, checkers: Sequence[Checker]):
        self.name = name
        self.checkers = list(checkers)

    async def run(self) -> CheckerResult:
        errors = []
        details = {}
        passed = True
        for checker in self.checkers:
            result = await checker.run()
            passed = passed and result.passed
            errors.extend(result.errors)
            details[checker.name] = result.details
        return CheckerResult(passed=passed, errors=errors, details=details)


class FunctionChecker:
    """Adapts a plain callable into a checker.

    The callable may be sync or async and may return a
    :class:`CheckerResult` or an iterable of raw errors (``RawError`` or
    dicts). A bare iterable passes when it is empty.
    """

    def __init__(self, name: str, func: Callable[[], Any]):
        self.name = name
        self.func = func

    async def run(self) -> CheckerResult:
        result = self.func()
        if inspect.isawaitable(result):
            result = await result
        if isinstance(result, CheckerResult):
            return result

        errors = [e if isinstance(e, RawError) else RawError.from_dict(e) for e in result or []]
        return CheckerResult(passed=not errors, errors=errors)
