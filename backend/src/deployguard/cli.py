"""Command-line interface for deployment monitoring and error checks.

Every subcommand exits with status 0 on success and 1 on failure.

Usage examples::

    deployguard verify-trigger
    deployguard track-deployment deploy-42
    deployguard config validate
    deployguard check --build-command "npm run build"
    deployguard -v classify errors.json
"""
import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any

from . import __version__
from .checkers import (
    BuildCommandChecker,
    CommandAvailabilityChecker,
    CompositeChecker,
    RequiredCommand,
    RequiredFilesChecker,
    SystemResourceChecker,
)
from .classification import CLASSIFICATION_REPORT_FILE, ErrorClassifier
from .config import CONFIG_FILE, EXPORT_FORMATS, ConfigStore, MonitorConfig
from .deployment.executors import SimulatedRollbackExecutor
from .deployment.models import Deployment, FailureDetails
from .deployment.monitor import ContinuousDeploymentMonitor
from .deployment.rollback import RollbackEngine
from .exceptions import DeployGuardError
from .orchestrator import ErrorHandlingOrchestrator
from .persistence import MemoryHistoryStore, MemoryRecordLog
from .types import PHASE_ORDER

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="deployguard",
        description="Deployment monitoring with automatic rollback, and pre-deployment error checks.",
    )
    parser.add_argument("--version", action="store_true", help="Show version and exit.")
    parser.add_argument(
        "--config",
        default=CONFIG_FILE,
        help=f"Configuration file. (default: {CONFIG_FILE})",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")

    subparsers = parser.add_subparsers(dest="command", help="Available subcommands")

    subparsers.add_parser("verify-trigger", help="Verify push trigger configuration.")

    track = subparsers.add_parser("track-deployment", help="Run and track a deployment.")
    track.add_argument("deployment_id", help="Deployment identifier.")

    subparsers.add_parser("test-notification", help="Send a test failure notification.")

    rollback = subparsers.add_parser("test-rollback", help="Exercise the rollback path.")
    rollback.add_argument(
        "--execute",
        action="store_true",
        help="Run the configured rollback command instead of simulating it.",
    )

    config = subparsers.add_parser("config", help="Manage configuration.")
    config_sub = config.add_subparsers(dest="config_command")
    show = config_sub.add_parser("show", help="Print the effective configuration.")
    show.add_argument("--environment", default=None, help="Apply environment overrides.")
    config_sub.add_parser("validate", help="Validate the configuration.")
    config_sub.add_parser("reset", help="Reset the configuration to defaults.")
    config_sub.add_parser("template", help="Print a documented configuration template.")
    export = config_sub.add_parser("export", help="Export the configuration.")
    export.add_argument("--format", default="json", choices=EXPORT_FORMATS)

    subparsers.add_parser("status", help="Show monitoring status and history statistics.")

    history = subparsers.add_parser("history", help="Show recent deployments.")
    history.add_argument("--limit", type=int, default=10, help="Number of entries. (default: 10)")

    check = subparsers.add_parser("check", help="Run pre-deployment error checks.")
    check.add_argument("--output-dir", default=".", help="Directory for reports. (default: .)")
    check.add_argument(
        "--required-file",
        action="append",
        default=None,
        help="Configuration file that must exist (repeatable).",
    )
    check.add_argument(
        "--command",
        dest="commands",
        action="append",
        default=None,
        help="Executable that must be on PATH (repeatable).",
    )
    check.add_argument("--build-command", default=None, help="Build command to run.")
    check.add_argument("--skip-config", action="store_true")
    check.add_argument("--skip-dependencies", action="store_true")
    check.add_argument("--skip-build", action="store_true")

    classify = subparsers.add_parser("classify", help="Classify raw errors from a JSON file.")
    classify.add_argument("file", help="JSON file holding a list of raw errors.")
    classify.add_argument(
        "--output",
        default=CLASSIFICATION_REPORT_FILE,
        help=f"Classification report path. (default: {CLASSIFICATION_REPORT_FILE})",
    )

    return parser


def _print_json(data: Any) -> None:
    print(json.dumps(data, indent=2, default=str))


def _print_deployment(deployment: Deployment) -> None:
    duration = f"{deployment.duration:.1f}s" if deployment.duration is not None else "-"
    line = f"{deployment.id:<32} {deployment.type.value:<9} {deployment.status.value:<12} {duration:>8}"
    if deployment.target_deployment:
        line += f"  -> {deployment.target_deployment}"
    if deployment.error:
        line += f"  ({deployment.error})"
    print(line)


# ---------------------------------------------------------------------------
# Subcommand handlers
# ---------------------------------------------------------------------------

async def _cmd_verify_trigger(args: argparse.Namespace, store: ConfigStore) -> int:
    monitor = ContinuousDeploymentMonitor(config=store.load_config())
    result = await monitor.verify_trigger()

    for name, passed in result.checks.items():
        print(f"[{'ok' if passed else '--'}] {name}")
    for recommendation in result.recommendations:
        print(f"  - {recommendation}")
    print("Trigger configuration verified" if result.success else "Trigger configuration incomplete")
    return 0 if result.success else 1


async def _cmd_track_deployment(args: argparse.Namespace, store: ConfigStore) -> int:
    config = store.load_config()
    if not config.monitoring_enabled:
        print("Monitoring is disabled in the configuration")
        return 1

    monitor = ContinuousDeploymentMonitor.from_config(config)
    try:
        result = await monitor.track_deployment_progress(args.deployment_id)
    finally:
        await monitor.close()

    deployment = result.deployment
    for name, phase in deployment.phases.items():
        print(f"{name:<10} {phase.status.value}")

    if result.success:
        print(f"Deployment {deployment.id} succeeded in {result.duration:.1f}s")
        return 0

    print(f"Deployment {deployment.id} failed: {result.error}")
    if result.failure:
        for channel, outcome in result.failure.notifications.items():
            print(f"  {channel} notification: {outcome}")
    if result.rollback:
        if result.rollback.success:
            print(f"  Rolled back to {result.rollback.rollback_deployment.target_deployment}")
        else:
            print(f"  Rollback failed: {result.rollback.reason}")
    return 1


def _sample_failed_deployment(deployment_id: str, failed_phase: str = "build") -> Deployment:
    deployment = Deployment(id=deployment_id)
    for name in PHASE_ORDER:
        deployment.start_phase(name)
        deployment.add_log(name, f"Running {name} phase...")
        if name == failed_phase:
            deployment.finish_phase(name, success=False)
            deployment.add_log(name, f"{name} phase failed", level="ERROR")
            break
        deployment.finish_phase(name, success=True)
    deployment.complete(False, error=f"{failed_phase} phase failed (test)")
    return deployment


def _sample_successful_deployment(deployment_id: str) -> Deployment:
    deployment = Deployment(id=deployment_id)
    for name in PHASE_ORDER:
        deployment.start_phase(name)
        deployment.finish_phase(name, success=True)
    deployment.complete(True)
    return deployment


async def _cmd_test_notification(args: argparse.Namespace, store: ConfigStore) -> int:
    config = store.load_config()
    monitor = ContinuousDeploymentMonitor.from_config(config, store=MemoryHistoryStore())

    deployment = _sample_failed_deployment("test-notification")
    details = FailureDetails.from_deployment(deployment)
    outcomes = await monitor.dispatcher.notify_failure(details)

    for channel, outcome in outcomes.items():
        print(f"{channel}: {outcome}")
    return 1 if "failed" in outcomes.values() else 0


async def _cmd_test_rollback(args: argparse.Namespace, store: ConfigStore) -> int:
    config = store.load_config()
    history = MemoryHistoryStore()
    if args.execute:
        engine = ContinuousDeploymentMonitor.from_config(config, store=history).rollback_engine
    else:
        engine = RollbackEngine(
            history,
            executor=SimulatedRollbackExecutor(delay=0),
            record_log=MemoryRecordLog(),
        )

    await history.append(_sample_successful_deployment("test-success"))
    failed = _sample_failed_deployment("test-failure")
    await history.append(failed)

    result = await engine.trigger_automatic_rollback(failed)
    if result.success:
        print(f"Rollback {result.rollback_deployment.id} restored {result.rollback_deployment.target_deployment}")
        return 0
    print(f"Rollback failed: {result.reason}")
    return 1


async def _cmd_config(args: argparse.Namespace, store: ConfigStore) -> int:
    command = args.config_command

    if command in (None, "show"):
        environment = getattr(args, "environment", None)
        config = store.get_environment_config(environment) if environment else store.load_config()
        _print_json(config.to_dict())
        return 0

    if command == "validate":
        validation = store.validate_config()
        for error in validation.errors:
            print(f"error: {error}")
        for warning in validation.warnings:
            print(f"warning: {warning}")
        print("Configuration is valid" if validation.valid else "Configuration is invalid")
        return 0 if validation.valid else 1

    if command == "reset":
        if not store.reset_to_defaults():
            return 1
        print(f"Configuration reset to defaults: {store.path}")
        return 0

    if command == "template":
        _print_json(store.generate_config_template())
        return 0

    if command == "export":
        print(store.export_config(args.format))
        return 0

    return 1


async def _cmd_status(args: argparse.Namespace, store: ConfigStore) -> int:
    config = store.load_config()
    monitor = ContinuousDeploymentMonitor.from_config(config)
    try:
        stats = await monitor.store.get_statistics()
        latest = await monitor.get_deployment_history(limit=1)
    finally:
        await monitor.close()

    print(f"Application: {config.app_id or '(not configured)'}")
    print(f"Branch: {config.branch_name}")
    print(f"Monitoring: {'enabled' if config.monitoring_enabled else 'disabled'}")
    print(f"Automatic rollback: {'enabled' if config.auto_rollback else 'disabled'}")
    print(f"Deployments: {stats['total']} ({', '.join(f'{k}: {v}' for k, v in stats['by_status'].items())})")
    print(f"Rollbacks: {stats['rollbacks']}")
    if latest:
        print("Latest:")
        _print_deployment(latest[0])
    return 0


async def _cmd_history(args: argparse.Namespace, store: ConfigStore) -> int:
    monitor = ContinuousDeploymentMonitor.from_config(store.load_config())
    try:
        deployments = await monitor.get_deployment_history(args.limit)
    finally:
        await monitor.close()

    if not deployments:
        print("No deployments recorded")
        return 0
    for deployment in deployments:
        _print_deployment(deployment)
    return 0


def _build_orchestrator(args: argparse.Namespace, config: MonitorConfig, config_path: Path) -> ErrorHandlingOrchestrator:
    required_files = args.required_file or [str(config_path)]
    commands = args.commands or ["git"]
    dependency_checker = CompositeChecker("dependency", [
        CommandAvailabilityChecker([RequiredCommand(name, name) for name in commands]),
        SystemResourceChecker(path=args.output_dir),
    ])
    build_command = args.build_command or config.phase_commands.get("build")

    return ErrorHandlingOrchestrator(
        config_checker=RequiredFilesChecker(required_files),
        dependency_checker=dependency_checker,
        build_checker=BuildCommandChecker(build_command),
        classifier=ErrorClassifier(verbose=args.verbose),
        output_dir=args.output_dir,
        skip_config_check=args.skip_config,
        skip_dependency_check=args.skip_dependencies,
        skip_build_monitoring=args.skip_build,
    )


async def _cmd_check(args: argparse.Namespace, store: ConfigStore) -> int:
    orchestrator = _build_orchestrator(args, store.load_config(), store.path)
    result = await orchestrator.run()

    print(orchestrator.classifier.render_report(result.classified))
    print()
    for rec in result.summary.recommendations[:3]:
        print(f"[{rec.priority}] {rec.title}: {rec.description}")
    print("STATUS: READY FOR DEPLOYMENT" if result.success else "STATUS: CRITICAL ISSUES REQUIRE ATTENTION")
    return 0 if result.success else 1


async def _cmd_classify(args: argparse.Namespace, store: ConfigStore) -> int:
    path = Path(args.file)
    data = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(data, dict):
        data = data.get("errors", [])
    if not isinstance(data, list):
        print(f"{path} must contain a list of errors")
        return 1

    classifier = ErrorClassifier(verbose=args.verbose)
    result = classifier.process_errors(data)
    print(classifier.render_report(result))
    classifier.save_classification_report(result, args.output)
    return 0 if result.summary.critical_count == 0 else 1


_HANDLERS = {
    "verify-trigger": _cmd_verify_trigger,
    "track-deployment": _cmd_track_deployment,
    "test-notification": _cmd_test_notification,
    "test-rollback": _cmd_test_rollback,
    "config": _cmd_config,
    "status": _cmd_status,
    "history": _cmd_history,
    "check": _cmd_check,
    "classify": _cmd_classify,
}


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.version:
        print(f"deployguard {__version__}")
        sys.exit(0)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    handler = _HANDLERS[args.command]
    store = ConfigStore(args.config)
    try:
        exit_code = asyncio.run(handler(args, store))
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        exit_code = 1
    except DeployGuardError as exc:
        print(f"Error: {exc.message}", file=sys.stderr)
        exit_code = 1
    except (OSError, ValueError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        exit_code = 1

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
