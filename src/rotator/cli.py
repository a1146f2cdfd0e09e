"""
Secret Rotator CLI entry point.

This module provides the command-line interface for the rotator.
"""

from __future__ import annotations

import argparse
import json
import logging
import signal
import sys
import threading
from typing import Any

from rotator import __version__
from rotator.config import ConfigAgent, RotatorSettings, load_config_file, load_settings_from_env
from rotator.engine import SecretRotator
from rotator.errors import ConfigError
from rotator.models import PassResult
from rotator.observability import configure_logging
from rotator.provisioners import build_default_registry
from rotator.store import get_store

logger = logging.getLogger(__name__)


def create_parser() -> argparse.ArgumentParser:
    """Create CLI argument parser with subcommands."""
    env = load_settings_from_env()

    parser = argparse.ArgumentParser(
        prog="rotator",
        description="Secret Rotator - scheduled rotation of versioned secrets",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"rotator {__version__}",
    )

    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (can be repeated)",
    )

    parser.add_argument(
        "--log-format",
        choices=["human", "json"],
        default=env.log_format,
        help="Log output format (default: human)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Options shared by commands that talk to the store
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--config-path",
        default=env.config_path,
        help="Path to the rotation config (YAML or JSON)",
    )
    common.add_argument(
        "--store",
        choices=["gcp", "memory"],
        default=env.store_backend,
        help="Secret store backend (default: gcp)",
    )
    common.add_argument(
        "--enable-deletion",
        action="store_true",
        default=env.enable_deletion,
        help="Destroy disabled versions once their retention period has passed",
    )
    common.add_argument(
        "--max-workers",
        type=int,
        default=env.max_workers,
        help="Secrets processed concurrently within a pass (default: 4)",
    )
    common.add_argument(
        "--format",
        choices=["table", "json"],
        default="table",
        help="Output format for pass results (default: table)",
    )

    # run command
    run_parser = subparsers.add_parser(
        "run",
        parents=[common],
        help="Rotate secrets continuously, or once with --run-once",
    )
    run_parser.add_argument(
        "--period",
        type=int,
        default=env.period_seconds,
        help="Seconds between passes (default: 60)",
    )
    run_parser.add_argument(
        "--run-once",
        action="store_true",
        help="Rotate once instead of running the continuous loop",
    )

    # plan command
    subparsers.add_parser(
        "plan",
        parents=[common],
        help="Show the actions the next pass would take without applying them",
    )

    # validate command
    validate_parser = subparsers.add_parser(
        "validate",
        help="Validate a rotation config file",
    )
    validate_parser.add_argument(
        "--config-path",
        default=env.config_path,
        help="Path to the rotation config (YAML or JSON)",
    )

    return parser


def _settings_from_args(args: argparse.Namespace) -> RotatorSettings:
    return RotatorSettings(
        config_path=args.config_path or "",
        period_seconds=getattr(args, "period", 60),
        enable_deletion=args.enable_deletion,
        run_once=getattr(args, "run_once", False),
        store_backend=args.store,
        max_workers=args.max_workers,
    )


def _build_rotator(settings: RotatorSettings, agent: ConfigAgent) -> SecretRotator:
    return SecretRotator(
        store=get_store(settings.store_backend),
        agent=agent,
        provisioners=build_default_registry(enable_deletion=settings.enable_deletion),
        period=settings.period,
        enable_deletion=settings.enable_deletion,
        max_workers=settings.max_workers,
    )


def print_result(result: PassResult, output_format: str = "table") -> None:
    """Print a pass result."""
    if output_format == "json":
        print(json.dumps(result.to_dict(), indent=2))
        return

    if not len(result):
        print("No secrets declared.")
        return

    print(f"{'Secret':<50} {'Status':<8} {'Actions':<40} {'Error'}")
    print("-" * 120)
    for outcome in result:
        actions = ", ".join(str(a) for a in outcome.actions) or "-"
        print(
            f"{outcome.secret_name:<50} {outcome.status.value:<8} {actions:<40} {outcome.error}"
        )


def cmd_run(args: argparse.Namespace) -> int:
    """
    Handle run subcommand.

    Returns:
        Exit code (0 success, 1 error)
    """
    settings = _settings_from_args(args)
    problems = settings.validate()
    if problems:
        for problem in problems:
            print(f"Invalid options: {problem}")
        return 1

    agent = ConfigAgent()

    if settings.run_once:
        try:
            agent.load(settings.config_path)
        except ConfigError as e:
            print(f"Error: {e}")
            return 1

        if settings.enable_deletion and settings.store_backend in ("gcp", "gsm"):
            logger.warning(
                "Secret Manager does not report disable times and --run-once keeps "
                "them only for this process, so no version will be destroyed; "
                "run the continuous loop to enforce retention"
            )

        result = _build_rotator(settings, agent).run_once()
        print_result(result, args.format)
        return 0 if result.success else 1

    try:
        watch = agent.watch_config(settings.config_path)
    except ConfigError as e:
        print(f"Error: {e}")
        return 1

    rotator = _build_rotator(settings, agent)
    stop = threading.Event()

    def handle_signal(signum: int, frame: Any) -> None:
        logger.info(f"Received signal {signum}, stopping after the current pass")
        stop.set()

    signal.signal(signal.SIGINT, handle_signal)
    signal.signal(signal.SIGTERM, handle_signal)

    watcher = threading.Thread(target=watch, args=(stop,), name="config-agent", daemon=True)
    watcher.start()
    try:
        rotator.start(stop)
    finally:
        stop.set()
        watcher.join(timeout=5)

    return 0


def cmd_plan(args: argparse.Namespace) -> int:
    """
    Handle plan subcommand.

    Returns:
        Exit code (0 success, 1 error)
    """
    settings = _settings_from_args(args)
    problems = settings.validate()
    if problems:
        for problem in problems:
            print(f"Invalid options: {problem}")
        return 1

    agent = ConfigAgent()
    try:
        agent.load(settings.config_path)
    except ConfigError as e:
        print(f"Error: {e}")
        return 1

    result = _build_rotator(settings, agent).plan()
    print_result(result, args.format)
    return 0 if result.success else 1


def cmd_validate(args: argparse.Namespace) -> int:
    """
    Handle validate subcommand.

    Returns:
        Exit code (0 valid, 1 invalid)
    """
    if not args.config_path:
        print("Invalid options: required flag --config-path was unset")
        return 1

    try:
        config = load_config_file(args.config_path)
    except ConfigError as e:
        print(f"Invalid config: {e}")
        return 1

    invalid = 0
    for spec in config:
        problems = spec.validate()
        if problems:
            invalid += 1
            print(f"{spec.name}: {'; '.join(problems)}")

    if invalid:
        print(f"{invalid} of {len(config)} secrets are invalid")
        return 1

    print(f"Config is valid: {len(config)} secrets")
    return 0


def main() -> int:
    """Main entry point for the CLI."""
    parser = create_parser()
    args = parser.parse_args()

    env = load_settings_from_env()
    level = env.log_level
    if args.verbose:
        level = "DEBUG" if args.verbose > 1 else "INFO"
    configure_logging(level=level, format=args.log_format)

    if args.command is None:
        parser.print_help()
        return 0

    command_handlers = {
        "run": cmd_run,
        "plan": cmd_plan,
        "validate": cmd_validate,
    }

    handler = command_handlers.get(args.command)
    if handler:
        return handler(args)

    print(f"Unknown command: {args.command}")
    return 1


if __name__ == "__main__":
    sys.exit(main())
