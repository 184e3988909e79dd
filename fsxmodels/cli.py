"""Command-line entry point.

Usage:
    fsxmodels run <FSX_DNS_NAME> [MOUNT_NAME]
    fsxmodels run --stack ai-ml-models-infrastructure
    fsxmodels summary
    fsxmodels list
"""

from __future__ import annotations

import argparse
import sys
from collections.abc import Sequence
from pathlib import Path

from loguru import logger
from rich.console import Console
from rich.table import Table

from fsxmodels.artifacts import CATALOG, select
from fsxmodels.config import Settings, resolve_settings
from fsxmodels.constants import DEFAULT_REGION, EXIT_FAILURE, EXIT_OK, EXIT_USAGE
from fsxmodels.exceptions import AttachError, ConfigurationError, LayoutError
from fsxmodels.guide import write_guide
from fsxmodels.logging import LogConfig, setup_logging, teardown_logging, warn_if_root
from fsxmodels.report import print_summary
from fsxmodels.stack import StackOutputs
from fsxmodels.workflow import Workflow


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="fsxmodels",
        description="Mount FSx for Lustre and download AI/ML models onto it",
    )
    parser.add_argument("--config", type=Path, default=None, help="TOML config file")
    parser.add_argument("--log-level", choices=["DEBUG", "INFO", "WARNING", "ERROR"], default=None)
    parser.add_argument("--log-file", type=str, default=None)
    sub = parser.add_subparsers(dest="command", required=True)

    run = sub.add_parser("run", help="Mount storage and download every model")
    run.add_argument("endpoint", nargs="?", help="FSx DNS name, e.g. fs-0123.fsx.us-east-1.amazonaws.com")
    run.add_argument("share", nargs="?", help="FSx mount name (default from config)")
    run.add_argument("--stack", default=None, help="Read the endpoint from this CloudFormation stack")
    run.add_argument("--region", default=DEFAULT_REGION, help="Region of --stack")
    run.add_argument("--mount-point", type=Path, default=None)
    run.add_argument("--models-dir", type=Path, default=None)
    run.add_argument("--max-retries", type=int, default=None)
    run.add_argument("--retry-delay", type=float, default=None)
    run.add_argument("--owner", default=None, help="User that should own the models tree")
    run.add_argument("--concurrency", type=int, default=None)
    run.add_argument("--only", action="append", default=None, metavar="NAME", help="Fetch only this model")
    run.add_argument("--no-fstab", action="store_true", help="Do not persist the mount in fstab")
    run.add_argument("--no-smoke-test", action="store_true", help="Skip the GPT4All test generation")
    run.add_argument("--no-guide", action="store_true", help="Do not write the usage guide")
    run.add_argument("--strict", action="store_true", help="Exit non-zero if any download failed")

    summary = sub.add_parser("summary", help="Show on-disk model sizes")
    summary.add_argument("--mount-point", type=Path, default=None)
    summary.add_argument("--models-dir", type=Path, default=None)

    sub.add_parser("list", help="List the model catalog")
    return parser


def _settings(args: argparse.Namespace) -> Settings:
    settings = resolve_settings(path=args.config)
    overrides = {
        "log_level": args.log_level,
        "log_file": args.log_file,
        "mount_point": getattr(args, "mount_point", None),
        "models_dir": getattr(args, "models_dir", None),
        "max_retries": getattr(args, "max_retries", None),
        "retry_delay": getattr(args, "retry_delay", None),
        "owner": getattr(args, "owner", None),
        "concurrency": getattr(args, "concurrency", None),
    }
    if getattr(args, "no_fstab", False):
        overrides["persist"] = False
    if getattr(args, "no_smoke_test", False):
        overrides["smoke_test"] = False
    if getattr(args, "strict", False):
        overrides["strict"] = True
    return settings.with_overrides(**overrides)


def _cmd_list(console: Console) -> int:
    table = Table(show_edge=False, box=None, padding=(0, 2), header_style="bold bright_black")
    table.add_column("Name")
    table.add_column("Kind")
    table.add_column("Source")
    table.add_column("Directory")
    for spec in CATALOG:
        table.add_row(spec.name, str(spec.source_kind), spec.source_identifier, spec.local_subdir)
    console.print(table)
    return EXIT_OK


def _cmd_summary(console: Console, settings: Settings) -> int:
    print_summary(console, None, CATALOG, settings.models_root, settings.mount_point)
    return EXIT_OK


def _cmd_run(console: Console, args: argparse.Namespace, settings: Settings) -> int:
    warn_if_root()

    endpoint, share = args.endpoint, args.share
    if args.stack:
        resolved = StackOutputs(args.stack, args.region).endpoint()
        endpoint = endpoint or resolved.dns_name
        share = share or resolved.mount_name

    specs = select(args.only)
    workflow = Workflow(settings)
    try:
        result = workflow.run(workflow.target(endpoint, share), specs)
    except AttachError as e:
        logger.error(f"Storage attachment failed: {e}")
        console.print(f"[red bold]Error:[/] {e}")
        return EXIT_FAILURE
    except LayoutError as e:
        logger.error(f"Directory provisioning failed: {e}")
        console.print(f"[red bold]Error:[/] {e}")
        return EXIT_FAILURE

    guide_dir = None
    if not args.no_guide:
        guide_dir = settings.guide_dir or Path.home()
        try:
            write_guide(specs, settings.models_root, settings.mount_point, guide_dir)
        except OSError as e:
            logger.warning(f"Could not write usage guide to {guide_dir}: {e}")
            guide_dir = None

    print_summary(console, result.report, specs, settings.models_root, settings.mount_point, guide_dir)
    return EXIT_OK if result.exit_ok(strict=settings.strict) else EXIT_FAILURE


def main(argv: Sequence[str] | None = None, console: Console | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    console = console or Console()

    if args.command == "run" and not (args.endpoint or args.stack):
        parser.print_usage(sys.stderr)
        print("error: FSx DNS name is required (or pass --stack)", file=sys.stderr)
        return EXIT_USAGE

    try:
        settings = _settings(args)
    except ConfigurationError as e:
        print(f"error: {e}", file=sys.stderr)
        return EXIT_USAGE

    handler_ids = setup_logging(LogConfig.from_settings(settings))
    try:
        match args.command:
            case "list":
                return _cmd_list(console)
            case "summary":
                return _cmd_summary(console, settings)
            case _:
                return _cmd_run(console, args, settings)
    except ConfigurationError as e:
        logger.error(str(e))
        console.print(f"[red bold]Error:[/] {e}")
        return EXIT_USAGE
    finally:
        teardown_logging(handler_ids)


def cli() -> None:
    sys.exit(main())


if __name__ == "__main__":
    cli()
