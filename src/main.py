# src/main.py — v1
"""CLI entry point — scan, catalog, report and login commands.

Usage:
    cxscan scan <workspace> --job job.json [--build-dir DIR]
    cxscan projects | presets | encodings
    cxscan report <ScanReport.xml> [--json]
    cxscan check-login
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path

from cxscan.logging.logger import get_logger, setup_logging
from cxscan.version import __version__

logger = get_logger("main")

EXIT_SUCCESS = 0
EXIT_ERROR = 1
EXIT_UNSTABLE = 2
EXIT_INTERRUPTED = 130


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        return EXIT_ERROR

    from cxscan.config.settings import ConfigurationError, load_settings

    try:
        settings = load_settings()
    except (ConfigurationError, ValueError) as exc:
        print(f"Invalid configuration: {exc}", file=sys.stderr)
        return EXIT_ERROR

    setup_logging(
        level="DEBUG" if args.verbose else settings.log_level,
        log_format=settings.log_format,
        log_file=str(settings.log_file) if settings.log_file else None,
        rotation=settings.log_rotation,
        retention=settings.log_retention,
    )

    try:
        return asyncio.run(args.func(args, settings))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return EXIT_INTERRUPTED
    except Exception as exc:
        logger.error("Fatal error: %s", exc, exc_info=args.verbose)
        return EXIT_ERROR


def _build_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="cxscan",
        description=f"cxscan v{__version__} — static analysis scan step for CI pipelines",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command")

    # --- scan ---
    p_scan = subparsers.add_parser("scan", help="Scan a workspace")
    p_scan.add_argument("workspace", type=Path, help="Source directory to scan")
    p_scan.add_argument(
        "--job", type=Path, required=True,
        help="Job configuration (JSON)",
    )
    p_scan.add_argument(
        "--build-dir", type=Path, default=Path("./build"),
        help="Directory receiving reports and logs (default: ./build)",
    )
    p_scan.add_argument(
        "--build-name", default="local",
        help="Build display name used in logs (default: local)",
    )
    p_scan.set_defaults(func=_cmd_scan)

    # --- catalog ---
    for name, help_text in (
        ("projects", "List projects visible to the default credentials"),
        ("presets", "List rule presets"),
        ("encodings", "List source encodings (configuration sets)"),
    ):
        p_catalog = subparsers.add_parser(name, help=help_text)
        p_catalog.set_defaults(func=_cmd_catalog, catalog=name)

    # --- report ---
    p_report = subparsers.add_parser("report", help="Summarize an XML scan report")
    p_report.add_argument("file", type=Path, help="Path to ScanReport.xml")
    p_report.add_argument(
        "--json", action="store_true",
        help="Print the full summary as JSON",
    )
    p_report.set_defaults(func=_cmd_report)

    # --- check-login ---
    p_login = subparsers.add_parser(
        "check-login", help="Validate the default server credentials",
    )
    p_login.set_defaults(func=_cmd_check_login)

    return parser


async def _cmd_scan(args: argparse.Namespace, settings) -> int:
    """Run one scan step against a local workspace."""
    from cxscan.api.facade import perform
    from cxscan.api.models import JobConfig, RunContext
    from cxscan.core.errors import ScanAborted
    from cxscan.workspace.local_workspace import LocalWorkspace

    workspace_dir: Path = args.workspace
    if not workspace_dir.is_dir():
        logger.error("Not a directory: %s", workspace_dir)
        return EXIT_ERROR

    config = JobConfig.from_file(args.job)
    run_context = RunContext(
        project_display_name=config.project_name,
        build_display_name=args.build_name,
        build_dir=args.build_dir,
    )

    try:
        await perform(
            LocalWorkspace(workspace_dir), run_context, sys.stdout, config,
            settings=settings,
        )
    except ScanAborted as exc:
        print(f"\nScan aborted: {exc.reason}")
        return EXIT_ERROR
    except asyncio.CancelledError:
        run_context.cancel.cancel()
        raise

    _print_record(run_context)
    return EXIT_UNSTABLE if run_context.status == "unstable" else EXIT_SUCCESS


async def _cmd_catalog(args: argparse.Namespace, settings) -> int:
    """List one server catalog with the default credentials."""
    from cxscan.api.validation import ConfigValidator

    if not settings.has_default_credentials:
        logger.error("Default server credentials are not set")
        return EXIT_ERROR

    validator = ConfigValidator(settings)
    try:
        if args.catalog == "projects":
            for name in await validator.fill_project_names():
                print(name)
        elif args.catalog == "presets":
            for option in await validator.fill_presets():
                print(f"{option.value:>8}  {option.name}")
        else:
            for option in await validator.fill_source_encodings():
                print(f"{option.value:>8}  {option.name}")
    finally:
        await validator.aclose()
    return EXIT_SUCCESS


async def _cmd_report(args: argparse.Namespace, settings) -> int:
    """Parse a saved report and print its counts."""
    from cxscan.core.errors import MalformedReport
    from cxscan.report.parser import parse_report

    report_file: Path = args.file
    if not report_file.is_file():
        logger.error("File not found: %s", report_file)
        return EXIT_ERROR

    try:
        summary = parse_report(report_file.read_bytes())
    except MalformedReport as exc:
        logger.error("Cannot read report: %s", exc)
        return EXIT_ERROR

    if args.json:
        print(json.dumps(summary.model_dump(mode="json"), indent=2))
        return EXIT_SUCCESS

    print(f"\nReport {report_file.name}:")
    print(f"  Project:  {summary.project_name or '-'}")
    print(f"  Scan ID:  {summary.scan_id or '-'}")
    print(f"  High:     {summary.high_count}")
    print(f"  Medium:   {summary.medium_count}")
    print(f"  Low:      {summary.low_count}")
    print(f"  Info:     {summary.info_count}")
    return EXIT_SUCCESS


async def _cmd_check_login(args: argparse.Namespace, settings) -> int:
    """Log in with the default credentials and report the verdict."""
    from cxscan.api.validation import ConfigValidator

    validator = ConfigValidator(settings)
    print(f"Credentials: {validator.credentials_description()}")
    try:
        url_check = await validator.check_server_url(settings.server_url)
        if url_check.kind == "error":
            print(f"  Server URL: {url_check.message}")
            return EXIT_ERROR
        login_check = await validator.check_password(
            settings.server_url, settings.server_username, settings.server_password,
        )
    finally:
        await validator.aclose()

    print(f"  Login: {login_check.message}")
    return EXIT_SUCCESS if login_check.kind == "ok" else EXIT_ERROR


def _print_record(run_context) -> None:
    """Print a human-readable summary of the last result record."""
    if not run_context.results:
        return
    record = run_context.results[-1]
    print(f"\nScan {record.status}:")
    print(f"  Project:  {record.project_name}")
    if record.scan_id is not None:
        print(f"  Scan ID:  {record.scan_id}")
    if record.summary is not None:
        print(
            f"  Findings: high={record.summary.high_count} "
            f"medium={record.summary.medium_count} low={record.summary.low_count}"
        )
    if record.reason:
        print(f"  Reason:   {record.reason}")
    if record.xml_report:
        print(f"  Report:   {record.xml_report}")


if __name__ == "__main__":
    sys.exit(main())
