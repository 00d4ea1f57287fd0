"""CLI entry point for inventory reconciliation."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from reconciler.config import Settings
from reconciler.exceptions import ReconcileError
from reconciler.services.compare_service import CompareMode, MismatchReason
from reconciler.services.dummy_service import write_dummy_list
from reconciler.services.listing_service import write_listing
from reconciler.services.pipeline_service import LabelStyle
from reconciler.services.reconcile_service import check_spo, check_temp
from reconciler.services.recovery_service import write_recovery_script

if TYPE_CHECKING:
    from collections.abc import Sequence

    from reconciler.services.reconcile_service import ReconcileReport

logger = logging.getLogger(__name__)


def _configure_logging(debug: bool) -> None:
    """Configure application logging."""
    level = logging.DEBUG if debug else logging.INFO
    fmt = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"
    logging.basicConfig(
        level=level,
        format=fmt,
        stream=sys.stderr,
        force=True,
    )


def _common_options() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--debug", action="store_true", default=None, help="Verbose logging")
    common.add_argument(
        "--encoding", dest="input_encoding", help="Encoding of input files (default: utf-8-sig)"
    )
    return common


def _check_options() -> argparse.ArgumentParser:
    check = argparse.ArgumentParser(add_help=False)
    check.add_argument(
        "--concurrency",
        "-c",
        type=int,
        help="Number of comparison workers (default: half the CPUs)",
    )
    check.add_argument("--base-dir", "-b", dest="base_dir", help="Base directory of checked paths")
    check.add_argument("--source", "-s", dest="source_path", type=Path, help="Source list")
    check.add_argument("--dest", "-d", dest="dest_path", type=Path, help="Destination listing")
    check.add_argument("--output", "-o", dest="output_path", type=Path, help="Mismatch report")
    check.add_argument("--ignore", "-g", help="Skip source rows whose path contains this text")
    check.add_argument(
        "--mode",
        dest="compare_mode",
        choices=[mode.value for mode in CompareMode],
        help="Comparison policy (default depends on the command)",
    )
    check.add_argument(
        "--labels",
        dest="label_style",
        choices=[style.value for style in LabelStyle],
        help="Write localized reason labels or reason tags (default: localized)",
    )
    return check


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="inventory-reconcile",
        description="Reconcile file inventories against storage snapshots",
    )
    common = _common_options()
    check = _check_options()
    subparsers = parser.add_subparsers(dest="command")

    temp = subparsers.add_parser(
        "check-temp",
        aliases=["ct"],
        parents=[common, check],
        help="Check a project file list against a temp storage snapshot",
    )
    temp.add_argument(
        "--dest-old",
        "-a",
        dest="dest_old_path",
        type=Path,
        help="Destination snapshot taken after processing; its sizes are also accepted",
    )

    spo = subparsers.add_parser(
        "check-spo",
        aliases=["cs"],
        parents=[common, check],
        help="Check a temp storage snapshot against a cloud storage listing",
    )
    spo.add_argument(
        "--cloud-dir", "-q", dest="cloud_dir", help="Cloud folder path removed from listed paths"
    )

    listing = subparsers.add_parser(
        "list", aliases=["l"], parents=[common], help="Write a snapshot of a directory tree"
    )
    listing.add_argument("--base-dir", "-b", dest="base_dir", required=True, help="Directory")
    listing.add_argument("--output", "-o", dest="output_path", type=Path, required=True)
    listing.add_argument(
        "--verbose", "-V", type=int, default=0, help="Log progress every N entries"
    )

    recovery = subparsers.add_parser(
        "recovery",
        aliases=["r"],
        parents=[common],
        help="Write upload commands for files in a mismatch report",
    )
    recovery.add_argument("--report", "-r", type=Path, required=True, help="Mismatch report")
    recovery.add_argument("--output", "-o", dest="output_path", type=Path, required=True)
    recovery.add_argument("--trim", "-t", default="", help="Leading folder to drop")
    recovery.add_argument("--upload-root", "-p", default="", help="Upload folder to prepend")

    dummy = subparsers.add_parser(
        "dummy-temp-list",
        aliases=["d"],
        parents=[common],
        help="Write a temp storage snapshot synthesized from a project list",
    )
    dummy.add_argument("--source", "-s", dest="source_path", type=Path, required=True)
    dummy.add_argument("--output", "-o", dest="output_path", type=Path, required=True)
    dummy.add_argument("--base-dir", "-b", dest="base_dir", help="Base directory of listed paths")
    dummy.add_argument(
        "--dest", "-d", dest="dest_path", type=Path, help="Snapshot supplying file timestamps"
    )
    dummy.add_argument(
        "--dest-old",
        "-a",
        dest="dest_old_path",
        type=Path,
        help="Old snapshot whose timestamps take precedence",
    )

    return parser


_SETTING_NAMES = (
    "debug",
    "input_encoding",
    "concurrency",
    "base_dir",
    "cloud_dir",
    "source_path",
    "dest_path",
    "dest_old_path",
    "output_path",
    "ignore",
    "compare_mode",
    "label_style",
)


def settings_from_args(args: argparse.Namespace) -> Settings:
    """Build settings with CLI flags overriding the environment."""
    overrides: dict[str, Any] = {
        name: getattr(args, name)
        for name in _SETTING_NAMES
        if getattr(args, name, None) is not None
    }
    return Settings(**overrides)


def print_report(report: ReconcileReport) -> None:
    summary = report.summary
    print(f"Reconciliation complete (mode {report.mode}).")
    print(f"  Destination files indexed: {report.indexed}")
    print(f"  Source rows read:          {report.source.read}")
    print(f"  Source rows skipped:       {report.source.skipped}")
    print(f"  Source files checked:      {report.source.emitted}")
    print(f"  Mismatches written:        {summary.total}")
    for reason in MismatchReason:
        print(f"    {reason.label} ({reason.value}): {summary.count(reason)}")


def run(args: argparse.Namespace, parser: argparse.ArgumentParser) -> int:
    settings = settings_from_args(args)
    _configure_logging(settings.debug)

    if args.command in ("check-temp", "ct"):
        print_report(check_temp(settings))
    elif args.command in ("check-spo", "cs"):
        print_report(check_spo(settings))
    elif args.command in ("list", "l"):
        count = write_listing(
            Path(settings.base_dir or "."), settings.required_path("output_path"), args.verbose
        )
        print(f"Listing complete. {count} entries written.")
    elif args.command in ("recovery", "r"):
        stats = write_recovery_script(
            args.report,
            settings.required_path("output_path"),
            trim=args.trim,
            upload_root=args.upload_root,
            encoding=settings.input_encoding,
        )
        print(f"Recovery script complete. {stats.read} line(s) read, {stats.written} written.")
    elif args.command in ("dummy-temp-list", "d"):
        settings.require("base_dir", "source_path", "output_path")
        dummy = write_dummy_list(
            settings.required_path("source_path"),
            settings.required_path("output_path"),
            settings.base_dir or "",
            dest=settings.dest_path,
            dest_old=settings.dest_old_path,
            encoding=settings.input_encoding,
        )
        print(f"Dummy snapshot complete. {dummy.read} line(s) read, {dummy.written} written.")
    else:
        parser.print_help()
        return 1
    return 0


def main(argv: Sequence[str] | None = None) -> None:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        status = run(args, parser)
    except ValidationError as exc:
        print(f"Error: invalid configuration: {exc}", file=sys.stderr)
        sys.exit(1)
    except ReconcileError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)
    if status:
        sys.exit(status)


if __name__ == "__main__":
    main()
