from __future__ import annotations

import argparse
import sys
from collections.abc import Sequence

EXIT_USAGE = 64


def _positive_int(value: str) -> int:
    try:
        parsed = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"expected an integer, got {value!r}") from exc
    if parsed < 1:
        raise argparse.ArgumentTypeError(f"expected an integer >= 1, got {parsed}")
    return parsed


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="kustomize-upstream",
        add_help=True,
        description=(
            "Split a multi-document manifest stream into packages, one manifest per file, "
            "using split rules on kind, name and namespace, and generate a kustomization "
            "descriptor per package from a template."
        ),
    )
    sub = parser.add_subparsers(dest="command", required=True)

    split = sub.add_parser("split", help="Split a manifest stream into packages")
    split.add_argument("config", nargs="?", default=None, help="Split config YAML")
    split.add_argument(
        "-i",
        "--input",
        default=None,
        help="Manifest stream file, or '-' for stdin (default: fetch Top.source/Top.sourceTemplate)",
    )
    split.add_argument("-o", "--output-dir", default=".", help="Directory to write packages under")
    split.add_argument("--report", default=None, help="Write a JSON run report to this path")
    split.add_argument("--log-dir", default=None, help="Also write an operational log file here")
    split.add_argument("--dry-run", action="store_true", help="Log the files that would be written")
    split.add_argument("-v", "--verbose", action="store_true", help="Log debug details to stderr")
    split.add_argument(
        "-j", "--jobs", type=_positive_int, default=None, help="Descriptor render workers"
    )
    split.add_argument("--timeout", type=float, default=30.0, help="HTTP fetch timeout in seconds")

    check = sub.add_parser("check-config", help="Validate a split config and list its rules")
    check.add_argument("config", nargs="?", default=None, help="Split config YAML")

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    try:
        args = build_parser().parse_args(list(argv) if argv is not None else None)
    except SystemExit as exc:
        if exc.code in (0, None):
            return 0
        return EXIT_USAGE

    if args.command == "split":
        from .app.split import run_split

        return run_split(
            config_path=args.config,
            input_path=args.input,
            output_dir=args.output_dir,
            report_path=args.report,
            log_dir=args.log_dir,
            dry_run=args.dry_run,
            verbose=args.verbose,
            max_workers=args.jobs,
            timeout=args.timeout,
        )

    if args.command == "check-config":
        from .app.split import check_config

        return check_config(args.config)

    raise AssertionError(f"Unhandled command: {args.command}")


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main(sys.argv[1:]))
