from __future__ import annotations

import logging
import sys
import uuid
from datetime import datetime
from typing import Any

from kustomize_upstream.foundation.config_io import load_config
from kustomize_upstream.foundation.logging_utils import (
    close_operational_logger,
    setup_operational_logger,
)
from kustomize_upstream.framework.config import SplitConfig
from kustomize_upstream.framework.errors import SplitError
from kustomize_upstream.framework.pipeline import SplitResult, split_stream
from kustomize_upstream.framework.report import build_report, utc_now_iso8601, write_report
from kustomize_upstream.framework.source import (
    DEFAULT_TIMEOUT_SECONDS,
    fetch_stream,
    read_stream,
    resolve_source_url,
)
from kustomize_upstream.framework.writer import write_result

EXIT_OK = 0
EXIT_PARTIAL = 1
EXIT_FATAL = 2


def generate_run_id() -> str:
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    return f"{timestamp}_{uuid.uuid4().hex[:8]}"


def load_split_config(config_path: str | None, logger: logging.Logger) -> SplitConfig:
    cfg_dict, meta = load_config(config_path)
    logger.info("Loaded config (%s): %s", meta["mode"], ", ".join(meta["paths"]))
    config = SplitConfig.from_dict(cfg_dict)
    logger.debug(
        "Config: %d split rules, default package=%s",
        len(config.rules),
        config.default_package or "<none>",
    )
    return config


def _log_summary(result: SplitResult, logger: logging.Logger) -> None:
    logger.info(
        "Split %d documents into %d packages", result.document_count, len(result.packages)
    )
    for name, package in result.packages.items():
        status = "ok" if name in result.descriptors else "descriptor failed"
        logger.info("  package %s: %d files (%s)", name, len(package.files), status)
    for name in result.withheld:
        logger.warning("  package %s: withheld", name)
    if result.failures:
        logger.error("%d failure(s):", len(result.failures))
        for failure in result.failures:
            logger.error("  %s", failure)


def run_split(
    *,
    config_path: str | None = None,
    input_path: str | None = None,
    output_dir: str = ".",
    report_path: str | None = None,
    log_dir: str | None = None,
    dry_run: bool = False,
    verbose: bool = False,
    max_workers: int | None = None,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
    run_id: str | None = None,
) -> int:
    """
    Run one split end to end and return the process exit code.

    0: every package and descriptor written. 1: some packages were withheld or
    lost their descriptor; everything else was written. 2: fatal error. Config,
    source and partition errors abort before anything is written; a filesystem
    error while writing can leave the files written up to that point.
    """

    run_id = run_id or generate_run_id()
    created_at = utc_now_iso8601()
    logger, _log_file = setup_operational_logger(run_id, log_dir=log_dir, verbose=verbose)
    source: str | None = None

    try:
        try:
            config = load_split_config(config_path, logger)

            if input_path:
                source = "<stdin>" if input_path == "-" else input_path
                logger.info("Reading manifest stream from %s", source)
                text = read_stream(input_path)
            else:
                source = resolve_source_url(config)
                logger.info("Fetching manifest stream from %s", source)
                text = fetch_stream(source, timeout=timeout)
                config = config.with_source(source)

            result = split_stream(config, text, max_workers=max_workers)
            written = write_result(result, output_dir, dry_run=dry_run, logger=logger)
        except (SplitError, ValueError, OSError) as exc:
            logger.error("Split failed: %s", exc)
            if report_path:
                error: dict[str, Any]
                if isinstance(exc, SplitError):
                    error = exc.to_dict()
                else:
                    error = {"type": type(exc).__name__, "message": str(exc)}
                write_report(
                    report_path,
                    {
                        "run_id": run_id,
                        "created_at": created_at,
                        "ok": False,
                        "source": source,
                        "error": error,
                    },
                )
            return EXIT_FATAL

        _log_summary(result, logger)
        if report_path:
            payload = build_report(
                result, run_id=run_id, created_at=created_at, source=source, written=written
            )
            write_report(report_path, payload)
            logger.info("Run report: %s", report_path)

        return EXIT_OK if result.ok else EXIT_PARTIAL
    finally:
        close_operational_logger(logger)


def check_config(config_path: str | None = None, *, out=None) -> int:
    out = out or sys.stdout
    try:
        cfg_dict, meta = load_config(config_path)
        config = SplitConfig.from_dict(cfg_dict)
    except (ValueError, OSError) as exc:
        print(f"Config error: {exc}", file=sys.stderr)
        return EXIT_FATAL

    print(f"config: {', '.join(meta['paths'])}", file=out)
    if config.top is not None:
        print(f"top: {config.top.name} {config.top.version}", file=out)
    for rule in config.rules:
        fields = [
            f"{key}={value}"
            for key, value in (
                ("kind", rule.matcher.kind),
                ("name", rule.matcher.name),
                ("namespace", rule.matcher.namespace),
            )
            if value is not None
        ]
        if rule.matcher.ignore_case:
            fields.append("ignoreCase")
        print(f"{rule.label}: {' '.join(fields) or '*'} -> {rule.package_name}", file=out)
    print(f"default: {config.default_package or '<none: unmatched documents fail>'}", file=out)
    for package_name in config.overrides:
        print(f"override: {package_name}", file=out)
    return EXIT_OK
