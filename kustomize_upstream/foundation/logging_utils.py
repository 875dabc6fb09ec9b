"""Operational logging setup for a split run."""

from __future__ import annotations

import logging
import os

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(message)s"


def setup_operational_logger(
    run_id: str,
    *,
    log_dir: str | None = None,
    verbose: bool = False,
) -> tuple[logging.Logger, str | None]:
    """
    Configure the run logger.

    Logs go to stderr (INFO, DEBUG when verbose) and, when `log_dir` is given,
    to a UTF-8 file `<run_id>_oplog.log` that records everything at DEBUG.
    Library modules log under `kustomize_upstream.framework`; their records are
    routed to the same handlers.
    """

    logger = logging.getLogger(f"kustomize_upstream.run.{run_id}")
    logger.setLevel(logging.DEBUG)
    logger.handlers.clear()

    formatter = logging.Formatter(LOG_FORMAT)
    handlers: list[logging.Handler] = []

    stream_handler = logging.StreamHandler()
    stream_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
    stream_handler.setFormatter(formatter)
    handlers.append(stream_handler)

    log_file: str | None = None
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
        log_file = os.path.join(log_dir, f"{run_id}_oplog.log")
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    for handler in handlers:
        logger.addHandler(handler)
    logger.propagate = False

    framework_logger = logging.getLogger("kustomize_upstream.framework")
    framework_logger.setLevel(logging.DEBUG)
    framework_logger.handlers.clear()
    for handler in handlers:
        framework_logger.addHandler(handler)
    framework_logger.propagate = False

    logger.info("Operational logging initialized for run %s", run_id)
    if log_file:
        logger.debug("Operational log file: %s", log_file)

    return logger, log_file


def close_operational_logger(logger: logging.Logger) -> None:
    for name in (logger.name, "kustomize_upstream.framework"):
        target = logging.getLogger(name)
        for handler in list(target.handlers):
            handler.close()
            target.removeHandler(handler)
