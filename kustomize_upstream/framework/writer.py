from __future__ import annotations

import logging
import os
from dataclasses import dataclass

from .errors import OutputPathCollision
from .pipeline import SplitResult


@dataclass(frozen=True)
class PlannedWrite:
    path: str
    content: str
    origin: str


def _resolve_under(root: str, *parts: str) -> str:
    root_abs = os.path.abspath(root)
    joined = os.path.normpath(os.path.join(root_abs, *parts))
    if os.path.isabs(os.path.join(*parts)) or os.path.commonpath([root_abs, joined]) != root_abs:
        raise ValueError(f"Output path escapes the output directory: {os.path.join(*parts)!r}")
    return joined


def plan_writes(result: SplitResult, output_root: str) -> list[PlannedWrite]:
    """
    List every file a split result produces, in write order.

    Raises:
        OutputPathCollision: two outputs resolve to the same path.
        ValueError: a rendered path points outside `output_root`.
    """

    planned: list[PlannedWrite] = []
    claimed: dict[str, str] = {}

    def claim(path: str, content: str, origin: str) -> None:
        previous = claimed.get(path)
        if previous is not None:
            raise OutputPathCollision(path, previous, origin)
        claimed[path] = origin
        planned.append(PlannedWrite(path=path, content=content, origin=origin))

    for package in result.packages.values():
        for item in package.files:
            claim(
                _resolve_under(output_root, item.path, item.filename),
                item.body,
                f"{package.name}:{item.document.kind}/{item.document.name}",
            )
        descriptor = result.descriptors.get(package.name)
        if descriptor is not None:
            claim(
                _resolve_under(output_root, package.path, package.descriptor_filename),
                descriptor,
                f"{package.name}:descriptor",
            )
    return planned


def write_result(
    result: SplitResult,
    output_root: str,
    *,
    dry_run: bool = False,
    logger: logging.Logger | None = None,
) -> list[str]:
    planned = plan_writes(result, output_root)
    written: list[str] = []
    for item in planned:
        if dry_run:
            if logger:
                logger.info("would create file: %s", item.path)
            written.append(item.path)
            continue
        os.makedirs(os.path.dirname(item.path), exist_ok=True)
        with open(item.path, "w", encoding="utf-8", newline="\n") as file:
            file.write(item.content)
        if logger:
            logger.info("create file: %s", item.path)
        written.append(item.path)
    return written
