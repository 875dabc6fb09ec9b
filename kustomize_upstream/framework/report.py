from __future__ import annotations

import json
import os
from datetime import datetime, timezone
from typing import Any

from .pipeline import SplitResult


def utc_now_iso8601() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")


def build_report(
    result: SplitResult,
    *,
    run_id: str,
    created_at: str,
    source: str | None = None,
    written: list[str] | None = None,
) -> dict[str, Any]:
    packages: list[dict[str, Any]] = []
    for package in result.packages.values():
        packages.append(
            {
                "name": package.name,
                "path": package.path,
                "descriptor": package.descriptor_filename,
                "descriptor_rendered": package.name in result.descriptors,
                "files": package.filenames,
            }
        )

    payload: dict[str, Any] = {
        "run_id": run_id,
        "created_at": created_at,
        "ok": result.ok,
        "documents": result.document_count,
        "packages": packages,
        "succeeded": [name for name in result.packages if name in result.descriptors],
        "withheld": list(result.withheld),
        "failures": [failure.to_dict() for failure in result.failures],
    }
    if source is not None:
        payload["source"] = source
    if written is not None:
        payload["written"] = list(written)
    return payload


def write_report(path: str, payload: dict[str, Any]) -> None:
    os.makedirs(os.path.dirname(os.path.abspath(path)), exist_ok=True)
    with open(path, "w", encoding="utf-8") as file:
        json.dump(payload, file, ensure_ascii=False, indent=2)
        file.write("\n")
