"""Split a multi-document manifest stream into identified resource documents."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from typing import Any

import yaml

from .errors import MalformedDocument

logger = logging.getLogger(__name__)

_SEPARATOR_RE = re.compile(r"^---(?=\s|$)")
_END_MARKER_RE = re.compile(r"^\.\.\.\s*$")


@dataclass(frozen=True)
class ResourceDocument:
    index: int
    body: str
    kind: str
    name: str
    namespace: str = ""
    content: Mapping[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @property
    def identity(self) -> tuple[str, str, str]:
        return (self.kind, self.name, self.namespace)

    def to_record(self) -> dict[str, Any]:
        return {
            "index": self.index,
            "kind": self.kind,
            "name": self.name,
            "namespace": self.namespace,
        }


def split_chunks(text: str) -> Iterator[str]:
    """Yield the raw text between document separators, blank chunks included."""

    current: list[str] = []
    for line in text.splitlines(keepends=True):
        if _SEPARATOR_RE.match(line):
            yield "".join(current)
            remainder = line[3:].lstrip(" \t")
            current = [] if not remainder.strip() or remainder.startswith("#") else [remainder]
            continue
        if _END_MARKER_RE.match(line):
            yield "".join(current)
            current = []
            continue
        current.append(line)
    yield "".join(current)


def _require_field(value: Any, path: str, index: int) -> str:
    if value is None:
        raise MalformedDocument(index, f"missing {path}")
    if not isinstance(value, str):
        raise MalformedDocument(index, f"{path} must be a string (got {type(value).__name__})")
    if not value.strip():
        raise MalformedDocument(index, f"empty {path}")
    return value


def parse_document(chunk: str, index: int) -> ResourceDocument | None:
    """Parse one chunk; returns None when the chunk holds no document at all."""

    if not chunk.strip():
        return None
    try:
        content = yaml.safe_load(chunk)
    except yaml.YAMLError as exc:
        raise MalformedDocument(index, f"invalid YAML: {exc}") from exc
    if content is None:
        return None
    if not isinstance(content, Mapping):
        raise MalformedDocument(
            index, f"expected a mapping at the top level (got {type(content).__name__})"
        )

    kind = _require_field(content.get("kind"), "kind", index)
    metadata = content.get("metadata")
    if not isinstance(metadata, Mapping):
        raise MalformedDocument(index, "missing metadata.name")
    name = _require_field(metadata.get("name"), "metadata.name", index)

    namespace = metadata.get("namespace")
    if namespace is None:
        namespace = ""
    elif not isinstance(namespace, str):
        raise MalformedDocument(
            index, f"metadata.namespace must be a string (got {type(namespace).__name__})"
        )

    body = chunk.strip("\n")
    return ResourceDocument(
        index=index,
        body=body.rstrip() + "\n",
        kind=kind,
        name=name,
        namespace=namespace,
        content=content,
    )


def iter_documents(text: str) -> Iterator[ResourceDocument]:
    """
    Lazily yield the resource documents of a manifest stream in stream order.

    Whitespace-only and comment-only documents are skipped; `index` counts the
    documents actually yielded.

    Raises:
        MalformedDocument: invalid YAML, a non-mapping document, or a document
            without `kind` / `metadata.name`.
    """

    index = 0
    for chunk in split_chunks(text):
        document = parse_document(chunk, index)
        if document is None:
            continue
        logger.debug(
            "Parsed document #%d: kind=%s name=%s namespace=%s",
            document.index,
            document.kind,
            document.name,
            document.namespace or "-",
        )
        yield document
        index += 1
