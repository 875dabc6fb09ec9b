from __future__ import annotations

from typing import Any


class SplitError(Exception):
    """Base class for every error raised while splitting a manifest stream."""

    def to_dict(self) -> dict[str, Any]:
        return {"type": type(self).__name__, "message": str(self)}


class ConfigError(SplitError, ValueError):
    pass


class SourceFetchError(SplitError):
    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"Failed to fetch manifest stream from {url}: {reason}")
        self.url = url
        self.reason = reason


class MalformedDocument(SplitError):
    def __init__(self, index: int, reason: str) -> None:
        super().__init__(f"Malformed document #{index}: {reason}")
        self.index = index
        self.reason = reason

    def to_dict(self) -> dict[str, Any]:
        payload = super().to_dict()
        payload["index"] = self.index
        return payload


class UnmatchedDocument(SplitError):
    def __init__(self, index: int, kind: str, name: str, namespace: str) -> None:
        label = f"{kind}/{name}" + (f" (namespace={namespace})" if namespace else "")
        super().__init__(
            f"Document #{index} {label} matched no split rule and no default package is configured"
        )
        self.index = index
        self.kind = kind
        self.name = name
        self.namespace = namespace


class DuplicateFileName(SplitError):
    def __init__(
        self,
        package_name: str,
        filename: str,
        first: tuple[str, str, str],
        second: tuple[str, str, str],
    ) -> None:
        super().__init__(
            f"Package {package_name!r}: file name {filename!r} is produced by both "
            f"{_identity_label(first)} and {_identity_label(second)}"
        )
        self.package_name = package_name
        self.filename = filename
        self.first = first
        self.second = second

    def to_dict(self) -> dict[str, Any]:
        payload = super().to_dict()
        payload["package"] = self.package_name
        payload["filename"] = self.filename
        return payload


class TemplateRenderError(SplitError):
    """Template evaluation failed.

    `package_name` is set when the failure belongs to one package's descriptor;
    `template_name` names the config key the template came from.
    """

    def __init__(
        self,
        reason: str,
        *,
        template_name: str,
        package_name: str | None = None,
    ) -> None:
        prefix = f"Package {package_name!r}: " if package_name is not None else ""
        super().__init__(f"{prefix}failed to render {template_name}: {reason}")
        self.reason = reason
        self.template_name = template_name
        self.package_name = package_name

    def for_package(self, package_name: str) -> "TemplateRenderError":
        return TemplateRenderError(
            self.reason, template_name=self.template_name, package_name=package_name
        )

    def to_dict(self) -> dict[str, Any]:
        payload = super().to_dict()
        payload["template"] = self.template_name
        if self.package_name is not None:
            payload["package"] = self.package_name
        return payload


def _identity_label(identity: tuple[str, str, str]) -> str:
    kind, name, namespace = identity
    label = f"{kind}/{name}"
    if namespace:
        label += f" (namespace={namespace})"
    return label


class OutputPathCollision(SplitError):
    def __init__(self, path: str, first: str, second: str) -> None:
        super().__init__(f"Output path {path!r} is claimed by both {first} and {second}")
        self.path = path
        self.first = first
        self.second = second
