from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any

from .config import Matcher, SplitRule
from .documents import ResourceDocument
from .errors import TemplateRenderError, UnmatchedDocument
from .templating import TemplateCapability, default_renderer

logger = logging.getLogger(__name__)


def _field_equals(expected: str, actual: str, *, ignore_case: bool) -> bool:
    if ignore_case:
        return expected.casefold() == actual.casefold()
    return expected == actual


def matches(matcher: Matcher, document: ResourceDocument) -> bool:
    """Every non-wildcard matcher field must equal the document's field."""

    for expected, actual in (
        (matcher.kind, document.kind),
        (matcher.name, document.name),
        (matcher.namespace, document.namespace),
    ):
        if expected is None:
            continue
        if not _field_equals(expected, actual, ignore_case=matcher.ignore_case):
            return False
    return True


def target_bindings(document: ResourceDocument, top: Mapping[str, Any]) -> dict[str, Any]:
    return {
        "kind": document.kind,
        "name": document.name,
        "namespace": document.namespace,
        "resource": document.to_record(),
        "top": dict(top),
    }


class RuleMatcher:
    """
    Resolve the destination package of a document.

    Rules are tried in declaration order and the first match wins, even when a
    later rule is more specific. Documents no rule matches go to
    `default_package`; without one they raise `UnmatchedDocument`.
    """

    def __init__(
        self,
        rules: Sequence[SplitRule],
        *,
        default_package: str | None = None,
        renderer: TemplateCapability | None = None,
        top: Mapping[str, Any] | None = None,
    ) -> None:
        self._rules = tuple(rules)
        self._default_package = default_package
        self._renderer = renderer or default_renderer()
        self._top = dict(top or {})

    @property
    def default_package(self) -> str | None:
        return self._default_package

    def first_match(self, document: ResourceDocument) -> SplitRule | None:
        for rule in self._rules:
            if matches(rule.matcher, document):
                return rule
        return None

    def resolve(self, document: ResourceDocument) -> str:
        rule = self.first_match(document)
        if rule is None:
            if self._default_package is None:
                raise UnmatchedDocument(
                    document.index, document.kind, document.name, document.namespace
                )
            logger.debug(
                "Document #%d %s/%s -> default package %s",
                document.index,
                document.kind,
                document.name,
                self._default_package,
            )
            return self._default_package

        package_name = self._render_target(rule, document)
        logger.debug(
            "Document #%d %s/%s matched %s -> %s",
            document.index,
            document.kind,
            document.name,
            rule.label,
            package_name,
        )
        return package_name

    def _render_target(self, rule: SplitRule, document: ResourceDocument) -> str:
        template_name = f"{rule.label}.packageName"
        if "{" not in rule.package_name:
            return rule.package_name
        rendered = self._renderer.render(
            rule.package_name,
            target_bindings(document, self._top),
            template_name=template_name,
        ).strip()
        if not rendered:
            raise TemplateRenderError(
                f"rendered an empty package name for {document.kind}/{document.name}",
                template_name=template_name,
            )
        return rendered
