from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Any

from .assembly import Package
from .config import PackageOverride
from .errors import TemplateRenderError
from .templating import TemplateCapability, default_renderer

logger = logging.getLogger(__name__)


@dataclass
class RenderOutcome:
    descriptors: dict[str, str] = field(default_factory=dict)
    failures: list[TemplateRenderError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures


def descriptor_bindings(package: Package, top: Mapping[str, Any]) -> dict[str, Any]:
    resources = package.resource_records()
    return {
        "top": dict(top),
        "packageName": package.name,
        "files": list(package.filenames),
        "resources": resources,
        "package": {
            "name": package.name,
            "path": package.path,
            "resources": resources,
        },
    }


class DescriptorRenderer:
    """Render one descriptor per package.

    A failing package yields a `TemplateRenderError` tagged with its name; the
    other packages still render. Packages are independent, so rendering fans
    out over a thread pool and results are collected back in package order.
    """

    def __init__(
        self,
        template: str,
        *,
        overrides: Mapping[str, PackageOverride] | None = None,
        top: Mapping[str, Any] | None = None,
        renderer: TemplateCapability | None = None,
        max_workers: int | None = None,
    ) -> None:
        if max_workers is not None and max_workers < 1:
            raise ValueError(f"max_workers must be >= 1 (got {max_workers})")
        self._template = template
        self._overrides = dict(overrides or {})
        self._top = dict(top or {})
        self._renderer = renderer or default_renderer()
        self._max_workers = max_workers

    def template_for(self, package_name: str) -> tuple[str, str]:
        override = self._overrides.get(package_name)
        if override is not None and override.template is not None:
            return override.template, f"PackageOverrides.{package_name}.template"
        return self._template, "DefaultPackageSpec.template"

    def render(self, package: Package) -> str:
        template, template_name = self.template_for(package.name)
        try:
            return self._renderer.render(
                template, descriptor_bindings(package, self._top), template_name=template_name
            )
        except TemplateRenderError as exc:
            raise exc.for_package(package.name) from exc

    def render_all(self, packages: Sequence[Package]) -> RenderOutcome:
        results: dict[str, str | TemplateRenderError] = {}

        workers = self._max_workers
        if workers is None:
            workers = min(8, len(packages)) or 1

        if workers == 1 or len(packages) <= 1:
            for package in packages:
                results[package.name] = self._render_one(package)
        else:
            with ThreadPoolExecutor(max_workers=workers) as executor:
                future_to_name = {
                    executor.submit(self._render_one, package): package.name for package in packages
                }
                for future in as_completed(future_to_name):
                    results[future_to_name[future]] = future.result()

        outcome = RenderOutcome()
        for package in packages:
            result = results[package.name]
            if isinstance(result, TemplateRenderError):
                outcome.failures.append(result)
            else:
                outcome.descriptors[package.name] = result
        return outcome

    def _render_one(self, package: Package) -> str | TemplateRenderError:
        try:
            text = self.render(package)
        except TemplateRenderError as exc:
            logger.debug("Descriptor render failed for %s: %s", package.name, exc)
            return exc
        logger.debug("Rendered descriptor for %s (%d chars)", package.name, len(text))
        return text
