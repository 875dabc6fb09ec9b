from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from .config import PackageOverride, SplitConfig
from .documents import ResourceDocument
from .errors import DuplicateFileName, TemplateRenderError
from .templating import TemplateCapability, default_renderer

logger = logging.getLogger(__name__)


@dataclass
class Package:
    name: str
    path: str
    descriptor_filename: str
    documents: list[ResourceDocument] = field(default_factory=list)
    filenames: list[str] = field(default_factory=list)
    resource_paths: list[str] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.documents)

    def resource_records(self) -> list[dict[str, Any]]:
        records: list[dict[str, Any]] = []
        for document, filename, path in zip(self.documents, self.filenames, self.resource_paths):
            record = document.to_record()
            record["filename"] = filename
            record["path"] = path
            records.append(record)
        return records


class NamingPolicy:
    """Maps documents and packages to output names through the configured templates."""

    def __init__(
        self,
        *,
        resource_filename_template: str,
        resource_path_template: str,
        package_path_template: str,
        descriptor_filename_template: str,
        overrides: Mapping[str, PackageOverride] | None = None,
        top: Mapping[str, Any] | None = None,
        renderer: TemplateCapability | None = None,
    ) -> None:
        self._resource_filename_template = resource_filename_template
        self._resource_path_template = resource_path_template
        self._package_path_template = package_path_template
        self._descriptor_filename_template = descriptor_filename_template
        self._overrides = dict(overrides or {})
        self._top = dict(top or {})
        self._renderer = renderer or default_renderer()

    @classmethod
    def from_config(
        cls, config: SplitConfig, *, renderer: TemplateCapability | None = None
    ) -> "NamingPolicy":
        return cls(
            resource_filename_template=config.resource.filename_template,
            resource_path_template=config.resource.path_template,
            package_path_template=config.path_template,
            descriptor_filename_template=config.filename_template,
            overrides=config.overrides,
            top=config.top_bindings(),
            renderer=renderer,
        )

    def _render_name(self, template: str, bindings: dict[str, Any], *, template_name: str) -> str:
        rendered = self._renderer.render(template, bindings, template_name=template_name).strip()
        if not rendered:
            raise TemplateRenderError("rendered an empty name", template_name=template_name)
        return rendered

    def _resource_bindings(self, document: ResourceDocument, package_name: str) -> dict[str, Any]:
        return {"top": self._top, "packageName": package_name, "resource": document.to_record()}

    def filename_for(self, document: ResourceDocument, package_name: str) -> str:
        return self._render_name(
            self._resource_filename_template,
            self._resource_bindings(document, package_name),
            template_name="DefaultPackageSpec.resourceSpec.filenameTemplate",
        )

    def resource_path_for(self, document: ResourceDocument, package_name: str) -> str:
        return self._render_name(
            self._resource_path_template,
            self._resource_bindings(document, package_name),
            template_name="DefaultPackageSpec.resourceSpec.pathTemplate",
        )

    def package_path_for(self, package_name: str) -> str:
        return self._render_name(
            self._package_path_template,
            {"top": self._top, "packageName": package_name},
            template_name="DefaultPackageSpec.pathTemplate",
        )

    def descriptor_filename_for(self, package_name: str) -> str:
        override = self._overrides.get(package_name)
        if override is not None and override.filename_template is not None:
            template = override.filename_template
            template_name = f"PackageOverrides.{package_name}.filenameTemplate"
        else:
            template = self._descriptor_filename_template
            template_name = "DefaultPackageSpec.filenameTemplate"
        return self._render_name(
            template, {"top": self._top, "packageName": package_name}, template_name=template_name
        )


class PackageAssembler:
    """
    Accumulate documents into packages, preserving stream order.

    The first document routed to a name creates the package. File names are
    unique within a package; `add` raises `DuplicateFileName` rather than
    letting a later document replace an earlier one.
    """

    def __init__(self, naming: NamingPolicy) -> None:
        self._naming = naming
        self._packages: dict[str, Package] = {}
        self._owners: dict[str, dict[str, ResourceDocument]] = {}

    def _package(self, package_name: str) -> Package:
        package = self._packages.get(package_name)
        if package is None:
            package = Package(
                name=package_name,
                path=self._naming.package_path_for(package_name),
                descriptor_filename=self._naming.descriptor_filename_for(package_name),
            )
            self._packages[package_name] = package
            self._owners[package_name] = {}
            logger.debug("Created package %s at %s", package_name, package.path)
        return package

    def add(self, document: ResourceDocument, package_name: str) -> str:
        package = self._package(package_name)
        filename = self._naming.filename_for(document, package_name)
        owners = self._owners[package_name]
        previous = owners.get(filename)
        if previous is not None:
            raise DuplicateFileName(package_name, filename, previous.identity, document.identity)

        resource_path = self._naming.resource_path_for(document, package_name)
        owners[filename] = document
        package.documents.append(document)
        package.filenames.append(filename)
        package.resource_paths.append(resource_path)
        return filename

    def packages(self) -> dict[str, Package]:
        return dict(self._packages)
