"""Core split pipeline: parse, match, assemble, render.

`split_stream` is a pure function of (configuration, stream text). It performs
no file or network IO; persisting the result is the writer's job.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

import yaml

from .assembly import NamingPolicy, Package, PackageAssembler
from .config import EmitMode, SplitConfig
from .descriptors import DescriptorRenderer
from .documents import ResourceDocument, iter_documents
from .errors import DuplicateFileName, SplitError
from .rules import RuleMatcher
from .templating import TemplateCapability, default_renderer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResourceFile:
    filename: str
    path: str
    body: str
    document: ResourceDocument


@dataclass(frozen=True)
class PackageOutput:
    name: str
    path: str
    descriptor_filename: str
    files: tuple[ResourceFile, ...]

    @property
    def filenames(self) -> list[str]:
        return [item.filename for item in self.files]

    @property
    def documents(self) -> list[ResourceDocument]:
        return [item.document for item in self.files]


@dataclass
class SplitResult:
    packages: dict[str, PackageOutput] = field(default_factory=dict)
    descriptors: dict[str, str] = field(default_factory=dict)
    failures: list[SplitError] = field(default_factory=list)
    withheld: list[str] = field(default_factory=list)
    assignments: list[tuple[ResourceDocument, str]] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures

    @property
    def document_count(self) -> int:
        return len(self.assignments)


class _ExpandingDumper(yaml.SafeDumper):
    """Writes shared nodes out in full instead of as anchors and aliases."""

    def ignore_aliases(self, data):
        return True


def emit_body(document: ResourceDocument, mode: EmitMode) -> str:
    if mode == "normalized":
        return yaml.dump(
            dict(document.content),
            Dumper=_ExpandingDumper,
            sort_keys=False,
            default_flow_style=False,
            allow_unicode=True,
        )
    return document.body


def _package_output(package: Package, mode: EmitMode) -> PackageOutput:
    files = tuple(
        ResourceFile(filename=filename, path=path, body=emit_body(document, mode), document=document)
        for document, filename, path in zip(
            package.documents, package.filenames, package.resource_paths
        )
    )
    return PackageOutput(
        name=package.name,
        path=package.path,
        descriptor_filename=package.descriptor_filename,
        files=files,
    )


def split_stream(
    config: SplitConfig,
    text: str,
    *,
    renderer: TemplateCapability | None = None,
    max_workers: int | None = None,
) -> SplitResult:
    """
    Partition a manifest stream into packages and render their descriptors.

    Raises:
        MalformedDocument: a document cannot be identified.
        UnmatchedDocument: no rule matched and no default package is configured.
        TemplateRenderError: a rule target or a naming template failed.

    `DuplicateFileName` withholds only the affected package, and descriptor
    `TemplateRenderError`s only drop that package's descriptor; both are
    collected in `SplitResult.failures`.
    """

    renderer = renderer or default_renderer()
    top = config.top_bindings()
    matcher = RuleMatcher(
        config.rules, default_package=config.default_package, renderer=renderer, top=top
    )
    assembler = PackageAssembler(NamingPolicy.from_config(config, renderer=renderer))

    result = SplitResult()
    withheld: set[str] = set()
    for document in iter_documents(text):
        package_name = matcher.resolve(document)
        result.assignments.append((document, package_name))
        try:
            assembler.add(document, package_name)
        except DuplicateFileName as exc:
            logger.debug("Withholding package %s: %s", package_name, exc)
            if package_name not in withheld:
                withheld.add(package_name)
                result.withheld.append(package_name)
            result.failures.append(exc)

    packages = [
        package for name, package in assembler.packages().items() if name not in withheld
    ]
    descriptor_renderer = DescriptorRenderer(
        config.template,
        overrides=config.overrides,
        top=top,
        renderer=renderer,
        max_workers=max_workers,
    )
    outcome = descriptor_renderer.render_all(packages)

    for package in packages:
        result.packages[package.name] = _package_output(package, config.resource.emit)
    result.descriptors.update(outcome.descriptors)
    result.failures.extend(outcome.failures)

    logger.debug(
        "Split %d documents into %d packages (%d withheld, %d descriptor failures)",
        result.document_count,
        len(result.packages),
        len(result.withheld),
        len(outcome.failures),
    )
    return result
