"""Split engine: document parsing, rule matching, package assembly and descriptor rendering.

Common entrypoints:

- `kustomize_upstream.framework.pipeline.split_stream`: the pure core, (config, stream) -> result
- `kustomize_upstream.framework.config.SplitConfig`: parsed configuration
- `kustomize_upstream.framework.writer.write_result`: persists a result as a directory tree
"""

from .config import SplitConfig
from .errors import (
    ConfigError,
    DuplicateFileName,
    MalformedDocument,
    OutputPathCollision,
    SourceFetchError,
    SplitError,
    TemplateRenderError,
    UnmatchedDocument,
)
from .pipeline import PackageOutput, ResourceFile, SplitResult, split_stream

__all__ = [
    "ConfigError",
    "DuplicateFileName",
    "MalformedDocument",
    "OutputPathCollision",
    "PackageOutput",
    "ResourceFile",
    "SourceFetchError",
    "SplitConfig",
    "SplitError",
    "SplitResult",
    "TemplateRenderError",
    "UnmatchedDocument",
    "split_stream",
]
