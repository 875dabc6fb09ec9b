from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal, Mapping

from .errors import ConfigError


SCHEMA_VERSION = 1

EmitMode = Literal["raw", "normalized"]
EMIT_MODES: tuple[str, ...] = ("raw", "normalized")

DEFAULT_PACKAGE_PATH_TEMPLATE = "{{ packageName }}"
DEFAULT_DESCRIPTOR_FILENAME_TEMPLATE = "kustomization.yaml"
DEFAULT_RESOURCE_FILENAME_TEMPLATE = (
    "{{ '%03d' % resource.index }}_{{ resource.kind | lower }}_{{ resource.name }}.yaml"
)
DEFAULT_DESCRIPTOR_TEMPLATE = (
    "apiVersion: kustomize.config.k8s.io/v1beta1\n"
    "kind: Kustomization\n"
    "resources:\n"
    "{% for file in files -%}\n"
    "- {{ file }}\n"
    "{% endfor -%}\n"
)

# None marks a leaf key; a mapping marks a nested block with its own known keys.
_MATCHER_SCHEMA: Mapping[str, Any] = {
    "kind": None,
    "name": None,
    "namespace": None,
    "ignoreCase": None,
}
_RULE_SCHEMA: Mapping[str, Any] = {
    "matcher": _MATCHER_SCHEMA,
    "packageName": None,
}
_OVERRIDE_SCHEMA: Mapping[str, Any] = {
    "template": None,
    "filenameTemplate": None,
}
_CONFIG_SCHEMA: Mapping[str, Any] = {
    "schemaVersion": None,
    "Top": {
        "name": None,
        "version": None,
        "sourceTemplate": None,
        "source": None,
    },
    "DefaultPackageSpec": {
        "template": None,
        "defaultName": None,
        "pathTemplate": None,
        "filenameTemplate": None,
        "resourceSpec": {
            "pathTemplate": None,
            "filenameTemplate": None,
            "emit": None,
        },
    },
    "SplitRules": None,
    "PackageOverrides": None,
}


def parse_bool(value: Any, path: str) -> bool:
    """
    Strict boolean parsing to avoid bool('false') footguns.

    Accepts True/False, 0/1 and the strings true/false/1/0/yes/no
    (case-insensitive, surrounding whitespace ignored).
    """

    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        if value in (0, 1):
            return bool(value)
        raise ConfigError(f"Invalid boolean for {path}: {value!r}")
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in {"true", "1", "yes"}:
            return True
        if normalized in {"false", "0", "no"}:
            return False
    raise ConfigError(f"Invalid boolean for {path}: {value!r}")


@dataclass(frozen=True)
class TopConfig:
    name: str
    version: str
    source_template: str | None = None
    source: str | None = None

    def bindings(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"name": self.name, "version": self.version}
        if self.source is not None:
            payload["source"] = self.source
        if self.source_template is not None:
            payload["sourceTemplate"] = self.source_template
        return payload


@dataclass(frozen=True)
class Matcher:
    kind: str | None = None
    name: str | None = None
    namespace: str | None = None
    ignore_case: bool = False

    @property
    def is_wildcard(self) -> bool:
        return self.kind is None and self.name is None and self.namespace is None


@dataclass(frozen=True)
class SplitRule:
    matcher: Matcher
    package_name: str
    position: int = 0

    @property
    def label(self) -> str:
        return f"SplitRules[{self.position}]"


@dataclass(frozen=True)
class ResourceSpec:
    path_template: str
    filename_template: str = DEFAULT_RESOURCE_FILENAME_TEMPLATE
    emit: EmitMode = "raw"


@dataclass(frozen=True)
class PackageOverride:
    template: str | None = None
    filename_template: str | None = None


@dataclass(frozen=True)
class SplitConfig:
    rules: tuple[SplitRule, ...]
    template: str = DEFAULT_DESCRIPTOR_TEMPLATE
    default_package: str | None = None
    path_template: str = DEFAULT_PACKAGE_PATH_TEMPLATE
    filename_template: str = DEFAULT_DESCRIPTOR_FILENAME_TEMPLATE
    resource: ResourceSpec = field(
        default_factory=lambda: ResourceSpec(path_template=DEFAULT_PACKAGE_PATH_TEMPLATE)
    )
    overrides: Mapping[str, PackageOverride] = field(default_factory=dict)
    top: TopConfig | None = None
    schema_version: int = SCHEMA_VERSION

    def top_bindings(self) -> dict[str, Any]:
        return self.top.bindings() if self.top is not None else {}

    def with_source(self, source: str) -> "SplitConfig":
        if self.top is None:
            return self
        top = TopConfig(
            name=self.top.name,
            version=self.top.version,
            source_template=self.top.source_template,
            source=source,
        )
        return SplitConfig(
            rules=self.rules,
            template=self.template,
            default_package=self.default_package,
            path_template=self.path_template,
            filename_template=self.filename_template,
            resource=self.resource,
            overrides=self.overrides,
            top=top,
            schema_version=self.schema_version,
        )

    @staticmethod
    def from_dict(cfg: Mapping[str, Any]) -> "SplitConfig":
        """
        Parse and validate a split configuration.

        Unknown keys at any level are rejected, all of them reported at once.

        Raises:
            ConfigError: if keys are unknown, missing or of the wrong type.
        """

        if not isinstance(cfg, Mapping):
            raise ConfigError("Config must be a mapping")

        def collect_unknown_keys(mapping: Any, schema: Mapping[str, Any], *, prefix: str) -> list[str]:
            if not isinstance(mapping, Mapping):
                return []
            unknown: list[str] = []
            for key, value in mapping.items():
                key_path = f"{prefix}.{key}" if prefix else str(key)
                if key not in schema:
                    unknown.append(key_path)
                    continue
                subschema = schema.get(key)
                if isinstance(subschema, Mapping):
                    unknown.extend(collect_unknown_keys(value, subschema, prefix=key_path))
            return unknown

        unknown_keys = collect_unknown_keys(cfg, _CONFIG_SCHEMA, prefix="")
        raw_rules = cfg.get("SplitRules")
        if isinstance(raw_rules, list):
            for idx, raw_rule in enumerate(raw_rules):
                unknown_keys.extend(
                    collect_unknown_keys(raw_rule, _RULE_SCHEMA, prefix=f"SplitRules[{idx}]")
                )
        raw_overrides = cfg.get("PackageOverrides")
        if isinstance(raw_overrides, Mapping):
            for package_name, raw_override in raw_overrides.items():
                unknown_keys.extend(
                    collect_unknown_keys(
                        raw_override, _OVERRIDE_SCHEMA, prefix=f"PackageOverrides.{package_name}"
                    )
                )
        if unknown_keys:
            raise ConfigError("Unknown config keys: " + ", ".join(sorted(set(unknown_keys))))

        def lookup(path: str) -> tuple[bool, Any]:
            cur: Any = cfg
            for part in path.split("."):
                if not isinstance(cur, Mapping) or part not in cur:
                    return False, None
                cur = cur[part]
            return True, cur

        def get_mapping(path: str) -> Mapping[str, Any] | None:
            present, value = lookup(path)
            if not present or value is None:
                return None
            if not isinstance(value, Mapping):
                raise ConfigError(f"Invalid config type for {path}: expected mapping")
            return value

        def optional_str(path: str) -> str | None:
            present, value = lookup(path)
            if not present or value is None:
                return None
            if not isinstance(value, str):
                raise ConfigError(f"Invalid config type for {path}: expected string")
            if not value.strip():
                return None
            return value

        def scalar_str(value: Any, path: str) -> str:
            # Floats lose digits on the way back to text (1.10 -> "1.1").
            if isinstance(value, bool) or value is None:
                raise ConfigError(f"Invalid config type for {path}: expected string")
            if isinstance(value, float):
                raise ConfigError(
                    f"Invalid config type for {path}: expected string, got number {value!r} "
                    "(quote the value in YAML)"
                )
            if isinstance(value, int):
                return str(value)
            if not isinstance(value, str) or not value.strip():
                raise ConfigError(f"Invalid config value for {path}: expected non-empty string")
            return value

        schema_version = SCHEMA_VERSION
        present, raw_version = lookup("schemaVersion")
        if present:
            if isinstance(raw_version, bool) or not isinstance(raw_version, int):
                raise ConfigError("Invalid config type for schemaVersion: expected int")
            if raw_version != SCHEMA_VERSION:
                raise ConfigError(
                    f"Unsupported schemaVersion: {raw_version} (supported: {SCHEMA_VERSION})"
                )
            schema_version = raw_version

        top: TopConfig | None = None
        if get_mapping("Top") is not None:
            _present, raw_name = lookup("Top.name")
            _present, raw_top_version = lookup("Top.version")
            if raw_name is None:
                raise ConfigError("Missing required config: Top.name")
            if raw_top_version is None:
                raise ConfigError("Missing required config: Top.version")
            top = TopConfig(
                name=scalar_str(raw_name, "Top.name"),
                version=scalar_str(raw_top_version, "Top.version"),
                source_template=optional_str("Top.sourceTemplate"),
                source=optional_str("Top.source"),
            )

        # Nested blocks must be mappings before their leaves are read.
        for block in ("DefaultPackageSpec", "DefaultPackageSpec.resourceSpec"):
            get_mapping(block)

        template = optional_str("DefaultPackageSpec.template") or DEFAULT_DESCRIPTOR_TEMPLATE
        default_package = optional_str("DefaultPackageSpec.defaultName")
        if default_package is not None:
            default_package = default_package.strip()
        path_template = optional_str("DefaultPackageSpec.pathTemplate") or DEFAULT_PACKAGE_PATH_TEMPLATE
        filename_template = (
            optional_str("DefaultPackageSpec.filenameTemplate") or DEFAULT_DESCRIPTOR_FILENAME_TEMPLATE
        )

        raw_emit = optional_str("DefaultPackageSpec.resourceSpec.emit") or "raw"
        emit = raw_emit.strip().lower()
        if emit not in EMIT_MODES:
            raise ConfigError(
                f"Unknown DefaultPackageSpec.resourceSpec.emit: {raw_emit!r} (known: {list(EMIT_MODES)})"
            )
        resource = ResourceSpec(
            path_template=optional_str("DefaultPackageSpec.resourceSpec.pathTemplate") or path_template,
            filename_template=(
                optional_str("DefaultPackageSpec.resourceSpec.filenameTemplate")
                or DEFAULT_RESOURCE_FILENAME_TEMPLATE
            ),
            emit=emit,  # type: ignore[arg-type]
        )

        rules = _parse_rules(raw_rules)
        overrides = _parse_overrides(raw_overrides)

        return SplitConfig(
            rules=rules,
            template=template,
            default_package=default_package,
            path_template=path_template,
            filename_template=filename_template,
            resource=resource,
            overrides=overrides,
            top=top,
            schema_version=schema_version,
        )


def _parse_rules(raw_rules: Any) -> tuple[SplitRule, ...]:
    if raw_rules is None:
        return ()
    if not isinstance(raw_rules, list):
        raise ConfigError("Invalid config type for SplitRules: expected list")

    rules: list[SplitRule] = []
    for idx, raw_rule in enumerate(raw_rules):
        path = f"SplitRules[{idx}]"
        if not isinstance(raw_rule, Mapping):
            raise ConfigError(f"Invalid config type for {path}: expected mapping")

        raw_matcher = raw_rule.get("matcher")
        if raw_matcher is None:
            raw_matcher = {}
        if not isinstance(raw_matcher, Mapping):
            raise ConfigError(f"Invalid config type for {path}.matcher: expected mapping")

        fields: dict[str, str | None] = {}
        for key in ("kind", "name", "namespace"):
            value = raw_matcher.get(key)
            if value is not None and not isinstance(value, str):
                raise ConfigError(f"Invalid config type for {path}.matcher.{key}: expected string")
            fields[key] = value

        ignore_case = False
        if raw_matcher.get("ignoreCase") is not None:
            ignore_case = parse_bool(raw_matcher.get("ignoreCase"), f"{path}.matcher.ignoreCase")

        raw_package = raw_rule.get("packageName")
        if raw_package is None:
            raise ConfigError(f"Missing required config: {path}.packageName")
        if not isinstance(raw_package, str):
            raise ConfigError(f"Invalid config type for {path}.packageName: expected string")
        if not raw_package.strip():
            raise ConfigError(f"Missing required config: {path}.packageName")

        rules.append(
            SplitRule(
                matcher=Matcher(
                    kind=fields["kind"],
                    name=fields["name"],
                    namespace=fields["namespace"],
                    ignore_case=ignore_case,
                ),
                package_name=raw_package.strip(),
                position=idx,
            )
        )
    return tuple(rules)


def _parse_overrides(raw_overrides: Any) -> dict[str, PackageOverride]:
    if raw_overrides is None:
        return {}
    if not isinstance(raw_overrides, Mapping):
        raise ConfigError("Invalid config type for PackageOverrides: expected mapping")

    overrides: dict[str, PackageOverride] = {}
    for package_name, raw_override in raw_overrides.items():
        path = f"PackageOverrides.{package_name}"
        if not isinstance(package_name, str) or not package_name.strip():
            raise ConfigError(f"Invalid package name in PackageOverrides: {package_name!r}")
        if raw_override is None:
            raw_override = {}
        if not isinstance(raw_override, Mapping):
            raise ConfigError(f"Invalid config type for {path}: expected mapping")
        values: dict[str, str | None] = {}
        for key in ("template", "filenameTemplate"):
            value = raw_override.get(key)
            if value is not None and not isinstance(value, str):
                raise ConfigError(f"Invalid config type for {path}.{key}: expected string")
            values[key] = value if value is None or value.strip() else None
        overrides[package_name.strip()] = PackageOverride(
            template=values["template"], filename_template=values["filenameTemplate"]
        )
    return overrides
