import pytest
import yaml

from kustomize_upstream.framework.config import (
    DEFAULT_DESCRIPTOR_TEMPLATE,
    DEFAULT_RESOURCE_FILENAME_TEMPLATE,
    SplitConfig,
)
from kustomize_upstream.framework.errors import ConfigError


def _base_cfg_dict() -> dict:
    return {
        "Top": {"name": "contour", "version": "1.14.0"},
        "DefaultPackageSpec": {
            "template": "resources: {{ files }}\n",
            "defaultName": "main",
            "pathTemplate": "{{ top.name }}-{{ top.version }}/{{ packageName }}",
            "filenameTemplate": "kustomization.yaml",
            "resourceSpec": {
                "filenameTemplate": "{{ resource.index | pad3 }}_{{ resource.kind }}.yaml",
            },
        },
        "SplitRules": [
            {"matcher": {"kind": "ClusterRole"}, "packageName": "cr"},
            {"matcher": {"namespace": "projectcontour", "ignoreCase": "yes"}, "packageName": "ns"},
        ],
    }


def test_parses_full_config():
    cfg = SplitConfig.from_dict(_base_cfg_dict())

    assert cfg.top is not None and cfg.top.name == "contour"
    assert cfg.default_package == "main"
    assert [rule.package_name for rule in cfg.rules] == ["cr", "ns"]
    assert [rule.position for rule in cfg.rules] == [0, 1]
    assert cfg.rules[0].matcher.kind == "ClusterRole"
    assert cfg.rules[0].matcher.namespace is None
    assert cfg.rules[1].matcher.ignore_case is True
    # resource path falls back to the package path template
    assert cfg.resource.path_template == cfg.path_template
    assert cfg.resource.emit == "raw"


def test_defaults_for_minimal_config():
    cfg = SplitConfig.from_dict({})

    assert cfg.rules == ()
    assert cfg.default_package is None
    assert cfg.template == DEFAULT_DESCRIPTOR_TEMPLATE
    assert cfg.resource.filename_template == DEFAULT_RESOURCE_FILENAME_TEMPLATE
    assert cfg.top is None
    assert cfg.top_bindings() == {}


def test_unknown_keys_are_rejected_all_at_once():
    cfg_dict = _base_cfg_dict()
    cfg_dict["Extra"] = 1
    cfg_dict["DefaultPackageSpec"]["resourceSpec"]["typo"] = True
    cfg_dict["SplitRules"][0]["matcher"]["labels"] = {"a": "b"}
    cfg_dict["SplitRules"][1]["package"] = "oops"

    with pytest.raises(ConfigError) as excinfo:
        SplitConfig.from_dict(cfg_dict)

    message = str(excinfo.value)
    assert message.startswith("Unknown config keys: ")
    for key in (
        "Extra",
        "DefaultPackageSpec.resourceSpec.typo",
        "SplitRules[0].matcher.labels",
        "SplitRules[1].package",
    ):
        assert key in message


def test_unknown_override_key_rejected():
    cfg_dict = _base_cfg_dict()
    cfg_dict["PackageOverrides"] = {"cr": {"template": "x", "path": "y"}}

    with pytest.raises(ValueError, match=r"Unknown config keys: PackageOverrides\.cr\.path"):
        SplitConfig.from_dict(cfg_dict)


def test_rule_without_package_name_rejected():
    cfg_dict = _base_cfg_dict()
    del cfg_dict["SplitRules"][0]["packageName"]

    with pytest.raises(ConfigError, match=r"Missing required config: SplitRules\[0\]\.packageName"):
        SplitConfig.from_dict(cfg_dict)


def test_non_string_matcher_field_rejected():
    cfg_dict = _base_cfg_dict()
    cfg_dict["SplitRules"][0]["matcher"]["name"] = 42

    with pytest.raises(ConfigError, match=r"SplitRules\[0\]\.matcher\.name: expected string"):
        SplitConfig.from_dict(cfg_dict)


def test_invalid_ignore_case_rejected():
    cfg_dict = _base_cfg_dict()
    cfg_dict["SplitRules"][1]["matcher"]["ignoreCase"] = "sometimes"

    with pytest.raises(ConfigError, match="Invalid boolean"):
        SplitConfig.from_dict(cfg_dict)


def test_unsupported_schema_version_rejected():
    cfg_dict = _base_cfg_dict()
    cfg_dict["schemaVersion"] = 2

    with pytest.raises(ConfigError, match="Unsupported schemaVersion: 2"):
        SplitConfig.from_dict(cfg_dict)


def test_integer_top_version_is_stringified():
    cfg_dict = _base_cfg_dict()
    cfg_dict["Top"]["version"] = 2

    assert SplitConfig.from_dict(cfg_dict).top.version == "2"


def test_float_top_version_is_rejected_instead_of_truncated():
    cfg_dict = yaml.safe_load("Top:\n  name: contour\n  version: 1.10\n")

    with pytest.raises(ConfigError, match=r"Top\.version.*quote the value"):
        SplitConfig.from_dict(cfg_dict)


def test_quoted_top_version_keeps_trailing_zero():
    cfg_dict = yaml.safe_load(
        "Top:\n"
        "  name: contour\n"
        "  version: '1.10'\n"
        "DefaultPackageSpec:\n"
        "  pathTemplate: \"{{ top.name }}-{{ top.version }}/{{ packageName }}\"\n"
    )

    config = SplitConfig.from_dict(cfg_dict)

    assert config.top.version == "1.10"
    assert config.top_bindings()["version"] == "1.10"


def test_top_requires_name_and_version():
    with pytest.raises(ConfigError, match="Missing required config: Top.version"):
        SplitConfig.from_dict({"Top": {"name": "contour"}})


def test_unknown_emit_mode_rejected():
    cfg_dict = _base_cfg_dict()
    cfg_dict["DefaultPackageSpec"]["resourceSpec"]["emit"] = "pretty"

    with pytest.raises(ConfigError, match="resourceSpec.emit"):
        SplitConfig.from_dict(cfg_dict)


def test_split_rules_must_be_a_list():
    with pytest.raises(ConfigError, match="SplitRules: expected list"):
        SplitConfig.from_dict({"SplitRules": {"kind": "x"}})


def test_with_source_records_fetched_url():
    cfg = SplitConfig.from_dict(_base_cfg_dict()).with_source("https://example.invalid/a.yaml")

    assert cfg.top_bindings()["source"] == "https://example.invalid/a.yaml"
    assert cfg.default_package == "main"
