from pathlib import Path

import pytest

from kustomize_upstream.framework.config import SplitConfig
from kustomize_upstream.framework.errors import OutputPathCollision
from kustomize_upstream.framework.pipeline import split_stream
from kustomize_upstream.framework.writer import plan_writes, write_result


STREAM = """\
kind: Deployment
metadata:
  name: web
  namespace: app
---
kind: ClusterRole
metadata:
  name: reader
"""


def _config(**spec) -> SplitConfig:
    default_spec = {
        "defaultName": "main",
        "pathTemplate": "{{ top.name }}-{{ top.version }}/{{ packageName }}",
    }
    default_spec.update(spec)
    return SplitConfig.from_dict(
        {
            "Top": {"name": "demo", "version": "1.0.0"},
            "DefaultPackageSpec": default_spec,
            "SplitRules": [{"matcher": {"kind": "ClusterRole"}, "packageName": "cr"}],
        }
    )


def test_writes_one_directory_per_package(tmp_path: Path):
    result = split_stream(_config(), STREAM)

    written = write_result(result, str(tmp_path))

    main_dir = tmp_path / "demo-1.0.0" / "main"
    cr_dir = tmp_path / "demo-1.0.0" / "cr"
    assert (main_dir / "000_deployment_web.yaml").read_text(encoding="utf-8") == (
        "kind: Deployment\nmetadata:\n  name: web\n  namespace: app\n"
    )
    assert (cr_dir / "001_clusterrole_reader.yaml").exists()
    assert (main_dir / "kustomization.yaml").read_text(encoding="utf-8").endswith(
        "resources:\n- 000_deployment_web.yaml\n"
    )
    assert len(written) == 4


def test_dry_run_writes_nothing(tmp_path: Path):
    result = split_stream(_config(), STREAM)

    written = write_result(result, str(tmp_path), dry_run=True)

    assert len(written) == 4
    assert list(tmp_path.iterdir()) == []


def test_package_without_descriptor_still_writes_resources(tmp_path: Path):
    config = SplitConfig.from_dict(
        {
            "DefaultPackageSpec": {"defaultName": "main", "template": "{{ nope }}"},
        }
    )
    result = split_stream(config, STREAM)

    write_result(result, str(tmp_path))

    assert (tmp_path / "main" / "000_deployment_web.yaml").exists()
    assert not (tmp_path / "main" / "kustomization.yaml").exists()


def test_colliding_paths_across_packages_are_rejected(tmp_path: Path):
    config = SplitConfig.from_dict(
        {
            "DefaultPackageSpec": {
                "defaultName": "main",
                "pathTemplate": "shared",
                "resourceSpec": {"filenameTemplate": "same.yaml"},
            },
            "SplitRules": [{"matcher": {"kind": "ClusterRole"}, "packageName": "cr"}],
        }
    )
    result = split_stream(config, STREAM)

    with pytest.raises(OutputPathCollision, match="same.yaml"):
        plan_writes(result, str(tmp_path))
    assert list(tmp_path.iterdir()) == []


def test_paths_escaping_output_dir_are_rejected(tmp_path: Path):
    result = split_stream(_config(pathTemplate="../{{ packageName }}"), STREAM)

    with pytest.raises(ValueError, match="escapes the output directory"):
        write_result(result, str(tmp_path / "out"))
