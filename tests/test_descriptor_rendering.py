import pytest

from kustomize_upstream.framework.assembly import Package
from kustomize_upstream.framework.config import DEFAULT_DESCRIPTOR_TEMPLATE, PackageOverride
from kustomize_upstream.framework.descriptors import DescriptorRenderer, descriptor_bindings
from kustomize_upstream.framework.documents import ResourceDocument
from kustomize_upstream.framework.errors import TemplateRenderError


def _package(name: str, *members: tuple[str, str]) -> Package:
    package = Package(name=name, path=name, descriptor_filename="kustomization.yaml")
    for index, (kind, doc_name) in enumerate(members):
        package.documents.append(
            ResourceDocument(index=index, body="", kind=kind, name=doc_name, namespace="")
        )
        package.filenames.append(f"{index:03d}_{kind.lower()}_{doc_name}.yaml")
        package.resource_paths.append(name)
    return package


def test_default_template_lists_files_in_order():
    renderer = DescriptorRenderer(DEFAULT_DESCRIPTOR_TEMPLATE)

    text = renderer.render(_package("apps", ("Deployment", "a"), ("Service", "b")))

    assert text == (
        "apiVersion: kustomize.config.k8s.io/v1beta1\n"
        "kind: Kustomization\n"
        "resources:\n"
        "- 000_deployment_a.yaml\n"
        "- 001_service_b.yaml\n"
    )


def test_bindings_expose_package_name_files_identities_and_top():
    bindings = descriptor_bindings(_package("apps", ("Deployment", "a")), {"name": "contour"})

    assert bindings["packageName"] == "apps"
    assert bindings["files"] == ["000_deployment_a.yaml"]
    assert bindings["package"]["name"] == "apps"
    assert bindings["package"]["resources"][0]["kind"] == "Deployment"
    assert bindings["resources"][0]["filename"] == "000_deployment_a.yaml"
    assert bindings["top"] == {"name": "contour"}


def test_failure_in_one_package_does_not_stop_the_others():
    renderer = DescriptorRenderer(
        "name: {{ packageName }}\n",
        overrides={"broken": PackageOverride(template="name: {{ undefined_thing }}\n")},
        max_workers=4,
    )
    packages = [
        _package("first", ("Deployment", "a")),
        _package("broken", ("Service", "b")),
        _package("last", ("ConfigMap", "c")),
    ]

    outcome = renderer.render_all(packages)

    assert outcome.descriptors == {"first": "name: first\n", "last": "name: last\n"}
    assert list(outcome.descriptors) == ["first", "last"]
    assert len(outcome.failures) == 1
    failure = outcome.failures[0]
    assert isinstance(failure, TemplateRenderError)
    assert failure.package_name == "broken"
    assert failure.template_name == "PackageOverrides.broken.template"
    assert "undefined_thing" in str(failure)
    assert not outcome.ok


def test_syntax_error_is_reported_per_package():
    renderer = DescriptorRenderer("{% for x in files %}")

    outcome = renderer.render_all([_package("a", ("Service", "b")), _package("c", ("Service", "d"))])

    assert outcome.descriptors == {}
    assert [f.package_name for f in outcome.failures] == ["a", "c"]
    assert all("syntax error" in str(f) for f in outcome.failures)


def test_parallel_and_sequential_rendering_agree():
    packages = [_package(f"p{i}", ("Service", f"s{i}"), ("Deployment", f"d{i}")) for i in range(12)]

    sequential = DescriptorRenderer(DEFAULT_DESCRIPTOR_TEMPLATE, max_workers=1).render_all(packages)
    parallel = DescriptorRenderer(DEFAULT_DESCRIPTOR_TEMPLATE, max_workers=6).render_all(packages)

    assert sequential.descriptors == parallel.descriptors
    assert list(parallel.descriptors) == [f"p{i}" for i in range(12)]


def test_invalid_worker_count_rejected():
    with pytest.raises(ValueError, match="max_workers"):
        DescriptorRenderer(DEFAULT_DESCRIPTOR_TEMPLATE, max_workers=0)
