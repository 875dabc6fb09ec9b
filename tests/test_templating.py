import pytest

from kustomize_upstream.framework.errors import TemplateRenderError
from kustomize_upstream.framework.templating import TemplateRenderer


def test_renders_bindings():
    renderer = TemplateRenderer()

    assert renderer.render("{{ a }}-{{ b.c }}", {"a": 1, "b": {"c": "x"}}, template_name="t") == "1-x"


def test_pad3_filter_and_percent_format_agree():
    renderer = TemplateRenderer()
    bindings = {"resource": {"index": 7}}

    assert renderer.render("{{ resource.index | pad3 }}", bindings, template_name="t") == "007"
    assert renderer.render("{{ '%03d' % resource.index }}", bindings, template_name="t") == "007"


def test_pad3_rejects_non_numbers():
    with pytest.raises(TemplateRenderError, match="pad3"):
        TemplateRenderer().render("{{ 'x' | pad3 }}", {}, template_name="t")


def test_undefined_variable_is_an_error():
    with pytest.raises(TemplateRenderError, match="missing") as excinfo:
        TemplateRenderer().render("{{ missing }}", {}, template_name="DefaultPackageSpec.template")

    assert excinfo.value.template_name == "DefaultPackageSpec.template"
    assert excinfo.value.package_name is None


def test_undefined_attribute_is_an_error():
    with pytest.raises(TemplateRenderError):
        TemplateRenderer().render("{{ top.name }}", {"top": {}}, template_name="t")


def test_syntax_error_reports_line():
    with pytest.raises(TemplateRenderError, match="syntax error on line 2"):
        TemplateRenderer().render("ok\n{% if %}", {}, template_name="t")


def test_python_errors_inside_expressions_are_wrapped():
    with pytest.raises(TemplateRenderError, match="TypeError"):
        TemplateRenderer().render("{{ '%03d' % name }}", {"name": "web"}, template_name="t")


def test_trailing_newline_is_kept():
    assert TemplateRenderer().render("a\n", {}, template_name="t") == "a\n"
