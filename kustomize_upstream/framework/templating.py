"""Template capability used for rule targets, naming and descriptors.

All template evaluation in the project goes through `TemplateRenderer.render`,
a pure function of (template string, bindings) -> text. Undefined variables
are errors (`StrictUndefined`), never silently empty strings.
"""

from __future__ import annotations

from collections.abc import Mapping
from functools import lru_cache
from typing import Any, Protocol

import jinja2

from .errors import TemplateRenderError


class TemplateCapability(Protocol):
    def render(self, template: str, bindings: Mapping[str, Any], *, template_name: str) -> str: ...


def pad3(value: Any) -> str:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise jinja2.TemplateRuntimeError(f"pad3 expects a non-negative integer, got {value!r}")
    return f"{value:03d}"


def build_environment() -> jinja2.Environment:
    env = jinja2.Environment(
        undefined=jinja2.StrictUndefined,
        keep_trailing_newline=True,
        autoescape=False,
    )
    env.filters["pad3"] = pad3
    return env


class TemplateRenderer:
    def __init__(self, env: jinja2.Environment | None = None) -> None:
        self._env = env or build_environment()
        self._compile = lru_cache(maxsize=256)(self._env.from_string)

    def render(self, template: str, bindings: Mapping[str, Any], *, template_name: str) -> str:
        if not isinstance(template, str):
            raise TemplateRenderError(
                f"template must be a string (type={type(template).__name__})",
                template_name=template_name,
            )
        try:
            compiled = self._compile(template)
        except jinja2.TemplateSyntaxError as exc:
            raise TemplateRenderError(
                f"syntax error on line {exc.lineno}: {exc.message}", template_name=template_name
            ) from exc

        try:
            return compiled.render(dict(bindings))
        except jinja2.TemplateError as exc:
            raise TemplateRenderError(str(exc), template_name=template_name) from exc
        except (TypeError, ValueError, ArithmeticError) as exc:
            raise TemplateRenderError(
                f"{type(exc).__name__}: {exc}", template_name=template_name
            ) from exc


_DEFAULT_RENDERER: TemplateRenderer | None = None


def default_renderer() -> TemplateRenderer:
    global _DEFAULT_RENDERER
    if _DEFAULT_RENDERER is None:
        _DEFAULT_RENDERER = TemplateRenderer()
    return _DEFAULT_RENDERER
