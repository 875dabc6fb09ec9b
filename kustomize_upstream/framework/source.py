from __future__ import annotations

import sys
from typing import TextIO

import requests

from .config import SplitConfig
from .errors import ConfigError, SourceFetchError
from .templating import TemplateCapability, default_renderer

DEFAULT_TIMEOUT_SECONDS = 30.0


def resolve_source_url(config: SplitConfig, *, renderer: TemplateCapability | None = None) -> str:
    """`Top.source` when set, otherwise `Top.sourceTemplate` rendered against `top`."""

    top = config.top
    if top is None:
        raise ConfigError("No input given and no Top block configured to fetch the manifest stream from")
    if top.source:
        return top.source.strip()
    if not top.source_template:
        raise ConfigError("No input given and neither Top.source nor Top.sourceTemplate is configured")
    renderer = renderer or default_renderer()
    url = renderer.render(
        top.source_template, {"top": top.bindings()}, template_name="Top.sourceTemplate"
    ).strip()
    if not url:
        raise ConfigError("Top.sourceTemplate rendered an empty URL")
    return url


def fetch_stream(url: str, *, timeout: float = DEFAULT_TIMEOUT_SECONDS) -> str:
    try:
        response = requests.get(url, timeout=timeout)
        response.raise_for_status()
    except requests.exceptions.RequestException as exc:
        raise SourceFetchError(url, str(exc)) from exc
    return response.text


def read_stream(input_path: str, *, stdin: TextIO | None = None) -> str:
    if input_path == "-":
        return (stdin or sys.stdin).read()
    with open(input_path, "r", encoding="utf-8") as handle:
        return handle.read()
