"""
Jinja2 Template Renderer.

Loads email templates from a directory. HTML templates are autoescaped;
plain text templates are rendered verbatim.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, StrictUndefined, TemplateError, select_autoescape

from src.core.ports.templates import TemplateRenderError


class JinjaTemplateRenderer:
    """Implements TemplateRendererPort."""

    def __init__(self, templates_dir: str | Path):
        self.templates_dir = Path(templates_dir)
        self._env = Environment(
            loader=FileSystemLoader(str(self.templates_dir)),
            autoescape=select_autoescape(enabled_extensions=("html",)),
            undefined=StrictUndefined,
            keep_trailing_newline=True,
        )

    def render(self, template_name: str, context: dict[str, Any]) -> str:
        try:
            return self._env.get_template(template_name).render(**context)
        except TemplateError as e:
            raise TemplateRenderError(template_name, str(e)) from e
