"""
Template Renderer Interface.

Renders named email templates (e.g. welcome.html, welcome.txt) with a
context mapping. The template engine itself lives in the adapter.
"""

from __future__ import annotations

from typing import Any, Protocol


class TemplateRendererPort(Protocol):
    def render(self, template_name: str, context: dict[str, Any]) -> str:
        """Render a template by name; raises TemplateRenderError on failure."""
        ...


class TemplateRenderError(Exception):
    """Template missing or failed to render."""

    def __init__(self, template_name: str, reason: str) -> None:
        self.template_name = template_name
        self.reason = reason
        super().__init__(f"Failed rendering template '{template_name}': {reason}")
