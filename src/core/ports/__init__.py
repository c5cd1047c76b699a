# Ports (Protocol Interfaces)
# Abstract interfaces for adapters; no implementations here

from src.core.ports.email import (
    EmailAddress,
    EmailError,
    EmailPort,
    EmailResult,
    EmailSendError,
    EmailStatus,
)
from src.core.ports.templates import TemplateRendererPort, TemplateRenderError

__all__ = [
    # Email
    "EmailAddress",
    "EmailError",
    "EmailPort",
    "EmailResult",
    "EmailSendError",
    "EmailStatus",
    # Templates
    "TemplateRendererPort",
    "TemplateRenderError",
]
