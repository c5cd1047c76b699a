"""
Confirmation component.

Confirmation workflow: parse token → resolve subscriber → mark confirmed.
"""

from src.components.confirmation.component import run_confirm
from src.components.confirmation.models import ConfirmInput, ConfirmOutput
from src.components.confirmation.ports import ConfirmationRepoPort

__all__ = [
    "run_confirm",
    "ConfirmInput",
    "ConfirmOutput",
    "ConfirmationRepoPort",
]
