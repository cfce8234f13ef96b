"""
Sub-dialog specifications and registry.
"""
from .specs import (
    InputType,
    Intent,
    EntitySpec,
    DialogSpec,
    DIALOGS,
    get_dialog_spec,
    get_known_entity_names,
)

__all__ = [
    "InputType",
    "Intent",
    "EntitySpec",
    "DialogSpec",
    "DIALOGS",
    "get_dialog_spec",
    "get_known_entity_names",
]
