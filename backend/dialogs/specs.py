"""
DialogSpec and EntitySpec definitions.

This module defines the declarative specification for each sub-dialog the
conversation handler can route to. The NLU prompt and the router read these
specs, so adding a sub-dialog needs no per-intent branching in the extractor.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional


class InputType(str, Enum):
    """Input types for entities."""
    TEXT = "TEXT"
    NUMBER = "NUMBER"


class Intent(str, Enum):
    """Intents the NLU can report."""
    FIND_PERSON = "findPerson"
    NONE = "None"


@dataclass
class EntitySpec:
    """
    Specification for a single entity the NLU should extract.

    Attributes:
        name: The entity key (e.g., "expertise", "location")
        input_type: The type of value expected
        description: Human-readable description, also shown to the model
    """
    name: str
    input_type: InputType
    description: str


@dataclass
class DialogSpec:
    """
    Complete specification for a sub-dialog.

    The intent name is what the NLU returns to select this dialog.
    """
    intent: Intent
    title: str
    description: str

    # Entities in the order they are listed to the model
    entities: List[EntitySpec] = field(default_factory=list)

    # Example utterances for the NLU prompt
    examples: List[str] = field(default_factory=list)

    def get_entity_by_name(self, name: str) -> Optional[EntitySpec]:
        """Get an entity spec by name."""
        for entity in self.entities:
            if entity.name == name:
                return entity
        return None

    def get_entity_names(self) -> List[str]:
        """Get all entity names in order."""
        return [e.name for e in self.entities]


# =============================================================================
# DIALOG REGISTRY
# =============================================================================

PERSON_DIALOG_SPEC = DialogSpec(
    intent=Intent.FIND_PERSON,
    title="Find a person",
    description="Find someone to talk to by expertise, language, team or building",

    entities=[
        EntitySpec(
            name="expertise",
            input_type=InputType.TEXT,
            description="A skill or topic the person should know (e.g., ml, python, security)",
        ),
        EntitySpec(
            name="language",
            input_type=InputType.TEXT,
            description="A spoken language the person should speak (e.g., spanish)",
        ),
        EntitySpec(
            name="team",
            input_type=InputType.TEXT,
            description="The team the person should be on (e.g., Infrastructure)",
        ),
        EntitySpec(
            name="location",
            input_type=InputType.NUMBER,
            description="The building number the user is in or wants to be near",
        ),
    ],

    examples=[
        "I need someone who knows ml",
        "who speaks spanish on the Storage team",
        "find me a security expert near building 25",
    ],
)


DIALOGS: Dict[str, DialogSpec] = {
    Intent.FIND_PERSON.value: PERSON_DIALOG_SPEC,
}


def get_dialog_spec(intent: str) -> DialogSpec:
    """
    Get the DialogSpec for a given intent.

    Raises:
        ValueError: If intent is not found in registry.
    """
    spec = DIALOGS.get(intent)
    if spec is None:
        raise ValueError(f"Unknown intent: {intent}. Valid intents: {list(DIALOGS.keys())}")
    return spec


def get_known_entity_names() -> List[str]:
    """All entity names across registered dialogs, without duplicates."""
    names: List[str] = []
    for spec in DIALOGS.values():
        for name in spec.get_entity_names():
            if name not in names:
                names.append(name)
    return names
