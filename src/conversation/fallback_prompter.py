"""
Deterministic next-question prompts used when the dialogue service is down.

Questions follow a fixed priority order that starts with height, the
first thing the wizard greets the user with.
"""

from dataclasses import dataclass
from typing import Optional

from src.schemas.attribute_schema import AttributeRecord


@dataclass(frozen=True)
class FieldPrompt:
    """Question to ask for one unset attribute."""

    name: str
    display_name: str
    question: str


FIELD_PROMPTS: list[FieldPrompt] = [
    FieldPrompt(
        name="height",
        display_name="height",
        question="What's the height requirement for your warehouse, in meters?",
    ),
    FieldPrompt(
        name="length",
        display_name="length",
        question="How long is the warehouse floor, in meters?",
    ),
    FieldPrompt(
        name="width",
        display_name="width",
        question="And how wide is the warehouse floor, in meters?",
    ),
    FieldPrompt(
        name="pallet_type",
        display_name="pallet type",
        question="What type of pallets will you use (for example standard, euro, block or plastic)?",
    ),
    FieldPrompt(
        name="storage",
        display_name="storage capacity",
        question="How many pallets do you need to store in total?",
    ),
    FieldPrompt(
        name="storage_type",
        display_name="storage type",
        question="What storage system do you have in mind (for example rack, drive-in or block stacking)?",
    ),
]

ALL_COLLECTED_MESSAGE = (
    "Thanks, I have everything I need. Generating your warehouse layout now."
)


def next_missing_field(record: AttributeRecord) -> Optional[FieldPrompt]:
    """Return the highest-priority unset field, or None if all are set."""
    for prompt in FIELD_PROMPTS:
        if getattr(record, prompt.name) is None:
            return prompt
    return None


def next_prompt(record: AttributeRecord) -> str:
    """Question for the first unset field, or the closing message."""
    prompt = next_missing_field(record)
    if prompt is None:
        return ALL_COLLECTED_MESSAGE
    return prompt.question
