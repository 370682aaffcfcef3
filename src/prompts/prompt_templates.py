"""Dynamic prompt construction for context-aware dialogue turns."""

from src.schemas.attribute_schema import EXTRACTION_FIELDS, AttributeRecord

_UNITS = {"length": "m", "width": "m", "height": "m", "storage": "pallets"}


def build_known_attributes_prompt(record: AttributeRecord) -> str:
    """Tell the model which details are already known and what is missing."""
    known = record.known_fields()
    parts: list[str] = []
    if known:
        parts.append("Details collected so far:")
        for key, value in known.items():
            unit = _UNITS.get(key)
            parts.append(f"  {key}: {value} {unit}" if unit else f"  {key}: {value}")
    else:
        parts.append("No details collected yet.")

    missing = [key for key, value in record.to_document().items() if value is None]
    if missing:
        parts.append(f"\nStill missing: {', '.join(missing)}.")
    else:
        parts.append("\nAll details collected. Confirm them and finish.")
    return "\n".join(parts)


def build_schema_description() -> str:
    """Render the extraction field schema as a bullet list."""
    return "\n".join(
        f"- {spec.name} ({spec.semantic_type}): {spec.description}"
        for spec in EXTRACTION_FIELDS
    )
