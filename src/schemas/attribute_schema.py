"""
Warehouse attribute record, structured-extraction schema, and merge rules.

The record holds six independently nullable fields. Heuristic guesses
only fill gaps; authoritative values from structured extraction win over
anything already present.

Usage:
    record = AttributeRecord()
    record = merge(record, AttributeRecord(length=30), MergePolicy.HEURISTIC)
    assert not record.is_complete()
"""

from enum import Enum
from typing import Any, NamedTuple, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.utils import normalize_label

# Fixed field order of the record (Python attribute names)
FIELD_ORDER: tuple[str, ...] = (
    "length",
    "width",
    "height",
    "pallet_type",
    "storage",
    "storage_type",
)

PALLET_TYPES: tuple[str, ...] = (
    "standard", "euro", "block", "stringer", "plastic", "wooden",
)

STORAGE_TYPES: tuple[str, ...] = (
    "selective rack", "drive-in", "drive-through", "push-back", "pallet flow",
    "cantilever", "mezzanine", "block stacking", "mobile rack", "rack",
)


class MergePolicy(str, Enum):
    """How a patch is applied to an existing record."""

    HEURISTIC = "heuristic"
    AUTHORITATIVE = "authoritative"


class AttributeRecord(BaseModel):
    """The six-field warehouse configuration document.

    Serialized with camelCase keys (``palletType``, ``storageType``) to
    match the stored JSON document; constructed with either spelling.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    length: Optional[float] = Field(default=None, gt=0)
    width: Optional[float] = Field(default=None, gt=0)
    height: Optional[float] = Field(default=None, gt=0)
    pallet_type: Optional[str] = Field(default=None, alias="palletType")
    storage: Optional[int] = Field(default=None, gt=0)
    storage_type: Optional[str] = Field(default=None, alias="storageType")

    @field_validator("pallet_type", "storage_type", mode="before")
    @classmethod
    def _normalize_labels(cls, value: Any) -> Optional[str]:
        return normalize_label(value)

    def is_complete(self) -> bool:
        return is_complete(self)

    def missing_fields(self) -> list[str]:
        """Unset fields, in record order."""
        return [name for name in FIELD_ORDER if getattr(self, name) is None]

    def known_fields(self) -> dict[str, Any]:
        """Set fields only, keyed by document (camelCase) name."""
        return {
            key: value
            for key, value in self.to_document().items()
            if value is not None
        }

    def to_document(self) -> dict[str, Any]:
        """Export as the stored JSON document shape."""
        return self.model_dump(by_alias=True)

    @classmethod
    def from_document(cls, data: dict[str, Any]) -> "AttributeRecord":
        return cls.model_validate(data)


def is_complete(record: AttributeRecord) -> bool:
    """A record is complete iff all six fields are set."""
    return all(getattr(record, name) is not None for name in FIELD_ORDER)


def merge(
    base: AttributeRecord,
    patch: AttributeRecord,
    policy: MergePolicy,
) -> AttributeRecord:
    """
    Apply the non-null fields of ``patch`` onto ``base``.

    HEURISTIC only fills fields that are unset in ``base``.
    AUTHORITATIVE overwrites, including earlier heuristic guesses.
    Null fields in the patch never clear a value.
    """
    updates: dict[str, Any] = {}
    for name in FIELD_ORDER:
        value = getattr(patch, name)
        if value is None:
            continue
        if policy == MergePolicy.HEURISTIC and getattr(base, name) is not None:
            continue
        updates[name] = value
    if not updates:
        return base
    return base.model_copy(update=updates)


class FieldSpec(NamedTuple):
    """Declared schema entry for structured extraction."""

    name: str
    semantic_type: str
    description: str


EXTRACTION_FIELDS: tuple[FieldSpec, ...] = (
    FieldSpec("length", "number", "Warehouse length in meters"),
    FieldSpec("width", "number", "Warehouse width in meters"),
    FieldSpec("height", "number", "Warehouse height in meters"),
    FieldSpec(
        "pallet_type", "string",
        "Pallet type, e.g. standard, euro, block, stringer, plastic, wooden",
    ),
    FieldSpec("capacity", "integer", "Total storage capacity as a number of pallets"),
    FieldSpec(
        "storage_type", "string",
        "Storage system, e.g. rack, drive-in, block stacking",
    ),
)

# Structured schema name -> stored document name.
# capacity/storage is a real rename; the rest are case conversions.
STRUCTURED_FIELD_MAP: dict[str, str] = {
    "length": "length",
    "width": "width",
    "height": "height",
    "pallet_type": "palletType",
    "capacity": "storage",
    "storage_type": "storageType",
}

_DESCRIPTIONS = {spec.name: spec.description for spec in EXTRACTION_FIELDS}


class StructuredAttributes(BaseModel):
    """Response format for the structured extraction call.

    Every field is required but nullable so the model must answer each
    one explicitly.
    """

    length: Optional[float] = Field(description=_DESCRIPTIONS["length"])
    width: Optional[float] = Field(description=_DESCRIPTIONS["width"])
    height: Optional[float] = Field(description=_DESCRIPTIONS["height"])
    pallet_type: Optional[str] = Field(description=_DESCRIPTIONS["pallet_type"])
    capacity: Optional[int] = Field(description=_DESCRIPTIONS["capacity"])
    storage_type: Optional[str] = Field(description=_DESCRIPTIONS["storage_type"])
