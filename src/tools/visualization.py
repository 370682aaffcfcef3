"""
Derived figures for the warehouse visualization panel.

The panel is a passive subscriber on the completion channel. It never
changes the record; it only turns it into display labels and simple
floor area and volume figures.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from src.conversation.events import CompletionChannel, CompletionEvent
from src.schemas.attribute_schema import AttributeRecord

logger = logging.getLogger(__name__)

NOT_SET = "n/a"


def _format_meters(value: Optional[float]) -> str:
    if value is None:
        return "?"
    return f"{value:g}m"


def _title(value: Optional[str]) -> str:
    if not value:
        return NOT_SET
    return value.title()


@dataclass(frozen=True)
class VisualizationSummary:
    """Labels and figures shown next to the 3D/2D view."""

    dimensions: str
    pallets: str
    storage_type: str
    floor_area_m2: Optional[float] = None
    volume_m3: Optional[float] = None
    ready: bool = False

    @classmethod
    def from_record(cls, record: Optional[AttributeRecord]) -> "VisualizationSummary":
        if record is None:
            return cls(dimensions=NOT_SET, pallets=NOT_SET, storage_type=NOT_SET)

        if record.length is None and record.width is None and record.height is None:
            dimensions = NOT_SET
        else:
            dimensions = " × ".join(
                _format_meters(v) for v in (record.length, record.width, record.height)
            )

        if record.storage is None:
            pallets = NOT_SET
        elif record.pallet_type:
            pallets = f"{record.storage} {_title(record.pallet_type)}"
        else:
            pallets = str(record.storage)

        floor_area = None
        volume = None
        if record.length is not None and record.width is not None:
            floor_area = round(record.length * record.width, 2)
            if record.height is not None:
                volume = round(floor_area * record.height, 2)

        return cls(
            dimensions=dimensions,
            pallets=pallets,
            storage_type=_title(record.storage_type),
            floor_area_m2=floor_area,
            volume_m3=volume,
            ready=record.is_complete(),
        )


class VisualizationPanel:
    """Keeps the latest completed summary; notified once per session."""

    def __init__(self) -> None:
        self.latest: Optional[VisualizationSummary] = None
        self.last_event: Optional[CompletionEvent] = None
        self.notification_count = 0

    def attach(self, channel: CompletionChannel) -> Callable[[], None]:
        return channel.subscribe(self.on_completion)

    def on_completion(self, event: CompletionEvent) -> None:
        self.notification_count += 1
        self.last_event = event
        self.latest = VisualizationSummary.from_record(event.record)
        logger.info(
            "Visualization updated: %s, %s, %s",
            self.latest.dimensions, self.latest.pallets, self.latest.storage_type,
        )

    def reset(self) -> None:
        self.latest = None
        self.last_event = None
