"""
Single-slot JSON store for the warehouse configuration.

One document, no history, no schema versioning: every save replaces the
previous configuration and the last writer wins.
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Optional, Protocol, Union

from pydantic import ValidationError

from src.config import settings
from src.errors import PersistenceError
from src.schemas.attribute_schema import AttributeRecord

logger = logging.getLogger(__name__)

NO_CONFIGURATION_MESSAGE = "No configuration found"


class ConfigStore(Protocol):
    def load(self) -> Optional[AttributeRecord]: ...

    def save(self, record: AttributeRecord) -> None: ...


class JsonConfigStore:
    """Stores the AttributeRecord as a pretty-printed JSON file."""

    def __init__(self, path: Union[str, Path, None] = None) -> None:
        self.path = Path(path or settings.storage.config_path)

    def exists(self) -> bool:
        return self.path.is_file()

    def load(self) -> Optional[AttributeRecord]:
        """Return the stored record, or None when nothing has been saved."""
        if not self.exists():
            logger.debug("No configuration at %s", self.path)
            return None
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
            return AttributeRecord.from_document(data)
        except (OSError, json.JSONDecodeError, ValidationError, TypeError) as exc:
            logger.error("Error reading configuration from %s: %s", self.path, exc)
            raise PersistenceError("Failed to read configuration") from exc

    def save(self, record: AttributeRecord) -> None:
        """Replace the stored document atomically."""
        payload = json.dumps(record.to_document(), indent=2)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self.path.parent, prefix=".config-", suffix=".json"
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    handle.write(payload)
                os.replace(tmp_name, self.path)
            except OSError:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                raise
        except OSError as exc:
            logger.error("Error saving configuration to %s: %s", self.path, exc)
            raise PersistenceError("Failed to save configuration") from exc
        logger.info("Configuration saved to %s", self.path)
