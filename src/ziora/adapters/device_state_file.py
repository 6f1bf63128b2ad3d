"""JSON file persistence for per-device gacha state."""

import logging
import os
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError

from ziora.domain.gacha import DeviceState
from ziora.services.device_state import DeviceStateStore

logger = logging.getLogger(__name__)


class DeviceStateFile(BaseModel):
    """On-disk layout of the device state."""

    seen_photo_ids: list[str] = Field(default_factory=list)
    last_reset_at: datetime | None = None
    has_completed_spin_tutorial: bool = False
    last_spin_was_ad: bool = False


@dataclass
class JsonFileDeviceStateStore(DeviceStateStore):
    """Stores device state in a single JSON file."""

    path: Path

    def load(self) -> DeviceState:
        """Read the file; a missing or unreadable file yields defaults."""
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return DeviceState()
        try:
            stored = DeviceStateFile.model_validate_json(raw)
        except ValidationError:
            logger.warning("Device state at %s is corrupt; starting fresh", self.path)
            return DeviceState()
        return DeviceState(
            seen_ids=set(stored.seen_photo_ids),
            last_reset_at=stored.last_reset_at,
            tutorial_completed=stored.has_completed_spin_tutorial,
            last_spin_was_ad=stored.last_spin_was_ad,
        )

    def save(self, state: DeviceState) -> None:
        """Write the file atomically."""
        stored = DeviceStateFile(
            seen_photo_ids=sorted(state.seen_ids),
            last_reset_at=state.last_reset_at,
            has_completed_spin_tutorial=state.tutorial_completed,
            last_spin_was_ad=state.last_spin_was_ad,
        )
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp_path.write_text(stored.model_dump_json(indent=2), encoding="utf-8")
        os.replace(tmp_path, self.path)
