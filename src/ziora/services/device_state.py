"""Per-device persisted state: seen-set and one-shot flags."""

from dataclasses import dataclass, field, replace
from typing import Protocol

from ziora.domain.gacha import DeviceState


class DeviceStateStore(Protocol):
    """Load/save boundary for device state."""

    def load(self) -> DeviceState:
        """Return the stored state, or defaults when nothing is stored."""

    def save(self, state: DeviceState) -> None:
        """Persist the full state."""


@dataclass
class InMemoryDeviceStateStore(DeviceStateStore):
    """Keeps device state for the lifetime of the process."""

    state: DeviceState = field(default_factory=DeviceState)
    saves: int = 0

    def load(self) -> DeviceState:
        return replace(self.state, seen_ids=set(self.state.seen_ids))

    def save(self, state: DeviceState) -> None:
        self.state = replace(state, seen_ids=set(state.seen_ids))
        self.saves += 1
