"""Functions available to binding generators and user expressions.

Everything listed in ``__all__`` is preloaded into each expression
workspace, as is the module itself under the name ``helpers``, which is how
binding generators call it. Live lookups go through the installed :class:`DeviceServices`;
while :func:`cueflow.events.simulation.simulating` is active the simulated
data wins.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

from .model import (
    Beat,
    BeatGrid,
    CdjStatus,
    CueEntry,
    DeviceUpdate,
    MixerStatus,
    TrackMetadata,
    TrackPositionUpdate,
    TrackSourceSlot,
    TrackType,
)
from .simulation import simulation_data

logger = logging.getLogger(__name__)


@dataclass
class DeviceServices:
    """Lookups supplied by the network layer; any of them may be missing."""

    metadata_for: Optional[Callable[[DeviceUpdate], Optional[TrackMetadata]]] = None
    time_for: Optional[Callable[[DeviceUpdate], Optional[int]]] = None
    position_for: Optional[Callable[[DeviceUpdate], Optional[TrackPositionUpdate]]] = None
    beat_grid_for: Optional[Callable[[DeviceUpdate], Optional[BeatGrid]]] = None
    latest_status_for: Optional[Callable[[DeviceUpdate], Optional[DeviceUpdate]]] = None


_services = DeviceServices()


def install_services(services: Optional[DeviceServices]) -> None:
    """Install the lookups used by helpers (``None`` removes them all)."""
    global _services
    _services = services or DeviceServices()
    logger.debug("Installed device services %s", _services)


def get_services() -> DeviceServices:
    return _services


def extract_device_update(status: Any) -> Optional[DeviceUpdate]:
    """Find the device update in either a plain update or a (beat, position) pair."""
    if status is None or isinstance(status, DeviceUpdate):
        return status
    return status[0]


def extract_device_number(status: Any) -> Optional[int]:
    update = extract_device_update(status)
    return update.device_number if update is not None else None


def is_cdj(status: Any) -> bool:
    if isinstance(status, CdjStatus):
        return True
    update = extract_device_update(status)
    return isinstance(update, Beat) and update.device_number < 17


def is_mixer(status: Any) -> bool:
    if isinstance(status, MixerStatus):
        return True
    update = extract_device_update(status)
    return isinstance(update, Beat) and update.device_number > 32


def playback_time(device_update: Any) -> Optional[int]:
    """Milliseconds into the track the device has reached, or ``None`` if unknown."""
    data = simulation_data()
    if data is not None:
        return data.get("time")
    lookup = _services.time_for
    if lookup is None:
        return None
    result = lookup(extract_device_update(device_update))
    if result is None or result < 0:
        return None
    return result


def _beat_of(status: Any) -> Optional[int]:
    if isinstance(status, DeviceUpdate):
        data = simulation_data()
        if data is not None:
            return data.get("beat")
        lookup = _services.position_for
        if lookup is None:
            return None
        position = lookup(status)
        return position.beat_number if position is not None else None
    if isinstance(status, (tuple, list)):
        return status[1].beat_number
    return None


def current_beat(status: Any, default: Optional[int] = None) -> Optional[int]:
    """Beat number the device that sent ``status`` is playing, or ``default``."""
    beat = _beat_of(status)
    return default if beat is None else beat


def bar_number_for(status: Any, beat: Optional[int], default: Optional[int] = None) -> Optional[int]:
    """Bar containing ``beat`` in the grid of the track ``status`` is playing."""
    if beat is None:
        return default
    data = simulation_data()
    if data is not None:
        grid = data.get("beat_grid")
    else:
        lookup = _services.beat_grid_for
        grid = lookup(extract_device_update(status)) if lookup is not None else None
    if grid is None:
        return default
    return grid.bar_number(beat)


def current_bar(status: Any, default: Optional[int] = None) -> Optional[int]:
    """Bar number the device that sent ``status`` is playing, or ``default``."""
    return bar_number_for(status, current_beat(status), default)


def latest_metadata(status: Any) -> Optional[TrackMetadata]:
    """Metadata of the track loaded in the device that sent ``status``."""
    if simulation_data() is not None:
        return None
    lookup = _services.metadata_for
    if lookup is None:
        return None
    return lookup(extract_device_update(status))


def metadata_field(track_metadata: Optional[TrackMetadata], name: str) -> Any:
    """Read one metadata field, preferring simulated metadata when active."""
    data = simulation_data()
    if data is not None:
        return (data.get("metadata") or {}).get(name)
    if track_metadata is None:
        return None
    return getattr(track_metadata, name, None)


def _cue_near(status: Any, after: bool) -> Optional[CueEntry]:
    reached = playback_time(status)
    if reached is None:
        return None
    data = simulation_data()
    if data is not None:
        cue_list = data.get("cue_list")
    else:
        metadata = latest_metadata(status)
        cue_list = metadata.cue_list if metadata is not None else None
    if cue_list is None:
        return None
    if after:
        return cue_list.find_entry_after(reached)
    return cue_list.find_entry_before(reached)


def next_cue(status: Any) -> Optional[CueEntry]:
    return _cue_near(status, after=True)


def previous_cue(status: Any) -> Optional[CueEntry]:
    return _cue_near(status, after=False)


def on_air(status: Any) -> Optional[bool]:
    """Whether the player is on the air, from its most recent full status."""
    lookup = _services.latest_status_for
    if lookup is None:
        return None
    latest = lookup(extract_device_update(status))
    return getattr(latest, "is_on_air", None)


def track_source_slot(status: CdjStatus) -> str:
    slot = getattr(status, "track_source_slot", None)
    return slot.value if isinstance(slot, TrackSourceSlot) else TrackSourceSlot.UNKNOWN.value


def track_type(status: CdjStatus) -> str:
    kind = getattr(status, "track_type", None)
    return kind.value if isinstance(kind, TrackType) else TrackType.UNKNOWN.value


__all__ = [
    "DeviceServices",
    "bar_number_for",
    "current_bar",
    "current_beat",
    "extract_device_number",
    "extract_device_update",
    "get_services",
    "install_services",
    "is_cdj",
    "is_mixer",
    "latest_metadata",
    "metadata_field",
    "next_cue",
    "on_air",
    "playback_time",
    "previous_cue",
    "track_source_slot",
    "track_type",
]
