"""Event objects and the helper functions expressions use to read them."""

from .helpers import DeviceServices, install_services
from .model import (
    Beat,
    BeatGrid,
    CdjStatus,
    CueEntry,
    CueList,
    DeviceUpdate,
    MixerStatus,
    TrackMetadata,
    TrackPositionUpdate,
    TrackSourceSlot,
    TrackType,
)
from .simulation import simulating

__all__ = [
    "Beat",
    "BeatGrid",
    "CdjStatus",
    "CueEntry",
    "CueList",
    "DeviceServices",
    "DeviceUpdate",
    "MixerStatus",
    "TrackMetadata",
    "TrackPositionUpdate",
    "TrackSourceSlot",
    "TrackType",
    "install_services",
    "simulating",
]
