"""Event objects delivered by the DJ network layer, as expressions see them.

The network layer itself lives elsewhere; these classes pin down the
attributes binding generators read, and double as the objects the
simulator and the tests construct.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

# Raw pitch value meaning "normal speed" (a multiplier of 1.0).
NEUTRAL_PITCH = 0x100000


def pitch_to_multiplier(pitch: int) -> float:
    """Convert a raw device pitch (0 to 2,097,152) to a speed multiplier."""
    return pitch / NEUTRAL_PITCH


def pitch_to_percentage(pitch: int) -> float:
    """Convert a raw device pitch to a percentage adjustment (-100 to +100)."""
    return (pitch_to_multiplier(pitch) - 1.0) * 100.0


class TrackSourceSlot(Enum):
    NO_TRACK = "no-track"
    CD_SLOT = "cd-slot"
    SD_SLOT = "sd-slot"
    USB_SLOT = "usb-slot"
    COLLECTION = "collection"
    UNKNOWN = "unknown"


class TrackType(Enum):
    NO_TRACK = "no-track"
    CD_DIGITAL_AUDIO = "cd-digital-audio"
    REKORDBOX = "rekordbox"
    UNANALYZED = "unanalyzed"
    UNKNOWN = "unknown"


@dataclass
class DeviceUpdate:
    """Common fields of every status packet received from a device."""

    device_number: int
    device_name: str = ""
    address: str = ""
    timestamp: int = 0
    pitch: int = NEUTRAL_PITCH
    bpm: int = 0
    beat_within_bar: int = 0
    beat_within_bar_meaningful: bool = False
    is_tempo_master: bool = False

    @property
    def effective_tempo(self) -> float:
        return self.bpm / 100.0 * pitch_to_multiplier(self.pitch)


@dataclass
class Beat(DeviceUpdate):
    """A beat announcement from a player or mixer."""


@dataclass
class MixerStatus(DeviceUpdate):
    """A status packet from a mixer."""


@dataclass
class CdjStatus(DeviceUpdate):
    """A status packet from a player."""

    beat_number: int = -1
    cue_countdown: int = 511
    is_at_end: bool = False
    is_busy: bool = False
    is_cued: bool = False
    is_looping: bool = False
    is_on_air: bool = False
    is_paused: bool = False
    is_playing: bool = False
    is_synced: bool = False
    rekordbox_id: int = 0
    track_number: int = 0
    track_source_player: int = 0
    track_source_slot: TrackSourceSlot = TrackSourceSlot.NO_TRACK
    track_type: TrackType = TrackType.NO_TRACK

    def format_cue_countdown(self) -> str:
        """Render ``cue_countdown`` the way the player displays it, e.g. ``07.4``."""
        count = self.cue_countdown
        if count == 511 or count < 0:
            return "--.-"
        if count == 0:
            return "00.0"
        bars = (count - 1) // 4
        beats = ((count - 1) % 4) + 1
        return f"{bars:02d}.{beats}"


@dataclass
class TrackPositionUpdate:
    """Where playback stood when a beat was received."""

    timestamp: int
    milliseconds: int
    beat_number: int
    definitive: bool = True
    playing: bool = True
    pitch: float = 1.0


@dataclass
class CueEntry:
    cue_time: int
    name: str = ""
    hot_cue_number: int = 0


@dataclass
class CueList:
    """Memory and hot cues of a track, ordered by position in milliseconds."""

    entries: List[CueEntry] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.entries = sorted(self.entries, key=lambda entry: entry.cue_time)

    def find_entry_after(self, milliseconds: int) -> Optional[CueEntry]:
        for entry in self.entries:
            if entry.cue_time >= milliseconds:
                return entry
        return None

    def find_entry_before(self, milliseconds: int) -> Optional[CueEntry]:
        found = None
        for entry in self.entries:
            if entry.cue_time > milliseconds:
                break
            found = entry
        return found


@dataclass
class BeatGrid:
    """Beat-within-bar values for each beat of a track (index 0 is beat 1)."""

    beat_within_bar: List[int] = field(default_factory=list)

    @property
    def beat_count(self) -> int:
        return len(self.beat_within_bar)

    def bar_number(self, beat_number: int) -> int:
        """Return the bar containing ``beat_number``, or -1 when out of range."""
        if beat_number < 1 or beat_number > self.beat_count:
            return -1
        bar = 0
        for position in self.beat_within_bar[:beat_number]:
            if position == 1 or bar == 0:
                bar += 1
        return bar


@dataclass
class TrackMetadata:
    title: str = ""
    artist: Optional[str] = None
    album: Optional[str] = None
    genre: Optional[str] = None
    key: Optional[str] = None
    label: Optional[str] = None
    comment: Optional[str] = None
    duration: int = 0
    cue_list: Optional[CueList] = None


__all__ = [
    "Beat",
    "BeatGrid",
    "CdjStatus",
    "CueEntry",
    "CueList",
    "DeviceUpdate",
    "MixerStatus",
    "NEUTRAL_PITCH",
    "TrackMetadata",
    "TrackPositionUpdate",
    "TrackSourceSlot",
    "TrackType",
    "pitch_to_multiplier",
    "pitch_to_percentage",
]
