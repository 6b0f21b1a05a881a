"""The convenience bindings offered to expressions for each kind of event.

Generators call helper functions through the ``helpers`` module alias so a
binding may share its name with the helper that computes it.
"""
from __future__ import annotations

from typing import Dict

from .catalog import BindingCatalog, EventKind

_BEAT_WITHIN_BAR_DOC = (
    "The position within a measure of music at which the most recent beat fell "
    "(1 to 4, where 1 is the down beat). Accurate for players when the track was "
    "configured in rekordbox; the mixer makes no effort to line up down beats, so "
    "check is_bar_meaningful before relying on it."
)
_BAR_NUMBER_DOC = (
    "The bar in which the beat that just played falls, counting from 1 and "
    "incrementing on each down beat. -1 when the track has not been analyzed or "
    "no beat grid is available."
)
_BEAT_NUMBER_DOC = (
    "The beat of the track that is currently being played, counting from 1. "
    "0 while paused at the start of the track, -1 when the track has not been "
    "analyzed or the position is unknown."
)
_NEXT_CUE_DOC = (
    "The next rekordbox cue that will be reached in the track being played, if "
    "any. None unless playback time is known for the device. When the player "
    "sits right on a cue, both this and previous_cue are that cue."
)
_PREVIOUS_CUE_DOC = (
    "The rekordbox cue most recently passed in the track being played, if any. "
    "None unless playback time is known for the device. When the player sits "
    "right on a cue, both this and next_cue are that cue."
)
_ON_AIR_DOC = (
    "Is the player on the air? A player is on the air when it is connected to a "
    "mixer channel that is not faded out. Only Nexus mixers report this."
)
_PITCH_MULTIPLIER_DOC = (
    "The device pitch as a multiplier from 0.0 to 2.0, where 1.0 is normal speed "
    "and 0.0 means stopped."
)
_PITCH_PERCENT_DOC = (
    "The device pitch as a percentage from -100 to +100, where 0 is normal speed."
)
_RAW_BPM_DOC = (
    "The raw track BPM: an integer holding the BPM times 100, so 120.5 BPM is 12050."
)
_RAW_PITCH_DOC = (
    "The raw device pitch, an integer from 0 to 2097152 spanning stopped to double "
    "speed. See pitch_multiplier and pitch_percent for friendlier forms."
)
_TRACK_BPM_DOC = (
    "The track BPM as a float. See effective_tempo for the speed it is actually "
    "playing at."
)


def _metadata_field(field: str, doc: str) -> Dict[str, str]:
    return {
        "code": f"helpers.metadata_field(track_metadata, {field!r})",
        "doc": doc,
        "requires": "track_metadata",
    }


DEVICE_UPDATE_BINDINGS = {
    "address": {
        "code": "status.address",
        "doc": "The address of the device from which this update was received.",
    },
    "is_bar_meaningful": {
        "code": "status.beat_within_bar_meaningful",
        "doc": "True when beat_within_bar can be expected to have musical significance "
        "because the device respects the way the track was configured in rekordbox.",
    },
    "is_beat": {
        "code": "isinstance(status, Beat)",
        "doc": "True if this update is announcing a new beat.",
    },
    "beat_within_bar": {"code": "status.beat_within_bar", "doc": _BEAT_WITHIN_BAR_DOC},
    "is_cdj": {
        "code": "helpers.is_cdj(status)",
        "doc": "True if this update is reporting the status of a CDJ.",
    },
    "device_name": {
        "code": "status.device_name",
        "doc": "The name reported by the device sending the update.",
    },
    "device_number": {
        "code": "status.device_number",
        "doc": "The player or device number sending the update.",
    },
    "effective_tempo": {
        "code": "status.effective_tempo",
        "doc": "The tempo the device is actually playing at, combining track BPM and pitch.",
    },
    "is_mixer": {
        "code": "helpers.is_mixer(status)",
        "doc": "True if this update is reporting the status of a mixer.",
    },
    "next_cue": {"code": "helpers.next_cue(status)", "doc": _NEXT_CUE_DOC},
    "pitch_multiplier": {"code": "pitch_to_multiplier(status.pitch)", "doc": _PITCH_MULTIPLIER_DOC},
    "pitch_percent": {"code": "pitch_to_percentage(status.pitch)", "doc": _PITCH_PERCENT_DOC},
    "previous_cue": {"code": "helpers.previous_cue(status)", "doc": _PREVIOUS_CUE_DOC},
    "raw_bpm": {"code": "status.bpm", "doc": _RAW_BPM_DOC},
    "raw_pitch": {"code": "status.pitch", "doc": _RAW_PITCH_DOC},
    "timestamp": {
        "code": "status.timestamp",
        "doc": "The nanosecond at which this update was received.",
    },
    "track_bpm": {"code": "status.bpm / 100.0", "doc": _TRACK_BPM_DOC},
    "track_time_reached": {
        "code": "helpers.playback_time(status)",
        "doc": "How far into the track has been played, in milliseconds. None when "
        "playback time is not known for the device.",
    },
}

# Every field binding requires track_metadata, so the metadata lookup runs once
# per invocation however many of them an expression uses.
METADATA_BINDINGS = {
    "track_metadata": {
        "code": "helpers.latest_metadata(status)",
        "doc": "The metadata object for the loaded track, if one is available.",
    },
    "track_album": _metadata_field("album", "The album of the loaded track, if metadata is available."),
    "track_artist": _metadata_field("artist", "The artist of the loaded track, if metadata is available."),
    "track_comment": _metadata_field(
        "comment", "The comment assigned to the loaded track, if metadata is available."
    ),
    "track_genre": _metadata_field("genre", "The genre of the loaded track, if metadata is available."),
    "track_key": _metadata_field("key", "The key of the loaded track, if metadata is available."),
    "track_label": _metadata_field("label", "The label of the loaded track, if metadata is available."),
    "track_length": _metadata_field(
        "duration", "The length in seconds of the loaded track, if metadata is available."
    ),
    "track_title": _metadata_field("title", "The title of the loaded track, if metadata is available."),
}

BEAT_SHARED_BINDINGS = {
    "bar_number": {"code": "helpers.current_bar(status, -1)", "doc": _BAR_NUMBER_DOC},
    "beat_number": {"code": "helpers.current_beat(status, -1)", "doc": _BEAT_NUMBER_DOC},
    "is_on_air": {"code": "helpers.on_air(status)", "doc": _ON_AIR_DOC},
    "is_tempo_master": {
        "code": "helpers.extract_device_update(status).is_tempo_master",
        "doc": "Was this beat sent by the current tempo master?",
    },
}

BEAT_BINDINGS = {
    "beat": {"code": "status", "doc": "The raw beat message received from the player."},
    "beat_number": {"code": "helpers.current_beat(status, -1)", "doc": _BEAT_NUMBER_DOC},
    "is_on_air": {"code": "helpers.on_air(status)", "doc": _ON_AIR_DOC},
    "is_tempo_master": {
        "code": "status.is_tempo_master",
        "doc": "Was this beat sent by the current tempo master?",
    },
}

MIXER_STATUS_BINDINGS = {
    "is_tempo_master": {
        "code": "status.is_tempo_master",
        "doc": "Is this mixer the current tempo master?",
    },
}

CDJ_STATUS_BINDINGS = {
    "is_at_end": {"code": "status.is_at_end", "doc": "Is the player stopped at the end of a track?"},
    "bar_number": {
        "code": "helpers.bar_number_for(status, status.beat_number, -1)",
        "doc": _BAR_NUMBER_DOC,
    },
    "beat_number": {
        "code": "status.beat_number",
        "doc": "The beat of the track being played, counting from 1. 0 while paused "
        "at the start of the track, -1 when the track has not been analyzed.",
    },
    "is_busy": {"code": "status.is_busy", "doc": "True if the player is doing anything."},
    "cue_countdown": {
        "code": "status.cue_countdown",
        "doc": "How many bars until the next memory cue or loop, 1 to 64, or 511 when "
        "there is no cue ahead. Shown as a countdown on the player display.",
    },
    "cue_countdown_text": {
        "code": "status.format_cue_countdown()",
        "doc": "cue_countdown formatted as the player displays it, e.g. '07.4' or '--.-'.",
    },
    "is_cued": {"code": "status.is_cued", "doc": "Is the player paused at the cue point?"},
    "is_looping": {"code": "status.is_looping", "doc": "Is the player playing a loop?"},
    "is_on_air": {"code": "status.is_on_air", "doc": _ON_AIR_DOC},
    "is_paused": {"code": "status.is_paused", "doc": "Is the player paused?"},
    "is_playing": {"code": "status.is_playing", "doc": "Is the player playing a track?"},
    "rekordbox_id": {
        "code": "status.rekordbox_id",
        "doc": "The rekordbox id of the loaded track, 0 if no track is loaded. For an "
        "audio CD this is just the track number.",
    },
    "is_synced": {"code": "status.is_synced", "doc": "Is the player in Sync mode?"},
    "is_tempo_master": {
        "code": "status.is_tempo_master",
        "doc": "Is this player the current tempo master?",
    },
    "track_number": {
        "code": "status.track_number",
        "doc": "The position of the loaded track within its playlist or browse list.",
    },
    "track_source_player": {
        "code": "status.track_source_player",
        "doc": "The device number the track was loaded from, 0 if no track is loaded.",
    },
    "track_source_slot": {
        "code": "helpers.track_source_slot(status)",
        "doc": "The slot the track was loaded from: 'no-track', 'cd-slot', 'sd-slot', "
        "'usb-slot' or 'unknown'.",
    },
    "track_type": {
        "code": "helpers.track_type(status)",
        "doc": "The kind of track loaded: 'no-track', 'cd-digital-audio', 'rekordbox' "
        "or 'unknown'.",
    },
}

# status is a (Beat, TrackPositionUpdate) pair here.
BEAT_TPU_BINDINGS = {
    "address": {
        "code": "status[0].address",
        "doc": "The address of the device from which this beat was received.",
    },
    "is_bar_meaningful": {
        "code": "status[0].beat_within_bar_meaningful",
        "doc": "True when beat_within_bar can be expected to have musical significance.",
    },
    "beat": {"code": "status[0]", "doc": "The raw beat message received from the player."},
    "is_beat": {"code": "True", "doc": "Always True, as this update announces a new beat."},
    "beat_within_bar": {"code": "status[0].beat_within_bar", "doc": _BEAT_WITHIN_BAR_DOC},
    "is_cdj": {
        "code": "status[0].device_number < 17",
        "doc": "True if this beat came from a CDJ.",
    },
    "device_name": {
        "code": "status[0].device_name",
        "doc": "The name reported by the device sending the beat.",
    },
    "device_number": {
        "code": "status[0].device_number",
        "doc": "The player or device number sending the beat.",
    },
    "effective_tempo": {
        "code": "status[0].effective_tempo",
        "doc": "The tempo the device is actually playing at, combining track BPM and pitch.",
    },
    "is_mixer": {
        "code": "status[0].device_number > 32",
        "doc": "True if this beat came from a mixer.",
    },
    "next_cue": {"code": "helpers.next_cue(status)", "doc": _NEXT_CUE_DOC},
    "pitch_multiplier": {
        "code": "pitch_to_multiplier(status[0].pitch)",
        "doc": _PITCH_MULTIPLIER_DOC,
    },
    "pitch_percent": {"code": "pitch_to_percentage(status[0].pitch)", "doc": _PITCH_PERCENT_DOC},
    "previous_cue": {"code": "helpers.previous_cue(status)", "doc": _PREVIOUS_CUE_DOC},
    "raw_bpm": {"code": "status[0].bpm", "doc": _RAW_BPM_DOC},
    "raw_pitch": {"code": "status[0].pitch", "doc": _RAW_PITCH_DOC},
    "timestamp": {
        "code": "status[0].timestamp",
        "doc": "The nanosecond at which this beat was received.",
    },
    "track_bpm": {"code": "status[0].bpm / 100.0", "doc": _TRACK_BPM_DOC},
    "track_position": {
        "code": "status[1]",
        "doc": "The raw track position update built from the beat.",
    },
    "track_time_reached": {
        "code": "status[1].milliseconds",
        "doc": "How far into the track has been played, in milliseconds.",
    },
}


DEFAULT_DECLARATIONS = {
    EventKind.DEVICE_UPDATE: {"bindings": DEVICE_UPDATE_BINDINGS},
    EventKind.METADATA: {"bindings": METADATA_BINDINGS},
    EventKind.BEAT_SHARED: {"bindings": BEAT_SHARED_BINDINGS},
    EventKind.BEAT: {
        "inherits": [EventKind.DEVICE_UPDATE, EventKind.BEAT_SHARED, EventKind.METADATA],
        "bindings": BEAT_BINDINGS,
    },
    EventKind.MIXER_STATUS: {
        "inherits": [EventKind.DEVICE_UPDATE],
        "bindings": MIXER_STATUS_BINDINGS,
    },
    EventKind.CDJ_STATUS: {
        "inherits": [EventKind.DEVICE_UPDATE, EventKind.METADATA],
        "bindings": CDJ_STATUS_BINDINGS,
    },
    EventKind.BEAT_TPU: {
        "inherits": [EventKind.BEAT_SHARED, EventKind.METADATA],
        "bindings": BEAT_TPU_BINDINGS,
    },
}

DEFAULT_CATALOG = BindingCatalog.build(DEFAULT_DECLARATIONS)


__all__ = ["DEFAULT_CATALOG", "DEFAULT_DECLARATIONS"]
