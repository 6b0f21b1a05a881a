"""The expression editors triggers and shows offer, and how each one is compiled.

Triggers compile into the default workspace. Each show gets a workspace of
its own, named after the show, so shared functions defined by one show are
invisible to triggers and to other shows.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Tuple

from cueflow.runtime.tracing import ExpressionTracer
from cueflow.runtime.workspace import SharedWorkspace, workspace_for

from .bindings import DEFAULT_CATALOG
from .catalog import BindingCatalog, EventKind, Kind
from .compiler import CompiledExpression, compile_source
from .resolver import ResolvedBindingSet, merge_binding_sets, resolve_bindings

logger = logging.getLogger(__name__)

_DEVICE_KINDS = (EventKind.CDJ_STATUS, EventKind.MIXER_STATUS)
_PLAYER_KINDS = (EventKind.CDJ_STATUS,)
_CUE_BEAT_KINDS = (EventKind.BEAT_TPU,)

SHOW_WORKSPACE_PREFIX = "show:"


@dataclass(frozen=True)
class ExpressionSlot:
    """One place a user can attach an expression.

    ``kinds`` lists the event kinds whose bindings the slot sees; an empty
    tuple means the expression runs without an event. Global slots belong
    to the whole trigger window or show rather than to one of its items.
    ``title_template`` combines ``title`` with the owner label.
    """

    key: str
    title: str
    description: str
    kinds: Tuple[Kind, ...] = ()
    nil_guarded: bool = False
    no_owner_locals: bool = False
    shared_definitions: bool = False
    global_scope: bool = False
    title_template: str = "{owner} {title}"


def _table(*slots: ExpressionSlot) -> Dict[str, ExpressionSlot]:
    return {slot.key: slot for slot in slots}


TRIGGER_SLOTS: Dict[str, ExpressionSlot] = _table(
    ExpressionSlot(
        key="global_setup",
        title="Global Setup Expression",
        description="Called once when the triggers are loaded. Set up values in globals "
        "that every trigger can use.",
        no_owner_locals=True,
        global_scope=True,
        title_template="{title}",
    ),
    ExpressionSlot(
        key="shared_functions",
        title="Shared Functions",
        description="Functions and values defined here are visible to every trigger "
        "expression.",
        shared_definitions=True,
        global_scope=True,
        title_template="{title}",
    ),
    ExpressionSlot(
        key="global_shutdown",
        title="Global Shutdown Expression",
        description="Called once when the triggers are closed. Release anything the "
        "global setup expression created.",
        no_owner_locals=True,
        global_scope=True,
        title_template="{title}",
    ),
    ExpressionSlot(
        key="setup",
        title="Setup Expression",
        description="Called when the trigger is created or loaded. Set up values in locals "
        "for the other expressions of this trigger.",
    ),
    ExpressionSlot(
        key="enabled",
        title="Enabled Filter Expression",
        description="Called for each status update from the watched player. Return a true "
        "value to enable the trigger.",
        kinds=_DEVICE_KINDS,
        nil_guarded=True,
    ),
    ExpressionSlot(
        key="activation",
        title="Activation Expression",
        description="Called when the trigger becomes active, with the update that caused it.",
        kinds=_DEVICE_KINDS,
        nil_guarded=True,
    ),
    ExpressionSlot(
        key="beat",
        title="Beat Expression",
        description="Called on every beat from the watched player while the trigger is "
        "enabled.",
        kinds=(EventKind.BEAT,),
    ),
    ExpressionSlot(
        key="tracked",
        title="Tracked Update Expression",
        description="Called for each status update from the watched player while the "
        "trigger is enabled.",
        kinds=_DEVICE_KINDS,
    ),
    ExpressionSlot(
        key="deactivation",
        title="Deactivation Expression",
        description="Called when the trigger becomes inactive. The status may be None if "
        "the player disappeared.",
        kinds=_DEVICE_KINDS,
        nil_guarded=True,
    ),
    ExpressionSlot(
        key="shutdown",
        title="Shutdown Expression",
        description="Called when the trigger is deleted or the triggers are closed. "
        "Release anything the setup expression created.",
    ),
)

SHOW_SLOTS: Dict[str, ExpressionSlot] = _table(
    ExpressionSlot(
        key="global_setup",
        title="Global Setup Expression",
        description="Called once when the show is opened. Set up values in globals for "
        "every track and cue of the show.",
        no_owner_locals=True,
        global_scope=True,
        title_template="{title} for Show {owner}",
    ),
    ExpressionSlot(
        key="shared_functions",
        title="Shared Functions",
        description="Functions and values defined here are visible to every expression "
        "of the show.",
        shared_definitions=True,
        global_scope=True,
        title_template="{title} for Show {owner}",
    ),
    ExpressionSlot(
        key="came_online",
        title="Came Online Expression",
        description="Called when the show is opened while online, or when going online.",
        no_owner_locals=True,
        global_scope=True,
        title_template="{title} for Show {owner}",
    ),
    ExpressionSlot(
        key="went_offline",
        title="Going Offline Expression",
        description="Called when going offline or closing the show while online.",
        no_owner_locals=True,
        global_scope=True,
        title_template="{title} for Show {owner}",
    ),
    ExpressionSlot(
        key="global_shutdown",
        title="Global Shutdown Expression",
        description="Called once when the show is closed. Release anything the global "
        "setup expression created.",
        no_owner_locals=True,
        global_scope=True,
        title_template="{title} for Show {owner}",
    ),
)

SHOW_TRACK_SLOTS: Dict[str, ExpressionSlot] = _table(
    ExpressionSlot(
        key="setup",
        title="Track Setup Expression",
        description="Called when the show is opened or the track is added. Set up values "
        "in locals for the other expressions of this track.",
        title_template="{title} for Track {owner}",
    ),
    ExpressionSlot(
        key="enabled",
        title="Track Enabled Filter Expression",
        description="Called for each status update from a player with this track loaded. "
        "Return a true value to enable the track.",
        kinds=_PLAYER_KINDS,
        nil_guarded=True,
        title_template="{title} for Track {owner}",
    ),
    ExpressionSlot(
        key="loaded",
        title="Track Loaded Expression",
        description="Called when the track is first loaded into an enabled player.",
        kinds=_PLAYER_KINDS,
        nil_guarded=True,
        title_template="{title} for Track {owner}",
    ),
    ExpressionSlot(
        key="playing",
        title="Track Playing Expression",
        description="Called when an enabled player starts playing the track.",
        kinds=_PLAYER_KINDS,
        nil_guarded=True,
        title_template="{title} for Track {owner}",
    ),
    ExpressionSlot(
        key="beat",
        title="Track Beat Expression",
        description="Called on each beat from an enabled player playing the track, with "
        "the beat and the track position it implies.",
        kinds=_CUE_BEAT_KINDS,
        title_template="{title} for Track {owner}",
    ),
    ExpressionSlot(
        key="tracked",
        title="Track Tracked Update Expression",
        description="Called for each status update from an enabled player with the track "
        "loaded.",
        kinds=_PLAYER_KINDS,
        title_template="{title} for Track {owner}",
    ),
    ExpressionSlot(
        key="stopped",
        title="Track Stopped Expression",
        description="Called when the last enabled player stops playing the track. The "
        "status may be None if the player disappeared.",
        kinds=_PLAYER_KINDS,
        nil_guarded=True,
        title_template="{title} for Track {owner}",
    ),
    ExpressionSlot(
        key="unloaded",
        title="Track Unloaded Expression",
        description="Called when the track is unloaded from the last enabled player. The "
        "status may be None if the player disappeared.",
        kinds=_PLAYER_KINDS,
        nil_guarded=True,
        title_template="{title} for Track {owner}",
    ),
    ExpressionSlot(
        key="shutdown",
        title="Track Shutdown Expression",
        description="Called when the track is removed or the show is closed.",
        title_template="{title} for Track {owner}",
    ),
)

SHOW_CUE_SLOTS: Dict[str, ExpressionSlot] = _table(
    ExpressionSlot(
        key="entered",
        title="Entered Expression",
        description="Called when a player moves into the cue's beat range.",
        kinds=_PLAYER_KINDS,
        nil_guarded=True,
        title_template="{title} for Cue {owner}",
    ),
    ExpressionSlot(
        key="started_on_beat",
        title="Started On-Beat Expression",
        description="Called when a player starts playing the cue from its first beat.",
        kinds=_CUE_BEAT_KINDS,
        title_template="{title} for Cue {owner}",
    ),
    ExpressionSlot(
        key="started_late",
        title="Started Late Expression",
        description="Called when a player starts playing the cue somewhere after its "
        "first beat.",
        kinds=_PLAYER_KINDS,
        nil_guarded=True,
        title_template="{title} for Cue {owner}",
    ),
    ExpressionSlot(
        key="beat",
        title="Beat Expression",
        description="Called on each beat within the cue, with the beat and the track "
        "position it implies.",
        kinds=_CUE_BEAT_KINDS,
        title_template="{title} for Cue {owner}",
    ),
    ExpressionSlot(
        key="tracked",
        title="Tracked Update Expression",
        description="Called for each status update from a player positioned in the cue.",
        kinds=_PLAYER_KINDS,
        title_template="{title} for Cue {owner}",
    ),
    ExpressionSlot(
        key="ended",
        title="Ended Expression",
        description="Called when the last player playing the cue stops or leaves it. The "
        "status may be None if the player disappeared.",
        kinds=_PLAYER_KINDS,
        nil_guarded=True,
        title_template="{title} for Cue {owner}",
    ),
    ExpressionSlot(
        key="exited",
        title="Exited Expression",
        description="Called when the last player leaves the cue's beat range. The status "
        "may be None if the player disappeared.",
        kinds=_PLAYER_KINDS,
        nil_guarded=True,
        title_template="{title} for Cue {owner}",
    ),
)

SLOT_TABLES: Dict[str, Mapping[str, ExpressionSlot]] = {
    "triggers": TRIGGER_SLOTS,
    "show": SHOW_SLOTS,
    "track": SHOW_TRACK_SLOTS,
    "cue": SHOW_CUE_SLOTS,
}


def get_slot(key: str, table: Mapping[str, ExpressionSlot] = TRIGGER_SLOTS) -> ExpressionSlot:
    try:
        return table[key]
    except KeyError:
        raise KeyError(f"Unknown expression slot '{key}'. Known slots: {sorted(table)}") from None


def list_slots(
    global_scope: Optional[bool] = None,
    table: Mapping[str, ExpressionSlot] = TRIGGER_SLOTS,
) -> List[ExpressionSlot]:
    slots = list(table.values())
    if global_scope is None:
        return slots
    return [slot for slot in slots if slot.global_scope == global_scope]


def slot_title(slot: ExpressionSlot, owner_label: Optional[str] = None) -> str:
    """Title used for editor windows, log messages and tracebacks."""
    if not owner_label:
        return slot.title
    return slot.title_template.format(title=slot.title, owner=owner_label)


def slot_bindings(
    slot: ExpressionSlot,
    catalog: BindingCatalog = DEFAULT_CATALOG,
) -> ResolvedBindingSet:
    """Every binding the slot's expression may use, across all its event kinds."""
    return merge_binding_sets(*(resolve_bindings(catalog, kind) for kind in slot.kinds))


def compile_slot(
    slot: ExpressionSlot,
    source: str,
    owner_label: Optional[str] = None,
    *,
    catalog: BindingCatalog = DEFAULT_CATALOG,
    workspace: Optional[SharedWorkspace] = None,
    tracer: Optional[ExpressionTracer] = None,
) -> Optional[CompiledExpression]:
    """Compile ``source`` for ``slot``.

    Blank source means the slot is unused and yields ``None``, as does the
    shared-functions slot, whose definitions go straight into the workspace.
    """
    if not source or not source.strip():
        logger.debug("Skipping empty %s", slot_title(slot, owner_label))
        return None
    return compile_source(
        source,
        slot_bindings(slot, catalog),
        shared_definitions=slot.shared_definitions,
        nil_guarded=slot.nil_guarded,
        no_owner_locals=slot.no_owner_locals,
        title=slot_title(slot, owner_label),
        workspace=workspace,
        tracer=tracer,
    )


def show_workspace(show_name: str) -> SharedWorkspace:
    """The workspace holding the shared definitions of the show ``show_name``."""
    return workspace_for(SHOW_WORKSPACE_PREFIX + show_name)


def compile_show_slot(
    slot: ExpressionSlot,
    source: str,
    show_name: str,
    owner_label: Optional[str] = None,
    *,
    catalog: BindingCatalog = DEFAULT_CATALOG,
    tracer: Optional[ExpressionTracer] = None,
) -> Optional[CompiledExpression]:
    """Compile a show, track or cue expression into the show's own workspace.

    Global show slots are titled after the show when no other label is given.
    """
    return compile_slot(
        slot,
        source,
        owner_label or (show_name if slot.global_scope else None),
        catalog=catalog,
        workspace=show_workspace(show_name),
        tracer=tracer,
    )


__all__ = [
    "ExpressionSlot",
    "SHOW_CUE_SLOTS",
    "SHOW_SLOTS",
    "SHOW_TRACK_SLOTS",
    "SHOW_WORKSPACE_PREFIX",
    "SLOT_TABLES",
    "TRIGGER_SLOTS",
    "compile_show_slot",
    "compile_slot",
    "get_slot",
    "list_slots",
    "show_workspace",
    "slot_bindings",
    "slot_title",
]
