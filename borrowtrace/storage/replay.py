"""Rebuild a graph store from a recorded event log."""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from borrowtrace.models import Event

from .graph_store import RelationshipGraphStore

_LOGGER = logging.getLogger(__name__)


def replay_events(
    events: Iterable[Event],
    store: Optional[RelationshipGraphStore] = None,
) -> RelationshipGraphStore:
    """
    Apply ``events`` in ``(timestamp, event_id)`` order.

    Malformed or unstamped events are skipped and left as warnings on the
    returned store. Events are sorted first, so the log may arrive in any
    order.
    """

    target = store if store is not None else RelationshipGraphStore()
    ordered = sorted(events, key=Event.sort_key)
    applied = 0
    for event in ordered:
        if target.apply(event):
            applied += 1
    _LOGGER.info(
        "Replayed %d of %d events (%d skipped)",
        applied,
        len(ordered),
        len(ordered) - applied,
    )
    return target
