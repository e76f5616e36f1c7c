"""
Device lifecycle derivation.

A device has no status column. Its lifecycle state is a pure function of
the ordered sell-event log (Device.sell_history):

    []                  -> NEW
    [..., sell]         -> SOLD
    [..., return]       -> RETURNED

Anything that needs the state recomputes it from the log. Do not cache it
on the device row; the log is append-only and is the source of truth.
"""

from __future__ import annotations

from enum import Enum
from typing import Iterable, Sequence


SELL_EVENT_SELL = "sell"
SELL_EVENT_RETURN = "return"
SELL_EVENT_TYPES = (SELL_EVENT_SELL, SELL_EVENT_RETURN)


class DeviceLifecycle(str, Enum):
    NEW = "new"
    SOLD = "sold"
    RETURNED = "returned"


_STATE_BY_EVENT_TYPE = {
    SELL_EVENT_SELL: DeviceLifecycle.SOLD,
    SELL_EVENT_RETURN: DeviceLifecycle.RETURNED,
}


def lifecycle_state(sell_history: Sequence) -> DeviceLifecycle:
    """
    Derive the lifecycle state from the last event of an ordered log.

    Elements may be DeviceSellEvent rows or plain dicts with an
    "event_type" (or "type") key.
    """
    if not sell_history:
        return DeviceLifecycle.NEW
    return state_for_event_type(_event_type(sell_history[-1]))


def state_for_event_type(event_type: str | None) -> DeviceLifecycle:
    if event_type is None:
        return DeviceLifecycle.NEW
    try:
        return _STATE_BY_EVENT_TYPE[event_type]
    except KeyError:
        raise ValueError(f"Unknown sell event type: {event_type!r}")


def last_sell_event(sell_history: Iterable):
    """Most recent event of type sell, or None if the device was never sold."""
    last = None
    for event in sell_history:
        if _event_type(event) == SELL_EVENT_SELL:
            last = event
    return last


def _event_type(event) -> str:
    if isinstance(event, dict):
        return event.get("event_type", event.get("type"))
    return event.event_type
