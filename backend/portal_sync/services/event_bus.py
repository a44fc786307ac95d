"""
Event broadcast bus.

In-process listeners are called synchronously in registration order. Every
publish is also written to the shared ``LAST_UPDATE_KEY`` slot so sibling
instances can react to it. While held (the owning context does this for the
length of one public operation) those writes are queued and go out together
when the operation ends, so siblings never see a half-finished operation.
"""
from __future__ import annotations

import json
from typing import Any, Callable, Dict, List, Optional

from pydantic import TypeAdapter

from portal_sync.core.logger import logger
from portal_sync.db.storage import StorageArea
from portal_sync.utils.helpers import utcnow

# Events that make a sibling instance reload its full state
RELOAD_EVENTS = frozenset({"process_created", "process_updated", "user_login"})

EventHandler = Callable[[Any], None]

_json_adapter: TypeAdapter = TypeAdapter(Any)


def to_json_safe(data: Any) -> Any:
    """Plain JSON types for records, enums and datetimes nested in ``data``."""
    return _json_adapter.dump_python(data, mode="json")


class EventBus:
    def __init__(
        self,
        storage: StorageArea,
        update_key: str,
        source: Optional[str] = None,
        clock: Callable = utcnow,
    ) -> None:
        self.storage = storage
        self.update_key = update_key
        # Storage listener token of the owning instance; its own writes are not echoed back.
        self.source = source
        self.clock = clock
        # Called with the event names of a batch right before its signals are written.
        self.pre_signal: Optional[Callable[[List[str]], None]] = None
        self._handlers: Dict[str, List[EventHandler]] = {}
        self._held: Optional[List[Dict[str, Any]]] = None

    def subscribe(self, event: str, handler: EventHandler) -> None:
        self._handlers.setdefault(event, []).append(handler)

    def handler_count(self, event: str) -> int:
        return len(self._handlers.get(event, []))

    def publish(self, event: str, data: Any) -> None:
        for handler in list(self._handlers.get(event, [])):
            try:
                handler(data)
            except Exception:
                logger.exception("Event handler failed for %s", event)

        signal = {
            "event": event,
            "data": to_json_safe(data),
            "timestamp": to_json_safe(self.clock()),
        }
        if self._held is not None:
            self._held.append(signal)
        else:
            self._emit([signal])

    def hold(self) -> None:
        """Queue cross-instance signals until ``flush``; handlers still run at once."""
        if self._held is None:
            self._held = []

    def flush(self) -> None:
        held, self._held = self._held, None
        if held:
            self._emit(held)

    def _emit(self, signals: List[Dict[str, Any]]) -> None:
        if self.pre_signal is not None:
            self.pre_signal([s["event"] for s in signals])
        for signal in signals:
            self.storage.set_item(self.update_key, json.dumps(signal), source=self.source)


def parse_signal(raw: Optional[str]) -> Optional[Dict[str, Any]]:
    """Decode a cross-instance signal; None if it is empty or malformed."""
    if not raw:
        return None
    try:
        signal = json.loads(raw)
    except json.JSONDecodeError:
        return None
    if not isinstance(signal, dict) or not isinstance(signal.get("event"), str):
        return None
    return signal
