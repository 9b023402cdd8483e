"""Cart mutation events and the sinks that receive them."""
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Callable, Dict, List

from shoppingcart.logging import get_logger

logger = get_logger(__name__)


class CartEvent(str, Enum):
    """Events announced by the cart."""
    ADDED = "cart.added"
    UPDATED = "cart.updated"
    REMOVED = "cart.removed"
    SAVED = "cart.saved"
    CONDITIONS_CHANGED = "cart.conditions_changed"
    STORED = "cart.stored"
    RESTORED = "cart.restored"


Listener = Callable[[str, Any], None]


class EventSink(ABC):
    """Fire-and-forget receiver of cart events."""

    @abstractmethod
    def notify(self, event: str, payload: Any = None) -> None:
        """Announce `event`; the return value is ignored."""


class LoggingEventSink(EventSink):
    """Default sink: writes each event to the debug log."""

    def notify(self, event: str, payload: Any = None) -> None:
        logger.debug(f"{event}: {type(payload).__name__}")


class CallbackEventSink(EventSink):
    """
    Dispatches events to registered listeners.

    Listeners registered for "*" receive every event.
    """

    def __init__(self) -> None:
        self._listeners: Dict[str, List[Listener]] = {}

    def listen(self, event: str, listener: Listener) -> None:
        key = event.value if isinstance(event, CartEvent) else event
        self._listeners.setdefault(key, []).append(listener)

    def notify(self, event: str, payload: Any = None) -> None:
        key = event.value if isinstance(event, CartEvent) else event
        for listener in self._listeners.get(key, []) + self._listeners.get("*", []):
            try:
                listener(key, payload)
            except Exception as e:
                # Cart state is already written; a listener cannot undo it
                logger.error(f"Listener for {key} failed: {type(e).__name__}", exc_info=True)
