"""Cart package: conditions, line items, storage and the Cart aggregate."""
from .catalog import Buyable, Catalog
from .conditions import Composition, Condition, ConditionTarget, ConditionType, compose
from .events import CallbackEventSink, CartEvent, EventSink, LoggingEventSink
from .models import CartItem, generate_row_id
from .service import DEFAULT_INSTANCE, Cart
from .storage import (
    MemoryParkStore,
    MemoryStateStore,
    ParkStore,
    RedisStateStore,
    StateStore,
    SupabaseParkStore,
)

__all__ = [
    "Buyable",
    "Catalog",
    "Composition",
    "Condition",
    "ConditionTarget",
    "ConditionType",
    "compose",
    "CallbackEventSink",
    "CartEvent",
    "EventSink",
    "LoggingEventSink",
    "CartItem",
    "generate_row_id",
    "DEFAULT_INSTANCE",
    "Cart",
    "MemoryParkStore",
    "MemoryStateStore",
    "ParkStore",
    "RedisStateStore",
    "StateStore",
    "SupabaseParkStore",
]
