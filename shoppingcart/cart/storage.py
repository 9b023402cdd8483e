"""
Cart storage: per-instance state and parked carts.

State stores hold the live item collection and the cart-level conditions
of each instance as JSON-compatible payloads (lists of dicts). Park stores
hold StoredCart records keyed by an identifier.

Both come in a process-local flavour (tests, single-process use) and a
backend flavour (Upstash Redis, Supabase). Backend errors are logged and
re-raised as StoreUnavailable.
"""
import copy
import json
from abc import ABC, abstractmethod
from datetime import UTC, datetime
from typing import Any, Dict, List, Optional

from shoppingcart import config
from shoppingcart.db import TTL, CartKeys, get_redis_sync, get_supabase_sync
from shoppingcart.errors import ERROR_STORE_UNAVAILABLE, AlreadyStored, StoreUnavailable
from shoppingcart.logging import get_logger, sanitize_id_for_logging
from shoppingcart.models import StoredCart

logger = get_logger(__name__)

Payload = List[Dict[str, Any]]

__all__ = [
    "CartKeys",
    "Payload",
    "StateStore",
    "MemoryStateStore",
    "RedisStateStore",
    "ParkStore",
    "MemoryParkStore",
    "SupabaseParkStore",
]


# ============================================================
# State store
# ============================================================

class StateStore(ABC):
    """Key-value store holding the live state of cart instances."""

    @abstractmethod
    def get(self, key: str) -> Optional[Payload]:
        """Payload stored under `key`, None when absent."""

    @abstractmethod
    def put(self, key: str, payload: Payload) -> None:
        """Replace the payload stored under `key`."""

    @abstractmethod
    def has(self, key: str) -> bool:
        """True when `key` holds a payload."""

    @abstractmethod
    def remove(self, key: str) -> None:
        """Drop `key`; missing keys are ignored."""


class MemoryStateStore(StateStore):
    """Process-local state store. Payloads are copied in and out."""

    def __init__(self) -> None:
        self._data: Dict[str, Payload] = {}

    def get(self, key: str) -> Optional[Payload]:
        payload = self._data.get(key)
        return copy.deepcopy(payload) if payload is not None else None

    def put(self, key: str, payload: Payload) -> None:
        self._data[key] = copy.deepcopy(payload)

    def has(self, key: str) -> bool:
        return key in self._data

    def remove(self, key: str) -> None:
        self._data.pop(key, None)


class RedisStateStore(StateStore):
    """
    Upstash Redis state store.

    Payloads are stored as JSON strings with a TTL so abandoned carts
    expire (24 hours by default, CART_TTL_SECONDS).
    """

    def __init__(self, redis=None, ttl: int = TTL.CART) -> None:
        self._redis = redis  # Lazy initialization
        self.ttl = ttl

    @property
    def redis(self):
        """Get Redis client (lazy initialization)."""
        if self._redis is None:
            try:
                self._redis = get_redis_sync()
            except ValueError as e:
                raise StoreUnavailable(
                    f"Redis not available: {e}. Check UPSTASH_REDIS_REST_URL and "
                    "UPSTASH_REDIS_REST_TOKEN environment variables."
                ) from e
        return self._redis

    def get(self, key: str) -> Optional[Payload]:
        try:
            data = self.redis.get(key)
        except StoreUnavailable:
            raise
        except Exception as e:
            logger.error(f"Failed to read cart state from Redis: {e}")
            raise StoreUnavailable(f"{ERROR_STORE_UNAVAILABLE}: {e}") from e

        if not data:
            return None

        try:
            payload = json.loads(data)
        except (json.JSONDecodeError, TypeError) as e:
            # Corrupted data - clear it and treat the key as empty
            logger.warning(f"Corrupted cart state under {key}: {e}")
            self.remove(key)
            return None
        return payload if isinstance(payload, list) else None

    def put(self, key: str, payload: Payload) -> None:
        try:
            self.redis.set(key, json.dumps(payload), ex=self.ttl)
        except StoreUnavailable:
            raise
        except Exception as e:
            logger.error(f"Failed to save cart state to Redis: {e}")
            raise StoreUnavailable(f"{ERROR_STORE_UNAVAILABLE}: {e}") from e

    def has(self, key: str) -> bool:
        try:
            return bool(self.redis.exists(key))
        except StoreUnavailable:
            raise
        except Exception as e:
            logger.error(f"Failed to check cart state in Redis: {e}")
            raise StoreUnavailable(f"{ERROR_STORE_UNAVAILABLE}: {e}") from e

    def remove(self, key: str) -> None:
        try:
            self.redis.delete(key)
        except StoreUnavailable:
            raise
        except Exception as e:
            logger.error(f"Failed to clear cart state from Redis: {e}")
            raise StoreUnavailable(f"{ERROR_STORE_UNAVAILABLE}: {e}") from e


# ============================================================
# Park store
# ============================================================

class ParkStore(ABC):
    """Durable store of parked carts, keyed by identifier."""

    @abstractmethod
    def exists(self, identifier: str) -> bool:
        """True when a cart is parked under `identifier`."""

    @abstractmethod
    def insert(self, record: StoredCart) -> None:
        """Add a record; raises AlreadyStored if the identifier is taken."""

    @abstractmethod
    def update(self, identifier: str, record: StoredCart) -> None:
        """Replace instance and content of an existing record."""

    @abstractmethod
    def find_by_identifier(self, identifier: str) -> Optional[StoredCart]:
        """Record parked under `identifier`, None when absent."""

    @abstractmethod
    def delete(self, identifier: str) -> None:
        """Drop the record; missing identifiers are ignored."""


class MemoryParkStore(ParkStore):
    """Process-local park store."""

    def __init__(self) -> None:
        self._records: Dict[str, StoredCart] = {}

    def exists(self, identifier: str) -> bool:
        return identifier in self._records

    def insert(self, record: StoredCart) -> None:
        if record.identifier in self._records:
            raise AlreadyStored(record.identifier)
        now = datetime.now(UTC)
        self._records[record.identifier] = record.model_copy(
            update={"created_at": record.created_at or now, "updated_at": now},
        )

    def update(self, identifier: str, record: StoredCart) -> None:
        existing = self._records.get(identifier)
        if existing is None:
            return
        self._records[identifier] = existing.model_copy(
            update={
                "instance": record.instance,
                "content": record.content,
                "updated_at": datetime.now(UTC),
            },
        )

    def find_by_identifier(self, identifier: str) -> Optional[StoredCart]:
        record = self._records.get(identifier)
        return record.model_copy() if record is not None else None

    def delete(self, identifier: str) -> None:
        self._records.pop(identifier, None)


class SupabaseParkStore(ParkStore):
    """
    Park store backed by the Supabase `shoppingcart` table.

    Expected columns: identifier (text, unique), instance (text),
    content (text), user_id (nullable), created_at, updated_at.
    """

    def __init__(self, client=None, table: str = config.CART_DATABASE_TABLE) -> None:
        self._client = client  # Lazy initialization
        self.table = table

    @property
    def client(self):
        if self._client is None:
            try:
                self._client = get_supabase_sync()
            except ValueError as e:
                raise StoreUnavailable(f"Supabase not available: {e}") from e
        return self._client

    def _fail(self, action: str, error: Exception) -> StoreUnavailable:
        logger.error(f"Failed to {action} parked cart: {error}")
        return StoreUnavailable(f"{ERROR_STORE_UNAVAILABLE}: {error}")

    def exists(self, identifier: str) -> bool:
        try:
            result = (
                self.client.table(self.table)
                .select("identifier")
                .eq("identifier", identifier)
                .limit(1)
                .execute()
            )
        except StoreUnavailable:
            raise
        except Exception as e:
            raise self._fail("look up", e) from e
        return bool(result.data)

    def insert(self, record: StoredCart) -> None:
        if self.exists(record.identifier):
            raise AlreadyStored(record.identifier)
        now = datetime.now(UTC).isoformat()
        data = record.model_dump(mode="json", exclude_none=True)
        data.setdefault("created_at", now)
        data["updated_at"] = now
        try:
            self.client.table(self.table).insert(data).execute()
        except StoreUnavailable:
            raise
        except Exception as e:
            raise self._fail("insert", e) from e
        logger.info(f"Parked cart {sanitize_id_for_logging(record.identifier)} in {self.table}")

    def update(self, identifier: str, record: StoredCart) -> None:
        try:
            (
                self.client.table(self.table)
                .update({
                    "instance": record.instance,
                    "content": record.content,
                    "updated_at": datetime.now(UTC).isoformat(),
                })
                .eq("identifier", identifier)
                .execute()
            )
        except StoreUnavailable:
            raise
        except Exception as e:
            raise self._fail("update", e) from e

    def find_by_identifier(self, identifier: str) -> Optional[StoredCart]:
        try:
            result = (
                self.client.table(self.table)
                .select("*")
                .eq("identifier", identifier)
                .limit(1)
                .execute()
            )
        except StoreUnavailable:
            raise
        except Exception as e:
            raise self._fail("read", e) from e
        if not result.data:
            return None
        row = result.data[0]
        return StoredCart(
            identifier=row["identifier"],
            instance=row["instance"],
            content=row["content"],
            user_id=row.get("user_id"),
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
        )

    def delete(self, identifier: str) -> None:
        try:
            self.client.table(self.table).delete().eq("identifier", identifier).execute()
        except StoreUnavailable:
            raise
        except Exception as e:
            raise self._fail("delete", e) from e
