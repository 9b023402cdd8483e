"""
Database Module - Upstash Redis and Supabase clients

Provides lazy singleton instances of:
- Sync Upstash Redis client for per-instance cart state
- Sync Supabase client for parked (stored) carts

The cart engine is synchronous, so only the sync clients are exposed.
"""

from typing import Optional

from supabase import Client, create_client
from upstash_redis import Redis

from shoppingcart import config

_supabase_client: Optional[Client] = None
_redis_client: Optional[Redis] = None


def get_supabase_sync() -> Client:
    """
    Get synchronous Supabase client (singleton).

    Used by the park store to read and write the shoppingcart table.
    """
    global _supabase_client

    if _supabase_client is None:
        if not config.SUPABASE_URL or not config.SUPABASE_SERVICE_ROLE_KEY:
            raise ValueError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set")
        _supabase_client = create_client(config.SUPABASE_URL, config.SUPABASE_SERVICE_ROLE_KEY)

    return _supabase_client


def get_redis_sync() -> Redis:
    """
    Get sync Upstash Redis client (singleton).

    Uses standard Upstash env var names:
    - UPSTASH_REDIS_REST_URL
    - UPSTASH_REDIS_REST_TOKEN
    """
    global _redis_client

    if _redis_client is None:
        if not config.UPSTASH_REDIS_REST_URL or not config.UPSTASH_REDIS_REST_TOKEN:
            raise ValueError("UPSTASH_REDIS_REST_URL and UPSTASH_REDIS_REST_TOKEN must be set")
        _redis_client = Redis(url=config.UPSTASH_REDIS_REST_URL, token=config.UPSTASH_REDIS_REST_TOKEN)

    return _redis_client


class CartKeys:
    """State store keys for cart partitions."""

    CART = "cart:"  # cart:{instance}
    CONDITIONS_SUFFIX = "_conditions"  # cart:{instance}_conditions

    @staticmethod
    def items_key(instance: str) -> str:
        return f"{CartKeys.CART}{instance}"

    @staticmethod
    def conditions_key(instance: str) -> str:
        return f"{CartKeys.items_key(instance)}{CartKeys.CONDITIONS_SUFFIX}"


class TTL:
    """Time-to-live constants for Redis keys (seconds)."""

    CART = config.CART_TTL_SECONDS
