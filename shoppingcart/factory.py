"""Process-wide Cart wired to the configured backend."""
from typing import Optional

from shoppingcart import config
from shoppingcart.cart import (
    Cart,
    MemoryParkStore,
    MemoryStateStore,
    RedisStateStore,
    SupabaseParkStore,
)
from shoppingcart.logging import get_logger

logger = get_logger(__name__)

_cart: Optional[Cart] = None


def build_cart(backend: Optional[str] = None) -> Cart:
    """Create a Cart for `backend` ("memory" or "remote", default CART_BACKEND)."""
    backend = (backend or config.CART_BACKEND).lower()
    if backend == "memory":
        return Cart(state_store=MemoryStateStore(), park_store=MemoryParkStore())
    if backend == "remote":
        return Cart(state_store=RedisStateStore(), park_store=SupabaseParkStore())
    raise ValueError(f"Unknown CART_BACKEND {backend!r}, expected 'memory' or 'remote'")


def get_cart() -> Cart:
    """Get the Cart singleton."""
    global _cart
    if _cart is None:
        _cart = build_cart()
        logger.info(f"Cart initialized with {config.CART_BACKEND} backend")
    return _cart
