"""
Shopping cart engine

This package contains:
- cart: line items, conditions (discounts, fees, taxes) and the Cart aggregate
- db: Upstash Redis and Supabase clients used by the backend stores
- models: Pydantic records and read models
- money: Decimal helpers and price formatting

Note: Imports are lazy to keep `import shoppingcart` cheap; the backend
clients themselves are only created on first use.
"""

__all__ = [
    "Cart",
    "CartItem",
    "Condition",
    "ConditionTarget",
    "ConditionType",
    "get_cart",
]


def __getattr__(name):
    """Lazy attribute access."""
    if name in ("Cart", "CartItem", "Condition", "ConditionTarget", "ConditionType"):
        from shoppingcart import cart
        return getattr(cart, name)
    elif name == "get_cart":
        from shoppingcart.factory import get_cart
        return get_cart
    raise AttributeError(f"module 'shoppingcart' has no attribute '{name}'")
