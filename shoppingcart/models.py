"""
Pydantic Models - Records and read models for the cart engine

- StoredCart: row of the park store (shoppingcart table)
- CartItemResponse / CartSummary: JSON-friendly view of a cart instance
"""

from datetime import datetime
from typing import List, Optional, Union

from pydantic import BaseModel, Field


# ============================================================
# Park store record
# ============================================================

class StoredCart(BaseModel):
    """A cart instance parked under an identifier."""
    identifier: str = Field(description="Opaque key chosen by the caller", min_length=1)
    instance: str = Field(description="Cart instance the content was taken from")
    content: str = Field(description="Serialized item collection (JSON)")
    user_id: Optional[Union[int, str]] = Field(default=None, description="Owning user, if any")
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# ============================================================
# Read models
# ============================================================

class CartItemResponse(BaseModel):
    """Cart line as returned to API consumers."""
    row_id: str = Field(description="Content-derived line identity")
    id: Union[int, str] = Field(description="Catalog identifier")
    name: str = Field(description="Line description")
    quantity: float = Field(description="Quantity in cart", gt=0)
    unit_price: float = Field(description="Price per unit before conditions", ge=0)
    price_with_conditions: float = Field(description="Price per unit after item conditions", ge=0)
    total: float = Field(description="Line total after item conditions", ge=0)
    options: dict = Field(default_factory=dict)
    conditions: List[str] = Field(default_factory=list, description="Item condition names, in order")


class CartSummary(BaseModel):
    """Snapshot of the active cart instance with computed prices."""
    instance: str
    is_empty: bool
    total_items: float = 0
    items: List[CartItemResponse] = Field(default_factory=list)
    subtotal: float = 0
    tax: float = 0
    total: float = 0
    conditions: List[str] = Field(default_factory=list, description="Cart condition names, by order")
