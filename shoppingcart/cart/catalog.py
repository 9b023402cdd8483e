"""Catalog contracts: purchasable entities and the catalogs that find them."""
from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Any, Mapping, Optional, Union

Identifier = Union[int, str]


class Buyable(ABC):
    """
    Something that can be put in the cart.

    Each accessor receives the item options so a catalog entity can price
    or describe variants (size, color, ...) differently.
    """

    @abstractmethod
    def get_buyable_identifier(self, options: Optional[Mapping[str, Any]] = None) -> Identifier:
        """Identifier of the entity."""

    @abstractmethod
    def get_buyable_description(self, options: Optional[Mapping[str, Any]] = None) -> str:
        """Name shown on the cart line."""

    @abstractmethod
    def get_buyable_price(self, options: Optional[Mapping[str, Any]] = None) -> Union[int, float, Decimal, str]:
        """Unit price before conditions."""


class Catalog(ABC):
    """
    Handle used to associate cart lines with their source entities.

    `name` is what gets persisted on the cart item; the cart resolves it
    back to the handle through its catalog registry.
    """

    name: str

    @abstractmethod
    def find(self, identifier: Identifier) -> Optional[Buyable]:
        """Look up an entity by identifier, None when missing."""
