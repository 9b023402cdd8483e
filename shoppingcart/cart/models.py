"""Cart line items with Decimal-based pricing."""
import hashlib
import json
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from shoppingcart.errors import (
    ERROR_INVALID_IDENTIFIER,
    ERROR_INVALID_NAME,
    ERROR_INVALID_OPTIONS,
    ERROR_INVALID_PRICE,
    ERROR_INVALID_QUANTITY,
    ValidationError,
)
from shoppingcart.money import Number, ZERO, is_numeric, present, to_decimal

from .catalog import Buyable, Identifier
from .conditions import Condition, ConditionTarget, ConditionType, compose

Quantity = Union[int, Decimal]


def generate_row_id(identifier: Identifier, options: Optional[Mapping[str, Any]] = None) -> str:
    """
    Content-addressed identity of a cart line.

    Options are serialized with sorted keys, so the order in which they
    were given never changes the result.
    """
    canonical = json.dumps(
        dict(options or {}),
        sort_keys=True,
        separators=(",", ":"),
        default=str,
    )
    return hashlib.md5(f"{identifier}{canonical}".encode("utf-8")).hexdigest()


def validate_identifier(identifier: Any) -> Identifier:
    if isinstance(identifier, bool) or identifier is None:
        raise ValidationError(ERROR_INVALID_IDENTIFIER)
    if isinstance(identifier, str) and identifier.strip():
        return identifier
    if isinstance(identifier, int):
        return identifier
    raise ValidationError(ERROR_INVALID_IDENTIFIER)


def normalize_options(options: Any) -> Dict[str, Any]:
    """
    JSON form of the options: string keys, and values that are not JSON
    types (Decimal, date, ...) turned into their str().

    The same dict is hashed into the rowId and written to the stores.
    """
    if options is None:
        return {}
    if not isinstance(options, Mapping):
        raise ValidationError(ERROR_INVALID_OPTIONS)
    try:
        return json.loads(json.dumps(dict(options), default=str, allow_nan=False))
    except (TypeError, ValueError) as e:
        raise ValidationError(f"{ERROR_INVALID_OPTIONS}: {e}")


def validate_name(name: Any) -> str:
    if not isinstance(name, str) or not name.strip():
        raise ValidationError(ERROR_INVALID_NAME)
    return name


def validate_price(price: Any) -> Decimal:
    if not is_numeric(price):
        raise ValidationError(ERROR_INVALID_PRICE)
    value = to_decimal(price.strip() if isinstance(price, str) else price)
    if value < ZERO:
        raise ValidationError(ERROR_INVALID_PRICE)
    return value


def normalize_quantity(qty: Any) -> Quantity:
    """Numeric check only; callers decide what a non-positive quantity means."""
    if not is_numeric(qty):
        raise ValidationError(ERROR_INVALID_QUANTITY)
    if isinstance(qty, int):
        return qty
    value = to_decimal(qty.strip() if isinstance(qty, str) else qty)
    if value == value.to_integral_value():
        return int(value)
    return value


def validate_quantity(qty: Any) -> Quantity:
    value = normalize_quantity(qty)
    if value <= 0:
        raise ValidationError(ERROR_INVALID_QUANTITY)
    return value


def coerce_conditions(conditions: Optional[Iterable[Union[Condition, dict]]]) -> List[Condition]:
    """Item conditions are always a list of Condition, in the given order."""
    result = []
    for condition in conditions or []:
        if isinstance(condition, Condition):
            result.append(condition)
        elif isinstance(condition, Mapping):
            result.append(Condition.from_dict(dict(condition)))
        else:
            raise ValidationError(f"Expected a Condition, got {type(condition).__name__}")
    return result


@dataclass
class CartItem:
    """Single line in the cart."""
    id: Identifier
    name: str
    price: Decimal
    qty: Quantity = 1
    options: Dict[str, Any] = field(default_factory=dict)
    conditions: List[Condition] = field(default_factory=list)
    associated: Optional[str] = None  # name of the Catalog the line came from
    row_id: str = field(init=False)

    def __post_init__(self):
        self.id = validate_identifier(self.id)
        self.name = validate_name(self.name)
        self.price = validate_price(self.price)
        self.qty = validate_quantity(self.qty)
        self.options = normalize_options(self.options)
        self.conditions = coerce_conditions(self.conditions)
        self.row_id = generate_row_id(self.id, self.options)

    # ------------------------------------------------------------------
    # Constructors
    # ------------------------------------------------------------------

    @classmethod
    def from_buyable(
        cls,
        buyable: Buyable,
        options: Optional[Mapping[str, Any]] = None,
        conditions: Optional[Iterable[Union[Condition, dict]]] = None,
        qty: Number = 1,
    ) -> "CartItem":
        """Create from a catalog entity."""
        options = normalize_options(options)
        return cls(
            id=buyable.get_buyable_identifier(options),
            name=buyable.get_buyable_description(options),
            price=buyable.get_buyable_price(options),
            qty=qty,
            options=options,
            conditions=coerce_conditions(conditions),
        )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "CartItem":
        """Create from a raw attribute bundle (also used to deserialize)."""
        try:
            return cls(
                id=data["id"],
                name=data["name"],
                price=data["price"],
                qty=data.get("qty", 1),
                options=data.get("options") or {},
                conditions=data.get("conditions") or [],
                associated=data.get("associated"),
            )
        except KeyError as e:
            raise ValidationError(f"Missing cart item attribute: {e.args[0]}")

    @classmethod
    def from_attributes(
        cls,
        id: Identifier,
        name: str,
        price: Number,
        options: Optional[Mapping[str, Any]] = None,
        conditions: Optional[Iterable[Union[Condition, dict]]] = None,
        qty: Number = 1,
    ) -> "CartItem":
        """Create from explicit fields."""
        return cls(
            id=id,
            name=name,
            price=price,
            qty=qty,
            options=normalize_options(options),
            conditions=coerce_conditions(conditions),
        )

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def set_quantity(self, qty: Number) -> None:
        self.qty = validate_quantity(qty)

    def update_from_buyable(self, buyable: Buyable) -> None:
        """Refresh identity, name and price from a catalog entity."""
        identifier = validate_identifier(buyable.get_buyable_identifier(self.options))
        name = validate_name(buyable.get_buyable_description(self.options))
        price = validate_price(buyable.get_buyable_price(self.options))

        self.id, self.name, self.price = identifier, name, price
        self.row_id = generate_row_id(self.id, self.options)

    def update_from_dict(self, attributes: Mapping[str, Any]) -> None:
        """
        Apply a partial update; absent keys keep their current value.

        `qty` is only checked for being numeric: a quantity of zero or less
        is how callers ask for the line to be removed.
        """
        identifier = validate_identifier(attributes.get("id", self.id))
        name = validate_name(attributes.get("name", self.name))
        price = validate_price(attributes.get("price", self.price))
        qty = normalize_quantity(attributes.get("qty", self.qty))
        options = normalize_options(attributes.get("options", self.options))
        conditions = coerce_conditions(attributes.get("conditions", self.conditions))

        self.id, self.name, self.price, self.qty = identifier, name, price, qty
        self.options = options
        self.conditions = conditions
        self.row_id = generate_row_id(self.id, self.options)

    def associate(self, catalog_name: str) -> "CartItem":
        self.associated = catalog_name
        return self

    # ------------------------------------------------------------------
    # Pricing
    # ------------------------------------------------------------------

    def price_with_conditions(self) -> Decimal:
        """Unit price after all item-level conditions, in list order."""
        return compose(self.conditions, self.price, ConditionTarget.ITEM).amount

    def price_without_tax(self) -> Decimal:
        """Unit price after item-level conditions except TAX ones."""
        return compose(
            self.conditions, self.price, ConditionTarget.ITEM, exclude_type=ConditionType.TAX,
        ).amount

    def price_sum(self) -> Decimal:
        """Unit price times quantity, no conditions."""
        return self.price * self.qty

    def price_sum_with_conditions(self) -> Decimal:
        return self.price_with_conditions() * self.qty

    def price_sum_without_tax(self) -> Decimal:
        return self.price_without_tax() * self.qty

    def subtotal(self, formatted: bool = False, decimals=None, decimal_point=None, thousands_sep=None):
        """Line subtotal without TAX conditions."""
        return present(self.price_sum_without_tax(), formatted, decimals, decimal_point, thousands_sep)

    def total(self, formatted: bool = False, decimals=None, decimal_point=None, thousands_sep=None):
        """Line total with every item-level condition."""
        return present(self.price_sum_with_conditions(), formatted, decimals, decimal_point, thousands_sep)

    def tax(self, formatted: bool = False, decimals=None, decimal_point=None, thousands_sep=None):
        """
        Line total minus the undiscounted line sum.

        Includes the effect of every item-level condition (discounts and
        fees too), not only TAX ones.
        """
        amount = self.price_sum_with_conditions() - self.price_sum()
        return present(amount, formatted, decimals, decimal_point, thousands_sep)

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_dict(self) -> dict:
        """Convert to a JSON-compatible dictionary."""
        return {
            "row_id": self.row_id,
            "id": self.id,
            "name": self.name,
            "qty": self.qty if isinstance(self.qty, int) else str(self.qty),
            "price": str(self.price),
            "options": dict(self.options),
            "conditions": [condition.to_dict() for condition in self.conditions],
            "associated": self.associated,
        }
