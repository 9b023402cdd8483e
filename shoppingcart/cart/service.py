"""
Cart service: the aggregate over line items and cart-level conditions.

Every operation reads the active instance from the state store, mutates a
fresh copy and writes it back, so a failed validation never leaves a
partial write behind. Prices are computed on demand.
"""
import json
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from shoppingcart.errors import (
    ERROR_UNKNOWN_CATALOG,
    AlreadyStored,
    NotFound,
    UnknownCollaborator,
    ValidationError,
)
from shoppingcart.logging import get_logger, sanitize_id_for_logging, sanitize_string_for_logging
from shoppingcart.models import CartItemResponse, CartSummary, StoredCart
from shoppingcart.money import ZERO, Number, present, to_float

from .catalog import Buyable, Catalog, Identifier
from .conditions import Composition, Condition, ConditionTarget, compose
from .events import CartEvent, EventSink, LoggingEventSink
from .models import CartItem, normalize_quantity, validate_identifier
from .storage import CartKeys, MemoryParkStore, MemoryStateStore, ParkStore, StateStore

logger = get_logger(__name__)

DEFAULT_INSTANCE = "default"

ItemPatch = Union[Buyable, Mapping[str, Any], Number]


class Cart:
    """
    Shopping cart bound to one instance ("default", "wishlist", ...) at a time.

    Collaborators:
    - state_store: live items and cart conditions per instance
    - park_store: carts parked under an identifier (store/save/restore)
    - events: receives cart.* notifications
    - catalogs: Catalog handles items can be associated with
    """

    def __init__(
        self,
        state_store: Optional[StateStore] = None,
        park_store: Optional[ParkStore] = None,
        events: Optional[EventSink] = None,
        catalogs: Optional[Iterable[Catalog]] = None,
        instance: str = DEFAULT_INSTANCE,
    ):
        self.state = state_store if state_store is not None else MemoryStateStore()
        self.park_store = park_store if park_store is not None else MemoryParkStore()
        self.events = events if events is not None else LoggingEventSink()
        self._catalogs: Dict[str, Catalog] = {}
        for catalog in catalogs or []:
            self.register_catalog(catalog)
        self._instance = DEFAULT_INSTANCE
        self.select_instance(instance)

    # ------------------------------------------------------------------
    # Instances
    # ------------------------------------------------------------------

    def select_instance(self, instance: Optional[str] = None) -> "Cart":
        """Switch the active instance; other instances keep their state."""
        self._instance = instance or DEFAULT_INSTANCE
        return self

    def current_instance(self) -> str:
        return self._instance

    @property
    def _items_key(self) -> str:
        return CartKeys.items_key(self._instance)

    @property
    def _conditions_key(self) -> str:
        return CartKeys.conditions_key(self._instance)

    # ------------------------------------------------------------------
    # Content
    # ------------------------------------------------------------------

    def _get_content(self) -> Dict[str, CartItem]:
        payload = self.state.get(self._items_key) or []
        content: Dict[str, CartItem] = {}
        for data in payload:
            item = CartItem.from_dict(data)
            content[item.row_id] = item
        return content

    def _put_content(self, content: Dict[str, CartItem]) -> None:
        self.state.put(self._items_key, [item.to_dict() for item in content.values()])

    def content(self) -> Dict[str, CartItem]:
        """Items of the active instance keyed by rowId, in insertion order."""
        return self._get_content()

    def get(self, row_id: str) -> CartItem:
        content = self._get_content()
        if row_id not in content:
            raise NotFound(row_id)
        return content[row_id]

    def count(self) -> Number:
        """Total quantity across all lines."""
        return sum((item.qty for item in self._get_content().values()), 0)

    def search(self, predicate: Callable[[CartItem], bool]) -> List[CartItem]:
        return [item for item in self._get_content().values() if predicate(item)]

    def destroy(self) -> None:
        """Drop the items of the active instance (cart conditions are kept)."""
        self.state.remove(self._items_key)

    # ------------------------------------------------------------------
    # Adding items
    # ------------------------------------------------------------------

    def add(
        self,
        id: Identifier,
        name: str,
        qty: Number,
        price: Number,
        options: Optional[Mapping[str, Any]] = None,
        conditions: Optional[Iterable[Condition]] = None,
    ) -> CartItem:
        """Add a line from explicit fields."""
        item = CartItem.from_attributes(id, name, price, options, conditions, qty=qty)
        return self.add_item(item)

    def add_buyable(
        self,
        buyable: Buyable,
        qty: Number = 1,
        options: Optional[Mapping[str, Any]] = None,
        conditions: Optional[Iterable[Condition]] = None,
        catalog: Optional[Union[Catalog, str]] = None,
    ) -> CartItem:
        """Add a line from a catalog entity, optionally associating it."""
        item = CartItem.from_buyable(buyable, options, conditions, qty=qty)
        if catalog is not None:
            item.associate(self._resolve_catalog(catalog).name)
        return self.add_item(item)

    def add_from_dict(self, attributes: Mapping[str, Any]) -> CartItem:
        """Add a line from a raw attribute bundle (id, name, price, qty, ...)."""
        return self.add_item(CartItem.from_dict(attributes))

    def add_many(self, entries: Iterable[Union[CartItem, Buyable, Mapping[str, Any]]]) -> List[CartItem]:
        """Add several lines; each entry is a CartItem, a Buyable or a dict."""
        items = []
        for entry in entries:
            if isinstance(entry, CartItem):
                items.append(entry)
            elif isinstance(entry, Buyable):
                items.append(CartItem.from_buyable(entry))
            elif isinstance(entry, Mapping):
                items.append(CartItem.from_dict(entry))
            else:
                raise ValidationError(f"Cannot add {type(entry).__name__} to the cart")
        return [self.add_item(item) for item in items]

    def add_item(self, item: CartItem) -> CartItem:
        """
        Insert `item`, or merge it into the line with the same rowId.

        On merge only the quantity of the existing line changes.
        """
        content = self._get_content()
        existing = content.get(item.row_id)

        if existing is not None:
            existing.qty = existing.qty + item.qty
            result = existing
        else:
            content[item.row_id] = item
            result = item

        self._put_content(content)
        logger.debug(
            f"Added {sanitize_string_for_logging(result.name)} "
            f"({sanitize_id_for_logging(result.row_id)}) qty={result.qty}"
        )

        self.events.notify(CartEvent.ADDED, result)
        self.events.notify(CartEvent.SAVED, self)
        return result

    # ------------------------------------------------------------------
    # Updating / removing items
    # ------------------------------------------------------------------

    def update(self, row_id: str, patch: ItemPatch) -> Optional[CartItem]:
        """
        Update the line `row_id` from a Buyable, a dict of fields or a quantity.

        When the identity changes onto an existing line the two are merged
        by quantity. A resulting quantity of zero or less removes the line
        and returns None.
        """
        content = self._get_content()
        if row_id not in content:
            raise NotFound(row_id)

        item = content[row_id]
        if isinstance(patch, Buyable):
            item.update_from_buyable(patch)
        elif isinstance(patch, Mapping):
            item.update_from_dict(patch)
        else:
            item.qty = normalize_quantity(patch)

        if item.row_id != row_id:
            del content[row_id]
            existing = content.get(item.row_id)
            if existing is not None:
                item.qty = existing.qty + item.qty

        if item.qty <= 0:
            content.pop(item.row_id, None)
            self._put_content(content)
            logger.debug(f"Removed {sanitize_id_for_logging(row_id)} on non-positive quantity")
            self.events.notify(CartEvent.REMOVED, item)
            return None

        content[item.row_id] = item
        self._put_content(content)

        self.events.notify(CartEvent.UPDATED, item)
        self.events.notify(CartEvent.SAVED, self)
        return item

    def remove(self, row_id: str) -> None:
        content = self._get_content()
        if row_id not in content:
            raise NotFound(row_id)

        item = content.pop(row_id)
        self._put_content(content)
        logger.debug(f"Removed {sanitize_id_for_logging(row_id)}")

        self.events.notify(CartEvent.REMOVED, item)

    # ------------------------------------------------------------------
    # Prices
    # ------------------------------------------------------------------

    def subtotal(self, formatted: bool = False, decimals=None, decimal_point=None, thousands_sep=None):
        """Sum of line subtotals without TAX-typed item conditions."""
        amount = sum((item.price_sum_without_tax() for item in self._get_content().values()), ZERO)
        return present(amount, formatted, decimals, decimal_point, thousands_sep)

    def tax(self, formatted: bool = False, decimals=None, decimal_point=None, thousands_sep=None):
        """
        Sum over lines of (line total - price * qty).

        Every item-level condition contributes, whatever its type, so
        discounts lower this figure and fees raise it.
        """
        amount = sum((item.tax() for item in self._get_content().values()), ZERO)
        return present(amount, formatted, decimals, decimal_point, thousands_sep)

    def composition(self) -> Composition:
        """Cart-level conditions folded over the sum of line totals."""
        base = sum(
            (item.price_sum_with_conditions() for item in self._get_content().values()), ZERO,
        )
        return compose(
            self._get_conditions().values(),
            base,
            ConditionTarget.CART_SUBTOTAL,
            sort_by_order=True,
        )

    def total(self, formatted: bool = False, decimals=None, decimal_point=None, thousands_sep=None):
        """Sum of line totals after cart-level conditions, in order."""
        return present(self.composition().amount, formatted, decimals, decimal_point, thousands_sep)

    # ------------------------------------------------------------------
    # Cart-level conditions
    # ------------------------------------------------------------------

    def _get_conditions(self) -> Dict[str, Condition]:
        payload = self.state.get(self._conditions_key) or []
        conditions = [Condition.from_dict(data) for data in payload]
        conditions.sort(key=lambda condition: condition.order)
        return {condition.name: condition for condition in conditions}

    def _save_conditions(self, conditions: Dict[str, Condition]) -> None:
        ordered = sorted(conditions.values(), key=lambda condition: condition.order)
        self.state.put(self._conditions_key, [condition.to_dict() for condition in ordered])

        self.events.notify(CartEvent.CONDITIONS_CHANGED, ordered)
        self.events.notify(CartEvent.SAVED, self)

    def add_condition(self, condition: Union[Condition, Iterable[Condition]]) -> "Cart":
        """
        Add or replace (by name) cart-level conditions.

        A condition with order 0 is placed after the current last one.
        """
        incoming = [condition] if isinstance(condition, Condition) else list(condition)
        for entry in incoming:
            if not isinstance(entry, Condition):
                raise ValidationError(f"Expected a Condition, got {type(entry).__name__}")

        conditions = self._get_conditions()
        for entry in incoming:
            if entry.order == 0:
                last = max((c.order for c in conditions.values()), default=0)
                entry = entry.with_order(last + 1)
            conditions[entry.name] = entry
            conditions = dict(sorted(conditions.items(), key=lambda pair: pair[1].order))

        self._save_conditions(conditions)
        logger.debug(f"Cart conditions now {[sanitize_string_for_logging(n) for n in conditions]}")
        return self

    def get_conditions(self) -> Dict[str, Condition]:
        """Cart-level conditions keyed by name, by ascending order."""
        return self._get_conditions()

    def get_condition(self, name: str) -> Optional[Condition]:
        return self._get_conditions().get(name)

    def get_conditions_by_type(self, condition_type: str) -> Dict[str, Condition]:
        """Cart-level conditions of one type (item conditions are not included)."""
        return {
            name: condition
            for name, condition in self._get_conditions().items()
            if condition.type == condition_type
        }

    def remove_conditions_by_type(self, condition_type: str) -> None:
        conditions = self._get_conditions()
        remaining = {name: c for name, c in conditions.items() if c.type != condition_type}
        if len(remaining) != len(conditions):
            self._save_conditions(remaining)

    def remove_condition(self, name: str) -> None:
        """Remove a cart-level condition; unknown names are ignored."""
        conditions = self._get_conditions()
        if conditions.pop(name, None) is not None:
            self._save_conditions(conditions)

    def clear_conditions(self) -> None:
        """Remove every cart-level condition; item conditions are untouched."""
        self._save_conditions({})

    # ------------------------------------------------------------------
    # Item-level conditions (written back through update())
    # ------------------------------------------------------------------

    def add_item_condition(self, row_id: str, condition: Condition) -> "Cart":
        if not isinstance(condition, Condition):
            raise ValidationError(f"Expected a Condition, got {type(condition).__name__}")
        item = self.get(row_id)
        self.update(row_id, {"conditions": item.conditions + [condition]})
        return self

    def remove_item_condition(self, row_id: str, name: str) -> bool:
        """Drop every item condition called `name`; False if the line is missing."""
        item = self._get_content().get(row_id)
        if item is None:
            return False
        kept = [condition for condition in item.conditions if condition.name != name]
        self.update(row_id, {"conditions": kept})
        return True

    def clear_item_conditions(self, row_id: str) -> bool:
        if row_id not in self._get_content():
            return False
        self.update(row_id, {"conditions": []})
        return True

    # ------------------------------------------------------------------
    # Catalog association
    # ------------------------------------------------------------------

    def register_catalog(self, catalog: Catalog) -> None:
        if not isinstance(catalog, Catalog) or not getattr(catalog, "name", None):
            raise UnknownCollaborator(ERROR_UNKNOWN_CATALOG.format(catalog=catalog))
        self._catalogs[catalog.name] = catalog

    def _resolve_catalog(self, catalog: Union[Catalog, str]) -> Catalog:
        if isinstance(catalog, str):
            resolved = self._catalogs.get(catalog)
            if resolved is None:
                raise UnknownCollaborator(ERROR_UNKNOWN_CATALOG.format(catalog=catalog))
            return resolved
        self.register_catalog(catalog)
        return catalog

    def associate(self, row_id: str, catalog: Union[Catalog, str]) -> None:
        """Link a line to a catalog, given as a handle or a registered name."""
        resolved = self._resolve_catalog(catalog)

        content = self._get_content()
        if row_id not in content:
            raise NotFound(row_id)
        content[row_id].associate(resolved.name)
        self._put_content(content)

    def model(self, row_id: str) -> Optional[Buyable]:
        """Catalog entity behind a line, None when the line is not associated."""
        item = self.get(row_id)
        if item.associated is None:
            return None
        return self._resolve_catalog(item.associated).find(item.id)

    # ------------------------------------------------------------------
    # Parking (store / save / restore)
    # ------------------------------------------------------------------

    @staticmethod
    def _serialize_content(content: Dict[str, CartItem]) -> str:
        return json.dumps([item.to_dict() for item in content.values()])

    @staticmethod
    def _deserialize_content(blob: str) -> Dict[str, CartItem]:
        items = [CartItem.from_dict(data) for data in json.loads(blob)]
        return {item.row_id: item for item in items}

    def _record(self, identifier: Identifier, owner: Optional[Identifier]) -> StoredCart:
        identifier = validate_identifier(identifier)
        try:
            return StoredCart(
                identifier=str(identifier),
                instance=self._instance,
                content=self._serialize_content(self._get_content()),
                user_id=owner,
            )
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid parked cart: {e.errors()[0]['msg']}") from e

    def store(self, identifier: Identifier, owner: Optional[Identifier] = None) -> None:
        """Park the active instance; raises AlreadyStored if `identifier` is taken."""
        record = self._record(identifier, owner)
        # insert() checks again; this keeps the error independent of the backend
        if self.park_store.exists(record.identifier):
            raise AlreadyStored(record.identifier)

        self.park_store.insert(record)
        logger.info(f"Stored cart {sanitize_id_for_logging(record.identifier)} ({self._instance})")
        self.events.notify(CartEvent.STORED, record)

    park = store

    def save(self, identifier: Identifier, owner: Optional[Identifier] = None) -> None:
        """Park the active instance, overwriting an existing record."""
        record = self._record(identifier, owner)
        if self.park_store.exists(record.identifier):
            self.park_store.update(record.identifier, record)
        else:
            self.park_store.insert(record)
        logger.info(f"Saved cart {sanitize_id_for_logging(record.identifier)} ({self._instance})")
        self.events.notify(CartEvent.STORED, record)

    def _merge_stored(self, identifier: Identifier) -> Optional[StoredCart]:
        record = self.park_store.find_by_identifier(str(identifier))
        if record is None:
            return None

        stored = self._deserialize_content(record.content)
        current = self._instance
        self.select_instance(record.instance)
        try:
            content = self._get_content()
            # Parked lines win over live lines with the same rowId
            content.update(stored)
            self._put_content(content)
        finally:
            self.select_instance(current)
        return record

    def restore(self, identifier: Identifier, delete: bool = False) -> None:
        """
        Put a parked cart back into the instance it was parked from.

        Unknown identifiers are ignored. With `delete` the record is
        removed from the park store afterwards.
        """
        record = self._merge_stored(identifier)
        if record is None:
            logger.debug(f"No parked cart {sanitize_id_for_logging(identifier)}")
            return

        self.events.notify(CartEvent.RESTORED, record)
        if delete:
            self.park_store.delete(record.identifier)
        logger.info(f"Restored cart {sanitize_id_for_logging(record.identifier)} into {record.instance}")

    def load_stored(self, identifier: Identifier) -> Optional["Cart"]:
        """Like restore() without the event or deletion; None if unknown."""
        if self._merge_stored(identifier) is None:
            return None
        return self

    # ------------------------------------------------------------------
    # Summary
    # ------------------------------------------------------------------

    def summary(self) -> CartSummary:
        """JSON-friendly snapshot of the active instance."""
        content = self._get_content()
        conditions = self._get_conditions()
        if not content:
            return CartSummary(
                instance=self._instance,
                is_empty=True,
                total=to_float(self.total()),
                conditions=list(conditions),
            )

        return CartSummary(
            instance=self._instance,
            is_empty=False,
            total_items=to_float(self.count()),
            items=[
                CartItemResponse(
                    row_id=item.row_id,
                    id=item.id,
                    name=item.name,
                    quantity=to_float(item.qty),
                    unit_price=to_float(item.price),
                    price_with_conditions=to_float(item.price_with_conditions()),
                    total=to_float(item.price_sum_with_conditions()),
                    options=item.options,
                    conditions=[condition.name for condition in item.conditions],
                )
                for item in content.values()
            ],
            subtotal=to_float(self.subtotal()),
            tax=to_float(self.tax()),
            total=to_float(self.total()),
            conditions=list(conditions),
        )
