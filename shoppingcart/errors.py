"""
Cart Errors

Centralized error messages (to avoid string duplication) and the
exception types raised by the cart engine.
"""

# Item errors
ERROR_INVALID_IDENTIFIER = "Please supply a valid identifier."
ERROR_INVALID_NAME = "Please supply a valid name."
ERROR_INVALID_PRICE = "Please supply a valid price."
ERROR_INVALID_QUANTITY = "Please supply a valid quantity."
ERROR_INVALID_OPTIONS = "Options must be a mapping of JSON-compatible values."
ERROR_ROW_NOT_FOUND = "The cart does not contain rowId {row_id}."

# Condition errors
ERROR_INVALID_TARGET = "Invalid condition target"
ERROR_INVALID_CONDITION_VALUE = "Invalid condition value"
ERROR_INVALID_CONDITION_ORDER = "Condition order must be a non-negative integer"
ERROR_INVALID_CONDITION_NAME = "Condition name must be a non-empty string"

# Persistence errors
ERROR_ALREADY_STORED = "A cart with identifier {identifier} was already stored."
ERROR_UNKNOWN_CATALOG = "The supplied catalog {catalog} does not exist."
ERROR_STORE_UNAVAILABLE = "Cart store unavailable"


class CartError(Exception):
    """Base class for all cart engine errors."""


class ValidationError(CartError, ValueError):
    """Invalid identifier, name, price, quantity or condition attribute."""


class NotFound(CartError, KeyError):
    """An operation referenced a rowId absent from the active cart."""

    def __init__(self, row_id: str):
        self.row_id = row_id
        super().__init__(ERROR_ROW_NOT_FOUND.format(row_id=row_id))

    def __str__(self) -> str:
        # KeyError would repr() the message
        return self.args[0]


class UnknownCollaborator(CartError, LookupError):
    """A catalog reference handed to associate() cannot be resolved."""


class AlreadyStored(CartError):
    """park() was called with an identifier that already exists."""

    def __init__(self, identifier: str):
        self.identifier = identifier
        super().__init__(ERROR_ALREADY_STORED.format(identifier=identifier))


class StoreUnavailable(CartError):
    """The state store or the park store backend failed."""
