"""
Cart Conditions

A condition is a named price adjustment (discount, fee, tax) with a value
such as "-10%", "+5" or "50%". Conditions are applied through `compose`,
which chains them over a base amount: each condition sees the result of
the previous one, so order matters for percentages.

    >>> compose([Condition("sale", "discount", ConditionTarget.ITEM, "-10%"),
    ...          Condition("wrap", "fee", ConditionTarget.ITEM, "+5")],
    ...         Decimal("100"), ConditionTarget.ITEM).amount
    Decimal('95')
"""
import re
from dataclasses import dataclass, field, replace
from decimal import Decimal
from enum import Enum, IntEnum
from typing import Any, Iterable, List, Optional, Union

from shoppingcart.errors import (
    ERROR_INVALID_CONDITION_NAME,
    ERROR_INVALID_CONDITION_ORDER,
    ERROR_INVALID_CONDITION_VALUE,
    ERROR_INVALID_TARGET,
    ValidationError,
)
from shoppingcart.money import ZERO, to_decimal

ConditionValue = Union[str, int, float, Decimal]


class ConditionType(str, Enum):
    """Condition labels. Only TAX changes behaviour (ex-tax prices skip it)."""
    TAX = "tax"
    DISCOUNT = "discount"
    FEE = "fee"


class ConditionTarget(IntEnum):
    """What a condition is applied to."""
    CART_SUBTOTAL = 1
    ITEM = 3


# [sign]digits[.digits][%]
_VALUE_PATTERN = re.compile(r"^([+-])?(\d+(?:\.\d*)?|\.\d+)(%)?$")


@dataclass(frozen=True)
class ValueSpec:
    """Parsed condition value."""
    text: str
    magnitude: Decimal
    is_percentage: bool
    is_subtraction: bool

    @classmethod
    def parse(cls, value: ConditionValue) -> "ValueSpec":
        if isinstance(value, bool):
            raise ValidationError(f"{ERROR_INVALID_CONDITION_VALUE}: {value!r}")
        if isinstance(value, (int, float, Decimal)):
            number = to_decimal(value)
            if not number.is_finite():
                raise ValidationError(f"{ERROR_INVALID_CONDITION_VALUE}: {value!r}")
            text = format(number, "f")
        elif isinstance(value, str):
            text = "".join(value.split())
        else:
            raise ValidationError(f"{ERROR_INVALID_CONDITION_VALUE}: {value!r}")

        match = _VALUE_PATTERN.match(text)
        if match is None:
            raise ValidationError(f"{ERROR_INVALID_CONDITION_VALUE}: {value!r}")

        sign, digits, percent_sign = match.groups()
        return cls(
            text=text,
            magnitude=Decimal(digits),
            is_percentage=percent_sign is not None,
            is_subtraction=sign == "-",
        )


def _coerce_target(target: Any) -> ConditionTarget:
    if isinstance(target, ConditionTarget):
        return target
    if isinstance(target, str):
        try:
            return ConditionTarget[target.strip().upper()]
        except KeyError:
            raise ValidationError(f"{ERROR_INVALID_TARGET}: {target!r}")
    if isinstance(target, int) and not isinstance(target, bool):
        try:
            return ConditionTarget(target)
        except ValueError:
            raise ValidationError(f"{ERROR_INVALID_TARGET}: {target!r}")
    raise ValidationError(f"{ERROR_INVALID_TARGET}: {target!r}")


def _coerce_type(condition_type: Any) -> str:
    if isinstance(condition_type, ConditionType):
        return condition_type
    if not isinstance(condition_type, str) or not condition_type:
        raise ValidationError(f"Invalid condition type: {condition_type!r}")
    try:
        return ConditionType(condition_type.strip().lower())
    except ValueError:
        # Open set: unknown labels are kept for filtering
        return condition_type


def _coerce_order(order: Any) -> int:
    if isinstance(order, bool):
        raise ValidationError(ERROR_INVALID_CONDITION_ORDER)
    if isinstance(order, str) and order.strip().isdecimal():
        try:
            order = int(order)
        except ValueError:
            raise ValidationError(ERROR_INVALID_CONDITION_ORDER)
    if not isinstance(order, int) or order < 0:
        raise ValidationError(ERROR_INVALID_CONDITION_ORDER)
    return order


@dataclass(frozen=True)
class AppliedCondition:
    """One step of a composition: the condition, its input and its output."""
    condition: "Condition"
    base: Decimal
    delta: Decimal  # signed, pre-clamp
    result: Decimal


@dataclass
class Condition:
    """
    A named price adjustment.

    Args:
        name: Key of the condition (unique among cart-level conditions)
        type: ConditionType label, or any other non-empty string
        target: ConditionTarget.ITEM or ConditionTarget.CART_SUBTOTAL
        value: "[+|-]number[%]" or a plain number
        order: Position among cart-level conditions, 0 = append at the end
    """
    name: str
    type: str
    target: ConditionTarget
    value: ConditionValue
    order: int = 0
    _spec: ValueSpec = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        if not isinstance(self.name, str) or not self.name.strip():
            raise ValidationError(ERROR_INVALID_CONDITION_NAME)
        self.type = _coerce_type(self.type)
        self.target = _coerce_target(self.target)
        self.order = _coerce_order(self.order)
        self._spec = ValueSpec.parse(self.value)
        self.value = self._spec.text

    @property
    def is_percentage(self) -> bool:
        return self._spec.is_percentage

    @property
    def is_subtraction(self) -> bool:
        return self._spec.is_subtraction

    def evaluate(self, base: ConditionValue) -> AppliedCondition:
        """Apply the value formula to `base`; the result never goes below zero."""
        base = to_decimal(base)
        spec = self._spec

        if spec.is_percentage:
            amount = base * spec.magnitude / Decimal("100")
        else:
            amount = spec.magnitude

        if spec.is_subtraction:
            delta = -amount
        else:
            delta = amount

        result = base + delta
        if result < ZERO:
            result = ZERO
        return AppliedCondition(condition=self, base=base, delta=delta, result=result)

    def apply(self, base: ConditionValue) -> Decimal:
        """Price after this condition."""
        return self.evaluate(base).result

    def calculated_value(self, base: ConditionValue) -> Decimal:
        """Amount this condition adds or subtracts for `base` (unsigned)."""
        return abs(self.evaluate(base).delta)

    def with_order(self, order: int) -> "Condition":
        return replace(self, order=order)

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "name": self.name,
            "type": str(self.type.value if isinstance(self.type, ConditionType) else self.type),
            "target": int(self.target),
            "value": self.value,
            "order": self.order,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Condition":
        """Create from dictionary."""
        return cls(
            name=data["name"],
            type=data["type"],
            target=data["target"],
            value=data["value"],
            order=data.get("order", 0),
        )


@dataclass(frozen=True)
class Composition:
    """Result of folding conditions over a base amount."""
    amount: Decimal
    adjustment: Decimal  # sum of signed deltas
    applied: List[AppliedCondition]


def compose(
    conditions: Iterable[Condition],
    base: ConditionValue,
    target: ConditionTarget,
    exclude_type: Optional[str] = None,
    sort_by_order: bool = False,
) -> Composition:
    """
    Chain the conditions matching `target` over `base`.

    Conditions run in the given order unless `sort_by_order` is set
    (cart-level conditions), in which case they run by ascending `order`.
    Conditions whose type equals `exclude_type` are skipped. With nothing
    selected the amount is `base` unchanged.
    """
    selected = [
        condition for condition in conditions
        if condition.target == target
        and (exclude_type is None or condition.type != exclude_type)
    ]
    if sort_by_order:
        selected.sort(key=lambda condition: condition.order)

    amount = to_decimal(base)
    applied: List[AppliedCondition] = []
    for condition in selected:
        step = condition.evaluate(amount)
        applied.append(step)
        amount = step.result

    adjustment = sum((step.delta for step in applied), ZERO)
    return Composition(amount=amount, adjustment=adjustment, applied=applied)
