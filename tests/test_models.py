"""
Tests for Pydantic models
"""

import pytest
from pydantic import ValidationError

from shoppingcart.models import CartItemResponse, CartSummary, StoredCart


class TestStoredCart:
    """Tests for StoredCart model."""

    def test_valid_record(self):
        """Test creating a parked cart record."""
        record = StoredCart(identifier="abc", instance="default", content="[]", user_id=42)

        assert record.user_id == 42
        assert record.created_at is None

    def test_empty_identifier(self):
        """Test that identifier is required."""
        with pytest.raises(ValidationError):
            StoredCart(identifier="", instance="default", content="[]")

    def test_json_dump(self):
        """Test serialization for the park table."""
        record = StoredCart(identifier="abc", instance="default", content="[]")

        assert record.model_dump(mode="json", exclude_none=True) == {
            "identifier": "abc",
            "instance": "default",
            "content": "[]",
        }


class TestCartItemResponse:
    """Tests for CartItemResponse model."""

    def test_valid_item(self):
        """Test creating a valid line."""
        item = CartItemResponse(
            row_id="r1",
            id=1,
            name="Shirt",
            quantity=2,
            unit_price=20.0,
            price_with_conditions=18.0,
            total=36.0,
            conditions=["sale"],
        )

        assert item.options == {}
        assert item.total == 36.0

    def test_quantity_must_be_positive(self):
        """Test quantity validation."""
        with pytest.raises(ValidationError):
            CartItemResponse(
                row_id="r1", id=1, name="Shirt", quantity=0,
                unit_price=20.0, price_with_conditions=20.0, total=0,
            )

    def test_negative_price(self):
        """Test price validation."""
        with pytest.raises(ValidationError):
            CartItemResponse(
                row_id="r1", id=1, name="Shirt", quantity=1,
                unit_price=-1, price_with_conditions=0, total=0,
            )


class TestCartSummary:
    """Tests for CartSummary model."""

    def test_defaults(self):
        """Test an empty summary."""
        summary = CartSummary(instance="default", is_empty=True)

        assert summary.items == []
        assert summary.total == 0
        assert summary.conditions == []
