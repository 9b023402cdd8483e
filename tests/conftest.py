"""Pytest configuration and fixtures"""
import os
from dataclasses import dataclass
from decimal import Decimal
from unittest.mock import Mock

import pytest

# Set test environment variables
os.environ.setdefault("UPSTASH_REDIS_REST_URL", "https://test.upstash.io")
os.environ.setdefault("UPSTASH_REDIS_REST_TOKEN", "test_token")
os.environ.setdefault("SUPABASE_URL", "https://test.supabase.co")
os.environ.setdefault("SUPABASE_SERVICE_ROLE_KEY", "test_key")

from shoppingcart.cart import (  # noqa: E402
    Buyable,
    CallbackEventSink,
    Cart,
    Catalog,
    MemoryParkStore,
    MemoryStateStore,
)


@dataclass
class Product(Buyable):
    """Catalog entity used in tests; XL variants cost 5 more."""
    id: int
    title: str
    price: Decimal

    def get_buyable_identifier(self, options=None):
        return self.id

    def get_buyable_description(self, options=None):
        return self.title

    def get_buyable_price(self, options=None):
        if options and options.get("size") == "XL":
            return self.price + 5
        return self.price


class ProductCatalog(Catalog):
    """In-memory catalog of Products."""

    name = "products"

    def __init__(self, products):
        self.products = {product.id: product for product in products}

    def find(self, identifier):
        return self.products.get(identifier)


class RecordingSink(CallbackEventSink):
    """Event sink that remembers every event name it was given."""

    def __init__(self):
        super().__init__()
        self.events = []
        self.listen("*", lambda event, payload: self.events.append((event, payload)))

    @property
    def names(self):
        return [event for event, _ in self.events]


@pytest.fixture
def state_store():
    return MemoryStateStore()


@pytest.fixture
def park_store():
    return MemoryParkStore()


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def shirt():
    return Product(id=1, title="Shirt", price=Decimal("20.00"))


@pytest.fixture
def catalog(shirt):
    return ProductCatalog([shirt, Product(id=2, title="Hat", price=Decimal("15.00"))])


@pytest.fixture
def cart(state_store, park_store, sink):
    """Cart on in-memory stores with a recording event sink."""
    return Cart(state_store=state_store, park_store=park_store, events=sink)


@pytest.fixture
def mock_redis():
    """Mock Upstash Redis client"""
    redis = Mock()
    redis.get.return_value = None
    redis.exists.return_value = 0
    return redis


@pytest.fixture
def mock_supabase_client():
    """Mock Supabase client"""
    client = Mock()

    table_mock = Mock()
    table_mock.select.return_value = table_mock
    table_mock.insert.return_value = table_mock
    table_mock.update.return_value = table_mock
    table_mock.delete.return_value = table_mock
    table_mock.eq.return_value = table_mock
    table_mock.limit.return_value = table_mock
    table_mock.execute.return_value = Mock(data=[])

    client.table.return_value = table_mock
    return client
