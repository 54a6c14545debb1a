"""
Pytest configuration and fixtures for the search and recommendation tests.
"""
import pytest

from shopsearch.core.config import Settings
from shopsearch.utils.cache import Cache
from tests.fakes import FakeRedis, FakeSearchIndex, product


@pytest.fixture
def settings():
    """Default tunables, no .env file involved."""
    return Settings()


@pytest.fixture
def redis():
    return FakeRedis()


@pytest.fixture
def cache(redis):
    return Cache(redis)


@pytest.fixture
def sneakers():
    """The two-sneaker catalog plus products that must never surface in search."""
    return [
        product("1", name="Red Sneakers", price=60.0, category_id="shoes", category_name="Shoes",
                vendor_id="v1", vendor_name="Acme", tags=["running", "red"], average_rating=4.6),
        product("2", name="Blue Sneakers", price=45.0, category_id="shoes", category_name="Shoes",
                vendor_id="v2", vendor_name="Bolt", tags=["running", "blue"], average_rating=3.2),
        product("3", name="Green Sneakers", price=50.0, category_id="shoes", category_name="Shoes",
                vendor_id="v1", vendor_name="Acme", status="draft"),
        product("4", name="Old Sneakers", price=20.0, category_id="shoes", category_name="Shoes",
                vendor_id="v2", vendor_name="Bolt", status="archived"),
        product("5", name="Leather Wallet", price=250.0, category_id="accessories", category_name="Accessories",
                vendor_id="v1", vendor_name="Acme", tags=["leather"], stock_quantity=0, average_rating=4.1),
    ]


@pytest.fixture
def index(sneakers):
    return FakeSearchIndex(sneakers)
