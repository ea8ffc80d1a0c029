"""
Pytest fixtures for filterspec tests.
"""

import pytest
from typing import Any, Dict, List

from filterspec import Filter, Gte, Lte, In, Eq, Regex
from filterspec.config import Settings, set_settings


@pytest.fixture(autouse=True)
def default_settings():
    """Run every test with default settings, ignoring config files on disk."""
    set_settings(Settings())
    yield
    set_settings(None)


@pytest.fixture
def product_spec() -> List[Dict[str, Any]]:
    """Ordered spec for a product listing."""
    return [
        {"MinPrice": Gte("price")},
        {"MaxPrice": Lte("price")},
        {"Category": {"filter": In("category"), "meta": {"label": "Category"}}},
        {"Brand": Eq("brand")},
    ]


@pytest.fixture
def Products(product_spec):
    """Filter class built from the product spec."""
    return Filter.create(product_spec, name="Products")


@pytest.fixture
def products(Products):
    """Products instance with a minimum price set at construction."""
    return Products({"MinPrice": 3})


@pytest.fixture
def changes():
    """Counter of change notifications."""

    class Counter:
        def __init__(self):
            self.count = 0

        def __call__(self):
            self.count += 1

    return Counter()


@pytest.fixture
def title_regex():
    """A Regex converter used by several tests."""
    return Regex("title", "^The", "i")
