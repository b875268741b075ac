"""Pytest configuration and fixtures"""
import os
import pytest
from decimal import Decimal

# Set test environment variables
os.environ.setdefault("SUPABASE_URL", "https://test.supabase.co")
os.environ.setdefault("SUPABASE_SERVICE_ROLE_KEY", "test_key")
os.environ.setdefault("UPSTASH_REDIS_REST_URL", "https://test.upstash.io")
os.environ.setdefault("UPSTASH_REDIS_REST_TOKEN", "test_token")

from storefront.cart import CartLine, CartPersistence, CartService
from storefront.cart.storage import (
    GuestCartStore,
    InMemoryDocumentStore,
    MemoryLocalStore,
    RemoteCartStore,
)
from storefront.identity import IdentityHub


@pytest.fixture
def make_line():
    """Factory for cart lines: make_line("A", 10, 2)"""
    def _make(line_id="A", price=10, quantity=1, **kwargs):
        defaults = {
            "product_id": f"prod-{line_id}",
            "name": f"Product {line_id}",
            "category": "casual",
            "size": "M",
            "color": "Black",
            "image": f"https://cdn.test/{line_id}.jpg",
        }
        defaults.update(kwargs)
        return CartLine(id=line_id, price=Decimal(str(price)), quantity=quantity, **defaults)
    return _make


@pytest.fixture
def sample_product():
    """Sample catalog product"""
    return {
        "id": "kurta-01",
        "name": "Embroidered Kurta",
        "description": "Cotton lawn kurta",
        "price": 4500,
        "category": "traditional",
        "sizes": ["S", "M", "L"],
        "colors": ["White", "Maroon"],
        "stock": 12,
        "images": ["https://cdn.test/kurta-01-front.jpg", "https://cdn.test/kurta-01-back.jpg"],
    }


@pytest.fixture
def local_store():
    return MemoryLocalStore()


@pytest.fixture
def documents():
    return InMemoryDocumentStore()


@pytest.fixture
def guest_store(local_store):
    return GuestCartStore(local_store)


@pytest.fixture
def remote_store(documents):
    return RemoteCartStore(documents)


@pytest.fixture
def persistence(guest_store, remote_store):
    return CartPersistence(guest=guest_store, remote=remote_store)


@pytest.fixture
def identity_hub():
    return IdentityHub()


@pytest.fixture
def cart_service(persistence, identity_hub):
    return CartService(persistence, identity_resolver=identity_hub)
