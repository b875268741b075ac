"""
Database Module - Supabase and Redis Clients

Provides lazily created singleton instances of:
- Async Supabase client for the ``carts`` document table
- Async Upstash Redis client for Redis-backed cart documents
"""

import os
from pathlib import Path
from typing import Optional

from supabase._async.client import AsyncClient, create_client as acreate_client
from upstash_redis.asyncio import Redis as AsyncRedis


# Environment variables
SUPABASE_URL = os.environ.get("SUPABASE_URL", "")
SUPABASE_SERVICE_ROLE_KEY = os.environ.get("SUPABASE_SERVICE_ROLE_KEY", "")

UPSTASH_REDIS_REST_URL = os.environ.get("UPSTASH_REDIS_REST_URL", "")
UPSTASH_REDIS_REST_TOKEN = os.environ.get("UPSTASH_REDIS_REST_TOKEN", "")

# "supabase" or "redis"
CART_DOCUMENT_BACKEND = os.environ.get("CART_DOCUMENT_BACKEND", "supabase").lower()

# Where the file-backed guest cart slot lives
GUEST_CART_DIR = Path(os.environ.get("GUEST_CART_DIR", str(Path.home() / ".storefront")))


# Singleton instances
_async_supabase_client: Optional[AsyncClient] = None
_redis_client: Optional[AsyncRedis] = None


async def get_supabase() -> AsyncClient:
    """
    Get async Supabase client (singleton).
    """
    global _async_supabase_client

    if _async_supabase_client is None:
        if not SUPABASE_URL or not SUPABASE_SERVICE_ROLE_KEY:
            raise ValueError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set")
        _async_supabase_client = await acreate_client(SUPABASE_URL, SUPABASE_SERVICE_ROLE_KEY)

    return _async_supabase_client


def get_redis() -> AsyncRedis:
    """
    Get async Upstash Redis client (singleton).

    Uses standard Upstash env var names:
    - UPSTASH_REDIS_REST_URL
    - UPSTASH_REDIS_REST_TOKEN
    """
    global _redis_client

    if _redis_client is None:
        if not UPSTASH_REDIS_REST_URL or not UPSTASH_REDIS_REST_TOKEN:
            raise ValueError("UPSTASH_REDIS_REST_URL and UPSTASH_REDIS_REST_TOKEN must be set")
        _redis_client = AsyncRedis(url=UPSTASH_REDIS_REST_URL, token=UPSTASH_REDIS_REST_TOKEN)

    return _redis_client


class Tables:
    """Supabase table names."""

    CARTS = "carts"  # user_id (pk), items (jsonb), updated_at


class RedisKeys:
    """Redis key prefixes."""

    CART = "cart:"  # cart:{user_id}

    # Fixed key of the guest cart slot in the local store
    GUEST_CART = "ayraa-cart-guest"

    @staticmethod
    def cart_key(user_id: str) -> str:
        return f"{RedisKeys.CART}{user_id}"


class TTL:
    """Time-to-live constants for Redis keys (seconds)."""

    CART = 2592000  # 30 days
