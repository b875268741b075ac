"""
Cart storage.

Two kinds of stores back the cart:
- a local, synchronous key-value slot on the device for the guest cart
- a remote document per user, ``{"items": [...]}``, in Supabase or Redis

Stored data is validated with pydantic before it becomes ``CartLine``s.
Unreadable or malformed data is treated as an empty cart.
"""
import json
import os
import tempfile
from collections.abc import Iterable, Mapping
from datetime import UTC, datetime
from decimal import Decimal
from pathlib import Path
from typing import Any, Optional, Protocol

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from storefront.db import RedisKeys, Tables, TTL
from storefront.errors import (
    ERROR_MALFORMED_CART,
    ERROR_STORE_READ,
    ERROR_STORE_WRITE,
    CartPersistenceError,
)
from storefront.logging import get_logger, sanitize_id_for_logging

from .models import CartLine
from .reducer import merge_lines

logger = get_logger(__name__)


# ==================== DOCUMENT SHAPE ====================

class CartLineDocument(BaseModel):
    """One stored cart line (camelCase keys as written by the web client)."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = Field(min_length=1)
    product_id: str = Field(default="", alias="productId")
    category: Optional[str] = None
    name: Optional[str] = None
    price: Decimal = Decimal("0")
    quantity: int
    size: Optional[str] = None
    color: Optional[str] = None
    image: Optional[str] = None

    def to_line(self) -> CartLine:
        return CartLine(
            id=self.id,
            product_id=self.product_id,
            category=self.category or "",
            name=self.name or "",
            price=self.price,
            quantity=self.quantity,
            size=self.size or "",
            color=self.color or "",
            image=self.image or "",
        )


class CartDocument(BaseModel):
    """Remote cart document."""

    model_config = ConfigDict(extra="ignore")

    items: list[CartLineDocument] = Field(default_factory=list)


_guest_items_adapter = TypeAdapter(list[CartLineDocument])


def _to_lines(documents: Iterable[CartLineDocument]) -> tuple[CartLine, ...]:
    # Duplicate ids in stored data collapse onto the first occurrence
    return merge_lines((), tuple(doc.to_line() for doc in documents))


def dump_lines(items: Iterable[CartLine]) -> list[dict]:
    return [line.to_dict() for line in items]


# ==================== LOCAL (GUEST) STORE ====================

class LocalStore(Protocol):
    """Synchronous, device-scoped string key-value store."""

    def get(self, key: str) -> str | None:
        ...

    def put(self, key: str, value: str) -> None:
        ...

    def remove(self, key: str) -> None:
        ...


class MemoryLocalStore:
    """Process-local store. Gone when the process exits."""

    def __init__(self, data: dict[str, str] | None = None) -> None:
        self._data = dict(data or {})

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def put(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)


class FileLocalStore:
    """One JSON file per key inside ``directory``."""

    def __init__(self, directory: Path | str) -> None:
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def get(self, key: str) -> str | None:
        path = self._path(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            raise CartPersistenceError(f"{ERROR_STORE_READ}: {e}", key=key) from e

    def put(self, key: str, value: str) -> None:
        path = self._path(key)
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            # Write to a temp file and rename so readers never see half a cart
            fd, tmp_name = tempfile.mkstemp(dir=self.directory, prefix=f".{key}.")
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(value)
            os.replace(tmp_name, path)
        except OSError as e:
            raise CartPersistenceError(f"{ERROR_STORE_WRITE}: {e}", key=key) from e

    def remove(self, key: str) -> None:
        try:
            self._path(key).unlink(missing_ok=True)
        except OSError as e:
            raise CartPersistenceError(f"{ERROR_STORE_WRITE}: {e}", key=key) from e


class GuestCartStore:
    """Guest cart kept under a fixed key of a ``LocalStore``."""

    def __init__(self, local: LocalStore, key: str = RedisKeys.GUEST_CART) -> None:
        self.local = local
        self.key = key

    def load(self) -> tuple[CartLine, ...]:
        """Read the guest cart. Missing, unreadable or corrupt data reads as empty."""
        try:
            raw = self.local.get(self.key)
        except CartPersistenceError as e:
            logger.warning("Guest cart unreadable, using empty cart: %s", e)
            return ()

        if not raw:
            return ()

        try:
            payload = json.loads(raw)
            if isinstance(payload, Mapping):
                # Older clients stored the whole document
                payload = payload.get("items", [])
            return _to_lines(_guest_items_adapter.validate_python(payload))
        except (json.JSONDecodeError, ValidationError) as e:
            logger.warning("%s in guest slot %s: %s", ERROR_MALFORMED_CART, self.key, type(e).__name__)
            return ()

    def save(self, items: Iterable[CartLine]) -> None:
        self.local.put(self.key, json.dumps(dump_lines(items)))

    def clear(self) -> None:
        self.local.remove(self.key)


# ==================== REMOTE (USER) DOCUMENTS ====================

class DocumentStore(Protocol):
    """Async per-user document store."""

    async def get(self, key: str) -> Mapping[str, Any] | None:
        ...

    async def put(self, key: str, document: Mapping[str, Any]) -> None:
        ...


class InMemoryDocumentStore:
    """Dict-backed documents. Stored as JSON so callers never share objects."""

    def __init__(self) -> None:
        self._documents: dict[str, str] = {}

    async def get(self, key: str) -> Mapping[str, Any] | None:
        raw = self._documents.get(key)
        return json.loads(raw) if raw is not None else None

    async def put(self, key: str, document: Mapping[str, Any]) -> None:
        self._documents[key] = json.dumps(document)


class SupabaseDocumentStore:
    """Cart documents in the Supabase ``carts`` table (``items`` is jsonb)."""

    def __init__(self, client, table: str = Tables.CARTS) -> None:
        self.client = client
        self.table = table

    async def get(self, key: str) -> Mapping[str, Any] | None:
        try:
            result = (
                await self.client.table(self.table)
                .select("items")
                .eq("user_id", key)
                .limit(1)
                .execute()
            )
        except Exception as e:
            logger.error("Failed to read cart document: %s", type(e).__name__, exc_info=True)
            raise CartPersistenceError(f"{ERROR_STORE_READ}: {e}", key=key) from e

        if not result.data:
            return None
        return {"items": result.data[0].get("items") or []}

    async def put(self, key: str, document: Mapping[str, Any]) -> None:
        row = {
            "user_id": key,
            "items": document.get("items", []),
            "updated_at": datetime.now(UTC).isoformat(),
        }
        try:
            await self.client.table(self.table).upsert(row, on_conflict="user_id").execute()
        except Exception as e:
            logger.error("Failed to write cart document: %s", type(e).__name__, exc_info=True)
            raise CartPersistenceError(f"{ERROR_STORE_WRITE}: {e}", key=key) from e


class RedisDocumentStore:
    """Cart documents as JSON strings under ``cart:{user_id}``."""

    def __init__(self, redis, ttl: int = TTL.CART) -> None:
        self.redis = redis
        self.ttl = ttl

    async def get(self, key: str) -> Mapping[str, Any] | None:
        try:
            data = await self.redis.get(RedisKeys.cart_key(key))
        except Exception as e:
            logger.error("Failed to get cart from Redis: %s", type(e).__name__, exc_info=True)
            raise CartPersistenceError(f"{ERROR_STORE_READ}: {e}", key=key) from e

        if not data:
            return None
        try:
            return json.loads(data)
        except json.JSONDecodeError:
            logger.warning("%s for user %s in Redis", ERROR_MALFORMED_CART, sanitize_id_for_logging(key))
            return {}

    async def put(self, key: str, document: Mapping[str, Any]) -> None:
        try:
            await self.redis.set(RedisKeys.cart_key(key), json.dumps(dict(document)), ex=self.ttl)
        except Exception as e:
            logger.error("Failed to save cart to Redis: %s", type(e).__name__, exc_info=True)
            raise CartPersistenceError(f"{ERROR_STORE_WRITE}: {e}", key=key) from e


class RemoteCartStore:
    """Typed access to per-user cart documents."""

    def __init__(self, documents: DocumentStore) -> None:
        self.documents = documents

    async def load(self, user_id: str) -> tuple[CartLine, ...]:
        """Read a user's cart. A missing or malformed document is an empty cart.

        Raises:
            CartPersistenceError: the store could not be reached
        """
        document = await self.documents.get(user_id)
        if document is None:
            return ()

        try:
            return _to_lines(CartDocument.model_validate(document).items)
        except ValidationError as e:
            logger.warning(
                "%s for user %s: %d errors",
                ERROR_MALFORMED_CART,
                sanitize_id_for_logging(user_id),
                e.error_count(),
            )
            return ()

    async def save(self, user_id: str, items: Iterable[CartLine]) -> None:
        """Overwrite a user's cart document.

        Raises:
            CartPersistenceError: the store could not be reached
        """
        await self.documents.put(user_id, {"items": dump_lines(items)})
