"""
Value Serialization

Two boundaries:

1. Store boundary (ValueSerializer): Python value <-> transport-safe text.
   Both stores keep serialized text, so a caller mutating an object after
   `set` never changes the cached copy.

2. Facade boundary (CacheCodec): per-entity encode/decode, so a value read
   back from the store has the shape the caller expects. JsonCodec passes
   JSON-compatible data through; ModelCodec rebuilds pydantic models.
"""

from typing import Any, Generic, Protocol, TypeVar

import orjson
from pydantic import BaseModel, TypeAdapter, ValidationError

from tagcache.core.exceptions import CacheSerializationError

T = TypeVar("T")


class ValueSerializer:
    """
    Converts values to and from the text stored in a cache entry.

    Serialization Strategy:
    - orjson for everything (dict, list, str, numbers, bool, datetime, UUID,
      dataclasses)
    - pydantic models are dumped in JSON mode first

    Deserialization Strategy:
    - orjson.loads; anything unparsable raises CacheSerializationError and is
      treated as a miss by the stores
    """

    @staticmethod
    def serialize(value: Any) -> str:
        if isinstance(value, BaseModel):
            value = value.model_dump(mode="json")
        elif isinstance(value, list) and value and isinstance(value[0], BaseModel):
            value = [item.model_dump(mode="json") for item in value]

        try:
            return orjson.dumps(value).decode("utf-8")
        except TypeError as e:
            raise CacheSerializationError.from_exception(
                e, message=f"Value of type {type(value).__name__} is not serializable"
            )

    @staticmethod
    def deserialize(raw: str | bytes) -> Any:
        try:
            return orjson.loads(raw)
        except orjson.JSONDecodeError as e:
            raise CacheSerializationError.from_exception(e, message="Stored value is not valid JSON")


class CacheCodec(Protocol[T]):
    """
    Per-entity encode/decode pair applied by the facade.

    encode: domain value -> JSON-compatible value handed to the store
    decode: JSON-compatible value read from the store -> domain value
    """

    def encode(self, value: T) -> Any:
        ...

    def decode(self, data: Any) -> T:
        ...


class JsonCodec(Generic[T]):
    """Identity codec for plain JSON data (dicts, lists, scalars)."""

    def encode(self, value: T) -> Any:
        return value

    def decode(self, data: Any) -> T:
        return data


class ModelCodec(Generic[T]):
    """
    Codec backed by a pydantic TypeAdapter.

    Usage:
        product_codec = ModelCodec(Product)
        listing_codec = ModelCodec(list[Product])
    """

    def __init__(self, type_: type[T] | Any):
        self._adapter: TypeAdapter[T] = TypeAdapter(type_)

    def encode(self, value: T) -> Any:
        return self._adapter.dump_python(value, mode="json")

    def decode(self, data: Any) -> T:
        try:
            return self._adapter.validate_python(data)
        except ValidationError as e:
            raise CacheSerializationError.from_exception(
                e, message="Cached value does not match the expected shape"
            )
