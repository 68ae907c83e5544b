"""
JSON blob codec for nested story fields.

Nested sub-objects (image, gallery, audio, localizations, author) are stored
as compact JSON bytes with ISO-8601 timestamps.
"""

import json
from functools import lru_cache
from typing import Any

from pydantic import BaseModel, TypeAdapter, ValidationError
from pydantic_core import PydanticSerializationError, to_jsonable_python


class BlobEncodeError(Exception):
    """Raised when a nested field cannot be serialized."""

    pass


class BlobDecodeError(Exception):
    """Raised when stored bytes cannot be decoded into the expected type."""

    pass


@lru_cache(maxsize=None)
def _adapter(target: Any) -> TypeAdapter:
    return TypeAdapter(target)


def encode_blob(value: BaseModel | list[BaseModel]) -> bytes:
    """Encode a model (or list of models) to canonical JSON bytes."""
    try:
        payload = to_jsonable_python(value)
        return json.dumps(payload, separators=(",", ":"), ensure_ascii=False).encode("utf-8")
    except (PydanticSerializationError, TypeError, ValueError) as e:
        raise BlobEncodeError(f"Cannot encode {type(value).__name__}: {e}") from e


def decode_blob(data: bytes, target: Any) -> Any:
    """Decode JSON bytes into `target` (a model class or e.g. list[Model])."""
    try:
        return _adapter(target).validate_json(data)
    except ValidationError as e:
        raise BlobDecodeError(f"Cannot decode blob as {target}: {e}") from e
