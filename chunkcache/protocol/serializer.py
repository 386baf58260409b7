"""
Value Serialization

Values are pickled before they are stored. Any pickle of a Python object is
non-empty, so a payload that fails to decode is never confused with a stored
empty value.
"""

import pickle
from typing import Any

from ..exceptions import UnserializeError


def serialize(value: Any) -> bytes:
    """Encode a value for storage."""
    return pickle.dumps(value, protocol=pickle.DEFAULT_PROTOCOL)


def unserialize(data: bytes) -> Any:
    """
    Decode a stored payload.

    Raises:
        UnserializeError: If the payload is truncated or not a pickle
    """
    try:
        return pickle.loads(data)
    except Exception as e:
        raise UnserializeError(f"cannot unserialize {len(data)} bytes: {e}") from e
