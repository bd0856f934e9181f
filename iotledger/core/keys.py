"""
Composite Key Encoding

Builds single storage keys out of a category label and an ordered
tuple of attribute strings, and takes them apart again.

ENCODING RULES:
1. Namespace: every composite key starts with U+0000
2. Layout: U+0000 + category + U+0000 + attr_1 + U+0000 + ... + attr_n + U+0000
3. Delimiter: U+0000 may not appear inside the category or any attribute
4. Sentinel: U+10FFFF may not appear either (it bounds partial-key ranges)
5. Text: category and attributes must be encodable as UTF-8
6. Category: must be non-empty
7. Attributes: may be empty strings (they are still terminated)
8. Simple keys: non-empty and never start with U+0000

Rules 2 and 3 make the encoding injective for a fixed category:
every attribute is terminated by a delimiter it cannot contain, so
("a", "bc") and ("ab", "c") can never produce the same key.
Rule 8 keeps simple keys (device ids) out of the composite key space.

A composite key built from only a leading subset of the attributes
is a prefix of every full key that shares them, which is what
partial-key range reads rely on.
"""

from typing import Sequence

from .errors import InvalidKeyError


COMPOSITE_KEY_NAMESPACE = "\x00"
MAX_UNICODE_RUNE = "\U0010ffff"


def _validate_component(value: str, what: str) -> None:
    if not isinstance(value, str):
        raise InvalidKeyError(
            f"Composite key {what} must be a string, got {type(value).__name__}"
        )
    if COMPOSITE_KEY_NAMESPACE in value:
        raise InvalidKeyError(
            f"Composite key {what} {value!r} contains the U+0000 delimiter"
        )
    if MAX_UNICODE_RUNE in value:
        raise InvalidKeyError(
            f"Composite key {what} {value!r} contains the reserved U+10FFFF rune"
        )
    try:
        value.encode("utf-8")
    except UnicodeEncodeError as e:
        raise InvalidKeyError(
            f"Composite key {what} {value!r} is not valid UTF-8"
        ) from e


def create_composite_key(category: str, attributes: Sequence[str]) -> str:
    """
    Build a composite key from a category and ordered attributes.

    Args:
        category: Non-empty category label, e.g. "DataRecord"
        attributes: Ordered attribute values, e.g. [device_id, timestamp]

    Returns:
        The encoded key

    Raises:
        InvalidKeyError: If the category or an attribute cannot be encoded
    """
    _validate_component(category, "category")
    if not category:
        raise InvalidKeyError("Composite key category must not be empty")

    parts = [COMPOSITE_KEY_NAMESPACE, category, COMPOSITE_KEY_NAMESPACE]
    for attribute in attributes:
        _validate_component(attribute, "attribute")
        parts.append(attribute)
        parts.append(COMPOSITE_KEY_NAMESPACE)
    return "".join(parts)


def split_composite_key(key: str) -> tuple[str, list[str]]:
    """
    Split a composite key back into its category and attributes.

    Inverse of create_composite_key.
    """
    if (
        len(key) < 3
        or not key.startswith(COMPOSITE_KEY_NAMESPACE)
        or not key.endswith(COMPOSITE_KEY_NAMESPACE)
    ):
        raise InvalidKeyError(f"Key {key!r} is not a composite key", key=key)

    components = key[1:-1].split(COMPOSITE_KEY_NAMESPACE)
    category, attributes = components[0], components[1:]
    if not category:
        raise InvalidKeyError(f"Key {key!r} has an empty category", key=key)
    return category, attributes


def is_composite_key(key: str) -> bool:
    return key.startswith(COMPOSITE_KEY_NAMESPACE)


def validate_simple_key(key: str) -> None:
    """Reject keys that cannot be stored as plain, non-composite keys."""
    if not isinstance(key, str) or not key:
        raise InvalidKeyError("Key must be a non-empty string", key=key)
    if is_composite_key(key):
        raise InvalidKeyError(
            f"Key {key!r} starts with U+0000, which is reserved for composite keys",
            key=key,
        )
    try:
        key.encode("utf-8")
    except UnicodeEncodeError as e:
        raise InvalidKeyError(f"Key {key!r} is not valid UTF-8", key=key) from e