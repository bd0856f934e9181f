"""
Entity Codec

Turns Device and DataRecord entities into the bytes stored in the
world state, and back.

CANONICAL SERIALIZATION RULES:
1. JSON object at the top level, never a list or primitive
2. Keys sorted, no extra whitespace, ASCII only
3. Field names are the ledger's wire names (deviceID, verifierID)
4. Enums serialize to their value, not their name
5. verifierID is omitted while empty
6. Decoding validates against the pydantic model; anything that does
   not fit the entity shape is a DeserializationError, never a default

Same entity in, same bytes out. Decoding the bytes gives back an
equal entity.
"""

import json
from typing import Any, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from ..schemas import DataRecord, Device
from .errors import DeserializationError


EntityT = TypeVar("EntityT", bound=BaseModel)


class EntityCodec:
    """
    Canonical JSON codec for ledger entities.
    """

    @classmethod
    def to_dict(cls, entity: BaseModel) -> dict[str, Any]:
        """Wire-shaped dict for an entity (aliases applied, enums as values)."""
        data = entity.model_dump(mode="json", by_alias=True)
        if isinstance(entity, DataRecord) and not data.get("verifierID"):
            data.pop("verifierID", None)
        return data

    @classmethod
    def encode(cls, entity: BaseModel) -> bytes:
        """Serialize an entity to canonical JSON bytes."""
        return json.dumps(
            cls.to_dict(entity),
            sort_keys=True,
            separators=(",", ":"),
            ensure_ascii=True,
        ).encode("utf-8")

    @classmethod
    def decode(cls, raw: bytes, model: type[EntityT], key: str) -> EntityT:
        """
        Parse stored bytes into an entity.

        Args:
            raw: Bytes read from the world state
            model: Entity class to validate against
            key: Storage key the bytes came from (for error context)

        Raises:
            DeserializationError: If the bytes are not a valid entity
        """
        entity_name = model.__name__
        try:
            data = json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise DeserializationError(
                f"Stored value for {entity_name} at {key!r} is not valid JSON: {e}",
                entity=entity_name,
                key=key,
            ) from e

        if not isinstance(data, dict):
            raise DeserializationError(
                f"Stored value for {entity_name} at {key!r} is a "
                f"{type(data).__name__}, expected an object",
                entity=entity_name,
                key=key,
            )

        try:
            return model.model_validate(data)
        except PydanticValidationError as e:
            fields = ", ".join(
                ".".join(str(part) for part in error["loc"]) for error in e.errors()
            )
            raise DeserializationError(
                f"Stored value at {key!r} does not match the {entity_name} schema: "
                f"{e.error_count()} validation error(s) in {fields}",
                entity=entity_name,
                key=key,
            ) from e

    @classmethod
    def decode_device(cls, raw: bytes, key: str) -> Device:
        return cls.decode(raw, Device, key)

    @classmethod
    def decode_data_record(cls, raw: bytes, key: str) -> DataRecord:
        return cls.decode(raw, DataRecord, key)
