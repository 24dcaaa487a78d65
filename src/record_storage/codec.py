"""Conversion between record values and the documents stored in MongoDB.

A record value is either a JSON object or a JSON array. MongoDB only stores objects, so arrays are
wrapped in a ``ds_list`` field. Every document also carries the record's document id (``ds_key``)
and version (``ds_version``):

    encode_record([1, 2, 3], document_id="a", version=3)
    -> {"ds_list": [1, 2, 3], "ds_key": "a", "ds_version": 3}

Known ambiguities:
    - Caller fields named ``ds_key``, ``ds_version`` or ``_id`` are overwritten (or dropped) on write
      and never come back on read.
    - An object whose only field is ``ds_list`` holding an array reads back as that bare array.
"""

from collections.abc import Mapping, Sequence
from typing import Any

from record_storage._utils.beartype import bear_enforce
from record_storage._utils.constants import ID_FIELD, NOT_FOUND_VERSION, RESERVED_FIELDS, ROUTING_FIELD, VERSION_FIELD, WRAPPER_FIELD
from record_storage.errors import DeserializationError, SerializationError

StoredDocument = dict[str, Any]


@bear_enforce
def encode_record(value: Any, *, document_id: str, version: int) -> StoredDocument:
    """Build the document stored for a record.

    The caller's value is copied, never modified.

    Raises:
        SerializationError: If the value is neither an object nor an array, or the version is negative.
    """
    if version < 0:
        msg = f"Record versions must not be negative, got {version}"
        raise SerializationError(message=msg, extra_info={"document_id": document_id, "version": version})

    document: StoredDocument

    if isinstance(value, Mapping):
        document = {field: field_value for field, field_value in value.items() if field != ID_FIELD}  # pyright: ignore[reportUnknownVariableType]
    elif isinstance(value, Sequence) and not isinstance(value, str | bytes | bytearray):
        document = {WRAPPER_FIELD: list(value)}  # pyright: ignore[reportUnknownArgumentType]
    else:
        msg = f"Record values must be JSON objects or arrays, got {type(value).__name__}"
        raise SerializationError(message=msg, extra_info={"document_id": document_id})

    document[ROUTING_FIELD] = document_id
    document[VERSION_FIELD] = version

    return document


def decode_record(document: Mapping[str, Any] | None) -> tuple[int, dict[str, Any] | list[Any] | None]:
    """Turn a stored document back into ``(version, value)``.

    A missing document yields ``(-1, None)``.

    Raises:
        DeserializationError: If the document has no integer version.
    """
    if document is None:
        return NOT_FOUND_VERSION, None

    version = document.get(VERSION_FIELD)

    if not isinstance(version, int) or isinstance(version, bool):
        msg = "Version field not found in MongoDB document"
        raise DeserializationError(message=msg, extra_info={"document_id": str(document.get(ROUTING_FIELD))})

    value: dict[str, Any] = {field: field_value for field, field_value in document.items() if field not in RESERVED_FIELDS}

    if value.keys() == {WRAPPER_FIELD} and isinstance(value[WRAPPER_FIELD], list):
        return version, value[WRAPPER_FIELD]

    return version, value
