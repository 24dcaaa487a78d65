"""Versioned record storage on MongoDB, with keys routed into per-prefix collections."""

from record_storage.callbacks import CallbackRecordStorage
from record_storage.codec import decode_record, encode_record
from record_storage.collection_cache import CollectionCache
from record_storage.errors import (
    BackendError,
    BaseRecordStorageError,
    ConfigurationError,
    DeserializationError,
    InvalidKeyError,
    RecordOperationError,
    RecordStoreError,
    SerializationError,
    StoreClosedError,
    StoreConnectionError,
    StoreSetupError,
)
from record_storage.options import StorageOptions
from record_storage.routing import KeyRouter, RoutedLocation, route_key
from record_storage.store import MongoDBRecordStore

__all__ = [
    "BackendError",
    "BaseRecordStorageError",
    "CallbackRecordStorage",
    "CollectionCache",
    "ConfigurationError",
    "DeserializationError",
    "InvalidKeyError",
    "KeyRouter",
    "MongoDBRecordStore",
    "RecordOperationError",
    "RecordStoreError",
    "RoutedLocation",
    "SerializationError",
    "StorageOptions",
    "StoreClosedError",
    "StoreConnectionError",
    "StoreSetupError",
    "decode_record",
    "encode_record",
    "route_key",
]
