"""Error classes for record storage operations.

Exception Hierarchy:
    BaseRecordStorageError
    ├── RecordOperationError (operation-level errors)
    │   ├── InvalidKeyError
    │   ├── SerializationError
    │   └── DeserializationError
    └── RecordStoreError (store-level errors)
        ├── ConfigurationError
        ├── StoreSetupError
        ├── StoreClosedError
        └── BackendError
            └── StoreConnectionError
"""

ExtraInfoType = dict[str, str | int | float | bool | None]


class BaseRecordStorageError(Exception):
    """Base exception for all record storage errors."""

    extra_info: ExtraInfoType

    def __init__(self, message: str | None = None, extra_info: ExtraInfoType | None = None):
        self.extra_info = extra_info or {}

        message_parts: list[str] = []

        if message:
            message_parts.append(message)

        if extra_info:
            extra_info_str = ";".join(f"{k}: {v}" for k, v in extra_info.items())
            if message:
                extra_info_str = "(" + extra_info_str + ")"

            message_parts.append(extra_info_str)

        super().__init__(": ".join(message_parts))


class RecordOperationError(BaseRecordStorageError):
    """Base exception for errors caused by a single operation's input or data."""


class InvalidKeyError(RecordOperationError):
    """Raised when a key cannot be routed to a collection and document id."""

    key: str

    def __init__(self, key: str, reason: str | None = None):
        self.key = key
        super().__init__(
            message=f"Invalid key {key}",
            extra_info={"key": key, "reason": reason} if reason else None,
        )


class SerializationError(RecordOperationError):
    """Raised when a value cannot be converted into a stored document."""


class DeserializationError(RecordOperationError):
    """Raised when a stored document cannot be converted back into a value."""


class RecordStoreError(BaseRecordStorageError):
    """Base exception for store-level errors."""


class ConfigurationError(RecordStoreError):
    """Raised when store configuration is invalid or incomplete."""


class StoreSetupError(RecordStoreError):
    """Raised when the store could not be made ready."""


class StoreClosedError(RecordStoreError):
    """Raised when an operation is issued against a closed store."""


class BackendError(RecordStoreError):
    """Raised when the database driver reports a failure."""


class StoreConnectionError(BackendError):
    """Raised when unable to connect to or communicate with the database."""
