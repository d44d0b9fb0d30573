"""Exceptions raised by the encrypted document store."""

from __future__ import annotations


class StoreError(Exception):
    """Base class for every store-layer failure."""


class ConfigurationError(StoreError):
    """The secret key is missing or malformed. Fatal, never retried."""


class DuplicateKeyError(StoreError):
    """An insert or update would create a second record with the same unique value."""

    def __init__(self, collection: str, field: str, value: object) -> None:
        self.collection = collection
        self.field = field
        self.value = value
        super().__init__(
            f"Duplicate identifier: a document with {field}={value!r} "
            f"already exists in '{collection}'."
        )


class StoreIOError(StoreError):
    """Writing a collection file failed.

    The in-memory state of the collection may no longer match the file on
    disk after this error.
    """


class InvalidQueryError(StoreError, ValueError):
    """A query used an operator the store does not understand."""
