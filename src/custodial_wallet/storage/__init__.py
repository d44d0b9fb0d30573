"""Custodial wallet storage layer -- encrypted document store and Pydantic models."""

from custodial_wallet.storage.backend import CollectionFile
from custodial_wallet.storage.document_store import DocumentStore, open_store
from custodial_wallet.storage.envelope import EnvelopeCipher
from custodial_wallet.storage.errors import (
    ConfigurationError,
    DuplicateKeyError,
    InvalidQueryError,
    StoreError,
    StoreIOError,
)
from custodial_wallet.storage.models import WalletListing, WalletRecord, WalletSummary

__all__ = [
    "CollectionFile",
    "DocumentStore",
    "open_store",
    "EnvelopeCipher",
    "ConfigurationError",
    "DuplicateKeyError",
    "InvalidQueryError",
    "StoreError",
    "StoreIOError",
    "WalletListing",
    "WalletRecord",
    "WalletSummary",
]
