"""Encrypted document store.

Combines :class:`EnvelopeCipher` and :class:`CollectionFile` into a CRUD
surface over plaintext documents.  Documents are plain dicts that always
carry a caller-supplied ``id``; ``createdAt`` / ``updatedAt`` are managed
here.  Nothing reaches the collection file except envelopes.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Optional

from custodial_wallet.storage import query as q
from custodial_wallet.storage.backend import CollectionFile
from custodial_wallet.storage.envelope import EnvelopeCipher

if TYPE_CHECKING:
    from custodial_wallet.config import StoreConfig

logger = logging.getLogger(__name__)

ID_FIELD = "id"
CREATED_AT = "createdAt"
UPDATED_AT = "updatedAt"

Document = dict[str, Any]


def _now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class DocumentStore:
    """Schema-agnostic CRUD over one encrypted collection.

    Parameters
    ----------
    collection:
        Collection name; the backing file is ``<data_dir>/<collection>.db``.
    config:
        Store settings holding the data directory and the secret key.  The
        key is resolved before any file is touched, so a missing secret
        fails fast with :class:`ConfigurationError`.
    """

    def __init__(self, collection: str, config: StoreConfig) -> None:
        key = config.secret_key()
        self.collection = collection
        self.path = config.data_dir / f"{collection}.db"
        self._cipher = EnvelopeCipher(key)
        self._file = CollectionFile(self.path, self._cipher, unique_field=ID_FIELD)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _decrypt_all(self) -> list[tuple[str, Document]]:
        results = []
        for record_id, envelope in self._file.envelopes():
            document = self._cipher.decrypt(envelope)
            if document is None:
                logger.warning(f"Skipping unreadable record {record_id} in '{self.collection}'")
                continue
            results.append((record_id, document))
        return results

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    async def create(self, data: Document) -> Document:
        """Insert a new document and return it as stored.

        Raises
        ------
        ValueError
            If *data* has no ``id``.
        DuplicateKeyError
            If a document with the same ``id`` already exists.
        """
        if data.get(ID_FIELD) is None:
            raise ValueError(f"Document is missing the '{ID_FIELD}' field")

        now = _now()
        document = {**data, CREATED_AT: now, UPDATED_AT: now}
        envelope = self._cipher.encrypt(document)
        await self._file.insert(envelope, document[ID_FIELD])
        logger.debug(f"Created document in '{self.collection}'")

        # Read back what was stored rather than echoing the input.
        return self._cipher.decrypt(envelope)

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    async def get_by_id(self, doc_id: Any) -> Optional[Document]:
        """Return the document with the given ``id``, or ``None``."""
        stored = self._file.lookup(doc_id)
        if stored is None:
            return None
        return self._cipher.decrypt(stored[1])

    async def get_all(self) -> list[Document]:
        """Return every readable document in creation order."""
        return [doc for _, doc in self._decrypt_all()]

    async def find(self, query: Optional[q.Query] = None) -> list[Document]:
        """Return documents matching *query* (see :mod:`custodial_wallet.storage.query`)."""
        q.validate(query)
        return [doc for _, doc in self._decrypt_all() if q.matches(doc, query)]

    async def find_one(self, query: Optional[q.Query] = None) -> Optional[Document]:
        found = await self.find(query)
        return found[0] if found else None

    async def count(self, query: Optional[q.Query] = None) -> int:
        """Count matching documents without returning them."""
        q.validate(query)
        return sum(1 for _, doc in self._decrypt_all() if q.matches(doc, query))

    # ------------------------------------------------------------------
    # Update
    # ------------------------------------------------------------------

    async def update(self, doc_id: Any, patch: Document) -> Optional[Document]:
        """Merge *patch* into a document and return the result.

        ``createdAt`` is preserved and ``updatedAt`` refreshed regardless of
        what the patch contains.  Returns ``None`` if no document has that
        ``id`` by the time earlier mutations have been applied.
        """
        merged: Optional[Document] = None

        def apply(envelope: str) -> Optional[tuple[str, Any]]:
            nonlocal merged
            current = self._cipher.decrypt(envelope)
            if current is None:
                logger.warning(f"Cannot update unreadable document {doc_id!r} in '{self.collection}'")
                return None
            merged = {**current, **patch}
            merged[CREATED_AT] = current.get(CREATED_AT)
            merged[UPDATED_AT] = _now()
            if merged.get(ID_FIELD) is None:
                merged[ID_FIELD] = current[ID_FIELD]
            return self._cipher.encrypt(merged), merged[ID_FIELD]

        if not await self._file.update(doc_id, apply):
            return None
        return merged

    # ------------------------------------------------------------------
    # Delete
    # ------------------------------------------------------------------

    async def delete(self, doc_id: Any) -> int:
        """Delete by ``id``.  Returns 1, or 0 if nothing matched."""
        return await self._file.remove_key(doc_id)

    async def delete_many(self, query: Optional[q.Query] = None) -> int:
        """Delete every readable document matching *query*; returns the count."""
        q.validate(query)

        def doomed(envelope: str) -> bool:
            document = self._cipher.decrypt(envelope)
            return document is not None and q.matches(document, query)

        return await self._file.remove_matching(doomed)

    async def reload(self) -> None:
        """Re-read the collection file from disk."""
        await self._file.reload()


# ------------------------------------------------------------------
# Convenience factory
# ------------------------------------------------------------------

def open_store(collection: str, config: StoreConfig) -> DocumentStore:
    """Return a :class:`DocumentStore` for ``<data_dir>/<collection>.db``."""
    return DocumentStore(collection, config)
