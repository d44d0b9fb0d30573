"""File-backed collection of encrypted envelopes.

One collection lives in one newline-delimited file.  Every line is a JSON
object::

    {"_id": "<internal record id>", "encryptedData": "<iv_hex>:<ciphertext_hex>"}

The whole file is read into memory on construction and rewritten in full
(temp file + fsync + rename) after every mutation.  A rewrite costs
O(collection size); collections here hold a handful of wallets, so there is
no append log and no compaction step.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import uuid
from pathlib import Path
from typing import Callable, Iterable, Optional

from custodial_wallet.storage.envelope import EnvelopeCipher
from custodial_wallet.storage.errors import DuplicateKeyError, StoreIOError

logger = logging.getLogger(__name__)

ENVELOPE_FIELD = "encryptedData"
RECORD_ID_FIELD = "_id"


def _new_record_id() -> str:
    return uuid.uuid4().hex


class CollectionFile:
    """In-memory index of envelopes with a synchronous full-file flush.

    Parameters
    ----------
    path:
        The collection file, e.g. ``data/wallet.db``.  Missing parent
        directories and the file itself are created on construction.
    cipher:
        Used only while loading, to read the unique field out of each
        envelope and to detect unreadable records.
    unique_field:
        Document field whose value must be unique within the collection.
    """

    def __init__(self, path: Path, cipher: EnvelopeCipher, unique_field: str = "id") -> None:
        self.path = Path(path)
        self.name = self.path.stem
        self.unique_field = unique_field
        self._cipher = cipher
        # record id -> envelope, in insertion order
        self._records: dict[str, str] = {}
        # unique value -> record id
        self._index: dict[object, str] = {}
        # raw lines that could not be read; written back untouched on resync
        self._unreadable: list[str] = []
        self._lock = asyncio.Lock()
        self.load()

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def load(self) -> None:
        """(Re)load the collection from disk, skipping unreadable lines."""
        self._records.clear()
        self._index.clear()
        self._unreadable.clear()

        if not self.path.exists():
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.touch()
            logger.info(f"Created collection file: {self.path}")
            return

        text = self.path.read_text(encoding="utf-8")
        for lineno, line in enumerate(text.splitlines(), start=1):
            if not line.strip():
                continue
            problem = self._load_line(line)
            if problem:
                logger.warning(f"{self.path}:{lineno}: skipping unreadable record ({problem})")
                self._unreadable.append(line)

        logger.debug(
            f"Loaded {len(self._records)} record(s) from {self.path} "
            f"({len(self._unreadable)} unreadable)"
        )

    def _load_line(self, line: str) -> Optional[str]:
        """Index one line.  Returns why it was rejected, or ``None``."""
        try:
            raw = json.loads(line)
        except json.JSONDecodeError:
            return "not JSON"
        if not isinstance(raw, dict) or not isinstance(raw.get(ENVELOPE_FIELD), str):
            return f"no '{ENVELOPE_FIELD}' field"

        envelope = raw[ENVELOPE_FIELD]
        document = self._cipher.decrypt(envelope)
        if document is None:
            return "cannot decrypt"
        if self.unique_field not in document:
            return f"no '{self.unique_field}' field"

        key = document[self.unique_field]
        if key in self._index:
            return f"duplicate {self.unique_field}={key!r}, keeping the first occurrence"

        record_id = raw.get(RECORD_ID_FIELD) or _new_record_id()
        if record_id in self._records:
            record_id = _new_record_id()
        self._records[record_id] = envelope
        self._index[key] = record_id
        return None

    # ------------------------------------------------------------------
    # Reads (memory only)
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, key: object) -> bool:
        return key in self._index

    def lookup(self, key: object) -> Optional[tuple[str, str]]:
        """Return ``(record_id, envelope)`` for a unique value, or ``None``."""
        record_id = self._index.get(key)
        if record_id is None:
            return None
        return record_id, self._records[record_id]

    def envelopes(self) -> list[tuple[str, str]]:
        """Snapshot of ``(record_id, envelope)`` pairs in insertion order."""
        return list(self._records.items())

    # ------------------------------------------------------------------
    # Mutations (memory + full resync)
    # ------------------------------------------------------------------
    #
    # Every mutation holds ``_lock`` from its lookup to the end of its flush,
    # so mutations on one collection apply in the order they were issued.

    async def insert(self, envelope: str, key: object) -> str:
        """Add a record and flush.  Returns the new internal record id.

        Raises
        ------
        DuplicateKeyError
            If *key* is already present.
        StoreIOError
            If the flush fails.
        """
        async with self._lock:
            if key in self._index:
                raise DuplicateKeyError(self.name, self.unique_field, key)
            record_id = _new_record_id()
            self._records[record_id] = envelope
            self._index[key] = record_id
            await self._resync()
            return record_id

    async def replace(self, record_id: str, envelope: str, key: object) -> bool:
        """Swap the envelope of an existing record and flush.

        *key* is the unique value of the new document; the index follows it
        if it changed.  Returns ``False`` if the record no longer exists.
        """
        async with self._lock:
            if record_id not in self._records:
                return False
            await self._swap(record_id, envelope, key)
            return True

    async def update(
        self, key: object, transform: Callable[[str], Optional[tuple[str, object]]]
    ) -> bool:
        """Rewrite the record holding *key* and flush.

        *transform* receives the current envelope and returns
        ``(new_envelope, new_key)``, or ``None`` to leave the record alone.
        It runs under the collection lock, after every earlier mutation has
        been applied.  Returns ``True`` if a record was rewritten.
        """
        async with self._lock:
            record_id = self._index.get(key)
            if record_id is None:
                return False
            result = transform(self._records[record_id])
            if result is None:
                return False
            envelope, new_key = result
            await self._swap(record_id, envelope, new_key)
            return True

    async def remove(self, record_ids: Iterable[str]) -> int:
        """Drop records by internal id, flush once, and return how many went."""
        async with self._lock:
            return await self._drop({rid for rid in record_ids if rid in self._records})

    async def remove_key(self, key: object) -> int:
        """Drop the record holding *key*.  Returns 1, or 0 if there is none."""
        async with self._lock:
            record_id = self._index.get(key)
            if record_id is None:
                return 0
            return await self._drop({record_id})

    async def remove_matching(self, predicate: Callable[[str], bool]) -> int:
        """Drop every record whose envelope satisfies *predicate*."""
        async with self._lock:
            return await self._drop(
                {rid for rid, envelope in self._records.items() if predicate(envelope)}
            )

    async def reload(self) -> None:
        """Re-read the file off the event loop, after pending mutations."""
        async with self._lock:
            await asyncio.to_thread(self.load)

    async def _swap(self, record_id: str, envelope: str, key: object) -> None:
        owner = self._index.get(key)
        if owner is not None and owner != record_id:
            raise DuplicateKeyError(self.name, self.unique_field, key)

        for old_key, rid in list(self._index.items()):
            if rid == record_id and old_key != key:
                del self._index[old_key]
        self._index[key] = record_id
        self._records[record_id] = envelope
        await self._resync()

    async def _drop(self, doomed: set[str]) -> int:
        if not doomed:
            return 0
        for rid in doomed:
            del self._records[rid]
        for key, rid in list(self._index.items()):
            if rid in doomed:
                del self._index[key]
        await self._resync()
        return len(doomed)

    # ------------------------------------------------------------------
    # Resync
    # ------------------------------------------------------------------

    def _serialize(self) -> str:
        lines = [
            json.dumps({RECORD_ID_FIELD: rid, ENVELOPE_FIELD: envelope})
            for rid, envelope in self._records.items()
        ]
        lines.extend(self._unreadable)
        return "".join(line + "\n" for line in lines)

    def _write(self, payload: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(tmp, "w", encoding="utf-8") as fh:
            fh.write(payload)
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp, self.path)

    async def _resync(self) -> None:
        payload = self._serialize()
        try:
            await asyncio.to_thread(self._write, payload)
        except OSError as exc:
            logger.error(f"Failed to write collection file {self.path}: {exc}")
            raise StoreIOError(f"Failed to write {self.path}: {exc}") from exc
