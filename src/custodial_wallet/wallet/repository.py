"""Typed facade over the ``wallet`` collection."""

from __future__ import annotations

import logging
from typing import Optional

from custodial_wallet.config import StoreConfig
from custodial_wallet.storage.document_store import DocumentStore
from custodial_wallet.storage.models import WalletListing, WalletRecord, WalletSummary
from custodial_wallet.wallet.keys import generate_keypair

logger = logging.getLogger(__name__)

WALLET_COLLECTION = "wallet"


class WalletRepository:
    """Create, list and look up custodial wallets.

    Only :meth:`find_by_address` and :meth:`get` return the private key, and
    only to callers inside the process (the transfer flow).  Everything that
    crosses the action boundary goes through :class:`WalletSummary` or
    :class:`WalletListing`.
    """

    def __init__(self, config: StoreConfig, store: DocumentStore | None = None) -> None:
        self.store = store or DocumentStore(WALLET_COLLECTION, config)

    async def create_wallet(self) -> WalletSummary:
        """Generate a keypair, persist it encrypted, and return the public view."""
        private_key, address = generate_keypair()
        stored = await self.store.create(
            {
                "id": WalletRecord.new_id(),
                "privateKey": private_key,
                "publicKey": address,
            }
        )
        record = WalletRecord.model_validate(stored)
        logger.info(f"Wallet created: {record.publicKey} (id={record.id})")
        return record.summary()

    async def list_wallets(self) -> list[WalletListing]:
        """All wallets in creation order, as ``{id, publicKey}``."""
        docs = await self.store.get_all()
        return [WalletListing(id=d["id"], publicKey=d["publicKey"]) for d in docs]

    async def get(self, wallet_id: str) -> Optional[WalletRecord]:
        doc = await self.store.get_by_id(wallet_id)
        return WalletRecord.model_validate(doc) if doc else None

    async def find_by_address(self, address: str) -> Optional[WalletRecord]:
        """Return the full internal record for *address*, or ``None``.

        Addresses are matched exactly first, then case-insensitively so
        that a lower-cased address still finds its checksummed record.
        """
        docs = await self.store.find({"publicKey": address})
        if not docs:
            wanted = address.lower()
            docs = [
                d for d in await self.store.get_all()
                if str(d.get("publicKey", "")).lower() == wanted
            ]
        if not docs:
            return None
        if len(docs) > 1:
            logger.warning(f"Multiple wallet records found for address {address}. Using the first one.")
        return WalletRecord.model_validate(docs[0])

    async def delete_wallet(self, wallet_id: str) -> int:
        return await self.store.delete(wallet_id)
