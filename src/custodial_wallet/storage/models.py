"""Pydantic models for the records kept in the encrypted store."""

from __future__ import annotations

import secrets

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _new_id() -> str:
    """Generate a 32-character hex wallet ID."""
    return secrets.token_hex(16)


# ---------------------------------------------------------------------------
# Wallet models
# ---------------------------------------------------------------------------

class WalletListing(BaseModel):
    """What ``list_wallets`` exposes: identity and address only."""

    id: str
    publicKey: str


class WalletSummary(WalletListing):
    """What ``create_wallet`` returns.  Never carries the private key."""

    createdAt: str
    updatedAt: str


class WalletRecord(WalletSummary):
    """Maps to one document of the ``wallet`` collection.

    Internal to the trust boundary: the transfer flow needs ``privateKey``
    to sign, nothing else should ever see it.
    """

    model_config = ConfigDict(extra="ignore")

    privateKey: str = Field(repr=False)

    @classmethod
    def new_id(cls) -> str:
        return _new_id()

    def summary(self) -> WalletSummary:
        return WalletSummary(
            id=self.id,
            publicKey=self.publicKey,
            createdAt=self.createdAt,
            updatedAt=self.updatedAt,
        )
