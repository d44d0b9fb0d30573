"""Key material: the store secret and EVM signing keys, via eth-account."""

from __future__ import annotations

import secrets
from datetime import datetime, timezone

from eth_account import Account

from custodial_wallet.config import SECRET_KEY_BYTES


def generate_secret() -> dict[str, str]:
    """Generate a fresh store secret.

    Returns
    -------
    dict
        ``{"secret": <64 hex chars>, "createdAt": <ISO-8601>}``.  The secret
        is meant to be exported as the ``SECRET`` environment variable; it is
        not persisted anywhere by this function.
    """
    return {
        "secret": secrets.token_hex(SECRET_KEY_BYTES),
        "createdAt": datetime.now(timezone.utc).isoformat(),
    }


def generate_keypair() -> tuple[str, str]:
    """Generate a new signing key.

    Returns
    -------
    tuple[str, str]
        ``(private_key_hex, checksummed_address)``.  The private key is
        ``0x``-prefixed hex.
    """
    acct = Account.create()
    return "0x" + acct.key.hex().removeprefix("0x"), acct.address


def address_from_private_key(private_key: str) -> str:
    """Derive the checksummed address for a hex private key.

    Raises
    ------
    ValueError
        If *private_key* is not a valid 32-byte key.
    """
    try:
        return Account.from_key(private_key).address
    except Exception as exc:
        raise ValueError(f"Invalid private key: {exc}") from exc
