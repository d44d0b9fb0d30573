"""Read-only coin metadata lookups."""

from custodial_wallet.coins.client import CoinsAPIError, CoinsClient

__all__ = ["CoinsAPIError", "CoinsClient"]
