"""High-level wallet manager used by the actions and the CLI."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from pydantic import BaseModel
from web3 import Web3

from custodial_wallet.wallet.keys import address_from_private_key
from custodial_wallet.wallet.provider import Web3Provider, format_units
from custodial_wallet.wallet.repository import WalletRepository

logger = logging.getLogger(__name__)

FEE_PLACEHOLDER = "N/A"
FEE_FIELDS = (
    "maxFeePerGas",
    "maxFeePerGasGwei",
    "maxPriorityFeePerGas",
    "maxPriorityFeePerGasGwei",
    "estimatedGasUnits",
    "estimatedTotalFeeWei",
    "estimatedTotalFeeEther",
)


class WalletError(Exception):
    """Base class for wallet-level failures."""


class WalletNotFoundError(WalletError):
    """No managed wallet (or no signing key) for the requested address."""


class SecurityError(WalletError):
    """The stored key does not control the address it was filed under."""


class TransferResult(BaseModel):
    transactionHash: str
    fromAddress: str
    toAddress: str
    valueSentEther: str
    estimatedFee: dict[str, str]


async def check_gas(provider: Web3Provider) -> dict[str, str]:
    """Current fee data for the provider's chain, off the event loop."""
    try:
        return await asyncio.to_thread(provider.check_gas)
    except Exception as exc:
        raise WalletError(f"Failed to check gas prices: {exc}") from exc


async def estimate_transaction_fee(
    provider: Web3Provider,
    from_address: str,
    to_address: str,
    value_wei: int = 0,
    data: Optional[str] = None,
) -> dict[str, str]:
    """Fee estimate for one hypothetical transaction."""
    logger.info(f"Estimating gas and fees for transaction to {to_address}...")
    try:
        return await asyncio.to_thread(
            provider.estimate_transaction_fee, from_address, to_address, value_wei, data
        )
    except Exception as exc:
        raise WalletError(f"Failed to estimate transaction fee: {exc}") from exc


class WalletManager:
    """Orchestrates the wallet repository and the Web3 provider."""

    def __init__(self, repository: WalletRepository, provider: Web3Provider) -> None:
        self.repository = repository
        self.provider = provider

    # ------------------------------------------------------------------
    # Transfer
    # ------------------------------------------------------------------

    async def transfer(self, from_address: str, to_address: str, value_wei: int) -> TransferResult:
        """Send ``value_wei`` from a managed wallet to *to_address*.

        The signing key is recovered from the encrypted store and never
        leaves this method.

        Raises
        ------
        WalletNotFoundError
            If *from_address* is not a managed wallet.
        SecurityError
            If the stored key derives a different address.
        WalletError
            If sending fails.
        """
        logger.info(f"Fetching wallet details for address: {from_address}...")
        record = await self.repository.find_by_address(from_address)
        if record is None:
            raise WalletNotFoundError(f"Wallet not found for address: {from_address}")
        if not record.privateKey:
            raise WalletNotFoundError(
                f"Private key not found in the database record for address: {from_address}"
            )

        derived = address_from_private_key(record.privateKey)
        if derived.lower() != from_address.lower():
            raise SecurityError(
                f"Reconstructed address ({derived}) does not match requested "
                f"fromAddress ({from_address}). Aborting."
            )

        try:
            estimate = await estimate_transaction_fee(self.provider, derived, to_address, value_wei)
            logger.info(f"Initial estimated fee: {estimate['estimatedTotalFeeEther']} ETH")
        except WalletError as exc:
            logger.warning(f"Initial fee estimation failed: {exc}. Proceeding with send attempt...")
            estimate = {name: FEE_PLACEHOLDER for name in FEE_FIELDS}

        value_ether = format_units(value_wei, 18)
        logger.info(f"Sending {value_ether} ETH from {derived} to {to_address}...")
        try:
            tx_hash = await asyncio.to_thread(
                self.provider.send_transaction, record.privateKey, to_address, value_wei
            )
        except Exception as exc:
            message = str(exc)
            if "insufficient funds" in message:
                logger.error(
                    f"The sending wallet ({derived}) likely does not have enough ETH "
                    "to cover the amount + gas fees."
                )
            elif "nonce" in message:
                logger.error("Nonce error. Another transaction from this account may be pending.")
            raise WalletError(f"Failed to send transaction: {message}") from exc

        logger.info(f"Transaction sent: {self.provider.chain.tx_url(tx_hash)}")
        return TransferResult(
            transactionHash=tx_hash,
            fromAddress=derived,
            toAddress=Web3.to_checksum_address(to_address),
            valueSentEther=value_ether,
            estimatedFee=estimate,
        )
