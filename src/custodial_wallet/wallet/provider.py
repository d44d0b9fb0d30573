"""Web3 provider for gas checks, fee estimation and native transfers."""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Optional

from web3 import Web3
from web3.middleware import ExtraDataToPOAMiddleware

from custodial_wallet.wallet.chains import Chain, get_chain

logger = logging.getLogger(__name__)

# Fallback tip when the node does not answer eth_maxPriorityFeePerGas.
DEFAULT_PRIORITY_FEE_GWEI = Decimal("1.5")


def format_units(value: int, decimals: int) -> str:
    """Render an integer amount in base units as a plain decimal string."""
    scaled = Decimal(value) / (Decimal(10) ** decimals)
    return format(scaled.normalize(), "f")


class Web3Provider:
    """Wraps a single Web3 connection for the configured chain."""

    def __init__(self, chain_name: str = "base-sepolia", rpc_url: Optional[str] = None) -> None:
        self.chain: Chain = get_chain(chain_name)
        self.rpc_url = rpc_url or self.chain.rpc_url
        self._w3: Web3 | None = None

    @property
    def w3(self) -> Web3:
        """Return the (cached) Web3 instance.

        Injects the POA middleware where the chain needs it.
        """
        if self._w3 is None:
            w3 = Web3(Web3.HTTPProvider(self.rpc_url))
            if self.chain.poa:
                w3.middleware_onion.inject(ExtraDataToPOAMiddleware, layer=0)
            self._w3 = w3
        return self._w3

    # ------------------------------------------------------------------
    # Fees
    # ------------------------------------------------------------------

    def fees_per_gas(self) -> tuple[int, int]:
        """Return ``(max_fee_per_gas, max_priority_fee_per_gas)`` in wei.

        Uses EIP-1559 fee parameters with a legacy gas price fallback.
        """
        w3 = self.w3
        try:
            priority = w3.eth.max_priority_fee
        except Exception as e:
            logger.debug(f"eth_maxPriorityFeePerGas unavailable on {self.chain.name}: {e}")
            priority = Web3.to_wei(DEFAULT_PRIORITY_FEE_GWEI, "gwei")

        latest = w3.eth.get_block("latest")
        base_fee = latest.get("baseFeePerGas")
        if base_fee is None:
            gas_price = w3.eth.gas_price
            return gas_price, min(priority, gas_price)
        return base_fee * 2 + priority, priority

    def check_gas(self) -> dict[str, str]:
        """Current fee estimates in wei and gwei."""
        logger.info(f"Checking gas fees for {self.chain.name}...")
        max_fee, priority = self.fees_per_gas()
        return {
            "maxFeePerGas": str(max_fee),
            "maxFeePerGasGwei": format_units(max_fee, 9),
            "maxPriorityFeePerGas": str(priority),
            "maxPriorityFeePerGasGwei": format_units(priority, 9),
        }

    def estimate_transaction_fee(
        self,
        from_address: str,
        to_address: str,
        value_wei: int = 0,
        data: Optional[str] = None,
    ) -> dict[str, str]:
        """Estimate gas units and the total fee for one transaction.

        The total uses ``maxFeePerGas``, so it is an upper bound.
        """
        tx: dict = {
            "from": Web3.to_checksum_address(from_address),
            "to": Web3.to_checksum_address(to_address),
            "value": value_wei,
        }
        if data:
            tx["data"] = data

        gas_units = self.w3.eth.estimate_gas(tx)
        max_fee, priority = self.fees_per_gas()
        total = gas_units * max_fee
        return {
            "maxFeePerGas": str(max_fee),
            "maxFeePerGasGwei": format_units(max_fee, 9),
            "maxPriorityFeePerGas": str(priority),
            "maxPriorityFeePerGasGwei": format_units(priority, 9),
            "estimatedGasUnits": str(gas_units),
            "estimatedTotalFeeWei": str(total),
            "estimatedTotalFeeEther": format_units(total, 18),
        }

    # ------------------------------------------------------------------
    # Sending
    # ------------------------------------------------------------------

    def send_transaction(self, private_key: str, to_address: str, value_wei: int) -> str:
        """Build, sign, and send a native-token transfer.

        Fees are fetched right before signing.  Returns the transaction hash
        as a ``0x``-prefixed hex string.
        """
        w3 = self.w3
        account = w3.eth.account.from_key(private_key)
        max_fee, priority = self.fees_per_gas()

        tx: dict = {
            "from": account.address,
            "to": Web3.to_checksum_address(to_address),
            "value": value_wei,
            "nonce": w3.eth.get_transaction_count(account.address),
            "chainId": self.chain.chain_id,
            "maxFeePerGas": max_fee,
            "maxPriorityFeePerGas": priority,
        }
        tx["gas"] = w3.eth.estimate_gas(tx)

        signed = account.sign_transaction(tx)
        tx_hash = w3.eth.send_raw_transaction(signed.raw_transaction)
        return Web3.to_hex(tx_hash)
