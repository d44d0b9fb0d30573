"""Wallet actions exposed to tool-calling clients.

Agents can create and list custodial wallets, check gas, estimate fees and
send ETH from a managed wallet.  Private keys never appear in any result:
the transfer action signs server-side.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional

from custodial_wallet.tools.registry import tool
from custodial_wallet.tools.schemas import FeeEstimateInput, TransferInput
from custodial_wallet.wallet import manager as wallet_manager
from custodial_wallet.wallet.keys import generate_secret as _generate_secret

if TYPE_CHECKING:
    from custodial_wallet.runtime import WalletRuntime

logger = logging.getLogger(__name__)

# Module-level state, set at runtime by WalletRuntime.install()
_runtime: WalletRuntime | None = None


def set_runtime(runtime: WalletRuntime | None) -> None:
    """Inject the WalletRuntime instance (called on startup)."""
    global _runtime
    _runtime = runtime


def _require_runtime() -> WalletRuntime:
    if _runtime is None:
        raise RuntimeError("Wallet runtime not configured.")
    return _runtime


@tool(
    "generate_secret",
    "Generate a new 32-byte secret key (hex) for encrypting the wallet store.",
    similes=["generate secret", "generate secret key"],
)
def generate_secret() -> dict:
    return _generate_secret()


@tool(
    "create_wallet",
    "Create a new EVM wallet. Returns its id and address; the private key stays in the encrypted store.",
    similes=["create wallet", "create new wallet"],
)
async def create_wallet() -> dict:
    rt = _require_runtime()
    summary = await rt.repository.create_wallet()
    return {"wallet": summary.model_dump()}


@tool(
    "list_wallets",
    "List all wallets (id and public address only).",
    similes=["list wallet", "list wallets"],
)
async def list_wallets() -> dict:
    rt = _require_runtime()
    wallets = await rt.repository.list_wallets()
    return {"wallets": [w.model_dump() for w in wallets]}


@tool(
    "check_gas",
    "Get the current gas fee estimates (maxFeePerGas, maxPriorityFeePerGas) in wei and gwei.",
    similes=["check gas", "gas price", "current gas fees"],
)
async def check_gas() -> dict:
    rt = _require_runtime()
    return await wallet_manager.check_gas(rt.provider)


@tool(
    "estimate_transaction_fee",
    (
        "Estimate the gas fee for a hypothetical transaction. Requires sender address, "
        "recipient address and the amount in ETH. Optionally accepts transaction data "
        "(hex string starting with 0x) for contract interactions."
    ),
    {
        "type": "object",
        "properties": {
            "fromAddress": {"type": "string", "description": "Sender address (0x...)"},
            "toAddress": {"type": "string", "description": "Recipient or contract address (0x...)"},
            "value": {"type": "string", "description": "Amount in ETH, e.g. '0.05'"},
            "data": {"type": "string", "description": "Optional call data (0x...)"},
        },
        "required": ["fromAddress", "toAddress", "value"],
    },
    similes=["estimate tx cost", "calculate transaction fee", "get fee estimate for transfer"],
)
async def estimate_transaction_fee(
    fromAddress: str,
    toAddress: str,
    value: str = "0",
    data: Optional[str] = None,
) -> dict:
    rt = _require_runtime()
    params = FeeEstimateInput(fromAddress=fromAddress, toAddress=toAddress, value=value, data=data)
    return await wallet_manager.estimate_transaction_fee(
        rt.provider, params.fromAddress, params.toAddress, params.value_wei, params.data
    )


@tool(
    "transfer_funds",
    (
        "Send ETH from a wallet managed by this system to a recipient address. Requires the "
        "sender's address, the recipient's address and the amount in ETH. Returns the "
        "transaction hash on success."
    ),
    {
        "type": "object",
        "properties": {
            "fromAddress": {"type": "string", "description": "Managed sender address (0x...)"},
            "toAddress": {"type": "string", "description": "Recipient address (0x...)"},
            "value": {"type": "string", "description": "Amount in ETH, e.g. '0.01'"},
        },
        "required": ["fromAddress", "toAddress", "value"],
    },
    similes=["send eth", "transfer funds", "send money", "make a payment"],
)
async def transfer_funds(fromAddress: str, toAddress: str, value: str) -> dict:
    rt = _require_runtime()
    params = TransferInput(fromAddress=fromAddress, toAddress=toAddress, value=value)
    logger.info(f"Transfer requested: {params.value} ETH {params.fromAddress} -> {params.toAddress}")
    result = await rt.wallet_manager.transfer(
        params.fromAddress, params.toAddress, params.value_wei
    )
    return {
        "transactionHash": result.transactionHash,
        "fromAddress": result.fromAddress,
        "toAddress": result.toAddress,
        "valueSentEther": result.valueSentEther,
        "estimatedFeeEther": result.estimatedFee.get("estimatedTotalFeeEther", "N/A"),
    }
