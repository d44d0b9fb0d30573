"""Coin data actions: metadata, profile balances and last-traded coins."""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from custodial_wallet.tools.registry import tool
from custodial_wallet.tools.schemas import PageInput

if TYPE_CHECKING:
    from custodial_wallet.runtime import WalletRuntime

# Module-level state, set at runtime by WalletRuntime.install()
_runtime: WalletRuntime | None = None


def set_runtime(runtime: WalletRuntime | None) -> None:
    global _runtime
    _runtime = runtime


def _require_runtime() -> WalletRuntime:
    if _runtime is None:
        raise RuntimeError("Wallet runtime not configured.")
    return _runtime


_PAGING = {
    "count": {"type": "integer", "description": "Items per page (1-100). Default: 20"},
    "after": {"type": "string", "description": "Pagination cursor from a previous call"},
}


@tool(
    "get_coin",
    "Fetch metadata (name, symbol, supply, market cap, holders) for a coin contract address.",
    {
        "type": "object",
        "properties": {
            "address": {"type": "string", "description": "Coin contract address (0x...)"},
        },
        "required": ["address"],
    },
    similes=["get coin", "coin info", "token details"],
)
async def get_coin(address: str) -> dict:
    rt = _require_runtime()
    return await rt.coins.get_coin(address.strip())


@tool(
    "get_coin_balance",
    "List the coin balances held by an address or profile handle.",
    {
        "type": "object",
        "properties": {
            "identifier": {"type": "string", "description": "Wallet address or profile handle"},
            **_PAGING,
        },
        "required": ["identifier"],
    },
    similes=["coin balance", "what coins does this wallet hold"],
)
async def get_coin_balance(identifier: str, count: int = 20, after: Optional[str] = None) -> dict:
    rt = _require_runtime()
    page = PageInput(count=count, after=after)
    return await rt.coins.get_profile_balances(identifier.strip(), page.count, page.after)


@tool(
    "get_last_traded_coin",
    "List the most recently traded coins, ranked, with pagination.",
    {"type": "object", "properties": dict(_PAGING), "required": []},
    similes=["last traded coins", "recent coin trades"],
)
async def get_last_traded_coin(count: int = 20, after: Optional[str] = None) -> dict:
    rt = _require_runtime()
    page = PageInput(count=count, after=after)
    return await rt.coins.get_last_traded(page.count, page.after)
