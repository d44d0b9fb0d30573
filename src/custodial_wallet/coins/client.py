"""Coin metadata client for the Zora coins REST API.

Uses the public REST endpoints directly via httpx.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api-sdk.zora.engineering"
BASE_SEPOLIA_CHAIN_ID = 84532


class CoinsAPIError(Exception):
    """The coin API returned an error or an unexpected payload."""


def _preview_image(node: dict) -> Optional[str]:
    media = node.get("mediaContent") or node.get("media") or {}
    preview = media.get("previewImage")
    if isinstance(preview, dict):
        return preview.get("medium") or preview.get("small")
    return preview or None


class CoinsClient:
    """Thin async client over the coin metadata endpoints.

    Parameters
    ----------
    base_url:
        API root.
    api_key:
        Optional API key, sent as the ``api-key`` header.
    chain_id:
        Chain the coin lookups are scoped to (Base Sepolia by default).
    transport:
        Optional httpx transport, mainly for tests.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        api_key: str = "",
        chain_id: int = BASE_SEPOLIA_CHAIN_ID,
        timeout: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.chain_id = chain_id
        self._timeout = timeout
        self._transport = transport
        self._headers = {"Accept": "application/json"}
        if api_key:
            self._headers["api-key"] = api_key

    async def _get(self, path: str, params: dict[str, Any]) -> dict:
        params = {k: v for k, v in params.items() if v is not None}
        async with httpx.AsyncClient(
            base_url=self.base_url,
            headers=self._headers,
            timeout=self._timeout,
            transport=self._transport,
        ) as client:
            try:
                resp = await client.get(path, params=params)
                resp.raise_for_status()
            except httpx.HTTPError as exc:
                raise CoinsAPIError(f"Coin API request to {path} failed: {exc}") from exc
        try:
            payload = resp.json()
        except ValueError as exc:
            raise CoinsAPIError(f"Coin API returned invalid JSON for {path}") from exc
        if not isinstance(payload, dict):
            raise CoinsAPIError(f"Unexpected response from {path}")
        return payload

    # ------------------------------------------------------------------
    # Endpoints
    # ------------------------------------------------------------------

    async def get_coin(self, address: str) -> dict[str, Any]:
        """Fetch metadata for one coin contract."""
        payload = await self._get("/coin", {"address": address, "chain": self.chain_id})
        coin = payload.get("zora20Token")
        if not coin:
            return {"message": "Coin not found"}

        return {
            "name": coin.get("name"),
            "symbol": coin.get("symbol"),
            "description": coin.get("description"),
            "totalSupply": coin.get("totalSupply"),
            "marketCap": coin.get("marketCap"),
            "volume24h": coin.get("volume24h"),
            "creatorAddress": coin.get("creatorAddress"),
            "createdAt": coin.get("createdAt"),
            "uniqueHolders": coin.get("uniqueHolders"),
            "previewImage": _preview_image(coin),
        }

    async def get_profile_balances(
        self,
        identifier: str,
        count: int = 20,
        after: Optional[str] = None,
    ) -> dict[str, Any]:
        """Coin balances held by an address or profile handle, one page at a time."""
        payload = await self._get(
            "/profileBalances",
            {
                "identifier": identifier,
                "count": count,
                "after": after,
                "chainIds": self.chain_id,
            },
        )
        profile = payload.get("profile") or {}
        coin_balances = profile.get("coinBalances") or {}
        balances = [edge.get("node", edge) for edge in coin_balances.get("edges") or []]
        page_info = coin_balances.get("pageInfo") or {}
        return {
            "totalBalances": len(balances),
            "balances": balances,
            "pagination": {"endCursor": page_info.get("endCursor")},
        }

    async def get_last_traded(self, count: int = 20, after: Optional[str] = None) -> dict[str, Any]:
        """The most recently traded coins, ranked in response order."""
        payload = await self._get(
            "/explore",
            {"listType": "LAST_TRADED", "count": count, "after": after},
        )
        explore = payload.get("exploreList") or {}
        tokens = []
        for rank, edge in enumerate(explore.get("edges") or [], start=1):
            node = edge.get("node") or {}
            tokens.append(
                {
                    "rank": rank,
                    "name": node.get("name"),
                    "symbol": node.get("symbol"),
                    "marketCap": node.get("marketCap"),
                    "volume24h": node.get("volume24h"),
                    "address": node.get("address"),
                    "creatorAddress": node.get("creatorAddress"),
                    "previewImage": _preview_image(node),
                }
            )

        page_info = explore.get("pageInfo") or {}
        pagination = (
            {"nextCursor": page_info.get("endCursor")}
            if page_info.get("hasNextPage")
            else None
        )
        return {"tokens": tokens, "pagination": pagination}
