"""Tests for the coin metadata client, against an in-process httpx transport."""

import httpx
import pytest

from custodial_wallet.coins import CoinsAPIError, CoinsClient

COIN = "0x1111111111111111111111111111111111111111"


def _client(handler, **kwargs):
    return CoinsClient(
        base_url="https://coins.test",
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


class TestGetCoin:

    @pytest.mark.asyncio
    async def test_projects_fields(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["params"] = dict(request.url.params)
            seen["api_key"] = request.headers.get("api-key")
            return httpx.Response(
                200,
                json={
                    "zora20Token": {
                        "name": "Test Coin",
                        "symbol": "TST",
                        "totalSupply": "1000",
                        "marketCap": "12.5",
                        "uniqueHolders": 3,
                        "creatorAddress": "0xabc",
                        "mediaContent": {"previewImage": {"medium": "https://img/m.png"}},
                        "ignored": "field",
                    }
                },
            )

        result = await _client(handler, api_key="k123").get_coin(COIN)

        assert seen == {
            "path": "/coin",
            "params": {"address": COIN, "chain": "84532"},
            "api_key": "k123",
        }
        assert result["name"] == "Test Coin"
        assert result["uniqueHolders"] == 3
        assert result["previewImage"] == "https://img/m.png"
        assert "ignored" not in result

    @pytest.mark.asyncio
    async def test_not_found(self):
        result = await _client(lambda r: httpx.Response(200, json={})).get_coin(COIN)
        assert result == {"message": "Coin not found"}

    @pytest.mark.asyncio
    async def test_no_api_key_header_by_default(self):
        def handler(request):
            assert "api-key" not in request.headers
            return httpx.Response(200, json={})

        await _client(handler).get_coin(COIN)

    @pytest.mark.asyncio
    async def test_http_error(self):
        client = _client(lambda r: httpx.Response(500, text="boom"))
        with pytest.raises(CoinsAPIError):
            await client.get_coin(COIN)

    @pytest.mark.asyncio
    async def test_invalid_json(self):
        client = _client(lambda r: httpx.Response(200, text="<html>"))
        with pytest.raises(CoinsAPIError):
            await client.get_coin(COIN)


class TestListings:

    @pytest.mark.asyncio
    async def test_profile_balances(self):
        def handler(request):
            assert request.url.path == "/profileBalances"
            assert request.url.params["identifier"] == "alice"
            assert request.url.params["count"] == "2"
            assert "after" not in request.url.params
            return httpx.Response(
                200,
                json={
                    "profile": {
                        "coinBalances": {
                            "edges": [
                                {"node": {"balance": "5", "coin": {"name": "A"}}},
                                {"node": {"balance": "7", "coin": {"name": "B"}}},
                            ],
                            "pageInfo": {"endCursor": "cur-2", "hasNextPage": True},
                        }
                    }
                },
            )

        result = await _client(handler).get_profile_balances("alice", count=2)
        assert result["totalBalances"] == 2
        assert [b["coin"]["name"] for b in result["balances"]] == ["A", "B"]
        assert result["pagination"] == {"endCursor": "cur-2"}

    @pytest.mark.asyncio
    async def test_profile_without_balances(self):
        result = await _client(lambda r: httpx.Response(200, json={"profile": None})).get_profile_balances("x")
        assert result == {"totalBalances": 0, "balances": [], "pagination": {"endCursor": None}}

    @pytest.mark.asyncio
    async def test_last_traded_ranks_and_paginates(self):
        def handler(request):
            assert request.url.path == "/explore"
            assert request.url.params["listType"] == "LAST_TRADED"
            assert request.url.params["after"] == "c0"
            return httpx.Response(
                200,
                json={
                    "exploreList": {
                        "edges": [
                            {"node": {"name": "First", "symbol": "F", "address": "0x1"}},
                            {"node": {"name": "Second", "symbol": "S", "address": "0x2"}},
                        ],
                        "pageInfo": {"endCursor": "c1", "hasNextPage": True},
                    }
                },
            )

        result = await _client(handler).get_last_traded(count=2, after="c0")
        assert [(t["rank"], t["name"]) for t in result["tokens"]] == [(1, "First"), (2, "Second")]
        assert result["pagination"] == {"nextCursor": "c1"}

    @pytest.mark.asyncio
    async def test_last_traded_final_page(self):
        payload = {"exploreList": {"edges": [], "pageInfo": {"hasNextPage": False}}}
        result = await _client(lambda r: httpx.Response(200, json=payload)).get_last_traded()
        assert result == {"tokens": [], "pagination": None}
