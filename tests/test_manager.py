"""Tests for the wallet manager with a mocked RPC provider."""

from unittest.mock import MagicMock

import pytest
from eth_account import Account
from web3 import Web3

from custodial_wallet.wallet import manager
from custodial_wallet.wallet.manager import (
    FEE_PLACEHOLDER,
    SecurityError,
    WalletError,
    WalletManager,
    WalletNotFoundError,
)
from custodial_wallet.wallet.provider import format_units
from custodial_wallet.wallet.repository import WalletRepository

RECIPIENT = "0x000000000000000000000000000000000000dEaD"
TX_HASH = "0x" + "ab" * 32

ESTIMATE = {
    "maxFeePerGas": "2000000000",
    "maxFeePerGasGwei": "2",
    "maxPriorityFeePerGas": "1000000000",
    "maxPriorityFeePerGasGwei": "1",
    "estimatedGasUnits": "21000",
    "estimatedTotalFeeWei": "42000000000000",
    "estimatedTotalFeeEther": "0.000042",
}


@pytest.fixture
def provider():
    p = MagicMock()
    p.estimate_transaction_fee.return_value = dict(ESTIMATE)
    p.send_transaction.return_value = TX_HASH
    p.chain.tx_url.side_effect = lambda h: f"https://sepolia.basescan.org/tx/{h}"
    return p


@pytest.fixture
def repo(store_config):
    return WalletRepository(store_config)


class TestTransfer:

    @pytest.mark.asyncio
    async def test_happy_path(self, repo, provider):
        wallet = await repo.create_wallet()
        mgr = WalletManager(repo, provider)

        result = await mgr.transfer(wallet.publicKey, RECIPIENT, Web3.to_wei("0.01", "ether"))

        assert result.transactionHash == TX_HASH
        assert result.fromAddress == wallet.publicKey
        assert result.toAddress == Web3.to_checksum_address(RECIPIENT)
        assert result.valueSentEther == "0.01"
        assert result.estimatedFee["estimatedTotalFeeEther"] == "0.000042"

        private_key, to, value = provider.send_transaction.call_args.args
        assert Account.from_key(private_key).address == wallet.publicKey
        assert to == RECIPIENT
        assert value == 10**16

    @pytest.mark.asyncio
    async def test_lowercase_sender_resolves(self, repo, provider):
        wallet = await repo.create_wallet()
        result = await WalletManager(repo, provider).transfer(wallet.publicKey.lower(), RECIPIENT, 1)
        assert result.fromAddress == wallet.publicKey

    @pytest.mark.asyncio
    async def test_unknown_sender(self, repo, provider):
        with pytest.raises(WalletNotFoundError):
            await WalletManager(repo, provider).transfer(RECIPIENT, RECIPIENT, 1)
        provider.send_transaction.assert_not_called()

    @pytest.mark.asyncio
    async def test_key_address_mismatch_aborts(self, repo, provider):
        filed_under = Account.create().address
        await repo.store.create(
            {"id": "bad", "privateKey": Account.create().key.hex(), "publicKey": filed_under}
        )
        with pytest.raises(SecurityError):
            await WalletManager(repo, provider).transfer(filed_under, RECIPIENT, 1)
        provider.send_transaction.assert_not_called()

    @pytest.mark.asyncio
    async def test_estimate_failure_uses_placeholders(self, repo, provider):
        wallet = await repo.create_wallet()
        provider.estimate_transaction_fee.side_effect = RuntimeError("rpc down")

        result = await WalletManager(repo, provider).transfer(wallet.publicKey, RECIPIENT, 1)

        assert result.transactionHash == TX_HASH
        assert set(result.estimatedFee.values()) == {FEE_PLACEHOLDER}

    @pytest.mark.asyncio
    async def test_send_failure_raises_wallet_error(self, repo, provider):
        wallet = await repo.create_wallet()
        provider.send_transaction.side_effect = ValueError("insufficient funds for gas * price + value")

        with pytest.raises(WalletError, match="insufficient funds"):
            await WalletManager(repo, provider).transfer(wallet.publicKey, RECIPIENT, 1)


class TestGasHelpers:

    @pytest.mark.asyncio
    async def test_check_gas(self):
        provider = MagicMock()
        provider.check_gas.return_value = {"maxFeePerGas": "1"}
        assert await manager.check_gas(provider) == {"maxFeePerGas": "1"}

    @pytest.mark.asyncio
    async def test_check_gas_failure_wrapped(self):
        provider = MagicMock()
        provider.check_gas.side_effect = ConnectionError("no route")
        with pytest.raises(WalletError, match="Failed to check gas prices"):
            await manager.check_gas(provider)

    @pytest.mark.asyncio
    async def test_estimate_passes_arguments(self, provider):
        await manager.estimate_transaction_fee(provider, RECIPIENT, RECIPIENT, 5, "0x")
        provider.estimate_transaction_fee.assert_called_once_with(RECIPIENT, RECIPIENT, 5, "0x")


class TestFormatUnits:

    @pytest.mark.parametrize(
        "value, decimals, expected",
        [
            (10**18, 18, "1"),
            (42000000000000, 18, "0.000042"),
            (1500000000, 9, "1.5"),
            (0, 18, "0"),
        ],
    )
    def test_format_units(self, value, decimals, expected):
        assert format_units(value, decimals) == expected
