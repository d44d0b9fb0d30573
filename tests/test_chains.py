"""Tests for chain resolution."""

import pytest

from custodial_wallet.wallet.chains import BASE_SEPOLIA, get_chain


class TestGetChain:

    def test_default_chain(self):
        chain = get_chain("base-sepolia")
        assert chain is BASE_SEPOLIA
        assert chain.chain_id == 84532
        assert chain.testnet

    @pytest.mark.parametrize("name", ["Base-Sepolia", " base_sepolia ", 84532, "84532"])
    def test_aliases_and_ids(self, name):
        assert get_chain(name) is BASE_SEPOLIA

    def test_sepolia_without_poa(self):
        assert get_chain("sepolia").poa is False
        assert get_chain(8453).name == "base"

    def test_unknown(self):
        with pytest.raises(KeyError, match="Available"):
            get_chain("dogechain")

    def test_tx_url(self):
        assert BASE_SEPOLIA.tx_url("0xabc") == "https://sepolia.basescan.org/tx/0xabc"
