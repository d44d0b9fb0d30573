"""Shared fixtures for the custodial wallet tests."""

import pytest

from custodial_wallet.config import StoreConfig
from custodial_wallet.storage.envelope import EnvelopeCipher

TEST_SECRET = "11" * 32
OTHER_SECRET = "22" * 32


@pytest.fixture
def store_config(tmp_path):
    return StoreConfig(data_dir=tmp_path / "data", secret=TEST_SECRET)


@pytest.fixture
def cipher():
    return EnvelopeCipher(bytes.fromhex(TEST_SECRET))


@pytest.fixture(autouse=True)
def _no_ambient_env(monkeypatch):
    """Keep developer environment variables out of config tests."""
    for name in (
        "SECRET",
        "CUSTODIAL_WALLET_DATA_DIR",
        "CUSTODIAL_WALLET_CHAIN",
        "CUSTODIAL_WALLET_RPC_URL",
        "ZORA_API_KEY",
        "CUSTODIAL_WALLET_CONFIG",
    ):
        monkeypatch.delenv(name, raising=False)
