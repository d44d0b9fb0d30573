"""Process-wide wiring of configuration, store, provider and clients."""

from __future__ import annotations

import logging

from custodial_wallet.coins.client import CoinsClient
from custodial_wallet.config import AppConfig
from custodial_wallet.wallet.manager import WalletManager
from custodial_wallet.wallet.provider import Web3Provider
from custodial_wallet.wallet.repository import WalletRepository

logger = logging.getLogger(__name__)


class WalletRuntime:
    """Builds collaborators on first use.

    The wallet store is opened lazily so that actions which never touch it
    (``generate_secret``, coin lookups) work before a secret is configured.
    A missing secret surfaces as :class:`ConfigurationError` the first time
    a wallet action runs.
    """

    def __init__(self, config: AppConfig) -> None:
        self.config = config
        self._repository: WalletRepository | None = None
        self._provider: Web3Provider | None = None
        self._manager: WalletManager | None = None
        self.coins = CoinsClient(
            base_url=config.coins.base_url,
            api_key=config.coins.api_key,
            chain_id=config.coins.chain_id,
            timeout=config.coins.timeout,
        )

    @property
    def repository(self) -> WalletRepository:
        if self._repository is None:
            self._repository = WalletRepository(self.config.store)
            logger.debug(f"Wallet store opened at {self._repository.store.path}")
        return self._repository

    @property
    def provider(self) -> Web3Provider:
        if self._provider is None:
            self._provider = Web3Provider(self.config.chain.name, self.config.chain.rpc_url)
        return self._provider

    @property
    def wallet_manager(self) -> WalletManager:
        if self._manager is None:
            self._manager = WalletManager(self.repository, self.provider)
        return self._manager

    def install(self) -> None:
        """Make this runtime the one the registered actions use."""
        from custodial_wallet.tools import coin_tools, wallet_tools

        wallet_tools.set_runtime(self)
        coin_tools.set_runtime(self)
