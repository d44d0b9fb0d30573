"""Configuration system for the custodial wallet toolkit.

Loads an optional YAML config file, supports ``${VAR}`` environment variable
expansion, and overlays the well-known environment variables (``SECRET``,
``CUSTODIAL_WALLET_DATA_DIR``, ...).  The resulting :class:`AppConfig` is
built once at startup and handed explicitly to every store and repository.
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Optional

import yaml
from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel, Field

from custodial_wallet.storage.errors import ConfigurationError

SECRET_KEY_BYTES = 32
SECRET_ENV_VAR = "SECRET"


# ---------------------------------------------------------------------------
# Environment-variable expansion helper
# ---------------------------------------------------------------------------

_ENV_VAR_RE = re.compile(r"\$\{([^}]+)\}")


def _expand_env_vars(value: str) -> str:
    """Replace ``${VAR_NAME}`` placeholders with their environment values.

    If the variable is not set the placeholder is left as-is so that
    validation can catch it later.
    """

    def _replace(match: re.Match) -> str:
        var_name = match.group(1)
        return os.environ.get(var_name, match.group(0))

    return _ENV_VAR_RE.sub(_replace, value)


def _expand_env_recursive(obj: object) -> object:
    """Walk an arbitrary nested structure and expand env vars in strings."""
    if isinstance(obj, str):
        return _expand_env_vars(obj)
    if isinstance(obj, dict):
        return {k: _expand_env_recursive(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_expand_env_recursive(item) for item in obj]
    return obj


# ---------------------------------------------------------------------------
# Pydantic v2 models
# ---------------------------------------------------------------------------


class StoreConfig(BaseModel):
    """Encrypted document store settings.

    ``secret`` is the hex-encoded 32-byte process key.  It is only parsed
    when a store is opened, so commands that never touch the store (for
    instance ``generate-secret``) work without it.
    """

    data_dir: Path = Path("data")
    secret: Optional[str] = None

    def secret_key(self) -> bytes:
        """Return the decoded secret key.

        Raises
        ------
        ConfigurationError
            If the secret is missing, unexpanded, not hex, or not 32 bytes.
        """
        raw = (self.secret or "").strip()
        if not raw or _ENV_VAR_RE.search(raw):
            raise ConfigurationError(
                f"{SECRET_ENV_VAR} environment variable is not set. "
                "Run 'custodial-wallet generate-secret' first."
            )
        if len(raw) != SECRET_KEY_BYTES * 2:
            raise ConfigurationError(
                f"{SECRET_ENV_VAR} must be {SECRET_KEY_BYTES * 2} hex characters, "
                f"got {len(raw)}."
            )
        try:
            return bytes.fromhex(raw)
        except ValueError as exc:
            raise ConfigurationError(f"{SECRET_ENV_VAR} is not valid hex.") from exc


class ChainConfig(BaseModel):
    """Which EVM network the wallet actions talk to."""

    name: str = "base-sepolia"
    rpc_url: Optional[str] = None  # Override the chain's public RPC endpoint


class CoinsConfig(BaseModel):
    """Coin metadata API settings."""

    base_url: str = "https://api-sdk.zora.engineering"
    api_key: str = ""                 # ${ZORA_API_KEY}
    chain_id: int = 84532
    timeout: float = 15.0


class ServerConfig(BaseModel):
    """Tool-calling server identity."""

    name: str = "ai-custodial-wallet"
    version: str = "1.0.0"


class AppConfig(BaseModel):
    """Root configuration object."""

    store: StoreConfig = Field(default_factory=StoreConfig)
    chain: ChainConfig = Field(default_factory=ChainConfig)
    coins: CoinsConfig = Field(default_factory=CoinsConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)


# ---------------------------------------------------------------------------
# Public helpers
# ---------------------------------------------------------------------------

_ENV_OVERRIDES: list[tuple[str, tuple[str, str]]] = [
    (SECRET_ENV_VAR, ("store", "secret")),
    ("CUSTODIAL_WALLET_DATA_DIR", ("store", "data_dir")),
    ("CUSTODIAL_WALLET_CHAIN", ("chain", "name")),
    ("CUSTODIAL_WALLET_RPC_URL", ("chain", "rpc_url")),
    ("ZORA_API_KEY", ("coins", "api_key")),
]


def _apply_env_overrides(data: dict) -> dict:
    for env_name, (section, key) in _ENV_OVERRIDES:
        value = os.environ.get(env_name)
        if value:
            data[section] = data.get(section) or {}
            data[section][key] = value
    return data


def load_config(path: Path | None = None, *, use_dotenv: bool = True) -> AppConfig:
    """Build the process configuration.

    Parameters
    ----------
    path:
        Optional YAML file.  ``${VAR}`` placeholders are expanded before
        validation.
    use_dotenv:
        Load a ``.env`` file from the working directory first (existing
        environment variables win).
    """
    if use_dotenv:
        load_dotenv(find_dotenv(usecwd=True))

    raw_data: dict = {}
    if path is not None:
        raw_text = Path(path).read_text(encoding="utf-8")
        raw_data = yaml.safe_load(raw_text) or {}
    expanded = _expand_env_recursive(raw_data)
    return AppConfig.model_validate(_apply_env_overrides(expanded))

