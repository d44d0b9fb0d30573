"""EVM networks the wallet actions can target.

Base Sepolia is the default; the coin API and the fee actions both assume it
unless configured otherwise.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Chain:
    name: str
    chain_id: int
    rpc_url: str
    explorer_url: str
    testnet: bool = False
    # Needs the extraData POA middleware (every OP-stack L2 does)
    poa: bool = True

    def tx_url(self, tx_hash: str) -> str:
        return f"{self.explorer_url}/tx/{tx_hash}"


BASE_SEPOLIA = Chain(
    name="base-sepolia",
    chain_id=84532,
    rpc_url="https://sepolia.base.org",
    explorer_url="https://sepolia.basescan.org",
    testnet=True,
)

CHAINS: dict[str, Chain] = {
    c.name: c
    for c in (
        BASE_SEPOLIA,
        Chain("base", 8453, "https://mainnet.base.org", "https://basescan.org"),
        Chain(
            "sepolia",
            11155111,
            "https://ethereum-sepolia-rpc.publicnode.com",
            "https://sepolia.etherscan.io",
            testnet=True,
            poa=False,
        ),
    )
}

# Spellings seen in env files and older configs
_ALIASES = {"base_sepolia": "base-sepolia", "basesepolia": "base-sepolia", "base-mainnet": "base"}


def get_chain(name: str | int) -> Chain:
    """Resolve a chain by name, alias or numeric chain id.

    Raises ``KeyError`` listing the supported names if nothing matches.
    """
    if isinstance(name, int) or str(name).isdigit():
        for chain in CHAINS.values():
            if chain.chain_id == int(name):
                return chain
    else:
        key = str(name).strip().lower()
        key = _ALIASES.get(key, key)
        if key in CHAINS:
            return CHAINS[key]
    raise KeyError(f"Unknown chain '{name}'. Available: {sorted(CHAINS)}")
