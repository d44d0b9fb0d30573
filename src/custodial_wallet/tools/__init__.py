"""Custodial wallet tools - built-in action implementations."""

from custodial_wallet.tools import coin_tools, wallet_tools  # noqa: F401
from custodial_wallet.tools.registry import ToolRegistry, tool  # noqa: F401
