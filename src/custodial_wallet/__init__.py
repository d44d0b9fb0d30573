"""AI custodial wallet - encrypted wallet store and agent actions."""

__version__ = "1.0.0"
