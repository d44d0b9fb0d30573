"""Custodial EVM wallets.

Signing keys are generated with eth-account and kept only in the encrypted
``wallet`` collection.  Callers outside the process see wallet ids and
addresses; the private key is used server-side by the transfer flow.
"""
