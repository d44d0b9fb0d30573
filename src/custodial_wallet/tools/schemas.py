"""Input models for the wallet actions."""

from __future__ import annotations

import re
from decimal import Decimal, InvalidOperation
from typing import Optional

from pydantic import BaseModel, Field, field_validator
from web3 import Web3

_HEX_RE = re.compile(r"^0x[0-9a-fA-F]*$")


def _parse_ether(value: str) -> Decimal:
    try:
        amount = Decimal(value.strip())
    except (InvalidOperation, AttributeError):
        raise ValueError("Value must be a number string.") from None
    if not amount.is_finite():
        raise ValueError("Value must be a number string.")
    return amount


def _check_address(value: str, label: str) -> str:
    if not isinstance(value, str) or not Web3.is_address(value):
        raise ValueError(f"Invalid {label} format.")
    return value


class FeeEstimateInput(BaseModel):
    fromAddress: str
    toAddress: str
    value: str = "0"
    data: Optional[str] = None

    @field_validator("fromAddress")
    @classmethod
    def _from(cls, v: str) -> str:
        return _check_address(v, "fromAddress")

    @field_validator("toAddress")
    @classmethod
    def _to(cls, v: str) -> str:
        return _check_address(v, "toAddress")

    @field_validator("value")
    @classmethod
    def _non_negative(cls, v: str) -> str:
        if _parse_ether(v) < 0:
            raise ValueError("Value must be a non-negative number string.")
        return v.strip()

    @field_validator("data")
    @classmethod
    def _hex(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and (not _HEX_RE.match(v) or len(v) % 2):
            raise ValueError("Data must be a valid hex string starting with 0x.")
        return v

    @property
    def value_wei(self) -> int:
        return Web3.to_wei(_parse_ether(self.value), "ether")


class TransferInput(BaseModel):
    fromAddress: str
    toAddress: str
    value: str

    @field_validator("fromAddress")
    @classmethod
    def _from(cls, v: str) -> str:
        return _check_address(v, "fromAddress")

    @field_validator("toAddress")
    @classmethod
    def _to(cls, v: str) -> str:
        return _check_address(v, "toAddress")

    @field_validator("value")
    @classmethod
    def _positive(cls, v: str) -> str:
        if _parse_ether(v) <= 0:
            raise ValueError("Value must be a positive number string.")
        return v.strip()

    @property
    def value_wei(self) -> int:
        return Web3.to_wei(_parse_ether(self.value), "ether")


class PageInput(BaseModel):
    count: int = Field(default=20, ge=1, le=100)
    after: Optional[str] = None
