"""Pydantic request/response schemas for the public API.

Token amounts are decimal strings: uint256 values do not survive JSON
number parsing in most clients.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class MintRequest(BaseModel):
    to: str = Field(..., description="Recipient address, 0x + 40 hex chars")
    amount: str = Field(..., pattern=r"^[0-9]+$", description="Amount in base units (decimal string)")
    pubkey: str = Field(..., description="Caller Ed25519 public key (hex or base64)")
    sig: str = Field(..., description="Signature over the canonical mint message")


class TokenInfo(BaseModel):
    name: str
    symbol: str
    decimals: int
    total_supply: str
    owner: Optional[str] = None


class EmissionStatus(BaseModel):
    now: int
    locked: bool
    mintable_amount: str
    last_mint_ts: int
    next_mint_ts: int
    cooldown_seconds: int
    rate_numerator: int
    rate_denominator: int
