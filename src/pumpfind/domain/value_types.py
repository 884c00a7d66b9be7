from __future__ import annotations
from typing import NewType, Literal

Signature = NewType("Signature", str)   # base58 transaction signature
Base58    = NewType("Base58", str)      # base58 public key / identifier
BatchStatus = Literal["done", "failed"]
