from __future__ import annotations

import base64
import logging
from typing import Sequence

import base58
from solders.pubkey import Pubkey

from pumpfind.domain.models import LogMarkers, MintEvent
from pumpfind.domain.value_types import Base58

logger = logging.getLogger(__name__)


# pump.fun program + its "create" event payload prefix
PUMP_PROGRAM_ID    = "6EF8rrecthR5Dkzon8Nwu78hRvfCKubJ14M5uBEwF6P"
PROGRAM_DATA_LINE  = "Program data: "
CREATE_DATA_PREFIX = PROGRAM_DATA_LINE + "G3KpTd7rY3"

DEFAULT_MARKERS = LogMarkers.for_program(PUMP_PROGRAM_ID, CREATE_DATA_PREFIX)

DISCRIMINATOR_LEN = 8
LENGTH_FIELD_LEN  = 4
PUBKEY_LEN        = 32


class DecodeError(ValueError):
    """Payload is shorter than one of its fields or otherwise malformed."""


# ---------- fixed-layout readers ------------------------------------------------

def _take(buf: bytes, offset: int, n: int, what: str) -> bytes:
    end = offset + n
    if end > len(buf):
        raise DecodeError(f"{what}: need {n} bytes at offset {offset}, buffer has {len(buf)}")
    return buf[offset:end]

def _read_str(buf: bytes, offset: int, what: str) -> tuple[str, int]:
    # Only the first byte of the 4-byte length is read, so strings are limited to < 256 bytes.
    prefix = _take(buf, offset, LENGTH_FIELD_LEN, f"{what} length")
    length = prefix[0]
    offset += LENGTH_FIELD_LEN
    raw = _take(buf, offset, length, what)
    try:
        return raw.decode("utf-8"), offset + length
    except UnicodeDecodeError as e:
        raise DecodeError(f"{what}: invalid UTF-8: {e}") from e

def _read_pubkey(buf: bytes, offset: int, what: str) -> tuple[Base58, int]:
    raw = _take(buf, offset, PUBKEY_LEN, what)
    return Base58(str(Pubkey.from_bytes(raw))), offset + PUBKEY_LEN


# ---------------------------- public API --------------------------------------

def decode_mint(data_b64: str) -> MintEvent:
    """
    Decode the base64 body of a pump.fun create event.

    Layout (sequential, no padding):
      8B identifier | str name | str symbol | str uri | 32B mint | 32B bonding curve | 32B user
    where every str is a 4-byte length field followed by UTF-8 bytes.
    """
    try:
        buf = base64.b64decode(data_b64)
    except ValueError as e:
        raise DecodeError(f"invalid base64 payload: {e}") from e

    offset = 0
    disc = _take(buf, offset, DISCRIMINATOR_LEN, "identifier")
    offset += DISCRIMINATOR_LEN

    name, offset   = _read_str(buf, offset, "name")
    symbol, offset = _read_str(buf, offset, "symbol")
    uri, offset    = _read_str(buf, offset, "uri")

    mint, offset  = _read_pubkey(buf, offset, "mint")
    curve, offset = _read_pubkey(buf, offset, "bondingCurve")
    user, offset  = _read_pubkey(buf, offset, "user")

    return MintEvent(
        name=name,
        symbol=symbol,
        uri=uri,
        mint_address=mint,
        bonding_curve=curve,
        user=user,
        discriminator=Base58(base58.b58encode(disc).decode("ascii")),
    )


def process_mint_logs(logs: Sequence[str], markers: LogMarkers = DEFAULT_MARKERS) -> MintEvent | None:
    """
    Find the success line immediately followed by a create-event data line and decode it.
    Returns None when no such pair exists or when the payload does not decode.
    """
    for i, line in enumerate(logs):
        if line != markers.success_line:
            continue
        nxt = logs[i + 1] if i + 1 < len(logs) else None
        if nxt and nxt.startswith(markers.data_prefix):
            encoded = nxt.replace(PROGRAM_DATA_LINE, "", 1).strip()
            try:
                return decode_mint(encoded)
            except Exception:
                logger.warning("Failed to decode mint data %r", encoded[:64], exc_info=True)
                return None
    return None
