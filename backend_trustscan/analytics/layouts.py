"""
SPL Token account layouts: mint (82 bytes) and token account (165 bytes).

Token-2022 accounts with extensions are longer than the base layout; the byte
at offset 165 then carries the account type (1 = mint, 2 = token account).
"""

from __future__ import annotations

import struct

from solders.pubkey import Pubkey

from backend_trustscan.core.models import MintInfo, TokenAccountInfo

MINT_SIZE = 82
TOKEN_ACCOUNT_SIZE = 165
ACCOUNT_TYPE_OFFSET = 165
ACCOUNT_TYPE_MINT = 1
ACCOUNT_TYPE_ACCOUNT = 2

# Filter for getProgramAccounts: classic token accounts are exactly 165 bytes
TOKEN_ACCOUNT_DATA_SIZE_FILTER = {"dataSize": TOKEN_ACCOUNT_SIZE}


class LayoutError(ValueError):
    """Account data does not match the expected layout."""


def _pubkey(raw: bytes) -> str:
    return str(Pubkey.from_bytes(raw))


def _coption_pubkey(data: bytes, tag_offset: int) -> str | None:
    (tag,) = struct.unpack_from("<I", data, tag_offset)
    if tag == 0:
        return None
    return _pubkey(data[tag_offset + 4 : tag_offset + 36])


def extension_account_type(data: bytes | None) -> int | None:
    """Token-2022 account-type byte, or None for base-size accounts."""
    if data is None or len(data) <= ACCOUNT_TYPE_OFFSET:
        return None
    return data[ACCOUNT_TYPE_OFFSET]


def is_mint_layout(data: bytes | None) -> bool:
    if data is None:
        return False
    if len(data) == MINT_SIZE:
        return True
    return extension_account_type(data) == ACCOUNT_TYPE_MINT


def is_token_account_layout(data: bytes | None) -> bool:
    if data is None:
        return False
    if len(data) == TOKEN_ACCOUNT_SIZE:
        return True
    return extension_account_type(data) == ACCOUNT_TYPE_ACCOUNT


def decode_mint(data: bytes) -> MintInfo:
    """
    Decode a mint account.

    Layout: mint_authority COption<Pubkey> [0:36], supply u64 [36:44],
    decimals u8 [44], is_initialized bool [45], freeze_authority COption<Pubkey> [46:82].
    """
    if data is None or len(data) < MINT_SIZE:
        raise LayoutError(f"mint data too short: {0 if data is None else len(data)} bytes")
    (supply,) = struct.unpack_from("<Q", data, 36)
    return MintInfo(
        supply=supply,
        decimals=data[44],
        mint_authority=_coption_pubkey(data, 0),
        freeze_authority=_coption_pubkey(data, 46),
        is_initialized=bool(data[45]),
    )


def decode_token_account(data: bytes) -> TokenAccountInfo:
    """Decode a token account: mint [0:32], owner [32:64], amount u64 [64:72]."""
    if data is None or len(data) < 72:
        raise LayoutError(f"token account data too short: {0 if data is None else len(data)} bytes")
    (amount,) = struct.unpack_from("<Q", data, 64)
    return TokenAccountInfo(
        mint=_pubkey(data[0:32]),
        owner=_pubkey(data[32:64]),
        amount=amount,
    )


def encode_mint(
    *,
    supply: int,
    decimals: int,
    mint_authority: str | None = None,
    freeze_authority: str | None = None,
    is_initialized: bool = True,
) -> bytes:
    """Build mint account bytes. Used by fixtures and offline tooling."""

    def coption(value: str | None) -> bytes:
        if value is None:
            return struct.pack("<I", 0) + bytes(32)
        return struct.pack("<I", 1) + bytes(Pubkey.from_string(value))

    return (
        coption(mint_authority)
        + struct.pack("<QBB", supply, decimals, 1 if is_initialized else 0)
        + coption(freeze_authority)
    )


def encode_token_account(*, mint: str, owner: str, amount: int) -> bytes:
    """Build 165-byte token account bytes (initialized state, no delegate)."""
    head = bytes(Pubkey.from_string(mint)) + bytes(Pubkey.from_string(owner)) + struct.pack("<Q", amount)
    # delegate COption (36) + state (1) + is_native COption<u64> (12) + delegated_amount (8)
    # + close_authority COption (36) = 93 bytes
    tail = bytes(36) + bytes([1]) + bytes(12) + bytes(8) + bytes(36)
    return head + tail
