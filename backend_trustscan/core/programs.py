"""
Well-known Solana program IDs and labels used by the classifier, rules and score.
"""

from __future__ import annotations

SYSTEM_PROGRAM_ID = "11111111111111111111111111111111"
TOKEN_PROGRAM_ID = "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA"
TOKEN_2022_PROGRAM_ID = "TokenzQdBNbLqP5VEhdkAS6EPFLC1PHnBqCXEpPxuEb"
ASSOCIATED_TOKEN_PROGRAM_ID = "ATokenGPvbdGVxr1b2hvZbsiqW5xWH25efTNsLJA8knL"
BPF_LOADER_UPGRADEABLE_ID = "BPFLoaderUpgradeab1e11111111111111111111111"
BPF_LOADER_2_ID = "BPFLoader2111111111111111111111111111111111"
BPF_LOADER_1_ID = "BPFLoader1111111111111111111111111111111111"

TOKEN_PROGRAM_IDS = frozenset({TOKEN_PROGRAM_ID, TOKEN_2022_PROGRAM_ID})

LOADER_LABELS = {
    BPF_LOADER_UPGRADEABLE_ID: "Upgradeable BPF Program",
    BPF_LOADER_2_ID: "BPF Program v2",
    BPF_LOADER_1_ID: "BPF Program v1",
}

KNOWN_PROGRAM_LABELS = {
    SYSTEM_PROGRAM_ID: "System Program",
    TOKEN_PROGRAM_ID: "SPL Token Program",
    TOKEN_2022_PROGRAM_ID: "Token-2022 Program",
    ASSOCIATED_TOKEN_PROGRAM_ID: "Associated Token Program",
    "Memo1UhkJRfHyvLMcVucJwxXeuD728EqVDDwQDxFMNo": "Memo Program",
    "MemoSq4gqABAXKb96qnH8TysNcWxMyWCqXgDLGmfcHr": "Memo Program v2",
    "ComputeBudget111111111111111111111111111111": "Compute Budget Program",
    "AddressLookupTab1e1111111111111111111111111": "Address Lookup Table Program",
    "Stake11111111111111111111111111111111111111": "Stake Program",
    "Vote111111111111111111111111111111111111111": "Vote Program",
    "JUP6LkbZbjS1jKKwapdHNy74zcZ3tLUZoi5QNyVTaV4": "Jupiter Aggregator v6",
    "JUP4Fb2cqiRUcaTHdrPC8h2gNsA2ETXiPDD33WcGuJB": "Jupiter Aggregator v4",
    "675kPX9MHTjS2zt1qfr1NYHuzeLXfQM9H24wFSUt1Mp8": "Raydium AMM v4",
    "CAMMCzo5YL8w4VFF8KVHrK22GGUsp5VTaW7grrKgrWqK": "Raydium CLMM",
    "whirLbMiicVdio4qvUfM5KAg6Ct8VwpYzGff3uctyCc": "Orca Whirlpool",
    "9W959DqEETiGZocYWCQPaJ6sBmUzgfxXfqGeTEdp3aQP": "Orca V1",
    "srmqPvymJeFKQ4zGQed1GFppgkRHL9kaELCbyksJtPX": "Serum DEX",
    "metaqbxxUerdq28cj1RbAWkYQm3ybzjb6a8bt518x1s": "Metaplex Token Metadata",
    "CndyV3LdqHUfDLmE5naZjVN8rBZz4tqhdefbAnjHG3JR": "Candy Machine v3",
    "So1endDq2YkqhipRh3WViPa8hdiSpxWy6z3Z6tMCpAo": "Solend",
    "MarBmsSgKXdrN1egZf5sqe1TMai9K1rChYNDJgjq7aD": "MarginFi",
    "namesLPneVptA9Z5rqUDD9tMTWEJwofgaYwp8cawRkX": "Solana Name Service",
    "PhoeNiX1VVuPn7QnvLPzewrhHureq4oAh7QTBPhZMZg": "Phoenix",
    **LOADER_LABELS,
}

# Owning programs whose accounts get full provenance trust
DEFAULT_TRUSTED_PROGRAMS = frozenset({
    SYSTEM_PROGRAM_ID,
    TOKEN_PROGRAM_ID,
    TOKEN_2022_PROGRAM_ID,
    ASSOCIATED_TOKEN_PROGRAM_ID,
    "So1endDq2YkqhipRh3WViPa8hdiSpxWy6z3Z6tMCpAo",
    "JUP6LkbZbjS1jKKwapdHNy74zcZ3tLUZoi5QNyVTaV4",
})

# Programs a transaction may invoke without raising UNKNOWN_PROGRAM
KNOWN_SAFE_PROGRAMS = frozenset(KNOWN_PROGRAM_LABELS) - frozenset(LOADER_LABELS)

DEFAULT_SUSPICIOUS_PATTERNS = ("drain", "scam", "fake", "phishing")


def program_label(program_id: str | None) -> str | None:
    """Return a human label for a well-known program id, else None."""
    if not program_id:
        return None
    return KNOWN_PROGRAM_LABELS.get(program_id)
