"""
Transaction flow: SOL balance changes, sender, receivers, fee and invoked programs
for one jsonParsed getTransaction result.
"""

from __future__ import annotations

from typing import Any

from backend_trustscan.core.models import BalanceChange, TransactionFlow

STATUS_SUCCESS = "success"
STATUS_FAILED = "failed"


def _account_key(entry: Any) -> str | None:
    if isinstance(entry, str):
        return entry
    if isinstance(entry, dict):
        return entry.get("pubkey")
    return None


def _program_ids(message: dict[str, Any], meta: dict[str, Any], keys: list[str]) -> tuple[str, ...]:
    """Distinct program ids from top-level and inner instructions, first-seen order."""
    instructions = list(message.get("instructions") or [])
    for inner in meta.get("innerInstructions") or []:
        instructions.extend((inner or {}).get("instructions") or [])

    seen: dict[str, None] = {}
    for ix in instructions:
        if not isinstance(ix, dict):
            continue
        program_id = ix.get("programId")
        if program_id is None and isinstance(ix.get("programIdIndex"), int):
            idx = ix["programIdIndex"]
            program_id = keys[idx] if 0 <= idx < len(keys) else None
        if program_id:
            seen.setdefault(str(program_id), None)
    return tuple(seen)


def analyze_transaction_flow(signature: str, tx: dict[str, Any]) -> TransactionFlow:
    """
    Summarize one parsed transaction.

    Sender is the first account whose lamport balance went down; receivers are
    all accounts whose balance went up. Zero changes are dropped.
    """
    meta = tx.get("meta") or {}
    message = (tx.get("transaction") or {}).get("message") or {}
    keys = [k for k in (_account_key(e) for e in message.get("accountKeys") or []) if k]
    pre = meta.get("preBalances") or []
    post = meta.get("postBalances") or []

    changes: list[BalanceChange] = []
    for i, address in enumerate(keys):
        before = int(pre[i]) if i < len(pre) else 0
        after = int(post[i]) if i < len(post) else 0
        if after != before:
            changes.append(BalanceChange(address=address, pre_lamports=before, post_lamports=after))

    sender = next((c.address for c in changes if c.change < 0), None)
    receivers = tuple(c.address for c in changes if c.change > 0)

    return TransactionFlow(
        signature=signature,
        status=STATUS_FAILED if meta.get("err") else STATUS_SUCCESS,
        fee_lamports=int(meta.get("fee") or 0),
        block_time=tx.get("blockTime"),
        sender=sender,
        receivers=receivers,
        program_ids=_program_ids(message, meta, keys),
        balance_changes=tuple(changes),
    )
