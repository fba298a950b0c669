"""
Data models shared by the RPC layer and the analytics engine.

Responsibilities:
- Define frozen dataclasses for on-chain state (accounts, mints, token accounts,
  signatures, transaction flows) and derived evidence (holders, metadata).
- Define the evidence bundle consumed by the rule engine and score calculator,
  and the result records they produce.
"""

from __future__ import annotations

import base64
import enum
from dataclasses import dataclass, field
from typing import Any

ADDRESS_KIND_WALLET = "wallet"
ADDRESS_KIND_PROGRAM = "program"
ADDRESS_KIND_TOKEN_MINT = "tokenMint"
ADDRESS_KIND_TOKEN_ACCOUNT = "tokenAccount"
ADDRESS_KIND_TRANSACTION = "transaction"

SUBJECT_KINDS = (
    ADDRESS_KIND_WALLET,
    ADDRESS_KIND_PROGRAM,
    ADDRESS_KIND_TOKEN_MINT,
    ADDRESS_KIND_TOKEN_ACCOUNT,
    ADDRESS_KIND_TRANSACTION,
)


class Severity(enum.IntEnum):
    """Finding severity, ordered LOW < MEDIUM < HIGH < CRITICAL."""

    LOW = 1
    MEDIUM = 2
    HIGH = 3
    CRITICAL = 4


class RiskType(str, enum.Enum):
    MALICIOUS_PROGRAM = "MALICIOUS_PROGRAM"
    DRAINER = "DRAINER"
    MINT_AUTHORITY = "MINT_AUTHORITY"
    FREEZE_AUTHORITY = "FREEZE_AUTHORITY"
    FAKE_TOKEN = "FAKE_TOKEN"
    OWNERSHIP_CONCENTRATION = "OWNERSHIP_CONCENTRATION"
    UNKNOWN_PROGRAM = "UNKNOWN_PROGRAM"


@dataclass(frozen=True)
class AccountState:
    """Raw account state from getAccountInfo (base64 encoding)."""

    address: str
    owner: str
    executable: bool
    lamports: int
    data: bytes | None
    rent_epoch: int | None = None

    @property
    def data_len(self) -> int:
        return len(self.data) if self.data is not None else 0

    @classmethod
    def from_rpc_value(cls, address: str, value: dict[str, Any]) -> "AccountState":
        """Build from the `value` object of a getAccountInfo response."""
        raw = value.get("data")
        data: bytes | None = None
        if isinstance(raw, list) and raw and isinstance(raw[0], str):
            data = base64.b64decode(raw[0]) if raw[0] else b""
        elif isinstance(raw, str):
            data = base64.b64decode(raw) if raw else b""
        return cls(
            address=address,
            owner=str(value["owner"]),
            executable=bool(value.get("executable")),
            lamports=int(value.get("lamports") or 0),
            data=data,
            rent_epoch=value.get("rentEpoch"),
        )


@dataclass(frozen=True)
class MintInfo:
    """Decoded SPL mint account (first 82 bytes)."""

    supply: int
    decimals: int
    mint_authority: str | None
    freeze_authority: str | None
    is_initialized: bool = True


@dataclass(frozen=True)
class TokenAccountInfo:
    """Decoded SPL token account (first 72 bytes)."""

    mint: str
    owner: str
    amount: int


@dataclass(frozen=True)
class MarketData:
    price_usd: float | None = None
    volume_24h: float | None = None
    market_cap: float | None = None
    liquidity_usd: float | None = None


@dataclass(frozen=True)
class TokenMetadata:
    """Asset metadata from the first provider that returned a non-empty name."""

    name: str
    symbol: str | None
    source: str
    image: str | None = None
    description: str | None = None
    market: MarketData | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "name": self.name,
            "symbol": self.symbol,
            "image": self.image,
            "description": self.description,
            "source": self.source,
        }
        if self.market is not None:
            out["market"] = {
                "price_usd": self.market.price_usd,
                "volume_24h": self.market.volume_24h,
                "market_cap": self.market.market_cap,
                "liquidity_usd": self.market.liquidity_usd,
            }
        return out


@dataclass(frozen=True)
class SignatureInfo:
    """
    Normalized transaction signature info from getSignaturesForAddress.

    Mirrors Solana RPC response fields. History is kept newest first, as returned.
    """

    signature: str
    slot: int
    err: Any  # None if success; dict/object from RPC if failed
    block_time: int | None  # Unix timestamp; None if not available
    memo: str | None
    confirmation_status: str | None  # processed | confirmed | finalized

    @classmethod
    def from_rpc_item(cls, item: dict[str, Any]) -> "SignatureInfo":
        """Build from a single getSignaturesForAddress result item."""
        return cls(
            signature=item["signature"],
            slot=int(item["slot"]),
            err=item.get("err"),
            block_time=item.get("blockTime"),
            memo=item.get("memo"),
            confirmation_status=item.get("confirmationStatus"),
        )


@dataclass(frozen=True)
class BalanceChange:
    address: str
    pre_lamports: int
    post_lamports: int

    @property
    def change(self) -> int:
        return self.post_lamports - self.pre_lamports


@dataclass(frozen=True)
class TransactionFlow:
    """Balance-change summary of one parsed transaction."""

    signature: str
    status: str  # success | failed
    fee_lamports: int
    block_time: int | None
    sender: str | None
    receivers: tuple[str, ...]
    program_ids: tuple[str, ...]
    balance_changes: tuple[BalanceChange, ...]

    @property
    def fee_sol(self) -> float:
        return self.fee_lamports / 1_000_000_000

    def to_dict(self) -> dict[str, Any]:
        return {
            "signature": self.signature,
            "status": self.status,
            "fee": self.fee_sol,
            "block_time": self.block_time,
            "sender": self.sender,
            "receivers": list(self.receivers),
            "program_ids": list(self.program_ids),
            "balance_changes": [
                {"address": c.address, "pre": c.pre_lamports, "post": c.post_lamports, "change": c.change}
                for c in self.balance_changes
            ],
        }


@dataclass(frozen=True)
class Holder:
    address: str  # owning wallet
    token_account: str
    amount: int
    ui_amount: float
    percentage: float
    rank: int


@dataclass(frozen=True)
class HolderDistribution:
    """Top holders of one mint plus concentration statistics over the sampled accounts."""

    holders: tuple[Holder, ...]
    total_holder_count: int
    sampled_count: int
    top_holder_percentage: float
    top10_percentage: float
    top50_percentage: float

    def summary(self) -> dict[str, Any]:
        return {
            "total_holders": self.total_holder_count,
            "sampled": self.sampled_count,
            "top_holder_percentage": self.top_holder_percentage,
            "top10_percentage": self.top10_percentage,
            "top50_percentage": self.top50_percentage,
            "top_holders": [
                {
                    "rank": h.rank,
                    "address": h.address,
                    "token_account": h.token_account,
                    "amount": str(h.amount),
                    "ui_amount": h.ui_amount,
                    "percentage": h.percentage,
                }
                for h in self.holders
            ],
        }


@dataclass(frozen=True)
class Classification:
    """Coarse subject type. `account` is the state fetched while classifying, reused downstream."""

    kind: str
    confidence: float
    details: dict[str, Any] = field(default_factory=dict)
    account: AccountState | None = None


@dataclass(frozen=True)
class EvidenceBundle:
    """
    Everything fetched about one subject. Built once per request, then read by
    both the risk rule engine and the trust score calculator.
    """

    subject: str
    kind: str
    observed_at: int  # unix seconds when the bundle was sealed
    account: AccountState | None = None
    mint_address: str | None = None  # the mint itself, or the parent mint of a token account
    mint: MintInfo | None = None
    token_account: TokenAccountInfo | None = None
    metadata: TokenMetadata | None = None
    holders: HolderDistribution | None = None
    history: tuple[SignatureInfo, ...] | None = None
    transaction: TransactionFlow | None = None
    unavailable: tuple[str, ...] = ()


@dataclass(frozen=True)
class RiskFinding:
    type: RiskType
    severity: Severity
    description: str
    recommendation: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type.value,
            "severity": self.severity.name,
            "description": self.description,
            "recommendation": self.recommendation,
        }


@dataclass(frozen=True)
class TrustFactor:
    name: str
    score: int
    weight: float
    description: str

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "score": self.score, "weight": self.weight, "description": self.description}


@dataclass(frozen=True)
class ScoreResult:
    score: int
    factors: tuple[TrustFactor, ...]


@dataclass(frozen=True)
class AnalysisResult:
    """Merged output of one analysis: classification, score, risks and evidence summary."""

    subject: str
    kind: str
    confidence: float
    trust_score: int
    factors: tuple[TrustFactor, ...]
    risks: tuple[RiskFinding, ...]
    holder_summary: dict[str, Any] | None = None
    metadata: TokenMetadata | None = None
    raw_evidence: dict[str, Any] = field(default_factory=dict)
    unavailable: tuple[str, ...] = ()
    degraded: bool = False
    degraded_reason: str | None = None
    classification_details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "subject": self.subject,
            "kind": self.kind,
            "confidence": self.confidence,
            "trust_score": self.trust_score,
            "factors": [f.to_dict() for f in self.factors],
            "risks": [r.to_dict() for r in self.risks],
            "holder_summary": self.holder_summary,
            "metadata": self.metadata.to_dict() if self.metadata else None,
            "raw_evidence": self.raw_evidence,
            "unavailable": list(self.unavailable),
            "degraded": self.degraded,
            "degraded_reason": self.degraded_reason,
            "classification": self.classification_details,
        }


@dataclass(frozen=True)
class SecurityConfig:
    """Static security sets read by rules and factors. Loaded once per process."""

    known_scams: frozenset[str] = frozenset()
    trusted_programs: frozenset[str] = frozenset()
    known_safe_programs: frozenset[str] = frozenset()
    suspicious_patterns: tuple[str, ...] = ()
