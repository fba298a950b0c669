"""
Trust engine: compute a 0-100 trust score from one evidence bundle.

Five weighted factors, each a pure function of the bundle:
Provenance Trust 0.30, Account Age 0.20, Transaction Volume 0.15,
Ownership Pattern 0.20, Liquidity/Authority Factors 0.15.
Score = half-up round of the weighted average, clamped to 0-100.
"""

from __future__ import annotations

import math
from typing import Callable

from backend_trustscan.core.models import EvidenceBundle, ScoreResult, SecurityConfig, TrustFactor
from backend_trustscan.core.programs import SYSTEM_PROGRAM_ID
from backend_trustscan.trustscan_logging import get_logger, short_id

logger = get_logger(__name__)

SCORE_MIN = 0
SCORE_MAX = 100
NEUTRAL_SCORE = 50

SECONDS_PER_DAY = 86_400

WEIGHT_PROVENANCE = 0.30
WEIGHT_ACCOUNT_AGE = 0.20
WEIGHT_TX_VOLUME = 0.15
WEIGHT_OWNERSHIP = 0.20
WEIGHT_LIQUIDITY = 0.15

PROVENANCE_SCAM = 0
PROVENANCE_TRUSTED = 90
PROVENANCE_UNKNOWN = 50

# (min age in days, exclusive) -> score, checked in order
AGE_BANDS = ((365, 90), (180, 80), (90, 70), (30, 60), (7, 50))
AGE_YOUNG = 30

# (min tx count, exclusive) -> score, checked in order
VOLUME_BANDS = ((1000, 80), (100, 70), (10, 60))
VOLUME_NONE = 30
VOLUME_LOW = 50

OWNERSHIP_SYSTEM = 80
OWNERSHIP_OTHER = 60

LIQUIDITY_BASE = 60
LIQUIDITY_MINT_RENOUNCED = 20
LIQUIDITY_FREEZE_RENOUNCED = 10
LIQUIDITY_FULLY_RENOUNCED = 100

Factor = Callable[[EvidenceBundle, SecurityConfig], TrustFactor]


def provenance_factor(evidence: EvidenceBundle, config: SecurityConfig) -> TrustFactor:
    name = "Provenance Trust"
    if evidence.subject in config.known_scams:
        return TrustFactor(name, PROVENANCE_SCAM, WEIGHT_PROVENANCE, "Address is in the known-scam list")
    owner = evidence.account.owner if evidence.account else None
    if owner and owner in config.trusted_programs:
        return TrustFactor(name, PROVENANCE_TRUSTED, WEIGHT_PROVENANCE, "Owned by a trusted program")
    return TrustFactor(name, PROVENANCE_UNKNOWN, WEIGHT_PROVENANCE, "Owning program is not in the trusted set")


def account_age_factor(evidence: EvidenceBundle, config: SecurityConfig) -> TrustFactor:
    name = "Account Age"
    times = [s.block_time for s in evidence.history or () if s.block_time is not None]
    if not times:
        return TrustFactor(name, NEUTRAL_SCORE, WEIGHT_ACCOUNT_AGE, "No transaction history with timestamps")
    age_days = (evidence.observed_at - min(times)) / SECONDS_PER_DAY
    score = AGE_YOUNG
    for min_days, band_score in AGE_BANDS:
        if age_days > min_days:
            score = band_score
            break
    return TrustFactor(name, score, WEIGHT_ACCOUNT_AGE, f"Oldest seen activity {int(age_days)} day(s) ago")


def transaction_volume_factor(evidence: EvidenceBundle, config: SecurityConfig) -> TrustFactor:
    name = "Transaction Volume"
    if evidence.history is None:
        return TrustFactor(name, NEUTRAL_SCORE, WEIGHT_TX_VOLUME, "Transaction history unavailable")
    count = len(evidence.history)
    if count == 0:
        score = VOLUME_NONE
    else:
        score = VOLUME_LOW
        for min_count, band_score in VOLUME_BANDS:
            if count > min_count:
                score = band_score
                break
    return TrustFactor(name, score, WEIGHT_TX_VOLUME, f"{count} transaction(s) in history")


def ownership_factor(evidence: EvidenceBundle, config: SecurityConfig) -> TrustFactor:
    name = "Ownership Pattern"
    if evidence.account is not None and evidence.account.owner == SYSTEM_PROGRAM_ID:
        return TrustFactor(name, OWNERSHIP_SYSTEM, WEIGHT_OWNERSHIP, "Owned by the system program")
    return TrustFactor(name, OWNERSHIP_OTHER, WEIGHT_OWNERSHIP, "Owned by a non-system program or unknown")


def liquidity_factor(evidence: EvidenceBundle, config: SecurityConfig) -> TrustFactor:
    name = "Liquidity/Authority Factors"
    mint = evidence.mint
    if mint is None:
        return TrustFactor(name, LIQUIDITY_BASE, WEIGHT_LIQUIDITY, "No mint information")
    if mint.mint_authority is None and mint.freeze_authority is None and mint.supply > 0:
        return TrustFactor(name, LIQUIDITY_FULLY_RENOUNCED, WEIGHT_LIQUIDITY, "Mint and freeze authorities renounced")
    score = LIQUIDITY_BASE
    if mint.mint_authority is None:
        score += LIQUIDITY_MINT_RENOUNCED
    if mint.freeze_authority is None:
        score += LIQUIDITY_FREEZE_RENOUNCED
    score = min(score, SCORE_MAX)
    active = [
        label
        for label, value in (("mint", mint.mint_authority), ("freeze", mint.freeze_authority))
        if value is not None
    ]
    desc = f"Active authorities: {', '.join(active)}" if active else "Authorities renounced but supply is zero"
    return TrustFactor(name, score, WEIGHT_LIQUIDITY, desc)


FACTORS: tuple[Factor, ...] = (
    provenance_factor,
    account_age_factor,
    transaction_volume_factor,
    ownership_factor,
    liquidity_factor,
)


def weighted_score(factors: tuple[TrustFactor, ...] | list[TrustFactor]) -> int:
    """Half-up rounded weighted average, clamped. Independent of factor order."""
    total_weight = math.fsum(f.weight for f in factors)
    if total_weight <= 0:
        return NEUTRAL_SCORE
    average = math.fsum(f.score * f.weight for f in factors) / total_weight
    return max(SCORE_MIN, min(SCORE_MAX, math.floor(average + 0.5)))


def score(
    evidence: EvidenceBundle,
    config: SecurityConfig,
    factors: tuple[Factor, ...] = FACTORS,
) -> ScoreResult:
    """Compute all factors and the final score. Deterministic and side-effect free."""
    computed = tuple(f(evidence, config) for f in factors)
    result = ScoreResult(score=weighted_score(computed), factors=computed)
    logger.debug(
        "trust_engine_result",
        subject=short_id(evidence.subject),
        score=result.score,
        factors={f.name: f.score for f in computed},
    )
    return result
