"""
Risk rule engine: typed, severity-ranked findings from one evidence bundle.

Rules are an ordered tuple of pure functions (evidence, config) -> findings.
All rules run; findings keep rule order (discovery order, not severity).
A rule whose input is missing from the bundle does not fire.
"""

from __future__ import annotations

from typing import Callable

from backend_trustscan.core.models import (
    ADDRESS_KIND_TRANSACTION,
    EvidenceBundle,
    RiskFinding,
    RiskType,
    SecurityConfig,
    Severity,
)
from backend_trustscan.core.programs import BPF_LOADER_UPGRADEABLE_ID, program_label
from backend_trustscan.trustscan_logging import get_logger, short_id

logger = get_logger(__name__)

CONCENTRATION_THRESHOLD_PCT = 50.0

Rule = Callable[[EvidenceBundle, SecurityConfig], list[RiskFinding]]


def known_scam_rule(evidence: EvidenceBundle, config: SecurityConfig) -> list[RiskFinding]:
    if evidence.subject not in config.known_scams:
        return []
    return [
        RiskFinding(
            RiskType.MALICIOUS_PROGRAM,
            Severity.CRITICAL,
            "This address is flagged as a known scam or malicious program",
            "Do not interact with this address under any circumstances",
        )
    ]


def suspicious_pattern_rule(evidence: EvidenceBundle, config: SecurityConfig) -> list[RiskFinding]:
    """Case-insensitive substring match over the identifier, token name/symbol and program label."""
    candidates: list[tuple[str, str | None]] = [("address", evidence.subject)]
    if evidence.metadata is not None:
        candidates.append(("token name", evidence.metadata.name))
        candidates.append(("token symbol", evidence.metadata.symbol))
    candidates.append(("program label", program_label(evidence.subject)))

    for where, text in candidates:
        if not text:
            continue
        lowered = text.lower()
        for pattern in config.suspicious_patterns:
            if pattern.lower() in lowered:
                return [
                    RiskFinding(
                        RiskType.DRAINER,
                        Severity.HIGH,
                        f"{where.capitalize()} matches suspicious pattern '{pattern}', "
                        "similar to token drainers",
                        "Avoid approving transactions with this program",
                    )
                ]
    return []


def mint_authority_rule(evidence: EvidenceBundle, config: SecurityConfig) -> list[RiskFinding]:
    if evidence.mint is None or evidence.mint.mint_authority is None:
        return []
    return [
        RiskFinding(
            RiskType.MINT_AUTHORITY,
            Severity.MEDIUM,
            "Token has active mint authority - new tokens can be created",
            "Be aware that the token supply can be increased",
        )
    ]


def freeze_authority_rule(evidence: EvidenceBundle, config: SecurityConfig) -> list[RiskFinding]:
    if evidence.mint is None or evidence.mint.freeze_authority is None:
        return []
    return [
        RiskFinding(
            RiskType.FREEZE_AUTHORITY,
            Severity.MEDIUM,
            "Token has active freeze authority - accounts can be frozen",
            "Your tokens could potentially be frozen by the authority",
        )
    ]


def zero_supply_rule(evidence: EvidenceBundle, config: SecurityConfig) -> list[RiskFinding]:
    if evidence.mint is None or evidence.mint.supply != 0:
        return []
    return [
        RiskFinding(
            RiskType.FAKE_TOKEN,
            Severity.HIGH,
            "Token has zero supply - this may be a fake or test token",
            "Verify this is a legitimate token before trading",
        )
    ]


def upgradeable_program_rule(evidence: EvidenceBundle, config: SecurityConfig) -> list[RiskFinding]:
    account = evidence.account
    if account is None or not account.executable or account.owner != BPF_LOADER_UPGRADEABLE_ID:
        return []
    return [
        RiskFinding(
            RiskType.MALICIOUS_PROGRAM,
            Severity.MEDIUM,
            "Program is upgradeable and could be modified",
            "Monitor for program updates that could change behavior",
        )
    ]


def ownership_concentration_rule(evidence: EvidenceBundle, config: SecurityConfig) -> list[RiskFinding]:
    holders = evidence.holders
    if holders is None or not holders.holders:
        return []
    top = holders.top_holder_percentage
    if top <= CONCENTRATION_THRESHOLD_PCT:
        return []
    return [
        RiskFinding(
            RiskType.OWNERSHIP_CONCENTRATION,
            Severity.HIGH,
            f"Top holder owns {top:.2f}% of the supply",
            "A single holder can move the market; check whether it is a pool or burn address",
        )
    ]


def scam_program_interaction_rule(evidence: EvidenceBundle, config: SecurityConfig) -> list[RiskFinding]:
    if evidence.kind != ADDRESS_KIND_TRANSACTION or evidence.transaction is None:
        return []
    if evidence.subject in config.known_scams:
        return []
    hits = [p for p in evidence.transaction.program_ids if p in config.known_scams]
    if not hits:
        return []
    return [
        RiskFinding(
            RiskType.MALICIOUS_PROGRAM,
            Severity.CRITICAL,
            f"Transaction invokes known malicious program(s): {', '.join(hits)}",
            "Revoke any approvals granted in this transaction",
        )
    ]


def unknown_program_rule(evidence: EvidenceBundle, config: SecurityConfig) -> list[RiskFinding]:
    if evidence.kind != ADDRESS_KIND_TRANSACTION or evidence.transaction is None:
        return []
    unknown = [
        p
        for p in evidence.transaction.program_ids
        if p not in config.known_safe_programs
        and p not in config.trusted_programs
        and p not in config.known_scams
    ]
    if not unknown:
        return []
    return [
        RiskFinding(
            RiskType.UNKNOWN_PROGRAM,
            Severity.LOW,
            f"Transaction invokes {len(unknown)} unrecognized program(s): {', '.join(unknown)}",
            "Verify unfamiliar programs before signing similar transactions",
        )
    ]


RULES: tuple[Rule, ...] = (
    known_scam_rule,
    suspicious_pattern_rule,
    mint_authority_rule,
    freeze_authority_rule,
    zero_supply_rule,
    upgradeable_program_rule,
    ownership_concentration_rule,
    scam_program_interaction_rule,
    unknown_program_rule,
)


def evaluate(
    evidence: EvidenceBundle,
    config: SecurityConfig,
    rules: tuple[Rule, ...] = RULES,
) -> list[RiskFinding]:
    """
    Run every rule over the bundle.

    Returns findings in rule order. A (type, description) pair is emitted once.
    """
    findings: list[RiskFinding] = []
    seen: set[tuple[RiskType, str]] = set()
    for rule in rules:
        for finding in rule(evidence, config):
            key = (finding.type, finding.description)
            if key in seen:
                continue
            seen.add(key)
            findings.append(finding)

    logger.debug(
        "risk_engine_result",
        subject=short_id(evidence.subject),
        kind=evidence.kind,
        risks=[f.type.value for f in findings],
        max_severity=max(f.severity for f in findings).name if findings else None,
    )
    return findings
