"""
Tests for the risk rule engine.
"""

from __future__ import annotations

from backend_trustscan.analytics.risk_engine import RULES, evaluate, known_scam_rule
from backend_trustscan.core.models import (
    AccountState,
    EvidenceBundle,
    Holder,
    HolderDistribution,
    MintInfo,
    RiskFinding,
    RiskType,
    SecurityConfig,
    Severity,
    TokenMetadata,
    TransactionFlow,
)
from backend_trustscan.core.programs import (
    BPF_LOADER_UPGRADEABLE_ID,
    DEFAULT_SUSPICIOUS_PATTERNS,
    KNOWN_SAFE_PROGRAMS,
    SYSTEM_PROGRAM_ID,
    TOKEN_PROGRAM_ID,
)
from tests.fakes import NOW, USDC_MINT, VALID_WALLET, make_pubkey, make_signature, wallet_account

SCAM = make_pubkey(66)
AUTHORITY = make_pubkey(9)


def _config(**overrides) -> SecurityConfig:
    values = dict(
        known_scams=frozenset({SCAM}),
        trusted_programs=frozenset({TOKEN_PROGRAM_ID, SYSTEM_PROGRAM_ID}),
        known_safe_programs=KNOWN_SAFE_PROGRAMS,
        suspicious_patterns=DEFAULT_SUSPICIOUS_PATTERNS,
    )
    values.update(overrides)
    return SecurityConfig(**values)


def _mint_bundle(mint: MintInfo, **kw) -> EvidenceBundle:
    return EvidenceBundle(subject=USDC_MINT, kind="tokenMint", observed_at=NOW, mint_address=USDC_MINT, mint=mint, **kw)


def _types(findings: list[RiskFinding]) -> list[RiskType]:
    return [f.type for f in findings]


def test_known_scam_emits_exactly_one_critical():
    bundle = EvidenceBundle(subject=SCAM, kind="wallet", observed_at=NOW, account=wallet_account(SCAM))
    findings = evaluate(bundle, _config())
    critical = [f for f in findings if f.severity == Severity.CRITICAL]
    assert len(critical) == 1
    assert critical[0].type == RiskType.MALICIOUS_PROGRAM
    assert findings[0] == critical[0]


def test_clean_wallet_has_no_findings():
    bundle = EvidenceBundle(
        subject=VALID_WALLET, kind="wallet", observed_at=NOW, account=wallet_account(VALID_WALLET)
    )
    assert evaluate(bundle, _config()) == []


def test_zero_supply_is_fake_token():
    findings = evaluate(_mint_bundle(MintInfo(supply=0, decimals=6, mint_authority=None, freeze_authority=None)), _config())
    assert _types(findings) == [RiskType.FAKE_TOKEN]
    assert findings[0].severity == Severity.HIGH


def test_renounced_authorities_produce_no_authority_findings():
    mint = MintInfo(supply=10, decimals=6, mint_authority=None, freeze_authority=None)
    assert evaluate(_mint_bundle(mint), _config()) == []


def test_active_authorities_are_medium_findings_in_rule_order():
    mint = MintInfo(supply=10, decimals=6, mint_authority=AUTHORITY, freeze_authority=AUTHORITY)
    findings = evaluate(_mint_bundle(mint), _config())
    assert _types(findings) == [RiskType.MINT_AUTHORITY, RiskType.FREEZE_AUTHORITY]
    assert {f.severity for f in findings} == {Severity.MEDIUM}


def test_suspicious_token_name_matches_case_insensitively():
    metadata = TokenMetadata(name="Free AirDrop DRAINer", symbol="FREE", source="dexscreener")
    mint = MintInfo(supply=10, decimals=6, mint_authority=None, freeze_authority=None)
    findings = evaluate(_mint_bundle(mint, metadata=metadata), _config())
    assert _types(findings) == [RiskType.DRAINER]
    assert "drain" in findings[0].description
    assert findings[0].description.startswith("Token name")


def test_custom_pattern_matches_symbol():
    metadata = TokenMetadata(name="Normal", symbol="RUGME", source="jupiter")
    mint = MintInfo(supply=10, decimals=6, mint_authority=None, freeze_authority=None)
    findings = evaluate(_mint_bundle(mint, metadata=metadata), _config(suspicious_patterns=("rug",)))
    assert _types(findings) == [RiskType.DRAINER]


def test_upgradeable_program_is_medium_risk():
    program = make_pubkey(5)
    account = AccountState(program, BPF_LOADER_UPGRADEABLE_ID, True, 1, b"\x02" * 36)
    bundle = EvidenceBundle(subject=program, kind="program", observed_at=NOW, account=account)
    findings = evaluate(bundle, _config())
    assert len(findings) == 1
    assert findings[0].type == RiskType.MALICIOUS_PROGRAM
    assert findings[0].severity == Severity.MEDIUM
    assert findings[0].description == "Program is upgradeable and could be modified"


def _holders(top_pct: float) -> HolderDistribution:
    holder = Holder(address=VALID_WALLET, token_account=make_pubkey(3), amount=1, ui_amount=1.0, percentage=top_pct, rank=1)
    return HolderDistribution(
        holders=(holder,),
        total_holder_count=1,
        sampled_count=1,
        top_holder_percentage=top_pct,
        top10_percentage=top_pct,
        top50_percentage=top_pct,
    )


def test_ownership_concentration_above_half():
    mint = MintInfo(supply=10, decimals=0, mint_authority=None, freeze_authority=None)
    assert _types(evaluate(_mint_bundle(mint, holders=_holders(72.5)), _config())) == [
        RiskType.OWNERSHIP_CONCENTRATION
    ]
    assert evaluate(_mint_bundle(mint, holders=_holders(50.0)), _config()) == []


def _tx_bundle(program_ids: tuple[str, ...], subject: str | None = None) -> EvidenceBundle:
    sig = subject or make_signature()
    flow = TransactionFlow(
        signature=sig,
        status="success",
        fee_lamports=5000,
        block_time=NOW,
        sender=VALID_WALLET,
        receivers=(),
        program_ids=program_ids,
        balance_changes=(),
    )
    return EvidenceBundle(subject=sig, kind="transaction", observed_at=NOW, transaction=flow)


def test_transaction_invoking_scam_program_is_critical():
    findings = evaluate(_tx_bundle((SYSTEM_PROGRAM_ID, SCAM)), _config())
    assert _types(findings) == [RiskType.MALICIOUS_PROGRAM]
    assert findings[0].severity == Severity.CRITICAL
    assert SCAM in findings[0].description


def test_transaction_with_unknown_program_is_low():
    unknown = make_pubkey(123)
    findings = evaluate(_tx_bundle((SYSTEM_PROGRAM_ID, unknown)), _config())
    assert _types(findings) == [RiskType.UNKNOWN_PROGRAM]
    assert findings[0].severity == Severity.LOW


def test_transaction_with_only_safe_programs_is_clean():
    assert evaluate(_tx_bundle((SYSTEM_PROGRAM_ID, TOKEN_PROGRAM_ID)), _config()) == []


def test_missing_inputs_do_not_fire():
    bundle = EvidenceBundle(subject=USDC_MINT, kind="tokenMint", observed_at=NOW, unavailable=("holders",))
    assert evaluate(bundle, _config()) == []


def test_duplicate_findings_emitted_once():
    findings = evaluate(
        EvidenceBundle(subject=SCAM, kind="wallet", observed_at=NOW),
        _config(),
        rules=(known_scam_rule, known_scam_rule),
    )
    assert len(findings) == 1


def test_all_rules_run_and_keep_rule_order():
    mint = MintInfo(supply=0, decimals=0, mint_authority=AUTHORITY, freeze_authority=None)
    findings = evaluate(_mint_bundle(mint, holders=_holders(90.0)), _config())
    assert _types(findings) == [
        RiskType.MINT_AUTHORITY,
        RiskType.FAKE_TOKEN,
        RiskType.OWNERSHIP_CONCENTRATION,
    ]
    assert len(RULES) == 9
