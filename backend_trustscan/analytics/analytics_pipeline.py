"""
Analytics pipeline: classify -> fetch evidence -> risk rules + trust score.

Single entrypoint for the CLI and any outer service layer. The mandatory
account (or transaction) fetch must succeed; metadata, holders and signature
history are optional and degrade to "unavailable", also when the timeout cuts
them off. A timeout before the mandatory fetch completes, or an unexpected
error, returns a degraded result with a neutral score instead of raising.
"""

from __future__ import annotations

import asyncio
import time
from typing import Any, Awaitable, Callable

import httpx

from backend_trustscan.analytics import risk_engine, trust_engine
from backend_trustscan.analytics.classifier import SubjectClassifier, is_signature_shape, validate_identifier
from backend_trustscan.analytics.holder_analyzer import HolderAnalyzer
from backend_trustscan.analytics.layouts import (
    LayoutError,
    decode_mint,
    decode_token_account,
    is_mint_layout,
    is_token_account_layout,
)
from backend_trustscan.analytics.metadata_waterfall import MetadataWaterfall, default_providers
from backend_trustscan.analytics.transaction_flow import analyze_transaction_flow
from backend_trustscan.config.settings import Settings, get_settings
from backend_trustscan.core.exceptions import (
    AllEndpointsExhausted,
    AnalysisDegraded,
    HolderEnumerationFailed,
    InvalidIdentifier,
    SubjectNotFound,
)
from backend_trustscan.core.models import (
    ADDRESS_KIND_TOKEN_ACCOUNT,
    ADDRESS_KIND_TOKEN_MINT,
    ADDRESS_KIND_TRANSACTION,
    SUBJECT_KINDS,
    AccountState,
    AnalysisResult,
    Classification,
    EvidenceBundle,
    HolderDistribution,
    MintInfo,
    SignatureInfo,
    TokenAccountInfo,
    TokenMetadata,
    TransactionFlow,
)
from backend_trustscan.core.programs import TOKEN_PROGRAM_ID, TOKEN_PROGRAM_IDS
from backend_trustscan.rpc.client import MAX_SIGNATURES_PER_REQUEST
from backend_trustscan.rpc.endpoint_pool import EndpointPool
from backend_trustscan.trustscan_logging import bind_subject, get_logger, short_id

logger = get_logger(__name__)

SOURCE_METADATA = "metadata"
SOURCE_HOLDERS = "holders"
SOURCE_HISTORY = "history"
SOURCE_PARENT_MINT = "parent_mint"

# Last good endpoint index per configured url list, carried across default pools.
_last_good_endpoint: dict[tuple[str, ...], int] = {}


async def fetch_signature_history(pool: EndpointPool, address: str, limit: int) -> tuple[SignatureInfo, ...]:
    """
    Page through getSignaturesForAddress (newest first) until `limit` or the end of history.

    The client drops malformed entries, so a short page is not the end; only an
    empty page is.
    """
    out: list[SignatureInfo] = []
    before: str | None = None
    while len(out) < limit:
        page_size = min(MAX_SIGNATURES_PER_REQUEST, limit - len(out))
        page = await pool.execute(
            lambda ep, b=before, n=page_size: ep.get_signatures_for_address(address, limit=n, before=b)
        )
        if not page:
            break
        out.extend(page)
        before = page[-1].signature
    return tuple(out)


class _EvidenceCollector:
    """Mutable scratch state while fetching; sealed into an immutable EvidenceBundle."""

    def __init__(self, subject: str, kind: str) -> None:
        self.subject = subject
        self.classification = Classification(kind, 0.0, {"note": "classification_incomplete"})
        self.account: AccountState | None = None
        self.mint_address: str | None = None
        self.mint: MintInfo | None = None
        self.mint_program: str = TOKEN_PROGRAM_ID
        self.token_account: TokenAccountInfo | None = None
        self.metadata: TokenMetadata | None = None
        self.holders: HolderDistribution | None = None
        self.history: tuple[SignatureInfo, ...] | None = None
        self.transaction: TransactionFlow | None = None
        self.unavailable: list[str] = []
        # optional sources started but not yet settled
        self.pending: list[str] = []

    def mark_unavailable(self, source: str) -> None:
        if source not in self.unavailable:
            self.unavailable.append(source)

    def abandon_pending(self) -> list[str]:
        """Mark every unsettled optional source unavailable; returns them."""
        abandoned, self.pending = self.pending, []
        for source in abandoned:
            self.mark_unavailable(source)
        return abandoned

    def seal(self, observed_at: int) -> EvidenceBundle:
        return EvidenceBundle(
            subject=self.subject,
            kind=self.classification.kind,
            observed_at=observed_at,
            account=self.account,
            mint_address=self.mint_address,
            mint=self.mint,
            token_account=self.token_account,
            metadata=self.metadata,
            holders=self.holders,
            history=self.history,
            transaction=self.transaction,
            unavailable=tuple(self.unavailable),
        )


class _Aggregation:
    def __init__(
        self,
        subject: str,
        hinted_kind: str | None,
        pool: EndpointPool,
        settings: Settings,
        http_client: httpx.AsyncClient,
    ) -> None:
        self.subject = subject
        self.hinted_kind = hinted_kind
        self.pool = pool
        self.settings = settings
        self.http_client = http_client
        self.collector = _EvidenceCollector(subject, hinted_kind or "wallet")

    async def collect_mandatory(self) -> None:
        """Transaction, or account plus parent mint. Plans the optional sources on success."""
        if self.hinted_kind == ADDRESS_KIND_TRANSACTION or is_signature_shape(self.subject):
            await self._collect_transaction()
            return
        await self._collect_account()
        self._plan_optional()

    def _plan_optional(self) -> None:
        c = self.collector
        c.pending = [SOURCE_HISTORY]
        if c.mint_address:
            c.pending.append(SOURCE_METADATA)
            if c.mint is not None and c.classification.kind == ADDRESS_KIND_TOKEN_MINT:
                c.pending.append(SOURCE_HOLDERS)

    async def collect_optional(self) -> None:
        """Fetch the planned optional sources concurrently; each settles its own entry in `pending`."""
        c = self.collector
        jobs: dict[str, Callable[[], Awaitable[None]]] = {
            SOURCE_HISTORY: self._collect_history,
            SOURCE_METADATA: lambda: self._collect_metadata(c.mint_address),  # type: ignore[arg-type]
            SOURCE_HOLDERS: lambda: self._collect_holders(c.mint_address, c.mint),  # type: ignore[arg-type]
        }
        await asyncio.gather(*(self._settle(source, jobs[source]) for source in list(c.pending)))

    async def _settle(self, source: str, job: Callable[[], Awaitable[None]]) -> None:
        await job()
        self.collector.pending.remove(source)

    async def _collect_transaction(self) -> None:
        c = self.collector
        c.classification = Classification(
            ADDRESS_KIND_TRANSACTION, 1.0, {"signature_length": len(self.subject)}
        )
        tx = await self.pool.execute(lambda ep: ep.get_parsed_transaction(self.subject))
        if tx is None:
            raise SubjectNotFound(self.subject, ADDRESS_KIND_TRANSACTION)
        c.transaction = analyze_transaction_flow(self.subject, tx)
        logger.info(
            "transaction_flow_built",
            subject=short_id(self.subject),
            status=c.transaction.status,
            programs=len(c.transaction.program_ids),
        )

    async def _collect_account(self) -> None:
        c = self.collector
        detected = await SubjectClassifier(self.pool).classify(self.subject)
        if detected.account is None:
            raise SubjectNotFound(self.subject)
        c.account = detected.account
        if self.hinted_kind and self.hinted_kind != detected.kind:
            details = dict(detected.details, detected_kind=detected.kind, hinted=True)
            c.classification = Classification(self.hinted_kind, 1.0, details, detected.account)
        else:
            c.classification = detected

        kind = c.classification.kind
        if kind == ADDRESS_KIND_TOKEN_MINT:
            c.mint_address = self.subject
            c.mint_program = c.account.owner
            c.mint = self._decode_mint(c.account)
        elif kind == ADDRESS_KIND_TOKEN_ACCOUNT:
            await self._resolve_parent_mint(c.account)

    def _decode_mint(self, account: AccountState) -> MintInfo | None:
        if account.owner not in TOKEN_PROGRAM_IDS or not is_mint_layout(account.data):
            logger.warning("mint_layout_mismatch", subject=short_id(account.address), owner=account.owner)
            return None
        try:
            return decode_mint(account.data)  # type: ignore[arg-type]
        except LayoutError as e:
            logger.warning("mint_decode_failed", subject=short_id(account.address), error=str(e))
            return None

    async def _resolve_parent_mint(self, account: AccountState) -> None:
        """Token-account subjects inherit the authority evidence of their mint."""
        c = self.collector
        if not is_token_account_layout(account.data):
            return
        try:
            c.token_account = decode_token_account(account.data)  # type: ignore[arg-type]
        except LayoutError as e:
            logger.warning("token_account_decode_failed", subject=short_id(account.address), error=str(e))
            return
        c.mint_address = c.token_account.mint
        try:
            mint_account = await self.pool.execute(lambda ep: ep.get_account_info(c.token_account.mint))
        except AllEndpointsExhausted as e:
            logger.warning("parent_mint_unavailable", subject=short_id(self.subject), error=str(e))
            c.mark_unavailable(SOURCE_PARENT_MINT)
            return
        if mint_account is None:
            c.mark_unavailable(SOURCE_PARENT_MINT)
            return
        c.mint_program = mint_account.owner
        c.mint = self._decode_mint(mint_account)

    async def _collect_history(self) -> None:
        c = self.collector
        try:
            c.history = await fetch_signature_history(
                self.pool, self.subject, self.settings.signature_history_limit
            )
        except Exception as e:
            logger.warning("history_unavailable", subject=short_id(self.subject), error=str(e))
            c.mark_unavailable(SOURCE_HISTORY)

    async def _collect_metadata(self, mint: str) -> None:
        c = self.collector
        try:
            waterfall = MetadataWaterfall(
                default_providers(
                    birdeye_api_key=self.settings.birdeye_api_key,
                    helius_api_key=self.settings.helius_api_key,
                ),
                self.http_client,
                timeout_sec=self.settings.metadata_timeout_sec,
            )
            c.metadata = await waterfall.resolve(mint)
        except Exception as e:
            logger.warning("metadata_unavailable", subject=short_id(mint), error=str(e))
            c.mark_unavailable(SOURCE_METADATA)

    async def _collect_holders(self, mint: str, info: MintInfo) -> None:
        c = self.collector
        try:
            analyzer = HolderAnalyzer(
                self.pool,
                scan_cap=self.settings.holder_scan_cap,
                batch_size=self.settings.holder_batch_size,
                batch_delay_sec=self.settings.holder_batch_delay_sec,
                top_n=self.settings.holder_top_n,
            )
            c.holders = await analyzer.analyze(mint, info.supply, info.decimals, token_program=c.mint_program)
        except HolderEnumerationFailed as e:
            logger.warning("holders_unavailable", subject=short_id(mint), error=str(e))
            c.mark_unavailable(SOURCE_HOLDERS)
        except Exception as e:
            logger.exception("holders_unexpected_error", subject=short_id(mint), error=str(e))
            c.mark_unavailable(SOURCE_HOLDERS)


def _raw_evidence(bundle: EvidenceBundle) -> dict[str, Any]:
    raw: dict[str, Any] = {"observed_at": bundle.observed_at}
    if bundle.account is not None:
        raw["account"] = {
            "owner": bundle.account.owner,
            "executable": bundle.account.executable,
            "lamports": bundle.account.lamports,
            "data_length": bundle.account.data_len,
        }
    if bundle.mint is not None:
        raw["mint"] = {
            "address": bundle.mint_address,
            "supply": str(bundle.mint.supply),
            "decimals": bundle.mint.decimals,
            "mint_authority": bundle.mint.mint_authority,
            "freeze_authority": bundle.mint.freeze_authority,
            "is_initialized": bundle.mint.is_initialized,
        }
    if bundle.token_account is not None:
        raw["token_account"] = {
            "mint": bundle.token_account.mint,
            "owner": bundle.token_account.owner,
            "amount": str(bundle.token_account.amount),
        }
    if bundle.transaction is not None:
        raw["transaction"] = bundle.transaction.to_dict()
    if bundle.history is not None:
        times = [s.block_time for s in bundle.history if s.block_time is not None]
        raw["history"] = {
            "count": len(bundle.history),
            "oldest_block_time": min(times) if times else None,
            "failed": sum(1 for s in bundle.history if s.err is not None),
        }
    return raw


async def _collect_or_degrade(aggregation: _Aggregation, timeout: float) -> None:
    """
    Run the aggregation under the overall timeout.

    The mandatory fetch gets the whole budget and the optional sources get what
    is left. Optional sources still running at the deadline are marked
    unavailable and the result is scored as usual. Not-found, invalid input and
    mandatory-fetch exhaustion propagate; a mandatory-phase timeout or any other
    error becomes AnalysisDegraded so the caller can finish on partial evidence.
    """
    log = bind_subject(aggregation.subject, __name__)
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    try:
        await asyncio.wait_for(aggregation.collect_mandatory(), timeout=timeout)
        remaining = max(deadline - loop.time(), 0.0)
        try:
            await asyncio.wait_for(aggregation.collect_optional(), timeout=remaining)
        except asyncio.TimeoutError:
            abandoned = aggregation.collector.abandon_pending()
            log.warning("optional_sources_timeout", timeout_sec=timeout, sources=abandoned)
    except (InvalidIdentifier, SubjectNotFound, AllEndpointsExhausted):
        raise
    except asyncio.TimeoutError as e:
        log.warning("analysis_timeout", timeout_sec=timeout)
        raise AnalysisDegraded(f"analysis timed out after {timeout}s") from e
    except Exception as e:
        log.exception("analysis_unexpected_error", error=str(e))
        raise AnalysisDegraded(f"unexpected error: {type(e).__name__}: {e}") from e


def _validate_hint(subject: str, hinted_kind: str | None) -> None:
    if hinted_kind is None:
        return
    if hinted_kind not in SUBJECT_KINDS:
        raise ValueError(f"unknown subject kind: {hinted_kind!r}")
    signature_shaped = is_signature_shape(subject)
    if hinted_kind == ADDRESS_KIND_TRANSACTION and not signature_shaped:
        raise InvalidIdentifier(subject, "transaction kind requires a signature")
    if hinted_kind != ADDRESS_KIND_TRANSACTION and signature_shaped:
        raise InvalidIdentifier(subject, f"{hinted_kind} kind requires an address")


async def analyze_subject(
    identifier: str,
    hinted_kind: str | None = None,
    *,
    pool: EndpointPool | None = None,
    settings: Settings | None = None,
    http_client: httpx.AsyncClient | None = None,
    timeout_sec: float | None = None,
) -> AnalysisResult:
    """
    Analyze one address or transaction signature.

    Args:
        identifier: base58 address or signature.
        hinted_kind: caller-asserted kind; overrides the detected kind.
        pool: endpoint pool; built from settings (and closed afterwards) when omitted,
            starting at the endpoint that last succeeded for the same url list.
        settings: engine settings; get_settings() when omitted.
        http_client: client for metadata providers; created (and closed) when omitted.
        timeout_sec: overall aggregation bound; settings.analysis_timeout_sec when omitted.

    Raises:
        InvalidIdentifier: malformed input, before any network call.
        SubjectNotFound: the address or signature does not exist.
        AllEndpointsExhausted: the mandatory account/transaction fetch failed everywhere.
    """
    subject = validate_identifier(identifier)
    _validate_hint(subject, hinted_kind)
    settings = settings or get_settings()
    timeout = timeout_sec if timeout_sec is not None else settings.analysis_timeout_sec

    own_pool = pool is None
    own_client = http_client is None
    pool_key = tuple(settings.rpc_endpoints)
    if pool is None:
        pool = EndpointPool.from_urls(
            settings.rpc_endpoints,
            timeout_sec=settings.rpc_timeout_sec,
            backoff_sec=settings.rpc_backoff_sec,
            start_index=_last_good_endpoint.get(pool_key, 0),
        )
    if http_client is None:
        http_client = httpx.AsyncClient(timeout=httpx.Timeout(settings.metadata_timeout_sec))

    log = bind_subject(subject, __name__)
    log.info("analysis_start", hinted_kind=hinted_kind)
    aggregation = _Aggregation(subject, hinted_kind, pool, settings, http_client)
    degraded_reason: str | None = None
    try:
        await _collect_or_degrade(aggregation, timeout)
    except AnalysisDegraded as e:
        degraded_reason = e.reason
    finally:
        if own_client:
            await http_client.aclose()
        if own_pool:
            _last_good_endpoint[pool_key] = pool.current_index
            await pool.aclose()

    bundle = aggregation.collector.seal(int(time.time()))
    config = settings.security()
    risks = tuple(risk_engine.evaluate(bundle, config))
    if degraded_reason is None:
        scored = trust_engine.score(bundle, config)
        trust_score, factors = scored.score, scored.factors
    else:
        trust_score, factors = trust_engine.NEUTRAL_SCORE, ()

    classification = aggregation.collector.classification
    result = AnalysisResult(
        subject=subject,
        kind=bundle.kind,
        confidence=classification.confidence,
        trust_score=trust_score,
        factors=factors,
        risks=risks,
        holder_summary=bundle.holders.summary() if bundle.holders else None,
        metadata=bundle.metadata,
        raw_evidence=_raw_evidence(bundle),
        unavailable=bundle.unavailable,
        degraded=degraded_reason is not None,
        degraded_reason=degraded_reason,
        classification_details=dict(classification.details),
    )
    log.info(
        "analysis_done",
        kind=result.kind,
        score=result.trust_score,
        risks=len(result.risks),
        unavailable=list(result.unavailable),
        degraded=result.degraded,
    )
    return result


def run_analysis(
    identifier: str,
    hinted_kind: str | None = None,
    *,
    timeout_sec: float | None = None,
) -> dict[str, Any]:
    """Synchronous wrapper: run analyze_subject in a fresh event loop and return the JSON-like dict."""
    result = asyncio.run(analyze_subject(identifier, hinted_kind, timeout_sec=timeout_sec))
    return result.to_dict()
