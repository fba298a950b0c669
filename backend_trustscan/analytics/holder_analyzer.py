"""
Holder distribution analyzer for one SPL mint.

Enumerates token accounts with getProgramAccounts, fetches a capped subset in
concurrent batches with a delay between batches, and ranks holders by raw
balance. Reports the true discovered account count next to the sample.
"""

from __future__ import annotations

import asyncio
from typing import Any

from backend_trustscan.analytics.layouts import (
    TOKEN_ACCOUNT_DATA_SIZE_FILTER,
    LayoutError,
    decode_token_account,
)
from backend_trustscan.core.exceptions import AllEndpointsExhausted, HolderEnumerationFailed
from backend_trustscan.core.models import Holder, HolderDistribution
from backend_trustscan.core.programs import TOKEN_2022_PROGRAM_ID, TOKEN_PROGRAM_ID
from backend_trustscan.rpc.endpoint_pool import EndpointPool
from backend_trustscan.trustscan_logging import get_logger, short_id

logger = get_logger(__name__)

DEFAULT_SCAN_CAP = 50
DEFAULT_BATCH_SIZE = 20
DEFAULT_BATCH_DELAY_SEC = 0.1
DEFAULT_TOP_N = 100


def _percentage(amount: int, total_supply: int) -> float:
    if total_supply <= 0:
        return 0.0
    return amount / total_supply * 100


def holder_filters(mint: str, token_program: str = TOKEN_PROGRAM_ID) -> list[dict[str, Any]]:
    """getProgramAccounts filters selecting token accounts of `mint` (mint is bytes 0..32)."""
    memcmp = {"memcmp": {"offset": 0, "bytes": mint}}
    if token_program == TOKEN_2022_PROGRAM_ID:
        # Token-2022 accounts with extensions are longer than 165 bytes
        return [memcmp]
    return [dict(TOKEN_ACCOUNT_DATA_SIZE_FILTER), memcmp]


class HolderAnalyzer:
    """
    Batched holder scan through an EndpointPool.

    Args:
        pool: endpoint pool used for enumeration and per-account fetches.
        scan_cap: max discovered accounts to fetch and rank.
        batch_size: concurrent account fetches per batch.
        batch_delay_sec: pause between batches (not after the last).
        top_n: max holders returned.
    """

    def __init__(
        self,
        pool: EndpointPool,
        *,
        scan_cap: int = DEFAULT_SCAN_CAP,
        batch_size: int = DEFAULT_BATCH_SIZE,
        batch_delay_sec: float = DEFAULT_BATCH_DELAY_SEC,
        top_n: int = DEFAULT_TOP_N,
    ) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be >= 1")
        if scan_cap < 0 or top_n < 0:
            raise ValueError("scan_cap and top_n must be >= 0")
        self._pool = pool
        self._scan_cap = scan_cap
        self._batch_size = batch_size
        self._batch_delay_sec = batch_delay_sec
        self._top_n = top_n

    async def enumerate_accounts(self, mint: str, token_program: str = TOKEN_PROGRAM_ID) -> list[str]:
        """Return token-account addresses for `mint` in discovery order."""
        filters = holder_filters(mint, token_program)
        try:
            items = await self._pool.execute(
                lambda ep: ep.get_program_accounts(
                    token_program,
                    filters,
                    data_slice={"offset": 0, "length": 0},
                )
            )
        except AllEndpointsExhausted as e:
            raise HolderEnumerationFailed(mint, e) from e

        addresses: list[str] = []
        for item in items:
            pubkey = item.get("pubkey") if isinstance(item, dict) else None
            if not isinstance(pubkey, str) or not pubkey:
                raise HolderEnumerationFailed(mint, ValueError("malformed getProgramAccounts item"))
            addresses.append(pubkey)
        return addresses

    async def _fetch_holding(self, token_account: str) -> tuple[str, int] | None:
        """Return (owner, amount) for one token account, or None if it could not be read."""
        try:
            account = await self._pool.execute(lambda ep: ep.get_account_info(token_account))
            if account is None or account.data is None:
                logger.debug("holder_account_missing", token_account=short_id(token_account))
                return None
            info = decode_token_account(account.data)
        except (AllEndpointsExhausted, LayoutError) as e:
            logger.warning("holder_account_skipped", token_account=short_id(token_account), error=str(e))
            return None
        return info.owner, info.amount

    async def analyze(
        self,
        mint: str,
        total_supply: int,
        decimals: int,
        *,
        token_program: str = TOKEN_PROGRAM_ID,
    ) -> HolderDistribution:
        """
        Build the holder distribution for `mint`.

        Raises:
            HolderEnumerationFailed: enumeration failed on every endpoint or returned a
                malformed response. Callers must treat holders as unavailable.
        """
        accounts = await self.enumerate_accounts(mint, token_program)
        total_found = len(accounts)
        sample = accounts[: self._scan_cap]
        logger.info(
            "holder_scan_start",
            subject=short_id(mint),
            discovered=total_found,
            sampled=len(sample),
            batch_size=self._batch_size,
        )

        found: list[tuple[str, str, int]] = []
        for start in range(0, len(sample), self._batch_size):
            batch = sample[start : start + self._batch_size]
            results = await asyncio.gather(*(self._fetch_holding(a) for a in batch))
            for token_account, res in zip(batch, results):
                if res is None:
                    continue
                owner, amount = res
                if amount <= 0:
                    continue
                found.append((token_account, owner, amount))
            logger.debug(
                "holder_batch_done",
                subject=short_id(mint),
                batch=start // self._batch_size + 1,
                holders=len(found),
            )
            if start + self._batch_size < len(sample):
                await asyncio.sleep(self._batch_delay_sec)

        # Stable sort: equal amounts keep discovery order
        found.sort(key=lambda t: t[2], reverse=True)
        scale = 10 ** decimals
        holders = tuple(
            Holder(
                address=owner,
                token_account=token_account,
                amount=amount,
                ui_amount=amount / scale,
                percentage=_percentage(amount, total_supply),
                rank=i + 1,
            )
            for i, (token_account, owner, amount) in enumerate(found[: self._top_n])
        )

        amounts = [h.amount for h in holders]
        distribution = HolderDistribution(
            holders=holders,
            total_holder_count=total_found,
            sampled_count=len(sample),
            top_holder_percentage=_percentage(amounts[0], total_supply) if amounts else 0.0,
            top10_percentage=_percentage(sum(amounts[:10]), total_supply),
            top50_percentage=_percentage(sum(amounts[:50]), total_supply),
        )
        logger.info(
            "holder_scan_done",
            subject=short_id(mint),
            holders=len(holders),
            total_holders=total_found,
            top_holder_percentage=round(distribution.top_holder_percentage, 4),
        )
        return distribution
