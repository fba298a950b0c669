"""
Subject classifier: wallet, program, tokenMint, tokenAccount or transaction.

Validates the identifier shape offline, then inspects the on-chain account
(owner, executable flag, data layout). Order, first match wins:

1. longer than 80 chars (signatures are 87-88 base58 chars) -> transaction
2. account missing -> wallet, low confidence, note account_not_found
3. token program owner + mint layout -> tokenMint
4. token program owner + token-account layout -> tokenAccount
5. executable -> program
6. otherwise wallet
"""

from __future__ import annotations

import re
from typing import Any

from solders.pubkey import Pubkey
from solders.signature import Signature

from backend_trustscan.analytics.layouts import (
    extension_account_type,
    is_mint_layout,
    is_token_account_layout,
)
from backend_trustscan.core.exceptions import InvalidIdentifier
from backend_trustscan.core.models import (
    ADDRESS_KIND_PROGRAM,
    ADDRESS_KIND_TOKEN_ACCOUNT,
    ADDRESS_KIND_TOKEN_MINT,
    ADDRESS_KIND_TRANSACTION,
    ADDRESS_KIND_WALLET,
    AccountState,
    Classification,
)
from backend_trustscan.core.programs import (
    LOADER_LABELS,
    SYSTEM_PROGRAM_ID,
    TOKEN_PROGRAM_IDS,
    program_label,
)
from backend_trustscan.rpc.endpoint_pool import EndpointPool
from backend_trustscan.trustscan_logging import get_logger, short_id

logger = get_logger(__name__)

SIGNATURE_LENGTH_THRESHOLD = 80

_BASE58_RE = re.compile(r"^[1-9A-HJ-NP-Za-km-z]+$")

CONFIDENCE_TRANSACTION = 1.0
CONFIDENCE_TOKEN_MINT = 0.95
CONFIDENCE_TOKEN_ACCOUNT = 0.9
CONFIDENCE_PROGRAM = 1.0
CONFIDENCE_SYSTEM_WALLET = 0.6
CONFIDENCE_WALLET = 0.5
CONFIDENCE_NOT_FOUND = 0.3


def validate_identifier(identifier: str | None) -> str:
    """
    Return the stripped identifier or raise InvalidIdentifier. No network access.

    Accepts a base58 32-byte public key or a base58 64-byte signature.
    """
    value = (identifier or "").strip()
    if not value:
        raise InvalidIdentifier(value, "empty identifier")
    if not _BASE58_RE.match(value):
        raise InvalidIdentifier(value, "not base58")
    if len(value) > SIGNATURE_LENGTH_THRESHOLD:
        try:
            Signature.from_string(value)
        except Exception:
            raise InvalidIdentifier(value, "not a 64-byte signature") from None
        return value
    try:
        Pubkey.from_string(value)
    except Exception:
        raise InvalidIdentifier(value, "not a 32-byte public key") from None
    return value


def is_signature_shape(identifier: str) -> bool:
    return len(identifier) > SIGNATURE_LENGTH_THRESHOLD


def classify_account(address: str, account: AccountState | None) -> Classification:
    """Classify from already-fetched account state (pure)."""
    if account is None:
        return Classification(
            kind=ADDRESS_KIND_WALLET,
            confidence=CONFIDENCE_NOT_FOUND,
            details={"note": "account_not_found"},
        )

    details: dict[str, Any] = {
        "owner": account.owner,
        "executable": account.executable,
        "lamports": account.lamports,
        "data_length": account.data_len,
    }

    if account.owner in TOKEN_PROGRAM_IDS:
        ext_type = extension_account_type(account.data)
        if ext_type is not None:
            details["token_2022_account_type"] = ext_type
        if is_mint_layout(account.data):
            return Classification(ADDRESS_KIND_TOKEN_MINT, CONFIDENCE_TOKEN_MINT, details, account)
        if is_token_account_layout(account.data):
            return Classification(ADDRESS_KIND_TOKEN_ACCOUNT, CONFIDENCE_TOKEN_ACCOUNT, details, account)

    if account.executable:
        details["loader"] = LOADER_LABELS.get(account.owner, account.owner)
        label = program_label(address)
        if label:
            details["label"] = label
        return Classification(ADDRESS_KIND_PROGRAM, CONFIDENCE_PROGRAM, details, account)

    if account.owner == SYSTEM_PROGRAM_ID:
        return Classification(ADDRESS_KIND_WALLET, CONFIDENCE_SYSTEM_WALLET, details, account)
    return Classification(ADDRESS_KIND_WALLET, CONFIDENCE_WALLET, details, account)


class SubjectClassifier:
    """Classifies identifiers, fetching account state through the endpoint pool."""

    def __init__(self, pool: EndpointPool) -> None:
        self._pool = pool

    async def classify(self, identifier: str) -> Classification:
        """
        Classify one identifier.

        Raises:
            InvalidIdentifier: before any network call, for malformed input.
            AllEndpointsExhausted: the account fetch failed on every endpoint.
        """
        subject = validate_identifier(identifier)
        if is_signature_shape(subject):
            result = Classification(
                ADDRESS_KIND_TRANSACTION,
                CONFIDENCE_TRANSACTION,
                {"signature_length": len(subject)},
            )
        else:
            account = await self._pool.execute(lambda ep: ep.get_account_info(subject))
            result = classify_account(subject, account)
        logger.info(
            "classifier_result",
            subject=short_id(subject),
            kind=result.kind,
            confidence=result.confidence,
        )
        return result
