"""
Application-level exceptions.

Responsibilities:
- Define domain exceptions (SubjectNotFound, InvalidIdentifier, ...).
- Provide consistent error codes and messages for CLI and pipeline error handling.
"""

from __future__ import annotations


class TrustScanError(Exception):
    """Base class for engine errors. `code` is stable for callers."""

    code = "trustscan_error"


class InvalidIdentifier(TrustScanError):
    """Identifier is empty, not base58, or not a 32-byte key / 64-byte signature."""

    code = "invalid_identifier"

    def __init__(self, identifier: str, reason: str) -> None:
        self.identifier = identifier
        self.reason = reason
        super().__init__(f"invalid identifier {identifier!r}: {reason}")


class SubjectNotFound(TrustScanError):
    """Address or signature does not exist on chain."""

    code = "subject_not_found"

    def __init__(self, subject: str, kind: str | None = None) -> None:
        self.subject = subject
        self.kind = kind
        label = kind or "subject"
        super().__init__(f"{label} not found: {subject}")


class RpcError(TrustScanError):
    """JSON-RPC error object or malformed response from one endpoint."""

    code = "rpc_error"

    def __init__(self, message: str, *, rpc_code: int | None = None, endpoint: str | None = None) -> None:
        self.rpc_code = rpc_code
        self.endpoint = endpoint
        super().__init__(message)


class AllEndpointsExhausted(TrustScanError):
    """Every endpoint in the pool failed one operation."""

    code = "all_endpoints_exhausted"

    def __init__(self, last_error: BaseException | None, attempts: int) -> None:
        self.last_error = last_error
        self.attempts = attempts
        super().__init__(f"all {attempts} endpoint(s) failed; last error: {last_error}")


class HolderEnumerationFailed(TrustScanError):
    """Token-account enumeration failed; holder data is unavailable (not zero holders)."""

    code = "holder_enumeration_failed"

    def __init__(self, mint: str, cause: BaseException | None = None) -> None:
        self.mint = mint
        self.cause = cause
        super().__init__(f"holder enumeration failed for {mint}: {cause}")


class AnalysisDegraded(TrustScanError):
    """Marker for an analysis that finished on partial evidence (timeout or unexpected error)."""

    code = "analysis_degraded"

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(reason)
