"""
Command-line entry point: analyze one address or signature and print JSON.

Usage:
    python -m backend_trustscan <identifier> [--kind KIND] [--timeout SEC]

Exit codes: 0 success, 1 other failure, 2 invalid identifier, 3 not found.
"""

from __future__ import annotations

import argparse
import json
import sys

from backend_trustscan.analytics.analytics_pipeline import run_analysis
from backend_trustscan.core.exceptions import (
    InvalidIdentifier,
    SubjectNotFound,
    TrustScanError,
)
from backend_trustscan.core.models import SUBJECT_KINDS
from backend_trustscan.trustscan_logging import get_logger

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_INVALID = 2
EXIT_NOT_FOUND = 3


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="backend_trustscan",
        description="Trust score and security risks for a Solana address or transaction",
    )
    ap.add_argument("identifier", help="Base58 address or transaction signature")
    ap.add_argument("--kind", choices=SUBJECT_KINDS, default=None, help="Treat subject as KIND (overrides detection)")
    ap.add_argument("--timeout", type=float, default=None, help="Overall analysis timeout in seconds")
    ap.add_argument("--indent", type=int, default=2, help="JSON indent (default: 2)")
    return ap


def _print_error(error: TrustScanError) -> None:
    print(json.dumps({"error": error.code, "message": str(error)}), file=sys.stderr)


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        payload = run_analysis(args.identifier, args.kind, timeout_sec=args.timeout)
    except InvalidIdentifier as e:
        _print_error(e)
        return EXIT_INVALID
    except SubjectNotFound as e:
        _print_error(e)
        return EXIT_NOT_FOUND
    except TrustScanError as e:
        logger.error("cli_analysis_failed", error=str(e), code=e.code)
        _print_error(e)
        return EXIT_ERROR
    except ValueError as e:
        print(json.dumps({"error": "invalid_argument", "message": str(e)}), file=sys.stderr)
        return EXIT_INVALID
    print(json.dumps(payload, indent=args.indent))
    return EXIT_OK
