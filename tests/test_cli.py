"""
Tests for the command-line entry point (analysis is patched out).
"""

from __future__ import annotations

import json
from unittest.mock import patch

import pytest

from backend_trustscan import cli
from backend_trustscan.core.exceptions import AllEndpointsExhausted, InvalidIdentifier, SubjectNotFound
from tests.fakes import VALID_WALLET, make_signature


def test_success_prints_json_and_exits_zero(capsys):
    payload = {"subject": VALID_WALLET, "kind": "wallet", "trust_score": 72}
    with patch.object(cli, "run_analysis", return_value=payload) as run:
        code = cli.main([VALID_WALLET, "--timeout", "12.5"])

    assert code == cli.EXIT_OK
    run.assert_called_once_with(VALID_WALLET, None, timeout_sec=12.5)
    assert json.loads(capsys.readouterr().out) == payload


def test_kind_is_forwarded():
    sig = make_signature()
    with patch.object(cli, "run_analysis", return_value={}) as run:
        cli.main([sig, "--kind", "transaction"])
    run.assert_called_once_with(sig, "transaction", timeout_sec=None)


@pytest.mark.parametrize(
    "error, expected_code, error_code",
    [
        (InvalidIdentifier("x", "not base58"), cli.EXIT_INVALID, "invalid_identifier"),
        (SubjectNotFound(VALID_WALLET), cli.EXIT_NOT_FOUND, "subject_not_found"),
        (AllEndpointsExhausted(RuntimeError("down"), 3), cli.EXIT_ERROR, "all_endpoints_exhausted"),
    ],
)
def test_errors_map_to_exit_codes(capsys, error, expected_code, error_code):
    with patch.object(cli, "run_analysis", side_effect=error):
        code = cli.main([VALID_WALLET])

    assert code == expected_code
    captured = capsys.readouterr()
    assert captured.out == ""
    assert json.loads(captured.err.strip().splitlines()[-1])["error"] == error_code


def test_value_error_is_invalid_argument(capsys):
    with patch.object(cli, "run_analysis", side_effect=ValueError("unknown subject kind")):
        assert cli.main([VALID_WALLET]) == cli.EXIT_INVALID
    assert "invalid_argument" in capsys.readouterr().err


def test_unknown_kind_rejected_by_parser():
    with pytest.raises(SystemExit) as excinfo:
        cli.build_parser().parse_args([VALID_WALLET, "--kind", "nft"])
    assert excinfo.value.code == 2
