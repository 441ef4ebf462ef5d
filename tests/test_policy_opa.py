from __future__ import annotations

import json
import subprocess
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest

from aws_netsec_compliance.config import PolicySettings
from aws_netsec_compliance.policy.opa import OpaEvaluationError, OpaEvaluator, parse_eval_output


def _opa_output(value: dict) -> str:
    return json.dumps({"result": [{"expressions": [{"value": value, "text": "data"}]}]})


def _completed(stdout: str = "", stderr: str = "", returncode: int = 0) -> SimpleNamespace:
    return SimpleNamespace(stdout=stdout, stderr=stderr, returncode=returncode)


def test_parse_eval_output_finds_nested_packages() -> None:
    output = json.loads(
        _opa_output(
            {
                "ssh": {"violation": [{"title": "open ssh"}], "title": "SSH"},
                "aws": {
                    "rdp": {
                        "violation": [],
                        "risks": [{"title": "r", "links": []}],
                    }
                },
                "helper_value": 3,
            }
        )
    )

    verdicts = parse_eval_output(output, "data.compliance_framework")

    assert [v["policy_id"] for v in verdicts] == [
        "data.compliance_framework.aws.rdp",
        "data.compliance_framework.ssh",
    ]
    assert verdicts[0]["risks"] == [{"title": "r", "links": []}]
    assert verdicts[1]["violations"] == [{"title": "open ssh"}]
    assert verdicts[1]["title"] == "SSH"


def test_parse_eval_output_empty_result() -> None:
    assert parse_eval_output({}, "data.compliance_framework") == []
    assert parse_eval_output({"result": []}, "data.compliance_framework") == []


@patch("aws_netsec_compliance.policy.opa.subprocess.run")
def test_evaluate_invokes_opa_with_stdin_input(mock_run: MagicMock) -> None:
    mock_run.return_value = _completed(_opa_output({"ssh": {"violation": []}}))
    evaluator = OpaEvaluator(binary="/usr/local/bin/opa", timeout_seconds=5)

    verdicts = evaluator.evaluate({"GroupId": "sg-1"}, "./policies/ssh")

    assert verdicts[0]["policy_id"] == "data.compliance_framework.ssh"
    args = mock_run.call_args.args[0]
    assert args == [
        "/usr/local/bin/opa",
        "eval",
        "--format",
        "json",
        "--stdin-input",
        "--data",
        "./policies/ssh",
        "data.compliance_framework",
    ]
    kwargs = mock_run.call_args.kwargs
    assert json.loads(kwargs["input"]) == {"GroupId": "sg-1"}
    assert kwargs["timeout"] == 5


@patch("aws_netsec_compliance.policy.opa.subprocess.run")
def test_evaluate_nonzero_exit(mock_run: MagicMock) -> None:
    mock_run.return_value = _completed(stderr="1 error occurred: rego_parse_error", returncode=1)

    with pytest.raises(OpaEvaluationError, match="exit 1"):
        OpaEvaluator().evaluate({}, "./policies/broken")


@patch(
    "aws_netsec_compliance.policy.opa.subprocess.run",
    side_effect=subprocess.TimeoutExpired(cmd="opa", timeout=1),
)
def test_evaluate_timeout(_mock_run: MagicMock) -> None:
    with pytest.raises(OpaEvaluationError, match="timed out"):
        OpaEvaluator(timeout_seconds=1).evaluate({}, "./policies/slow")


@patch("aws_netsec_compliance.policy.opa.subprocess.run", side_effect=FileNotFoundError("opa"))
def test_evaluate_missing_binary(_mock_run: MagicMock) -> None:
    with pytest.raises(OpaEvaluationError, match="not found"):
        OpaEvaluator(binary="missing-opa").evaluate({}, "./policies/ssh")


@patch("aws_netsec_compliance.policy.opa.subprocess.run")
def test_evaluate_invalid_json(mock_run: MagicMock) -> None:
    mock_run.return_value = _completed("not-json")
    with pytest.raises(OpaEvaluationError, match="invalid JSON"):
        OpaEvaluator().evaluate({}, "./policies/ssh")


def test_evaluate_rejects_option_like_policy_path() -> None:
    with pytest.raises(OpaEvaluationError, match="must not start"):
        OpaEvaluator().evaluate({}, "--bundle")


def test_query_root_must_be_rego_reference() -> None:
    with pytest.raises(ValueError, match="valid rego reference"):
        OpaEvaluator(query_root="data.x; rm -rf")


def test_from_settings() -> None:
    evaluator = OpaEvaluator.from_settings(
        PolicySettings(opa_binary="opa-1", query_root="data.custom", timeout_seconds=2)
    )
    assert evaluator._binary == "opa-1"
    assert evaluator._query_root == "data.custom"
    assert evaluator._timeout == 2
