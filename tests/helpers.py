from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from aws_netsec_compliance.domain.evidence import AssessmentOutcome


def make_group(group_id: str = "sg-0123456789abcdef0", **overrides: object) -> dict[str, object]:
    group: dict[str, object] = {
        "GroupId": group_id,
        "GroupName": "web",
        "Description": "web tier",
        "VpcId": "vpc-0abc",
        "OwnerId": "123456789012",
        "IpPermissions": [
            {
                "IpProtocol": "tcp",
                "FromPort": 22,
                "ToPort": 22,
                "IpRanges": [{"CidrIp": "0.0.0.0/0"}],
            }
        ],
        "IpPermissionsEgress": [
            {"IpProtocol": "-1", "IpRanges": [{"CidrIp": "0.0.0.0/0"}]},
        ],
    }
    group.update(overrides)
    return group


class ScriptedEvaluator:
    """Returns canned raw verdicts per policy path and records every call."""

    def __init__(self, script: Mapping[str, Any] | None = None) -> None:
        self.script = dict(script or {})
        self.calls: list[tuple[str, dict[str, Any]]] = []

    def evaluate(self, document: Mapping[str, Any], policy_path: str) -> list[Any]:
        self.calls.append((policy_path, dict(document)))
        scripted = self.script.get(policy_path, [])
        if isinstance(scripted, Exception):
            raise scripted
        return scripted


class RecordingSink:
    def __init__(self, fail_on: set[str] | None = None) -> None:
        self.fail_on = fail_on or set()
        self.outcomes: list[AssessmentOutcome] = []
        self.attempts: list[str] = []

    def publish(self, outcome: AssessmentOutcome) -> None:
        self.attempts.append(outcome.policy_path)
        if outcome.policy_path in self.fail_on:
            raise RuntimeError("sink unavailable")
        self.outcomes.append(outcome)
