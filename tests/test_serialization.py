from __future__ import annotations

import json
from datetime import date, datetime, timezone

from aws_netsec_compliance.domain.evidence import Finding, FindingStatus
from aws_netsec_compliance.policy.models import Violation
from aws_netsec_compliance.utils.serialization import json_default


def test_nested_dataclass_with_enum_and_datetime() -> None:
    finding = Finding(
        uuid="f-1",
        title="Open SSH",
        description="Port 22 is open to the world",
        status=FindingStatus.NOT_SATISFIED,
        labels={"group-id": "sg-1"},
    )
    payload = {"at": datetime(2024, 5, 1, tzinfo=timezone.utc), "finding": finding}

    decoded = json.loads(json.dumps(payload, default=json_default))

    assert decoded["at"] == "2024-05-01T00:00:00Z"
    assert decoded["finding"]["status"] == "not-satisfied"
    assert decoded["finding"]["related_observations"] == []


def test_pydantic_models_sets_and_fallback() -> None:
    payload = {
        "violation": Violation(title="t", description="d"),
        "ports": {443, 22},
        "day": date(2024, 2, 29),
        "other": object,
    }

    decoded = json.loads(json.dumps(payload, default=json_default))

    assert decoded["violation"] == {"title": "t", "description": "d", "remarks": None}
    assert decoded["ports"] == [22, 443]
    assert decoded["day"] == "2024-02-29"
    assert decoded["other"] == str(object)
