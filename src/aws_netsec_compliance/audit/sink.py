"""Evidence sinks that receive finalized assessment results."""

from __future__ import annotations

import json
import logging
import sqlite3
from pathlib import Path
from typing import Protocol, runtime_checkable

from aws_netsec_compliance.audit.artifacts import ArtifactStore
from aws_netsec_compliance.audit.db import SqliteStore
from aws_netsec_compliance.audit.models import ResultRecord
from aws_netsec_compliance.domain.evidence import AssessmentOutcome, FindingStatus
from aws_netsec_compliance.errors import PublishError

logger = logging.getLogger(__name__)


@runtime_checkable
class EvidenceSink(Protocol):
    """Receives one assessment result per (resource, policy) pair."""

    def publish(self, outcome: AssessmentOutcome) -> None: ...


def outcome_status(outcome: AssessmentOutcome) -> str:
    findings = outcome.result.findings
    if any(finding.status is FindingStatus.NOT_SATISFIED for finding in findings):
        return FindingStatus.NOT_SATISFIED.value
    return FindingStatus.SATISFIED.value


class LocalEvidenceSink:
    """Writes each result as a JSON artifact and indexes it by stream id."""

    def __init__(self, store: SqliteStore, artifacts: ArtifactStore) -> None:
        self._store = store
        self._artifacts = artifacts

    def publish(self, outcome: AssessmentOutcome) -> None:
        payload = {
            "stream_id": outcome.stream_id,
            "policy_path": outcome.policy_path,
            "labels": outcome.labels,
            "result": outcome.result,
        }
        try:
            artifact = self._artifacts.write_json(
                "assessment-result", payload, prefix=outcome.stream_id
            )
        except OSError as exc:
            raise PublishError(
                f"failed to write assessment result: {exc}",
                policy_path=outcome.policy_path,
            ) from exc

        try:
            self._store.record_result(
                stream_id=outcome.stream_id,
                policy_path=outcome.policy_path,
                labels=json.dumps(outcome.labels, sort_keys=True),
                result=ResultRecord(
                    artifact_id=artifact.artifact_id,
                    stream_id=outcome.stream_id,
                    status=outcome_status(outcome),
                    observation_count=len(outcome.result.observations),
                    finding_count=len(outcome.result.findings),
                    risk_count=len(outcome.result.risks),
                    location=artifact.location,
                    checksum=artifact.checksum,
                    created_at=artifact.created_at,
                ),
            )
        except sqlite3.Error as exc:
            self._discard(artifact.location)
            raise PublishError(
                f"failed to index assessment result: {exc}",
                policy_path=outcome.policy_path,
            ) from exc

        logger.info(
            "Published %s result for stream %s (%d observations, %d findings, %d risks)",
            outcome.policy_path,
            outcome.stream_id,
            len(outcome.result.observations),
            len(outcome.result.findings),
            len(outcome.result.risks),
        )

    def _discard(self, location: str) -> None:
        # The stream row was rolled back, so the artifact has no index entry.
        try:
            Path(location).unlink(missing_ok=True)
        except OSError as exc:
            logger.warning("Failed to remove orphaned artifact %s: %s", location, exc)
