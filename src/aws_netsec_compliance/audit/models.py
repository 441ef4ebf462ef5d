"""Records kept by the local evidence store."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class ArtifactRecord:
    artifact_id: str
    kind: str
    location: str
    checksum: str
    created_at: str


@dataclass
class StreamRecord:
    stream_id: str
    policy_path: str
    labels: str
    latest_artifact_id: str
    result_count: int
    created_at: str
    updated_at: str


@dataclass
class ResultRecord:
    artifact_id: str
    stream_id: str
    status: str
    observation_count: int
    finding_count: int
    risk_count: int
    location: str
    checksum: str
    created_at: str
