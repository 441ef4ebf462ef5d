"""Per-pair assessment results and their stream identifiers."""

from __future__ import annotations

import json
import uuid
from collections.abc import Callable, Mapping
from datetime import datetime

from aws_netsec_compliance.domain.evidence import (
    ArtifactSet,
    AssessmentOutcome,
    AssessmentResult,
    LogEntry,
)
from aws_netsec_compliance.domain.labels import (
    LABEL_POLICY_PATH,
    STREAM_IDENTITY_LABELS,
    merge_labels,
)
from aws_netsec_compliance.policy.models import PolicyReference
from aws_netsec_compliance.resources.normalizer import NormalizedResource
from aws_netsec_compliance.utils.time import utc_now

# Fixed namespace so that stream ids are reproducible across processes and hosts.
STREAM_NAMESPACE = uuid.UUID("5b0c7e52-8f5c-4a55-9d0e-2b8a3f7f0c11")


def stream_identifier(labels: Mapping[str, str]) -> str:
    """Derive the stream id from resource type, policy path and resource id."""
    missing = [key for key in STREAM_IDENTITY_LABELS if not labels.get(key)]
    if missing:
        raise ValueError(f"labels missing stream identity keys: {', '.join(missing)}")
    # JSON pairs keep values containing separators from colliding.
    seed = json.dumps([[key, labels[key]] for key in sorted(STREAM_IDENTITY_LABELS)])
    return str(uuid.uuid5(STREAM_NAMESPACE, seed))


class PairAccumulator:
    """Collects the artifacts of one (resource, policy) evaluation."""

    def __init__(
        self,
        result: AssessmentResult,
        resource: NormalizedResource,
        policy: PolicyReference,
        labels: dict[str, str],
        clock: Callable[[], datetime],
    ) -> None:
        self.result = result
        self.resource = resource
        self.policy = policy
        self.labels = labels
        self._clock = clock
        self.started = clock()

    def add(self, artifacts: ArtifactSet) -> None:
        self.result.observations.extend(artifacts.observations)
        self.result.findings.extend(artifacts.findings)
        self.result.risks.extend(artifacts.risks)

    def finalize(self) -> AssessmentOutcome:
        ended = self._clock()
        self.result.end = ended
        self.result.logs.append(
            LogEntry(
                title=f"Evaluated {self.policy.path}",
                description=(
                    f"Evaluated policy {self.policy.path} against security group "
                    f"{self.resource.resource_id}."
                ),
                start=self.started,
                end=ended,
            )
        )
        return AssessmentOutcome(
            stream_id=stream_identifier(self.labels),
            result=self.result,
            labels=dict(self.labels),
            policy_path=self.policy.path,
        )


class ResultAggregator:
    def __init__(
        self,
        title: str,
        run_started: datetime | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._title = title
        self._clock = clock
        self.run_started = run_started or clock()

    def pair_labels(
        self, resource: NormalizedResource, policy: PolicyReference
    ) -> dict[str, str]:
        return merge_labels(resource.labels, policy.labels, {LABEL_POLICY_PATH: policy.path})

    def start_pair(
        self, resource: NormalizedResource, policy: PolicyReference
    ) -> PairAccumulator:
        result = AssessmentResult(
            title=self._title,
            start=self.run_started,
            inventory_items=[resource.context.inventory_item],
            components=[resource.context.component],
        )
        return PairAccumulator(
            result=result,
            resource=resource,
            policy=policy,
            labels=self.pair_labels(resource, policy),
            clock=self._clock,
        )
