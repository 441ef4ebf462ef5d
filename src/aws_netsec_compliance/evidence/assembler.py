"""Turns policy verdicts into observations, findings and risks.

Titles, descriptions, statuses and cross references depend only on the
verdict and the resource; identifiers and timestamps are the only values
that differ between two assemblies of the same verdict.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from datetime import datetime
from uuid import uuid4

from aws_netsec_compliance.domain.evidence import (
    ArtifactSet,
    Finding,
    FindingStatus,
    Link,
    Observation,
    Risk,
)
from aws_netsec_compliance.domain.labels import LABEL_POLICY, merge_labels
from aws_netsec_compliance.policy.models import RiskEntry, Verdict
from aws_netsec_compliance.resources.normalizer import NormalizedResource
from aws_netsec_compliance.utils.time import add_calendar_month, utc_now


def _new_id() -> str:
    return str(uuid4())


class EvidenceAssembler:
    def __init__(
        self,
        id_factory: Callable[[], str] = _new_id,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._new_id = id_factory
        self._clock = clock

    def assemble(
        self,
        verdict: Verdict,
        resource: NormalizedResource,
        labels: Mapping[str, str],
        collected: datetime | None = None,
    ) -> ArtifactSet:
        """Assemble the artifacts for one verdict.

        ``labels`` is the pair's label set (base labels plus policy overrides);
        every observation and finding gets a copy with the policy id added.
        """
        collected = collected or self._clock()
        artifact_labels = merge_labels(labels, {LABEL_POLICY: verdict.policy_id})
        artifacts = ArtifactSet()

        if verdict.passed:
            self._assemble_passed(verdict, resource, artifact_labels, collected, artifacts)
        else:
            self._assemble_failed(verdict, resource, artifact_labels, collected, artifacts)

        artifacts.risks.extend(self._risk(entry) for entry in verdict.risks)
        return artifacts

    def _assemble_passed(
        self,
        verdict: Verdict,
        resource: NormalizedResource,
        labels: dict[str, str],
        collected: datetime,
        artifacts: ArtifactSet,
    ) -> None:
        policy = verdict.policy_id
        artifacts.observations.append(
            self._observation(
                resource,
                labels,
                collected,
                title=f"Validation on {policy} passed.",
                description=(
                    f"Policy {policy} returned no violations for security group "
                    f"{resource.resource_id}. The configuration complies with the policy."
                ),
                evidence=(
                    f"Policy {policy} was evaluated, and no violations were found on "
                    f"security group {resource.resource_id}."
                ),
            )
        )
        artifacts.findings.append(
            Finding(
                uuid=self._new_id(),
                title=f"No violations found on {policy}",
                description=(
                    f"No violations found on the {policy} policy for security group "
                    f"{resource.resource_id}."
                ),
                status=FindingStatus.SATISFIED,
                labels=dict(labels),
            )
        )

    def _assemble_failed(
        self,
        verdict: Verdict,
        resource: NormalizedResource,
        labels: dict[str, str],
        collected: datetime,
        artifacts: ArtifactSet,
    ) -> None:
        policy = verdict.policy_id
        count = len(verdict.violations)
        observation = self._observation(
            resource,
            labels,
            collected,
            title=f"Validation on {policy} failed.",
            description=(
                f"Observed {count} violation(s) of the {policy} policy on security group "
                f"{resource.resource_id}."
            ),
            evidence=(
                f"Policy {policy} was evaluated, and {count} violation(s) were found on "
                f"security group {resource.resource_id}."
            ),
        )
        artifacts.observations.append(observation)

        for violation in verdict.violations:
            artifacts.findings.append(
                Finding(
                    uuid=self._new_id(),
                    title=violation.title,
                    description=violation.description,
                    remarks=violation.remarks,
                    status=FindingStatus.NOT_SATISFIED,
                    labels=dict(labels),
                    related_observations=[observation.uuid],
                )
            )

    def _observation(
        self,
        resource: NormalizedResource,
        labels: dict[str, str],
        collected: datetime,
        *,
        title: str,
        description: str,
        evidence: str,
    ) -> Observation:
        return Observation(
            uuid=self._new_id(),
            title=title,
            description=description,
            collected=collected,
            expires=add_calendar_month(collected),
            relevant_evidence=[evidence],
            labels=dict(labels),
            subjects=list(resource.context.subjects),
            origins=list(resource.context.origins),
        )

    def _risk(self, entry: RiskEntry) -> Risk:
        return Risk(
            uuid=self._new_id(),
            title=entry.title,
            description=entry.description,
            statement=entry.statement,
            links=[Link(href=link.url, text=link.text) for link in entry.links],
        )
