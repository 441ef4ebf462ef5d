"""Compliance evidence records produced by an evaluation."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class FindingStatus(str, Enum):
    SATISFIED = "satisfied"
    NOT_SATISFIED = "not-satisfied"


class SubjectType(str, Enum):
    COMPONENT = "component"
    INVENTORY_ITEM = "inventory-item"


@dataclass(frozen=True)
class Link:
    href: str
    text: str | None = None
    rel: str | None = None


@dataclass(frozen=True)
class Property:
    name: str
    value: str


@dataclass(frozen=True)
class OriginActor:
    title: str
    type: str
    links: tuple[Link, ...] = ()


@dataclass(frozen=True)
class SubjectReference:
    type: SubjectType
    identifier: str


@dataclass(frozen=True)
class Component:
    identifier: str
    type: str
    title: str
    description: str
    purpose: str


@dataclass(frozen=True)
class InventoryItem:
    identifier: str
    type: str
    title: str
    props: tuple[Property, ...] = ()
    implemented_components: tuple[str, ...] = ()


@dataclass
class Observation:
    uuid: str
    title: str
    description: str
    collected: datetime
    expires: datetime
    relevant_evidence: list[str]
    labels: dict[str, str]
    subjects: list[SubjectReference] = field(default_factory=list)
    origins: list[OriginActor] = field(default_factory=list)


@dataclass
class Finding:
    uuid: str
    title: str
    description: str
    status: FindingStatus
    labels: dict[str, str]
    remarks: str | None = None
    related_observations: list[str] = field(default_factory=list)


@dataclass
class Risk:
    uuid: str
    title: str
    description: str
    statement: str
    links: list[Link] = field(default_factory=list)


@dataclass
class LogEntry:
    title: str
    description: str
    start: datetime
    end: datetime


@dataclass
class ArtifactSet:
    """Artifacts assembled from a single verdict."""

    observations: list[Observation] = field(default_factory=list)
    findings: list[Finding] = field(default_factory=list)
    risks: list[Risk] = field(default_factory=list)


@dataclass
class AssessmentResult:
    title: str
    start: datetime
    end: datetime | None = None
    observations: list[Observation] = field(default_factory=list)
    findings: list[Finding] = field(default_factory=list)
    risks: list[Risk] = field(default_factory=list)
    logs: list[LogEntry] = field(default_factory=list)
    inventory_items: list[InventoryItem] = field(default_factory=list)
    components: list[Component] = field(default_factory=list)


@dataclass(frozen=True)
class AssessmentOutcome:
    """A finalized result ready for the evidence sink."""

    stream_id: str
    result: AssessmentResult
    labels: dict[str, str]
    policy_path: str
