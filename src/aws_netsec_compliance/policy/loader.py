"""Policy manifest loader for policies.yaml."""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path

import yaml

from aws_netsec_compliance.policy.models import PolicyManifest, PolicyReference


def load_manifest(path: str) -> PolicyManifest:
    manifest_path = Path(path)
    if not manifest_path.exists():
        raise FileNotFoundError(f"Policy manifest not found: {manifest_path}")
    with manifest_path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Policy manifest must be a mapping: {manifest_path}")
    return PolicyManifest.from_yaml(data)


def as_references(policies: Iterable[str | PolicyReference]) -> list[PolicyReference]:
    """Accept bare policy paths or references, preserving order."""
    refs: list[PolicyReference] = []
    for policy in policies:
        if isinstance(policy, PolicyReference):
            refs.append(policy)
        else:
            refs.append(PolicyReference(path=policy))
    return refs
