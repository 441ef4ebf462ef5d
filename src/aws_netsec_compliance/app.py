"""Application context assembly."""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache

from aws_netsec_compliance.audit.artifacts import ArtifactStore
from aws_netsec_compliance.audit.db import SqliteStore
from aws_netsec_compliance.audit.sink import LocalEvidenceSink
from aws_netsec_compliance.config import Settings, load_settings
from aws_netsec_compliance.policy.loader import load_manifest
from aws_netsec_compliance.policy.models import PolicyReference
from aws_netsec_compliance.policy.opa import OpaEvaluator


@dataclass
class AppContext:
    """Process-wide dependency container, built once at startup."""

    settings: Settings
    store: SqliteStore
    artifacts: ArtifactStore
    sink: LocalEvidenceSink
    evaluator: OpaEvaluator


@lru_cache(maxsize=1)
def get_app_context() -> AppContext:
    settings = load_settings()
    store = SqliteStore(settings.storage.sqlite_path, wal=settings.storage.sqlite_wal)
    artifacts = ArtifactStore(settings.storage.artifact_path)
    return AppContext(
        settings=settings,
        store=store,
        artifacts=artifacts,
        sink=LocalEvidenceSink(store, artifacts),
        evaluator=OpaEvaluator.from_settings(settings.policy),
    )


def configured_policies(settings: Settings) -> list[PolicyReference]:
    """Policies from the manifest if one is configured, else from POLICY_PATHS."""
    if settings.policy.manifest_path:
        return load_manifest(settings.policy.manifest_path).references()
    return [PolicyReference(path=path) for path in settings.policy.paths]
