"""Error kinds raised by the evaluation pipeline and the run-level collector."""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable

_logger = logging.getLogger(__name__)


class ComplianceError(Exception):
    """Base error carrying the resource and policy it relates to, if any."""

    kind = "ComplianceError"

    def __init__(
        self,
        message: str,
        *,
        resource_id: str | None = None,
        policy_path: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.resource_id = resource_id
        self.policy_path = policy_path

    def __str__(self) -> str:
        context = []
        if self.resource_id:
            context.append(f"resource={self.resource_id}")
        if self.policy_path:
            context.append(f"policy={self.policy_path}")
        if not context:
            return f"{self.kind}: {self.message}"
        return f"{self.kind} [{', '.join(context)}]: {self.message}"


class ConfigurationError(ComplianceError):
    """The provider session could not be established."""

    kind = "ConfigurationError"


class ResourceFetchError(ComplianceError):
    """Provider enumeration failed."""

    kind = "ResourceFetchError"


class PolicyEvaluationError(ComplianceError):
    """The evaluator failed for one (resource, policy) pair."""

    kind = "PolicyEvaluationError"


class PublishError(ComplianceError):
    """The sink rejected an assessment result."""

    kind = "PublishError"


class EvaluationRunError(Exception):
    """All failures of one run, joined in the order they occurred."""

    def __init__(self, causes: Iterable[ComplianceError]) -> None:
        self.causes: tuple[ComplianceError, ...] = tuple(causes)
        if not self.causes:
            raise ValueError("EvaluationRunError requires at least one cause")
        super().__init__("\n".join(str(cause) for cause in self.causes))

    def has(self, kind: type[ComplianceError]) -> bool:
        return any(isinstance(cause, kind) for cause in self.causes)

    def of_kind(self, kind: type[ComplianceError]) -> list[ComplianceError]:
        return [cause for cause in self.causes if isinstance(cause, kind)]


class ErrorCollector:
    """Ordered, thread-safe accumulator of run failures."""

    def __init__(self) -> None:
        self._causes: list[ComplianceError] = []
        self._lock = threading.Lock()

    def add(self, error: ComplianceError) -> None:
        _logger.error(
            "%s (resource_id=%s, policy_path=%s): %s",
            error.kind,
            error.resource_id,
            error.policy_path,
            error.message,
        )
        with self._lock:
            self._causes.append(error)

    def merge(self, other: "ErrorCollector") -> None:
        """Append another collector's causes; they were logged when first added."""
        causes = other.causes
        with self._lock:
            self._causes.extend(causes)

    @property
    def causes(self) -> list[ComplianceError]:
        with self._lock:
            return list(self._causes)

    def __bool__(self) -> bool:
        with self._lock:
            return bool(self._causes)

    def __len__(self) -> int:
        with self._lock:
            return len(self._causes)

    def combined(self) -> EvaluationRunError | None:
        causes = self.causes
        if not causes:
            return None
        return EvaluationRunError(causes)
