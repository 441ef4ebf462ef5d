"""Run invocation boundary: configure once, then evaluate policies."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable, Sequence

from pydantic import ValidationError

from aws_netsec_compliance.audit.sink import EvidenceSink
from aws_netsec_compliance.config import RunConfig, Settings, load_settings
from aws_netsec_compliance.errors import (
    ConfigurationError,
    ErrorCollector,
    EvaluationRunError,
)
from aws_netsec_compliance.evidence.assembler import EvidenceAssembler
from aws_netsec_compliance.execution.aws_client import get_client
from aws_netsec_compliance.orchestrator import (
    EvaluationOrchestrator,
    ExecutionStatus,
    RunOutcome,
)
from aws_netsec_compliance.policy.evaluator import PolicyEvaluator, PolicyEvaluatorAdapter
from aws_netsec_compliance.policy.loader import as_references
from aws_netsec_compliance.policy.models import PolicyReference
from aws_netsec_compliance.resources.supplier import SecurityGroupSupplier

logger = logging.getLogger(__name__)

ClientFactory = Callable[..., object]
SupplierFactory = Callable[[object], Iterable[dict[str, object]]]


class CompliancePlugin:
    """Evaluates EC2 security groups against a list of policies.

    ``configure`` only stores the flat configuration map; it is validated on
    the first ``eval`` so that problems surface through the run status.
    """

    def __init__(
        self,
        evaluator: PolicyEvaluator,
        sink: EvidenceSink,
        settings: Settings | None = None,
        client_factory: ClientFactory = get_client,
        supplier_factory: SupplierFactory = SecurityGroupSupplier,
        assembler: EvidenceAssembler | None = None,
    ) -> None:
        self._evaluator = PolicyEvaluatorAdapter(evaluator)
        self._sink = sink
        self._settings = settings
        self._client_factory = client_factory
        self._supplier_factory = supplier_factory
        self._assembler = assembler
        self._config: dict[str, str] = {}
        self.last_outcome: RunOutcome | None = None

    def configure(self, config: dict[str, str]) -> None:
        self._config = dict(config)

    def eval(
        self,
        policies: Sequence[str | PolicyReference],
        cancel: threading.Event | None = None,
    ) -> tuple[ExecutionStatus, EvaluationRunError | None]:
        settings = self._settings or load_settings()
        errors = ErrorCollector()

        run_config: RunConfig | None = None
        try:
            run_config = RunConfig.from_mapping(self._config, settings)
        except ValidationError as exc:
            errors.add(ConfigurationError(f"invalid run configuration: {exc}"))

        resources: Iterable[dict[str, object]] = ()
        if run_config is not None:
            try:
                client = self._client_factory(
                    "ec2", run_config.region, run_config.profile, settings
                )
                resources = self._supplier_factory(client)
            except ConfigurationError as exc:
                errors.add(exc)

        max_workers = (
            run_config.max_workers
            if run_config is not None and run_config.max_workers
            else settings.evaluation.max_workers
        )
        orchestrator = EvaluationOrchestrator(
            evaluator=self._evaluator,
            sink=self._sink,
            assembler=self._assembler,
            assessment_title=settings.evaluation.assessment_title,
            max_workers=max_workers,
        )
        outcome = orchestrator.run(resources, as_references(policies), cancel, errors)
        self.last_outcome = outcome
        return outcome.status, outcome.error
