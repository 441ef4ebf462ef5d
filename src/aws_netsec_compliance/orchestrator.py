"""Drives one evaluation run over every (security group, policy) pair."""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable, Iterator, Sequence
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum

from aws_netsec_compliance.audit.sink import EvidenceSink
from aws_netsec_compliance.errors import (
    ComplianceError,
    ErrorCollector,
    EvaluationRunError,
    PublishError,
    ResourceFetchError,
)
from aws_netsec_compliance.evidence.aggregator import ResultAggregator
from aws_netsec_compliance.evidence.assembler import EvidenceAssembler
from aws_netsec_compliance.policy.evaluator import PolicyEvaluatorAdapter
from aws_netsec_compliance.policy.models import PolicyReference
from aws_netsec_compliance.resources.normalizer import (
    NormalizedResource,
    normalize_security_group,
)

logger = logging.getLogger(__name__)


class ExecutionStatus(str, Enum):
    SUCCESS = "SUCCESS"
    FAILURE = "FAILURE"


class RunState(str, Enum):
    INIT = "INIT"
    FETCH_RESOURCES = "FETCH_RESOURCES"
    EVALUATE = "EVALUATE"
    ASSEMBLE = "ASSEMBLE"
    AGGREGATE = "AGGREGATE"
    PUBLISH = "PUBLISH"
    DONE = "DONE"


@dataclass
class RunOutcome:
    status: ExecutionStatus
    error: EvaluationRunError | None
    resources_processed: int = 0
    results_published: int = 0
    cancelled: bool = False


@dataclass
class _ResourceReport:
    errors: ErrorCollector
    normalized: bool = False
    published: int = 0


def _supplied(
    resources: Iterable[dict[str, object]],
    failures: list[ResourceFetchError],
) -> Iterator[dict[str, object]]:
    """Yield from the supplier until it is exhausted or fails.

    A failure ends the iteration and is appended to ``failures`` as a
    ``ResourceFetchError``; groups yielded before it are still processed.
    """
    try:
        iterator = iter(resources)
        while True:
            try:
                raw = next(iterator)
            except StopIteration:
                return
            yield raw
    except ResourceFetchError as exc:
        failures.append(exc)
    except Exception as exc:
        failures.append(ResourceFetchError(f"resource supplier failed: {exc}"))


class EvaluationOrchestrator:
    def __init__(
        self,
        evaluator: PolicyEvaluatorAdapter,
        sink: EvidenceSink,
        assembler: EvidenceAssembler | None = None,
        assessment_title: str = "Automated Assessment Result - AWS Security Groups",
        max_workers: int = 1,
    ) -> None:
        self._evaluator = evaluator
        self._sink = sink
        self._assembler = assembler or EvidenceAssembler()
        self._title = assessment_title
        self._max_workers = max(1, max_workers)

    def run(
        self,
        resources: Iterable[dict[str, object]],
        policies: Sequence[PolicyReference],
        cancel: threading.Event | None = None,
        errors: ErrorCollector | None = None,
    ) -> RunOutcome:
        """Evaluate every resource against every policy.

        Failures are collected, never raised. ``errors`` may carry causes
        recorded before the run started, such as configuration failures.
        """
        cancel = cancel or threading.Event()
        errors = errors if errors is not None else ErrorCollector()
        aggregator = ResultAggregator(self._title)
        state = RunState.INIT
        logger.debug("Run state %s: %d policies", state.value, len(policies))

        state = RunState.FETCH_RESOURCES
        logger.debug("Run state %s", state.value)

        if self._max_workers > 1:
            processed, published, cancelled = self._run_parallel(
                resources, policies, aggregator, cancel, errors
            )
        else:
            processed, published, cancelled = self._run_sequential(
                resources, policies, aggregator, cancel, errors
            )

        state = RunState.DONE
        combined = errors.combined()
        status = ExecutionStatus.FAILURE if combined else ExecutionStatus.SUCCESS
        logger.info(
            "Run state %s: status=%s resources=%d published=%d errors=%d%s",
            state.value,
            status.value,
            processed,
            published,
            len(errors),
            " (cancelled)" if cancelled else "",
        )
        return RunOutcome(
            status=status,
            error=combined,
            resources_processed=processed,
            results_published=published,
            cancelled=cancelled,
        )

    def _run_sequential(
        self,
        resources: Iterable[dict[str, object]],
        policies: Sequence[PolicyReference],
        aggregator: ResultAggregator,
        cancel: threading.Event,
        errors: ErrorCollector,
    ) -> tuple[int, int, bool]:
        processed = 0
        published = 0
        fetch_failures: list[ResourceFetchError] = []
        for raw in _supplied(resources, fetch_failures):
            if cancel.is_set():
                break
            report = self._evaluate_resource(raw, policies, aggregator, cancel)
            errors.merge(report.errors)
            processed += report.normalized
            published += report.published
        for failure in fetch_failures:
            errors.add(failure)
        return processed, published, cancel.is_set()

    def _run_parallel(
        self,
        resources: Iterable[dict[str, object]],
        policies: Sequence[PolicyReference],
        aggregator: ResultAggregator,
        cancel: threading.Event,
        errors: ErrorCollector,
    ) -> tuple[int, int, bool]:
        futures: list[Future[_ResourceReport]] = []
        fetch_failures: list[ResourceFetchError] = []
        with ThreadPoolExecutor(
            max_workers=self._max_workers, thread_name_prefix="sg-eval"
        ) as pool:
            for raw in _supplied(resources, fetch_failures):
                if cancel.is_set():
                    break
                futures.append(
                    pool.submit(self._evaluate_resource, raw, policies, aggregator, cancel)
                )

        processed = 0
        published = 0
        for future in futures:
            report = future.result()
            errors.merge(report.errors)
            processed += report.normalized
            published += report.published
        for failure in fetch_failures:
            errors.add(failure)
        return processed, published, cancel.is_set()

    def _evaluate_resource(
        self,
        raw: dict[str, object],
        policies: Sequence[PolicyReference],
        aggregator: ResultAggregator,
        cancel: threading.Event,
    ) -> _ResourceReport:
        report = _ResourceReport(errors=ErrorCollector())
        try:
            resource = normalize_security_group(raw)
        except ValueError as exc:
            report.errors.add(ResourceFetchError(f"unusable security group: {exc}"))
            return report
        report.normalized = True

        for policy in policies:
            if cancel.is_set():
                logger.info("Run cancelled before %s on %s", policy.path, resource.resource_id)
                break
            try:
                self._evaluate_pair(resource, policy, aggregator)
                report.published += 1
            except ComplianceError as exc:
                report.errors.add(exc)
        return report

    def _evaluate_pair(
        self,
        resource: NormalizedResource,
        policy: PolicyReference,
        aggregator: ResultAggregator,
    ) -> None:
        pair = aggregator.start_pair(resource, policy)

        logger.debug(
            "Run state %s: %s on %s", RunState.EVALUATE.value, policy.path, resource.resource_id
        )
        verdicts = self._evaluator.evaluate(
            resource.document, policy.path, resource_id=resource.resource_id
        )

        logger.debug("Run state %s: %d verdict(s)", RunState.ASSEMBLE.value, len(verdicts))
        artifact_sets = [
            self._assembler.assemble(verdict, resource, pair.labels) for verdict in verdicts
        ]

        logger.debug("Run state %s", RunState.AGGREGATE.value)
        for artifacts in artifact_sets:
            pair.add(artifacts)
        try:
            outcome = pair.finalize()
        except ValueError as exc:
            raise PublishError(
                f"cannot key assessment result: {exc}",
                resource_id=resource.resource_id,
                policy_path=policy.path,
            ) from exc

        logger.debug("Run state %s: stream %s", RunState.PUBLISH.value, outcome.stream_id)
        try:
            self._sink.publish(outcome)
        except PublishError as exc:
            exc.resource_id = exc.resource_id or resource.resource_id
            exc.policy_path = exc.policy_path or policy.path
            raise
        except Exception as exc:
            raise PublishError(
                f"sink rejected assessment result: {exc}",
                resource_id=resource.resource_id,
                policy_path=policy.path,
            ) from exc
