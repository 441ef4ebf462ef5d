"""Policy evaluator protocol and the adapter that drives it."""

from __future__ import annotations

import copy
import logging
from collections.abc import Mapping
from typing import Any, Protocol, runtime_checkable

from pydantic import ValidationError

from aws_netsec_compliance.errors import PolicyEvaluationError
from aws_netsec_compliance.policy.models import Verdict

logger = logging.getLogger(__name__)


@runtime_checkable
class PolicyEvaluator(Protocol):
    """Opaque evaluator: returns one raw verdict per policy package found at a path.

    Each raw verdict is a mapping with ``policy_id``, ``violations`` and
    ``risks`` keys, or an already-built ``Verdict``.
    """

    def evaluate(
        self, document: Mapping[str, Any], policy_path: str
    ) -> list[Mapping[str, Any] | Verdict]: ...


class PolicyEvaluatorAdapter:
    def __init__(self, evaluator: PolicyEvaluator) -> None:
        self._evaluator = evaluator

    def evaluate(
        self,
        document: Mapping[str, Any],
        policy_path: str,
        *,
        resource_id: str | None = None,
    ) -> list[Verdict]:
        # The evaluator sees a private copy so the caller's document stays untouched.
        snapshot = copy.deepcopy(dict(document))
        try:
            raw_verdicts = self._evaluator.evaluate(snapshot, policy_path)
        except Exception as exc:
            raise PolicyEvaluationError(
                f"evaluator failed: {exc}",
                resource_id=resource_id,
                policy_path=policy_path,
            ) from exc

        if raw_verdicts is None:
            raw_verdicts = []
        if not isinstance(raw_verdicts, (list, tuple)):
            raise PolicyEvaluationError(
                f"evaluator returned {type(raw_verdicts).__name__}, expected a list of verdicts",
                resource_id=resource_id,
                policy_path=policy_path,
            )

        verdicts: list[Verdict] = []
        for raw in raw_verdicts:
            if isinstance(raw, Verdict):
                verdicts.append(raw)
                continue
            try:
                verdicts.append(Verdict.model_validate(raw))
            except ValidationError as exc:
                raise PolicyEvaluationError(
                    f"evaluator returned a malformed verdict: {exc}",
                    resource_id=resource_id,
                    policy_path=policy_path,
                ) from exc

        logger.debug(
            "Evaluated %s against %s: %d verdict(s)", policy_path, resource_id, len(verdicts)
        )
        return verdicts
