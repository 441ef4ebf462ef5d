"""Policy evaluation through the Open Policy Agent CLI."""

from __future__ import annotations

import json
import logging
import re
import subprocess
from collections.abc import Mapping
from typing import Any

from aws_netsec_compliance.config import PolicySettings
from aws_netsec_compliance.utils.serialization import json_default

logger = logging.getLogger(__name__)

# Only allow plain rego references for the query root.
_SAFE_QUERY_RE = re.compile(r"^data(\.[A-Za-z_][A-Za-z0-9_]*)*$")

_VIOLATION_KEY = "violation"
_RISKS_KEY = "risks"


class OpaEvaluationError(RuntimeError):
    pass


class OpaEvaluator:
    """Runs ``opa eval`` against a policy bundle path.

    Every package below ``query_root`` that defines a ``violation`` rule is
    reported as one verdict whose ``policy_id`` is the package's full rego path.
    """

    def __init__(
        self,
        binary: str = "opa",
        query_root: str = "data.compliance_framework",
        timeout_seconds: float = 30.0,
    ) -> None:
        if not _SAFE_QUERY_RE.match(query_root):
            raise ValueError(f"query_root is not a valid rego reference: {query_root[:120]}")
        self._binary = binary
        self._query_root = query_root
        self._timeout = timeout_seconds

    @classmethod
    def from_settings(cls, settings: PolicySettings) -> "OpaEvaluator":
        return cls(
            binary=settings.opa_binary,
            query_root=settings.query_root,
            timeout_seconds=settings.timeout_seconds,
        )

    def evaluate(self, document: Mapping[str, Any], policy_path: str) -> list[dict[str, Any]]:
        if policy_path.startswith("-"):
            raise OpaEvaluationError(f"policy path must not start with '-': {policy_path[:120]}")
        cmd = [
            self._binary,
            "eval",
            "--format",
            "json",
            "--stdin-input",
            "--data",
            policy_path,
            self._query_root,
        ]
        payload = json.dumps(document, default=json_default)
        try:
            result = subprocess.run(
                cmd,
                input=payload,
                check=False,
                capture_output=True,
                text=True,
                timeout=self._timeout,
            )
        except subprocess.TimeoutExpired:
            raise OpaEvaluationError(f"opa eval timed out after {self._timeout}s")
        except FileNotFoundError as exc:
            raise OpaEvaluationError(f"opa binary not found: {self._binary}") from exc

        if result.returncode != 0:
            # stderr carries the rego compile/eval error, never the input document.
            detail = (result.stderr or "").strip()[:500]
            raise OpaEvaluationError(f"opa eval failed (exit {result.returncode}): {detail}")

        try:
            output = json.loads(result.stdout or "{}")
        except json.JSONDecodeError as exc:
            raise OpaEvaluationError(f"opa eval returned invalid JSON: {exc}") from exc

        return parse_eval_output(output, self._query_root)


def parse_eval_output(output: Mapping[str, Any], query_root: str) -> list[dict[str, Any]]:
    """Extract raw verdicts from an ``opa eval --format json`` document."""
    results = output.get("result") or []
    verdicts: list[dict[str, Any]] = []
    for entry in results:
        for expression in entry.get("expressions") or []:
            value = expression.get("value")
            if isinstance(value, Mapping):
                _collect_packages(value, query_root, verdicts)
    verdicts.sort(key=lambda verdict: verdict["policy_id"])
    return verdicts


def _collect_packages(
    node: Mapping[str, Any],
    path: str,
    verdicts: list[dict[str, Any]],
) -> None:
    if _VIOLATION_KEY in node:
        verdicts.append(
            {
                "policy_id": path,
                "title": node.get("title"),
                "description": node.get("description"),
                "violations": list(node.get(_VIOLATION_KEY) or []),
                "risks": list(node.get(_RISKS_KEY) or []),
            }
        )
        return
    for key, child in node.items():
        if isinstance(child, Mapping):
            _collect_packages(child, f"{path}.{key}", verdicts)
