"""Entrypoint that runs one evaluation with environment-driven settings."""

from __future__ import annotations

import logging
import signal
import sys
import threading
from pathlib import Path

if __package__ in (None, ""):
    sys.path.insert(0, str(Path(__file__).resolve().parents[1]))  # pragma: no cover

from aws_netsec_compliance import __version__
from aws_netsec_compliance.app import configured_policies, get_app_context
from aws_netsec_compliance.logging_utils import configure_logging
from aws_netsec_compliance.orchestrator import ExecutionStatus
from aws_netsec_compliance.plugin import CompliancePlugin

logger = logging.getLogger(__name__)


def build_plugin() -> CompliancePlugin:
    ctx = get_app_context()
    return CompliancePlugin(
        evaluator=ctx.evaluator,
        sink=ctx.sink,
        settings=ctx.settings,
    )


def run_once(cancel: threading.Event | None = None) -> int:
    """Run one evaluation and return a process exit code."""
    configure_logging()
    ctx = get_app_context()
    logger.info("Initiating AWS network security evaluation v%s", __version__)

    policies = configured_policies(ctx.settings)
    if not policies:
        logger.warning("No policies configured; set POLICY_PATHS or POLICY_MANIFEST_PATH")

    plugin = build_plugin()
    plugin.configure({})
    status, error = plugin.eval(policies, cancel=cancel)
    if error is not None:
        logger.error("Evaluation finished with errors:\n%s", error)
    return 0 if status is ExecutionStatus.SUCCESS else 1


def run_entrypoint() -> None:
    cancel = threading.Event()

    def _request_stop(signum, _frame) -> None:
        logger.info("Received signal %s, finishing in-flight evaluation", signum)
        cancel.set()

    signal.signal(signal.SIGTERM, _request_stop)
    signal.signal(signal.SIGINT, _request_stop)
    sys.exit(run_once(cancel))


if __name__ == "__main__":  # pragma: no cover
    run_entrypoint()
