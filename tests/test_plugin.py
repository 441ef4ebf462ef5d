from __future__ import annotations

from unittest.mock import MagicMock

from aws_netsec_compliance.config import Settings
from aws_netsec_compliance.errors import ConfigurationError, ResourceFetchError
from aws_netsec_compliance.orchestrator import ExecutionStatus
from aws_netsec_compliance.plugin import CompliancePlugin
from aws_netsec_compliance.policy.models import PolicyReference
from tests.helpers import RecordingSink, ScriptedEvaluator, make_group

SSH = "./policies/ssh"
VERDICTS = {SSH: [{"policy_id": "data.compliance_framework.ssh", "violations": []}]}


def _plugin(client_factory=None, supplier_factory=None, sink=None, evaluator=None):
    client_factory = client_factory or MagicMock(return_value=MagicMock(name="ec2"))
    supplier_factory = supplier_factory or (lambda client: [make_group()])
    return CompliancePlugin(
        evaluator=evaluator or ScriptedEvaluator(VERDICTS),
        sink=sink or RecordingSink(),
        settings=Settings(),
        client_factory=client_factory,
        supplier_factory=supplier_factory,
    )


def test_eval_success_uses_configured_region() -> None:
    client_factory = MagicMock(return_value="ec2-client")
    supplied_with = []

    def supplier_factory(client):
        supplied_with.append(client)
        return [make_group()]

    sink = RecordingSink()
    plugin = _plugin(client_factory, supplier_factory, sink)
    plugin.configure({"region": "eu-west-1", "profile": "audit"})

    status, error = plugin.eval([SSH])

    assert status is ExecutionStatus.SUCCESS
    assert error is None
    assert client_factory.call_args.args[:3] == ("ec2", "eu-west-1", "audit")
    assert supplied_with == ["ec2-client"]
    assert len(sink.outcomes) == 1
    assert plugin.last_outcome.results_published == 1


def test_configure_does_not_validate_eagerly() -> None:
    plugin = _plugin()
    plugin.configure({"max_workers": "lots"})

    status, error = plugin.eval([SSH])

    assert status is ExecutionStatus.FAILURE
    assert error.has(ConfigurationError)
    assert "invalid run configuration" in str(error)


def test_session_failure_reports_configuration_error() -> None:
    client_factory = MagicMock(side_effect=ConfigurationError("You must specify a region."))
    sink = RecordingSink()
    plugin = _plugin(client_factory=client_factory, sink=sink)

    status, error = plugin.eval([SSH])

    assert status is ExecutionStatus.FAILURE
    assert error.has(ConfigurationError)
    assert sink.outcomes == []


def test_fetch_failure_surfaces_in_combined_error() -> None:
    class DeniedSupplier:
        def __init__(self, client) -> None:
            self.client = client

        def __iter__(self):
            raise ResourceFetchError("UnauthorizedOperation")

    status, error = _plugin(supplier_factory=DeniedSupplier).eval([SSH])

    assert status is ExecutionStatus.FAILURE
    assert error.has(ResourceFetchError)


def test_eval_accepts_policy_references() -> None:
    sink = RecordingSink()
    plugin = _plugin(sink=sink)

    plugin.eval([PolicyReference(path=SSH, labels={"owner": "netops"})])

    assert sink.outcomes[0].labels["owner"] == "netops"


def test_max_workers_from_run_config() -> None:
    groups = [make_group(f"sg-{i}") for i in range(3)]
    sink = RecordingSink()
    plugin = _plugin(supplier_factory=lambda client: groups, sink=sink)
    plugin.configure({"max_workers": "3"})

    status, _ = plugin.eval([SSH])

    assert status is ExecutionStatus.SUCCESS
    assert len(sink.outcomes) == 3
