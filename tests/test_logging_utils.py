from __future__ import annotations

import logging
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest

from aws_netsec_compliance import logging_utils


def _settings(log_file: str | None, level: str = "INFO") -> SimpleNamespace:
    return SimpleNamespace(
        logging=SimpleNamespace(level=level, file=log_file),
    )


@pytest.fixture(autouse=True)
def _restore_logger_levels():
    names = (logging_utils.LOGGER_NAMESPACE, *logging_utils.SDK_LOGGERS)
    saved = {name: logging.getLogger(name).level for name in names}
    yield
    for name, level in saved.items():
        logging.getLogger(name).setLevel(level)


@patch("aws_netsec_compliance.logging_utils.load_settings")
@patch("aws_netsec_compliance.logging_utils.logging.basicConfig")
def test_configure_logging_stream_only(
    mock_basic_config: MagicMock,
    mock_load_settings: MagicMock,
) -> None:
    mock_load_settings.return_value = _settings(None, level="debug")

    logging_utils.configure_logging()

    kwargs = mock_basic_config.call_args.kwargs
    assert kwargs["force"] is True
    assert kwargs["level"] == logging.DEBUG
    assert len(kwargs["handlers"]) == 1
    assert logging.getLogger("aws_netsec_compliance").level == logging.DEBUG
    assert logging.getLogger("botocore").level == logging.DEBUG


@patch("aws_netsec_compliance.logging_utils.load_settings")
@patch("aws_netsec_compliance.logging_utils.logging.basicConfig")
def test_configure_logging_quiets_sdk_loggers(
    mock_basic_config: MagicMock,
    mock_load_settings: MagicMock,
) -> None:
    mock_load_settings.return_value = _settings(None, level="INFO")

    logging_utils.configure_logging()

    assert logging.getLogger("aws_netsec_compliance").level == logging.INFO
    for name in ("boto3", "botocore", "urllib3"):
        assert logging.getLogger(name).level == logging.WARNING


@pytest.mark.parametrize("level", ["chatty", "basic_format"])
@patch("aws_netsec_compliance.logging_utils.load_settings")
@patch("aws_netsec_compliance.logging_utils.logging.basicConfig")
def test_configure_logging_unknown_level_defaults_to_info(
    mock_basic_config: MagicMock,
    mock_load_settings: MagicMock,
    level: str,
) -> None:
    mock_load_settings.return_value = _settings(None, level=level)

    logging_utils.configure_logging()

    assert mock_basic_config.call_args.kwargs["level"] == logging.INFO


@patch("aws_netsec_compliance.logging_utils.load_settings")
@patch(
    "aws_netsec_compliance.logging_utils.logging.FileHandler",
    side_effect=OSError("permission denied"),
)
@patch("aws_netsec_compliance.logging_utils._logger")
@patch("aws_netsec_compliance.logging_utils.logging.basicConfig")
def test_configure_logging_file_handler_error(
    mock_basic_config: MagicMock,
    mock_logger: MagicMock,
    _mock_file_handler: MagicMock,
    mock_load_settings: MagicMock,
    tmp_path,
) -> None:
    mock_load_settings.return_value = _settings(str(tmp_path / "logs" / "run.log"))

    logging_utils.configure_logging()

    mock_logger.warning.assert_called_once()
    assert len(mock_basic_config.call_args.kwargs["handlers"]) == 1


def test_get_logger_auto_configures_and_namespaces(monkeypatch) -> None:
    monkeypatch.setattr(logging_utils, "_logging_configured", False)

    calls = {"count": 0}

    def fake_configure() -> None:
        calls["count"] += 1
        monkeypatch.setattr(logging_utils, "_logging_configured", True)

    monkeypatch.setattr(logging_utils, "configure_logging", fake_configure)

    logger = logging_utils.get_logger("scripts.replay")
    own = logging_utils.get_logger("aws_netsec_compliance.orchestrator")
    assert logger.name == "aws_netsec_compliance.scripts.replay"
    assert own.name == "aws_netsec_compliance.orchestrator"
    assert calls["count"] == 1
