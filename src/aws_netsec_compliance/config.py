"""Configuration management for the security group compliance evaluator."""

from __future__ import annotations

import logging
import os
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator

_config_logger = logging.getLogger(__name__)


class LoggingSettings(BaseModel):
    level: str = Field(default="INFO", description="Python logging level name")
    file: str | None = Field(default=None, description="Optional log file path")


class AWSSettings(BaseModel):
    default_region: str | None = Field(default=None)
    default_profile: str | None = Field(default=None)


class ExecutionSettings(BaseModel):
    sdk_timeout_seconds: int = Field(default=30, ge=1, le=300)
    max_retries: int = Field(default=2, ge=0, le=10)


class PolicySettings(BaseModel):
    opa_binary: str = Field(default="opa")
    query_root: str = Field(default="data.compliance_framework")
    timeout_seconds: float = Field(default=30.0, ge=0.1, le=600.0)
    paths: tuple[str, ...] = Field(
        default=(),
        description="Policy paths evaluated when no manifest is configured.",
    )
    manifest_path: str | None = Field(
        default=None,
        description="Optional YAML manifest listing policies with label overrides.",
    )

    @field_validator("query_root")
    @classmethod
    def _validate_query_root(cls, value: str) -> str:
        value = value.strip().rstrip(".")
        if not value.startswith("data"):
            raise ValueError("query_root must be a rego reference under 'data'")
        return value


class StorageSettings(BaseModel):
    sqlite_path: str = Field(default="./data/evidence.sqlite")
    sqlite_wal: bool = Field(default=True)
    artifact_path: str = Field(default="./data/evidence")


class EvaluationSettings(BaseModel):
    max_workers: int = Field(default=1, ge=1, le=64)
    assessment_title: str = Field(
        default="Automated Assessment Result - AWS Security Groups",
    )


class Settings(BaseModel):
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    aws: AWSSettings = Field(default_factory=AWSSettings)
    execution: ExecutionSettings = Field(default_factory=ExecutionSettings)
    policy: PolicySettings = Field(default_factory=PolicySettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    evaluation: EvaluationSettings = Field(default_factory=EvaluationSettings)


class RunConfig(BaseModel):
    """Per-run configuration supplied as a flat string map.

    Validated lazily, on the first evaluation that needs it, so that a bad
    value is reported through the run status rather than at configure time.
    """

    region: str | None = Field(default=None)
    profile: str | None = Field(default=None)
    max_workers: int | None = Field(default=None, ge=1, le=64)

    @field_validator("region", "profile", mode="before")
    @classmethod
    def _blank_to_none(cls, value: object) -> object:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @classmethod
    def from_mapping(cls, config: dict[str, str], settings: Settings) -> "RunConfig":
        return cls.model_validate(
            {
                "region": config.get("region") or settings.aws.default_region,
                "profile": config.get("profile") or settings.aws.default_profile,
                "max_workers": config.get("max_workers") or settings.evaluation.max_workers,
            }
        )


ENV_KEYS = {
    "log_level": "LOG_LEVEL",
    "log_file": "LOG_FILE",
    "aws_region": "AWS_DEFAULT_REGION",
    "aws_profile": "AWS_PROFILE",
    "sdk_timeout": "SDK_TIMEOUT_SECONDS",
    "max_retries": "AWS_MAX_RETRIES",
    "opa_binary": "OPA_BINARY",
    "opa_query_root": "OPA_QUERY_ROOT",
    "opa_timeout": "OPA_TIMEOUT_SECONDS",
    "policy_paths": "POLICY_PATHS",
    "policy_manifest": "POLICY_MANIFEST_PATH",
    "sqlite_path": "SQLITE_PATH",
    "sqlite_wal": "SQLITE_WAL",
    "artifact_path": "ARTIFACT_PATH",
    "max_workers": "EVALUATION_MAX_WORKERS",
    "assessment_title": "ASSESSMENT_TITLE",
}

_TRUE_VALUES = frozenset({"1", "true", "yes"})


def _split_csv_preserve_case(value: str | None) -> list[str]:
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


def _project_root() -> Path:
    return Path(__file__).resolve().parents[2]


def _resolve_path(path: str) -> str:
    candidate = Path(path)
    root = _project_root().resolve()
    if candidate.is_absolute():
        resolved = candidate.resolve()
    else:
        resolved = (root / candidate).resolve()
    if not resolved.is_relative_to(root):
        raise ValueError(f"Path traversal detected: '{path}' resolves outside project root")
    return str(resolved)


def _env_bool(key: str, default: bool) -> bool:
    value = os.getenv(key)
    if value is None:
        return default
    return value.strip().lower() in _TRUE_VALUES


def _env_int(key: str, default: int) -> int:
    value = os.getenv(key)
    if value is None or value.strip() == "":
        return default
    try:
        return int(value)
    except ValueError:
        _config_logger.warning(
            "Invalid integer value for %s: %r, using default %d", key, value, default
        )
        return default


def _env_float(key: str, default: float) -> float:
    value = os.getenv(key)
    if value is None or value.strip() == "":
        return default
    try:
        return float(value)
    except ValueError:
        _config_logger.warning(
            "Invalid float value for %s: %r, using default %s", key, value, default
        )
        return default


def load_settings() -> Settings:
    """Load configuration and cache the result."""

    return _load_settings_cached()


@lru_cache(maxsize=1)
def _load_settings_cached() -> Settings:
    load_dotenv(dotenv_path=_project_root() / ".env")
    log_file_env = os.getenv(ENV_KEYS["log_file"])
    manifest_env = os.getenv(ENV_KEYS["policy_manifest"])

    settings_data: dict[str, object] = {
        "logging": {
            "level": os.getenv(ENV_KEYS["log_level"], LoggingSettings().level),
            "file": _resolve_path(log_file_env) if log_file_env else None,
        },
        "aws": {
            "default_region": os.getenv("AWS_REGION") or os.getenv(ENV_KEYS["aws_region"]),
            "default_profile": os.getenv(ENV_KEYS["aws_profile"]),
        },
        "execution": {
            "sdk_timeout_seconds": _env_int(
                ENV_KEYS["sdk_timeout"],
                ExecutionSettings().sdk_timeout_seconds,
            ),
            "max_retries": _env_int(
                ENV_KEYS["max_retries"],
                ExecutionSettings().max_retries,
            ),
        },
        "policy": {
            "opa_binary": os.getenv(ENV_KEYS["opa_binary"], PolicySettings().opa_binary),
            "query_root": os.getenv(ENV_KEYS["opa_query_root"], PolicySettings().query_root),
            "timeout_seconds": _env_float(
                ENV_KEYS["opa_timeout"],
                PolicySettings().timeout_seconds,
            ),
            "paths": tuple(_split_csv_preserve_case(os.getenv(ENV_KEYS["policy_paths"]))),
            "manifest_path": _resolve_path(manifest_env) if manifest_env else None,
        },
        "storage": {
            "sqlite_path": _resolve_path(
                os.getenv(ENV_KEYS["sqlite_path"], StorageSettings().sqlite_path)
            ),
            "sqlite_wal": _env_bool(ENV_KEYS["sqlite_wal"], StorageSettings().sqlite_wal),
            "artifact_path": _resolve_path(
                os.getenv(ENV_KEYS["artifact_path"], StorageSettings().artifact_path)
            ),
        },
        "evaluation": {
            "max_workers": _env_int(
                ENV_KEYS["max_workers"],
                EvaluationSettings().max_workers,
            ),
            "assessment_title": os.getenv(
                ENV_KEYS["assessment_title"], EvaluationSettings().assessment_title
            ),
        },
    }

    try:
        settings = Settings.model_validate(settings_data)
    except ValidationError as exc:
        raise RuntimeError(f"Invalid configuration: {exc}") from exc

    Path(settings.storage.artifact_path).mkdir(parents=True, exist_ok=True)
    Path(settings.storage.sqlite_path).parent.mkdir(parents=True, exist_ok=True)

    return settings
