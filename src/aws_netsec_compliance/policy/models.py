"""Policy verdict and manifest models."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator


def _ensure_list(v: Any) -> list:
    """Convert None to empty list, pass through lists."""
    if v is None:
        return []
    return v


def _ensure_text(v: Any) -> str:
    if v is None:
        return ""
    return str(v)


class Violation(BaseModel):
    title: str = Field(default="")
    description: str = Field(default="")
    remarks: str | None = Field(default=None)

    @model_validator(mode="before")
    @classmethod
    def _from_message(cls, v: Any) -> Any:
        # Rego rules of the form `violation[msg]` yield bare strings.
        if isinstance(v, str):
            return {"title": v, "description": v}
        return v

    @field_validator("title", "description", mode="before")
    @classmethod
    def _validate_text(cls, v: Any) -> str:
        return _ensure_text(v)


class RiskLink(BaseModel):
    url: str
    text: str = Field(default="")

    @field_validator("text", mode="before")
    @classmethod
    def _validate_text(cls, v: Any) -> str:
        return _ensure_text(v)


class RiskEntry(BaseModel):
    title: str = Field(default="")
    description: str = Field(default="")
    statement: str = Field(default="")
    links: list[RiskLink] = Field(default_factory=list)

    @field_validator("title", "description", "statement", mode="before")
    @classmethod
    def _validate_text(cls, v: Any) -> str:
        return _ensure_text(v)

    @field_validator("links", mode="before")
    @classmethod
    def _validate_links(cls, v: Any) -> list:
        return _ensure_list(v)


class Verdict(BaseModel):
    """Outcome of one policy package evaluated against one resource."""

    policy_id: str = Field(min_length=1)
    title: str | None = Field(default=None)
    description: str | None = Field(default=None)
    violations: list[Violation] = Field(default_factory=list)
    risks: list[RiskEntry] = Field(default_factory=list)

    @field_validator("violations", "risks", mode="before")
    @classmethod
    def _validate_lists(cls, v: Any) -> list:
        return _ensure_list(v)

    @property
    def passed(self) -> bool:
        return not self.violations


class PolicyReference(BaseModel):
    """A policy path plus the labels it contributes to its evidence."""

    path: str = Field(min_length=1)
    labels: dict[str, str] = Field(default_factory=dict)

    @field_validator("labels", mode="before")
    @classmethod
    def _validate_labels(cls, v: Any) -> dict:
        if v is None:
            return {}
        if isinstance(v, dict):
            return {str(key): str(value) for key, value in v.items()}
        return v


class PolicyManifest(BaseModel):
    version: int = Field(default=1)
    labels: dict[str, str] = Field(
        default_factory=dict,
        description="Labels applied to every policy in the manifest.",
    )
    policies: list[PolicyReference] = Field(default_factory=list)

    @field_validator("policies", mode="before")
    @classmethod
    def _validate_policies(cls, v: Any) -> list:
        v = _ensure_list(v)
        if isinstance(v, list):
            return [{"path": item} if isinstance(item, str) else item for item in v]
        return v

    @field_validator("labels", mode="before")
    @classmethod
    def _validate_labels(cls, v: Any) -> dict:
        if v is None:
            return {}
        if isinstance(v, dict):
            return {str(key): str(value) for key, value in v.items()}
        return v

    @classmethod
    def from_yaml(cls, data: dict[str, object]) -> "PolicyManifest":
        return cls.model_validate(data)

    def references(self) -> list[PolicyReference]:
        """Policy references with manifest-wide labels folded under each entry's own."""
        return [
            PolicyReference(path=ref.path, labels={**self.labels, **ref.labels})
            for ref in self.policies
        ]
