"""Rule file schema — Pydantic v2 models for YAML ability definitions.

Example
-------
::

    version: "1.0"
    aliases:
      modify: [update, destroy]
    rules:
      - effect: grant
        actions: read
        subjects: all
      - effect: deny
        actions: read
        subjects: Order
        conditions:
          status: secret
      - effect: grant
        actions: [update, destroy]
        subjects: Order
        conditions:
          owner_id: {$var: actor.id}
"""
from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator

SUPPORTED_VERSIONS: frozenset[str] = frozenset(["1.0", "1"])


def _listify(value: Any) -> Any:
    if isinstance(value, str):
        return [value]
    return value


class RuleConfig(BaseModel):
    """One rule entry of a rule file.

    Attributes
    ----------
    effect:
        ``grant`` / ``can`` permits, ``deny`` / ``cannot`` forbids.
    actions:
        Action names; a single string is accepted.
    subjects:
        Subject names, resolved through the loader's subject map; a single
        string is accepted. ``all`` is the wildcard.
    conditions:
        Optional condition tree. ``{$var: path}`` values are resolved per
        actor when the ability is built.
    attributes:
        Optional attribute names the rule is restricted to.
    reason:
        Optional description.
    """

    model_config = {"extra": "forbid"}

    effect: Literal["grant", "deny", "can", "cannot"]
    actions: list[str]
    subjects: list[str]
    conditions: dict[str, Any] | None = None
    attributes: list[str] = Field(default_factory=list)
    reason: str | None = None

    @field_validator("actions", "subjects", "attributes", mode="before")
    @classmethod
    def accept_single_string(cls, value: Any) -> Any:
        return _listify(value)

    @field_validator("actions", "subjects")
    @classmethod
    def must_not_be_empty(cls, value: list[str]) -> list[str]:
        if not value or any(not item for item in value):
            raise ValueError("must list at least one non-empty name")
        return value

    @property
    def grant(self) -> bool:
        return self.effect in ("grant", "can")


class AbilityConfig(BaseModel):
    """Top-level rule file schema."""

    model_config = {"extra": "allow"}

    version: str = Field(default="1.0")
    description: str | None = Field(default=None)
    aliases: dict[str, list[str]] = Field(default_factory=dict)
    rules: list[RuleConfig] = Field(default_factory=list)

    @field_validator("version", mode="before")
    @classmethod
    def version_as_string(cls, value: Any) -> Any:
        if isinstance(value, (int, float)):
            return str(value)
        return value

    @field_validator("version")
    @classmethod
    def version_supported(cls, value: str) -> str:
        if value not in SUPPORTED_VERSIONS:
            raise ValueError(
                f"unsupported version {value!r}; supported: {sorted(SUPPORTED_VERSIONS)}"
            )
        return value

    @field_validator("aliases", mode="before")
    @classmethod
    def alias_targets_as_lists(cls, value: Any) -> Any:
        if isinstance(value, dict):
            return {alias: _listify(targets) for alias, targets in value.items()}
        return value

    def subject_names(self) -> list[str]:
        """Return every subject name used by the rules, in first-use order."""
        names: list[str] = []
        for rule in self.rules:
            for name in rule.subjects:
                if name not in names:
                    names.append(name)
        return names
