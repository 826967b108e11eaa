"""YAML rule file loader.

:class:`AbilityLoader` reads a rule file once and returns an
:class:`AbilityDefinition`. The definition owns a frozen alias registry
and the validated rules; call :meth:`AbilityDefinition.build` once per
actor to get a fresh :class:`~abilitykit.ability.Ability`.

Example
-------
::

    loader = AbilityLoader(subjects={"Order": Order, "Invoice": Invoice})
    definition = loader.load("abilities.yaml")        # at start-up

    ability = definition.build({"actor": current_user})   # per request
    ability.can("update", order)
"""
from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from abilitykit.ability import Ability
from abilitykit.adapters import AdapterRegistry
from abilitykit.aliases import AliasRegistry
from abilitykit.conditions.operators import MISSING
from abilitykit.config import AbilityConfig, RuleConfig
from abilitykit.errors import AbilityConfigError, UnsupportedConditionError
from abilitykit.rules import ALL, Rule, SubjectRef

logger = logging.getLogger(__name__)

VARIABLE_KEY = "$var"


def lookup_variable(variables: Mapping[str, Any], path: str) -> Any:
    """Resolve a dotted ``path`` through mappings and object attributes.

    Returns :data:`~abilitykit.conditions.operators.MISSING` if any segment
    cannot be resolved.
    """
    current: Any = variables
    for part in (p for p in path.split(".") if p):
        if isinstance(current, Mapping):
            current = current.get(part, MISSING)
        else:
            current = getattr(current, part, MISSING)
        if current is MISSING:
            return MISSING
    return current


def resolve_variables(tree: Any, variables: Mapping[str, Any]) -> Any:
    """Return ``tree`` with every ``{$var: path}`` replaced by its value.

    Raises
    ------
    AbilityConfigError
        If a placeholder cannot be resolved from ``variables``.
    """
    if isinstance(tree, Mapping):
        if set(tree) == {VARIABLE_KEY}:
            path = str(tree[VARIABLE_KEY])
            value = lookup_variable(variables, path)
            if value is MISSING:
                raise AbilityConfigError(f"Unresolved condition variable {path!r}.")
            return value
        return {key: resolve_variables(value, variables) for key, value in tree.items()}
    if isinstance(tree, list):
        return [resolve_variables(item, variables) for item in tree]
    return tree


def contains_variables(tree: Any) -> bool:
    """Return True if ``tree`` holds any ``{$var: path}`` placeholder."""
    if isinstance(tree, Mapping):
        if set(tree) == {VARIABLE_KEY}:
            return True
        return any(contains_variables(value) for value in tree.values())
    if isinstance(tree, list):
        return any(contains_variables(item) for item in tree)
    return False


@dataclass(frozen=True)
class AbilityDefinition:
    """Validated rule file, ready to build one Ability per actor.

    Attributes
    ----------
    aliases:
        Frozen alias registry shared by every ability built from this
        definition.
    rules:
        Validated rule entries in file order.
    subjects:
        Mapping from subject name to subject class.
    source:
        Where the definition was loaded from, for messages.
    """

    aliases: AliasRegistry
    rules: tuple[RuleConfig, ...]
    subjects: Mapping[str, SubjectRef] = field(default_factory=dict)
    source: str | None = None

    def resolve_subject(self, name: str) -> SubjectRef:
        """Map a subject name to its class; unknown names stay named subjects."""
        if name == ALL:
            return ALL
        return self.subjects.get(name, name)

    def build(
        self,
        variables: Mapping[str, Any] | None = None,
        adapters: AdapterRegistry | None = None,
    ) -> Ability:
        """Return a new Ability holding this definition's rules.

        Parameters
        ----------
        variables:
            Values for ``{$var: path}`` placeholders, e.g.
            ``{"actor": current_user}``.
        adapters:
            Optional adapter registry passed to the Ability.

        Raises
        ------
        AbilityConfigError
            If a placeholder cannot be resolved.
        """
        ability = Ability(self.aliases, adapters)
        for entry in self.rules:
            conditions = resolve_variables(entry.conditions, variables or {})
            if entry.grant:
                declare = ability.grant
            else:
                declare = ability.deny
            declare(
                entry.actions,
                [self.resolve_subject(name) for name in entry.subjects],
                conditions,
                attributes=entry.attributes,
                reason=entry.reason,
            )
        return ability


class AbilityLoader:
    """Loads ability definitions from YAML files, YAML strings or dicts.

    Parameters
    ----------
    subjects:
        Mapping from the subject names used in rule files to subject
        classes. Names not in the mapping are kept as named subjects.
    aliases:
        Base alias registry; copied, extended with the file's ``aliases``
        section, then frozen. Defaults to the built-in aliases.
    strict:
        When ``True``, unknown top-level keys are an error.
    """

    _KNOWN_TOP_KEYS: frozenset[str] = frozenset(
        ["version", "description", "aliases", "rules", "metadata"]
    )

    def __init__(
        self,
        subjects: Mapping[str, SubjectRef] | None = None,
        aliases: AliasRegistry | None = None,
        strict: bool = False,
    ) -> None:
        self._subjects = dict(subjects or {})
        self._aliases = aliases
        self._strict = strict

    def load(self, config_path: str | Path) -> AbilityDefinition:
        """Load a definition from a YAML file on disk.

        Raises
        ------
        FileNotFoundError
            If the file does not exist.
        AbilityConfigError
            If the file cannot be parsed or is invalid.
        """
        return self.from_config(self.read_config(config_path), config_path=str(config_path))

    def load_from_dict(
        self,
        config: dict[str, object],
        config_path: str | None = None,
    ) -> AbilityDefinition:
        """Load a definition from an already-parsed dictionary."""
        return self.from_config(self.validate(config, config_path), config_path)

    def load_from_yaml_string(
        self,
        yaml_string: str,
        config_path: str | None = None,
    ) -> AbilityDefinition:
        """Load a definition from YAML text."""
        try:
            raw = yaml.safe_load(yaml_string) or {}
        except yaml.YAMLError as exc:
            raise AbilityConfigError(f"Failed to parse YAML string: {exc}", config_path) from exc
        return self.load_from_dict(raw, config_path)

    def read_config(self, config_path: str | Path) -> AbilityConfig:
        """Parse and validate a YAML file without building a definition."""
        config_path = Path(config_path)
        if not config_path.exists():
            raise FileNotFoundError(f"Rule file not found: {config_path}")
        try:
            with config_path.open("r", encoding="utf-8") as fh:
                raw = yaml.safe_load(fh) or {}
        except yaml.YAMLError as exc:
            raise AbilityConfigError(f"Failed to parse YAML: {exc}", str(config_path)) from exc
        return self.validate(raw, str(config_path))

    def validate(self, raw: object, config_path: str | None = None) -> AbilityConfig:
        """Validate a raw mapping against :class:`AbilityConfig`."""
        if not isinstance(raw, dict):
            raise AbilityConfigError("Rule file must be a YAML mapping.", config_path)
        if self._strict:
            unknown_keys = set(raw) - self._KNOWN_TOP_KEYS
            if unknown_keys:
                raise AbilityConfigError(
                    f"Unknown top-level keys: {sorted(unknown_keys)}. "
                    f"Known keys: {sorted(self._KNOWN_TOP_KEYS)}.",
                    config_path,
                )
        try:
            return AbilityConfig.model_validate(raw)
        except ValidationError as exc:
            raise AbilityConfigError(f"Invalid rule file: {exc}", config_path) from exc

    def from_config(
        self,
        config: AbilityConfig,
        config_path: str | None = None,
    ) -> AbilityDefinition:
        """Build the alias registry and check every rule's conditions."""
        base = self._aliases if self._aliases is not None else AliasRegistry.with_defaults()
        aliases = base.copy()
        for alias, targets in config.aliases.items():
            try:
                aliases.register(alias, *targets)
            except AbilityConfigError as exc:
                raise AbilityConfigError(str(exc), config_path) from exc
        aliases.freeze()

        for index, entry in enumerate(config.rules):
            # Placeholders are only known per actor; those trees are checked by build().
            conditions = None if contains_variables(entry.conditions) else entry.conditions
            try:
                Rule.build(entry.grant, entry.actions, entry.subjects, conditions)
            except (AbilityConfigError, UnsupportedConditionError) as exc:
                raise AbilityConfigError(f"Error in rule at index {index}: {exc}", config_path) from exc

        logger.info(
            "Loaded %d ability rules and %d aliases from %s",
            len(config.rules),
            len(config.aliases),
            config_path or "<dict>",
        )
        return AbilityDefinition(
            aliases=aliases,
            rules=tuple(config.rules),
            subjects=dict(self._subjects),
            source=config_path,
        )
