"""Bulk filtering: compile a rule set into one storage-native filter.

Point-wise checks stop at the most recent matching rule. A filter has to
describe every record at once, so here rules are folded in declaration
order instead, starting from "match nothing":

- a grant ORs its predicate into the accumulator;
- a deny ANDs the negation of its predicate into the accumulator.

For any record, the accumulator then ends up holding the verdict of the
last rule that matched it, which is exactly what the reverse walk returns.
"""
from __future__ import annotations

import logging
from typing import Any

from abilitykit.adapters.base import StorageAdapter
from abilitykit.aliases import AliasRegistry
from abilitykit.errors import UnsupportedConditionError
from abilitykit.rules import Rule, RuleSet, SubjectRef, subject_name

logger = logging.getLogger(__name__)


class AccessibleQueryBuilder:
    """Builds native filters listing the records an actor may access.

    Parameters
    ----------
    aliases:
        Alias registry used to expand each rule's declared actions.
    """

    def __init__(self, aliases: AliasRegistry) -> None:
        self._aliases = aliases

    def build(
        self,
        rules: RuleSet,
        action: str,
        subject_type: SubjectRef,
        adapter: StorageAdapter,
    ) -> Any:
        """Return the adapter's native filter for ``action`` on ``subject_type``.

        Raises
        ------
        UnsupportedConditionError
            If an applicable rule relies on a callback, or the adapter
            cannot translate one of its conditions. The error names the rule.
        """
        applicable = rules.relevant(action, subject_type, self._aliases)
        accumulator = adapter.nothing()

        for rule in applicable:
            if rule.unconditional:
                accumulator = adapter.everything() if rule.grant else adapter.nothing()
                continue
            native = self._translate(rule, subject_type, adapter)
            if rule.grant:
                accumulator = adapter.or_(accumulator, native)
            else:
                accumulator = adapter.and_(accumulator, adapter.not_(native))

        logger.debug(
            "Built %s filter for action=%s subject=%s from %d rule(s)",
            type(adapter).__name__,
            action,
            subject_name(subject_type),
            len(applicable),
        )
        return accumulator

    def _translate(self, rule: Rule, subject_type: SubjectRef, adapter: StorageAdapter) -> Any:
        predicate = rule.conditions
        if predicate is None:
            raise UnsupportedConditionError(
                f"Cannot build a filter for {subject_name(subject_type)}: "
                "a callback rule cannot be expressed as a storage predicate",
                rule,
            )
        try:
            return adapter.translate(predicate, subject_type)
        except UnsupportedConditionError as exc:
            if exc.rule is not None:
                raise
            raise UnsupportedConditionError(str(exc), rule) from exc
