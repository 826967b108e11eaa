"""The Ability: one actor's rules and every question asked of them.

Build one Ability per actor and per authorization context (typically a
request), declare rules in order, then query it. Later rules take
precedence over earlier ones.

Example
-------
::

    aliases = AliasRegistry.with_defaults().freeze()   # once, at start-up

    ability = Ability(aliases)
    ability.grant("read", ALL)
    ability.deny("read", Order, {"status": "secret"})
    ability.grant("update", Order, {"owner_id": user.id})

    ability.can("read", open_order)        # True
    ability.can("read", secret_order)      # False
    criteria = ability.accessible_filter("read", Order)   # SQLAlchemy / Mongo filter
"""
from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from abilitykit.adapters import AdapterRegistry, StorageAdapter, default_adapters
from abilitykit.aliases import AliasRegistry
from abilitykit.engine import Decision, MatchEngine, resolve_subject
from abilitykit.query import AccessibleQueryBuilder
from abilitykit.rules import Callback, Rule, RuleSet, SubjectRef, subject_name

logger = logging.getLogger(__name__)


class Ability:
    """Ordered permission rules for one actor.

    Parameters
    ----------
    aliases:
        Shared alias registry, normally built and frozen once per process.
        When omitted, a frozen registry holding only the default aliases
        is created for this ability.
    adapters:
        Storage adapters consulted by :meth:`accessible_filter` when no
        adapter is passed explicitly. Defaults to :func:`default_adapters`.
    """

    def __init__(
        self,
        aliases: AliasRegistry | None = None,
        adapters: AdapterRegistry | None = None,
    ) -> None:
        self._aliases = aliases if aliases is not None else AliasRegistry.with_defaults().freeze()
        self._adapters = adapters
        self._rules = RuleSet()
        self._engine = MatchEngine(self._aliases)
        self._query_builder = AccessibleQueryBuilder(self._aliases)

    # ------------------------------------------------------------------
    # Declaration API
    # ------------------------------------------------------------------

    def grant(
        self,
        actions: str | Iterable[str],
        subjects: SubjectRef | Iterable[SubjectRef],
        conditions: Mapping[str, Any] | None = None,
        callback: Callback | None = None,
        *,
        attributes: Iterable[str] | None = None,
        reason: str | None = None,
    ) -> Rule:
        """Append a rule permitting ``actions`` on ``subjects``.

        Parameters
        ----------
        actions:
            One action or several; ``"manage"`` covers every action.
        subjects:
            One subject or several; ``"all"`` covers every subject.
        conditions:
            Optional condition tree an instance must satisfy.
        callback:
            Optional ``(action, subject_type, instance) -> bool`` check.
            Mutually exclusive with ``conditions``; callback rules cannot
            be used for bulk filtering.
        attributes:
            Optional attribute names the rule is restricted to.
        reason:
            Optional description shown in decisions.

        Returns
        -------
        Rule
            The rule as stored, with its index assigned.
        """
        return self._add(True, actions, subjects, conditions, callback, attributes, reason)

    def deny(
        self,
        actions: str | Iterable[str],
        subjects: SubjectRef | Iterable[SubjectRef],
        conditions: Mapping[str, Any] | None = None,
        callback: Callback | None = None,
        *,
        attributes: Iterable[str] | None = None,
        reason: str | None = None,
    ) -> Rule:
        """Append a rule forbidding ``actions`` on ``subjects``.

        Takes the same arguments as :meth:`grant`.
        """
        return self._add(False, actions, subjects, conditions, callback, attributes, reason)

    def merge(self, other: Ability) -> Ability:
        """Append every rule of ``other``, in its declaration order, and return self."""
        for rule in other.rules:
            self._rules.append(rule)
        return self

    def _add(
        self,
        grant: bool,
        actions: str | Iterable[str],
        subjects: SubjectRef | Iterable[SubjectRef],
        conditions: Mapping[str, Any] | None,
        callback: Callback | None,
        attributes: Iterable[str] | None,
        reason: str | None,
    ) -> Rule:
        rule = Rule.build(
            grant,
            actions,
            subjects,
            conditions,
            callback,
            attributes=attributes,
            reason=reason,
        )
        return self._rules.append(rule)

    # ------------------------------------------------------------------
    # Query API
    # ------------------------------------------------------------------

    def can(self, action: str, subject: Any, *, attribute: str | None = None) -> bool:
        """Return True if ``action`` is permitted on ``subject``.

        ``subject`` may be an instance, a class (type-only check) or a
        subject name. A type-only check never satisfies a rule with
        conditions, since there is no instance to inspect. This holds for
        rules on ``all`` too, so ``exists(False)`` conditions only match
        instances. Callback rules are called with ``instance=None`` and
        decide for themselves.
        """
        return self._engine.can_perform(self._rules, action, subject, attribute)

    def cannot(self, action: str, subject: Any, *, attribute: str | None = None) -> bool:
        """Return the negation of :meth:`can`."""
        return not self.can(action, subject, attribute=attribute)

    def explain(self, action: str, subject: Any, *, attribute: str | None = None) -> Decision:
        """Return the full :class:`Decision`, including the deciding rule."""
        return self._engine.decide(self._rules, action, subject, attribute)

    def relevant_rules(
        self,
        action: str,
        subject: Any,
        *,
        attribute: str | None = None,
    ) -> list[Rule]:
        """Return the rules whose action and subject match, in declaration order."""
        subject_type, _ = resolve_subject(subject)
        return self._rules.relevant(action, subject_type, self._aliases, attribute)

    def attributes_for(self, action: str, subject_type: SubjectRef) -> dict[str, Any]:
        """Return attribute values implied by the grant conditions for ``action``.

        Hosts use this to pre-populate a new record so that it satisfies the
        rule that let the actor create it. Later rules override earlier ones.
        """
        values: dict[str, Any] = {}
        for rule in self._rules.relevant(action, subject_type, self._aliases):
            if rule.grant and rule.conditions is not None:
                values.update(rule.conditions.literal_values())
        return values

    # ------------------------------------------------------------------
    # Bulk-filter API
    # ------------------------------------------------------------------

    def accessible_filter(
        self,
        action: str,
        subject_type: SubjectRef,
        adapter: StorageAdapter | None = None,
    ) -> Any:
        """Return a native filter selecting the records ``action`` is permitted on.

        Parameters
        ----------
        action:
            The action to filter for, e.g. ``"read"``.
        subject_type:
            The record class being listed.
        adapter:
            Storage adapter to build with. When omitted, the first adapter
            in the ability's registry that applies to ``subject_type``.

        Raises
        ------
        NoAdapterError
            If no adapter was given and none applies to ``subject_type``.
        UnsupportedConditionError
            If an applicable rule cannot be expressed as a storage filter.
        """
        if adapter is None:
            if self._adapters is None:
                self._adapters = default_adapters()
            adapter = self._adapters.adapter_for(subject_type)
        return self._query_builder.build(self._rules, action, subject_type, adapter)

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def rules(self) -> tuple[Rule, ...]:
        """All rules in declaration order."""
        return tuple(self._rules)

    @property
    def rule_count(self) -> int:
        return len(self._rules)

    @property
    def aliases(self) -> AliasRegistry:
        return self._aliases

    def summary(self) -> dict[str, object]:
        """Return a plain dict summarising the declared rules."""
        action_counts: dict[str, int] = {}
        subjects: set[str] = set()
        for rule in self._rules:
            for action in rule.actions:
                action_counts[action] = action_counts.get(action, 0) + 1
            subjects.update(subject_name(s) for s in rule.subjects)
        return {
            "rule_count": self.rule_count,
            "grants": sum(1 for r in self._rules if r.grant),
            "denials": sum(1 for r in self._rules if not r.grant),
            "actions_covered": sorted(action_counts),
            "rules_per_action": action_counts,
            "subjects": sorted(subjects),
        }

    def __repr__(self) -> str:
        return f"Ability(rules={self.rule_count})"
