"""Rules and the ordered rule set an actor accumulates.

A :class:`Rule` is one ``grant`` or ``deny`` statement. Its optional
refinement is an :class:`Evaluator`, which comes in two variants:

- :class:`StructuralCondition` wraps a compiled condition tree. It can be
  checked against an instance and translated into a storage filter.
- :class:`OpaqueCallback` wraps arbitrary host logic. It is only usable
  for point-wise checks; bulk filtering rejects it.

A :class:`RuleSet` is append-only. Rules are never mutated once added.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable, Iterator, Mapping
from dataclasses import dataclass, field, replace
from typing import Any, ClassVar, Union

from abilitykit.aliases import MANAGE, AliasRegistry
from abilitykit.conditions.compiler import ConditionCompiler, Conjunction
from abilitykit.errors import AbilityConfigError

logger = logging.getLogger(__name__)

ALL = "all"

SubjectRef = Union[type, str]
Callback = Callable[[str, SubjectRef, Any], bool]


# ---------------------------------------------------------------------------
# Evaluators
# ---------------------------------------------------------------------------


class Evaluator(ABC):
    """Refinement a rule applies once its action and subject have matched."""

    compilable: ClassVar[bool] = False

    @abstractmethod
    def matches(self, action: str, subject_type: SubjectRef, instance: Any) -> bool:
        """Return True if the rule applies to ``instance``."""

    @abstractmethod
    def describe(self) -> str:
        """Return a short human-readable description."""


@dataclass(frozen=True, eq=False)
class StructuralCondition(Evaluator):
    """A condition tree compiled into a predicate.

    A type-only check has no instance to inspect, so it never satisfies a
    structural condition, not even ``exists: False`` on a rule for ``all``.
    """

    tree: Mapping[str, Any]
    predicate: Conjunction
    compilable: ClassVar[bool] = True

    @classmethod
    def from_tree(cls, tree: Mapping[str, Any]) -> StructuralCondition:
        predicate = ConditionCompiler().compile(tree)
        return cls(tree=dict(tree), predicate=predicate)

    def matches(self, action: str, subject_type: SubjectRef, instance: Any) -> bool:
        if instance is None:
            return False
        return self.predicate.evaluate(instance)

    def describe(self) -> str:
        return f"where {self.predicate.to_dict()!r}"


@dataclass(frozen=True, eq=False)
class OpaqueCallback(Evaluator):
    """Host callback ``(action, subject_type, instance) -> bool``.

    The instance is ``None`` for type-only checks; the callback decides
    what that means.
    """

    callback: Callback

    def matches(self, action: str, subject_type: SubjectRef, instance: Any) -> bool:
        return bool(self.callback(action, subject_type, instance))

    def describe(self) -> str:
        name = getattr(self.callback, "__qualname__", repr(self.callback))
        return f"if {name}()"


# ---------------------------------------------------------------------------
# Rule
# ---------------------------------------------------------------------------


def _as_tuple(value: Any, label: str) -> tuple[Any, ...]:
    if isinstance(value, (str, type)):
        items: tuple[Any, ...] = (value,)
    elif isinstance(value, Iterable):
        items = tuple(value)
    else:
        items = (value,)
    if not items:
        raise AbilityConfigError(f"A rule needs at least one {label}.")
    return items


def subject_name(subject: object) -> str:
    """Return a display name for a subject reference."""
    if isinstance(subject, type):
        return subject.__name__
    return str(subject)


@dataclass(frozen=True, eq=False)
class Rule:
    """A single grant or deny statement.

    Attributes
    ----------
    grant:
        ``True`` for "can", ``False`` for an explicit "cannot".
    actions:
        The literal actions declared, unexpanded.
    subjects:
        Subject classes, subject names, or the wildcard ``"all"``.
    evaluator:
        Optional refinement (structural conditions or a callback).
    attributes:
        Attribute names the rule is restricted to; empty means every
        attribute.
    reason:
        Free-text description shown in decisions and listings.
    index:
        Position in the owning :class:`RuleSet`; ``-1`` until appended.
    """

    grant: bool
    actions: tuple[str, ...]
    subjects: tuple[SubjectRef, ...]
    evaluator: Evaluator | None = None
    attributes: frozenset[str] = field(default_factory=frozenset)
    reason: str | None = None
    index: int = -1

    @classmethod
    def build(
        cls,
        grant: bool,
        actions: str | Iterable[str],
        subjects: SubjectRef | Iterable[SubjectRef],
        conditions: Mapping[str, Any] | None = None,
        callback: Callback | None = None,
        *,
        attributes: Iterable[str] | None = None,
        reason: str | None = None,
    ) -> Rule:
        """Validate declaration arguments and build a Rule.

        Raises
        ------
        AbilityConfigError
            If actions or subjects are empty or malformed, if both
            conditions and a callback are given, or if the callback is not
            callable.
        UnsupportedConditionError
            If ``conditions`` is not a valid condition tree.
        """
        action_tuple = _as_tuple(actions, "action")
        for action in action_tuple:
            if not isinstance(action, str) or not action:
                raise AbilityConfigError(f"Actions must be non-empty strings; got {action!r}.")
        subject_tuple = _as_tuple(subjects, "subject")
        for subject in subject_tuple:
            if not isinstance(subject, (str, type)) or subject == "":
                raise AbilityConfigError(
                    f"Subjects must be classes or non-empty names; got {subject!r}."
                )

        if conditions and callback is not None:
            raise AbilityConfigError(
                "A rule takes either conditions or a callback, not both."
            )
        evaluator: Evaluator | None = None
        if callback is not None:
            if not callable(callback):
                raise AbilityConfigError(f"Rule callback must be callable; got {callback!r}.")
            evaluator = OpaqueCallback(callback)
        elif conditions:
            evaluator = StructuralCondition.from_tree(conditions)

        return cls(
            grant=bool(grant),
            actions=action_tuple,
            subjects=subject_tuple,
            evaluator=evaluator,
            attributes=frozenset(attributes or ()),
            reason=reason,
        )

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def conditions(self) -> Conjunction | None:
        """The compiled conditions, or ``None`` if the rule has none."""
        if isinstance(self.evaluator, StructuralCondition):
            return self.evaluator.predicate
        return None

    @property
    def has_callback(self) -> bool:
        return isinstance(self.evaluator, OpaqueCallback)

    @property
    def unconditional(self) -> bool:
        return self.evaluator is None

    def describe(self) -> str:
        """Return a one-line description, e.g. ``#2 deny read on Order where {...}``."""
        verb = "grant" if self.grant else "deny"
        actions = ", ".join(self.actions)
        subjects = ", ".join(subject_name(s) for s in self.subjects)
        text = f"{verb} {actions} on {subjects}"
        if self.index >= 0:
            text = f"#{self.index} {text}"
        if self.attributes:
            text += f" [{', '.join(sorted(self.attributes))}]"
        if self.evaluator is not None:
            text += f" {self.evaluator.describe()}"
        return text

    # ------------------------------------------------------------------
    # Matching
    # ------------------------------------------------------------------

    def matches_subject(self, subject_type: SubjectRef) -> bool:
        """Return True for ``"all"`` or the exact subject (no subclassing)."""
        return ALL in self.subjects or subject_type in self.subjects

    def matches_action(self, action: str, aliases: AliasRegistry) -> bool:
        """Return True for ``"manage"`` or an action the declared ones expand to."""
        if MANAGE in self.actions:
            return True
        return action in aliases.expand_all(self.actions)

    def matches_attribute(self, attribute: str | None) -> bool:
        return not self.attributes or attribute is None or attribute in self.attributes

    def is_relevant(
        self,
        action: str,
        subject_type: SubjectRef,
        aliases: AliasRegistry,
        attribute: str | None = None,
    ) -> bool:
        """Return True if the rule's action, subject and attribute all match."""
        return (
            self.matches_subject(subject_type)
            and self.matches_action(action, aliases)
            and self.matches_attribute(attribute)
        )

    def matches_instance(self, action: str, subject_type: SubjectRef, instance: Any) -> bool:
        """Return True if the rule's refinement accepts ``instance``."""
        if self.evaluator is None:
            return True
        return self.evaluator.matches(action, subject_type, instance)


# ---------------------------------------------------------------------------
# RuleSet
# ---------------------------------------------------------------------------


class RuleSet:
    """Append-only, ordered sequence of rules owned by one ability."""

    def __init__(self, rules: Iterable[Rule] = ()) -> None:
        self._rules: list[Rule] = []
        for rule in rules:
            self.append(rule)

    def append(self, rule: Rule) -> Rule:
        """Append ``rule`` and return it with its index assigned."""
        indexed = replace(rule, index=len(self._rules))
        self._rules.append(indexed)
        logger.debug("Added rule %s", indexed.describe())
        return indexed

    def relevant(
        self,
        action: str,
        subject_type: SubjectRef,
        aliases: AliasRegistry,
        attribute: str | None = None,
    ) -> list[Rule]:
        """Return rules matching action, subject and attribute, in declaration order."""
        return [r for r in self._rules if r.is_relevant(action, subject_type, aliases, attribute)]

    def __iter__(self) -> Iterator[Rule]:
        return iter(self._rules)

    def __reversed__(self) -> Iterator[Rule]:
        return reversed(self._rules)

    def __len__(self) -> int:
        return len(self._rules)

    def __getitem__(self, index: int) -> Rule:
        return self._rules[index]
