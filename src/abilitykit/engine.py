"""Point-wise permission checks.

:class:`MatchEngine` answers "may this actor perform this action on this
subject?" by walking a :class:`~abilitykit.rules.RuleSet` from the most
recently declared rule backwards. The first rule whose subject, action and
refinement all match decides; with no match the answer is deny.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from abilitykit.aliases import AliasRegistry
from abilitykit.rules import Rule, RuleSet, SubjectRef, subject_name

logger = logging.getLogger(__name__)


def resolve_subject(subject: Any) -> tuple[SubjectRef, Any]:
    """Split a query subject into ``(subject_type, instance)``.

    A class or a subject name is a type-only query (instance ``None``);
    anything else is an instance of ``type(subject)``.
    """
    if isinstance(subject, (type, str)):
        return subject, None
    return type(subject), subject


@dataclass(frozen=True)
class Decision:
    """Immutable result of a permission check.

    Attributes
    ----------
    allowed:
        Whether the action is permitted.
    action:
        The action that was checked.
    subject_type:
        The resolved subject class or name.
    rule:
        The rule that decided, or ``None`` when the default deny applied.
    reason:
        Human-readable explanation of the decision.
    """

    allowed: bool
    action: str
    subject_type: SubjectRef
    rule: Rule | None = None
    reason: str = ""

    def __bool__(self) -> bool:
        """Return True if the action is allowed."""
        return self.allowed


class MatchEngine:
    """Evaluates a rule set for single subjects.

    Parameters
    ----------
    aliases:
        Alias registry used to expand each rule's declared actions.
    """

    def __init__(self, aliases: AliasRegistry) -> None:
        self._aliases = aliases

    def decide(
        self,
        rules: RuleSet,
        action: str,
        subject: Any,
        attribute: str | None = None,
    ) -> Decision:
        """Return the :class:`Decision` for ``action`` on ``subject``."""
        subject_type, instance = resolve_subject(subject)

        for rule in reversed(rules):
            if not rule.is_relevant(action, subject_type, self._aliases, attribute):
                continue
            if not rule.matches_instance(action, subject_type, instance):
                continue
            logger.debug(
                "Permission %s: action=%s subject=%s rule=%s",
                "GRANT" if rule.grant else "DENY",
                action,
                subject_name(subject_type),
                rule.index,
            )
            return Decision(
                allowed=rule.grant,
                action=action,
                subject_type=subject_type,
                rule=rule,
                reason=rule.reason or rule.describe(),
            )

        logger.debug(
            "Permission DEFAULT-DENY: action=%s subject=%s",
            action,
            subject_name(subject_type),
        )
        return Decision(
            allowed=False,
            action=action,
            subject_type=subject_type,
            rule=None,
            reason=f"No rule grants '{action}' on {subject_name(subject_type)}.",
        )

    def can_perform(
        self,
        rules: RuleSet,
        action: str,
        subject: Any,
        attribute: str | None = None,
    ) -> bool:
        """Return True if ``action`` on ``subject`` is permitted."""
        return self.decide(rules, action, subject, attribute).allowed
