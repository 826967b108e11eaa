"""Exception hierarchy for abilitykit.

All exceptions raised by this package inherit from :class:`AbilityError`,
so callers can catch every abilitykit failure with a single ``except``
clause.

Hierarchy
---------
::

    AbilityError
    ├── AbilityConfigError         bad rule declarations, alias misuse, bad YAML
    ├── AccessDenied               raised by host helpers, never by the engine
    ├── UnsupportedConditionError  a rule cannot become a storage predicate
    └── NoAdapterError             no storage adapter handles a subject type
"""
from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from abilitykit.rules import Rule

DEFAULT_DENIED_MESSAGE = "You are not authorized to access this page."


class AbilityError(Exception):
    """Base exception for all abilitykit errors."""


class AbilityConfigError(AbilityError, ValueError):
    """Raised when rules, aliases or a rule file are malformed.

    Attributes
    ----------
    config_path:
        The path to the config file that caused the error, if known.
    """

    def __init__(self, message: str, config_path: str | None = None) -> None:
        self.config_path = config_path
        prefix = f"[{config_path}] " if config_path else ""
        super().__init__(f"{prefix}{message}")


class AccessDenied(AbilityError):
    """Raised by the host when an actor is not permitted to act on a subject.

    The engine itself only ever returns booleans; see
    :func:`abilitykit.guard.authorize` for the helper that raises this.

    Attributes
    ----------
    action:
        The action that was attempted.
    subject:
        The subject (class, name or instance) the action targeted.
    """

    def __init__(
        self,
        message: str | None = None,
        action: str | None = None,
        subject: object = None,
    ) -> None:
        self.action = action
        self.subject = subject
        self.message = message or DEFAULT_DENIED_MESSAGE
        super().__init__(self.message)


class UnsupportedConditionError(AbilityError):
    """Raised when a rule cannot be expressed as a storage predicate.

    Typical causes are callback-only rules used for bulk filtering, or an
    operator the active storage adapter cannot translate.

    Attributes
    ----------
    rule:
        The offending rule, or ``None`` when the failure happened while
        normalising a condition tree that is not attached to a rule yet.
    """

    def __init__(self, message: str, rule: Rule | None = None) -> None:
        self.rule = rule
        if rule is not None:
            message = f"{message} (rule: {rule.describe()})"
        super().__init__(message)


class NoAdapterError(AbilityError, LookupError):
    """Raised when no registered storage adapter applies to a subject type."""

    def __init__(self, subject_type: object) -> None:
        self.subject_type = subject_type
        name = getattr(subject_type, "__name__", repr(subject_type))
        super().__init__(f"No storage adapter applies to subject type {name}.")
