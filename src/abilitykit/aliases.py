"""Action aliases.

An alias is a named shorthand that expands to one or more concrete
actions. A rule declared on ``read`` therefore also covers ``index`` and
``show``. Expansion is transitive and stops quietly on cycles.

The registry is configured once at start-up, frozen, and then shared by
reference with every :class:`~abilitykit.ability.Ability` built afterwards.
After :meth:`AliasRegistry.freeze` it is read-only, so concurrent readers
need no locking.

Example
-------
::

    aliases = AliasRegistry.with_defaults()
    aliases.register("modify", "update", "destroy")
    aliases.freeze()
    assert aliases.expand("modify") == {"modify", "update", "edit", "destroy"}
"""
from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping

from abilitykit.errors import AbilityConfigError

logger = logging.getLogger(__name__)

MANAGE = "manage"

DEFAULT_ALIASES: dict[str, tuple[str, ...]] = {
    "read": ("index", "show"),
    "create": ("new",),
    "update": ("edit",),
}


class AliasRegistry:
    """Maps alias actions to the ordered list of actions they expand to.

    Parameters
    ----------
    aliases:
        Optional initial mapping of alias to targets.
    """

    def __init__(self, aliases: Mapping[str, Iterable[str]] | None = None) -> None:
        self._aliases: dict[str, list[str]] = {}
        self._frozen = False
        self._cache: dict[str, frozenset[str]] = {}
        for alias, targets in (aliases or {}).items():
            self.register(alias, *targets)

    @classmethod
    def with_defaults(cls) -> AliasRegistry:
        """Return a new, unfrozen registry seeded with :data:`DEFAULT_ALIASES`."""
        return cls(DEFAULT_ALIASES)

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    def register(self, alias: str, *targets: str) -> None:
        """Add ``targets`` to the expansion list of ``alias``.

        Registration is a union: targets already present are not added twice
        and existing targets are never removed.

        Raises
        ------
        AbilityConfigError
            If the registry is frozen, no targets are given, or ``manage`` is
            used as an alias or a target.
        """
        if self._frozen:
            raise AbilityConfigError(
                f"Cannot register alias {alias!r}: the alias registry is frozen."
            )
        if not alias:
            raise AbilityConfigError("Alias name must not be empty.")
        if not targets:
            raise AbilityConfigError(f"Alias {alias!r} needs at least one target.")
        if alias == MANAGE or MANAGE in targets:
            raise AbilityConfigError(
                f"{MANAGE!r} matches every action and cannot take part in an alias."
            )

        expansion = self._aliases.setdefault(alias, [])
        for target in targets:
            if target not in expansion:
                expansion.append(target)
        logger.debug("Registered alias %s -> %s", alias, expansion)

    def clear(self) -> None:
        """Remove every alias, including the defaults."""
        if self._frozen:
            raise AbilityConfigError("Cannot clear a frozen alias registry.")
        self._aliases.clear()

    def freeze(self) -> AliasRegistry:
        """Make the registry read-only and return it."""
        self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        """Return True once :meth:`freeze` has been called."""
        return self._frozen

    def copy(self) -> AliasRegistry:
        """Return an unfrozen copy holding the same aliases."""
        return AliasRegistry(self._aliases)

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def targets(self, alias: str) -> tuple[str, ...]:
        """Return the direct targets of ``alias`` (empty if it is not an alias)."""
        return tuple(self._aliases.get(alias, ()))

    def aliases(self) -> dict[str, tuple[str, ...]]:
        """Return a snapshot of every alias and its direct targets."""
        return {alias: tuple(targets) for alias, targets in self._aliases.items()}

    def expand(self, action: str) -> frozenset[str]:
        """Return ``action`` plus every action it transitively aliases.

        ``manage`` is never expanded. Self-referential and mutually
        referential aliases are tolerated: each action is visited once.
        """
        cached = self._cache.get(action)
        if cached is not None:
            return cached

        result: set[str] = {action}
        if action != MANAGE:
            pending = list(self._aliases.get(action, ()))
            while pending:
                current = pending.pop()
                if current in result:
                    continue
                result.add(current)
                pending.extend(self._aliases.get(current, ()))

        expanded = frozenset(result)
        if self._frozen:
            self._cache[action] = expanded
        return expanded

    def expand_all(self, actions: Iterable[str]) -> frozenset[str]:
        """Return the union of :meth:`expand` over ``actions``."""
        result: set[str] = set()
        for action in actions:
            result |= self.expand(action)
        return frozenset(result)

    def __contains__(self, alias: object) -> bool:
        return alias in self._aliases

    def __len__(self) -> int:
        return len(self._aliases)

    def __repr__(self) -> str:
        state = "frozen" if self._frozen else "open"
        return f"AliasRegistry({self.aliases()!r}, {state})"
