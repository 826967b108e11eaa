"""Storage adapter contract and registry.

A storage adapter turns compiled predicates into the filter objects of
one storage technology and combines them. The engine never runs queries;
it hands the finished filter back to the host.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Iterable, Iterator
from typing import Any

from abilitykit.conditions.compiler import Predicate
from abilitykit.errors import NoAdapterError

logger = logging.getLogger(__name__)


class StorageAdapter(ABC):
    """Translates predicates into native filters for one storage technology."""

    @abstractmethod
    def applies_to(self, subject_type: Any) -> bool:
        """Return True if this adapter can filter records of ``subject_type``."""

    @abstractmethod
    def translate(self, predicate: Predicate, subject_type: Any) -> Any:
        """Return the native filter equivalent to ``predicate``.

        Raises
        ------
        UnsupportedConditionError
            If the predicate uses a construct this adapter cannot express.
        """

    @abstractmethod
    def and_(self, *filters: Any) -> Any:
        """Return a filter matching records every filter matches."""

    @abstractmethod
    def or_(self, *filters: Any) -> Any:
        """Return a filter matching records any filter matches."""

    @abstractmethod
    def not_(self, native: Any) -> Any:
        """Return a filter matching exactly the records ``native`` rejects."""

    @abstractmethod
    def everything(self) -> Any:
        """Return a filter matching every record."""

    @abstractmethod
    def nothing(self) -> Any:
        """Return a filter matching no record."""

    def matches_in_memory(self, predicate: Predicate, instance: Any) -> bool:
        """Evaluate ``predicate`` on a Python object, e.g. an unsaved record."""
        return predicate.evaluate(instance)


class AdapterRegistry:
    """Ordered collection of adapters; the first applicable one wins.

    Parameters
    ----------
    adapters:
        Initial adapters, in lookup order.
    """

    def __init__(self, adapters: Iterable[StorageAdapter] = ()) -> None:
        self._adapters: list[StorageAdapter] = list(adapters)

    def register(self, adapter: StorageAdapter, *, first: bool = False) -> None:
        """Add ``adapter`` at the end of the lookup order (or the front)."""
        if first:
            self._adapters.insert(0, adapter)
        else:
            self._adapters.append(adapter)

    def adapter_for(self, subject_type: Any) -> StorageAdapter:
        """Return the first adapter that applies to ``subject_type``.

        Raises
        ------
        NoAdapterError
            If no registered adapter applies.
        """
        for adapter in self._adapters:
            if adapter.applies_to(subject_type):
                logger.debug("Using %s for %r", type(adapter).__name__, subject_type)
                return adapter
        raise NoAdapterError(subject_type)

    def __iter__(self) -> Iterator[StorageAdapter]:
        return iter(self._adapters)

    def __len__(self) -> int:
        return len(self._adapters)
