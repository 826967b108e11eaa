"""In-memory adapter: filters are composable Python callables.

Useful for collections that live in process (lists of objects or dicts),
for unsaved instances, and as a reference implementation of the adapter
contract.

Example
-------
::

    adapter = InMemoryAdapter()
    record_filter = ability.accessible_filter("read", Order, adapter=adapter)
    visible = record_filter.apply(orders)
"""
from __future__ import annotations

from collections.abc import Callable, Iterable
from typing import Any

from abilitykit.adapters.base import StorageAdapter
from abilitykit.conditions.compiler import Predicate


class RecordFilter:
    """A record predicate supporting ``&`` (AND), ``|`` (OR) and ``~`` (NOT).

    Parameters
    ----------
    fn:
        Callable taking a record and returning a bool.
    name:
        Human-readable description, shown in ``repr``.
    constant:
        ``True`` or ``False`` when the filter ignores the record; used to
        fold combinations with "everything" and "nothing".
    """

    def __init__(
        self,
        fn: Callable[[Any], bool],
        *,
        name: str = "",
        constant: bool | None = None,
    ) -> None:
        self._fn = fn
        self._name = name or getattr(fn, "__name__", "<filter>")
        self.constant = constant

    def __call__(self, record: Any) -> bool:
        return bool(self._fn(record))

    def __and__(self, other: RecordFilter) -> RecordFilter:
        if self.constant is False or other.constant is True:
            return self
        if self.constant is True or other.constant is False:
            return other
        return RecordFilter(
            lambda record: self(record) and other(record),
            name=f"({self._name} & {other._name})",
        )

    def __or__(self, other: RecordFilter) -> RecordFilter:
        if self.constant is True or other.constant is False:
            return self
        if self.constant is False or other.constant is True:
            return other
        return RecordFilter(
            lambda record: self(record) or other(record),
            name=f"({self._name} | {other._name})",
        )

    def __invert__(self) -> RecordFilter:
        if self.constant is not None:
            return EVERYTHING if self.constant is False else NOTHING
        return RecordFilter(lambda record: not self(record), name=f"~{self._name}")

    def apply(self, records: Iterable[Any]) -> list[Any]:
        """Return the records this filter accepts, preserving order."""
        if self.constant is False:
            return []
        return [record for record in records if self(record)]

    @property
    def name(self) -> str:
        return self._name

    def __repr__(self) -> str:
        return f"RecordFilter({self._name!r})"


EVERYTHING = RecordFilter(lambda record: True, name="everything", constant=True)
NOTHING = RecordFilter(lambda record: False, name="nothing", constant=False)


class InMemoryAdapter(StorageAdapter):
    """Adapter producing :class:`RecordFilter` objects; applies to any class."""

    def applies_to(self, subject_type: Any) -> bool:
        return isinstance(subject_type, type)

    def translate(self, predicate: Predicate, subject_type: Any) -> RecordFilter:
        return RecordFilter(predicate.evaluate, name=repr(predicate.to_dict()))

    def and_(self, *filters: RecordFilter) -> RecordFilter:
        result = EVERYTHING
        for native in filters:
            result = result & native
        return result

    def or_(self, *filters: RecordFilter) -> RecordFilter:
        result = NOTHING
        for native in filters:
            result = result | native
        return result

    def not_(self, native: RecordFilter) -> RecordFilter:
        return ~native

    def everything(self) -> RecordFilter:
        return EVERYTHING

    def nothing(self) -> RecordFilter:
        return NOTHING
