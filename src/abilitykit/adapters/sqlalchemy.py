"""SQLAlchemy adapter: filters are boolean column expressions.

The adapter applies to mapped classes and produces a
``ColumnElement[bool]`` suitable for ``select(Model).where(...)``.

Nested condition trees follow relationships: a scalar relationship becomes
``Model.rel.has(...)`` and a collection becomes ``Model.rel.any(...)``,
matching the in-memory rule that any element of a collection may satisfy
a nested tree.

SQL's three-valued logic would make ``NOT (status = 'secret')`` reject
rows whose status is NULL, while in-memory matching accepts them. Negation
is therefore null-safe: ``NOT COALESCE(expr, FALSE)``.

An attribute the mapped class does not have at all is treated like a
missing attribute: conditions on it are ``FALSE``, except ``exists:
False`` which is ``TRUE``.

Example
-------
::

    adapter = SQLAlchemyAdapter()
    criteria = ability.accessible_filter("read", Order, adapter=adapter)
    orders = session.scalars(select(Order).where(criteria)).all()
"""
from __future__ import annotations

from typing import Any

from sqlalchemy import ColumnElement, and_, false, func, inspect, not_, or_, true
from sqlalchemy.orm import Mapper

from abilitykit.adapters.base import StorageAdapter
from abilitykit.conditions.compiler import Comparison, Conjunction, Nested, Predicate
from abilitykit.conditions.operators import Operator
from abilitykit.errors import UnsupportedConditionError


class SQLAlchemyAdapter(StorageAdapter):
    """Adapter producing SQLAlchemy boolean expressions for mapped classes."""

    def applies_to(self, subject_type: Any) -> bool:
        if not isinstance(subject_type, type):
            return False
        return inspect(subject_type, raiseerr=False) is not None

    def translate(self, predicate: Predicate, subject_type: Any) -> ColumnElement[bool]:
        return self._criteria(predicate, subject_type)

    def and_(self, *filters: ColumnElement[bool]) -> ColumnElement[bool]:
        if not filters:
            return true()
        return and_(*filters)

    def or_(self, *filters: ColumnElement[bool]) -> ColumnElement[bool]:
        if not filters:
            return false()
        return or_(*filters)

    def not_(self, native: ColumnElement[bool]) -> ColumnElement[bool]:
        return not_(func.coalesce(native, false()))

    def everything(self) -> ColumnElement[bool]:
        return true()

    def nothing(self) -> ColumnElement[bool]:
        return false()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _criteria(self, predicate: Predicate, model: type) -> ColumnElement[bool]:
        if isinstance(predicate, Conjunction):
            if not predicate.terms:
                return true()
            return and_(*(self._criteria(term, model) for term in predicate.terms))
        if isinstance(predicate, Nested):
            return self._nested(predicate, model)
        if isinstance(predicate, Comparison):
            return self._comparison(predicate, model)
        raise UnsupportedConditionError(
            f"SQLAlchemyAdapter cannot translate {type(predicate).__name__}."
        )

    def _nested(self, nested: Nested, model: type) -> ColumnElement[bool]:
        mapper: Mapper[Any] = inspect(model)
        if _is_absent(mapper, nested.attribute):
            return false()
        if nested.attribute not in mapper.relationships.keys():
            raise UnsupportedConditionError(
                f"{model.__name__}.{nested.attribute} is not a relationship; "
                "nested conditions need one."
            )
        relationship = mapper.relationships[nested.attribute]
        attribute = getattr(model, nested.attribute)
        method = attribute.any if relationship.uselist else attribute.has
        if not nested.predicate.terms:
            return method()
        return method(self._criteria(nested.predicate, relationship.mapper.class_))

    def _comparison(self, comparison: Comparison, model: type) -> ColumnElement[bool]:
        mapper: Mapper[Any] = inspect(model)
        name = comparison.attribute
        operator = comparison.operator
        value = comparison.value

        if name in mapper.relationships.keys():
            relationship = mapper.relationships[name]
            if operator is Operator.EXISTS and not relationship.uselist:
                present = getattr(model, name).has()
                return present if value else not_(present)
            raise UnsupportedConditionError(
                f"Operator {operator.value!r} on relationship {model.__name__}.{name} "
                "has no SQL translation."
            )
        if _is_absent(mapper, name):
            # Records without the attribute only satisfy exists: False.
            return true() if operator is Operator.EXISTS and not value else false()
        if name not in mapper.column_attrs.keys():
            raise UnsupportedConditionError(f"{model.__name__}.{name} is not a mapped column.")

        column = getattr(model, name)
        match operator:
            case Operator.EQ:
                return column.is_(None) if value is None else column == value
            case Operator.NE:
                return column.is_not(None) if value is None else column != value
            case Operator.IN:
                return column.in_([v for v in value if v is not None])
            case Operator.NIN:
                return and_(column.is_not(None), column.not_in([v for v in value if v is not None]))
            case Operator.EXISTS:
                return column.is_not(None) if value else column.is_(None)
            case Operator.GT:
                return column > value
            case Operator.GTE:
                return column >= value
            case Operator.LT:
                return column < value
            case Operator.LTE:
                return column <= value
            case Operator.SIZE:
                raise UnsupportedConditionError(
                    f"$size on {model.__name__}.{name} has no generic SQL translation."
                )
        raise UnsupportedConditionError(f"Unhandled operator {operator.value!r}.")


def _is_absent(mapper: Mapper[Any], name: str) -> bool:
    """Return True when instances of the mapped class cannot have ``name``."""
    return name not in mapper.attrs.keys() and not hasattr(mapper.class_, name)
