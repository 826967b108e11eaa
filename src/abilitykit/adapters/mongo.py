"""MongoDB adapter: filters are query documents.

The adapter applies to classes that name their collection in a string
``__collection__`` attribute. It only builds documents; pass them to
``collection.find(...)`` (or an ODM's raw query hook) yourself.

Translation
-----------
- literal ``{"title": "Sir"}`` stays ``{"title": "Sir"}``;
- operators map to ``$in``, ``$nin``, ``$size``, ``$exists``, ``$gt``,
  ``$gte``, ``$lt``, ``$lte``; ``ne`` and ``nin`` also require the field
  to be present and non-null, and equality with ``None`` only matches an
  explicit null, so documents agree with in-memory matching;
- operators on array fields hold element-wise on both sides;
- nested trees match an embedded document through dotted paths
  (``{"foo.bar": 1}``) or an array through ``$elemMatch``, so a single
  element has to satisfy every nested key;
- AND / OR / NOT become ``$and`` / ``$or`` / ``$nor``.
"""
from __future__ import annotations

from typing import Any

from abilitykit.adapters.base import StorageAdapter
from abilitykit.conditions.compiler import Comparison, Conjunction, Nested, Predicate
from abilitykit.conditions.operators import Operator
from abilitykit.errors import UnsupportedConditionError

_NOTHING: dict[str, Any] = {"_id": {"$exists": False}}


class MongoQueryAdapter(StorageAdapter):
    """Adapter producing MongoDB query documents (plain dicts)."""

    def applies_to(self, subject_type: Any) -> bool:
        return isinstance(getattr(subject_type, "__collection__", None), str)

    def translate(self, predicate: Predicate, subject_type: Any) -> dict[str, Any]:
        return self._translate(predicate, "")

    def and_(self, *filters: dict[str, Any]) -> dict[str, Any]:
        clauses = [f for f in filters if f]
        if any(self._is_nothing(f) for f in clauses):
            return self.nothing()
        return self._combine("$and", clauses, empty=self.everything())

    def or_(self, *filters: dict[str, Any]) -> dict[str, Any]:
        if any(not f for f in filters):
            return self.everything()
        clauses = [f for f in filters if not self._is_nothing(f)]
        return self._combine("$or", clauses, empty=self.nothing())

    def not_(self, native: dict[str, Any]) -> dict[str, Any]:
        if not native:
            return self.nothing()
        if self._is_nothing(native):
            return self.everything()
        return {"$nor": [native]}

    def everything(self) -> dict[str, Any]:
        return {}

    def nothing(self) -> dict[str, Any]:
        return {"_id": {"$exists": False}}

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _is_nothing(native: dict[str, Any]) -> bool:
        return native == _NOTHING

    @staticmethod
    def _combine(key: str, clauses: list[dict[str, Any]], empty: dict[str, Any]) -> dict[str, Any]:
        if not clauses:
            return empty
        if len(clauses) == 1:
            return clauses[0]
        return {key: clauses}

    def _translate(self, predicate: Predicate, prefix: str) -> dict[str, Any]:
        if isinstance(predicate, Conjunction):
            clauses = [self._translate(term, prefix) for term in predicate.terms]
            return self._merge(clauses)
        if isinstance(predicate, Nested):
            return self._nested(predicate, f"{prefix}{predicate.attribute}")
        if isinstance(predicate, Comparison):
            return {f"{prefix}{predicate.attribute}": self._operand(predicate)}
        raise UnsupportedConditionError(
            f"MongoQueryAdapter cannot translate {type(predicate).__name__}."
        )

    def _nested(self, nested: Nested, path: str) -> dict[str, Any]:
        # An embedded document is matched through dotted paths. An array
        # needs one element to satisfy every term, hence $elemMatch.
        document = {path: {"$exists": True, "$ne": None, "$not": {"$type": "array"}}}
        if not nested.predicate.terms:
            array = {path: {"$type": "array", "$not": {"$size": 0}}}
            return {"$or": [document, array]}
        array = {path: {"$elemMatch": self._translate(nested.predicate, "")}}
        dotted = self._translate(nested.predicate, f"{path}.")
        return {"$or": [array, self._merge([document, dotted])]}

    @staticmethod
    def _merge(clauses: list[dict[str, Any]]) -> dict[str, Any]:
        merged: dict[str, Any] = {}
        for clause in clauses:
            for key, value in clause.items():
                if key not in merged:
                    merged[key] = value
                    continue
                existing = merged[key]
                if (
                    isinstance(existing, dict)
                    and isinstance(value, dict)
                    and all(k.startswith("$") for k in [*existing, *value])
                    and not existing.keys() & value.keys()
                ):
                    merged[key] = {**existing, **value}
                    continue
                return {"$and": clauses}
        return merged

    @staticmethod
    def _operand(comparison: Comparison) -> Any:
        value = comparison.value
        match comparison.operator:
            case Operator.EQ:
                if value is None:
                    return {"$exists": True, "$in": [None]}
                return value
            case Operator.NE:
                return {"$exists": True, "$nin": [value, None]}
            case Operator.IN:
                return {"$in": [item for item in value if item is not None]}
            case Operator.NIN:
                return {"$exists": True, "$nin": [*value, None]}
            case Operator.SIZE:
                return {"$size": value}
            case Operator.EXISTS:
                return {"$exists": True, "$ne": None} if value else {"$in": [None]}
            case Operator.GT | Operator.GTE | Operator.LT | Operator.LTE:
                return {comparison.operator.token: value}
        raise UnsupportedConditionError(
            f"MongoQueryAdapter cannot translate operator {comparison.operator.value!r}."
        )
