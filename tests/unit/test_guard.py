"""Tests for authorize() and AccessDenied."""
from __future__ import annotations

import pytest

from abilitykit import Ability, authorize
from abilitykit.errors import DEFAULT_DENIED_MESSAGE, AbilityError, AccessDenied

from sample_models import Order


class TestAuthorize:
    def test_returns_subject_when_allowed(self, ability: Ability) -> None:
        ability.grant("read", Order)
        order = Order()
        assert authorize(ability, "read", order) is order

    def test_raises_access_denied(self, ability: Ability) -> None:
        order = Order(status="secret")
        with pytest.raises(AccessDenied) as exc_info:
            authorize(ability, "destroy", order)
        assert exc_info.value.action == "destroy"
        assert exc_info.value.subject is order
        assert str(exc_info.value) == DEFAULT_DENIED_MESSAGE

    def test_custom_message(self, ability: Ability) -> None:
        with pytest.raises(AccessDenied, match="Orders are read-only"):
            authorize(ability, "update", Order, message="Orders are read-only")

    def test_attribute_check(self, ability: Ability) -> None:
        ability.grant("update", Order, attributes=["status"])
        authorize(ability, "update", Order, attribute="status")
        with pytest.raises(AccessDenied):
            authorize(ability, "update", Order, attribute="total")

    def test_access_denied_is_an_ability_error(self) -> None:
        assert issubclass(AccessDenied, AbilityError)
