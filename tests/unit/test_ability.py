"""Tests for Ability: declaration order, point-wise checks and introspection."""
from __future__ import annotations

import pytest

from abilitykit import ALL, Ability, AliasRegistry, Decision, exists
from abilitykit.engine import resolve_subject
from abilitykit.errors import AbilityConfigError

from sample_models import Article, Order, SpecialOrder


# ---------------------------------------------------------------------------
# Subject resolution
# ---------------------------------------------------------------------------


class TestResolveSubject:
    def test_class_is_type_only(self) -> None:
        assert resolve_subject(Order) == (Order, None)

    def test_name_is_type_only(self) -> None:
        assert resolve_subject("dashboard") == ("dashboard", None)

    def test_instance_resolves_to_its_class(self) -> None:
        order = Order()
        assert resolve_subject(order) == (Order, order)


# ---------------------------------------------------------------------------
# Default deny and ordering
# ---------------------------------------------------------------------------


class TestDefaultDeny:
    def test_empty_ability_denies_everything(self, ability: Ability) -> None:
        assert ability.can("read", Order) is False
        assert ability.cannot("read", Order()) is True

    def test_unrelated_rules_do_not_grant(self, ability: Ability) -> None:
        ability.grant("read", Article)
        ability.grant("update", Order)
        assert ability.can("read", Order) is False
        assert ability.can("destroy", Order()) is False


class TestOrderSensitivity:
    def test_later_deny_overrides_earlier_grant(self, ability: Ability) -> None:
        ability.grant("read", Order)
        ability.deny("read", Order)
        assert ability.can("read", Order) is False

    def test_later_grant_overrides_earlier_deny(self, ability: Ability) -> None:
        ability.deny("read", Order)
        ability.grant("read", Order)
        assert ability.can("read", Order) is True

    def test_conditional_deny_only_hides_matching_instances(self, ability: Ability) -> None:
        ability.grant("read", ALL)
        ability.deny("read", Order, {"status": "secret"})
        assert ability.can("read", Order(status="open")) is True
        assert ability.can("read", Order(status="secret")) is False
        assert ability.can("read", Article()) is True

    def test_non_matching_later_rule_falls_through(self, ability: Ability) -> None:
        ability.grant("read", Order)
        ability.deny("read", Order, {"status": "secret"})
        ability.grant("read", Order, {"total": {"$gt": 100}})
        assert ability.can("read", Order(status="secret", total=500)) is True
        assert ability.can("read", Order(status="secret", total=5)) is False
        assert ability.can("read", Order(status="open", total=5)) is True


# ---------------------------------------------------------------------------
# manage / all / aliases
# ---------------------------------------------------------------------------


class TestWildcards:
    @pytest.mark.parametrize("action", ["read", "update", "destroy", "publish", "manage"])
    def test_manage_all_grants_everything(self, ability: Ability, action: str) -> None:
        ability.grant("manage", ALL)
        assert ability.can(action, Order(status="secret")) is True
        assert ability.can(action, Article) is True
        assert ability.can(action, "dashboard") is True

    def test_manage_on_one_subject(self, ability: Ability) -> None:
        ability.grant("manage", Order)
        assert ability.can("archive", Order) is True
        assert ability.can("archive", Article) is False

    def test_subclass_not_covered(self, ability: Ability) -> None:
        ability.grant("read", Order)
        assert ability.can("read", SpecialOrder()) is False

    def test_named_subject(self, ability: Ability) -> None:
        ability.grant("read", "dashboard")
        assert ability.can("show", "dashboard") is True
        assert ability.can("read", "reports") is False


class TestAliases:
    def test_default_read_alias(self, ability: Ability) -> None:
        ability.grant("read", Order)
        assert ability.can("index", Order) is True
        assert ability.can("show", Order) is True
        assert ability.can("update", Order) is False

    def test_modify_alias_is_transitive(self) -> None:
        registry = AliasRegistry.with_defaults()
        registry.register("modify", "update", "destroy")
        ability = Ability(registry.freeze())
        ability.grant("modify", Article)
        assert ability.can("update", Article) is True
        assert ability.can("destroy", Article) is True
        assert ability.can("edit", Article) is True
        assert ability.can("read", Article) is False

    def test_default_registry_when_none_given(self) -> None:
        ability = Ability()
        ability.grant("create", Order)
        assert ability.can("new", Order) is True
        assert ability.aliases.frozen is True


# ---------------------------------------------------------------------------
# Conditions and callbacks
# ---------------------------------------------------------------------------


class TestConditions:
    def test_owner_condition(self, ability: Ability) -> None:
        ability.grant("update", Article, {"owner_id": 7})
        assert ability.can("update", Article(owner_id=7)) is True
        assert ability.can("update", Article(owner_id=8)) is False
        assert ability.can("update", Article(owner_id=None)) is False

    def test_type_only_check_never_satisfies_conditions(self, ability: Ability) -> None:
        ability.grant("update", Article, {"owner_id": 7})
        assert ability.can("update", Article) is False

    def test_type_only_check_on_all_ignores_exists_false(self, ability: Ability) -> None:
        ability.grant("read", ALL, {"archived": exists(False)})
        assert ability.can("read", Order) is False
        assert ability.can("read", "Order") is False
        assert ability.can("read", Order()) is True

    def test_type_only_check_with_unconditional_rule(self, ability: Ability) -> None:
        ability.grant("read", Article, {"published": True})
        ability.grant("read", Article)
        assert ability.can("read", Article) is True

    def test_missing_attribute_is_a_non_match(self, ability: Ability) -> None:
        ability.grant("read", ALL, {"archived": False})
        assert ability.can("read", Order()) is False

    def test_mapping_like_subject_instance(self, ability: Ability) -> None:
        ability.grant("read", dict, {"kind": "public"})
        assert ability.can("read", {"kind": "public"}) is True
        assert ability.can("read", {"kind": "private"}) is False


class TestCallbacks:
    def test_callback_decides(self, ability: Ability) -> None:
        ability.grant("update", Order, callback=lambda action, cls, order: order.total < 100)
        assert ability.can("update", Order(total=50)) is True
        assert ability.can("update", Order(total=500)) is False

    def test_callback_receives_none_for_type_checks(self, ability: Ability) -> None:
        calls: list[object] = []

        def check(action: str, subject_type: object, instance: object) -> bool:
            calls.append(instance)
            return True

        ability.grant("read", Order, callback=check)
        assert ability.can("read", Order) is True
        assert calls == [None]

    def test_callback_deny(self, ability: Ability) -> None:
        ability.grant("manage", ALL)
        ability.deny("destroy", Order, callback=lambda a, s, i: i is not None and i.status == "paid")
        assert ability.can("destroy", Order(status="open")) is True
        assert ability.can("destroy", Order(status="paid")) is False

    def test_conditions_and_callback_rejected(self, ability: Ability) -> None:
        with pytest.raises(AbilityConfigError):
            ability.grant("read", Order, {"status": "open"}, lambda a, s, i: True)
        assert ability.rule_count == 0


class TestAttributes:
    def test_attribute_restricted_grant(self, ability: Ability) -> None:
        ability.grant("update", Order, attributes=["status"])
        assert ability.can("update", Order, attribute="status") is True
        assert ability.can("update", Order, attribute="total") is False
        assert ability.can("update", Order) is True

    def test_attribute_restricted_deny(self, ability: Ability) -> None:
        ability.grant("read", Order)
        ability.deny("read", Order, attributes=["total"])
        assert ability.can("read", Order, attribute="status") is True
        assert ability.can("read", Order, attribute="total") is False


# ---------------------------------------------------------------------------
# explain / introspection / merge
# ---------------------------------------------------------------------------


class TestExplain:
    def test_decision_names_deciding_rule(self, ability: Ability) -> None:
        ability.grant("read", ALL)
        deny = ability.deny("read", Order, {"status": "secret"}, reason="Secret orders are hidden")
        decision = ability.explain("read", Order(status="secret"))
        assert isinstance(decision, Decision)
        assert decision.allowed is False
        assert not decision
        assert decision.rule is deny
        assert decision.reason == "Secret orders are hidden"
        assert decision.subject_type is Order

    def test_reason_defaults_to_description(self, ability: Ability) -> None:
        ability.grant("read", Order)
        decision = ability.explain("show", Order)
        assert decision
        assert decision.reason == "#0 grant read on Order"

    def test_default_deny_decision(self, ability: Ability) -> None:
        decision = ability.explain("read", Order)
        assert decision.rule is None
        assert "No rule grants 'read' on Order" in decision.reason


class TestIntrospection:
    def test_rules_in_declaration_order(self, ability: Ability) -> None:
        ability.grant("read", Order)
        ability.deny("update", Order)
        assert [r.grant for r in ability.rules] == [True, False]
        assert [r.index for r in ability.rules] == [0, 1]
        assert ability.rule_count == 2
        assert repr(ability) == "Ability(rules=2)"

    def test_relevant_rules(self, ability: Ability) -> None:
        ability.grant("read", Order)
        ability.grant("read", Article)
        ability.deny("manage", ALL)
        relevant = ability.relevant_rules("show", Order(status="open"))
        assert [r.index for r in relevant] == [0, 2]

    def test_attributes_for(self, ability: Ability) -> None:
        ability.grant("create", Article, {"owner_id": 7, "published": False})
        ability.grant("create", Article, {"published": True, "title": {"$ne": ""}})
        ability.deny("create", Article, {"owner_id": 9})
        assert ability.attributes_for("new", Article) == {"owner_id": 7, "published": True}

    def test_summary(self, ability: Ability) -> None:
        ability.grant(["read", "update"], Order)
        ability.deny("update", "dashboard")
        summary = ability.summary()
        assert summary["rule_count"] == 2
        assert summary["grants"] == 1
        assert summary["denials"] == 1
        assert summary["actions_covered"] == ["read", "update"]
        assert summary["rules_per_action"] == {"read": 1, "update": 2}
        assert summary["subjects"] == ["Order", "dashboard"]

    def test_merge_appends_in_order(self, aliases: AliasRegistry) -> None:
        base = Ability(aliases)
        base.grant("read", Order)
        extra = Ability(aliases)
        extra.deny("read", Order, {"status": "secret"})
        assert base.merge(extra) is base
        assert base.rule_count == 2
        assert base.rules[1].index == 1
        assert base.can("read", Order(status="secret")) is False
        assert extra.rules[0].index == 0
