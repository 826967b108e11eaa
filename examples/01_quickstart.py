#!/usr/bin/env python3
"""Example: Quickstart for abilitykit

Minimal working example: declare rules for one user, then ask point-wise
questions about records and classes.

Usage:
    python examples/01_quickstart.py

Requirements:
    pip install abilitykit
"""
from __future__ import annotations

from dataclasses import dataclass

import abilitykit as ak


@dataclass
class Order:
    status: str
    owner_id: int


def main() -> None:
    print(f"abilitykit version: {ak.__version__}")

    # Step 1: Configure aliases once, at start-up
    aliases = ak.AliasRegistry.with_defaults()
    aliases.register("modify", "update", "destroy")
    aliases.freeze()

    # Step 2: Declare rules for the current user; later rules win
    current_user_id = 7
    ability = ak.Ability(aliases)
    ability.grant("read", ak.ALL, reason="Everyone reads")
    ability.deny("read", Order, {"status": "secret"}, reason="Secret orders are hidden")
    ability.grant("modify", Order, {"owner_id": current_user_id})
    print(f"Declared {ability.rule_count} rules")

    # Step 3: Ask questions
    orders = [
        Order(status="open", owner_id=7),
        Order(status="secret", owner_id=7),
        Order(status="open", owner_id=8),
    ]
    print("\nPoint-wise checks:")
    for order in orders:
        for action in ("show", "destroy"):
            decision = ability.explain(action, order)
            icon = "ALLOW" if decision else "DENY"
            print(f"  [{icon}] {action} {order} -> {decision.reason}")

    # Type-only checks never satisfy a rule with conditions
    print(f"\nCan update some Order? {ability.can('update', Order)}")

    # Step 4: Stop a request handler on denial
    try:
        ak.authorize(ability, "destroy", orders[2])
    except ak.AccessDenied as exc:
        print(f"authorize() refused: {exc} (action={exc.action})")


if __name__ == "__main__":
    main()
