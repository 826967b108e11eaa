#!/usr/bin/env python3
"""Example: Rules from a YAML file

Loads a rule file once, then builds one Ability per actor with
``{$var: ...}`` placeholders filled in.

Usage:
    python examples/03_yaml_rules.py

Requirements:
    pip install abilitykit
"""
from __future__ import annotations

from dataclasses import dataclass

from abilitykit.loader import AbilityLoader

RULES = """
version: "1.0"
aliases:
  modify: [update, destroy]
rules:
  - effect: grant
    actions: read
    subjects: all
  - effect: deny
    actions: read
    subjects: Article
    conditions:
      published: false
  - effect: grant
    actions: [read, modify]
    subjects: Article
    conditions:
      author_id: {$var: actor.id}
    reason: Authors manage their own articles
"""


@dataclass
class Article:
    title: str
    author_id: int
    published: bool


@dataclass
class User:
    id: int
    name: str


def main() -> None:
    # Step 1: Load once at start-up
    definition = AbilityLoader(subjects={"Article": Article}).load_from_yaml_string(RULES)
    print(f"Loaded {len(definition.rules)} rules; aliases: {definition.aliases.aliases()}")

    draft = Article(title="Draft", author_id=1, published=False)
    live = Article(title="Live", author_id=2, published=True)

    # Step 2: Build per actor
    for user in (User(id=1, name="alice"), User(id=2, name="bob")):
        ability = definition.build({"actor": user})
        print(f"\n{user.name}:")
        for article in (draft, live):
            for action in ("read", "destroy"):
                allowed = ability.can(action, article)
                print(f"  {action:8} {article.title:6} -> {'ALLOW' if allowed else 'DENY'}")


if __name__ == "__main__":
    main()
