"""Shared fixtures for abilitykit tests."""
from __future__ import annotations

import pytest

from abilitykit import Ability, AliasRegistry


@pytest.fixture()
def aliases() -> AliasRegistry:
    return AliasRegistry.with_defaults().freeze()


@pytest.fixture()
def ability(aliases: AliasRegistry) -> Ability:
    return Ability(aliases)
