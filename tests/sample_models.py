"""Plain subject classes shared by the abilitykit test modules."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class Order:
    status: str = "open"
    total: int = 0
    owner_id: int | None = None
    tags: list[str] = field(default_factory=list)
    customer: Any = None


@dataclass
class SpecialOrder(Order):
    """Subclass used to check that rules on a base class do not cover it."""


@dataclass
class Article:
    title: str = ""
    owner_id: int | None = None
    published: bool = False


@dataclass
class Customer:
    name: str = ""
    country: str = ""
    vip: bool = False
