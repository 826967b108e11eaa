#!/usr/bin/env python3
"""Example: Listing permitted records with accessible_filter

Builds one filter from the same rules used for point-wise checks, for
an in-process list, a SQLite table through SQLAlchemy, and a MongoDB
query document.

Usage:
    python examples/02_accessible_filter.py

Requirements:
    pip install abilitykit
"""
from __future__ import annotations

import json

from sqlalchemy import String, create_engine, select
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column

import abilitykit as ak
from abilitykit.adapters import InMemoryAdapter, MongoQueryAdapter, SQLAlchemyAdapter


class Base(DeclarativeBase):
    pass


class Order(Base):
    __tablename__ = "orders"

    id: Mapped[int] = mapped_column(primary_key=True)
    status: Mapped[str | None] = mapped_column(String(20))
    total: Mapped[int]


class Article:
    __collection__ = "articles"


def main() -> None:
    ability = ak.Ability()
    ability.grant("read", ak.ALL)
    ability.deny("read", Order, {"status": "secret"})
    ability.grant("read", Order, {"total": {"$gt": 1000}})
    ability.deny("read", Article, {"draft": True})

    # Step 1: SQLAlchemy
    engine = create_engine("sqlite://")
    Base.metadata.create_all(engine)
    with Session(engine) as session:
        session.add_all(
            [
                Order(status="open", total=10),
                Order(status="secret", total=50),
                Order(status="secret", total=5000),
                Order(status=None, total=20),
            ]
        )
        session.flush()
        criteria = ability.accessible_filter("read", Order, adapter=SQLAlchemyAdapter())
        print(f"SQL criteria: {criteria}")
        for order in session.scalars(select(Order).where(criteria)):
            print(f"  visible order #{order.id}: status={order.status} total={order.total}")

    # Step 2: MongoDB query document (default adapter lookup)
    query = ability.accessible_filter("read", Article)
    print(f"\nMongo query for articles: {json.dumps(query)}")

    # Step 3: Plain Python records
    in_memory = ability.accessible_filter("read", dict, adapter=InMemoryAdapter())
    print(f"\nIn-memory filter: {in_memory!r}")

    # Callback rules are point-wise only
    ability.deny("read", Order, callback=lambda action, cls, order: order is not None and order.total < 0)
    try:
        ability.accessible_filter("read", Order, adapter=MongoQueryAdapter())
    except ak.UnsupportedConditionError as exc:
        print(f"\nCannot filter: {exc}")


if __name__ == "__main__":
    main()
