"""Orders: the model, its SQL repository and the service on top."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from itertools import groupby
from typing import Iterable, Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from storefront.ksuid import new_id

metadata = sa.MetaData()

orders_table = sa.Table(
    "orders",
    metadata,
    sa.Column("id", sa.String(27), primary_key=True),
    sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    sa.Column("account_id", sa.String(27), nullable=False),
    sa.Column("total_price", sa.Float, nullable=False),
)

order_products_table = sa.Table(
    "order_products",
    metadata,
    sa.Column(
        "order_id",
        sa.String(27),
        sa.ForeignKey("orders.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    sa.Column("product_id", sa.String(27), primary_key=True),
    sa.Column("quantity", sa.Integer, nullable=False),
)


@dataclass
class OrderedProduct:
    id: str
    name: str = ""
    description: str = ""
    price: float = 0.0
    quantity: int = 0


@dataclass
class Order:
    id: str
    created_at: datetime
    total_price: float
    account_id: str
    products: list[OrderedProduct] = field(default_factory=list)


def _engine_url(url: str) -> str:
    scheme = "postgres://"
    if url.startswith(scheme):
        return "postgresql://" + url[len(scheme):]
    return url


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _order_from_rows(rows: Sequence[sa.Row]) -> Order:
    first = rows[0]
    return Order(
        id=first.id,
        created_at=_as_utc(first.created_at),
        total_price=float(first.total_price),
        account_id=first.account_id,
        products=[OrderedProduct(id=row.product_id, quantity=row.quantity) for row in rows],
    )


class SqlOrderRepository:
    """Stores orders and their product lines in a SQL database."""

    def __init__(self, url: str) -> None:
        self.engine = sa.create_engine(_engine_url(url))
        try:
            with self.engine.connect() as conn:
                conn.execute(sa.text("SELECT 1"))
        except Exception:
            self.engine.dispose()
            raise

    def close(self) -> None:
        self.engine.dispose()

    def __enter__(self) -> SqlOrderRepository:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def put_order(self, order: Order) -> None:
        """Insert the order and its lines in one transaction."""
        with self.engine.begin() as conn:
            conn.execute(
                orders_table.insert().values(
                    id=order.id,
                    created_at=order.created_at,
                    account_id=order.account_id,
                    total_price=order.total_price,
                )
            )
            lines = [
                {"order_id": order.id, "product_id": p.id, "quantity": p.quantity}
                for p in order.products
            ]
            if lines:
                conn.execute(order_products_table.insert(), lines)

    def get_orders_for_account(self, account_id: str) -> list[Order]:
        orders, lines = orders_table, order_products_table
        price = orders.c.total_price
        if self.engine.dialect.name == "postgresql":
            price = sa.cast(sa.cast(sa.cast(price, postgresql.MONEY), sa.Numeric), sa.Float)
        stmt = (
            sa.select(
                orders.c.id,
                orders.c.created_at,
                orders.c.account_id,
                price.label("total_price"),
                lines.c.product_id,
                lines.c.quantity,
            )
            .select_from(orders.join(lines, orders.c.id == lines.c.order_id))
            .where(orders.c.account_id == account_id)
            .order_by(orders.c.id)
        )
        with self.engine.connect() as conn:
            rows = conn.execute(stmt).all()
        return [_order_from_rows(list(group)) for _, group in groupby(rows, key=lambda r: r.id)]


class OrderService:
    """Places orders and lists an account's orders through a repository."""

    def __init__(self, repository) -> None:
        self.repository = repository

    def post_order(self, account_id: str, products: Iterable[OrderedProduct]) -> Order:
        products = list(products)
        order = Order(
            id=new_id(),
            created_at=datetime.now(timezone.utc),
            total_price=sum((p.price * p.quantity for p in products), 0.0),
            account_id=account_id,
            products=products,
        )
        self.repository.put_order(order)
        return order

    def get_orders_for_account(self, account_id: str) -> list[Order]:
        return self.repository.get_orders_for_account(account_id)