from datetime import datetime, timezone

import pytest
import sqlalchemy.exc

from storefront.ksuid import parse_id
from storefront.orders import (
    Order,
    OrderedProduct,
    OrderService,
    SqlOrderRepository,
    metadata,
)

CREATED = datetime(2024, 1, 2, 3, 4, 5, 678900, tzinfo=timezone.utc)


class FakeRepository:
    def __init__(self):
        self.orders = []

    def put_order(self, order):
        self.orders.append(order)

    def get_orders_for_account(self, account_id):
        return [o for o in self.orders if o.account_id == account_id]


class FailingRepository:
    def put_order(self, order):
        raise RuntimeError("database down")


@pytest.fixture
def repository(tmp_path):
    repo = SqlOrderRepository(f"sqlite:///{tmp_path / 'orders.db'}")
    metadata.create_all(repo.engine)
    yield repo
    repo.close()


def test_post_order_computes_total_and_stores():
    repo = FakeRepository()
    products = [
        OrderedProduct(id="p1", price=2.5, quantity=2),
        OrderedProduct(id="p2", price=1.0, quantity=3),
    ]
    order = OrderService(repo).post_order("acc", products)
    assert order.total_price == 8.0
    assert order.account_id == "acc"
    assert order.products == products
    assert repo.orders == [order]
    parse_id(order.id)


def test_post_order_timestamp_is_utc_now():
    order = OrderService(FakeRepository()).post_order("acc", [])
    assert order.created_at.tzinfo == timezone.utc
    assert abs((datetime.now(timezone.utc) - order.created_at).total_seconds()) < 5
    assert order.total_price == 0.0


def test_post_order_propagates_repository_error():
    with pytest.raises(RuntimeError):
        OrderService(FailingRepository()).post_order("acc", [OrderedProduct(id="p1")])


def test_get_orders_passes_through():
    repo = FakeRepository()
    service = OrderService(repo)
    mine = service.post_order("acc", [OrderedProduct(id="p1", quantity=1)])
    service.post_order("other", [OrderedProduct(id="p1", quantity=1)])
    assert service.get_orders_for_account("acc") == [mine]


def test_sql_round_trip(repository):
    order = Order(
        id="o1",
        created_at=CREATED,
        total_price=12.5,
        account_id="acc",
        products=[
            OrderedProduct(id="p1", name="Lamp", price=5.0, quantity=2),
            OrderedProduct(id="p2", price=2.5, quantity=1),
        ],
    )
    repository.put_order(order)
    [loaded] = repository.get_orders_for_account("acc")
    assert (loaded.id, loaded.account_id, loaded.total_price) == ("o1", "acc", 12.5)
    assert loaded.created_at == CREATED
    assert sorted((p.id, p.quantity) for p in loaded.products) == [("p1", 2), ("p2", 1)]
    assert all(p.name == "" and p.price == 0.0 for p in loaded.products)


def test_sql_groups_orders_sorted_by_id(repository):
    for order_id, account_id in [("o2", "acc"), ("o1", "acc"), ("o3", "other")]:
        repository.put_order(
            Order(
                id=order_id,
                created_at=CREATED,
                total_price=1.0,
                account_id=account_id,
                products=[OrderedProduct(id="p1", quantity=1)],
            )
        )
    orders = repository.get_orders_for_account("acc")
    assert [o.id for o in orders] == ["o1", "o2"]
    assert all(len(o.products) == 1 for o in orders)


def test_sql_account_without_orders_is_empty(repository):
    assert repository.get_orders_for_account("nobody") == []


def test_sql_order_without_products_is_not_listed(repository):
    repository.put_order(Order(id="o1", created_at=CREATED, total_price=0.0, account_id="acc"))
    assert repository.get_orders_for_account("acc") == []


def test_sql_failed_line_rolls_back_order(repository):
    order = Order(
        id="o1",
        created_at=CREATED,
        total_price=2.0,
        account_id="acc",
        products=[OrderedProduct(id="p1", quantity=1), OrderedProduct(id="p1", quantity=1)],
    )
    with pytest.raises(sqlalchemy.exc.IntegrityError):
        repository.put_order(order)
    good = Order(
        id="o1",
        created_at=CREATED,
        total_price=1.0,
        account_id="acc",
        products=[OrderedProduct(id="p1", quantity=1)],
    )
    repository.put_order(good)
    assert [o.total_price for o in repository.get_orders_for_account("acc")] == [1.0]


def test_service_over_sql(repository):
    service = OrderService(repository)
    placed = service.post_order("acc", [OrderedProduct(id="p1", price=4.0, quantity=1)])
    [loaded] = service.get_orders_for_account("acc")
    assert loaded.id == placed.id
    assert loaded.total_price == placed.total_price
    assert loaded.created_at == placed.created_at


def test_unreachable_database_raises(tmp_path):
    with pytest.raises(sqlalchemy.exc.OperationalError):
        SqlOrderRepository(f"sqlite:///{tmp_path / 'missing' / 'db.sqlite'}")