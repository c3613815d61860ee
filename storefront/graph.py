"""GraphQL-facing models and resolvers backed by the service clients."""

from __future__ import annotations

import logging
from contextlib import ExitStack, contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterator

from storefront import orders as order_model
from storefront.account_rpc import AccountClient
from storefront.catalog_rpc import CatalogClient
from storefront.errors import InvalidParameterError
from storefront.order_rpc import OrderClient

logger = logging.getLogger(__name__)

TIMEOUT = 3.0
DEFAULT_TAKE = 100


@dataclass
class Account:
    id: str
    name: str


@dataclass
class Product:
    id: str
    name: str
    description: str
    price: float


@dataclass
class OrderedProduct:
    id: str
    name: str
    description: str
    price: float
    quantity: int


@dataclass
class Order:
    id: str
    created_at: datetime
    total_price: float
    products: list[OrderedProduct] = field(default_factory=list)


@dataclass
class AccountInput:
    name: str


@dataclass
class ProductInput:
    name: str
    description: str
    price: float


@dataclass
class OrderProductInput:
    id: str
    quantity: int


@dataclass
class OrderInput:
    account_id: str
    products: list[OrderProductInput] = field(default_factory=list)


@dataclass
class PaginationInput:
    skip: int | None = None
    take: int | None = None

    def bounds(self) -> tuple[int, int]:
        """Return (skip, take), defaulting to the first full page."""
        skip = 0 if self.skip is None else self.skip
        take = DEFAULT_TAKE if self.take is None else self.take
        return skip, take


@contextmanager
def _logged() -> Iterator[None]:
    try:
        yield
    except Exception as exc:
        logger.error("%s", exc)
        raise


class GraphQLServer:
    """Holds the clients of the account, catalog and order services."""

    def __init__(self, account_client, catalog_client, order_client) -> None:
        self.account_client = account_client
        self.catalog_client = catalog_client
        self.order_client = order_client

    @classmethod
    def connect(cls, account_url: str, catalog_url: str, order_url: str) -> GraphQLServer:
        """Open clients for all three services, closing any opened if one fails."""
        with ExitStack() as stack:
            account_client = stack.enter_context(AccountClient(account_url))
            catalog_client = stack.enter_context(CatalogClient(catalog_url))
            order_client = stack.enter_context(OrderClient(order_url))
            stack.pop_all()
        return cls(account_client, catalog_client, order_client)

    def close(self) -> None:
        self.account_client.close()
        self.catalog_client.close()
        self.order_client.close()

    def __enter__(self) -> GraphQLServer:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def mutation(self) -> MutationResolver:
        return MutationResolver(self)

    def query(self) -> QueryResolver:
        return QueryResolver(self)

    def account(self) -> AccountResolver:
        return AccountResolver(self)


class AccountResolver:
    """Resolves the fields of an account that live in other services."""

    def __init__(self, server: GraphQLServer) -> None:
        self.server = server

    def orders(self, obj: Account) -> list[Order]:
        with _logged():
            found = self.server.order_client.get_orders_for_account(obj.id, timeout=TIMEOUT)
        return [
            Order(
                id=o.id,
                created_at=o.created_at,
                total_price=o.total_price,
                products=[
                    OrderedProduct(
                        id=p.id,
                        name=p.name,
                        description=p.description,
                        price=p.price,
                        quantity=int(p.quantity),
                    )
                    for p in o.products
                ],
            )
            for o in found
        ]


class MutationResolver:
    """Creates accounts, products and orders."""

    def __init__(self, server: GraphQLServer) -> None:
        self.server = server

    def create_account(self, data: AccountInput) -> Account:
        with _logged():
            account = self.server.account_client.post_account(data.name, timeout=TIMEOUT)
        return Account(id=account.id, name=account.name)

    def create_product(self, data: ProductInput) -> Product:
        with _logged():
            product = self.server.catalog_client.post_product(
                data.name, data.description, data.price, timeout=TIMEOUT
            )
        return Product(
            id=product.id,
            name=product.name,
            description=product.description,
            price=product.price,
        )

    def create_order(self, data: OrderInput) -> Order:
        """Place an order; every quantity must be positive."""
        products = []
        for item in data.products:
            if item.quantity <= 0:
                raise InvalidParameterError()
            products.append(order_model.OrderedProduct(id=item.id, quantity=item.quantity))
        with _logged():
            order = self.server.order_client.post_order(
                data.account_id, products, timeout=TIMEOUT
            )
        return Order(id=order.id, created_at=order.created_at, total_price=order.total_price)


class QueryResolver:
    """Looks up accounts and products."""

    def __init__(self, server: GraphQLServer) -> None:
        self.server = server

    def accounts(
        self, pagination: PaginationInput | None = None, account_id: str | None = None
    ) -> list[Account]:
        client = self.server.account_client
        if account_id is not None:
            with _logged():
                account = client.get_account(account_id, timeout=TIMEOUT)
            return [Account(id=account.id, name=account.name)]

        skip, take = pagination.bounds() if pagination is not None else (0, 0)
        with _logged():
            found = client.get_accounts(skip, take, timeout=TIMEOUT)
        return [Account(id=a.id, name=a.name) for a in found]

    def products(
        self,
        pagination: PaginationInput | None = None,
        query: str | None = None,
        product_id: str | None = None,
    ) -> list[Product]:
        client = self.server.catalog_client
        if product_id is not None:
            with _logged():
                product = client.get_product(product_id, timeout=TIMEOUT)
            return [
                Product(
                    id=product.id,
                    name=product.name,
                    description=product.description,
                    price=product.price,
                )
            ]

        skip, take = pagination.bounds() if pagination is not None else (0, 0)
        with _logged():
            found = client.get_products(skip, take, None, query or "", timeout=TIMEOUT)
        return [
            Product(id=p.id, name=p.name, description=p.description, price=p.price)
            for p in found
        ]