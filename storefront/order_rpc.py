"""The order service exposed over gRPC, and a client for it."""

from __future__ import annotations

import base64
import logging
from contextlib import ExitStack
from datetime import datetime, timezone
from typing import Iterable

import grpc

from storefront.account_rpc import AccountClient
from storefront.catalog_rpc import CatalogClient
from storefront.orders import Order, OrderedProduct
from storefront.rpc import RpcClient, make_server
from storefront.timecodec import marshal_time, unmarshal_time

logger = logging.getLogger(__name__)

SERVICE_NAME = "order.OrderService"

_ZERO_TIME = datetime(1, 1, 1, tzinfo=timezone.utc)


def _encode_time(value: datetime) -> str:
    try:
        return base64.b64encode(marshal_time(value)).decode("ascii")
    except ValueError:
        return ""


def _decode_time(text: str | None) -> datetime:
    """Decode a timestamp field; anything unreadable becomes the zero time."""
    try:
        return unmarshal_time(base64.b64decode(text or "", validate=True))
    except ValueError:
        return _ZERO_TIME


def _product_message(product: OrderedProduct) -> dict:
    return {
        "id": product.id,
        "name": product.name,
        "description": product.description,
        "price": product.price,
        "quantity": product.quantity,
    }


def _order_message(order: Order, products: Iterable[OrderedProduct]) -> dict:
    return {
        "id": order.id,
        "account_id": order.account_id,
        "total_price": order.total_price,
        "created_at": _encode_time(order.created_at),
        "products": [_product_message(p) for p in products],
    }


def _order_from_message(message: dict | None, products: list[OrderedProduct]) -> Order:
    message = message or {}
    return Order(
        id=message.get("id", ""),
        created_at=_decode_time(message.get("created_at")),
        total_price=float(message.get("total_price", 0.0)),
        account_id=message.get("account_id", ""),
        products=products,
    )


def _ordered_product_from_message(message: dict) -> OrderedProduct:
    return OrderedProduct(
        id=message.get("id", ""),
        name=message.get("name", ""),
        description=message.get("description", ""),
        price=float(message.get("price", 0.0)),
        quantity=int(message.get("quantity", 0)),
    )


class OrderServicer:
    """Translates order requests into calls on an order service.

    Account and catalog clients are used to check the buyer and to look
    up the products being ordered.
    """

    def __init__(self, service, account_client, catalog_client) -> None:
        self.service = service
        self.account_client = account_client
        self.catalog_client = catalog_client

    def post_order(self, request: dict) -> dict:
        account_id = request.get("account_id", "")
        requested = request.get("products") or []

        try:
            self.account_client.get_account(account_id)
        except Exception as exc:
            logger.error("Error getting account: %s", exc)
            raise RuntimeError("account not found") from exc

        product_ids = [item.get("product_id", "") for item in requested]
        try:
            found = self.catalog_client.get_products(0, 0, product_ids, "")
        except Exception as exc:
            logger.error("Error getting products: %s", exc)
            raise RuntimeError("products not found") from exc

        quantities: dict[str, int] = {}
        for item in requested:
            quantities.setdefault(item.get("product_id", ""), int(item.get("quantity", 0)))

        products = [
            OrderedProduct(
                id=p.id,
                name=p.name,
                description=p.description,
                price=p.price,
                quantity=quantities.get(p.id, 0),
            )
            for p in found
            if quantities.get(p.id, 0) != 0
        ]

        try:
            order = self.service.post_order(account_id, products)
        except Exception as exc:
            logger.error("Error posting order: %s", exc)
            raise RuntimeError("could not post order") from exc

        return {"order": _order_message(order, order.products)}

    def get_orders_for_account(self, request: dict) -> dict:
        account_id = request.get("account_id", "")
        try:
            orders = self.service.get_orders_for_account(account_id)
        except Exception as exc:
            logger.error("%s", exc)
            raise

        product_ids = list(dict.fromkeys(p.id for o in orders for p in o.products))
        try:
            found = self.catalog_client.get_products(0, 0, product_ids, "")
        except Exception as exc:
            logger.error("Error getting account products: %s", exc)
            raise

        catalog: dict = {}
        for product in found:
            catalog.setdefault(product.id, product)

        messages = []
        for order in orders:
            lines = []
            for line in order.products:
                match = catalog.get(line.id)
                lines.append(
                    OrderedProduct(
                        id=line.id,
                        name=match.name if match else line.name,
                        description=match.description if match else line.description,
                        price=match.price if match else line.price,
                        quantity=line.quantity,
                    )
                )
            messages.append(_order_message(order, lines))
        return {"orders": messages}

    def methods(self) -> dict:
        return {
            "PostOrder": self.post_order,
            "GetOrdersForAccount": self.get_orders_for_account,
        }


def create_order_server(service, account_client, catalog_client, port: int) -> tuple[grpc.Server, int]:
    """Build an unstarted order server; returns it with the bound port."""
    servicer = OrderServicer(service, account_client, catalog_client)
    return make_server(SERVICE_NAME, servicer.methods(), port)


def listen_grpc(service, account_url: str, catalog_url: str, port: int) -> None:
    """Connect to the account and catalog services, then serve orders on ``port``."""
    with ExitStack() as stack:
        account_client = stack.enter_context(AccountClient(account_url))
        catalog_client = stack.enter_context(CatalogClient(catalog_url))
        server, _ = create_order_server(service, account_client, catalog_client, port)
        server.start()
        server.wait_for_termination()


class OrderClient:
    """Client for a remote order service."""

    def __init__(self, url: str) -> None:
        self._rpc = RpcClient(url, SERVICE_NAME)

    def close(self) -> None:
        self._rpc.close()

    def __enter__(self) -> OrderClient:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def post_order(
        self,
        account_id: str,
        products: Iterable[OrderedProduct],
        timeout: float | None = None,
    ) -> Order:
        """Place an order; the returned order carries the products passed in."""
        products = list(products)
        request = {
            "account_id": account_id,
            "products": [{"product_id": p.id, "quantity": p.quantity} for p in products],
        }
        response = self._rpc.call("PostOrder", request, timeout)
        return _order_from_message(response.get("order"), products)

    def get_orders_for_account(self, account_id: str, timeout: float | None = None) -> list[Order]:
        try:
            response = self._rpc.call(
                "GetOrdersForAccount", {"account_id": account_id}, timeout
            )
        except grpc.RpcError as exc:
            logger.error("%s", exc)
            raise
        return [
            _order_from_message(
                message,
                [_ordered_product_from_message(p) for p in message.get("products", [])],
            )
            for message in response.get("orders", [])
        ]