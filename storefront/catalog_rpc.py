"""The catalog service exposed over gRPC, and a client for it."""

from __future__ import annotations

from typing import Iterable

import grpc

from storefront.catalog import Product
from storefront.rpc import RpcClient, make_server

SERVICE_NAME = "catalog.CatalogService"


def _product_message(product: Product) -> dict:
    return {
        "id": product.id,
        "name": product.name,
        "description": product.description,
        "price": product.price,
    }


def _product_from_message(message: dict | None) -> Product:
    message = message or {}
    return Product(
        id=message.get("id", ""),
        name=message.get("name", ""),
        description=message.get("description", ""),
        price=float(message.get("price", 0.0)),
    )


class CatalogServicer:
    """Translates catalog requests into calls on a catalog service."""

    def __init__(self, service) -> None:
        self.service = service

    def post_product(self, request: dict) -> dict:
        product = self.service.post_product(
            request.get("name", ""),
            request.get("description", ""),
            float(request.get("price", 0.0)),
        )
        return {"product": _product_message(product)}

    def get_product(self, request: dict) -> dict:
        product = self.service.get_product(request.get("id", ""))
        return {"product": _product_message(product)}

    def get_products(self, request: dict) -> dict:
        """Search by query if given, else fetch by ids if given, else list a page."""
        query = request.get("query", "")
        ids = request.get("ids") or []
        skip, take = int(request.get("skip", 0)), int(request.get("take", 0))
        if query:
            products = self.service.search_products(query, skip, take)
        elif ids:
            products = self.service.get_products_by_ids(ids)
        else:
            products = self.service.get_products(skip, take)
        return {"products": [_product_message(p) for p in products]}

    def methods(self) -> dict:
        return {
            "PostProduct": self.post_product,
            "GetProduct": self.get_product,
            "GetProducts": self.get_products,
        }


def create_catalog_server(service, port: int) -> tuple[grpc.Server, int]:
    """Build an unstarted catalog server; returns it with the bound port."""
    return make_server(SERVICE_NAME, CatalogServicer(service).methods(), port)


def listen_grpc(service, port: int) -> None:
    """Serve the catalog service on ``port`` until the server stops."""
    server, _ = create_catalog_server(service, port)
    server.start()
    server.wait_for_termination()


class CatalogClient:
    """Client for a remote catalog service."""

    def __init__(self, url: str) -> None:
        self._rpc = RpcClient(url, SERVICE_NAME)

    def close(self) -> None:
        self._rpc.close()

    def __enter__(self) -> CatalogClient:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def post_product(
        self, name: str, description: str, price: float, timeout: float | None = None
    ) -> Product:
        response = self._rpc.call(
            "PostProduct",
            {"name": name, "description": description, "price": price},
            timeout,
        )
        return _product_from_message(response.get("product"))

    def get_product(self, product_id: str, timeout: float | None = None) -> Product:
        response = self._rpc.call("GetProduct", {"id": product_id}, timeout)
        return _product_from_message(response.get("product"))

    def get_products(
        self,
        skip: int,
        take: int,
        ids: Iterable[str] | None = None,
        query: str = "",
        timeout: float | None = None,
    ) -> list[Product]:
        request = {"ids": list(ids or []), "skip": skip, "take": take, "query": query}
        response = self._rpc.call("GetProducts", request, timeout)
        return [_product_from_message(m) for m in response.get("products", [])]