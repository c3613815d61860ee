"""Catalog: products, their search-engine repository and the service."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Iterator
from urllib.parse import quote

import httpx

from storefront.accounts import clamp_page
from storefront.errors import NotFoundError
from storefront.ksuid import new_id

logger = logging.getLogger(__name__)

INDEX = "catalog"
DOC_TYPE = "product"


@dataclass
class Product:
    id: str
    name: str
    description: str
    price: float


def _document(product: Product) -> dict[str, Any]:
    return {"name": product.name, "description": product.description, "price": product.price}


def _text(source: dict, key: str, product_id: str) -> str:
    value = source.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"product {product_id!r}: field {key!r} is not text")
    return value


def _number(source: dict, key: str, product_id: str) -> float:
    value = source.get(key)
    if value is None:
        return 0.0
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"product {product_id!r}: field {key!r} is not a number")
    return float(value)


def _product_from_source(product_id: str, source: Any) -> Product:
    if source is None:
        source = {}
    if not isinstance(source, dict):
        raise ValueError(f"product {product_id!r}: document is not an object")
    return Product(
        id=product_id,
        name=_text(source, "name", product_id),
        description=_text(source, "description", product_id),
        price=_number(source, "price", product_id),
    )


def _products(entries: Iterable[dict]) -> Iterator[Product]:
    for entry in entries:
        if entry.get("found") is False or "_source" not in entry:
            continue
        try:
            yield _product_from_source(entry.get("_id", ""), entry["_source"])
        except ValueError as exc:
            logger.warning("skipping product: %s", exc)


class ElasticProductRepository:
    """Stores products as documents in an Elasticsearch index."""

    def __init__(self, url: str, client: httpx.Client | None = None) -> None:
        self.url = url.rstrip("/")
        self._owns_client = client is None
        self.client = client if client is not None else httpx.Client(timeout=10.0)

    def close(self) -> None:
        if self._owns_client:
            self.client.close()

    def __enter__(self) -> ElasticProductRepository:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def _document_url(self, product_id: str) -> str:
        return f"{self.url}/{INDEX}/{DOC_TYPE}/{quote(product_id, safe='')}"

    def _post(self, path: str, body: dict) -> dict:
        try:
            response = self.client.post(f"{self.url}/{path}", json=body)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.error("%s", exc)
            raise
        return response.json()

    def put_product(self, product: Product) -> None:
        response = self.client.put(self._document_url(product.id), json=_document(product))
        response.raise_for_status()

    def get_product_by_id(self, product_id: str) -> Product:
        response = self.client.get(self._document_url(product_id))
        if response.status_code == 404:
            raise NotFoundError()
        response.raise_for_status()
        body = response.json()
        if not body.get("found"):
            raise NotFoundError()
        return _product_from_source(product_id, body.get("_source"))

    def _search(self, query: dict, skip: int, take: int) -> list[Product]:
        body = self._post(
            f"{INDEX}/{DOC_TYPE}/_search", {"query": query, "from": skip, "size": take}
        )
        return list(_products(body.get("hits", {}).get("hits", [])))

    def list_products(self, skip: int, take: int) -> list[Product]:
        return self._search({"match_all": {}}, skip, take)

    def list_products_with_ids(self, ids: Iterable[str]) -> list[Product]:
        docs = [{"_index": INDEX, "_type": DOC_TYPE, "_id": product_id} for product_id in ids]
        body = self._post("_mget", {"docs": docs})
        return list(_products(body.get("docs", [])))

    def search_products(self, query: str, skip: int, take: int) -> list[Product]:
        return self._search(
            {"multi_match": {"query": query, "fields": ["name", "description"]}}, skip, take
        )


class CatalogService:
    """Creates, fetches and searches products through a repository."""

    def __init__(self, repository) -> None:
        self.repository = repository

    def post_product(self, name: str, description: str, price: float) -> Product:
        product = Product(id=new_id(), name=name, description=description, price=price)
        self.repository.put_product(product)
        return product

    def get_product(self, product_id: str) -> Product:
        return self.repository.get_product_by_id(product_id)

    def get_products(self, skip: int, take: int) -> list[Product]:
        skip, take = clamp_page(skip, take)
        return self.repository.list_products(skip, take)

    def get_products_by_ids(self, ids: Iterable[str]) -> list[Product]:
        return self.repository.list_products_with_ids(list(ids))

    def search_products(self, query: str, skip: int, take: int) -> list[Product]:
        skip, take = clamp_page(skip, take)
        return self.repository.search_products(query, skip, take)