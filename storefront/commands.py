"""Entry points that start the account, catalog and order services."""

from __future__ import annotations

import argparse
import logging
import os
import time
from dataclasses import dataclass
from typing import Callable, Mapping, Sequence, TypeVar

from storefront import account_rpc, catalog_rpc, order_rpc
from storefront.accounts import AccountService, SqlAccountRepository
from storefront.catalog import CatalogService, ElasticProductRepository
from storefront.orders import OrderService, SqlOrderRepository

logger = logging.getLogger(__name__)

PORT = 8080
RETRY_DELAY = 2.0

T = TypeVar("T")


@dataclass(frozen=True)
class ServiceConfig:
    """Settings read from the environment."""

    database_url: str = ""
    account_url: str = ""
    catalog_url: str = ""

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> ServiceConfig:
        env = os.environ if environ is None else environ
        return cls(
            database_url=env.get("DATABASE_URL", ""),
            account_url=env.get("ACCOUNT_SERVICE_URL", ""),
            catalog_url=env.get("CATALOG_SERVICE_URL", ""),
        )


def retry_forever(attempt: Callable[[], T], delay: float = RETRY_DELAY) -> T:
    """Call ``attempt`` until it returns, logging each failure and pausing ``delay`` seconds."""
    while True:
        try:
            return attempt()
        except Exception as exc:
            logger.error("%s", exc)
            time.sleep(delay)


def _parse(prog: str, description: str, argv: Sequence[str] | None) -> None:
    argparse.ArgumentParser(prog=prog, description=description).parse_args(argv)


def _run(open_repository: Callable[[], object], serve: Callable[[object], None]) -> int:
    logging.basicConfig(level=logging.INFO)
    repository = retry_forever(open_repository, RETRY_DELAY)
    try:
        logger.info("Listening on port %d...", PORT)
        serve(repository)
    except Exception as exc:
        logger.error("%s", exc)
        return 1
    finally:
        repository.close()
    return 0


def account_main(argv: Sequence[str] | None = None) -> int:
    """Run the account service; reads DATABASE_URL."""
    _parse("account", "Serve the account service.", argv)
    config = ServiceConfig.from_env()
    return _run(
        lambda: SqlAccountRepository(config.database_url),
        lambda repo: account_rpc.listen_grpc(AccountService(repo), PORT),
    )


def catalog_main(argv: Sequence[str] | None = None) -> int:
    """Run the catalog service; reads DATABASE_URL (the search engine URL)."""
    _parse("catalog", "Serve the catalog service.", argv)
    config = ServiceConfig.from_env()
    return _run(
        lambda: ElasticProductRepository(config.database_url),
        lambda repo: catalog_rpc.listen_grpc(CatalogService(repo), PORT),
    )


def order_main(argv: Sequence[str] | None = None) -> int:
    """Run the order service; reads DATABASE_URL and the account and catalog URLs."""
    _parse("order", "Serve the order service.", argv)
    config = ServiceConfig.from_env()
    return _run(
        lambda: SqlOrderRepository(config.database_url),
        lambda repo: order_rpc.listen_grpc(
            OrderService(repo), config.account_url, config.catalog_url, PORT
        ),
    )