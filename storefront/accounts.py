"""Accounts: the model, its SQL repository and the service on top."""

from __future__ import annotations

from dataclasses import dataclass

import sqlalchemy as sa

from storefront.errors import NotFoundError
from storefront.ksuid import new_id

MAX_PAGE_SIZE = 100

metadata = sa.MetaData()

accounts_table = sa.Table(
    "accounts",
    metadata,
    sa.Column("id", sa.String(27), primary_key=True),
    sa.Column("name", sa.String, nullable=False),
)


@dataclass
class Account:
    id: str
    name: str


def clamp_page(skip: int, take: int) -> tuple[int, int]:
    """Cap the page size at the maximum; an empty request gets a full page."""
    if take > MAX_PAGE_SIZE or (skip == 0 and take == 0):
        take = MAX_PAGE_SIZE
    return skip, take


def _engine_url(url: str) -> str:
    scheme = "postgres://"
    if url.startswith(scheme):
        return "postgresql://" + url[len(scheme):]
    return url


class SqlAccountRepository:
    """Stores accounts in the ``accounts`` table of a SQL database."""

    def __init__(self, url: str) -> None:
        self.engine = sa.create_engine(_engine_url(url))
        try:
            self.ping()
        except Exception:
            self.engine.dispose()
            raise

    def close(self) -> None:
        self.engine.dispose()

    def __enter__(self) -> SqlAccountRepository:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def ping(self) -> None:
        with self.engine.connect() as conn:
            conn.execute(sa.text("SELECT 1"))

    def put_account(self, account: Account) -> None:
        with self.engine.begin() as conn:
            conn.execute(accounts_table.insert().values(id=account.id, name=account.name))

    def get_account_by_id(self, account_id: str) -> Account:
        stmt = sa.select(accounts_table.c.id, accounts_table.c.name).where(
            accounts_table.c.id == account_id
        )
        with self.engine.connect() as conn:
            row = conn.execute(stmt).one_or_none()
        if row is None:
            raise NotFoundError(f"account {account_id!r} not found")
        return Account(id=row.id, name=row.name)

    def list_accounts(self, skip: int, take: int) -> list[Account]:
        stmt = (
            sa.select(accounts_table.c.id, accounts_table.c.name)
            .order_by(accounts_table.c.id.desc())
            .offset(skip)
            .limit(take)
        )
        with self.engine.connect() as conn:
            rows = conn.execute(stmt).all()
        return [Account(id=row.id, name=row.name) for row in rows]


class AccountService:
    """Creates and looks up accounts through a repository."""

    def __init__(self, repository) -> None:
        self.repository = repository

    def post_account(self, name: str) -> Account:
        account = Account(id=new_id(), name=name)
        self.repository.put_account(account)
        return account

    def get_account(self, account_id: str) -> Account:
        return self.repository.get_account_by_id(account_id)

    def get_accounts(self, skip: int, take: int) -> list[Account]:
        skip, take = clamp_page(skip, take)
        return self.repository.list_accounts(skip, take)