import grpc
import pytest

from storefront.account_rpc import AccountClient, AccountServicer, create_account_server
from storefront.accounts import Account, AccountService
from storefront.errors import NotFoundError
from storefront.ksuid import parse_id


class FakeAccountRepository:
    def __init__(self):
        self.accounts = {}
        self.pages = []

    def put_account(self, account):
        self.accounts[account.id] = account

    def get_account_by_id(self, account_id):
        try:
            return self.accounts[account_id]
        except KeyError:
            raise NotFoundError() from None

    def list_accounts(self, skip, take):
        self.pages.append((skip, take))
        ordered = sorted(self.accounts.values(), key=lambda a: a.id, reverse=True)
        return ordered[skip : skip + take]


@pytest.fixture
def repository():
    return FakeAccountRepository()


@pytest.fixture
def client(repository):
    server, port = create_account_server(AccountService(repository), 0)
    server.start()
    try:
        with AccountClient(f"localhost:{port}") as account_client:
            yield account_client
    finally:
        server.stop(None)


def test_servicer_post_account_stores(repository):
    servicer = AccountServicer(AccountService(repository))
    response = servicer.post_account({"name": "alice"})
    stored = repository.accounts[response["account"]["id"]]
    assert stored == Account(id=response["account"]["id"], name="alice")


def test_servicer_get_accounts_defaults_to_full_page(repository):
    servicer = AccountServicer(AccountService(repository))
    assert servicer.get_accounts({}) == {"accounts": []}
    assert repository.pages == [(0, 100)]


def test_post_and_get_round_trip(client):
    created = client.post_account("alice", timeout=5)
    parse_id(created.id)
    assert created.name == "alice"
    assert client.get_account(created.id, timeout=5) == created


def test_get_missing_account_raises(client):
    with pytest.raises(grpc.RpcError) as info:
        client.get_account("missing", timeout=5)
    assert info.value.code() == grpc.StatusCode.NOT_FOUND


def test_get_accounts_pages(client, repository):
    for name in ("a", "b", "c"):
        client.post_account(name, timeout=5)
    everything = client.get_accounts(0, 0, timeout=5)
    assert len(everything) == 3
    assert [a.id for a in everything] == sorted((a.id for a in everything), reverse=True)
    page = client.get_accounts(1, 1, timeout=5)
    assert page == everything[1:2]
    assert repository.pages[-1] == (1, 1)


def test_get_accounts_caps_take(client, repository):
    created = client.post_account("alice", timeout=5)
    result = client.get_accounts(0, 500, timeout=5)
    assert result == [created]
    assert repository.pages[-1] == (0, 100)