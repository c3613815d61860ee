"""The account service exposed over gRPC, and a client for it."""

from __future__ import annotations

import grpc

from storefront.accounts import Account
from storefront.rpc import RpcClient, make_server

SERVICE_NAME = "account.AccountService"


def _account_message(account: Account) -> dict:
    return {"id": account.id, "name": account.name}


def _account_from_message(message: dict | None) -> Account:
    message = message or {}
    return Account(id=message.get("id", ""), name=message.get("name", ""))


class AccountServicer:
    """Translates account requests into calls on an account service."""

    def __init__(self, service) -> None:
        self.service = service

    def post_account(self, request: dict) -> dict:
        account = self.service.post_account(request.get("name", ""))
        return {"account": _account_message(account)}

    def get_account(self, request: dict) -> dict:
        account = self.service.get_account(request.get("id", ""))
        return {"account": _account_message(account)}

    def get_accounts(self, request: dict) -> dict:
        accounts = self.service.get_accounts(
            int(request.get("skip", 0)), int(request.get("take", 0))
        )
        return {"accounts": [_account_message(a) for a in accounts]}

    def methods(self) -> dict:
        return {
            "PostAccount": self.post_account,
            "GetAccount": self.get_account,
            "GetAccounts": self.get_accounts,
        }


def create_account_server(service, port: int) -> tuple[grpc.Server, int]:
    """Build an unstarted account server; returns it with the bound port."""
    return make_server(SERVICE_NAME, AccountServicer(service).methods(), port)


def listen_grpc(service, port: int) -> None:
    """Serve the account service on ``port`` until the server stops."""
    server, _ = create_account_server(service, port)
    server.start()
    server.wait_for_termination()


class AccountClient:
    """Client for a remote account service."""

    def __init__(self, url: str) -> None:
        self._rpc = RpcClient(url, SERVICE_NAME)

    def close(self) -> None:
        self._rpc.close()

    def __enter__(self) -> AccountClient:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def post_account(self, name: str, timeout: float | None = None) -> Account:
        response = self._rpc.call("PostAccount", {"name": name}, timeout)
        return _account_from_message(response.get("account"))

    def get_account(self, account_id: str, timeout: float | None = None) -> Account:
        response = self._rpc.call("GetAccount", {"id": account_id}, timeout)
        return _account_from_message(response.get("account"))

    def get_accounts(self, skip: int, take: int, timeout: float | None = None) -> list[Account]:
        response = self._rpc.call("GetAccounts", {"skip": skip, "take": take}, timeout)
        return [_account_from_message(m) for m in response.get("accounts", [])]