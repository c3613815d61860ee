"""A small gRPC layer that carries JSON-encoded messages.

Messages are plain dictionaries. Servers are built from a mapping of
method names to callables taking a request dictionary and returning a
response dictionary; exceptions raised by those callables become gRPC
status codes.
"""

from __future__ import annotations

import json
import logging
from concurrent import futures
from typing import Any, Callable, Mapping

import grpc

from storefront.errors import InvalidParameterError, NotFoundError

logger = logging.getLogger(__name__)

Handler = Callable[[dict], dict]

MAX_WORKERS = 10


def serialize(message: Mapping[str, Any]) -> bytes:
    """Encode a message dictionary as compact UTF-8 JSON."""
    return json.dumps(dict(message), separators=(",", ":")).encode("utf-8")


def deserialize(data: bytes) -> dict:
    """Decode bytes produced by :func:`serialize`; empty input is an empty message."""
    if not data:
        return {}
    message = json.loads(data.decode("utf-8"))
    if not isinstance(message, dict):
        raise ValueError("message must be a JSON object")
    return message


def _status_for(exc: Exception) -> grpc.StatusCode:
    if isinstance(exc, NotFoundError):
        return grpc.StatusCode.NOT_FOUND
    if isinstance(exc, InvalidParameterError):
        return grpc.StatusCode.INVALID_ARGUMENT
    return grpc.StatusCode.UNKNOWN


def _method_handler(func: Handler) -> grpc.RpcMethodHandler:
    def handle(request: dict, context: grpc.ServicerContext) -> dict:
        try:
            return func(request)
        except Exception as exc:  # every failure is reported to the caller
            logger.error("%s", exc)
            context.abort(_status_for(exc), str(exc))

    return grpc.unary_unary_rpc_method_handler(
        handle, request_deserializer=deserialize, response_serializer=serialize
    )


def make_server(
    service_name: str, methods: Mapping[str, Handler], port: int
) -> tuple[grpc.Server, int]:
    """Build an unstarted server for ``methods`` listening on ``port``.

    Returns the server together with the port actually bound, which
    differs from ``port`` when ``port`` is 0.
    """
    server = grpc.server(futures.ThreadPoolExecutor(max_workers=MAX_WORKERS))
    handlers = {name: _method_handler(func) for name, func in methods.items()}
    server.add_generic_rpc_handlers(
        (grpc.method_handlers_generic_handler(service_name, handlers),)
    )
    bound = server.add_insecure_port(f"[::]:{port}")
    if bound == 0:
        raise OSError(f"could not listen on port {port}")
    return server, bound


class RpcClient:
    """Calls the methods of one service over an insecure channel."""

    def __init__(self, url: str, service_name: str) -> None:
        self.service_name = service_name
        self.channel = grpc.insecure_channel(url)
        self._stubs: dict[str, grpc.UnaryUnaryMultiCallable] = {}

    def _stub(self, method: str) -> grpc.UnaryUnaryMultiCallable:
        stub = self._stubs.get(method)
        if stub is None:
            stub = self.channel.unary_unary(
                f"/{self.service_name}/{method}",
                request_serializer=serialize,
                response_deserializer=deserialize,
            )
            self._stubs[method] = stub
        return stub

    def call(self, method: str, request: Mapping[str, Any], timeout: float | None = None) -> dict:
        """Invoke ``method``; failures raise :class:`grpc.RpcError`."""
        return self._stub(method)(dict(request), timeout=timeout)

    def close(self) -> None:
        self.channel.close()

    def __enter__(self) -> RpcClient:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()