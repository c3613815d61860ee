"""The HTTP gateway: serves a GraphQL playground page."""

from __future__ import annotations

import argparse
import html
import json
import logging
import os
from dataclasses import dataclass
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from string import Template
from typing import Mapping, Sequence
from urllib.parse import urlsplit

logger = logging.getLogger(__name__)

PORT = 8080
PLAYGROUND_PATH = "/playground"
GRAPHQL_PATH = "/graphql"
PLAYGROUND_TITLE = "Storefront"

_PAGE = Template(
    """<!DOCTYPE html>
<html>
<head>
<meta charset="utf-8">
<title>$title</title>
<style>
body { font-family: sans-serif; margin: 2em; }
textarea { width: 100%; font-family: monospace; }
pre { background: #f4f4f4; padding: 1em; }
</style>
</head>
<body>
<h1>$title</h1>
<label for="query">Query</label>
<textarea id="query" rows="12">{ accounts { id name } }</textarea>
<label for="variables">Variables</label>
<textarea id="variables" rows="4">{}</textarea>
<button id="run">Run</button>
<pre id="result"></pre>
<script>
const endpoint = $endpoint;
document.getElementById("run").addEventListener("click", async () => {
  const output = document.getElementById("result");
  try {
    const response = await fetch(endpoint, {
      method: "POST",
      headers: {"Content-Type": "application/json"},
      body: JSON.stringify({
        query: document.getElementById("query").value,
        variables: JSON.parse(document.getElementById("variables").value || "{}")
      })
    });
    output.textContent = JSON.stringify(await response.json(), null, 2);
  } catch (err) {
    output.textContent = String(err);
  }
});
</script>
</body>
</html>
"""
)


@dataclass(frozen=True)
class GatewayConfig:
    """Addresses of the backing services, read from the environment."""

    account_url: str = ""
    catalog_url: str = ""
    order_url: str = ""

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> GatewayConfig:
        env = os.environ if environ is None else environ
        return cls(
            account_url=env.get("ACCOUNT_SERVICE_URL", ""),
            catalog_url=env.get("CATALOG_SERVICE_URL", ""),
            order_url=env.get("ORDER_SERVICE_URL", ""),
        )


def playground_html(title: str, endpoint: str) -> str:
    """Render a page that sends GraphQL queries to ``endpoint``."""
    endpoint_js = json.dumps(endpoint).replace("</", "<\\/")
    return _PAGE.substitute(title=html.escape(title), endpoint=endpoint_js)


class _Handler(BaseHTTPRequestHandler):
    def do_GET(self) -> None:
        if urlsplit(self.path).path != PLAYGROUND_PATH:
            self.send_error(404)
            return
        body = playground_html(PLAYGROUND_TITLE, GRAPHQL_PATH).encode("utf-8")
        self.send_response(200)
        self.send_header("Content-Type", "text/html; charset=utf-8")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, format: str, *args: object) -> None:
        logger.debug("%s - %s", self.address_string(), format % args)


def create_http_server(host: str = "", port: int = PORT) -> ThreadingHTTPServer:
    """Build an HTTP server that serves the playground at /playground."""
    return ThreadingHTTPServer((host, port), _Handler)


def main(argv: Sequence[str] | None = None) -> int:
    """Serve the gateway until interrupted."""
    parser = argparse.ArgumentParser(prog="gateway", description="Serve the GraphQL gateway.")
    parser.add_argument("--host", default="", help="address to bind (default: all)")
    parser.add_argument("--port", type=int, default=PORT, help=f"port (default: {PORT})")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO)
    config = GatewayConfig.from_env()
    logger.info(
        "services: account=%s catalog=%s order=%s",
        config.account_url,
        config.catalog_url,
        config.order_url,
    )
    try:
        with create_http_server(args.host, args.port) as server:
            logger.info("Listening on port %d...", server.server_address[1])
            server.serve_forever()
    except KeyboardInterrupt:
        return 0
    except OSError as exc:
        logger.error("%s", exc)
        return 1
    return 0