"""HTTP boundary serving ``POST /projections/calculate``."""

from __future__ import annotations

from datetime import date
from functools import partial
from http import HTTPStatus
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
import json
from typing import Any, Callable

from .engine import run_projection
from .log import get_logger
from .schema import SchemaError, Snapshot, parse_request
from .validate import validate_config

CALCULATE_PATH = "/projections/calculate"

logger = get_logger(__name__)


def handle_calculate(body: bytes, snapshot: Snapshot, start: date | None = None) -> tuple[int, dict[str, Any]]:
    """Run one calculate request; returns (status, JSON payload)."""
    try:
        raw = json.loads(body.decode("utf-8") or "null")
        config = parse_request(raw)
    except (SchemaError, ValueError) as exc:
        return HTTPStatus.BAD_REQUEST, {"error": str(exc)}

    validation = validate_config(config, snapshot)
    if not validation.is_valid:
        logger.warning("calculate_rejected", errors=len(validation.errors))
        return HTTPStatus.UNPROCESSABLE_ENTITY, {"errors": validation.errors, "warnings": validation.warnings}

    result = run_projection(config, snapshot, start=start)
    return HTTPStatus.OK, result.to_dict()


class ProjectionRequestHandler(BaseHTTPRequestHandler):
    server_version = "projections/0.1"

    def __init__(self, *args: Any, snapshot_provider: Callable[[], Snapshot], **kwargs: Any) -> None:
        self.snapshot_provider = snapshot_provider
        super().__init__(*args, **kwargs)

    def _send_json(self, status: int, payload: dict[str, Any]) -> None:
        body = json.dumps(payload).encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def do_POST(self) -> None:  # noqa: N802
        if self.path.rstrip("/") != CALCULATE_PATH:
            self._send_json(HTTPStatus.NOT_FOUND, {"error": f"unknown path: {self.path}"})
            return
        raw_length = self.headers.get("Content-Length") or "0"
        try:
            length = int(raw_length)
        except ValueError:
            self._send_json(HTTPStatus.BAD_REQUEST, {"error": f"invalid Content-Length: {raw_length!r}"})
            return
        body = self.rfile.read(length) if length > 0 else b""
        # Snapshot is gathered once per request, before the simulation starts.
        status, payload = handle_calculate(body, self.snapshot_provider())
        logger.info("calculate", status=int(status), path=self.path)
        self._send_json(status, payload)

    def do_GET(self) -> None:  # noqa: N802
        self._send_json(HTTPStatus.NOT_FOUND, {"error": f"unknown path: {self.path}"})

    def log_message(self, format: str, *args: Any) -> None:
        logger.debug("http", client=self.client_address[0], message=format % args)


def build_server(host: str, port: int, snapshot_provider: Callable[[], Snapshot]) -> ThreadingHTTPServer:
    handler = partial(ProjectionRequestHandler, snapshot_provider=snapshot_provider)
    return ThreadingHTTPServer((host, port), handler)
