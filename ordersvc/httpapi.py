"""WSGI application serving orders over HTTP."""

from __future__ import annotations

import logging
import re
import uuid
from http import HTTPStatus
from pathlib import Path
from typing import Any, Callable, Iterable
from urllib.parse import parse_qs, quote

from .repository import OrderNotFoundError

_log = logging.getLogger(__name__)

_ORDER_PATH = re.compile(r"^/order/([^/]+)$")
_TEXT = "text/plain; charset=utf-8"
_HTML = "text/html; charset=utf-8"


class OrderApp:
    """Routes /order/{id}, /health and a search page with redirect."""

    def __init__(self, service: Any, template_path: str | Path = "templates/index.html") -> None:
        self.service = service
        self.template_path = Path(template_path)

    def __call__(self, environ: dict[str, Any], start_response: Callable[..., Any]) -> Iterable[bytes]:
        method = environ.get("REQUEST_METHOD", "GET").upper()
        path = environ.get("PATH_INFO") or "/"
        reading = method in ("GET", "HEAD")
        headers: list[tuple[str, str]] = []

        match = _ORDER_PATH.match(path)
        if reading and match:
            status, content_type, body = self._order(match.group(1))
        elif reading and path == "/health":
            status, content_type, body = HTTPStatus.OK, _TEXT, b"OK"
        else:
            order_uid = parse_qs(environ.get("QUERY_STRING", "")).get("order_uid", [""])[0]
            if method == "GET" and not order_uid:
                status, content_type, body = self._index()
            else:
                location = "/order/" + quote(order_uid, safe="-._~")
                headers.append(("Location", location))
                status, content_type, body = HTTPStatus.FOUND, _HTML, f'<a href="{location}">Found</a>.\n'.encode()

        headers += [("Content-Type", content_type), ("Content-Length", str(len(body)))]
        start_response(f"{status.value} {status.phrase}", headers)
        return [b"" if method == "HEAD" else body]

    def _order(self, raw_id: str) -> tuple[HTTPStatus, str, bytes]:
        try:
            order_uid = uuid.UUID(raw_id)
        except ValueError:
            return HTTPStatus.BAD_REQUEST, _TEXT, f"invalid id: {raw_id}\n".encode()
        try:
            order = self.service.get_order(order_uid)
        except OrderNotFoundError as exc:
            return HTTPStatus.NOT_FOUND, _TEXT, f"invalid id: {exc}\n".encode()
        except Exception:
            _log.exception("failed to load order %s", order_uid)
            return HTTPStatus.INTERNAL_SERVER_ERROR, _TEXT, b"internal error\n"
        return HTTPStatus.OK, "application/json", (order.to_json() + "\n").encode()

    def _index(self) -> tuple[HTTPStatus, str, bytes]:
        try:
            return HTTPStatus.OK, _HTML, self.template_path.read_bytes()
        except OSError:
            _log.exception("cannot read template %s", self.template_path)
            return HTTPStatus.INTERNAL_SERVER_ERROR, _TEXT, b"internal error\n"