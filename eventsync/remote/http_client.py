from __future__ import annotations

import json
from http.client import HTTPConnection, HTTPSConnection
from typing import Any
from urllib.parse import urlparse

from ..timestamps import StoreTimestamp


def build_base_url(address: str) -> str:
    trimmed = address.strip().rstrip("/")
    if not trimmed:
        return ""
    # urlparse reads "host:port" as a scheme, so look for the separator instead.
    if "://" in trimmed:
        return trimmed
    return f"http://{trimmed}"


def _encode_value(value: object) -> object:
    if isinstance(value, StoreTimestamp):
        return value.to_json()
    raise TypeError(f"{type(value).__name__} is not JSON serializable")


def encode_json(payload: dict[str, Any]) -> bytes:
    return json.dumps(payload, ensure_ascii=False, default=_encode_value).encode("utf-8")


def _decode_response(raw: bytes) -> dict[str, Any] | None:
    if not raw:
        return None
    try:
        payload = json.loads(raw.decode("utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError):
        snippet = raw[:240].decode("utf-8", errors="replace").strip()
        return {"error": f"non_json_response: {snippet}" if snippet else "non_json_response"}
    if isinstance(payload, dict):
        return payload
    return {"error": f"unexpected_json_type: {type(payload).__name__}"}


def request_json(
    method: str,
    url: str,
    *,
    headers: dict[str, str] | None = None,
    body: dict[str, Any] | None = None,
    timeout_s: float = 3.0,
) -> tuple[int, dict[str, Any] | None]:
    """Send one JSON request and return (status, decoded object body or None)."""
    parsed = urlparse(url)
    if not parsed.hostname:
        raise ValueError("missing hostname")
    if parsed.scheme == "https":
        conn: HTTPConnection = HTTPSConnection(
            parsed.hostname, parsed.port or 443, timeout=timeout_s
        )
    else:
        conn = HTTPConnection(parsed.hostname, parsed.port or 80, timeout=timeout_s)
    path = parsed.path or "/"
    if parsed.query:
        path = f"{path}?{parsed.query}"
    body_bytes = encode_json(body) if body is not None else None
    request_headers = {"Accept": "application/json", **(headers or {})}
    if body_bytes is not None:
        request_headers["Content-Type"] = "application/json"
        request_headers["Content-Length"] = str(len(body_bytes))
    try:
        conn.request(method, path, body=body_bytes, headers=request_headers)
        resp = conn.getresponse()
        return int(resp.status), _decode_response(resp.read())
    finally:
        conn.close()
