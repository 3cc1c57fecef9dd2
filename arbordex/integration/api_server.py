"""
HTTP API for the Arbordex pool.

Stdlib only (`http.server`). Routes map one-to-one onto `PoolService`
operations; the handler only parses JSON, picks fields and writes responses.

Security posture:
- Security headers on every response; https redirect + HSTS in staging/production
- Default-deny CORS (no wildcard)
- Basic rate limiting (per-IP, token bucket)
- Bounded request bodies
"""

from __future__ import annotations

import argparse
import json
import logging
import threading
import time
from dataclasses import dataclass, replace
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Sequence, Set

from .. import __version__
from ..core.pool_engine import PoolEngine
from .config import AppConfig, load_config
from .log import setup_logging
from .pool_service import PoolService, ServiceResult

logger = logging.getLogger(__name__)

SERVICE_NAME = "arbordex-api"
SERVICE_VERSION = __version__

SECURITY_HEADERS = (
    ("X-Content-Type-Options", "nosniff"),
    ("X-XSS-Protection", "1; mode=block"),
    ("X-Frame-Options", "DENY"),
    ("Referrer-Policy", "strict-origin-when-cross-origin"),
    ("Content-Security-Policy", "default-src 'self'"),
)
HSTS_VALUE = "max-age=31536000; includeSubDomains"

ENDPOINTS = {
    "pool": "GET /pool/info",
    "price": "GET /pool/price",
    "quote": "POST /quote",
    "buy": "POST /buy",
    "sell": "POST /sell",
    "addLiquidity": "POST /add-liquidity",
    "removeLiquidity": "POST /remove-liquidity",
}


@dataclass
class RateLimitBucket:
    tokens: float
    updated_at: float


class TokenBucketRateLimiter:
    """
    Per-IP token bucket.

    Target complexity: O(1) per request.
    """

    def __init__(self, *, rpm: int, clock: Callable[[], float] = time.monotonic) -> None:
        self._rpm = int(max(0, rpm))
        self._capacity = float(max(1, rpm)) if rpm > 0 else 0.0
        self._refill_per_s = float(rpm) / 60.0 if rpm > 0 else 0.0
        self._buckets: dict[str, RateLimitBucket] = {}
        self._clock = clock
        self._lock = threading.Lock()

    def allow(self, key: str) -> bool:
        if self._rpm <= 0:
            return True
        with self._lock:
            now = self._clock()
            b = self._buckets.get(key)
            if b is None:
                self._buckets[key] = RateLimitBucket(tokens=self._capacity - 1.0, updated_at=now)
                return True
            dt = max(0.0, now - float(b.updated_at))
            b.tokens = min(self._capacity, float(b.tokens) + dt * self._refill_per_s)
            b.updated_at = now
            if b.tokens >= 1.0:
                b.tokens -= 1.0
                return True
            return False


class _BadRequest(Exception):
    def __init__(self, status: int, error: str) -> None:
        self.status = status
        self.error = error
        super().__init__(error)


def _route_quote(service: PoolService, body: Dict[str, Any]) -> ServiceResult:
    return service.quote(
        body.get("inputToken"),
        body.get("outputToken"),
        body.get("amount"),
        body.get("slippageTolerance"),
    )


def _route_buy(service: PoolService, body: Dict[str, Any]) -> ServiceResult:
    return service.buy(body.get("ethAmount"), body.get("minUsdcOutput"), body.get("slippageTolerance"))


def _route_sell(service: PoolService, body: Dict[str, Any]) -> ServiceResult:
    return service.sell(body.get("usdcAmount"), body.get("minEthOutput"), body.get("slippageTolerance"))


def _route_add_liquidity(service: PoolService, body: Dict[str, Any]) -> ServiceResult:
    return service.add_liquidity(body.get("ethAmount"), body.get("usdcAmount"))


def _route_remove_liquidity(service: PoolService, body: Dict[str, Any]) -> ServiceResult:
    return service.remove_liquidity(body.get("sharesToBurn"))


_POST_ROUTES: Dict[str, Callable[[PoolService, Dict[str, Any]], ServiceResult]] = {
    "/quote": _route_quote,
    "/buy": _route_buy,
    "/sell": _route_sell,
    "/add-liquidity": _route_add_liquidity,
    "/remove-liquidity": _route_remove_liquidity,
}


class _Handler(BaseHTTPRequestHandler):
    server_version = "ArbordexApi/1"

    # Bound request line / headers to avoid memory abuse.
    max_requestline = 8192
    max_headers = 100

    @property
    def _config(self) -> AppConfig:
        return getattr(self.server, "app_config")  # type: ignore[attr-defined]

    @property
    def _service(self) -> PoolService:
        return getattr(self.server, "pool_service")  # type: ignore[attr-defined]

    def _client_ip(self) -> str:
        # Trust boundary: X-Forwarded-For is not trusted for rate limiting.
        try:
            return str(self.client_address[0])
        except (IndexError, TypeError):
            return "unknown"

    def _path(self) -> str:
        return (self.path or "").split("?", 1)[0]

    def _allowed_cors_origin_or_none(self) -> Optional[str]:
        allowed: Set[str] = set(self._config.cors_origins)
        origin = self.headers.get("Origin")
        if not isinstance(origin, str) or not origin:
            return None
        return origin if origin in allowed else None

    def _send_common_headers(self, cors_origin: Optional[str]) -> None:
        for name, value in SECURITY_HEADERS:
            self.send_header(name, value)
        if self._config.enforce_https:
            self.send_header("Strict-Transport-Security", HSTS_VALUE)
        if cors_origin is not None:
            self.send_header("Access-Control-Allow-Origin", cors_origin)
            self.send_header("Vary", "Origin")

    def _write_json(self, status: int, obj: object, *, cors_origin: Optional[str]) -> None:
        body = json.dumps(obj, separators=(",", ":"), ensure_ascii=False).encode("utf-8")
        self.send_response(int(status))
        self.send_header("Content-Type", "application/json; charset=utf-8")
        self.send_header("Cache-Control", "no-store")
        self.send_header("Content-Length", str(len(body)))
        self._send_common_headers(cors_origin)
        self.end_headers()
        self.wfile.write(body)

    def _write_result(self, result: ServiceResult, *, cors_origin: Optional[str]) -> None:
        if result.ok:
            self._write_json(200, result.data, cors_origin=cors_origin)
        else:
            self._write_json(result.status, {"error": result.error}, cors_origin=cors_origin)

    def _maybe_rate_limit(self) -> bool:
        limiter: TokenBucketRateLimiter = getattr(self.server, "rate_limiter")  # type: ignore[attr-defined]
        return limiter.allow(self._client_ip())

    def _maybe_redirect_https(self) -> bool:
        """Redirect plain-http requests in staging/production. Returns True if a redirect was sent."""
        if not self._config.enforce_https:
            return False
        if (self.headers.get("X-Forwarded-Proto") or "").lower() == "https":
            return False
        host = self.headers.get("Host") or self._config.host
        self.send_response(301)
        self.send_header("Location", f"https://{host}{self.path}")
        self.send_header("Content-Length", "0")
        self._send_common_headers(None)
        self.end_headers()
        return True

    def _read_json_body(self) -> Dict[str, Any]:
        raw_len = self.headers.get("Content-Length")
        try:
            length = int(raw_len) if raw_len is not None else 0
        except ValueError as exc:
            raise _BadRequest(400, "invalid Content-Length") from exc
        if length < 0:
            raise _BadRequest(400, "invalid Content-Length")
        if length > self._config.max_body_bytes:
            raise _BadRequest(413, "request body too large")
        raw = self.rfile.read(length) if length else b""
        if not raw:
            return {}
        try:
            obj = json.loads(raw.decode("utf-8"))
        except ValueError as exc:  # JSONDecodeError, UnicodeDecodeError, int digit limit
            raise _BadRequest(400, "malformed JSON body") from exc
        if not isinstance(obj, dict):
            raise _BadRequest(400, "JSON body must be an object")
        return obj

    def do_OPTIONS(self) -> None:  # noqa: N802
        cors_origin = self._allowed_cors_origin_or_none()
        self.send_response(204)
        if cors_origin is not None:
            self.send_header("Access-Control-Allow-Origin", cors_origin)
            self.send_header("Access-Control-Allow-Methods", "GET,POST,OPTIONS")
            self.send_header("Access-Control-Allow-Headers", "Content-Type")
            self.send_header("Access-Control-Max-Age", "600")
            self.send_header("Vary", "Origin")
        self.end_headers()

    def do_GET(self) -> None:  # noqa: N802
        if not self._maybe_rate_limit():
            self._write_json(429, {"error": "rate_limited"}, cors_origin=None)
            return
        if self._maybe_redirect_https():
            return

        cors_origin = self._allowed_cors_origin_or_none()
        path = self._path()

        if path == "/":
            self._write_json(
                200,
                {
                    "message": "Welcome to Arbordex",
                    "version": SERVICE_VERSION,
                    "endpoints": ENDPOINTS,
                },
                cors_origin=cors_origin,
            )
            return
        if path == "/health":
            self._write_json(200, {"status": "healthy", "service": SERVICE_NAME}, cors_origin=cors_origin)
            return
        if path == "/pool/info":
            self._write_result(self._service.pool_info(), cors_origin=cors_origin)
            return
        if path == "/pool/price":
            self._write_result(self._service.price(), cors_origin=cors_origin)
            return

        self._write_json(404, {"error": "not_found"}, cors_origin=cors_origin)

    def do_POST(self) -> None:  # noqa: N802
        if not self._maybe_rate_limit():
            self._write_json(429, {"error": "rate_limited"}, cors_origin=None)
            return
        if self._maybe_redirect_https():
            return

        cors_origin = self._allowed_cors_origin_or_none()
        route = _POST_ROUTES.get(self._path())
        if route is None:
            self._write_json(404, {"error": "not_found"}, cors_origin=cors_origin)
            return

        try:
            body = self._read_json_body()
        except _BadRequest as exc:
            self._write_json(exc.status, {"error": exc.error}, cors_origin=cors_origin)
            return

        try:
            result = route(self._service, body)
        except Exception:
            logger.exception("unhandled error on POST %s", self._path())
            self._write_json(500, {"error": "internal_error"}, cors_origin=cors_origin)
            return
        self._write_result(result, cors_origin=cors_origin)

    def log_message(self, fmt: str, *args: object) -> None:
        # Keep access logs free of query strings and headers.
        msg = fmt % args if args else fmt
        logger.info("%s %s => %s", self.command, self._path(), msg)


def make_server(config: AppConfig, service: Optional[PoolService] = None) -> ThreadingHTTPServer:
    """Bind a server for `config`. Port 0 picks an ephemeral port."""
    if service is None:
        service = PoolService(PoolEngine(config.pool.seed()), config.pool)
    httpd = ThreadingHTTPServer((config.host, config.port), _Handler)
    # Attach config to server instance (used by handler).
    httpd.app_config = config  # type: ignore[attr-defined]
    httpd.pool_service = service  # type: ignore[attr-defined]
    httpd.rate_limiter = TokenBucketRateLimiter(rpm=config.rate_limit_rpm)  # type: ignore[attr-defined]
    return httpd


def _parse_args(argv: Optional[Sequence[str]]) -> argparse.Namespace:
    ap = argparse.ArgumentParser(description="Run the Arbordex pool API server.")
    ap.add_argument("--config", default=None, help="Path to a YAML config file (overrides ARBORDEX_CONFIG).")
    ap.add_argument("--host", default=None, help="Bind host (overrides config).")
    ap.add_argument("--port", type=int, default=None, help="Bind port (overrides config).")
    return ap.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = _parse_args(argv)
    config = load_config(Path(args.config) if args.config else None)
    if args.host is not None:
        config = replace(config, host=args.host)
    if args.port is not None:
        config = replace(config, port=args.port)
    setup_logging(config.log_level)

    httpd = make_server(config)
    host, port = httpd.server_address[:2]
    logger.info(
        "%s listening on http://%s:%s (env=%s, cors_origins=%s, rpm=%s)",
        SERVICE_NAME, host, port, config.env.value, sorted(config.cors_origins), config.rate_limit_rpm,
    )
    try:
        httpd.serve_forever(poll_interval=0.25)
    except KeyboardInterrupt:
        logger.info("shutting down")
    finally:
        httpd.server_close()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
