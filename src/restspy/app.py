"""
RestSpy Application

FastAPI application run by a spy server process. It serves doubles,
forwards proxied paths upstream, and records every response it sends in a
spy log that tests can inspect.

Admin API:
- POST/GET/DELETE /doubles, DELETE /doubles/{id}
- POST/GET/DELETE /proxies
- GET/DELETE /spy
"""

import logging
import threading
from typing import Any, Dict, List, Optional

import requests
from fastapi import FastAPI, Request
from fastapi import Response as HTTPResponse
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

from .config import ServerConfig
from .errors import DecodingError
from .model import Double, MatchableRegistry, Proxy
from .response import Response, ResponseType

logger = logging.getLogger("restspy.app")

# Recomputed by the ASGI server or meaningless after decoding
HOP_BY_HOP_HEADERS = {
    'connection', 'keep-alive', 'proxy-authenticate', 'proxy-authorization',
    'te', 'trailers', 'transfer-encoding', 'upgrade', 'content-length', 'host'
}

DISPATCH_METHODS = ["GET", "POST", "PUT", "DELETE", "PATCH", "HEAD", "OPTIONS"]


def _forwardable(headers) -> Dict[str, str]:
    return {k: v for k, v in headers.items() if k.lower() not in HOP_BY_HOP_HEADERS}


def _without_encoding(headers) -> Dict[str, str]:
    return {k: v for k, v in headers.items() if k.lower() != 'content-encoding'}


class SpyApp:
    """
    Spy application bound to one port.

    Doubles take precedence over proxies; within each kind the most recently
    registered match wins. Unmatched paths get a 404.

    Example:
        spy = SpyApp(port=8080)
        uvicorn.run(spy.app, port=8080)
    """

    def __init__(
        self,
        port: int,
        doubles: Optional[MatchableRegistry] = None,
        proxies: Optional[MatchableRegistry] = None,
        config: Optional[ServerConfig] = None
    ):
        self.port = port
        self.config = config or ServerConfig()
        self.doubles = doubles if doubles is not None else MatchableRegistry()
        self.proxies = proxies if proxies is not None else MatchableRegistry()
        self.spy_requests: List[Dict[str, Any]] = []
        # The registries are not thread-safe; every access goes through this lock
        self.lock = threading.Lock()
        self.session = requests.Session()
        self.app = self._create_app()

    def _create_app(self) -> FastAPI:
        """Create FastAPI application with routes."""
        app = FastAPI(
            title="RestSpy",
            description="Test double and spy HTTP server",
            version="1.0.0"
        )

        @app.get("/")
        def root():
            """Readiness probe."""
            return JSONResponse(content={'status': 'ok', 'port': self.port})

        @app.post("/doubles")
        async def create_double(request: Request):
            """Register a double."""
            try:
                double = Double.from_dict(await request.json())
                # The body must decode with the double's own Content-Encoding
                Response.double(double)
            except (ValueError, TypeError, AttributeError, DecodingError) as e:
                return JSONResponse(content={'error': str(e)}, status_code=400)
            with self.lock:
                self.doubles.register(double, self.port)
            logger.debug(f"Registered double {double.id} for '{double.pattern}'")
            return JSONResponse(content={'id': double.id}, status_code=201)

        @app.get("/doubles")
        def list_doubles():
            with self.lock:
                doubles = self.doubles.all_for_port(self.port)
            return JSONResponse(content={'doubles': [d.to_dict() for d in doubles]})

        @app.delete("/doubles")
        def reset_doubles():
            with self.lock:
                self.doubles.reset(self.port)
            return JSONResponse(content={'status': 'reset'})

        @app.delete("/doubles/{double_id}")
        def remove_double(double_id: str):
            with self.lock:
                self.doubles.unregister(double_id, self.port)
            return JSONResponse(content={'status': 'removed', 'id': double_id})

        @app.post("/proxies")
        async def create_proxy(request: Request):
            """Register a proxy."""
            try:
                proxy = Proxy.from_dict(await request.json())
            except (ValueError, TypeError, AttributeError) as e:
                return JSONResponse(content={'error': str(e)}, status_code=400)
            with self.lock:
                self.proxies.register(proxy, self.port)
            logger.debug(f"Registered proxy {proxy.id} for '{proxy.pattern}' -> {proxy.redirect_url}")
            return JSONResponse(content={'id': proxy.id}, status_code=201)

        @app.get("/proxies")
        def list_proxies():
            with self.lock:
                proxies = self.proxies.all_for_port(self.port)
            return JSONResponse(content={'proxies': [p.to_dict() for p in proxies]})

        @app.delete("/proxies")
        def reset_proxies():
            with self.lock:
                self.proxies.reset(self.port)
            return JSONResponse(content={'status': 'reset'})

        @app.get("/spy")
        def get_spy_log():
            """Responses served since the last reset, oldest first."""
            with self.lock:
                return JSONResponse(content={'requests': list(self.spy_requests)})

        @app.delete("/spy")
        def clear_spy_log():
            with self.lock:
                count = len(self.spy_requests)
                self.spy_requests.clear()
            return JSONResponse(content={'status': 'cleared', 'cleared_count': count})

        # Catch-all route; dispatch runs in the threadpool so proxying may block
        @app.api_route("/{path:path}", methods=DISPATCH_METHODS)
        async def dispatch(request: Request, path: str):
            body = await request.body()
            return await run_in_threadpool(self._dispatch, request, body)

        return app

    def _dispatch(self, request: Request, body: bytes = b'') -> HTTPResponse:
        """Serve a double, a proxied response or a 404 for the request path."""
        path = request.url.path

        with self.lock:
            double = self.doubles.find_for_endpoint(path, self.port)
            proxy = None if double else self.proxies.find_for_endpoint(path, self.port)

        if double is not None:
            try:
                response = Response.double(double)
            except DecodingError as e:
                logger.warning(f"Double {double.id} does not match its Content-Encoding, serving body as is: {e}")
                response = Response(ResponseType.DOUBLE, double.status_code, _without_encoding(double.headers), double.body)
        elif proxy is not None:
            response = self._forward(request, proxy, body)
            if response is None:
                return JSONResponse(content={'error': f"Upstream {proxy.redirect_url} unreachable"}, status_code=502)
        else:
            logger.warning(f"No double or proxy for {request.method} {path}")
            response = Response.not_found()

        with self.lock:
            self.spy_requests.append({
                'method': request.method,
                'path': path,
                'response': response.to_dict()
            })

        return HTTPResponse(
            content=response.body,
            status_code=response.status_code,
            headers=_forwardable(response.headers)
        )

    def _forward(self, request: Request, proxy: Proxy, body: bytes) -> Optional[Response]:
        url = proxy.upstream_url(request.url.path, request.url.query)
        try:
            upstream = self.session.request(
                method=request.method,
                url=url,
                headers=_forwardable(request.headers),
                data=body or None,
                stream=True,
                allow_redirects=False,
                timeout=self.config.request_timeout
            )
        except requests.RequestException as e:
            logger.warning(f"Proxy to {url} failed: {e}")
            return None

        with upstream:
            # Keep the body encoded; Response decodes it for the spy log
            raw = upstream.raw.read(decode_content=False)
        try:
            return Response.proxy(upstream.status_code, dict(upstream.headers), raw)
        except DecodingError as e:
            logger.warning(f"Upstream {url} sent an undecodable body, passing it through as is: {e}")
            return Response.proxy(upstream.status_code, _without_encoding(upstream.headers), raw)

