from __future__ import annotations

from typing import List, Optional
from urllib.parse import quote

import httpx
from starlette.applications import Starlette
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.routing import Route

from ..errors import CONNECTION_ERROR_MESSAGE
from ..logging import get_logger

LOG = get_logger("api-proxy")

FORWARDED_REQUEST_HEADERS = ("content-type", "cookie", "authorization")
SKIPPED_RESPONSE_HEADERS = {"transfer-encoding", "content-encoding", "content-length"}
PROXY_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]
DEFAULT_TIMEOUT = 60.0


def create_app(
    external_api: str,
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    allow_origins: Optional[List[str]] = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> Starlette:
    """Create a Starlette app forwarding ``/api/*`` to the external API.

    Cookies and the authorization header pass through untouched, so the
    backend session works from a browser on the proxy's origin.
    """

    upstream_base = external_api.rstrip("/")
    LOG.info(f"Proxying /api to {upstream_base}")

    async def forward(request: Request) -> Response:
        path = request.path_params.get("path", "")
        # Raw path keeps escapes such as %2F and %3F intact
        raw = request.scope.get("raw_path")
        if raw:
            raw_path = raw.split(b"?", 1)[0].decode("latin-1")
        else:
            raw_path = quote(f"/api/{path}")
        target = f"{upstream_base}{raw_path}"
        query = request.scope.get("query_string", b"").decode("latin-1")
        if query:
            target = f"{target}?{query}"

        headers = {}
        for name in FORWARDED_REQUEST_HEADERS:
            value = request.headers.get(name)
            if value:
                headers[name] = value

        body: Optional[bytes] = None
        if request.method not in ("GET", "HEAD"):
            body = await request.body()
            if not body and "content-type" not in headers:
                body = b"{}"
                headers["content-type"] = "application/json"

        try:
            async with httpx.AsyncClient(
                transport=transport,
                follow_redirects=False,
                timeout=timeout,
            ) as client:
                upstream = await client.request(request.method, target, headers=headers, content=body)
        except httpx.HTTPError as exc:
            LOG.error(f"API proxy error: {exc}")
            return JSONResponse({"message": CONNECTION_ERROR_MESSAGE}, status_code=502)

        LOG.debug(f"{request.method} /api/{path} -> {upstream.status_code}")
        response = Response(content=upstream.content, status_code=upstream.status_code)
        for key, value in upstream.headers.multi_items():
            if key.lower() in SKIPPED_RESPONSE_HEADERS:
                continue
            response.headers.append(key, value)
        return response

    routes = [
        Route("/api/{path:path}", forward, methods=PROXY_METHODS),
    ]

    app = Starlette(debug=False, routes=routes)

    origins = allow_origins or ["http://localhost:8081", "http://127.0.0.1:8081"]
    if "*" in origins:
        cors_allow_origins = ["*"]
    else:
        cors_allow_origins = origins
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    return app


__all__ = ["create_app"]
