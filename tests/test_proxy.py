import json

import httpx
from starlette.testclient import TestClient

from myjantes.errors import CONNECTION_ERROR_MESSAGE
from myjantes.proxy import create_app

UPSTREAM = "https://backend.test"


def _proxy(handler):
    seen = []

    def record(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return handler(request)

    app = create_app(UPSTREAM, transport=httpx.MockTransport(record))
    return TestClient(app), seen


def test_get_is_forwarded_with_query_and_session_headers():
    client, seen = _proxy(lambda r: httpx.Response(200, json=[{"id": 1}]))
    resp = client.get(
        "/api/quotes?status=pending",
        headers={"Cookie": "connect.sid=abc", "Authorization": "Bearer t", "X-Other": "dropped"},
    )
    assert resp.status_code == 200
    assert resp.json() == [{"id": 1}]
    upstream = seen[0]
    assert str(upstream.url) == "https://backend.test/api/quotes?status=pending"
    assert upstream.headers["cookie"] == "connect.sid=abc"
    assert upstream.headers["authorization"] == "Bearer t"
    assert "x-other" not in upstream.headers


def test_bodyless_write_is_sent_as_empty_json():
    client, seen = _proxy(lambda r: httpx.Response(200, json={"ok": True}))
    client.post("/api/auth/logout")
    upstream = seen[0]
    assert upstream.method == "POST"
    assert upstream.content == b"{}"
    assert upstream.headers["content-type"] == "application/json"


def test_json_body_passes_through():
    client, seen = _proxy(lambda r: httpx.Response(201, json={"id": 5}))
    resp = client.post("/api/admin/services", json={"name": "Pneus"})
    assert resp.status_code == 201
    assert json.loads(seen[0].content) == {"name": "Pneus"}


def test_every_set_cookie_header_is_kept():
    def handler(request):
        return httpx.Response(
            200,
            headers=[("set-cookie", "connect.sid=abc; Path=/"), ("set-cookie", "theme=dark; Path=/")],
            json={"user": {"id": "u1"}},
        )

    client, _ = _proxy(handler)
    resp = client.post("/api/auth/login", json={"email": "a@b.fr", "password": "x"})
    assert resp.headers.get_list("set-cookie") == ["connect.sid=abc; Path=/", "theme=dark; Path=/"]


def test_upstream_errors_keep_their_status():
    client, _ = _proxy(lambda r: httpx.Response(404, json={"message": "Devis introuvable"}))
    resp = client.get("/api/quotes/99")
    assert resp.status_code == 404
    assert resp.json() == {"message": "Devis introuvable"}


def test_unreachable_backend_answers_502():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    client, _ = _proxy(handler)
    resp = client.get("/api/services")
    assert resp.status_code == 502
    assert resp.json() == {"message": CONNECTION_ERROR_MESSAGE}


def test_paths_outside_api_are_not_proxied():
    client, seen = _proxy(lambda r: httpx.Response(200))
    assert client.get("/health").status_code == 404
    assert seen == []


def test_encoded_path_characters_reach_the_backend_unchanged():
    client, seen = _proxy(lambda r: httpx.Response(200, json=[]))
    assert client.get("/api/clients/search/a%3Fb%2Fc?x=1").status_code == 200
    assert seen[0].url.raw_path == b"/api/clients/search/a%3Fb%2Fc?x=1"


def test_redirects_are_passed_back_not_followed():
    def handler(request):
        return httpx.Response(302, headers={"location": "https://backend.test/login"})

    client, seen = _proxy(handler)
    resp = client.get("/api/auth/callback", follow_redirects=False)
    assert resp.status_code == 302
    assert resp.headers["location"] == "https://backend.test/login"
    assert len(seen) == 1
