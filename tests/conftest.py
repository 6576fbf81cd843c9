"""
Shared fixtures: an in-memory stand-in for requests.Session and ready-made services.
"""

import json
import os
import sys
from typing import Any, Dict, List, Optional
from urllib.parse import urlsplit

import pytest
import requests

# Ensure the repository's src/ is importable
sys.path.insert(0, os.path.abspath("src"))

from myjantes.api import ApiClient, MyJantesApi
from myjantes.services.cache import QueryCache
from myjantes.services.store import LocalStore

BASE_URL = "https://api.test"


class FakeResponse:
    def __init__(self, status_code: int = 200, body: Any = None, reason: str = "") -> None:
        self.status_code = status_code
        self.reason = reason or ("OK" if status_code < 400 else "Error")
        if body is None:
            self.content = b""
        elif isinstance(body, bytes):
            self.content = body
        elif isinstance(body, str):
            self.content = body.encode("utf-8")
        else:
            self.content = json.dumps(body).encode("utf-8")

    @property
    def ok(self) -> bool:
        return self.status_code < 400

    @property
    def text(self) -> str:
        return self.content.decode("utf-8")

    def json(self) -> Any:
        return json.loads(self.text)


class FakeSession:
    """Routes (method, path) to canned responses and records every call."""

    def __init__(self) -> None:
        self.headers: Dict[str, str] = {}
        self.cookies = requests.cookies.RequestsCookieJar()
        self.routes: Dict[tuple, List[Any]] = {}
        self.calls: List[Dict[str, Any]] = []

    def add(
        self,
        method: str,
        path: str,
        body: Any = None,
        *,
        status: int = 200,
        reason: str = "",
        cookies: Optional[Dict[str, str]] = None,
        error: Optional[Exception] = None,
    ) -> None:
        entry = error if error is not None else (FakeResponse(status, body, reason), cookies or {})
        self.routes.setdefault((method.upper(), path), []).append(entry)

    def request(self, method: str, url: str, **kwargs: Any) -> FakeResponse:
        path = urlsplit(url).path
        call = {"method": method.upper(), "path": path, **kwargs}
        if kwargs.get("files"):
            call["files"] = {k: v[0] for k, v in kwargs["files"].items()}
        self.calls.append(call)
        queue = self.routes.get((method.upper(), path))
        if not queue:
            return FakeResponse(404, {"message": "Not Found"}, "Not Found")
        entry = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(entry, Exception):
            raise entry
        response, cookies = entry
        for name, value in cookies.items():
            self.cookies.set(name, value)
        return response

    def paths(self, method: Optional[str] = None) -> List[str]:
        return [c["path"] for c in self.calls if method is None or c["method"] == method]


@pytest.fixture
def session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def client(session: FakeSession) -> ApiClient:
    return ApiClient(BASE_URL, session=session)


@pytest.fixture
def api(client: ApiClient) -> MyJantesApi:
    return MyJantesApi(client)


@pytest.fixture
def store(tmp_path) -> LocalStore:
    return LocalStore(str(tmp_path / "store.sqlite3"))


@pytest.fixture
def cache() -> QueryCache:
    return QueryCache(retry=0)
