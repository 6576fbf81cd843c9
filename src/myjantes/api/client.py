from typing import Any, Dict, List, Optional, Tuple, Union

import requests

from ..errors import ApiConnectionError, ApiError
from ..logging import get_logger

Files = Dict[str, Tuple[str, Any, str]]


class ApiClient:
    """Thin client for the MyJantes REST API with session, timeouts, and logging.

    Authentication rides on the session cookie set by the login endpoint; it
    can be exported and re-installed so a later process resumes the session.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: int = 30,
        verify_tls: bool = True,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.base = base_url.rstrip("/")
        self.timeout = int(timeout)
        self.verify = bool(verify_tls)
        self.log = get_logger("api-client")
        self.s = session if session is not None else requests.Session()
        self.s.headers.update({"Accept": "application/json"})

    # ---------- helpers ----------
    def _url(self, path: str) -> str:
        if not path.startswith("/"):
            path = "/" + path
        return f"{self.base}{path}"

    def public_url(self, path: str) -> str:
        return self._url(path)

    @staticmethod
    def _decode(r: requests.Response) -> Any:
        if r.status_code == 204 or not r.content:
            return None
        try:
            return r.json()
        except ValueError:
            return r.text

    # ---------- session cookie ----------
    @property
    def session_cookie(self) -> Optional[str]:
        pairs = [f"{c.name}={c.value}" for c in self.s.cookies]
        return "; ".join(pairs) if pairs else None

    def set_session_cookie(self, value: Optional[str]) -> None:
        self.s.cookies.clear()
        if not value:
            return
        for part in value.split(";"):
            if "=" not in part:
                continue
            name, val = part.split("=", 1)
            if name.strip():
                self.s.cookies.set(name.strip(), val.strip())

    # ---------- transport ----------
    def request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: Optional[Dict[str, Any]] = None,
        data: Optional[Union[Dict[str, Any], List[Tuple[str, str]]]] = None,
        files: Optional[Files] = None,
    ) -> Any:
        url = self._url(path)
        clean_params = {k: v for k, v in (params or {}).items() if v is not None} or None
        self.log.debug(f"{method} {path} params={clean_params}")
        try:
            r = self.s.request(
                method,
                url,
                json=json,
                params=clean_params,
                data=data,
                files=files,
                timeout=self.timeout,
                verify=self.verify,
            )
        except requests.RequestException as e:
            self.log.warning(f"{method} {path} failed: {e}")
            raise ApiConnectionError(str(e)) from e

        body = self._decode(r)
        if not r.ok:
            self.log.warning(f"{method} {path} -> {r.status_code}")
            raise ApiError.from_response(r.status_code, r.reason or "", body)
        return body

    def get(self, path: str, **params: Any) -> Any:
        return self.request("GET", path, params=params)

    def post(self, path: str, payload: Any = None) -> Any:
        return self.request("POST", path, json=payload)

    def put(self, path: str, payload: Any = None) -> Any:
        return self.request("PUT", path, json=payload)

    def patch(self, path: str, payload: Any = None) -> Any:
        return self.request("PATCH", path, json=payload)

    def delete(self, path: str) -> Any:
        return self.request("DELETE", path)
