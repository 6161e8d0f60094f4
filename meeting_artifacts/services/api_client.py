# meeting_artifacts/services/api_client.py
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

logger = logging.getLogger("meeting_artifacts.api_client")


class ApiClientError(RuntimeError):
    """
    Raised when an upstream API call fails, either at the transport level or
    with a non-2xx response. Always fatal for the run.
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ApiClient:
    """
    Minimal async JSON client shared by the GitHub, HackMD and calendar
    integrations.

    Responsibilities
    ----------------
    - Join relative paths onto the configured base URL.
    - Attach the bearer token (when one is configured) and default headers.
    - Turn transport errors and non-2xx responses into `error_class`.

    Notes
    -----
    - A fresh httpx.AsyncClient is opened per request; runs issue a handful
      of sequential calls so connection reuse buys nothing.
    - Subclasses set `service_name` and `error_class` so failures read as
      e.g. "GitHub GET failed (status=404)".
    """

    service_name = "API"
    error_class: type[ApiClientError] = ApiClientError

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        timeout_seconds: float = 10.0,
        headers: Optional[Dict[str, str]] = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._token = token
        self._timeout_seconds = timeout_seconds
        self._headers = {"Accept": "application/json", **(headers or {})}

    @property
    def base_url(self) -> str:
        return self._base_url

    def build_url(self, path: str) -> str:
        """
        Return `path` unchanged when absolute, else join it onto base_url.
        """
        if path.startswith("http://") or path.startswith("https://"):
            return path
        return f"{self._base_url}/{path.lstrip('/')}"

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Any = None,
    ) -> httpx.Response:
        """
        Issue one HTTP request and return the raw response.

        Non-2xx responses are returned as-is; the *_json helpers decide how
        to report them.
        """
        headers = dict(self._headers)
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"

        url = self.build_url(path)
        logger.debug("%s %s %s", self.service_name, method.upper(), url)

        try:
            async with httpx.AsyncClient(timeout=self._timeout_seconds) as client:
                return await client.request(
                    method=method.upper(),
                    url=url,
                    headers=headers,
                    params=params,
                    json=json,
                )
        except httpx.HTTPError as exc:
            raise self.error_class(
                f"{self.service_name} {method.upper()} {url} failed: {exc}"
            ) from exc

    def _raise_for_status(self, method: str, resp: httpx.Response) -> None:
        if resp.status_code // 100 != 2:
            raise self.error_class(
                f"{self.service_name} {method} failed (status={resp.status_code}): {resp.text}",
                status_code=resp.status_code,
            )

    async def get_response(
        self,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
    ) -> httpx.Response:
        """
        GET that raises on non-2xx but hands back the response, for callers
        that need headers or plain-text bodies.
        """
        resp = await self._request("GET", path, params=params)
        self._raise_for_status("GET", resp)
        return resp

    async def get_json(
        self,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        resp = await self.get_response(path, params=params)
        return resp.json()

    async def post_json(
        self,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Any = None,
    ) -> Any:
        resp = await self._request("POST", path, params=params, json=json)
        self._raise_for_status("POST", resp)
        return resp.json()

    async def patch_json(
        self,
        path: str,
        *,
        json: Any = None,
    ) -> Any:
        """
        PATCH a resource. Empty bodies (HTTP 202/204) come back as {}.
        """
        resp = await self._request("PATCH", path, json=json)
        self._raise_for_status("PATCH", resp)
        if resp.status_code == 204 or not resp.content:
            return {}
        return resp.json()
