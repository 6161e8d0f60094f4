from typing import Any, Dict, List, Optional

import httpx
import pytest

from meeting_artifacts.schemas.meeting import MeetingGroupConfig


class FakeResponse:
    def __init__(
        self,
        status_code: int = 200,
        json_data: Any = None,
        text: Optional[str] = None,
        links: Optional[Dict[str, Dict[str, str]]] = None,
    ):
        self.status_code = status_code
        self._json_data = json_data
        # For debugging / error messages
        self.text = text if text is not None else ("" if json_data is None else str(json_data))
        self.content = self.text.encode("utf-8")
        self.links = links or {}

    def json(self) -> Any:
        return self._json_data


class FakeHttp:
    """
    Records requests made through the patched httpx.AsyncClient and replays
    queued responses (or raises queued exceptions) in order.
    """

    def __init__(self) -> None:
        self.requests: List[Dict[str, Any]] = []
        self.responses: List[Any] = []

    def respond(self, json_data: Any = None, status_code: int = 200, **kwargs) -> None:
        self.responses.append(FakeResponse(status_code, json_data, **kwargs))

    def fail(self, exc: Exception) -> None:
        self.responses.append(exc)

    @property
    def last_request(self) -> Dict[str, Any]:
        return self.requests[-1]


@pytest.fixture
def fake_http(monkeypatch) -> FakeHttp:
    """
    Patch httpx.AsyncClient with a stand-in that performs no real I/O.
    """
    recorder = FakeHttp()

    class _FakeAsyncClient:
        def __init__(self, timeout: float | None = None):
            self._timeout = timeout

        async def __aenter__(self) -> "_FakeAsyncClient":
            return self

        async def __aexit__(self, exc_type, exc, tb) -> None:
            return None

        async def request(
            self,
            method: str,
            url: str,
            headers: Optional[Dict[str, Any]] = None,
            params: Optional[Dict[str, Any]] = None,
            json: Any = None,
        ) -> FakeResponse:
            recorder.requests.append(
                {
                    "method": method,
                    "url": url,
                    "headers": headers or {},
                    "params": params,
                    "json": json,
                }
            )
            response = recorder.responses.pop(0)
            if isinstance(response, Exception):
                raise response
            return response

    monkeypatch.setattr(httpx, "AsyncClient", _FakeAsyncClient)
    return recorder


@pytest.fixture
def group() -> MeetingGroupConfig:
    return MeetingGroupConfig(
        group_id="tsc",
        display_name="TSC",
        host_name="Node.js",
        calendar_filter="Node.js TSC Meeting",
        calendar_source="https://calendar.example.org/tsc.ics",
        code_host_org="nodejs",
        code_host_repo="TSC",
        agenda_label="tsc-agenda",
        issue_label="meeting",
        invited_list="* @nodejs/tsc",
        observer_list="* Observers welcome",
        joining_instructions="Join via Zoom",
    )
