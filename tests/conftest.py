from __future__ import annotations

from collections.abc import Callable
from datetime import date

import httpx
import pytest

from nimbus_reports.odata_client import HttpTransport, ODataClient
from nimbus_reports.session import AuthMode, Session

BASE_URL = "https://nimbus.test"
ODATA_BASE = f"{BASE_URL}/CoreAPI/Odata"


class FakeSleep:
    """Records requested backoff delays instead of sleeping."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def session() -> Session:
    return Session(
        base_url=BASE_URL,
        auth_mode=AuthMode.CREDENTIAL,
        user_id=42,
        auth_token="secret-token-value",
    )


@pytest.fixture
def fake_sleep() -> FakeSleep:
    return FakeSleep()


@pytest.fixture
def make_client(session: Session, fake_sleep: FakeSleep) -> Callable[..., ODataClient]:
    """Build an ODataClient whose HTTP traffic goes to *handler*."""

    def _make(handler: Callable[[httpx.Request], httpx.Response], **kwargs) -> ODataClient:
        transport = HttpTransport(session, transport=httpx.MockTransport(handler))
        kwargs.setdefault("sleep", fake_sleep)
        return ODataClient(session, transport=transport, **kwargs)

    return _make


@pytest.fixture
def today() -> date:
    return date(2024, 6, 15)


def serve_pages(records: list[dict], requests: list[httpx.Request], count: int | None = None):
    """Serve *records* honouring ``$top``/``$skip``, recording each request."""

    def _handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        top = int(request.url.params.get("$top", "500"))
        skip = int(request.url.params.get("$skip", "0"))
        body: dict = {"value": records[skip : skip + top]}
        if count is not None:
            body["@odata.count"] = count
        return httpx.Response(200, json=body)

    return _handler


@pytest.fixture
def paged_handler():
    return serve_pages
