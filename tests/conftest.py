import os
os.environ["APP_ENV"] = "test"

# THEN import anything else
from typing import Any, Callable, Iterator

import httpx
import pytest

from powertap.core import settings as settings_module
from powertap.providers.power_bank import PowerBankApiClient
from powertap.providers.transport import TrustPolicy, build_transport


BASE_URL = "https://power-bank.test/power_bank"
SECRET_KEY = "test-secret-key"


@pytest.fixture(autouse=True)
def _clear_settings_cache():
    settings_module.get_settings.cache_clear()
    yield
    settings_module.get_settings.cache_clear()


@pytest.fixture
def recorded_requests() -> list[httpx.Request]:
    return []


@pytest.fixture
def make_client(recorded_requests) -> Iterator[Callable[..., PowerBankApiClient]]:
    """Builds a client whose network transport answers from ``routes``.

    ``routes`` maps a URL path to an envelope dict, an ``httpx.Response``,
    an exception instance, or a callable taking the request.
    """
    clients: list[PowerBankApiClient] = []

    def _factory(routes: dict[str, Any]) -> PowerBankApiClient:
        def _handler(request: httpx.Request) -> httpx.Response:
            recorded_requests.append(request)
            action = routes.get(request.url.path)
            if action is None:
                return httpx.Response(404, text="not found")
            if callable(action) and not isinstance(action, httpx.Response):
                action = action(request)
            if isinstance(action, Exception):
                raise action
            if isinstance(action, httpx.Response):
                return action
            return httpx.Response(200, json=action)

        http_client = build_transport(
            TrustPolicy.STRICT,
            base_url=BASE_URL,
            inner=httpx.MockTransport(_handler),
        )
        client = PowerBankApiClient(http_client=http_client, secret_key=SECRET_KEY)
        clients.append(client)
        return client

    yield _factory
    for client in clients:
        client.close()
