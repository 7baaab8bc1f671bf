from __future__ import annotations

import logging
from typing import Protocol

from powertap.providers.errors import ConnectionTokenError
from powertap.providers.power_bank import PowerBankApiClient


logger = logging.getLogger("powertap.client")


class ConnectionTokenCallback(Protocol):
    def on_success(self, token: str) -> None:
        ...

    def on_failure(self, error: ConnectionTokenError) -> None:
        ...


class ConnectionTokenProvider:
    """Feeds connection tokens to the payment terminal SDK.

    Blocks the calling thread for one round trip per call. Tokens are never
    cached.
    """

    def __init__(self, client: PowerBankApiClient) -> None:
        self._client = client

    def fetch_connection_token(self, callback: ConnectionTokenCallback) -> None:
        try:
            token = self._client.create_connection_token()
        except ConnectionTokenError as exc:
            logger.warning("Connection token fetch failed: %s", exc)
            callback.on_failure(exc)
            return
        callback.on_success(token)
