from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import logging
import ssl

import httpx

from powertap.providers.errors import TransportConfigurationError
from powertap.providers.interceptor import LoggingTransport


logger = logging.getLogger("powertap.transport")


class TrustPolicy(str, Enum):
    STRICT = "strict"
    # Accepts any certificate chain for any hostname. Explicit opt-in only.
    PERMISSIVE = "permissive"


@dataclass(frozen=True)
class TransportTimeouts:
    connect_seconds: float = 30.0
    read_seconds: float = 20.0
    write_seconds: float = 20.0

    def to_httpx(self) -> httpx.Timeout:
        return httpx.Timeout(
            connect=self.connect_seconds,
            read=self.read_seconds,
            write=self.write_seconds,
            pool=self.connect_seconds,
        )


def build_ssl_context(policy: TrustPolicy) -> ssl.SSLContext:
    try:
        context = ssl.create_default_context()
        if policy is TrustPolicy.PERMISSIVE:
            # check_hostname must be cleared before verify_mode can drop to CERT_NONE.
            context.check_hostname = False
            context.verify_mode = ssl.CERT_NONE
    except (ssl.SSLError, OSError, ValueError) as exc:
        raise TransportConfigurationError(f"Unable to initialise TLS trust material for policy '{policy.value}'.") from exc
    return context


def build_transport(
    policy: TrustPolicy,
    timeouts: TransportTimeouts | None = None,
    *,
    base_url: str = "",
    inner: httpx.BaseTransport | None = None,
) -> httpx.Client:
    """Build the shared HTTP client every API call goes through.

    ``inner`` replaces the network transport (tests pass an
    ``httpx.MockTransport``); the trust policy then has nothing to apply to.
    """
    policy = TrustPolicy(policy)
    timeouts = timeouts or TransportTimeouts()
    if policy is TrustPolicy.PERMISSIVE:
        logger.warning(
            "TLS certificate and hostname verification are DISABLED for this transport. "
            "Any server can impersonate the power bank API."
        )
    if inner is None:
        inner = httpx.HTTPTransport(verify=build_ssl_context(policy))
    return httpx.Client(
        base_url=base_url.rstrip("/") + "/" if base_url else "",
        transport=LoggingTransport(inner),
        timeout=timeouts.to_httpx(),
    )
