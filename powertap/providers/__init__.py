from powertap.providers.envelope import ResponseEnvelope
from powertap.providers.power_bank import PowerBankApiClient
from powertap.providers.token_provider import ConnectionTokenCallback, ConnectionTokenProvider
from powertap.providers.transport import TransportTimeouts, TrustPolicy, build_transport
from powertap.providers.types import ChargeRule, PaymentRail

__all__ = [
    "PowerBankApiClient",
    "ConnectionTokenProvider",
    "ConnectionTokenCallback",
    "ResponseEnvelope",
    "TrustPolicy",
    "TransportTimeouts",
    "ChargeRule",
    "PaymentRail",
    "build_transport",
]
