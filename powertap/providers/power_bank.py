from __future__ import annotations

import logging
from typing import Any, Callable, Mapping, TypeVar
from urllib.parse import quote

import httpx

from powertap.core.settings import Settings, get_settings
from powertap.providers.envelope import ResponseEnvelope
from powertap.providers.errors import (
    ApiError,
    ConnectionTokenError,
    ResponseFormatError,
    ResponseShapeError,
    classify_transport_error,
)
from powertap.providers.transport import TransportTimeouts, TrustPolicy, build_transport
from powertap.providers.types import ChargeRule, PaymentRail


logger = logging.getLogger("powertap.client")

T = TypeVar("T")

CONNECTION_TOKEN_PATH = "pos/stripe/create_connection_token"
PAYMENT_INTENT_PATH = "api/bankcard/stripe/createPaymentIntent4Terminal"
LOCATION_ID_PATH = "pos/power/get_location_id"
LEND_POWER_STRIPE_TERMINAL_PATH = "pos/power/lend_power_stripe_terminal"
LEND_POWER_NAYAX_PATH = "pos/power/lend_power_nayax"
PRE_AMOUNT_PATH = "pos/power/get_pre_amount"
AD_VERSION_PATH = "cabinet/advertising/getVersion"
BRIGHTNESS_CONFIG_PATH = "cabinet/advertising/getBrightnessConfig"
QR_CODE_PATH = "cabinet/advertising/cabinet_advertising"
AD_CONTENT_PATH = "cabinet/advertising/get"
ORDER_INFO_PATH = "api/borrow/getOrderInfoByPowerBankId"
# Resolved against the host root, not the API base path.
CHARGE_RULE_ROOT_PATH = "/getChargeRuleByQrCode/{qr_code}"

CLIENT_SECRET_FIELD = "clientSecret"


class PowerBankApiClient:
    """Blocking client for the power bank service.

    Most operations collapse "server said non-200" and "payload has the wrong
    shape" into ``None``. ``get_ad``, ``get_location_id`` and
    ``get_order_info_by_power_bank_id`` return the envelope untouched so the
    caller can read ``message``. ``create_connection_token`` raises
    :class:`ConnectionTokenError` on any failure.

    Transport failures always raise an ``ApiTransportError`` subclass.
    """

    def __init__(self, *, http_client: httpx.Client, secret_key: str) -> None:
        self._http = http_client
        self._secret_key = secret_key

    @classmethod
    def from_settings(
        cls,
        settings: Settings | None = None,
        *,
        inner: httpx.BaseTransport | None = None,
    ) -> "PowerBankApiClient":
        settings = settings or get_settings()
        timeouts = TransportTimeouts(
            connect_seconds=settings.http_connect_timeout_seconds,
            read_seconds=settings.http_read_timeout_seconds,
            write_seconds=settings.http_write_timeout_seconds,
        )
        http_client = build_transport(
            TrustPolicy(settings.trust_policy),
            timeouts,
            base_url=settings.api_base_url,
            inner=inner,
        )
        return cls(http_client=http_client, secret_key=settings.secret_key)

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "PowerBankApiClient":
        return self

    def __exit__(self, _exc_type, _exc, _tb) -> None:
        self.close()

    def create_connection_token(self) -> str:
        try:
            envelope = self._send("GET", CONNECTION_TOKEN_PATH, params={"key": self._secret_key})
        except ApiError as exc:
            raise ConnectionTokenError() from exc
        if envelope is None or not envelope.is_success:
            raise ConnectionTokenError()
        try:
            return envelope.expect_text()
        except ResponseShapeError as exc:
            raise ConnectionTokenError() from exc

    def create_payment_intent(self, qr_code: str) -> dict[str, str] | None:
        envelope = self._send(
            "POST",
            PAYMENT_INTENT_PATH,
            params={"secretKey": self._secret_key, "qrCode": qr_code},
        )
        logger.debug("Payment intent envelope: %s", envelope.model_dump_json() if envelope else None)
        return self._narrow(
            "create_payment_intent",
            envelope,
            lambda env: env.expect_text_entries(CLIENT_SECRET_FIELD),
        )

    def lend_power(self, rail: PaymentRail | str, body: Mapping[str, Any]) -> str | None:
        rail = PaymentRail(rail)
        if rail is PaymentRail.STRIPE_TERMINAL:
            return self.lend_power_stripe_terminal(_text_body(body))
        return self.lend_power_nayax(dict(body))

    def lend_power_stripe_terminal(self, body: dict[str, str]) -> str | None:
        envelope = self._send("POST", LEND_POWER_STRIPE_TERMINAL_PATH, json=body)
        return self._narrow("lend_power_stripe_terminal", envelope, ResponseEnvelope.expect_text)

    def lend_power_nayax(self, body: dict[str, Any]) -> str | None:
        envelope = self._send("POST", LEND_POWER_NAYAX_PATH, json=body)
        return self._narrow("lend_power_nayax", envelope, ResponseEnvelope.expect_text)

    def get_pre_amount(self) -> dict[str, str] | None:
        envelope = self._send("GET", PRE_AMOUNT_PATH, params={"secretKey": self._secret_key})
        return self._narrow("get_pre_amount", envelope, ResponseEnvelope.expect_text_entries)

    def get_version(self, qr_code: str) -> dict[str, Any] | None:
        envelope = self._send("GET", AD_VERSION_PATH, params={"qrCode": qr_code})
        return self._narrow("get_version", envelope, ResponseEnvelope.expect_mapping)

    def get_brightness_config(self, qr_code: str) -> dict[str, Any] | None:
        envelope = self._send("GET", BRIGHTNESS_CONFIG_PATH, params={"qrCode": qr_code})
        return self._narrow("get_brightness_config", envelope, ResponseEnvelope.expect_mapping)

    def get_qr_code(self, device_id: str) -> str | None:
        logger.info("Requesting QR code for device %s", device_id)
        envelope = self._send("GET", QR_CODE_PATH, params={"fno": device_id})
        data = self._narrow("get_qr_code", envelope, ResponseEnvelope.expect_mapping)
        if data is None:
            return None
        qr_code = data.get("qrCode")
        if not isinstance(qr_code, str):
            logger.warning("QR code missing from payload for device %s", device_id)
            return None
        return qr_code

    def get_charge_rule(self, qr_code: str) -> ChargeRule | None:
        url = self._http.base_url.copy_with(path=CHARGE_RULE_ROOT_PATH.format(qr_code=quote(qr_code, safe="")))
        envelope = self._send("GET", str(url))
        data = self._narrow("get_charge_rule", envelope, ResponseEnvelope.expect_mapping)
        if data is None:
            return None
        return ChargeRule.from_mapping(data)

    def get_ad(self, qr_code: str, timestamp: int, ip: str, signature: str) -> ResponseEnvelope | None:
        return self._send(
            "GET",
            AD_CONTENT_PATH,
            params={"qrCode": qr_code, "timestamp": timestamp, "ip": ip, "sign": signature},
        )

    def get_location_id(self, qr_code: str) -> ResponseEnvelope | None:
        return self._send("GET", LOCATION_ID_PATH, params={"qrCode": qr_code})

    def get_order_info_by_power_bank_id(self, power_bank_id: str) -> ResponseEnvelope | None:
        return self._send("GET", ORDER_INFO_PATH, params={"powerBankId": power_bank_id})

    def _send(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: Any = None,  # noqa: A002
    ) -> ResponseEnvelope | None:
        try:
            response = self._http.request(method, path, params=params, json=json)
        except httpx.TransportError as exc:
            raise classify_transport_error(exc) from exc

        if not response.is_success:
            logger.warning(
                "Power bank API %s %s returned HTTP %s",
                method,
                path,
                response.status_code,
                extra={"method": method, "status_code": response.status_code},
            )
            return None

        try:
            payload = response.json()
        except ValueError as exc:
            raise ResponseFormatError("Power bank API response is not valid JSON.") from exc
        if payload is None:
            return None
        return ResponseEnvelope.from_payload(payload)

    @staticmethod
    def _narrow(
        operation: str,
        envelope: ResponseEnvelope | None,
        expect: Callable[[ResponseEnvelope], T],
    ) -> T | None:
        if envelope is None:
            return None
        if not envelope.is_success:
            logger.warning(
                "%s failed with code %s: %s",
                operation,
                envelope.code,
                envelope.message,
                extra={"operation": operation, "envelope_code": envelope.code},
            )
            return None
        try:
            return expect(envelope)
        except ResponseShapeError as exc:
            logger.warning(
                "%s returned unexpected data shape: %s",
                operation,
                exc,
                extra={"operation": operation, "envelope_code": envelope.code},
            )
            return None


def _text_body(body: Mapping[str, Any]) -> dict[str, str]:
    """Stripe terminal bodies are string-to-string; unset fields are omitted."""
    text_body: dict[str, str] = {}
    for key, value in body.items():
        if value is None:
            continue
        if not isinstance(value, str):
            raise TypeError(f"Stripe terminal body field {key!r} must be a string, got {type(value).__name__}.")
        text_body[str(key)] = value
    return text_body
