import os
import sys
from functools import lru_cache
from typing import Literal
from urllib.parse import urlparse

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from powertap.core.device_config import DeviceConfig


DEFAULT_API_BASE_URL = "https://powerweb-stw.stwpower.com/power_bank"
DEFAULT_QR_CODE_URL = "https://powerweb-stw.stwpower.com/appWeb/store?id="
DEFAULT_DEVICE_IMEI = "123456"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore", frozen=True)

    app_env: str = "local"
    log_level: str = "INFO"
    # Level for the request/response traces; empty follows LOG_LEVEL.
    http_log_level: str = ""

    api_base_url: str = DEFAULT_API_BASE_URL
    qr_code_url: str = DEFAULT_QR_CODE_URL
    secret_key: str = ""
    device_imei: str = DEFAULT_DEVICE_IMEI
    device_config_path: str = "/sdcard/Player/config.txt"
    device_imei_path: str = "/sdcard/devinfo.txt"

    # "permissive" disables certificate and hostname checks.
    trust_policy: Literal["strict", "permissive"] = "strict"
    acknowledge_insecure_tls: bool = False
    http_connect_timeout_seconds: float = 30.0
    http_read_timeout_seconds: float = 20.0
    http_write_timeout_seconds: float = 20.0

    @model_validator(mode="after")
    def validate_transport_guardrails(self) -> "Settings":
        if not self.api_base_url.strip():
            raise ValueError("API_BASE_URL is required and must not be empty.")
        parsed = urlparse(self.api_base_url)
        if parsed.scheme not in {"http", "https"} or not parsed.hostname:
            raise ValueError("API_BASE_URL must be an absolute http(s) URL.")
        for name in ("http_connect_timeout_seconds", "http_read_timeout_seconds", "http_write_timeout_seconds"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name.upper()} must be greater than 0.")

        if self.app_env.lower() != "production":
            return self

        if not self.secret_key.strip():
            raise ValueError("Production requires SECRET_KEY.")
        if self.trust_policy == "permissive" and not self.acknowledge_insecure_tls:
            raise ValueError(
                "Production forbids TRUST_POLICY=permissive unless ACKNOWLEDGE_INSECURE_TLS is set."
            )
        return self

    def with_device_config(self, device_config: DeviceConfig) -> "Settings":
        overrides = {
            "api_base_url": device_config.base_url,
            "secret_key": device_config.secret_key,
            "qr_code_url": device_config.qr_code_url,
            "device_imei": device_config.imei,
        }
        values = self.model_dump()
        values.update({key: value for key, value in overrides.items() if value})
        return type(self).model_validate(values)


@lru_cache
def get_settings() -> Settings:
    app_env = os.getenv("APP_ENV", "").lower()
    is_pytest_runtime = "pytest" in sys.modules
    if app_env == "test" or (not app_env and is_pytest_runtime):
        def _env_or_default(name: str, default: str) -> str:
            value = os.getenv(name)
            if value is None:
                return default
            stripped = value.strip()
            return stripped if stripped else default

        return Settings(
            app_env="test",
            api_base_url=_env_or_default("API_BASE_URL", "https://power-bank.test/power_bank"),
            secret_key=_env_or_default("SECRET_KEY", "test-secret-key"),
            device_imei=_env_or_default("DEVICE_IMEI", DEFAULT_DEVICE_IMEI),
        )
    return Settings()
