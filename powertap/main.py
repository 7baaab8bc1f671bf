"""Process start-up wiring used by the terminal application shell."""
from __future__ import annotations

from dataclasses import dataclass
import logging
from pathlib import Path

from powertap.core.device_config import load_device_config
from powertap.core.logging_config import configure_logging
from powertap.core.settings import Settings, get_settings
from powertap.providers.power_bank import PowerBankApiClient
from powertap.providers.token_provider import ConnectionTokenProvider


logger = logging.getLogger("powertap.config")


@dataclass(frozen=True)
class PowerTapRuntime:
    settings: Settings
    client: PowerBankApiClient
    token_provider: ConnectionTokenProvider

    def close(self) -> None:
        self.client.close()


def resolve_settings(settings: Settings | None = None, *, use_device_config: bool = True) -> Settings:
    settings = settings or get_settings()
    if not use_device_config:
        return settings
    device_config = load_device_config(
        Path(settings.device_config_path),
        imei_path=Path(settings.device_imei_path),
    )
    return settings.with_device_config(device_config)


def bootstrap(settings: Settings | None = None, *, use_device_config: bool = True) -> PowerTapRuntime:
    settings = resolve_settings(settings, use_device_config=use_device_config)
    configure_logging(
        log_level=settings.log_level,
        app_env=settings.app_env,
        http_log_level=settings.http_log_level or None,
    )
    logger.info("Power bank API at %s (trust policy: %s)", settings.api_base_url, settings.trust_policy)
    client = PowerBankApiClient.from_settings(settings)
    return PowerTapRuntime(
        settings=settings,
        client=client,
        token_provider=ConnectionTokenProvider(client),
    )
