import logging

import pytest

from powertap.core.settings import Settings
from powertap.main import bootstrap, resolve_settings
from powertap.providers.token_provider import ConnectionTokenProvider


@pytest.fixture
def _restore_root_logger():
    root = logging.getLogger()
    http_logger = logging.getLogger("powertap.http")
    handlers, level, http_level = list(root.handlers), root.level, http_logger.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    http_logger.setLevel(http_level)


def test_resolve_settings_overlays_device_config(tmp_path) -> None:
    config_file = tmp_path / "config.txt"
    config_file.write_text("baseUrl: https://kiosk.example/power_bank\nsecretKey: device-key\n", encoding="utf-8")
    settings = Settings(
        app_env="test",
        secret_key="env-key",
        device_config_path=str(config_file),
        device_imei_path=str(tmp_path / "devinfo.txt"),
    )

    resolved = resolve_settings(settings)

    assert resolved.api_base_url == "https://kiosk.example/power_bank"
    assert resolved.secret_key == "device-key"
    assert resolved.device_imei == "123456"


def test_bootstrap_wires_client_and_token_provider(tmp_path, _restore_root_logger) -> None:
    settings = Settings(
        app_env="test",
        secret_key="env-key",
        device_config_path=str(tmp_path / "absent.txt"),
        device_imei_path=str(tmp_path / "absent-devinfo.txt"),
    )

    runtime = bootstrap(settings)
    try:
        assert isinstance(runtime.token_provider, ConnectionTokenProvider)
        assert runtime.settings.secret_key == "env-key"
        assert str(runtime.client._http.base_url) == "https://powerweb-stw.stwpower.com/power_bank/"  # noqa: SLF001
    finally:
        runtime.close()


def test_bootstrap_applies_http_log_level(tmp_path, _restore_root_logger) -> None:
    settings = Settings(
        app_env="test",
        log_level="WARNING",
        http_log_level="DEBUG",
        device_config_path=str(tmp_path / "absent.txt"),
        device_imei_path=str(tmp_path / "absent-devinfo.txt"),
    )

    runtime = bootstrap(settings)
    try:
        assert logging.getLogger().level == logging.WARNING
        assert logging.getLogger("powertap.http").level == logging.DEBUG
    finally:
        runtime.close()
