"""Reader for the line-oriented config file provisioned on each terminal.

Format, one entry per line::

    # comment
    baseUrl: https://example.com/power_bank
    secretKey: abc
    qrCodeUrl: https://example.com/appWeb/store?id=

Values may contain ``:``; only the first one separates key and value.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
import logging
from pathlib import Path


logger = logging.getLogger("powertap.config")

FALLBACK_IMEI = "123456"

_KEY_TO_FIELD = {
    "baseUrl": "base_url",
    "secretKey": "secret_key",
    "qrCodeUrl": "qr_code_url",
}


@dataclass(frozen=True)
class DeviceConfig:
    base_url: str = ""
    secret_key: str = ""
    qr_code_url: str = ""
    imei: str = ""


def parse_device_config(text: str) -> DeviceConfig:
    values: dict[str, str] = {}
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        key, separator, value = line.partition(":")
        if not separator:
            continue
        key = key.strip()
        field = _KEY_TO_FIELD.get(key)
        if field is None:
            logger.warning("Unknown config key: %s", key)
            continue
        values[field] = value.strip()
    return DeviceConfig(**values)


def load_device_imei(path: str | Path, *, default: str = FALLBACK_IMEI) -> str:
    imei_path = Path(path)
    try:
        imei = imei_path.read_text(encoding="utf-8").strip()
    except OSError:
        logger.warning("IMEI file not found or not readable: %s", imei_path)
        return default
    if not imei:
        logger.warning("IMEI file is empty: %s", imei_path)
        return default
    return imei


def load_device_config(path: str | Path, *, imei_path: str | Path | None = None) -> DeviceConfig:
    config_path = Path(path)
    try:
        text = config_path.read_text(encoding="utf-8")
    except OSError:
        logger.warning("Config file not found or not readable: %s", config_path)
        config = DeviceConfig()
    else:
        config = parse_device_config(text)
        logger.info("Config loaded from %s", config_path)

    if imei_path is not None:
        config = replace(config, imei=load_device_imei(imei_path, default=""))
    logger.info(
        "Current config: base_url=%s qr_code_url=%s imei=%s secret_key_set=%s",
        config.base_url or "<default>",
        config.qr_code_url or "<default>",
        config.imei or "<default>",
        bool(config.secret_key),
    )
    return config
