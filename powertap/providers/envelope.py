"""Uniform response envelope returned by every power bank endpoint.

The ``data`` field is polymorphic: depending on the endpoint it is absent, a
string, or a JSON object. Call sites narrow it with one of the ``expect_*``
methods, which raise :class:`ResponseShapeError` instead of casting blindly.
"""
from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from powertap.providers.errors import ResponseFormatError, ResponseShapeError


SUCCESS_CODE = 200


def _shape_name(value: Any) -> str:
    if value is None:
        return "absent"
    if isinstance(value, str):
        return "string"
    if isinstance(value, dict):
        return "mapping"
    if isinstance(value, list):
        return "list"
    return type(value).__name__


class ResponseEnvelope(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    # A missing code deserialises to 0, which is never a success.
    code: int = 0
    message: str = ""
    data: Any = None

    @field_validator("message", mode="before")
    @classmethod
    def _coerce_message(cls, value: object) -> str:
        if isinstance(value, str):
            return value
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, int | float):
            return str(value)
        # Null and structured values carry no readable message.
        return ""

    @classmethod
    def from_payload(cls, payload: object) -> "ResponseEnvelope":
        if not isinstance(payload, dict):
            raise ResponseFormatError(f"Envelope must be a JSON object, got {_shape_name(payload)}.")
        try:
            return cls.model_validate(payload)
        except ValidationError as exc:
            raise ResponseFormatError(f"Envelope fields are invalid: {exc.error_count()} error(s).", upstream_payload=payload) from exc

    @property
    def is_success(self) -> bool:
        return self.code == SUCCESS_CODE

    def expect_text(self) -> str:
        if not isinstance(self.data, str):
            raise ResponseShapeError(
                f"Expected string data, got {_shape_name(self.data)}.",
                expected="string",
                actual=_shape_name(self.data),
            )
        return self.data

    def expect_mapping(self) -> dict[str, Any]:
        if not isinstance(self.data, dict) or not all(isinstance(key, str) for key in self.data):
            raise ResponseShapeError(
                f"Expected mapping data, got {_shape_name(self.data)}.",
                expected="mapping",
                actual=_shape_name(self.data),
            )
        return dict(self.data)

    def expect_text_entries(self, *required: str) -> dict[str, str]:
        """Returns the string-valued entries of a mapping payload.

        Entries with any other value are dropped. Each key in ``required``
        must be present with a string value.
        """
        mapping = self.expect_mapping()
        missing = [key for key in required if not isinstance(mapping.get(key), str)]
        if missing:
            raise ResponseShapeError(
                f"Expected string values for: {', '.join(missing)}.",
                expected="mapping[str, str]",
                actual=", ".join(f"{key}={_shape_name(mapping.get(key))}" for key in missing),
            )
        return {key: value for key, value in mapping.items() if isinstance(value, str)}
