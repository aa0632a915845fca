"""Validation helpers shared by service settings."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from pydantic_settings import EnvSettingsSource

if TYPE_CHECKING:
    from pydantic.fields import FieldInfo

WILDCARD_ORIGIN = "*"


def parse_cors_origins(value: str | list[str]) -> list[str]:
    """Parse allowed CORS origins from an env var or a config value.

    Accepts a list, a JSON array string ('["a","b"]'), a comma-separated
    string ('a,b') or the wildcard '*'. Empty input is rejected: a server
    that allows no origins at all is a misconfiguration.
    """
    if isinstance(value, list):
        origins = [origin.strip() for origin in value if origin.strip()]
    else:
        stripped = value.strip()
        if stripped.startswith("["):
            try:
                parsed = json.loads(stripped)
            except json.JSONDecodeError as e:
                raise ValueError(f"Invalid JSON array: {e}") from e
            if not isinstance(parsed, list) or not all(isinstance(item, str) for item in parsed):
                raise ValueError("JSON value must be an array of strings")
            origins = [origin.strip() for origin in parsed if origin.strip()]
        else:
            origins = [origin.strip() for origin in stripped.split(",") if origin.strip()]

    if not origins:
        raise ValueError("cors_origins must not be empty")
    if WILDCARD_ORIGIN in origins and len(origins) > 1:
        raise ValueError("'*' cannot be combined with explicit origins")
    return origins


class CorsEnvSettingsSource(EnvSettingsSource):
    """Env source that hands cors_origins to the field validator as a raw string.

    pydantic-settings would otherwise try to JSON-decode list fields itself
    and fail on the comma-separated form.
    """

    def prepare_field_value(
        self,
        field_name: str,
        field: FieldInfo,
        value: Any,  # noqa: ANN401
        value_is_complex: bool,  # noqa: FBT001
    ) -> Any:  # noqa: ANN401
        if field_name == "cors_origins" and isinstance(value, str):
            return value
        return super().prepare_field_value(field_name, field, value, value_is_complex)
