"""Service configuration loaded from environment variables.

Azure Functions app settings (or ``local.settings.json`` for local dev)
are the source of truth.

``from_env()`` raises ``ConfigValidationError`` if any value is out of
its valid range, so bad configuration is caught at startup rather than
on the first form submission.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from scd_riparian.core.constants import (
    DEFAULT_KML_UPLOAD_CONTAINER,
    DEFAULT_QUICK_FORM_CONFIG_CONTAINER,
    LAND_TYPE_SEGMENT,
)
from scd_riparian.core.exceptions import RiparianError

BACKEND_MEMORY = "memory"
BACKEND_FARMOS = "farmos"

_KNOWN_BACKENDS = frozenset({BACKEND_MEMORY, BACKEND_FARMOS})


class ConfigValidationError(RiparianError):
    """Raised when configuration values are out of valid range.

    Attributes:
        key: The configuration key that failed validation.
        value: The invalid value.
        message: Human-readable description of the valid range.
    """

    default_stage = "config"
    default_code = "CONFIG_VALIDATION_FAILED"

    def __init__(self, key: str, value: object, message: str) -> None:
        self.key = key
        self.value = value
        super().__init__(f"Invalid configuration {key}={value!r}: {message}")


@dataclass(frozen=True, slots=True)
class RiparianConfig:
    """Immutable service configuration.

    Loaded once per worker and handed to the repository and quick forms.

    Attributes:
        backend: Storage backend (``memory`` or ``farmos``).
        farmos_base_url: Base URL of the farmOS instance (``farmos`` backend).
        farmos_access_token: OAuth2 bearer token for the farmOS API.
        kml_upload_container: Blob container that archives KML uploads.
            Empty disables archiving.
        quick_form_config_container: Blob container for quick form configuration.
        default_timezone: IANA zone used for users without their own timezone.
        default_week_interval: Default weeks between scheduled occurrences.
        sub_site_land_type: Land type offered as sub-sites of a site.
        http_timeout_s: Timeout for outbound farmOS requests, in seconds.
    """

    backend: str = BACKEND_MEMORY
    farmos_base_url: str = ""
    farmos_access_token: str = ""
    kml_upload_container: str = DEFAULT_KML_UPLOAD_CONTAINER
    quick_form_config_container: str = DEFAULT_QUICK_FORM_CONFIG_CONTAINER
    default_timezone: str = "UTC"
    default_week_interval: int = 2
    sub_site_land_type: str = LAND_TYPE_SEGMENT
    http_timeout_s: float = 30.0

    @classmethod
    def from_env(cls) -> RiparianConfig:
        """Load and validate configuration from environment variables.

        Raises:
            ConfigValidationError: If a value is out of range or a
                required string value is empty.
            ValueError: If a numeric environment variable cannot be
                parsed (e.g. ``DEFAULT_WEEK_INTERVAL=abc``).
        """
        config = cls(
            backend=os.getenv("RIPARIAN_BACKEND", BACKEND_MEMORY).strip().lower(),
            farmos_base_url=os.getenv("FARMOS_BASE_URL", "").rstrip("/"),
            farmos_access_token=os.getenv("FARMOS_ACCESS_TOKEN", ""),
            kml_upload_container=os.getenv("KML_UPLOAD_CONTAINER", DEFAULT_KML_UPLOAD_CONTAINER),
            quick_form_config_container=os.getenv(
                "QUICK_FORM_CONFIG_CONTAINER", DEFAULT_QUICK_FORM_CONFIG_CONTAINER
            ),
            default_timezone=os.getenv("DEFAULT_TIMEZONE", "UTC"),
            default_week_interval=int(os.getenv("DEFAULT_WEEK_INTERVAL", "2")),
            sub_site_land_type=os.getenv("SUB_SITE_LAND_TYPE", LAND_TYPE_SEGMENT),
            http_timeout_s=float(os.getenv("HTTP_TIMEOUT_S", "30")),
        )
        _validate(config)
        return config

    @property
    def timezone(self) -> ZoneInfo:
        """Return the default timezone as a ``ZoneInfo``."""
        return ZoneInfo(self.default_timezone)


def _validate(config: RiparianConfig) -> None:
    """Validate configuration ranges.  Raises ``ConfigValidationError``."""
    if config.backend not in _KNOWN_BACKENDS:
        raise ConfigValidationError(
            "RIPARIAN_BACKEND",
            config.backend,
            f"must be one of {', '.join(sorted(_KNOWN_BACKENDS))}",
        )

    if config.backend == BACKEND_FARMOS and not config.farmos_base_url:
        raise ConfigValidationError(
            "FARMOS_BASE_URL",
            config.farmos_base_url,
            "must not be empty when RIPARIAN_BACKEND=farmos",
        )

    if config.default_week_interval < 1:
        raise ConfigValidationError(
            "DEFAULT_WEEK_INTERVAL",
            config.default_week_interval,
            "must be >= 1 (weeks)",
        )

    if config.http_timeout_s <= 0:
        raise ConfigValidationError(
            "HTTP_TIMEOUT_S",
            config.http_timeout_s,
            "must be > 0 (seconds)",
        )

    if not config.sub_site_land_type:
        raise ConfigValidationError(
            "SUB_SITE_LAND_TYPE",
            config.sub_site_land_type,
            "must not be empty",
        )

    if not config.quick_form_config_container:
        raise ConfigValidationError(
            "QUICK_FORM_CONFIG_CONTAINER",
            config.quick_form_config_container,
            "must not be empty",
        )

    try:
        ZoneInfo(config.default_timezone)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ConfigValidationError(
            "DEFAULT_TIMEZONE",
            config.default_timezone,
            "must be an IANA timezone name (e.g. America/Los_Angeles)",
        ) from exc
