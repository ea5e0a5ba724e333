"""Application exception classes."""

from __future__ import annotations


class ConfigError(Exception):
    """Raised when configuration is invalid or incomplete."""


class WeatherDataError(Exception):
    """Base class for upstream weather data failures."""


class NotConfiguredError(WeatherDataError):
    """Raised when a required provider credential is absent; no call was attempted."""


class UpstreamAuthError(WeatherDataError):
    """Raised when a provider rejects the configured credentials (HTTP 401)."""


class NotFoundError(WeatherDataError):
    """Raised when a provider reports no matching entity (HTTP 404).

    The Frost and geocoding gateways absorb it into an empty result.
    """


class UpstreamError(WeatherDataError):
    """Raised for other provider failures, keeping status/body for diagnostics."""

    def __init__(
        self,
        message: str,
        *,
        provider: str = "unknown",
        status_code: int | None = None,
        body: str | None = None,
    ) -> None:
        super().__init__(message)
        self.provider = provider
        self.status_code = status_code
        self.body = body


class InputError(WeatherDataError):
    """Raised when required request input is missing or invalid."""
