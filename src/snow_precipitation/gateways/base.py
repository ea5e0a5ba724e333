"""Shared HTTP plumbing for upstream weather and geocoding gateways."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

import httpx

from ..cache import ResponseCache
from ..exceptions import NotFoundError, UpstreamAuthError, UpstreamError
from ..redaction import sanitize_text

JSONPayload = dict[str, Any] | list[Any]

_BODY_PREVIEW_CHARS = 300


class HTTPGateway:
    """Base for request/response translators to one upstream provider.

    Subclasses call `_request_json`, which maps provider failures onto the
    package error taxonomy: 401 -> UpstreamAuthError, 404 -> NotFoundError,
    anything else -> UpstreamError.
    """

    provider_name = "upstream"

    def __init__(
        self,
        *,
        base_url: str,
        user_agent: str,
        timeout_seconds: float,
        logger: logging.Logger,
        cache: ResponseCache | None = None,
        auth: tuple[str, str] | None = None,
        accept: str = "application/json",
    ) -> None:
        self.logger = logger
        self.cache = cache
        self._client = httpx.Client(
            base_url=base_url.rstrip("/"),
            timeout=timeout_seconds,
            auth=auth,
            headers={"Accept": accept, "User-Agent": user_agent},
        )

    def __enter__(self) -> HTTPGateway:
        return self

    def __exit__(self, exc_type: Any, exc: Any, exc_tb: Any) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    def _cached(
        self,
        key: str,
        ttl_seconds: float,
        loader: Callable[[], JSONPayload],
    ) -> JSONPayload:
        """Read-through cache around a successful upstream call."""
        if self.cache is not None:
            cached = self.cache.get(key)
            if cached is not None:
                self.logger.debug("%s cache hit for %s", self.provider_name, key)
                return cached
        payload = loader()
        if self.cache is not None:
            self.cache.set(key, payload, ttl_seconds)
        return payload

    def _request_json(
        self,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        context: str,
    ) -> JSONPayload:
        try:
            response = self._client.get(path, params=params)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            body = sanitize_text(exc.response.text[:_BODY_PREVIEW_CHARS])
            if status == 401:
                raise UpstreamAuthError(
                    f"{self.provider_name} {context} rejected the configured credentials."
                ) from exc
            if status == 404:
                raise NotFoundError(f"{self.provider_name} {context} found no matching data.") from exc
            raise UpstreamError(
                f"{self.provider_name} {context} failed with status {status}: {body}",
                provider=self.provider_name,
                status_code=status,
                body=body,
            ) from exc
        except httpx.HTTPError as exc:
            raise UpstreamError(
                f"{self.provider_name} {context} request failed: "
                f"{sanitize_text(str(exc)) or type(exc).__name__}",
                provider=self.provider_name,
            ) from exc

        try:
            payload = response.json()
        except ValueError as exc:
            raise UpstreamError(
                f"{self.provider_name} {context} returned a non-JSON response.",
                provider=self.provider_name,
                status_code=response.status_code,
                body=sanitize_text(response.text[:_BODY_PREVIEW_CHARS]),
            ) from exc

        if not isinstance(payload, (dict, list)):
            raise UpstreamError(
                f"{self.provider_name} {context} returned unexpected payload type "
                f"{type(payload).__name__}.",
                provider=self.provider_name,
                status_code=response.status_code,
            )
        return payload

    @staticmethod
    def _as_str(value: Any) -> str | None:
        if isinstance(value, str) and value.strip():
            return value.strip()
        return None

    @staticmethod
    def _as_int(value: Any) -> int | None:
        if isinstance(value, bool):
            return None
        if isinstance(value, int):
            return value
        if isinstance(value, str) and value.strip().isdigit():
            return int(value.strip())
        return None

    @staticmethod
    def _as_float(value: Any) -> float | None:
        if isinstance(value, bool):
            return None
        if isinstance(value, (int, float)):
            return float(value)
        if isinstance(value, str):
            try:
                return float(value.strip())
            except ValueError:
                return None
        return None

    @staticmethod
    def _parse_datetime(value: Any) -> datetime | None:
        if value is None:
            return None
        if isinstance(value, datetime):
            return value.astimezone(UTC) if value.tzinfo else value.replace(tzinfo=UTC)
        if isinstance(value, str):
            candidate = value.strip()
            if not candidate:
                return None
            if candidate.endswith("Z"):
                candidate = candidate[:-1] + "+00:00"
            try:
                parsed = datetime.fromisoformat(candidate)
            except ValueError:
                return None
            return parsed.astimezone(UTC) if parsed.tzinfo else parsed.replace(tzinfo=UTC)
        return None
