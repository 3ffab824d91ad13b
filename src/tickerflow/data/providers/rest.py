"""Shared plumbing for providers that talk JSON over HTTP."""

import decimal
from abc import abstractmethod
from typing import Any
from urllib.parse import urlparse

import aiohttp

from ...utils.logging import get_logger
from ..provider import Fatal, Ok, Provider, ProviderResponse, classify_status
from ..requests import RequestKey

logger = get_logger(__name__)

# Errors a payload parser may raise on malformed or unexpected JSON.
PARSE_ERRORS = (
    AttributeError,
    KeyError,
    IndexError,
    TypeError,
    ValueError,
    decimal.InvalidOperation,
)


class RestProvider(Provider):
    """Base class for HTTP/JSON providers.

    Subclasses describe the request for a key and parse the payload; this class
    performs the GET, maps HTTP status codes to outcomes and turns parse
    failures into :class:`Fatal`. Network errors are left to propagate so the
    rate limiter can classify them as retryable.
    """

    BASE_URL = ""

    def __init__(self, api_key: str, timeout: float = 10.0) -> None:
        """Initialize the provider.

        Args:
            api_key: API key for the upstream service
            timeout: Total timeout per HTTP request in seconds
        """
        if not api_key:
            raise ValueError(f"{type(self).__name__} requires an API key")

        self.api_key = api_key
        self.timeout = timeout
        self.host = urlparse(self.BASE_URL).netloc

    async def _request(
        self,
        url: str,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> tuple[int, Any]:
        """Perform a GET request.

        Returns:
            Tuple of HTTP status and decoded JSON (response text on errors)
        """
        timeout = aiohttp.ClientTimeout(total=self.timeout)
        async with aiohttp.ClientSession(timeout=timeout) as session:
            async with session.get(url, params=params, headers=headers) as response:
                if response.status != 200:
                    return response.status, await response.text()
                return response.status, await response.json(content_type=None)

    @abstractmethod
    def _build_request(
        self, key: RequestKey
    ) -> tuple[str, dict[str, Any], dict[str, str] | None]:
        """URL, query parameters and headers for a request."""
        pass

    @abstractmethod
    def _parse(self, key: RequestKey, payload: Any) -> Any:
        """Convert a JSON payload into a domain value (None when there is no data)."""
        pass

    def _check_payload(self, payload: Any) -> ProviderResponse | None:
        """Detect error bodies delivered with HTTP 200."""
        return None

    async def fetch(self, key: RequestKey) -> ProviderResponse:
        if not self.supports(key.kind):
            return Fatal(f"{self.provider_id} does not serve {key.kind.value}")

        url, params, headers = self._build_request(key)
        logger.debug("provider_request", provider=self.provider_id, key=str(key), url=url)

        status, payload = await self._request(url, params, headers)
        if status != 200:
            body = payload if isinstance(payload, str) else ""
            reason = f"{self.provider_id}: HTTP {status}"
            if body:
                reason = f"{reason}: {body[:200]}"
            return classify_status(status, reason)

        error = self._check_payload(payload)
        if error is not None:
            return error

        try:
            value = self._parse(key, payload)
        except PARSE_ERRORS as e:
            logger.warning(
                "provider_parse_error",
                provider=self.provider_id,
                key=str(key),
                error=str(e),
                error_type=type(e).__name__,
            )
            return Fatal(f"{self.provider_id}: cannot parse response: {type(e).__name__}: {e}")

        if value is None:
            return Fatal(f"{self.provider_id}: no data for {key}")

        logger.debug("provider_response_parsed", provider=self.provider_id, key=str(key))
        return Ok(value)


def to_decimal(value: Any) -> decimal.Decimal | None:
    """Convert a JSON number or numeric string to Decimal, None if missing."""
    if value is None or value in ("", "None", "-"):
        return None
    return decimal.Decimal(str(value))


def to_float(value: Any) -> float | None:
    if value is None or value in ("", "None", "-"):
        return None
    return float(value)


def to_int(value: Any) -> int | None:
    if value is None or value in ("", "None", "-"):
        return None
    return int(float(value))
