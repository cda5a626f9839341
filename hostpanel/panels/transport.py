"""
HTTP transport owned by a single hosting panel adapter.

Wraps one ``httpx.AsyncClient`` per adapter instance. Transport failures and
non-2xx responses are raised as ``PanelError`` subclasses so the adapter's
operation guard can normalize them.
"""

import asyncio
import logging
import xml.etree.ElementTree as ET
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar
from urllib.parse import parse_qs

import httpx
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_incrementing,
)

from hostpanel.panels.config import PanelConnection
from hostpanel.panels.errors import PanelHttpError, PanelNetworkError, PanelParseError, truncate
from hostpanel.panels.types import ErrorCode

logger = logging.getLogger(__name__)

T = TypeVar("T")


# ---------------------------------------------------------------------------
# Retry policies
# ---------------------------------------------------------------------------


class RetryPolicy(ABC):
    """Decides whether a failed round trip is attempted again."""

    @abstractmethod
    async def run(self, attempt: Callable[[], Awaitable[T]]) -> T:
        """Execute ``attempt`` one or more times and return its result."""


class NoRetry(RetryPolicy):
    """Exactly one attempt. The default for every adapter."""

    async def run(self, attempt: Callable[[], Awaitable[T]]) -> T:
        return await attempt()


class RetryOnNetworkError(RetryPolicy):
    """Retry transport-level failures only, with linear backoff.

    HTTP status and vendor failures are never retried.
    """

    def __init__(self, max_attempts: int = 3, backoff_seconds: float = 0.5) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self.backoff_seconds = backoff_seconds

    async def run(self, attempt: Callable[[], Awaitable[T]]) -> T:
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_incrementing(start=self.backoff_seconds, increment=self.backoff_seconds),
            retry=retry_if_exception_type(PanelNetworkError),
            sleep=_sleep,
            before_sleep=self._log_retry,
            reraise=True,
        )
        return await retrying(attempt)

    def _log_retry(self, retry_state: RetryCallState) -> None:
        error = retry_state.outcome.exception() if retry_state.outcome else None
        logger.info(
            f"Network error on attempt {retry_state.attempt_number}/{self.max_attempts}, "
            f"retrying: {error}"
        )


async def _sleep(seconds: float) -> None:
    await asyncio.sleep(seconds)


# ---------------------------------------------------------------------------
# URL resolution
# ---------------------------------------------------------------------------


def build_base_url(api_url: str, port: int | None, use_https: bool) -> str:
    """Resolve the panel base URL from the configured pieces.

    A scheme or port already present in ``api_url`` wins over ``use_https`` /
    ``port``.
    """
    raw = api_url.strip()
    if "://" not in raw:
        raw = f"{'https' if use_https else 'http'}://{raw}"
    url = httpx.URL(raw)
    if url.port is None and port:
        url = url.copy_with(port=port)
    return str(url).rstrip("/")


# ---------------------------------------------------------------------------
# Transport
# ---------------------------------------------------------------------------


class PanelTransport:
    """One owned HTTP client with immutable defaults.

    Example:
        >>> transport = PanelTransport(config, default_port=2087,
        ...                            headers={"Authorization": "whm root:TOKEN"})
        >>> response = await transport.request("GET", "/json-api/listaccts")
        >>> await transport.aclose()
    """

    def __init__(
        self,
        config: PanelConnection,
        *,
        default_port: int | None = None,
        headers: dict[str, str] | None = None,
        auth: httpx.Auth | tuple[str, str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        retry_policy: RetryPolicy | None = None,
    ) -> None:
        self.base_url = build_base_url(
            config.api_url, config.port or default_port, config.use_https
        )
        self._retry_policy = retry_policy or NoRetry()
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers=headers or {},
            auth=auth,
            timeout=config.timeout_seconds,
            verify=config.verify_ssl,
            transport=transport,
        )

    @property
    def is_closed(self) -> bool:
        return self._client.is_closed

    async def request(
        self,
        method: str,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        data: dict[str, Any] | None = None,
        json: Any = None,
        content: str | bytes | None = None,
        headers: dict[str, str] | None = None,
        auth: httpx.Auth | tuple[str, str] | None = None,
    ) -> httpx.Response:
        """Perform one round trip; raises on transport failure or non-2xx."""
        kwargs: dict[str, Any] = {}
        if params is not None:
            kwargs["params"] = params
        if data is not None:
            kwargs["data"] = data
        if json is not None:
            kwargs["json"] = json
        if content is not None:
            kwargs["content"] = content
        if headers is not None:
            kwargs["headers"] = headers
        if auth is not None:
            kwargs["auth"] = auth

        async def attempt() -> httpx.Response:
            logger.debug(f"{method} {url}", extra={"base_url": self.base_url})
            try:
                response = await self._client.request(method, url, **kwargs)
            except httpx.TimeoutException as e:
                raise PanelNetworkError(
                    f"Request to {self.base_url} timed out: {e}", ErrorCode.TIMEOUT
                ) from e
            except httpx.TransportError as e:
                raise PanelNetworkError(f"Could not reach {self.base_url}: {e}") from e

            if not response.is_success:
                raise PanelHttpError(response.status_code, response.text)
            return response

        return await self._retry_policy.run(attempt)

    async def aclose(self) -> None:
        await self._client.aclose()


# ---------------------------------------------------------------------------
# Body decoders
# ---------------------------------------------------------------------------


def decode_json(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError as e:
        raise PanelParseError(
            f"Invalid JSON response: {truncate(response.text, 200) or 'empty body'}",
            ErrorCode.JSON_PARSE_ERROR,
        ) from e


def decode_json_object(response: httpx.Response) -> dict[str, Any]:
    payload = decode_json(response)
    if not isinstance(payload, dict):
        raise PanelParseError(
            f"Expected a JSON object, got {type(payload).__name__}", ErrorCode.JSON_PARSE_ERROR
        )
    return payload


def decode_xml(response: httpx.Response) -> ET.Element:
    try:
        return ET.fromstring(response.content)
    except ET.ParseError as e:
        raise PanelParseError(f"Invalid XML response: {e}", ErrorCode.XML_PARSE_ERROR) from e


def decode_form(text: str) -> dict[str, list[str]]:
    """Parse an ``application/x-www-form-urlencoded`` style body."""
    return parse_qs(text.strip(), keep_blank_values=True)
