"""Unearthed API client for fetching sources, tags and daily reflections."""

import logging
from typing import Any

import httpx

from .models import DailyReflection, Source, Tag

logger = logging.getLogger(__name__)

SECRET_SEPARATOR = "~~~"


class UnearthedAPIError(Exception):
    """Base exception for Unearthed API errors."""


class UnearthedConnectionError(UnearthedAPIError):
    """Request timed out, failed on the network, or returned an error status."""


class UnearthedAuthError(UnearthedAPIError):
    """API key or session secret was rejected."""


class UnearthedClient:
    """
    API client for the Unearthed public API.

    The API key alone is only accepted by the ``connect`` endpoint, which hands
    out a session secret. Every other call authenticates with
    ``<api key>~~~<secret>``.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        secret: str | None = None,
        timeout: float = 30.0,
        connect_timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize the Unearthed API client.

        Args:
            base_url: API root (e.g., https://unearthed.app/api/public)
            api_key: User API key copied from unearthed.app
            secret: Cached session secret from an earlier connect, if any
            timeout: Timeout for bulk fetches, in seconds
            connect_timeout: Timeout for the connect handshake, in seconds
        """
        if not api_key:
            raise ValueError("Unearthed API key is required")
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.secret = secret
        self.connect_timeout = connect_timeout
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(timeout, connect=connect_timeout),
            transport=transport,
        )

    async def close(self) -> None:
        """Close HTTP client connections."""
        await self._client.aclose()

    async def __aenter__(self) -> "UnearthedClient":
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()

    def _get_headers(self, authorization: str) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {authorization}",
            "Content-Type": "application/json",
        }

    async def _get(self, endpoint: str, authorization: str, timeout: float | None = None) -> dict[str, Any]:
        """GET an endpoint and return its decoded JSON body.

        Raises:
            UnearthedAuthError: On 401/403
            UnearthedConnectionError: On timeouts, network errors, other
                non-2xx statuses and undecodable bodies
        """
        url = f"{self.base_url}/{endpoint}"
        kwargs: dict[str, Any] = {"headers": self._get_headers(authorization)}
        if timeout is not None:
            kwargs["timeout"] = timeout

        try:
            response = await self._client.get(url, **kwargs)
        except httpx.TimeoutException as e:
            logger.error(f"Request to {endpoint} timed out: {e}")
            raise UnearthedConnectionError(f"Request to {endpoint} timed out") from e
        except httpx.HTTPError as e:
            logger.error(f"Request to {endpoint} failed: {e}")
            raise UnearthedConnectionError(f"Request to {endpoint} failed: {e}") from e

        if response.status_code in (401, 403):
            logger.error(f"Unearthed rejected credentials for {endpoint}: HTTP {response.status_code}")
            raise UnearthedAuthError(f"Unearthed rejected the credentials (HTTP {response.status_code})")

        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(f"Request to {endpoint} failed: HTTP {e.response.status_code}")
            logger.debug(f"Response: {e.response.text}")
            raise UnearthedConnectionError(
                f"Request to {endpoint} failed with HTTP {e.response.status_code}"
            ) from e

        try:
            body = response.json()
        except ValueError as e:
            raise UnearthedConnectionError(f"Invalid JSON from {endpoint}") from e
        if not isinstance(body, dict):
            raise UnearthedConnectionError(f"Unexpected response shape from {endpoint}")
        return body

    async def connect(self) -> str:
        """
        Exchange the API key for a session secret.

        Returns:
            The session secret (also stored on the client)
        """
        logger.info("Connecting to Unearthed")
        body = await self._get("connect", self.api_key, timeout=self.connect_timeout)
        secret = (body.get("data") or {}).get("secret")
        if not secret:
            raise UnearthedAuthError("Unearthed did not return a session secret")
        self.secret = secret
        logger.info("Connected to Unearthed")
        return secret

    async def ensure_session(self) -> str:
        """Connect only when no session secret is held."""
        if self.secret:
            return self.secret
        return await self.connect()

    @staticmethod
    def _records(body: dict[str, Any], endpoint: str) -> list[dict[str, Any]]:
        """Return ``body["data"]`` as a list of objects, or raise on any other shape."""
        data = body.get("data")
        if data is None:
            return []
        if not isinstance(data, list) or not all(isinstance(item, dict) for item in data):
            raise UnearthedConnectionError(f"Unexpected data shape from {endpoint}")
        return data

    def _session_authorization(self) -> str:
        if not self.secret:
            raise RuntimeError("No session secret. Call ensure_session() first.")
        return f"{self.api_key}{SECRET_SEPARATOR}{self.secret}"

    async def fetch_sources(self) -> list[Source]:
        """Fetch every source with its quotes."""
        await self.ensure_session()
        body = await self._get("obsidian-get", self._session_authorization())
        records = self._records(body, "obsidian-get")
        for record in records:
            quotes = record.get("quotes") or []
            if not isinstance(quotes, list) or not all(isinstance(q, dict) for q in quotes):
                raise UnearthedConnectionError(f"Unexpected quotes shape for source {record.get('id')}")
        sources = [Source.from_api(item) for item in records]
        logger.info(f"Fetched {len(sources)} sources from Unearthed")
        return sources

    async def fetch_tags(self) -> list[Tag]:
        """Fetch every tag with the ids of the sources it groups."""
        await self.ensure_session()
        body = await self._get("obsidian-get-tags", self._session_authorization())
        if not body.get("success"):
            raise UnearthedConnectionError("Unearthed reported a failure fetching tags")
        tags = [Tag.from_api(item) for item in self._records(body, "obsidian-get-tags")]
        logger.info(f"Fetched {len(tags)} tags from Unearthed")
        return tags

    async def fetch_daily_reflection(self) -> DailyReflection | None:
        """
        Fetch today's reflection.

        Returns:
            The reflection, or None when the service has none to offer
        """
        await self.ensure_session()
        body = await self._get("daily-reflection", self._session_authorization())
        data = body.get("data") or {}
        if not isinstance(data, dict):
            raise UnearthedConnectionError("Unexpected data shape from daily-reflection")
        payload = data.get("dailyReflection")
        if not payload:
            logger.info("No daily reflection available")
            return None
        if not isinstance(payload, dict):
            raise UnearthedConnectionError("Unexpected daily reflection shape from daily-reflection")
        return DailyReflection.from_api(payload)
