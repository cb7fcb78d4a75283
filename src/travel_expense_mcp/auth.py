"""Concur OAuth2 credentials and access token lifecycle."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

import httpx
from pydantic import ValidationError as PydanticValidationError

from .errors import AuthConfigError, ConnectionFailedError, TokenRefreshError
from .models import TokenResponse

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Credentials:
    access_token: str | None = None
    refresh_token: str | None = None
    client_id: str | None = None
    client_secret: str | None = None

    @property
    def can_refresh(self) -> bool:
        return bool(self.refresh_token and self.client_id and self.client_secret)

    @property
    def has_client_credentials(self) -> bool:
        return bool(self.client_id and self.client_secret)

    @property
    def is_viable(self) -> bool:
        return bool(self.access_token) or self.has_client_credentials


def require_viable(credentials: Credentials) -> Credentials:
    """Startup check: fail fast when no credential combination can work."""
    if not credentials.is_viable:
        raise AuthConfigError(
            "At least one of CONCUR_ACCESS_TOKEN, CONCUR_REFRESH_TOKEN with client "
            "credentials, or CONCUR_CLIENT_ID and CONCUR_CLIENT_SECRET is required."
        )
    return credentials


class TokenManager:
    """Owns the current access/refresh token pair for one server process.

    Token exchanges are single-flight: one ``asyncio.Lock`` serialises them and
    a caller that waited behind an exchange reuses its result instead of
    spending the (possibly rotated) refresh token a second time.
    """

    def __init__(
        self,
        credentials: Credentials,
        *,
        token_url: str,
        timeout: float = 10.0,
    ) -> None:
        self._access_token = credentials.access_token or None
        self._refresh_token = credentials.refresh_token or None
        self._client_id = credentials.client_id
        self._client_secret = credentials.client_secret
        self.token_url = token_url
        self.timeout = timeout
        self._lock = asyncio.Lock()

    @property
    def access_token(self) -> str | None:
        return self._access_token

    @property
    def refresh_token(self) -> str | None:
        return self._refresh_token

    @property
    def can_refresh(self) -> bool:
        return bool(self._refresh_token and self._client_id and self._client_secret)

    @property
    def refresh_in_progress(self) -> bool:
        return self._lock.locked()

    async def ensure_access_token(self) -> str:
        """Return a usable access token, fetching one when none is held."""
        if self._access_token:
            return self._access_token

        async with self._lock:
            if self._access_token:
                return self._access_token
            if self.can_refresh:
                return await self._exchange_refresh_token()
            if self._client_id and self._client_secret:
                return await self._exchange_client_credentials()
            raise AuthConfigError("No access token, refresh token, or client credentials provided")

    async def refresh(self, stale_token: str | None = None) -> str:
        """Exchange the refresh token for a new access token.

        ``stale_token`` is the token the caller saw rejected. If another caller
        already replaced it while this one waited, the new token is returned
        without another exchange.
        """
        if not self.can_refresh:
            raise AuthConfigError(
                "Cannot refresh token: Missing refresh token or client credentials."
            )

        async with self._lock:
            if stale_token is not None and self._access_token and self._access_token != stale_token:
                logger.info("concur_token_refresh_joined")
                return self._access_token
            return await self._exchange_refresh_token()

    async def _exchange_refresh_token(self) -> str:
        logger.info("concur_token_refresh_started")
        payload = await self._post_token_request(
            {
                "client_id": self._client_id or "",
                "client_secret": self._client_secret or "",
                "grant_type": "refresh_token",
                "refresh_token": self._refresh_token or "",
            },
            failure_prefix="Failed to refresh token",
        )
        self._access_token = payload.access_token
        if payload.refresh_token:
            self._refresh_token = payload.refresh_token
            logger.info("concur_refresh_token_rotated")
        logger.info("concur_token_refreshed")
        return payload.access_token

    async def _exchange_client_credentials(self) -> str:
        logger.info("concur_client_credentials_exchange_started")
        payload = await self._post_token_request(
            {
                "client_id": self._client_id or "",
                "client_secret": self._client_secret or "",
                "grant_type": "client_credentials",
            },
            failure_prefix="Failed to authenticate",
        )
        self._access_token = payload.access_token
        return payload.access_token

    async def _post_token_request(
        self, data: dict[str, str], *, failure_prefix: str
    ) -> TokenResponse:
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    self.token_url,
                    data=data,
                    headers={"Accept": "application/json"},
                )
        except httpx.HTTPError as exc:
            logger.warning("concur_token_endpoint_unreachable: %s", exc)
            raise ConnectionFailedError(f"{failure_prefix}: {exc}") from exc

        if response.status_code >= 400:
            body = _read_body(response)
            logger.warning("concur_token_exchange_rejected status=%s", response.status_code)
            raise TokenRefreshError(
                f"{failure_prefix}: {response.status_code} {response.reason_phrase} - {response.text}",
                status_code=response.status_code,
                body=body,
            )

        try:
            return TokenResponse.model_validate(response.json())
        except (ValueError, PydanticValidationError) as exc:
            raise TokenRefreshError(
                f"{failure_prefix}: token response missing access_token",
                status_code=response.status_code,
                body=_read_body(response),
            ) from exc


def _read_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text or None
