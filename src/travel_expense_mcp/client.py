"""HTTP client for the SAP Concur APIs with refresh-on-401 retry."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from .auth import TokenManager
from .errors import ApiError, ConnectionFailedError

logger = logging.getLogger(__name__)

_PLAIN_TEXT_DETAIL_LIMIT = 200


class ConcurClient:
    """Authenticated transport for Concur resource endpoints.

    Responses are returned undecoded because the API mixes JSON (v3.0, v4) and
    XML (v1.1, image v1.0) payloads.
    """

    def __init__(
        self,
        tokens: TokenManager,
        *,
        base_url: str,
        http: httpx.AsyncClient | None = None,
    ) -> None:
        self.tokens = tokens
        self.http = http or httpx.AsyncClient(
            base_url=base_url,
            timeout=httpx.Timeout(
                connect=10.0,
                read=30.0,
                write=10.0,
                pool=10.0,
            ),
        )

    async def aclose(self) -> None:
        await self.http.aclose()

    async def request(
        self,
        method: str,
        url: str,
        *,
        context: str,
        params: dict[str, Any] | None = None,
        json: Any = None,
        content: bytes | str | None = None,
        headers: dict[str, str] | None = None,
        retry_on_401: bool = True,
    ) -> httpx.Response:
        """Send an authenticated request.

        ``context`` labels the operation in logs and error messages. A 401 is
        answered with one token refresh and one retry when refresh credentials
        are configured; every other non-2xx status raises ``ApiError``.
        """
        token = await self.tokens.ensure_access_token()
        request_headers = {"Accept": "application/json"}
        if headers:
            request_headers.update(headers)
        request_headers["Authorization"] = f"Bearer {token}"

        try:
            response = await self.http.request(
                method,
                url,
                params=params,
                json=json,
                content=content,
                headers=request_headers,
            )
        except httpx.TimeoutException as exc:
            raise ConnectionFailedError(f"concur_timeout: Request for {context} timed out") from exc
        except httpx.HTTPError as exc:
            raise ConnectionFailedError(f"concur_connection_failed: {exc}") from exc

        if response.status_code == 401 and retry_on_401 and self.tokens.can_refresh:
            logger.warning("concur_unauthorized context=%s, refreshing token", context)
            await self.tokens.refresh(stale_token=token)
            return await self.request(
                method,
                url,
                context=context,
                params=params,
                json=json,
                content=content,
                headers=headers,
                retry_on_401=False,
            )

        if not response.is_success:
            raise build_api_error(response, context)

        return response

    async def get_json(self, url: str, *, context: str, params: dict[str, Any] | None = None) -> Any:
        response = await self.request("GET", url, context=context, params=params)
        return _decode_json(response)

    async def send_json(self, method: str, url: str, body: Any, *, context: str) -> Any:
        response = await self.request(
            method,
            url,
            context=context,
            json=body,
            headers={"Content-Type": "application/json"},
        )
        return _decode_json(response)


def build_api_error(response: httpx.Response, context: str) -> ApiError:
    body = _read_error_body(response)
    message = f"Concur API error ({context}): {response.status_code} {response.reason_phrase}"

    detail = _extract_error_detail(body)
    if detail:
        message += f" - {detail}"

    logger.warning("concur_api_error context=%s status=%s", context, response.status_code)
    return ApiError(
        message,
        status_code=response.status_code,
        status_text=response.reason_phrase,
        body=body,
        context=context,
    )


def _read_error_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        pass
    try:
        return response.text or None
    except ValueError:
        return None


def _extract_error_detail(body: Any) -> str | None:
    if isinstance(body, dict):
        for key in ("Message", "error_description"):
            if body.get(key):
                return str(body[key])
        return None
    if isinstance(body, str) and len(body) < _PLAIN_TEXT_DETAIL_LIMIT:
        return body
    return None


def _decode_json(response: httpx.Response) -> Any:
    if not response.content:
        return {}
    try:
        return response.json()
    except ValueError:
        return {"status_code": response.status_code, "text": response.text}
