"""HTTP utilities providing bearer-token injection with one-shot refresh."""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Mapping, Optional

import httpx

from dexcom_oauth.core.errors import TokenRefreshError

logger = logging.getLogger(__name__)

SendFunc = Callable[..., Awaitable[httpx.Response]]
TokenGetter = Callable[[], Awaitable[Optional[str]]]
TokenRefresher = Callable[[], Awaitable[str]]


def _with_bearer(
    headers: Optional[Mapping[str, str]], token: Optional[str]
) -> dict[str, str]:
    merged = dict(headers or {})
    if token:
        merged["Authorization"] = f"Bearer {token}"
    return merged


def with_token_refresh(
    send: SendFunc,
    *,
    get_token: TokenGetter,
    refresh_token: TokenRefresher,
) -> SendFunc:
    """Wrap ``send(method, url, **kwargs)`` with bearer auth and a 401 retry.

    Each call attaches the current token when one exists. A 401 triggers a
    single refresh and, if that succeeds, a single resend. Whenever the refresh
    fails or the resend is also rejected with 401, the first 401 response is
    returned as-is.
    """

    async def authenticated_send(method: str, url: str, **kwargs: Any) -> httpx.Response:
        headers = kwargs.pop("headers", None)
        token = await get_token()
        response = await send(method, url, headers=_with_bearer(headers, token), **kwargs)
        if response.status_code != httpx.codes.UNAUTHORIZED:
            return response

        try:
            new_token = await refresh_token()
        except TokenRefreshError:
            logger.error("Token refresh failed, user needs to re-authenticate")
            return response

        retried = await send(method, url, headers=_with_bearer(headers, new_token), **kwargs)
        if retried.status_code == httpx.codes.UNAUTHORIZED:
            logger.error("Request still unauthorized after token refresh")
            await retried.aclose()
            return response
        return retried

    return authenticated_send


__all__ = ["SendFunc", "TokenGetter", "TokenRefresher", "with_token_refresh"]
