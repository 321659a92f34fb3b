from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Awaitable
from typing import Any

import anyio
import httpx

from fxconvert.core.errors import MalformedResponseError, NetworkError, UpstreamError

logger = logging.getLogger(__name__)


def _without_query(url: httpx.URL | str) -> str:
    # The query string carries the API key.
    return str(url).split("?", 1)[0]


def call_timeout(client: httpx.AsyncClient) -> float | None:
    """Deadline for a whole call: the longest of the client's per-phase timeouts."""
    t = client.timeout
    phases = [s for s in (t.connect, t.read, t.write, t.pool) if s is not None]
    return max(phases) if phases else None


async def send_get(client: httpx.AsyncClient, url: str, *, params: dict[str, str] | None = None) -> httpx.Response:
    """
    Single GET attempt bounded by the client's timeout.

    httpx applies its timeout per phase, so a slowly dripping body could run past it; the whole
    call is also put under one deadline of the same length.

    Timeouts and transport failures become NetworkError; the response is returned whatever its
    status so that each provider decides what a non-2xx means.
    """
    try:
        with anyio.fail_after(call_timeout(client)):
            return await client.get(url, params=params)
    except (TimeoutError, httpx.TimeoutException) as e:
        logger.warning("Upstream timeout url=%s", url)
        raise NetworkError(f"request timed out ({type(e).__name__})", url=url) from e
    except httpx.TransportError as e:
        logger.warning("Upstream transport failure url=%s error=%s", url, e)
        raise NetworkError(f"unable to connect ({type(e).__name__}: {e})", url=url) from e


async def gather_or_cancel(*aws: Awaitable[Any]) -> list[Any]:
    """asyncio.gather, except that the first failure cancels the fetches still running."""
    tasks = [asyncio.ensure_future(aw) for aw in aws]
    try:
        return await asyncio.gather(*tasks)
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise


def raise_for_upstream_status(response: httpx.Response) -> None:
    if not response.is_success:
        raise UpstreamError(response.status_code, response.text, url=_without_query(response.request.url))


def decode_json(response: httpx.Response) -> Any:
    try:
        return response.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise MalformedResponseError(f"body is not JSON: {e}", url=_without_query(response.request.url)) from e


async def get_json(client: httpx.AsyncClient, url: str, *, params: dict[str, str] | None = None) -> Any:
    response = await send_get(client, url, params=params)
    raise_for_upstream_status(response)
    return decode_json(response)
