# ----------------------------
# Cursored, rate-limited request engine over the hub's HTTP API
# ----------------------------
from __future__ import annotations

import asyncio
import copy
import inspect
from typing import Any, AsyncIterator, Awaitable, Callable, Collection, List, Optional, Tuple

import requests

from fairhub.errors import HTTPStatusError, ResponseDecodeError, RetryExhaustedError
from fairhub.graphql_request import APIRequest
from fairhub.token_pool import TokenPool
from loggers.hub_logger import hub_logger as logger

DEFAULT_BACKOFF_CODES = frozenset({403, 502})

BatchHandler = Callable[[int, requests.Response, Any], Any]


def retry_after_seconds(resp: requests.Response) -> Optional[float]:
    """
    The numeric Retry-After header of a response, or None when absent or not a number.
    """
    raw = resp.headers.get("Retry-After")
    if raw is None:
        return None
    try:
        return max(0.0, float(str(raw).strip()))
    except ValueError:
        return None


class EndpointService:
    """
    Sends API requests with a pooled session, backing off on throttling codes
    and following opaque page cursors one page at a time.
    """

    def __init__(
        self,
        pool: TokenPool,
        *,
        graphql_url: str = "https://api.github.com/graphql",
        backoff_codes: Collection[int] = DEFAULT_BACKOFF_CODES,
        max_attempts: int = 10,
        interleave_delay: float = 1.0,
        timeout: int = 30,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.pool = pool
        self.graphql_url = graphql_url
        self.backoff_codes = frozenset(backoff_codes)
        self.max_attempts = max(1, max_attempts)
        self.interleave_delay = interleave_delay
        self.timeout = timeout
        self.sleep = sleep

    async def _send(self, request: APIRequest) -> Tuple[str, str, requests.Response]:
        method, url, body = request.build(self)
        tok, sess = self.pool.pick()
        resp = await asyncio.to_thread(sess.request, method, url, json=body, timeout=self.timeout)
        self.pool.record_response(tok, resp)
        return tok, url, resp

    def _decode(self, request: APIRequest, url: str, resp: requests.Response) -> Any:
        try:
            payload = resp.json()
        except ValueError as e:
            raise ResponseDecodeError(url, str(e)) from e
        try:
            return request.decode(payload)
        except (ValueError, TypeError, KeyError) as e:
            raise ResponseDecodeError(url, str(e)) from e

    async def fetch_batch(self, request: APIRequest) -> Tuple[requests.Response, Any]:
        """
        Fetch and decode one response. A backoff status carrying a numeric
        Retry-After is retried after sleeping that long, up to max_attempts;
        any other non-2xx status fails at once. Decode errors are not retried.
        """
        seen_codes: List[int] = []
        url = ""
        for attempt in range(1, self.max_attempts + 1):
            tok, url, resp = await self._send(request)
            status = resp.status_code

            if 200 <= status < 300:
                return resp, self._decode(request, url, resp)

            delay = retry_after_seconds(resp) if status in self.backoff_codes else None
            if delay is None:
                logger.error(f"HTTP {status} for {url}: {resp.text[:300]}")
                raise HTTPStatusError(status, url, resp.text)

            seen_codes.append(status)
            self.pool.mark_backoff(tok, delay)
            if attempt < self.max_attempts:
                logger.warning(f"HTTP {status} for {url}; retrying in {delay} seconds "
                               f"(attempt {attempt} of {self.max_attempts})")
                await self.sleep(delay)

        logger.error(f"Retries exhausted for {url}; status codes: {seen_codes}")
        raise RetryExhaustedError(url, seen_codes)

    async def request(self, request: APIRequest) -> Any:
        _, batch = await self.fetch_batch(request)
        return batch

    async def request_batches(
        self,
        request: APIRequest,
        handler: BatchHandler,
        interleave_delay: Optional[float] = None,
    ) -> Any:
        """
        Fetch pages in order, handing each to handler(index, response, batch).
        Stops with the handler's value as soon as it returns something other
        than None, or with None once a page has no further cursor.
        """
        delay = self.interleave_delay if interleave_delay is None else interleave_delay
        request = copy.copy(request)
        index = 0
        while True:
            if index > 0 and delay > 0:
                await self.sleep(delay)
            resp, batch = await self.fetch_batch(request)
            logger.debug(f"batch {index} of {type(request).__name__}: {batch.element_count} elements")

            result = handler(index, resp, batch)
            if inspect.isawaitable(result):
                result = await result
            if result is not None:
                return result

            if not batch.has_next_page or not batch.end_cursor:
                return None
            request.end_cursor = batch.end_cursor
            index += 1

    async def cursored_stream(
        self,
        request: APIRequest,
        interleave_delay: Optional[float] = None,
    ) -> AsyncIterator[Any]:
        """
        Lazily yield decoded pages. Nothing is requested until the first page is
        pulled, and the next page is only requested once the previous one was
        consumed; closing the iterator stops the walk.
        """
        delay = self.interleave_delay if interleave_delay is None else interleave_delay
        request = copy.copy(request)
        index = 0
        while True:
            if index > 0 and delay > 0:
                await self.sleep(delay)
            _, batch = await self.fetch_batch(request)
            logger.debug(f"batch {index} of {type(request).__name__}: {batch.element_count} elements")
            yield batch

            if not batch.has_next_page or not batch.end_cursor:
                return
            request.end_cursor = batch.end_cursor
            index += 1
