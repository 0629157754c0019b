"""Conditional-request (ETag) caching for GitHub API reads.

GitHub does not count ``304 Not Modified`` replies against the rate limit, so
every read is revalidated with ``If-None-Match`` once a validator is known and
the stored body is replayed when the platform says nothing changed.

The behaviour is split into two pure stages so each can be tested without a
client:

* :func:`prepare_request` — the interceptor; adds the stored validator to an
  outgoing ``GET``.  It never answers a request itself.
* :func:`classify_response` — the classifier; stores fresh ``200`` bodies,
  turns a ``304`` into a ``200`` built from the stored body, and passes every
  other response through untouched.

:class:`ConditionalCacheTransport` composes them around any inner
``httpx.AsyncBaseTransport``.
"""

from __future__ import annotations

import logging
from urllib.parse import urlencode

import httpx

from dex_publisher.domain.exceptions import CacheInvariantError
from dex_publisher.infrastructure.etag_cache import CacheStore

logger = logging.getLogger(__name__)

FROM_CACHE_HEADER = "X-From-Cache"

_CACHEABLE_METHODS = frozenset({"GET"})
_VALIDATOR_EXTENSION = "dex_publisher.etag"

# Headers describing the wire encoding of a body we have already decoded.
_WIRE_HEADERS = frozenset({"content-encoding", "content-length", "transfer-encoding"})


def is_cacheable(request: httpx.Request) -> bool:
    """Only safe reads take part in conditional caching."""
    return request.method.upper() in _CACHEABLE_METHODS


def request_signature(request: httpx.Request) -> str:
    """Deterministic cache key: method, resolved URL and sorted query string."""
    url = request.url
    base = f"{request.method.upper()} {url.scheme}://{url.netloc.decode('ascii')}{url.path}"
    params = sorted(url.params.multi_items())
    if params:
        return f"{base}?{urlencode(params)}"
    return base


def prepare_request(request: httpx.Request, store: CacheStore) -> httpx.Request:
    """Return *request* with ``If-None-Match`` set when a validator is cached.

    Requests that are not cacheable, or that already carry a caller-managed
    ``If-None-Match``, are returned unchanged.
    """
    if not is_cacheable(request) or "if-none-match" in request.headers:
        return request

    signature = request_signature(request)
    entry = store.get(signature)
    if entry is None:
        return request

    headers = httpx.Headers(request.headers)
    headers["If-None-Match"] = entry.validator
    logger.debug("Using cached ETag for %s", signature)
    return httpx.Request(
        request.method,
        request.url,
        headers=headers,
        stream=request.stream,
        extensions={**request.extensions, _VALIDATOR_EXTENSION: entry.validator},
    )


def classify_response(
    request: httpx.Request, response: httpx.Response, store: CacheStore
) -> httpx.Response:
    """Update the store from *response* and return what the caller should see.

    *request* must be the request as sent (the output of
    :func:`prepare_request`).  A ``200`` carrying an ``ETag`` must already
    have its body read.
    """
    if not is_cacheable(request):
        return response

    signature = request_signature(request)

    if response.status_code == 304:
        entry = store.get(signature)
        if entry is None:
            raise CacheInvariantError(
                f"304 Not Modified for {signature} but no cached entry exists.",
                status_code=304,
            )
        # A caller's own validator may not match the stored body.
        if _VALIDATOR_EXTENSION not in request.extensions:
            return response
        store.record_hit()
        logger.debug("Cache HIT for %s", signature)
        headers = _strip_wire_headers(response.headers)
        headers["ETag"] = entry.validator
        if entry.content_type:
            headers["Content-Type"] = entry.content_type
        headers[FROM_CACHE_HEADER] = "true"
        return httpx.Response(
            200,
            headers=headers,
            content=entry.payload,
            request=request,
            extensions=response.extensions,
        )

    validator = response.headers.get("etag")
    if response.status_code == 200 and validator:
        body = response.content
        store.put(signature, validator, body, response.headers.get("content-type"))
        store.record_miss()
        logger.debug("Cache MISS for %s (stored ETag %s)", signature, validator)
        return httpx.Response(
            200,
            headers=_strip_wire_headers(response.headers),
            content=body,
            request=request,
            extensions=response.extensions,
        )

    if response.is_error:
        logger.debug("GitHub returned HTTP %d for %s", response.status_code, signature)
    return response


def _strip_wire_headers(headers: httpx.Headers) -> httpx.Headers:
    return httpx.Headers(
        [(k, v) for k, v in headers.multi_items() if k.lower() not in _WIRE_HEADERS]
    )


class ConditionalCacheTransport(httpx.AsyncBaseTransport):
    """``httpx`` transport that applies the interceptor and classifier in order.

    Parameters
    ----------
    store:
        The cache instance to read and update; shared by every request sent
        through this transport.
    transport:
        The transport that actually talks to the network.  Defaults to
        ``httpx.AsyncHTTPTransport()``.
    """

    def __init__(
        self,
        store: CacheStore,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._store = store
        self._transport = transport or httpx.AsyncHTTPTransport()

    @property
    def store(self) -> CacheStore:
        return self._store

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        if not is_cacheable(request):
            return await self._transport.handle_async_request(request)

        prepared = prepare_request(request, self._store)
        try:
            response = await self._transport.handle_async_request(prepared)
        except httpx.HTTPError as exc:
            logger.debug("Transport error for %s: %s", request_signature(prepared), exc)
            raise

        if response.status_code == 200 and "etag" in response.headers:
            try:
                await response.aread()
            finally:
                await response.aclose()
        elif response.status_code == 304:
            await response.aclose()

        return classify_response(prepared, response, self._store)

    async def aclose(self) -> None:
        await self._transport.aclose()
