"""
Bounded-time HTTP requests with a single error shape.

Every failure leaving this module is an ``ApiClientError``:
- TIMEOUT when the request outlives its deadline (the request is cancelled)
- HTTP for non-2xx responses, using the server's ``{code, message}`` body
  verbatim when it sends one
- NETWORK for connection-level failures, UNKNOWN for anything else
- BAD_JSON / BAD_RESPONSE from ``fetch_json`` for unparsable text and for
  JSON that fails its decoder

There are no retries at this layer.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Dict, Optional, TypeVar

import httpx

from x07_registry_client.api.decode import decode_error_document, parse_json
from x07_registry_client.domain.errors import ApiClientError, DecodeError, ErrorKind

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_TIMEOUT_SECONDS = 10.0
BOOTSTRAP_TIMEOUT_SECONDS = 5.0


class Transport:
    """
    Thin wrapper over ``httpx.AsyncClient``.

    The transport only closes clients it created itself.
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        default_timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ):
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(follow_redirects=True)
        self.default_timeout = default_timeout

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    async def __aenter__(self) -> "Transport":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def _send(
        self,
        method: str,
        url: str,
        headers: Optional[Dict[str, str]],
        json_body: Any,
        timeout: float,
    ) -> httpx.Response:
        kwargs: Dict[str, Any] = {"headers": headers or {}, "timeout": timeout}
        if json_body is not None:
            kwargs["json"] = json_body
        return await self.client.request(method, url, **kwargs)

    async def fetch_text(
        self,
        url: str,
        timeout: Optional[float] = None,
        *,
        method: str = "GET",
        headers: Optional[Dict[str, str]] = None,
        json_body: Any = None,
    ) -> str:
        """
        Issue one request and return the response body as text.
        """
        timeout = self.default_timeout if timeout is None else timeout
        logger.debug(f"{method} {url} (timeout {timeout:.1f}s)")
        try:
            # wait_for cancels the in-flight request when the deadline passes.
            response = await asyncio.wait_for(
                self._send(method, url, headers, json_body, timeout), timeout
            )
        except ApiClientError:
            raise
        except (asyncio.TimeoutError, httpx.TimeoutException):
            logger.warning(f"{method} {url} timed out after {timeout:.1f}s")
            raise ApiClientError.of(ErrorKind.TIMEOUT, "request timed out", url=url)
        except httpx.TransportError as e:
            logger.warning(f"{method} {url} failed: {e}")
            raise ApiClientError.of(ErrorKind.NETWORK, str(e) or e.__class__.__name__, url=url)
        except Exception as e:
            logger.error(f"{method} {url} failed unexpectedly: {e}", exc_info=True)
            raise ApiClientError.of(ErrorKind.UNKNOWN, str(e) or e.__class__.__name__, url=url)

        text = response.text
        if not response.is_success:
            raise self._http_error(url, response.status_code, text)
        return text

    def _http_error(self, url: str, status: int, text: str) -> ApiClientError:
        try:
            parsed = parse_json(text)
        except ValueError:
            parsed = None
        doc = decode_error_document(parsed)
        if doc is not None:
            logger.warning(f"{url} returned HTTP {status}: {doc['code']}: {doc['message']}")
            return ApiClientError.of(
                ErrorKind.HTTP,
                doc["message"],
                code=doc["code"],
                url=url,
                http_status=status,
                request_id=doc["request_id"],
            )
        logger.warning(f"{url} returned HTTP {status}")
        return ApiClientError.of(ErrorKind.HTTP, f"HTTP {status}", url=url, http_status=status)

    async def fetch_json(
        self,
        url: str,
        decode: Callable[[Any], T],
        timeout: Optional[float] = None,
        *,
        method: str = "GET",
        headers: Optional[Dict[str, str]] = None,
        json_body: Any = None,
    ) -> T:
        """
        Fetch, parse and decode a JSON document.

        Malformed text is BAD_JSON; well-formed JSON rejected by ``decode`` is
        BAD_RESPONSE carrying the decoder's message.
        """
        text = await self.fetch_text(
            url, timeout, method=method, headers=headers, json_body=json_body
        )
        try:
            raw = parse_json(text)
        except ValueError as e:
            raise ApiClientError.of(ErrorKind.BAD_JSON, f"response was not valid JSON: {e}", url=url)
        try:
            return decode(raw)
        except DecodeError as e:
            logger.warning(f"{url} did not match the expected schema: {e}")
            raise ApiClientError.of(ErrorKind.BAD_RESPONSE, str(e), url=url)
