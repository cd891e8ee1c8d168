from __future__ import annotations

import logging
import socket
import threading
from typing import Any, Dict, List, Optional

import httpx

from ..context import RetrieveContext
from ..exceptions import (
    MalformedURIError,
    ReadFailureError,
    RemoteError,
    RemoteNotFoundError,
    RetrievalCancelledError,
    TransportFailureError,
)
from ..settings import DEFAULT_HTTP_TIMEOUT
from .base import Provider

LOGGER = logging.getLogger(__name__)

NOT_FOUND_STATUSES = frozenset({404, 410})

# Every request opens its own connection, so the trace hook below always sees
# the socket a retrieval is blocked on.
PER_REQUEST_CONNECTIONS = httpx.Limits(max_keepalive_connections=0)

_SOCKET_READY_EVENTS = ("connection.connect_tcp.complete", "connection.start_tls.complete")


class HTTPProvider(Provider):
    """Retrieves configuration with a plain HTTP GET.

    Accepts URIs of the form ``http://host[:port]/path``.
    """

    scheme_name = "http"

    def __init__(
        self,
        client: Optional[httpx.Client] = None,
        *,
        timeout: float = DEFAULT_HTTP_TIMEOUT,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        super().__init__(logger=logger or LOGGER)
        self._timeout = timeout
        self._client = client or httpx.Client(
            timeout=timeout,
            limits=PER_REQUEST_CONNECTIONS,
            follow_redirects=True,
        )
        self._mark_ready()

    def _fetch(self, uri: str, context: RetrieveContext) -> bytes:
        return download(self._client, uri, context, timeout=self._timeout, logger=self._logger)

    def _close(self) -> None:
        self._client.close()


class _ConnectionInterrupter:
    """Shuts down the socket of an in-flight request when its context is cancelled.

    The socket is picked up from httpcore's ``trace`` request extension once
    the TCP connection (or the TLS session on top of it) is established.
    """

    def __init__(self, uri: str, logger: logging.Logger) -> None:
        self._uri = uri
        self._logger = logger
        self._lock = threading.Lock()
        self._sock: Optional[socket.socket] = None
        self._interrupted = False

    def trace(self, event_name: str, info: Dict[str, Any]) -> None:
        if event_name not in _SOCKET_READY_EVENTS:
            return
        stream = info.get("return_value")
        sock = stream.get_extra_info("socket") if stream is not None else None
        if sock is None:
            return
        with self._lock:
            self._sock = sock
            interrupted = self._interrupted
        if interrupted:
            self._shutdown(sock)

    def interrupt(self) -> None:
        with self._lock:
            self._interrupted = True
            sock = self._sock
        if sock is not None:
            self._shutdown(sock)

    def _shutdown(self, sock: socket.socket) -> None:
        try:
            # The unbound call skips SSLSocket.shutdown, which would tear
            # down the TLS object under the reading thread.
            socket.socket.shutdown(sock, socket.SHUT_RDWR)
        except OSError as exc:
            self._logger.debug(
                "Connection already closed when cancelling", extra={"uri": self._uri, "error": str(exc)}
            )


def download(
    client: httpx.Client,
    uri: str,
    context: RetrieveContext,
    *,
    timeout: Optional[float] = None,
    logger: Optional[logging.Logger] = None,
) -> bytes:
    """GET ``uri`` with ``client`` and return the full response body.

    Statuses 200-399 are accepted. Failures before the response headers
    arrive are transport failures; failures while streaming the body are
    read failures. Cancelling ``context`` shuts the connection down, and
    whatever error that produces is reported as a cancellation.
    """

    logger = logger or LOGGER
    remaining = context.remaining()
    request_timeout = httpx.USE_CLIENT_DEFAULT if remaining is None else context.bound_timeout(timeout)
    interrupter = _ConnectionInterrupter(uri, logger)
    unregister = context.on_cancel(interrupter.interrupt)

    try:
        with client.stream(
            "GET", uri, timeout=request_timeout, extensions={"trace": interrupter.trace}
        ) as response:
            _check_status(response, uri, logger)
            return _read_body(response, uri, context)
    except httpx.TooManyRedirects as exc:
        raise RemoteError(f"Too many redirects while fetching '{uri}'.", uri=uri) from exc
    except httpx.InvalidURL as exc:
        raise MalformedURIError(f"'{uri}' is not a valid URL.", uri=uri) from exc
    except httpx.HTTPError as exc:
        if context.cancelled:
            raise _cancelled(uri, context) from exc
        if isinstance(exc, httpx.TimeoutException):
            logger.warning("Timed out fetching configuration", extra={"uri": uri, "error": str(exc)})
            raise TransportFailureError(f"Timed out downloading '{uri}' via HTTP GET.", uri=uri) from exc
        logger.warning("Unable to fetch configuration", extra={"uri": uri, "error": str(exc)})
        raise TransportFailureError(
            f"Unable to download the file via HTTP GET for uri '{uri}': {exc}", uri=uri
        ) from exc
    finally:
        unregister()


def _cancelled(uri: str, context: RetrieveContext) -> RetrievalCancelledError:
    if context.deadline_exceeded:
        return RetrievalCancelledError(f"Deadline exceeded while fetching '{uri}'.", uri=uri)
    return RetrievalCancelledError(f"Retrieval of '{uri}' was cancelled.", uri=uri)


def _check_status(response: httpx.Response, uri: str, logger: logging.Logger) -> None:
    status = response.status_code
    if 200 <= status < 400:
        return
    logger.warning("Remote returned a failure status", extra={"uri": uri, "statusCode": status})
    if status in NOT_FOUND_STATUSES:
        raise RemoteNotFoundError(
            f"No configuration found at '{uri}' (status {status}).", uri=uri, status_code=status
        )
    raise RemoteError(f"Fetching '{uri}' failed with status {status}.", uri=uri, status_code=status)


def _read_body(response: httpx.Response, uri: str, context: RetrieveContext) -> bytes:
    chunks: List[bytes] = []
    try:
        for chunk in response.iter_bytes():
            context.raise_if_cancelled(uri)
            chunks.append(chunk)
    except (httpx.TimeoutException, httpx.NetworkError, httpx.ProtocolError, httpx.DecodingError) as exc:
        if context.cancelled:
            raise _cancelled(uri, context) from exc
        raise ReadFailureError(f"Fail to read the response body from uri '{uri}': {exc}", uri=uri) from exc
    return b"".join(chunks)
