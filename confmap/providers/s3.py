from __future__ import annotations

import logging
import re
import threading
from dataclasses import dataclass
from typing import Any, Dict, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    NoCredentialsError,
    PartialCredentialsError,
    ProfileNotFound,
)

from ..context import RetrieveContext
from ..exceptions import (
    AuthConfigurationMissingError,
    MalformedURIError,
    ReadFailureError,
    RemoteError,
    RemoteNotFoundError,
    RetrievalCancelledError,
    TransportFailureError,
)
from ..settings import DEFAULT_S3_CONNECT_TIMEOUT, DEFAULT_S3_READ_TIMEOUT
from .base import Provider

LOGGER = logging.getLogger(__name__)

S3_URI_PATTERN = re.compile(r"s3://(.*)\.s3\.(.*)\.amazonaws\.com/(.*)")
HOST_SUFFIX = ".amazonaws.com/"
NOT_FOUND_CODES = frozenset({"NoSuchKey", "NoSuchBucket", "NotFound", "404"})
CHUNK_SIZE = 64 * 1024
MIN_SOCKET_TIMEOUT = 0.01


@dataclass(frozen=True)
class ObjectLocator:
    """Bucket, region and key of an object in S3."""

    bucket: str
    region: str
    key: str


def decompose_s3_uri(uri: str) -> ObjectLocator:
    """Split ``s3://{bucket}.s3.{region}.amazonaws.com/{key}`` into its parts.

    The region is the third ``.``-separated segment, the bucket is what sits
    between ``s3://`` and the first ``.``, and the key is everything after
    ``.amazonaws.com/``, kept whole.
    """

    if not S3_URI_PATTERN.match(uri):
        raise MalformedURIError(f"'{uri}' uri is not a valid s3-url", uri=uri)

    segments = uri.split(".")
    if len(segments) < 4:
        raise MalformedURIError(f"'{uri}' uri is not a valid s3-url", uri=uri)
    region = segments[2]

    scheme_and_bucket = segments[0].split("://", 1)
    if len(scheme_and_bucket) != 2:
        raise MalformedURIError(f"'{uri}' uri is not a valid s3-url", uri=uri)
    bucket = scheme_and_bucket[1]

    _, marker, key = uri.partition(HOST_SUFFIX)
    if not marker:
        raise MalformedURIError(f"'{uri}' uri is not a valid s3-url", uri=uri)

    if not bucket or not region or not key:
        raise MalformedURIError(f"'{uri}' uri is missing a bucket, region or key", uri=uri)
    return ObjectLocator(bucket=bucket, region=region, key=key)


class S3Provider(Provider):
    """Retrieves configuration objects stored in S3.

    Accepts URIs of the form ``s3://{bucket}.s3.{region}.amazonaws.com/{key}``.
    Credentials come from the boto3 session (environment, shared profile or
    the platform default chain). One client is kept per region.
    """

    scheme_name = "s3"
    scheme_separator = ":"

    def __init__(
        self,
        session: Optional[Any] = None,
        *,
        profile_name: Optional[str] = None,
        connect_timeout: float = DEFAULT_S3_CONNECT_TIMEOUT,
        read_timeout: float = DEFAULT_S3_READ_TIMEOUT,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        super().__init__(logger=logger or LOGGER)
        if session is None:
            try:
                session = boto3.session.Session(profile_name=profile_name)
            except ProfileNotFound as exc:
                raise AuthConfigurationMissingError(
                    f"AWS profile '{profile_name}' is not configured."
                ) from exc
        self._session = session
        # boto3 sessions are not thread-safe; clients are.
        self._session_lock = threading.Lock()
        self._clients: Dict[str, Any] = {}
        self._connect_timeout = connect_timeout
        self._read_timeout = read_timeout
        self._client_config = Config(
            connect_timeout=connect_timeout,
            read_timeout=read_timeout,
            retries={"total_max_attempts": 1},
        )
        self._mark_ready()

    def _fetch(self, uri: str, context: RetrieveContext) -> bytes:
        locator = decompose_s3_uri(uri)
        self._require_credentials(uri, locator)

        remaining = context.remaining()
        if remaining is None:
            return self._download(self._client_for(locator.region), uri, locator, context)
        # A deadline caps every socket wait, so these clients are per retrieval.
        context.raise_if_cancelled(uri)
        client = self._client_for(locator.region, timeout=max(remaining, MIN_SOCKET_TIMEOUT))
        try:
            return self._download(client, uri, locator, context)
        finally:
            client.close()

    def _download(self, client: Any, uri: str, locator: ObjectLocator, context: RetrieveContext) -> bytes:
        context.raise_if_cancelled(uri)
        try:
            head = client.head_object(Bucket=locator.bucket, Key=locator.key)
            context.raise_if_cancelled(uri)
            response = client.get_object(Bucket=locator.bucket, Key=locator.key)
        except ClientError as exc:
            raise self._classify_client_error(exc, uri, locator) from exc
        except (NoCredentialsError, PartialCredentialsError) as exc:
            raise AuthConfigurationMissingError(
                f"Unable to fetch access keys for S3 auth while fetching '{uri}'.", uri=uri, locator=locator
            ) from exc
        except BotoCoreError as exc:
            if context.cancelled:
                raise _cancelled(uri, locator, context) from exc
            self._logger.warning(
                "S3 request failed",
                extra={"uri": uri, "bucket": locator.bucket, "region": locator.region, "error": str(exc)},
            )
            raise TransportFailureError(
                f"File in S3 failed to fetch: uri '{uri}': {exc}", uri=uri, locator=locator
            ) from exc

        expected_length = response.get("ContentLength", head.get("ContentLength"))
        data = self._read_body(response["Body"], uri, locator, context)
        if expected_length is not None and len(data) != expected_length:
            raise ReadFailureError(
                f"Read {len(data)} of {expected_length} bytes from '{uri}'.", uri=uri, locator=locator
            )
        return data

    def _require_credentials(self, uri: str, locator: ObjectLocator) -> None:
        try:
            with self._session_lock:
                credentials = self._session.get_credentials()
        except BotoCoreError as exc:
            raise AuthConfigurationMissingError(
                f"Unable to resolve AWS credentials for '{uri}'.", uri=uri, locator=locator
            ) from exc
        if credentials is None:
            raise AuthConfigurationMissingError(
                f"Unable to fetch access keys for S3 auth for '{uri}'.", uri=uri, locator=locator
            )

    def _client_for(self, region: str, timeout: Optional[float] = None) -> Any:
        """Return the cached client for ``region``, or a new one whose waits are capped at ``timeout``.

        Capped clients are not cached; the caller closes them.
        """

        with self._session_lock:
            if timeout is not None:
                config = self._client_config.merge(
                    Config(
                        connect_timeout=min(self._connect_timeout, timeout),
                        read_timeout=min(self._read_timeout, timeout),
                    )
                )
                return self._session.client("s3", region_name=region, config=config)
            client = self._clients.get(region)
            if client is None:
                client = self._session.client("s3", region_name=region, config=self._client_config)
                self._clients[region] = client
        return client

    def _read_body(self, body: Any, uri: str, locator: ObjectLocator, context: RetrieveContext) -> bytes:
        buffer = bytearray()
        try:
            for chunk in body.iter_chunks(chunk_size=CHUNK_SIZE):
                context.raise_if_cancelled(uri)
                buffer.extend(chunk)
        except (BotoCoreError, OSError) as exc:
            if context.cancelled:
                raise _cancelled(uri, locator, context) from exc
            raise ReadFailureError(
                f"Failed to read content from the downloaded config file via uri '{uri}'.",
                uri=uri,
                locator=locator,
            ) from exc
        finally:
            body.close()
        return bytes(buffer)

    def _classify_client_error(self, exc: ClientError, uri: str, locator: ObjectLocator) -> RemoteError:
        error = exc.response.get("Error", {})
        code = str(error.get("Code", ""))
        status = exc.response.get("ResponseMetadata", {}).get("HTTPStatusCode")
        self._logger.warning(
            "S3 returned an error",
            extra={"uri": uri, "bucket": locator.bucket, "region": locator.region, "code": code},
        )
        if code in NOT_FOUND_CODES:
            return RemoteNotFoundError(
                f"Object '{locator.key}' not found in bucket '{locator.bucket}' ({code}).",
                uri=uri,
                locator=locator,
                status_code=status,
            )
        return RemoteError(
            f"File in S3 failed to fetch: uri '{uri}' ({code or 'unknown error'}).",
            uri=uri,
            locator=locator,
            status_code=status,
        )

    def _close(self) -> None:
        with self._session_lock:
            clients, self._clients = list(self._clients.values()), {}
        for client in clients:
            client.close()


def _cancelled(uri: str, locator: ObjectLocator, context: RetrieveContext) -> RetrievalCancelledError:
    if context.deadline_exceeded:
        return RetrievalCancelledError(f"Deadline exceeded while fetching '{uri}'.", uri=uri, locator=locator)
    return RetrievalCancelledError(f"Retrieval of '{uri}' was cancelled.", uri=uri, locator=locator)
