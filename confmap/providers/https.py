from __future__ import annotations

import logging
import pathlib
import ssl
from typing import Optional

import httpx

from ..context import RetrieveContext
from ..exceptions import AuthConfigurationMissingError
from ..settings import DEFAULT_HTTP_TIMEOUT
from .base import Provider
from .http import PER_REQUEST_CONNECTIONS, download

LOGGER = logging.getLogger(__name__)

PEM_CERTIFICATE_MARKER = b"-----BEGIN CERTIFICATE-----"


def build_trust_roots(ca_file: Optional[str], *, require_ca_file: bool = True) -> ssl.SSLContext:
    """Build a verifying TLS context from the platform store plus ``ca_file``.

    When ``require_ca_file`` is set, an empty path, an unreadable file or a
    file without any PEM certificate raises
    :class:`AuthConfigurationMissingError`. Verification is never disabled.
    """

    context = ssl.create_default_context(ssl.Purpose.SERVER_AUTH)
    if not ca_file:
        if require_ca_file:
            raise AuthConfigurationMissingError("Unable to fetch the root CA: no CA certificate file configured.")
        return context

    path = pathlib.Path(ca_file)
    try:
        pem = path.read_bytes()
    except OSError as exc:
        raise AuthConfigurationMissingError(f"Unable to read CA from '{ca_file}'.") from exc

    if PEM_CERTIFICATE_MARKER not in pem:
        raise AuthConfigurationMissingError(f"No PEM certificate found in '{ca_file}'.")
    try:
        context.load_verify_locations(cafile=str(path))
    except (ssl.SSLError, OSError) as exc:
        raise AuthConfigurationMissingError(
            f"Unable to add CA from '{ca_file}' into the cert pool."
        ) from exc
    return context


class HTTPSProvider(Provider):
    """Retrieves configuration over HTTPS, verifying against explicit trust roots.

    Accepts URIs of the form ``https://host[:port]/path``. Trust roots are
    built once, in the constructor.
    """

    scheme_name = "https"

    def __init__(
        self,
        ca_file: Optional[str] = None,
        *,
        require_ca_file: bool = True,
        client: Optional[httpx.Client] = None,
        timeout: float = DEFAULT_HTTP_TIMEOUT,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        super().__init__(logger=logger or LOGGER)
        trust_roots = build_trust_roots(ca_file, require_ca_file=require_ca_file)
        self._timeout = timeout
        self._client = client or httpx.Client(
            verify=trust_roots,
            timeout=timeout,
            limits=PER_REQUEST_CONNECTIONS,
            follow_redirects=True,
        )
        self._logger.debug("Configured HTTPS trust roots", extra={"caFile": ca_file})
        self._mark_ready()

    def _fetch(self, uri: str, context: RetrieveContext) -> bytes:
        return download(self._client, uri, context, timeout=self._timeout, logger=self._logger)

    def _close(self) -> None:
        self._client.close()
