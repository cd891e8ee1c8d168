from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional

from ..context import RetrieveContext
from ..exceptions import UnsupportedSchemeError
from ..retrieved import Retrieved
from ..settings import ProviderSettings
from .base import Provider, WatcherFunc
from .http import HTTPProvider
from .https import HTTPSProvider
from .s3 import S3Provider

LOGGER = logging.getLogger(__name__)


class ProviderRegistry:
    """Maps scheme names to providers and delegates to the one supporting a URI."""

    def __init__(self, providers: Iterable[Provider], logger: Optional[logging.Logger] = None) -> None:
        self._providers: Dict[str, Provider] = {}
        for provider in providers:
            scheme = provider.scheme()
            if scheme in self._providers:
                raise ValueError(f"Duplicate provider registered for scheme '{scheme}'")
            self._providers[scheme] = provider
        self._logger = logger or LOGGER

    def schemes(self) -> List[str]:
        return list(self._providers)

    def get(self, scheme: str) -> Optional[Provider]:
        return self._providers.get(scheme)

    def supports(self, uri: str) -> bool:
        return any(provider.supports(uri) for provider in self._providers.values())

    def provider_for(self, uri: str) -> Provider:
        for provider in self._providers.values():
            if provider.supports(uri):
                return provider
        raise UnsupportedSchemeError(f"No provider available to handle URI '{uri}'.", uri=uri)

    def retrieve(
        self,
        uri: str,
        watcher: Optional[WatcherFunc] = None,
        *,
        context: Optional[RetrieveContext] = None,
    ) -> Retrieved:
        return self.provider_for(uri).retrieve(uri, watcher, context=context)

    def shutdown(self, context: Optional[RetrieveContext] = None) -> None:
        """Shut down every provider, re-raising the first failure afterwards."""
        first_error: Optional[Exception] = None
        for scheme, provider in self._providers.items():
            try:
                provider.shutdown(context)
            except Exception as exc:  # noqa: BLE001
                self._logger.error("Provider shutdown failed", extra={"scheme": scheme, "error": str(exc)})
                if first_error is None:
                    first_error = exc
        if first_error is not None:
            raise first_error


def default_registry(
    settings: Optional[ProviderSettings] = None,
    logger: Optional[logging.Logger] = None,
) -> ProviderRegistry:
    """Build the http, https and s3 providers from ``settings`` (or the environment)."""

    settings = settings or ProviderSettings.from_env()
    providers: List[Provider] = [
        HTTPProvider(timeout=settings.http_timeout, logger=logger),
        HTTPSProvider(
            settings.ca_file,
            require_ca_file=settings.require_ca_file,
            timeout=settings.http_timeout,
            logger=logger,
        ),
        S3Provider(
            profile_name=settings.aws_profile,
            connect_timeout=settings.s3_connect_timeout,
            read_timeout=settings.s3_read_timeout,
            logger=logger,
        ),
    ]
    return ProviderRegistry(providers, logger=logger)
