"""Scheme-based configuration providers (http, https, s3)."""

from .context import RetrieveContext
from .exceptions import (
    AuthConfigurationMissingError,
    ConfigRetrievalError,
    DecodeFailureError,
    MalformedURIError,
    ProviderShutdownError,
    ReadFailureError,
    RemoteError,
    RemoteNotFoundError,
    RetrievalCancelledError,
    TransportFailureError,
    UnsupportedSchemeError,
)
from .providers import (
    ChangeEvent,
    HTTPProvider,
    HTTPSProvider,
    ObjectLocator,
    Provider,
    ProviderRegistry,
    ProviderState,
    S3Provider,
    WatcherFunc,
    decompose_s3_uri,
    default_registry,
)
from .retrieved import Retrieved, new_retrieved_from_yaml
from .settings import ProviderSettings

__all__ = [
    "RetrieveContext",
    "AuthConfigurationMissingError",
    "ConfigRetrievalError",
    "DecodeFailureError",
    "MalformedURIError",
    "ProviderShutdownError",
    "ReadFailureError",
    "RemoteError",
    "RemoteNotFoundError",
    "RetrievalCancelledError",
    "TransportFailureError",
    "UnsupportedSchemeError",
    "ChangeEvent",
    "HTTPProvider",
    "HTTPSProvider",
    "ObjectLocator",
    "Provider",
    "ProviderRegistry",
    "ProviderState",
    "S3Provider",
    "WatcherFunc",
    "decompose_s3_uri",
    "default_registry",
    "Retrieved",
    "new_retrieved_from_yaml",
    "ProviderSettings",
]
