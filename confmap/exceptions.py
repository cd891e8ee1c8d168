from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:  # pragma: no cover
    from .providers.s3 import ObjectLocator


class ConfigRetrievalError(RuntimeError):
    """Base class for configuration retrieval errors."""

    def __init__(
        self,
        message: str,
        *,
        uri: Optional[str] = None,
        locator: Optional["ObjectLocator"] = None,
    ) -> None:
        super().__init__(message)
        self.uri = uri
        self.locator = locator


class UnsupportedSchemeError(ConfigRetrievalError):
    """Raised when a URI does not carry the provider's scheme prefix."""


class MalformedURIError(ConfigRetrievalError):
    """Raised when a URI has the right scheme but cannot be decomposed."""


class AuthConfigurationMissingError(ConfigRetrievalError):
    """Raised when credentials or trust material are absent before any network call."""


class TransportFailureError(ConfigRetrievalError):
    """Raised on DNS, connection, timeout or TLS handshake failures."""


class RemoteError(ConfigRetrievalError):
    """Raised when the backend was reached but answered with a failure."""

    def __init__(self, message: str, *, status_code: Optional[int] = None, **kwargs) -> None:
        super().__init__(message, **kwargs)
        self.status_code = status_code


class RemoteNotFoundError(RemoteError):
    """Raised when the remote object, bucket or path does not exist."""


class ReadFailureError(ConfigRetrievalError):
    """Raised when the response body could not be read completely."""


class DecodeFailureError(ConfigRetrievalError):
    """Raised when fetched bytes are not valid YAML configuration."""


class RetrievalCancelledError(ConfigRetrievalError):
    """Raised when the caller cancelled the retrieval or its deadline passed."""


class ProviderShutdownError(ConfigRetrievalError):
    """Raised when retrieve is called on a provider that has been shut down."""
