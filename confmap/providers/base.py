from __future__ import annotations

import enum
import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Optional

from ..context import RetrieveContext
from ..exceptions import ProviderShutdownError, UnsupportedSchemeError
from ..retrieved import Retrieved, new_retrieved_from_yaml

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChangeEvent:
    """Notification passed to a watcher when a retrieved configuration changes."""

    error: Optional[Exception] = None


WatcherFunc = Callable[[ChangeEvent], None]


class ProviderState(enum.Enum):
    UNINITIALIZED = "uninitialized"
    READY = "ready"
    SHUT_DOWN = "shut_down"


class Provider(ABC):
    """Interface for retrieving configuration for a single URI scheme.

    Subclasses declare ``scheme_name`` and implement :meth:`_fetch`, which
    returns the raw bytes for an already validated URI.
    """

    scheme_name: str = ""
    scheme_separator: str = "://"

    def __init__(self, logger: Optional[logging.Logger] = None) -> None:
        if not self.scheme_name:
            raise ValueError(f"{type(self).__name__} does not declare a scheme_name")
        self._state = ProviderState.UNINITIALIZED
        self._state_lock = threading.Lock()
        self._logger = logger or LOGGER

    def _mark_ready(self) -> None:
        with self._state_lock:
            self._state = ProviderState.READY

    @property
    def state(self) -> ProviderState:
        return self._state

    def scheme(self) -> str:
        return self.scheme_name

    def supports(self, uri: str) -> bool:
        """Return True if ``uri`` carries this provider's scheme prefix."""
        return uri.startswith(self.scheme_name + self.scheme_separator)

    def retrieve(
        self,
        uri: str,
        watcher: Optional[WatcherFunc] = None,
        *,
        context: Optional[RetrieveContext] = None,
    ) -> Retrieved:
        """Fetch ``uri`` and decode it as YAML configuration.

        ``watcher`` is accepted for interface compatibility; these providers
        retrieve statically and never invoke it.
        """

        if self._state is ProviderState.SHUT_DOWN:
            raise ProviderShutdownError(
                f"{self.scheme_name!r} provider is shut down; cannot retrieve '{uri}'.", uri=uri
            )
        if self._state is not ProviderState.READY:
            raise RuntimeError(
                f"{type(self).__name__} never finished initialising; call _mark_ready() in __init__"
            )
        if not self.supports(uri):
            raise UnsupportedSchemeError(
                f"'{uri}' uri is not supported by {self.scheme_name!r} provider", uri=uri
            )

        context = context or RetrieveContext.background()
        context.raise_if_cancelled(uri)
        data = self._fetch(uri, context)
        self._logger.debug(
            "Retrieved configuration",
            extra={"uri": uri, "scheme": self.scheme_name, "bytes": len(data)},
        )
        return new_retrieved_from_yaml(data, uri)

    def shutdown(self, context: Optional[RetrieveContext] = None) -> None:  # noqa: ARG002
        """Release transport resources. Safe to call more than once."""
        with self._state_lock:
            if self._state is ProviderState.SHUT_DOWN:
                return
            self._state = ProviderState.SHUT_DOWN
        self._close()

    @abstractmethod
    def _fetch(self, uri: str, context: RetrieveContext) -> bytes:
        """Retrieve the raw configuration bytes for ``uri``."""

    def _close(self) -> None:
        """Release any held transport clients."""
