"""Decoded configuration values returned by providers."""

from __future__ import annotations

from typing import Any, Dict, Optional

import yaml

from .exceptions import DecodeFailureError


class Retrieved:
    """Holds the configuration map decoded from a single URI."""

    def __init__(self, raw: Dict[str, Any]) -> None:
        self._raw = raw

    @property
    def raw(self) -> Dict[str, Any]:
        return self._raw

    def as_dict(self) -> Dict[str, Any]:
        return dict(self._raw)

    def __repr__(self) -> str:
        return f"Retrieved(raw={self._raw!r})"


def new_retrieved_from_yaml(data: bytes, uri: Optional[str] = None) -> Retrieved:
    """Decode ``data`` as a YAML configuration map.

    An empty document yields an empty map. A document whose root is a scalar
    or a list is not a configuration and is rejected.
    """

    try:
        raw = yaml.safe_load(data)
    except yaml.YAMLError as exc:
        raise DecodeFailureError(f"Unable to parse YAML from '{uri}'.", uri=uri) from exc

    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise DecodeFailureError(
            f"Configuration from '{uri}' is a {type(raw).__name__}, expected a mapping.", uri=uri
        )
    return Retrieved(raw)
