"""Environment-driven settings for the default providers."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

DEFAULT_HTTP_TIMEOUT = 30.0
DEFAULT_S3_CONNECT_TIMEOUT = 10.0
DEFAULT_S3_READ_TIMEOUT = 30.0

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class ProviderSettings:
    ca_file: Optional[str] = None
    require_ca_file: bool = True
    http_timeout: float = DEFAULT_HTTP_TIMEOUT
    s3_connect_timeout: float = DEFAULT_S3_CONNECT_TIMEOUT
    s3_read_timeout: float = DEFAULT_S3_READ_TIMEOUT
    aws_profile: Optional[str] = None

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ProviderSettings":
        env = os.environ if environ is None else environ
        return cls(
            ca_file=env.get("SSL_CERT_FILE") or None,
            require_ca_file=_read_bool(env, "CONFMAP_REQUIRE_CA_FILE", True),
            http_timeout=_read_seconds(env, "CONFMAP_HTTP_TIMEOUT", DEFAULT_HTTP_TIMEOUT),
            s3_connect_timeout=_read_seconds(env, "CONFMAP_S3_CONNECT_TIMEOUT", DEFAULT_S3_CONNECT_TIMEOUT),
            s3_read_timeout=_read_seconds(env, "CONFMAP_S3_READ_TIMEOUT", DEFAULT_S3_READ_TIMEOUT),
            aws_profile=env.get("AWS_PROFILE") or None,
        )


def _read_bool(env: Mapping[str, str], name: str, default: bool) -> bool:
    value = env.get(name)
    if value is None or value == "":
        return default
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ValueError(f"{name} must be a boolean, got '{value}'")


def _read_seconds(env: Mapping[str, str], name: str, default: float) -> float:
    value = env.get(name)
    if value is None or value == "":
        return default
    try:
        seconds = float(value)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number of seconds, got '{value}'") from exc
    if seconds <= 0:
        raise ValueError(f"{name} must be positive, got '{value}'")
    return seconds
