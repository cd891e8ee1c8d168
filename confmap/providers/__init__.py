from .base import ChangeEvent, Provider, ProviderState, WatcherFunc
from .http import HTTPProvider
from .https import HTTPSProvider, build_trust_roots
from .registry import ProviderRegistry, default_registry
from .s3 import ObjectLocator, S3Provider, decompose_s3_uri

__all__ = [
    "ChangeEvent",
    "Provider",
    "ProviderState",
    "WatcherFunc",
    "HTTPProvider",
    "HTTPSProvider",
    "build_trust_roots",
    "ProviderRegistry",
    "default_registry",
    "ObjectLocator",
    "S3Provider",
    "decompose_s3_uri",
]
