"""Local entry point to retrieve configuration URIs from the command line."""

from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional, Sequence, TextIO

import yaml

from .context import RetrieveContext
from .exceptions import ConfigRetrievalError
from .providers.registry import ProviderRegistry, default_registry

LOGGER = logging.getLogger("confmap.local-runner")


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Retrieve configuration from http, https or s3 URIs")
    parser.add_argument(
        "--config",
        dest="configs",
        action="append",
        required=True,
        metavar="URI",
        help="Configuration URI to retrieve; may be given more than once",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Overall deadline in seconds for each retrieval",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


def retrieve_all(
    registry: ProviderRegistry,
    uris: Sequence[str],
    out: TextIO,
    *,
    timeout: Optional[float] = None,
) -> None:
    """Retrieve each URI in order and write it to ``out`` as a YAML document.

    Stops at the first failure; a partial configuration is never written for
    a URI that could not be loaded.
    """

    documents: List[object] = []
    for uri in uris:
        context = RetrieveContext(timeout=timeout)
        documents.append(registry.retrieve(uri, context=context).raw)
    yaml.safe_dump_all(documents, out, sort_keys=False)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)
    LOGGER.info("Retrieving configuration", extra={"configURIs": args.configs})

    try:
        registry = default_registry(logger=LOGGER)
    except (ConfigRetrievalError, ValueError) as exc:
        LOGGER.error("Unable to configure providers: %s", exc)
        return 2

    try:
        retrieve_all(registry, args.configs, sys.stdout, timeout=args.timeout)
    except ConfigRetrievalError as exc:
        LOGGER.error("Configuration retrieval failed for %s: %s", exc.uri, exc)
        return 1
    finally:
        registry.shutdown()
    return 0


if __name__ == "__main__":
    sys.exit(main())
