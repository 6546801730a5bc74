"""JSON-LD document loader for RDF canonicalization.

The W3C contexts the suites sign with are bundled under ``data/contexts``
so canonicalization does not depend on the network.
"""

from __future__ import annotations

import json
import logging
from functools import lru_cache
from pathlib import Path
from typing import Any, Callable

import httpx

from di_ecdsa_suite.did_resolver import (
    DID_V1_CONTEXT,
    MULTIKEY_V1_CONTEXT,
    DIDResolutionError,
    DIDResolver,
)
from di_ecdsa_suite.helpers import (
    DATA_INTEGRITY_V2_CONTEXT,
    VC_V1_CONTEXT,
    VC_V2_CONTEXT,
)

logger = logging.getLogger(__name__)

DocumentLoader = Callable[..., dict]

CONTEXTS_DIR = Path(__file__).parent / "data" / "contexts"
VC_EXAMPLES_V2_CONTEXT = "https://www.w3.org/ns/credentials/examples/v2"

BUNDLED_CONTEXTS = {
    VC_V1_CONTEXT: "credentials-v1.json",
    VC_V2_CONTEXT: "credentials-v2.json",
    VC_EXAMPLES_V2_CONTEXT: "credentials-examples-v2.json",
    DATA_INTEGRITY_V2_CONTEXT: "data-integrity-v2.json",
    MULTIKEY_V1_CONTEXT: "multikey-v1.json",
    DID_V1_CONTEXT: "did-v1.json",
}


class DocumentLoaderError(Exception):
    """Raised when a JSON-LD document cannot be loaded."""


@lru_cache(maxsize=None)
def _bundled_context(filename: str) -> dict[str, Any]:
    with (CONTEXTS_DIR / filename).open() as f:
        return json.load(f)


def static_contexts() -> dict[str, dict[str, Any]]:
    """Bundled W3C contexts keyed by URL."""
    return {url: _bundled_context(name) for url, name in BUNDLED_CONTEXTS.items()}


def get_document_loader(
    resolver: DIDResolver | None = None,
    contexts: dict[str, dict[str, Any]] | None = None,
    timeout: float = 30.0,
) -> DocumentLoader:
    """Build a pyld document loader.

    DIDs are resolved with ``resolver``; http(s) documents are fetched once
    and cached. The cache starts with the bundled contexts, and
    ``contexts`` adds (or replaces) static documents.
    """
    resolver = resolver or DIDResolver(timeout=timeout)
    cache: dict[str, dict[str, Any]] = {**static_contexts(), **(contexts or {})}

    def loader(url: str, options: dict | None = None) -> dict:
        if url.startswith("did:"):
            try:
                document = resolver.resolve(url).raw
            except DIDResolutionError as e:
                raise DocumentLoaderError(str(e)) from e
        elif url.startswith("http://") or url.startswith("https://"):
            if url not in cache:
                logger.debug("Fetching JSON-LD document %s", url)
                try:
                    response = httpx.get(
                        url,
                        timeout=timeout,
                        follow_redirects=True,
                        headers={"Accept": "application/ld+json, application/json"},
                    )
                    response.raise_for_status()
                    cache[url] = response.json()
                except (httpx.HTTPError, ValueError) as e:
                    raise DocumentLoaderError(f"Could not load {url}: {e}") from e
            document = cache[url]
        else:
            raise DocumentLoaderError(
                "Unrecognized url format. Must start with "
                "'did:', 'http://' or 'https://'"
            )

        return {
            "contentType": "application/ld+json",
            "contextUrl": None,
            "documentUrl": url,
            "document": document,
        }

    return loader
