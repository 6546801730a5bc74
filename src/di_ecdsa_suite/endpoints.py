"""
Implementation registry and VC API transport.

Implementations under test are described by JSON manifests::

    {
      "name": "Example Corp",
      "implementation": "Example VC API",
      "issuers": [{
        "id": "did:key:zDna...",
        "endpoint": "https://example.com/credentials/issue",
        "tags": ["ecdsa-rdfc-2019"],
        "supportedEcdsaKeyTypes": ["P-256"],
        "supports": {"vc": ["1.1", "2.0"]}
      }],
      "verifiers": [...],
      "vcHolders": [...]
    }
"""

from __future__ import annotations

import dataclasses
import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Iterable

import httpx

logger = logging.getLogger(__name__)

ENDPOINT_PROPERTIES = {
    "issuers": "issuers",
    "verifiers": "verifiers",
    "vcHolders": "vc_holders",
}


class RegistryError(Exception):
    """Raised when an implementation manifest is invalid."""


@dataclass
class PostResult:
    """Outcome of a VC API call.

    Transport and HTTP failures are reported in ``error`` rather than raised.
    """

    data: Any
    result: httpx.Response | None
    error: httpx.HTTPError | None
    request_url: str

    @property
    def ok(self) -> bool:
        """True only for a 2xx response."""
        return self.result is not None and self.result.is_success

    @property
    def status_code(self) -> int | None:
        return self.result.status_code if self.result is not None else None


@dataclass
class OAuth2Settings:
    """Client credentials used to obtain a bearer token for an endpoint."""

    client_id: str
    client_secret: str
    token_endpoint: str
    token_audience: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> OAuth2Settings:
        """Create settings from a manifest ``oauth2`` object.

        A ``clientSecret`` of the form ``$NAME`` is read from the environment.
        """
        secret = data.get("clientSecret", "")
        if secret.startswith("$"):
            secret = os.environ.get(secret[1:], "")
        return cls(
            client_id=data.get("clientId", ""),
            client_secret=secret,
            token_endpoint=data.get("tokenEndpoint", ""),
            token_audience=data.get("tokenAudience"),
        )


class Endpoint:
    """A single VC API endpoint (issuer, verifier or holder)."""

    def __init__(
        self,
        settings: dict[str, Any],
        implementation_name: str,
        timeout: float = 30.0,
        verify_ssl: bool = True,
    ) -> None:
        """Initialize the endpoint.

        Args:
            settings: The endpoint object from the implementation manifest.
            implementation_name: Name of the owning implementation.
            timeout: HTTP request timeout in seconds.
            verify_ssl: Whether to verify SSL certificates.

        Raises:
            RegistryError: If the settings have no ``endpoint`` URL.
        """
        if not settings.get("endpoint"):
            raise RegistryError(
                f"Endpoint of {implementation_name} has no 'endpoint' URL"
            )
        self.settings = settings
        self.implementation_name = implementation_name
        self.timeout = timeout
        self.verify_ssl = verify_ssl
        self.tags: set[str] = set(settings.get("tags", []))
        self.oauth2 = (
            OAuth2Settings.from_dict(settings["oauth2"])
            if settings.get("oauth2")
            else None
        )
        self._access_token: str | None = None

    @property
    def url(self) -> str:
        return self.settings["endpoint"]

    @property
    def id(self) -> str | None:
        return self.settings.get("id")

    @property
    def key_types(self) -> list[str] | None:
        """Key types the endpoint declares, or None when it declares none."""
        return (
            self.settings.get("supportedEcdsaKeyTypes")
            or self.settings.get("supports", {}).get("keyTypes")
        )

    def __repr__(self) -> str:
        return f"Endpoint({self.implementation_name!r}, {self.url!r})"

    def _get_access_token(self, client: httpx.Client) -> str:
        """Fetch (once) an OAuth2 client-credentials access token."""
        if self._access_token:
            return self._access_token

        data = {"grant_type": "client_credentials"}
        if self.oauth2.token_audience:
            data["audience"] = self.oauth2.token_audience
        response = client.post(
            self.oauth2.token_endpoint,
            data=data,
            auth=(self.oauth2.client_id, self.oauth2.client_secret),
        )
        response.raise_for_status()
        self._access_token = response.json()["access_token"]
        return self._access_token

    def post(
        self,
        json: dict[str, Any],
        headers: dict[str, str] | None = None,
    ) -> PostResult:
        """POST a JSON body to the endpoint.

        Args:
            json: Request body.
            headers: Extra request headers.

        Returns:
            PostResult with the parsed body, the response and any error.
        """
        request_headers = {"Accept": "application/json"}
        request_headers.update(self.settings.get("headers", {}))
        request_headers.update(headers or {})

        response: httpx.Response | None = None
        error: httpx.HTTPError | None = None
        try:
            with httpx.Client(timeout=self.timeout, verify=self.verify_ssl) as client:
                if self.oauth2:
                    token = self._get_access_token(client)
                    request_headers["Authorization"] = f"Bearer {token}"
                response = client.post(self.url, json=json, headers=request_headers)
                response.raise_for_status()
        except httpx.HTTPStatusError as e:
            error = e
        except httpx.HTTPError as e:
            logger.debug("Request to %s failed: %s", self.url, e)
            error = e
        except (KeyError, ValueError) as e:
            # token endpoint answered without a usable access_token
            error = httpx.RequestError(f"OAuth2 token request failed: {e}")

        data = None
        if response is not None and response.content:
            try:
                data = response.json()
            except ValueError:
                data = response.text

        return PostResult(
            data=data,
            result=response,
            error=error,
            request_url=self.url,
        )


@dataclass
class Implementation:
    """A vendor implementation and its VC API endpoints."""

    name: str
    implementation: str = ""
    issuers: list[Endpoint] = field(default_factory=list)
    verifiers: list[Endpoint] = field(default_factory=list)
    vc_holders: list[Endpoint] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any], **endpoint_kwargs: Any) -> Implementation:
        """Create an Implementation from a manifest dictionary."""
        name = data.get("name")
        if not name:
            raise RegistryError("Implementation manifest is missing 'name'")

        def _endpoints(key: str) -> list[Endpoint]:
            return [
                Endpoint(settings, name, **endpoint_kwargs)
                for settings in data.get(key, [])
            ]

        return cls(
            name=name,
            implementation=data.get("implementation", name),
            issuers=_endpoints("issuers"),
            verifiers=_endpoints("verifiers"),
            vc_holders=_endpoints("vcHolders"),
        )

    def endpoints(self, property: str) -> list[Endpoint]:
        """Endpoints for a manifest property ("issuers", "verifiers", "vcHolders")."""
        try:
            return getattr(self, ENDPOINT_PROPERTIES[property])
        except KeyError:
            raise ValueError(f"Unknown endpoint property: {property}") from None


Match = dict[str, Implementation]


class ImplementationRegistry:
    """Registry of implementations under test."""

    def __init__(self, implementations: Iterable[Implementation] = ()) -> None:
        self._implementations: dict[str, Implementation] = {}
        for implementation in implementations:
            self._implementations[implementation.name] = implementation

    @classmethod
    def from_manifests(
        cls, manifests: Iterable[dict[str, Any]], **endpoint_kwargs: Any
    ) -> ImplementationRegistry:
        return cls(Implementation.from_dict(m, **endpoint_kwargs) for m in manifests)

    @classmethod
    def from_directory(cls, path: Path, **endpoint_kwargs: Any) -> ImplementationRegistry:
        """Load every ``*.json`` manifest in a directory.

        Raises:
            RegistryError: If a manifest is not valid JSON.
        """
        manifests = []
        for manifest_path in sorted(Path(path).glob("*.json")):
            try:
                with manifest_path.open() as f:
                    manifests.append(json.load(f))
            except json.JSONDecodeError as e:
                raise RegistryError(f"Invalid manifest {manifest_path}: {e}") from e
        logger.debug("Loaded %d implementation manifests from %s", len(manifests), path)
        return cls.from_manifests(manifests, **endpoint_kwargs)

    def __iter__(self):
        return iter(self._implementations.values())

    def __len__(self) -> int:
        return len(self._implementations)

    def __contains__(self, name: str) -> bool:
        return name in self._implementations

    def get(self, name: str) -> Implementation | None:
        return self._implementations.get(name)

    def find_endpoint(
        self,
        name: str,
        property: str,
        tags: Iterable[str] = (),
        key_type: str | None = None,
    ) -> Endpoint | None:
        """First endpoint of implementation ``name`` with every tag.

        Endpoints that declare key types must include ``key_type``.
        """
        implementation = self.get(name)
        if implementation is None:
            return None
        tags = set(tags)
        for endpoint in implementation.endpoints(property):
            if not tags <= endpoint.tags:
                continue
            if key_type and endpoint.key_types and key_type not in endpoint.key_types:
                continue
            return endpoint
        return None

    def filter(
        self,
        filter_fn: Callable[[Implementation], list[Endpoint]],
        property: str = "issuers",
    ) -> tuple[Match, Match]:
        """Split implementations by the endpoints ``filter_fn`` selects.

        Args:
            filter_fn: Called with each implementation, returns the chosen
                endpoints.
            property: The endpoint list the chosen endpoints replace.

        Returns:
            ``(match, non_match)`` keyed by implementation name. Matching
            implementations only expose the chosen endpoints.
        """
        match: Match = {}
        non_match: Match = {}
        attr = ENDPOINT_PROPERTIES[property]
        for implementation in self:
            chosen = filter_fn(implementation)
            if chosen:
                match[implementation.name] = dataclasses.replace(
                    implementation, **{attr: list(chosen)}
                )
            else:
                non_match[implementation.name] = implementation
        return match, non_match

    def filter_by_tag(
        self, tags: Iterable[str], property: str = "issuers"
    ) -> tuple[Match, Match]:
        """Split implementations by endpoints carrying every tag."""
        tags = set(tags)
        return self.filter(
            lambda implementation: [
                e for e in implementation.endpoints(property) if tags <= e.tags
            ],
            property=property,
        )


def implementations_dir() -> Path:
    """Directory of implementation manifests (``IMPLEMENTATIONS_DIR`` overrides)."""
    return Path(os.environ.get("IMPLEMENTATIONS_DIR", "implementations"))


def load_registry(path: Path | None = None, **endpoint_kwargs: Any) -> ImplementationRegistry:
    """Load the registry, returning an empty one when the directory is missing."""
    path = path or implementations_dir()
    if not path.is_dir():
        logger.warning("No implementations directory at %s", path)
        return ImplementationRegistry()
    return ImplementationRegistry.from_directory(path, **endpoint_kwargs)
