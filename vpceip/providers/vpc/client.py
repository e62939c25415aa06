"""REST transport, identity catalog and VPC endpoint resolution.

Authentication uses Keystone v3 (password or a pre-issued token). The token's
service catalog is then used to find the VPC v1 endpoint for a region.
"""

from __future__ import annotations

import json
import logging
import ssl
from threading import Lock
from typing import Any, Callable, Optional
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from ...config import Settings

logger = logging.getLogger(__name__)

_PROJECT_PLACEHOLDERS = (
    "$(tenant_id)s",
    "%(tenant_id)s",
    "$(project_id)s",
    "%(project_id)s",
    "{project_id}",
)


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class APIError(Exception):
    """An error response (or transport failure) from the cloud API."""

    def __init__(self, status: int, message: str, code: str = "", url: str = ""):
        self.status = status
        self.message = message
        self.code = code
        self.url = url
        detail = f" ({code})" if code else ""
        super().__init__(f"HTTP {status}{detail}: {message}" if status else message)


class NotFoundError(APIError):
    """The addressed resource does not exist (HTTP 404)."""


class AuthenticationError(APIError):
    """Credentials were rejected (HTTP 401/403)."""


class EndpointNotFoundError(Exception):
    """No usable endpoint in the service catalog."""


def _error_from_http(exc: HTTPError, method: str, url: str) -> APIError:
    body = exc.read().decode(errors="replace") if exc.fp else ""
    message, code = body or str(exc.reason), ""
    try:
        payload = json.loads(body)
    except ValueError:
        payload = None
    if isinstance(payload, dict):
        # Responses wrap details as {"error": {...}}, {"NeutronError": {...}} or flat
        inner = next(
            (v for v in payload.values() if isinstance(v, dict) and "message" in v),
            payload,
        )
        message = inner.get("message", message)
        code = str(inner.get("code", ""))

    logger.debug("API error %s %s: %s %s", method, url, exc.code, body)
    if exc.code == 404:
        return NotFoundError(404, message, code, url)
    if exc.code in (401, 403):
        return AuthenticationError(exc.code, message, code, url)
    return APIError(exc.code, message, code, url)


# ---------------------------------------------------------------------------
# Provider (identity) client
# ---------------------------------------------------------------------------


class ProviderClient:
    """Holds the auth token and service catalog for one identity session."""

    def __init__(
        self,
        auth_url: str = "",
        token: str = "",
        project_id: str = "",
        catalog: Optional[list[dict[str, Any]]] = None,
        insecure: bool = False,
    ) -> None:
        self.auth_url = auth_url.rstrip("/")
        self.token = token
        self.project_id = project_id
        self.catalog: list[dict[str, Any]] = catalog or []
        self.insecure = insecure

    @classmethod
    def from_settings(cls, cfg: Settings) -> "ProviderClient":
        """Build a client from settings, authenticating when no catalog is known."""
        client = cls(
            auth_url=cfg.auth_url,
            token=cfg.token or "",
            project_id=cfg.project_id,
            insecure=cfg.insecure,
        )
        if cfg.auth_url:
            client.authenticate(
                username=cfg.username,
                password=cfg.password,
                domain_name=cfg.domain_name,
                project_id=cfg.project_id,
                project_name=cfg.project_name,
            )
        return client

    def authenticate(
        self,
        username: str = "",
        password: str = "",
        domain_name: str = "",
        project_id: str = "",
        project_name: str = "",
    ) -> None:
        """Request a project-scoped token and store it with its catalog."""
        if not self.auth_url:
            raise EndpointNotFoundError("No identity endpoint configured (VPCEIP_AUTH_URL)")

        if self.token and not username:
            identity: dict[str, Any] = {"methods": ["token"], "token": {"id": self.token}}
        else:
            identity = {
                "methods": ["password"],
                "password": {
                    "user": {
                        "name": username,
                        "password": password,
                        "domain": {"name": domain_name},
                    },
                },
            }

        if project_id:
            scope: dict[str, Any] = {"project": {"id": project_id}}
        else:
            scope = {"project": {"name": project_name, "domain": {"name": domain_name}}}

        body = {"auth": {"identity": identity, "scope": scope}}
        headers, payload = self.request("POST", f"{self.auth_url}/auth/tokens", body, authenticated=False)

        token_info = payload.get("token", {})
        self.token = headers.get("x-subject-token", "")
        self.catalog = token_info.get("catalog", [])
        self.project_id = token_info.get("project", {}).get("id", project_id)
        logger.info("Authenticated against %s (project %s)", self.auth_url, self.project_id)

    def endpoint_for(self, service_type: str, region: str, interface: str = "public") -> str:
        """Return the catalog URL for *service_type* in *region*, or '' if absent."""
        for service in self.catalog:
            if service.get("type") != service_type:
                continue
            for ep in service.get("endpoints", []):
                ep_region = ep.get("region_id") or ep.get("region", "")
                if ep.get("interface") != interface:
                    continue
                if region and ep_region != region:
                    continue
                return self._fill_project(ep.get("url", ""))
        return ""

    def _fill_project(self, url: str) -> str:
        for placeholder in _PROJECT_PLACEHOLDERS:
            url = url.replace(placeholder, self.project_id)
        return url

    def request(
        self,
        method: str,
        url: str,
        data: Optional[dict[str, Any]] = None,
        authenticated: bool = True,
    ) -> tuple[dict[str, str], dict[str, Any]]:
        """Make an HTTP request. Returns (response headers, decoded JSON body).

        Header names are lower-cased.
        """
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        if authenticated:
            headers["X-Auth-Token"] = self.token

        body = json.dumps(data).encode() if data is not None else None
        req = Request(url, data=body, headers=headers, method=method)

        ctx = ssl.create_default_context()
        if self.insecure:
            ctx.check_hostname = False
            ctx.verify_mode = ssl.CERT_NONE

        try:
            with urlopen(req, context=ctx) as resp:
                raw = resp.read()
                resp_headers = {k.lower(): v for k, v in resp.headers.items()}
        except HTTPError as e:
            raise _error_from_http(e, method, url) from e
        except URLError as e:
            raise APIError(0, f"{method} {url} failed: {e.reason}", url=url) from e

        return resp_headers, (json.loads(raw) if raw else {})


# ---------------------------------------------------------------------------
# Service client
# ---------------------------------------------------------------------------


class ServiceClient:
    """A provider client bound to one service base URL."""

    def __init__(self, provider: ProviderClient, endpoint: str) -> None:
        self.provider = provider
        self.endpoint = endpoint if endpoint.endswith("/") else endpoint + "/"

    def url(self, *parts: str) -> str:
        return self.endpoint + "/".join(p.strip("/") for p in parts)

    def request(self, method: str, path: str, data: Optional[dict[str, Any]] = None) -> dict[str, Any]:
        """Call ``<endpoint>/<path>`` and return the decoded JSON body."""
        _, payload = self.provider.request(method, self.url(path), data)
        return payload


# ---------------------------------------------------------------------------
# Endpoint resolution
# ---------------------------------------------------------------------------


def resolve_vpc_endpoint(
    provider: ProviderClient,
    region: str,
    interface: str = "public",
    override: str = "",
) -> str:
    """Find the VPC v1 base URL for *region*.

    Uses an explicit override first, then a ``vpc`` catalog entry. Clouds that
    publish no such entry get the compute endpoint with ``ecs`` and ``v2``
    rewritten to ``vpc`` and ``v1``.
    """
    if override:
        return provider._fill_project(override)

    url = provider.endpoint_for("vpc", region, interface)
    if url:
        return url

    compute = provider.endpoint_for("compute", region, interface)
    if not compute:
        raise EndpointNotFoundError(
            f"No 'vpc' or 'compute' endpoint in catalog for region {region!r} ({interface})"
        )

    url = compute.replace("ecs", "vpc", 1).replace("v2", "v1", 1)
    logger.warning("No 'vpc' catalog entry for %s, derived %s from compute endpoint", region, url)
    return url


def new_vpc_v1(
    provider: ProviderClient,
    region: str,
    interface: str = "public",
    override: str = "",
) -> ServiceClient:
    """Create a ServiceClient for the v1 VPC (public IP management) service."""
    return ServiceClient(provider, resolve_vpc_endpoint(provider, region, interface, override))


class VpcClientProvider:
    """Typed client source injected into adapters. Caches one client per region.

    Built from settings, it authenticates on the first client request rather
    than at construction.
    """

    def __init__(
        self,
        provider: Optional[ProviderClient] = None,
        interface: str = "public",
        vpc_endpoint: str = "",
        connect: Optional[Callable[[], ProviderClient]] = None,
    ) -> None:
        if provider is None and connect is None:
            raise ValueError("VpcClientProvider needs a provider client or a connect function")
        self._provider = provider
        self._connect = connect
        self.interface = interface
        self.vpc_endpoint = vpc_endpoint
        self._clients: dict[str, ServiceClient] = {}
        self._lock = Lock()

    @classmethod
    def from_settings(cls, cfg: Settings) -> "VpcClientProvider":
        return cls(
            interface=cfg.interface,
            vpc_endpoint=cfg.vpc_endpoint,
            connect=lambda: ProviderClient.from_settings(cfg),
        )

    @property
    def provider(self) -> ProviderClient:
        with self._lock:
            return self._get_provider()

    def _get_provider(self) -> ProviderClient:
        if self._provider is None:
            self._provider = self._connect()
        return self._provider

    def vpc_v1_client(self, region: str) -> ServiceClient:
        with self._lock:
            if region not in self._clients:
                self._clients[region] = new_vpc_v1(
                    self._get_provider(), region, self.interface, self.vpc_endpoint,
                )
            return self._clients[region]
