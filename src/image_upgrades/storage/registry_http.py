"""
Registry HTTP Client for the Docker Registry v2 / OCI Distribution API.

Implements the ImageRegistry protocol: list tags and resolve tags to manifest
digests, with the Docker Registry v2 Bearer auth flow, tag pagination and
retries on timeouts.
"""
from __future__ import annotations

import base64
import binascii
import json
import logging
import re
import time
from pathlib import Path
from typing import Dict, List, Optional, Tuple
from urllib.parse import urljoin

import httpx
from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from ..errors import RegistryAuthError, RegistryError, RegistryNotFound, RegistryRateLimited
from ..settings import DOCKER_HUB_REGISTRY, Settings

__all__ = ["DockerAuth", "RegistryHTTP", "normalize_registry", "repository_path"]

logger = logging.getLogger(__name__)

# Manifest media types we accept when resolving digests (in order of preference)
ACCEPTED_MANIFEST_TYPES = [
    "application/vnd.docker.distribution.manifest.list.v2+json",
    "application/vnd.oci.image.index.v1+json",
    "application/vnd.docker.distribution.manifest.v2+json",
    "application/vnd.oci.image.manifest.v1+json",
]

DOCKER_HUB_HOSTS = {
    "docker.io",
    "docker.com",
    "index.docker.io",
    "index.docker.com",
    "registry.docker.io",
    "registry.docker.com",
    "registry-1.docker.io",
    "registry-1.docker.com",
}

# Key Docker itself writes for Hub credentials in config.json
DOCKER_HUB_AUTH_KEY = "https://index.docker.io/v1/"


def normalize_registry(registry: Optional[str], default: str = DOCKER_HUB_REGISTRY) -> str:
    """
    Normalize a registry host, mapping every Docker Hub alias to index.docker.io.

    Examples:
        >>> normalize_registry(None)
        'index.docker.io'

        >>> normalize_registry("registry-1.docker.io")
        'index.docker.io'

        >>> normalize_registry("ghcr.io")
        'ghcr.io'
    """
    host = (registry or default).rstrip("/")
    bare = re.sub(r"^https?://", "", host)
    if bare in DOCKER_HUB_HOSTS:
        return DOCKER_HUB_REGISTRY
    return host


def repository_path(registry: str, dep_name: str) -> str:
    """
    Repository path for an image on a normalized registry.

    Official Docker Hub images live under ``library/``.

    Examples:
        >>> repository_path("index.docker.io", "node")
        'library/node'

        >>> repository_path("index.docker.io", "bitnami/redis")
        'bitnami/redis'
    """
    if registry == DOCKER_HUB_REGISTRY and "/" not in dep_name:
        return f"library/{dep_name}"
    return dep_name


class DockerAuth:
    """Handle Docker Registry authentication from config files."""

    def __init__(self, config_path: Optional[Path] = None):
        self.config_path = config_path or Path.home() / ".docker" / "config.json"
        self._config_cache: Optional[dict] = None
        self._config_mtime: Optional[float] = None

    def get_credentials(self, registry: str) -> Optional[Tuple[str, str]]:
        """
        Get credentials for registry from Docker config.

        Returns: (username, password) or None if not found
        """
        config = self._load_config()
        if not config:
            return None

        auths = config.get("auths", {})
        bare = re.sub(r"^https?://", "", registry)

        candidates = [registry, f"https://{bare}", bare]
        if normalize_registry(bare) == DOCKER_HUB_REGISTRY:
            candidates += [DOCKER_HUB_AUTH_KEY] + sorted(DOCKER_HUB_HOSTS)

        for key in candidates:
            if key in auths:
                creds = self._parse_auth_entry(auths[key])
                if creds:
                    return creds
        return None

    @staticmethod
    def _parse_auth_entry(auth_entry: dict) -> Optional[Tuple[str, str]]:
        # Handle base64 encoded auth field
        if "auth" in auth_entry:
            try:
                decoded = base64.b64decode(auth_entry["auth"]).decode()
            except (binascii.Error, UnicodeDecodeError):
                logger.warning("Ignoring malformed auth entry in Docker config")
            else:
                if ":" in decoded:
                    username, password = decoded.split(":", 1)
                    return username, password

        # Handle username/password fields
        if "username" in auth_entry and "password" in auth_entry:
            return (auth_entry["username"], auth_entry["password"])

        return None

    def _load_config(self) -> Optional[dict]:
        """Load Docker config with caching and mtime checking."""
        if not self.config_path.exists():
            return None

        try:
            current_mtime = self.config_path.stat().st_mtime

            # Use cached version if file hasn't changed
            if (self._config_cache is not None and
                self._config_mtime is not None and
                current_mtime == self._config_mtime):
                return self._config_cache

            with open(self.config_path, 'r') as f:
                config = json.load(f)

            self._config_cache = config
            self._config_mtime = current_mtime
            return config

        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Could not read Docker config {self.config_path}: {e}")
            return None


class RegistryHTTP:
    """
    HTTP client for registry tag listing and digest resolution.

    Implements the Docker Registry v2 auth flow with Bearer token support,
    anonymous tokens for public images, and retries on timeouts.
    """

    def __init__(self, settings: Optional[Settings] = None, auth: Optional[DockerAuth] = None,
                 transport: Optional[httpx.BaseTransport] = None):
        """
        Initialize registry HTTP client.

        Args:
            settings: Client settings (defaults to Settings())
            auth: Docker auth handler (defaults to the configured Docker config)
            transport: Optional httpx transport (e.g., httpx.MockTransport in tests)
        """
        self.settings = settings or Settings()
        self.auth = auth or DockerAuth(self.settings.docker_config)

        timeout = self.settings.http_timeout_s
        self.client = httpx.Client(
            timeout=httpx.Timeout(timeout, connect=min(5.0, timeout)),
            follow_redirects=True,
            verify=not self.settings.registry_insecure,
            headers={"User-Agent": "image-upgrades/0.1.0"},
            transport=transport,
        )

        # Token cache: {service:scope: (token, expiry_timestamp)}
        self._token_cache: Dict[str, Tuple[str, float]] = {}

    def list_tags(self, registry: Optional[str], dep_name: str) -> Optional[List[str]]:
        """
        List all tags of an image, following pagination.

        Returns:
            Tags in registry order, or None if the registry could not be queried
        """
        try:
            return self.fetch_tags(registry, dep_name)
        except RegistryError as e:
            logger.warning(f"Could not list tags for {dep_name}: {e}")
            return None

    def get_digest(self, registry: Optional[str], dep_name: str, tag: str) -> Optional[str]:
        """
        Resolve a tag to its manifest digest.

        Returns:
            Docker-Content-Digest of the tag, or None if it could not be resolved
        """
        try:
            return self.head_digest(registry, dep_name, tag)
        except RegistryNotFound:
            logger.debug(f"No manifest for {dep_name}:{tag}")
            return None
        except RegistryError as e:
            logger.warning(f"Could not resolve digest for {dep_name}:{tag}: {e}")
            return None

    def fetch_tags(self, registry: Optional[str], dep_name: str) -> List[str]:
        """
        List all tags of an image.

        Raises:
            RegistryNotFound: If the repository does not exist
            RegistryAuthError: If authentication fails
            RegistryError: For other registry or network errors
        """
        host = normalize_registry(registry, self.settings.default_registry)
        repo = repository_path(host, dep_name)
        url: Optional[str] = urljoin(self._base_url(host), f"/v2/{repo}/tags/list?n={self.settings.tags_page_size}")

        tags: List[str] = []
        fetched = set()
        while url:
            if url in fetched:
                raise RegistryError(f"Tag list pagination for {repo} loops back to {url}")
            fetched.add(url)

            response = self._request("GET", url, host, f"{repo} tags")
            try:
                payload = response.json()
            except json.JSONDecodeError as e:
                raise RegistryError(f"Invalid JSON in tag list for {repo}: {e}") from e
            if not isinstance(payload, dict) or not isinstance(payload.get("tags") or [], list):
                raise RegistryError(f"Unexpected tag list payload for {repo}")
            tags.extend(payload.get("tags") or [])

            next_url = response.links.get("next", {}).get("url")
            url = urljoin(str(response.url), next_url) if next_url else None

        logger.debug(f"Found {len(tags)} tags for {host}/{repo}")
        return tags

    def head_digest(self, registry: Optional[str], dep_name: str, tag: str) -> str:
        """
        Get manifest digest without downloading content.

        Raises:
            RegistryNotFound: If the tag does not exist
            RegistryError: If the registry omits the digest header or fails
        """
        host = normalize_registry(registry, self.settings.default_registry)
        repo = repository_path(host, dep_name)
        url = urljoin(self._base_url(host), f"/v2/{repo}/manifests/{tag}")
        headers = {"Accept": ", ".join(ACCEPTED_MANIFEST_TYPES)}

        response = self._request("HEAD", url, host, f"{repo}:{tag}", headers=headers)

        digest = response.headers.get("Docker-Content-Digest")
        if not digest:
            raise RegistryError(f"Registry did not return Docker-Content-Digest header for {repo}:{tag}")
        return digest

    def _base_url(self, host: str) -> str:
        if host.startswith("http"):
            return host
        if self.settings.registry_insecure:
            return f"http://{host}"
        return f"https://{host}"

    def _request(self, method: str, url: str, host: str, what: str,
                 headers: Optional[dict] = None) -> httpx.Response:
        """
        Make HTTP request with retries on timeouts, mapping failures to RegistryError.
        """
        retrying = Retrying(
            stop=stop_after_attempt(self.settings.http_retry + 1),
            wait=wait_exponential(multiplier=1, min=1, max=10),
            retry=retry_if_exception_type(httpx.TimeoutException),
            reraise=True,
        )
        try:
            response = retrying(self._send, method, url, host, dict(headers or {}))
            response.raise_for_status()
            return response
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            if status == 404:
                raise RegistryNotFound(f"Not found: {what}") from e
            elif status in (401, 403):
                raise RegistryAuthError(f"Authentication failed for {what}") from e
            elif status == 429:
                raise RegistryRateLimited(f"Rate limited by {host} for {what}") from e
            else:
                raise RegistryError(f"Registry error {status} for {what}: {e}") from e
        except httpx.RequestError as e:
            raise RegistryError(f"Network error for {what}: {e}") from e

    def _send(self, method: str, url: str, host: str, headers: dict) -> httpx.Response:
        """
        Send one request with the transparent Bearer token auth flow.

        Handles 401 responses by:
        1. Parsing WWW-Authenticate header for Bearer realm/service/scope
        2. Looking up credentials (settings, then Docker config)
        3. Exchanging credentials (or nothing, for anonymous pulls) for a token
        4. Retrying the original request with the Authorization header
        """
        response = self.client.request(method, url, headers=headers)

        if response.status_code == 401:
            auth_header = response.headers.get("WWW-Authenticate", "")
            if auth_header.startswith("Bearer "):
                token = self._handle_bearer_auth(auth_header, host)
                if token:
                    headers["Authorization"] = f"Bearer {token}"
                    response = self.client.request(method, url, headers=headers)

        return response

    def _credentials(self, host: str) -> Optional[Tuple[str, str]]:
        if self.settings.registry_user and self.settings.registry_pass:
            return self.settings.registry_user, self.settings.registry_pass
        return self.auth.get_credentials(host)

    def _handle_bearer_auth(self, www_authenticate: str, host: str) -> Optional[str]:
        """
        Handle Bearer token authentication flow.

        Parses WWW-Authenticate header, gets credentials, exchanges for token.
        """
        # Format: Bearer realm="...",service="...",scope="..."
        bearer_params = {}
        for match in re.finditer(r'(\w+)="([^"]*)"', www_authenticate):
            bearer_params[match.group(1)] = match.group(2)

        realm = bearer_params.get("realm")
        service = bearer_params.get("service")
        scope = bearer_params.get("scope")

        if not realm:
            return None

        cache_key = f"{service or realm}:{scope or ''}"
        if cache_key in self._token_cache:
            token, expiry = self._token_cache[cache_key]
            if time.time() < expiry - 30:  # 30s buffer before expiry
                return token

        params = {}
        if service:
            params["service"] = service
        if scope:
            params["scope"] = scope

        creds = self._credentials(host)
        try:
            auth_response = self.client.get(realm, params=params, auth=creds)
            auth_response.raise_for_status()
            token_data = auth_response.json()
        except (httpx.HTTPError, json.JSONDecodeError) as e:
            logger.warning(f"Token exchange with {realm} failed: {e}")
            return None
        if not isinstance(token_data, dict):
            logger.warning(f"Token exchange with {realm} returned an unexpected payload")
            return None

        # Some registries answer with "access_token" instead of "token"
        token = token_data.get("token") or token_data.get("access_token")
        if not token:
            return None

        expires_in = token_data.get("expires_in", 3600)
        self._token_cache[cache_key] = (token, time.time() + expires_in)
        return token

    def close(self):
        """Close HTTP client."""
        self.client.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
