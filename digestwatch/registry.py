from enum import Enum
from logging import getLogger
from typing import Any, Optional

import requests

from .errors import AuthenticationRequired, RegistryFetchFailure
from .images import ImageReference, is_docker_hub, is_ghcr, registry_url

LOG = getLogger(__name__)

REQUEST_TIMEOUT = 30
DOCKER_HUB_AUTH_URL = "https://auth.docker.io/token"
DOCKER_HUB_SERVICE = "registry.docker.io"
GHCR_URL = "https://ghcr.io"
DIGEST_HEADER = "Docker-Content-Digest"
MANIFEST_ACCEPT_HEADER = ", ".join(
    [
        "application/vnd.docker.distribution.manifest.list.v2+json",
        "application/vnd.oci.image.index.v1+json",
        "application/vnd.docker.distribution.manifest.v2+json",
        "application/vnd.oci.image.manifest.v1+json",
    ]
)


class RegistryKind(Enum):
    DOCKER_HUB = "docker-hub"
    GHCR = "ghcr"
    GENERIC = "generic"


def registry_kind(ref: ImageReference) -> RegistryKind:
    if is_docker_hub(ref):
        return RegistryKind.DOCKER_HUB
    if is_ghcr(ref):
        return RegistryKind.GHCR
    return RegistryKind.GENERIC


def get_remote_digest(
    ref: ImageReference,
    auth_token: Optional[str] = None,
    session: Optional[Any] = None,
) -> str:
    """Resolve the manifest digest currently published for ``ref``'s tag.

    ``auth_token`` is only sent to GHCR; Docker Hub always uses an anonymous
    pull token and generic registries are queried without credentials.
    ``session`` may be a ``requests.Session``; the ``requests`` module is used
    when it is omitted.
    """
    http = session if session is not None else requests
    kind = registry_kind(ref)
    if kind is RegistryKind.DOCKER_HUB:
        token = fetch_docker_hub_token(ref, http)
        return _manifest_digest(ref, registry_url(ref), token, http)
    if kind is RegistryKind.GHCR:
        return _manifest_digest(ref, GHCR_URL, auth_token, http, auth_required=not auth_token)
    return _manifest_digest(ref, registry_url(ref), None, http)


def fetch_docker_hub_token(ref: ImageReference, http: Any = requests) -> str:
    url = f"{DOCKER_HUB_AUTH_URL}?service={DOCKER_HUB_SERVICE}&scope=repository:{ref.repository}:pull"
    try:
        response = http.get(url, timeout=REQUEST_TIMEOUT)
    except requests.RequestException as error:
        raise RegistryFetchFailure(
            f"Failed to get Docker Hub token for {ref.repository}: {error}",
            ref.registry,
            ref.repository,
            ref.tag,
        ) from error
    if not response.ok:
        raise RegistryFetchFailure(
            f"Failed to get Docker Hub token for {ref.repository}: {response.status_code}",
            ref.registry,
            ref.repository,
            ref.tag,
            status=response.status_code,
        )
    try:
        payload = response.json()
    except ValueError as error:
        raise RegistryFetchFailure(
            f"Malformed Docker Hub token response for {ref.repository}: {error}",
            ref.registry,
            ref.repository,
            ref.tag,
            status=response.status_code,
        ) from error
    if not isinstance(payload, dict):
        raise RegistryFetchFailure(
            f"Malformed Docker Hub token response for {ref.repository}: expected an object",
            ref.registry,
            ref.repository,
            ref.tag,
            status=response.status_code,
        )
    token = payload.get("token")
    if not token:
        raise RegistryFetchFailure(
            f"No token returned by Docker Hub for {ref.repository}",
            ref.registry,
            ref.repository,
            ref.tag,
            status=response.status_code,
        )
    return token


def _manifest_digest(
    ref: ImageReference,
    base_url: str,
    token: Optional[str],
    http: Any,
    auth_required: bool = False,
) -> str:
    label = f"{ref.registry}/{ref.repository}:{ref.tag}"
    manifest_url = f"{base_url}/v2/{ref.repository}/manifests/{ref.tag}"
    headers = {"Accept": MANIFEST_ACCEPT_HEADER}
    if token:
        headers["Authorization"] = f"Bearer {token}"

    LOG.debug("Fetching manifest digest for %s", label)
    try:
        response = http.get(manifest_url, headers=headers, timeout=REQUEST_TIMEOUT)
    except requests.RequestException as error:
        raise RegistryFetchFailure(
            f"Failed to get manifest for {label}: {error}",
            ref.registry,
            ref.repository,
            ref.tag,
        ) from error

    if response.status_code == 401 and auth_required:
        raise AuthenticationRequired(
            f"{ref.registry} requires authentication for {ref.repository}:{ref.tag}; set GHCR_TOKEN",
            ref.registry,
            ref.repository,
            ref.tag,
            status=response.status_code,
        )
    if not response.ok:
        raise RegistryFetchFailure(
            f"Failed to get manifest for {label}: {response.status_code}",
            ref.registry,
            ref.repository,
            ref.tag,
            status=response.status_code,
        )

    digest = response.headers.get(DIGEST_HEADER)
    if not digest:
        raise RegistryFetchFailure(
            f"No digest returned for {label}",
            ref.registry,
            ref.repository,
            ref.tag,
            status=response.status_code,
        )
    return digest
