from dataclasses import dataclass
from typing import Optional

from .errors import InvalidReference

DEFAULT_REGISTRY = "registry-1.docker.io"
DEFAULT_REGISTRY_ALIAS = "docker.io"
DEFAULT_REGISTRY_URL = "https://registry-1.docker.io"
GHCR_REGISTRY = "ghcr.io"
DEFAULT_TAG = "latest"
OFFICIAL_NAMESPACE = "library"


@dataclass(frozen=True)
class ImageReference:
    registry: str
    repository: str
    tag: str = DEFAULT_TAG
    digest: Optional[str] = None


def parse_image_reference(ref: object) -> ImageReference:
    """Parse an image reference such as ``nginx``, ``ghcr.io/user/app:1.2``,
    ``registry.example.com:5000/my-image:v1`` or ``nginx@sha256:...``.

    When a digest is present it is authoritative; the tag keeps its default
    value but must not be used for remote lookups.
    """
    if not isinstance(ref, str) or not ref.strip():
        raise InvalidReference(f"Invalid image reference: {ref!r}")

    remaining = ref.strip()
    registry: Optional[str] = None
    tag = DEFAULT_TAG
    digest: Optional[str] = None

    at_index = remaining.find("@")
    if at_index != -1:
        digest = remaining[at_index + 1:]
        remaining = remaining[:at_index]

    if not digest:
        colon_index = remaining.rfind(":")
        # registry:port/name has a slash after the colon
        if colon_index != -1 and "/" not in remaining[colon_index + 1:]:
            tag = remaining[colon_index + 1:]
            remaining = remaining[:colon_index]

    slash_index = remaining.find("/")
    if slash_index != -1:
        candidate = remaining[:slash_index]
        if "." in candidate or ":" in candidate or candidate == "localhost":
            registry = candidate
            remaining = remaining[slash_index + 1:]

    if registry is None or registry == DEFAULT_REGISTRY_ALIAS:
        registry = DEFAULT_REGISTRY
    if registry == DEFAULT_REGISTRY and "/" not in remaining:
        remaining = f"{OFFICIAL_NAMESPACE}/{remaining}"

    return ImageReference(registry=registry, repository=remaining, tag=tag, digest=digest or None)


def format_reference(ref: ImageReference) -> str:
    if ref.digest:
        return f"{ref.registry}/{ref.repository}@{ref.digest}"
    return f"{ref.registry}/{ref.repository}:{ref.tag}"


def registry_url(ref: ImageReference) -> str:
    if ref.registry == DEFAULT_REGISTRY:
        return DEFAULT_REGISTRY_URL
    if ref.registry.startswith(("http://", "https://")):
        return ref.registry
    return f"https://{ref.registry}"


def is_docker_hub(ref: ImageReference) -> bool:
    return ref.registry == DEFAULT_REGISTRY


def is_ghcr(ref: ImageReference) -> bool:
    return ref.registry == GHCR_REGISTRY


def image_ref_from_inspect(attrs: dict) -> Optional[str]:
    # Config.Image is the reference the container was created from
    config = attrs.get("Config") or {}
    return config.get("Image") or attrs.get("Image")


def local_digest_from_inspect(attrs: dict) -> Optional[str]:
    repo_digests = attrs.get("RepoDigests") or []
    if repo_digests:
        _, separator, digest = repo_digests[0].partition("@")
        if separator and digest:
            return digest
    return attrs.get("Id")
