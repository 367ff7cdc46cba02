from dataclasses import dataclass
from logging import getLogger
from typing import Protocol

from docker import DockerClient
from docker.errors import DockerException
from docker.models.containers import Container
from requests.exceptions import RequestException

from .errors import RuntimeInspectionFailure
from .images import image_ref_from_inspect, local_digest_from_inspect

LOG = getLogger(__name__)


@dataclass(frozen=True)
class ContainerSnapshot:
    id: str
    name: str
    image_ref: str
    local_image_id: str


class Runtime(Protocol):
    def list_containers(self, all: bool = True) -> list[ContainerSnapshot]:
        ...

    def get_local_image_digest(self, local_image_id: str) -> str:
        ...


class DockerRuntime:
    """Read-only view of the Docker engine used by the update checker."""

    def __init__(self, client: DockerClient):
        self.client = client

    def list_containers(self, all: bool = True) -> list[ContainerSnapshot]:
        try:
            containers = self.client.containers.list(all=all)
        except (DockerException, RequestException) as error:
            raise RuntimeInspectionFailure(f"Failed to list containers: {error}") from error
        return [_snapshot(container) for container in containers]

    def get_local_image_digest(self, local_image_id: str) -> str:
        try:
            image = self.client.images.get(local_image_id)
        except (DockerException, RequestException) as error:
            raise RuntimeInspectionFailure(f"Failed to inspect image {local_image_id}: {error}") from error
        digest = local_digest_from_inspect(image.attrs)
        if not digest:
            raise RuntimeInspectionFailure(f"No digest recorded for image {local_image_id}")
        return digest


def _snapshot(container: Container) -> ContainerSnapshot:
    attrs = container.attrs or {}
    return ContainerSnapshot(
        id=container.id,
        name=attrs.get("Name") or container.name or "",
        image_ref=image_ref_from_inspect(attrs) or "",
        local_image_id=attrs.get("Image") or "",
    )
