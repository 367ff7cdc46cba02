from dataclasses import dataclass
from logging import getLogger
from types import MappingProxyType
from typing import Callable, Mapping, Optional

from .config import Settings
from .images import ImageReference, parse_image_reference
from .registry import get_remote_digest
from .runtime import ContainerSnapshot, Runtime
from .utils import short_digest

LOG = getLogger(__name__)

DigestFetcher = Callable[..., str]


@dataclass(frozen=True)
class UpdateRecord:
    container_id: str
    container_name: str
    image: str
    local_digest: str
    remote_digest: str
    has_update: bool


def display_name(snapshot: ContainerSnapshot) -> str:
    return (snapshot.name or "").lstrip("/") or "unknown"


def should_check_container(name: str, settings: Settings) -> bool:
    if name in settings.exclude_containers:
        return False
    if settings.include_containers is None:
        return True
    return name in settings.include_containers


class UpdateChecker:
    """Compares local image digests against the digests published upstream.

    The checker owns the notification history used by
    :meth:`check_for_new_updates`, so a single instance should be driven by a
    single caller.
    """

    def __init__(
        self,
        runtime: Runtime,
        settings: Settings,
        fetch_digest: DigestFetcher = get_remote_digest,
    ):
        self.runtime = runtime
        self.settings = settings
        self.fetch_digest = fetch_digest
        self._last_notified: dict[str, str] = {}

    def check_for_updates(self) -> list[UpdateRecord]:
        containers = self.runtime.list_containers(all=True)
        updates: list[UpdateRecord] = []
        for snapshot in containers:
            name = display_name(snapshot)
            if not should_check_container(name, self.settings):
                LOG.debug("Skipping %s; excluded by container filter", name)
                continue
            try:
                record = self.check_container(snapshot)
            except Exception as error:
                LOG.error("Error checking updates for container %s (%s): %s", name, snapshot.image_ref, error)
                continue
            if record is not None and record.has_update:
                updates.append(record)
        LOG.info("Checked %s containers; %s with updates", len(containers), len(updates))
        return updates

    def check_container(self, snapshot: ContainerSnapshot) -> Optional[UpdateRecord]:
        name = display_name(snapshot)
        image_ref = snapshot.image_ref
        if image_ref.startswith("sha256:"):
            LOG.debug("Skipping %s; image is referenced by digest only", name)
            return None

        parsed: ImageReference = parse_image_reference(image_ref)
        if parsed.digest:
            LOG.debug("Skipping %s; %s is pinned to a digest", name, image_ref)
            return None

        local_digest = self.runtime.get_local_image_digest(snapshot.local_image_id)
        remote_digest = self.fetch_digest(parsed, auth_token=self.settings.ghcr_token)
        has_update = local_digest != remote_digest
        if has_update:
            LOG.info(
                "Update available for %s (%s): %s -> %s",
                name,
                image_ref,
                short_digest(local_digest),
                short_digest(remote_digest),
            )
        else:
            LOG.debug("%s is up-to-date", name)
        return UpdateRecord(
            container_id=snapshot.id,
            container_name=name,
            image=image_ref,
            local_digest=local_digest,
            remote_digest=remote_digest,
            has_update=has_update,
        )

    def check_for_new_updates(self) -> list[UpdateRecord]:
        new_updates: list[UpdateRecord] = []
        for update in self.check_for_updates():
            if self._last_notified.get(update.container_id) == update.remote_digest:
                LOG.debug("Already notified about %s for %s", short_digest(update.remote_digest), update.container_name)
                continue
            new_updates.append(update)
            self._last_notified[update.container_id] = update.remote_digest
        return new_updates

    def clear_notification_history(self) -> None:
        self._last_notified.clear()

    def get_notification_history(self) -> Mapping[str, str]:
        return MappingProxyType(dict(self._last_notified))
