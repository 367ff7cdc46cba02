from dataclasses import dataclass
from logging import getLogger
from os import getenv
from typing import Optional

DEFAULT_DOCKER_HOST = "unix://var/run/docker.sock"
DEFAULT_PUSHOVER_API = "https://api.pushover.net/1/messages.json"
DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_INTERVAL_MINUTES = 60
MIN_INTERVAL_MINUTES = 5
ALL_CONTAINERS = {"all", "*"}

LOG = getLogger(__name__)


@dataclass(frozen=True)
class Settings:
    docker_host: str
    check_interval_minutes: int
    include_containers: Optional[frozenset[str]]
    exclude_containers: frozenset[str]
    run_immediately: bool
    ghcr_token: Optional[str]
    pushover_token: Optional[str]
    pushover_user: Optional[str]
    pushover_api: str
    webhook_url: Optional[str]
    log_level: str


def load_settings() -> Settings:
    interval = _env_int("DIGESTWATCH_INTERVAL_MINUTES", DEFAULT_INTERVAL_MINUTES)
    if interval < MIN_INTERVAL_MINUTES:
        LOG.warning(
            "DIGESTWATCH_INTERVAL_MINUTES cannot be less than %s; using %s",
            MIN_INTERVAL_MINUTES,
            MIN_INTERVAL_MINUTES,
        )
        interval = MIN_INTERVAL_MINUTES
    return Settings(
        docker_host=getenv("DOCKER_HOST", DEFAULT_DOCKER_HOST),
        check_interval_minutes=interval,
        include_containers=_env_container_set("DIGESTWATCH_CONTAINERS"),
        exclude_containers=frozenset(_env_csv_list("DIGESTWATCH_EXCLUDE_CONTAINERS", "")),
        run_immediately=_env_bool("DIGESTWATCH_RUN_IMMEDIATELY", True),
        ghcr_token=getenv("GHCR_TOKEN") or None,
        pushover_token=getenv("DIGESTWATCH_PUSHOVER_TOKEN") or None,
        pushover_user=getenv("DIGESTWATCH_PUSHOVER_USER") or None,
        pushover_api=getenv("DIGESTWATCH_PUSHOVER_API", DEFAULT_PUSHOVER_API),
        webhook_url=getenv("DIGESTWATCH_WEBHOOK_URL") or None,
        log_level=getenv("DIGESTWATCH_LOG_LEVEL", DEFAULT_LOG_LEVEL).upper(),
    )


def _env_bool(name: str, default: bool) -> bool:
    value = getenv(name)
    if value is None or not value.strip():
        return default
    lowered = value.strip().lower()
    return lowered in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    value = getenv(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _env_csv_list(name: str, default: str) -> list[str]:
    raw = getenv(name, default)
    items: list[str] = []
    for chunk in raw.replace(",", " ").split():
        item = chunk.strip()
        if item and item not in items:
            items.append(item)
    return items


def _env_container_set(name: str) -> Optional[frozenset[str]]:
    """Return None when every container should be checked."""
    items = _env_csv_list(name, "all")
    if not items or any(item.lower() in ALL_CONTAINERS for item in items):
        return None
    return frozenset(items)
