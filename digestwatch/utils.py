from datetime import datetime, timezone
from logging import basicConfig, getLogger
from typing import Optional

LOG_FORMAT = "%(asctime)s %(levelname)s %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%dT%H:%M:%SZ"
LOG = getLogger(__name__)


def configure_logging(level: str) -> None:
    basicConfig(format=LOG_FORMAT, datefmt=LOG_DATE_FORMAT, level=level)


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def short_digest(digest: Optional[str]) -> str:
    if not digest:
        return "unknown"
    return digest.split(":")[-1][:12]
