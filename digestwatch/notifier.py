from http.client import HTTPConnection, HTTPSConnection
from json import dumps
from logging import getLogger
from socket import gethostname
from typing import Optional
from urllib.parse import urlencode, urlsplit

from .checker import UpdateRecord
from .config import Settings
from .utils import short_digest

LOG = getLogger(__name__)


def format_updates(updates: list[UpdateRecord]) -> str:
    lines = [
        f"{update.container_name}: {update.image} "
        f"({short_digest(update.local_digest)} -> {short_digest(update.remote_digest)})"
        for update in updates
    ]
    count = len(updates)
    header = f"{count} container update{'s' if count != 1 else ''} available:"
    return "\n".join([header, *lines])


def notify_updates(settings: Settings, updates: list[UpdateRecord], hostname: Optional[str] = None) -> None:
    if not updates:
        return
    title = f"digestwatch on {hostname or gethostname()}"
    message = format_updates(updates)
    LOG.info("Sending notification for %s update(s)", len(updates))
    notify_pushover(settings, title, message)
    notify_webhook(
        settings,
        title,
        message,
        extra={
            "updates": [
                {
                    "container_id": update.container_id,
                    "container_name": update.container_name,
                    "image": update.image,
                    "local_digest": update.local_digest,
                    "remote_digest": update.remote_digest,
                }
                for update in updates
            ]
        },
    )


def notify_pushover(settings: Settings, title: str, message: str) -> None:
    if settings.pushover_token is None or settings.pushover_user is None:
        LOG.debug("Pushover disabled; missing token or user")
        return
    body = urlencode(
        {
            "token": settings.pushover_token,
            "user": settings.pushover_user,
            "title": title,
            "message": message,
        }
    ).encode("ascii")
    _post("Pushover", settings.pushover_api, body, "application/x-www-form-urlencoded")


def notify_webhook(settings: Settings, title: str, message: str, extra: Optional[dict] = None) -> None:
    if settings.webhook_url is None:
        LOG.debug("Webhook disabled; missing URL")
        return
    payload = {"title": title, "message": message}
    if extra:
        payload.update(extra)
    _post("Webhook", settings.webhook_url, dumps(payload).encode("utf-8"), "application/json")


def _post(channel: str, url: str, body: bytes, content_type: str) -> None:
    """POST ``body`` to ``url``; delivery problems are logged, never raised."""
    endpoint = urlsplit(url)
    if endpoint.scheme == "http":
        connection = HTTPConnection(endpoint.netloc)
    else:
        connection = HTTPSConnection(endpoint.netloc)
    path = endpoint.path or "/"
    if endpoint.query:
        path = f"{path}?{endpoint.query}"

    try:
        connection.request("POST", path, body=body, headers={"Content-Type": content_type})
        response = connection.getresponse()
        if response.status >= 300:
            LOG.warning("%s returned %s: %s", channel, response.status, response.reason)
    except OSError as error:
        LOG.warning("Failed to send %s notification: %s", channel.lower(), error)
    finally:
        connection.close()
