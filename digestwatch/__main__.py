from logging import getLogger
from signal import SIGINT, SIGTERM, signal
from threading import Event
from typing import Callable

from docker import DockerClient
from docker.errors import DockerException

from .checker import UpdateChecker
from .config import Settings, load_settings
from .notifier import notify_updates
from .runtime import DockerRuntime
from .scheduler import JobScheduler
from .utils import configure_logging

LOG = getLogger(__name__)

CHECK_JOB = "check-updates"


def build_client(settings: Settings) -> DockerClient:
    try:
        return DockerClient(base_url=settings.docker_host)
    except DockerException as error:
        raise SystemExit(f"Unable to connect to Docker: {error}") from error


def make_check_job(checker: UpdateChecker, settings: Settings) -> Callable[[], None]:
    def _run() -> None:
        LOG.info("Running scheduled update check")
        new_updates = checker.check_for_new_updates()
        if new_updates:
            LOG.info("Found %s new update(s); sending notifications", len(new_updates))
            notify_updates(settings, new_updates)
        else:
            LOG.info("No new updates found")

    return _run


def install_signal_handlers(scheduler: JobScheduler, stop_signal: Event) -> None:
    def _handle(signum, frame) -> None:
        LOG.info("Received signal %s; shutting down", signum)
        scheduler.shutdown()
        stop_signal.set()

    signal(SIGTERM, _handle)
    signal(SIGINT, _handle)


def main() -> None:
    settings = load_settings()
    configure_logging(settings.log_level)
    client = build_client(settings)
    LOG.info("Starting digestwatch")

    checker = UpdateChecker(DockerRuntime(client), settings)
    scheduler = JobScheduler()
    stop_signal = Event()
    install_signal_handlers(scheduler, stop_signal)

    scheduler.schedule(
        CHECK_JOB,
        make_check_job(checker, settings),
        settings.check_interval_minutes * 60 * 1000,
        run_immediately=settings.run_immediately,
    )
    LOG.info("Checking for image updates every %s minutes", settings.check_interval_minutes)

    try:
        stop_signal.wait()
    finally:
        scheduler.shutdown()
        client.close()
    LOG.info("digestwatch stopped")


if __name__ == "__main__":
    main()
