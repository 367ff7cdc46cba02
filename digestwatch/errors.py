from typing import Optional


class DigestwatchError(Exception):
    """Base class for every error raised by digestwatch."""


class InvalidReference(DigestwatchError, ValueError):
    pass


class RegistryError(DigestwatchError):
    """A registry lookup failed for a given registry/repository/tag."""

    def __init__(
        self,
        message: str,
        registry: str,
        repository: str,
        tag: str,
        status: Optional[int] = None,
    ):
        super().__init__(message)
        self.registry = registry
        self.repository = repository
        self.tag = tag
        self.status = status


class AuthenticationRequired(RegistryError):
    pass


class RegistryFetchFailure(RegistryError):
    pass


class RuntimeInspectionFailure(DigestwatchError):
    pass


class SchedulerError(DigestwatchError):
    pass


class DuplicateJob(SchedulerError):
    pass


class JobNotFound(SchedulerError):
    pass


class JobAlreadyRunning(SchedulerError):
    pass
