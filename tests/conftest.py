from typing import Callable, Iterable, Optional

import pytest
from requests.structures import CaseInsensitiveDict

from digestwatch.config import Settings
from digestwatch.errors import RuntimeInspectionFailure
from digestwatch.runtime import ContainerSnapshot


class FakeRuntime:
    def __init__(self, containers: Optional[Iterable[ContainerSnapshot]] = None, digests: Optional[dict] = None):
        self.containers = list(containers or [])
        self.digests = digests or {}
        self.list_calls: list[bool] = []
        self.digest_calls: list[str] = []

    def list_containers(self, all: bool = True) -> list[ContainerSnapshot]:
        self.list_calls.append(all)
        return list(self.containers)

    def get_local_image_digest(self, local_image_id: str) -> str:
        self.digest_calls.append(local_image_id)
        digest = self.digests.get(local_image_id)
        if isinstance(digest, Exception):
            raise digest
        if digest is None:
            raise RuntimeInspectionFailure(f"No such image: {local_image_id}")
        return digest


class FakeFetcher:
    def __init__(self, digests: Optional[dict] = None):
        self.digests = digests or {}
        self.calls: list = []

    def __call__(self, ref, auth_token=None):
        self.calls.append((ref, auth_token))
        digest = self.digests[ref.repository]
        if isinstance(digest, Exception):
            raise digest
        return digest


class FakeResponse:
    def __init__(self, status_code: int = 200, headers: Optional[dict] = None, payload=None):
        self.status_code = status_code
        self.headers = CaseInsensitiveDict(headers or {})
        self._payload = payload

    @property
    def ok(self) -> bool:
        return self.status_code < 400

    def json(self):
        if self._payload is None:
            raise ValueError("no JSON body")
        return self._payload


class FakeSession:
    def __init__(self, responses: Iterable):
        self.responses = list(responses)
        self.calls: list[tuple[str, dict, object]] = []

    def get(self, url, headers=None, timeout=None):
        self.calls.append((url, headers or {}, timeout))
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture
def settings() -> Settings:
    return Settings(
        docker_host="unix://test",
        check_interval_minutes=60,
        include_containers=None,
        exclude_containers=frozenset(),
        run_immediately=True,
        ghcr_token=None,
        pushover_token=None,
        pushover_user=None,
        pushover_api="https://example",
        webhook_url=None,
        log_level="INFO",
    )


@pytest.fixture
def snapshot() -> Callable[..., ContainerSnapshot]:
    def _make(name: str, image_ref: str = "nginx:latest", image_id: Optional[str] = None) -> ContainerSnapshot:
        return ContainerSnapshot(
            id=f"{name}-id",
            name=f"/{name}",
            image_ref=image_ref,
            local_image_id=image_id or f"sha256:{name}-image",
        )
    return _make


@pytest.fixture
def fake_runtime() -> Callable[..., FakeRuntime]:
    return FakeRuntime


@pytest.fixture
def fake_fetcher() -> Callable[..., FakeFetcher]:
    return FakeFetcher


@pytest.fixture
def fake_response() -> Callable[..., FakeResponse]:
    return FakeResponse


@pytest.fixture
def fake_session() -> Callable[..., FakeSession]:
    return FakeSession
