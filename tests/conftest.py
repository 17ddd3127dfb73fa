"""
Shared fixtures.

Every test gets fresh in-memory SQLite databases, an in-process hub acting as
the remote snapshot store, and a factory for client runtimes wired to it.
Nothing leaves the process: clients reach the hub through its TestClient,
optionally behind a link that can be switched offline.
"""

import httpx
import pytest
from fastapi.testclient import TestClient

from safestock.core.config import Settings
from safestock.core.database import build_engine, build_session_factory
from safestock.core.runtime import build_runtime
from safestock.hub.app import create_hub_app
from safestock.schemas.inventory import Snapshot
from tests.factories import HUB_URL



class HubLink:
    """
    httpx client that forwards to the hub while online and raises a
    connect error while offline, or for the HTTP methods listed in
    `offline_methods`.
    """

    def __init__(self, hub_client: TestClient):
        self.online = True
        self.offline_methods: set[str] = set()
        self.requests: list[httpx.Request] = []
        self._hub = hub_client
        self.client = httpx.Client(transport=httpx.MockTransport(self._handle))

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if not self.online or request.method in self.offline_methods:
            raise httpx.ConnectError("hub unreachable", request=request)
        response = self._hub.request(
            request.method,
            str(request.url),
            content=request.content,
            headers={"content-type": request.headers.get("content-type", "application/json")},
        )
        return httpx.Response(
            response.status_code,
            content=response.content,
            headers={"content-type": response.headers.get("content-type", "")},
        )


@pytest.fixture
def session_factory():
    return build_session_factory(build_engine("sqlite://"))


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        mirror_database_url="sqlite://",
        hub_database_url="sqlite://",
        remote_url=None,
        sync_interval_seconds=0,
        gemini_api_key=None,
    )


@pytest.fixture
def hub_client():
    hub_app = create_hub_app(session_factory=build_session_factory(build_engine("sqlite://")))
    with TestClient(hub_app) as client:
        yield client


@pytest.fixture
def hub_link(hub_client):
    link = HubLink(hub_client)
    yield link
    link.client.close()


@pytest.fixture
def seed_hub(hub_client):
    def _seed(snapshot: Snapshot) -> None:
        response = hub_client.post("/", json=snapshot.to_wire())
        assert response.status_code == 200

    return _seed


@pytest.fixture
def read_hub(hub_client):
    def _read() -> Snapshot:
        return Snapshot.model_validate(hub_client.get("/").json())

    return _read


@pytest.fixture
def make_runtime(settings, hub_link):
    """
    Build a started client runtime (no periodic thread). By default it
    shares the hub link; pass `http_client` to give it its own link.
    """
    runtimes = []

    def _make(url=HUB_URL, http_client=None, session_factory=None):
        runtime = build_runtime(
            settings.model_copy(update={"remote_url": url}),
            session_factory=session_factory or build_session_factory(build_engine("sqlite://")),
            http_client=http_client or hub_link.client,
        )
        runtime.startup(start_periodic=False)
        runtimes.append(runtime)
        return runtime

    yield _make
    for runtime in runtimes:
        runtime.shutdown()


@pytest.fixture
def make_link(hub_client):
    """Extra links to the same hub, one per client that needs its own failures."""
    links = []

    def _make() -> HubLink:
        link = HubLink(hub_client)
        links.append(link)
        return link

    yield _make
    for link in links:
        link.client.close()
