from typing import List, Tuple

import pytest
from httpx import AsyncClient
from square.dtypes import K8sConfig

import kdeploy.logstreams
from kdeploy.listeners import DeploymentListener, ListenerRegistry
from kdeploy.models import Environment, ResourceRecord, ResourceUrls

# Convenience: the fake K8s API server for all tests.
BASE_URL = "https://k8s.example.com"


def pytest_configure(*args, **kwargs):
    """Pytest calls this hook on startup."""
    # Set log level to DEBUG for all unit tests.
    kdeploy.logstreams.setup("DEBUG")


class RecordingListener(DeploymentListener):
    """Record all events as `(event, record, result)` tuples."""

    def __init__(self) -> None:
        self.events: List[Tuple[str, ResourceRecord, object]] = []

    def on_start(self, record):
        self.events.append(("start", record, None))

    def on_success(self, record, result):
        self.events.append(("success", record, result))

    def on_failure(self, record, result):
        self.events.append(("failure", record, result))

    def names(self) -> List[str]:
        return [_[0] for _ in self.events]


@pytest.fixture
async def k8scfg(respx_mock):
    """Return a K8s config with a client that has not been opened yet.

    The deployer opens and closes the client itself.

    """
    client = AsyncClient()
    yield K8sConfig(url=BASE_URL, name="test", client=client)
    await client.aclose()


@pytest.fixture
def environment() -> Environment:
    return Environment(api_server_url=BASE_URL, default_namespace="default")


@pytest.fixture
def recorder() -> RecordingListener:
    return RecordingListener()


@pytest.fixture
def registry(recorder: RecordingListener) -> ListenerRegistry:
    registry = ListenerRegistry()
    registry.register(recorder)
    return registry


@pytest.fixture
def service() -> ResourceRecord:
    manifest = {
        "apiVersion": "v1",
        "kind": "Service",
        "metadata": {"name": "demo", "namespace": "default"},
        "spec": {"ports": [{"port": 80, "targetPort": 8080}]},
    }
    return ResourceRecord(
        apiVersion="v1",
        kind="Service",
        name="demo",
        namespace="default",
        manifest=manifest,
        source="service.yaml:0",
    )


@pytest.fixture
def service_urls() -> ResourceUrls:
    collection = f"{BASE_URL}/api/v1/namespaces/default/services"
    return ResourceUrls(collection=collection, item=f"{collection}/demo")
