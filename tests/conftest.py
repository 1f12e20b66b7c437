import fakeredis
import pytest

from system_mapper.api import create_app
from system_mapper.storage import MapStore
from system_mapper.systemmap import SystemMap


@pytest.fixture
def fake_server():
    return fakeredis.FakeServer()


@pytest.fixture
def redis_client(fake_server):
    return fakeredis.FakeRedis(server=fake_server, decode_responses=True)


@pytest.fixture
def store(redis_client):
    """An empty store, no default map seeded."""
    return MapStore(redis_client)


@pytest.fixture
def app(redis_client):
    app = create_app({"TESTING": True}, redis_client=redis_client)
    yield app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def sample_map():
    """Internet -> Router -> {Server, NAS}; Server has two attributes with the same name."""
    return SystemMap.from_dict({
        "id": "map-1",
        "name": "Home Lab",
        "description": "",
        "nodes": [
            {"id": "Internet", "group": "External"},
            {"id": "Router", "group": "Hardware"},
            {"id": "Server", "group": "Hardware", "description": "Proxmox host",
             "attributes": [{"name": "ip", "value": "10.0.0.2"}, {"name": "ip", "value": "10.0.0.3"}]},
            {"id": "NAS", "group": "Storage"},
        ],
        "links": [
            {"source": "Internet", "target": "Router"},
            {"source": "Router", "target": "Server"},
            {"source": "Router", "target": "NAS"},
        ],
        "created": "2024-01-01T00:00:00.000Z",
        "updated": "2024-01-01T00:00:00.000Z",
    })


def assert_summary_in_sync(store, map_id):
    system_map = store.load_map(map_id)
    summary = store.load_summary(map_id)
    assert summary is not None
    assert summary.node_count == len(system_map.nodes)
    assert summary.updated == system_map.updated
