"""
Tests for the HTTP API of the agent.
"""
import pytest
from fastapi.testclient import TestClient

from repliagent.config import Settings
from repliagent.errors import ConfError, FailureKind
from repliagent.main import create_app

from .conftest import BUILD_INFO, FakeGateway, failure, member, not_initialised, rs_config, rs_status


@pytest.fixture
def settings(tmp_path):
    version_file = tmp_path / "mongod.version"
    version_file.write_text(BUILD_INFO)
    return Settings(
        node_id="node0",
        cluster_address="node0.cluster:27017",
        version_command=["repliagent-no-such-mongod", "--version"],
        version_file=str(version_file)
    )


@pytest.fixture
def gateway():
    return FakeGateway({
        "replSetGetStatus": rs_status([member(0, 1, 5000, is_self=True), member(1, 2, 4000)]),
        "replSetGetConfig": rs_config([0, 1], version=3),
        "replSetReconfig": {"ok": 1.0},
        "collStats": {"maxSize": 1024, "ok": 1.0},
        "getParameter": {"featureCompatibilityVersion": {"version": "6.0"}, "ok": 1.0},
    })


@pytest.fixture
def http_client(settings, gateway):
    """HTTP client for API calls."""
    with TestClient(create_app(settings=settings, gateway=gateway)) as client:
        yield client


def test_root_and_health(http_client):
    assert http_client.get("/health").json() == {"status": "healthy"}
    data = http_client.get("/").json()
    assert data["name"] == "repliagent-mongodb"
    assert data["status"] == "running"


def test_node_info(http_client):
    response = http_client.get("/api/info/node")

    assert response.status_code == 200, response.text
    data = response.json()
    assert data["node_id"] == "node0"
    assert data["node_status"] == {"kind": "HEALTHY", "reason": None}
    assert data["store_version"]["number"] == "4.4.13"


def test_shards(http_client):
    response = http_client.get("/api/info/shards")

    assert response.status_code == 200, response.text
    shard = response.json()["shards"][0]
    assert shard["role"] == "PRIMARY"
    assert shard["commit_offset"] == {"unit": "milliseconds", "value": 5000}
    assert shard["lag"] is None


def test_store_info(http_client):
    response = http_client.get("/api/info/store")

    assert response.status_code == 200, response.text
    assert response.json() == {
        "cluster_id": "rs0",
        "attributes": {"mongo/oplog.size": 1024, "mongo/feature-compatibility": "6.0"},
    }


def test_info_errors(http_client, gateway):
    gateway.replies["replSetGetStatus"] = failure(FailureKind.CONNECTION)

    assert http_client.get("/api/info/node").json()["node_status"]["kind"] == "UNAVAILABLE"

    response = http_client.get("/api/info/shards")
    assert response.status_code == 500
    assert response.json()["detail"].startswith("get replica set status command failed")


def test_list_actions(http_client):
    assert http_client.get("/api/actions").json() == {"actions": ["cluster.add", "cluster.init"]}


def test_add_action(http_client, gateway):
    response = http_client.post("/api/actions/cluster.add", json={"host": "node2:27017"})

    assert response.status_code == 200, response.text
    data = response.json()
    assert data["phase"] == "DONE"
    assert data["changes"] == {"member": {"_id": 2, "host": "node2:27017"}, "version": 4}
    assert gateway.commands() == ["replSetGetConfig", "replSetReconfig"]


def test_add_action_invalid_args(http_client, gateway):
    response = http_client.post("/api/actions/cluster.add", json={"port": 27017})
    assert response.status_code == 400
    assert gateway.calls == []


def test_init_action_on_initialised_node(http_client, gateway):
    response = http_client.post("/api/actions/cluster.init")

    assert response.status_code == 200, response.text
    data = response.json()
    assert data["phase"] == "FAILED"
    assert "already initialised" in data["error"]
    assert "replSetInitiate" not in gateway.commands()


def test_init_action(http_client, gateway):
    gateway.replies["replSetGetStatus"] = not_initialised()
    gateway.replies["getCmdLineOpts"] = {"parsed": {"replication": {"replSetName": "rs0"}}, "ok": 1.0}
    gateway.replies["replSetInitiate"] = {"ok": 1.0}

    response = http_client.post("/api/actions/cluster.init", json={"settings": {"chainingAllowed": False}})

    assert response.json()["phase"] == "DONE"
    assert gateway.sent("replSetInitiate")["replSetInitiate"] == {
        "_id": "rs0",
        "members": [{"_id": 0, "host": "node0.cluster:27017"}],
        "settings": {"chainingAllowed": False},
    }


def test_unknown_action(http_client):
    assert http_client.post("/api/actions/cluster.remove", json={}).status_code == 404


def test_metrics(http_client):
    response = http_client.get("/metrics")
    assert response.status_code == 200
    assert "repliagent_mongodb_operations_duration_seconds" in response.text


def test_cluster_address_required():
    with pytest.raises(ConfError):
        create_app(settings=Settings(cluster_address=None), gateway=FakeGateway())
