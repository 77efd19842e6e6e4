import pytest

import web_api
from conftest import FakeRunner, zfs_get_dump


@pytest.fixture()
def client_for(monkeypatch: pytest.MonkeyPatch):
    def make(runner):
        monkeypatch.setattr(web_api.app, "zfs_runner", runner, raising=False)
        web_api.app.config["TESTING"] = True
        return web_api.app.test_client()
    return make


def test_health_reports_runner(client_for) -> None:
    response = client_for(FakeRunner()).get("/api/health")
    assert response.status_code == 200
    assert response.get_json() == {"status": "success", "data": {"runner": True}}


def test_list_datasets(client_for) -> None:
    dump = zfs_get_dump(("tank/fs", "compression", "lz4", "inherited from tank"))
    runner = FakeRunner([(0, dump, "")])

    response = client_for(runner).get("/api/datasets?root=tank")

    assert response.status_code == 200
    assert response.get_json()["data"] == [{
        "name": "tank/fs",
        "properties": {"compression": {"value": "lz4", "source": "inherited", "inherited_from": "tank"}},
    }]
    assert runner.calls[0][-2:] == ["-r", "tank"]


def test_missing_dataset_maps_to_404(client_for) -> None:
    runner = FakeRunner([(1, "", "cannot open 'tank/x': dataset does not exist\n")])
    response = client_for(runner).get("/api/datasets/tank/x/properties")

    assert response.status_code == 404
    body = response.get_json()
    assert body["status"] == "error"
    assert body["kind"] == "not-found"
    assert "dataset does not exist" in body["details"]


def test_list_snapshots(client_for) -> None:
    runner = FakeRunner([(0, "tank/fs@s1\n", "")])
    response = client_for(runner).get("/api/datasets/tank/fs/snapshots")
    assert response.get_json()["data"] == ["tank/fs@s1"]


def test_create_snapshot(client_for) -> None:
    runner = FakeRunner([(0, "", "")])
    response = client_for(runner).post("/api/snapshots", json={"dataset": "tank/fs", "name": "s2"})
    assert response.status_code == 200
    assert response.get_json()["data"] == "tank/fs@s2"
    assert runner.calls == [["zfs", "snapshot", "tank/fs@s2"]]


def test_create_snapshot_validation(client_for) -> None:
    client = client_for(FakeRunner())
    assert client.post("/api/snapshots", data="x").status_code == 400
    assert client.post("/api/snapshots", json={"dataset": "tank/fs"}).status_code == 400
    response = client.post("/api/snapshots", json={"dataset": "tank/fs", "name": "a@b"})
    assert response.status_code == 500
    assert response.get_json()["kind"] is None


def test_existing_snapshot_maps_to_409(client_for) -> None:
    runner = FakeRunner([(1, "", "cannot create snapshot 'tank/fs@s1': dataset already exists\n")])
    response = client_for(runner).post("/api/snapshots", json={"dataset": "tank/fs", "name": "s1"})
    assert response.status_code == 409
    assert response.get_json()["kind"] == "already-exists"


@pytest.mark.parametrize("body", [[], "x", 3])
def test_create_snapshot_rejects_non_object_body(client_for, body) -> None:
    runner = FakeRunner()
    response = client_for(runner).post("/api/snapshots", json=body)
    assert response.status_code == 400
    assert response.get_json()["status"] == "error"
    assert runner.calls == []
