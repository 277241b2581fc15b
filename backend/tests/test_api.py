from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from main import app

from conftest import ACTOR, DEVICE_FIELDS, IMEI, SERIAL


@pytest.fixture
def client(db_path):
    with TestClient(app) as test_client:
        yield test_client


def _create(client, **overrides):
    return client.post("/api/devices/", json=[{**DEVICE_FIELDS, **overrides}],
                       headers={"user-id": ACTOR})


def test_health(client) -> None:
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_create_then_list(client) -> None:
    created = _create(client)
    assert created.status_code == 200
    record = created.json()["data"]["created"][0]
    assert record["state"] == "PROVISIONED"
    assert record["factory_admin"] == ACTOR

    listing = client.get("/api/devices/", params={
        "containsLikeFields": "imei", "containsLikeValues": IMEI, "isDetailsRequired": "true"})
    assert listing.status_code == 200
    data = listing.json()["data"]
    assert [item["serial_number"] for item in data["items"]] == [SERIAL]
    assert data["state_count"]["provisioned"] == 1


def test_create_without_user_header(client) -> None:
    response = client.post("/api/devices/", json=[DEVICE_FIELDS])
    assert response.status_code == 400
    assert response.json()["code"] == "dfd-059"


def test_invalid_filter_is_not_found(client) -> None:
    response = client.get("/api/devices/", params={
        "containsLikeFields": "password", "containsLikeValues": "x", "isDetailsRequired": "true"})
    assert response.status_code == 404
    assert response.json()["code"] == "dfd-023"


def test_page_size_out_of_range(client) -> None:
    response = client.get("/api/devices/", params={"isDetailsRequired": "true", "size": "0"})
    assert response.status_code == 400
    assert "between 1 and 5000" in response.json()["message"]


def test_state_change_and_history(client) -> None:
    factory_id = _create(client).json()["data"]["created"][0]["id"]

    changed = client.patch("/api/devices/state", json={"factory_id": factory_id, "state": "STOLEN"})
    assert changed.status_code == 200
    assert changed.json()["data"]["stolen"] is True

    illegal = client.patch("/api/devices/state", json={"factory_id": factory_id, "state": "DEACTIVATED"})
    assert illegal.status_code == 400

    history = client.get("/api/devices/states", params={"imei": IMEI})
    assert [entry["action"] for entry in history.json()["data"]["items"]] == ["PROVISIONED", "UPDATED"]


def test_delete_twice(client) -> None:
    _create(client)

    first = client.delete("/api/devices/", params={"imei": IMEI, "serialnumber": SERIAL})
    assert first.status_code == 200

    second = client.delete("/api/devices/", params={"imei": IMEI, "serialnumber": SERIAL})
    assert second.status_code == 404
    assert second.json()["code"] == "dfd-002"


def test_details_and_filter(client) -> None:
    _create(client)

    details = client.get("/api/devices/details", params={"serialnumber": SERIAL})
    assert details.json()["data"]["total"] == 1

    filtered = client.post("/api/devices/filter", json={"imei": [IMEI]})
    assert [r["serial_number"] for r in filtered.json()["data"]] == [SERIAL]

    empty = client.post("/api/devices/filter", json={})
    assert empty.status_code == 400
