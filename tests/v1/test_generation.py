"""Tests for generation status and control endpoints."""

from fastapi import status
from fastapi.testclient import TestClient

from crash_engine.services.batch_controller import GenerationOutcome, GenerationResult


def test_status_reports_backend_and_socket(client: TestClient, socket_stub) -> None:
    socket_stub.queue_size = 7

    r = client.get("/api/v1/generation/status")

    assert r.status_code == status.HTTP_200_OK
    data = r.json()
    assert data["success"] is True
    assert data["backend"]["isGenerating"] is False
    assert data["backend"]["batchSize"] == 10
    assert data["backend"]["queueThreshold"] == 5
    assert data["socket"] == {
        "reachable": True,
        "queueSize": 7,
        "gamePhase": "waiting",
        "currentRound": 1000,
    }


def test_status_survives_unreachable_socket_server(client: TestClient, socket_stub) -> None:
    socket_stub.health_status = 502

    r = client.get("/api/v1/generation/status")

    assert r.status_code == status.HTTP_200_OK
    assert r.json()["socket"]["reachable"] is False


def test_trigger_generates_when_queue_low(client: TestClient, socket_stub) -> None:
    socket_stub.queue_size = 3

    r = client.post("/api/v1/generation/trigger")

    assert r.status_code == status.HTTP_200_OK
    data = r.json()
    assert data["success"] is True
    assert data["startRound"] == 1001
    assert data["endRound"] == 1010
    assert data["notified"] is True
    [queued] = socket_stub.queued
    assert queued["startRound"] == 1001
    assert len(queued["multipliers"]) == 10

    rows = client.get("/api/v1/multipliers", params={"from": 1001, "to": 1010}).json()
    assert len(rows) == 10


def test_trigger_skips_when_queue_full(client: TestClient, socket_stub) -> None:
    socket_stub.queue_size = 50

    data = client.post("/api/v1/generation/trigger").json()

    assert data["success"] is False
    assert data["outcome"] == GenerationOutcome.QUEUE_SATURATED.value
    assert socket_stub.queued == []


def test_force_generate_ignores_queue_depth(client: TestClient, socket_stub) -> None:
    socket_stub.queue_size = 50

    data = client.post("/api/v1/generation/force").json()

    assert data["success"] is True
    assert len(socket_stub.queued) == 1


def test_force_generate_conflicts_while_generating(
    client: TestClient, api_controller, mocker
) -> None:
    mocker.patch.object(
        api_controller,
        "force_generate",
        return_value=GenerationResult(GenerationOutcome.BUSY, "Batch generation already in progress"),
    )

    r = client.post("/api/v1/generation/force")

    assert r.status_code == status.HTTP_409_CONFLICT
