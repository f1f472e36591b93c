import asyncio
import json
import time

import pytest
from fastapi.testclient import TestClient

from api.main import app
from neuralfinance.training_server import TrainingServer


ROWS = [{"low": c - 1, "open": c, "close": c, "high": c + 1} for c in (100.0, 101.0, 102.0, 103.0)]
FORM = {"epochs": 50, "increaseFactor": 1.2, "shrinkFactor": 0.5, "estimateLength": 3, "hiddenLayers": 0}


# Fresh server state for every test; the client posts raw JSON text like the browser did.
@pytest.fixture()
def client():
    app.state.training = TrainingServer(epoch_delay_s=0)
    with TestClient(app) as c:
        yield c


def _post(client: TestClient, payload: dict):
    return client.post("/controller", content=json.dumps(payload))


def test_health_check(client: TestClient):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "training": "idle"}


def test_full_session_flow(client: TestClient):
    response = _post(client, {"description": "getData", "jsonData": ROWS, "outputValue": "close"})
    assert response.status_code == 200
    assert response.json()["rows"] == 4

    response = _post(client, {"description": "startTraining", **FORM})
    assert response.status_code == 200
    assert response.json()["started"] is True

    deadline = time.monotonic() + 5
    while True:
        status = _post(client, {"description": "sendTrainingOutput"}).json()
        if not status["threadAlive"] or time.monotonic() > deadline:
            break
        time.sleep(0.01)

    assert set(status) == {"threadAlive", "estimateValue", "estimateLength", "currentEpoch"}
    assert status["threadAlive"] is False
    assert status["currentEpoch"] == 50
    assert status["estimateLength"] == 3

    response = _post(client, {"description": "stopTraining"})
    assert response.status_code == 200


def test_start_without_data_is_conflict(client: TestClient):
    response = _post(client, {"description": "startTraining", **FORM})
    assert response.status_code == 409
    assert "no data" in response.json()["detail"]


def test_status_before_start_is_conflict(client: TestClient):
    _post(client, {"description": "getData", "jsonData": ROWS, "outputValue": "close"})
    response = _post(client, {"description": "sendTrainingOutput"})
    assert response.status_code == 409


def test_unknown_description(client: TestClient):
    response = _post(client, {"description": "fetchEverything"})
    assert response.status_code == 400


def test_body_must_be_json_object(client: TestClient):
    response = client.post("/controller", content="not json")
    assert response.status_code == 400


def test_invalid_form_is_unprocessable(client: TestClient):
    _post(client, {"description": "getData", "jsonData": ROWS, "outputValue": "close"})
    response = _post(client, {"description": "startTraining", **{**FORM, "epochs": 0}})
    assert response.status_code == 422


def test_push_rejects_rows_missing_fields(client: TestClient):
    rows = [{"low": 1.0, "open": 2.0, "high": 3.0}]  # Missing "close"
    response = _post(client, {"description": "getData", "jsonData": rows, "outputValue": "close"})
    assert response.status_code == 422


class _LoopCheckingServer(TrainingServer):
    """Records whether blocking actions were called with an event loop running."""

    def __init__(self) -> None:
        super().__init__(epoch_delay_s=0)
        self.on_loop: list[bool] = []

    def stop_training(self) -> bool:
        try:
            asyncio.get_running_loop()
            self.on_loop.append(True)
        except RuntimeError:
            self.on_loop.append(False)
        return super().stop_training()


def test_blocking_actions_run_off_the_event_loop():
    server = _LoopCheckingServer()
    app.state.training = server
    with TestClient(app) as c:
        assert _post(c, {"description": "getData", "jsonData": ROWS}).status_code == 200
        assert _post(c, {"description": "startTraining", **FORM}).status_code == 200
        assert _post(c, {"description": "stopTraining"}).status_code == 200
        # getData and stopTraining each stopped the trainer from a worker thread.
        assert server.on_loop == [False, False]
