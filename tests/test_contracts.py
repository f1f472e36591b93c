from __future__ import annotations

import json

import pytest

from neuralfinance.core.contracts import RequestDescription, TrainingFormInput, TrainingStatus
from neuralfinance.core.errors import ProtocolError, TransportError


def test_request_labels_match_server() -> None:
    assert RequestDescription.START_TRAINING.value == "startTraining"
    assert RequestDescription.STOP_TRAINING.value == "stopTraining"
    assert RequestDescription.PUSH_DATA.value == "getData"
    assert RequestDescription.TRAINING_OUTPUT.value == "sendTrainingOutput"


def test_form_input_normalizes_string_fields() -> None:
    form = TrainingFormInput(epochs="100", increase_factor="1.2", shrink_factor="0.5", estimate_length="5", hidden_layers="0")
    assert form.epochs == 100
    assert form.increase_factor == pytest.approx(1.2)
    assert form.to_payload() == {
        "epochs": 100,
        "increaseFactor": 1.2,
        "shrinkFactor": 0.5,
        "estimateLength": 5,
        "hiddenLayers": 0,
    }


@pytest.mark.parametrize(
    "kwargs",
    [
        {"epochs": 0},
        {"epochs": 2.5},
        {"increase_factor": 0},
        {"shrink_factor": -1},
        {"estimate_length": 0},
        {"hidden_layers": -1},
        {"epochs": "many"},
    ],
)
def test_form_input_rejects_invalid_values(kwargs) -> None:
    base = {"epochs": 10, "increase_factor": 1.2, "shrink_factor": 0.5, "estimate_length": 5, "hidden_layers": 1}
    base.update(kwargs)
    with pytest.raises(ValueError):
        TrainingFormInput(**base)


def test_form_input_payload_round_trip() -> None:
    form = TrainingFormInput(epochs=10, increase_factor=1.2, shrink_factor=0.5, estimate_length=5, hidden_layers=2)
    assert TrainingFormInput.from_payload(form.to_payload()) == form
    assert TrainingFormInput.from_dict(form.to_dict()) == form


def test_status_from_json() -> None:
    text = json.dumps({"threadAlive": True, "estimateValue": 101.5, "estimateLength": 10, "currentEpoch": 7})
    status = TrainingStatus.from_json(text)
    assert status == TrainingStatus(thread_alive=True, estimate_value=101.5, estimate_length=10, current_epoch=7)


@pytest.mark.parametrize(
    "text",
    [
        "",
        "not json",
        "[]",
        json.dumps({"threadAlive": True}),
        json.dumps({"threadAlive": "yes", "estimateValue": 1, "estimateLength": 1, "currentEpoch": 1}),
        json.dumps({"threadAlive": True, "estimateValue": "x", "estimateLength": 1, "currentEpoch": 1}),
    ],
)
def test_status_from_json_rejects_bad_payloads(text: str) -> None:
    with pytest.raises(ProtocolError):
        TrainingStatus.from_json(text)


def test_protocol_error_is_a_transport_error() -> None:
    assert issubclass(ProtocolError, TransportError)
    err = TransportError("server says no", status_code=503)
    assert err.body == "server says no"
    assert "503" in str(err)
