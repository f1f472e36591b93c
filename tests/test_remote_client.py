"""Tests for neuralfinance.remote_client using a recording stand-in for requests.Session."""
from __future__ import annotations

import asyncio
import json

import pytest
import requests

from neuralfinance.core.contracts import TrainingFormInput
from neuralfinance.core.errors import ProtocolError, TransportError
from neuralfinance.remote_client import RemoteSessionClient, parse_status

URL = "http://testserver/controller"


class _FakeResponse:
    def __init__(self, status_code: int, text: str) -> None:
        self.status_code = status_code
        self.text = text


class _RecordingSession:
    def __init__(self, responses: list[object]) -> None:
        self.responses = list(responses)
        self.posts: list[dict] = []

    def post(self, url, data=None, headers=None, timeout=None):
        self.posts.append({"url": url, "body": json.loads(data.decode("utf-8")), "timeout": timeout})
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    def close(self) -> None:
        pass


def _client(responses: list[object], **kwargs) -> tuple[RemoteSessionClient, _RecordingSession]:
    session = _RecordingSession(responses)
    return RemoteSessionClient(URL, session=session, **kwargs), session


def test_start_training_posts_form_with_label() -> None:
    client, session = _client([_FakeResponse(200, '{"started": true}')])
    form = TrainingFormInput(epochs=50, increase_factor=1.2, shrink_factor=0.5, estimate_length=8, hidden_layers=2)

    body = asyncio.run(client.start_training(form))

    assert body == '{"started": true}'
    sent = session.posts[0]
    assert sent["url"] == URL
    assert sent["body"] == {
        "description": "startTraining",
        "epochs": 50,
        "increaseFactor": 1.2,
        "shrinkFactor": 0.5,
        "estimateLength": 8,
        "hiddenLayers": 2,
    }


def test_each_action_uses_its_fixed_description() -> None:
    client, session = _client([_FakeResponse(200, "") for _ in range(3)])

    async def scenario():
        await client.stop_training()
        await client.push_data([{"low": 1.0, "open": 2.0, "close": 3.0, "high": 4.0}], "close")
        await client.get_status()

    asyncio.run(scenario())

    assert [p["body"]["description"] for p in session.posts] == [
        "stopTraining",
        "getData",
        "sendTrainingOutput",
    ]
    assert session.posts[0]["body"] == {"description": "stopTraining"}
    assert session.posts[1]["body"]["jsonData"][0]["close"] == 3.0
    assert session.posts[1]["body"]["outputValue"] == "close"


def test_failure_status_passes_body_through() -> None:
    client, _ = _client([_FakeResponse(409, '{"detail":"no data has been pushed"}')])

    with pytest.raises(TransportError) as excinfo:
        asyncio.run(client.get_status())

    assert excinfo.value.status_code == 409
    assert excinfo.value.body == '{"detail":"no data has been pushed"}'


def test_connection_error_becomes_transport_error() -> None:
    client, _ = _client([requests.exceptions.ConnectionError("refused")])

    with pytest.raises(TransportError) as excinfo:
        asyncio.run(client.stop_training())

    assert excinfo.value.status_code is None
    assert "refused" in excinfo.value.body


def test_timeout_is_forwarded_and_defaults_to_none() -> None:
    client, session = _client([_FakeResponse(200, "")])
    asyncio.run(client.stop_training())
    assert session.posts[0]["timeout"] is None

    client, session = _client([_FakeResponse(200, "")], timeout=2.5)
    asyncio.run(client.stop_training())
    assert session.posts[0]["timeout"] == 2.5


def test_parse_status() -> None:
    status = parse_status('{"threadAlive": false, "estimateValue": 1.5, "estimateLength": 3, "currentEpoch": 9}')
    assert status.thread_alive is False
    assert status.current_epoch == 9

    with pytest.raises(ProtocolError):
        parse_status("")
