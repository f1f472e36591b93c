"""Typed wrapper around the training server's single endpoint.

Every action is a POST of a JSON object whose ``description`` names the
action server-side. Responses are handed back as raw text; failures raise
:class:`TransportError` carrying the server's body unchanged.

``requests`` is blocking, so each call runs in a worker thread via
``asyncio.to_thread`` and the event loop only suspends while waiting.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

import requests

from neuralfinance.config import CLIENT
from neuralfinance.core.contracts import RequestDescription, TrainingFormInput, TrainingStatus
from neuralfinance.core.errors import TransportError

__all__ = ["RemoteSessionClient", "parse_status"]

logger = logging.getLogger(__name__)

_HEADERS = {"Content-Type": "application/json; charset=utf-8"}


def parse_status(text: str) -> TrainingStatus:
    """Decode a ``sendTrainingOutput`` response (raises ProtocolError)."""
    return TrainingStatus.from_json(text)


class RemoteSessionClient:
    def __init__(
        self,
        endpoint_url: str | None = None,
        *,
        session: requests.Session | None = None,
        timeout: float | None = CLIENT.request_timeout_s,
    ) -> None:
        self.endpoint_url = endpoint_url or CLIENT.endpoint_url
        self._session = session or requests.Session()
        # None means wait forever; a hung request then delays the next poll.
        self.timeout = timeout

    async def start_training(self, form: TrainingFormInput) -> str:
        return await self._request(RequestDescription.START_TRAINING, form.to_payload())

    async def stop_training(self) -> str:
        return await self._request(RequestDescription.STOP_TRAINING)

    async def push_data(self, rows: list[dict[str, float]], output_value: str = CLIENT.output_value) -> str:
        return await self._request(
            RequestDescription.PUSH_DATA,
            {"jsonData": rows, "outputValue": output_value},
        )

    async def get_status(self) -> str:
        return await self._request(RequestDescription.TRAINING_OUTPUT)

    async def _request(self, description: RequestDescription, payload: dict[str, Any] | None = None) -> str:
        body = {"description": description.value}
        if payload:
            body.update(payload)
        return await asyncio.to_thread(self._post, json.dumps(body, ensure_ascii=False))

    def _post(self, body: str) -> str:
        try:
            response = self._session.post(
                self.endpoint_url,
                data=body.encode("utf-8"),
                headers=_HEADERS,
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as exc:
            logger.warning("Request to %s failed: %s", self.endpoint_url, exc)
            raise TransportError(str(exc)) from exc

        if not 200 <= response.status_code < 300:
            raise TransportError(response.text, status_code=response.status_code)
        return response.text

    def close(self) -> None:
        self._session.close()
