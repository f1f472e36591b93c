"""Exception hierarchy shared by the client, the controller and the server."""

from __future__ import annotations


class NeuralFinanceError(Exception):
    """Base class for all package errors."""


class ParseError(NeuralFinanceError, ValueError):
    """A localized number or date field could not be parsed."""


class DateError(ParseError):
    """A localized date/time string is malformed or not a calendar date."""


class TransportError(NeuralFinanceError):
    """The endpoint was unreachable or answered with a failure status.

    ``body`` is the server's response text, passed through unmodified.
    ``status_code`` is ``None`` when no response was received at all.
    """

    def __init__(self, body: str, status_code: int | None = None) -> None:
        super().__init__(body)
        self.body = body
        self.status_code = status_code

    def __str__(self) -> str:
        if self.status_code is None:
            return self.body
        return f"HTTP {self.status_code}: {self.body}"


class ProtocolError(TransportError):
    """A status payload was not valid JSON or lacked expected fields."""


class SessionStateError(NeuralFinanceError, RuntimeError):
    """Operation is not valid in the controller's current state."""
