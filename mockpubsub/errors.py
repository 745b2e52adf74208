"""Structured errors raised by registry and publish operations."""

from enum import IntEnum


class StatusCode(IntEnum):
    """Numeric status codes shared with the managed service's error surface."""

    OK = 0
    INVALID_ARGUMENT = 3
    NOT_FOUND = 5
    ALREADY_EXISTS = 6


class PubSubError(Exception):
    """Base error: carries a numeric code and renders as '<code> <STATUS>: <details>'."""

    status = StatusCode.OK

    def __init__(self, details: str) -> None:
        self.details = details
        super().__init__(f"{int(self.status)} {self.status.name}: {details}")

    @property
    def code(self) -> int:
        return int(self.status)

    @property
    def message(self) -> str:
        return str(self)

    def to_dict(self) -> dict:
        """Serialize for HTTP error bodies."""
        return {"code": self.code, "status": self.status.name, "message": self.message}


class InvalidArgument(PubSubError):
    status = StatusCode.INVALID_ARGUMENT


class NotFound(PubSubError):
    status = StatusCode.NOT_FOUND


class AlreadyExists(PubSubError):
    status = StatusCode.ALREADY_EXISTS


TOPIC_NOT_FOUND = "Topic not found"
SUBSCRIPTION_NOT_FOUND = "Subscription does not exist"
TOPIC_EXISTS = "Topic already exists"
SUBSCRIPTION_EXISTS = "Subscription already exists"
