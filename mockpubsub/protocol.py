"""Response shapes for the inspection HTTP server (health, topics, subscriptions, publish)."""

from dataclasses import dataclass, asdict
from typing import Any, Dict, List

from mockpubsub.errors import PubSubError


# ---- Health ----

@dataclass
class HealthResponse:
    """Response for GET /health."""
    uptime_sec: float
    project_id: str
    topics: int
    subscriptions: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "uptime_sec": int(self.uptime_sec),
            "project_id": self.project_id,
            "topics": self.topics,
            "subscriptions": self.subscriptions,
        }


# ---- Topics ----

@dataclass
class TopicCreatedResponse:
    """Response for POST /topics (201 Created)."""
    status: str = "created"
    topic: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class TopicDeletedResponse:
    """Response for DELETE /topics/{name} (200 OK)."""
    status: str = "deleted"
    topic: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def topics_list_response(topics: List[str]) -> Dict[str, Any]:
    """Response for GET /topics."""
    return {"topics": topics}


# ---- Subscriptions ----

@dataclass
class SubscriptionCreatedResponse:
    """Response for POST /topics/{name}/subscriptions (201 Created)."""
    status: str = "created"
    subscription: str = ""
    topic: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class SubscriptionDeletedResponse:
    """Response for DELETE /subscriptions/{name} (200 OK)."""
    status: str = "deleted"
    subscription: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def subscriptions_list_response(subscriptions: List[Dict[str, str]]) -> Dict[str, Any]:
    """Response for GET /subscriptions."""
    return {"subscriptions": subscriptions}


# ---- Publish ----

@dataclass
class PublishResponse:
    """Response for POST /topics/{name}/publish."""
    message_id: str
    topic: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def stats_response(stats: Dict[str, Any]) -> Dict[str, Any]:
    """Response for GET /stats."""
    return {
        "topics": stats.get("topics", {}),
        "subscriptions": stats.get("subscriptions", {}),
        "counters": stats.get("counters", {}),
    }


# ---- Errors ----

# HTTP status per PubSubError code
HTTP_STATUS_BY_CODE = {
    3: 400,
    5: 404,
    6: 409,
}

ERROR_BAD_REQUEST = "BAD_REQUEST"


def error_response(error: PubSubError) -> Dict[str, Any]:
    return {"error": error.to_dict()}


def bad_request(message: str) -> Dict[str, Any]:
    return {"error": {"code": 3, "status": ERROR_BAD_REQUEST, "message": message}}
