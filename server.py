"""HTTP inspection server for the in-process emulator: health, stats, topics, subscriptions, publish."""

from dotenv import load_dotenv
load_dotenv()

import base64
import binascii
import time
from contextlib import asynccontextmanager
from typing import Dict

from fastapi import APIRouter, FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from mockpubsub.client import PubSub
from mockpubsub.errors import PubSubError
from mockpubsub.observability import get_logger
from mockpubsub.protocol import (
    HTTP_STATUS_BY_CODE,
    HealthResponse,
    PublishResponse,
    SubscriptionCreatedResponse,
    SubscriptionDeletedResponse,
    TopicCreatedResponse,
    TopicDeletedResponse,
    bad_request,
    error_response,
    stats_response,
    subscriptions_list_response,
    topics_list_response,
)

logger = get_logger("mockpubsub.server")


class TopicCreateBody(BaseModel):
    name: str = Field(min_length=1)


class SubscriptionCreateBody(BaseModel):
    name: str = Field(min_length=1)


class PublishBody(BaseModel):
    data: str = Field(description="base64-encoded message payload")
    attributes: Dict[str, str] = Field(default_factory=dict)


def create_app(client: PubSub | None = None) -> FastAPI:
    """Build the FastAPI app around one PubSub client (a fresh one from env config if omitted)."""
    pubsub = client or PubSub()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.start_time = time.time()
        yield
        await pubsub.close()

    app = FastAPI(title="Mock Pub-Sub API", lifespan=lifespan)
    app.state.pubsub = pubsub
    app.state.start_time = time.time()

    @app.exception_handler(PubSubError)
    async def pubsub_error_handler(request: Request, exc: PubSubError) -> JSONResponse:
        status_code = HTTP_STATUS_BY_CODE.get(exc.code, 500)
        logger.info(
            "request_failed",
            extra={"path": request.url.path, "code": exc.code, "error": exc.details},
        )
        return JSONResponse(content=error_response(exc), status_code=status_code)

    router = APIRouter(prefix="/api/v1")

    # ---- Health / stats ----

    @router.get("/health")
    def health() -> JSONResponse:
        """GET /health → { uptime_sec, project_id, topics, subscriptions }."""
        body = HealthResponse(
            uptime_sec=time.time() - app.state.start_time,
            project_id=pubsub.project_id,
            topics=pubsub.topic_count(),
            subscriptions=pubsub.subscription_count(),
        ).to_dict()
        return JSONResponse(content=body, status_code=200)

    @router.get("/stats")
    def stats() -> JSONResponse:
        """GET /stats → { topics, subscriptions, counters }."""
        return JSONResponse(content=stats_response(pubsub.stats()), status_code=200)

    # ---- Topics ----

    @router.get("/topics")
    async def list_topics() -> JSONResponse:
        """GET /topics → { topics: [ { name, subscriptions } ] }."""
        topic_stats = pubsub.stats()["topics"]
        topics = [
            {"name": topic.name, "subscriptions": topic_stats.get(topic.name, {}).get("subscriptions", 0)}
            for topic in await pubsub.get_topics()
        ]
        return JSONResponse(content=topics_list_response(topics), status_code=200)

    @router.post("/topics")
    async def create_topic(body: TopicCreateBody) -> JSONResponse:
        """POST /topics { name } → 201, 400 on a malformed name, 409 if it exists."""
        topic = await pubsub.create_topic(body.name.strip())
        return JSONResponse(
            content=TopicCreatedResponse(topic=topic.name).to_dict(),
            status_code=201,
        )

    @router.delete("/topics/{name}")
    async def delete_topic(name: str) -> JSONResponse:
        """DELETE /topics/{name} → 200 or 404. Subscriptions are detached, not deleted."""
        topic = pubsub.topic(name)
        await topic.delete()
        return JSONResponse(
            content=TopicDeletedResponse(topic=topic.name).to_dict(),
            status_code=200,
        )

    @router.post("/topics/{name}/publish")
    async def publish(name: str, body: PublishBody) -> JSONResponse:
        """POST /topics/{name}/publish { data (base64), attributes } → { message_id, topic }."""
        try:
            data = base64.b64decode(body.data, validate=True)
        except (binascii.Error, ValueError):
            return JSONResponse(content=bad_request("data must be base64-encoded"), status_code=400)
        topic = pubsub.topic(name)
        message_id = await topic.publish(data, body.attributes)
        return JSONResponse(
            content=PublishResponse(message_id=message_id, topic=topic.name).to_dict(),
            status_code=200,
        )

    @router.post("/topics/{name}/subscriptions")
    async def create_subscription(name: str, body: SubscriptionCreateBody) -> JSONResponse:
        """POST /topics/{name}/subscriptions { name } → 201, 404 (topic), 409 (exists), 400 (malformed)."""
        topic = pubsub.topic(name)
        subscription = await topic.create_subscription(body.name.strip())
        return JSONResponse(
            content=SubscriptionCreatedResponse(
                subscription=subscription.name,
                topic=topic.name,
            ).to_dict(),
            status_code=201,
        )

    # ---- Subscriptions ----

    @router.get("/subscriptions")
    async def list_subscriptions() -> JSONResponse:
        """GET /subscriptions → { subscriptions: [ { name, topic } ] }."""
        subscriptions = [
            {"name": subscription.name, "topic": subscription.topic_name}
            for subscription in await pubsub.get_subscriptions()
        ]
        return JSONResponse(content=subscriptions_list_response(subscriptions), status_code=200)

    @router.delete("/subscriptions/{name}")
    async def delete_subscription(name: str) -> JSONResponse:
        """DELETE /subscriptions/{name} → 200 or 404."""
        subscription = pubsub.subscription(name)
        await subscription.delete()
        return JSONResponse(
            content=SubscriptionDeletedResponse(subscription=subscription.name).to_dict(),
            status_code=200,
        )

    app.include_router(router)
    return app


app = create_app()
