"""PubSub client: the entry point, bound to one project and owning one registry."""

import asyncio
from typing import Any, Dict, List, Optional, Union

from mockpubsub.config import Settings, get_settings
from mockpubsub.delivery import ListenerSelector
from mockpubsub.names import topic_name
from mockpubsub.observability import Metrics, get_logger
from mockpubsub.registry import Registry
from mockpubsub.subscription import Subscription
from mockpubsub.topic import Topic


class PubSub:
    """
    In-process stand-in for a managed Pub/Sub client.

    Each instance owns its own registry: two clients never see each other's
    topics or subscriptions, even for the same project id. Tear down with
    clear() or close().
    """

    def __init__(
        self,
        project_id: Optional[str] = None,
        *,
        selector: Optional[ListenerSelector] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        settings = settings or get_settings()
        self._project_id = project_id or settings.project_id
        self._metrics = Metrics()
        self._registry = Registry(self._project_id, metrics=self._metrics, selector=selector)
        self._logger = get_logger("mockpubsub.client")

    @property
    def project_id(self) -> str:
        return self._project_id

    @property
    def metrics(self) -> Metrics:
        return self._metrics

    # ---- Topics ----

    async def create_topic(self, name: str) -> Topic:
        """Create a topic. Raises AlreadyExists if it exists, InvalidArgument on a malformed name."""
        resource = topic_name(name, self._project_id)
        self._registry.create_topic(resource)
        return Topic(self._registry, resource.full_name)

    async def get_topics(self) -> List[Topic]:
        """All topics of this client, in creation order."""
        return [Topic(self._registry, record.name.full_name) for record in self._registry.list_topics()]

    def topic(self, name: str) -> Topic:
        """Lazy topic handle (existence is checked when an action is invoked)."""
        return Topic(self._registry, name)

    # ---- Subscriptions ----

    async def create_subscription(self, topic: Union[Topic, str], name: str) -> Subscription:
        if not isinstance(topic, Topic):
            topic = self.topic(topic)
        return await topic.create_subscription(name)

    async def get_subscriptions(self) -> List[Subscription]:
        """All subscriptions of this client, in creation order (detached ones included)."""
        return [
            Subscription(self._registry, queue.name.full_name)
            for queue in self._registry.list_subscriptions()
        ]

    def subscription(self, name: str) -> Subscription:
        """Lazy subscription handle (existence is checked when an action is invoked)."""
        return Subscription(self._registry, name)

    # ---- Teardown / stats ----

    async def clear(self) -> None:
        """Delete every topic and subscription, discarding queued messages."""
        self._registry.clear()

    async def close(self) -> None:
        """Clear the registry and cancel listener coroutines that are still running."""
        queues = self._registry.clear()
        tasks = [task for queue in queues for task in queue.outstanding_tasks()]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._metrics.reset()
        self._logger.info(
            "closed",
            extra={"project_id": self._project_id, "cancelled_tasks": len(tasks)},
        )

    def stats(self) -> Dict[str, Any]:
        return self._registry.stats()

    def topic_count(self) -> int:
        return self._registry.topic_count()

    def subscription_count(self) -> int:
        return self._registry.subscription_count()

    def __repr__(self) -> str:
        return f"PubSub(project_id={self._project_id!r})"
