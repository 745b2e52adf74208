"""In-memory registry of one project's topics and subscriptions."""

import itertools
import threading
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from mockpubsub.delivery import ListenerSelector, SubscriptionQueue
from mockpubsub.errors import (
    SUBSCRIPTION_EXISTS,
    SUBSCRIPTION_NOT_FOUND,
    TOPIC_EXISTS,
    TOPIC_NOT_FOUND,
    AlreadyExists,
    NotFound,
)
from mockpubsub.message import Message
from mockpubsub.names import ResourceName
from mockpubsub.observability import Metrics, get_logger
from mockpubsub.observability.metrics import MESSAGES_PUBLISHED


@dataclass
class TopicRecord:
    """Registered topic state."""

    name: ResourceName
    publish_options: Dict[str, Any] = field(default_factory=dict)


class Registry:
    """
    Per-project store of topics and subscriptions, in creation order.

    Every check-then-mutate runs under one lock, so a failing create or delete
    leaves the registry unchanged. Lock order is registry -> subscription queue.
    """

    def __init__(
        self,
        project_id: str,
        metrics: Optional[Metrics] = None,
        selector: Optional[ListenerSelector] = None,
    ) -> None:
        self._project_id = project_id
        self._topics: Dict[str, TopicRecord] = {}
        self._subscriptions: Dict[str, SubscriptionQueue] = {}
        self._lock = threading.Lock()
        self._message_ids = itertools.count(1)
        self._metrics = metrics or Metrics()
        self._selector = selector
        self._logger = get_logger("mockpubsub.registry")

    @property
    def project_id(self) -> str:
        return self._project_id

    @property
    def metrics(self) -> Metrics:
        return self._metrics

    # ---- Topics ----

    def create_topic(self, name: ResourceName) -> TopicRecord:
        """Register a topic. Raises AlreadyExists if the full name is taken."""
        with self._lock:
            if name.full_name in self._topics:
                raise AlreadyExists(TOPIC_EXISTS)
            record = TopicRecord(name=name)
            self._topics[name.full_name] = record
        self._logger.info("topic_created", extra={"topic": name.full_name})
        return record

    def get_topic(self, name: ResourceName) -> TopicRecord:
        with self._lock:
            record = self._topics.get(name.full_name)
        if record is None:
            raise NotFound(TOPIC_NOT_FOUND)
        return record

    def has_topic(self, name: ResourceName) -> bool:
        with self._lock:
            return name.full_name in self._topics

    def delete_topic(self, name: ResourceName) -> None:
        """
        Remove a topic. Its subscriptions stay registered but are detached:
        they keep their queues and never receive new messages.
        """
        with self._lock:
            if name.full_name not in self._topics:
                raise NotFound(TOPIC_NOT_FOUND)
            del self._topics[name.full_name]
            detached = [
                queue for queue in self._subscriptions.values()
                if queue.topic_name == name.full_name
            ]
            for queue in detached:
                queue.detach()
        self._logger.info(
            "topic_deleted",
            extra={"topic": name.full_name, "detached_subscriptions": len(detached)},
        )

    def list_topics(self) -> List[TopicRecord]:
        with self._lock:
            return list(self._topics.values())

    def topic_count(self) -> int:
        with self._lock:
            return len(self._topics)

    # ---- Subscriptions ----

    def create_subscription(self, topic: ResourceName, name: ResourceName) -> SubscriptionQueue:
        """Register a subscription bound to topic. Raises NotFound (topic) or AlreadyExists."""
        with self._lock:
            if topic.full_name not in self._topics:
                raise NotFound(TOPIC_NOT_FOUND)
            if name.full_name in self._subscriptions:
                raise AlreadyExists(SUBSCRIPTION_EXISTS)
            queue = SubscriptionQueue(
                name=name,
                topic_name=topic.full_name,
                metrics=self._metrics,
                selector=self._selector,
            )
            self._subscriptions[name.full_name] = queue
        self._logger.info(
            "subscription_created",
            extra={"subscription": name.full_name, "topic": topic.full_name},
        )
        return queue

    def get_subscription(self, name: ResourceName) -> SubscriptionQueue:
        with self._lock:
            queue = self._subscriptions.get(name.full_name)
        if queue is None:
            raise NotFound(SUBSCRIPTION_NOT_FOUND)
        return queue

    def has_subscription(self, name: ResourceName) -> bool:
        with self._lock:
            return name.full_name in self._subscriptions

    def delete_subscription(self, name: ResourceName) -> None:
        """Remove a subscription, discarding its queued and in-flight messages."""
        with self._lock:
            queue = self._subscriptions.pop(name.full_name, None)
            if queue is None:
                raise NotFound(SUBSCRIPTION_NOT_FOUND)
        dropped = queue.close()
        self._logger.info(
            "subscription_deleted",
            extra={"subscription": name.full_name, "dropped": dropped},
        )

    def list_subscriptions(self) -> List[SubscriptionQueue]:
        with self._lock:
            return list(self._subscriptions.values())

    def subscriptions_for(self, topic: ResourceName) -> List[SubscriptionQueue]:
        """Subscriptions currently attached to topic, in creation order."""
        with self._lock:
            if topic.full_name not in self._topics:
                raise NotFound(TOPIC_NOT_FOUND)
            return [
                queue for queue in self._subscriptions.values()
                if queue.topic_name == topic.full_name
            ]

    def subscription_count(self) -> int:
        with self._lock:
            return len(self._subscriptions)

    # ---- Publish ----

    def publish(self, topic: ResourceName, data: bytes, attributes: Dict[str, str]) -> Message:
        """
        Build one message and enqueue an envelope of it into every attached subscription.
        Fan-out happens under the registry lock so all subscriptions see the same publish order.
        """
        with self._lock:
            if topic.full_name not in self._topics:
                raise NotFound(TOPIC_NOT_FOUND)
            message = Message(
                message_id=str(next(self._message_ids)),
                data=data,
                attributes=dict(attributes),
            )
            targets = [
                queue for queue in self._subscriptions.values()
                if queue.topic_name == topic.full_name
            ]
            for queue in targets:
                queue.enqueue(message)
        self._metrics.increment(MESSAGES_PUBLISHED)
        self._logger.info(
            "published",
            extra={
                "topic": topic.full_name,
                "message_id": message.message_id,
                "subscription_count": len(targets),
            },
        )
        return message

    # ---- Teardown / stats ----

    def clear(self) -> List[SubscriptionQueue]:
        """Drop every topic and subscription. Returns the closed subscription queues."""
        with self._lock:
            queues = list(self._subscriptions.values())
            self._subscriptions.clear()
            self._topics.clear()
        for queue in queues:
            queue.close()
        self._logger.info("cleared", extra={"project_id": self._project_id})
        return queues

    def stats(self) -> Dict[str, Any]:
        """Return { topics: {name: {...}}, subscriptions: {name: {...}}, counters: {...} }."""
        with self._lock:
            topics = list(self._topics.values())
            queues = list(self._subscriptions.values())
        return {
            "topics": {
                record.name.full_name: {
                    "subscriptions": sum(1 for q in queues if q.topic_name == record.name.full_name),
                    "publish_options": dict(record.publish_options),
                }
                for record in topics
            },
            "subscriptions": {queue.name.full_name: queue.stats() for queue in queues},
            "counters": self._metrics.snapshot(),
        }
