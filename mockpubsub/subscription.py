"""Subscription handle: listener registration and deletion."""

from typing import TYPE_CHECKING, Optional

from mockpubsub.delivery import Handler
from mockpubsub.names import subscription_name

if TYPE_CHECKING:
    from mockpubsub.delivery import SubscriptionQueue
    from mockpubsub.registry import Registry


class Subscription:
    """
    Lazy handle to a subscription by name.

    Creating a handle never checks the registry; operations that need the
    subscription raise NotFound when it does not exist.
    """

    def __init__(self, registry: "Registry", name: str) -> None:
        self._registry = registry
        self._resource = subscription_name(name, registry.project_id)

    @property
    def name(self) -> str:
        """Fully-qualified name: projects/{project}/subscriptions/{name}."""
        return self._resource.full_name

    @property
    def short_name(self) -> str:
        return self._resource.short_name

    @property
    def project_id(self) -> str:
        return self._resource.project_id

    @property
    def topic_name(self) -> str:
        """Full name of the topic this subscription receives from (or _deleted-topic_)."""
        return self._queue().topic_name

    def _queue(self) -> "SubscriptionQueue":
        return self._registry.get_subscription(self._resource)

    def on(self, event: str, handler: Handler) -> "Subscription":
        """Register handler for event. Only "message" handlers receive messages."""
        self._queue().add_listener(event, handler)
        return self

    def remove_listener(self, event: str, handler: Handler) -> "Subscription":
        if self._registry.has_subscription(self._resource):
            self._queue().remove_listener(event, handler)
        return self

    def remove_all_listeners(self, event: Optional[str] = None) -> "Subscription":
        """Clear handlers for event, or every handler when event is None. Queued messages stay."""
        if self._registry.has_subscription(self._resource):
            self._queue().remove_all_listeners(event)
        return self

    def listener_count(self, event: str) -> int:
        if not self._registry.has_subscription(self._resource):
            return 0
        return self._queue().listener_count(event)

    async def exists(self) -> bool:
        return self._registry.has_subscription(self._resource)

    async def delete(self) -> None:
        """Delete the subscription and discard its messages. Raises NotFound if absent."""
        self._registry.delete_subscription(self._resource)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Subscription):
            return False
        return self._registry is other._registry and self.name == other.name

    def __hash__(self) -> int:
        return hash(self.name)

    def __repr__(self) -> str:
        return f"Subscription(name={self.name!r})"
