"""Topic handle: publish endpoint and subscription factory."""

import json as jsonlib
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional

from mockpubsub.names import subscription_name, topic_name
from mockpubsub.subscription import Subscription

if TYPE_CHECKING:
    from mockpubsub.registry import Registry

_UNSET = object()


def _check_data(data: Any) -> bytes:
    if not isinstance(data, (bytes, bytearray, memoryview)):
        raise TypeError(
            f"Data being published must be sent as a bytestring, got {type(data).__name__}"
        )
    return bytes(data)


def _merge_attributes(attributes: Optional[Mapping[str, str]], extra: Mapping[str, str]) -> Dict[str, str]:
    merged: Dict[str, str] = dict(attributes or {})
    merged.update(extra)
    for key, value in merged.items():
        if not isinstance(key, str) or not isinstance(value, str):
            raise TypeError(
                f"Message attributes must be str -> str, got {key!r}: {type(value).__name__}"
            )
    return merged


class Topic:
    """Lazy handle to a topic by name. Missing topics only fail when an action is invoked."""

    def __init__(self, registry: "Registry", name: str) -> None:
        self._registry = registry
        self._resource = topic_name(name, registry.project_id)
        self._publish_options: Dict[str, Any] = {}

    @property
    def name(self) -> str:
        """Fully-qualified name: projects/{project}/topics/{name}."""
        return self._resource.full_name

    @property
    def short_name(self) -> str:
        return self._resource.short_name

    @property
    def project_id(self) -> str:
        return self._resource.project_id

    @property
    def publish_options(self) -> Dict[str, Any]:
        return dict(self._publish_options)

    def set_publish_options(self, **options: Any) -> None:
        """Store publisher options (batching and the like). They have no effect on in-process delivery."""
        self._publish_options.update(options)
        if self._registry.has_topic(self._resource):
            self._registry.get_topic(self._resource).publish_options.update(options)

    async def publish(
        self,
        data: bytes,
        attributes: Optional[Mapping[str, str]] = None,
        **attrs: str,
    ) -> str:
        """
        Publish data to every subscription attached to this topic.

        Returns the message id once the message is queued on each subscription;
        listeners are invoked later from the event loop. Raises NotFound if the
        topic does not exist, TypeError on non-bytes data or non-string attributes.
        """
        payload = _check_data(data)
        merged = _merge_attributes(attributes, attrs)
        message = self._registry.publish(self._resource, payload, merged)
        return message.message_id

    async def publish_message(
        self,
        data: Any = _UNSET,
        json: Any = _UNSET,
        attributes: Optional[Mapping[str, str]] = None,
    ) -> str:
        """Publish either raw bytes (data=...) or a JSON-serializable value (json=...)."""
        if (data is _UNSET) == (json is _UNSET):
            raise TypeError("publish_message() requires exactly one of 'data' or 'json'")
        if json is not _UNSET:
            data = jsonlib.dumps(json).encode("utf-8")
        return await self.publish(data, attributes)

    async def create_subscription(self, name: str) -> Subscription:
        """Create a subscription attached to this topic. Raises AlreadyExists, NotFound or InvalidArgument."""
        resource = subscription_name(name, self._registry.project_id)
        self._registry.create_subscription(self._resource, resource)
        return Subscription(self._registry, resource.full_name)

    def subscription(self, name: str) -> Subscription:
        """Lazy subscription handle; does not check that it exists or is attached here."""
        return Subscription(self._registry, name)

    async def get_subscriptions(self) -> List[Subscription]:
        """Subscriptions attached to this topic, in creation order."""
        return [
            Subscription(self._registry, queue.name.full_name)
            for queue in self._registry.subscriptions_for(self._resource)
        ]

    async def exists(self) -> bool:
        return self._registry.has_topic(self._resource)

    async def delete(self) -> None:
        """Delete the topic; its subscriptions are detached, not deleted. Raises NotFound if absent."""
        self._registry.delete_topic(self._resource)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Topic):
            return False
        return self._registry is other._registry and self.name == other.name

    def __hash__(self) -> int:
        return hash(self.name)

    def __repr__(self) -> str:
        return f"Topic(name={self.name!r})"
