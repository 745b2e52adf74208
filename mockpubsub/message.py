"""Message classes: the published payload and the per-delivery received message."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Dict, Optional

if TYPE_CHECKING:
    from mockpubsub.delivery import Envelope, SubscriptionQueue


@dataclass(frozen=True)
class Message:
    """Represents a message published to a topic. Shared by every subscription it fans out to."""

    message_id: str
    data: bytes
    attributes: Dict[str, str] = field(default_factory=dict)
    publish_time: Optional[datetime] = None

    def __post_init__(self) -> None:
        if self.publish_time is None:
            object.__setattr__(self, "publish_time", datetime.now(timezone.utc))

    @property
    def size(self) -> int:
        return len(self.data)


class ReceivedMessage:
    """
    A message as handed to one "message" listener.

    Bound to a single delivery of a single subscription's envelope: ack() and
    nack() act on that delivery only and are no-ops once it has been settled.
    """

    def __init__(self, envelope: "Envelope", queue: "SubscriptionQueue") -> None:
        self._message = envelope.message
        self._ack_id = envelope.ack_id
        self._delivery_attempt = envelope.delivery_attempt
        self._queue = queue
        self._attributes = dict(envelope.message.attributes)

    @property
    def message_id(self) -> str:
        return self._message.message_id

    @property
    def id(self) -> str:
        return self._message.message_id

    @property
    def data(self) -> bytes:
        return self._message.data

    @property
    def attributes(self) -> Dict[str, str]:
        return self._attributes

    @property
    def publish_time(self) -> Optional[datetime]:
        return self._message.publish_time

    @property
    def delivery_attempt(self) -> int:
        return self._delivery_attempt

    @property
    def ack_id(self) -> str:
        return self._ack_id

    @property
    def subscription(self) -> str:
        return self._queue.name.full_name

    def ack(self) -> None:
        """Acknowledge this delivery; the message is removed from the subscription for good."""
        self._queue.ack(self._ack_id)

    def nack(self) -> None:
        """Negatively acknowledge this delivery; the message is queued again for redelivery."""
        self._queue.nack(self._ack_id)

    def __repr__(self) -> str:
        return (
            f"ReceivedMessage(id={self.message_id!r}, size={len(self.data)}, "
            f"attempt={self._delivery_attempt})"
        )
