"""In-process Pub/Sub emulator: topics, subscriptions, fan-out and ack/nack delivery (no broker)."""

from mockpubsub.client import PubSub
from mockpubsub.delivery import ERROR_EVENT, MESSAGE_EVENT, RandomSelector
from mockpubsub.errors import AlreadyExists, InvalidArgument, NotFound, PubSubError, StatusCode
from mockpubsub.message import Message, ReceivedMessage
from mockpubsub.subscription import Subscription
from mockpubsub.topic import Topic

__all__ = [
    "PubSub",
    "Topic",
    "Subscription",
    "Message",
    "ReceivedMessage",
    "RandomSelector",
    "MESSAGE_EVENT",
    "ERROR_EVENT",
    "PubSubError",
    "InvalidArgument",
    "NotFound",
    "AlreadyExists",
    "StatusCode",
]
