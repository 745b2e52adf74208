"""Tests for publishing, acking and listener changes from other threads and event loops."""

import asyncio
import threading

import pytest

from mockpubsub.delivery import SubscriptionQueue
from mockpubsub.message import Message
from mockpubsub.names import subscription_name
from mockpubsub.observability import Metrics
from mockpubsub.observability.metrics import MESSAGES_ACKED, MESSAGES_NACKED
from tests.helpers import eventually


async def topic_with_subscription(pubsub, topic="t1", subscription="s1"):
    t = await pubsub.create_topic(topic)
    s = await t.create_subscription(subscription)
    return t, s


def publish_from_own_loop(topic, payloads):
    """Run in a worker thread: publish every payload on a fresh event loop."""
    async def publish_all():
        for payload in payloads:
            await topic.publish(payload)

    asyncio.run(publish_all())


class TestCrossLoopPublish:

    @pytest.mark.asyncio
    async def test_async_listener_runs_on_subscription_loop(self, pubsub):
        topic, subscription = await topic_with_subscription(pubsub)
        main_thread = threading.current_thread().name
        seen = []

        async def handler(message):
            await asyncio.sleep(0.01)
            seen.append(threading.current_thread().name)
            message.ack()

        subscription.on("message", handler)

        worker = threading.Thread(target=publish_from_own_loop, args=(topic, [b"x"]), name="worker")
        worker.start()
        await asyncio.to_thread(worker.join)

        def acked():
            assert seen == [main_thread]
            stats = pubsub.stats()["subscriptions"][subscription.name]
            assert stats["pending"] == 0
            assert stats["in_flight"] == 0

        await eventually(acked)

    @pytest.mark.asyncio
    async def test_sync_listener_never_runs_on_publisher_thread(self, pubsub):
        topic, subscription = await topic_with_subscription(pubsub)
        main_thread = threading.current_thread().name
        threads = []

        def handler(message):
            threads.append(threading.current_thread().name)
            message.ack()

        subscription.on("message", handler)

        worker = threading.Thread(target=publish_from_own_loop, args=(topic, [b"a", b"b"]), name="worker")
        worker.start()
        await asyncio.to_thread(worker.join)
        await topic.publish(b"c")

        def delivered():
            assert threads == [main_thread] * 3

        await eventually(delivered)

    @pytest.mark.asyncio
    async def test_closed_loop_is_replaced(self):
        received = []

        async def build():
            queue = SubscriptionQueue(
                name=subscription_name("sub1", "p1"),
                topic_name="projects/p1/topics/t1",
                metrics=Metrics(),
            )
            queue.add_listener("message", received.append)
            return queue

        # Pinned to the worker's loop, which is closed once asyncio.run returns.
        queue = await asyncio.to_thread(asyncio.run, build())
        queue.enqueue(Message(message_id="1", data=b"x"))

        def delivered():
            assert len(received) == 1

        await eventually(delivered)


class TestConcurrentPublish:

    @pytest.mark.asyncio
    async def test_many_threads_publish_exactly_once_each(self, pubsub):
        topic, subscription = await topic_with_subscription(pubsub)
        workers, per_worker = 4, 25
        received = []

        def handler(message):
            received.append(message.data)
            message.ack()

        subscription.on("message", handler)

        batches = [
            [f"{w}:{i}".encode() for i in range(per_worker)]
            for w in range(workers)
        ]
        await asyncio.gather(
            *(asyncio.to_thread(publish_from_own_loop, topic, batch) for batch in batches)
        )

        def all_acked():
            assert len(received) == workers * per_worker
            assert pubsub.metrics.get_counter(MESSAGES_ACKED) == workers * per_worker

        await eventually(all_acked, timeout=2.0)
        assert sorted(received) == sorted(p for batch in batches for p in batch)
        for batch in batches:
            # One publisher's messages keep their publish order.
            assert [p for p in received if p in batch] == batch
        stats = pubsub.stats()["subscriptions"][subscription.name]
        assert stats["pending"] == 0
        assert stats["in_flight"] == 0

    @pytest.mark.asyncio
    async def test_subscriptions_see_the_same_publish_order(self, pubsub):
        topic = await pubsub.create_topic("t1")
        first = await topic.create_subscription("s1")
        second = await topic.create_subscription("s2")
        order_first, order_second = [], []
        first.on("message", lambda m: (order_first.append(m.data), m.ack()))
        second.on("message", lambda m: (order_second.append(m.data), m.ack()))

        batches = [[f"{w}:{i}".encode() for i in range(20)] for w in range(3)]
        await asyncio.gather(
            *(asyncio.to_thread(publish_from_own_loop, topic, batch) for batch in batches)
        )

        def delivered():
            assert len(order_first) == 60
            assert len(order_second) == 60

        await eventually(delivered, timeout=2.0)
        assert order_first == order_second


class TestConcurrentSettlement:

    @pytest.mark.asyncio
    async def test_ack_and_nack_from_threads_while_listeners_are_removed(self, pubsub):
        topic, subscription = await topic_with_subscription(pubsub)
        received = []
        subscription.on("message", received.append)
        for i in range(50):
            await topic.publish(str(i).encode())

        def delivered():
            assert len(received) == 50

        await eventually(delivered)

        settling = asyncio.gather(
            *(asyncio.to_thread(m.ack) for m in received[:25]),
            *(asyncio.to_thread(m.nack) for m in received[25:]),
        )
        subscription.remove_all_listeners()
        await settling

        assert pubsub.metrics.get_counter(MESSAGES_ACKED) == 25
        assert pubsub.metrics.get_counter(MESSAGES_NACKED) == 25
        stats = pubsub.stats()["subscriptions"][subscription.name]
        assert stats["pending"] == 25
        assert stats["in_flight"] == 0

        redelivered = []

        def ack_all(message):
            redelivered.append(message)
            message.ack()

        subscription.on("message", ack_all)

        def drained():
            assert len(redelivered) == 25
            assert pubsub.metrics.get_counter(MESSAGES_ACKED) == 50

        await eventually(drained)
        assert all(m.delivery_attempt == 2 for m in redelivered)
        stats = pubsub.stats()["subscriptions"][subscription.name]
        assert stats["pending"] == 0
        assert stats["in_flight"] == 0
