"""Example: publish, receive, nack once and ack, all in-process (no broker)."""

import asyncio
import logging

from mockpubsub import PubSub

logging.basicConfig(level=logging.INFO)


async def main() -> None:
    pubsub = PubSub("example-project")
    topic = await pubsub.create_topic("events")
    subscription = await topic.create_subscription("events-worker")

    done = asyncio.Event()

    def on_message(message) -> None:
        print(f"received {message.data!r} attempt={message.delivery_attempt}")
        if message.delivery_attempt == 1:
            message.nack()
            return
        message.ack()
        done.set()

    subscription.on("message", on_message)
    await topic.publish_message(json={"event": "user.signup", "user_id": 101}, attributes={"source": "example"})

    await asyncio.wait_for(done.wait(), timeout=1.0)
    subscription.remove_all_listeners()
    print(pubsub.stats()["counters"])
    await pubsub.close()


if __name__ == "__main__":
    asyncio.run(main())
