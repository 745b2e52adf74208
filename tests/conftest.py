"""Shared fixtures: one fresh PubSub client per test, torn down explicitly."""

import pytest
import pytest_asyncio

from mockpubsub import PubSub

PROJECT_ID = "test-project"


@pytest.fixture
def project_id() -> str:
    return PROJECT_ID


@pytest_asyncio.fixture
async def pubsub(project_id):
    client = PubSub(project_id)
    yield client
    await client.close()
