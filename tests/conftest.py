import pytest

from eventspan._trace.agent import Agent
from eventspan._trace.subscriber import NotificationSubscriber
from eventspan.internal.notifications import Notifier
from eventspan.settings.tracing import TracingConfig


@pytest.fixture
def config():
    return TracingConfig()


@pytest.fixture
def agent(config):
    return Agent(config=config)


@pytest.fixture
def notifier():
    notifier = Notifier()
    yield notifier
    notifier.reset()


@pytest.fixture
def subscriber(agent, notifier):
    subscriber = NotificationSubscriber(agent, notifier=notifier)
    subscriber.register()
    yield subscriber
    subscriber.unregister()


@pytest.fixture
def transaction(agent):
    transaction = agent.start_transaction("GET /")
    yield transaction
    agent.end_transaction(transaction)
