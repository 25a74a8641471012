"""
Job system fixtures: scripted processors and a small worker pool config.
"""

import pytest

from infrastructure.memory import InMemoryJobQueue
from services.registry import ProcessorRegistry
from worker import LifecycleEventBus, WorkerConfig
from tests.factories.fake_processors import (
    EchoProcessor,
    EventRecorder,
    ListReturningProcessor,
    RejectingProcessor,
    SleepyProcessor,
)


@pytest.fixture
def processors():
    return {
        "echo": EchoProcessor(),
        "rejecting": RejectingProcessor(),
        "sleepy": SleepyProcessor(),
        "list": ListReturningProcessor(),
    }


@pytest.fixture
def registry(processors):
    return ProcessorRegistry(processors.values())


@pytest.fixture
def recorder():
    return EventRecorder()


@pytest.fixture
def events(recorder):
    return LifecycleEventBus([recorder])


@pytest.fixture
def worker_config():
    return WorkerConfig(
        worker_id="test-worker",
        concurrency=2,
        job_timeout_seconds=5,
        shutdown_timeout_seconds=5,
    )


@pytest.fixture
def queue():
    return InMemoryJobQueue()
