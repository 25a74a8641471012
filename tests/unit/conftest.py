"""
Unit test fixtures: factory-built models.
"""

import pytest

from tests.factories.model_factories import make_job_record, make_submission


@pytest.fixture
def job_record():
    """Queued buffer job."""
    return make_job_record(parameters={"distance": 100})


@pytest.fixture
def submission():
    return make_submission(parameters={"distance": 100})


@pytest.fixture
def queue():
    from infrastructure.memory import InMemoryJobQueue

    return InMemoryJobQueue()
