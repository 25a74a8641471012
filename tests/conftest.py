"""
Root conftest.py - sys.path, env vars, shared fixtures.

Sets up the test environment so all production code can be imported
without a database, a Service Bus namespace or Azure credentials. Every
backend used here is the in-memory one.
"""

import os
import sys

import pytest

# Add project root to sys.path so 'core', 'services', 'worker', etc. are importable
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)


@pytest.fixture(autouse=True, scope="session")
def set_minimal_env_vars():
    """
    Force standalone mode so no test reaches for a real backend.
    """
    defaults = {
        "APP_MODE": "standalone",
        "ENVIRONMENT": "test",
        "APP_SCHEMA": "app",
    }
    for key, value in defaults.items():
        os.environ[key] = value


@pytest.fixture(autouse=True)
def fresh_config():
    """Every test reads configuration from the environment it sets up."""
    from config import reset_config

    reset_config()
    yield
    reset_config()


@pytest.fixture
def job_repo():
    from infrastructure.memory import InMemoryJobRepository

    return InMemoryJobRepository()


@pytest.fixture
def geo_repo(job_repo):
    from infrastructure.memory import InMemoryGeoDataRepository

    return InMemoryGeoDataRepository(jobs=job_repo)


@pytest.fixture
def storage():
    from tests.factories.model_factories import RecordingStorage

    return RecordingStorage()


@pytest.fixture
def context():
    from tests.factories.model_factories import make_context

    return make_context()
