"""Pytest configuration for case workflow tests."""

import os
import pytest

# Configure Hypothesis before importing test modules
from tests.property_based.config import PropertyTestConfig
PropertyTestConfig.configure_hypothesis()

from visa_portal.core.logging import configure_logging
from visa_portal.models import ActorRole

from tests.factories import (
    make_actor,
    make_api,
    make_application,
    make_document,
    make_interview,
    make_request,
    make_storage,
)


@pytest.fixture
def officer():
    return make_actor(ActorRole.OFFICER)


@pytest.fixture
def admin():
    return make_actor(ActorRole.ADMIN, actor_id="admin-1")


@pytest.fixture
def applicant():
    return make_actor(ActorRole.APPLICANT)


@pytest.fixture
def application():
    """A PENDING application with one document, one open request and one interview."""
    return make_application(
        documents=[make_document()],
        requests=[make_request()],
        interviews=[make_interview()],
    )


@pytest.fixture
def mock_api(application):
    """Provide a mock portal API backed by ``application``."""
    return make_api(application)


@pytest.fixture
def mock_storage():
    """Provide a mock object storage."""
    return make_storage()


# Pytest markers for organizing tests
def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line(
        "markers", "property_test: mark test as a property-based test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as integration test"
    )
    config.addinivalue_line(
        "markers", "unit: mark test as unit test"
    )


def pytest_collection_modifyitems(config, items):
    """Modify test collection to add markers based on test location."""
    for item in items:
        # Add property_test marker to tests in property_based directory
        if "property_based" in str(item.fspath):
            item.add_marker(pytest.mark.property_test)
        else:
            item.add_marker(pytest.mark.unit)


@pytest.fixture(scope="session", autouse=True)
def setup_test_environment():
    """Quiet console logging for the whole session."""
    os.environ.setdefault("VISA_PORTAL_ENVIRONMENT", "test")
    configure_logging(log_level="WARNING", environment="test")
    yield
