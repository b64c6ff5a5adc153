"""Base classes and utilities for property-based testing."""

import asyncio
import pytest
from typing import Any, Awaitable, List

from hypothesis import note, event

from visa_portal.models import ActorRole, Application
from visa_portal.services.case_workflow import CaseWorkflow

from tests.factories import make_actor, make_api, make_storage, open_case
from .config import get_test_seed


class PropertyTestBase:
    """Base class for property-based tests with common utilities."""

    def setup_method(self):
        """Setup method called before each test."""
        # Set deterministic seed if in CI
        seed = get_test_seed()
        if seed is not None:
            import random
            random.seed(seed)

    def log_test_data(self, description: str, data: Any):
        """Log test data for debugging purposes."""
        note(f"{description}: {data}")
        event(f"Testing {description}")

    def run(self, coro: Awaitable) -> Any:
        """Drive a coroutine to completion on a fresh event loop."""
        return asyncio.run(coro)


class CaseWorkflowPropertyTest(PropertyTestBase):
    """Base class for tests driving a loaded case."""

    def open(self, application: Application, role: ActorRole = ActorRole.OFFICER, api=None, storage=None) -> CaseWorkflow:
        api = api if api is not None else make_api(application)
        storage = storage if storage is not None else make_storage()
        return self.run(open_case(application, make_actor(role), api=api, storage=storage))

    def verify_terminal_state_immutable(self, before: Any, after: Any, fields: List[str]):
        """Verify that none of ``fields`` changed between two snapshots."""
        for field in fields:
            assert getattr(before, field) == getattr(after, field), \
                f"Terminal entity field '{field}' changed from {getattr(before, field)} to {getattr(after, field)}"


# Utility decorators for property-based tests
def property_test(feature_name: str, property_number: int, property_description: str):
    """Decorator to mark and tag property-based tests."""
    def decorator(test_func):
        # Add metadata to the test function
        test_func._property_test_metadata = {
            "feature": feature_name,
            "property_number": property_number,
            "description": property_description,
            "tag": f"Feature: {feature_name}, Property {property_number}: {property_description}"
        }

        # Add pytest marker
        test_func = pytest.mark.property_test(test_func)

        return test_func
    return decorator
