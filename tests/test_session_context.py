"""Tests for navigation scoped session state."""

import pytest

from visa_portal.core.session_context import SessionContextManager
from visa_portal.models import ActorRole

from tests.factories import make_actor


class TestNavigationSession:

    def test_scratch_values_cleared_at_navigation_end(self):
        actor = make_actor(ActorRole.APPLICANT)

        with SessionContextManager.navigation(actor, visa_type_id="tourist-30") as session:
            session.remember("draft_step", 3)
            assert session.recall("draft_step") == 3
            assert session.selected_visa_type_id == "tourist-30"

        assert session.active is False
        assert session.selected_visa_type_id is None
        assert session.recall("draft_step") is None

    def test_ended_session_refuses_writes(self):
        session = SessionContextManager.start(make_actor(ActorRole.OFFICER), application_id="app-1")
        SessionContextManager.end(session)

        with pytest.raises(RuntimeError):
            session.remember("key", "value")

    def test_sessions_are_independent(self):
        first = SessionContextManager.start(make_actor(ActorRole.APPLICANT))
        second = SessionContextManager.start(make_actor(ActorRole.APPLICANT))

        first.remember("selected", "a")

        assert second.recall("selected") is None
