"""Tests for settings and structured logging helpers."""

import pytest
from unittest.mock import patch

from visa_portal.core.config import Settings
from visa_portal.core.logging import PerformanceLogger, WorkflowLogger, log_operation_context


class TestSettings:

    def test_defaults(self):
        config = Settings(_env_file=None)
        assert config.storage_path_prefix == "visa-documents"
        assert config.messages_page_size == 20

    def test_environment_override(self, monkeypatch):
        monkeypatch.setenv("VISA_PORTAL_API_BASE_URL", "https://portal.example/api/")
        monkeypatch.setenv("VISA_PORTAL_MESSAGES_PAGE_SIZE", "50")

        config = Settings(_env_file=None)

        assert config.api_root == "https://portal.example/api"
        assert config.messages_page_size == 50


class TestLoggingHelpers:

    def test_operation_context_skips_empty_values(self):
        context = log_operation_context(application_id="app-1", entity_id=None, operation="verify")
        assert context == {"application_id": "app-1", "operation": "verify"}

    def test_performance_logger_reraises(self):
        perf = PerformanceLogger()
        with patch.object(perf, "logger") as mock_logger:
            with pytest.raises(RuntimeError):
                with perf.log_operation_time("api_request", path="/x"):
                    raise RuntimeError("boom")

        mock_logger.warning.assert_called_once()
        assert mock_logger.warning.call_args.kwargs["error_type"] == "RuntimeError"

    def test_transition_log_fields(self):
        workflow = WorkflowLogger()
        with patch.object(workflow, "logger") as mock_logger:
            workflow.log_transition("interview", "int-1", "SCHEDULED", "CANCELLED", "cancel", actor_id="officer-1")

        kwargs = mock_logger.info.call_args.kwargs
        assert kwargs["machine"] == "interview"
        assert kwargs["new_state"] == "CANCELLED"
        assert kwargs["actor_id"] == "officer-1"
