"""tests/test_chat.py

Unit tests for the ChatPipeline class (cvbot/chat.py).
The model service is mocked; profile data comes from a temporary store.
"""

from __future__ import annotations

# Standard Library
import logging
from unittest.mock import Mock

# Third-Party Libraries
import pytest

# Local Modules
from cvbot.chat import DEBUG_COMMAND, ChatPipeline, ChatStatus, validate_chat_message
from cvbot.errors import (
    MSG_BUSY,
    MSG_CREDENTIAL,
    MSG_INVALID_INPUT,
    MSG_NOT_CONFIGURED,
    MSG_TEMPORARY,
    CredentialError,
    FailureKind,
    InputRejected,
    ModelCallError,
)
from cvbot.orchestrator import ModelOrchestrator
from cvbot.rate_limit import SLOW_DOWN_REASON, RateLimiter
from cvbot.store import DataStore


@pytest.fixture
def key_source() -> Mock:
    secrets = Mock()
    secrets.get_api_key.return_value = "AIza-test-key-123456"
    secrets.status.return_value = {"configured": True, "source": "environment", "maskedKey": "AIza...3456"}
    return secrets


@pytest.fixture
def pipeline(store: DataStore, key_source: Mock, orchestrator: ModelOrchestrator) -> ChatPipeline:
    return ChatPipeline(store, key_source, orchestrator)


class TestValidateChatMessage:
    """Input validation."""

    def test_trims(self) -> None:
        """Test surrounding whitespace is removed."""
        assert validate_chat_message("  hi  ") == "hi"

    @pytest.mark.parametrize("message", [None, 42, "", "   ", "x" * 1001])
    def test_rejects(self, message: object) -> None:
        """Test missing, non-text, empty and oversized input is rejected."""
        with pytest.raises(InputRejected):
            validate_chat_message(message)

    def test_limit_is_inclusive(self) -> None:
        """Test exactly 1000 characters is accepted."""
        assert len(validate_chat_message("x" * 1000)) == 1000


class TestChatPipeline:
    """Test suite for the request pipeline."""

    def test_invalid_input(self, pipeline: ChatPipeline, mock_model_client: Mock) -> None:
        """Test bad input short-circuits with the fixed message."""
        result = pipeline.handle("   ", [], "ip")
        assert result.status is ChatStatus.INVALID
        assert result.response == MSG_INVALID_INPUT
        mock_model_client.generate.assert_not_called()

    def test_greeting_served_locally(self, pipeline: ChatPipeline, mock_model_client: Mock) -> None:
        """Test greetings never reach the model."""
        result = pipeline.handle("Hello!", [], "ip")
        assert result.status is ChatStatus.OK
        assert result.source == "local"
        assert "**Ada Lovelace**" in result.response
        mock_model_client.generate.assert_not_called()

    def test_model_answer(self, pipeline: ChatPipeline, mock_model_client: Mock, sample_messages) -> None:
        """Test unmatched questions go to the model with the assembled prompt."""
        result = pipeline.handle("Tell me a joke", sample_messages, "ip")

        assert result.status is ChatStatus.OK
        assert result.source == "model"
        assert result.response == "This is a test response from the mock model."
        system_prompt = mock_model_client.generate.call_args.args[1]
        assert "Ada Lovelace" in system_prompt
        assert "Never discuss politics" in system_prompt

    def test_no_api_key(self, pipeline: ChatPipeline, key_source: Mock, mock_model_client: Mock) -> None:
        """Test a missing key gives the success-shaped not-configured reply."""
        key_source.get_api_key.return_value = None
        result = pipeline.handle("Tell me a joke", [], "ip")

        assert result.status is ChatStatus.OK
        assert result.response == MSG_NOT_CONFIGURED
        mock_model_client.generate.assert_not_called()

    def test_credential_error(self, pipeline: ChatPipeline, mock_model_client: Mock) -> None:
        """Test a rejected key stops after one attempt with the credential text."""
        mock_model_client.generate.side_effect = CredentialError("bad", model="model-a", status_code=401)
        result = pipeline.handle("Tell me a joke", [], "ip")

        assert result.response == MSG_CREDENTIAL
        assert mock_model_client.generate.call_count == 1

    def test_all_failed(self, pipeline: ChatPipeline, mock_model_client: Mock) -> None:
        """Test exhausted candidates give the temporary-issue text."""
        mock_model_client.generate.side_effect = ModelCallError(FailureKind.TRANSIENT, "[500]", status_code=500)
        assert pipeline.handle("Tell me a joke", [], "ip").response == MSG_TEMPORARY

    def test_all_failed_with_quota(self, pipeline: ChatPipeline, mock_model_client: Mock) -> None:
        """Test a final 429 gives the too-many-requests text."""
        mock_model_client.generate.side_effect = ModelCallError(FailureKind.TRANSIENT, "[429]", status_code=429)
        assert pipeline.handle("Tell me a joke", [], "ip").response == MSG_BUSY

    def test_unexpected_error_is_contained(
        self, pipeline: ChatPipeline, mock_model_client: Mock, caplog: pytest.LogCaptureFixture
    ) -> None:
        """Test an unforeseen exception becomes the temporary-issue reply."""
        mock_model_client.generate.side_effect = RuntimeError("boom")
        with caplog.at_level(logging.ERROR, logger="cvbot.chat"):
            result = pipeline.handle("Tell me a joke", [], "ip")

        assert result.status is ChatStatus.OK
        assert result.response == MSG_TEMPORARY
        assert any(record.exc_info for record in caplog.records)

    def test_rate_limited(self, store: DataStore, key_source: Mock, orchestrator: ModelOrchestrator) -> None:
        """Test the limiter runs before any answer path."""
        pipeline = ChatPipeline(store, key_source, orchestrator, rate_limiter=RateLimiter(1, 100))
        assert pipeline.handle("hi", [], "ip").status is ChatStatus.OK

        result = pipeline.handle("hi", [], "ip")
        assert result.status is ChatStatus.RATE_LIMITED
        assert result.response == SLOW_DOWN_REASON

    def test_invalid_input_not_counted(self, store: DataStore, key_source: Mock, orchestrator: ModelOrchestrator) -> None:
        """Test rejected input does not consume rate-limit budget."""
        pipeline = ChatPipeline(store, key_source, orchestrator, rate_limiter=RateLimiter(1, 100))
        pipeline.handle("", [], "ip")
        assert pipeline.handle("hi", [], "ip").status is ChatStatus.OK

    def test_debug_command(self, pipeline: ChatPipeline, mock_model_client: Mock) -> None:
        """Test the debug command reports key source and probes candidates."""
        mock_model_client.generate.return_value = "pong"
        result = pipeline.handle(f"  {DEBUG_COMMAND} ", [], "ip")

        assert result.source == "debug"
        assert "source: environment" in result.response
        assert "`AIza...3456`" in result.response
        assert "`model-a` ✅ pong" in result.response
        assert mock_model_client.generate.call_count == 3

    def test_debug_without_key_skips_probe(
        self, pipeline: ChatPipeline, key_source: Mock, mock_model_client: Mock
    ) -> None:
        """Test no probe runs when no key is configured."""
        key_source.get_api_key.return_value = None
        key_source.status.return_value = {"source": "none"}
        result = pipeline.handle(DEBUG_COMMAND, [], "ip")

        assert "missing" in result.response
        assert "Probe" not in result.response
        mock_model_client.generate.assert_not_called()
