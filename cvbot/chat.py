"""cvbot/chat.py

The conversational request pipeline.

A message goes through input validation, the rate limiter, the local rule
engine and, only when nothing local matches, the model fallback loop with a
freshly assembled system prompt. Every outcome is returned as a
:class:`ChatResult`; the pipeline never raises for expected failures.
"""

from __future__ import annotations

# Standard Library
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from enum import StrEnum
from typing import Any, Protocol

# Local Modules
from cvbot.errors import (
    MSG_INVALID_INPUT,
    MSG_NOT_CONFIGURED,
    MSG_TEMPORARY,
    AllCandidatesExhausted,
    ConfigurationMissing,
    CredentialError,
    InputRejected,
    user_message_for,
)
from cvbot.hybrid import try_local
from cvbot.integrations import IntegrationsAggregator
from cvbot.models import BotConfig, ChatTurn, Profile
from cvbot.orchestrator import ModelOrchestrator
from cvbot.prompt import PromptBuilder
from cvbot.rate_limit import RateLimiter
from cvbot.secrets import mask_key

logger = logging.getLogger(__name__)

MAX_MESSAGE_LENGTH = 1000
DEBUG_COMMAND = "/debug-status"


class ProfileSource(Protocol):
    def read_profile(self) -> Profile: ...

    def read_bot_config(self) -> BotConfig: ...


class KeySource(Protocol):
    def get_api_key(self) -> str | None: ...

    def status(self) -> dict[str, Any]: ...


class ChatStatus(StrEnum):
    OK = "ok"
    INVALID = "invalid"
    RATE_LIMITED = "rate_limited"


@dataclass(slots=True)
class ChatResult:
    """Outcome of one chat request.

    Attributes:
        status: Drives the HTTP status code at the API layer.
        response: Text shown to the visitor.
        source: Which path produced the text (``local``, ``model``,
            ``debug`` or ``error``).
    """

    status: ChatStatus
    response: str
    source: str = "error"


def validate_chat_message(message: Any) -> str:
    """Return the trimmed message or raise :class:`InputRejected`."""
    if not isinstance(message, str):
        raise InputRejected("Message must be a string")
    trimmed = message.strip()
    if not trimmed:
        raise InputRejected("Message is empty")
    if len(trimmed) > MAX_MESSAGE_LENGTH:
        raise InputRejected(f"Message exceeds {MAX_MESSAGE_LENGTH} characters")
    return trimmed


class ChatPipeline:
    """Wires the rate limiter, rule engine, prompt builder and model loop."""

    def __init__(
        self,
        store: ProfileSource,
        secrets: KeySource,
        orchestrator: ModelOrchestrator,
        rate_limiter: RateLimiter | None = None,
        prompt_builder: PromptBuilder | None = None,
        integrations: IntegrationsAggregator | None = None,
    ) -> None:
        """Initialize the pipeline.

        Args:
            store: Profile and bot-config reader.
            secrets: Resolves the model API key.
            orchestrator: Model fallback loop.
            rate_limiter: Per-client admission control. Defaults to the
                standard caps.
            prompt_builder: System prompt assembly.
            integrations: Live integrations aggregator.
        """
        self.store = store
        self.secrets = secrets
        self.orchestrator = orchestrator
        self.rate_limiter = rate_limiter or RateLimiter()
        self.prompt_builder = prompt_builder or PromptBuilder()
        self.integrations = integrations or IntegrationsAggregator()

    def handle(
        self,
        message: Any,
        history: Sequence[ChatTurn | dict[str, Any]] | None = None,
        client_id: str = "unknown",
    ) -> ChatResult:
        """Process one visitor message.

        Args:
            message: Raw message from the request body.
            history: Prior turns replayed by the client.
            client_id: Rate-limit key, normally the visitor's IP.

        Returns:
            The :class:`ChatResult` for the request.
        """
        try:
            text = validate_chat_message(message)
        except InputRejected as exc:
            logger.debug("Rejected chat input: %s", exc)
            return ChatResult(ChatStatus.INVALID, MSG_INVALID_INPUT)

        admission = self.rate_limiter.admit(client_id)
        if not admission.allowed:
            return ChatResult(ChatStatus.RATE_LIMITED, admission.reason or "")

        if text == DEBUG_COMMAND:
            return ChatResult(ChatStatus.OK, self.debug_report(), source="debug")

        profile = self.store.read_profile()
        local = try_local(text, profile)
        if local is not None:
            return ChatResult(ChatStatus.OK, local, source="local")

        try:
            reply = self._ask_model(text, history, profile)
        except ConfigurationMissing:
            logger.info("Chat requested but no API key is configured", extra={"important": True})
            return ChatResult(ChatStatus.OK, MSG_NOT_CONFIGURED)
        except CredentialError as exc:
            return ChatResult(ChatStatus.OK, user_message_for(exc))
        except AllCandidatesExhausted as exc:
            logger.error(
                "Chat API error: %s",
                exc,
                extra={"context": {"last_error": repr(exc.last_error), "client": client_id}},
            )
            return ChatResult(ChatStatus.OK, user_message_for(exc))
        except Exception:
            logger.exception("Unexpected chat pipeline failure", extra={"context": {"client": client_id}})
            return ChatResult(ChatStatus.OK, MSG_TEMPORARY)

        return ChatResult(ChatStatus.OK, reply, source="model")

    def _ask_model(
        self,
        text: str,
        history: Sequence[ChatTurn | dict[str, Any]] | None,
        profile: Profile,
    ) -> str:
        api_key = self.secrets.get_api_key()
        if not api_key:
            raise ConfigurationMissing("No model API key configured")

        config = self.store.read_bot_config()
        integrations_text = self.integrations.build_context(config)
        system_prompt = self.prompt_builder.build(profile, config, integrations_text)
        logger.debug("System prompt assembled: %d chars", len(system_prompt))
        return self.orchestrator.respond(api_key, system_prompt, history, text)

    def debug_report(self) -> str:
        """Markdown status report for the operator debug command."""
        status = self.secrets.status()
        api_key = self.secrets.get_api_key()
        lines = [
            "### 🔧 Debug Status",
            "",
            f"- **API key**: {'configured' if api_key else 'missing'} "
            f"(source: {status.get('source', 'none')})",
        ]
        if api_key:
            lines.append(f"- **Masked key**: `{mask_key(api_key)}`")
        lines.append(f"- **Candidates**: {', '.join(self.orchestrator.candidates) or 'none'}")

        if api_key:
            lines.append("- **Probe**:")
            for result in self.orchestrator.probe(api_key):
                mark = "✅" if result.ok else "❌"
                lines.append(f"  - `{result.model}` {mark} {result.detail}")

        logger.info("Debug status requested", extra={"important": True})
        return "\n".join(lines)
