"""cvbot/errors.py

Exception types for the chat pipeline and the user-facing text each one
maps to. User-facing text is deliberately generic; details stay in the
server log.
"""

from __future__ import annotations

# Standard Library
from enum import StrEnum

MSG_INVALID_INPUT = "Please type a valid message."
MSG_NOT_CONFIGURED = (
    "I'm not fully set up yet, so I can't chat right now. "
    "Please check back soon! 🛠️"
)
MSG_CREDENTIAL = (
    "I'm having trouble connecting right now. "
    "Please ask the site owner to check my configuration. 🔑"
)
MSG_TEMPORARY = "Oops! I encountered a temporary issue. Please try again in a moment! 🧠"
MSG_BUSY = "I'm getting too many requests! Please wait a moment. 🕒"


class FailureKind(StrEnum):
    """Why a single model call failed."""

    CREDENTIAL = "credential"
    TRANSIENT = "transient"
    EMPTY = "empty"


class ChatbotError(Exception):
    """Base class for errors raised by the chatbot package."""


class InputRejected(ChatbotError):
    """The visitor's message is missing, not text, empty or too long."""


class ConfigurationMissing(ChatbotError):
    """No model API key could be resolved."""


class ModelCallError(ChatbotError):
    """One model candidate failed.

    Attributes:
        kind: Classification driving the fallback loop.
        model: Candidate identifier that failed.
        status_code: HTTP status from the model service, when there was one.
    """

    def __init__(
        self,
        kind: FailureKind,
        message: str,
        *,
        model: str = "",
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.model = model
        self.status_code = status_code

    def __repr__(self) -> str:
        return (
            f"ModelCallError(kind={self.kind.value!r}, model={self.model!r}, "
            f"status_code={self.status_code!r}, message={str(self)!r})"
        )


class CredentialError(ModelCallError):
    """The model service rejected the API key. Never retried."""

    def __init__(self, message: str, *, model: str = "", status_code: int | None = None) -> None:
        super().__init__(
            FailureKind.CREDENTIAL, message, model=model, status_code=status_code
        )


class AllCandidatesExhausted(ChatbotError):
    """Every model candidate failed for a non-credential reason."""

    def __init__(self, last_error: ModelCallError | None) -> None:
        detail = repr(last_error) if last_error else "no model candidates configured"
        super().__init__(f"All model candidates failed: {detail}")
        self.last_error = last_error


def user_message_for(error: ChatbotError) -> str:
    """Map a pipeline error to the text shown in the chat window.

    Args:
        error: Any error raised by the pipeline.

    Returns:
        Fixed, non-revealing user-facing text.
    """
    if isinstance(error, InputRejected):
        return MSG_INVALID_INPUT
    if isinstance(error, ConfigurationMissing):
        return MSG_NOT_CONFIGURED
    if isinstance(error, ModelCallError) and error.kind is FailureKind.CREDENTIAL:
        return MSG_CREDENTIAL
    if isinstance(error, AllCandidatesExhausted):
        if error.last_error is not None and error.last_error.status_code == 429:
            return MSG_BUSY
        return MSG_TEMPORARY
    return MSG_TEMPORARY
