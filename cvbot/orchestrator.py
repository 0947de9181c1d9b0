"""cvbot/orchestrator.py

Sequential model fallback.

Candidates are tried strictly in order and the first non-empty reply wins.
A credential failure stops the loop at once because another model cannot
fix a bad key; transient and empty failures move on to the next candidate.
"""

from __future__ import annotations

# Standard Library
import logging
import threading
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any, Protocol

# Local Modules
from cvbot.errors import AllCandidatesExhausted, CredentialError, FailureKind, ModelCallError
from cvbot.gemini import SAFETY_SETTINGS, GeminiClient
from cvbot.memory import RollingMemory
from cvbot.models import ChatTurn

logger = logging.getLogger(__name__)

PROBE_MESSAGE = "Reply with the single word: pong"


class ModelService(Protocol):
    """Anything that can answer one prompt with one model."""

    def generate(
        self,
        model: str,
        system_prompt: str,
        contents: list[dict[str, Any]],
        safety_settings: list[dict[str, str]] | None = None,
    ) -> str: ...

    def close(self) -> None: ...


ClientFactory = Callable[[str], ModelService]


@dataclass(slots=True)
class ProbeResult:
    model: str
    ok: bool
    detail: str


class ModelOrchestrator:
    """Runs the ordered candidate list against a cached model-service client."""

    def __init__(
        self,
        candidates: Sequence[str],
        client_factory: ClientFactory | None = None,
        *,
        history_turns: int = 10,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            candidates: Model identifiers, most preferred first.
            client_factory: Builds a client for an API key. Defaults to
                :class:`~cvbot.gemini.GeminiClient`.
            history_turns: Prior turns replayed to the model.
        """
        self.candidates = list(candidates)
        self.history_turns = history_turns
        self._client_factory: ClientFactory = client_factory or GeminiClient
        self._client: ModelService | None = None
        self._client_key: str | None = None
        self._lock = threading.Lock()

    def client_for(self, api_key: str) -> ModelService:
        """Return the cached client, rebuilding it only when the key changed."""
        with self._lock:
            if self._client is None or self._client_key != api_key:
                if self._client is not None:
                    self._client.close()
                logger.debug("Building model client for a new API key")
                self._client = self._client_factory(api_key)
                self._client_key = api_key
            return self._client

    def build_contents(
        self, history: Sequence[ChatTurn | dict[str, Any]] | None, message: str
    ) -> list[dict[str, Any]]:
        memory = RollingMemory.from_turns(history, max_messages=self.history_turns)
        contents = memory.as_contents()
        contents.append({"role": "user", "parts": [{"text": message}]})
        return contents

    def respond(
        self,
        api_key: str,
        system_prompt: str,
        history: Sequence[ChatTurn | dict[str, Any]] | None,
        message: str,
    ) -> str:
        """Get a reply from the first candidate that produces one.

        Args:
            api_key: Resolved model API key.
            system_prompt: Confidential instruction payload.
            history: Replayed prior turns (trimmed here).
            message: The visitor's current message.

        Returns:
            The first non-empty reply text.

        Raises:
            CredentialError: The key was rejected; no further candidates tried.
            AllCandidatesExhausted: Every candidate failed otherwise.
        """
        client = self.client_for(api_key)
        contents = self.build_contents(history, message)
        last_error: ModelCallError | None = None

        for model in self.candidates:
            try:
                text = client.generate(model, system_prompt, contents, SAFETY_SETTINGS)
            except ModelCallError as exc:
                if exc.kind is FailureKind.CREDENTIAL:
                    logger.error(
                        "Model %s rejected the API key: %s",
                        model,
                        exc,
                        extra={"context": {"model": model, "status": exc.status_code}},
                    )
                    if isinstance(exc, CredentialError):
                        raise
                    raise CredentialError(
                        str(exc), model=model, status_code=exc.status_code
                    ) from exc
                logger.debug("Model %s failed (%s): %s", model, exc.kind, exc)
                last_error = exc
                continue

            if text and text.strip():
                logger.info("Served reply from model %s", model)
                return text

            last_error = ModelCallError(FailureKind.EMPTY, "Empty reply", model=model)
            logger.debug("Model %s returned an empty reply", model)

        raise AllCandidatesExhausted(last_error)

    def probe(self, api_key: str) -> list[ProbeResult]:
        """Try every candidate once with a trivial prompt (operator diagnostics)."""
        client = self.client_for(api_key)
        contents = [{"role": "user", "parts": [{"text": PROBE_MESSAGE}]}]
        results: list[ProbeResult] = []
        for model in self.candidates:
            try:
                text = client.generate(model, "You are a health check.", contents, SAFETY_SETTINGS)
            except ModelCallError as exc:
                results.append(ProbeResult(model, False, f"{exc.kind.value}: {exc}"))
                if exc.kind is FailureKind.CREDENTIAL:
                    break
            else:
                results.append(ProbeResult(model, True, text.strip()[:40]))
        return results

    def close(self) -> None:
        with self._lock:
            if self._client is not None:
                self._client.close()
            self._client = None
            self._client_key = None
