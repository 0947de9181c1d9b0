"""cvbot/gemini.py

Thin client for the Gemini ``generateContent`` REST endpoint.

Every failure is raised as a :class:`~cvbot.errors.ModelCallError` tagged
with a :class:`~cvbot.errors.FailureKind` so the orchestrator can decide
whether trying the next model candidate makes sense.
"""

from __future__ import annotations

# Standard Library
import logging
from typing import Any

# Third-Party Libraries
import httpx

# Local Modules
from cvbot.errors import CredentialError, FailureKind, ModelCallError

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"

# A résumé bot is low risk: only block high-confidence violations.
SAFETY_SETTINGS: list[dict[str, str]] = [
    {"category": "HARM_CATEGORY_HARASSMENT", "threshold": "BLOCK_ONLY_HIGH"},
    {"category": "HARM_CATEGORY_HATE_SPEECH", "threshold": "BLOCK_ONLY_HIGH"},
    {"category": "HARM_CATEGORY_SEXUALLY_EXPLICIT", "threshold": "BLOCK_ONLY_HIGH"},
    {"category": "HARM_CATEGORY_DANGEROUS_CONTENT", "threshold": "BLOCK_ONLY_HIGH"},
]

GENERATION_CONFIG: dict[str, Any] = {
    "maxOutputTokens": 1000,
    "temperature": 0.5,
}

_CREDENTIAL_MARKERS = ("api_key_invalid", "api key not valid", "api key expired", "invalid api key")


def classify_http_error(response: httpx.Response, model: str = "") -> ModelCallError:
    """Turn a non-2xx response into a tagged error.

    401/403 and 400s that talk about the API key are credential failures;
    everything else (404 unknown model, 429 quota, 5xx) is transient.

    Args:
        response: The failed HTTP response.
        model: Candidate that was called.

    Returns:
        The classified error (not raised).
    """
    status = response.status_code
    try:
        body = response.json()
        error = body.get("error") if isinstance(body, dict) else None
        if not isinstance(error, dict):
            error = {}
        detail = str(error.get("message") or response.text)
        details = error.get("details")
        reasons = " ".join(
            str(item.get("reason", ""))
            for item in (details if isinstance(details, list) else [])
            if isinstance(item, dict)
        )
    except ValueError:
        detail = response.text
        reasons = ""

    haystack = f"{detail} {reasons}".lower()
    if status in (401, 403) or (
        status == 400 and any(marker in haystack for marker in _CREDENTIAL_MARKERS)
    ):
        return CredentialError(
            f"[{status}] {detail[:200]}", model=model, status_code=status
        )
    return ModelCallError(
        FailureKind.TRANSIENT, f"[{status}] {detail[:200]}", model=model, status_code=status
    )


def extract_text(data: Any, model: str = "") -> str:
    """Pull the reply text out of a ``generateContent`` response.

    Raises:
        ModelCallError: ``EMPTY`` when the prompt or reply was blocked or no
            text came back.
    """
    if not isinstance(data, dict):
        raise ModelCallError(FailureKind.EMPTY, "Malformed response body", model=model)

    feedback = data.get("promptFeedback")
    block_reason = feedback.get("blockReason") if isinstance(feedback, dict) else None
    if block_reason:
        raise ModelCallError(FailureKind.EMPTY, f"Prompt blocked: {block_reason}", model=model)

    candidates = data.get("candidates")
    if not isinstance(candidates, list) or not candidates:
        raise ModelCallError(FailureKind.EMPTY, "No candidates returned", model=model)

    first = candidates[0]
    content = first.get("content") if isinstance(first, dict) else None
    if not isinstance(content, dict):
        raise ModelCallError(FailureKind.EMPTY, "Malformed candidate", model=model)
    parts = content.get("parts")
    if not isinstance(parts, list):
        parts = []
    text = "".join(str(part.get("text", "")) for part in parts if isinstance(part, dict)).strip()
    if not text:
        reason = first.get("finishReason", "UNKNOWN")
        raise ModelCallError(
            FailureKind.EMPTY, f"Empty response (finishReason={reason})", model=model
        )
    return text


class GeminiClient:
    """HTTP client bound to one API key."""

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 60.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.api_key = api_key
        self._http = httpx.Client(
            base_url=base_url.rstrip("/"),
            timeout=timeout,
            headers={"x-goog-api-key": api_key, "Content-Type": "application/json"},
            transport=transport,
        )

    def generate(
        self,
        model: str,
        system_prompt: str,
        contents: list[dict[str, Any]],
        safety_settings: list[dict[str, str]] | None = None,
    ) -> str:
        """Run one ``generateContent`` call.

        Args:
            model: Candidate model identifier.
            system_prompt: Confidential system instruction.
            contents: Conversation in service format, ending with the user
                message.
            safety_settings: Override for :data:`SAFETY_SETTINGS`.

        Returns:
            Non-empty reply text.

        Raises:
            ModelCallError: Tagged with the failure kind.
        """
        payload: dict[str, Any] = {
            "systemInstruction": {"parts": [{"text": system_prompt}]},
            "contents": contents,
            "safetySettings": safety_settings if safety_settings is not None else SAFETY_SETTINGS,
            "generationConfig": GENERATION_CONFIG,
        }
        try:
            response = self._http.post(f"/models/{model}:generateContent", json=payload)
        except httpx.HTTPError as exc:
            raise ModelCallError(
                FailureKind.TRANSIENT, f"Transport error: {exc}", model=model
            ) from exc

        if response.is_error:
            raise classify_http_error(response, model)

        try:
            data = response.json()
        except ValueError as exc:
            raise ModelCallError(
                FailureKind.EMPTY, "Response body was not JSON", model=model
            ) from exc
        return extract_text(data, model)

    def close(self) -> None:
        self._http.close()
