"""web.py

Gradio chat page for the résumé chatbot.
Serves the visitor-facing chat at 0.0.0.0:7860.

The pipeline is a module-level singleton built from the same settings as the
HTTP API. Conversation history lives in the page (``gr.State``) and is
replayed on every message, exactly like the browser client of the API.

Exposed interfaces:
    demo (gr.Blocks): The Gradio application.  Launch via ``python web.py``.
"""

from __future__ import annotations

# Standard Library
import logging

# Third-Party Libraries
import gradio as gr
from dotenv import load_dotenv

# Local Modules
from cvbot.api import build_services
from cvbot.blocks import render_markdown
from cvbot.chat import ChatStatus
from cvbot.logs import configure_logging
from cvbot.settings import Settings

load_dotenv()

settings = Settings()
log_store = configure_logging(settings.log_level)
logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Singleton services
# ---------------------------------------------------------------------------
services = build_services(settings, log_store)
pipeline = services.pipeline
logger.info("Chat pipeline initialised: models=%s", ", ".join(settings.gemini_models))


# ---------------------------------------------------------------------------
# Gradio handler functions
# ---------------------------------------------------------------------------


def respond(
    message: str,
    history: list[dict[str, str]],
    turns: list[dict[str, str]],
    request: gr.Request,
) -> tuple[str, list[dict[str, str]], list[dict[str, str]]]:
    """Send a visitor message through the pipeline.

    ``history`` holds what the chat widget displays (blocks rendered as
    markdown cards); ``turns`` holds the raw text replayed to the model.

    Args:
        message: The visitor's input text.
        history: Current Gradio chat history (role/content dicts).
        turns: Raw conversation turns.
        request: Incoming Gradio request, used for the rate-limit key.

    Returns:
        A tuple of (cleared input text, updated display history, updated turns).
    """
    if not message.strip():
        return "", history, turns

    client_id = request.client.host if request is not None and request.client else "web"
    result = pipeline.handle(message, turns, client_id)

    updated = history + [
        {"role": "user", "content": message},
        {"role": "assistant", "content": render_markdown(result.response)},
    ]
    if result.status is ChatStatus.OK:
        turns = turns + [
            {"role": "user", "content": message.strip()},
            {"role": "assistant", "content": result.response},
        ]
    return "", updated, turns


def initial_history() -> list[dict[str, str]]:
    """Greeting shown when the page loads."""
    greeting = services.store.read_bot_config().personality.greeting
    return [{"role": "assistant", "content": greeting}] if greeting else []


def clear_history() -> tuple[list[dict[str, str]], list[dict[str, str]]]:
    """Reset the conversation and show the greeting again."""
    logger.info("Conversation history cleared via web UI")
    return initial_history(), []


# ---------------------------------------------------------------------------
# Gradio UI layout
# ---------------------------------------------------------------------------

_profile = services.store.read_profile()
_config = services.store.read_bot_config()

with gr.Blocks(title=_profile.name or "cvbot") as demo:
    gr.Markdown(
        f"# 💬 {_config.personality.name}\n"
        f"*Ask me about {_profile.name or 'the site owner'}'s experience, skills and projects.*"
    )

    turns_state = gr.State([])
    chatbot = gr.Chatbot(
        value=initial_history,
        label=_config.personality.name,
        height=540,
        layout="bubble",
    )

    with gr.Row():
        txt = gr.Textbox(
            placeholder="Type your message and press Enter…",
            show_label=False,
            container=False,
            scale=9,
            autofocus=True,
        )
        send_btn = gr.Button("Send", variant="primary", scale=1)

    if _config.quick_replies:
        gr.Examples(examples=[[reply] for reply in _config.quick_replies], inputs=txt)

    clear_btn = gr.Button("🗑️  Start over", variant="secondary")

    # ------------------------------------------------------------------
    # Event wiring
    # ------------------------------------------------------------------
    txt.submit(respond, inputs=[txt, chatbot, turns_state], outputs=[txt, chatbot, turns_state])
    send_btn.click(respond, inputs=[txt, chatbot, turns_state], outputs=[txt, chatbot, turns_state])
    clear_btn.click(clear_history, outputs=[chatbot, turns_state])


# ---------------------------------------------------------------------------
# Entrypoint
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    demo.launch(
        server_name="0.0.0.0",
        server_port=7860,
        theme=gr.themes.Soft(),
    )
