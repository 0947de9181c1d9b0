#!/usr/bin/env python3
"""main.py

Operator CLI for the résumé chatbot.
Chat with the bot from a terminal, using the same pipeline, data files and
API key as the website. Built on the Rich library.
"""

from __future__ import annotations

# Standard Library
import sys
from typing import NoReturn

# Third-Party Libraries
from dotenv import load_dotenv
from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.prompt import Prompt
from rich.theme import Theme

# Local Modules
from cvbot.api import Services, build_services
from cvbot.blocks import render_markdown
from cvbot.chat import ChatStatus
from cvbot.logs import configure_logging
from cvbot.memory import RollingMemory
from cvbot.settings import Settings

CLI_CLIENT_ID = "cli"

# Initialize Rich console with custom theme
custom_theme = Theme(
    {
        "info": "cyan",
        "warning": "yellow",
        "error": "bold red",
        "success": "bold green",
        "user": "bold blue",
        "assistant": "green",
    }
)
console = Console(theme=custom_theme)


def display_banner(name: str) -> None:
    """Display the welcome banner."""
    console.print(
        Panel(
            f"[bold]cvbot[/bold]: résumé assistant for [bold]{name or 'the site owner'}[/bold]",
            border_style="cyan",
        )
    )
    console.print()


def display_help(max_messages: int) -> None:
    """Display available commands and usage information."""
    help_text = f"""
**Available Commands:**

- `/help` - Show this help message
- `/clear` - Clear conversation history
- `/stats` - Show context, model and log statistics
- `/debug-status` - Probe every model candidate
- `/quit` or `/exit` - Exit
- Any other text - Chat with the bot

**Tips:**

- Greetings and questions about skills, experience, projects, contact or
  bio are answered locally without a model call
- The rolling memory window replays the last {max_messages} messages
    """
    console.print(Panel(Markdown(help_text), title="Help", border_style="cyan"))


def display_stats(services: Services, memory: RollingMemory) -> None:
    """Display context, model and server log statistics.

    Args:
        services: The wired services.
        memory: The CLI's conversation window.
    """
    msg_count = memory.message_count()
    max_msgs = memory.max_messages
    key_status = services.secrets.status()
    summary = services.log_store.summary()

    stats_text = f"""
**Context Statistics:**

- Messages in context: {msg_count}/{max_msgs}
- Models: `{', '.join(services.pipeline.orchestrator.candidates)}`
- API key: {key_status['source']} {key_status['maskedKey'] or ''}
- Server log: {summary['error']} errors, {summary['warn']} warnings, {summary['info']} info
    """
    console.print(Panel(Markdown(stats_text), title="Statistics", border_style="cyan"))


def main() -> NoReturn:
    """Main entry point for the CLI."""
    load_dotenv()
    settings = Settings()
    log_store = configure_logging("WARNING")
    services = build_services(settings, log_store)
    memory = RollingMemory(max_messages=settings.history_turns)

    profile = services.store.read_profile()
    display_banner(profile.name)
    console.print(f"📁 Data directory: {settings.data_dir}", style="info")
    console.print(f"🤖 Models: {', '.join(settings.gemini_models)}\n", style="info")
    console.print(
        "Type [bold]/help[/bold] for commands, or start chatting!\n", style="info"
    )

    # Main chat loop
    while True:
        try:
            user_input = Prompt.ask("[bold blue]You[/bold blue]").strip()

            if not user_input:
                continue

            if user_input.lower() in ["/quit", "/exit"]:
                console.print("\n👋 Goodbye!\n", style="success")
                sys.exit(0)

            elif user_input.lower() == "/help":
                display_help(memory.max_messages)
                continue

            elif user_input.lower() == "/clear":
                memory.clear()
                console.print("🗑️  Conversation history cleared.\n", style="success")
                continue

            elif user_input.lower() == "/stats":
                display_stats(services, memory)
                continue

            console.print()
            with console.status("[bold green]Thinking...", spinner="dots"):
                result = services.pipeline.handle(
                    user_input, memory.get_context(), CLI_CLIENT_ID
                )

            if result.status is ChatStatus.OK:
                memory.add_message("user", user_input)
                memory.add_message("assistant", result.response)
                style = "green"
            else:
                style = "yellow"

            console.print(
                Panel(
                    Markdown(render_markdown(result.response)),
                    title=f"[bold {style}]{services.store.read_bot_config().personality.name}[/bold {style}]",
                    border_style=style,
                )
            )
            console.print()

        except KeyboardInterrupt:
            console.print("\n\n👋 Interrupted. Goodbye!\n", style="warning")
            sys.exit(0)


if __name__ == "__main__":
    main()
