"""Terminal chat client for the Kronos API."""

import argparse
import asyncio
import os

import httpx
from rich.live import Live

from orchestrator.client import KronosApiClient
from orchestrator.conversation_orchestrator import ConversationOrchestrator
from orchestrator.exceptions import ChatClientError
from orchestrator.print_message import console, print_conversations, print_models, print_view, render_message, render_tail
from relay.catalog import ModelInfo, filter_models
from settings import settings

HELP = """[bold]Commands[/bold]
  /new [title]     start a new conversation
  /list            list conversations
  /use <n>         switch to conversation number n
  /rename <title>  rename the active conversation
  /delete          delete the active conversation
  /model <id>      switch model
  /models [query]  list available models
  /key <api key>   store your OpenRouter API key
  /quit            exit"""


class LiveView:
    """Redraws the tail of the active conversation while a reply streams in."""

    def __init__(self):
        self.live = None

    def __call__(self, view):
        if self.live is not None:
            self.live.update(render_tail(view))


async def handle_command(orchestrator: ConversationOrchestrator, client: KronosApiClient, line: str) -> bool:
    """Run a slash command. Returns False when the session should end."""
    command, _, argument = line.partition(" ")
    argument = argument.strip()
    active_id = orchestrator.active_conversation_id

    if command in ("/quit", "/exit"):
        return False
    if command == "/help":
        console.print(HELP)
    elif command == "/new":
        conversation = await orchestrator.create_conversation(argument or None)
        console.print(f"[green]Started '{conversation['title']}'[/green]")
    elif command == "/list":
        await orchestrator.refresh_conversations()
        print_conversations(orchestrator.conversations, active_id)
    elif command == "/use":
        if not argument.isdigit() or not 1 <= int(argument) <= len(orchestrator.conversations):
            console.print("[red]Usage: /use <n>, see /list[/red]")
            return True
        conversation = orchestrator.conversations[int(argument) - 1]
        orchestrator.active_conversation_id = conversation["id"]
        print_view(await orchestrator.load(conversation["id"]))
    elif command == "/rename":
        if active_id is None or not argument:
            console.print("[red]Usage: /rename <title>[/red]")
            return True
        await orchestrator.rename_conversation(active_id, argument)
    elif command == "/delete":
        if active_id is None:
            return True
        await orchestrator.delete_conversation(active_id)
        console.print("[yellow]Conversation deleted[/yellow]")
        if orchestrator.active_conversation_id:
            print_view(await orchestrator.load(orchestrator.active_conversation_id))
    elif command == "/model":
        if argument:
            orchestrator.model = argument
        console.print(f"Model: [blue]{orchestrator.model}[/blue]")
    elif command == "/models":
        models = [ModelInfo.model_validate(model) for model in await client.list_models()]
        print_models(filter_models(models, argument))
    elif command == "/key":
        if not argument:
            console.print("[red]Usage: /key <api key>[/red]")
            return True
        await client.set_api_key(argument)
        console.print("[green]API key saved[/green]")
    else:
        console.print(f"[red]Unknown command {command}[/red], try /help")
    return True


async def main(base_url: str, user_id: str, model: str):
    live_view = LiveView()

    async with KronosApiClient(base_url=base_url, user_id=user_id) as client:
        orchestrator = ConversationOrchestrator(client, model=model, on_update=live_view)

        await orchestrator.refresh_conversations()
        if orchestrator.active_conversation_id is None:
            await orchestrator.create_conversation()
        print_view(await orchestrator.load(orchestrator.active_conversation_id))

        if not await client.has_api_key():
            console.print("[yellow]No OpenRouter API key stored yet, add one with /key <api key>[/yellow]")
        console.print("Type /help for commands.")

        while True:
            try:
                line = (await asyncio.to_thread(console.input, "[bold green]> [/bold green]")).strip()
            except (EOFError, KeyboardInterrupt):
                break
            if not line:
                continue

            if line.startswith("/"):
                try:
                    if not await handle_command(orchestrator, client, line):
                        break
                except ChatClientError as e:
                    console.print(f"[red]{e.detail}[/red]")
                except httpx.HTTPError as e:
                    console.print(f"[red]Could not reach the API: {str(e)}[/red]")
                continue

            if orchestrator.active_conversation_id is None:
                await orchestrator.create_conversation()
            conversation_id = orchestrator.active_conversation_id
            view = orchestrator.views.get(conversation_id)
            shown = len(view.messages) if view else 0

            with Live(console=console, refresh_per_second=12, transient=True) as live:
                live_view.live = live
                try:
                    await orchestrator.submit(conversation_id, line)
                finally:
                    live_view.live = None

            view = orchestrator.views[conversation_id]
            for message in view.messages[shown:]:
                console.print(render_message(message))
            if view.error:
                console.print(f"[red]{view.error}[/red]")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Chat with OpenRouter models through the Kronos API")
    parser.add_argument("--url", default=os.environ.get("KRONOS_API_URL", "http://localhost:8000"))
    parser.add_argument("--user", default=os.environ.get("KRONOS_USER_ID", "local-user"))
    parser.add_argument("--model", default=settings.default_model)
    return parser


if __name__ == "__main__":
    args = build_parser().parse_args()

    asyncio.run(main(args.url, args.user, args.model))
