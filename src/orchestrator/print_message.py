from typing import List

from rich.console import Console, Group
from rich.markdown import Markdown
from rich.panel import Panel
from rich.table import Table

from orchestrator.state import ChatView, PendingMessage, ViewMessage
from relay.catalog import ModelInfo, format_price, provider_of

console = Console()

ROLE_STYLES = {"user": "bright_green", "assistant": "bright_blue", "system": "yellow"}


def format_markdown_content(content: str) -> Markdown:
    return Markdown(content)


def render_message(message: ViewMessage, max_length: int = 20000) -> Panel:
    content = message.content
    if len(content) > max_length:
        content = f"{content[:max_length]} ... (truncated {len(content) - max_length} characters)"

    # Render as Markdown if it contains markdown syntax
    if any(marker in content for marker in ["#", "```", "*", "_", "-"]):
        body = format_markdown_content(content)
    else:
        body = content or "[dim]…[/dim]"

    title = f"[magenta]{message.role}[/magenta]"
    if message.model_used:
        title += f" via [blue]{message.model_used}[/blue]"
    if isinstance(message, PendingMessage):
        title += " [dim](pending)[/dim]"

    return Panel(body, title=title, border_style=ROLE_STYLES.get(message.role, "white"), padding=(0, 1))


def render_tail(view: ChatView, count: int = 2) -> Group:
    """The last messages of a view, for live updates while a reply streams in."""
    return Group(*[render_message(message) for message in view.messages[-count:]])


def print_view(view: ChatView) -> None:
    for message in view.messages:
        console.print(render_message(message))
    if view.error:
        console.print(f"[red]{view.error}[/red]")


def print_conversations(conversations: List[dict], active_id: str = None) -> None:
    table = Table(title="Conversations")
    table.add_column("#", justify="right")
    table.add_column("Title")
    table.add_column("Messages", justify="right")
    table.add_column("Updated")
    for index, conversation in enumerate(conversations, start=1):
        marker = "*" if conversation["id"] == active_id else ""
        table.add_row(
            f"{marker}{index}",
            conversation["title"],
            str(conversation.get("message_count") or 0),
            str(conversation["updated_at"])[:16].replace("T", " "),
        )
    console.print(table)


def print_models(models: List[ModelInfo]) -> None:
    table = Table(title="Models")
    table.add_column("Id")
    table.add_column("Name")
    table.add_column("Provider")
    table.add_column("Prompt price")
    table.add_column("Context", justify="right")
    for model in models:
        table.add_row(
            model.id,
            model.name,
            provider_of(model.id),
            format_price(model.pricing.prompt) if model.pricing else "",
            f"{model.context_length / 1000:.0f}K ctx" if model.context_length else "",
        )
    console.print(table)
