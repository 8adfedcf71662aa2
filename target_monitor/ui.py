"""Console rendering for the CLI using rich"""

from typing import Any

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .dispatch import LABELS, LIMIT_MARKS, format_price, group_events
from .models import HitEvent, Quote, TrackedStock

console = Console()


def print_header(title: str, subtitle: str = "") -> None:
    text = Text(title, style="bold cyan", justify="center")
    if subtitle:
        text.append("\n" + subtitle, style="dim")
    console.print(Panel(text, border_style="bright_blue", padding=(1, 2)))


def print_success(message: str) -> None:
    console.print(f"[bold green]✓[/bold green] {message}")


def print_error(message: str) -> None:
    console.print(f"[bold red]✗[/bold red] {message}")


def print_warning(message: str) -> None:
    console.print(f"[bold yellow]⚠[/bold yellow]  {message}")


def create_hits_table(events: list[HitEvent]) -> Table:
    """Hits grouped in display order (shortTerm, wave, support, swap)"""
    table = Table(
        title="🎯 Target Hits",
        title_style="bold green",
        show_header=True,
        header_style="bold magenta",
        border_style="green",
        show_lines=True
    )

    table.add_column("Type", style="bold", width=22)
    table.add_column("Code", style="bold cyan", width=8)
    table.add_column("Name", width=12)
    table.add_column("Price", style="yellow", justify="right")
    table.add_column("Target", style="blue", justify="right")
    table.add_column("Change", justify="right")

    for kind, members in group_events(events):
        for event in members:
            change = "-"
            if event.change_percent is not None:
                style = "red" if event.change_percent > 0 else "green" if event.change_percent < 0 else "white"
                change = f"[{style}]{event.change_percent:+.2f}%[/{style}]"
                if event.limit:
                    change += LIMIT_MARKS.get(event.limit, "")
            table.add_row(
                LABELS[kind],
                event.code,
                event.name,
                format_price(event.price),
                format_price(event.target),
                change,
            )

    return table


def create_tracked_table(stocks: list[TrackedStock], quotes: dict[str, Quote] | None = None) -> Table:
    """Tracked stocks with their targets; live prices when ``quotes`` are given"""
    quotes = quotes or {}
    table = Table(
        title="📋 Tracked Stocks",
        title_style="bold cyan",
        show_header=True,
        header_style="bold magenta",
        border_style="blue",
    )

    table.add_column("ID", style="dim", no_wrap=True)
    table.add_column("Code", style="bold cyan", width=8)
    table.add_column("Price", justify="right")
    table.add_column("Support")
    table.add_column("Short-term")
    table.add_column("Wave")
    table.add_column("Swap")
    table.add_column("Since")
    table.add_column("Status", justify="center")

    for stock in stocks:
        if stock.is_success is True:
            status = "[bold red]hit[/bold red]"
        elif stock.is_success is False:
            status = "[green]swapped[/green]"
        else:
            status = "[dim]open[/dim]"
        quote = quotes.get(stock.code)
        table.add_row(
            stock.id,
            stock.code,
            format_price(quote.current_price) if quote else "-",
            stock.support or "-",
            stock.short_term_profit or "-",
            stock.wave_profit or "-",
            stock.swap_ref or "-",
            f"{stock.created_at:%Y-%m-%d}",
            status,
        )

    return table


def print_status_panel(status: dict[str, Any]) -> None:
    """System status: trading session and cache contents"""
    trading = status["trading"]
    cache = status["cache"]
    since = trading["time_since_last_request"]

    content = [
        f"[bold cyan]Session:[/bold cyan] {trading['session_state']}",
        f"[bold cyan]Cache TTL:[/bold cyan] {trading['recommended_cache_ttl']}s",
        f"[bold cyan]Last Request:[/bold cyan] {'never' if since is None else f'{since}s ago'}",
        f"[bold cyan]Cache Entries:[/bold cyan] {cache['cache_size']}/{cache['max_entries']}",
        f"[bold cyan]Hits / Misses:[/bold cyan] {cache['hits']} / {cache['misses']}",
    ]
    for detail in cache["cache_details"][:10]:
        content.append(f"   • {detail['key']} [dim]({detail['item_count']} quotes, {detail['age']}s old)[/dim]")
    notifications = status.get("notifications")
    if notifications:
        health = "[green]ok[/green]" if notifications["healthy"] else "[bold red]failing[/bold red]"
        content.append(
            f"[bold cyan]Notifications:[/bold cyan] {notifications['sink']} ({health}), "
            f"{notifications['pending']} pending"
        )

    console.print(Panel(
        "\n".join(content),
        title="📊 System Status",
        title_align="left",
        border_style="yellow",
        padding=(1, 2)
    ))
