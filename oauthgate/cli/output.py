"""Rich output helpers for the CLI."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from rich.console import Console
from rich.table import Table
from rich.text import Text

console = Console()


def fmt_date(iso: str | None) -> str:
    if not iso:
        return "-"
    try:
        dt = datetime.fromisoformat(iso.replace("Z", "+00:00"))
        return dt.strftime("%Y-%m-%d %H:%M")
    except ValueError:
        return iso


def users_table(items: list[dict[str, Any]]) -> Table:
    table = Table(
        title=f"Users ({len(items)})",
        show_header=True,
        header_style="bold cyan",
        border_style="dim",
    )
    table.add_column("Google ID", style="dim", no_wrap=True)
    table.add_column("Email", style="bold")
    table.add_column("Name")
    table.add_column("Phone")
    table.add_column("Registered", justify="center")
    table.add_column("Created", style="dim")
    table.add_column("Last login", style="dim")

    for u in items:
        registered = (
            Text("✓", style="green")
            if u.get("isRegistrationComplete")
            else Text("pending", style="yellow")
        )
        table.add_row(
            u.get("googleId", ""),
            u.get("email", ""),
            u.get("name", ""),
            u.get("phone") or "-",
            registered,
            fmt_date(u.get("createdAt")),
            fmt_date(u.get("lastLoginAt")),
        )
    return table
