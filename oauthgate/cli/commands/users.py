"""CLI commands for the user directory."""

from __future__ import annotations

import click

from oauthgate.cli.output import console, users_table


@click.group("users")
def users_cmd() -> None:
    """Inspect the gateway's user directory."""


@users_cmd.command("list")
@click.option("--pending", is_flag=True, default=False, help="Only users with incomplete registration")
@click.pass_context
def users_list(ctx: click.Context, pending: bool) -> None:
    """List all known users."""
    import httpx

    api_url: str = ctx.obj["api_url"]
    try:
        r = httpx.get(f"{api_url}/api/users", timeout=10)
        r.raise_for_status()
        items = r.json()["items"]
        if pending:
            items = [u for u in items if not u.get("isRegistrationComplete")]
        console.print(users_table(items))
    except httpx.ConnectError:
        console.print(
            f"[red]Cannot connect to API at {api_url}.[/red] "
            "Is the server running? (oauthgate serve)"
        )
        raise SystemExit(1)
    except httpx.HTTPStatusError as e:
        if e.response.status_code == 404:
            console.print("[yellow]User directory is not exposed on this server.[/yellow]")
        else:
            console.print(f"[red]Error {e.response.status_code}:[/red] {e.response.text}")
        raise SystemExit(1)
