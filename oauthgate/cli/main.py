"""OAuthGate CLI entry point: `oauthgate` command group."""

from __future__ import annotations

import click

from oauthgate.cli.commands.users import users_cmd
from oauthgate.cli.output import console


@click.group()
@click.version_option(package_name="oauthgate")
@click.option(
    "--api-url",
    default="http://localhost:3000",
    envvar="OAUTHGATE_API_URL",
    show_default=True,
    help="Base URL of the OAuthGate server",
)
@click.pass_context
def cli(ctx: click.Context, api_url: str) -> None:
    """OAuthGate: Google OAuth gateway.

    \b
    Quick start:
      oauthgate serve --port 3000
      oauthgate status
      oauthgate users list --pending
    """
    ctx.ensure_object(dict)
    ctx.obj["api_url"] = api_url.rstrip("/")


cli.add_command(users_cmd)


@cli.command("serve")
@click.option("--host", default=None, help="Bind host (default: APP_HOST)")
@click.option("--port", default=None, type=int, help="Bind port (default: APP_PORT)")
@click.option("--reload", is_flag=True, default=False, help="Enable auto-reload (dev mode)")
def serve(host: str | None, port: int | None, reload: bool) -> None:
    """Start the OAuthGate server."""
    import uvicorn

    from oauthgate.core.config import get_settings

    settings = get_settings()
    uvicorn.run(
        "oauthgate.api.app:app",
        host=host or settings.app_host,
        port=port or settings.app_port,
        reload=reload,
        log_level=settings.log_level.lower(),
    )


@cli.command("status")
@click.pass_context
def status(ctx: click.Context) -> None:
    """Check that the server is up."""
    import httpx

    api_url: str = ctx.obj["api_url"]
    try:
        r = httpx.get(f"{api_url}/", timeout=10)
        r.raise_for_status()
        data = r.json()
    except httpx.HTTPError as e:
        console.print(f"[red]Server at {api_url} is not reachable:[/red] {e}")
        raise SystemExit(1)
    console.print(f"[green]{data.get('message')}[/green] (status: {data.get('status')})")


if __name__ == "__main__":
    cli()
