"""
HomeMate - CLI Entry Point.

Usage:
    homemate serve              Run the web API
    homemate generate           Generate next week's plans for every user
    homemate next-monday        Show the week-start the scheduler would use
    homemate health             Check configuration
    homemate --help             Show help
"""

import asyncio
from datetime import UTC, datetime

import typer
from rich.console import Console
from rich.live import Live
from rich.spinner import Spinner

app = typer.Typer(
    name="homemate",
    help="HomeMate - weekly meal and workout planning.",
    add_completion=False,
)
console = Console()


def _default_week_start(timezone: str) -> str:
    from homemate.health.week import compute_next_monday_week_start

    week_start = compute_next_monday_week_start(datetime.now(UTC), timezone)
    if not week_start:
        console.print(f"[red]❌ Invalid timezone: {timezone}[/red]")
        raise typer.Exit(1)
    return week_start


@app.command()
def serve(
    port: int = typer.Option(8000, "--port", "-p", help="Port to run on"),
    reload: bool = typer.Option(False, "--reload", "-r", help="Enable auto-reload for development"),
) -> None:
    """Start the web API server."""
    import os

    import uvicorn

    # Hosting platforms set PORT
    actual_port = int(os.environ.get("PORT", port))

    console.print("\n[bold green]HomeMate API[/bold green]")
    console.print(f"Starting server on http://localhost:{actual_port}")
    console.print("[dim]Press Ctrl+C to stop[/dim]\n")

    uvicorn.run(
        "homemate.web.app:app",
        host="0.0.0.0",
        port=actual_port,
        reload=reload,
    )


@app.command()
def generate(
    week_start: str | None = typer.Option(None, "--week-start", "-w", help="Monday to generate, YYYY-MM-DD"),
    timezone: str | None = typer.Option(None, "--timezone", "-t", help="IANA timezone (default HEALTH_CRON_TIMEZONE)"),
    log_prompts: bool = typer.Option(False, "--log-prompts", "-l", help="Log all LLM prompts to prompt_logs/"),
) -> None:
    """Generate a week of plans for every user with body metrics."""
    from homemate.config import configure_logging, get_settings
    from homemate.db import PlanStore, StorageError, get_service_client
    from homemate.health.generation import generate_week_for_all
    from homemate.health.week import get_week_start_monday, is_valid_timezone
    from homemate.llm.client import get_llm_config, invoke_generation_model
    from homemate.llm.prompt_logger import enable_prompt_logging, get_session_log_dir

    settings = get_settings()
    configure_logging()

    if log_prompts:
        enable_prompt_logging(True)

    timezone = timezone or settings.health_cron_timezone
    if not is_valid_timezone(timezone):
        console.print(f"[red]❌ Invalid timezone: {timezone}[/red]")
        raise typer.Exit(1)

    if week_start is None:
        week_start = _default_week_start(timezone)
    elif get_week_start_monday(week_start) != week_start:
        console.print(f"[red]❌ {week_start} is not a Monday (YYYY-MM-DD)[/red]")
        raise typer.Exit(1)

    if not settings.has_service_role:
        console.print("[red]❌ Missing Supabase service role configuration[/red]")
        raise typer.Exit(1)
    if get_llm_config() is None:
        console.print("[red]❌ Missing LLM configuration[/red]")
        raise typer.Exit(1)

    store = PlanStore(get_service_client())

    try:
        with Live(Spinner("dots", text=f"Generating week of {week_start}..."), console=console, transient=True):
            generated_count = asyncio.run(
                generate_week_for_all(store, invoke_generation_model, week_start=week_start, timezone=timezone)
            )
    except StorageError as e:
        console.print(f"\n[red]❌ Failed to load body metrics: {e}[/red]")
        raise typer.Exit(1)

    console.print(f"\n[green]Generated plans for {generated_count} user(s), week of {week_start} ({timezone})[/green]")

    if log_prompts:
        log_dir = get_session_log_dir()
        if log_dir:
            console.print(f"\n[dim]📝 Prompts logged to: {log_dir}[/dim]")


@app.command("next-monday")
def next_monday(
    timezone: str | None = typer.Option(None, "--timezone", "-t", help="IANA timezone (default HEALTH_CRON_TIMEZONE)"),
) -> None:
    """Show the week-start the weekly scheduler would generate now."""
    from homemate.config import get_settings

    timezone = timezone or get_settings().health_cron_timezone
    console.print(_default_week_start(timezone))


@app.command()
def health() -> None:
    """Check configuration."""
    from homemate.config import get_settings
    from homemate.health.week import is_valid_timezone
    from homemate.llm.client import get_llm_config

    console.print("\n[bold]HomeMate Health Check[/bold]\n")

    try:
        settings = get_settings()
    except Exception as e:
        console.print(f"\n[red]❌ Configuration error: {e}[/red]")
        console.print("[dim]Make sure you have a .env file with required variables.[/dim]")
        raise typer.Exit(1)

    console.print("✅ Configuration loaded")
    console.print(f"   Environment: {settings.homemate_env}")
    console.print(f"   Log level: {settings.log_level}")

    problems = 0

    if settings.supabase_url and settings.supabase_url.startswith("https://"):
        console.print("✅ Supabase URL configured")
    else:
        console.print("❌ Supabase URL missing or invalid")
        problems += 1

    if settings.supabase_anon_key:
        console.print("✅ Supabase anon key configured")
    else:
        console.print("❌ Supabase anon key missing (user endpoints)")
        problems += 1

    if settings.supabase_service_role_key:
        console.print("✅ Supabase service role key configured")
    else:
        console.print("❌ Supabase service role key missing (generation endpoints)")
        problems += 1

    llm_config = get_llm_config()
    if llm_config:
        console.print(f"✅ LLM configured: {llm_config.provider} / {llm_config.model}")
    else:
        console.print("❌ LLM missing: set ZHIPUAI_API_KEY or all HEALTH_LLM_* variables")
        problems += 1

    if settings.health_cron_secret:
        console.print("✅ Cron secret configured")
    else:
        console.print("⚠️  HEALTH_CRON_SECRET not set; scheduler falls back to user-agent check")

    if is_valid_timezone(settings.health_cron_timezone):
        console.print(f"✅ Cron timezone: {settings.health_cron_timezone}")
    else:
        console.print(f"❌ Invalid HEALTH_CRON_TIMEZONE: {settings.health_cron_timezone}")
        problems += 1

    if problems:
        console.print(f"\n[red]{problems} problem(s) found.[/red]")
        raise typer.Exit(1)

    console.print("\n[green]All checks passed![/green]")


@app.command()
def version() -> None:
    """Show version information."""
    from homemate import __version__

    console.print(f"HomeMate version {__version__}")


if __name__ == "__main__":
    app()
