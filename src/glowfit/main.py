"""
Glowfit - CLI Entry Point.

Usage:
    glowfit health                     Check configuration
    glowfit generate USER_ID           Generate a plan and wait for the result
    glowfit status USER_ID             Show generation status
    glowfit watch USER_ID              Poll status until the plan is ready
    glowfit serve                      Start the API server
    glowfit --help                     Show help
"""

import asyncio

import typer
from rich.console import Console
from rich.live import Live
from rich.spinner import Spinner
from rich.table import Table

from glowfit.models.plan import GenerationStatus, PlanRecord, PlanType

app = typer.Typer(
    name="glowfit",
    help="Glowfit - onboarding and weekly plan generation.",
    add_completion=False,
)
console = Console()

STATE_STYLES = {
    "idle": "dim",
    "generating": "yellow",
    "completed": "green",
    "failed": "red",
}


def _build_orchestrator():
    from glowfit.db.plans import SupabasePlanStore
    from glowfit.db.profiles import SupabaseProfileStore
    from glowfit.plans.orchestrator import GenerationOrchestrator
    from glowfit.plans.service import GenerationService

    plans = SupabasePlanStore()
    return GenerationOrchestrator(SupabaseProfileStore(), plans, GenerationService(plans))


def _print_status(status: GenerationStatus) -> None:
    style = STATE_STYLES.get(status.state.value, "white")
    line = f"[{style}]{status.state.value}[/{style}]"
    if status.version is not None:
        line += f"  v{status.version}"
    if status.plan_id:
        line += f"  [dim]{status.plan_id}[/dim]"
    console.print(line)
    if status.error_message:
        console.print(f"  [red]{status.error_message}[/red]")


def _print_plan(record: PlanRecord) -> None:
    table = Table(title=f"Plan v{record.version} ({record.plan_type.value})")
    table.add_column("Day")
    table.add_column("Workout")
    table.add_column("Meals", justify="right")
    table.add_column("kcal", justify="right")

    for workout, diet in zip(record.workout_plan, record.diet_plan):
        meals = diet.get("meals") or []
        kcal = sum(meal.get("kcal") or 0 for meal in meals if isinstance(meal.get("kcal"), (int, float)))
        exercises = len(workout.get("routine") or [])
        focus = workout.get("type") or "-"
        table.add_row(str(workout.get("day", "?")), f"{focus} ({exercises})", str(len(meals)), f"{kcal:.0f}")

    console.print(table)


@app.command()
def health() -> None:
    """Check system health and configuration."""
    from glowfit.config import get_settings

    console.print("\n[bold]Glowfit Health Check[/bold]\n")

    failures = 0

    try:
        settings = get_settings()
        console.print("[green]OK[/green] Configuration loaded")
        console.print(f"   Environment: {settings.glowfit_env}")
        console.print(f"   Log level: {settings.log_level}")
        console.print(f"   Model: {settings.plan_model} (max {settings.plan_max_output_tokens} tokens)")

        if settings.openai_api_key:
            console.print("[green]OK[/green] Model API key configured")
        else:
            console.print("[yellow]WARN[/yellow] Model API key missing")

        if settings.supabase_url.startswith("https://"):
            console.print("[green]OK[/green] Supabase URL configured")
        else:
            console.print("[red]FAIL[/red] Supabase URL missing or invalid")
            failures += 1

        if settings.supabase_service_role_key:
            console.print("[green]OK[/green] Supabase service key configured")
        else:
            console.print("[red]FAIL[/red] Supabase service key missing")
            failures += 1

    except Exception as e:
        console.print(f"\n[red]FAIL Configuration error: {e}[/red]")
        console.print("[dim]Make sure you have a .env file with required variables.[/dim]")
        raise typer.Exit(1)

    if failures:
        console.print(f"\n[red]{failures} check(s) failed[/red]")
        raise typer.Exit(1)

    console.print("\n[green]All checks passed![/green]")


@app.command()
def version() -> None:
    """Show version information."""
    from glowfit import __version__

    console.print(f"Glowfit version {__version__}")


@app.command()
def generate(
    user_id: str = typer.Argument(..., help="Profile owner"),
    regenerate: bool = typer.Option(False, "--regenerate", "-r", help="Replace a completed plan"),
    plan_type: PlanType = typer.Option(PlanType.BOTH, "--plan-type", "-t", help="both, workout or diet"),
    log_prompts: bool = typer.Option(False, "--log-prompts", "-l", help="Log prompts and raw output to prompt_logs/"),
) -> None:
    """Generate a plan and wait for the terminal status."""
    from glowfit.config import configure_logging
    from glowfit.errors import GlowfitError
    from glowfit.llm.prompt_logger import enable_prompt_logging, get_session_log_dir

    configure_logging("WARNING")
    if log_prompts:
        enable_prompt_logging(True)

    orchestrator = _build_orchestrator()

    try:
        with Live(Spinner("dots", text="Generating plan..."), console=console, transient=True):
            result = asyncio.run(orchestrator.request_generation(
                user_id,
                regenerate=regenerate,
                plan_type=plan_type,
                background=False,
            ))
    except GlowfitError as e:
        console.print(f"\n[red]{type(e).__name__}: {e}[/red]")
        raise typer.Exit(1)

    if result.outcome == "already_completed":
        console.print("[dim]A completed plan already exists; use --regenerate to replace it.[/dim]")

    _print_status(GenerationStatus.from_record(user_id, result.plan))
    if result.plan.has_full_body:
        _print_plan(result.plan)

    if log_prompts:
        log_dir = get_session_log_dir()
        if log_dir:
            console.print(f"\n[dim]Prompts logged to: {log_dir}[/dim]")

    if result.plan.error_message:
        raise typer.Exit(1)


@app.command()
def status(user_id: str = typer.Argument(..., help="Profile owner")) -> None:
    """Show the current generation status."""
    from glowfit.errors import GlowfitError

    try:
        current = asyncio.run(_build_orchestrator().status(user_id))
    except GlowfitError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)
    _print_status(current)


@app.command()
def watch(
    user_id: str = typer.Argument(..., help="Profile owner"),
    interval_ms: int = typer.Option(None, "--interval", "-i", help="Poll interval in milliseconds"),
    max_polls: int = typer.Option(None, "--max-polls", help="Give up after this many reads"),
) -> None:
    """Poll the generation status until it completes or fails."""
    from glowfit.config import configure_logging
    from glowfit.plans.poller import StatusPoller

    configure_logging("WARNING")
    poller = StatusPoller(_build_orchestrator().status)

    async def _watch() -> GenerationStatus | None:
        last = None
        async for current in poller.poll(user_id, interval_ms, max_polls=max_polls):
            if last is None or current.state != last.state:
                _print_status(current)
            last = current
        return last

    try:
        final = asyncio.run(_watch())
    except KeyboardInterrupt:
        console.print("\n[dim]Stopped watching (generation continues).[/dim]")
        return

    if final is None or not final.is_terminal:
        console.print("[yellow]Gave up before the plan finished.[/yellow]")
        raise typer.Exit(1)


@app.command()
def serve(
    port: int = typer.Option(8000, "--port", "-p", help="Port to run on"),
    reload: bool = typer.Option(False, "--reload", "-r", help="Enable auto-reload for development"),
) -> None:
    """Start the API server."""
    import os

    import uvicorn

    actual_port = int(os.environ.get("PORT", port))

    console.print("\n[bold green]Glowfit API[/bold green]")
    console.print(f"Starting server on http://localhost:{actual_port}")
    console.print("[dim]Press Ctrl+C to stop[/dim]\n")

    uvicorn.run(
        "glowfit.web.app:app",
        host="0.0.0.0",
        port=actual_port,
        reload=reload,
    )


if __name__ == "__main__":
    app()
