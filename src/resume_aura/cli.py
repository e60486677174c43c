"""CLI interface using typer + rich."""

from __future__ import annotations

import asyncio
import json
import logging
import time
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from resume_aura.config import load_config
from resume_aura.logging.usage_store import UsageStore
from resume_aura.parsers.upload import Upload, load_upload
from resume_aura.pipeline.session import AppStep
from resume_aura.pipeline.workspace import Workspace, build_workspace

app = typer.Typer(
    name="resume-aura",
    help="Turn a résumé image or PDF into a styled one-page site profile.",
    no_args_is_help=True,
)
console = Console()


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _load_workspace(fetch_images: bool = True, run_diagnostic: bool = True) -> Workspace:
    try:
        config = load_config()
    except (ValueError, TypeError) as exc:
        console.print(f"[red]Invalid config.yaml: {exc}[/red]")
        raise typer.Exit(1)
    return build_workspace(config, fetch_images=fetch_images, run_diagnostic=run_diagnostic)


def _save_usage(ws: Workspace, mode: str, elapsed: float) -> None:
    error = ws.session.error if ws.session.step in (AppStep.LANDING, AppStep.API_CONFIG) else None
    try:
        UsageStore(ws.config.usage.resolved_db_path).save_log(
            ws.usage_log(mode, elapsed_seconds=elapsed, error=error)
        )
    except Exception:
        logging.getLogger(__name__).warning("Could not record usage", exc_info=True)


def _load_file(file: Path) -> Upload:
    if not file.exists():
        console.print(f"[red]File not found: {file}[/red]")
        raise typer.Exit(1)
    try:
        return load_upload(file)
    except ValueError as exc:
        console.print(f"[red]{escape(str(exc))}[/red]")
        raise typer.Exit(1)


async def _analyze(ws: Workspace, upload: Upload) -> None:
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
    ) as progress:
        task = progress.add_task("Analyzing aura...", total=None)

        def on_phase(phase: str, detail: str) -> None:
            progress.update(task, description=f"{phase}: {detail}" if detail else phase)

        ws.orchestrator.on_phase = on_phase
        await ws.orchestrator.process_upload(ws.session, upload)
        progress.update(task, description="Waiting for background textures...")
        await ws.orchestrator.drain()


def _report(ws: Workspace) -> None:
    session = ws.session
    if session.step is AppStep.API_CONFIG:
        console.print(Panel(
            f"{session.error}\n\nSelect an API key for a project with billing enabled "
            "(GEMINI_API_KEY) and try again.",
            title="Quota & Power",
            border_style="red",
        ))
    elif session.step is AppStep.LANDING:
        console.print(f"[red]{session.error or 'Analysis failed.'}[/red]")
        return

    if session.resume is None:
        return
    console.print(Panel(
        f"[bold]{session.resume.name}[/bold] - {session.resume.title}\n"
        f"Persona: {session.persona}\n\n[italic]\"{session.roast}\"[/italic]",
        title="Spicy Take",
    ))

    table = Table(title="Auras")
    table.add_column("id")
    table.add_column("name")
    table.add_column("variant")
    table.add_column("accent")
    table.add_column("background")
    for theme in session.themes:
        table.add_row(
            theme.id,
            theme.name,
            theme.variant,
            theme.accent_color,
            "yes" if theme.background_image else "-",
        )
    console.print(table)


def _print_turn(text: str) -> None:
    console.print(Panel(text, title="Career Concierge", border_style="green"))


@app.command()
def analyze(
    file: Path = typer.Argument(help="Résumé image or PDF"),
    output: Path = typer.Option(None, "--output", "-o", help="Write the session as JSON"),
    no_images: bool = typer.Option(False, "--no-images", help="Skip background textures"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """Analyze a résumé: persona, structured record and suggested auras."""
    _setup_logging(verbose)
    upload = _load_file(file)

    ws = _load_workspace(fetch_images=not no_images, run_diagnostic=False)
    start = time.monotonic()
    asyncio.run(_analyze(ws, upload))
    _save_usage(ws, "analyze", time.monotonic() - start)
    _report(ws)

    if output is not None:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(
            json.dumps(ws.session.to_dict(), ensure_ascii=False, indent=2),
            encoding="utf-8",
        )
        console.print(f"[green]Saved: {output}[/green]")

    if ws.session.step in (AppStep.LANDING, AppStep.API_CONFIG):
        raise typer.Exit(1)


@app.command()
def chat(
    file: Path = typer.Argument(help="Résumé image or PDF"),
    output: Path = typer.Option(None, "--output", "-o", help="Write the final record as JSON"),
    custom: str = typer.Option(None, "--aura", help="Generate and apply a custom aura first"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """Analyze a résumé, then refine it with the career concierge."""
    _setup_logging(verbose)
    upload = _load_file(file)

    ws = _load_workspace(fetch_images=False)
    start = time.monotonic()

    async def _session() -> None:
        await _analyze(ws, upload)
        if ws.session.resume is None:
            return
        if custom:
            with console.status("Casting custom aura..."):
                theme = await ws.studio.create_custom_theme(ws.session, custom)
            if theme is not None:
                console.print(f"[green]Applied aura: {theme.name}[/green]")
        for turn in ws.refinement.turns:
            _print_turn(turn.text)

        while True:
            try:
                message = console.input("[bold]you>[/bold] ")
            except (EOFError, KeyboardInterrupt):
                break
            if message.strip().lower() in ("exit", "quit", ":q"):
                break
            with console.status("Thinking..."):
                turn = await ws.refinement.send(message)
            if turn is None:
                continue
            _print_turn(turn.text)
            if turn.proposal:
                console.print_json(json.dumps(turn.proposal, ensure_ascii=False))
                if typer.confirm("Apply this change?", default=False):
                    try:
                        ws.refinement.apply_proposal(turn)
                    except ValueError as exc:
                        console.print(f"[yellow]Patch rejected: {escape(str(exc))}[/yellow]")
                    else:
                        _print_turn(ws.refinement.turns[-1].text)
            if ws.session.step is AppStep.API_CONFIG:
                console.print(f"[red]{ws.session.error}[/red]")
                break

    asyncio.run(_session())
    _save_usage(ws, "chat", time.monotonic() - start)
    _report(ws)

    if output is not None and ws.session.resume is not None:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(
            json.dumps(ws.session.resume.to_wire(), ensure_ascii=False, indent=2),
            encoding="utf-8",
        )
        console.print(f"[green]Saved: {output}[/green]")


@app.command()
def usage() -> None:
    """Show this month's usage and estimated cost."""
    config = load_config()
    stats = UsageStore(config.usage.resolved_db_path).get_monthly_stats()
    console.print(Panel(
        f"Runs: {stats['total_runs']} (success {stats['success_rate']:.0f}%)\n"
        f"Tokens: {stats['total_input_tokens']} in / {stats['total_output_tokens']} out\n"
        f"Images: {stats['total_images']}\n"
        f"Estimated cost: ${stats['total_cost_usd']:.4f}",
        title=f"Usage {stats['month']}",
    ))


@app.command("check-config")
def check_config(
    path: Path = typer.Argument(None, help="config.yaml to check (default: auto-detect)"),
) -> None:
    """Validate config.yaml."""
    try:
        config = load_config(path)
    except (ValueError, TypeError) as exc:
        console.print(f"[red]Invalid: {exc}[/red]")
        raise typer.Exit(1)
    console.print(f"[green]OK[/green] provider={config.llm.provider} "
                  f"text={config.llm.text_model} image={config.llm.image_model}"
                  f"→{config.llm.fallback_image_model}")


if __name__ == "__main__":
    app()
