"""Command-line interface for JobSprint Autofill."""

import asyncio
import json
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from jobsprint_autofill.config import settings

app = typer.Typer(
    name="autofill",
    help="JobSprint Autofill - semi-supervised form filling from your previous answers",
    add_completion=False,
)
kb_app = typer.Typer(help="Inspect and edit the Q&A knowledge base")
app.add_typer(kb_app, name="kb")
console = Console()


def _knowledge_base(path: Optional[str]):
    from jobsprint_autofill.knowledge.store import JsonFileKnowledgeBase

    return JsonFileKnowledgeBase(path or settings.knowledge_base_path)


@app.command()
def config() -> None:
    """Show current configuration."""
    table = Table(title="JobSprint Autofill Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Debug Mode", str(settings.debug))
    table.add_row("Log Level", settings.log_level)
    table.add_row("Similarity Threshold", str(settings.similarity_threshold))
    table.add_row("Min Question Length", str(settings.min_question_length))
    table.add_row("Auto Playback", str(settings.auto_playback))
    table.add_row("Auto Proceed", str(settings.auto_proceed))
    table.add_row("Auto Proceed Delay", f"{settings.auto_proceed_delay}s")
    table.add_row("Knowledge Base", settings.knowledge_base_path)
    table.add_row("Browser Headless", str(settings.browser_headless))

    console.print(table)


@kb_app.command("list")
def kb_list(
    path: Optional[str] = typer.Option(None, "--kb", help="Knowledge base JSON file"),
) -> None:
    """List stored question/answer pairs."""
    entries = asyncio.run(_knowledge_base(path).get_all())
    table = Table(title=f"Knowledge Base ({len(entries)} entries)")
    table.add_column("Question", style="cyan")
    table.add_column("Answer", style="green")
    table.add_column("Type")
    for entry in entries:
        table.add_row(escape(entry.question), escape(entry.answer), entry.answer_type.value)
    console.print(table)


@kb_app.command("add")
def kb_add(
    question: str = typer.Argument(..., help="Question text"),
    answer: str = typer.Argument(..., help="Answer text"),
    answer_type: str = typer.Option("text", "--type", help="exact, choice or text"),
    path: Optional[str] = typer.Option(None, "--kb", help="Knowledge base JSON file"),
) -> None:
    """Add or replace the answer for a question."""
    from jobsprint_autofill.core.models import AnswerType

    try:
        parsed_type = AnswerType(answer_type)
    except ValueError:
        console.print(f"❌ Unknown answer type '{escape(answer_type)}'")
        raise typer.Exit(code=1)

    inserted = asyncio.run(_knowledge_base(path).upsert_by_question(question, answer, parsed_type))
    console.print("✅ Q&A pair added" if inserted else "✅ Q&A pair updated")


@app.command()
def match(
    question: str = typer.Argument(..., help="Question to look up"),
    threshold: Optional[float] = typer.Option(None, help="Similarity threshold"),
    path: Optional[str] = typer.Option(None, "--kb", help="Knowledge base JSON file"),
) -> None:
    """Show the stored answer that would be proposed for a question."""
    from jobsprint_autofill.autofill.question import clean_question_text
    from jobsprint_autofill.autofill.similarity import SimilarityMatcher

    entries = asyncio.run(_knowledge_base(path).get_all())
    prompt = clean_question_text(question)
    result = SimilarityMatcher(threshold).find_best(prompt, entries)
    if result is None:
        console.print(f"⚠️  No stored question is similar enough to: {escape(prompt)}")
        raise typer.Exit(code=1)

    console.print(f"🔍 Matched: [cyan]{escape(result.entry.question)}[/cyan] (score {result.score:.2f})")
    console.print(f"💡 Answer: [green]{escape(result.entry.answer)}[/green] ({result.entry.answer_type.value})")


@app.command()
def fill(
    form: Optional[Path] = typer.Argument(None, help="JSON form description with fields and controls"),
    url: Optional[str] = typer.Option(None, help="Fill a live page instead (needs the 'browser' extra)"),
    auto_playback: bool = typer.Option(settings.auto_playback, help="Apply matches without asking"),
    auto_proceed: bool = typer.Option(settings.auto_proceed, help="Click Next/Continue when done"),
    path: Optional[str] = typer.Option(None, "--kb", help="Knowledge base JSON file"),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Override the configured log level"),
) -> None:
    """Run one autofill session, asking for approval on the terminal."""
    from jobsprint_autofill.browser.surface import StaticFormSurface
    from jobsprint_autofill.core.exceptions import SurfaceError
    from jobsprint_autofill.core.models import SessionOptions
    from jobsprint_autofill.utils.logging import configure_logging

    if (form is None) == (url is None):
        console.print("❌ Pass either a form description file or --url")
        raise typer.Exit(code=2)

    configure_logging(level=log_level)
    options = SessionOptions(auto_playback=auto_playback, auto_proceed=auto_proceed)
    knowledge_base = _knowledge_base(path)

    if form is not None:
        try:
            surface = StaticFormSurface.from_dict(json.loads(form.read_text(encoding="utf-8")))
        except (OSError, ValueError, SurfaceError) as e:
            console.print(f"❌ Could not read form description: {escape(str(e))}")
            raise typer.Exit(code=1)
        session = asyncio.run(_run_session(str(form), surface, knowledge_base, options))
    else:
        try:
            session = asyncio.run(_run_url_session(url, knowledge_base, options))
        except SurfaceError as e:
            console.print(f"❌ {escape(str(e))}")
            raise typer.Exit(code=1)

    _print_session(session)
    if session.error is not None:
        raise typer.Exit(code=1)


async def _run_url_session(url, knowledge_base, options):
    from jobsprint_autofill.browser.playwright_surface import PlaywrightFormSurface

    async with PlaywrightFormSurface.open(url) as surface:
        return await _run_session(url, surface, knowledge_base, options)


async def _run_session(surface_id, surface, knowledge_base, options):
    from jobsprint_autofill.autofill.approval import ConsoleApprovalHandler
    from jobsprint_autofill.autofill.coordinator import MultiSessionCoordinator
    from jobsprint_autofill.core.models import SessionState

    handler = ConsoleApprovalHandler(console)
    coordinator = MultiSessionCoordinator(knowledge_base, lambda _surface_id: handler)
    session = await coordinator.start(surface_id, surface, options)

    while True:
        await coordinator.wait(surface_id)
        if session.state != SessionState.PAUSED:
            break
        resume = await asyncio.to_thread(typer.confirm, "Autofill paused. Resume?", default=True)
        if not resume:
            coordinator.cancel(surface_id)
            break
        coordinator.resume(surface_id)

    return session


def _print_session(session) -> None:
    table = Table(title=f"Session {session.id} - {session.state.value}")
    table.add_column("#", justify="right")
    table.add_column("Field", style="cyan")
    table.add_column("Result")
    table.add_column("Value", style="green")
    for index, field in enumerate(session.fields):
        if index in session.processed:
            result = "✅ filled"
        elif index in session.skipped:
            result = "⏭️  skipped"
        else:
            result = "-"
        value = session.applied_values.get(index, "")
        table.add_row(str(index + 1), escape(field.label or field.name or field.id), result, escape(value))
    console.print(table)

    if session.error is not None:
        console.print(
            f"❌ {escape(session.error.message)} "
            f"(surface {escape(session.error.surface_id)}, stopped at field {session.error.last_index + 1})"
        )


@app.command()
def version() -> None:
    """Show version information."""
    from jobsprint_autofill import __version__
    console.print(f"JobSprint Autofill v{__version__}")


def main() -> None:
    """Main entry point."""
    app()


if __name__ == "__main__":
    main()
