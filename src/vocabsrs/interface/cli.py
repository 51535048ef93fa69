"""vocabsrs CLI — card management, grading, sessions and dashboards."""

import asyncio
import json
import logging
import sys
from dataclasses import asdict
from pathlib import Path
from typing import Annotated, NoReturn

import typer

from vocabsrs.application.config import AppConfig, resolve_config
from vocabsrs.application.factory import get_card_repository, get_engine
from vocabsrs.application.familiarity import classify
from vocabsrs.application.review_service import ReviewService
from vocabsrs.application.session import ReviewSession
from vocabsrs.domain.constants import MODE_KEYS
from vocabsrs.domain.errors import VocabSrsError
from vocabsrs.domain.review.models import Card

# ---------------------------------------------------------------------------
# Root app
# ---------------------------------------------------------------------------

app = typer.Typer(
    help="vocabsrs: Spaced-repetition scheduling for vocabulary cards.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

config_app = typer.Typer(help="Manage vocabsrs configuration.")
app.add_typer(config_app, name="config")

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(levelname)s:%(name)s:%(message)s",
    stream=sys.stderr,
)
logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _resolve(ctx: typer.Context, **overrides) -> AppConfig:
    if ctx.obj and ctx.obj.get("data_file"):
        overrides.setdefault("data_file", ctx.obj["data_file"])
    config = resolve_config(overrides)
    if config.verbose >= 2:
        logging.getLogger("vocabsrs").setLevel(logging.DEBUG)
    return config


def _service(config: AppConfig) -> ReviewService:
    return ReviewService(get_card_repository(config), get_engine(config))


def _mode_key(mode: str) -> str:
    if mode.isdigit() and int(mode) in MODE_KEYS:
        return MODE_KEYS[int(mode)]
    return mode


def _fail(e: Exception) -> NoReturn:
    typer.secho(f"Error: {e}", fg="red", err=True)
    raise typer.Exit(1)


# ---------------------------------------------------------------------------
# Global callback
# ---------------------------------------------------------------------------


@app.callback()
def main_callback(
    ctx: typer.Context,
    data_file: Annotated[
        Path | None, typer.Option("--data-file", help="Card store (JSON). Overrides config.")
    ] = None,
    verbose: Annotated[
        int,
        typer.Option(
            "--verbose", "-v", count=True, help="Increase verbosity. Repeat for more detail."
        ),
    ] = 1,
):
    """Global settings for vocabsrs."""
    ctx.ensure_object(dict)
    ctx.obj["data_file"] = data_file
    if verbose >= 2:
        logging.getLogger("vocabsrs").setLevel(logging.DEBUG)


# ---------------------------------------------------------------------------
# Root commands
# ---------------------------------------------------------------------------


@app.command()
def add(
    ctx: typer.Context,
    word: Annotated[str, typer.Argument(help="The word or phrase to learn.")],
    meaning: Annotated[str, typer.Argument(help="Its meaning.")],
    example: Annotated[str, typer.Option(help="Example sentence(s), ';' separated.")] = "",
    star: Annotated[bool, typer.Option("--star", help="Star the card.")] = False,
):
    """[bold green]Add[/bold green] a new card."""
    config = _resolve(ctx)
    repo = get_card_repository(config)
    card = Card(id="", word=word, meaning=meaning, example=example, is_starred=star)

    try:
        card_id = asyncio.run(repo.add_card(card))
    except (VocabSrsError, ValueError) as e:
        _fail(e)
    typer.echo(card_id)


@app.command()
def grade(
    ctx: typer.Context,
    card_id: Annotated[str, typer.Argument(help="Card to grade.")],
    passed: Annotated[
        bool, typer.Option("--pass/--fail", help="Whether recall succeeded.")
    ] = True,
    mode: Annotated[
        str | None, typer.Option(help="Mode key or number (1-4). Defaults to config.")
    ] = None,
    force_due: Annotated[
        bool, typer.Option("--force-due", help="Treat the review as due even if early.")
    ] = False,
):
    """Grade one review of a card and update its schedule."""
    config = _resolve(ctx)
    mode_key = _mode_key(mode or config.default_mode)

    try:
        result = asyncio.run(
            _service(config).grade(
                card_id, passed, mode_key=mode_key, is_due=True if force_due else None
            )
        )
    except VocabSrsError as e:
        _fail(e)

    stats = result.stats
    if not result.was_due:
        typer.secho("Not due yet: only attempt counters were updated.", fg="yellow")
    next_date = stats.next_review_date.date().isoformat() if stats.next_review_date else "-"
    typer.echo(
        f"{card_id}: {result.level.label} "
        f"(streak {stats.success_streak}, interval {stats.interval_days}d, next {next_date})"
    )


@app.command()
def show(
    ctx: typer.Context,
    card_id: Annotated[str, typer.Argument(help="Card to show.")],
):
    """Print a card and its review statistics as JSON."""
    config = _resolve(ctx)
    repo = get_card_repository(config)

    try:
        card = asyncio.run(repo.get_card(card_id))
    except VocabSrsError as e:
        _fail(e)

    level = classify(card.review_stats)
    payload = card.to_dict()
    payload["level"] = {"label": level.label, "tier": level.tier}
    typer.echo(json.dumps(payload, indent=2, ensure_ascii=False))


@app.command()
def due(
    ctx: typer.Context,
    starred: Annotated[bool, typer.Option("--starred", help="Only starred cards.")] = False,
):
    """List cards that are due for review."""
    config = _resolve(ctx)

    try:
        cards = asyncio.run(_service(config).due_cards(starred_only=starred))
    except VocabSrsError as e:
        _fail(e)

    if not cards:
        typer.secho("No cards due.", fg="green")
        return
    for card in cards:
        typer.echo(f"{card.id}\t{card.word}\t{classify(card.review_stats).label}")


@app.command()
def dashboard(
    ctx: typer.Context,
    starred: Annotated[bool, typer.Option("--starred", help="Only starred cards.")] = False,
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON.")] = False,
):
    """Show due counts, learning load, mastery and recent demotions."""
    config = _resolve(ctx)

    try:
        summary = asyncio.run(_service(config).dashboard(starred_only=starred))
    except VocabSrsError as e:
        _fail(e)

    if json_output:
        typer.echo(json.dumps(asdict(summary), indent=2))
        return

    typer.echo(f"Cards: {summary.total}")
    typer.echo(
        f"Due: {summary.due_total} "
        f"(new {summary.due_new}, learning {summary.due_learning}, "
        f"mastered {summary.due_mastered})"
    )
    typer.echo(f"Learning load: {summary.learning_load}")
    typer.echo(f"Mastered: {summary.mastered_total}")
    color = "yellow" if summary.demotions_30d else "green"
    typer.secho(f"Demotions (30d): {summary.demotions_30d}", fg=color)


@app.command()
def review(
    ctx: typer.Context,
    mode: Annotated[
        str | None, typer.Option(help="Mode key or number (1-4). Defaults to config.")
    ] = None,
    limit: Annotated[int | None, typer.Option(help="Maximum cards in the session.")] = None,
    starred: Annotated[bool, typer.Option("--starred", help="Only starred cards.")] = False,
    due_only: Annotated[
        bool, typer.Option("--due-only/--all-cards", help="Only include due cards.")
    ] = True,
):
    """Run a self-graded review session in the terminal."""
    config = _resolve(ctx, session_limit=limit)
    mode_key = _mode_key(mode or config.default_mode)
    session = ReviewSession(
        get_card_repository(config), get_engine(config), mode_key, persist=config.persist_mode
    )

    # Prompts run outside the loop so Ctrl-C raises KeyboardInterrupt here.
    with asyncio.Runner() as loop:
        try:
            cards = loop.run(
                session.start(
                    scope="starred" if starred else "all",
                    due_only=due_only,
                    limit=config.session_limit,
                )
            )
            if not cards:
                typer.secho("No cards found for this selection!", fg="yellow")
                return

            try:
                while (card := session.current_card()) is not None:
                    front, back = card.word, card.meaning
                    if mode_key == "flip_zh":
                        front, back = back, front
                    typer.secho(f"\n{front}", bold=True)
                    typer.prompt("Press Enter to reveal", default="", show_default=False)
                    typer.echo(back)
                    knew_it = typer.confirm("Did you know it?", default=True)
                    loop.run(session.grade(knew_it))
            except (KeyboardInterrupt, typer.Abort):
                result = loop.run(session.abandon())
            else:
                result = loop.run(session.finish())
        except VocabSrsError as e:
            _fail(e)

    status = "Session complete" if result.completed else "Session abandoned"
    typer.secho(
        f"\n{status}: {result.correct} correct, {result.wrong} wrong, {result.total} card(s).",
        fg="green" if result.completed else "yellow",
    )


@app.command()
def serve(
    port: Annotated[int | None, typer.Option(help="Port to bind the server to.")] = None,
    host: Annotated[str | None, typer.Option(help="Host to bind the server to.")] = None,
    reload: Annotated[bool, typer.Option(help="Enable auto-reload.")] = False,
):
    """Start the HTTP server."""
    import uvicorn

    config = resolve_config({"host": host, "port": port})
    uvicorn.run("vocabsrs.server:app", host=config.host, port=config.port, reload=reload)


# ---------------------------------------------------------------------------
# Config subgroup
# ---------------------------------------------------------------------------


@config_app.command("show")
def config_show():
    """Display final resolved configuration."""
    config = resolve_config()
    d = {k: str(v) if isinstance(v, Path) else v for k, v in config.model_dump().items()}
    typer.echo(json.dumps(d, indent=2))
