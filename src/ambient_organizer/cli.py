"""CLI entry point for the ambient organizer."""

from pathlib import Path

import click
from rich.console import Console

from .config import DEFAULT_DB, load_config
from .db import Database
from .engine import OrganizerEngine
from .errors import OrganizerError, TargetNotFound
from .models import SUGGESTION_TYPES
from .parser import parse_transcript
from .reports import (
    print_ambient,
    print_insight,
    print_item_detail,
    print_items,
    print_patterns,
    print_projects,
    print_recommendations,
    print_related,
    print_scores,
    print_search_results,
    print_suggestion,
)
from .scheduler import ManualScheduler
from .suggestions import suggestions_for

console = Console()


def open_engine(db: Database, db_path: Path) -> OrganizerEngine:
    """Engine for a single CLI invocation. Timers never fire on their own."""
    config = load_config()
    config.db_path = db_path
    return OrganizerEngine(config, db=db, scheduler=ManualScheduler())


def load_conversation(engine: OrganizerEngine, transcript: str):
    messages = parse_transcript(Path(transcript))
    if not messages:
        console.print(f"[yellow]No messages found in {transcript}[/yellow]")
    for message in messages:
        engine.on_message(message)
    engine.debouncer.cancel()
    return engine.analyze_now()


def require_item(ctx, engine: OrganizerEngine, name: str):
    item = engine.knowledge.find(name)
    if item is None:
        console.print(f"[red]File not found: {name}[/red]")
        ctx.exit(1)
    return item


@click.group()
@click.option(
    "--db",
    type=click.Path(),
    default=lambda: str(load_config().db_path),
    show_default=str(DEFAULT_DB),
    help="Path to SQLite database",
)
@click.pass_context
def cli(ctx, db):
    """Organize chats and knowledge files without being asked."""
    ctx.ensure_object(dict)
    ctx.obj["db_path"] = Path(db)


@cli.command()
@click.argument("paths", nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False))
@click.option("--project", "project_id", required=True, help="Project the files belong to")
@click.option("--chat", "chat_id", help="Chat that owns the files (chat-scoped)")
@click.option("--project-level", is_flag=True, help="Store the files at project level")
@click.pass_context
def ingest(ctx, paths, project_id, chat_id, project_level):
    """Add files to the knowledge base."""
    with Database(ctx.obj["db_path"]) as db:
        engine = open_engine(db, ctx.obj["db_path"])
        for path in paths:
            item = engine.ingest_file(path, project_id, project_level, chat_id)
            console.print(
                f"[green]Added[/green] {item.name} "
                f"[dim]({item.metadata.content_type}, {item.metadata.word_count:,} words, "
                f"{len(item.relationships)} relationships)[/dim]"
            )
        print_ambient(engine.board.queued())
        engine.stop()


@cli.command()
@click.option("--project", "project_id", help="Only show files in this project")
@click.pass_context
def files(ctx, project_id):
    """List knowledge files."""
    with Database(ctx.obj["db_path"]) as db:
        engine = open_engine(db, ctx.obj["db_path"])
        items = engine.knowledge.in_scope(project_id) if project_id else engine.knowledge.items()
        print_items(items)


@cli.command()
@click.argument("name")
@click.pass_context
def show(ctx, name):
    """Show details for one file."""
    with Database(ctx.obj["db_path"]) as db:
        engine = open_engine(db, ctx.obj["db_path"])
        print_item_detail(require_item(ctx, engine, name))


@cli.command()
@click.argument("name")
@click.pass_context
def related(ctx, name):
    """Show files related to NAME."""
    with Database(ctx.obj["db_path"]) as db:
        engine = open_engine(db, ctx.obj["db_path"])
        item = require_item(ctx, engine, name)
        print_related(item, engine.knowledge.items())


@cli.command()
@click.argument("name")
@click.option("--chat", "chat_id", help="Chat that referenced the file")
@click.pass_context
def use(ctx, name, chat_id):
    """Record that a chat referenced a file."""
    with Database(ctx.obj["db_path"]) as db:
        engine = open_engine(db, ctx.obj["db_path"])
        item = require_item(ctx, engine, name)
        item = engine.record_usage(item.id, chat_id)
        console.print(f"[green]{item.name}[/green] used {item.usage_count} times")


@cli.command()
@click.argument("query")
@click.option("--project", "project_id", required=True, help="Project to search")
@click.option("--limit", default=5, help="Maximum files to show")
@click.pass_context
def search(ctx, query, project_id, limit):
    """Find files relevant to QUERY."""
    with Database(ctx.obj["db_path"]) as db:
        engine = open_engine(db, ctx.obj["db_path"])
        print_search_results(query, engine.contextual_files(query, project_id, limit))


@cli.command()
@click.pass_context
def sweep(ctx):
    """Rediscover relationships and rescore relevance."""
    with Database(ctx.obj["db_path"]) as db:
        engine = open_engine(db, ctx.obj["db_path"])
        console.print("[cyan]Discovering relationships...[/cyan]")
        linked = engine.relationship_sweep()
        console.print(f"Linked [green]{linked}[/green] new pairs")

        console.print("[cyan]Rescoring relevance...[/cyan]")
        scores = engine.relevance_sweep()
        items = engine.knowledge.items()
        if scores:
            print_scores(scores, items)
        print_ambient(engine.board.queued())
        engine.stop()


@cli.command()
@click.pass_context
def candidates(ctx):
    """List files ready to be promoted to project level."""
    with Database(ctx.obj["db_path"]) as db:
        engine = open_engine(db, ctx.obj["db_path"])
        items = engine.knowledge.graduation_candidates()
        if not items:
            console.print("[dim]No files ready for promotion.[/dim]")
            return
        print_items(items)


@cli.command()
@click.argument("name")
@click.option(
    "--reason",
    type=click.Choice(["highUsage", "crossChatReference", "aiSuggestion", "userPromotion", "projectRelevance"]),
    default="userPromotion",
)
@click.pass_context
def graduate(ctx, name, reason):
    """Promote a chat-scoped file to project level."""
    with Database(ctx.obj["db_path"]) as db:
        engine = open_engine(db, ctx.obj["db_path"])
        item = require_item(ctx, engine, name)
        if item.project_level:
            console.print(f"[yellow]{item.name} is already project level[/yellow]")
            return
        item = engine.knowledge.graduate_item(item.id, reason=reason, user_confirmed=True)
        console.print(f"[green]Promoted {item.name} to project level[/green]")


@cli.command()
@click.argument("name")
@click.argument("text")
@click.pass_context
def summary(ctx, name, text):
    """Attach a summary to a file."""
    with Database(ctx.obj["db_path"]) as db:
        engine = open_engine(db, ctx.obj["db_path"])
        item = require_item(ctx, engine, name)
        engine.set_summary(item.id, text)
        console.print(f"[green]Saved summary for {item.name}[/green]")


@cli.command()
@click.argument("name")
@click.pass_context
def forget(ctx, name):
    """Remove a file and its relationships from the knowledge base."""
    with Database(ctx.obj["db_path"]) as db:
        engine = open_engine(db, ctx.obj["db_path"])
        item = engine.remove_file(require_item(ctx, engine, name).id)
        console.print(f"[green]Removed {item.name}[/green]")


@cli.command()
@click.argument("transcript", type=click.Path(exists=True, dir_okay=False))
@click.option("--project", "project_id", help="Recommend files from this project")
@click.pass_context
def analyze(ctx, transcript, project_id):
    """Analyze a chat transcript."""
    with Database(ctx.obj["db_path"]) as db:
        engine = open_engine(db, ctx.obj["db_path"])
        insight = load_conversation(engine, transcript)
        if insight is None:
            console.print("[yellow]Need at least two messages to analyze.[/yellow]")
            return

        console.print(f"[dim]{engine.conversations.describe(insight)}[/dim]")
        print_insight(insight)
        for suggestion in suggestions_for(insight):
            print_suggestion(suggestion)
        if project_id:
            print_recommendations(engine.recommendations(project_id), engine.knowledge.in_scope(project_id))
        engine.stop()


@cli.command()
@click.argument("transcript", type=click.Path(exists=True, dir_okay=False))
@click.option("--accept", "decision", flag_value="accept", help="Accept the suggestion")
@click.option("--dismiss", "decision", flag_value="dismiss", help="Dismiss the suggestion")
@click.pass_context
def organize(ctx, transcript, decision):
    """Ask for an organization suggestion for a transcript."""
    with Database(ctx.obj["db_path"]) as db:
        engine = open_engine(db, ctx.obj["db_path"])
        load_conversation(engine, transcript)
        suggestion = engine.trigger_organization(manual=True) or engine.state.active_suggestion
        if suggestion is None:
            console.print("[yellow]No suggestion available.[/yellow]")
            return
        print_suggestion(suggestion)

        try:
            if decision == "accept":
                project = engine.accept_suggestion()
                if project is not None:
                    console.print(f"[green]Conversation saved to project '{project.title}'[/green]")
                else:
                    console.print("[green]Accepted[/green]")
            elif decision == "dismiss":
                engine.dismiss_suggestion()
                console.print("[dim]Dismissed[/dim]")
        except OrganizerError as e:
            console.print(f"[red]{e}[/red]")
            ctx.exit(1)
        finally:
            engine.stop()


@cli.command()
@click.argument("transcript", type=click.Path(exists=True, dir_okay=False))
@click.argument("text")
@click.pass_context
def command(ctx, transcript, text):
    """Run a conversational command such as "create a project called X"."""
    with Database(ctx.obj["db_path"]) as db:
        engine = open_engine(db, ctx.obj["db_path"])
        load_conversation(engine, transcript)
        try:
            result = engine.execute(text)
        except TargetNotFound as e:
            console.print(f"[red]{e}[/red]")
            ctx.exit(1)
        finally:
            engine.stop()

        if result is None:
            console.print(f"[yellow]Not a command: {text}[/yellow]")
            return
        console.print(f"[green]{result.message}[/green]")


@cli.command()
@click.argument("suggestion_type", type=click.Choice(SUGGESTION_TYPES))
@click.option("--accept", "decision", flag_value="accept", default=True, help="Record an acceptance")
@click.option("--dismiss", "decision", flag_value="dismiss", help="Record a dismissal")
@click.pass_context
def feedback(ctx, suggestion_type, decision):
    """Record how you reacted to a kind of suggestion."""
    with Database(ctx.obj["db_path"]) as db:
        engine = open_engine(db, ctx.obj["db_path"])
        if decision == "dismiss":
            engine.learner.record_dismiss(suggestion_type)
        else:
            engine.learner.record_accept(suggestion_type)
        console.print(f"{suggestion_type}: weight now [green]{engine.learner.weight(suggestion_type):.2f}[/green]")


@cli.command()
@click.pass_context
def patterns(ctx):
    """Show learned organization preferences."""
    with Database(ctx.obj["db_path"]) as db:
        engine = open_engine(db, ctx.obj["db_path"])
        print_patterns(engine.patterns)


@cli.command()
@click.pass_context
def projects(ctx):
    """List projects."""
    with Database(ctx.obj["db_path"]) as db:
        engine = open_engine(db, ctx.obj["db_path"])
        print_projects(engine.projects)


if __name__ == "__main__":
    cli()
