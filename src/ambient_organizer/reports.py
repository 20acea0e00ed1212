"""Report generation for CLI output."""

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .models import (
    AmbientSuggestion,
    ContextualRecommendation,
    Insight,
    KnowledgeItem,
    Project,
    Suggestion,
    UserPatterns,
)

console = Console()


def print_items(items: list[KnowledgeItem]):
    """Print knowledge items as a table."""
    if not items:
        console.print("[yellow]No files found. Run 'organizer ingest' first.[/yellow]")
        return

    table = Table(title="Knowledge Files")
    table.add_column("Name", style="cyan")
    table.add_column("Type")
    table.add_column("Scope")
    table.add_column("Words", justify="right")
    table.add_column("Uses", justify="right")
    table.add_column("Relevance", style="green", justify="right")
    table.add_column("Links", justify="right")

    for item in items:
        scope = "project" if item.project_level else f"chat {item.chat_id[:8]}" if item.chat_id else "project"
        table.add_row(
            item.name,
            item.metadata.content_type,
            scope,
            f"{item.metadata.word_count:,}",
            str(item.usage_count),
            f"{item.relevance_score:.2f}",
            str(len(item.relationships)),
        )

    console.print(table)


def print_item_detail(item: KnowledgeItem):
    """Print one item with its metadata and graduation history."""
    meta = item.metadata
    console.print()
    console.print(Panel(
        f"[bold cyan]{item.name}[/bold cyan]",
        subtitle=f"{item.original_name} | {meta.content_type} | {meta.complexity}",
    ))
    console.print(f"  Words: {meta.word_count:,}  Tokens: {meta.token_count:,}  Reading time: {meta.reading_time_minutes} min")
    if meta.topics:
        console.print(f"  Topics: {', '.join(meta.topics)}")
    console.print(f"  Project: {item.project_id or '-'}  Project level: {'yes' if item.project_level else 'no'}")
    if item.last_referenced:
        console.print(f"  Last referenced: {item.last_referenced:%Y-%m-%d %H:%M}")
    for event in item.graduation_history:
        console.print(
            f"  [green]Graduated[/green] {event.timestamp:%Y-%m-%d} ({event.reason}, "
            f"{event.metrics.usage_count} uses, relevance {event.metrics.average_relevance:.2f})"
        )
    console.print()


def print_related(item: KnowledgeItem, items: list[KnowledgeItem]):
    """Print the relationships of one item."""
    if not item.relationships:
        console.print(f"[yellow]No relationships found for {item.name}.[/yellow]")
        return

    names = {i.id: i.name for i in items}
    table = Table(title=f"Related to {item.name}")
    table.add_column("File", style="cyan")
    table.add_column("Type", style="magenta")
    table.add_column("Strength", style="green", justify="right")
    table.add_column("Evidence", style="dim")

    for rel in sorted(item.relationships, key=lambda r: r.strength, reverse=True):
        table.add_row(
            names.get(rel.related_item_id, rel.related_item_id[:8]),
            rel.type,
            f"{rel.strength:.2f}",
            "; ".join(rel.evidence),
        )

    console.print(table)


def print_search_results(query: str, results: list[tuple[KnowledgeItem, float]]):
    if not results:
        console.print(f"[yellow]No files relevant to '{query}'.[/yellow]")
        return

    table = Table(title=f"Files relevant to '{query}'")
    table.add_column("Name", style="cyan")
    table.add_column("Score", style="green", justify="right")
    for item, score in results:
        table.add_row(item.name, f"{score:.2f}")
    console.print(table)


def print_scores(scores: dict[str, float], items: list[KnowledgeItem]):
    names = {i.id: i.name for i in items}
    table = Table(title="Relevance Scores")
    table.add_column("Name", style="cyan")
    table.add_column("Score", style="green", justify="right")
    for item_id, score in sorted(scores.items(), key=lambda kv: kv[1], reverse=True):
        table.add_row(names.get(item_id, item_id[:8]), f"{score:.2f}")
    console.print(table)


def print_ambient(hints: list[AmbientSuggestion]):
    if not hints:
        console.print("[dim]No ambient suggestions.[/dim]")
        return
    for hint in hints:
        console.print(f"[cyan]{hint.title}[/cyan] [dim]({hint.confidence:.0%})[/dim]")
        console.print(f"  {hint.subtitle}  [bold]\\[{hint.action_text}][/bold]")


def print_insight(insight: Insight):
    """Print the analysis of a conversation."""
    table = Table(title="Conversation Analysis", show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Topic", insight.topic)
    table.add_row("Confidence", f"{insight.confidence:.0%}")
    table.add_row("Complexity", insight.complexity)
    table.add_row("Keywords", ", ".join(insight.keywords) or "-")
    table.add_row("Suggested name", insight.suggested_project_name)
    if insight.context_shift:
        shift = insight.context_shift
        table.add_row("Context shift", f"{shift.from_topic} -> {shift.to_topic}")

    console.print(table)


def print_suggestion(suggestion: Suggestion):
    console.print(Panel(
        suggestion.message,
        title=f"[bold]{suggestion.title}[/bold]",
        subtitle=f"{suggestion.type} | {suggestion.confidence:.0%} | {suggestion.timing}",
    ))


def print_recommendations(recommendations: list[ContextualRecommendation], items: list[KnowledgeItem]):
    names = {i.id: i.name for i in items}
    for rec in recommendations:
        console.print(f"[cyan]{rec.title}[/cyan] [dim]({rec.action}, {rec.confidence:.0%})[/dim]")
        console.print(f"  {rec.description}")
        for item_id in rec.item_ids:
            console.print(f"  - {names.get(item_id, item_id)}")


def print_patterns(patterns: UserPatterns):
    """Print learned organization preferences."""
    table = Table(title="Organization Preferences")
    table.add_column("Suggestion type", style="cyan")
    table.add_column("Weight", style="green", justify="right")

    for suggestion_type, weight in sorted(patterns.organization_preferences.items()):
        table.add_row(suggestion_type, f"{weight:.2f}")

    console.print(table)
    console.print(f"Naming style: [bold]{patterns.naming_style}[/bold]")
    console.print(f"Dismissed suggestions: {len(patterns.dismissed_suggestions)}")


def print_projects(projects: list[Project]):
    if not projects:
        console.print("[yellow]No projects yet.[/yellow]")
        return

    table = Table(title="Projects")
    table.add_column("ID", style="dim")
    table.add_column("Title", style="cyan")
    table.add_column("Messages", justify="right")
    table.add_column("Created")

    for project in projects:
        table.add_row(project.id[:8], project.title, str(len(project.messages)), f"{project.created_at:%Y-%m-%d}")

    console.print(table)
