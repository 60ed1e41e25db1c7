"""Rich console output and JSON file save for responses and artifacts."""

import json
import logging
import re
from datetime import datetime
from pathlib import Path

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.rule import Rule
from rich.table import Table
from rich.text import Text

from deepseek_json.errors import DeepSeekError, ErrorKind, user_message
from deepseek_json.models import Artifact, ClarifyingPayload, NegotiationOutcome, OutcomeStatus, StructuredResponse

logger = logging.getLogger(__name__)

console = Console(legacy_windows=False)

_KIND_TIPS: dict[ErrorKind, str] = {
    ErrorKind.SERVER_BUSY: "Try again in a few minutes when server load is lower.",
    ErrorKind.NETWORK_ERROR: "Check your internet connection and firewall settings.",
    ErrorKind.TIMEOUT: "The server might be overloaded. Try again later.",
    ErrorKind.API_ERROR: "Check the DeepSeek API documentation for more details.",
    ErrorKind.PARSE_ERROR: "The server response was unexpected. Try rephrasing your query.",
    ErrorKind.CONFIG_ERROR: "Check your environment variables and configuration.",
}

_STATUS_TIPS: dict[int, str] = {
    401: "Check your DEEPSEEK_API_KEY environment variable.",
    403: "Your API key may not have sufficient permissions.",
    429: "You've hit the rate limit. Wait before trying again.",
}

_KIND_STYLES: dict[ErrorKind, str] = {
    ErrorKind.SERVER_BUSY: "bold yellow",
    ErrorKind.TIMEOUT: "bold yellow",
    ErrorKind.PARSE_ERROR: "bold magenta",
}


def error_tip(error: DeepSeekError) -> str:
    """Remediation hint for a classified error."""
    if error.kind is ErrorKind.API_ERROR and error.status in _STATUS_TIPS:
        return _STATUS_TIPS[error.status]
    return _KIND_TIPS[error.kind]


def print_error(error: DeepSeekError) -> None:
    style = _KIND_STYLES.get(error.kind, "bold red")
    console.print(Text(user_message(error), style=style))
    console.print(Text(f"Tip: {error_tip(error)}", style=style.replace("bold ", "")))
    console.print()


def print_structured_response(response: StructuredResponse) -> None:
    table = Table.grid(padding=(0, 1))
    table.add_column(style="green")
    table.add_column()
    table.add_row("Title:", Text(response.title, style="bold"))
    table.add_row("Description:", response.description)
    table.add_row("Content:", response.content)
    if response.category is not None:
        table.add_row("Category:", response.category)
    if response.timestamp is not None:
        table.add_row("Timestamp:", response.timestamp)
    if response.confidence is not None:
        table.add_row("Confidence:", f"{response.confidence:.2f}")
    console.print(Panel(table, title="[bold green]Structured Response[/bold green]", border_style="green"))


def print_clarifying(payload: ClarifyingPayload, round_number: int) -> None:
    console.print(Rule(f"[bold yellow]Clarifying Questions (round {round_number})[/bold yellow]"))
    for q in payload.questions:
        marker = "" if q.required else " [dim](optional)[/dim]"
        console.print(f"- [bold]{escape(q.id)}[/bold] {escape(q.text)}{marker}")
        if q.options:
            console.print(f"  options: {escape(', '.join(q.options))}")
    if payload.checklist:
        console.print("\n[bold cyan]Checklist:[/bold cyan]")
        for item in payload.checklist:
            colour = "green" if item.status.value == "complete" else "yellow"
            console.print(f"- {escape(item.field)} \\[[{colour}]{item.status.value}[/{colour}]]")


def _bullets(items: list[str]) -> str:
    return "\n".join(f"- {escape(item)}" for item in items) if items else "[dim]none[/dim]"


def print_artifact(artifact: Artifact) -> None:
    console.print(Rule("[bold green]Technical Task (Artifact)[/bold green]"))
    console.print(
        f"[bold]{escape(artifact.title)}[/bold]  "
        f"[dim]{escape(artifact.artifact_name)} v{escape(artifact.version)}[/dim]"
    )
    console.print(artifact.summary, markup=False)

    if artifact.stakeholders:
        console.print("\n[bold cyan]Stakeholders[/bold cyan]")
        for s in artifact.stakeholders:
            console.print(f"- {s.role}: {s.description}", markup=False)

    console.print("\n[bold cyan]Scope[/bold cyan]")
    console.print(f"In scope:\n{_bullets(artifact.scope.in_scope)}")
    console.print(f"Out of scope:\n{_bullets(artifact.scope.out_of_scope)}")

    console.print("\n[bold cyan]Requirements[/bold cyan]")
    for fr in artifact.requirements.functional:
        rationale = f" [dim]({escape(fr.rationale)})[/dim]" if fr.rationale else ""
        console.print(f"- {escape(fr.id)}: {escape(fr.statement)}{rationale}")
    for nfr in artifact.requirements.non_functional:
        console.print(f"- {nfr.id} [{nfr.category}]: {nfr.target}", markup=False)

    integrations = artifact.data_integrations
    console.print("\n[bold cyan]Data Integrations[/bold cyan]")
    console.print(f"RPC providers: {', '.join(integrations.rpc_providers.selection) or 'none'}", markup=False)
    for name, endpoint in integrations.rpc_providers.endpoints.items():
        console.print(f"  {name}: {endpoint}", markup=False)
    ttl = integrations.price_source.ttl_seconds
    console.print(
        f"Price source: {integrations.price_source.provider}" + (f" (ttl {ttl}s)" if ttl is not None else ""),
        markup=False,
    )

    console.print(f"\n[bold cyan]Constraints[/bold cyan]\n{_bullets(artifact.constraints)}")
    console.print(f"\n[bold cyan]Assumptions[/bold cyan]\n{_bullets(artifact.assumptions)}")

    if artifact.risks:
        console.print("\n[bold cyan]Risks[/bold cyan]")
        for r in artifact.risks:
            console.print(f"- {r.id}: {r.description} -> {r.mitigation}", markup=False)
    if artifact.milestones:
        console.print("\n[bold cyan]Milestones[/bold cyan]")
        for m in artifact.milestones:
            console.print(f"- {m.id} {m.name}: {', '.join(m.deliverables)}", markup=False)
    if artifact.acceptance_criteria:
        console.print("\n[bold cyan]Acceptance Criteria[/bold cyan]")
        for ac in artifact.acceptance_criteria:
            console.print(f"- {ac.id}: given {ac.given}, when {ac.when}, then {ac.then}", markup=False)

    console.print(f"\n[bold cyan]Open Questions[/bold cyan]\n{_bullets(artifact.open_questions)}")
    console.print(Text(f"\nstatus: {artifact.status}  {artifact.end_token}", style="dim"))


def print_outcome(outcome: NegotiationOutcome) -> None:
    """Print the terminal state of a negotiation run."""
    if outcome.status is OutcomeStatus.ARTIFACT and outcome.artifact is not None:
        print_artifact(outcome.artifact)
        return
    if outcome.status is OutcomeStatus.ROUND_CAP_EXCEEDED:
        console.print(
            f"[bold yellow]Reached maximum clarification rounds ({outcome.rounds}). "
            "Showing latest assistant output.[/bold yellow]"
        )
    else:
        console.print(f"[bold red]Parse error:[/bold red] {escape(str(outcome.error))}")
    console.print(outcome.raw_text, markup=False, highlight=False)


def _slug(text: str, max_len: int = 40) -> str:
    """Convert text to a filename-safe slug."""
    slug = re.sub(r"[^\w\s-]", "", text.lower())
    slug = re.sub(r"[\s_-]+", "-", slug).strip("-")
    return slug[:max_len]


def save_artifact(artifact: Artifact, output_dir: Path, slug_override: str | None = None) -> Path:
    """Save an artifact as pretty-printed JSON.

    Args:
        artifact: The validated artifact.
        output_dir: Directory to save the file in (created if needed).
        slug_override: If provided, use this as the filename stem suffix
            instead of deriving one from the title. Used by inbox mode.

    Returns:
        Path to the saved file.
    """
    output_dir.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    slug = slug_override if slug_override is not None else _slug(artifact.title) or "artifact"
    filepath = output_dir / f"{timestamp}_{slug}.json"

    document = {"type": "artifact", **artifact.model_dump(mode="json")}
    filepath.write_text(json.dumps(document, indent=2, ensure_ascii=False), encoding="utf-8")
    logger.info("Artifact saved to: %s", filepath)
    return filepath
