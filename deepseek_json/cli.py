"""Click CLI — config loading, dispatcher setup, and the chat/query/TaskFinisher/inbox modes."""

import asyncio
import dataclasses
import json
import logging
import sys
import threading
from pathlib import Path

import click
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler

from config.config_loader import ClientConfig, ConfigLoadError, load_config
from deepseek_json.chat import ChatExchange
from deepseek_json.dispatcher import RequestDispatcher, RetryPolicy
from deepseek_json.errors import DeepSeekError
from deepseek_json.inbox import archive_file, ensure_dirs, load_task, scan_inbox
from deepseek_json.models import AnswerItem, AnswersPayload, ClarifyingPayload
from deepseek_json.negotiation import NegotiationEngine, proceed_without_answers
from deepseek_json.output import (
    print_clarifying,
    print_error,
    print_outcome,
    print_structured_response,
    save_artifact,
)
from deepseek_json.prompts import effective_max_questions

logger = logging.getLogger(__name__)

console = Console(legacy_windows=False)

QUIT_COMMANDS = {"/quit", "/exit"}
PROCEED_COMMAND = "/proceed"


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
    )
    # The SDK's transport is chatty at INFO.
    logging.getLogger("httpx").setLevel(logging.DEBUG if verbose else logging.WARNING)


def is_quit_command(text: str) -> bool:
    return text.strip().lower() in QUIT_COMMANDS


def _apply_overrides(client: ClientConfig, **overrides) -> ClientConfig:
    """Return a new ClientConfig with every non-None CLI override applied."""
    changes = {key: value for key, value in overrides.items() if value is not None}
    return dataclasses.replace(client, **changes)


def _ask(prompt_text: str) -> str:
    return click.prompt(prompt_text, default="", show_default=False, prompt_suffix="").strip()


def _settle(future: asyncio.Future, result: str | None, error: Exception | None) -> None:
    if future.done():
        return
    if error is not None:
        future.set_exception(error)
    else:
        future.set_result(result)


async def _ask_async(prompt_text: str) -> str:
    """Prompt on a daemon thread; the awaiting task stays cancellable.

    Not the default executor: asyncio.run joins it at shutdown, so a pending
    prompt would block exit after Ctrl+C.
    """
    loop = asyncio.get_running_loop()
    future: asyncio.Future = loop.create_future()

    def worker() -> None:
        try:
            outcome = (_ask(prompt_text), None)
        except Exception as exc:
            outcome = (None, exc)
        try:
            loop.call_soon_threadsafe(_settle, future, *outcome)
        except RuntimeError:
            pass  # loop already closed

    threading.Thread(target=worker, name="stdin-prompt", daemon=True).start()
    return await future


async def collect_answers_interactively(payload: ClarifyingPayload, round_number: int) -> AnswersPayload:
    """Show the clarifying round and ask for answers one-by-one.

    Empty input skips a question; /proceed or a quit command finalizes early.
    """
    print_clarifying(payload, round_number)
    console.print("\n[blue]Answer the questions one-by-one. Press Enter to skip. "
                  "Type '/proceed' to finalize now.[/blue]")

    answers: list[AnswerItem] = []
    for question in payload.questions:
        answer = await _ask_async(f"Your answer for {question.id}: ")
        if not answer:
            continue
        if is_quit_command(answer) or answer.lower() == PROCEED_COMMAND:
            break
        answers.append(AnswerItem(id=question.id, answer=answer))
    return AnswersPayload(answers=answers)


async def _run_query(dispatcher: RequestDispatcher, query: str) -> int:
    async with dispatcher:
        try:
            response = await dispatcher.send_request(query)
        except DeepSeekError as exc:
            print_error(exc)
            return 1
    click.echo(json.dumps(response.model_dump(), indent=2, ensure_ascii=False))
    return 0


async def _run_interactive(dispatcher: RequestDispatcher) -> int:
    console.print("[bold blue]DeepSeek JSON Chat Application[/bold blue]")
    console.print("[blue]This application sends your queries to DeepSeek and returns structured JSON responses.[/blue]")
    console.print("[blue]Type '/quit' or '/exit' to stop.[/blue]\n")

    async with dispatcher:
        while True:
            text = await _ask_async("Enter your question: ")
            if not text:
                continue
            if is_quit_command(text):
                break
            console.print("[italic blue]Sending request to DeepSeek...[/italic blue]")
            try:
                response = await dispatcher.send_request(text)
            except DeepSeekError as exc:
                print_error(exc)
                continue
            print_structured_response(response)

    console.print("[bold yellow]Goodbye![/bold yellow]")
    return 0


async def _run_taskfinisher(
    dispatcher: RequestDispatcher,
    request: str | None,
    max_questions: int,
    max_rounds: int,
    output_dir: Path | None,
) -> int:
    console.print("[bold blue]TaskFinisher-JSON Mode[/bold blue]")
    console.print(f"[blue]Max clarifying questions:[/blue] {max_questions}")

    task_request = request or await _ask_async("Enter your technical task request: ")
    if not task_request:
        console.print("[bold red]Error:[/bold red] A technical task request is required.")
        return 1

    async with dispatcher:
        engine = NegotiationEngine(
            ChatExchange(dispatcher),
            collect_answers_interactively,
            max_questions=max_questions,
            max_rounds=max_rounds,
        )
        console.print("[italic blue]Sending TaskFinisher request...[/italic blue]")
        try:
            outcome = await engine.run(task_request)
        except DeepSeekError as exc:
            print_error(exc)
            return 1

    print_outcome(outcome)
    if outcome.artifact is not None and output_dir is not None:
        saved = save_artifact(outcome.artifact, output_dir)
        console.print(f"\n[dim]Saved to: {saved}[/dim]")
    return 0 if outcome.succeeded else 2


async def _process_task_file(
    file_path: Path,
    dispatcher: RequestDispatcher,
    default_max_questions: int,
    max_rounds: int,
    output_dir: Path,
    archive_dir: Path,
) -> bool:
    """Negotiate one inbox task without a human in the loop. Returns True on success."""
    try:
        task = load_task(file_path)
        max_questions = task.max_questions if task.max_questions is not None else default_max_questions
        engine = NegotiationEngine(
            ChatExchange(dispatcher),
            proceed_without_answers,
            max_questions=max_questions,
            max_rounds=max_rounds,
        )
        outcome = await engine.run(task.request)
        if outcome.artifact is None:
            raise RuntimeError(f"negotiation ended with {outcome.status.value}")
        saved = save_artifact(outcome.artifact, output_dir, slug_override=task.slug)
        archived = archive_file(file_path, archive_dir)
        click.echo(f"Processed: {file_path.name} -> {saved} (archived: {archived.name})")
        return True
    except Exception as e:
        logger.error("Failed: %s -- %s", file_path.name, e)
        try:
            archive_file(file_path, archive_dir, failed=True)
        except OSError as archive_exc:
            logger.error("Could not archive %s: %s", file_path.name, archive_exc)
        return False


async def _run_inbox(
    dispatcher: RequestDispatcher,
    inbox_dir: Path,
    archive_dir: Path,
    max_questions: int,
    max_rounds: int,
    output_dir: Path,
    concurrency: int = 2,
) -> int:
    """Negotiate every .md task in the inbox over one shared dispatcher, at most `concurrency` at once."""
    ensure_dirs(inbox_dir, archive_dir)
    files = scan_inbox(inbox_dir)

    if not files:
        click.echo("No files in inbox.")
        return 0

    limit = asyncio.Semaphore(concurrency)

    async def _bounded(file_path: Path) -> bool:
        async with limit:
            return await _process_task_file(
                file_path, dispatcher, max_questions, max_rounds, output_dir, archive_dir
            )

    async with dispatcher:
        results = await asyncio.gather(*(_bounded(f) for f in files))
    return 0 if all(results) else 1


@click.command()
@click.option("-q", "--query", default=None, help="Send a single query and exit (or the initial TaskFinisher request)")
@click.option("-m", "--model", default=None, help="Override the model (default: from config)")
@click.option("-t", "--temperature", default=None, type=float, help="Sampling temperature, 0.0-2.0")
@click.option("--max-tokens", default=None, type=int, help="Maximum tokens in the response")
@click.option("--timeout", default=None, type=int, help="Request timeout in seconds")
@click.option("--base-url", default=None, help="DeepSeek API base URL")
@click.option("--taskfinisher", is_flag=True, default=False, help="Enable TaskFinisher-JSON mode")
@click.option("--max-questions", default=None, type=int,
              help="Maximum clarifying questions for TaskFinisher-JSON mode (0 = default)")
@click.option("--max-rounds", default=None, type=int, help="Maximum clarification rounds (default: from config)")
@click.option("--output", "output_path", default=None, help="Directory to save the final artifact as JSON")
@click.option("--inbox", "use_inbox", is_flag=True, default=False,
              help="Negotiate every .md task in the inbox folder without asking questions")
@click.option("--inbox-dir", "inbox_dir_override", default=None,
              help="Override inbox folder path (default: from config)")
@click.option("--verbose", is_flag=True, help="Enable DEBUG-level logging")
def main(
    query: str | None,
    model: str | None,
    temperature: float | None,
    max_tokens: int | None,
    timeout: int | None,
    base_url: str | None,
    taskfinisher: bool,
    max_questions: int | None,
    max_rounds: int | None,
    output_path: str | None,
    use_inbox: bool,
    inbox_dir_override: str | None,
    verbose: bool,
) -> None:
    """DeepSeek JSON -- structured JSON answers and TaskFinisher technical tasks.

    \b
    Examples:
      deepseek-json
      deepseek-json -q "Explain CAP theorem"
      deepseek-json --taskfinisher -q "Wallet balance tracker" --max-questions 2
      deepseek-json --inbox --output ./tasks
    """
    # Model output may contain characters the Windows console codepage can't render.
    if sys.platform == "win32":
        if hasattr(sys.stdout, "reconfigure"):
            sys.stdout.reconfigure(encoding="utf-8", errors="replace")
        if hasattr(sys.stderr, "reconfigure"):
            sys.stderr.reconfigure(encoding="utf-8", errors="replace")

    load_dotenv()
    _setup_logging(verbose)

    try:
        config = load_config()
    except (FileNotFoundError, ConfigLoadError) as exc:
        console.print(f"[bold red]Config error:[/bold red] {exc}")
        sys.exit(1)

    client_config = _apply_overrides(
        config.client,
        model=model,
        temperature=temperature,
        max_tokens=max_tokens,
        timeout_sec=timeout,
        base_url=base_url,
    )

    try:
        dispatcher = RequestDispatcher(client_config, RetryPolicy.from_config(config.retry))
    except DeepSeekError as exc:
        print_error(exc)
        sys.exit(1)

    effective_questions = effective_max_questions(
        max_questions if max_questions is not None else config.negotiation.max_questions
    )
    effective_rounds = max_rounds if max_rounds is not None else config.negotiation.max_rounds
    output_dir = Path(output_path) if output_path else None

    try:
        if use_inbox:
            inbox_dir = Path(inbox_dir_override) if inbox_dir_override else config.inbox.dir
            exit_code = asyncio.run(
                _run_inbox(
                    dispatcher,
                    inbox_dir=inbox_dir,
                    archive_dir=config.inbox.archive_dir,
                    max_questions=effective_questions,
                    max_rounds=effective_rounds,
                    output_dir=output_dir or config.output_dir,
                    concurrency=config.inbox.concurrency,
                )
            )
        elif taskfinisher:
            exit_code = asyncio.run(
                _run_taskfinisher(
                    dispatcher,
                    request=query,
                    max_questions=effective_questions,
                    max_rounds=effective_rounds,
                    output_dir=output_dir,
                )
            )
        elif query:
            exit_code = asyncio.run(_run_query(dispatcher, query))
        else:
            exit_code = asyncio.run(_run_interactive(dispatcher))
    except (KeyboardInterrupt, click.Abort):
        console.print("\n[yellow]Request cancelled by user[/yellow]")
        console.print("[bold yellow]Goodbye![/bold yellow]")
        exit_code = 130

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
