"""Interactive CLI application."""
import argparse
import asyncio
import logging
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.prompt import Prompt
from rich.table import Table

from lang_tutor.config import apply_preferences, get_setting, set_setting
from lang_tutor.db import DEFAULT_DB_PATH, init_db
from lang_tutor.errors import ContentError
from lang_tutor.flashcards import (
    get_exercise_stats, load_exercise_progress, log_reviews, reset_exercise_progress,
)
from lang_tutor.history import (
    get_exercise_summary, get_overall_accuracy, get_performance_color, get_performance_label,
    record_session_result,
)
from lang_tutor.loader import load_exercise
from lang_tutor.machine import Status
from lang_tutor.models import FLASHCARD, MULTIPLE_CHOICE
from lang_tutor.session import ExerciseSession

console = Console()
logger = logging.getLogger(__name__)

EXIT_WORDS = ("q", "menu")
RATING_CHOICES = ["0", "1", "2", "3", "4", "5"]


class SessionExitRequested(Exception):
    """The user asked to leave the running exercise."""


def session_prompt(prompt: str, **kwargs) -> str:
    answer = Prompt.ask(prompt, **kwargs)
    if answer.strip().lower() in EXIT_WORDS:
        raise SessionExitRequested()
    return answer


def session_int_prompt(prompt: str, choices: list[str]) -> int:
    answer = session_prompt(prompt, choices=choices + list(EXIT_WORDS), show_choices=False)
    return int(answer)


def configure_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )


def show_welcome():
    console.print(Panel(
        "[bold]Language Tutor[/bold]\n[dim]Word forms, quizzes and flashcards[/dim]",
        title="Welcome", border_style="blue",
    ))


def show_menu():
    console.print("\n[bold]Commands:[/bold]")
    commands = [
        ("run", "Run an exercise file"),
        ("due", "Flashcard schedule for a deck"),
        ("history", "Results so far"),
        ("settings", "Auto-advance preferences"),
        ("reset", "Forget a deck's review schedule"),
        ("quit", "Exit"),
    ]
    for cmd, desc in commands:
        console.print(f"  [cyan]{cmd:<14}[/cyan] {desc}")


def show_item(snap: dict) -> None:
    progress = snap["progress"]
    item = snap["item"]
    title = f"{progress['current']}/{progress['total']}"
    if snap["kind"] == FLASHCARD:
        console.print(Panel(item["front"], title=f"Card {title}", border_style="cyan"))
        return
    if snap["kind"] == MULTIPLE_CHOICE:
        lines = [item["text"], ""]
        lines += [f"  [cyan]{o['id']})[/cyan] {o['text']}" for o in item["options"]]
        if snap["hints"].get("hint") and item["hint"]:
            lines.append(f"\n[dim]Hint: {item['hint']}[/dim]")
        console.print(Panel("\n".join(lines), title=f"Question {title}", border_style="cyan"))
        return
    block = item["block"]
    if snap["hints"].get("name") and item["block_translation"]:
        block += f" [dim]({item['block_translation']})[/dim]"
    body = f"[bold]{block}[/bold]\n{item['prompt']}"
    if snap["hints"].get("additional") and item["hint"]:
        body += f"\n[dim]Hint: {item['hint']}[/dim]"
    console.print(Panel(body, title=f"Case {title}", border_style="cyan"))


def show_feedback(snap: dict) -> None:
    status = snap["status"]
    item = snap["item"]
    if status == Status.CORRECT_ANSWER.value:
        console.print("[green]Correct![/green]")
    elif status == Status.REQUIRE_CORRECTION.value:
        if snap["kind"] == MULTIPLE_CHOICE:
            answer = item["correct_option_id"]
        else:
            answer = ", ".join(item["correct_answers"] or [])
        console.print(f"[red]Incorrect.[/red] Answer: [green]{answer}[/green] [dim](type it to continue)[/dim]")


def show_result(result: dict) -> None:
    accuracy = result["accuracy"]
    color = get_performance_color(accuracy)
    shown = f"{accuracy}%" if accuracy is not None else "n/a"
    console.print(Panel(
        f"Correct: [bold]{result['correct_answers']}[/bold]  |  "
        f"Incorrect: [bold]{result['incorrect_answers']}[/bold]  |  "
        f"Skipped: [bold]{result['skipped']}[/bold]\n"
        f"Accuracy: [{color}]{shown} {get_performance_label(accuracy)}[/{color}]  |  "
        f"Time: {result['time_spent_ms'] / 1000:.1f}s",
        title="Exercise complete", border_style="green",
    ))


def _handle_command(session: ExerciseSession, text: str) -> bool:
    """Run an in-session ':' command. Returns False if ``text`` is an answer."""
    if not text.startswith(":"):
        return False
    parts = text[1:].split()
    command = parts[0].lower() if parts else ""
    if command == "skip":
        session.skip()
    elif command == "auto":
        session.toggle_auto_advance()
        state = "on" if session.state.auto_advance_enabled else "off"
        console.print(f"[dim]Auto-advance {state}[/dim]")
    elif command == "hint":
        session.toggle_hint(parts[1] if len(parts) > 1 else "hint" if session.state.kind == MULTIPLE_CHOICE else "additional")
    else:
        console.print("[yellow]Commands: :skip, :auto, :hint [name|prompt|additional][/yellow]")
    return True


async def _ask(prompt: str, **kwargs) -> str:
    return await asyncio.to_thread(session_prompt, prompt, **kwargs)


async def run_session(session: ExerciseSession) -> dict:
    """Drive ``session`` from terminal input until it completes."""
    changed = asyncio.Event()
    results = []
    session.on_change = lambda snap: changed.set()
    session.on_complete = results.append
    shown = None
    while session.status is not Status.COMPLETED:
        snap = session.snapshot
        status = session.status
        if shown != snap["position"]:
            show_item(snap)
            shown = snap["position"]
        if status in (Status.CORRECT_ANSWER, Status.WRONG_ANSWER):
            changed.clear()
            await changed.wait()
        elif status is Status.REQUIRE_CONTINUE:
            await _ask("[dim]Press Enter to continue[/dim]", default="", show_default=False)
            session.advance()
        elif status is Status.WAITING_INPUT and session.state.kind == FLASHCARD:
            text = await _ask("[dim]Press Enter to reveal answer[/dim]", default="", show_default=False)
            if not _handle_command(session, text.strip()):
                session.flip()
        elif status is Status.CHECKING:
            console.print(Panel(snap["item"]["back"], border_style="green"))
            quality = await asyncio.to_thread(
                session_int_prompt, "Rate yourself (0=forgot, 3=hard, 4=good, 5=easy)", RATING_CHOICES,
            )
            session.rate(quality)
        else:
            text = (await _ask("Your answer")).strip()
            if not _handle_command(session, text):
                session.submit(text)
                show_feedback(session.snapshot)
    return results[0]


def run_exercise(db_path: str, file_path: str) -> dict | None:
    content = load_exercise(file_path)
    records = load_exercise_progress(db_path, content.id) if content.type == FLASHCARD else None
    settings = apply_preferences(content.settings, db_path)

    async def _run():
        session = ExerciseSession(content, settings=settings, records=records)
        try:
            return await run_session(session)
        finally:
            session.close()
            if session.reviews:
                log_reviews(db_path, session.reviews, session.ratings)

    console.print(f"\n[bold]{content.title}[/bold] [dim](type q to leave, :skip, :hint, :auto)[/dim]\n")
    try:
        result = asyncio.run(_run())
    except SessionExitRequested:
        console.print("[dim]Exercise left early; progress on rated cards was saved.[/dim]")
        return None
    result_id = record_session_result(db_path, content.id, content.type, result)
    logger.debug("Stored result %d for %s", result_id, content.id)
    show_result(result)
    return result


def cmd_run(db_path: str):
    file_path = Prompt.ask("Exercise file")
    if not Path(file_path).exists():
        console.print(f"[red]File not found: {file_path}[/red]")
        return
    run_exercise(db_path, file_path)


def cmd_due(db_path: str):
    file_path = Prompt.ask("Flashcard deck file")
    content = load_exercise(file_path)
    if content.type != FLASHCARD:
        console.print("[yellow]That exercise has no review schedule.[/yellow]")
        return
    stats = get_exercise_stats(db_path, content.id)
    unseen = len(content.cards) - stats["total"]
    table = Table(title=f"Schedule: {content.title}")
    table.add_column("State", style="cyan")
    table.add_column("Cards", justify="right")
    for state in ("new", "learning", "review", "relearning"):
        count = stats[state] + (unseen if state == "new" else 0)
        table.add_row(state, str(count))
    console.print(table)
    console.print(f"\n  Due now: [bold]{stats['due'] + unseen}[/bold]  |  "
                  f"Average ease: [bold]{stats['average_ease_factor']}[/bold]")


def cmd_history(db_path: str):
    summary = get_exercise_summary(db_path)
    if not summary:
        console.print("[yellow]No completed exercises yet.[/yellow]")
        return
    table = Table(title="Results")
    table.add_column("Exercise", style="cyan")
    table.add_column("Type")
    table.add_column("Sessions", justify="right")
    table.add_column("Accuracy", justify="right")
    table.add_column("Status")
    for row in summary:
        color = get_performance_color(row["accuracy"])
        accuracy = f"{row['accuracy']}%" if row["accuracy"] is not None else "-"
        table.add_row(
            row["exercise_id"], row["exercise_type"], str(row["sessions"]), accuracy,
            f"[{color}]{row['label']}[/{color}]",
        )
    console.print(table)
    overall = get_overall_accuracy(db_path)
    if overall is not None:
        console.print(f"\n  Overall accuracy: [bold]{overall}%[/bold]")


def cmd_settings(db_path: str):
    current = get_setting(db_path, "auto_advance", "true")
    enabled = Prompt.ask("Auto-advance after a correct answer", choices=["on", "off"],
                         default="on" if current == "true" else "off")
    set_setting(db_path, "auto_advance", "true" if enabled == "on" else "false")
    delay = Prompt.ask("Auto-advance delay in ms (blank keeps each exercise's own)", default="")
    if delay.strip().isdigit():
        set_setting(db_path, "auto_advance_delay_ms", delay.strip())
    console.print("[green]Preferences saved.[/green]")


def cmd_reset(db_path: str):
    file_path = Prompt.ask("Flashcard deck file")
    content = load_exercise(file_path)
    reset_exercise_progress(db_path, content.id)
    console.print(f"[green]Review schedule for {content.title} cleared.[/green]")


COMMANDS = {
    "run": cmd_run,
    "due": cmd_due,
    "history": cmd_history,
    "settings": cmd_settings,
    "reset": cmd_reset,
}


def main(argv=None):
    parser = argparse.ArgumentParser(prog="lang-tutor")
    parser.add_argument("exercise", nargs="?", help="exercise file to run right away")
    parser.add_argument("--db", default=DEFAULT_DB_PATH, help="SQLite database path")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    args = parser.parse_args(argv)

    configure_logging(args.verbose)
    db_path = args.db
    init_db(db_path)

    if args.exercise:
        try:
            run_exercise(db_path, args.exercise)
        except (ContentError, OSError) as e:
            console.print(f"[red]Error: {e}[/red]")
        return

    show_welcome()

    while True:
        show_menu()
        choice = Prompt.ask("\n[bold]>[/bold]", default="run").strip().lower()
        try:
            if choice in ("quit", "exit", "q"):
                console.print("[dim]Καλή συνέχεια![/dim]")
                break
            command = COMMANDS.get(choice)
            if command is None:
                console.print("[red]Unknown command. Try again.[/red]")
            else:
                command(db_path)
        except KeyboardInterrupt:
            console.print("\n[dim]Use 'quit' to exit.[/dim]")
        except (ContentError, OSError) as e:
            console.print(f"[red]Error: {e}[/red]")


if __name__ == "__main__":
    main()
