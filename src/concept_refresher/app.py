"""Interactive CLI application."""
import argparse
import logging
from datetime import date
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler
from rich.markdown import Markdown
from rich.panel import Panel
from rich.prompt import Confirm, IntPrompt, Prompt
from rich.table import Table

from concept_refresher.analytics import format_duration, get_mastery_color, get_mastery_label
from concept_refresher.assistant import OPTION_LETTERS, StudyAssistant
from concept_refresher.catalog import Catalog, Question, Subject, load_catalog
from concept_refresher.config import DIFFICULTY_FILTERS, QuizConfig, get_db_path
from concept_refresher.generator import build_generator
from concept_refresher.models import QuizStatistics
from concept_refresher.scheduler import count_due
from concept_refresher.session import QuizSession, SessionPhase
from concept_refresher.tracker import ProgressStore, local_date

console = Console()
logger = logging.getLogger(__name__)

ANSWER_CHOICES = [letter.lower() for letter in OPTION_LETTERS]


def setup_logging(level: int = logging.WARNING) -> None:
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
    )


def show_welcome(assistant: StudyAssistant):
    status = assistant.generator.status()
    console.print(Panel(
        "[bold]Concept Refresher[/bold]\n[dim]Adaptive quizzes with spaced repetition[/dim]"
        f"\n[dim]Assistant: {status.description}[/dim]",
        title="Welcome", border_style="blue",
    ))


def show_menu():
    console.print("\n[bold]Commands:[/bold]")
    commands = [
        ("subjects", "Browse subjects"),
        ("quiz", "Take a quiz"),
        ("progress", "Progress dashboard"),
        ("lab", "Chat with the study assistant"),
        ("export", "Export progress to a file"),
        ("import", "Import progress from a file"),
        ("reset", "Erase all progress"),
        ("quit", "Exit"),
    ]
    for cmd, desc in commands:
        console.print(f"  [cyan]{cmd:<14}[/cyan] {desc}")


def choose_subject(catalog: Catalog) -> Subject | None:
    subjects = catalog.all_subjects()
    for i, s in enumerate(subjects, 1):
        console.print(f"  [cyan]{i}[/cyan]) {s.icon} {s.name} [dim]({s.difficulty})[/dim]")
    answer = Prompt.ask("Select subject (number or name)").strip()
    if answer.isdigit() and 1 <= int(answer) <= len(subjects):
        return subjects[int(answer) - 1]
    subject = catalog.find_subject_by_name(answer)
    if subject is None:
        console.print(f"[red]Unknown subject: {answer}[/red]")
    return subject


def show_question(question: Question, position: int, total: int, remaining: float | None = None):
    header = f"[bold]Q{position}/{total}[/bold] [dim]{question.topic} · {question.difficulty}[/dim]"
    if remaining is not None:
        header += f"  [yellow]{int(remaining)}s left[/yellow]"
    console.print(header)
    console.print(f"{question.question}\n")
    for letter, option in zip(ANSWER_CHOICES, question.options):
        console.print(f"  [cyan]{letter})[/cyan] {option}")


def show_results(stats: QuizStatistics):
    color = get_mastery_color(stats.accuracy)
    console.print(Panel(
        f"Score: [bold]{stats.score}/{stats.total_questions}[/bold] "
        f"([{color}]{stats.accuracy:.0f}%[/{color}])\n"
        f"Time: {format_duration(stats.total_time)}  |  "
        f"Avg: {format_duration(stats.average_time)}  |  "
        f"Fastest: {format_duration(stats.fastest_answer)}  |  "
        f"Slowest: {format_duration(stats.slowest_answer)}",
        title="Quiz Complete", border_style=color,
    ))
    if stats.topic_scores:
        table = Table(title="By Topic")
        table.add_column("Topic", style="cyan")
        table.add_column("Score", justify="right")
        for topic, tally in stats.topic_scores.items():
            table.add_row(topic, f"{tally.correct}/{tally.total}")
        console.print(table)


def run_quiz(session: QuizSession) -> QuizStatistics | None:
    """Drive an in-progress session to completion. None if the user left early."""
    while session.phase is SessionPhase.IN_PROGRESS:
        if session.is_time_up():
            console.print("[yellow]Time's up![/yellow]")
            return session.finish()
        question = session.current_question
        position, total = session.progress
        show_question(question, position, total, session.time_remaining())
        answer = Prompt.ask("\nYour answer ([dim]x to exit[/dim])", choices=ANSWER_CHOICES + ["x"])
        if answer == "x":
            if session.exit(confirm=lambda: Confirm.ask("Leave the quiz? Answers so far are kept")):
                console.print("[dim]Quiz abandoned.[/dim]")
                return None
            continue

        record = session.submit_answer(ANSWER_CHOICES.index(answer))
        if record.is_correct:
            console.print("[green]Correct![/green]")
        else:
            correct = ANSWER_CHOICES[question.correct]
            console.print(f"[red]Incorrect.[/red] Answer: [green]{correct}) {question.correct_text}[/green]")
        if question.explanation:
            console.print(f"[dim]{question.explanation}[/dim]")
        console.print()

        if session.is_time_up():
            console.print("[yellow]Time's up![/yellow]")
            return session.finish()
        session.advance()
    return session.statistics


def cmd_subjects(catalog: Catalog, store: ProgressStore):
    table = Table(title="Subjects")
    table.add_column("Subject", style="cyan")
    table.add_column("Level")
    table.add_column("Questions", justify="right")
    table.add_column("Mastery", justify="right")
    table.add_column("Status")
    for subject in catalog:
        perf = store.get_subject_performance(subject.key)
        mastery = perf.mastery if perf and perf.total_questions else 0.0
        color = get_mastery_color(mastery)
        table.add_row(
            f"{subject.icon} {subject.name}",
            subject.difficulty,
            str(len(subject.questions)),
            f"{mastery:.0f}%",
            f"[{color}]{get_mastery_label(mastery)}[/{color}]",
        )
    console.print(table)


def cmd_quiz(catalog: Catalog, session: QuizSession):
    console.print("\n[bold]Quiz[/bold]")
    subject = choose_subject(catalog)
    if subject is None:
        return
    count = IntPrompt.ask("Number of questions", default=10)
    difficulty = Prompt.ask("Difficulty", choices=list(DIFFICULTY_FILTERS), default="mixed")
    time_limit = IntPrompt.ask("Time limit in seconds (0 for none)", default=0)
    adaptive = Confirm.ask("Adapt to your weak topics?", default=True)
    config = QuizConfig(
        question_count=max(1, count),
        difficulty=difficulty,
        adaptive_learning=adaptive,
        time_limit=time_limit or None,
    )
    if session.phase is SessionPhase.COMPLETED:
        session.exit()
    if not session.start(subject.key, config):
        console.print("[yellow]No questions available![/yellow]")
        return

    while True:
        stats = run_quiz(session)
        if stats is None:
            return
        show_results(stats)
        if not Confirm.ask("Retake this quiz?", default=False) or not session.retake():
            return


def cmd_progress(catalog: Catalog, store: ProgressStore):
    stats = store.get_overall_stats()
    analytics = store.refresh_analytics()
    favorite = catalog.get_subject(stats["favorite_subject"]) if stats["favorite_subject"] else None

    console.print(Panel(
        f"Questions: [bold]{stats['total_questions']}[/bold]  |  "
        f"Accuracy: [bold]{stats['accuracy']:.0f}%[/bold]  |  "
        f"Streak: [bold]{stats['streak_current']}[/bold] (best {stats['streak_best']})  |  "
        f"Days active: [bold]{stats['days_active']}[/bold]\n"
        f"Avg session: {format_duration(stats['average_session_time'])}  |  "
        f"Favorite: {favorite.name if favorite else '-'}  |  "
        f"Trend: {stats['improvement_rate']:+.1f}%",
        title="Your Progress", border_style="blue",
    ))

    today = store.clock().date()
    table = Table(title="Subject Mastery")
    table.add_column("Subject", style="cyan")
    table.add_column("Mastery", justify="right")
    table.add_column("Answered", justify="right")
    table.add_column("Due for review", justify="right")
    table.add_column("Last studied")
    for row in store.get_subject_progress(catalog):
        perf = store.get_subject_performance(row["key"])
        due = count_due(perf.question_history, today) if perf else 0
        color = get_mastery_color(row["mastery"])
        table.add_row(
            row["name"],
            f"[{color}]{row['mastery']:.0f}%[/{color}]",
            str(row["questions_answered"]),
            str(due),
            local_date(row["last_attempt"]).isoformat() if row["last_attempt"] else "-",
        )
    console.print(table)

    if analytics.weak_topics:
        console.print("\n[bold]Weak topics:[/bold]")
        for t in analytics.weak_topics:
            console.print(f"  [red]{t.accuracy * 100:.0f}%[/red] {t.topic} [dim]({t.attempts} answered)[/dim]")
    if analytics.strong_topics:
        console.print("\n[bold]Strong topics:[/bold]")
        for t in analytics.strong_topics:
            console.print(f"  [green]{t.accuracy * 100:.0f}%[/green] {t.topic} [dim]({t.attempts} answered)[/dim]")
    for rec in analytics.recommendations:
        color = "yellow" if rec.priority == "high" else "cyan"
        console.print(f"\n  [{color}]{rec.title}[/{color}]: {rec.description}")


def practice_question(assistant: StudyAssistant, subject_key: str):
    with console.status("Preparing a question..."):
        question = assistant.generate_question(subject_key)
    if question is None:
        console.print(f"[red]Unknown subject: {subject_key}[/red]")
        return
    show_question(question, 1, 1)
    answer = Prompt.ask("\nYour answer", choices=ANSWER_CHOICES)
    selected = ANSWER_CHOICES.index(answer)
    is_correct = selected == question.correct
    with console.status("Thinking..."):
        feedback = assistant.feedback(question, selected, is_correct, time_spent=0)
    if is_correct:
        console.print("[green]Correct![/green]")
    else:
        console.print(f"[red]Incorrect.[/red] Answer: [green]{question.correct_text}[/green]")
    console.print(f"[dim]{feedback.message}[/dim]")
    console.print(f"[bold]{feedback.encouragement}[/bold]\n[cyan]Tip:[/cyan] {feedback.learning_tip}")


def cmd_lab(catalog: Catalog, assistant: StudyAssistant):
    console.print(Panel(
        "Ask anything, request a quiz question or a study plan.\n"
        "[dim]/practice <subject>  /clear  /export  /back[/dim]",
        title="Study Lab", border_style="magenta",
    ))
    while True:
        message = Prompt.ask("[bold magenta]You[/bold magenta]").strip()
        if not message:
            continue
        if message == "/back":
            return
        if message == "/clear":
            assistant.clear_chat()
            console.print("[dim]Chat cleared.[/dim]")
        elif message == "/export":
            path = Path(f"chat-export-{date.today().isoformat()}.json")
            path.write_text(assistant.export_chat(), encoding="utf-8")
            console.print(f"[green]Chat exported to {path}[/green]")
        elif message.startswith("/practice"):
            name = message[len("/practice"):].strip()
            subject = catalog.find_subject_by_name(name) if name else catalog.all_subjects()[0]
            if subject is None:
                console.print(f"[red]Unknown subject: {name}[/red]")
                continue
            practice_question(assistant, subject.key)
        else:
            with console.status("Thinking..."):
                reply = assistant.respond(message)
            console.print(Panel(Markdown(reply), title="Assistant", border_style="magenta"))


def cmd_export(store: ProgressStore):
    default = f"concept-refresher-progress-{date.today().isoformat()}.json"
    path = Path(Prompt.ask("Export to", default=default))
    path.write_text(store.export_progress(), encoding="utf-8")
    console.print(f"[green]Progress exported to {path}[/green]")


def cmd_import(store: ProgressStore):
    file_path = Prompt.ask("File path")
    if not Path(file_path).exists():
        console.print(f"[red]File not found: {file_path}[/red]")
        return
    if not Confirm.ask("Importing replaces all current progress. Continue?", default=False):
        return
    if store.import_progress(Path(file_path).read_text(encoding="utf-8")):
        console.print("[green]Progress imported.[/green]")
    else:
        console.print("[red]That file is not a valid progress export.[/red]")


def cmd_reset(store: ProgressStore):
    if store.reset(confirm=lambda: Confirm.ask(
        "[red]Erase all progress? This cannot be undone[/red]", default=False,
    )):
        console.print("[green]Progress reset.[/green]")
    else:
        console.print("[dim]Nothing changed.[/dim]")


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Adaptive concept refresher quizzes")
    parser.add_argument("--db", default=None, help="Progress database path")
    parser.add_argument("--catalog", default=None, help="JSON or YAML question catalog")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    setup_logging(logging.DEBUG if args.verbose else logging.WARNING)

    catalog = load_catalog(args.catalog)
    store = ProgressStore(args.db or get_db_path())
    session = QuizSession(catalog, store)
    assistant = StudyAssistant(catalog, store, build_generator())

    show_welcome(assistant)

    while True:
        show_menu()
        choice = Prompt.ask("\n[bold]>[/bold]", default="quiz").strip().lower()
        try:
            if choice == "subjects":
                cmd_subjects(catalog, store)
            elif choice == "quiz":
                cmd_quiz(catalog, session)
            elif choice == "progress":
                cmd_progress(catalog, store)
            elif choice == "lab":
                cmd_lab(catalog, assistant)
            elif choice == "export":
                cmd_export(store)
            elif choice == "import":
                cmd_import(store)
            elif choice == "reset":
                cmd_reset(store)
            elif choice in ("quit", "exit", "q"):
                console.print("[dim]Keep refreshing those concepts![/dim]")
                break
            else:
                console.print("[red]Unknown command. Try again.[/red]")
        except KeyboardInterrupt:
            if session.phase is SessionPhase.IN_PROGRESS:
                session.exit(confirm=lambda: True)
            console.print("\n[dim]Use 'quit' to exit.[/dim]")
        except Exception as e:
            logger.debug("Command %s failed", choice, exc_info=True)
            console.print(f"[red]Error: {e}[/red]")


if __name__ == "__main__":
    main()
