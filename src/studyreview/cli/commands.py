"""CLI commands for the study review app.

Commands:
- lessons: List lessons by unit
- review: Show a lesson's questions and reference answers
- practice: Answer questions one at a time with instant grading
- exam: Timed exam over a whole lesson, saved to history
- history: Browse or clear saved exam records
- ask: Deep-dive chat with the tutor
- theme: Show or change the UI theme
- serve: Run the Web API
"""

from __future__ import annotations

import typer
from rich.console import Console

from studyreview.config.personas import get_default_persona
from studyreview.content.formatting import format_answer_lines, split_answer_points
from studyreview.content.lessons import (
    Lesson,
    LessonNotFoundError,
    group_by_unit,
    load_lessons,
    require_lesson,
)
from studyreview.core.grader import GradingResult
from studyreview.core.history import ExamHistoryRepository, ExamRecord
from studyreview.core.preferences import resolve_theme, set_theme, toggle_theme
from studyreview.core.quiz import QuizMode, QuizSession, QuizStateError, format_time, format_timestamp
from studyreview.core.tutor import ChatSession
from studyreview.llm.client import LLMClient
from studyreview.storage.kv_store import get_default_store
from studyreview.utils.text_utils import truncate

app = typer.Typer(
    name="studyreview",
    help="History review: lesson Q&A, AI-graded practice and exams, and a chat tutor.",
    no_args_is_help=True,
)

console = Console()

EXIT_WORDS = {"/q", "/quit", "/exit"}


def _require_lesson_or_exit(lesson_id: int) -> Lesson:
    """Look up a lesson, or exit listing the valid IDs."""
    try:
        return require_lesson(lesson_id)
    except LessonNotFoundError as e:
        console.print(f"[red]✗ {e}[/red]")
        ids = ", ".join(str(l.id) for l in load_lessons())
        console.print(f"  可选课程: {ids}")
        raise typer.Exit(code=1)


def _make_client(provider: str | None, model: str | None) -> LLMClient:
    client = LLMClient(provider=provider, model=model)  # type: ignore[arg-type]
    if not client.has_credentials:
        console.print("[yellow]⚠ 未配置 API Key (GEMINI_API_KEY)，无法进行 AI 批改或对话[/yellow]")
    return client


def _print_grading(result: GradingResult) -> None:
    color = "green" if result.is_correct else "red"
    verdict = "正确" if result.is_correct else "需改进"
    console.print(f"[bold]得分: [{color}]{result.score}[/{color}] ({verdict})[/bold]")
    console.print(f"[dim]{get_default_persona().name}点评:[/dim] {result.feedback}")


def _ask_parts(quiz: QuizSession) -> list[str]:
    """Prompt once per answer point."""
    if not quiz.is_multi_part:
        return [typer.prompt("答案", default="", show_default=False)]

    return [
        typer.prompt(f"要点 {i}", default="", show_default=False)
        for i in range(1, quiz.expected_parts + 1)
    ]


def _print_record(record: ExamRecord) -> None:
    from rich.panel import Panel
    from rich.table import Table

    average = round(record.total_score / record.total_questions) if record.total_questions else 0
    header = (
        f"[dim]课程:[/dim] {record.lesson_title}\n"
        f"[dim]时间:[/dim] {format_timestamp(record.timestamp)}\n"
        f"[dim]总分:[/dim] {record.total_score}  "
        f"[dim]平均:[/dim] {average}  "
        f"[dim]正确:[/dim] {record.correct_count}/{record.total_questions}"
    )
    console.print(Panel(header, title=f"[bold]{record.id}[/bold]", expand=False))

    table = Table(show_header=True, header_style="bold")
    table.add_column("#", style="dim", width=3)
    table.add_column("题目")
    table.add_column("得分", justify="right")
    table.add_column("点评")

    for i, r in enumerate(record.results, 1):
        color = "green" if r.grading.is_correct else "red"
        table.add_row(
            str(i),
            r.question_text,
            f"[{color}]{r.grading.score}[/{color}]",
            truncate(r.grading.feedback, 60),
        )

    console.print(table)


@app.command()
def lessons() -> None:
    """List all lessons grouped by unit."""
    for unit, unit_lessons in group_by_unit(load_lessons()).items():
        console.print(f"\n[bold]{unit}[/bold]")
        for lesson in unit_lessons:
            console.print(f"  [cyan]{lesson.id:>2}[/cyan]  {lesson.title}  [dim]({lesson.question_count} 题)[/dim]")


@app.command()
def review(
    lesson_id: int = typer.Argument(..., help="Lesson ID (see 'lessons')"),
) -> None:
    """Show a lesson's questions with their reference answers."""
    lesson = _require_lesson_or_exit(lesson_id)

    console.print(f"\n[bold]{lesson.title}[/bold]  [dim]{lesson.unit}[/dim]")
    for i, qa in enumerate(lesson.qa, 1):
        console.print(f"\n[blue]Q{i}.[/blue] [bold]{qa.question}[/bold]")
        for line in format_answer_lines(qa.answer):
            console.print(f"    {line}")


@app.command()
def practice(
    lesson_id: int = typer.Argument(..., help="Lesson ID (see 'lessons')"),
    question: int = typer.Option(1, "-q", "--question", help="Question number to start at"),
    provider: str | None = typer.Option(
        None, "-p", "--provider", help="LLM provider: gemini, openai, lmstudio"
    ),
    model: str | None = typer.Option(None, "-m", "--model", help="Grading model (overrides config)"),
) -> None:
    """Practice questions one by one with instant AI grading.

    Example:
        studyreview practice 1 -q 2
    """
    lesson = _require_lesson_or_exit(lesson_id)
    quiz = QuizSession(
        lesson=lesson,
        history=ExamHistoryRepository(get_default_store()),
        client=_make_client(provider, model),
    )

    try:
        quiz.start_practice_at(question - 1)
    except QuizStateError as e:
        console.print(f"[red]✗ {e}[/red]")
        raise typer.Exit(code=1)

    while True:
        qa = quiz.current_question
        console.print(f"\n[blue]第 {quiz.current_index + 1}/{lesson.question_count} 题[/blue]")
        console.print(f"[bold]{qa.question}[/bold]")
        if quiz.is_multi_part:
            console.print(f"[dim]本题共 {quiz.expected_parts} 个要点[/dim]")

        result = quiz.submit(_ask_parts(quiz))
        if result is None:
            console.print("[yellow]⚠ 答案为空，未提交[/yellow]")
            continue

        _print_grading(result)
        console.print("[dim]参考答案:[/dim]")
        for point in split_answer_points(qa.answer):
            console.print(f"  {point.strip()}")

        if not typer.confirm("\n下一题?", default=True):
            break
        quiz.next_practice()

    console.print("\n[green]✓ 练习结束[/green]")


@app.command()
def exam(
    lesson_id: int = typer.Argument(..., help="Lesson ID (see 'lessons')"),
    provider: str | None = typer.Option(
        None, "-p", "--provider", help="LLM provider: gemini, openai, lmstudio"
    ),
    model: str | None = typer.Option(None, "-m", "--model", help="Grading model (overrides config)"),
) -> None:
    """Timed exam over every question of a lesson.

    The result is saved to the exam history.

    Example:
        studyreview exam 3
    """
    lesson = _require_lesson_or_exit(lesson_id)
    quiz = QuizSession(
        lesson=lesson,
        history=ExamHistoryRepository(get_default_store()),
        client=_make_client(provider, model),
    )
    quiz.start_exam()

    console.print(f"\n[bold]考试: {lesson.title}[/bold]")
    console.print(f"[dim]题数:[/dim] {lesson.question_count}  [dim]限时:[/dim] {format_time(quiz.time_limit)}")

    while quiz.mode == QuizMode.EXAM:
        qa = quiz.current_question
        console.print(
            f"\n[blue]第 {quiz.current_index + 1}/{lesson.question_count} 题[/blue]  "
            f"[dim]剩余 {format_time(quiz.remaining_seconds())}[/dim]"
        )
        console.print(f"[bold]{qa.question}[/bold]")

        parts = _ask_parts(quiz)
        try:
            result = quiz.submit(parts)
        except QuizStateError:
            console.print("[yellow]⚠ 时间到，考试结束[/yellow]")
            break

        if result is None:
            console.print("[yellow]⚠ 答案为空，未提交[/yellow]")
        else:
            console.print(f"[dim]已批改，得分 {result.score}[/dim]")

    record = quiz.last_saved_record
    if record is None:
        console.print("\n[yellow]⚠ 未作答任何题目，成绩未保存[/yellow]")
        return

    summary = quiz.summary()
    console.print(
        f"\n[bold]总分: {summary.total_score}  平均: {summary.average_score}  "
        f"正确率: {summary.accuracy}%[/bold]"
    )
    _print_record(record)
    console.print(f"\n[green]✓ 成绩已保存[/green] [dim]({record.id})[/dim]")


@app.command()
def history(
    record_id: str | None = typer.Argument(None, help="Exam record ID to show in detail"),
    clear: bool = typer.Option(False, "--clear", help="Delete all saved exam records"),
) -> None:
    """List saved exam records, or show one in detail."""
    repo = ExamHistoryRepository(get_default_store())

    if clear:
        repo.clear()
        console.print("[green]✓ 考试记录已清空[/green]")
        return

    if record_id is not None:
        record = repo.get(record_id)
        if record is None:
            console.print(f"[red]✗ 记录不存在: {record_id}[/red]")
            raise typer.Exit(code=1)
        _print_record(record)
        return

    records = repo.load()
    if not records:
        console.print("[dim]暂无考试记录[/dim]")
        return

    from rich.table import Table

    table = Table(show_header=True, header_style="bold")
    table.add_column("ID", style="dim")
    table.add_column("时间")
    table.add_column("课程")
    table.add_column("总分", justify="right")
    table.add_column("题数", justify="right")

    for r in records:
        table.add_row(r.id, format_timestamp(r.timestamp), r.lesson_title, str(r.total_score), str(r.total_questions))

    console.print(table)


@app.command()
def ask(
    lesson_id: int = typer.Argument(..., help="Lesson ID (see 'lessons')"),
    question: str | None = typer.Argument(None, help="Ask once and exit"),
    full: bool = typer.Option(False, "--full", help="Answer from the whole book"),
    provider: str | None = typer.Option(
        None, "-p", "--provider", help="LLM provider: gemini, openai, lmstudio"
    ),
    model: str | None = typer.Option(None, "-m", "--model", help="Chat model (overrides config)"),
) -> None:
    """Deep-dive chat with the tutor about a lesson.

    Type /q to leave the conversation.
    """
    from rich.markdown import Markdown

    lesson = _require_lesson_or_exit(lesson_id)
    client = _make_client(provider, None)
    if model is not None:
        client.config.chat_model = model

    persona = get_default_persona()
    chat = ChatSession(lesson=lesson, persona=persona, client=client, use_full_context=full)

    def _reply(text: str) -> None:
        with console.status(f"{persona.name}正在思考..."):
            message = chat.send(text)
        if message is not None:
            console.print(f"\n[bold magenta]{persona.name}:[/bold magenta]")
            console.print(Markdown(message.text))

    if question is not None:
        _reply(question)
        return

    console.print(f"\n[bold magenta]{persona.name}:[/bold magenta] {chat.messages[0].text}")
    console.print("[dim]输入 /q 退出[/dim]")

    while True:
        text = typer.prompt(f"\n{persona.replies.student_label}", default="", show_default=False)
        if text.strip() in EXIT_WORDS:
            break
        _reply(text)


@app.command()
def theme(
    toggle: bool = typer.Option(False, "--toggle", help="Switch between dark and light"),
    set_to: str | None = typer.Option(None, "--set", help="Save a theme: dark or light"),
    prefers_dark: bool = typer.Option(False, "--prefers-dark", help="System prefers dark mode"),
) -> None:
    """Show or change the saved UI theme."""
    store = get_default_store()

    if set_to is not None:
        if set_to not in ("dark", "light"):
            console.print(f"[red]✗ 无效主题: {set_to} (dark, light)[/red]")
            raise typer.Exit(code=1)
        current = set_theme(store, set_to)  # type: ignore[arg-type]
    elif toggle:
        current = toggle_theme(store, prefers_dark)
    else:
        current = resolve_theme(store, prefers_dark)

    console.print(f"theme: [bold]{current}[/bold]")


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", "--host", help="Bind address"),
    port: int = typer.Option(8000, "--port", help="Port"),
    reload: bool = typer.Option(False, "--reload", help="Auto-reload on code changes"),
) -> None:
    """Run the Web API with uvicorn."""
    import uvicorn

    console.print(f"[blue]Serving on http://{host}:{port}[/blue]")
    uvicorn.run("studyreview.web.api:app", host=host, port=port, reload=reload)


if __name__ == "__main__":
    app()
