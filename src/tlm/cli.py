"""CLI interface for tlm."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import click
from filelock import SoftFileLock, Timeout
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.tree import Tree

from tlm import __version__
from tlm.config import CONFIG_FILE, TlmConfig
from tlm.log import configure_logging
from tlm.manager import Priority, TaskManager
from tlm.report import render_task_report
from tlm.state import State
from tlm.task import Task
from tlm.translate import Translation

console = Console()

STATE_STYLES = {
    State.OPENED: "white",
    State.WORKING: "cyan",
    State.PUT_ON_HOLD: "yellow",
    State.ON_REVISION: "magenta",
    State.PENDING_REVISION: "bright_magenta",
    State.DONE: "green",
    State.CANCELLED: "dim",
    State.DELETED: "dim strike",
}


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="tlm")
@click.option(
    "--file",
    "-f",
    "task_file",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Task file to use (default from .tlm/config.json)",
)
@click.option("--author", "-a", envvar="TLM_AUTHOR", help="Name recorded in task history")
@click.pass_context
def main(ctx: click.Context, task_file: Path | None, author: str | None) -> None:
    """tlm - TodoList Manager.

    Tasks and subtasks in three priority buckets, each with a lifecycle
    state and a full change history.

    \b
    Examples:
      tlm new "Write report" -p high
      tlm state 000000 working
      tlm state 000000 done -r "sent to the team"
      tlm show 000000
    """
    ctx.ensure_object(dict)
    config = TlmConfig.load()
    configure_logging(config.logging.level, config.logging.format)

    language_file = Path(config.language_file) if config.language_file else None
    ctx.obj["config"] = config
    ctx.obj["task_file"] = task_file or Path(config.task_file)
    ctx.obj["author"] = author or config.author
    ctx.obj["translation"] = Translation.load(language_file)

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


def _read_manager(ctx: click.Context) -> TaskManager:
    """Load the task file for reading. A missing file is an empty forest."""
    manager = TaskManager(ctx.obj["task_file"])
    if manager.task_file.exists():
        result = manager.read_tasks()
        if not result:
            console.print(
                f"[red]Could not read task file:[/red] {manager.task_file} ({result.value})"
            )
            ctx.exit(1)
    return manager


@contextmanager
def _editing(ctx: click.Context) -> Iterator[TaskManager]:
    """Hold the task file's lock while loading, changing and saving it.

    Nothing is saved if the body exits early.
    """
    config: TlmConfig = ctx.obj["config"]
    manager = TaskManager(ctx.obj["task_file"])
    lock_file = manager.lock_path()
    lock_file.parent.mkdir(parents=True, exist_ok=True)
    lock = SoftFileLock(lock_file, timeout=0)

    try:
        lock.acquire()
    except Timeout:
        console.print(f"[red]Task file is locked:[/red] {lock_file}")
        console.print("[dim]Remove the lock file if no other tlm is running.[/dim]")
        ctx.exit(1)

    try:
        if manager.task_file.exists():
            result = manager.read_tasks()
            if not result:
                console.print(
                    f"[red]Could not read task file:[/red] {manager.task_file} ({result.value})"
                )
                ctx.exit(1)

        yield manager

        result = manager.write_tasks(do_backup=config.backup_on_save)
        if not result:
            console.print(
                f"[red]Could not save task file:[/red] {manager.task_file} ({result.value})"
            )
            ctx.exit(1)
    finally:
        lock.release()


def _require_author(ctx: click.Context) -> str:
    author = ctx.obj["author"]
    if not author:
        console.print(
            "[red]Author name not set.[/red] "
            "Use [cyan]--author[/cyan], TLM_AUTHOR or [cyan]tlm init --author NAME[/cyan]."
        )
        ctx.exit(1)
    return author


def _get_task(ctx: click.Context, manager: TaskManager, task_id: str) -> Task:
    task = manager.get_task(task_id)
    if task is None:
        console.print(f"[red]Task not found:[/red] {task_id}")
        ctx.exit(1)
    return task


def _parse_state(ctx: click.Context, param: click.Parameter, value: str) -> State:
    try:
        state = State.parse(value)
    except ValueError:
        choices = ", ".join(s.value for s in State if not s.is_annotation)
        raise click.BadParameter(f"unknown state '{value}' (choose from {choices})") from None
    if state.is_annotation:
        raise click.BadParameter(
            f"'{state.value}' is recorded by the edit and priority commands"
        )
    return state


@main.command()
@click.option("--force", "-f", is_flag=True, help="Overwrite existing config")
@click.pass_context
def init(ctx: click.Context, force: bool) -> None:
    """Create .tlm/config.json and an empty task file."""
    if CONFIG_FILE.exists() and not force:
        console.print(
            "[yellow]tlm already initialized.[/yellow] Use --force to reconfigure."
        )
        return

    config = TlmConfig(author=ctx.obj["author"], task_file=str(ctx.obj["task_file"]))
    config.save()

    manager = TaskManager(ctx.obj["task_file"])
    if not manager.task_file.exists():
        result = manager.write_tasks(do_backup=False)
        if not result:
            console.print(f"[red]Could not create task file:[/red] {manager.task_file}")
            ctx.exit(1)

    console.print(
        Panel.fit(
            "[green]Configuration saved![/green]\n\n"
            f"Config: [cyan]{CONFIG_FILE}[/cyan]\n"
            f"Tasks: [cyan]{manager.task_file}[/cyan]",
            title="tlm",
        )
    )


@main.command()
@click.argument("name")
@click.option("--description", "-d", default="", help="Task description")
@click.option(
    "--priority",
    "-p",
    type=click.Choice([p.value for p in Priority]),
    default=Priority.MEDIUM.value,
    help="Priority bucket for a top-level task (default: medium)",
)
@click.option("--parent", "parent_id", help="Create as a subtask of this task id")
@click.pass_context
def new(
    ctx: click.Context,
    name: str,
    description: str,
    priority: str,
    parent_id: str | None,
) -> None:
    """Create a task."""
    author = _require_author(ctx)

    with _editing(ctx) as manager:
        parent = _get_task(ctx, manager, parent_id) if parent_id else None
        task = manager.new_task(author, name, description)
        if parent is not None:
            parent.add_subtask(task)
        else:
            manager.insert_task(Priority(priority), 0, task)

    console.print(f"[green]Task created:[/green] {task.id} {escape(task.name)}")


@main.command("list")
@click.pass_context
def list_tasks(ctx: click.Context) -> None:
    """Show all tasks by priority."""
    manager = _read_manager(ctx)
    translation: Translation = ctx.obj["translation"]

    names = {
        Priority.HIGH: translation.high_priority,
        Priority.MEDIUM: translation.medium_priority,
        Priority.LOW: translation.low_priority,
    }

    tree = Tree(f"[bold]{escape(str(manager.task_file))}[/bold]")
    for priority, roots in manager.buckets():
        branch = tree.add(f"[bold]{names[priority]}[/bold]")
        if not roots:
            branch.add("[dim]none[/dim]")
        for root in roots:
            _add_branch(branch, root, translation)

    console.print(tree)


def _add_branch(tree: Tree, task: Task, translation: Translation) -> None:
    state = task.current_state().state
    style = STATE_STYLES.get(state, "white")
    node = tree.add(
        f"[{style}]{escape(task.name)}[/{style}] "
        f"[dim]{task.id} · {translation.state_name(state)}[/dim]"
    )
    for subtask in task.subtasks:
        _add_branch(node, subtask, translation)


@main.command()
@click.argument("task_id")
@click.pass_context
def show(ctx: click.Context, task_id: str) -> None:
    """Show a task's details and history."""
    manager = _read_manager(ctx)
    task = _get_task(ctx, manager, task_id)
    click.echo(
        render_task_report(
            task,
            translation=ctx.obj["translation"],
            priority=manager.priority_of(task_id),
        )
    )


@main.command()
@click.argument("task_id")
@click.argument("state", callback=_parse_state)
@click.option("--reason", "-r", help="Why the state changes")
@click.option("--force", is_flag=True, help="Apply even if preconditions are not met")
@click.pass_context
def state(
    ctx: click.Context,
    task_id: str,
    state: State,
    reason: str | None,
    force: bool,
) -> None:
    """Change a task's state (and, where allowed, its subtasks')."""
    author = _require_author(ctx)
    translation: Translation = ctx.obj["translation"]

    with _editing(ctx) as manager:
        task = _get_task(ctx, manager, task_id)
        problems = task.ask_change_state(state)
        if problems:
            console.print(f"[yellow]Cannot change task {task_id} cleanly:[/yellow]")
            click.echo(problems, nl=False)
            if not force:
                console.print("[dim]Use --force to apply anyway.[/dim]")
                ctx.exit(1)
        task.change_state(author, reason, state)

    console.print(
        f"[green]Task {task_id} set to:[/green] {translation.state_name(state)}"
    )


@main.command()
@click.argument("task_id")
@click.option("--name", "-n", help="New name")
@click.option("--description", "-d", help="New description")
@click.option("--reason", "-r", help="Why the task was edited")
@click.pass_context
def edit(
    ctx: click.Context,
    task_id: str,
    name: str | None,
    description: str | None,
    reason: str | None,
) -> None:
    """Edit a task's name or description."""
    author = _require_author(ctx)
    if name is None and description is None:
        console.print("[dim]Nothing to change.[/dim] Use --name or --description.")
        return

    with _editing(ctx) as manager:
        task = _get_task(ctx, manager, task_id)
        prev_name, prev_description = task.name, task.description
        if name is not None:
            task.name = name
        if description is not None:
            task.description = description
        task.task_was_edited(author, reason, prev_name, prev_description)

    console.print(f"[green]Task {task_id} edited.[/green]")


@main.command()
@click.argument("task_id")
@click.option("--up", is_flag=True, help="Move towards the top instead of the bottom")
@click.option("--steps", "-s", type=click.IntRange(min=1), default=1, help="Places to move")
@click.pass_context
def move(ctx: click.Context, task_id: str, up: bool, steps: int) -> None:
    """Move a task among its siblings."""
    with _editing(ctx) as manager:
        _get_task(ctx, manager, task_id)
        manager.move_task_by(task_id, -steps if up else steps)

    console.print(f"[green]Task {task_id} moved.[/green]")


@main.command()
@click.argument("task_id")
@click.argument("level", type=click.Choice([p.value for p in Priority]))
@click.option("--reason", "-r", help="Why the priority changes")
@click.pass_context
def priority(ctx: click.Context, task_id: str, level: str, reason: str | None) -> None:
    """Move a top-level task to another priority bucket."""
    author = _require_author(ctx)

    with _editing(ctx) as manager:
        task = _get_task(ctx, manager, task_id)
        if task.parent is not None:
            console.print(
                f"[red]Cannot change priority of subtask {task_id}.[/red] "
                "Subtasks share their top-level task's priority."
            )
            ctx.exit(1)
        manager.change_priority(task_id, Priority(level), author, reason)

    console.print(f"[green]Task {task_id} priority:[/green] {level}")


@main.command()
@click.argument("task_id")
@click.pass_context
def delete(ctx: click.Context, task_id: str) -> None:
    """Remove a task and all its subtasks."""
    with _editing(ctx) as manager:
        if not manager.delete_task(task_id):
            console.print(f"[red]Task not found:[/red] {task_id}")
            ctx.exit(1)

    console.print(f"[green]Task {task_id} removed.[/green]")


if __name__ == "__main__":
    main()
