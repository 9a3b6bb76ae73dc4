"""planpilot entry point."""

from __future__ import annotations

import asyncio
import functools
import os
from pathlib import Path
from typing import Any, Callable

import click

from planpilot.agent import ExecutionOrchestrator, RunOptions
from planpilot.config import Settings, load_settings
from planpilot.errors import PlanPilotError
from planpilot.executors import build_executor_registry
from planpilot.plans.readiness import find_next_plan, find_next_ready_dependency, find_ready_plans
from planpilot.plans.store import PlanStore
from planpilot.utils.logging import get_logger, setup_logging
from planpilot.vcs import find_repository_root
from planpilot.workspace.lock import WorkspaceLock

log = get_logger(__name__)


def _common_options(fn: Callable[..., Any]) -> Callable[..., Any]:
    @click.option("--config", "config_path", default=None, help="Path to config YAML file")
    @click.option("--log-level", default=None, help="Log level (DEBUG, INFO, WARNING, ERROR)")
    @functools.wraps(fn)
    def wrapper(*args: Any, config_path: str | None, log_level: str | None, **kwargs: Any) -> Any:
        settings = load_settings(config_path)
        if log_level:
            settings.log_level = log_level
        setup_logging(level=settings.log_level, json_output=settings.log_json)
        try:
            return fn(*args, settings=settings, **kwargs)
        except PlanPilotError as e:
            raise click.ClickException(str(e)) from e

    return wrapper


def _open_store(settings: Settings) -> tuple[Path, PlanStore]:
    root = asyncio.run(find_repository_root(Path.cwd()))
    return root, PlanStore(settings.resolve_tasks_dir(root))


@click.group()
def cli() -> None:
    """Run dependency-ordered plans through a coding agent."""


@cli.command()
@click.argument("plan", required=False)
@click.option("--next", "use_next", is_flag=True, help="Run the highest-priority ready pending plan")
@click.option("--current", is_flag=True, help="Prefer an in-progress plan, else the next ready one")
@click.option("--next-ready", "next_ready", type=int, default=None, metavar="PARENT",
              help="Run the next ready dependency of PARENT")
@click.option("--serial-tasks", is_flag=True, help="Execute one task or step per iteration")
@click.option("--steps", "max_steps", type=click.IntRange(min=1), default=None,
              help="Stop after this many iterations")
@click.option("--summary/--no-summary", "summary_enabled", default=None,
              help="Collect and print an execution summary")
@click.option("--summary-file", type=click.Path(path_type=Path), default=None,
              help="Write the summary to this file instead of stdout")
@click.option("--executor", default=None, help="Executor name (default from config)")
@click.option("--workspace", type=click.Path(file_okay=False, path_type=Path), default=None,
              help="Workspace directory; the run holds its lock")
@click.option("--mode", "execution_mode", type=click.Choice(["normal", "simple", "tdd"]),
              default="normal", help="Execution mode passed to the executor")
@click.option("--dry-run", is_flag=True, help="Print the prompt instead of executing it")
@click.option("--no-final-review", is_flag=True, help="Skip the review after the last task")
@click.option("--update-docs", "update_docs_mode",
              type=click.Choice(["never", "after-iteration", "after-completion"]), default=None,
              help="When to ask the executor to update documentation")
@_common_options
def run(
    plan: str | None,
    use_next: bool,
    current: bool,
    next_ready: int | None,
    serial_tasks: bool,
    max_steps: int | None,
    summary_enabled: bool | None,
    summary_file: Path | None,
    executor: str | None,
    workspace: Path | None,
    execution_mode: str,
    dry_run: bool,
    no_final_review: bool,
    update_docs_mode: str | None,
    settings: Settings,
) -> None:
    """Execute PLAN (a file path or numeric id) until done or failed."""
    selectors = [plan is not None, use_next, current, next_ready is not None]
    if sum(selectors) != 1:
        raise click.UsageError("Give exactly one of PLAN, --next, --current or --next-ready.")

    root, store = _open_store(settings)
    plan_ref = plan if plan is not None else _select_plan(store, use_next, current, next_ready)

    options = RunOptions(
        serial_tasks=serial_tasks,
        max_steps=max_steps,
        dry_run=dry_run,
        execution_mode=execution_mode,  # type: ignore[arg-type]
        summary_enabled=summary_enabled,
        summary_file=summary_file,
        update_docs_mode=update_docs_mode,  # type: ignore[arg-type]
        final_review=False if no_final_review else None,
        workspace=workspace,
        executor=executor,
    )
    orchestrator = ExecutionOrchestrator(
        settings, store, build_executor_registry(settings), base_dir=root,
    )

    try:
        result = asyncio.run(orchestrator.run(plan_ref, options))
    except KeyboardInterrupt:
        raise click.ClickException("Interrupted.") from None

    if not result.success:
        raise click.ClickException(result.reason or "Run failed.")
    click.echo(result.reason or f"Plan {result.plan_id} finished after {result.iterations} iteration(s).")


def _select_plan(store: PlanStore, use_next: bool, current: bool, next_ready: int | None) -> str:
    collection = store.read_all_plans()
    if next_ready is not None:
        found = find_next_ready_dependency(next_ready, collection.plans)
        if found.plan is None:
            raise click.ClickException(found.message)
        click.echo(found.message)
        selected = found.plan
    else:
        selected = find_next_plan(
            collection.plans,
            include_pending=True,
            include_in_progress=current,
        )
        if selected is None:
            raise click.ClickException("No ready plans found.")
    return str(selected.id)


@cli.command()
@click.option("--include-in-progress", is_flag=True, help="List in-progress plans too")
@_common_options
def ready(include_in_progress: bool, settings: Settings) -> None:
    """List plans that are ready to run, best candidate first."""
    _, store = _open_store(settings)
    collection = store.read_all_plans()
    plans = find_ready_plans(
        collection.plans,
        include_pending=True,
        include_in_progress=include_in_progress,
    )
    if not plans:
        click.echo("No ready plans.")
        return
    for p in plans:
        click.echo(f"{p.id}\t{p.priority or '-'}\t{p.status}\t{p.display_title}")


@cli.command("next-ready")
@click.argument("parent", type=int)
@_common_options
def next_ready_cmd(parent: int, settings: Settings) -> None:
    """Show the next ready dependency below PARENT."""
    _, store = _open_store(settings)
    found = find_next_ready_dependency(parent, store.read_all_plans().plans)
    click.echo(found.message)
    if found.plan is not None and found.plan.path is not None:
        click.echo(str(found.plan.path))


@cli.command()
@click.argument("directory", type=click.Path(file_okay=False, path_type=Path))
@click.option("--persistent", is_flag=True, help="Lock until explicitly unlocked with --force")
@_common_options
def lock(directory: Path, persistent: bool, settings: Settings) -> None:
    """Lock DIRECTORY against agent runs.

    Without --persistent the lock belongs to the calling shell and goes
    stale when that shell exits.
    """
    workspace_lock = WorkspaceLock(directory, settings.lock.stale_after_hours)
    info = workspace_lock.acquire(
        owner="planpilot lock",
        lock_type="persistent" if persistent else "pid",
        pid=None if persistent else os.getppid(),
    )
    click.echo(f"Locked {directory}: {info.describe()}")


@cli.command()
@click.argument("directory", type=click.Path(file_okay=False, path_type=Path))
@click.option("--force", is_flag=True, help="Remove the lock whoever holds it")
@_common_options
def unlock(directory: Path, force: bool, settings: Settings) -> None:
    """Release the lock on DIRECTORY."""
    workspace_lock = WorkspaceLock(directory, settings.lock.stale_after_hours)
    if not workspace_lock.is_locked():
        click.echo(f"{directory} is not locked.")
        return
    if not workspace_lock.release(force=force):
        info = workspace_lock.get_lock_info_including_stale()
        holder = info.describe() if info else "an unreadable lock file"
        raise click.ClickException(f"Lock held by {holder}; use --force to remove it.")
    click.echo(f"Unlocked {directory}.")


@cli.command("lock-status")
@click.argument("directory", type=click.Path(file_okay=False, path_type=Path))
@_common_options
def lock_status(directory: Path, settings: Settings) -> None:
    """Show who holds the lock on DIRECTORY."""
    workspace_lock = WorkspaceLock(directory, settings.lock.stale_after_hours)
    info = workspace_lock.get_lock_info_including_stale()
    if info is None:
        if workspace_lock.lock_path.exists():
            click.echo("Locked by an unreadable lock file")
            return
        click.echo(f"{directory} is not locked.")
        return
    suffix = " (stale)" if workspace_lock.is_stale(info) else ""
    click.echo(f"Locked by {info.describe()}{suffix}")


if __name__ == "__main__":
    cli()
