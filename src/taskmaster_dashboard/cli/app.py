from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from ..config.settings import get_settings
from ..core.placeholders import find_placeholders
from ..core.reconcile import completion_percentage, reconcile
from ..persistence.store import JsonStore, effective_tasks_enabled
from ..services.detection import (
    TaskFileError,
    check_installation,
    detect_taskmaster_folder,
    load_project_tasks,
)
from ..services.mcp_detector import detect_taskmaster_mcp_server
from ..services.projects import ProjectRegistry
from ..services.templates import get_template, list_templates

app = typer.Typer(add_completion=False, help="TaskMaster dashboard backend.")
console = Console()

STATUS_STYLES = {
    "done": "green",
    "in-progress": "cyan",
    "review": "magenta",
    "pending": "yellow",
    "deferred": "dim",
    "cancelled": "red",
    "fully-configured": "green",
    "taskmaster-only": "yellow",
    "mcp-only": "cyan",
    "not-configured": "red",
}


def _styled(value: str) -> str:
    style = STATUS_STYLES.get(value)
    return f"[{style}]{value}[/]" if style else value


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
    )


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, "--host", help="Bind address (defaults to settings)."),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Port (defaults to settings)."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log every request."),
) -> None:
    """
    Run the HTTP API and event stream.
    """

    from ..web.server import run_dashboard_server

    _configure_logging(verbose)
    settings = get_settings()
    bind_host = host or settings.host
    bind_port = port if port is not None else settings.port
    console.print(f"[bold green]TaskMaster dashboard[/] on [bold]http://{bind_host}:{bind_port}[/] (Ctrl+C to stop)")
    try:
        run_dashboard_server(host=bind_host, port=bind_port, settings=settings)
    except KeyboardInterrupt:
        console.print("[cyan]Stopped.[/]")


@app.command()
def status(
    project: Path = typer.Argument(..., exists=True, file_okay=False, readable=True, resolve_path=True),
) -> None:
    """
    Show the TaskMaster configuration status of a project directory.
    """

    settings = get_settings()
    folder = detect_taskmaster_folder(project)
    mcp = detect_taskmaster_mcp_server(settings.claude_config_paths)
    installation = check_installation(settings.cli_binary)
    overall = reconcile(folder.present, mcp.configured)

    lines = [
        f"[bold cyan]Project:[/] {project}",
        f"[bold cyan]Status:[/] {_styled(overall.value)}",
        "",
        f"[bold cyan].taskmaster:[/] {'yes' if folder.has_taskmaster else 'no'}"
        + (f" [dim]({folder.reason})[/]" if folder.reason else ""),
    ]
    for name, present in folder.files.items():
        lines.append(f"  {'[green]✓[/]' if present else '[red]✗[/]'} {name}")
    metadata = folder.metadata or {}
    if "error" in metadata:
        lines.append(f"  [red]{metadata['error']}[/]")
    elif metadata:
        lines.append(
            f"  {metadata.get('taskCount', 0)} tasks, {metadata.get('completed', 0)} done "
            f"({metadata.get('completionPercentage', 0)}%)"
        )
    lines.append("")
    if mcp.has_mcp_server:
        lines.append(f"[bold cyan]MCP server:[/] {mcp.scope} scope in {mcp.config_path}")
    else:
        lines.append(f"[bold cyan]MCP server:[/] [yellow]not configured[/] [dim]({mcp.reason})[/]")
    if installation.is_installed:
        lines.append(f"[bold cyan]CLI:[/] {installation.install_path} ({installation.version})")
    else:
        lines.append(f"[bold cyan]CLI:[/] [yellow]{installation.reason}[/]")

    console.print(Panel.fit("\n".join(lines), title="TaskMaster Status", border_style="bright_blue"))


@app.command("tasks")
def list_tasks(
    project: Path = typer.Argument(..., exists=True, file_okay=False, readable=True, resolve_path=True),
    status_filter: Optional[str] = typer.Option(None, "--status", "-s", help="Only show tasks with this status."),
) -> None:
    """
    List the tasks of a project in the normalized form the API serves.
    """

    try:
        result = load_project_tasks(project)
    except TaskFileError as exc:
        console.print(f"[red]Error: {exc}[/]")
        raise typer.Exit(code=1)
    if result is None:
        console.print("[yellow]No tasks.json file found.[/]")
        return

    table = Table(title=f"Tasks ({result.current_tag})")
    table.add_column("ID", justify="right")
    table.add_column("Title")
    table.add_column("Status")
    table.add_column("Priority")
    table.add_column("Deps")
    table.add_column("Subtasks", justify="right")
    for task in result.tasks:
        if status_filter and task.status != status_filter:
            continue
        table.add_row(
            str(task.id),
            task.title,
            _styled(task.status),
            task.priority,
            ", ".join(str(dep) for dep in task.dependencies),
            str(len(task.subtasks)),
        )
    console.print(table)
    console.print(
        f"[dim]{result.done_count}/{result.total} done "
        f"({completion_percentage(result.done_count, result.total)}%)[/]"
    )


@app.command()
def mcp() -> None:
    """
    Show whether the task-master-ai MCP server is configured for Claude.
    """

    status = detect_taskmaster_mcp_server(get_settings().claude_config_paths)
    if not status.has_mcp_server:
        console.print(f"[yellow]{status.reason}[/]")
        if status.available_servers:
            console.print(f"[dim]Available servers: {', '.join(status.available_servers)}[/]")
        raise typer.Exit(code=1)

    config = status.config
    lines = [
        f"[bold cyan]Scope:[/] {status.scope}",
        f"[bold cyan]Config:[/] {status.config_path}",
        f"[bold cyan]Type:[/] {config.get('type')}",
    ]
    if config.get("command"):
        lines.append(f"[bold cyan]Command:[/] {config['command']} {' '.join(config.get('args') or [])}")
    if config.get("url"):
        lines.append(f"[bold cyan]URL:[/] {config['url']}")
    lines.append(f"[bold cyan]API keys:[/] {', '.join(config.get('envVars') or []) or 'none'}")
    console.print(Panel.fit("\n".join(lines), title="TaskMaster MCP Server", border_style="bright_blue"))


@app.command()
def projects(
    add: Optional[Path] = typer.Option(None, "--add", file_okay=False, resolve_path=True, help="Register a project directory."),
    name: Optional[str] = typer.Option(None, "--name", help="Name for --add (defaults to the directory name)."),
    remove: Optional[str] = typer.Option(None, "--remove", help="Forget a manually registered project."),
) -> None:
    """
    List known projects; optionally register or forget one.
    """

    settings = get_settings()
    store = JsonStore(settings.state_dir)
    if add is not None:
        store.upsert_project(name or add.name, add)
        console.print(f"[green]Registered {name or add.name} -> {add}[/]")
    if remove is not None:
        if store.remove_project(remove):
            console.print(f"[green]Removed {remove}[/]")
        else:
            console.print(f"[red]Error: no manual project named {remove}[/]")
            raise typer.Exit(code=1)

    registry = ProjectRegistry(store, settings.claude_projects_dir)
    found = registry.list_projects()
    if not found:
        console.print("[yellow]No projects found.[/]")
        return
    table = Table(title="Projects")
    table.add_column("Name")
    table.add_column("Display name")
    table.add_column("Path")
    table.add_column("Source")
    for project in found:
        table.add_row(project.name, project.display_name, project.path, project.source)
    console.print(table)


@app.command()
def templates() -> None:
    """
    List the built-in PRD templates.
    """

    table = Table(title="PRD Templates")
    table.add_column("ID")
    table.add_column("Name")
    table.add_column("Category")
    table.add_column("Description")
    for template in list_templates():
        table.add_row(template.id, template.name, template.category, template.description)
    console.print(table)


@app.command()
def placeholders(template_id: str = typer.Argument(..., help="Template id, e.g. web-app.")) -> None:
    """
    Print the [placeholder] names a template expects as customizations.
    """

    template = get_template(template_id)
    if template is None:
        console.print(f"[red]Error: unknown template {template_id}[/]")
        raise typer.Exit(code=1)
    names: List[str] = find_placeholders(template.content)
    if not names:
        console.print("[cyan]No placeholders.[/]")
        return
    for placeholder in names:
        console.print(f"  - {placeholder}")


@app.command("tasks-enabled")
def tasks_enabled(
    value: Optional[str] = typer.Argument(None, help="'on' or 'off'; omit to show the current value."),
) -> None:
    """
    Show or set the tasks feature flag.
    """

    settings = get_settings()
    store = JsonStore(settings.state_dir)
    if value is not None:
        lowered = value.lower()
        if lowered not in {"on", "off"}:
            console.print("[red]Error: expected 'on' or 'off'[/]")
            raise typer.Exit(code=1)
        store.set_tasks_enabled(lowered == "on")

    installed = check_installation(settings.cli_binary).is_installed
    enabled = effective_tasks_enabled(store, installed)
    source = "explicit" if store.get_tasks_enabled() is not None else "default"
    console.print(f"Tasks {'[green]enabled[/]' if enabled else '[yellow]disabled[/]'} [dim]({source})[/]")


def main() -> None:
    app()
