"""CLI entry point.

Provides the main CLI application with commands for:
- serve: Run the API server
- validate: Validate a workflow file offline
- deploy / deployments: Deploy and roll back stored workflows
- sync: Reconcile execution statistics from the engine
- health: Probe the execution engine
"""

import asyncio
import json
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

app = typer.Typer(
    name="clixen",
    help="Workflow validation and deployment for the execution engine",
    add_completion=False,
    no_args_is_help=True,
)

console = Console()


@app.callback()
def main(
    log_level: Annotated[
        Optional[str],  # noqa: UP007
        typer.Option("--log-level", help="DEBUG, INFO, WARNING or ERROR"),
    ] = None,
) -> None:
    """Configure logging before any command runs."""
    from src.logging_config import configure_logging

    configure_logging(log_level.upper() if log_level else None)  # type: ignore[arg-type]


@app.command()
def serve(
    host: Annotated[
        str,
        typer.Option("--host", "-h", help="Host to bind to"),
    ] = "0.0.0.0",  # noqa: S104
    port: Annotated[
        int,
        typer.Option("--port", "-p", help="Port to bind to"),
    ] = 8000,
    reload: Annotated[
        bool,
        typer.Option("--reload", "-r", help="Enable auto-reload for development"),
    ] = False,
) -> None:
    """Start the Clixen API server with uvicorn."""
    import uvicorn

    console.print(
        Panel(
            f"[bold green]Starting Clixen API Server[/bold green]\n"
            f"Host: {host}\n"
            f"Port: {port}\n"
            f"Reload: {reload}",
            title="Clixen",
            border_style="green",
        )
    )

    uvicorn.run(
        "src.api.main:app",
        host=host,
        port=port,
        reload=reload,
        log_level="info",
    )


@app.command()
def validate(
    path: Annotated[
        Path,
        typer.Argument(help="Workflow document (JSON or YAML)", exists=True, dir_okay=False),
    ],
    as_json: Annotated[
        bool,
        typer.Option("--json", help="Print the validation envelope as JSON"),
    ] = False,
    engine_types: Annotated[
        bool,
        typer.Option("--engine-types", help="Also recognise node types the engine reports"),
    ] = False,
) -> None:
    """Validate a workflow file.

    Runs offline unless --engine-types is given, in which case the engine's
    node type catalog is layered over the built-in one. Exits with status 1
    when the workflow has errors.
    """
    from src.schema import (
        get_default_registry,
        load_workflow_file,
        validate_workflow,
        validation_response,
    )

    try:
        document = load_workflow_file(path)
    except ValueError as e:
        console.print(f"[red]Cannot read {path}: {e}[/red]")
        raise typer.Exit(code=1) from e

    registry = get_default_registry()
    if engine_types:
        registry = registry.with_types(asyncio.run(_engine_registry()))

    result = validate_workflow(document, registry)

    if as_json:
        console.print_json(json.dumps(validation_response(result)))
    else:
        _print_validation(result.to_dict())

    if not result.valid:
        raise typer.Exit(code=1)


async def _engine_registry():
    """Fetch the engine's node types as a registry; empty when unavailable."""
    from src.engine import get_engine_client
    from src.schema import registry_from_engine

    engine = get_engine_client()
    try:
        response = await engine.get_node_types()
    finally:
        await engine.close()

    if not response.get("success"):
        console.print(f"[yellow]Engine node types unavailable: {response.get('error')}[/yellow]")
        return registry_from_engine([])

    node_types = response["nodeTypes"]
    if isinstance(node_types, dict):
        node_types = node_types.get("data") or []
    return registry_from_engine(node_types)


def _print_validation(validation: dict) -> None:  # type: ignore[type-arg]
    """Render a validation result."""
    if validation["valid"]:
        console.print("[green]Workflow is valid.[/green]")
    else:
        console.print(f"[red]Workflow has {len(validation['errors'])} error(s).[/red]")

    for error in validation["errors"]:
        console.print(f"  [red]error[/red]   {error}")
    for warning in validation["warnings"]:
        console.print(f"  [yellow]warning[/yellow] {warning}")
    for suggestion in validation["suggestions"]:
        console.print(f"  [dim]hint[/dim]    {suggestion}")


@app.command()
def deploy(
    workflow_id: Annotated[str, typer.Argument(help="Stored workflow ID")],
    activate: Annotated[
        bool,
        typer.Option("--activate", "-a", help="Activate on the engine after creation"),
    ] = False,
    retry: Annotated[
        bool,
        typer.Option("--retry", help="Retry transport failures with backoff"),
    ] = False,
) -> None:
    """Validate and deploy a stored workflow's current version."""
    outcome = asyncio.run(_deploy(workflow_id, activate, retry))

    if outcome.success:
        console.print("[green]Deployment successful![/green]")
        console.print(f"[dim]Deployment: {outcome.deployment_id} (v{outcome.version})[/dim]")
        console.print(f"[dim]Engine workflow: {outcome.engine_workflow_id}[/dim]")
        return

    console.print(f"[red]Deployment failed: {outcome.error}[/red]")
    if outcome.validation:
        _print_validation(outcome.validation)
    raise typer.Exit(code=1)


async def _deploy(workflow_id: str, activate: bool, retry: bool):
    from src.deployment import DeploymentOrchestrator
    from src.engine import get_engine_client
    from src.storage import get_session

    engine = get_engine_client()
    try:
        async with get_session() as session:
            orchestrator = DeploymentOrchestrator(session, engine)
            if retry:
                return await orchestrator.deploy_with_retry(workflow_id, activate=activate)
            return await orchestrator.deploy(workflow_id, activate=activate)
    finally:
        await engine.close()


deployments_app = typer.Typer(
    help="Inspect and roll back deployments",
    no_args_is_help=True,
)
app.add_typer(deployments_app, name="deployments")


@deployments_app.command("list")
def deployments_list(
    workflow_id: Annotated[str, typer.Argument(help="Stored workflow ID")],
    limit: Annotated[
        int,
        typer.Option("--limit", "-l", help="Maximum number to show"),
    ] = 20,
) -> None:
    """List deployments of a workflow, newest version first."""
    asyncio.run(_list_deployments(workflow_id, limit))


async def _list_deployments(workflow_id: str, limit: int) -> None:
    from src.dal import DeploymentRepository
    from src.storage import get_session

    async with get_session() as session:
        deployments = await DeploymentRepository(session).list_for_workflow(workflow_id, limit=limit)

    if not deployments:
        console.print("[dim]No deployments found.[/dim]")
        return

    status_colors = {
        "pending": "dim",
        "deploying": "yellow",
        "deployed": "green",
        "failed": "red",
        "rolled_back": "magenta",
    }

    table = Table(title=f"Deployments ({len(deployments)})", show_header=True)
    table.add_column("ID", style="cyan", max_width=12)
    table.add_column("Version", justify="right")
    table.add_column("Status")
    table.add_column("Engine ID")
    table.add_column("Started")

    for d in deployments:
        color = status_colors.get(str(d.status), "white")
        table.add_row(
            d.id[:12] + "...",
            str(d.version),
            f"[{color}]{d.status}[/{color}]",
            d.engine_workflow_id or "-",
            d.started_at.strftime("%Y-%m-%d %H:%M") if d.started_at else "-",
        )

    console.print(table)


@deployments_app.command("rollback")
def deployments_rollback(
    deployment_id: Annotated[str, typer.Argument(help="Deployment ID to roll back")],
    reason: Annotated[
        Optional[str],  # noqa: UP007
        typer.Option("--reason", "-r", help="Reason recorded on the deployment"),
    ] = None,
) -> None:
    """Deactivate and remove a deployed version from the engine."""
    outcome = asyncio.run(_rollback(deployment_id, reason))

    if not outcome.success:
        console.print(f"[red]{outcome.error}[/red]")
        raise typer.Exit(code=1)
    console.print("[green]Rollback successful![/green]")


async def _rollback(deployment_id: str, reason: str | None):
    from src.deployment import DeploymentOrchestrator
    from src.engine import get_engine_client
    from src.storage import get_session

    engine = get_engine_client()
    try:
        async with get_session() as session:
            return await DeploymentOrchestrator(session, engine).rollback(deployment_id, reason=reason)
    finally:
        await engine.close()


@app.command()
def sync(
    workflow_id: Annotated[
        Optional[str],  # noqa: UP007
        typer.Option("--workflow", "-w", help="Reconcile only this workflow"),
    ] = None,
    user_id: Annotated[
        Optional[str],  # noqa: UP007
        typer.Option("--user", "-u", help="Restrict a batch run to one user"),
    ] = None,
) -> None:
    """Reconcile execution statistics from the engine."""
    result = asyncio.run(_sync(workflow_id, user_id))

    if workflow_id:
        color = "green" if result["status"] == "success" else "red"
        console.print(
            f"[{color}]{result['status']}[/{color}]: "
            f"{result['executions_updated']} execution(s) counted"
        )
        if result["error"]:
            console.print(f"[dim]{result['error']}[/dim]")
        if result["status"] == "error":
            raise typer.Exit(code=1)
        return

    table = Table(title=f"Sync ({result['status']})", show_header=True)
    table.add_column("Metric", style="cyan")
    table.add_column("Count", justify="right")
    table.add_row("Workflows Processed", str(result["workflows_processed"]))
    table.add_row("Successful", str(result["successful_syncs"]))
    table.add_row("Failed", str(result["failed_syncs"]))
    table.add_row("Skipped", str(result["skipped_syncs"]))
    table.add_row("Executions Updated", str(result["executions_updated"]))
    table.add_row("Duration", f"{result['duration_ms']}ms")
    console.print(table)

    for error in result["errors"]:
        console.print(f"  [red]{error['workflow_id']}[/red] {error['error']}")
    if result["status"] == "error":
        raise typer.Exit(code=1)


async def _sync(workflow_id: str | None, user_id: str | None) -> dict:  # type: ignore[type-arg]
    from src.dal import WorkflowSyncService
    from src.engine import get_engine_client
    from src.storage import get_session

    engine = get_engine_client()
    try:
        async with get_session() as session:
            service = WorkflowSyncService(session, engine)
            if workflow_id:
                return (await service.reconcile(workflow_id)).to_dict()
            return (await service.reconcile_all(user_id=user_id)).to_dict()
    finally:
        await engine.close()


@app.command()
def maintenance() -> None:
    """Fail stale deployments and retry transport failures once."""
    failed, retried = asyncio.run(_maintenance())
    console.print(f"Stale deployments failed: {failed}")
    console.print(f"Deployments retried: {len(retried)} ({sum(o.success for o in retried)} succeeded)")


async def _maintenance():
    from src.deployment import fail_stale_deployments, retry_failed_deployments
    from src.engine import get_engine_client
    from src.storage import get_session

    engine = get_engine_client()
    try:
        async with get_session() as session:
            failed = await fail_stale_deployments(session)
            retried = await retry_failed_deployments(session, engine)
        return failed, retried
    finally:
        await engine.close()


@app.command()
def health() -> None:
    """Probe the execution engine's health endpoint."""
    result = asyncio.run(_health())

    if result.get("healthy"):
        console.print(f"[green]Engine healthy[/green] [dim]({result.get('status')})[/dim]")
        return
    console.print(f"[red]Engine unhealthy: {result.get('error')}[/red]")
    raise typer.Exit(code=1)


async def _health() -> dict:  # type: ignore[type-arg]
    from src.engine import get_engine_client

    engine = get_engine_client()
    try:
        return await engine.health()
    finally:
        await engine.close()


@app.command()
def version() -> None:
    """Show Clixen version information."""
    from src import __version__

    console.print(
        Panel(
            f"[bold]Clixen[/bold] v{__version__}\n"
            "Workflow validation and deployment orchestration",
            title="Version",
            border_style="blue",
        )
    )


# Entry point for: python -m src.cli.main
if __name__ == "__main__":
    app()
