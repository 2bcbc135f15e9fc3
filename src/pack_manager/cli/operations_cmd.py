"""Operation CLI commands for inspecting background work."""

import asyncio
import json

import typer

from pack_manager.models.operation import OperationStatus

operations_app = typer.Typer()


@operations_app.command("list")
def operations_list(
    user_id: int | None = typer.Option(None, "--user", help="Only operations owned by this user"),
    status: OperationStatus | None = typer.Option(None, "--status", help="Only operations in this status"),
    limit: int = typer.Option(50, "--limit", min=1, max=500, help="Maximum number of operations"),
) -> None:
    """List operations, most recently created first."""
    asyncio.run(_operations_list(user_id, status, limit))


@operations_app.command("show")
def operations_show(
    operation_id: str = typer.Argument(..., help="Operation id"),
) -> None:
    """Show a single operation as JSON."""
    asyncio.run(_operations_show(operation_id))


async def _operations_list(user_id: int | None, status: OperationStatus | None, limit: int) -> None:
    """Async implementation of operations list."""
    from pack_manager.core.config import get_settings
    from pack_manager.core.database import dispose_engine, get_session_factory, init_engine
    from pack_manager.services.operation_registry import OperationRegistry

    settings = get_settings()
    init_engine(settings.database_url, schema=settings.database_schema)
    try:
        registry = OperationRegistry(get_session_factory())
        operations = await registry.list(user_id, status=status, limit=limit)
        if not operations:
            typer.echo("No operations found.")
            return
        for op in operations:
            progress = "-" if op.progress is None else f"{op.progress}%"
            typer.echo(f"{op.operation_id}  {op.status:<8} {progress:>5}  {op.created_at}  {op.message or ''}")
    finally:
        await dispose_engine()


async def _operations_show(operation_id: str) -> None:
    """Async implementation of operations show."""
    from pack_manager.core.config import get_settings
    from pack_manager.core.database import dispose_engine, get_session_factory, init_engine
    from pack_manager.services.operation_registry import OperationRegistry

    settings = get_settings()
    init_engine(settings.database_url, schema=settings.database_schema)
    try:
        operation = await OperationRegistry(get_session_factory()).get(operation_id)
    finally:
        await dispose_engine()

    if operation is None:
        typer.echo(f"Operation {operation_id} not found", err=True)
        raise typer.Exit(code=1)
    typer.echo(json.dumps(operation.to_record(), indent=2, default=str))
