"""Operation status API endpoints for polling background work."""

from fastapi import APIRouter, Depends, Query

from pack_manager.core.config import Settings, get_settings
from pack_manager.core.dependencies import get_operation_registry
from pack_manager.models.operation import OperationStatus
from pack_manager.schemas.operation import OperationListResponse, OperationResponse, OperationStatsResponse
from pack_manager.services.operation_registry import MAX_LIST_LIMIT, OperationNotFoundError, OperationRegistry

operations_router = APIRouter(prefix="/operations", tags=["operations"])


@operations_router.get("", response_model=OperationListResponse)
async def list_operations(
    user_id: int | None = Query(None, description="Only operations owned by this user"),
    status: OperationStatus | None = Query(None, description="Only operations in this status"),
    operation_type: str | None = Query(None, description="Only operations of this type"),
    limit: int | None = Query(None, ge=1, le=MAX_LIST_LIMIT),
    registry: OperationRegistry = Depends(get_operation_registry),
    settings: Settings = Depends(get_settings),
) -> OperationListResponse:
    """List operations, most recently created first."""
    operations = await registry.list(
        user_id,
        status=status,
        operation_type=operation_type,
        limit=limit or settings.operations_list_default_limit,
    )
    items = [OperationResponse.model_validate(operation) for operation in operations]
    return OperationListResponse(items=items, count=len(items))


@operations_router.get("/stats", response_model=OperationStatsResponse)
async def operation_stats(
    registry: OperationRegistry = Depends(get_operation_registry),
) -> OperationStatsResponse:
    """Count operations per status."""
    counts = await registry.stats()
    return OperationStatsResponse(**counts, total=sum(counts.values()))


@operations_router.get("/{operation_id}", response_model=OperationResponse)
async def get_operation(
    operation_id: str,
    registry: OperationRegistry = Depends(get_operation_registry),
) -> OperationResponse:
    """Get a single operation's status."""
    operation = await registry.get(operation_id)
    if operation is None:
        raise OperationNotFoundError(operation_id)
    return OperationResponse.model_validate(operation)
