"""Operation Pydantic v2 schemas."""

from typing import Any

from pydantic import BaseModel


class OperationResponse(BaseModel):
    """Persisted operation record."""

    operation_id: str
    operation_type: str
    status: str
    progress: int | None = None
    message: str | None = None
    result_data: Any = None
    user_id: int | None = None
    created_at: str
    started_at: str | None = None
    updated_at: str

    model_config = {"from_attributes": True}


class OperationListResponse(BaseModel):
    items: list[OperationResponse]
    count: int


class OperationStatsResponse(BaseModel):
    """Number of operations per status."""

    queued: int = 0
    running: int = 0
    success: int = 0
    failed: int = 0
    total: int = 0


class OperationAccepted(BaseModel):
    """Returned when background work has been queued."""

    operation_id: str
    status: str
    message: str | None = None
