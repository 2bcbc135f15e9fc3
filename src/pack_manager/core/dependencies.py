"""FastAPI dependency injection for service objects and caller identity.

Service objects are built once in the application lifespan and stored on
``app.state``; these dependencies hand them to route handlers and give
tests a single seam for ``app.dependency_overrides``.
"""

from typing import Annotated

from fastapi import Header, Request

from pack_manager.core.background import OperationRunner
from pack_manager.services.manifest_store import ManifestStore
from pack_manager.services.operation_registry import OperationRegistry


def get_manifest_store(request: Request) -> ManifestStore:
    return request.app.state.manifest_store


def get_operation_registry(request: Request) -> OperationRegistry:
    return request.app.state.operation_registry


def get_operation_runner(request: Request) -> OperationRunner:
    return request.app.state.operation_runner


def get_user_id(x_user_id: Annotated[int | None, Header()] = None) -> int | None:
    """Return the caller's user id from the ``X-User-Id`` header.

    Authentication happens upstream; a missing header means a
    system-owned request.
    """
    return x_user_id
