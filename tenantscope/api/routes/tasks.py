"""Task endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends

from tenantscope.api.auth import get_request_context
from tenantscope.db.context import RequestContext
from tenantscope.models.entities import Task

router = APIRouter(prefix="/tasks", tags=["tasks"])


@router.get("/{task_id}", response_model=Task)
def get_task(task_id: int, ctx: Annotated[RequestContext, Depends(get_request_context)]) -> Task:
    """Get one of the caller's tasks."""
    return ctx.lookup("task").find_by_id(task_id)
