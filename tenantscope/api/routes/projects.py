"""Project endpoints.

Handlers get their tenant scope only through the request context; no tenant
identifier appears in any signature below.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Response, status

from tenantscope.api.auth import get_request_context
from tenantscope.db.context import RequestContext
from tenantscope.models.entities import Project, ProjectCreate, ProjectUpdate, Task, TaskCreate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/projects", tags=["projects"])

Ctx = Annotated[RequestContext, Depends(get_request_context)]


@router.get("", response_model=list[Project])
def list_projects(ctx: Ctx) -> list[Project]:
    """List the caller's projects."""
    return list(ctx.lookup("project").find())


@router.post("", response_model=Project, status_code=status.HTTP_201_CREATED)
def create_project(request: ProjectCreate, ctx: Ctx) -> Project:
    """Create a project owned by the caller's tenant.

    Any tenant_id or created_by in the body is ignored.
    """
    project = ctx.lookup("project").save(
        Project(name=request.name, description=request.description)
    )
    logger.info(f"[POST /projects] tenant={ctx.tenant_id} project_id={project.id}")
    return project


@router.get("/{project_id}", response_model=Project)
def get_project(project_id: int, ctx: Ctx) -> Project:
    """Get one of the caller's projects."""
    return ctx.lookup("project").find_by_id(project_id)


@router.put("/{project_id}", response_model=Project)
def update_project(project_id: int, request: ProjectUpdate, ctx: Ctx) -> Project:
    """Update one of the caller's projects."""
    return ctx.lookup("project").save(
        Project(id=project_id, name=request.name, description=request.description)
    )


@router.delete("/{project_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_project(project_id: int, ctx: Ctx) -> Response:
    """Delete one of the caller's projects and its tasks."""
    ctx.lookup("project").delete(project_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{project_id}/tasks", response_model=list[Task])
def list_project_tasks(project_id: int, ctx: Ctx) -> list[Task]:
    """List tasks of one of the caller's projects."""
    return list(ctx.lookup("task").find_for_project(project_id))


@router.post("/{project_id}/tasks", response_model=Task, status_code=status.HTTP_201_CREATED)
def create_project_task(project_id: int, request: TaskCreate, ctx: Ctx) -> Task:
    """Create a task in one of the caller's projects."""
    return ctx.lookup("task").save(
        Task(project_id=project_id, title=request.title, done=request.done)
    )
