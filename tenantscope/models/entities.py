"""Tenant-owned entity models."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class TenantOwned(BaseModel):
    """Fields every tenant-owned entity carries.

    ``tenant_id`` and ``created_by`` are stamped by the data-access handle on
    save; values supplied by callers are overwritten.
    """

    model_config = ConfigDict(extra="ignore")

    id: int | None = None
    tenant_id: str | None = None
    created_by: str | None = None
    created_at: datetime | None = None


class Project(TenantOwned):
    """A tenant's project."""

    name: str = Field(..., min_length=1, max_length=200)
    description: str = ""


class Task(TenantOwned):
    """A unit of work inside a project."""

    project_id: int
    title: str = Field(..., min_length=1, max_length=200)
    done: bool = False


class ProjectCreate(BaseModel):
    """Request body for POST /projects.

    ``tenant_id`` and ``created_by`` are accepted so that clients sending them
    do not get a validation error, but they are never honored.
    """

    name: str = Field(..., min_length=1, max_length=200)
    description: str = ""
    tenant_id: str | None = None
    created_by: str | None = None


class ProjectUpdate(BaseModel):
    """Request body for PUT /projects/{project_id}."""

    name: str = Field(..., min_length=1, max_length=200)
    description: str = ""
    tenant_id: str | None = None


class TaskCreate(BaseModel):
    """Request body for POST /projects/{project_id}/tasks."""

    title: str = Field(..., min_length=1, max_length=200)
    done: bool = False
    tenant_id: str | None = None
