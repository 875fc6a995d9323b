"""Models package - re-exports for convenience."""

from tenantscope.models.entities import (
    Project,
    ProjectCreate,
    ProjectUpdate,
    Task,
    TaskCreate,
    TenantOwned,
)

__all__ = [
    "Project",
    "ProjectCreate",
    "ProjectUpdate",
    "Task",
    "TaskCreate",
    "TenantOwned",
]
