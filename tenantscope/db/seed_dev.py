"""Dev seeding helper for dev-token authentication."""

import logging

from tenantscope.config import Settings, get_settings
from tenantscope.db.builder import ContextBuilder
from tenantscope.db.context import Identity
from tenantscope.db.engine import create_storage_from_settings

logger = logging.getLogger(__name__)

# Identities usable as dev tokens, e.g. "Bearer acme:u-acme"
DEV_IDENTITIES = (
    Identity(user_id="u-acme", tenant_id="acme"),
    Identity(user_id="u-globex", tenant_id="globex"),
)

DEV_PROJECT_NAME = "Getting started"


def seed_dev_data(builder: ContextBuilder) -> int:
    """Seed one demo project per dev tenant.

    Writes go through ordinary request contexts, so seeded rows are stamped
    exactly like rows created over HTTP. Idempotent - safe to run repeatedly.

    Returns:
        Number of projects created
    """
    created = 0

    for identity in DEV_IDENTITIES:
        ctx = builder.build(identity)
        projects = ctx.lookup("project")

        if projects.count(name=DEV_PROJECT_NAME):
            logger.info(f"Dev project already exists for tenant {identity.tenant_id}")
            continue

        project = projects.save(
            {"name": DEV_PROJECT_NAME, "description": f"Demo project for {identity.tenant_id}"}
        )
        ctx.lookup("task").save({"project_id": project.id, "title": "Invite your team"})
        logger.info(f"Created dev project {project.id} for tenant {identity.tenant_id}")
        created += 1

    return created


def seed_from_settings(settings: Settings) -> int:
    """Seed the configured storage with the same tenant rules as the app."""
    builder = ContextBuilder(
        create_storage_from_settings(settings),
        tenant_id_pattern=settings.tenant_id_pattern,
    )
    return seed_dev_data(builder)


if __name__ == "__main__":
    seed_from_settings(get_settings())
