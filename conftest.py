"""Global pytest configuration."""

import os

# Pin settings for tests before any imports
os.environ.setdefault("TENANTSCOPE_STORAGE_BACKEND", "memory")
os.environ.setdefault("TENANTSCOPE_ALLOW_DEV_TOKENS", "true")
os.environ.setdefault("TENANTSCOPE_SEED_DEV_DATA", "false")
