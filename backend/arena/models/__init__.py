"""Model registration module used by alembic autogeneration."""

from arena.schema import metadata  # noqa: F401
