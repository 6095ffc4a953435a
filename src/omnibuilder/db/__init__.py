"""omnibuilder database layer."""

from omnibuilder.db.connection import Database
from omnibuilder.db.migrations import MIGRATIONS, run_migrations
from omnibuilder.db.repository import ProjectStore, RepositoryStore
from omnibuilder.db.schema import initialize

__all__ = [
    "Database",
    "initialize",
    "run_migrations",
    "MIGRATIONS",
    "ProjectStore",
    "RepositoryStore",
]
