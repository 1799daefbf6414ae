"""Database package: session and lifecycle."""
from postflow.models.db_models import (
    Integration,
    Media,
    PopularPost,
    Post,
    PromptTemplate,
    create_tables,
    get_db,
    init_db,
)

__all__ = [
    "Integration",
    "Media",
    "PopularPost",
    "Post",
    "PromptTemplate",
    "create_tables",
    "get_db",
    "init_db",
]
