"""
Single entry-point that wires settings, logging and SQLAlchemy together.
Call once, e.g. in an application start-up hook.
"""

from __future__ import annotations

from sqlalchemy import MetaData

from .config import Settings, get_settings
from .observability import setup_logging
from .persistence.database import DatabaseSessionManager
from .persistence.models import metadata as default_metadata


async def init_versionic(
    settings: Settings | None = None,
    metadata: MetaData | None = None,
    *,
    configure_logging: bool = True,
) -> DatabaseSessionManager:
    """
    Build the session manager from ``settings`` (env by default), install
    logging and create every table registered on ``metadata``.
    """
    settings = settings or get_settings()
    if configure_logging:
        setup_logging(settings.log_level, settings.log_format)
    db = DatabaseSessionManager(settings.database_url, **settings.engine_kwargs())
    await db.create_all(default_metadata if metadata is None else metadata)  # ← creates tables
    return db
