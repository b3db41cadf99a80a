"""
Table definitions and engine setup for PawMatch.
"""

from datetime import datetime, timezone
from typing import Optional
from loguru import logger
from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Engine,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    create_engine,
)

from ..config import Settings, get_settings

metadata = MetaData()


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


animals = Table(
    "animals",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("owner_id", String(64), nullable=False, index=True),
    Column("name", String(30), nullable=False),
    Column("breed", String(50), nullable=False),
    Column("sex", String(6), nullable=False),
    Column("age_in_months", Integer, nullable=False),
    Column("description", String(200), nullable=False, default=""),
    Column("image_urls", JSON, nullable=False, default=list),
    Column("matched", Boolean, nullable=False, default=False),
    Column("pairing_count", Integer, nullable=False, default=0),
    Column("is_deleted", Boolean, nullable=False, default=False),
    Column("created_at", DateTime(timezone=True), nullable=False, default=utc_now),
    CheckConstraint("pairing_count >= 0", name="ck_animals_pairing_count_non_negative"),
    CheckConstraint("sex in ('male', 'female')", name="ck_animals_sex"),
)


matches = Table(
    "matches",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("issuer_user_id", String(64), nullable=False),
    Column("receiver_user_id", String(64), nullable=False),
    Column("issuer_animal_id", Integer, nullable=False),
    Column("receiver_animal_id", Integer, nullable=False),
    Column("message", String(120), nullable=False, default=""),
    Column("resolved", Boolean, nullable=False, default=False),
    Column("created_at", DateTime(timezone=True), nullable=False, default=utc_now),
    CheckConstraint("issuer_animal_id <> receiver_animal_id", name="ck_matches_distinct_animals"),
    Index("ix_matches_issuer_animal_id", "issuer_animal_id"),
    Index("ix_matches_receiver_animal_id", "receiver_animal_id"),
    Index("ix_matches_issuer_user_id", "issuer_user_id"),
    Index("ix_matches_receiver_user_id", "receiver_user_id"),
)


def build_engine(settings: Optional[Settings] = None) -> Engine:
    """
    Create a SQLAlchemy engine from settings.

    Args:
        settings: Application settings (defaults to the global instance)

    Returns:
        Configured engine
    """
    settings = settings or get_settings()

    kwargs = {"echo": settings.db_echo}
    if not settings.is_sqlite():
        kwargs["pool_size"] = settings.db_pool_size
        kwargs["pool_pre_ping"] = True

    engine = create_engine(settings.database_url, **kwargs)
    logger.info(f"Database engine created for dialect {engine.dialect.name}")
    return engine


def init_db(engine: Engine) -> None:
    """Create all tables that do not exist yet."""
    metadata.create_all(engine)
    logger.info("Database schema initialized")
