"""
ringside.db
===========

SQLite persistence layer for Ringside.

This module exposes:

* ``engine`` – a global SQLModel engine pointing at ``settings.DB_URL``
* ``SessionLocal`` – a session factory used via ``with SessionLocal() as s:``
* ``make_engine()`` – build an engine for another URL (tests, tooling)
* ``create_all()`` – helper to create tables at first run
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, Index, text
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool
from sqlmodel import Field, Session, SQLModel, create_engine

from ringside.models import (
    EntityType,
    Membership,
    PeriodKind,
    RelationKind,
    RosterEntity,
    StatusPeriod,
)
from ringside.settings import DB_ECHO, DB_URL

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------
def make_engine(url: str = DB_URL, echo: bool = DB_ECHO) -> Engine:
    """
    Create an engine for *url*.

    In-memory SQLite URLs get a single shared connection so every session
    sees the same database.
    """
    if url in ("sqlite://", "sqlite:///:memory:"):
        return create_engine(
            url,
            echo=echo,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_engine(url, echo=echo)


engine = make_engine()


# ---------------------------------------------------------------------------
# Session factory
# ---------------------------------------------------------------------------
def SessionLocal(bind: Optional[Engine] = None) -> Session:  # noqa: N802 (factory camel-case)
    """Return a new Session bound to *bind* or the global engine."""
    return Session(bind or engine)


# ---------------------------------------------------------------------------
# ORM models mirroring ringside.models
# ---------------------------------------------------------------------------
class RosterEntityRow(SQLModel, table=True):
    """
    SQLite-backed :class:`ringside.models.RosterEntity`.

    ``version`` is bumped by every write touching the entity's periods or
    memberships; concurrent units of work compare it to detect lost updates.
    """

    __tablename__ = "roster_entities"

    id: Optional[int] = Field(default=None, primary_key=True)
    entity_type: EntityType = Field(index=True)
    name: str
    deleted_at: Optional[datetime] = Field(default=None, sa_type=DateTime)
    version: int = 0

    @classmethod
    def from_entity(cls, ent: RosterEntity) -> "RosterEntityRow":
        return cls(
            id=ent.id,
            entity_type=ent.entity_type,
            name=ent.name,
            deleted_at=ent.deleted_at,
        )

    def to_entity(self) -> RosterEntity:
        return RosterEntity(
            entity_type=self.entity_type,
            name=self.name,
            id=self.id,
            deleted_at=self.deleted_at,
        )


class StatusPeriodRow(SQLModel, table=True):
    """
    One status period.

    The partial unique index lets the database itself reject a second
    current period of the same kind when two writers race.
    """

    __tablename__ = "status_periods"
    __table_args__ = (
        Index(
            "uq_status_periods_current",
            "entity_type",
            "entity_id",
            "kind",
            unique=True,
            sqlite_where=text("ended_at IS NULL"),
            postgresql_where=text("ended_at IS NULL"),
        ),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    entity_id: int = Field(foreign_key="roster_entities.id", index=True)
    entity_type: EntityType
    kind: PeriodKind
    started_at: datetime = Field(sa_type=DateTime)
    ended_at: Optional[datetime] = Field(default=None, sa_type=DateTime)

    @classmethod
    def from_period(cls, p: StatusPeriod) -> "StatusPeriodRow":
        return cls(
            id=p.id,
            entity_id=p.entity_id,
            entity_type=p.entity_type,
            kind=p.kind,
            started_at=p.started_at,
            ended_at=p.ended_at,
        )

    def to_period(self) -> StatusPeriod:
        return StatusPeriod(
            entity_id=self.entity_id,
            entity_type=self.entity_type,
            kind=self.kind,
            started_at=self.started_at,
            ended_at=self.ended_at,
            id=self.id,
        )


class MembershipRow(SQLModel, table=True):
    """Composite ↔ member association with join / leave dates."""

    __tablename__ = "memberships"
    __table_args__ = (
        Index(
            "uq_memberships_current",
            "relation",
            "composite_id",
            "member_id",
            unique=True,
            sqlite_where=text("left_at IS NULL"),
            postgresql_where=text("left_at IS NULL"),
        ),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    relation: RelationKind = Field(index=True)
    composite_id: int = Field(foreign_key="roster_entities.id", index=True)
    member_id: int = Field(foreign_key="roster_entities.id", index=True)
    member_type: EntityType
    joined_at: datetime = Field(sa_type=DateTime)
    left_at: Optional[datetime] = Field(default=None, sa_type=DateTime)

    @classmethod
    def from_membership(cls, m: Membership) -> "MembershipRow":
        return cls(
            id=m.id,
            relation=m.relation,
            composite_id=m.composite_id,
            member_id=m.member_id,
            member_type=m.member_type,
            joined_at=m.joined_at,
            left_at=m.left_at,
        )

    def to_membership(self) -> Membership:
        return Membership(
            relation=self.relation,
            composite_id=self.composite_id,
            member_id=self.member_id,
            member_type=self.member_type,
            joined_at=self.joined_at,
            left_at=self.left_at,
            id=self.id,
        )


# ---------------------------------------------------------------------------
# Utility: create tables
# ---------------------------------------------------------------------------
def create_all(bind: Optional[Engine] = None) -> None:
    """Create all tables (safe if they already exist)."""
    SQLModel.metadata.create_all(bind or engine)
    logger.info("ringside schema initialised")


def drop_all(bind: Optional[Engine] = None) -> None:
    SQLModel.metadata.drop_all(bind or engine)
    logger.warning("ringside schema dropped")


# ---------------------------------------------------------------------------
# Lightweight CLI
# ---------------------------------------------------------------------------
if __name__ == "__main__":
    """
    Quick bootstrap helper.

    Examples
    --------
    $ python -m ringside.db --create        # first-time table creation
    $ python -m ringside.db --drop --create # wipe and rebuild
    """
    import argparse
    import textwrap

    from ringside.settings import LOG_FORMAT, LOG_LEVEL

    logging.basicConfig(level=LOG_LEVEL, format=LOG_FORMAT)

    parser = argparse.ArgumentParser(
        prog="python -m ringside.db",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        description=textwrap.dedent(
            """\
            Ringside DB utilities
            ---------------------
            --create   Create all SQLModel tables (safe if they already exist)
            --drop     Drop every Ringside table first
            """
        ),
    )
    parser.add_argument("--create", action="store_true", help="create tables")
    parser.add_argument("--drop", action="store_true", help="drop tables")
    args = parser.parse_args()

    if args.drop:
        drop_all()
    if args.create:
        create_all()
