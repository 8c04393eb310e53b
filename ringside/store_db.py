"""
ringside.store_db
=================

SQLite-backed implementation of the :class:`ringside.store.RosterStore`
surface.

Any code written against :class:`ringside.store.MemoryStore` can switch to
a persistent store without changing its calls.  Atomic units map onto the
session transaction; an optimistic ``version`` column on
``roster_entities`` turns lost updates between two sessions into
:class:`~ringside.errors.ConcurrentModificationError`.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Dict, Iterator, List, Optional

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, col, select

from ringside.capabilities import RELATIONS
from ringside.db import MembershipRow, RosterEntityRow, SessionLocal, StatusPeriodRow
from ringside.errors import ConcurrentModificationError, RingsideError
from ringside.models import (
    EntityType,
    Membership,
    PeriodKind,
    RelationKind,
    RosterEntity,
    StatusPeriod,
)
from ringside.periods import check_close, check_open, current_of, overlapping
from ringside.store import check_join, check_leave

logger = logging.getLogger(__name__)


class DBStore:
    """
    Drop-in replacement for MemoryStore backed by SQLite.

    Methods mirror the in-memory store:
    * entities: add_entity / get_entity / entities / soft_delete / restore
    * periods: open_period / close_period / current_period / periods
    * memberships: open_membership / close_membership / current_memberships
    * atomic units: begin_atomic / commit / rollback / atomic()
    """

    def __init__(self, session: Session | None = None) -> None:
        self._session: Session = session or SessionLocal()
        self._depth = 0
        self._rollback_only = False
        # entity id -> version observed by the current unit of work
        self._seen: Dict[int, int] = {}

    # ------------------------------------------------------------------
    # Atomic units
    # ------------------------------------------------------------------
    def begin_atomic(self) -> None:
        if self._depth == 0:
            self._seen.clear()
            self._rollback_only = False
        self._depth += 1

    def commit(self) -> None:
        self._depth -= 1
        if self._depth > 0:
            return
        self._seen.clear()
        if self._rollback_only:
            self._session.rollback()
            self._rollback_only = False
            raise RingsideError("atomic unit was rolled back by a nested failure")
        try:
            self._session.commit()
        except IntegrityError as exc:
            self._session.rollback()
            raise ConcurrentModificationError(f"commit rejected by the database: {exc.orig}") from exc

    def rollback(self) -> None:
        self._depth -= 1
        if self._depth > 0:
            self._rollback_only = True
            return
        self._seen.clear()
        self._rollback_only = False
        self._session.rollback()

    @contextmanager
    def atomic(self) -> Iterator["DBStore"]:
        """Run the block as one unit; nested blocks join the outer unit."""
        self.begin_atomic()
        try:
            yield self
        except BaseException:
            self.rollback()
            raise
        self.commit()

    # ------------------------------------------------------------------
    # Optimistic locking
    # ------------------------------------------------------------------
    def _version(self, entity_id: int) -> int:
        return self._session.exec(
            select(RosterEntityRow.version).where(RosterEntityRow.id == entity_id)
        ).one()

    def _touch(self, entity: RosterEntity) -> None:
        """Remember the version this unit first observed for *entity*."""
        if self._depth > 0 and entity.id not in self._seen:
            self._seen[entity.id] = self._version(entity.id)

    def _bump(self, entity: RosterEntity) -> None:
        """Advance *entity*'s version, failing if another session got there first."""
        self._touch(entity)
        seen = self._seen[entity.id]
        result = self._session.connection().execute(
            update(RosterEntityRow)
            .where(col(RosterEntityRow.id) == entity.id)
            .where(col(RosterEntityRow.version) == seen)
            .values(version=seen + 1)
        )
        if result.rowcount == 0:
            logger.warning(f"{entity} changed since version {seen}")
            raise ConcurrentModificationError(f"{entity} was modified by another unit of work")
        self._seen[entity.id] = seen + 1

    def _flush(self) -> None:
        try:
            self._session.flush()
        except IntegrityError as exc:
            raise ConcurrentModificationError(f"write rejected by the database: {exc.orig}") from exc

    def _fresh(self, stmt):
        return self._session.exec(stmt.execution_options(populate_existing=True)).all()

    # ------------------------------------------------------------------
    # Entities
    # ------------------------------------------------------------------
    def add_entity(self, entity: RosterEntity) -> RosterEntity:
        with self.atomic():
            row = RosterEntityRow.from_entity(entity)
            self._session.add(row)
            self._flush()
            return row.to_entity()

    def _entity_row(self, entity_id: int) -> RosterEntityRow:
        rows = self._fresh(select(RosterEntityRow).where(RosterEntityRow.id == entity_id))
        if not rows:
            raise KeyError(entity_id)
        return rows[0]

    def get_entity(self, entity_id: int) -> RosterEntity:
        """Retrieve by id (raise KeyError if not present)."""
        return self._entity_row(entity_id).to_entity()

    def entities(self, entity_type: Optional[EntityType] = None, include_deleted: bool = False) -> List[RosterEntity]:
        stmt = select(RosterEntityRow).order_by(RosterEntityRow.id)
        if entity_type is not None:
            stmt = stmt.where(RosterEntityRow.entity_type == entity_type)
        if not include_deleted:
            stmt = stmt.where(col(RosterEntityRow.deleted_at).is_(None))
        return [row.to_entity() for row in self._fresh(stmt)]

    def _set_deleted(self, entity: RosterEntity, at: Optional[datetime]) -> RosterEntity:
        with self.atomic():
            self._bump(entity)
            row = self._entity_row(entity.id)
            row.deleted_at = at
            self._session.add(row)
            self._flush()
            return row.to_entity()

    def soft_delete(self, entity: RosterEntity, at: datetime) -> RosterEntity:
        return self._set_deleted(entity, at)

    def restore(self, entity: RosterEntity) -> RosterEntity:
        return self._set_deleted(entity, None)

    # ------------------------------------------------------------------
    # Periods
    # ------------------------------------------------------------------
    def _period_rows(self, entity: RosterEntity, kind: PeriodKind) -> List[StatusPeriodRow]:
        self._touch(entity)
        return self._fresh(
            select(StatusPeriodRow)
            .where(StatusPeriodRow.entity_id == entity.id)
            .where(StatusPeriodRow.entity_type == entity.entity_type)
            .where(StatusPeriodRow.kind == kind)
            .order_by(StatusPeriodRow.started_at)
        )

    def periods(self, entity: RosterEntity, kind: PeriodKind) -> List[StatusPeriod]:
        return [row.to_period() for row in self._period_rows(entity, kind)]

    def current_period(self, entity: RosterEntity, kind: PeriodKind) -> Optional[StatusPeriod]:
        return current_of(self.periods(entity, kind), entity, kind)

    def periods_overlapping(self, entity: RosterEntity, kind: PeriodKind, start: datetime, end: Optional[datetime] = None) -> List[StatusPeriod]:
        return overlapping(self.periods(entity, kind), start, end)

    def open_period(self, entity: RosterEntity, kind: PeriodKind, started_at: datetime) -> StatusPeriod:
        with self.atomic():
            existing = check_open(self.periods(entity, kind), entity, kind, started_at)
            if existing is not None:
                return existing
            self._bump(entity)
            row = StatusPeriodRow(
                entity_id=entity.id,
                entity_type=entity.entity_type,
                kind=kind,
                started_at=started_at,
            )
            self._session.add(row)
            self._flush()
            return row.to_period()

    def close_period(self, entity: RosterEntity, kind: PeriodKind, ended_at: datetime) -> StatusPeriod:
        with self.atomic():
            period, already_closed = check_close(self.periods(entity, kind), entity, kind, ended_at)
            if already_closed:
                return period
            self._bump(entity)
            row = self._session.get(StatusPeriodRow, period.id)
            row.ended_at = ended_at
            self._session.add(row)
            self._flush()
            return row.to_period()

    # ------------------------------------------------------------------
    # Memberships
    # ------------------------------------------------------------------
    def _member_rows(self, member: RosterEntity, relation: Optional[RelationKind], current_only: bool) -> List[MembershipRow]:
        self._touch(member)
        stmt = (
            select(MembershipRow)
            .where(MembershipRow.member_id == member.id)
            .where(MembershipRow.member_type == member.entity_type)
            .order_by(MembershipRow.joined_at)
        )
        if relation is not None:
            stmt = stmt.where(MembershipRow.relation == relation)
        if current_only:
            stmt = stmt.where(col(MembershipRow.left_at).is_(None))
        return self._fresh(stmt)

    def open_membership(self, relation: RelationKind, composite: RosterEntity, member: RosterEntity, joined_at: datetime) -> Membership:
        with self.atomic():
            current = [row.to_membership() for row in self._member_rows(member, relation, True)]
            existing = check_join(relation, composite, member, joined_at, current)
            if existing is not None:
                return existing
            self._bump(composite)
            self._bump(member)
            row = MembershipRow(
                relation=relation,
                composite_id=composite.id,
                member_id=member.id,
                member_type=member.entity_type,
                joined_at=joined_at,
            )
            self._session.add(row)
            self._flush()
            return row.to_membership()

    def close_membership(self, relation: RelationKind, composite: RosterEntity, member: RosterEntity, left_at: datetime) -> Membership:
        with self.atomic():
            row = next(
                (r for r in self._member_rows(member, relation, True) if r.composite_id == composite.id),
                None,
            )
            check_leave(relation, composite, member, left_at, row.to_membership() if row else None)
            self._bump(composite)
            self._bump(member)
            row.left_at = left_at
            self._session.add(row)
            self._flush()
            return row.to_membership()

    def memberships(self, composite: RosterEntity, relation: Optional[RelationKind] = None) -> List[Membership]:
        self._touch(composite)
        kinds = [relation] if relation is not None else [
            kind for kind, rule in RELATIONS.items() if rule.composite_type is composite.entity_type
        ]
        rows = self._fresh(
            select(MembershipRow)
            .where(MembershipRow.composite_id == composite.id)
            .where(col(MembershipRow.relation).in_(kinds))
            .order_by(MembershipRow.joined_at)
        )
        return [row.to_membership() for row in rows]

    def current_memberships(self, composite: RosterEntity, relation: RelationKind) -> List[Membership]:
        return [m for m in self.memberships(composite, relation) if m.is_current]

    def memberships_of(self, member: RosterEntity, relation: Optional[RelationKind] = None, current_only: bool = True) -> List[Membership]:
        return [row.to_membership() for row in self._member_rows(member, relation, current_only)]

    # ------------------------------------------------------------------
    # Dunder helpers / context manager
    # ------------------------------------------------------------------
    def __iter__(self) -> Iterator[RosterEntity]:
        yield from self.entities()

    def __len__(self) -> int:
        return len(self.entities())

    def __enter__(self) -> "DBStore":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self._session.close()
