"""
ringside.store
==============

Storage surface used by the lifecycle engine, plus an in-memory
implementation.

:class:`MemoryStore` uses only the standard library, so the engine can be
unit-tested without a database.  The SQLite-backed
:class:`ringside.store_db.DBStore` mirrors its public methods exactly.
"""

from __future__ import annotations

import copy
import itertools
from contextlib import contextmanager
from datetime import datetime
from typing import Dict, Iterator, List, Optional, Protocol, runtime_checkable

from .capabilities import RELATIONS
from .errors import (
    InvalidDateOrderError,
    MembershipConflictError,
    ReasonCode,
    ReconciliationError,
    RingsideError,
)
from .models import (
    EntityType,
    Membership,
    PeriodKind,
    RelationKind,
    RosterEntity,
    StatusPeriod,
)
from .periods import check_close, check_open, current_of, overlapping


@runtime_checkable
class RosterStore(Protocol):
    """
    Persistence collaborator of the engine.

    Implementations:
    - MemoryStore: dictionary-backed (testing)
    - DBStore: SQLModel / SQLite (production)
    """

    def add_entity(self, entity: RosterEntity) -> RosterEntity: ...
    def get_entity(self, entity_id: int) -> RosterEntity: ...
    def entities(self, entity_type: Optional[EntityType] = None, include_deleted: bool = False) -> List[RosterEntity]: ...
    def soft_delete(self, entity: RosterEntity, at: datetime) -> RosterEntity: ...
    def restore(self, entity: RosterEntity) -> RosterEntity: ...

    def periods(self, entity: RosterEntity, kind: PeriodKind) -> List[StatusPeriod]: ...
    def current_period(self, entity: RosterEntity, kind: PeriodKind) -> Optional[StatusPeriod]: ...
    def periods_overlapping(self, entity: RosterEntity, kind: PeriodKind, start: datetime, end: Optional[datetime] = None) -> List[StatusPeriod]: ...
    def open_period(self, entity: RosterEntity, kind: PeriodKind, started_at: datetime) -> StatusPeriod: ...
    def close_period(self, entity: RosterEntity, kind: PeriodKind, ended_at: datetime) -> StatusPeriod: ...

    def open_membership(self, relation: RelationKind, composite: RosterEntity, member: RosterEntity, joined_at: datetime) -> Membership: ...
    def close_membership(self, relation: RelationKind, composite: RosterEntity, member: RosterEntity, left_at: datetime) -> Membership: ...
    def current_memberships(self, composite: RosterEntity, relation: RelationKind) -> List[Membership]: ...
    def memberships(self, composite: RosterEntity, relation: Optional[RelationKind] = None) -> List[Membership]: ...
    def memberships_of(self, member: RosterEntity, relation: Optional[RelationKind] = None, current_only: bool = True) -> List[Membership]: ...

    def begin_atomic(self) -> None: ...
    def commit(self) -> None: ...
    def rollback(self) -> None: ...
    def atomic(self): ...


# ---------------------------------------------------------------------------
# Membership rules shared by both implementations
# ---------------------------------------------------------------------------
def check_relation(relation: RelationKind, composite: RosterEntity, member: RosterEntity) -> None:
    """Reject associations between types the relation does not join."""
    rule = RELATIONS[relation]
    if composite.entity_type is not rule.composite_type or member.entity_type is not rule.member_type:
        raise ReconciliationError(
            f"{relation.name} cannot join {composite} and {member}",
            ReasonCode.ILLEGAL_FOR_ENTITY_TYPE,
        )


def check_join(
    relation: RelationKind,
    composite: RosterEntity,
    member: RosterEntity,
    joined_at: datetime,
    member_current: List[Membership],
) -> Optional[Membership]:
    """
    Validate opening *member*'s membership in *composite*.

    *member_current* holds the member's current memberships of *relation*.
    Returns the existing row when the call is a retry, otherwise ``None``.
    """
    check_relation(relation, composite, member)
    for m in member_current:
        if m.composite_id == composite.id:
            if m.joined_at == joined_at:
                return m
            raise MembershipConflictError(f"{member} is already a current member of {composite}")
    if member_current and RELATIONS[relation].exclusive:
        raise MembershipConflictError(
            f"{member} already belongs to another current {relation.name} composite"
        )
    return None


def check_leave(
    relation: RelationKind,
    composite: RosterEntity,
    member: RosterEntity,
    left_at: datetime,
    current: Optional[Membership],
) -> None:
    if current is None:
        raise ReconciliationError(f"{member} is not a current member of {composite}")
    if left_at < current.joined_at:
        raise InvalidDateOrderError(
            f"{member} cannot leave {composite} on {left_at:%Y-%m-%d}; "
            f"joined {current.joined_at:%Y-%m-%d}"
        )


class MemoryStore:
    """
    Dictionary-backed store.

    Records are kept privately and handed out as copies, so a rolled back
    unit of work never leaks half-applied objects to callers.

    Example
    -------
    >>> from datetime import datetime
    >>> store = MemoryStore()
    >>> w = store.add_entity(RosterEntity(EntityType.WRESTLER, "Kane"))
    >>> store.open_period(w, PeriodKind.EMPLOYMENT, datetime(2024, 1, 1)).is_current
    True
    """

    def __init__(self) -> None:
        self._entities: Dict[int, RosterEntity] = {}
        self._periods: List[StatusPeriod] = []
        self._memberships: List[Membership] = []
        self._ids = itertools.count(1)
        self._depth = 0
        self._snapshot = None
        self._rollback_only = False

    # ------------------------------------------------------------------
    # Atomic units
    # ------------------------------------------------------------------
    def begin_atomic(self) -> None:
        if self._depth == 0:
            self._snapshot = copy.deepcopy((self._entities, self._periods, self._memberships))
            self._rollback_only = False
        self._depth += 1

    def commit(self) -> None:
        self._depth -= 1
        if self._depth == 0:
            if self._rollback_only:
                self._restore_snapshot()
                raise RingsideError("atomic unit was rolled back by a nested failure")
            self._snapshot = None

    def rollback(self) -> None:
        self._depth -= 1
        if self._depth == 0:
            self._restore_snapshot()
        else:
            self._rollback_only = True

    @contextmanager
    def atomic(self) -> Iterator["MemoryStore"]:
        """Run the block as one unit; nested blocks join the outer unit."""
        self.begin_atomic()
        try:
            yield self
        except BaseException:
            self.rollback()
            raise
        self.commit()

    def _restore_snapshot(self) -> None:
        self._entities, self._periods, self._memberships = self._snapshot
        self._snapshot = None
        self._rollback_only = False

    # ------------------------------------------------------------------
    # Entities
    # ------------------------------------------------------------------
    def add_entity(self, entity: RosterEntity) -> RosterEntity:
        with self.atomic():
            row = copy.copy(entity)
            row.id = next(self._ids)
            self._entities[row.id] = row
            return copy.copy(row)

    def get_entity(self, entity_id: int) -> RosterEntity:
        """Retrieve by id (raise KeyError if not present)."""
        return copy.copy(self._entities[entity_id])

    def entities(self, entity_type: Optional[EntityType] = None, include_deleted: bool = False) -> List[RosterEntity]:
        return [
            copy.copy(e) for e in self._entities.values()
            if (entity_type is None or e.entity_type is entity_type)
            and (include_deleted or not e.is_deleted)
        ]

    def soft_delete(self, entity: RosterEntity, at: datetime) -> RosterEntity:
        with self.atomic():
            self._entities[entity.id].deleted_at = at
            return self.get_entity(entity.id)

    def restore(self, entity: RosterEntity) -> RosterEntity:
        with self.atomic():
            self._entities[entity.id].deleted_at = None
            return self.get_entity(entity.id)

    # ------------------------------------------------------------------
    # Periods
    # ------------------------------------------------------------------
    def _rows(self, entity: RosterEntity, kind: PeriodKind) -> List[StatusPeriod]:
        rows = [
            p for p in self._periods
            if p.entity_id == entity.id and p.entity_type is entity.entity_type and p.kind is kind
        ]
        return sorted(rows, key=lambda p: p.started_at)

    def periods(self, entity: RosterEntity, kind: PeriodKind) -> List[StatusPeriod]:
        return [copy.copy(p) for p in self._rows(entity, kind)]

    def current_period(self, entity: RosterEntity, kind: PeriodKind) -> Optional[StatusPeriod]:
        current = current_of(self._rows(entity, kind), entity, kind)
        return copy.copy(current) if current else None

    def periods_overlapping(self, entity: RosterEntity, kind: PeriodKind, start: datetime, end: Optional[datetime] = None) -> List[StatusPeriod]:
        return [copy.copy(p) for p in overlapping(self._rows(entity, kind), start, end)]

    def open_period(self, entity: RosterEntity, kind: PeriodKind, started_at: datetime) -> StatusPeriod:
        with self.atomic():
            existing = check_open(self._rows(entity, kind), entity, kind, started_at)
            if existing is not None:
                return copy.copy(existing)
            row = StatusPeriod(entity.id, entity.entity_type, kind, started_at, id=next(self._ids))
            self._periods.append(row)
            return copy.copy(row)

    def close_period(self, entity: RosterEntity, kind: PeriodKind, ended_at: datetime) -> StatusPeriod:
        with self.atomic():
            row, _ = check_close(self._rows(entity, kind), entity, kind, ended_at)
            row.ended_at = ended_at
            return copy.copy(row)

    # ------------------------------------------------------------------
    # Memberships
    # ------------------------------------------------------------------
    def _member_rows(self, member: RosterEntity, relation: Optional[RelationKind]) -> List[Membership]:
        return [
            m for m in self._memberships
            if m.member_id == member.id and m.member_type is member.entity_type
            and (relation is None or m.relation is relation)
        ]

    def open_membership(self, relation: RelationKind, composite: RosterEntity, member: RosterEntity, joined_at: datetime) -> Membership:
        with self.atomic():
            current = [m for m in self._member_rows(member, relation) if m.is_current]
            existing = check_join(relation, composite, member, joined_at, current)
            if existing is not None:
                return copy.copy(existing)
            row = Membership(relation, composite.id, member.id, member.entity_type, joined_at, id=next(self._ids))
            self._memberships.append(row)
            return copy.copy(row)

    def close_membership(self, relation: RelationKind, composite: RosterEntity, member: RosterEntity, left_at: datetime) -> Membership:
        with self.atomic():
            current = next(
                (m for m in self._member_rows(member, relation)
                 if m.is_current and m.composite_id == composite.id),
                None,
            )
            check_leave(relation, composite, member, left_at, current)
            current.left_at = left_at
            return copy.copy(current)

    def memberships(self, composite: RosterEntity, relation: Optional[RelationKind] = None) -> List[Membership]:
        rows = [
            m for m in self._memberships
            if m.composite_id == composite.id
            and (relation is None or m.relation is relation)
            and RELATIONS[m.relation].composite_type is composite.entity_type
        ]
        return [copy.copy(m) for m in sorted(rows, key=lambda m: m.joined_at)]

    def current_memberships(self, composite: RosterEntity, relation: RelationKind) -> List[Membership]:
        return [m for m in self.memberships(composite, relation) if m.is_current]

    def memberships_of(self, member: RosterEntity, relation: Optional[RelationKind] = None, current_only: bool = True) -> List[Membership]:
        rows = self._member_rows(member, relation)
        return [copy.copy(m) for m in rows if m.is_current or not current_only]

    # ------------------------------------------------------------------
    # Dunder helpers for convenience
    # ------------------------------------------------------------------
    def __iter__(self) -> Iterator[RosterEntity]:
        return iter(self.entities())

    def __len__(self) -> int:
        return len(self.entities())
