"""
ringside.models
===============

Dataclasses and enums describing roster entities, the time-bounded
status periods recorded against them, and their memberships in
composite entities.  These objects are intentionally lightweight; they
carry **no** external-library dependencies so that importing `ringside`
stays fast and the engine can be unit-tested against an in-memory store.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import FrozenSet, List, Optional, Tuple

from .errors import InvalidDateOrderError


class EntityType(Enum):
    """Closed set of roster entity variants."""
    WRESTLER = "wrestler"
    MANAGER = "manager"
    REFEREE = "referee"
    TAG_TEAM = "tag_team"
    STABLE = "stable"
    TITLE = "title"

    def __str__(self) -> str:        # nicer REPL display
        return self.name

    @property
    def label(self) -> str:
        return self.value.replace("_", " ").title()

    @property
    def is_composite(self) -> bool:
        """Tag teams and stables propagate transitions to their members."""
        return self in (EntityType.TAG_TEAM, EntityType.STABLE)


class Capability(Enum):
    """Life-cycle behaviours an entity type may declare."""
    EMPLOYABLE = "employable"
    INJURABLE = "injurable"
    SUSPENDABLE = "suspendable"
    RETIRABLE = "retirable"
    DEBUTABLE = "debutable"
    BOOKABLE = "bookable"
    MANAGEABLE = "manageable"
    STABLE_MEMBER = "stable_member"

    def __str__(self) -> str:
        return self.name


class PeriodKind(Enum):
    """Independent kinds of status period; kinds may overlap each other."""
    EMPLOYMENT = "employment"
    INJURY = "injury"
    SUSPENSION = "suspension"
    RETIREMENT = "retirement"
    ACTIVATION = "activation"

    def __str__(self) -> str:
        return self.name


class Transition(Enum):
    """Whether a transition opens or closes a period of its capability."""
    OPEN = "open"
    CLOSE = "close"

    def __str__(self) -> str:
        return self.name


class EmploymentStatus(Enum):
    """
    Derived status, listed in precedence order (highest first).

    For debutable entities (stables, titles) the activation history is
    read in place of employment, so ``EMPLOYED`` means "active".
    """
    RETIRED = "retired"
    EMPLOYED = "employed"
    FUTURE_EMPLOYMENT = "future_employment"
    RELEASED = "released"
    UNEMPLOYED = "unemployed"

    def __str__(self) -> str:
        return self.name


class RelationKind(Enum):
    """Composite ↔ member association kinds."""
    TAG_TEAM_WRESTLER = "tag_team_wrestler"
    STABLE_WRESTLER = "stable_wrestler"
    STABLE_TAG_TEAM = "stable_tag_team"
    WRESTLER_MANAGER = "wrestler_manager"
    TAG_TEAM_MANAGER = "tag_team_manager"

    def __str__(self) -> str:
        return self.name


class RestorePolicy(Enum):
    """How members are recovered when a composite is restored."""
    CONSERVATIVE = "conservative"
    FORCED = "forced"


EntityKey = Tuple[EntityType, int]


@dataclass
class RosterEntity:
    """
    A wrestler, manager, referee, tag team, stable or title.

    Parameters
    ----------
    entity_type : EntityType
        Variant tag; drives capability lookup.
    name : str
        Display name (e.g., "The Hardy Boyz").
    id : int | None, default=None
        Assigned by the store on insert.
    deleted_at : datetime | None, default=None
        Soft-delete marker; history is kept while deleted.
    """
    entity_type: EntityType
    name: str
    id: Optional[int] = None
    deleted_at: Optional[datetime] = None

    @property
    def key(self) -> EntityKey:
        return (self.entity_type, self.id)

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def __str__(self) -> str:
        return f"{self.entity_type.label} '{self.name}'"


@dataclass
class StatusPeriod:
    """
    One start/end dated record of a capability instance.

    ``ended_at`` is ``None`` while the period is current.
    """
    entity_id: int
    entity_type: EntityType
    kind: PeriodKind
    started_at: datetime
    ended_at: Optional[datetime] = None
    id: Optional[int] = None

    def __post_init__(self):
        if self.ended_at is not None and self.ended_at <= self.started_at:
            raise InvalidDateOrderError(
                f"{self.kind.name} period cannot end on or before it started "
                f"({self.ended_at:%Y-%m-%d} <= {self.started_at:%Y-%m-%d})"
            )

    @property
    def is_current(self) -> bool:
        return self.ended_at is None

    def has_started(self, as_of: datetime) -> bool:
        return self.started_at <= as_of

    def is_scheduled(self, as_of: datetime) -> bool:
        """Open but not yet started at *as_of*."""
        return self.is_current and self.started_at > as_of

    def overlaps(self, start: datetime, end: Optional[datetime] = None) -> bool:
        """Half-open overlap test against ``[start, end)``; ``None`` is open-ended."""
        if end is not None and self.started_at >= end:
            return False
        return self.ended_at is None or self.ended_at > start


@dataclass
class Membership:
    """
    Time-bounded association between a composite and one member.

    For manager relations the composite is the client (wrestler or tag
    team) and the member is the manager; ``hired_at`` / ``fired_at`` are
    aliases of ``joined_at`` / ``left_at``.
    """
    relation: RelationKind
    composite_id: int
    member_id: int
    member_type: EntityType
    joined_at: datetime
    left_at: Optional[datetime] = None
    id: Optional[int] = None

    @property
    def is_current(self) -> bool:
        return self.left_at is None

    @property
    def hired_at(self) -> datetime:
        return self.joined_at

    @property
    def fired_at(self) -> Optional[datetime]:
        return self.left_at

    @property
    def member_key(self) -> EntityKey:
        return (self.member_type, self.member_id)


# ---------------------------------------------------------------------------
# Engine results
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class StatusSnapshot:
    """Answer to ``query_status``: employment plus orthogonal flags."""
    employment: EmploymentStatus
    injured: bool
    suspended: bool
    retired: bool
    bookable: bool


@dataclass
class CascadeStep:
    """One entity-level transition executed as part of a cascade."""
    entity: RosterEntity
    capability: Capability
    transition: Transition
    periods: List[StatusPeriod] = field(default_factory=list)


@dataclass
class CascadeReport:
    """Everything a cascade wrote, in execution order."""
    composite: RosterEntity
    steps: List[CascadeStep] = field(default_factory=list)
    closed_memberships: List[Membership] = field(default_factory=list)
    status: Optional[StatusSnapshot] = None

    @property
    def member_steps(self) -> List[CascadeStep]:
        return [s for s in self.steps if s.entity.key != self.composite.key]

    @property
    def periods(self) -> List[StatusPeriod]:
        return [p for s in self.steps for p in s.periods]


@dataclass
class MembershipDiff:
    """Result of a reconciliation: which members left, joined or were evicted."""
    composite: RosterEntity
    to_remove: FrozenSet[EntityKey] = frozenset()
    to_add: FrozenSet[EntityKey] = frozenset()
    evicted: FrozenSet[EntityKey] = frozenset()
    skipped: FrozenSet[EntityKey] = frozenset()
    closed: List[Membership] = field(default_factory=list)
    opened: List[Membership] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.to_remove or self.to_add)
