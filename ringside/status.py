"""
ringside.status
===============

Derived status, computed on read from an entity's period history.

Nothing here is stored.  Every query takes an explicit *as_of* date: a
current period whose ``started_at`` lies after *as_of* is scheduled, not
in force.

Precedence (highest first)::

    RETIRED > EMPLOYED > FUTURE_EMPLOYMENT > RELEASED > UNEMPLOYED

For debutable types (stables, titles) the activation history is read in
place of employment.
"""

from __future__ import annotations

from collections import Counter
from datetime import datetime
from typing import Dict, Iterable, Optional

from .capabilities import supports, tenure_kind
from .models import (
    Capability,
    EmploymentStatus,
    PeriodKind,
    RosterEntity,
    StatusPeriod,
    StatusSnapshot,
)
from .store import RosterStore


def _in_force(period: Optional[StatusPeriod], as_of: datetime) -> bool:
    return period is not None and period.has_started(as_of)


def _current_in_force(store: RosterStore, entity: RosterEntity, kind: PeriodKind, as_of: datetime) -> bool:
    return _in_force(store.current_period(entity, kind), as_of)


def derive_employment_status(store: RosterStore, entity: RosterEntity, as_of: datetime) -> EmploymentStatus:
    """
    Return exactly one :class:`EmploymentStatus` for *entity* at *as_of*.

    A current retirement outranks an employment period that is still open,
    which happens when a retirement was recorded with an earlier date.
    """
    if supports(entity.entity_type, Capability.RETIRABLE) and _current_in_force(
        store, entity, PeriodKind.RETIREMENT, as_of
    ):
        return EmploymentStatus.RETIRED

    kind = tenure_kind(entity.entity_type)
    if kind is None:
        return EmploymentStatus.UNEMPLOYED

    history = store.periods(entity, kind)
    current = next((p for p in history if p.is_current), None)
    if current is not None:
        if current.has_started(as_of):
            return EmploymentStatus.EMPLOYED
        return EmploymentStatus.FUTURE_EMPLOYMENT
    if any(p.started_at <= as_of for p in history):
        return EmploymentStatus.RELEASED
    return EmploymentStatus.UNEMPLOYED


def is_employed(store: RosterStore, entity: RosterEntity, as_of: datetime) -> bool:
    return derive_employment_status(store, entity, as_of) is EmploymentStatus.EMPLOYED


def is_retired(store: RosterStore, entity: RosterEntity, as_of: datetime) -> bool:
    return derive_employment_status(store, entity, as_of) is EmploymentStatus.RETIRED


def has_future_tenure(store: RosterStore, entity: RosterEntity, as_of: datetime) -> bool:
    return derive_employment_status(store, entity, as_of) is EmploymentStatus.FUTURE_EMPLOYMENT


def is_injured(store: RosterStore, entity: RosterEntity, as_of: datetime) -> bool:
    """Current injury in force; only meaningful while employed."""
    if not supports(entity.entity_type, Capability.INJURABLE):
        return False
    return _current_in_force(store, entity, PeriodKind.INJURY, as_of) and is_employed(store, entity, as_of)


def is_suspended(store: RosterStore, entity: RosterEntity, as_of: datetime) -> bool:
    """Current suspension in force; only meaningful while employed."""
    if not supports(entity.entity_type, Capability.SUSPENDABLE):
        return False
    return _current_in_force(store, entity, PeriodKind.SUSPENSION, as_of) and is_employed(store, entity, as_of)


def snapshot(store: RosterStore, entity: RosterEntity, as_of: datetime) -> StatusSnapshot:
    """Employment status plus the orthogonal injury/suspension/booking flags."""
    employment = derive_employment_status(store, entity, as_of)
    injured = is_injured(store, entity, as_of)
    suspended = is_suspended(store, entity, as_of)
    retired = employment is EmploymentStatus.RETIRED
    bookable = (
        supports(entity.entity_type, Capability.BOOKABLE)
        and employment is EmploymentStatus.EMPLOYED
        and not (injured or suspended or retired)
    )
    return StatusSnapshot(
        employment=employment,
        injured=injured,
        suspended=suspended,
        retired=retired,
        bookable=bookable,
    )


def is_bookable(store: RosterStore, entity: RosterEntity, as_of: datetime) -> bool:
    return snapshot(store, entity, as_of).bookable


def is_available(store: RosterStore, entity: RosterEntity, as_of: datetime) -> bool:
    """Employed and neither injured nor suspended (used when moving members)."""
    snap = snapshot(store, entity, as_of)
    return snap.employment is EmploymentStatus.EMPLOYED and not (snap.injured or snap.suspended)


# ---------------------------------------------------------------------
# Aggregates
# ---------------------------------------------------------------------
def roster_statistics(store: RosterStore, entities: Iterable[RosterEntity], as_of: datetime) -> Dict[str, int]:
    """
    Count a group of entities by derived status.

    Keys: ``total``, one key per lower-cased :class:`EmploymentStatus`,
    plus ``injured``, ``suspended`` and ``available``.
    """
    counts: Counter = Counter()
    for entity in entities:
        snap = snapshot(store, entity, as_of)
        counts["total"] += 1
        counts[snap.employment.value] += 1
        counts["injured"] += snap.injured
        counts["suspended"] += snap.suspended
        if snap.employment is EmploymentStatus.EMPLOYED and not (snap.injured or snap.suspended):
            counts["available"] += 1

    keys = ["total", *(s.value for s in EmploymentStatus), "injured", "suspended", "available"]
    return {key: counts[key] for key in keys}
