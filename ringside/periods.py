"""
ringside.periods
================

Temporal rules shared by every store implementation.

The stores differ in *where* periods live; the checks below decide
*whether* a period may be opened or closed:

* at most one current (``ended_at is None``) period per entity and kind;
* a new period may not start inside an earlier closed one of its kind;
* ``ended_at`` must fall strictly after ``started_at``;
* retrying an open/close with the same natural key returns the already
  written period instead of failing.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Iterable, List, Optional, Tuple

from .errors import (
    DataIntegrityError,
    DuplicateCurrentPeriodError,
    InvalidDateOrderError,
    NoCurrentPeriodError,
)
from .models import PeriodKind, RosterEntity, StatusPeriod

logger = logging.getLogger(__name__)


def current_of(periods: Iterable[StatusPeriod], entity: RosterEntity, kind: PeriodKind) -> Optional[StatusPeriod]:
    """Return the single open period, or raise if the history holds several."""
    open_periods = [p for p in periods if p.is_current]
    if len(open_periods) > 1:
        logger.error(f"{entity} has {len(open_periods)} current {kind.name} periods")
        raise DataIntegrityError(f"{entity} has more than one current {kind.name} period")
    return open_periods[0] if open_periods else None


def overlapping(
    periods: Iterable[StatusPeriod],
    start: datetime,
    end: Optional[datetime] = None,
) -> List[StatusPeriod]:
    """Periods intersecting ``[start, end)``, oldest first."""
    return sorted((p for p in periods if p.overlaps(start, end)), key=lambda p: p.started_at)


def check_open(
    periods: List[StatusPeriod],
    entity: RosterEntity,
    kind: PeriodKind,
    started_at: datetime,
) -> Optional[StatusPeriod]:
    """
    Validate opening a period of *kind* at *started_at*.

    Returns the existing period when the call is a retry of an open that
    already happened, otherwise ``None`` (the caller should insert).
    """
    current = current_of(periods, entity, kind)
    if current is not None:
        if current.started_at == started_at:
            return current
        raise DuplicateCurrentPeriodError(
            f"{entity} already has a current {kind.name} period "
            f"started {current.started_at:%Y-%m-%d}"
        )
    clash = [p for p in periods if p.ended_at is not None and p.ended_at > started_at]
    if clash:
        raise InvalidDateOrderError(
            f"{kind.name} period for {entity} cannot start {started_at:%Y-%m-%d}; "
            f"an earlier period ended {clash[-1].ended_at:%Y-%m-%d}"
        )
    return None


def check_close(
    periods: List[StatusPeriod],
    entity: RosterEntity,
    kind: PeriodKind,
    ended_at: datetime,
) -> Tuple[StatusPeriod, bool]:
    """
    Validate closing the current period of *kind* at *ended_at*.

    Returns ``(period, already_closed)``; ``already_closed`` is True when
    a retry finds the period closed on exactly *ended_at*.
    """
    current = current_of(periods, entity, kind)
    if current is None:
        for p in periods:
            if p.ended_at == ended_at:
                return p, True
        raise NoCurrentPeriodError(f"{entity} has no current {kind.name} period to close")
    if ended_at <= current.started_at:
        raise InvalidDateOrderError(
            f"{kind.name} period for {entity} cannot end {ended_at:%Y-%m-%d}; "
            f"it started {current.started_at:%Y-%m-%d}"
        )
    return current, False
