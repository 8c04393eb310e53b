"""
tests/test_engine.py
====================

End-to-end scenarios through :class:`ringside.engine.LifecycleEngine`.
"""

from datetime import datetime

import pytest

from ringside.engine import LifecycleEngine
from ringside.errors import NotEnoughMembersError, UnsupportedCapabilityError
from ringside.models import (
    Capability,
    EmploymentStatus,
    EntityType,
    PeriodKind,
    Transition,
)
from ringside.settings import Settings

C = Capability
OPEN, CLOSE = Transition.OPEN, Transition.CLOSE
E = EmploymentStatus


def d(month, day=1, year=2024):
    return datetime(year, month, day)


def test_employ_release_employ_round_trip(engine, store, roster):
    kane = roster.wrestler("Kane")
    engine.transition(kane, C.EMPLOYABLE, OPEN, d(1))
    engine.transition(kane, C.EMPLOYABLE, CLOSE, d(2))
    engine.transition(kane, C.EMPLOYABLE, OPEN, d(3))

    history = store.periods(kane, PeriodKind.EMPLOYMENT)
    assert len([p for p in history if not p.is_current]) == 1
    assert len([p for p in history if p.is_current]) == 1
    assert engine.query_status(kane, d(4)).employment is E.EMPLOYED
    assert store.current_period(kane, PeriodKind.EMPLOYMENT).started_at == d(3)


def test_injury_toggles_bookable(engine, roster):
    kane = roster.wrestler("Kane")
    engine.transition(kane, C.EMPLOYABLE, OPEN, d(1))
    assert engine.query_status(kane, d(1, 10)).bookable

    engine.transition(kane, C.INJURABLE, OPEN, d(2))
    assert not engine.query_status(kane, d(2, 10)).bookable

    engine.transition(kane, C.INJURABLE, CLOSE, d(3))
    assert engine.query_status(kane, d(3, 10)).bookable


def test_retirement_outranks_everything(engine, roster):
    kane = roster.wrestler("Kane")
    engine.transition(kane, C.EMPLOYABLE, OPEN, d(1))
    engine.transition(kane, C.RETIRABLE, OPEN, d(5))
    snap = engine.query_status(kane, d(6))
    assert snap.employment is E.RETIRED
    assert snap.retired and not snap.bookable


def test_future_employment_is_reported(engine, roster):
    kane = roster.wrestler("Kane")
    engine.transition(kane, C.EMPLOYABLE, OPEN, d(10))
    assert engine.query_status(kane, d(1)).employment is E.FUTURE_EMPLOYMENT


def test_periods_never_overlap(engine, store, roster):
    kane = roster.wrestler("Kane")
    for month in (1, 3, 5, 7):
        engine.transition(kane, C.EMPLOYABLE, OPEN, d(month))
        engine.transition(kane, C.EMPLOYABLE, CLOSE, d(month + 1))
    history = store.periods(kane, PeriodKind.EMPLOYMENT)
    for earlier, later in zip(history, history[1:]):
        assert earlier.ended_at <= later.started_at


def test_transition_returns_primary_period(engine, roster):
    kane = roster.wrestler("Kane")
    engine.transition(kane, C.EMPLOYABLE, OPEN, d(1))
    period = engine.transition(kane, C.RETIRABLE, OPEN, d(2))
    assert period.kind is PeriodKind.RETIREMENT


def test_unsupported_capability(engine, roster):
    stable = roster.add(EntityType.STABLE, "Evolution")
    with pytest.raises(UnsupportedCapabilityError):
        engine.cascade_transition(stable, C.SUSPENDABLE, OPEN, d(1))


def test_cascade_on_single_entity(engine, roster):
    kane = roster.wrestler("Kane")
    report = engine.cascade_transition(kane, C.EMPLOYABLE, OPEN, d(1))
    assert len(report.steps) == 1 and report.member_steps == []
    assert report.status.employment is E.EMPLOYED


def test_statistics(engine, roster):
    a, b, c = roster.wrestler("A"), roster.wrestler("B"), roster.wrestler("C")
    engine.transition(a, C.EMPLOYABLE, OPEN, d(1))
    engine.transition(b, C.EMPLOYABLE, OPEN, d(1))
    engine.transition(b, C.RETIRABLE, OPEN, d(2))
    engine.transition(c, C.EMPLOYABLE, OPEN, d(9))
    stats = engine.statistics([a, b, c], d(3))
    assert stats["employed"] == 1
    assert stats["retired"] == 1
    assert stats["future_employment"] == 1
    assert stats["available"] == 1


def test_config_changes_tag_team_size(store, roster):
    engine = LifecycleEngine(store, Settings(tag_team_size=3))
    team = roster.tag_team("Shield")
    trio = [roster.wrestler(n) for n in ("Ambrose", "Reigns", "Rollins")]
    diff = engine.reconcile_membership(team, trio, d(1))
    assert len(diff.opened) == 3
    with pytest.raises(NotEnoughMembersError):
        engine.reconcile_membership(team, trio[:2], d(2))
