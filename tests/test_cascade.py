"""
tests/test_cascade.py
=====================

Composite cascades: plan contents and all-or-nothing execution.
"""

from datetime import datetime

import pytest

from ringside import cascade
from ringside.errors import CannotBeEmployedError, ReasonCode
from ringside.models import (
    Capability,
    EmploymentStatus,
    EntityType,
    PeriodKind,
    RelationKind,
    Transition,
)

C = Capability
OPEN, CLOSE = Transition.OPEN, Transition.CLOSE
E = EmploymentStatus


def d(month, day=1, year=2024):
    return datetime(year, month, day)


@pytest.fixture
def hardys(store, roster):
    matt, jeff = roster.wrestler("Matt"), roster.wrestler("Jeff")
    team = roster.tag_team("Hardys", matt, jeff)
    lita = roster.add(EntityType.MANAGER, "Lita")
    store.open_membership(RelationKind.TAG_TEAM_MANAGER, team, lita, d(1, year=2023))
    return team, matt, jeff, lita


def test_non_composite_is_single_step(store, roster):
    kane = roster.wrestler("Kane")
    steps = cascade.plan(store, kane, C.EMPLOYABLE, OPEN, d(1))
    assert len(steps) == 1


def test_employ_tag_team_cascades_to_partners_and_manager(engine, hardys):
    team, matt, jeff, lita = hardys
    report = engine.cascade_transition(team, C.EMPLOYABLE, OPEN, d(1))
    assert [s.entity.name for s in report.steps] == ["Hardys", "Matt", "Jeff", "Lita"]
    for who in (team, matt, jeff, lita):
        assert engine.query_status(who, d(2)).employment is E.EMPLOYED
    assert report.status.employment is E.EMPLOYED


def test_employ_skips_members_already_employed(engine, hardys):
    team, matt, jeff, _ = hardys
    engine.transition(matt, C.EMPLOYABLE, OPEN, d(1))
    report = engine.cascade_transition(team, C.EMPLOYABLE, OPEN, d(2))
    assert "Matt" not in [s.entity.name for s in report.member_steps]


def test_cascade_atomicity(engine, store, hardys):
    """A retired partner sinks the whole employment cascade."""
    team, matt, jeff, _ = hardys
    engine.transition(jeff, C.EMPLOYABLE, OPEN, d(1))
    engine.transition(jeff, C.RETIRABLE, OPEN, d(2))

    with pytest.raises(CannotBeEmployedError) as info:
        engine.cascade_transition(team, C.EMPLOYABLE, OPEN, d(3))
    assert info.value.reason is ReasonCode.RETIRED
    assert info.value.entity.name == "Jeff"
    assert store.periods(team, PeriodKind.EMPLOYMENT) == []
    assert store.periods(matt, PeriodKind.EMPLOYMENT) == []
    assert engine.query_status(team, d(4)).employment is E.UNEMPLOYED


def test_release_tag_team_frees_partners(engine, hardys):
    team, matt, jeff, lita = hardys
    engine.cascade_transition(team, C.EMPLOYABLE, OPEN, d(1))
    engine.cascade_transition(team, C.EMPLOYABLE, CLOSE, d(5))
    assert engine.query_status(matt, d(6)).employment is E.RELEASED
    assert engine.query_status(jeff, d(6)).employment is E.RELEASED
    # managers are hired with the team but not released with it
    assert engine.query_status(lita, d(6)).employment is E.EMPLOYED


def test_retire_tag_team_releases_partners(engine, store, hardys):
    team, matt, jeff, _ = hardys
    engine.cascade_transition(team, C.EMPLOYABLE, OPEN, d(1))
    engine.cascade_transition(team, C.SUSPENDABLE, OPEN, d(2))
    report = engine.cascade_transition(team, C.RETIRABLE, OPEN, d(3))
    assert report.status.retired
    assert store.current_period(team, PeriodKind.SUSPENSION) is None
    for w in (matt, jeff):
        assert engine.query_status(w, d(4)).employment is E.RELEASED
        assert store.periods(w, PeriodKind.RETIREMENT) == []
    assert len(store.current_memberships(team, RelationKind.TAG_TEAM_WRESTLER)) == 2


def test_suspend_and_reinstate_tag_team(engine, hardys):
    team, matt, jeff, _ = hardys
    engine.cascade_transition(team, C.EMPLOYABLE, OPEN, d(1))
    engine.transition(matt, C.SUSPENDABLE, OPEN, d(2))
    report = engine.cascade_transition(team, C.SUSPENDABLE, OPEN, d(3))
    assert [s.entity.name for s in report.member_steps] == ["Jeff"]
    assert engine.query_status(jeff, d(4)).suspended

    report = engine.cascade_transition(team, C.SUSPENDABLE, CLOSE, d(5))
    assert {s.entity.name for s in report.member_steps} == {"Matt", "Jeff"}
    assert not engine.query_status(matt, d(6)).suspended


def test_retire_stable_scenario(engine, store, roster):
    """A already retired, B active: only B gets a retirement period."""
    a, b = roster.wrestler("A"), roster.wrestler("B")
    for w in (a, b):
        engine.transition(w, C.EMPLOYABLE, OPEN, d(1))
    engine.transition(a, C.RETIRABLE, OPEN, d(2))
    stable = roster.stable("S", a, b)
    engine.transition(stable, C.DEBUTABLE, OPEN, d(1))

    report = engine.cascade_transition(stable, C.RETIRABLE, OPEN, d(6))

    assert len(store.periods(a, PeriodKind.RETIREMENT)) == 1
    assert store.periods(a, PeriodKind.RETIREMENT)[0].started_at == d(2)
    b_retirements = store.periods(b, PeriodKind.RETIREMENT)
    assert len(b_retirements) == 1 and b_retirements[0].started_at == d(6)
    activation = store.periods(stable, PeriodKind.ACTIVATION)
    assert activation[-1].ended_at == d(6)
    assert len(report.closed_memberships) == 2
    assert store.current_memberships(stable, RelationKind.STABLE_WRESTLER) == []


def test_retire_stable_skips_managers(engine, store, roster):
    w = roster.wrestler("W")
    x = roster.wrestler("X")
    mgr = roster.add(EntityType.MANAGER, "M")
    store.open_membership(RelationKind.WRESTLER_MANAGER, w, mgr, d(1))
    for who in (w, x, mgr):
        engine.transition(who, C.EMPLOYABLE, OPEN, d(1))
    stable = roster.stable("S", w, x)
    engine.transition(stable, C.DEBUTABLE, OPEN, d(1))
    engine.cascade_transition(stable, C.RETIRABLE, OPEN, d(3))
    assert engine.query_status(mgr, d(4)).employment is E.EMPLOYED


def test_unretire_tag_team(engine, store, hardys):
    team, matt, jeff, _ = hardys
    engine.cascade_transition(team, C.EMPLOYABLE, OPEN, d(1))
    engine.cascade_transition(team, C.RETIRABLE, OPEN, d(3))
    # Matt retires on his own; Jeff stays released
    engine.transition(matt, C.EMPLOYABLE, OPEN, d(4))
    engine.transition(matt, C.RETIRABLE, OPEN, d(5))

    report = engine.cascade_transition(team, C.RETIRABLE, CLOSE, d(8))

    assert [s.entity.name for s in report.steps] == ["Hardys", "Matt", "Hardys"]
    assert engine.query_status(team, d(9)).employment is E.EMPLOYED
    assert engine.query_status(matt, d(9)).employment is E.EMPLOYED
    assert engine.query_status(jeff, d(9)).employment is E.RELEASED
    assert store.current_period(team, PeriodKind.EMPLOYMENT).started_at == d(8)


def test_unretire_stable_reactivates(engine, store, roster):
    a, b, c = roster.wrestler("A"), roster.wrestler("B"), roster.wrestler("C")
    for w in (a, b, c):
        engine.transition(w, C.EMPLOYABLE, OPEN, d(1))
    stable = roster.stable("S", a, b, c)
    engine.transition(stable, C.DEBUTABLE, OPEN, d(1))
    engine.cascade_transition(stable, C.RETIRABLE, OPEN, d(3))

    report = engine.cascade_transition(stable, C.RETIRABLE, CLOSE, d(6))

    # memberships ended with the retirement, so only the stable itself moves
    assert {s.entity.name for s in report.steps} == {"S"}
    assert store.current_period(stable, PeriodKind.ACTIVATION).started_at == d(6)
    assert engine.query_status(a, d(7)).retired


def test_employ_wrestler_employs_manager(engine, store, roster):
    kane = roster.wrestler("Kane")
    bearer = roster.add(EntityType.MANAGER, "Paul Bearer")
    store.open_membership(RelationKind.WRESTLER_MANAGER, kane, bearer, d(1, year=2023))

    report = engine.cascade_transition(kane, C.EMPLOYABLE, OPEN, d(1))

    assert [s.entity.name for s in report.steps] == ["Kane", "Paul Bearer"]
    assert engine.query_status(bearer, d(2)).employment is E.EMPLOYED


def test_employ_wrestler_skips_employed_manager(engine, store, roster):
    kane, taker = roster.wrestler("Kane"), roster.wrestler("Undertaker")
    bearer = roster.add(EntityType.MANAGER, "Paul Bearer")
    for w in (kane, taker):
        store.open_membership(RelationKind.WRESTLER_MANAGER, w, bearer, d(1, year=2023))
    engine.cascade_transition(taker, C.EMPLOYABLE, OPEN, d(1))

    report = engine.cascade_transition(kane, C.EMPLOYABLE, OPEN, d(2))

    assert report.member_steps == []


def test_retired_wrestler_leaves_tag_team(engine, store, hardys):
    team, matt, jeff, _ = hardys
    engine.cascade_transition(team, C.EMPLOYABLE, OPEN, d(1))

    report = engine.cascade_transition(matt, C.RETIRABLE, OPEN, d(3))

    current = store.current_memberships(team, RelationKind.TAG_TEAM_WRESTLER)
    assert [m.member_id for m in current] == [jeff.id]
    assert [(m.relation, m.left_at) for m in report.closed_memberships] == [(RelationKind.TAG_TEAM_WRESTLER, d(3))]


def test_retired_tag_team_leaves_stable_and_managers(engine, store, roster, hardys):
    team, matt, jeff, lita = hardys
    stable = roster.stable("Team Xtreme", team)
    engine.cascade_transition(team, C.EMPLOYABLE, OPEN, d(1))

    engine.cascade_transition(team, C.RETIRABLE, OPEN, d(3))

    assert store.memberships_of(team) == []
    assert store.current_memberships(team, RelationKind.TAG_TEAM_MANAGER) == []
    assert store.current_memberships(stable, RelationKind.STABLE_TAG_TEAM) == []
    # partners stay on the team
    assert len(store.current_memberships(team, RelationKind.TAG_TEAM_WRESTLER)) == 2
    assert engine.query_status(lita, d(4)).employment is E.EMPLOYED


def test_retire_stable_releases_tag_team_partners(engine, store, roster, hardys):
    team, matt, jeff, _ = hardys
    edge = roster.wrestler("Edge")
    brood = roster.stable("Brood", team, edge)
    engine.cascade_transition(team, C.EMPLOYABLE, OPEN, d(1))
    engine.transition(edge, C.EMPLOYABLE, OPEN, d(1))
    engine.transition(brood, C.DEBUTABLE, OPEN, d(1))

    report = engine.cascade_transition(brood, C.RETIRABLE, OPEN, d(4))

    assert [s.entity.name for s in report.steps] == ["Brood", "Edge", "Hardys", "Matt", "Jeff"]
    assert engine.query_status(team, d(5)).retired
    assert engine.query_status(edge, d(5)).retired
    for w in (matt, jeff):
        assert engine.query_status(w, d(5)).employment is E.RELEASED


def test_retire_stable_with_partnerless_tag_team(engine, store, roster):
    empty = roster.tag_team("Empty")
    edge = roster.wrestler("Edge")
    brood = roster.stable("Brood", empty, edge)
    for who in (empty, edge):
        engine.transition(who, C.EMPLOYABLE, OPEN, d(1))
    engine.transition(brood, C.DEBUTABLE, OPEN, d(1))

    engine.cascade_transition(brood, C.RETIRABLE, OPEN, d(4))

    for who in (brood, empty, edge):
        assert engine.query_status(who, d(5)).retired
