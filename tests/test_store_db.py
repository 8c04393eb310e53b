"""
tests/test_store_db.py
======================

Integration-style tests for the SQLite-backed store.

These mirror `test_store.py` but use DBStore to ensure persistence and
API parity with the in-memory version, then check that two sessions
racing on the same entity surface a ConcurrentModificationError.
"""

from datetime import datetime

import pytest

from ringside.db import MembershipRow, RosterEntityRow, SessionLocal, StatusPeriodRow, create_all, make_engine
from ringside.engine import LifecycleEngine
from ringside.errors import (
    ConcurrentModificationError,
    DuplicateCurrentPeriodError,
    MembershipConflictError,
)
from ringside.models import (
    Capability,
    EmploymentStatus,
    EntityType,
    PeriodKind,
    RelationKind,
    RosterEntity,
    Transition,
)
from ringside.store import RosterStore
from ringside.store_db import DBStore

EMP = PeriodKind.EMPLOYMENT


def d(month, day=1, year=2024):
    return datetime(year, month, day)


@pytest.fixture
def db_store():
    engine = make_engine("sqlite://")
    create_all(engine)
    with DBStore(SessionLocal(engine)) as store:
        yield store


@pytest.fixture
def file_engine(tmp_path):
    engine = make_engine(f"sqlite:///{tmp_path / 'ringside.db'}")
    create_all(engine)
    return engine


def test_db_store_satisfies_protocol(db_store):
    assert isinstance(db_store, RosterStore)


def test_add_and_get(db_store):
    kane = db_store.add_entity(RosterEntity(EntityType.WRESTLER, "Kane"))
    assert kane.id is not None
    assert db_store.get_entity(kane.id) == kane
    assert len(db_store) == 1
    with pytest.raises(KeyError):
        db_store.get_entity(999)


def test_period_contract(db_store):
    kane = db_store.add_entity(RosterEntity(EntityType.WRESTLER, "Kane"))
    first = db_store.open_period(kane, EMP, d(1))
    assert db_store.open_period(kane, EMP, d(1)).id == first.id
    with pytest.raises(DuplicateCurrentPeriodError):
        db_store.open_period(kane, EMP, d(2))
    closed = db_store.close_period(kane, EMP, d(3))
    assert closed.ended_at == d(3)
    assert db_store.current_period(kane, EMP) is None
    assert [p.started_at for p in db_store.periods_overlapping(kane, EMP, d(2))] == [d(1)]


def test_membership_exclusivity(db_store):
    matt = db_store.add_entity(RosterEntity(EntityType.WRESTLER, "Matt"))
    t1 = db_store.add_entity(RosterEntity(EntityType.TAG_TEAM, "One"))
    t2 = db_store.add_entity(RosterEntity(EntityType.TAG_TEAM, "Two"))
    db_store.open_membership(RelationKind.TAG_TEAM_WRESTLER, t1, matt, d(1))
    with pytest.raises(MembershipConflictError):
        db_store.open_membership(RelationKind.TAG_TEAM_WRESTLER, t2, matt, d(1))
    assert [m.composite_id for m in db_store.memberships_of(matt)] == [t1.id]


def test_atomic_rollback(db_store):
    kane = db_store.add_entity(RosterEntity(EntityType.WRESTLER, "Kane"))
    with pytest.raises(DuplicateCurrentPeriodError):
        with db_store.atomic():
            db_store.open_period(kane, EMP, d(1))
            db_store.open_period(kane, EMP, d(2))
    assert db_store.periods(kane, EMP) == []


def test_soft_delete_and_restore(db_store):
    kane = db_store.add_entity(RosterEntity(EntityType.WRESTLER, "Kane"))
    db_store.soft_delete(kane, d(1))
    assert db_store.entities() == []
    assert db_store.restore(kane).deleted_at is None


def test_engine_runs_on_db_store(db_store):
    engine = LifecycleEngine(db_store)
    matt = db_store.add_entity(RosterEntity(EntityType.WRESTLER, "Matt"))
    jeff = db_store.add_entity(RosterEntity(EntityType.WRESTLER, "Jeff"))
    team = db_store.add_entity(RosterEntity(EntityType.TAG_TEAM, "Hardys"))
    engine.reconcile_membership(team, [matt, jeff], d(1))
    report = engine.cascade_transition(team, Capability.EMPLOYABLE, Transition.OPEN, d(2))
    assert len(report.steps) == 3
    assert engine.query_status(jeff, d(3)).employment is EmploymentStatus.EMPLOYED


def test_persistence_across_sessions(file_engine):
    with DBStore(SessionLocal(file_engine)) as store:
        kane = store.add_entity(RosterEntity(EntityType.WRESTLER, "Kane"))
        store.open_period(kane, EMP, d(1))

    with DBStore(SessionLocal(file_engine)) as store2:
        fetched = store2.get_entity(kane.id)
        assert fetched.name == "Kane"
        assert store2.current_period(fetched, EMP).started_at == d(1)


def test_datetime_columns_are_naive():
    columns = [
        RosterEntityRow.__table__.c.deleted_at,
        StatusPeriodRow.__table__.c.started_at,
        StatusPeriodRow.__table__.c.ended_at,
        MembershipRow.__table__.c.joined_at,
        MembershipRow.__table__.c.left_at,
    ]
    assert [c.type.timezone for c in columns] == [False] * 5


def test_naive_datetimes_round_trip(file_engine):
    noon = datetime(2024, 3, 1, 12, 30)
    with DBStore(SessionLocal(file_engine)) as store:
        kane = store.add_entity(RosterEntity(EntityType.WRESTLER, "Kane"))
        team = store.add_entity(RosterEntity(EntityType.TAG_TEAM, "Brothers"))
        store.open_period(kane, EMP, d(1))
        store.close_period(kane, EMP, noon)
        store.open_membership(RelationKind.TAG_TEAM_WRESTLER, team, kane, d(1))
        store.close_membership(RelationKind.TAG_TEAM_WRESTLER, team, kane, noon)
        store.soft_delete(kane, noon)

    with DBStore(SessionLocal(file_engine)) as store2:
        fetched = store2.get_entity(kane.id)
        period = store2.periods(fetched, EMP)[0]
        membership = store2.memberships_of(fetched, current_only=False)[0]
        assert fetched.deleted_at == noon and fetched.deleted_at.tzinfo is None
        assert (period.started_at, period.ended_at) == (d(1), noon)
        assert (membership.joined_at, membership.left_at) == (d(1), noon)


def test_concurrent_writer_is_detected(file_engine):
    first = DBStore(SessionLocal(file_engine))
    second = DBStore(SessionLocal(file_engine))
    kane = first.add_entity(RosterEntity(EntityType.WRESTLER, "Kane"))

    first.begin_atomic()
    first.periods(kane, EMP)  # first unit observes the entity
    second.open_period(kane, EMP, d(1))
    with pytest.raises(ConcurrentModificationError):
        first.open_period(kane, PeriodKind.INJURY, d(2))
    first.rollback()

    assert [p.started_at for p in first.periods(kane, EMP)] == [d(1)]
    assert first.periods(kane, PeriodKind.INJURY) == []
    first.__exit__(None, None, None)
    second.__exit__(None, None, None)
