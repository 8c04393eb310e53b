"""
tests/test_seed.py
==================

The sample roster seeds cleanly and ends in the statuses it describes.
"""

from datetime import datetime

from ringside.engine import LifecycleEngine
from ringside.models import EmploymentStatus, PeriodKind, RelationKind
from seed_database import SAMPLE_ROSTER, seed_roster

E = EmploymentStatus
AS_OF = datetime(2021, 6, 1)


def test_seed_roster_statuses(store):
    roster = seed_roster(store)
    engine = LifecycleEngine(store)

    def status(name):
        return engine.query_status(roster[name], AS_OF)

    assert len(store) == len(SAMPLE_ROSTER)
    assert status("The Hardy Boyz").employment is E.EMPLOYED
    assert status("Jeff Hardy").employment is E.EMPLOYED
    assert status("Lita").employment is E.EMPLOYED
    assert status("Brothers of Destruction").retired
    assert status("Kane").employment is E.RELEASED
    assert status("Christian").employment is E.RELEASED
    assert status("Earl Hebner").retired
    assert status("Rey Mysterio").injured
    assert status("Batista").suspended
    assert status("Team Xtreme").employment is E.EMPLOYED
    assert status("Intercontinental Championship").employment is E.EMPLOYED


def test_seed_restores_manager(store):
    roster = seed_roster(store)
    bearer = roster["Paul Bearer"]
    assert not store.get_entity(bearer.id).is_deleted
    assert [m.relation for m in store.memberships_of(bearer)] == [RelationKind.WRESTLER_MANAGER]
    assert store.current_period(bearer, PeriodKind.EMPLOYMENT) is not None
