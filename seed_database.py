#!/usr/bin/env python
"""
Seed the database with a sample roster.

Every capability gets some history: employed and released wrestlers, an
injured and a suspended one, a retiree, a tag team with a manager, a
stable and a title.
"""

import logging
from datetime import datetime
from typing import Dict

from ringside import actions
from ringside.engine import LifecycleEngine
from ringside.models import EntityType, RelationKind, RestorePolicy, RosterEntity
from ringside.store import RosterStore

logger = logging.getLogger(__name__)

START = datetime(2020, 1, 1)

SAMPLE_ROSTER = [
    (EntityType.WRESTLER, "Kane"),
    (EntityType.WRESTLER, "The Undertaker"),
    (EntityType.WRESTLER, "Matt Hardy"),
    (EntityType.WRESTLER, "Jeff Hardy"),
    (EntityType.WRESTLER, "Edge"),
    (EntityType.WRESTLER, "Christian"),
    (EntityType.WRESTLER, "Rey Mysterio"),
    (EntityType.WRESTLER, "Batista"),
    (EntityType.MANAGER, "Paul Bearer"),
    (EntityType.MANAGER, "Lita"),
    (EntityType.REFEREE, "Earl Hebner"),
    (EntityType.TAG_TEAM, "The Hardy Boyz"),
    (EntityType.TAG_TEAM, "Brothers of Destruction"),
    (EntityType.STABLE, "Team Xtreme"),
    (EntityType.TITLE, "Intercontinental Championship"),
]


def seed_roster(store: RosterStore, start: datetime = START) -> Dict[str, RosterEntity]:
    """Add the sample roster to *store* and give it a status history."""
    engine = LifecycleEngine(store)
    roster = {name: store.add_entity(RosterEntity(etype, name)) for etype, name in SAMPLE_ROSTER}

    def at(month: int) -> datetime:
        return start.replace(year=start.year + (month - 1) // 12, month=(month - 1) % 12 + 1)

    hardys = roster["The Hardy Boyz"]
    brothers = roster["Brothers of Destruction"]
    xtreme = roster["Team Xtreme"]

    # tag teams and their partners / manager
    engine.reconcile_membership(hardys, [roster["Matt Hardy"], roster["Jeff Hardy"]], at(1))
    engine.reconcile_membership(brothers, [roster["Kane"], roster["The Undertaker"]], at(1))
    store.open_membership(RelationKind.TAG_TEAM_MANAGER, hardys, roster["Lita"], at(1))
    store.open_membership(RelationKind.WRESTLER_MANAGER, roster["Kane"], roster["Paul Bearer"], at(1))

    for team in (hardys, brothers):
        actions.employ(engine, team.id, at(2))
    for name in ("Edge", "Christian", "Rey Mysterio", "Batista", "Paul Bearer", "Earl Hebner"):
        actions.employ(engine, roster[name].id, at(2))

    # stable: the Hardys as a team plus Edge
    actions.debut(engine, xtreme.id, at(3))
    store.open_membership(RelationKind.STABLE_TAG_TEAM, xtreme, hardys, at(3))
    store.open_membership(RelationKind.STABLE_WRESTLER, xtreme, roster["Edge"], at(3))

    actions.debut(engine, roster["Intercontinental Championship"].id, at(1))

    # some history
    actions.injure(engine, roster["Rey Mysterio"].id, at(6))
    actions.suspend(engine, roster["Batista"].id, at(7))
    actions.release(engine, roster["Christian"].id, at(8))
    actions.retire(engine, brothers.id, at(10))
    actions.retire(engine, roster["Earl Hebner"].id, at(11))

    # a deletion and a restore round trip
    actions.delete(engine, roster["Paul Bearer"].id, at(12))
    actions.restore(engine, roster["Paul Bearer"].id, at(13), RestorePolicy.CONSERVATIVE)

    logger.info(f"seeded {len(roster)} roster entities")
    return roster


if __name__ == "__main__":
    from ringside.db import create_all
    from ringside.settings import LOG_FORMAT, LOG_LEVEL
    from ringside.store_db import DBStore

    logging.basicConfig(level=LOG_LEVEL, format=LOG_FORMAT)

    logger.info("Ensuring database tables exist...")
    create_all()

    logger.info("Seeding database with a sample roster...")
    with DBStore() as store:
        seed_roster(store)

    logger.info("Done! Chart the roster with ringside.viz.status_summary(store, as_of).")
