"""
Pytest configuration: make sure `import ringside` works regardless of
where pytest is invoked, and provide shared roster fixtures.
"""

import sys
from datetime import datetime
from pathlib import Path

import pytest

# /path/to/project/tests -> project root
PROJECT_ROOT = Path(__file__).resolve().parent.parent

if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from ringside.engine import LifecycleEngine  # noqa: E402
from ringside.models import EntityType, RelationKind, RosterEntity  # noqa: E402
from ringside.store import MemoryStore  # noqa: E402


def d(year: int, month: int = 1, day: int = 1) -> datetime:
    return datetime(year, month, day)


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def engine(store):
    return LifecycleEngine(store)


class RosterBuilder:
    """Tiny helper to add entities and memberships in one line each."""

    def __init__(self, store):
        self.store = store

    def add(self, entity_type: EntityType, name: str) -> RosterEntity:
        return self.store.add_entity(RosterEntity(entity_type, name))

    def wrestler(self, name: str) -> RosterEntity:
        return self.add(EntityType.WRESTLER, name)

    def tag_team(self, name: str, *partners: RosterEntity, joined: datetime = d(2023)) -> RosterEntity:
        team = self.add(EntityType.TAG_TEAM, name)
        for p in partners:
            self.store.open_membership(RelationKind.TAG_TEAM_WRESTLER, team, p, joined)
        return team

    def stable(self, name: str, *members: RosterEntity, joined: datetime = d(2023)) -> RosterEntity:
        stable = self.add(EntityType.STABLE, name)
        for m in members:
            relation = (
                RelationKind.STABLE_TAG_TEAM if m.entity_type is EntityType.TAG_TEAM
                else RelationKind.STABLE_WRESTLER
            )
            self.store.open_membership(relation, stable, m, joined)
        return stable


@pytest.fixture
def roster(store):
    return RosterBuilder(store)
