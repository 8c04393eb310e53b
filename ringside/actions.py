"""
ringside.actions
================

One function per business operation.

Each action resolves its target entity by id, calls the engine with the
caller's effective date, and retries once (``settings.conflict_retries``)
when another unit of work modified the same entity concurrently.
Business-rule rejections are logged and re-raised for the caller to
translate into a message.

>>> from datetime import datetime
>>> from ringside.engine import LifecycleEngine
>>> from ringside.store import MemoryStore
>>> from ringside.models import EntityType, RosterEntity
>>> engine = LifecycleEngine(MemoryStore())
>>> kane = engine.store.add_entity(RosterEntity(EntityType.WRESTLER, "Kane"))
>>> employ(engine, kane.id, datetime(2024, 1, 1)).steps[0].entity.name
'Kane'
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Iterable, List, Tuple, TypeVar

from .engine import LifecycleEngine
from .errors import ConcurrentModificationError, IllegalTransitionError, ReconciliationError
from .models import (
    Capability,
    CascadeReport,
    Membership,
    MembershipDiff,
    RestorePolicy,
    RosterEntity,
    Transition,
)

logger = logging.getLogger(__name__)

R = TypeVar("R")


def _run(engine: LifecycleEngine, label: str, entity_id: int, call: Callable[[RosterEntity], R]) -> R:
    attempts = engine.config.conflict_retries + 1
    for attempt in range(1, attempts + 1):
        entity = engine.store.get_entity(entity_id)
        logger.info(f"{label} {entity}")
        try:
            return call(entity)
        except ConcurrentModificationError as exc:
            if attempt == attempts:
                logger.warning(f"{label} {entity} gave up after {attempt} attempt(s): {exc}")
                raise
            logger.warning(f"{label} {entity} hit a concurrent change, retrying: {exc}")
        except (IllegalTransitionError, ReconciliationError) as exc:
            logger.warning(f"{label} {entity} rejected: {exc}")
            raise
    raise AssertionError("unreachable")


def _transition(label: str, capability: Capability, transition: Transition):
    def action(engine: LifecycleEngine, entity_id: int, effective_date: datetime) -> CascadeReport:
        return _run(
            engine, label, entity_id,
            lambda e: engine.cascade_transition(e, capability, transition, effective_date),
        )

    action.__name__ = label
    action.__doc__ = f"{label.capitalize()} entity *entity_id* on *effective_date*, cascading to its members."
    return action


# ---------------------------------------------------------------------
# Status operations
# ---------------------------------------------------------------------
employ = _transition("employ", Capability.EMPLOYABLE, Transition.OPEN)
release = _transition("release", Capability.EMPLOYABLE, Transition.CLOSE)
injure = _transition("injure", Capability.INJURABLE, Transition.OPEN)
heal = _transition("heal", Capability.INJURABLE, Transition.CLOSE)
suspend = _transition("suspend", Capability.SUSPENDABLE, Transition.OPEN)
reinstate = _transition("reinstate", Capability.SUSPENDABLE, Transition.CLOSE)
retire = _transition("retire", Capability.RETIRABLE, Transition.OPEN)
unretire = _transition("unretire", Capability.RETIRABLE, Transition.CLOSE)
debut = _transition("debut", Capability.DEBUTABLE, Transition.OPEN)
deactivate = _transition("deactivate", Capability.DEBUTABLE, Transition.CLOSE)


# ---------------------------------------------------------------------
# Restructuring
# ---------------------------------------------------------------------
def replace_partners(
    engine: LifecycleEngine,
    team_id: int,
    wrestler_ids: Iterable[int],
    effective_date: datetime,
    policy: RestorePolicy = RestorePolicy.CONSERVATIVE,
) -> MembershipDiff:
    ids = list(wrestler_ids)
    return _run(
        engine, "replace partners of", team_id,
        lambda team: engine.reconcile_membership(
            team, [engine.store.get_entity(i) for i in ids], effective_date, policy
        ),
    )


def merge(engine: LifecycleEngine, primary_id: int, secondary_id: int, effective_date: datetime) -> MembershipDiff:
    return _run(
        engine, "merge into", primary_id,
        lambda primary: engine.merge_stables(primary, engine.store.get_entity(secondary_id), effective_date),
    )


def split(
    engine: LifecycleEngine,
    stable_id: int,
    new_name: str,
    member_ids: Iterable[int],
    effective_date: datetime,
) -> Tuple[RosterEntity, MembershipDiff]:
    ids = list(member_ids)
    return _run(
        engine, "split", stable_id,
        lambda stable: engine.split_stable(
            stable, new_name, [engine.store.get_entity(i) for i in ids], effective_date
        ),
    )


def delete(engine: LifecycleEngine, entity_id: int, effective_date: datetime) -> List[Membership]:
    return _run(engine, "delete", entity_id, lambda e: engine.delete(e, effective_date))


def restore(engine: LifecycleEngine, entity_id: int, effective_date: datetime, policy: RestorePolicy) -> MembershipDiff:
    return _run(engine, "restore", entity_id, lambda e: engine.restore(e, effective_date, policy))


ACTIONS = {
    fn.__name__: fn
    for fn in (
        employ, release, injure, heal, suspend, reinstate, retire, unretire, debut, deactivate,
        replace_partners, merge, split, delete, restore,
    )
}
