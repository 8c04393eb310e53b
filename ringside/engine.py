"""
ringside.engine
===============

:class:`LifecycleEngine` – the single entry point action collaborators
call.  It owns no state beyond its store and settings; every call takes
an explicit effective date and never reads the wall clock.

Flow of a transition::

    capability matrix ─▶ strategy.validate ─▶ strategy.apply (store)
            │                                        │
            └──────── composite? cascade.plan ───────┘─▶ cascade.execute

Errors propagate unchanged; see :mod:`ringside.errors`.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Iterable, List, Optional, Tuple

from . import cascade, membership, status
from .capabilities import require
from .models import (
    Capability,
    CascadeReport,
    Membership,
    MembershipDiff,
    RestorePolicy,
    RosterEntity,
    StatusPeriod,
    StatusSnapshot,
    Transition,
)
from .settings import Settings, settings as default_settings
from .store import RosterStore

logger = logging.getLogger(__name__)


class LifecycleEngine:
    """
    Status transitions, cascades and membership restructuring over a store.

    Parameters
    ----------
    store : RosterStore
        :class:`~ringside.store.MemoryStore` or
        :class:`~ringside.store_db.DBStore`.
    config : Settings, optional
        Domain tunables; defaults to the module-level ``settings``.

    Example
    -------
    >>> from datetime import datetime
    >>> from ringside.store import MemoryStore
    >>> from ringside.models import EntityType
    >>> engine = LifecycleEngine(MemoryStore())
    >>> kane = engine.store.add_entity(RosterEntity(EntityType.WRESTLER, "Kane"))
    >>> engine.transition(kane, Capability.EMPLOYABLE, Transition.OPEN, datetime(2024, 1, 1)).is_current
    True
    """

    def __init__(self, store: RosterStore, config: Optional[Settings] = None) -> None:
        self.store = store
        self.config = config or default_settings

    def _fresh(self, entity: RosterEntity) -> RosterEntity:
        return self.store.get_entity(entity.id)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------
    def transition(self, entity: RosterEntity, capability: Capability, transition: Transition, effective_date: datetime) -> StatusPeriod:
        """
        Apply one transition to *entity* alone and return the period of
        *capability*'s kind that it opened or closed.

        Implied closes still happen (releasing closes an open injury),
        but no member of a composite is touched; use
        :meth:`cascade_transition` for that.
        """
        require(entity.entity_type, capability)
        entity = self._fresh(entity)
        logger.debug(f"{capability.name}/{transition.name} on {entity} at {effective_date:%Y-%m-%d}")
        report = cascade.execute(self.store, cascade.single(entity, capability, transition), effective_date)
        return cascade.primary_period(report.steps[0])

    def cascade_transition(self, composite: RosterEntity, capability: Capability, transition: Transition, effective_date: datetime) -> CascadeReport:
        """
        Apply a transition and everything it implies for the members.

        For non-composite entities the report holds a single step.
        """
        require(composite.entity_type, capability)
        composite = self._fresh(composite)
        logger.debug(f"cascading {capability.name}/{transition.name} from {composite} at {effective_date:%Y-%m-%d}")
        steps = cascade.plan(self.store, composite, capability, transition, effective_date)
        report = cascade.execute(self.store, steps, effective_date)
        report.status = self.query_status(composite, effective_date)
        return report

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def query_status(self, entity: RosterEntity, as_of: datetime) -> StatusSnapshot:
        return status.snapshot(self.store, self._fresh(entity), as_of)

    def statistics(self, entities: Iterable[RosterEntity], as_of: datetime):
        """Counts by derived status; see :func:`ringside.status.roster_statistics`."""
        return status.roster_statistics(self.store, [self._fresh(e) for e in entities], as_of)

    # ------------------------------------------------------------------
    # Membership restructuring
    # ------------------------------------------------------------------
    def reconcile_membership(
        self,
        composite: RosterEntity,
        members: Iterable[RosterEntity],
        effective_date: datetime,
        policy: RestorePolicy = RestorePolicy.CONSERVATIVE,
    ) -> MembershipDiff:
        return membership.reconcile(
            self.store, self._fresh(composite), [self._fresh(m) for m in members],
            effective_date, policy, self.config,
        )

    def merge_stables(self, primary: RosterEntity, secondary: RosterEntity, effective_date: datetime) -> MembershipDiff:
        return membership.merge_stables(self.store, self._fresh(primary), self._fresh(secondary), effective_date)

    def split_stable(
        self,
        original: RosterEntity,
        new_name: str,
        members: Iterable[RosterEntity],
        effective_date: datetime,
    ) -> Tuple[RosterEntity, MembershipDiff]:
        return membership.split_stable(
            self.store, self._fresh(original), new_name, [self._fresh(m) for m in members], effective_date
        )

    def delete(self, entity: RosterEntity, effective_date: datetime) -> List[Membership]:
        return membership.delete_entity(self.store, entity, effective_date)

    def restore(self, entity: RosterEntity, effective_date: datetime, policy: RestorePolicy) -> MembershipDiff:
        """Restore a soft-deleted entity; *policy* is required."""
        return membership.restore_entity(self.store, entity, effective_date, policy, self.config)
