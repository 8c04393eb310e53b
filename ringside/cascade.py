"""
ringside.cascade
================

Composite transitions as an explicit plan plus an atomic executor.

:func:`plan` reads the pre-transition state once and returns the ordered
steps a transition implies (composite first, then members).
:func:`execute` runs them inside one atomic unit: each step is validated
against the state left by the steps before it, and the first failure
rolls the whole unit back and propagates unchanged.

Cascade rules
-------------
=====================  ==================================================
Employ wrestler        wrestler, then current managers not yet employed
Employ tag team        team, then current wrestlers and managers not
                       yet employed
Release tag team       team, then current employed wrestlers released
Retire tag team        team retires, current employed wrestlers released
Suspend tag team       team, then employed, unsuspended wrestlers
Reinstate tag team     team, then currently suspended wrestlers
Retire stable          stable, then employed wrestlers and tag teams
                       retired (each team's employed wrestlers
                       released); current memberships closed
Unretire composite     retirement closed, retired current members
                       unretired, composite tenure reopened
=====================  ==================================================

Whatever retires in a cascade also leaves: its current memberships and
its manager relations end on the retirement date.  Tag teams retired
along with their stable skip the partner requirement.

Anything else is a single step.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, List, Optional

from . import status
from .capabilities import manager_relations, member_relations, period_kind, relations_of
from .models import (
    CascadeReport,
    CascadeStep,
    Capability,
    EmploymentStatus,
    EntityType,
    Membership,
    RelationKind,
    RosterEntity,
    StatusPeriod,
    Transition,
)
from .relationships import MembershipGraph
from .store import RosterStore
from .strategies import DEFAULTS, TransitionStrategy, strategy_for

logger = logging.getLogger(__name__)

C = Capability
T = Transition
E = EmploymentStatus

Effect = Callable[[RosterStore, RosterEntity, datetime], List[StatusPeriod]]


@dataclass
class PlannedStep:
    """One entity-level transition waiting to run."""
    entity: RosterEntity
    capability: Capability
    transition: Transition
    strategy: TransitionStrategy
    effect: Optional[Effect] = None
    validate: bool = True

    def run(self, store: RosterStore, when: datetime) -> CascadeStep:
        if self.validate:
            self.strategy.validate(store, self.entity, when)
        effect = self.effect or self.strategy.apply
        return CascadeStep(self.entity, self.capability, self.transition, effect(store, self.entity, when))


@dataclass
class CascadePlan:
    composite: RosterEntity
    steps: List[PlannedStep] = field(default_factory=list)
    close_memberships: bool = False
    # entities whose own memberships and manager relations end with the unit
    leaving: List[RosterEntity] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.steps)


def _step(entity: RosterEntity, capability: Capability, transition: Transition, **kw) -> PlannedStep:
    return PlannedStep(entity, capability, transition, strategy_for(entity.entity_type, capability, transition), **kw)


def single(entity: RosterEntity, capability: Capability, transition: Transition) -> CascadePlan:
    """A plan touching *entity* alone."""
    return CascadePlan(entity, [_step(entity, capability, transition)])


# ---------------------------------------------------------------------
# Planning
# ---------------------------------------------------------------------
def plan(store: RosterStore, composite: RosterEntity, capability: Capability, transition: Transition, when: datetime) -> CascadePlan:
    """Ordered steps for *capability*/*transition* on *composite* at *when*."""
    head = _step(composite, capability, transition)
    result = CascadePlan(composite, [head])
    op = (capability, transition)
    retiring = op == (C.RETIRABLE, T.OPEN)
    if retiring and composite.entity_type is not EntityType.STABLE:
        result.leaving.append(composite)
    if not relations_of(composite.entity_type):
        return result

    graph = MembershipGraph()
    graph.load_composite(store, composite)

    def employment(entity: RosterEntity) -> EmploymentStatus:
        return status.derive_employment_status(store, entity, when)

    def members() -> List[RosterEntity]:
        return [m for rel in member_relations(composite.entity_type) for m in graph.members(composite, rel)]

    def managers(entity: RosterEntity) -> List[RosterEntity]:
        return [m for rel in manager_relations(entity.entity_type) for m in graph.members(entity, rel)]

    def partners(team: RosterEntity) -> List[RosterEntity]:
        return graph.members(team, RelationKind.TAG_TEAM_WRESTLER)

    def released_partners(team: RosterEntity) -> List[PlannedStep]:
        # partners are released, never retired along with the team
        planned = {s.entity.id for s in result.steps}
        return [
            _step(w, C.EMPLOYABLE, T.CLOSE) for w in partners(team)
            if employment(w) is E.EMPLOYED and w.id not in planned
        ]

    if composite.entity_type is EntityType.WRESTLER and op == (C.EMPLOYABLE, T.OPEN):
        result.steps += [_step(m, C.EMPLOYABLE, T.OPEN) for m in managers(composite) if employment(m) is not E.EMPLOYED]

    if composite.entity_type is EntityType.TAG_TEAM:
        wrestlers = partners(composite)
        if op == (C.EMPLOYABLE, T.OPEN):
            result.steps += [
                _step(m, C.EMPLOYABLE, T.OPEN) for m in wrestlers + managers(composite)
                if employment(m) is not E.EMPLOYED
            ]
        elif op == (C.EMPLOYABLE, T.CLOSE) or retiring:
            result.steps += released_partners(composite)
        elif op == (C.SUSPENDABLE, T.OPEN):
            result.steps += [
                _step(w, C.SUSPENDABLE, T.OPEN) for w in wrestlers
                if employment(w) is E.EMPLOYED and not status.is_suspended(store, w, when)
            ]
        elif op == (C.SUSPENDABLE, T.CLOSE):
            result.steps += [_step(w, C.SUSPENDABLE, T.CLOSE) for w in wrestlers if status.is_suspended(store, w, when)]

    if composite.entity_type is EntityType.STABLE and retiring:
        for member in members():
            if employment(member) is not E.EMPLOYED:
                continue
            if member.entity_type is EntityType.TAG_TEAM:
                # a team retired with its stable may have no partners left
                graph.load_composite(store, member)
                result.steps.append(PlannedStep(member, C.RETIRABLE, T.OPEN, DEFAULTS[(C.RETIRABLE, T.OPEN)]))
                result.steps += released_partners(member)
            else:
                result.steps.append(_step(member, C.RETIRABLE, T.OPEN))
            result.leaving.append(member)
        result.close_memberships = True

    if op == (C.RETIRABLE, T.CLOSE) and composite.entity_type.is_composite:
        unretire = head.strategy
        head.effect = unretire.end_retirement
        result.steps += [_step(m, C.RETIRABLE, T.CLOSE) for m in members() if employment(m) is E.RETIRED]
        result.steps.append(
            PlannedStep(composite, capability, transition, unretire, effect=unretire.reopen_tenure, validate=False)
        )

    logger.debug(f"planned {len(result)} step(s) for {capability.name}/{transition.name} on {composite}")
    return result


# ---------------------------------------------------------------------
# Execution
# ---------------------------------------------------------------------
def _leave(store: RosterStore, entity: RosterEntity, when: datetime) -> List[Membership]:
    """End *entity*'s current memberships and manager relations at *when*."""
    closed = [
        store.close_membership(m.relation, store.get_entity(m.composite_id), entity, when)
        for m in store.memberships_of(entity)
    ]
    for relation in manager_relations(entity.entity_type):
        for m in store.current_memberships(entity, relation):
            closed.append(store.close_membership(relation, entity, store.get_entity(m.member_id), when))
    return closed


def execute(store: RosterStore, cascade: CascadePlan, when: datetime) -> CascadeReport:
    """Run the plan as one atomic unit; any failure discards every step."""
    composite = cascade.composite
    report = CascadeReport(composite)
    with store.atomic():
        for planned in cascade.steps:
            logger.debug(f"{planned.capability.name}/{planned.transition.name} on {planned.entity}")
            report.steps.append(planned.run(store, when))
        for entity in cascade.leaving:
            report.closed_memberships += _leave(store, entity, when)
        if cascade.close_memberships:
            for relation in member_relations(composite.entity_type):
                for m in store.current_memberships(composite, relation):
                    member = store.get_entity(m.member_id)
                    report.closed_memberships.append(store.close_membership(relation, composite, member, when))
    return report


def primary_period(step: CascadeStep) -> Optional[StatusPeriod]:
    """The period of the step's own capability (last one written)."""
    kind = period_kind(step.capability)
    matches = [p for p in step.periods if p.kind is kind]
    return matches[-1] if matches else None
