"""
ringside.strategies
===================

Transition validation strategies.

One strategy object per (capability, transition) pair, with overrides
for entity types whose rules differ (tag teams).  A strategy answers two
questions about an entity on an effective date:

* :meth:`TransitionStrategy.validate` – is the transition legal?  Raises
  the capability-specific :class:`~ringside.errors.IllegalTransitionError`
  subclass with a :class:`~ringside.errors.ReasonCode` when it is not.
* :meth:`TransitionStrategy.apply` – write the periods the transition
  implies (e.g., releasing also closes an open injury and suspension).

Strategies are looked up with :func:`strategy_for`, which checks the
capability matrix first so unsupported requests never reach a strategy.
"""

from __future__ import annotations

from datetime import datetime
from typing import Dict, Iterable, List, Optional, Tuple, Type

from . import status
from .capabilities import period_kind, require, supports, tenure_kind
from .errors import (
    CannotBeDeactivatedError,
    CannotBeDebutedError,
    CannotBeEmployedError,
    CannotBeHealedError,
    CannotBeInjuredError,
    CannotBeReinstatedError,
    CannotBeReleasedError,
    CannotBeRetiredError,
    CannotBeSuspendedError,
    CannotBeUnretiredError,
    IllegalTransitionError,
    ReasonCode,
    UnsupportedCapabilityError,
)
from .models import (
    Capability,
    EmploymentStatus,
    EntityType,
    PeriodKind,
    RelationKind,
    RosterEntity,
    StatusPeriod,
    Transition,
)
from .store import RosterStore

C = Capability
T = Transition
E = EmploymentStatus


class TransitionStrategy:
    """
    Base strategy: opens or closes one period of the capability's kind.

    Subclasses set :attr:`capability`, :attr:`transition` and
    :attr:`error`, and implement :meth:`check`.
    """

    capability: Capability
    transition: Transition
    error: Type[IllegalTransitionError] = IllegalTransitionError

    @property
    def kind(self) -> PeriodKind:
        return period_kind(self.capability)

    def fail(self, reason: ReasonCode, entity: RosterEntity) -> IllegalTransitionError:
        return self.error(reason, entity)

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------
    def validate(self, store: RosterStore, entity: RosterEntity, when: datetime) -> None:
        """Raise :attr:`error` unless the transition is legal on *when*."""
        if entity.is_deleted:
            raise self.fail(ReasonCode.PREREQUISITE_NOT_MET, entity)
        self.check(store, entity, when, status.derive_employment_status(store, entity, when))

    def check(self, store: RosterStore, entity: RosterEntity, when: datetime, current: EmploymentStatus) -> None:
        raise NotImplementedError

    # ------------------------------------------------------------------
    # Effects
    # ------------------------------------------------------------------
    def apply(self, store: RosterStore, entity: RosterEntity, when: datetime) -> List[StatusPeriod]:
        if self.transition is T.OPEN:
            return [store.open_period(entity, self.kind, when)]
        return [store.close_period(entity, self.kind, when)]

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.capability.name}/{self.transition.name}>"


def _close_if_open(store: RosterStore, entity: RosterEntity, kind: Optional[PeriodKind], when: datetime) -> List[StatusPeriod]:
    if kind is None or store.current_period(entity, kind) is None:
        return []
    return [store.close_period(entity, kind, when)]


def _close_flags(store: RosterStore, entity: RosterEntity, when: datetime) -> List[StatusPeriod]:
    """Close any open injury and suspension before tenure ends."""
    closed: List[StatusPeriod] = []
    if supports(entity.entity_type, C.INJURABLE):
        closed += _close_if_open(store, entity, PeriodKind.INJURY, when)
    if supports(entity.entity_type, C.SUSPENDABLE):
        closed += _close_if_open(store, entity, PeriodKind.SUSPENSION, when)
    return closed


def _ends_after_start(store: RosterStore, entity: RosterEntity, kinds: Iterable[Optional[PeriodKind]], when: datetime) -> bool:
    """True unless an open period of *kinds* starts on or after *when*."""
    for kind in kinds:
        period = store.current_period(entity, kind) if kind else None
        if period is not None and when <= period.started_at:
            return False
    return True


_FLAGS = (PeriodKind.INJURY, PeriodKind.SUSPENSION)


# ---------------------------------------------------------------------
# Employment
# ---------------------------------------------------------------------
class EmployStrategy(TransitionStrategy):
    capability = C.EMPLOYABLE
    transition = T.OPEN
    error = CannotBeEmployedError

    def check(self, store, entity, when, current):
        if current is E.RETIRED:
            raise self.fail(ReasonCode.RETIRED, entity)
        if current is E.EMPLOYED:
            raise self.fail(ReasonCode.ALREADY_IN_STATUS, entity)
        if current is E.FUTURE_EMPLOYMENT:
            raise self.fail(ReasonCode.HAS_FUTURE_SCHEDULED_TRANSITION, entity)


class ReleaseStrategy(TransitionStrategy):
    capability = C.EMPLOYABLE
    transition = T.CLOSE
    error = CannotBeReleasedError

    def check(self, store, entity, when, current):
        if current is E.RETIRED:
            raise self.fail(ReasonCode.RETIRED, entity)
        if current is E.FUTURE_EMPLOYMENT:
            raise self.fail(ReasonCode.HAS_FUTURE_SCHEDULED_TRANSITION, entity)
        if current is not E.EMPLOYED:
            raise self.fail(ReasonCode.PREREQUISITE_NOT_MET, entity)
        if not _ends_after_start(store, entity, _FLAGS + (PeriodKind.EMPLOYMENT,), when):
            raise self.fail(ReasonCode.PREREQUISITE_NOT_MET, entity)

    def apply(self, store, entity, when):
        return _close_flags(store, entity, when) + [store.close_period(entity, PeriodKind.EMPLOYMENT, when)]


# ---------------------------------------------------------------------
# Injury / suspension
# ---------------------------------------------------------------------
class _FlagOpenStrategy(TransitionStrategy):
    """Injure and suspend share their rules; they do not block each other."""

    def check(self, store, entity, when, current):
        if current is E.RETIRED:
            raise self.fail(ReasonCode.RETIRED, entity)
        if current is E.FUTURE_EMPLOYMENT:
            raise self.fail(ReasonCode.HAS_FUTURE_SCHEDULED_TRANSITION, entity)
        if current is not E.EMPLOYED:
            raise self.fail(ReasonCode.PREREQUISITE_NOT_MET, entity)
        if store.current_period(entity, self.kind) is not None:
            raise self.fail(ReasonCode.ALREADY_IN_STATUS, entity)


class _FlagCloseStrategy(TransitionStrategy):
    def check(self, store, entity, when, current):
        period = store.current_period(entity, self.kind)
        if period is None or when <= period.started_at:
            raise self.fail(ReasonCode.PREREQUISITE_NOT_MET, entity)


class InjureStrategy(_FlagOpenStrategy):
    capability = C.INJURABLE
    transition = T.OPEN
    error = CannotBeInjuredError


class HealStrategy(_FlagCloseStrategy):
    capability = C.INJURABLE
    transition = T.CLOSE
    error = CannotBeHealedError


class SuspendStrategy(_FlagOpenStrategy):
    capability = C.SUSPENDABLE
    transition = T.OPEN
    error = CannotBeSuspendedError


class ReinstateStrategy(_FlagCloseStrategy):
    capability = C.SUSPENDABLE
    transition = T.CLOSE
    error = CannotBeReinstatedError


# ---------------------------------------------------------------------
# Retirement
# ---------------------------------------------------------------------
class RetireStrategy(TransitionStrategy):
    capability = C.RETIRABLE
    transition = T.OPEN
    error = CannotBeRetiredError

    def check(self, store, entity, when, current):
        if current is E.RETIRED:
            raise self.fail(ReasonCode.ALREADY_IN_STATUS, entity)
        if current is E.FUTURE_EMPLOYMENT:
            raise self.fail(ReasonCode.HAS_FUTURE_SCHEDULED_TRANSITION, entity)
        if current is not E.EMPLOYED:
            raise self.fail(ReasonCode.PREREQUISITE_NOT_MET, entity)
        if not _ends_after_start(store, entity, _FLAGS + (tenure_kind(entity.entity_type),), when):
            raise self.fail(ReasonCode.PREREQUISITE_NOT_MET, entity)

    def apply(self, store, entity, when):
        closed = _close_flags(store, entity, when)
        closed += _close_if_open(store, entity, tenure_kind(entity.entity_type), when)
        return closed + [store.open_period(entity, PeriodKind.RETIREMENT, when)]


class UnretireStrategy(TransitionStrategy):
    """Closes the retirement and opens a *new* tenure period on the same date."""

    capability = C.RETIRABLE
    transition = T.CLOSE
    error = CannotBeUnretiredError

    def check(self, store, entity, when, current):
        if current is not E.RETIRED:
            raise self.fail(ReasonCode.PREREQUISITE_NOT_MET, entity)
        if not _ends_after_start(store, entity, (PeriodKind.RETIREMENT,), when):
            raise self.fail(ReasonCode.PREREQUISITE_NOT_MET, entity)

    def end_retirement(self, store: RosterStore, entity: RosterEntity, when: datetime) -> List[StatusPeriod]:
        return [store.close_period(entity, PeriodKind.RETIREMENT, when)]

    def reopen_tenure(self, store: RosterStore, entity: RosterEntity, when: datetime) -> List[StatusPeriod]:
        kind = tenure_kind(entity.entity_type)
        return [store.open_period(entity, kind, when)] if kind else []

    def apply(self, store, entity, when):
        return self.end_retirement(store, entity, when) + self.reopen_tenure(store, entity, when)


# ---------------------------------------------------------------------
# Activation (stables, titles)
# ---------------------------------------------------------------------
class DebutStrategy(TransitionStrategy):
    capability = C.DEBUTABLE
    transition = T.OPEN
    error = CannotBeDebutedError

    def check(self, store, entity, when, current):
        if current is E.RETIRED:
            raise self.fail(ReasonCode.RETIRED, entity)
        if current is E.EMPLOYED:
            raise self.fail(ReasonCode.ALREADY_IN_STATUS, entity)
        if current is E.FUTURE_EMPLOYMENT:
            raise self.fail(ReasonCode.HAS_FUTURE_SCHEDULED_TRANSITION, entity)


class DeactivateStrategy(TransitionStrategy):
    capability = C.DEBUTABLE
    transition = T.CLOSE
    error = CannotBeDeactivatedError

    def check(self, store, entity, when, current):
        if current is E.RETIRED:
            raise self.fail(ReasonCode.RETIRED, entity)
        if current is E.FUTURE_EMPLOYMENT:
            raise self.fail(ReasonCode.HAS_FUTURE_SCHEDULED_TRANSITION, entity)
        if current is not E.EMPLOYED:
            raise self.fail(ReasonCode.PREREQUISITE_NOT_MET, entity)
        if not _ends_after_start(store, entity, (PeriodKind.ACTIVATION,), when):
            raise self.fail(ReasonCode.PREREQUISITE_NOT_MET, entity)


# ---------------------------------------------------------------------
# Tag-team overrides
# ---------------------------------------------------------------------
class _RequiresPartners:
    """Mixin: a tag team needs at least one current wrestler partner."""

    def check(self, store, entity, when, current):
        super().check(store, entity, when, current)
        if not store.current_memberships(entity, RelationKind.TAG_TEAM_WRESTLER):
            raise self.fail(ReasonCode.PREREQUISITE_NOT_MET, entity)


class TagTeamSuspendStrategy(_RequiresPartners, SuspendStrategy):
    pass


class TagTeamRetireStrategy(_RequiresPartners, RetireStrategy):
    pass


# ---------------------------------------------------------------------
# Registry: (capability, transition) → strategy, with per-type overrides
# ---------------------------------------------------------------------
StrategyKey = Tuple[Capability, Transition]

DEFAULTS: Dict[StrategyKey, TransitionStrategy] = {
    (s.capability, s.transition): s
    for s in (
        EmployStrategy(), ReleaseStrategy(),
        InjureStrategy(), HealStrategy(),
        SuspendStrategy(), ReinstateStrategy(),
        RetireStrategy(), UnretireStrategy(),
        DebutStrategy(), DeactivateStrategy(),
    )
}

OVERRIDES: Dict[Tuple[EntityType, Capability, Transition], TransitionStrategy] = {
    (EntityType.TAG_TEAM, C.SUSPENDABLE, T.OPEN): TagTeamSuspendStrategy(),
    (EntityType.TAG_TEAM, C.RETIRABLE, T.OPEN): TagTeamRetireStrategy(),
}


def strategy_for(entity_type: EntityType, capability: Capability, transition: Transition) -> TransitionStrategy:
    """
    Select the strategy for a transition.

    Raises
    ------
    UnsupportedCapabilityError
        If *entity_type* does not declare *capability*, or the capability
        has no period history to transition (e.g., BOOKABLE).
    """
    require(entity_type, capability)
    strategy = OVERRIDES.get((entity_type, capability, transition)) or DEFAULTS.get((capability, transition))
    if strategy is None:
        # flag-only capabilities (BOOKABLE, MANAGEABLE, ...)
        raise UnsupportedCapabilityError(entity_type, capability)
    return strategy
