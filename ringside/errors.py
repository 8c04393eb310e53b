"""
ringside.errors
===============

Exception taxonomy raised by the lifecycle engine.

* :class:`UnsupportedCapabilityError` – programming / configuration error,
  never retried.
* :class:`IllegalTransitionError` – business-rule violation carrying a
  :class:`ReasonCode`; one concrete subclass per transition.
* :class:`PeriodStoreError` – temporal invariants enforced by the store.
* :class:`ReconciliationError` – membership restructuring failures.
* :class:`ConcurrentModificationError` – transient, safe to retry once.
* :class:`DataIntegrityError` – store corruption, fatal.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .models import Capability, EntityType, RosterEntity


class ReasonCode(Enum):
    """Why a transition or reconciliation was rejected."""
    ALREADY_IN_STATUS = "already_in_status"
    RETIRED = "retired"
    HAS_FUTURE_SCHEDULED_TRANSITION = "has_future_scheduled_transition"
    PREREQUISITE_NOT_MET = "prerequisite_not_met"
    ILLEGAL_FOR_ENTITY_TYPE = "illegal_for_entity_type"

    def __str__(self) -> str:
        return self.name


def describe(entity: Optional["RosterEntity"]) -> str:
    """Return the `` Wrestler 'Name'`` fragment used in error messages."""
    if entity is None:
        return " entity"
    return f" {entity.entity_type.label} '{entity.name}'"


class RingsideError(Exception):
    """Base class for every error raised by :pymod:`ringside`."""


class UnsupportedCapabilityError(RingsideError):
    """The entity type does not declare the requested capability."""

    def __init__(self, entity_type: "EntityType", capability: "Capability") -> None:
        self.entity_type = entity_type
        self.capability = capability
        super().__init__(
            f"{entity_type.label} does not support the {capability.name} capability"
        )


# ---------------------------------------------------------------------------
# Business-rule violations
# ---------------------------------------------------------------------------
class IllegalTransitionError(RingsideError):
    """
    A requested transition breaks a business rule.

    Parameters
    ----------
    reason : ReasonCode
        Machine-readable cause, used by callers to pick a message.
    entity : RosterEntity | None
        The entity whose transition was rejected.
    message : str | None
        Human readable message; built from *verb* when omitted.
    """

    verb = "transitioned"

    def __init__(
        self,
        reason: ReasonCode,
        entity: Optional["RosterEntity"] = None,
        message: Optional[str] = None,
    ) -> None:
        self.reason = reason
        self.entity = entity
        super().__init__(message or self._default_message(reason, entity))

    @classmethod
    def _default_message(cls, reason: ReasonCode, entity: Optional["RosterEntity"]) -> str:
        who = describe(entity)
        if reason is ReasonCode.ALREADY_IN_STATUS:
            return f"This{who} is already {cls.verb}."
        if reason is ReasonCode.RETIRED:
            return f"This{who} is retired and cannot be {cls.verb}."
        if reason is ReasonCode.HAS_FUTURE_SCHEDULED_TRANSITION:
            return f"This{who} has a scheduled future change and cannot be {cls.verb}."
        if reason is ReasonCode.ILLEGAL_FOR_ENTITY_TYPE:
            return f"This{who} cannot be {cls.verb} by its type."
        return f"This{who} cannot be {cls.verb}."


class CannotBeEmployedError(IllegalTransitionError):
    verb = "employed"


class CannotBeReleasedError(IllegalTransitionError):
    verb = "released"


class CannotBeInjuredError(IllegalTransitionError):
    verb = "injured"


class CannotBeHealedError(IllegalTransitionError):
    verb = "cleared from injury"


class CannotBeSuspendedError(IllegalTransitionError):
    verb = "suspended"


class CannotBeReinstatedError(IllegalTransitionError):
    verb = "reinstated"


class CannotBeRetiredError(IllegalTransitionError):
    verb = "retired"


class CannotBeUnretiredError(IllegalTransitionError):
    verb = "unretired"


class CannotBeDebutedError(IllegalTransitionError):
    verb = "debuted"


class CannotBeDeactivatedError(IllegalTransitionError):
    verb = "deactivated"


class CannotBeDeletedError(IllegalTransitionError):
    verb = "deleted"


class CannotBeRestoredError(IllegalTransitionError):
    verb = "restored"


# ---------------------------------------------------------------------------
# Temporal period store
# ---------------------------------------------------------------------------
class PeriodStoreError(RingsideError):
    """Base for violations of the period store contract."""


class DuplicateCurrentPeriodError(PeriodStoreError):
    """A current period of the same kind is already open."""


class NoCurrentPeriodError(PeriodStoreError):
    """There is no current period of the requested kind to close."""


class InvalidDateOrderError(PeriodStoreError, ValueError):
    """An end date does not fall strictly after its start date."""


# ---------------------------------------------------------------------------
# Membership reconciliation
# ---------------------------------------------------------------------------
class ReconciliationError(RingsideError):
    """A membership restructuring could not be applied."""

    def __init__(self, message: str, reason: ReasonCode = ReasonCode.PREREQUISITE_NOT_MET) -> None:
        self.reason = reason
        super().__init__(message)


class MembershipConflictError(ReconciliationError):
    """A member already belongs to another composite of the same relation."""


class NotEnoughMembersError(ReconciliationError):
    """The target member set does not satisfy the composite's size rule."""


# ---------------------------------------------------------------------------
# Transient / fatal store conditions
# ---------------------------------------------------------------------------
class ConcurrentModificationError(RingsideError):
    """Another unit of work changed the same entity first; retry once."""

    retryable = True


class DataIntegrityError(RingsideError):
    """The stored history violates an invariant the engine relies on."""

    retryable = False
