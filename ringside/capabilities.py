"""
ringside.capabilities
=====================

Static capability matrix: which life-cycle behaviours each entity type
supports, which period kind backs each capability, and the rules of each
membership relation.

Every lookup is keyed by the :class:`~ringside.models.EntityType` tag, so
support is decided once, here, instead of by probing entity objects.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, FrozenSet, Optional, Tuple

from .errors import UnsupportedCapabilityError
from .models import Capability, EntityType, PeriodKind, RelationKind

C = Capability

# ---------------------------------------------------------------------
# entity type → set[Capability]
# ---------------------------------------------------------------------
CAPABILITIES: Dict[EntityType, FrozenSet[Capability]] = {
    EntityType.WRESTLER: frozenset({
        C.EMPLOYABLE, C.INJURABLE, C.SUSPENDABLE, C.RETIRABLE,
        C.BOOKABLE, C.MANAGEABLE, C.STABLE_MEMBER,
    }),
    EntityType.REFEREE: frozenset({
        C.EMPLOYABLE, C.INJURABLE, C.SUSPENDABLE, C.RETIRABLE, C.BOOKABLE,
    }),
    EntityType.MANAGER: frozenset({
        C.EMPLOYABLE, C.INJURABLE, C.SUSPENDABLE, C.RETIRABLE,
    }),
    EntityType.TAG_TEAM: frozenset({
        C.EMPLOYABLE, C.SUSPENDABLE, C.RETIRABLE,
        C.BOOKABLE, C.MANAGEABLE, C.STABLE_MEMBER,
    }),
    EntityType.STABLE: frozenset({C.DEBUTABLE, C.RETIRABLE}),
    EntityType.TITLE: frozenset({C.DEBUTABLE, C.RETIRABLE}),
}

# Capabilities that own a period history.  The rest are relationship or
# booking flags with nothing to open or close.
PERIOD_KINDS: Dict[Capability, PeriodKind] = {
    C.EMPLOYABLE: PeriodKind.EMPLOYMENT,
    C.INJURABLE: PeriodKind.INJURY,
    C.SUSPENDABLE: PeriodKind.SUSPENSION,
    C.RETIRABLE: PeriodKind.RETIREMENT,
    C.DEBUTABLE: PeriodKind.ACTIVATION,
}


def supports(entity_type: EntityType, capability: Capability) -> bool:
    """Return True if *entity_type* declares *capability*."""
    return capability in CAPABILITIES[entity_type]


def require(entity_type: EntityType, capability: Capability) -> None:
    """Raise :class:`UnsupportedCapabilityError` unless supported."""
    if not supports(entity_type, capability):
        raise UnsupportedCapabilityError(entity_type, capability)


def period_kind(capability: Capability) -> Optional[PeriodKind]:
    return PERIOD_KINDS.get(capability)


def tenure_capability(entity_type: EntityType) -> Optional[Capability]:
    """
    The capability whose periods define "being on the roster".

    Employment for people and tag teams, activation for stables and
    titles, ``None`` if the type has neither.
    """
    caps = CAPABILITIES[entity_type]
    if C.EMPLOYABLE in caps:
        return C.EMPLOYABLE
    if C.DEBUTABLE in caps:
        return C.DEBUTABLE
    return None


def tenure_kind(entity_type: EntityType) -> Optional[PeriodKind]:
    cap = tenure_capability(entity_type)
    return PERIOD_KINDS[cap] if cap else None


# ---------------------------------------------------------------------
# Membership relations
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class RelationRule:
    """
    Multiplicity rules for one relation kind.

    Parameters
    ----------
    composite_type : EntityType
        Owner side of the association.
    member_type : EntityType
        Member side.
    exclusive : bool
        A member may hold at most one current membership of this kind.
    """
    composite_type: EntityType
    member_type: EntityType
    exclusive: bool


RELATIONS: Dict[RelationKind, RelationRule] = {
    RelationKind.TAG_TEAM_WRESTLER: RelationRule(EntityType.TAG_TEAM, EntityType.WRESTLER, True),
    RelationKind.STABLE_WRESTLER: RelationRule(EntityType.STABLE, EntityType.WRESTLER, True),
    RelationKind.STABLE_TAG_TEAM: RelationRule(EntityType.STABLE, EntityType.TAG_TEAM, True),
    RelationKind.WRESTLER_MANAGER: RelationRule(EntityType.WRESTLER, EntityType.MANAGER, False),
    RelationKind.TAG_TEAM_MANAGER: RelationRule(EntityType.TAG_TEAM, EntityType.MANAGER, False),
}


def relations_of(composite_type: EntityType, *, include_managers: bool = True) -> Tuple[RelationKind, ...]:
    """Relation kinds where *composite_type* is the owner side."""
    return tuple(
        kind for kind, rule in RELATIONS.items()
        if rule.composite_type is composite_type
        and (include_managers or rule.member_type is not EntityType.MANAGER)
    )


def member_relations(composite_type: EntityType) -> Tuple[RelationKind, ...]:
    """Roster member relations of a composite (managers excluded)."""
    return relations_of(composite_type, include_managers=False)


def manager_relations(composite_type: EntityType) -> Tuple[RelationKind, ...]:
    """Relations through which *composite_type* holds managers."""
    return tuple(kind for kind in relations_of(composite_type) if RELATIONS[kind].member_type is EntityType.MANAGER)


def relation_for(composite_type: EntityType, member_type: EntityType) -> RelationKind:
    """Look up the relation joining the two types, or raise ValueError."""
    for kind, rule in RELATIONS.items():
        if rule.composite_type is composite_type and rule.member_type is member_type:
            return kind
    raise ValueError(f"no relation between {composite_type.label} and {member_type.label}")
