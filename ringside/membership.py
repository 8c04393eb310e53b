"""
ringside.membership
===================

Diff-based membership restructuring.

* :func:`replace_partners` – set a tag team's wrestler partners.
* :func:`reconcile_stable` – set a stable's wrestler and tag-team members.
* :func:`merge_stables` / :func:`split_stable` – move members between
  stables.
* :func:`delete_entity` / :func:`restore_entity` – soft delete with
  membership teardown, and restore with member recovery.

Every function runs as one atomic unit on the store and returns a
:class:`~ringside.models.MembershipDiff` describing what moved.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Set, Tuple

from . import status
from .capabilities import RELATIONS, member_relations, relation_for, relations_of
from .errors import (
    CannotBeDeletedError,
    CannotBeRestoredError,
    DataIntegrityError,
    MembershipConflictError,
    NotEnoughMembersError,
    ReasonCode,
    ReconciliationError,
)
from .models import (
    EntityKey,
    EntityType,
    Membership,
    MembershipDiff,
    PeriodKind,
    RelationKind,
    RestorePolicy,
    RosterEntity,
)
from .settings import Settings, settings as default_settings
from .store import RosterStore

logger = logging.getLogger(__name__)


def _require_type(entity: RosterEntity, *types: EntityType) -> None:
    if entity.entity_type not in types:
        raise ReconciliationError(
            f"{entity} cannot be restructured this way", ReasonCode.ILLEGAL_FOR_ENTITY_TYPE
        )


def _require_live(entity: RosterEntity) -> None:
    if entity.is_deleted:
        raise ReconciliationError(f"{entity} is deleted")


def _evict_or_refuse(
    store: RosterStore,
    relation: RelationKind,
    target: RosterEntity,
    composite: RosterEntity,
    policy: RestorePolicy,
    when: datetime,
) -> Tuple[List[Membership], bool]:
    """
    Clear *target*'s other current membership of an exclusive relation.

    Returns ``(closed, blocked)``: under CONSERVATIVE a conflict blocks and
    nothing is closed; under FORCED the other membership is closed.
    """
    if not RELATIONS[relation].exclusive:
        return [], False
    others = [m for m in store.memberships_of(target, relation) if m.composite_id != composite.id]
    if not others:
        return [], False
    if policy is RestorePolicy.CONSERVATIVE:
        return [], True
    closed = [
        store.close_membership(relation, store.get_entity(m.composite_id), target, when)
        for m in others
    ]
    logger.debug(f"evicted {target} from {len(closed)} composite(s) to join {composite}")
    return closed, False


def _apply_diff(
    store: RosterStore,
    composite: RosterEntity,
    targets: Dict[EntityKey, RosterEntity],
    relations: Iterable[RelationKind],
    policy: RestorePolicy,
    when: datetime,
) -> MembershipDiff:
    """Close memberships not in *targets*, open the missing ones."""
    current: Dict[EntityKey, Tuple[RelationKind, Membership]] = {
        m.member_key: (rel, m) for rel in relations for m in store.current_memberships(composite, rel)
    }
    to_remove = frozenset(current) - frozenset(targets)
    to_add = frozenset(targets) - frozenset(current)
    diff = MembershipDiff(composite, to_remove=to_remove, to_add=to_add)
    if diff.is_empty:
        return diff

    evicted: Set[EntityKey] = set()
    with store.atomic():
        for key in sorted(to_remove, key=lambda k: k[1]):
            relation, m = current[key]
            diff.closed.append(store.close_membership(relation, composite, store.get_entity(m.member_id), when))
        for key in sorted(to_add, key=lambda k: k[1]):
            target = targets[key]
            relation = relation_for(composite.entity_type, target.entity_type)
            closed, blocked = _evict_or_refuse(store, relation, target, composite, policy, when)
            if blocked:
                raise MembershipConflictError(f"{target} already belongs to another {relation.name} composite")
            if closed:
                evicted.add(key)
                diff.closed += closed
            diff.opened.append(store.open_membership(relation, composite, target, when))
    diff.evicted = frozenset(evicted)
    return diff


# ---------------------------------------------------------------------
# Reconciliation
# ---------------------------------------------------------------------
def replace_partners(
    store: RosterStore,
    team: RosterEntity,
    partners: Iterable[RosterEntity],
    when: datetime,
    policy: RestorePolicy = RestorePolicy.CONSERVATIVE,
    config: Optional[Settings] = None,
) -> MembershipDiff:
    """
    Make *partners* the tag team's current wrestlers.

    Raises
    ------
    NotEnoughMembersError
        Unless exactly ``tag_team_size`` distinct wrestlers are given.
    MembershipConflictError
        Under CONSERVATIVE, if a new partner is in another team.
    """
    config = config or default_settings
    _require_type(team, EntityType.TAG_TEAM)
    _require_live(team)
    targets = {p.key: p for p in partners}
    for p in targets.values():
        _require_type(p, EntityType.WRESTLER)
        _require_live(p)
    if len(targets) != config.tag_team_size:
        raise NotEnoughMembersError(
            f"{team} needs exactly {config.tag_team_size} wrestlers, got {len(targets)}"
        )

    with store.atomic():
        diff = _apply_diff(store, team, targets, [RelationKind.TAG_TEAM_WRESTLER], policy, when)
        if not diff.is_empty:
            size = len(store.current_memberships(team, RelationKind.TAG_TEAM_WRESTLER))
            if size != config.tag_team_size:
                logger.error(f"{team} has {size} current partners after reconciliation")
                raise DataIntegrityError(f"{team} has {size} current partners after reconciliation")
    return diff


def stable_weight(members: Iterable[RosterEntity]) -> int:
    """Member count with each tag team counting as two."""
    return sum(2 if m.entity_type is EntityType.TAG_TEAM else 1 for m in members)


def reconcile_stable(
    store: RosterStore,
    stable: RosterEntity,
    members: Iterable[RosterEntity],
    when: datetime,
    policy: RestorePolicy = RestorePolicy.CONSERVATIVE,
    config: Optional[Settings] = None,
) -> MembershipDiff:
    """Make *members* (wrestlers and tag teams) the stable's current members."""
    config = config or default_settings
    _require_type(stable, EntityType.STABLE)
    _require_live(stable)
    targets = {m.key: m for m in members}
    for m in targets.values():
        _require_type(m, EntityType.WRESTLER, EntityType.TAG_TEAM)
        _require_live(m)
    if stable_weight(targets.values()) < config.stable_minimum_members:
        raise NotEnoughMembersError(
            f"{stable} needs at least {config.stable_minimum_members} members"
        )
    return _apply_diff(store, stable, targets, member_relations(EntityType.STABLE), policy, when)


def reconcile(
    store: RosterStore,
    composite: RosterEntity,
    members: Iterable[RosterEntity],
    when: datetime,
    policy: RestorePolicy = RestorePolicy.CONSERVATIVE,
    config: Optional[Settings] = None,
) -> MembershipDiff:
    """Dispatch on the composite's type."""
    if composite.entity_type is EntityType.TAG_TEAM:
        return replace_partners(store, composite, members, when, policy, config)
    if composite.entity_type is EntityType.STABLE:
        return reconcile_stable(store, composite, members, when, policy, config)
    raise ReconciliationError(f"{composite} has no members to reconcile", ReasonCode.ILLEGAL_FOR_ENTITY_TYPE)


# ---------------------------------------------------------------------
# Stable restructuring
# ---------------------------------------------------------------------
def _current_members(store: RosterStore, stable: RosterEntity) -> List[Tuple[RelationKind, RosterEntity]]:
    return [
        (rel, store.get_entity(m.member_id))
        for rel in member_relations(stable.entity_type)
        for m in store.current_memberships(stable, rel)
    ]


def merge_stables(store: RosterStore, primary: RosterEntity, secondary: RosterEntity, when: datetime) -> MembershipDiff:
    """Move every current member of *secondary* into *primary*, then delete *secondary*."""
    _require_type(primary, EntityType.STABLE)
    _require_type(secondary, EntityType.STABLE)
    _require_live(primary)
    _require_live(secondary)
    if primary.key == secondary.key:
        raise ReconciliationError(f"{primary} cannot be merged into itself")

    diff = MembershipDiff(primary)
    with store.atomic():
        moved = _current_members(store, secondary)
        for relation, member in moved:
            diff.closed.append(store.close_membership(relation, secondary, member, when))
            diff.opened.append(store.open_membership(relation, primary, member, when))
        delete_entity(store, secondary, when)
    diff.to_add = frozenset(member.key for _, member in moved)
    logger.debug(f"merged {len(moved)} member(s) of {secondary} into {primary}")
    return diff


def split_stable(
    store: RosterStore,
    original: RosterEntity,
    new_name: str,
    subset: Iterable[RosterEntity],
    when: datetime,
) -> Tuple[RosterEntity, MembershipDiff]:
    """
    Create a new stable from part of *original*.

    Only members available on *when* (employed, not injured, not
    suspended) move; the rest of *subset* stays behind without error.

    Returns
    -------
    (RosterEntity, MembershipDiff)
        The new stable and the diff describing its members.
    """
    _require_type(original, EntityType.STABLE)
    _require_live(original)
    current = {member.key: (rel, member) for rel, member in _current_members(store, original)}
    wanted = {m.key: m for m in subset}
    strangers = [m for key, m in wanted.items() if key not in current]
    if strangers:
        raise MembershipConflictError(f"{strangers[0]} is not a current member of {original}")

    with store.atomic():
        created = store.add_entity(RosterEntity(EntityType.STABLE, new_name))
        store.open_period(created, PeriodKind.ACTIVATION, when)
        diff = MembershipDiff(created)
        moved, skipped = set(), set()
        for key in sorted(wanted, key=lambda k: k[1]):
            relation, member = current[key]
            if not status.is_available(store, member, when):
                skipped.add(key)
                continue
            diff.closed.append(store.close_membership(relation, original, member, when))
            diff.opened.append(store.open_membership(relation, created, member, when))
            moved.add(key)
    diff.to_add = frozenset(moved)
    diff.skipped = frozenset(skipped)
    return created, diff


# ---------------------------------------------------------------------
# Soft delete / restore
# ---------------------------------------------------------------------
def delete_entity(store: RosterStore, entity: RosterEntity, when: datetime) -> List[Membership]:
    """
    Soft-delete *entity*, closing every current membership it takes part in.

    Periods are kept; only memberships end on *when*.
    """
    entity = store.get_entity(entity.id)
    if entity.is_deleted:
        raise CannotBeDeletedError(ReasonCode.ALREADY_IN_STATUS, entity)

    closed: List[Membership] = []
    with store.atomic():
        for relation in relations_of(entity.entity_type):
            for m in store.current_memberships(entity, relation):
                closed.append(store.close_membership(relation, entity, store.get_entity(m.member_id), when))
        for m in store.memberships_of(entity):
            closed.append(store.close_membership(m.relation, store.get_entity(m.composite_id), entity, when))
        store.soft_delete(entity, when)
    return closed


def restore_entity(store: RosterStore, entity: RosterEntity, when: datetime, policy: RestorePolicy, config: Optional[Settings] = None) -> MembershipDiff:
    """
    Restore a soft-deleted entity and recover the memberships its deletion closed.

    *policy* decides what happens when a former member now belongs to
    another composite of an exclusive relation: CONSERVATIVE leaves it
    there, FORCED evicts it first.  Managers (non-exclusive) always
    return unless deleted themselves.
    """
    config = config or default_settings
    entity = store.get_entity(entity.id)
    if not entity.is_deleted:
        raise CannotBeRestoredError(ReasonCode.ALREADY_IN_STATUS, entity)
    deleted_at = entity.deleted_at

    diff = MembershipDiff(entity)
    added, evicted, skipped = set(), set(), set()
    with store.atomic():
        entity = store.restore(entity)

        # entity as composite: bring its members back
        for relation in relations_of(entity.entity_type):
            for m in store.memberships(entity, relation):
                if m.left_at != deleted_at:
                    continue
                member = store.get_entity(m.member_id)
                if member.is_deleted or member.key in added:
                    skipped.add(member.key)
                    continue
                closed, blocked = _evict_or_refuse(store, relation, member, entity, policy, when)
                if blocked:
                    skipped.add(member.key)
                    continue
                if closed:
                    evicted.add(member.key)
                    diff.closed += closed
                diff.opened.append(store.open_membership(relation, entity, member, when))
                added.add(member.key)

        # entity as member: rejoin composites that still have room
        for m in store.memberships_of(entity, current_only=False):
            if m.left_at != deleted_at:
                continue
            composite = store.get_entity(m.composite_id)
            taken = RELATIONS[m.relation].exclusive and bool(store.memberships_of(entity, m.relation))
            if composite.is_deleted or taken:
                skipped.add(composite.key)
                continue
            if (m.relation is RelationKind.TAG_TEAM_WRESTLER
                    and len(store.current_memberships(composite, m.relation)) >= config.tag_team_size):
                skipped.add(composite.key)
                continue
            diff.opened.append(store.open_membership(m.relation, composite, entity, when))
            added.add(composite.key)

    diff.to_add = frozenset(added)
    diff.evicted = frozenset(evicted)
    diff.skipped = frozenset(skipped - added)
    logger.debug(f"restored {entity}: {len(added)} reattached, {len(diff.skipped)} skipped")
    return diff
