"""
ringside.relationships
======================

Composite → member graph built on NetworkX.

Nodes are entity keys ``(EntityType, id)``; an edge composite → member
carries the :class:`~ringside.models.RelationKind` and the join date of a
current membership.  The cascade planner walks it to find the members a
composite transition must reach, and :mod:`ringside.viz` draws it.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional

import networkx as nx

from .capabilities import RELATIONS, relations_of
from .models import EntityKey, EntityType, RelationKind, RosterEntity
from .store import RosterStore


class MembershipGraph:
    """
    Lightweight wrapper around a DiGraph of current memberships.

    Example
    -------
    >>> mg = MembershipGraph()
    >>> team = RosterEntity(EntityType.TAG_TEAM, "Hardys", id=1)
    >>> matt = RosterEntity(EntityType.WRESTLER, "Matt", id=2)
    >>> mg.link(team, matt, RelationKind.TAG_TEAM_WRESTLER)
    >>> [e.name for e in mg.members(team)]
    ['Matt']
    """

    def __init__(self) -> None:
        self.g = nx.DiGraph()

    # ------------------------------------------------------------------
    # Building
    # ------------------------------------------------------------------
    def add_entity(self, entity: RosterEntity) -> None:
        """Add or refresh a node with the entity attached."""
        self.g.add_node(entity.key, entity=entity, label=entity.name)

    def link(self, composite: RosterEntity, member: RosterEntity, relation: RelationKind, joined_at=None) -> None:
        """Add an edge composite → member for one current membership."""
        self.add_entity(composite)
        self.add_entity(member)
        self.g.add_edge(composite.key, member.key, relation=relation, joined_at=joined_at)

    def load_composite(self, store: RosterStore, composite: RosterEntity, relations: Optional[Iterable[RelationKind]] = None) -> None:
        """Pull *composite*'s current memberships from *store*."""
        self.add_entity(composite)
        for relation in relations or relations_of(composite.entity_type):
            for m in store.current_memberships(composite, relation):
                self.link(composite, store.get_entity(m.member_id), relation, m.joined_at)

    @classmethod
    def from_store(cls, store: RosterStore, entities: Optional[Iterable[RosterEntity]] = None) -> "MembershipGraph":
        """Graph of every current membership among *entities* (default: whole roster)."""
        mg = cls()
        for entity in entities if entities is not None else store.entities():
            mg.add_entity(entity)
            if relations_of(entity.entity_type):
                mg.load_composite(store, entity)
        return mg

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def entity(self, key: EntityKey) -> RosterEntity:
        return self.g.nodes[key]["entity"]

    def members(self, composite: RosterEntity, relation: Optional[RelationKind] = None) -> List[RosterEntity]:
        """Direct members of *composite*, optionally of a single relation kind."""
        if composite.key not in self.g:
            return []
        keys = [
            key for key in self.g.successors(composite.key)
            if relation is None or self.g.edges[composite.key, key]["relation"] is relation
        ]
        return [self.entity(key) for key in sorted(keys, key=lambda k: k[1])]

    def composites(self, member: RosterEntity) -> List[RosterEntity]:
        """Composites *member* currently belongs to."""
        if member.key not in self.g:
            return []
        return [self.entity(key) for key in self.g.predecessors(member.key)]

    def relation(self, composite: RosterEntity, member: RosterEntity) -> RelationKind:
        """Return the stored relation or raise KeyError if the edge is missing."""
        return self.g.edges[composite.key, member.key]["relation"]

    def reachable(self, composite: RosterEntity) -> List[RosterEntity]:
        """Every entity below *composite*, e.g., the wrestlers of a stable's tag teams."""
        if composite.key not in self.g:
            return []
        return [self.entity(key) for key in nx.descendants(self.g, composite.key)]

    def to_json(self) -> Dict[str, Any]:
        """Nodes and links arrays for front-end visualisation."""
        nodes = [
            {
                "id": f"{etype.value}:{eid}",
                "name": data["label"],
                "type": etype.name,
            }
            for (etype, eid), data in self.g.nodes(data=True)
        ]
        links = [
            {
                "source": f"{s[0].value}:{s[1]}",
                "target": f"{t[0].value}:{t[1]}",
                "relation": data["relation"].name,
                "exclusive": RELATIONS[data["relation"]].exclusive,
            }
            for s, t, data in self.g.edges(data=True)
        ]
        return {"nodes": nodes, "links": links}

    def __contains__(self, entity: RosterEntity) -> bool:
        return entity.key in self.g

    def __len__(self) -> int:
        return self.g.number_of_nodes()
